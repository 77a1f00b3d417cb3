from __future__ import annotations

import asyncio
import pathlib
from typing import (
    Any,
    Dict,
    TypeVar,
)

from latency_monitor.logging.config.logging_config import LogOutput
from latency_monitor.logging.models import Entry

from .logger_context import LoggerContext

T = TypeVar('T', bound=Entry)


def split_logfile_path(path: str | None):
    if path is None:
        return None, None

    logfile_path = pathlib.Path(path)
    is_logfile = len(logfile_path.suffix) > 0

    filename = logfile_path.name if is_logfile else "logs.json"
    directory = str(logfile_path.parent.absolute()) if is_logfile else str(logfile_path.absolute())

    return filename, directory


class Logger:
    def __init__(
        self,
        stdout_writer: asyncio.StreamWriter | None = None,
        stderr_writer: asyncio.StreamWriter | None = None,
    ) -> None:
        self._contexts: Dict[str, LoggerContext] = {}
        self._stdout_writer = stdout_writer
        self._stderr_writer = stderr_writer

    def context(
        self,
        name: str | None = None,
        template: str | None = None,
        path: str | None = None,
        output: LogOutput | None = None,
        level_filtered: bool = True,
        nested: bool = False,
        models: dict[
            str,
            tuple[
                type[T],
                dict[str, Any],
            ]
        ] | None = None,
    ):
        if name is None:
            name = 'default'

        filename, directory = split_logfile_path(path)

        if self._contexts.get(name) is None:

            self._contexts[name] = LoggerContext(
                name=name,
                template=template,
                filename=filename,
                directory=directory,
                output=output,
                level_filtered=level_filtered,
                nested=nested,
                models=models,
                stdout_writer=self._stdout_writer,
                stderr_writer=self._stderr_writer,
            )

        else:
            self._contexts[name].nested = nested

        return self._contexts[name]

