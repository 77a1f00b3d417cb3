import asyncio
from typing import Any, TypeVar

from latency_monitor.logging.config.logging_config import LogOutput
from .logger_stream import LoggerStream


T = TypeVar('T')


class LoggerContext:
    def __init__(
        self,
        name: str | None = None,
        template: str | None = None,
        filename: str | None = None,
        directory: str | None = None,
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
        stdout_writer: asyncio.StreamWriter | None = None,
        stderr_writer: asyncio.StreamWriter | None = None,
    ) -> None:
        self.name = name
        self.template = template
        self.filename = filename
        self.directory = directory
        self.output = output
        self.stream = LoggerStream(
            name=name,
            template=template,
            filename=filename,
            directory=directory,
            output=output,
            level_filtered=level_filtered,
            models=models,
        )
        self.nested = nested
        self._stdout_writer = stdout_writer
        self._stderr_writer = stderr_writer

    async def __aenter__(self):
        await self.stream.initialize(
            stdout_writer=self._stdout_writer,
            stderr_writer=self._stderr_writer,
        )

        return self.stream

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.nested is False:
            await self.stream.close()
