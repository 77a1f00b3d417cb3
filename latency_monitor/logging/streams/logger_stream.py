import asyncio
import datetime
import functools
import io
import os
import pathlib
import sys
import threading
from collections import defaultdict
from typing import (
    Any,
    Callable,
    Dict,
    List,
    TypeVar,
)

import msgspec

from latency_monitor.logging.config.logging_config import (
    LoggingConfig,
    LogOutput,
    to_stream_type,
)
from latency_monitor.logging.config.stream_type import StreamType
from latency_monitor.logging.models import Entry, Log, LogLevel

from .protocol import LoggerProtocol

T = TypeVar('T', bound=Entry)


DEFAULT_TEMPLATE = "{timestamp} - {level} - {thread_id} - {filename}:{function_name}.{line_number} - {message}"
ERROR_TEMPLATE = "{timestamp} - {level} - {thread_id}.{filename}:{function_name}.{line_number} - {error}"


class LoggerStream:
    def __init__(
        self,
        name: str | None = None,
        template: str | None = None,
        filename: str | None = None,
        directory: str | None = None,
        output: LogOutput | None = None,
        level_filtered: bool = True,
        models: dict[
            str,
            tuple[
                type[T],
                dict[str, Any],
            ]
        ] | None = None,
    ) -> None:
        if name is None:
            name = "default"

        self._name = name
        self._default_template = template
        self._default_logfile = filename
        self._default_log_directory = directory
        self._output: StreamType | None = to_stream_type(output) if output else None
        self._level_filtered = level_filtered

        self._init_lock = asyncio.Lock()
        self._stream_writers: Dict[StreamType, asyncio.StreamWriter] = {}
        self._owned_writers: List[asyncio.StreamWriter] = []
        self._loop: asyncio.AbstractEventLoop | None = None

        self._files: Dict[str, io.BufferedRandom] = {}
        self._file_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._cwd: str | None = None
        self._default_logfile_path: str | None = None

        self._config = LoggingConfig()
        self._initialized: bool = False
        self._stderr: io.TextIOBase | None = None
        self._stdout: io.TextIOBase | None = None

        self._models: Dict[str, tuple[type[Entry], dict[str, Any]]] = {}

        if models is None:
            models = {}

        for model_name, config in models.items():
            model, defaults = config

            self._models[model_name] = (
                model,
                defaults
            )

        self._models.update({
            'default': (
                Entry,
                {
                    'level': LogLevel.INFO
                }
            )
        })

    @property
    def name(self):
        return self._name

    @property
    def output(self) -> StreamType:
        if self._output:
            return self._output

        return self._config.output

    async def initialize(
        self,
        stdout_writer: asyncio.StreamWriter | None = None,
        stderr_writer: asyncio.StreamWriter | None = None,
    ):

        async with self._init_lock:

            if self._initialized:
                return

            if self._loop is None:
                self._loop = asyncio.get_running_loop()

            if stdout_writer:
                self._stream_writers[StreamType.STDOUT] = stdout_writer

            if stderr_writer:
                self._stream_writers[StreamType.STDERR] = stderr_writer

            if self._stream_writers.get(StreamType.STDOUT) is None:
                self._stdout = await self._dup_stdout()
                self._stream_writers[StreamType.STDOUT] = await self._connect_writer(
                    self._stdout,
                )

            if self._stream_writers.get(StreamType.STDERR) is None:
                self._stderr = await self._dup_stderr()
                self._stream_writers[StreamType.STDERR] = await self._connect_writer(
                    self._stderr,
                )

            if self._default_logfile:
                await self.open_file(
                    self._default_logfile,
                    directory=self._default_log_directory,
                    is_default=True,
                )

            self._initialized = True

    async def _connect_writer(self, pipe: io.TextIOBase):
        transport, protocol = await self._loop.connect_write_pipe(
            lambda: LoggerProtocol(loop=self._loop), pipe
        )

        writer = asyncio.StreamWriter(
            transport,
            protocol,
            None,
            self._loop,
        )

        self._owned_writers.append(writer)

        return writer

    async def open_file(
        self,
        filename: str,
        directory: str | None = None,
        is_default: bool = False,
    ):
        if self._cwd is None:
            self._cwd = await self._loop.run_in_executor(
                None,
                os.getcwd,
            )

        logfile_path = self._to_logfile_path(filename, directory=directory)

        async with self._file_locks[logfile_path]:
            await self._loop.run_in_executor(
                None,
                self._open_file,
                logfile_path,
            )

        if is_default:
            self._default_logfile_path = logfile_path

        return logfile_path

    def _open_file(
        self,
        logfile_path: str,
    ):
        resolved_path = pathlib.Path(logfile_path).absolute().resolve()
        logfile_directory = str(resolved_path.parent)
        path = str(resolved_path)

        if not os.path.exists(logfile_directory):
            os.makedirs(logfile_directory)

        if not os.path.exists(path):
            resolved_path.touch()

        self._files[logfile_path] = open(path, "ab+")

    async def close(self):
        await asyncio.gather(
            *[self._close_file(logfile_path) for logfile_path in list(self._files)]
        )

        for writer in self._stream_writers.values():
            if writer.is_closing() is False:
                await writer.drain()

        for writer in self._owned_writers:
            writer.close()

        self._owned_writers.clear()
        self._stream_writers.clear()
        self._initialized = False

    async def _close_file(self, logfile_path: str):
        async with self._file_locks[logfile_path]:
            await self._loop.run_in_executor(
                None,
                self._close_file_at_path,
                logfile_path,
            )

    def _close_file_at_path(self, logfile_path: str):
        if (
            logfile := self._files.get(logfile_path)
        ) and logfile.closed is False:
            logfile.close()

    def _to_logfile_path(
        self,
        filename: str,
        directory: str | None = None,
    ):
        filename_path = pathlib.Path(filename)

        assert (
            filename_path.suffix == ".json"
        ), "Err. - file must be JSON file for logs."

        if self._config.directory:
            directory = self._config.directory

        elif directory is None:
            directory: str = os.path.join(self._cwd)

        logfile_path: str = os.path.join(directory, filename_path)

        return logfile_path

    async def _dup_stdout(self):

        stdout_fileno = await self._loop.run_in_executor(
            None,
            sys.stdout.fileno
        )

        stdout_dup = await self._loop.run_in_executor(
            None,
            os.dup,
            stdout_fileno,
        )

        return await self._loop.run_in_executor(
            None,
            functools.partial(
                os.fdopen,
                stdout_dup,
                mode=sys.stdout.mode
            )
        )

    async def _dup_stderr(self):

        stderr_fileno = await self._loop.run_in_executor(
            None,
            sys.stderr.fileno
        )

        stderr_dup = await self._loop.run_in_executor(
            None,
            os.dup,
            stderr_fileno,
        )

        return await self._loop.run_in_executor(
            None,
            functools.partial(
                os.fdopen,
                stderr_dup,
                mode=sys.stderr.mode
            )
        )

    async def log_prepared(
        self,
        message: str,
        name: str = 'default',
        template: str | None = None,
        path: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        entry = self._to_entry(message, name)
        frame = sys._getframe(1)

        await self._log_with_caller(
            entry,
            frame,
            template=template,
            path=path,
            filter=filter,
        )

    async def log(
        self,
        entry: T,
        template: str | None = None,
        path: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        frame = sys._getframe(1)

        await self._log_with_caller(
            entry,
            frame,
            template=template,
            path=path,
            filter=filter,
        )

    async def _log_with_caller(
        self,
        entry: T,
        frame,
        template: str | None = None,
        path: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        log_level = entry.level if self._level_filtered else None
        if self._config.enabled(self._name, log_level) is False:
            return

        if filter and filter(entry) is False:
            return

        code = frame.f_code
        log = Log(
            entry=entry,
            filename=code.co_filename,
            function_name=code.co_name,
            line_number=frame.f_lineno,
        )

        filename: str | None = self._default_logfile
        directory: str | None = self._default_log_directory

        if path:
            logfile_path = pathlib.Path(path)
            filename = logfile_path.name
            directory = str(logfile_path.parent.absolute())

        await self._log(
            log,
            template=template,
        )

        if filename:
            await self._log_to_file(
                log,
                filename=filename,
                directory=directory,
            )

    def _to_entry(
        self,
        message: str,
        name: str,
    ):
        model, defaults = self._models.get(
            name,
            self._models.get('default')
        )

        return model(
            message=message,
            **defaults
        )

    async def _log(
        self,
        log: Log[T],
        template: str | None = None,
    ):
        if self._initialized is False:
            await self.initialize()

        entry = log.entry
        stream_writer = self._stream_writers[self.output]

        if stream_writer.is_closing():
            return

        if template is None:
            template = self._default_template or DEFAULT_TEMPLATE

        context = {
            "filename": log.filename,
            "function_name": log.function_name,
            "line_number": log.line_number,
            "thread_id": log.thread_id,
            "timestamp": log.timestamp,
        }

        try:
            stream_writer.write(
                entry.to_template(
                    template,
                    context=context,
                ).encode()
                + b"\n"
            )

            await stream_writer.drain()

        except (OSError, RuntimeError, KeyError, ValueError) as err:
            await self._write_error(entry, context, err)

    async def _log_to_file(
        self,
        log: Log[T],
        filename: str,
        directory: str | None = None,
    ):
        if self._cwd is None:
            self._cwd = await self._loop.run_in_executor(
                None,
                os.getcwd,
            )

        logfile_path = self._to_logfile_path(
            filename,
            directory=directory,
        )

        if self._files.get(logfile_path) is None or self._files[logfile_path].closed:
            await self.open_file(
                filename,
                directory=directory,
            )

        try:
            async with self._file_locks[logfile_path]:
                await self._loop.run_in_executor(
                    None,
                    self._write_to_file,
                    log,
                    logfile_path,
                )

        except OSError as err:
            await self._write_error(
                log.entry,
                {
                    "filename": log.filename,
                    "function_name": log.function_name,
                    "line_number": log.line_number,
                    "thread_id": log.thread_id,
                    "timestamp": log.timestamp,
                },
                err,
            )

    async def _write_error(
        self,
        entry: T,
        context: Dict[str, Any],
        err: Exception,
    ):
        stderr_writer = self._stream_writers.get(StreamType.STDERR)
        if stderr_writer is None or stderr_writer.is_closing():
            return

        stderr_writer.write(
            entry.to_template(
                ERROR_TEMPLATE,
                context={
                    **context,
                    "error": str(err),
                    "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
                    "thread_id": threading.get_native_id(),
                },
            ).encode()
            + b"\n"
        )

    def _write_to_file(
        self,
        log: Log,
        logfile_path: str,
    ):
        if (
            logfile := self._files.get(logfile_path)
        ) and (
            logfile.closed is False
        ):

            logfile.write(msgspec.json.encode(log) + b"\n")
            logfile.flush()
