import contextvars
from typing import List, Literal

from latency_monitor.logging.models import LogLevel, LogLevelName
from .log_level_map import LogLevelMap
from .stream_type import StreamType


LogOutput = Literal['stdout', 'stderr']

_global_log_level = contextvars.ContextVar("_global_log_level", default=LogLevel.INFO)
_global_disabled_loggers = contextvars.ContextVar("_global_disabled_loggers", default=[])
_global_level_map = contextvars.ContextVar("_global_level_map", default=LogLevelMap())
_global_log_output_type = contextvars.ContextVar("_global_log_output_type", default=StreamType.STDERR)
_global_logging_directory = contextvars.ContextVar("_global_logging_directory", default=None)


def to_stream_type(log_output: LogOutput) -> StreamType:
    return StreamType.STDOUT if log_output == 'stdout' else StreamType.STDERR


class LoggingConfig:
    def __init__(self) -> None:
        self._log_level: contextvars.ContextVar[LogLevel] = _global_log_level
        self._log_output_type: contextvars.ContextVar[StreamType] = _global_log_output_type
        self._log_directory: contextvars.ContextVar[str | None] = _global_logging_directory

        self._disabled_loggers: contextvars.ContextVar[List[str]] = (
            _global_disabled_loggers
        )
        self._level_map = _global_level_map.get()

    def update(
        self,
        log_directory: str | None = None,
        log_level: LogLevelName | None = None,
        log_output: LogOutput | None = None,
    ):
        if log_directory:
            self._log_directory.set(log_directory)

        if log_level:
            self._log_level.set(
                LogLevel.to_level(log_level)
            )

        if log_output:
            self._log_output_type.set(
                to_stream_type(log_output)
            )

    def disable(self, *logger_names: str):
        disabled_loggers = list(self._disabled_loggers.get())
        disabled_loggers.extend(
            name for name in logger_names if name not in disabled_loggers
        )

        self._disabled_loggers.set(disabled_loggers)

    def enable(self, *logger_names: str):
        self._disabled_loggers.set([
            name for name in self._disabled_loggers.get() if name not in logger_names
        ])

    def enabled(self, logger_name: str, log_level: LogLevel | None = None) -> bool:
        if logger_name in self._disabled_loggers.get():
            return False

        if log_level is None:
            return True

        current_log_level = self._log_level.get()
        return self._level_map[log_level] >= self._level_map[current_log_level]

    @property
    def level(self):
        return self._log_level.get()

    @property
    def output(self):
        return self._log_output_type.get()

    @property
    def directory(self):
        return self._log_directory.get()
