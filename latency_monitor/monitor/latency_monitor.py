import asyncio
import random
import signal

from latency_monitor.env import Env
from latency_monitor.logging import Logger, LoggingConfig, LogLevel
from latency_monitor.logging.monitor_logging_models import (
    MonitorError,
    MonitorShutdown,
    MonitorStarted,
)

from .exceptions import MonitorStartupError
from .models import MonitorExitReason, ProbeConfig
from .scheduler import ProbeScheduler
from .transport import EchoTransport, IcmpTransport


DIAGNOSTIC_TEMPLATE = "{timestamp} - {level} - {message}"


class LatencyMonitor:
    def __init__(
        self,
        env: Env | None = None,
        transport: EchoTransport | None = None,
        logger: Logger | None = None,
        rng: random.Random | None = None,
    ) -> None:
        if env is None:
            env = Env()

        if transport is None:
            transport = IcmpTransport(
                privileged=env.LATENCY_MONITOR_PRIVILEGED,
            )

        if logger is None:
            logger = Logger()

        self._env = env
        self._transport = transport
        self._logger = logger
        self._random = rng
        self._config = ProbeConfig(**env.get_probe_config())
        self._loop: asyncio.AbstractEventLoop | None = None
        self._shutdown: asyncio.Event | None = None
        self._signals = (signal.SIGINT, signal.SIGTERM)
        self.scheduler: ProbeScheduler | None = None

    def request_shutdown(self):
        if self._shutdown is not None:
            self._shutdown.set()

    async def run(self, handle_signals: bool = True) -> int:
        self._loop = asyncio.get_running_loop()
        self._shutdown = asyncio.Event()

        LoggingConfig().update(
            log_level=self._env.LATENCY_MONITOR_LOG_LEVEL,
        )

        hosts = self._env.hosts

        async with self._logger.context(
            name="status",
            template="{message}",
            output="stdout",
            level_filtered=False,
            models={
                "shutdown": (
                    MonitorShutdown,
                    {
                        "level": LogLevel.INFO,
                    },
                ),
            },
        ) as status, self._logger.context(
            name="latency_monitor",
            template=DIAGNOSTIC_TEMPLATE,
            path=self._env.LATENCY_MONITOR_LOG_PATH,
            output="stderr",
        ) as diagnostics:

            self.scheduler = ProbeScheduler(
                self._transport,
                status=status,
                diagnostics=diagnostics,
                config=self._config,
                rng=self._random,
            )

            if handle_signals:
                self._register_signal_handlers()

            try:
                await diagnostics.log(
                    MonitorStarted(
                        message=f"Monitoring {len(hosts)} hosts",
                        hosts=hosts,
                    )
                )

                await self.scheduler.register_all(hosts)
                reason = await self.scheduler.run(self._shutdown)

            except MonitorStartupError as err:
                await diagnostics.log(
                    MonitorError(
                        message=str(err),
                        hosts=hosts,
                    )
                )

                return 1

            finally:
                if handle_signals:
                    self._reset_signal_handlers()

            if reason == MonitorExitReason.EXHAUSTED:
                await diagnostics.log(
                    MonitorError(
                        message="Err. - every monitored host was dropped.",
                        hosts=hosts,
                    )
                )

                return 1

            await status.log_prepared(
                "Exiting...",
                name="shutdown",
            )

            return 0

    def _register_signal_handlers(self):
        for sig in self._signals:
            try:
                self._loop.add_signal_handler(
                    sig,
                    self.request_shutdown,
                )

            except NotImplementedError:
                # No loop signal support (Windows), KeyboardInterrupt ends the run instead.
                pass

    def _reset_signal_handlers(self):
        for sig in self._signals:
            try:
                self._loop.remove_signal_handler(sig)

            except NotImplementedError:
                pass
