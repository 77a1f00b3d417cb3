import asyncio
import random
from typing import Any, Dict, Iterable, List

from latency_monitor.logging.monitor_logging_models import (
    HandleCreationError,
    HostAddressError,
    HostDropped,
    HostRegistered,
    LatencySample,
    ProbeTransportError,
)
from latency_monitor.logging.streams import LoggerStream

from .exceptions import HandleCreationFailure, MonitorStartupError
from .latency_stats import LatencyStats
from .models import (
    MonitorExitReason,
    ProbeConfig,
    ProbeOutcome,
    ProbeResult,
    ProbeUnit,
)
from .probe import EchoProbe
from .transport import EchoTransport


STATUS_TEMPLATE = "Host: {host}, Latency: {latency_ms}ms, Avg Latency: {average_latency:.2f}ms"


class ProbeScheduler:
    """
    Multiplexes one perpetual delay-then-probe cycle per host on a single
    event loop.

    Every tracked host owns exactly one pending probe unit. The loop waits
    on all of them plus the shutdown event with one FIRST_COMPLETED wait,
    records the sample of each completed unit, and re-arms that host with
    the fixed probe interval, reusing the host's transport handle.

    Example usage:
        scheduler = ProbeScheduler(
            IcmpTransport(),
            status=status_stream,
            diagnostics=diagnostics_stream,
        )

        await scheduler.register_all(["192.0.2.1", "192.0.2.2"])
        reason = await scheduler.run(shutdown)
    """

    def __init__(
        self,
        transport: EchoTransport,
        status: LoggerStream,
        diagnostics: LoggerStream,
        config: ProbeConfig | None = None,
        rng: random.Random | None = None,
    ):
        self._transport = transport
        self._probe = EchoProbe(transport, config)
        self._config = self._probe.config
        self._status = status
        self._diagnostics = diagnostics
        self._random = rng or random.Random()

        self._pending: Dict[asyncio.Task, ProbeUnit] = {}
        self._handles: Dict[str, Any] = {}
        self.stats: Dict[str, LatencyStats] = {}

    @property
    def tracked_hosts(self) -> List[str]:
        return list(self._handles)

    def pending_hosts(self) -> List[str]:
        return [unit.host for unit in self._pending.values()]

    async def register(self, host: str) -> bool:
        """
        Create the host's transport handle and arm its first probe after a
        random jitter delay.

        Returns:
            False if the handle could not be created. The host is then
            never tracked.
        """
        if host in self._handles:
            return True

        try:
            handle = await self._transport.create_handle(host)

        except HandleCreationFailure as err:
            await self._diagnostics.log(
                HandleCreationError(
                    message=str(err),
                    host=host,
                )
            )

            return False

        self._handles[host] = handle
        self.stats[host] = LatencyStats()

        self._schedule(host, handle, self._initial_delay())

        await self._diagnostics.log(
            HostRegistered(
                message=f"starting: {host}",
                host=host,
            )
        )

        return True

    async def register_all(self, hosts: Iterable[str]) -> List[str]:
        registered = [host for host in hosts if await self.register(host)]

        if len(registered) < 1:
            raise MonitorStartupError("Err. - no hosts could be registered for monitoring.")

        return registered

    async def run(self, shutdown: asyncio.Event) -> MonitorExitReason:
        shutdown_waiter = asyncio.ensure_future(shutdown.wait())

        try:
            while self._pending:

                if shutdown.is_set():
                    return MonitorExitReason.SHUTDOWN

                done, _ = await asyncio.wait(
                    [*self._pending.keys(), shutdown_waiter],
                    return_when=asyncio.FIRST_COMPLETED,
                )

                if shutdown_waiter in done:
                    return MonitorExitReason.SHUTDOWN

                for task in done:
                    if shutdown.is_set():
                        break

                    self._pending.pop(task)
                    await self._process(task.result())

            return MonitorExitReason.EXHAUSTED

        finally:
            shutdown_waiter.cancel()
            await self._abandon()

    async def _process(self, outcome: ProbeOutcome):
        if outcome.result == ProbeResult.UNUSABLE:
            await self._drop(outcome)
            return

        if outcome.sampled:
            stats = self.stats[outcome.host]
            stats.update(outcome.latency_ms)

            await self._status.log(
                LatencySample(
                    message=outcome.message,
                    host=outcome.host,
                    latency_ms=outcome.latency_ms,
                    average_latency=stats.average_latency,
                    sample_count=stats.sample_count,
                ),
                template=STATUS_TEMPLATE,
            )

        elif outcome.result == ProbeResult.INVALID_ADDRESS:
            await self._diagnostics.log(
                HostAddressError(
                    message=outcome.message,
                    host=outcome.host,
                )
            )

        elif outcome.result == ProbeResult.FAILURE:
            await self._diagnostics.log(
                ProbeTransportError(
                    message=outcome.message,
                    host=outcome.host,
                )
            )

        self._schedule(
            outcome.host,
            outcome.handle,
            self._config.interval_seconds,
        )

    def _schedule(
        self,
        host: str,
        handle: Any,
        delay_seconds: float,
    ):
        unit = ProbeUnit(
            host=host,
            handle=handle,
            delay_seconds=delay_seconds,
        )

        task = asyncio.create_task(
            self._probe.run(unit),
            name=f"probe:{host}",
        )

        self._pending[task] = unit

    def _initial_delay(self) -> float:
        jitter_ms = int(self._config.initial_jitter_seconds * 1000)
        if jitter_ms < 1:
            return 0.0

        return self._random.randrange(jitter_ms) / 1000

    async def _drop(self, outcome: ProbeOutcome):
        handle = self._handles.pop(outcome.host, None)
        if handle is not None:
            await asyncio.gather(
                self._transport.close_handle(handle),
                return_exceptions=True,
            )

        await self._diagnostics.log(
            HostDropped(
                message=f"Dropping host: {outcome.host} - {outcome.message}",
                host=outcome.host,
            )
        )

    async def _abandon(self):
        tasks = list(self._pending.keys())
        for task in tasks:
            task.cancel()

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._pending.clear()

        handles = list(self._handles.values())
        self._handles.clear()

        await asyncio.gather(
            *[self._transport.close_handle(handle) for handle in handles],
            return_exceptions=True,
        )
