import asyncio
import random
from typing import Callable
from unittest.mock import MagicMock

import pytest

from latency_monitor.logging import LoggerStream
from latency_monitor.monitor import (
    HandleUnusable,
    MonitorExitReason,
    MonitorStartupError,
    ProbeConfig,
    ProbeScheduler,
    TransportFailure,
)

from tests.helpers import written_lines

from .mocks import MockEchoTransport


FAST_CONFIG = ProbeConfig(
    interval_seconds=0.001,
    timeout_seconds=0.25,
    initial_jitter_seconds=0.0,
)


@pytest.fixture
async def status_stream(
    mock_stdout_writer: MagicMock,
    mock_stderr_writer: MagicMock,
):
    stream = LoggerStream(
        name="status",
        template="{message}",
        output="stdout",
        level_filtered=False,
    )
    await stream.initialize(
        stdout_writer=mock_stdout_writer,
        stderr_writer=mock_stderr_writer,
    )
    yield stream
    await stream.close()


@pytest.fixture
async def diagnostics_stream(
    mock_stdout_writer: MagicMock,
    mock_stderr_writer: MagicMock,
):
    stream = LoggerStream(
        name="diagnostics",
        template="{level} - {message}",
        output="stderr",
    )
    await stream.initialize(
        stdout_writer=mock_stdout_writer,
        stderr_writer=mock_stderr_writer,
    )
    yield stream
    await stream.close()


def create_scheduler(
    transport: MockEchoTransport,
    status: LoggerStream,
    diagnostics: LoggerStream,
    config: ProbeConfig = FAST_CONFIG,
    rng: random.Random | None = None,
) -> ProbeScheduler:
    return ProbeScheduler(
        transport,
        status=status,
        diagnostics=diagnostics,
        config=config,
        rng=rng,
    )


async def run_until(
    scheduler: ProbeScheduler,
    shutdown: asyncio.Event,
    predicate: Callable[[], bool],
    timeout: float = 5.0,
) -> MonitorExitReason:
    runner = asyncio.create_task(scheduler.run(shutdown))

    async def watch():
        while not predicate():
            await asyncio.sleep(0.001)

        shutdown.set()

    await asyncio.wait_for(watch(), timeout)
    return await asyncio.wait_for(runner, timeout)


class TestRegistration:
    @pytest.mark.asyncio
    async def test_register_creates_zeroed_stats_and_one_pending_unit(
        self,
        status_stream: LoggerStream,
        diagnostics_stream: LoggerStream,
        mock_stderr_writer: MagicMock,
    ):
        transport = MockEchoTransport()
        scheduler = create_scheduler(transport, status_stream, diagnostics_stream)

        assert await scheduler.register("192.0.2.1") is True

        assert scheduler.tracked_hosts == ["192.0.2.1"]
        assert scheduler.pending_hosts() == ["192.0.2.1"]
        assert scheduler.stats["192.0.2.1"].sample_count == 0
        assert "DEBUG - starting: 192.0.2.1" in written_lines(mock_stderr_writer)

        shutdown = asyncio.Event()
        shutdown.set()
        assert await scheduler.run(shutdown) == MonitorExitReason.SHUTDOWN

    @pytest.mark.asyncio
    async def test_registering_twice_keeps_one_unit(
        self,
        status_stream: LoggerStream,
        diagnostics_stream: LoggerStream,
    ):
        transport = MockEchoTransport()
        scheduler = create_scheduler(transport, status_stream, diagnostics_stream)

        await scheduler.register("192.0.2.1")
        await scheduler.register("192.0.2.1")

        assert scheduler.pending_hosts() == ["192.0.2.1"]
        assert transport.created == ["192.0.2.1"]

        shutdown = asyncio.Event()
        shutdown.set()
        await scheduler.run(shutdown)

    @pytest.mark.asyncio
    async def test_first_probe_delay_is_within_jitter_bound(
        self,
        status_stream: LoggerStream,
        diagnostics_stream: LoggerStream,
    ):
        config = ProbeConfig(initial_jitter_seconds=0.5)
        scheduler = create_scheduler(
            MockEchoTransport(),
            status_stream,
            diagnostics_stream,
            config=config,
            rng=random.Random(7),
        )

        await scheduler.register_all([f"192.0.2.{idx}" for idx in range(1, 21)])

        delays = [unit.delay_seconds for unit in scheduler._pending.values()]
        assert len(delays) == 20
        assert all(0.0 <= delay < 0.5 for delay in delays)
        assert len(set(delays)) > 1

        shutdown = asyncio.Event()
        shutdown.set()
        await scheduler.run(shutdown)

    @pytest.mark.asyncio
    async def test_handle_creation_failure_skips_host(
        self,
        status_stream: LoggerStream,
        diagnostics_stream: LoggerStream,
        mock_stderr_writer: MagicMock,
    ):
        transport = MockEchoTransport(fail_create=["192.0.2.2"])
        scheduler = create_scheduler(transport, status_stream, diagnostics_stream)

        registered = await scheduler.register_all(["192.0.2.1", "192.0.2.2"])

        assert registered == ["192.0.2.1"]
        assert scheduler.tracked_hosts == ["192.0.2.1"]
        assert "192.0.2.2" not in scheduler.stats
        assert any(
            line.startswith("ERROR - Failed to create echo transport for host: 192.0.2.2")
            for line in written_lines(mock_stderr_writer)
        )

        shutdown = asyncio.Event()
        shutdown.set()
        await scheduler.run(shutdown)

    @pytest.mark.asyncio
    async def test_no_registered_hosts_is_a_startup_error(
        self,
        status_stream: LoggerStream,
        diagnostics_stream: LoggerStream,
    ):
        transport = MockEchoTransport(fail_create=["192.0.2.1", "192.0.2.2"])
        scheduler = create_scheduler(transport, status_stream, diagnostics_stream)

        with pytest.raises(MonitorStartupError):
            await scheduler.register_all(["192.0.2.1", "192.0.2.2"])

        assert scheduler.pending_hosts() == []


class TestSampling:
    @pytest.mark.asyncio
    async def test_status_lines_report_running_average(
        self,
        status_stream: LoggerStream,
        diagnostics_stream: LoggerStream,
        mock_stdout_writer: MagicMock,
    ):
        shutdown = asyncio.Event()
        transport = MockEchoTransport(
            scripts={"192.0.2.1": [0.1, 0.2, 0.3]},
            on_exhausted=shutdown.set,
        )
        scheduler = create_scheduler(transport, status_stream, diagnostics_stream)

        await scheduler.register_all(["192.0.2.1"])
        reason = await asyncio.wait_for(scheduler.run(shutdown), 5.0)

        assert reason == MonitorExitReason.SHUTDOWN
        assert written_lines(mock_stdout_writer) == [
            "Host: 192.0.2.1, Latency: 100ms, Avg Latency: 100.00ms",
            "Host: 192.0.2.1, Latency: 200ms, Avg Latency: 150.00ms",
            "Host: 192.0.2.1, Latency: 300ms, Avg Latency: 200.00ms",
        ]
        assert scheduler.stats["192.0.2.1"].sample_count == 3

    @pytest.mark.asyncio
    async def test_timeout_leaves_stats_unchanged_and_rearms(
        self,
        status_stream: LoggerStream,
        diagnostics_stream: LoggerStream,
        mock_stdout_writer: MagicMock,
    ):
        shutdown = asyncio.Event()
        transport = MockEchoTransport(
            scripts={"192.0.2.1": [0.1, None, None, 0.2]},
            on_exhausted=shutdown.set,
        )
        scheduler = create_scheduler(transport, status_stream, diagnostics_stream)

        await scheduler.register_all(["192.0.2.1"])
        await asyncio.wait_for(scheduler.run(shutdown), 5.0)

        stats = scheduler.stats["192.0.2.1"]
        assert stats.sample_count == 2
        assert stats.average_latency == 150.0
        assert written_lines(mock_stdout_writer) == [
            "Host: 192.0.2.1, Latency: 100ms, Avg Latency: 100.00ms",
            "Host: 192.0.2.1, Latency: 200ms, Avg Latency: 150.00ms",
        ]
        assert len(transport.sent) == 5

    @pytest.mark.asyncio
    async def test_hosts_are_sampled_independently(
        self,
        status_stream: LoggerStream,
        diagnostics_stream: LoggerStream,
    ):
        shutdown = asyncio.Event()
        transport = MockEchoTransport(
            scripts={
                "192.0.2.1": [0.01] * 5,
                "192.0.2.2": [0.04] * 5,
                "2001:db8::3": [0.02] * 5,
            },
            default_reply=None,
            hang_when_exhausted=False,
        )
        scheduler = create_scheduler(transport, status_stream, diagnostics_stream)
        await scheduler.register_all(["192.0.2.1", "192.0.2.2", "2001:db8::3"])

        await run_until(
            scheduler,
            shutdown,
            lambda: all(
                stats.sample_count == 5 for stats in scheduler.stats.values()
            ),
        )

        assert scheduler.stats["192.0.2.1"].average_latency == 10.0
        assert scheduler.stats["192.0.2.2"].average_latency == 40.0
        assert scheduler.stats["2001:db8::3"].average_latency == 20.0
        assert all(count == 1 for count in transport.max_in_flight.values())

    @pytest.mark.asyncio
    async def test_at_most_one_pending_unit_per_host(
        self,
        status_stream: LoggerStream,
        diagnostics_stream: LoggerStream,
    ):
        shutdown = asyncio.Event()
        transport = MockEchoTransport(
            default_reply=0.001,
            hang_when_exhausted=False,
        )
        scheduler = create_scheduler(transport, status_stream, diagnostics_stream)
        hosts = [f"192.0.2.{idx}" for idx in range(1, 6)]
        await scheduler.register_all(hosts)

        observed = []

        def check():
            pending = scheduler.pending_hosts()
            observed.append(len(pending) == len(set(pending)))
            return len(transport.sent) >= 50

        await run_until(scheduler, shutdown, check)

        assert all(observed)
        assert set(transport.max_in_flight) == set(hosts)
        assert all(count == 1 for count in transport.max_in_flight.values())


class TestDiagnostics:
    @pytest.mark.asyncio
    async def test_unparseable_host_is_reported_and_rearmed(
        self,
        status_stream: LoggerStream,
        diagnostics_stream: LoggerStream,
        mock_stdout_writer: MagicMock,
        mock_stderr_writer: MagicMock,
    ):
        shutdown = asyncio.Event()
        transport = MockEchoTransport(hang_when_exhausted=False)
        scheduler = create_scheduler(transport, status_stream, diagnostics_stream)
        await scheduler.register_all(["not-an-ip"])

        def reported_three_times():
            return written_lines(mock_stderr_writer).count(
                "WARN - Failed to parse IP address: not-an-ip"
            ) >= 3

        reason = await run_until(scheduler, shutdown, reported_three_times)

        assert reason == MonitorExitReason.SHUTDOWN
        assert scheduler.stats["not-an-ip"].sample_count == 0
        assert written_lines(mock_stdout_writer) == []
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_transport_failure_is_reported_and_rearmed(
        self,
        status_stream: LoggerStream,
        diagnostics_stream: LoggerStream,
        mock_stdout_writer: MagicMock,
        mock_stderr_writer: MagicMock,
    ):
        shutdown = asyncio.Event()
        transport = MockEchoTransport(
            scripts={
                "192.0.2.1": [
                    TransportFailure("192.0.2.1", "network unreachable"),
                    0.05,
                ],
            },
            on_exhausted=shutdown.set,
        )
        scheduler = create_scheduler(transport, status_stream, diagnostics_stream)

        await scheduler.register_all(["192.0.2.1"])
        await asyncio.wait_for(scheduler.run(shutdown), 5.0)

        assert "WARN - Failed to ping host: 192.0.2.1 - network unreachable" in written_lines(
            mock_stderr_writer
        )
        assert written_lines(mock_stdout_writer) == [
            "Host: 192.0.2.1, Latency: 50ms, Avg Latency: 50.00ms",
        ]

    @pytest.mark.asyncio
    async def test_unusable_handle_drops_host(
        self,
        status_stream: LoggerStream,
        diagnostics_stream: LoggerStream,
        mock_stderr_writer: MagicMock,
    ):
        transport = MockEchoTransport(
            scripts={
                "192.0.2.1": [
                    0.01,
                    HandleUnusable("192.0.2.1", "socket is closed"),
                ],
            },
        )
        scheduler = create_scheduler(transport, status_stream, diagnostics_stream)

        await scheduler.register_all(["192.0.2.1"])
        reason = await asyncio.wait_for(scheduler.run(asyncio.Event()), 5.0)

        assert reason == MonitorExitReason.EXHAUSTED
        assert scheduler.tracked_hosts == []
        assert transport.closed == ["192.0.2.1"]
        assert scheduler.stats["192.0.2.1"].sample_count == 1
        assert any(
            line.startswith("ERROR - Dropping host: 192.0.2.1")
            for line in written_lines(mock_stderr_writer)
        )

    @pytest.mark.asyncio
    async def test_dropping_one_host_keeps_the_others(
        self,
        status_stream: LoggerStream,
        diagnostics_stream: LoggerStream,
    ):
        shutdown = asyncio.Event()
        transport = MockEchoTransport(
            scripts={
                "192.0.2.1": [HandleUnusable("192.0.2.1", "socket is closed")],
                "192.0.2.2": [0.01, 0.01, 0.01],
            },
            on_exhausted=shutdown.set,
        )
        scheduler = create_scheduler(transport, status_stream, diagnostics_stream)

        await scheduler.register_all(["192.0.2.1", "192.0.2.2"])
        reason = await asyncio.wait_for(scheduler.run(shutdown), 5.0)

        assert reason == MonitorExitReason.SHUTDOWN
        assert scheduler.stats["192.0.2.2"].sample_count == 3


class TestShutdown:
    @pytest.mark.asyncio
    async def test_nothing_is_emitted_after_shutdown(
        self,
        status_stream: LoggerStream,
        diagnostics_stream: LoggerStream,
        mock_stdout_writer: MagicMock,
    ):
        shutdown = asyncio.Event()
        transport = MockEchoTransport(
            scripts={"192.0.2.1": [0.01, 0.01]},
            default_reply=0.5,
            on_exhausted=shutdown.set,
            hang_when_exhausted=False,
        )
        scheduler = create_scheduler(transport, status_stream, diagnostics_stream)

        await scheduler.register_all(["192.0.2.1"])
        reason = await asyncio.wait_for(scheduler.run(shutdown), 5.0)

        assert reason == MonitorExitReason.SHUTDOWN
        assert len(written_lines(mock_stdout_writer)) == 2
        assert scheduler.stats["192.0.2.1"].sample_count == 2

    @pytest.mark.asyncio
    async def test_shutdown_cancels_units_and_closes_handles(
        self,
        status_stream: LoggerStream,
        diagnostics_stream: LoggerStream,
    ):
        shutdown = asyncio.Event()
        transport = MockEchoTransport(on_exhausted=shutdown.set)
        scheduler = create_scheduler(transport, status_stream, diagnostics_stream)

        await scheduler.register_all(["192.0.2.1", "192.0.2.2"])
        await asyncio.wait_for(scheduler.run(shutdown), 5.0)

        assert scheduler.pending_hosts() == []
        assert scheduler.tracked_hosts == []
        assert sorted(transport.closed) == ["192.0.2.1", "192.0.2.2"]
        assert all(count == 0 for count in transport.in_flight.values())
