import asyncio
from ipaddress import ip_address
from typing import Any

from .exceptions import (
    HandleUnusable,
    HostAddressInvalid,
    TransportFailure,
)
from .models import (
    ProbeConfig,
    ProbeOutcome,
    ProbeResult,
    ProbeUnit,
    ProbeUnitStatus,
)
from .transport import EchoTransport


class EchoProbe:
    """
    Runs delay-then-echo probe units against an echo transport.

    ``probe()`` raises the transport's error conditions. ``run()`` is what
    the scheduler awaits: it waits out the unit's delay, probes once, and
    folds the result or error into a ``ProbeOutcome`` so that nothing
    raised by a single probe escapes into the event loop.

    Example usage:
        probe = EchoProbe(IcmpTransport(), ProbeConfig(timeout_seconds=0.25))
        handle = await transport.create_handle("192.0.2.1")

        rtt = await probe.probe(handle, "192.0.2.1")
        if rtt is None:
            # Timed out, no sample this round
    """

    def __init__(
        self,
        transport: EchoTransport,
        config: ProbeConfig | None = None,
    ):
        self._transport = transport
        self._config = config or ProbeConfig()

    @property
    def config(self) -> ProbeConfig:
        return self._config

    async def probe(self, handle: Any, host: str) -> float | None:
        try:
            address = ip_address(host)

        except ValueError as err:
            raise HostAddressInvalid(host) from err

        return await self._transport.send_echo(
            handle,
            address,
            self._config.identifier,
            self._config.sequence,
            self._config.timeout_seconds,
        )

    async def run(self, unit: ProbeUnit) -> ProbeOutcome:
        if unit.delay_seconds > 0:
            await asyncio.sleep(unit.delay_seconds)

        unit.status = ProbeUnitStatus.PROBING

        try:
            rtt = await self.probe(unit.handle, unit.host)

            if rtt is None:
                result = ProbeResult.TIMEOUT
                latency_ms = None
                message = f"No reply from {unit.host} within {self._config.timeout_seconds}s"

            else:
                result = ProbeResult.SUCCESS
                latency_ms = int(rtt * 1000)
                message = f"Reply from {unit.host} in {latency_ms}ms"

        except HostAddressInvalid as err:
            result = ProbeResult.INVALID_ADDRESS
            latency_ms = None
            message = str(err)

        except HandleUnusable as err:
            result = ProbeResult.UNUSABLE
            latency_ms = None
            message = str(err)

        except TransportFailure as err:
            result = ProbeResult.FAILURE
            latency_ms = None
            message = str(err)

        except Exception as err:
            result = ProbeResult.FAILURE
            latency_ms = None
            message = str(TransportFailure(unit.host, str(err)))

        unit.status = ProbeUnitStatus.RESOLVED

        return ProbeOutcome(
            host=unit.host,
            handle=unit.handle,
            result=result,
            latency_ms=latency_ms,
            message=message,
        )
