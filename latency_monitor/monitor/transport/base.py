from ipaddress import IPv4Address, IPv6Address
from typing import Protocol, TypeVar

H = TypeVar("H")


class EchoTransport(Protocol[H]):
    """Protocol for ICMP echo transports.

    A transport hands out one long-lived handle per host and sends echo
    requests over it. ``send_echo`` returns the round trip in seconds, or
    ``None`` when no reply arrived within ``timeout``.
    """

    async def create_handle(self, host: str) -> H: ...

    async def send_echo(
        self,
        handle: H,
        address: IPv4Address | IPv6Address,
        identifier: int,
        sequence: int,
        timeout: float,
    ) -> float | None: ...

    async def close_handle(self, handle: H) -> None: ...
