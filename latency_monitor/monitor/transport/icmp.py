import asyncio
import os
import socket
import time
from dataclasses import dataclass
from ipaddress import IPv4Address, IPv6Address, ip_address

from icmplib import (
    ICMPError,
    ICMPReply,
    ICMPRequest,
    ICMPSocketError,
    ICMPv4Socket,
    ICMPv6Socket,
)
from icmplib.utils import PLATFORM_LINUX

from latency_monitor.monitor.exceptions import (
    HandleCreationFailure,
    HandleUnusable,
    TransportFailure,
)


ECHO_PAYLOAD_SIZE = 56
RECEIVE_BUFFER_SIZE = 1024


def _set_readable(readable: asyncio.Future):
    if not readable.done():
        readable.set_result(None)


@dataclass(slots=True)
class IcmpHandle:
    host: str
    socket: ICMPv4Socket | ICMPv6Socket

    @property
    def closed(self) -> bool:
        return self.socket.is_closed


class IcmpTransport:
    """Echo transport over icmplib sockets.

    Privileged mode opens raw sockets (root or CAP_NET_RAW). Unprivileged
    mode uses ICMP datagram sockets, which on Linux requires the process
    group to be inside ``net.ipv4.ping_group_range``.

    A raw ICMP socket sees every echo reply the machine receives, and all
    probes share one identifier and sequence. Each request therefore
    carries a random payload token, and an echo reply is only accepted
    when it comes from the probed address and echoes that token. Replies
    left over from earlier probes are drained before each send.
    """

    def __init__(
        self,
        privileged: bool = True,
        source: str | None = None,
    ) -> None:
        self._privileged = privileged
        self._source = source

    async def create_handle(self, host: str) -> IcmpHandle:
        socket_type = ICMPv4Socket

        try:
            if ip_address(host).version == 6:
                socket_type = ICMPv6Socket

        except ValueError:
            # Unparseable hosts still get a handle; the probe reports the bad address.
            pass

        try:
            icmp_socket = socket_type(
                address=self._source,
                privileged=self._privileged,
            )
            icmp_socket.blocking = False

        except (ICMPSocketError, OSError) as err:
            raise HandleCreationFailure(host, str(err)) from err

        return IcmpHandle(
            host=host,
            socket=icmp_socket,
        )

    async def send_echo(
        self,
        handle: IcmpHandle,
        address: IPv4Address | IPv6Address,
        identifier: int,
        sequence: int,
        timeout: float,
    ) -> float | None:
        if handle.closed:
            raise HandleUnusable(handle.host, "socket is closed")

        request = ICMPRequest(
            destination=str(address),
            id=identifier,
            sequence=sequence,
            payload=os.urandom(ECHO_PAYLOAD_SIZE),
        )

        try:
            raw_socket = handle.socket.sock

            self._drain(raw_socket)
            handle.socket.send(request)

            reply = await self._receive(
                handle,
                raw_socket,
                request,
                address,
                timeout,
            )

            if reply is None:
                return None

            reply.raise_for_status()

        except ICMPError as err:
            raise TransportFailure(handle.host, str(err)) from err

        except (ICMPSocketError, OSError) as err:
            if handle.closed:
                raise HandleUnusable(handle.host, str(err)) from err

            raise TransportFailure(handle.host, str(err)) from err

        return reply.time - request.time

    async def close_handle(self, handle: IcmpHandle) -> None:
        if handle.closed is False:
            handle.socket.close()

    def _drain(self, raw_socket: socket.socket):
        while True:
            try:
                raw_socket.recv(RECEIVE_BUFFER_SIZE)

            except BlockingIOError:
                return

    async def _receive(
        self,
        handle: IcmpHandle,
        raw_socket: socket.socket,
        request: ICMPRequest,
        address: IPv4Address | IPv6Address,
        timeout: float,
    ) -> ICMPReply | None:
        deadline = time.time() + timeout

        while True:
            remaining = deadline - time.time()
            if remaining <= 0:
                return None

            try:
                packet, source = await asyncio.wait_for(
                    self._recvfrom(raw_socket),
                    remaining,
                )

            except asyncio.TimeoutError:
                return None

            received_at = time.time()
            if received_at > deadline:
                return None

            reply = self._match_reply(
                handle.socket,
                request,
                address,
                packet,
                source[0],
                received_at,
            )

            if reply is not None:
                return reply

    async def _recvfrom(self, raw_socket: socket.socket):
        loop = asyncio.get_running_loop()

        while True:
            try:
                return raw_socket.recvfrom(RECEIVE_BUFFER_SIZE)

            except (BlockingIOError, InterruptedError):
                pass

            readable = loop.create_future()
            fileno = raw_socket.fileno()
            loop.add_reader(fileno, _set_readable, readable)

            try:
                await readable

            finally:
                loop.remove_reader(fileno)

    def _match_reply(
        self,
        icmp_socket: ICMPv4Socket | ICMPv6Socket,
        request: ICMPRequest,
        address: IPv4Address | IPv6Address,
        packet: bytes,
        source: str,
        received_at: float,
    ) -> ICMPReply | None:
        reply = icmp_socket._parse_reply(
            packet=packet,
            source=source,
            current_time=received_at,
        )

        if (
            reply is None
            or reply.id != request.id
            or reply.sequence != request.sequence
        ):
            return None

        if reply.type != icmp_socket._ICMP_ECHO_REPLY:
            # Error replies come from gateways and quote no payload.
            return reply

        if self._to_address(source) != address:
            return None

        if self._echoed_payload(icmp_socket, packet) != request.payload:
            return None

        return reply

    def _to_address(self, source: str):
        try:
            return ip_address(source.split("%", maxsplit=1)[0])

        except ValueError:
            return None

    def _echoed_payload(
        self,
        icmp_socket: ICMPv4Socket | ICMPv6Socket,
        packet: bytes,
    ) -> bytes:
        # Linux datagram sockets deliver IPv4 replies without the IP header.
        if not icmp_socket.is_privileged and PLATFORM_LINUX:
            packet = b"\x00" * icmp_socket._ICMP_HEADER_OFFSET + packet

        return packet[icmp_socket._ICMP_PAYLOAD_OFFSET:]
