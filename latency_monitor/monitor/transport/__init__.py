from .base import EchoTransport as EchoTransport
from .icmp import (
    IcmpHandle as IcmpHandle,
    IcmpTransport as IcmpTransport,
)
