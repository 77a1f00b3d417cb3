from .exceptions import (
    HandleCreationFailure as HandleCreationFailure,
    HandleUnusable as HandleUnusable,
    HostAddressInvalid as HostAddressInvalid,
    LatencyMonitorError as LatencyMonitorError,
    MonitorStartupError as MonitorStartupError,
    TransportFailure as TransportFailure,
)
from .latency_monitor import LatencyMonitor as LatencyMonitor
from .latency_stats import LatencyStats as LatencyStats
from .models import (
    MonitorExitReason as MonitorExitReason,
    ProbeConfig as ProbeConfig,
    ProbeOutcome as ProbeOutcome,
    ProbeResult as ProbeResult,
    ProbeUnit as ProbeUnit,
    ProbeUnitStatus as ProbeUnitStatus,
)
from .probe import EchoProbe as EchoProbe
from .scheduler import ProbeScheduler as ProbeScheduler
from .transport import (
    EchoTransport as EchoTransport,
    IcmpHandle as IcmpHandle,
    IcmpTransport as IcmpTransport,
)
