from .models import Entry, LogLevel


class LatencySample(Entry, kw_only=True):
    host: str
    latency_ms: int
    average_latency: float
    sample_count: int
    level: LogLevel = LogLevel.INFO

class MonitorShutdown(Entry, kw_only=True):
    level: LogLevel = LogLevel.INFO

class MonitorStarted(Entry, kw_only=True):
    hosts: list[str]
    level: LogLevel = LogLevel.DEBUG

class HostRegistered(Entry, kw_only=True):
    host: str
    level: LogLevel = LogLevel.DEBUG

class HostAddressError(Entry, kw_only=True):
    host: str
    level: LogLevel = LogLevel.WARN

class ProbeTransportError(Entry, kw_only=True):
    host: str
    level: LogLevel = LogLevel.WARN

class HostDropped(Entry, kw_only=True):
    host: str
    level: LogLevel = LogLevel.ERROR

class HandleCreationError(Entry, kw_only=True):
    host: str
    level: LogLevel = LogLevel.ERROR

class MonitorError(Entry, kw_only=True):
    hosts: list[str]
    level: LogLevel = LogLevel.ERROR
