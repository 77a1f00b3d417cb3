class LatencyMonitorError(Exception):
    pass


class HostAddressInvalid(LatencyMonitorError):
    def __init__(self, host: str) -> None:
        super().__init__(f"Failed to parse IP address: {host}")
        self.host = host


class TransportFailure(LatencyMonitorError):
    def __init__(self, host: str, reason: str) -> None:
        super().__init__(f"Failed to ping host: {host} - {reason}")
        self.host = host
        self.reason = reason


class HandleUnusable(TransportFailure):
    pass


class HandleCreationFailure(LatencyMonitorError):
    def __init__(self, host: str, reason: str) -> None:
        super().__init__(f"Failed to create echo transport for host: {host} - {reason}")
        self.host = host
        self.reason = reason


class MonitorStartupError(LatencyMonitorError):
    pass
