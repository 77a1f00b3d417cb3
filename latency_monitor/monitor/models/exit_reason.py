from enum import Enum


class MonitorExitReason(Enum):
    SHUTDOWN = "shutdown"
    EXHAUSTED = "exhausted"
