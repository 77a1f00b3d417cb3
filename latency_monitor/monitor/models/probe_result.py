from enum import Enum


class ProbeResult(Enum):
    """Result of a single echo probe."""

    SUCCESS = "success"
    TIMEOUT = "timeout"
    INVALID_ADDRESS = "invalid_address"
    FAILURE = "failure"
    UNUSABLE = "unusable"
