from dataclasses import dataclass


@dataclass(slots=True)
class ProbeConfig:
    """Timing and echo settings shared by every probe cycle."""

    interval_seconds: float = 0.5
    timeout_seconds: float = 0.25
    initial_jitter_seconds: float = 0.5
    identifier: int = 0xABCD
    sequence: int = 0
