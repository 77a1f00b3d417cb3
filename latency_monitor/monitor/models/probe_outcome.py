from dataclasses import dataclass
from typing import Any

from .probe_result import ProbeResult


@dataclass(slots=True)
class ProbeOutcome:
    host: str
    handle: Any
    result: ProbeResult
    latency_ms: int | None = None
    message: str = ""

    @property
    def sampled(self) -> bool:
        return self.result == ProbeResult.SUCCESS and self.latency_ms is not None
