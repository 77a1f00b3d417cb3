from dataclasses import dataclass
from enum import Enum
from typing import Any


class ProbeUnitStatus(Enum):
    PENDING = "pending"
    PROBING = "probing"
    RESOLVED = "resolved"


@dataclass(slots=True)
class ProbeUnit:
    host: str
    handle: Any
    delay_seconds: float
    status: ProbeUnitStatus = ProbeUnitStatus.PENDING
