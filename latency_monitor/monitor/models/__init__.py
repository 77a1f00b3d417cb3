from .exit_reason import MonitorExitReason as MonitorExitReason
from .probe_config import ProbeConfig as ProbeConfig
from .probe_outcome import ProbeOutcome as ProbeOutcome
from .probe_result import ProbeResult as ProbeResult
from .probe_unit import (
    ProbeUnit as ProbeUnit,
    ProbeUnitStatus as ProbeUnitStatus,
)
