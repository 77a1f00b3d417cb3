from .env import Env as Env
from .monitor import (
    LatencyMonitor as LatencyMonitor,
    LatencyStats as LatencyStats,
    ProbeConfig as ProbeConfig,
    ProbeScheduler as ProbeScheduler,
)
