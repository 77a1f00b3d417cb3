from __future__ import annotations

from typing import Callable, Dict, List, Literal, Union

from pydantic import BaseModel, StrictBool, StrictInt, StrictStr

from .time_parser import TimeParser

PrimaryType = Union[str, int, float, bytes, bool]


DEFAULT_HOSTS = "20.236.44.162,142.250.75.142,13.226.2.72"


def parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def parse_int(value: str) -> int:
    return int(value.strip(), 0)


class Env(BaseModel):
    LATENCY_MONITOR_HOSTS: StrictStr = DEFAULT_HOSTS
    LATENCY_MONITOR_PROBE_INTERVAL: StrictStr = "500ms"
    LATENCY_MONITOR_PROBE_TIMEOUT: StrictStr = "250ms"
    LATENCY_MONITOR_INITIAL_JITTER: StrictStr = "500ms"
    LATENCY_MONITOR_ECHO_IDENTIFIER: StrictInt = 0xABCD
    LATENCY_MONITOR_ECHO_SEQUENCE: StrictInt = 0
    LATENCY_MONITOR_PRIVILEGED: StrictBool = True
    LATENCY_MONITOR_LOG_LEVEL: Literal[
        "trace", "debug", "info", "warn", "error", "critical", "fatal"
    ] = "info"
    LATENCY_MONITOR_LOG_PATH: StrictStr | None = None

    @classmethod
    def types_map(cls) -> Dict[str, Callable[[str], PrimaryType]]:
        return {
            "LATENCY_MONITOR_HOSTS": str,
            "LATENCY_MONITOR_PROBE_INTERVAL": str,
            "LATENCY_MONITOR_PROBE_TIMEOUT": str,
            "LATENCY_MONITOR_INITIAL_JITTER": str,
            "LATENCY_MONITOR_ECHO_IDENTIFIER": parse_int,
            "LATENCY_MONITOR_ECHO_SEQUENCE": parse_int,
            "LATENCY_MONITOR_PRIVILEGED": parse_bool,
            "LATENCY_MONITOR_LOG_LEVEL": str,
            "LATENCY_MONITOR_LOG_PATH": str,
        }

    @property
    def hosts(self) -> List[str]:
        return [
            host.strip()
            for host in self.LATENCY_MONITOR_HOSTS.split(",")
            if host.strip()
        ]

    def get_probe_config(self) -> dict:
        """Get the probe timing and echo settings, with durations in seconds."""
        return {
            'interval_seconds': TimeParser(self.LATENCY_MONITOR_PROBE_INTERVAL).time,
            'timeout_seconds': TimeParser(self.LATENCY_MONITOR_PROBE_TIMEOUT).time,
            'initial_jitter_seconds': TimeParser(self.LATENCY_MONITOR_INITIAL_JITTER).time,
            'identifier': self.LATENCY_MONITOR_ECHO_IDENTIFIER,
            'sequence': self.LATENCY_MONITOR_ECHO_SEQUENCE,
        }
