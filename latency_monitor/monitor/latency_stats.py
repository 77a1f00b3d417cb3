from dataclasses import dataclass


@dataclass(slots=True)
class LatencyStats:
    """Running latency statistics for one host, in milliseconds."""

    sample_count: int = 0
    cumulative_latency: int = 0
    average_latency: float = 0.0

    def update(self, latency_ms: int) -> None:
        self.sample_count += 1
        self.cumulative_latency += latency_ms
        self.average_latency = self.cumulative_latency / self.sample_count
