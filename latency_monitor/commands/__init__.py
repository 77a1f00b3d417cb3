from .root import latency_monitor as latency_monitor
from .root import run as run
