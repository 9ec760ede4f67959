"""Monitor: periodic fleet health sampling and bounded history."""

from agentledger.monitor.history import FileHistoryStore
from agentledger.monitor.history import HistoryStore
from agentledger.monitor.history import RedisHistoryStore
from agentledger.monitor.history import window_stats
from agentledger.monitor.sampler import HealthMonitor
from agentledger.monitor.schemas import HealthSample
from agentledger.monitor.schemas import HealthWarning
from agentledger.monitor.schemas import HealthWarningKind
from agentledger.monitor.schemas import MonitoringStats
from agentledger.monitor.schemas import SampleReport
from agentledger.monitor.schemas import WindowStats

__all__ = [
    "FileHistoryStore",
    "HealthMonitor",
    "HealthSample",
    "HealthWarning",
    "HealthWarningKind",
    "HistoryStore",
    "MonitoringStats",
    "RedisHistoryStore",
    "SampleReport",
    "WindowStats",
    "window_stats",
]
