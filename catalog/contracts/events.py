"""
Audit and Metric Contracts

Immutable records emitted by every layer into the observability engine.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Tuple
from enum import Enum

from .base import Timestamp


class AuditEventType(Enum):
    """Explicit audit event types."""
    SNAPSHOT = "snapshot"
    DECORATION = "decoration"
    WRITE = "write"
    QUERY = "query"
    ERROR = "error"
    SYSTEM = "system"


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable audit log entry."""
    entry_id: str
    event_type: AuditEventType
    timestamp: Timestamp
    layer: str  # Which layer generated this
    action: str
    entity_id: Optional[str] = None
    metadata: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def metadata_value(self, key: str) -> Optional[str]:
        for k, v in self.metadata:
            if k == key:
                return v
        return None


@dataclass(frozen=True)
class MetricPoint:
    """Immutable metric data point."""
    metric_name: str
    value: float
    timestamp: Timestamp
    labels: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
