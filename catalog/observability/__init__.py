"""
Observability & Audit Layer

RESPONSIBILITY: Audit logging and metrics for every catalog layer
ALLOWED INPUTS: Audit entries and metric points from other layers
OUTPUTS: Per-layer logs, unified log, metric series, audit report

WHAT THIS LAYER MUST NOT DO:
============================
- Modify system behavior
- Filter or interpret events (only record them)
- Block or delay other layer operations

BOUNDARY ENFORCEMENT:
=====================
- Receives immutable entries (never references to mutable state)
- Provides read-only access to logs and metrics
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from enum import Enum
import itertools

from ..contracts.base import Timestamp, TimeRange
from ..contracts.events import AuditLogEntry, AuditEventType, MetricPoint


LAYERS = ('sync', 'decoration', 'writes', 'query', 'engine')


# =============================================================================
# LOG COLLECTORS (One per layer)
# =============================================================================

class LogCollector:
    """
    Append-only collector for one layer's audit entries.
    """

    def __init__(self, layer_name: str):
        self._layer_name = layer_name
        self._entries: List[AuditLogEntry] = []

    def collect(self, entry: AuditLogEntry):
        """Collect an audit entry (append-only)."""
        self._entries.append(entry)

    def get_entries(
        self,
        time_range: Optional[TimeRange] = None,
        event_type: Optional[AuditEventType] = None,
        action: Optional[str] = None
    ) -> List[AuditLogEntry]:
        """Get entries, optionally filtered."""
        entries = self._entries

        if time_range:
            entries = [e for e in entries if time_range.contains(e.timestamp)]

        if event_type:
            entries = [e for e in entries if e.event_type == event_type]

        if action:
            entries = [e for e in entries if e.action == action]

        return list(entries)

    @property
    def layer_name(self) -> str:
        return self._layer_name

    @property
    def entry_count(self) -> int:
        return len(self._entries)


# =============================================================================
# METRICS COLLECTOR
# =============================================================================

class MetricType(Enum):
    """Types of metrics collected."""
    COUNTER = "counter"
    GAUGE = "gauge"
    TIMING = "timing"


@dataclass
class MetricDefinition:
    """Definition of a metric to collect."""
    name: str
    metric_type: MetricType
    description: str
    labels: Tuple[str, ...] = field(default_factory=tuple)


DEFAULT_METRICS = (
    MetricDefinition(
        name="snapshots_received_total",
        metric_type=MetricType.COUNTER,
        description="Snapshots delivered by the remote store"
    ),
    MetricDefinition(
        name="snapshot_item_count",
        metric_type=MetricType.GAUGE,
        description="Items in the latest reshaped snapshot"
    ),
    MetricDefinition(
        name="decoration_lookups_total",
        metric_type=MetricType.COUNTER,
        description="Image lookups started"
    ),
    MetricDefinition(
        name="decoration_failures_total",
        metric_type=MetricType.COUNTER,
        description="Image lookups that raised or returned nothing"
    ),
    MetricDefinition(
        name="writes_total",
        metric_type=MetricType.COUNTER,
        description="Writes issued to the remote store",
        labels=("operation",)
    ),
    MetricDefinition(
        name="writes_rejected_total",
        metric_type=MetricType.COUNTER,
        description="Mutations rejected before or by the remote store",
        labels=("operation", "error_kind")
    ),
    MetricDefinition(
        name="write_latency_ms",
        metric_type=MetricType.TIMING,
        description="Remote write latency in milliseconds",
        labels=("operation",)
    ),
    MetricDefinition(
        name="projection_duration_ms",
        metric_type=MetricType.TIMING,
        description="Time spent projecting a view in milliseconds"
    ),
)


class MetricsCollector:
    """
    Collect metric points from all layers.

    Metrics are append-only time series data points.
    """

    def __init__(self):
        self._metrics: Dict[str, List[MetricPoint]] = {}
        self._definitions: Dict[str, MetricDefinition] = {}
        for definition in DEFAULT_METRICS:
            self.register_metric(definition)

    def register_metric(self, definition: MetricDefinition):
        """Register a new metric definition."""
        self._definitions[definition.name] = definition
        if definition.name not in self._metrics:
            self._metrics[definition.name] = []

    def record(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ):
        """Record a metric data point."""
        if metric_name not in self._metrics:
            self._metrics[metric_name] = []

        label_tuple = tuple(sorted(labels.items())) if labels else ()

        self._metrics[metric_name].append(MetricPoint(
            metric_name=metric_name,
            value=value,
            timestamp=Timestamp.now(),
            labels=label_tuple
        ))

    def get_metric(
        self,
        metric_name: str,
        time_range: Optional[TimeRange] = None
    ) -> List[MetricPoint]:
        """Get metric data points, optionally filtered by time range."""
        points = self._metrics.get(metric_name, [])

        if time_range:
            points = [p for p in points if time_range.contains(p.timestamp)]

        return list(points)

    def get_latest(self, metric_name: str) -> Optional[MetricPoint]:
        points = self._metrics.get(metric_name, [])
        return points[-1] if points else None

    def total(self, metric_name: str) -> float:
        """Sum of all recorded values (counter semantics)."""
        return sum(p.value for p in self._metrics.get(metric_name, []))

    def compute_aggregates(
        self,
        metric_name: str,
        time_range: Optional[TimeRange] = None
    ) -> Dict[str, float]:
        """Compute aggregate statistics for a metric."""
        points = self.get_metric(metric_name, time_range)

        if not points:
            return {}

        values = [p.value for p in points]

        return {
            'count': len(values),
            'sum': sum(values),
            'min': min(values),
            'max': max(values),
            'avg': sum(values) / len(values),
        }


# =============================================================================
# OBSERVABILITY ENGINE (Orchestrates all observability)
# =============================================================================

@dataclass
class ObservabilityConfig:
    """Configuration for observability engine."""
    enable_metrics: bool = True


class ObservabilityEngine:
    """
    Central Observability Engine.

    BOUNDARY ENFORCEMENT:
    - ONLY observes, never modifies
    - Provides read-only access to collected data
    """

    def __init__(self, config: Optional[ObservabilityConfig] = None):
        self._config = config or ObservabilityConfig()
        self._collectors: Dict[str, LogCollector] = {
            name: LogCollector(name) for name in LAYERS
        }
        self._metrics = MetricsCollector() if self._config.enable_metrics else None
        self._entry_sequence = itertools.count(1)

    def collect_audit(self, entry: AuditLogEntry):
        """Collect an audit log entry from any layer."""
        collector = self._collectors.get(entry.layer)
        if collector is None:
            collector = self._collectors[entry.layer] = LogCollector(entry.layer)
        collector.collect(entry)

    def log_audit(
        self,
        layer: str,
        action: str,
        event_type: AuditEventType = AuditEventType.SYSTEM,
        entity_id: Optional[str] = None,
        **metadata: object
    ) -> AuditLogEntry:
        """Helper to log an audit entry directly."""
        entry = AuditLogEntry(
            entry_id=f"audit_{next(self._entry_sequence):08d}",
            event_type=event_type,
            timestamp=Timestamp.now(),
            layer=layer,
            action=action,
            entity_id=entity_id,
            metadata=tuple((k, str(v)) for k, v in metadata.items())
        )
        self.collect_audit(entry)
        return entry

    def collect_metric(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ):
        """Collect a metric data point."""
        if self._metrics:
            self._metrics.record(metric_name, value, labels)

    def get_unified_log(
        self,
        time_range: Optional[TimeRange] = None,
        layers: Optional[List[str]] = None
    ) -> List[AuditLogEntry]:
        """Get unified log from all or specified layers, in emission order."""
        target_layers = layers or list(self._collectors.keys())

        all_entries = []
        for layer_name in target_layers:
            collector = self._collectors.get(layer_name)
            if collector:
                all_entries.extend(collector.get_entries(time_range=time_range))

        all_entries.sort(key=lambda e: e.entry_id)
        return all_entries

    def get_layer_log(
        self,
        layer_name: str,
        time_range: Optional[TimeRange] = None,
        action: Optional[str] = None
    ) -> List[AuditLogEntry]:
        """Get log for a specific layer."""
        collector = self._collectors.get(layer_name)
        if not collector:
            return []
        return collector.get_entries(time_range=time_range, action=action)

    def get_metrics(self) -> Optional[MetricsCollector]:
        """Get metrics collector (read-only access)."""
        return self._metrics

    def generate_audit_report(
        self,
        time_range: Optional[TimeRange] = None
    ) -> Dict:
        """Generate an audit summary by layer and event type."""
        entries = self.get_unified_log(time_range=time_range)

        by_layer: Dict[str, int] = {}
        by_type: Dict[str, int] = {}

        for entry in entries:
            by_layer[entry.layer] = by_layer.get(entry.layer, 0) + 1
            by_type[entry.event_type.value] = by_type.get(entry.event_type.value, 0) + 1

        return {
            'total_entries': len(entries),
            'by_layer': by_layer,
            'by_event_type': by_type,
            'time_range': {
                'start': entries[0].timestamp.to_iso() if entries else None,
                'end': entries[-1].timestamp.to_iso() if entries else None,
            },
            'generated_at': Timestamp.now().to_iso()
        }


def resolve_observability(observability: Optional[ObservabilityEngine]) -> ObservabilityEngine:
    return observability if observability is not None else ObservabilityEngine()
