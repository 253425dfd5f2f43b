"""
Observability Tests

The engine only records: per-layer audit logs, a unified log in emission
order, and append-only metric series.
"""

from catalog.contracts.base import TimeRange, Timestamp
from catalog.contracts.events import AuditEventType
from catalog.observability import (
    LAYERS, LogCollector, MetricsCollector, ObservabilityConfig, ObservabilityEngine
)


class TestAuditLog:

    def test_entries_routed_per_layer(self):
        engine = ObservabilityEngine()
        engine.log_audit('sync', "snapshot", event_type=AuditEventType.SNAPSHOT, item_count=3)
        engine.log_audit('writes', "create_item", event_type=AuditEventType.WRITE, entity_id="m1")

        assert [e.action for e in engine.get_layer_log('sync')] == ["snapshot"]
        assert engine.get_layer_log('writes')[0].entity_id == "m1"
        assert engine.get_layer_log('sync')[0].metadata_value("item_count") == "3"

    def test_unified_log_in_emission_order(self):
        engine = ObservabilityEngine()
        for layer in ('query', 'sync', 'writes', 'sync'):
            engine.log_audit(layer, "tick")
        assert [e.layer for e in engine.get_unified_log()] == ['query', 'sync', 'writes', 'sync']

    def test_unknown_layer_gets_own_collector(self):
        engine = ObservabilityEngine()
        engine.log_audit('custom', "hello")
        assert len(engine.get_layer_log('custom')) == 1
        assert engine.get_layer_log('nonexistent') == []

    def test_action_filter(self):
        engine = ObservabilityEngine()
        engine.log_audit('writes', "create_item")
        engine.log_audit('writes', "create_item_rejected", event_type=AuditEventType.ERROR)
        assert len(engine.get_layer_log('writes', action="create_item_rejected")) == 1

    def test_report(self):
        engine = ObservabilityEngine()
        engine.log_audit('sync', "snapshot", event_type=AuditEventType.SNAPSHOT)
        engine.log_audit('writes', "delete_item_rejected", event_type=AuditEventType.ERROR)

        report = engine.generate_audit_report()
        assert report['total_entries'] == 2
        assert report['by_layer'] == {'sync': 1, 'writes': 1}
        assert report['by_event_type'] == {'snapshot': 1, 'error': 1}

    def test_default_layers_present(self):
        engine = ObservabilityEngine()
        for layer in LAYERS:
            assert engine.get_layer_log(layer) == []


class TestCollectors:

    def test_time_range_filter(self):
        collector = LogCollector('sync')
        engine = ObservabilityEngine()
        collector.collect(engine.log_audit('sync', "a"))

        past = TimeRange(start=Timestamp.from_millis(0), end=Timestamp.from_millis(1000))
        assert collector.get_entries(time_range=past) == []
        assert collector.entry_count == 1

    def test_metric_aggregates(self):
        metrics = MetricsCollector()
        for value in (1, 2, 3):
            metrics.record("write_latency_ms", value, {'operation': "submit_rating"})

        aggregates = metrics.compute_aggregates("write_latency_ms")
        assert aggregates == {'count': 3, 'sum': 6, 'min': 1, 'max': 3, 'avg': 2.0}
        assert metrics.get_latest("write_latency_ms").labels == (('operation', "submit_rating"),)
        assert metrics.compute_aggregates("snapshots_received_total") == {}

    def test_metrics_can_be_disabled(self):
        engine = ObservabilityEngine(ObservabilityConfig(enable_metrics=False))
        engine.collect_metric("writes_total", 1)
        assert engine.get_metrics() is None
