"""
Tests for the audit log and metrics collector.
"""

import pytest

from procgen.contracts.events import AuditEventType
from procgen.observability import AuditLog, MetricDefinition, MetricType, MetricsCollector


class TestAuditLog:

    def test_record_and_filter(self):
        log = AuditLog("ranking")
        entry = log.record(AuditEventType.RANKING, "pool_ranked", entity_id="s", metadata=(("matched", 3),))
        log.record(AuditEventType.FALLBACK, "keywords_unmatched")

        assert entry.layer == "ranking"
        assert entry.entry_id.startswith("audit_")
        assert entry.metadata == (("matched", "3"),)
        assert log.entry_count == 2
        assert log.layer_name == "ranking"
        assert log.get_entries(AuditEventType.RANKING) == [entry]

    def test_entries_are_copies(self):
        log = AuditLog()
        log.record(AuditEventType.GENERATION, "npcs_generated")
        log.get_entries().clear()
        assert log.entry_count == 1

    def test_entry_ids_unique(self):
        log = AuditLog()
        ids = {log.record(AuditEventType.GENERATION, "same").entry_id for _ in range(5)}
        assert len(ids) == 5

    def test_disabled(self):
        log = AuditLog(enabled=False)
        assert log.record(AuditEventType.GENERATION, "npcs_generated") is None
        assert log.get_entries() == []


class TestMetricsCollector:

    def test_default_definitions(self):
        metrics = MetricsCollector()
        assert metrics.get_definition("pool_size").metric_type is MetricType.GAUGE
        assert metrics.get_definition("generation_duration_ms").metric_type is MetricType.TIMING
        assert set(metrics.get_all_metrics()) >= {
            "generation_requests_total", "items_generated_total", "pool_size",
            "fallbacks_total", "generation_duration_ms",
        }

    def test_record_and_aggregate(self):
        metrics = MetricsCollector()
        for value in (2.0, 4.0, 6.0):
            metrics.record("pool_size", value, {"generator": "places"})

        assert metrics.get_latest("pool_size").value == 6.0
        assert metrics.get_latest("pool_size").labels == (("generator", "places"),)
        aggregates = metrics.compute_aggregates("pool_size")
        assert aggregates["count"] == 3
        assert aggregates["avg"] == pytest.approx(4.0)
        assert aggregates["min"] == 2.0 and aggregates["max"] == 6.0

    def test_custom_metric(self):
        metrics = MetricsCollector()
        metrics.register_metric(MetricDefinition("draws", MetricType.COUNTER, "RNG draws"))
        metrics.record("draws", 14.0)
        assert len(metrics.get_metric("draws")) == 1

    def test_unknown_metric_is_empty(self):
        metrics = MetricsCollector()
        assert metrics.get_latest("nope") is None
        assert metrics.compute_aggregates("nope") == {}

    def test_disabled(self):
        metrics = MetricsCollector(enabled=False)
        metrics.record("pool_size", 1.0)
        assert metrics.get_metric("pool_size") == []
