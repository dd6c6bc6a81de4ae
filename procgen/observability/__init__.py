"""
Observability & Audit Layer

RESPONSIBILITY: Audit trail and metrics for engine activity
ALLOWED INPUTS: Actions reported by the engine after each step
OUTPUTS: AuditLogEntry lists, MetricPoint series, aggregates

WHAT THIS LAYER MUST NOT DO:
============================
- Modify generation behavior
- Feed anything back into a response (wall-clock data would break
  byte-identical replays)
- Filter or interpret events (only record them)

BOUNDARY ENFORCEMENT:
=====================
- Append-only collectors
- Readers always receive copies
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from enum import Enum
import hashlib

from ..contracts.base import Timestamp
from ..contracts.events import AuditLogEntry, AuditEventType, MetricPoint


@dataclass
class ObservabilityConfig:
    """Configuration for audit and metrics collection."""
    audit_enabled: bool = True
    metrics_enabled: bool = True


# =============================================================================
# AUDIT LOG
# =============================================================================

class AuditLog:
    """
    Append-only audit log for one engine instance.

    Entries are immutable; get_entries() never exposes the backing list.
    """

    def __init__(self, layer_name: str = "engine", enabled: bool = True):
        self._layer_name = layer_name
        self._enabled = enabled
        self._entries: List[AuditLogEntry] = []
        self._sequence: int = 0

    def record(
        self,
        event_type: AuditEventType,
        action: str,
        entity_id: Optional[str] = None,
        metadata: Tuple[Tuple[str, str], ...] = ()
    ) -> Optional[AuditLogEntry]:
        """Append an entry; returns it, or None when auditing is disabled."""
        if not self._enabled:
            return None

        now = Timestamp.now()
        entry_hash = hashlib.sha256(
            f"{self._layer_name}_{action}|{self._sequence}|{now.value.timestamp()}".encode()
        ).hexdigest()[:16]

        entry = AuditLogEntry(
            entry_id=f"audit_{entry_hash}",
            event_type=event_type,
            timestamp=now,
            layer=self._layer_name,
            action=action,
            entity_id=entity_id,
            metadata=tuple((k, str(v)) for k, v in metadata)
        )
        self._entries.append(entry)
        self._sequence += 1
        return entry

    def get_entries(self, event_type: Optional[AuditEventType] = None) -> List[AuditLogEntry]:
        """Get entries, optionally filtered by type."""
        if event_type is None:
            return list(self._entries)
        return [e for e in self._entries if e.event_type == event_type]

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


class MetricsCollector:
    """
    Collect metrics from engine runs.

    Metrics are append-only series of data points.
    """

    def __init__(self, enabled: bool = True):
        self._enabled = enabled
        self._metrics: Dict[str, List[MetricPoint]] = {}
        self._definitions: Dict[str, MetricDefinition] = {}
        self._register_default_metrics()

    def _register_default_metrics(self):
        defaults = [
            MetricDefinition(
                name="generation_requests_total",
                metric_type=MetricType.COUNTER,
                description="Generation requests served",
                labels=("generator",)
            ),
            MetricDefinition(
                name="items_generated_total",
                metric_type=MetricType.COUNTER,
                description="Items returned across all requests",
                labels=("generator",)
            ),
            MetricDefinition(
                name="pool_size",
                metric_type=MetricType.GAUGE,
                description="Candidates left after dedupe and scope filtering",
                labels=("generator",)
            ),
            MetricDefinition(
                name="fallbacks_total",
                metric_type=MetricType.COUNTER,
                description="Requests served through a fallback path",
                labels=("generator", "reason")
            ),
            MetricDefinition(
                name="generation_duration_ms",
                metric_type=MetricType.TIMING,
                description="Wall-clock time of one generation request",
                labels=("generator",)
            ),
        ]
        for definition in defaults:
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
        if not self._enabled:
            return
        if metric_name not in self._metrics:
            self._metrics[metric_name] = []

        label_tuple = tuple(sorted(labels.items())) if labels else ()
        self._metrics[metric_name].append(MetricPoint(
            metric_name=metric_name,
            value=value,
            timestamp=Timestamp.now(),
            labels=label_tuple
        ))

    def get_metric(self, metric_name: str) -> List[MetricPoint]:
        return list(self._metrics.get(metric_name, []))

    def get_latest(self, metric_name: str) -> Optional[MetricPoint]:
        points = self._metrics.get(metric_name, [])
        return points[-1] if points else None

    def get_definition(self, metric_name: str) -> Optional[MetricDefinition]:
        return self._definitions.get(metric_name)

    def get_all_metrics(self) -> Dict[str, List[MetricPoint]]:
        """Get all metrics (copy)."""
        return {k: list(v) for k, v in self._metrics.items()}

    def compute_aggregates(self, metric_name: str) -> Dict[str, float]:
        """Compute aggregate statistics for a metric."""
        values = [p.value for p in self._metrics.get(metric_name, [])]
        if not values:
            return {}
        return {
            'count': len(values),
            'sum': sum(values),
            'min': min(values),
            'max': max(values),
            'avg': sum(values) / len(values),
        }
