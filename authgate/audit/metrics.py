"""
Prometheus metrics for authentication events.
"""

import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, generate_latest

from .logger import AuditLogger, AuthEvent, AuthEventType

logger = logging.getLogger(__name__)


class MetricsAuditLogger(AuditLogger):
    """Counts audit events per type, optionally forwarding them to another logger."""

    def __init__(
        self,
        registry: Optional[CollectorRegistry] = None,
        namespace: str = "authgate",
        delegate: Optional[AuditLogger] = None,
    ):
        self.registry = registry or CollectorRegistry()
        self.metric_name = f"{namespace}_auth_events_total"
        self.delegate = delegate

        self.auth_events = Counter(
            self.metric_name,
            "Total number of authentication events",
            ["event_type"],
            registry=self.registry,
        )

    async def log(self, event: AuthEvent) -> None:
        self.auth_events.labels(event_type=event.event_type.value).inc()

        if self.delegate is not None:
            await self.delegate.log(event)

    def count(self, event_type: AuthEventType) -> float:
        """Current counter value for ``event_type``."""
        value = self.registry.get_sample_value(
            self.metric_name, {"event_type": event_type.value}
        )
        return value or 0.0

    def export(self) -> bytes:
        """Metrics in the Prometheus text exposition format."""
        return generate_latest(self.registry)

    async def close(self) -> None:
        if self.delegate is not None:
            await self.delegate.close()
