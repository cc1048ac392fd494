"""
Prometheus metrics for manifest store operations.

Counters carry no labels: model names are unbounded and would explode
cardinality.
"""

from __future__ import annotations

from prometheus_client import Counter
from prometheus_client.registry import CollectorRegistry


class StoreMetrics:
    """
    Prometheus counters updated by ManifestStore.

    Usage:
        registry = CollectorRegistry()
        metrics = StoreMetrics(registry=registry)
        store = ManifestStore(config, metrics=metrics)
        # generate_latest(registry) -> bytes for /metrics endpoint
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """
        Initialize counters.

        Args:
            registry: Prometheus CollectorRegistry. If None, a private registry is used.
        """
        self._registry = registry or CollectorRegistry()

        self.manifests_read = Counter(
            "modelrepo_manifests_read",
            "Manifests read and decoded from disk",
            registry=self._registry,
        )
        self.manifests_written = Counter(
            "modelrepo_manifests_written",
            "Manifests written to disk",
            registry=self._registry,
        )
        self.manifests_removed = Counter(
            "modelrepo_manifests_removed",
            "Manifest files removed",
            registry=self._registry,
        )
        self.manifests_skipped = Counter(
            "modelrepo_manifests_skipped",
            "Invalid or unreadable manifests skipped by tolerant listing",
            registry=self._registry,
        )
        self.layers_removed = Counter(
            "modelrepo_layers_removed",
            "Layer blobs removed",
            registry=self._registry,
        )
        self.layers_missing = Counter(
            "modelrepo_layers_missing",
            "Layer blobs already absent at removal time",
            registry=self._registry,
        )
        self.layers_retained = Counter(
            "modelrepo_layers_retained",
            "Layer blobs kept because another manifest references them",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry


# Counters are exported with _total suffix by prometheus_client
METRIC_NAMES: frozenset[str] = frozenset(
    {
        "modelrepo_manifests_read_total",
        "modelrepo_manifests_written_total",
        "modelrepo_manifests_removed_total",
        "modelrepo_manifests_skipped_total",
        "modelrepo_layers_removed_total",
        "modelrepo_layers_missing_total",
        "modelrepo_layers_retained_total",
    }
)
