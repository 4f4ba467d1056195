"""
Prometheus metrics for box uploads.

Low-cardinality only: no key, bucket or part number labels.
"""

from __future__ import annotations

from prometheus_client import Counter
from prometheus_client.registry import CollectorRegistry

REQUIRED_METRIC_NAMES = frozenset(
    {
        "boxpublisher_upload_total",
        "boxpublisher_upload_parts_total",
        "boxpublisher_upload_part_retries_total",
        "boxpublisher_upload_bytes_total",
        "boxpublisher_upload_failures_total",
    }
)


class UploadMetrics:
    """
    Upload counters.

    Usage:
        registry = CollectorRegistry()
        metrics = UploadMetrics(registry=registry)
        uploader = BoxUploader(store, metrics=metrics)
        # generate_latest(registry) -> bytes for scraping or a push gateway
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """
        Initialize upload counters.

        Args:
            registry: Prometheus CollectorRegistry. If None, a private one is created.
        """
        self._registry = registry or CollectorRegistry()

        self._uploads = Counter(
            "boxpublisher_upload",
            "Completed box uploads by mode",
            ["mode"],
            registry=self._registry,
        )
        self._parts = Counter(
            "boxpublisher_upload_parts",
            "Multipart parts acknowledged by the store",
            registry=self._registry,
        )
        self._part_retries = Counter(
            "boxpublisher_upload_part_retries",
            "Multipart part attempts that failed and were retried",
            registry=self._registry,
        )
        self._bytes = Counter(
            "boxpublisher_upload_bytes",
            "Bytes acknowledged by the store",
            registry=self._registry,
        )
        self._failures = Counter(
            "boxpublisher_upload_failures",
            "Box uploads that failed",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record_part(self, size: int) -> None:
        self._parts.inc()
        self._bytes.inc(size)

    def record_retry(self) -> None:
        self._part_retries.inc()

    def record_single_put(self, size: int) -> None:
        self._bytes.inc(size)
        self._uploads.labels(mode="single").inc()

    def record_multipart_complete(self) -> None:
        self._uploads.labels(mode="multipart").inc()

    def record_failure(self) -> None:
        self._failures.inc()
