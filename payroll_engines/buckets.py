"""
payroll_engines.buckets -- Store staffing-bucket classification.

Responsibility:
    Map a store id to an optional staffing bucket label (a location tier)
    used only by the cross-store staffing rollup.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - A bucket label stored on the ``Store`` row always wins.
    - Name-pattern matching is a legacy fallback for stores without a
      stored label; the first configured pattern that matches wins.
    - A store matching nothing has no bucket and counts only in totals.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from payroll_kernel.domain.records import Store
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.buckets")

DEFAULT_BUCKET_PATTERNS: tuple[tuple[str, str], ...] = (
    ("lv1", r"\blv\s*1\b"),
    ("lv2", r"\blv\s*2\b"),
)


class StoreBucketClassifier:
    """Callable ``store_id -> bucket label | None`` over a fixed store set."""

    def __init__(
        self,
        stores: Iterable[Store],
        patterns: Sequence[tuple[str, str]] = DEFAULT_BUCKET_PATTERNS,
    ):
        self._patterns = tuple(
            (label, re.compile(pattern, re.IGNORECASE)) for label, pattern in patterns
        )
        labels = [label for label, _ in self._patterns]
        self._by_store: dict[str, str | None] = {}
        for store in stores:
            bucket = self._classify_store(store)
            self._by_store[store.store_id] = bucket
            if bucket is not None and bucket not in labels:
                labels.append(bucket)
        self._labels = tuple(labels)

    @property
    def bucket_labels(self) -> tuple[str, ...]:
        """Configured labels first, then any stored labels not configured."""
        return self._labels

    def classify_name(self, name: str | None) -> str | None:
        text = (name or "").lower()
        for label, pattern in self._patterns:
            if pattern.search(text):
                return label
        return None

    def _classify_store(self, store: Store) -> str | None:
        explicit = (store.bucket or "").strip()
        if explicit:
            return explicit
        legacy = self.classify_name(store.name)
        if legacy is not None:
            logger.debug(
                "store_bucket_from_name",
                extra={"store_id": store.store_id, "bucket": legacy},
            )
        return legacy

    def __call__(self, store_id: str) -> str | None:
        return self._by_store.get(store_id)
