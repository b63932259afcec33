"""
Reconciliation policy schema (``payroll_config.schema``).

Frozen dataclass describing one reconciliation policy file.  Every field
is required in the source YAML except where a default is shown; the
loader never invents values for missing required keys.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class BucketPattern:
    """Legacy store-name pattern for a staffing bucket."""

    label: str
    pattern: str


@dataclass(frozen=True)
class ReconciliationPolicy:
    """Runtime policy for payroll reconciliation runs."""

    policy_id: str
    version: int
    region_timezone: str
    default_variance_warn_hours: Decimal
    default_shift_drift_warn_hours: Decimal
    override_ceiling_hours: Decimal
    detail_limit: int
    bucket_patterns: tuple[BucketPattern, ...] = ()
    checksum: str = ""

    @property
    def bucket_pattern_pairs(self) -> tuple[tuple[str, str], ...]:
        return tuple((p.label, p.pattern) for p in self.bucket_patterns)
