"""
Policy Loader (``payroll_config.loader``).

Responsibility
--------------
Loads a reconciliation policy YAML file and parses it into a frozen
``payroll_config.schema.ReconciliationPolicy``.  Callers outside this
package use ``payroll_config.get_active_policy()`` instead.

Invariants enforced
-------------------
* No silent defaults for required keys: a missing key is a ``KeyError``.
* Hours are parsed as ``Decimal`` from strings or integers; floats are
  rejected so binary rounding never reaches a threshold.
* ``compute_checksum`` is deterministic for identical YAML content.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ValueError`` from ``validate_policy``.
"""

from __future__ import annotations

import hashlib
import json
import re
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from payroll_config.schema import BucketPattern, ReconciliationPolicy


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_hours(value: Any, field: str) -> Decimal:
    """Parse an hours value; strings and ints only."""
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"{field} must be a quoted decimal or an integer, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{field} is not a decimal: {value!r}") from None


def parse_bucket_patterns(raw: list[dict[str, Any]] | None) -> tuple[BucketPattern, ...]:
    return tuple(
        BucketPattern(label=str(item["label"]), pattern=str(item["pattern"]))
        for item in raw or ()
    )


def parse_policy(data: dict[str, Any], checksum: str = "") -> ReconciliationPolicy:
    """
    Parse a ``ReconciliationPolicy`` from a dict.

    Preconditions:
        - ``data`` contains ``policy_id``, ``version``, ``region_timezone``,
          ``thresholds.variance_warn_hours``,
          ``thresholds.shift_drift_warn_hours``,
          ``override_ceiling_hours`` and ``detail_limit``.
    Raises:
        KeyError: if required keys are missing.
        ValueError: if an hours value cannot be parsed.
    """
    thresholds = data["thresholds"]
    return ReconciliationPolicy(
        policy_id=str(data["policy_id"]),
        version=int(data["version"]),
        region_timezone=str(data["region_timezone"]),
        default_variance_warn_hours=parse_hours(
            thresholds["variance_warn_hours"], "thresholds.variance_warn_hours",
        ),
        default_shift_drift_warn_hours=parse_hours(
            thresholds["shift_drift_warn_hours"], "thresholds.shift_drift_warn_hours",
        ),
        override_ceiling_hours=parse_hours(
            data["override_ceiling_hours"], "override_ceiling_hours",
        ),
        detail_limit=int(data["detail_limit"]),
        bucket_patterns=parse_bucket_patterns(data.get("bucket_patterns")),
        checksum=checksum,
    )


def validate_policy(policy: ReconciliationPolicy) -> list[str]:
    """Structural checks; returns one message per problem."""
    errors: list[str] = []
    try:
        ZoneInfo(policy.region_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        errors.append(f"Unknown region_timezone {policy.region_timezone!r}")

    for name in (
        "default_variance_warn_hours",
        "default_shift_drift_warn_hours",
        "override_ceiling_hours",
    ):
        value = getattr(policy, name)
        if not value.is_finite() or value < 0:
            errors.append(f"{name} must be a non-negative number, got {value}")

    if policy.detail_limit < 1:
        errors.append(f"detail_limit must be at least 1, got {policy.detail_limit}")

    seen: set[str] = set()
    for bucket in policy.bucket_patterns:
        if not bucket.label.strip():
            errors.append("bucket_patterns entry has an empty label")
        if bucket.label in seen:
            errors.append(f"Duplicate bucket label {bucket.label!r}")
        seen.add(bucket.label)
        try:
            re.compile(bucket.pattern)
        except re.error as exc:
            errors.append(f"Bucket {bucket.label!r} pattern does not compile: {exc}")
    return errors


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
