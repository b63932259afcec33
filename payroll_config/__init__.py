"""
payroll_config -- single public entrypoint for reconciliation policy.

Responsibility:
    Provides the ONLY way to obtain the reconciliation policy at runtime
    through ``get_active_policy()``: region time zone, default warning
    thresholds, override ceiling, detail-list limit and the legacy
    store-name bucket patterns.

Architecture position:
    Configuration -- sits above ``payroll_kernel`` and below
    ``payroll_services``.  Engines receive plain values from the service
    layer and MUST NEVER import from ``payroll_config``.

Failure modes:
    - ``PolicyConfigError`` -- the file is missing, is not valid YAML,
      lacks a required key, or fails validation.

Audit relevance:
    Every successful ``get_active_policy()`` call emits a
    ``PAYROLL_CONFIG_TRACE`` log entry with the policy id, version and
    checksum, tying each reconciliation run to the policy that shaped it.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from payroll_config.loader import (
    compute_checksum,
    load_yaml_file,
    parse_policy,
    validate_policy,
)
from payroll_config.schema import BucketPattern, ReconciliationPolicy
from payroll_kernel.exceptions import PolicyConfigError

_logger = logging.getLogger("payroll_kernel.config")

_DEFAULT_POLICY_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_policy(path: Path | str | None = None) -> ReconciliationPolicy:
    """Load, validate and return the reconciliation policy.

    Args:
        path: Override path to a policy YAML file.  Defaults to
            ``payroll_config/sets/default.yaml``.

    Raises:
        PolicyConfigError: if the file cannot be read, parsed or validated.
    """
    source = Path(path) if path is not None else _DEFAULT_POLICY_PATH
    try:
        data = load_yaml_file(source)
    except (OSError, yaml.YAMLError) as exc:
        raise PolicyConfigError(str(source), str(exc)) from exc
    if not isinstance(data, dict):
        raise PolicyConfigError(str(source), "top level must be a mapping")

    try:
        policy = parse_policy(data, checksum=compute_checksum(data))
    except KeyError as exc:
        raise PolicyConfigError(str(source), f"missing key {exc.args[0]!r}") from exc
    except (TypeError, ValueError) as exc:
        raise PolicyConfigError(str(source), str(exc)) from exc

    errors = validate_policy(policy)
    if errors:
        raise PolicyConfigError(str(source), "; ".join(errors))

    _logger.info(
        "PAYROLL_CONFIG_TRACE",
        extra={
            "trace_type": "PAYROLL_CONFIG_TRACE",
            "policy_id": policy.policy_id,
            "policy_version": policy.version,
            "checksum": policy.checksum,
            "region_timezone": policy.region_timezone,
            "bucket_count": len(policy.bucket_patterns),
        },
    )
    return policy


__all__ = [
    "BucketPattern",
    "ReconciliationPolicy",
    "get_active_policy",
]
