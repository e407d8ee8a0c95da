# ====================================================================================================
# Summary configuration
#
# Everything that is policy rather than algorithm lives here: the denylists used by the exclusion
# filter, the statuses that win a competing claim outright, the category-hour rules, and the
# publisher / pagination settings. The engine receives a `SummaryConfig` and never hard-codes these.
#
# Sources, lowest to highest precedence:
# - `SummaryConfig()` defaults (the production denylists)
# - a YAML file (`config/summary.yml`), loaded with `load_config(...)`
# - explicit overrides passed to `config_from_overrides(...)`
# ====================================================================================================

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml


# ----------------------------------------------------------------------------------------------------
# SummaryConfig
# Purpose: Single, immutable configuration object for one aggregation run.
# Tuple fields hold case-insensitive tokens unless noted; YAML lists are converted on load.
# ----------------------------------------------------------------------------------------------------
@dataclass(frozen=True)
class SummaryConfig:
    # Exclusion filter (lowercased comparisons).
    excluded_statuses: Tuple[str, ...] = ("invitations", "to do", "todo", "to-do")
    excluded_customer_substrings: Tuple[str, ...] = ("sop inc",)
    excluded_project_names: Tuple[str, ...] = (
        "pmc operations",
        "pmc shop time",
        "pmc test project",
        "alexander drive addition latest",
    )
    excluded_project_name_markers: Tuple[str, ...] = ("sandbox", "raymond king")
    excluded_project_numbers: Tuple[str, ...] = ("701 poplar church rd",)
    excluded_estimators: Tuple[str, ...] = ()
    required_fields: Tuple[str, ...] = ()

    # Identity resolution: any of these statuses wins a competing claim regardless of recency.
    priority_statuses: Tuple[str, ...] = ("Accepted", "In Progress", "Complete")

    # Category-hour rollups.
    labor_status: str = "Bid Submitted"
    pm_group_prefixes: Tuple[str, ...] = ("pm",)

    # Summary publisher.
    publish_max_attempts: int = 3
    publish_backoff_seconds: float = 2.0

    # Store pagination (sequential pages, fixed delay between them).
    page_size: int = 100
    page_delay_seconds: float = 0.5


CONFIG_KEYS = tuple(SummaryConfig.__dataclass_fields__.keys())  # pylint: disable=no-member
TUPLE_KEYS = {key for key, value in asdict(SummaryConfig()).items() if isinstance(value, tuple)}
REQUIRABLE_FIELDS = {"customer", "project_number", "project_name", "status", "estimator", "pmc_group"}
POSITIVE_INT_KEYS = {"publish_max_attempts", "page_size"}


def _validate_type(key: str, value: Any, expected: Any) -> Any:
    if isinstance(expected, tuple):
        if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
            raise ValueError(f"Config '{key}' must be a list of strings.")
        return tuple(value)
    if isinstance(expected, int) and not isinstance(expected, bool):
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValueError(f"Config '{key}' must be int.")
        return value
    if isinstance(expected, float):
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            raise ValueError(f"Config '{key}' must be float.")
        return float(value)
    if isinstance(expected, str):
        if not isinstance(value, str):
            raise ValueError(f"Config '{key}' must be str.")
        return value
    return value


def config_to_dict(config: SummaryConfig) -> Dict[str, Any]:
    data = asdict(config)
    for key in TUPLE_KEYS:
        data[key] = list(data[key])
    return data


def config_from_overrides(
    overrides: Optional[Dict[str, Any]],
    base: Optional[SummaryConfig] = None,
) -> SummaryConfig:
    base = base or SummaryConfig()
    if not overrides:
        return base

    unknown = [key for key in overrides if key not in CONFIG_KEYS]
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    merged = asdict(base)
    for key, value in overrides.items():
        merged[key] = _validate_type(key, value, merged[key])

    for key in POSITIVE_INT_KEYS:
        if merged[key] < 1:
            raise ValueError(f"{key} must be an int >= 1.")
    for key in ("publish_backoff_seconds", "page_delay_seconds"):
        if merged[key] < 0:
            raise ValueError(f"{key} must be >= 0.")
    bad_required = [name for name in merged["required_fields"] if name not in REQUIRABLE_FIELDS]
    if bad_required:
        raise ValueError(f"Unsupported required_fields: {', '.join(sorted(bad_required))}")

    return SummaryConfig(**merged)


def load_config(path: Optional[Path]) -> SummaryConfig:
    """Load a YAML config file; a missing path means the built-in defaults."""
    if path is None or not Path(path).exists():
        return SummaryConfig()
    with Path(path).open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping.")
    return config_from_overrides(data)
