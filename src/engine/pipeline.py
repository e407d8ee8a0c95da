from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional

from .aggregate import ProjectAggregate, build_summary
from .config import SummaryConfig
from .exclusion import ExclusionFilter
from .records import LineItem, find_duplicate_imports
from .resolver import ConflictDecision, IdentityResolver

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    summary: dict
    aggregates: List[ProjectAggregate] = field(default_factory=list)
    conflicts: List[ConflictDecision] = field(default_factory=list)
    duplicates: List[dict] = field(default_factory=list)
    excluded_counts: Dict[str, int] = field(default_factory=dict)
    stats: Dict[str, int] = field(default_factory=dict)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def run_pipeline(
    records: Iterable[Mapping[str, object]],
    config: Optional[SummaryConfig] = None,
    generated_at: Optional[str] = None,
) -> PipelineResult:
    """Turn a snapshot of raw store records into one Dashboard Summary.

    No I/O happens here. The same records, config and `generated_at` always give the
    same summary, which is what makes a rerun safe to publish over the previous one.
    """
    config = config or SummaryConfig()
    items = [LineItem.from_record(record) for record in records]

    kept, excluded_counts = ExclusionFilter(config).split(items)
    logger.info(
        "Exclusion filter kept %s of %s line items (%s)",
        len(kept),
        len(items),
        ", ".join(f"{k}={v}" for k, v in sorted(excluded_counts.items())) or "none excluded",
    )

    duplicates = find_duplicate_imports(kept)
    if duplicates:
        logger.warning("Found %s groups of line items imported more than once.", len(duplicates))

    unkeyed = sum(1 for item in kept if not item.identifier)
    if unkeyed:
        logger.warning("%s line items have neither project number nor name.", unkeyed)

    resolution = IdentityResolver(config.priority_statuses).resolve(kept)
    summary, aggregates = build_summary(
        resolution.items, config, generated_at=generated_at or utc_timestamp()
    )

    stats = {
        "records_read": len(items),
        "records_excluded": len(items) - len(kept),
        "records_reportable": len(kept),
        "records_resolved": len(resolution.items),
        "records_dropped_by_conflicts": len(kept) - len(resolution.items),
        "competing_claims": len(resolution.conflicts),
        "project_aggregates": len(aggregates),
    }
    logger.info(
        "Resolved %s competing claims; %s project aggregates from %s line items.",
        stats["competing_claims"],
        stats["project_aggregates"],
        stats["records_resolved"],
    )

    return PipelineResult(
        summary=summary,
        aggregates=aggregates,
        conflicts=resolution.conflicts,
        duplicates=duplicates,
        excluded_counts=excluded_counts,
        stats=stats,
    )


def summary_to_json(summary: dict) -> str:
    return json.dumps(summary, indent=2, sort_keys=True)
