# ====================================================================================================
# Summary comparison
#
# Compares the previously published Dashboard Summary with the one a run is about to publish, so a
# run log shows how far the totals moved (a sudden drop usually means an exclusion rule or a bad
# import, not a real business change).
# - Inputs: two summary dicts (the "before" may be None on a first run)
# - Outputs: `comparison` dict (written to comparison.json) and `comparison_df` (comparison.csv)
# ====================================================================================================

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import pandas as pd

COMPARE_FIELDS = ["sales", "cost", "hours", "count"]
TOTAL_FIELDS = {"sales": "totalSales", "cost": "totalCost", "hours": "totalHours"}


def _delta(before: Optional[float], after: Optional[float]) -> Optional[float]:
    if before is None or after is None:
        return None
    return after - before


def _status_values(summary: Optional[dict], status: str) -> Dict[str, Optional[float]]:
    bucket = ((summary or {}).get("statusGroups") or {}).get(status)
    if bucket is None:
        return {name: None for name in COMPARE_FIELDS}
    return {name: bucket.get(name) for name in COMPARE_FIELDS}


def compare_summaries(
    before: Optional[dict], after: dict
) -> Tuple[Dict[str, object], pd.DataFrame]:
    rows: List[dict] = []

    total_row: dict = {"scope": "total"}
    for name, key in TOTAL_FIELDS.items():
        base = before.get(key) if before else None
        new = after.get(key)
        total_row[f"before_{name}"] = base
        total_row[f"after_{name}"] = new
        total_row[f"delta_{name}"] = _delta(base, new)
    rows.append(total_row)

    statuses = set((after.get("statusGroups") or {}).keys())
    if before:
        statuses |= set((before.get("statusGroups") or {}).keys())

    # Stable order so reruns produce identical comparison files.
    for status in sorted(statuses):
        base_values = _status_values(before, status)
        after_values = _status_values(after, status)
        row: dict = {"scope": f"status:{status}"}
        for name in COMPARE_FIELDS:
            row[f"before_{name}"] = base_values[name]
            row[f"after_{name}"] = after_values[name]
            row[f"delta_{name}"] = _delta(base_values[name], after_values[name])
        rows.append(row)

    before_contractors = set(((before or {}).get("contractors") or {}).keys())
    after_contractors = set((after.get("contractors") or {}).keys())

    comparison_df = pd.DataFrame(rows)
    comparison = {
        "before_last_updated": (before or {}).get("lastUpdated"),
        "after_last_updated": after.get("lastUpdated"),
        "contractors_added": sorted(after_contractors - before_contractors) if before else [],
        "contractors_removed": sorted(before_contractors - after_contractors),
        "rows": rows,
    }
    return comparison, comparison_df
