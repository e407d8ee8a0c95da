from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from .config import SummaryConfig
from .records import LineItem


def _lowered(values: Iterable[str]) -> Tuple[str, ...]:
    return tuple(v.strip().lower() for v in values if v and v.strip())


class ExclusionFilter:
    """Decides whether a line item is reportable.

    The denylists come from `SummaryConfig`; `reason()` returns the first rule that
    matches so callers can count exclusions per rule.
    """

    def __init__(self, config: Optional[SummaryConfig] = None):
        config = config or SummaryConfig()
        self.statuses = set(_lowered(config.excluded_statuses))
        self.customer_substrings = _lowered(config.excluded_customer_substrings)
        self.project_names = set(_lowered(config.excluded_project_names))
        self.project_name_markers = _lowered(config.excluded_project_name_markers)
        self.project_numbers = set(_lowered(config.excluded_project_numbers))
        self.estimators = set(_lowered(config.excluded_estimators))
        self.required_fields = tuple(config.required_fields)

    def reason(self, item: LineItem) -> Optional[str]:
        if item.archived:
            return "archived"
        if item.status.lower() in self.statuses:
            return "status"

        customer = item.customer.lower()
        if any(token in customer for token in self.customer_substrings):
            return "customer"

        name = item.project_name.lower()
        if name in self.project_names or any(m in name for m in self.project_name_markers):
            return "project_name"

        if item.project_number.lower() in self.project_numbers:
            return "project_number"
        if item.estimator.lower() in self.estimators:
            return "estimator"

        for field_name in self.required_fields:
            if not getattr(item, field_name):
                return f"missing_{field_name}"
        return None

    def is_excluded(self, item: LineItem) -> bool:
        return self.reason(item) is not None

    def split(self, items: Iterable[LineItem]) -> Tuple[List[LineItem], Dict[str, int]]:
        kept: List[LineItem] = []
        excluded: Dict[str, int] = {}
        for item in items:
            why = self.reason(item)
            if why is None:
                kept.append(item)
            else:
                excluded[why] = excluded.get(why, 0) + 1
        return kept, excluded
