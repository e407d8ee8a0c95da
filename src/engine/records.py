from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Tuple

from .values import parse_boolean, parse_date, parse_money


# Raw store keys per field; the first non-empty value wins.
FIELD_SOURCES: Dict[str, Tuple[str, ...]] = {
    "doc_id": ("id", "docId"),
    "customer": ("customer",),
    "project_number": ("projectNumber",),
    "project_name": ("projectName",),
    "status": ("status",),
    "pmc_group": ("pmcGroup", "costCategory"),
    "cost_item": ("costitems", "costItem"),
    "estimator": ("estimator",),
    "sales": ("sales",),
    "cost": ("cost",),
    "hours": ("hours",),
    "date_created": ("dateCreated",),
    "date_updated": ("dateUpdated",),
    "archived": ("projectArchived", "archived"),
}


def _text(value: object) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def _first(record: Mapping[str, object], keys: Tuple[str, ...]) -> object:
    for key in keys:
        value = record.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


@dataclass(frozen=True)
class LineItem:
    """One cost-category row of a project, with every raw field already parsed."""

    customer: str
    project_number: str
    project_name: str
    status: str
    pmc_group: str
    cost_item: str
    estimator: str
    sales: float
    cost: float
    hours: float
    date_created: Optional[datetime]
    date_updated: Optional[datetime]
    archived: bool
    doc_id: str = ""

    @classmethod
    def from_record(cls, record: Mapping[str, object]) -> "LineItem":
        def pick(field: str) -> object:
            return _first(record, FIELD_SOURCES[field])

        return cls(
            customer=_text(pick("customer")),
            project_number=_text(pick("project_number")),
            project_name=_text(pick("project_name")),
            status=_text(pick("status")),
            pmc_group=_text(pick("pmc_group")),
            cost_item=_text(pick("cost_item")),
            estimator=_text(pick("estimator")),
            sales=parse_money(pick("sales")),
            cost=parse_money(pick("cost")),
            hours=parse_money(pick("hours")),
            date_created=parse_date(pick("date_created")),
            date_updated=parse_date(pick("date_updated")),
            archived=parse_boolean(pick("archived")),
            doc_id=_text(pick("doc_id")),
        )

    @property
    def identifier(self) -> str:
        return self.project_number or self.project_name

    @property
    def dedupe_key(self) -> Tuple[str, str, str, str, str]:
        return (
            self.customer,
            self.project_number,
            self.project_name,
            self.pmc_group,
            self.cost_item,
        )


def find_duplicate_imports(items: List[LineItem]) -> List[dict]:
    """Report line items that share a dedupe key, i.e. the same row imported twice.

    Report only: the engine never removes these, storage cleanup is a separate job.
    """
    groups: Dict[Tuple[str, str, str, str, str], List[LineItem]] = {}
    for item in items:
        groups.setdefault(item.dedupe_key, []).append(item)

    duplicates = []
    for key, group in groups.items():
        if len(group) < 2:
            continue
        customer, project_number, project_name, pmc_group, cost_item = key
        duplicates.append(
            {
                "customer": customer,
                "projectNumber": project_number,
                "projectName": project_name,
                "pmcGroup": pmc_group,
                "costItem": cost_item,
                "copies": len(group),
                "docIds": [item.doc_id for item in group if item.doc_id],
                "sales": sum(item.sales for item in group),
            }
        )
    duplicates.sort(key=lambda row: (-row["copies"], row["customer"], row["projectNumber"]))
    return duplicates
