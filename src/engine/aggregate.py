# ====================================================================================================
# Aggregation
#
# Two grains feed the Dashboard Summary:
# - Project Aggregates (one per customer + project identifier) carry the dollar totals, status counts
#   and contractor breakdowns. A project with twelve cost lines counts once.
# - Resolved line items carry the category/hour analysis (laborByGroup, pmcGroupHours,
#   laborBreakdown), because a cost category only exists at line-item level.
# Sums are plain float accumulation; rounding is left to whoever presents the numbers.
# ====================================================================================================

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from .config import SummaryConfig
from .records import LineItem

UNKNOWN = "Unknown"
UNASSIGNED = "Unassigned"


@dataclass(frozen=True)
class ProjectAggregate:
    customer: str
    identifier: str
    project_number: str
    project_name: str
    status: str
    sales: float
    cost: float
    hours: float
    line_items: int

    def to_dict(self) -> dict:
        return {
            "customer": self.customer,
            "projectNumber": self.project_number,
            "projectName": self.project_name,
            "status": self.status,
            "sales": self.sales,
            "cost": self.cost,
            "hours": self.hours,
            "lineItems": self.line_items,
        }


def _project_key(item: LineItem) -> Tuple[str, str]:
    return item.customer, item.identifier


def _empty_bucket() -> Dict[str, float]:
    return {"sales": 0.0, "cost": 0.0, "hours": 0.0, "count": 0}


def _add(bucket: Dict[str, float], project: ProjectAggregate) -> None:
    bucket["sales"] += project.sales
    bucket["cost"] += project.cost
    bucket["hours"] += project.hours
    bucket["count"] += 1


def _sorted_map(mapping: Dict[str, object]) -> Dict[str, object]:
    return {key: mapping[key] for key in sorted(mapping)}


# ----------------------------------------------------------------------------------------------------
# group_projects
# Purpose: Partition resolved line items into Resolved Project Groups.
# Inputs: resolved line items
# Outputs: {(customer, identifier): [line items]}; every item lands in exactly one group
# ----------------------------------------------------------------------------------------------------
def group_projects(items: Iterable[LineItem]) -> Dict[Tuple[str, str], List[LineItem]]:
    groups: Dict[Tuple[str, str], List[LineItem]] = {}
    for item in items:
        groups.setdefault(_project_key(item), []).append(item)
    return groups


def summarize_group(customer: str, identifier: str, items: List[LineItem]) -> ProjectAggregate:
    # Representative row: smallest project name, then status; sorted() is stable for exact ties.
    representative = sorted(items, key=lambda item: (item.project_name, item.status))[0]
    return ProjectAggregate(
        customer=customer,
        identifier=identifier,
        project_number=representative.project_number,
        project_name=representative.project_name,
        status=representative.status,
        sales=sum(item.sales for item in items),
        cost=sum(item.cost for item in items),
        hours=sum(item.hours for item in items),
        line_items=len(items),
    )


def aggregate_projects(items: Iterable[LineItem]) -> List[ProjectAggregate]:
    groups = group_projects(items)
    return [summarize_group(customer, identifier, groups[(customer, identifier)])
            for customer, identifier in sorted(groups)]


def _is_pm_group(group: str, prefixes: Tuple[str, ...]) -> bool:
    norm = group.lower()
    return any(norm.startswith(prefix.lower()) for prefix in prefixes if prefix)


# ----------------------------------------------------------------------------------------------------
# build_summary
# Purpose: Produce the Dashboard Summary from the resolved line-item set.
# Inputs: resolved line items, config (labor status + PM prefixes), `generated_at` ISO timestamp
# Outputs: (summary dict, project aggregates)
# ----------------------------------------------------------------------------------------------------
def build_summary(
    items: List[LineItem],
    config: Optional[SummaryConfig] = None,
    generated_at: Optional[str] = None,
) -> Tuple[dict, List[ProjectAggregate]]:
    config = config or SummaryConfig()
    projects = aggregate_projects(items)

    status_groups: Dict[str, dict] = {}
    contractors: Dict[str, dict] = {}
    for project in projects:
        status = project.status or UNKNOWN
        customer = project.customer or UNKNOWN

        if status not in status_groups:
            status_groups[status] = dict(_empty_bucket(), laborByGroup={})
        _add(status_groups[status], project)

        if customer not in contractors:
            contractors[customer] = dict(_empty_bucket(), byStatus={})
        contractor = contractors[customer]
        _add(contractor, project)
        contractor["byStatus"].setdefault(status, _empty_bucket())
        _add(contractor["byStatus"][status], project)

    pmc_group_hours: Dict[str, float] = {}
    labor_breakdown: Dict[str, float] = {}
    for item in items:
        # Keyed by the line item's own status; statuses no project reports get no bucket.
        bucket = status_groups.get(item.status or UNKNOWN)
        if bucket is not None:
            labor = bucket["laborByGroup"]
            group = item.pmc_group or UNASSIGNED
            labor[group] = labor.get(group, 0.0) + item.hours

        if not item.pmc_group:
            continue
        is_labor_status = item.status.lower() == config.labor_status.lower()
        if is_labor_status or _is_pm_group(item.pmc_group, config.pm_group_prefixes):
            pmc_group_hours[item.pmc_group] = pmc_group_hours.get(item.pmc_group, 0.0) + item.hours
        if is_labor_status:
            labor_breakdown[item.pmc_group] = labor_breakdown.get(item.pmc_group, 0.0) + item.hours

    for bucket in status_groups.values():
        bucket["laborByGroup"] = _sorted_map(bucket["laborByGroup"])
    for contractor in contractors.values():
        contractor["byStatus"] = _sorted_map(contractor["byStatus"])

    summary = {
        "totalSales": sum(p.sales for p in projects),
        "totalCost": sum(p.cost for p in projects),
        "totalHours": sum(p.hours for p in projects),
        "statusGroups": _sorted_map(status_groups),
        "contractors": _sorted_map(contractors),
        "pmcGroupHours": _sorted_map(pmc_group_hours),
        "laborBreakdown": _sorted_map(labor_breakdown),
        "lastUpdated": generated_at,
    }
    return summary, projects
