# ====================================================================================================
# Identity resolution
#
# The same project identifier (project number, else project name) is sometimes claimed by more than
# one customer: the project was bid through two contractor relationships, or an old import was never
# cleaned up. Only one customer's line items may feed the totals. Resolution order:
#   1) priority status  - a customer with an Accepted / In Progress / Complete line item wins outright
#   2) most recent      - otherwise the customer whose newest dateCreated is latest wins
#   3) tie break        - equal (or all missing) dates go to the alphabetically first customer
# Customers are always scanned in sorted order, so the result never depends on input order.
# ====================================================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from .records import LineItem
from .values import latest_date

logger = logging.getLogger(__name__)

RULE_PRIORITY = "priority_status"
RULE_RECENCY = "most_recent"
RULE_TIE = "tie_break"


@dataclass(frozen=True)
class ConflictDecision:
    identifier: str
    winner: str
    losers: Tuple[str, ...]
    rule: str
    kept_items: int
    dropped_items: int
    dropped_sales: float

    def to_dict(self) -> dict:
        return {
            "identifier": self.identifier,
            "winner": self.winner,
            "losers": list(self.losers),
            "rule": self.rule,
            "keptItems": self.kept_items,
            "droppedItems": self.dropped_items,
            "droppedSales": self.dropped_sales,
        }


@dataclass
class ResolutionResult:
    items: List[LineItem] = field(default_factory=list)
    conflicts: List[ConflictDecision] = field(default_factory=list)


def _group_by(items: Iterable[LineItem], key) -> Dict[str, List[LineItem]]:
    groups: Dict[str, List[LineItem]] = {}
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return groups


class IdentityResolver:
    def __init__(self, priority_statuses: Iterable[str] = ("Accepted", "In Progress", "Complete")):
        self.priority_statuses = {s.strip().lower() for s in priority_statuses if s and s.strip()}

    def has_priority_status(self, items: Iterable[LineItem]) -> bool:
        return any(item.status.lower() in self.priority_statuses for item in items)

    # ------------------------------------------------------------------------------------------------
    # select_customer
    # Purpose: Pick the one customer that keeps a contested identifier.
    # Inputs: `by_customer` (customer -> that customer's line items), at least two customers
    # Outputs: (winning customer, rule that decided it)
    # ------------------------------------------------------------------------------------------------
    def select_customer(self, by_customer: Dict[str, List[LineItem]]) -> Tuple[str, str]:
        customers = sorted(by_customer)

        for customer in customers:
            if self.has_priority_status(by_customer[customer]):
                return customer, RULE_PRIORITY

        newest: Dict[str, Optional[datetime]] = {
            customer: latest_date(item.date_created for item in by_customer[customer])
            for customer in customers
        }
        dated = [customer for customer in customers if newest[customer] is not None]
        if not dated:
            return customers[0], RULE_TIE

        best = max(newest[customer] for customer in dated)
        leaders = [customer for customer in dated if newest[customer] == best]
        # `leaders` keeps sorted order, so a tie goes to the alphabetically first customer.
        return leaders[0], RULE_RECENCY if len(leaders) == 1 else RULE_TIE

    def resolve(self, items: Iterable[LineItem]) -> ResolutionResult:
        result = ResolutionResult()
        by_identifier = _group_by(items, lambda item: item.identifier)

        for identifier, group in by_identifier.items():
            if not identifier:
                # Nothing to compete on; each customer keeps its own rows.
                result.items.extend(group)
                continue

            by_customer = _group_by(group, lambda item: item.customer)
            if len(by_customer) == 1:
                result.items.extend(group)
                continue

            winner, rule = self.select_customer(by_customer)
            kept = by_customer[winner]
            dropped = [item for item in group if item.customer != winner]
            decision = ConflictDecision(
                identifier=identifier,
                winner=winner,
                losers=tuple(c for c in sorted(by_customer) if c != winner),
                rule=rule,
                kept_items=len(kept),
                dropped_items=len(dropped),
                dropped_sales=sum(item.sales for item in dropped),
            )
            logger.info(
                "Resolved competing claim for %r: kept %r (%s), dropped %s",
                identifier,
                winner,
                rule,
                ", ".join(repr(c) for c in decision.losers),
            )
            result.conflicts.append(decision)
            result.items.extend(kept)

        return result
