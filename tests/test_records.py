import sys
from datetime import datetime, timezone
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from src.engine import LineItem, find_duplicate_imports


def test_from_record_parses_every_field():
    item = LineItem.from_record(
        {
            "docId": "abc",
            "customer": " Acme ",
            "projectNumber": 1042.0,
            "projectName": "Clinic",
            "status": "Accepted",
            "costCategory": "Framing",
            "costItem": "Studs",
            "sales": "$(250.00)",
            "cost": None,
            "hours": "3.5",
            "dateCreated": "2026-01-01",
            "archived": "TRUE",
        }
    )
    assert item.doc_id == "abc"
    assert item.customer == "Acme"
    assert item.project_number == "1042"
    assert item.pmc_group == "Framing"
    assert item.cost_item == "Studs"
    assert item.sales == -250.0
    assert item.cost == 0.0
    assert item.hours == 3.5
    assert item.date_created == datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert item.date_updated is None
    assert item.archived is True


def test_identifier_falls_back_to_name():
    assert LineItem.from_record({"projectNumber": "", "projectName": "Clinic"}).identifier == "Clinic"
    assert LineItem.from_record({"projectNumber": "7", "projectName": "Clinic"}).identifier == "7"
    assert LineItem.from_record({}).identifier == ""


def test_duplicate_imports_sorted_by_copies():
    row = {"customer": "A", "projectNumber": "1", "pmcGroup": "Framing", "costitems": "Studs", "sales": 5}
    other = {"customer": "B", "projectNumber": "2", "costitems": "Trim", "sales": 1}
    items = [LineItem.from_record(r) for r in [other, row, row, other, row]]
    duplicates = find_duplicate_imports(items)
    assert [(d["customer"], d["copies"]) for d in duplicates] == [("A", 3), ("B", 2)]
    assert duplicates[0]["sales"] == 15
    assert find_duplicate_imports(items[:2]) == []
