import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from src.engine import ExclusionFilter, LineItem, config_from_overrides


def item(**fields):
    record = {
        "customer": "Acme Builders",
        "projectNumber": "100-X",
        "projectName": "Warehouse",
        "status": "Bid Submitted",
        "sales": "1000",
    }
    record.update(fields)
    return LineItem.from_record(record)


def test_reportable_item_passes():
    assert ExclusionFilter().reason(item()) is None


def test_archived_flag_excludes():
    assert ExclusionFilter().reason(item(projectArchived="yes")) == "archived"


def test_status_denylist_is_trimmed_and_case_insensitive():
    assert ExclusionFilter().reason(item(status="  To Do ")) == "status"
    assert ExclusionFilter().reason(item(status="Invitations")) == "status"


def test_customer_substring():
    assert ExclusionFilter().reason(item(customer="SOP Inc. Test")) == "customer"


def test_project_name_exact_and_marker():
    flt = ExclusionFilter()
    assert flt.reason(item(projectName="PMC Shop Time")) == "project_name"
    assert flt.reason(item(projectName="Sandbox - demo job")) == "project_name"


def test_project_number_literal():
    assert ExclusionFilter().reason(item(projectNumber="701 Poplar Church Rd")) == "project_number"


def test_denylist_comes_from_config():
    config = config_from_overrides({"excluded_statuses": ["lost"], "excluded_estimators": ["Test User"]})
    flt = ExclusionFilter(config)
    assert flt.reason(item(status="To Do")) is None
    assert flt.reason(item(status="Lost")) == "status"
    assert flt.reason(item(estimator="test user")) == "estimator"


def test_required_fields():
    config = config_from_overrides({"required_fields": ["customer"]})
    assert ExclusionFilter(config).reason(item(customer="")) == "missing_customer"


def test_split_counts_reasons():
    items = [item(), item(projectArchived=True), item(status="todo"), item(status="TODO")]
    kept, counts = ExclusionFilter().split(items)
    assert len(kept) == 1
    assert counts == {"archived": 1, "status": 2}
