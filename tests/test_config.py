import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from src.engine import SummaryConfig, config_from_overrides, config_to_dict, load_config


def test_overrides_reject_unknown_key():
    with pytest.raises(ValueError):
        config_from_overrides({"unknown_key": 1})


def test_overrides_enforce_bounds():
    with pytest.raises(ValueError):
        config_from_overrides({"publish_max_attempts": 0})
    with pytest.raises(ValueError):
        config_from_overrides({"page_delay_seconds": -1})


def test_overrides_type_check():
    with pytest.raises(ValueError):
        config_from_overrides({"page_size": "100"})
    with pytest.raises(ValueError):
        config_from_overrides({"excluded_statuses": "to do"})


def test_overrides_reject_unknown_required_field():
    with pytest.raises(ValueError):
        config_from_overrides({"required_fields": ["sales"]})


def test_lists_become_tuples():
    config = config_from_overrides({"priority_statuses": ["Won"], "publish_backoff_seconds": 1})
    assert config.priority_statuses == ("Won",)
    assert config.publish_backoff_seconds == 1.0
    assert config_to_dict(config)["priority_statuses"] == ["Won"]


def test_missing_file_means_defaults(tmp_path):
    assert load_config(tmp_path / "absent.yml") == SummaryConfig()


def test_load_yaml(tmp_path):
    path = tmp_path / "summary.yml"
    path.write_text("labor_status: Estimating\npage_size: 50\n", encoding="utf-8")
    config = load_config(path)
    assert config.labor_status == "Estimating"
    assert config.page_size == 50
    assert config.excluded_statuses == SummaryConfig().excluded_statuses


def test_shipped_config_matches_defaults():
    assert load_config(ROOT / "config" / "summary.yml") == SummaryConfig()


def test_non_mapping_yaml_is_rejected(tmp_path):
    path = tmp_path / "summary.yml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)
