import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))
sys.path.insert(0, str(ROOT / "scripts" / "ingest"))

import ingest_line_items as ingest
from src.summary import JsonFileStore

EXPORT = (
    "Customer,Project Number,ProjectName,Status,PMC Group,Costitems,Sales,Cost,Hours,DateCreated,ProjectArchived\n"
    'Acme,100-X,Clinic,Bid Submitted,Framing,Studs,"$(1,234.50)",$500,4,2026-01-01,No\n'
    "Acme,100-X,Clinic,Bid Submitted,,Drywall,TBD,,,,\n"
)


def test_header_synonyms_map_to_record_keys():
    lookup = ingest.build_synonym_lookup(ingest.build_column_synonyms({}))
    assert lookup[ingest.normalize_header("Project Number")] == "projectNumber"
    assert lookup[ingest.normalize_header("ProjectNumber")] == "projectNumber"
    assert lookup[ingest.normalize_header("CostType")] == "pmcGroup"
    assert lookup[ingest.normalize_header("ProjectArchived")] == "projectArchived"


def test_config_column_mappings_extend_synonyms():
    synonyms = ingest.build_column_synonyms({"column_mappings": {"pmcGroup": ["Crew"], "bogus": ["x"]}})
    assert "Crew" in synonyms["pmcGroup"]
    assert "bogus" not in synonyms


def test_ingest_csv_export(tmp_path):
    export = tmp_path / "export.csv"
    export.write_text(EXPORT, encoding="utf-8")
    out_dir = tmp_path / "processed"

    code = ingest.main(
        ["--input", str(export), "--output-dir", str(out_dir), "--config", str(tmp_path / "none.yml")]
    )
    assert code == 0

    records = JsonFileStore(out_dir / "line_items.json", tmp_path / "s.json").read_records()
    first, second = records
    assert first["customer"] == "Acme"
    assert first["projectNumber"] == "100-X"
    assert first["pmcGroup"] == "Framing"
    assert first["sales"] == -1234.5
    assert first["cost"] == 500.0
    assert first["dateCreated"].startswith("2026-01-01T00:00:00")
    assert first["projectArchived"] is False
    assert first["sourceFile"] == "export.csv"
    assert "sales" not in second
    assert "pmcGroup" not in second

    log = json.loads((out_dir / "ingestion_log.json").read_text(encoding="utf-8"))
    assert log["files_processed"] == 1
    assert log["row_count"] == 2
    (file_log,) = log["file_logs"]
    assert file_log["missing_required_headers"] == []
    assert "1 unparseable sales values" in file_log["warnings"]
    assert (out_dir / "data_dictionary.md").exists()


def test_missing_required_headers_are_logged(tmp_path):
    export = tmp_path / "thin.csv"
    export.write_text("Customer,Notes\nAcme,hello\n", encoding="utf-8")
    df, file_log = ingest.ingest_one_file(export, ingest.build_column_synonyms({}))
    assert len(df) == 1
    assert "status" in file_log["missing_required_headers"]
    assert "projectNumber|projectName" in file_log["missing_required_headers"]


def test_nothing_to_ingest_returns_error(tmp_path):
    empty = tmp_path / "empty"
    empty.mkdir()
    code = ingest.main(
        ["--input", str(empty), "--output-dir", str(tmp_path / "out"), "--config", str(tmp_path / "none.yml")]
    )
    assert code == 1


def test_unmapped_columns_are_logged_and_optionally_kept(tmp_path):
    export = tmp_path / "notes.csv"
    export.write_text("Customer,Status,Notes\nAcme,Accepted,call back\n", encoding="utf-8")
    synonyms = ingest.build_column_synonyms({})

    df, file_log = ingest.ingest_one_file(export, synonyms)
    assert file_log["unmapped_columns"] == ["Notes"]
    assert "Notes" not in df.columns

    df, _ = ingest.ingest_one_file(export, synonyms, keep_unmapped=True)
    (record,) = ingest.to_records(df)
    assert record["Notes"] == "call back"
    assert record["customer"] == "Acme"
