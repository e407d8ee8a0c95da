#!/usr/bin/env python
"""
Dependencies
- Python 3.9+
- pandas
- openpyxl (for .xlsx / .xlsm)
- xlrd (for .xls)
- pyyaml (for config)

Notes
- Exports from the estimating tool do not agree on header spelling (ProjectNumber,
  Project Number, projectNumber ...), so headers are normalized and matched against synonyms.
- Money cells keep accounting negatives: "(1,234.50)" becomes -1234.5.
- Rows are written as-is; exclusion, identity resolution and duplicate detection all happen
  in the summary run, never here.

Usage
python scripts/ingest/ingest_line_items.py --input data/exports --output-dir data/processed
"""

from __future__ import annotations

import argparse
import json
import re
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd
import yaml

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT))

from src.engine.values import parse_boolean, parse_date, parse_money

DEFAULT_CONFIG_PATH = Path("config/ingest_line_items.yml")
DEFAULT_INPUT_DIR = Path("data/exports")
DEFAULT_OUTPUT_DIR = Path("data/processed")

# Record keys as the summary run reads them.
CANONICAL_COLUMNS = [
    "customer",
    "projectNumber",
    "projectName",
    "status",
    "pmcGroup",
    "costitems",
    "estimator",
    "sales",
    "cost",
    "hours",
    "dateCreated",
    "dateUpdated",
    "projectArchived",
]

REQUIRED_COLUMNS = ["customer", "status", "sales"]
MONEY_COLUMNS = ["sales", "cost", "hours"]
DATE_COLUMNS = ["dateCreated", "dateUpdated"]
BOOLEAN_COLUMNS = ["projectArchived"]

DEFAULT_COLUMN_SYNONYMS: Dict[str, List[str]] = {
    "customer": ["customer", "customer name", "client"],
    "projectNumber": ["project number", "projectnumber", "project no", "job number", "job #"],
    "projectName": ["project name", "projectname", "project", "job name"],
    "status": ["status", "project status"],
    "pmcGroup": ["pmc group", "pmcgroup", "pmc grouping", "cost type", "costtype", "cost category"],
    "costitems": ["costitems", "cost items", "cost item", "costitem", "item"],
    "estimator": ["estimator", "estimated by"],
    "sales": ["sales", "total sales", "sell price", "price"],
    "cost": ["cost", "total cost", "extended cost"],
    "hours": ["hours", "labor hours", "quantity"],
    "dateCreated": ["date created", "datecreated", "created", "created date", "date"],
    "dateUpdated": ["date updated", "dateupdated", "project update date", "projectupdatedate", "updated"],
    "projectArchived": ["project archived", "projectarchived", "archived"],
}

NULL_LIKE = {"", "null", "nan", "none", "n/a"}
SUPPORTED_SUFFIXES = {".csv", ".xlsx", ".xlsm", ".xls"}


def normalize_header(value: object) -> str:
    if value is None:
        return ""
    text = str(value).strip().lower()
    text = text.replace("\n", " ").replace("\t", " ")
    text = re.sub(r"[^a-z0-9#]+", "_", text)
    text = re.sub(r"_+", "_", text).strip("_")
    return text


def load_config(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
    if not isinstance(config, dict):
        raise ValueError(f"Config {path} must be a mapping.")
    return config


def list_input_files(input_path: Path) -> List[Path]:
    if input_path.is_file():
        return [input_path]
    files = [p for p in input_path.glob("*") if p.suffix.lower() in SUPPORTED_SUFFIXES]
    return sorted(files)


def excel_engine_for(path: Path) -> Optional[str]:
    ext = path.suffix.lower()
    if ext in {".xlsx", ".xlsm", ".xltx", ".xltm"}:
        return "openpyxl"
    if ext == ".xls":
        return "xlrd"
    return None


def build_column_synonyms(config: Optional[dict]) -> Dict[str, List[str]]:
    config = config or {}
    synonyms: Dict[str, List[str]] = {
        canon: list(DEFAULT_COLUMN_SYNONYMS.get(canon, [])) for canon in CANONICAL_COLUMNS
    }
    for key, values in (config.get("column_mappings") or {}).items():
        if key not in synonyms:
            continue
        synonyms[key].extend(values or [])
    return synonyms


def build_synonym_lookup(column_synonyms: Dict[str, List[str]]) -> Dict[str, str]:
    lookup: Dict[str, str] = {}
    for canonical, synonyms in column_synonyms.items():
        for name in [canonical] + list(synonyms or []):
            key = normalize_header(name)
            if key:
                lookup[key] = canonical
    return lookup


def normalize_columns(
    df: pd.DataFrame,
    column_synonyms: Dict[str, List[str]],
    warnings: List[str],
    keep_unmapped: bool = False,
) -> Tuple[pd.DataFrame, Dict[str, str]]:
    lookup = build_synonym_lookup(column_synonyms)
    col_map: Dict[str, str] = {}
    for col in df.columns:
        canonical = lookup.get(normalize_header(col))
        if not canonical:
            continue
        if canonical in col_map:
            warnings.append(f"Duplicate mapping for {canonical}: {col_map[canonical]} and {col}")
            continue
        col_map[canonical] = col

    df = df.rename(columns={src: dest for dest, src in col_map.items()})
    for canonical in CANONICAL_COLUMNS:
        if canonical not in df.columns:
            df[canonical] = pd.NA
    if keep_unmapped:
        extras = [col for col in df.columns if col not in CANONICAL_COLUMNS]
        return df[CANONICAL_COLUMNS + extras], col_map
    return df[CANONICAL_COLUMNS], col_map


def clean_object_series(series: pd.Series) -> pd.Series:
    def _clean(val: object) -> object:
        if val is None or (isinstance(val, float) and pd.isna(val)):
            return pd.NA
        if isinstance(val, float) and val.is_integer():
            val = int(val)
        text = str(val).strip()
        if text.lower() in NULL_LIKE:
            return pd.NA
        return text

    return series.map(_clean)


def _is_missing(value: object) -> bool:
    if value is None or value is pd.NA or value is pd.NaT:
        return True
    return isinstance(value, float) and pd.isna(value)


def _iso_date(value: object) -> Optional[str]:
    parsed = None if _is_missing(value) else parse_date(value)
    return parsed.isoformat() if parsed is not None else None


def convert_values(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    for col in df.columns:
        if col in MONEY_COLUMNS:
            df[col] = df[col].map(lambda v: None if _is_missing(v) else parse_money(v, default=None))
        elif col in DATE_COLUMNS:
            df[col] = df[col].map(_iso_date)
        elif col in BOOLEAN_COLUMNS:
            df[col] = df[col].map(lambda v: None if _is_missing(v) else parse_boolean(v))
        else:
            df[col] = clean_object_series(df[col])
    return df


def read_table(path: Path) -> pd.DataFrame:
    if path.suffix.lower() == ".csv":
        return pd.read_csv(path, dtype=str, keep_default_na=False)
    return pd.read_excel(path, sheet_name=0, engine=excel_engine_for(path), dtype=object)


def ingest_one_file(
    path: Path,
    column_synonyms: Dict[str, List[str]],
    keep_unmapped: bool = False,
) -> Tuple[Optional[pd.DataFrame], dict]:
    warnings: List[str] = []
    file_log = {"file": path.name, "warnings": warnings}
    try:
        raw = read_table(path)
    except (OSError, ValueError, ImportError) as exc:
        file_log.update({"status": "skipped", "error": f"{path.name}: {exc}"})
        return None, file_log

    df, col_map = normalize_columns(raw, column_synonyms, warnings, keep_unmapped=keep_unmapped)
    unmapped = [str(col) for col in raw.columns if col not in col_map.values()]
    missing_required = [col for col in REQUIRED_COLUMNS if col not in col_map]
    if "projectNumber" not in col_map and "projectName" not in col_map:
        missing_required.append("projectNumber|projectName")
    if missing_required:
        warnings.append(f"Missing required headers: {', '.join(missing_required)}")

    df = convert_values(df)
    for col in MONEY_COLUMNS:
        if col not in col_map:
            continue
        present = int(clean_object_series(raw[col_map[col]]).notna().sum())
        unparseable = present - int(df[col].notna().sum())
        if unparseable:
            warnings.append(f"{unparseable} unparseable {col} values")

    df["sourceFile"] = path.name
    file_log.update(
        {
            "status": "processed",
            "rows": int(len(df)),
            "matched_fields": sorted(col_map),
            "unmapped_columns": unmapped,
            "missing_required_headers": missing_required,
            "unique_customers": int(df["customer"].nunique(dropna=True)),
        }
    )
    return df, file_log


def ingest_all(input_path: Path, config: dict) -> Tuple[Optional[pd.DataFrame], dict]:
    files = list_input_files(input_path) if input_path.exists() else []
    log = {
        "run_timestamp": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        "input": str(input_path),
        "files_total": len(files),
        "files_processed": 0,
        "files_skipped": 0,
        "errors": [],
        "file_logs": [],
    }
    if not files:
        return None, log

    column_synonyms = build_column_synonyms(config)
    keep_unmapped = bool(config.get("keep_unmapped_columns", False))
    combined: List[pd.DataFrame] = []
    for path in files:
        df, file_log = ingest_one_file(path, column_synonyms, keep_unmapped=keep_unmapped)
        log["file_logs"].append(file_log)
        if df is None:
            log["files_skipped"] += 1
            log["errors"].append(file_log.get("error"))
            print(f"SKIP: {path.name} | {file_log.get('error')}")
            continue

        log["files_processed"] += 1
        combined.append(df)
        missing = ", ".join(file_log["missing_required_headers"]) or "none"
        print(
            "Quality: {file} | rows={rows} | customers={cust} | missing_required={missing}".format(
                file=path.name,
                rows=file_log["rows"],
                cust=file_log["unique_customers"],
                missing=missing,
            )
        )
        for warn in file_log["warnings"]:
            print(f"  WARN: {warn}")

    if not combined:
        return None, log
    return pd.concat(combined, ignore_index=True), log


def to_records(df: pd.DataFrame) -> List[dict]:
    records = []
    for row in df.to_dict(orient="records"):
        records.append({key: value for key, value in row.items() if not _is_missing(value)})
    return records


def write_data_dictionary(path: Path, columns: List[str]) -> None:
    column_descriptions = {
        "customer": "Contracting customer name.",
        "projectNumber": "Project identifier; may be shared by several customers' bids.",
        "projectName": "Project name; used as the identifier when the number is blank.",
        "status": "Project status (Accepted, In Progress, Complete, Bid Submitted, ...).",
        "pmcGroup": "Cost category / labor group.",
        "costitems": "Cost item description.",
        "estimator": "Estimator who priced the line item.",
        "sales": "Sales amount in dollars (accounting negatives preserved).",
        "cost": "Cost amount in dollars.",
        "hours": "Labor hours.",
        "dateCreated": "Creation timestamp, ISO-8601 UTC.",
        "dateUpdated": "Last update timestamp, ISO-8601 UTC.",
        "projectArchived": "True when the project is archived.",
        "sourceFile": "Export file the row came from.",
    }

    lines = ["# Line Item Data Dictionary\n"]
    lines.append(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
    lines.append("\n## Columns\n")
    for col in columns:
        desc = column_descriptions.get(col, "No description available.")
        lines.append(f"- {col}: {desc}\n")
    lines.append("\n## Notes\n")
    lines.append("- Missing values are omitted from the record instead of written as null.\n")
    lines.append("- Unparseable money values are omitted and reported in ingestion_log.json.\n")
    path.write_text("".join(lines), encoding="utf-8")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Ingest line item exports (CSV/Excel) into JSON records.")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to config YAML (optional).")
    parser.add_argument("--input", dest="input", type=Path, default=None, help="Export file or directory.")
    parser.add_argument("--output-dir", dest="output_dir", type=Path, default=None, help="Output directory.")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    input_path = args.input or Path(config.get("input", DEFAULT_INPUT_DIR))
    output_dir = args.output_dir or Path(config.get("output_dir", DEFAULT_OUTPUT_DIR))
    output_dir.mkdir(parents=True, exist_ok=True)

    df_all, log = ingest_all(input_path, config)
    if df_all is None or df_all.empty:
        print(f"No data processed from {input_path}.")
        return 1

    records = to_records(df_all)
    records_path = output_dir / "line_items.json"
    records_path.write_text(json.dumps({"records": records}, indent=2), encoding="utf-8")

    write_data_dictionary(output_dir / "data_dictionary.md", CANONICAL_COLUMNS + ["sourceFile"])

    log["row_count"] = len(records)
    (output_dir / "ingestion_log.json").write_text(json.dumps(log, indent=2), encoding="utf-8")

    print("\nSummary")
    print(f"- Files processed: {log['files_processed']} / {log['files_total']}")
    print(f"- Files skipped: {log['files_skipped']}")
    print(f"- Total rows: {log['row_count']}")
    print(f"- Output records: {records_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
