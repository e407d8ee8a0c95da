# ====================================================================================================
# Dashboard summary run
#
# One run = read every line item record -> exclusion filter -> identity resolution -> aggregation
# -> publish the Dashboard Summary (full replace, bounded retry).
#
# What it takes in:
# - A record source: a JSON/CSV export (`--records`) or Firestore (`--firestore-credentials`)
# - Optional YAML config (`--config`, defaults to config/summary.yml when present)
# - An output directory for the audit artifacts (`--out`)
#
# What it produces under `--out`:
# - `summary.json` (exactly what gets published)
# - `project_aggregates.csv` (one row per resolved customer + project)
# - `conflicts.json` (every competing claim and the rule that settled it)
# - `duplicates.json` (rows that look imported more than once; report only)
# - `comparison.json` / `comparison.csv` (against the previously published summary, if any)
# - `plots/*.png`, `metadata.json`, `run.log`
#
# A run either completes and publishes, or fails with exit code 1 and publishes nothing; the
# previously published summary stays authoritative.
# ====================================================================================================

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from subprocess import DEVNULL, CalledProcessError, check_output
from typing import Callable, Dict, Optional

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd


ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from src.engine import compare_summaries, config_to_dict, load_config, run_pipeline, summary_to_json
from src.engine.config import SummaryConfig
from src.engine.pipeline import utc_timestamp
from src.summary import FirestoreStore, JsonFileStore, RecordStore, StoreError, StoreReadError, SummaryPublisher

DEFAULT_CONFIG_PATH = ROOT / "config" / "summary.yml"
DEFAULT_SUMMARY_PATH = ROOT / "outputs" / "dashboard_summary.json"


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Rebuild and publish the dashboard summary.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--records", help="Line item export (.json or .csv).")
    source.add_argument("--firestore-credentials", help="Service account JSON for Firestore.")
    parser.add_argument("--firestore-project", help="Firestore project id (optional).")
    parser.add_argument(
        "--summary",
        default=str(DEFAULT_SUMMARY_PATH),
        help="Published summary path when reading from --records.",
    )
    parser.add_argument("--config", help="YAML config path (default: config/summary.yml).")
    parser.add_argument("--out", required=True, help="Output directory for run artifacts.")
    parser.add_argument("--dry-run", action="store_true", help="Build artifacts but do not publish.")
    parser.add_argument("--generated-at", help="Fixed lastUpdated timestamp (ISO-8601).")
    return parser.parse_args(argv)


def get_git_commit(root: Path) -> Optional[str]:
    try:
        return check_output(["git", "rev-parse", "HEAD"], cwd=root, stderr=DEVNULL).decode().strip()
    except (CalledProcessError, FileNotFoundError):
        return None


def configure_logging(log_path: Path) -> logging.Logger:
    # Handlers go on the package logger so engine/store messages land in run.log too.
    package_logger = logging.getLogger("src")
    package_logger.setLevel(logging.INFO)
    package_logger.handlers.clear()
    handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    package_logger.addHandler(handler)
    package_logger.addHandler(logging.StreamHandler(sys.stdout))
    return logging.getLogger("src.run_summary")


def plot_bars(values: Dict[str, float], title: str, ylabel: str, out_path: Path) -> bool:
    values = {k: v for k, v in values.items() if v}
    if not values:
        return False
    ordered = sorted(values.items(), key=lambda kv: kv[1], reverse=True)
    plt.figure(figsize=(10, 5))
    plt.bar([k for k, _ in ordered], [v for _, v in ordered], edgecolor="black", alpha=0.8)
    plt.title(title)
    plt.ylabel(ylabel)
    plt.xticks(rotation=45, ha="right")
    plt.tight_layout()
    plt.savefig(out_path, dpi=150)
    plt.close()
    return True


def _write_json(path: Path, payload) -> None:
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def build_store(args: argparse.Namespace, config: SummaryConfig) -> RecordStore:
    if args.firestore_credentials:
        return FirestoreStore.from_service_account(
            Path(args.firestore_credentials),
            project=args.firestore_project,
            page_size=config.page_size,
            page_delay_seconds=config.page_delay_seconds,
        )
    return JsonFileStore(Path(args.records), Path(args.summary))


def run_summary(
    store: RecordStore,
    config: SummaryConfig,
    out_dir: Path,
    dry_run: bool = False,
    generated_at: Optional[str] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> dict:
    out_dir.mkdir(parents=True, exist_ok=True)
    plots_dir = out_dir / "plots"
    plots_dir.mkdir(parents=True, exist_ok=True)
    logger = configure_logging(out_dir / "run.log")

    started = time.monotonic()
    logger.info("Starting summary run (dry_run=%s)", dry_run)

    records = store.read_records()
    logger.info("Read %s line item records.", len(records))
    try:
        previous = store.read_summary()
    except StoreReadError as exc:
        # Only the comparison needs it; the new summary replaces it either way.
        logger.warning("Previous summary unreadable, skipping comparison: %s", exc)
        previous = None

    result = run_pipeline(records, config, generated_at=generated_at or utc_timestamp())
    summary = result.summary
    logger.info(
        "Totals: sales=%.2f cost=%.2f hours=%.2f statuses=%s contractors=%s",
        summary["totalSales"],
        summary["totalCost"],
        summary["totalHours"],
        len(summary["statusGroups"]),
        len(summary["contractors"]),
    )

    (out_dir / "summary.json").write_text(summary_to_json(summary), encoding="utf-8")
    aggregates_path = out_dir / "project_aggregates.csv"
    pd.DataFrame(
        [a.to_dict() for a in result.aggregates],
        columns=["customer", "projectNumber", "projectName", "status", "sales", "cost", "hours", "lineItems"],
    ).to_csv(aggregates_path, index=False)
    _write_json(out_dir / "conflicts.json", [c.to_dict() for c in result.conflicts])
    _write_json(out_dir / "duplicates.json", result.duplicates)

    if previous is not None:
        comparison, comparison_df = compare_summaries(previous, summary)
        _write_json(out_dir / "comparison.json", comparison)
        comparison_df.to_csv(out_dir / "comparison.csv", index=False)
        logger.info("Wrote comparison against summary from %s", previous.get("lastUpdated"))

    status_sales = {status: bucket["sales"] for status, bucket in summary["statusGroups"].items()}
    if plot_bars(status_sales, "Sales by Status", "Sales ($)", plots_dir / "status_sales.png"):
        logger.info("Saved plot %s", plots_dir / "status_sales.png")
    else:
        logger.warning("Skipped status sales plot (no data).")
    if plot_bars(summary["laborBreakdown"], "Labor Hours by Group (Bid Submitted)", "Hours",
                 plots_dir / "labor_breakdown.png"):
        logger.info("Saved plot %s", plots_dir / "labor_breakdown.png")
    else:
        logger.warning("Skipped labor breakdown plot (no data).")

    attempts = 0
    if dry_run:
        logger.info("Dry run: summary not published.")
    else:
        publisher = SummaryPublisher.from_config(store, config, sleep=sleep)
        attempts = publisher.publish(summary)

    metadata = {
        "timestamp_utc": utc_timestamp(),
        "last_updated": summary["lastUpdated"],
        "git_commit": get_git_commit(ROOT),
        "published": not dry_run,
        "publish_attempts": attempts,
        "elapsed_seconds": round(time.monotonic() - started, 2),
        "stats": result.stats,
        "excluded_counts": result.excluded_counts,
        "duplicate_groups": len(result.duplicates),
        "outputs": {
            "summary_json": str((out_dir / "summary.json").as_posix()),
            "project_aggregates_csv": str(aggregates_path.as_posix()),
            "plots_dir": str(plots_dir.as_posix()),
            "run_log": str((out_dir / "run.log").as_posix()),
        },
        "config_used": config_to_dict(config),
    }
    _write_json(out_dir / "metadata.json", metadata)
    logger.info("Summary run complete.")
    return metadata


def main(argv=None) -> int:
    args = parse_args(argv)
    out_dir = Path(args.out)
    try:
        config_path = Path(args.config) if args.config else DEFAULT_CONFIG_PATH
        if args.config and not config_path.exists():
            raise ValueError(f"Config file not found: {config_path}")
        config = load_config(config_path)
        store = build_store(args, config)
        run_summary(store, config, out_dir, dry_run=args.dry_run, generated_at=args.generated_at)
    except (StoreError, ValueError, RuntimeError) as exc:
        logging.getLogger("src.run_summary").error("Summary run failed: %s", exc)
        print(f"Summary run failed: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
