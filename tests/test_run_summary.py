import json
import shutil
import subprocess
import sys
import unittest
from pathlib import Path

RECORDS = [
    {"id": "a1", "customer": "A", "projectNumber": "100-X", "projectName": "Clinic",
     "status": "Bid Submitted", "pmcGroup": "Framing", "sales": "$1,000", "hours": 8,
     "dateCreated": "2026-01-01"},
    {"id": "a2", "customer": "A", "projectNumber": "100-X", "projectName": "Clinic",
     "status": "Bid Submitted", "pmcGroup": "Drywall", "sales": "500", "hours": 4,
     "dateCreated": "2026-01-02"},
    {"id": "b1", "customer": "B", "projectNumber": "100-X", "projectName": "Clinic",
     "status": "In Progress", "pmcGroup": "Framing", "sales": 2000, "hours": 10,
     "dateCreated": "2025-12-01"},
    {"id": "c1", "customer": "C", "projectNumber": "200-Y", "projectName": "Library",
     "status": "Bid Submitted", "pmcGroup": "Framing", "sales": 300, "hours": 6,
     "dateCreated": "2026-03-01"},
]


class SummaryRunTest(unittest.TestCase):
    def setUp(self):
        self.root = Path(__file__).resolve().parents[1]
        self.work = self.root / "outputs" / "test_summary_run"
        if self.work.exists():
            shutil.rmtree(self.work)
        self.work.mkdir(parents=True)
        self.records = self.work / "records.json"
        self.records.write_text(json.dumps({"records": RECORDS}), encoding="utf-8")
        self.summary = self.work / "published" / "dashboard_summary.json"

    def run_script(self, out_dir, *extra):
        cmd = [
            sys.executable,
            str(self.root / "scripts" / "run_summary.py"),
            "--records",
            str(self.records),
            "--summary",
            str(self.summary),
            "--out",
            str(out_dir),
            "--generated-at",
            "2026-10-19T12:00:00+00:00",
            *extra,
        ]
        result = subprocess.run(cmd, capture_output=True, text=True)
        if result.returncode != 0:
            print("STDOUT:\n", result.stdout)
            print("STDERR:\n", result.stderr)
        return result

    def test_run_publishes_and_writes_artifacts(self):
        out_dir = self.work / "run1"
        result = self.run_script(out_dir)
        self.assertEqual(result.returncode, 0)

        published = json.loads(self.summary.read_text(encoding="utf-8"))
        self.assertEqual(published["totalSales"], 2300)
        self.assertEqual(sorted(published["contractors"]), ["B", "C"])
        self.assertEqual(published["laborBreakdown"], {"Framing": 6.0})

        for name in ["summary.json", "project_aggregates.csv", "conflicts.json",
                     "duplicates.json", "metadata.json", "run.log"]:
            self.assertTrue((out_dir / name).exists(), name)
        self.assertGreaterEqual(len(list((out_dir / "plots").glob("*.png"))), 2)

        conflicts = json.loads((out_dir / "conflicts.json").read_text(encoding="utf-8"))
        self.assertEqual(conflicts[0]["winner"], "B")
        self.assertEqual(conflicts[0]["rule"], "priority_status")

        # Second run compares against the first and republishes the same bytes.
        first_bytes = self.summary.read_bytes()
        result = self.run_script(self.work / "run2")
        self.assertEqual(result.returncode, 0)
        self.assertEqual(self.summary.read_bytes(), first_bytes)
        self.assertTrue((self.work / "run2" / "comparison.json").exists())

    def test_dry_run_does_not_publish(self):
        result = self.run_script(self.work / "dry", "--dry-run")
        self.assertEqual(result.returncode, 0)
        self.assertFalse(self.summary.exists())
        metadata = json.loads((self.work / "dry" / "metadata.json").read_text(encoding="utf-8"))
        self.assertFalse(metadata["published"])

    def test_corrupt_previous_summary_is_replaced(self):
        self.summary.parent.mkdir(parents=True)
        self.summary.write_text("{truncated", encoding="utf-8")
        out_dir = self.work / "recover"
        result = self.run_script(out_dir)
        self.assertEqual(result.returncode, 0)

        published = json.loads(self.summary.read_text(encoding="utf-8"))
        self.assertEqual(published["totalSales"], 2300)
        self.assertFalse((out_dir / "comparison.json").exists())
        self.assertIn("Previous summary unreadable", (out_dir / "run.log").read_text(encoding="utf-8"))

    def test_unreadable_records_fail_without_publishing(self):
        self.records.write_text("{broken", encoding="utf-8")
        result = self.run_script(self.work / "broken")
        self.assertEqual(result.returncode, 1)
        self.assertFalse(self.summary.exists())


if __name__ == "__main__":
    unittest.main()
