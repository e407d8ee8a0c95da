"""Record store adapters.

The engine only ever needs three things from storage: read every line item record,
read the currently published summary, and replace that summary wholesale.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Callable, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)

SUMMARY_COLLECTION = "metadata"
SUMMARY_DOCUMENT = "dashboard_summary"
RECORDS_COLLECTION = "projects"


class StoreError(Exception):
    """Base class for record store failures."""


class StoreReadError(StoreError):
    pass


class StoreWriteError(StoreError):
    pass


class RecordStore:
    def read_records(self) -> List[dict]:
        raise NotImplementedError

    def read_summary(self) -> Optional[dict]:
        raise NotImplementedError

    def write_summary(self, summary: dict) -> None:
        raise NotImplementedError


class JsonFileStore(RecordStore):
    """File-backed store: records from JSON or CSV, summary as one JSON document."""

    def __init__(self, records_path: Path, summary_path: Path):
        self.records_path = Path(records_path)
        self.summary_path = Path(summary_path)

    def read_records(self) -> List[dict]:
        path = self.records_path
        try:
            if path.suffix.lower() == ".csv":
                df = pd.read_csv(path, dtype=str, keep_default_na=False)
                return df.to_dict(orient="records")
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StoreReadError(f"Failed to read records from {path}: {exc}") from exc

        if isinstance(payload, dict):
            records = payload.get("records") or payload.get("data") or []
        elif isinstance(payload, list):
            records = payload
        else:
            raise StoreReadError(f"Unsupported JSON structure in {path}")
        if not all(isinstance(record, dict) for record in records):
            raise StoreReadError(f"Every record in {path} must be a JSON object")
        return records

    def read_summary(self) -> Optional[dict]:
        if not self.summary_path.exists():
            return None
        try:
            return json.loads(self.summary_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StoreReadError(f"Failed to read summary {self.summary_path}: {exc}") from exc

    def write_summary(self, summary: dict) -> None:
        # Write beside the target, then swap, so readers never see a half-written summary.
        tmp_path = self.summary_path.with_name(self.summary_path.name + ".tmp")
        try:
            self.summary_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(summary, indent=2, sort_keys=True), encoding="utf-8")
            tmp_path.replace(self.summary_path)
        except OSError as exc:
            raise StoreWriteError(f"Failed to write summary {self.summary_path}: {exc}") from exc


class FirestoreStore(RecordStore):
    """Firestore-backed store.

    Records are read page by page, sequentially, with a fixed pause between pages to
    stay under the provider's read rate limits.
    """

    def __init__(
        self,
        client,
        collection: str = RECORDS_COLLECTION,
        summary_collection: str = SUMMARY_COLLECTION,
        summary_document: str = SUMMARY_DOCUMENT,
        page_size: int = 100,
        page_delay_seconds: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if page_size < 1:
            raise ValueError("page_size must be >= 1.")
        self.client = client
        self.collection = collection
        self.summary_collection = summary_collection
        self.summary_document = summary_document
        self.page_size = page_size
        self.page_delay_seconds = page_delay_seconds
        self.sleep = sleep

    @classmethod
    def from_service_account(cls, credentials_path: Path, project: Optional[str] = None, **kwargs):
        try:
            from google.cloud import firestore
        except ImportError as exc:  # pragma: no cover
            raise RuntimeError(
                "google-cloud-firestore is required. Install with: "
                "python -m pip install google-cloud-firestore"
            ) from exc
        client = firestore.Client.from_service_account_json(str(credentials_path), project=project)
        return cls(client, **kwargs)

    def _summary_ref(self):
        return self.client.collection(self.summary_collection).document(self.summary_document)

    def read_records(self) -> List[dict]:
        collection = self.client.collection(self.collection)
        query = collection.limit(self.page_size)
        records: List[dict] = []
        page_num = 0
        while True:
            page_num += 1
            try:
                docs = list(query.stream())
            except Exception as exc:
                raise StoreReadError(f"Failed to read page {page_num} of {self.collection}: {exc}") from exc

            for doc in docs:
                record = {"id": doc.id}
                record.update(doc.to_dict() or {})
                records.append(record)
            logger.info("Page %s: %s documents (total: %s)", page_num, len(docs), len(records))

            if len(docs) < self.page_size:
                break
            query = collection.start_after(docs[-1]).limit(self.page_size)
            self.sleep(self.page_delay_seconds)
        return records

    def read_summary(self) -> Optional[dict]:
        try:
            snapshot = self._summary_ref().get()
        except Exception as exc:
            raise StoreReadError(f"Failed to read {self.summary_collection}/{self.summary_document}: {exc}") from exc
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    def write_summary(self, summary: dict) -> None:
        try:
            # set() without merge replaces the whole document.
            self._summary_ref().set(summary)
        except Exception as exc:
            raise StoreWriteError(f"Failed to write {self.summary_collection}/{self.summary_document}: {exc}") from exc
