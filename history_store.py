"""
JSON-file scan history for Site Audit
"""
import os
import json
import logging
import threading
from typing import List, Optional

from models import ScanRecord

logger = logging.getLogger(__name__)


class HistoryStore:
    """Append-only scan history kept in a single JSON file"""

    def __init__(self, file_path: str):
        self.file_path = file_path
        self._lock = threading.Lock()
        directory = os.path.dirname(os.path.abspath(file_path))
        os.makedirs(directory, exist_ok=True)

    def add_record(self, record: ScanRecord):
        """Load all records, append one and write the file back"""
        with self._lock:
            records = self._load()
            records.append(record)
            self._save(records)
        logger.info(f"Saved scan history for {record.url} ({len(records)} records)")

    def get_history(self, url: str) -> List[ScanRecord]:
        """Records for a URL (case-insensitive), newest first"""
        with self._lock:
            records = self._load()

        matching = [record for record in records if record.url.lower() == url.lower()]
        matching.sort(key=lambda record: record.timestamp, reverse=True)
        return matching

    def get_latest(self, url: str) -> Optional[ScanRecord]:
        history = self.get_history(url)
        return history[0] if history else None

    def _load(self) -> List[ScanRecord]:
        if not os.path.exists(self.file_path):
            return []

        with open(self.file_path, 'r', encoding='utf-8') as f:
            content = f.read()
        if not content.strip():
            return []

        return [ScanRecord.from_dict(item) for item in json.loads(content)]

    def _save(self, records: List[ScanRecord]):
        with open(self.file_path, 'w', encoding='utf-8') as f:
            json.dump([record.to_dict() for record in records], f, indent=2)
