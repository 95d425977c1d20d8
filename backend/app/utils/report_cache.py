"""
Key/value store for the last analysis report.

Reports are kept in memory and, when a path is given, mirrored to a JSON
file so they survive restarts. Freshness is judged from the report's own
`metadata.analyzedAt` timestamp.
"""

import json
import os
import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import structlog
from pydantic import ValidationError

from forecast.report import AnalysisReport

logger = structlog.get_logger()


def is_recent(report: Optional[AnalysisReport], now: Optional[datetime] = None,
              max_age_hours: float = 24) -> bool:
    if report is None:
        return False
    analyzed_at = report.metadata.analyzed_at
    if analyzed_at.tzinfo is None:
        analyzed_at = analyzed_at.astimezone()
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.astimezone()
    return now - analyzed_at < timedelta(hours=max_age_hours)


class ReportCache:
    def __init__(self, path: Optional[str] = None, max_age_hours: float = 24):
        self.path = path
        self.max_age_hours = max_age_hours
        self._lock = threading.Lock()
        self._data: Dict[str, dict] = self._read_file()

    def _read_file(self) -> Dict[str, dict]:
        if not self.path or not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Failed to load report cache", path=self.path, error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def _write_file(self):
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w") as f:
            json.dump(self._data, f)
        os.replace(tmp_path, self.path)

    def get(self, key: str) -> Optional[AnalysisReport]:
        with self._lock:
            raw = self._data.get(key)
        if raw is None:
            return None
        try:
            return AnalysisReport.model_validate(raw)
        except ValidationError as e:
            logger.error("Stored report is invalid", key=key, error=str(e))
            return None

    def set(self, key: str, report: AnalysisReport) -> bool:
        with self._lock:
            previous = self._data.get(key)
            self._data[key] = report.to_json_dict()
            if not self.path:
                return True
            try:
                self._write_file()
            except OSError as e:
                logger.error("Failed to save report", key=key, error=str(e))
                if previous is None:
                    self._data.pop(key, None)
                else:
                    self._data[key] = previous
                return False
        return True

    def clear(self, key: str) -> bool:
        with self._lock:
            self._data.pop(key, None)
            if not self.path:
                return True
            try:
                self._write_file()
            except OSError as e:
                logger.error("Failed to clear report", key=key, error=str(e))
                return False
        return True

    def has_recent(self, key: str, now: Optional[datetime] = None) -> bool:
        return is_recent(self.get(key), now=now, max_age_hours=self.max_age_hours)
