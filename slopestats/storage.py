from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .models import EnrichmentRecord


logger = logging.getLogger(__name__)


def write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(".tmp")
    try:
        tmp_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        tmp_path.replace(path)
    except (OSError, TypeError, ValueError):
        tmp_path.unlink(missing_ok=True)
        raise


def read_json(path: Path) -> Any | None:
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return None


class EnrichmentCache:
    """Enrichment records keyed by activity id, backed by one JSON file.

    Mutations stay in memory until ``persist()``; the file is rewritten whole.
    """

    def __init__(self, path: Path, records: dict[str, EnrichmentRecord] | None = None):
        self.path = path
        self._records: dict[str, EnrichmentRecord] = dict(records or {})
        self.dirty = False

    @classmethod
    def load(cls, path: Path) -> "EnrichmentCache":
        if not path.exists():
            logger.info("No enrichment cache at %s; starting empty.", path)
            return cls(path)

        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Enrichment cache %s is unreadable (%s); starting empty.", path, exc)
            return cls(path)

        if not isinstance(raw, list):
            logger.warning("Enrichment cache %s is not a record list; starting empty.", path)
            return cls(path)

        records: dict[str, EnrichmentRecord] = {}
        skipped = 0
        for item in raw:
            record = EnrichmentRecord.from_json(item)
            if record is None:
                skipped += 1
                continue
            records[record.activity_id] = record
        if skipped:
            logger.warning("Skipped %s malformed entries in enrichment cache %s.", skipped, path)
        logger.debug("Loaded %s enrichment records from %s.", len(records), path)
        return cls(path, records)

    def get(self, activity_id: int | str) -> EnrichmentRecord | None:
        return self._records.get(str(activity_id).strip())

    def put(self, activity_id: int | str, record: EnrichmentRecord) -> None:
        self._records[str(activity_id).strip()] = record
        self.dirty = True

    def discard(self, activity_id: int | str) -> None:
        if self._records.pop(str(activity_id).strip(), None) is not None:
            self.dirty = True

    def records(self) -> list[EnrichmentRecord]:
        return [self._records[key] for key in sorted(self._records)]

    def persist(self) -> bool:
        payload = [record.to_json() for record in self.records()]
        try:
            write_json(self.path, payload)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Could not write enrichment cache %s: %s", self.path, exc)
            return False
        self.dirty = False
        logger.info("Saved %s enrichment records to %s.", len(payload), self.path)
        return True

    def __len__(self) -> int:
        return len(self._records)
