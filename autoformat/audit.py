from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol
import json
import logging
import os

from autoformat.errors import PersistenceFailure

logger = logging.getLogger(__name__)

AUDIT_STORAGE_KEY = "autoformat.audit_log"
MAX_AUDIT_ENTRIES = 50


@dataclass
class AuditEntry:
    timestamp: datetime
    changes_applied: int
    categories: List[str] = field(default_factory=list)
    duration_ms: float = 0.0
    outcome: str = "done"  # done|cancelled|failed

    def headline(self) -> str:
        """One-line result for people, led by the outcome."""
        title = {"done": "Done", "cancelled": "Cancelled", "failed": "Failed"}.get(self.outcome, self.outcome)
        return (
            f"{title}. Applied {self.changes_applied} change(s) "
            f"({', '.join(self.categories) or 'none'}) in {self.duration_ms:.0f}ms"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "changes_applied": self.changes_applied,
            "categories": list(self.categories),
            "duration_ms": self.duration_ms,
            "outcome": self.outcome,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AuditEntry":
        return cls(
            timestamp=datetime.fromisoformat(d["timestamp"]),
            changes_applied=int(d["changes_applied"]),
            categories=list(d.get("categories") or []),
            duration_ms=float(d.get("duration_ms", 0.0)),
            outcome=d.get("outcome", "done"),
        )


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str) -> None: ...
    def remove(self, key: str) -> None: ...


class MemoryStore:
    def __init__(self, data: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(data or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore:
    """String key-value store kept as one JSON object on disk."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceFailure(f"Cannot read {self.path}: {e}") from e
        return data if isinstance(data, dict) else {}

    def _dump(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)
        except OSError as e:
            raise PersistenceFailure(f"Cannot write {self.path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        try:
            data = self._load()
        except PersistenceFailure as e:
            logger.warning(f"Discarding unreadable store: {e}")
            data = {}
        data[key] = value
        self._dump(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._dump(data)


class AuditLogger:
    """
    Most-recent-first run history, capped at 50 entries.

    History lives in an injected key-value store. Reads degrade to an empty
    history on any storage or parse error, and writes never raise: a logging
    failure must not fail a formatting run.
    """

    def __init__(self, store: KeyValueStore, key: str = AUDIT_STORAGE_KEY, limit: int = MAX_AUDIT_ENTRIES):
        self.store = store
        self.key = key
        self.limit = limit

    def log_format_operation(self, entry: AuditEntry) -> None:
        try:
            history = self.get_audit_history()
            history.insert(0, entry)
            del history[self.limit:]
            self.store.set(self.key, json.dumps([e.to_dict() for e in history]))
        except Exception as e:
            logger.warning(f"Failed to save audit log: {e}")

    def get_audit_history(self) -> List[AuditEntry]:
        try:
            raw = self.store.get(self.key)
            if not raw:
                return []
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError(f"expected a JSON array, got {type(data).__name__}")
            return [AuditEntry.from_dict(d) for d in data]
        except Exception as e:
            logger.warning(f"Failed to load audit log: {e}")
            return []

    def clear_audit_history(self) -> None:
        try:
            self.store.remove(self.key)
        except Exception as e:
            logger.warning(f"Failed to clear audit log: {e}")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)
