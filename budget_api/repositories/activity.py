# repositories/activity.py
from __future__ import annotations
from datetime import datetime
from typing import Any, Callable, Dict, List

from budget_api.core.store import BaseStore
from budget_api.core.timeutils import to_iso, utcnow


class ActivityLog:
    """Append-only audit trail under ``userActivity/{uid}``."""

    def __init__(self, store: BaseStore, now: Callable[[], datetime] = utcnow):
        self.store = store
        self.now = now

    def record(self, user_id: str, action: str, **context: Any) -> str:
        entry = {**context, "action": action, "timestamp": to_iso(self.now())}
        return self.store.push(f"userActivity/{user_id}", entry)

    def list(self, user_id: str) -> List[Dict[str, Any]]:
        entries = self.store.get(f"userActivity/{user_id}") or {}
        # push keys sort by creation time
        return [{"id": k, **v} for k, v in sorted(entries.items(), reverse=True)]
