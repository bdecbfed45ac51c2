# utils/typing_tracker.py
"""In-process typing presence per complaint, expired lazily on read."""
import threading
import time

IDLE = {"studentTyping": False, "adminTyping": False}


class TypingTracker:
    """
    complaint_id -> {"studentTyping", "adminTyping", "updated_at"}.

    Process-local: each worker keeps its own map, so a multi-instance
    deployment needs a shared store behind the same interface.
    """

    def __init__(self, ttl_seconds=5.0, clock=time.monotonic):
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._state = {}

    def set_typing(self, complaint_id, role, is_typing):
        key = str(complaint_id)
        is_typing = bool(is_typing)
        with self._lock:
            entry = self._state.setdefault(key, {"studentTyping": False, "adminTyping": False})
            if role == "student":
                entry["studentTyping"] = is_typing
            elif role in ("admin", "superadmin"):
                entry["adminTyping"] = is_typing
            entry["updated_at"] = self._clock()

    def get_typing(self, complaint_id):
        key = str(complaint_id)
        with self._lock:
            entry = self._state.get(key)
            if entry is None:
                return dict(IDLE)
            if self._clock() - entry["updated_at"] > self.ttl_seconds:
                del self._state[key]
                return dict(IDLE)
            return {"studentTyping": entry["studentTyping"], "adminTyping": entry["adminTyping"]}

