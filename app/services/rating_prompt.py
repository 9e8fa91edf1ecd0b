# app/services/rating_prompt.py
from __future__ import annotations

import threading
from typing import Any, Set, Tuple

Key = Tuple[str, str, str]


class RatingPromptTracker:
    """
    Per-session memory of rating prompts.

    A party sees the prompt at most once per session: the first qualifying
    view claims it, and rating or skipping also settles it. Nothing is
    persisted; a new session may prompt again if the party still has not rated.
    """

    def __init__(self):
        self._settled: Set[Key] = set()
        self._lock = threading.Lock()

    @staticmethod
    def _key(session_id: Any, transaction_id: Any, dealer_id: Any) -> Key:
        return (str(session_id), str(transaction_id), str(dealer_id))

    def claim(self, session_id: Any, transaction_id: Any, dealer_id: Any) -> bool:
        """True the first time for this key, False afterwards."""
        key = self._key(session_id, transaction_id, dealer_id)
        with self._lock:
            if key in self._settled:
                return False
            self._settled.add(key)
            return True

    def settle(self, session_id: Any, transaction_id: Any, dealer_id: Any) -> None:
        with self._lock:
            self._settled.add(self._key(session_id, transaction_id, dealer_id))

    def is_settled(self, session_id: Any, transaction_id: Any, dealer_id: Any) -> bool:
        with self._lock:
            return self._key(session_id, transaction_id, dealer_id) in self._settled

    def clear(self) -> None:
        with self._lock:
            self._settled.clear()


# process-wide tracker shared by request-scoped services
rating_prompts = RatingPromptTracker()
