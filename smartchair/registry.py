# Chair Registry - identifiers seen by this process (append-only)
import threading
from typing import List


class ChairRegistry:
    """Set of chair identifiers, iterated in insertion order"""

    def __init__(self):
        self._ids: dict = {}
        self._lock = threading.Lock()

    def register(self, chair_id: str) -> bool:
        """Register a chair id; returns True only the first time it is seen"""
        with self._lock:
            if chair_id in self._ids:
                return False
            self._ids[chair_id] = None
            return True

    def list_ids(self) -> List[str]:
        with self._lock:
            return list(self._ids)

    def clear(self) -> None:
        with self._lock:
            self._ids.clear()

    def __contains__(self, chair_id) -> bool:
        return chair_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)
