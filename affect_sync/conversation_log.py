"""Append-only conversation history."""

import threading


class ConversationLog:
    def __init__(self):
        self._entries = []
        # Flask threads read while the session loop appends
        self._lock = threading.Lock()

    def append(self, message):
        with self._lock:
            self._entries.append(message)

    def all(self):
        """Snapshot of every entry in insertion order."""
        with self._lock:
            return tuple(self._entries)

    def since(self, index):
        """Entries appended after the first `index` ones."""
        with self._lock:
            return tuple(self._entries[max(index, 0):])

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def __iter__(self):
        return iter(self.all())
