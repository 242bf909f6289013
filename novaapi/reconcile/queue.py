from typing import Set


def identity(namespace: str, name: str) -> str:
    return f"{namespace}/{name}"


class ReconcileQueue:
    """Pending reconciliation requests, at most one per resource identity.

    A request made while one is already pending for the same identity is
    dropped; a request made while a pass is running is kept for the next one.
    Handlers share one event loop and nothing here awaits, so no locking.
    """

    def __init__(self):
        self._pending: Set[str] = set()

    def request(self, key: str) -> bool:
        """Enqueue `key`. Returns False if it was already pending."""
        if key in self._pending:
            return False
        self._pending.add(key)
        return True

    def take(self, key: str) -> bool:
        """Claim the pending request for `key`, if there is one."""
        if key not in self._pending:
            return False
        self._pending.discard(key)
        return True

    def forget(self, key: str) -> None:
        """Drop the pending request of a deleted resource."""
        self._pending.discard(key)

    def __contains__(self, key: str) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)
