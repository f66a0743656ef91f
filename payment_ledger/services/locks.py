"""
Per-account locks.

Database row locks serialize balance updates across processes
on PostgreSQL. SQLite ignores FOR UPDATE, and even on
PostgreSQL two threads of one process should not both be
waiting inside the database. The AccountLockManager gives every
account its own mutex inside the process, so concurrent
payments touching the same account queue up here first.

Locks are always taken in ascending account id order. Two
opposite-direction transfers between the same pair therefore
cannot wait on each other in a cycle.
"""

import threading
import time
from contextlib import contextmanager

from payment_ledger.exceptions import LockTimeout


class _Entry:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = threading.Lock()
        self.holders = 0


class AccountLockManager:
    """
    Registry of one mutex per account id.

    Entries are reference counted and dropped once no thread
    holds or waits for them, so the registry does not grow with
    the number of accounts ever seen.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: dict[int, _Entry] = {}

    def _checkout(self, account_id: int) -> _Entry:
        with self._guard:
            entry = self._entries.get(account_id)
            if entry is None:
                entry = _Entry()
                self._entries[account_id] = entry
            entry.holders += 1
            return entry

    def _checkin(self, account_id: int, entry: _Entry) -> None:
        with self._guard:
            entry.holders -= 1
            if entry.holders == 0:
                del self._entries[account_id]

    @contextmanager
    def hold(self, *account_ids: int, timeout: float | None = None):
        """
        Hold the locks for all given accounts for the duration of the block.

        Raises LockTimeout if the locks cannot all be acquired
        within `timeout` seconds. Locks acquired before the
        timeout are released again.
        """
        ordered = sorted(set(account_ids))
        deadline = None if timeout is None else time.monotonic() + timeout
        acquired: list[tuple[int, _Entry]] = []

        try:
            for account_id in ordered:
                entry = self._checkout(account_id)
                if deadline is None:
                    ok = entry.lock.acquire()
                else:
                    remaining = max(0.0, deadline - time.monotonic())
                    ok = entry.lock.acquire(timeout=remaining)
                if not ok:
                    self._checkin(account_id, entry)
                    raise LockTimeout(
                        f"Timed out waiting for lock on account {account_id}"
                    )
                acquired.append((account_id, entry))

            yield ordered
        finally:
            for account_id, entry in reversed(acquired):
                entry.lock.release()
                self._checkin(account_id, entry)

    def is_locked(self, account_id: int) -> bool:
        with self._guard:
            entry = self._entries.get(account_id)
            return entry is not None and entry.lock.locked()
