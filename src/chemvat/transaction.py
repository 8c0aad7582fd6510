"""Scoped transactions with lazy snapshots and nested rollback.

A transaction is opened with :meth:`Transaction.open_outer` and may be
nested with :meth:`Transaction.open_nested`. Participants register a
snapshot of their state the first time they are mutated at a given level;
aborting a level restores those snapshots, committing a nested level hands
them to the parent, and committing the outer level makes the changes final.

Only the innermost open transaction may be used, committed or aborted.
Leaving a ``with`` block without committing aborts the transaction,
together with any nested transaction still open inside it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable


class TransactionError(RuntimeError):
    """Raised when a transaction is used out of order or after closing."""


class SnapshotParticipant(ABC):
    """State holder that can be rolled back by a transaction."""

    def update_snapshots(self, transaction: Transaction) -> None:
        transaction.snapshot(self)

    @abstractmethod
    def create_snapshot(self) -> Any:
        """Return an independent copy of the rollback-relevant state."""

    @abstractmethod
    def read_snapshot(self, snapshot: Any) -> None:
        """Restore state from a value returned by :meth:`create_snapshot`."""

    def on_final_commit(self) -> None:
        """Called once the outer transaction commits with changes."""


class Transaction:
    def __init__(self, parent: Transaction | None = None) -> None:
        self.parent = parent
        self.depth = 0 if parent is None else parent.depth + 1
        self._snapshots: dict[int, tuple[SnapshotParticipant, Any]] = {}
        self._success_callbacks: list[Callable[[], None]] = []
        self._child: Transaction | None = None
        self._open = True

    @classmethod
    def open_outer(cls) -> Transaction:
        return cls()

    def open_nested(self) -> Transaction:
        self._check_usable()
        child = Transaction(self)
        self._child = child
        return child

    @property
    def is_open(self) -> bool:
        return self._open

    def snapshot(self, participant: SnapshotParticipant) -> None:
        self._check_usable()
        key = id(participant)
        if key not in self._snapshots:
            self._snapshots[key] = (participant, participant.create_snapshot())

    def on_success(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` after the outer transaction commits."""
        self._check_usable()
        self._success_callbacks.append(callback)

    def commit(self) -> None:
        self._close()
        if self.parent is None:
            for participant, _ in self._snapshots.values():
                participant.on_final_commit()
            for callback in self._success_callbacks:
                callback()
            return
        for key, entry in self._snapshots.items():
            # The parent keeps its own, older snapshot when it has one.
            self.parent._snapshots.setdefault(key, entry)
        self.parent._success_callbacks.extend(self._success_callbacks)

    def abort(self) -> None:
        self._close()
        for participant, state in reversed(list(self._snapshots.values())):
            participant.read_snapshot(state)

    def _check_usable(self) -> None:
        if not self._open:
            raise TransactionError("Transaction is already closed")
        if self._child is not None:
            raise TransactionError("Transaction has an open nested transaction")

    def _close(self) -> None:
        self._check_usable()
        self._open = False
        if self.parent is not None:
            self.parent._child = None

    def __enter__(self) -> Transaction:
        return self

    def __exit__(self, exc_type, exc, traceback) -> bool:
        if self._open:
            # Nested levels left open are unwound innermost first.
            if self._child is not None:
                self._child.__exit__(exc_type, exc, traceback)
            self.abort()
        return False

    def __repr__(self) -> str:
        state = "open" if self._open else "closed"
        return f"Transaction(depth={self.depth}, {state})"
