"""A bounded pool of database connections handing out one transaction per slot."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Optional

logger = logging.getLogger(__name__)

Connector = Callable[[str], Any]


class QueryServiceError(Exception):
    """Raised when the query service cannot connect or manage a transaction."""


def _sqlite_connect(connection_string: str) -> sqlite3.Connection:
    return sqlite3.connect(connection_string, check_same_thread=False)


def _is_open(connection: Any) -> bool:
    closed = getattr(connection, "closed", None)
    if closed is not None and not callable(closed):
        return not closed
    try:
        connection.cursor()
    except Exception:
        return False
    return True


class Transaction:
    """A unit of work running on one pooled connection."""

    def __init__(self, connection: Any) -> None:
        self.connection = connection
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def _check_active(self) -> None:
        if self._finished:
            raise QueryServiceError("transaction has already been finished")

    def query(self, sql: str, params: Sequence[Any] = ()) -> list[tuple]:
        """Run a statement and return all rows it produced."""
        self._check_active()
        cursor = self.connection.cursor()
        cursor.execute(sql, tuple(params))
        if cursor.description is None:
            return []
        return [tuple(row) for row in cursor.fetchall()]

    def commit(self) -> None:
        self._check_active()
        self._finished = True
        self.connection.commit()

    def abort(self) -> None:
        self._check_active()
        self._finished = True
        self.connection.rollback()


@dataclass(eq=False)
class _Slot:
    connection: Any = None
    transaction: Optional[Transaction] = None


@dataclass(eq=False)
class QueryService:
    """Hands out at most ``transactions_limit`` concurrent transactions."""

    connection_string: str
    transactions_limit: int = 8
    connect: Connector = _sqlite_connect
    _slots: list[_Slot] = field(default_factory=list, init=False, repr=False)
    _cond: threading.Condition = field(
        default_factory=threading.Condition, init=False, repr=False
    )

    def _open_connection(self, failure: str) -> Any:
        logger.info("Connecting to database...")
        try:
            connection = self.connect(self.connection_string)
        except Exception as exc:
            logger.error(failure)
            raise QueryServiceError(failure) from exc
        if not _is_open(connection):
            logger.error(failure)
            raise QueryServiceError(failure)
        logger.info("Connected a slot to database")
        return connection

    def start(self) -> None:
        """Prepare the pool and open its first connection."""
        self.transactions_limit = max(1, self.transactions_limit)
        with self._cond:
            self._slots = [_Slot() for _ in range(self.transactions_limit)]
            self._slots[0].connection = self._open_connection(
                "First connection to database failed"
            )

    def start_transaction(self) -> Transaction:
        """Return a transaction on a free slot, waiting until one is free."""
        with self._cond:
            if not self._slots:
                raise QueryServiceError("query service has not been started")
            while True:
                slot = next((s for s in self._slots if s.transaction is None), None)
                if slot is not None:
                    break
                self._cond.wait()
            if slot.connection is None or not _is_open(slot.connection):
                slot.connection = self._open_connection(
                    "Slot connection to database failed"
                )
            slot.transaction = Transaction(slot.connection)
            return slot.transaction

    def _finish(self, transaction: Transaction, action: str) -> None:
        with self._cond:
            slot = next(
                (s for s in self._slots if s.transaction is transaction), None
            )
            if slot is None:
                message = f"could not find the transaction to {action}"
                logger.error(message)
                raise QueryServiceError(message)
            try:
                if action == "commit":
                    transaction.commit()
                else:
                    transaction.abort()
            finally:
                slot.transaction = None
                self._cond.notify()

    def commit_transaction(self, transaction: Transaction) -> None:
        """Commit the transaction and free its slot."""
        self._finish(transaction, "commit")

    def cancel_transaction(self, transaction: Transaction) -> None:
        """Roll back the transaction and free its slot."""
        self._finish(transaction, "cancel")

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """Commit on normal exit, cancel when the block raises."""
        work = self.start_transaction()
        try:
            yield work
        except BaseException:
            self.cancel_transaction(work)
            raise
        self.commit_transaction(work)