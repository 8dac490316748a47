# vaultnote/services/message_store.py

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from vaultnote.core.errors import DuplicateIdError, StoreUnavailable
from vaultnote.core.ids import token_prefix
from vaultnote.infra.database import db_session
from vaultnote.models.message import Message

logger = logging.getLogger(__name__)

_COLUMNS = (
    Message.id,
    Message.ciphertext,
    Message.password_hash,
    Message.created_at,
    Message.expire_at,
    Message.consumed,
)


@dataclass(frozen=True)
class MessageRecord:
    """Detached snapshot of one row; safe to use after the session closed."""

    id: str
    ciphertext: bytes
    password_hash: Optional[str]
    created_at: datetime
    expire_at: datetime
    consumed: bool = False

    @classmethod
    def from_row(cls, row) -> "MessageRecord":
        return cls(
            id=row.id,
            ciphertext=bytes(row.ciphertext),
            password_hash=row.password_hash,
            created_at=row.created_at,
            expire_at=row.expire_at,
            consumed=bool(row.consumed),
        )


@dataclass(frozen=True)
class SweepResult:
    expired: int
    consumed: int

    @property
    def total(self) -> int:
        return self.expired + self.consumed


class MessageStore:
    """
    Keyed storage for message records.

    The only mutation after insert is the consumed flag, flipped by
    fetch_and_mark with a conditional UPDATE so that concurrent readers
    (threads or processes sharing the database) cannot both win.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        try:
            with db_session(self._session_factory) as session:
                yield session
        except SQLAlchemyError as e:
            logger.exception("Message store %s failed", operation)
            raise StoreUnavailable(f"message store {operation} failed") from e

    def insert(self, record: MessageRecord) -> None:
        with self._session("insert") as session:
            if session.get(Message, record.id) is not None:
                raise DuplicateIdError(record.id)
            session.add(Message(
                id=record.id,
                ciphertext=record.ciphertext,
                password_hash=record.password_hash,
                created_at=record.created_at,
                expire_at=record.expire_at,
                consumed=False,
            ))
            try:
                session.flush()
            except IntegrityError as e:
                # Lost a race with a concurrent insert of the same id
                raise DuplicateIdError(record.id) from e

    def get(self, message_id: str) -> Optional[MessageRecord]:
        """Non-mutating read; returns the row whatever its state."""
        with self._session("get") as session:
            row = session.execute(
                select(*_COLUMNS).where(Message.id == message_id)
            ).first()
        return MessageRecord.from_row(row) if row is not None else None

    def fetch_and_mark(self, message_id: str, now: datetime) -> Optional[MessageRecord]:
        """
        Atomically flip consumed false -> true for a live record and return
        its pre-mutation contents. Returns None, without touching anything,
        when the record is absent, consumed, or expired at ``now``.
        """
        live = (
            Message.id == message_id,
            Message.consumed.is_(False),
            Message.expire_at > now,
        )

        with self._session("fetch_and_mark") as session:
            if session.get_bind().dialect.update_returning:
                row = session.execute(
                    update(Message)
                    .where(*live)
                    .values(consumed=True)
                    .returning(*_COLUMNS[:-1])
                    .execution_options(synchronize_session=False)
                ).first()
            else:
                # The UPDATE holds the row lock until commit, so the
                # follow-up SELECT sees exactly the row this caller won.
                result = session.execute(
                    update(Message)
                    .where(*live)
                    .values(consumed=True)
                    .execution_options(synchronize_session=False)
                )
                row = None
                if result.rowcount == 1:
                    row = session.execute(
                        select(*_COLUMNS[:-1]).where(Message.id == message_id)
                    ).first()

        if row is None:
            return None

        logger.debug("Marked message %s consumed", token_prefix(message_id))
        return MessageRecord(
            id=row.id,
            ciphertext=bytes(row.ciphertext),
            password_hash=row.password_hash,
            created_at=row.created_at,
            expire_at=row.expire_at,
            consumed=False,
        )

    def delete(self, message_id: str) -> None:
        with self._session("delete") as session:
            session.execute(
                delete(Message)
                .where(Message.id == message_id)
                .execution_options(synchronize_session=False)
            )

    def delete_expired_and_consumed(self, now: datetime,
                                    consumed_older_than: datetime) -> SweepResult:
        with self._session("sweep") as session:
            expired = session.execute(
                delete(Message)
                .where(Message.expire_at <= now)
                .execution_options(synchronize_session=False)
            ).rowcount
            consumed = session.execute(
                delete(Message)
                .where(
                    Message.consumed.is_(True),
                    Message.created_at <= consumed_older_than,
                )
                .execution_options(synchronize_session=False)
            ).rowcount
        return SweepResult(expired=expired or 0, consumed=consumed or 0)
