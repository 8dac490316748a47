# vaultnote/core/message.py

import logging
from datetime import datetime
from typing import Callable, Optional

from vaultnote.core.config import MAX_TTL_HOURS, MIN_TTL_HOURS, Settings
from vaultnote.core.crypto import MessageCodec
from vaultnote.core.errors import DecryptionError, InvalidInput, StoreUnavailable
from vaultnote.core.ids import is_valid_id, new_id, token_prefix
from vaultnote.core.message_logic import clamp_ttl, compute_expire_at, is_expired, utcnow
from vaultnote.core.outcomes import (
    ConsumeOutcome,
    CreatedMessage,
    NotFoundOrExpired,
    PeekOutcome,
    PeekResult,
    RequiresPassword,
    Revealed,
    WrongPassword,
)
from vaultnote.services.janitor import Janitor
from vaultnote.services.message_store import MessageRecord, MessageStore

logger = logging.getLogger(__name__)


def _require_text(value: str, error: str) -> None:
    # Lone surrogates survive JSON decoding but cannot be encoded as UTF-8
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        raise InvalidInput(error)


def _normalize_password(password: Optional[str]) -> Optional[str]:
    if password is None:
        return None
    return password.strip() or None


class LifecycleEngine:
    """
    Creates, peeks at and consumes one-time messages.

    Reads of password protected messages happen in two phases: a
    non-mutating lookup checks the password, and only a verified caller
    moves on to the store's atomic fetch-and-mark. A wrong password never
    consumes the message.
    """

    def __init__(
        self,
        store: MessageStore,
        codec: MessageCodec,
        janitor: Optional[Janitor] = None,
        max_content_length: int = 10000,
        default_ttl_hours: int = 24,
        min_ttl_hours: int = MIN_TTL_HOURS,
        max_ttl_hours: int = MAX_TTL_HOURS,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
    ):
        self.store = store
        self.codec = codec
        self.janitor = janitor
        self.max_content_length = max_content_length
        self.default_ttl_hours = default_ttl_hours
        self.min_ttl_hours = min_ttl_hours
        self.max_ttl_hours = max_ttl_hours
        self._clock = clock
        self._new_id = id_factory

    @classmethod
    def from_settings(cls, settings: Settings, store: MessageStore, codec: MessageCodec,
                      janitor: Optional[Janitor] = None, **kwargs) -> "LifecycleEngine":
        return cls(
            store,
            codec,
            janitor=janitor,
            max_content_length=settings.max_content_length,
            default_ttl_hours=settings.default_ttl_hours,
            min_ttl_hours=settings.min_ttl_hours,
            max_ttl_hours=settings.max_ttl_hours,
            **kwargs,
        )

    # ---------- CREATE ----------

    def create(self, content: str, password: Optional[str] = None,
               ttl_hours: Optional[int] = None,
               now: Optional[datetime] = None) -> CreatedMessage:
        """Encrypt and store a message; returns public metadata only"""
        if not isinstance(content, str) or not content.strip():
            raise InvalidInput("Message content must not be empty")
        if len(content) > self.max_content_length:
            raise InvalidInput(
                f"Message too long, at most {self.max_content_length} characters allowed"
            )
        _require_text(content, "Message content is not valid text")

        if ttl_hours is None:
            ttl_hours = self.default_ttl_hours
        ttl_hours = clamp_ttl(ttl_hours, self.min_ttl_hours, self.max_ttl_hours)

        # Surrounding whitespace is dropped; blank means no password
        password = _normalize_password(password)
        if password is not None:
            _require_text(password, "Password is not valid text")

        created_at = now or self._clock()
        record = MessageRecord(
            id=self._new_id(),
            ciphertext=self.codec.encrypt(content),
            password_hash=self.codec.hash_password(password) if password else None,
            created_at=created_at,
            expire_at=compute_expire_at(created_at, ttl_hours),
        )
        self.store.insert(record)

        logger.info(
            "Created message %s (ttl=%dh, password=%s)",
            token_prefix(record.id), ttl_hours, record.password_hash is not None,
        )
        return CreatedMessage(
            token=record.id,
            created_at=record.created_at,
            expire_at=record.expire_at,
        )

    # ---------- READ ----------

    def _lookup(self, token: str, now: datetime) -> Optional[MessageRecord]:
        """Non-mutating read. Dead records found on the way are discarded."""
        if not is_valid_id(token):
            return None

        record = self.store.get(token)
        if record is None:
            return None

        if record.consumed or is_expired(record.expire_at, now):
            self._discard(token)
            return None
        return record

    def _discard(self, token: str) -> None:
        try:
            self.store.delete(token)
        except StoreUnavailable as e:
            logger.warning("Lazy delete of %s failed: %s", token_prefix(token), e)

    def peek(self, token: str, now: Optional[datetime] = None) -> PeekOutcome:
        record = self._lookup(token, now or self._clock())
        if record is None:
            return NotFoundOrExpired()
        return PeekResult(requires_password=record.password_hash is not None)

    def consume(self, token: str, password: Optional[str] = None,
                now: Optional[datetime] = None) -> ConsumeOutcome:
        """
        Return the plaintext exactly once. Delivery is at most once: the
        record is marked consumed before decryption, so a caller who loses
        the response loses the message.
        """
        now = now or self._clock()
        record = self._lookup(token, now)
        if record is None:
            return NotFoundOrExpired()

        if record.password_hash is not None:
            password = _normalize_password(password)
            if not password:
                return RequiresPassword()
            if not self.codec.verify_password(password, record.password_hash):
                logger.warning("Wrong password for message %s", token_prefix(token))
                return WrongPassword()

        won = self.store.fetch_and_mark(token, now)
        if won is None:
            # Another reader got there first, or it expired in between
            return NotFoundOrExpired()

        try:
            plaintext = self.codec.decrypt(won.ciphertext)
        except DecryptionError:
            logger.exception("Stored message %s could not be decrypted", token_prefix(token))
            raise

        logger.info("Message %s consumed", token_prefix(token))
        if self.janitor is not None:
            self.janitor.maybe_run(now)
        return Revealed(plaintext=plaintext)
