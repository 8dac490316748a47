# vaultnote/core/outcomes.py
#
# Closed set of results handed back by the lifecycle engine. Callers branch on
# the type (isinstance / match) instead of catching exceptions.

from dataclasses import dataclass
from datetime import datetime
from typing import Union


@dataclass(frozen=True)
class CreatedMessage:
    token: str
    created_at: datetime
    expire_at: datetime


@dataclass(frozen=True)
class PeekResult:
    requires_password: bool


@dataclass(frozen=True)
class Revealed:
    plaintext: str


@dataclass(frozen=True)
class NotFoundOrExpired:
    """Absent, expired and already consumed all look the same from outside."""


@dataclass(frozen=True)
class RequiresPassword:
    pass


@dataclass(frozen=True)
class WrongPassword:
    pass


PeekOutcome = Union[PeekResult, NotFoundOrExpired]
ConsumeOutcome = Union[Revealed, NotFoundOrExpired, RequiresPassword, WrongPassword]
