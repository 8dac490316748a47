# vaultnote/core/errors.py


class VaultNoteError(Exception):
    """Base class for every error raised by the message lifecycle."""


class InvalidInput(VaultNoteError):
    """Caller supplied content we refuse to store. The message is safe to show."""


class DuplicateIdError(VaultNoteError):
    def __init__(self, message_id: str):
        super().__init__(f"message id already exists: {message_id[:8]}...")
        self.message_id = message_id


class InternalError(VaultNoteError):
    """Infrastructure or data corruption failure. Never shown to callers verbatim."""


class StoreUnavailable(InternalError):
    pass


class DecryptionError(InternalError):
    pass
