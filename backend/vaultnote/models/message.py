# vaultnote/models/message.py

from sqlalchemy import Boolean, Column, DateTime, Index, LargeBinary, String

from vaultnote.models.base import Base


class Message(Base):
    __tablename__ = "messages"

    # 128-bit hex token, also the retrieval key
    id = Column(String(32), primary_key=True)

    # nonce + AES-GCM ciphertext + tag, never plaintext
    ciphertext = Column(LargeBinary, nullable=False)

    # scrypt hash, present only for password protected messages
    password_hash = Column(String(255), nullable=True)

    created_at = Column(DateTime, nullable=False)
    expire_at = Column(DateTime, nullable=False)

    # Flipped false -> true exactly once, by the winning read
    consumed = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("idx_messages_expire_at", "expire_at"),
        Index("idx_messages_consumed", "consumed"),
    )
