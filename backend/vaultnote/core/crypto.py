# vaultnote/core/crypto.py

import base64
import hashlib
import os

from cryptography.exceptions import InvalidKey, InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from vaultnote.core.errors import DecryptionError

NONCE_SIZE = 12
TAG_SIZE = 16

# scrypt cost, recorded inside every hash so it can be raised later
SCRYPT_N = 1 << 15
SCRYPT_R = 8
SCRYPT_P = 1
SCRYPT_SALT_LEN = 16
SCRYPT_KEY_LEN = 32
HASH_SCHEME = "scrypt"


# ---------- KEY DERIVATION ----------

def derive_message_key(secret: str) -> bytes:
    """
    Configured secret string → 32-byte AES-256 key
    """
    if not secret:
        raise ValueError("encryption secret must not be empty")
    return hashlib.sha256(secret.encode("utf-8")).digest()


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class MessageCodec:
    """
    Encrypts message bodies at rest and hashes access passwords.

    One instance holds the process-wide key; it has no other state, so a
    single codec can be shared between request threads.
    """

    def __init__(self, key: bytes, scrypt_n: int = SCRYPT_N,
                 scrypt_r: int = SCRYPT_R, scrypt_p: int = SCRYPT_P):
        if len(key) != 32:
            raise ValueError("AES-256 key must be 32 bytes")
        self._aesgcm = AESGCM(key)
        self.scrypt_n = scrypt_n
        self.scrypt_r = scrypt_r
        self.scrypt_p = scrypt_p

    @classmethod
    def from_secret(cls, secret: str, **kwargs) -> "MessageCodec":
        return cls(derive_message_key(secret), **kwargs)

    def __repr__(self) -> str:
        return "MessageCodec(key=***)"

    # ---------- ENCRYPTION ----------

    def encrypt(self, plaintext: str) -> bytes:
        """
        AES-GCM → nonce (12) + ciphertext + tag (16)
        """
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        return nonce + ciphertext

    def decrypt(self, blob: bytes) -> str:
        """
        Decrypt AES-GCM payload. Raises DecryptionError instead of ever
        returning unauthenticated bytes.
        """
        if not isinstance(blob, (bytes, bytearray)) or len(blob) < NONCE_SIZE + TAG_SIZE:
            raise DecryptionError("ciphertext is truncated or malformed")

        nonce = bytes(blob[:NONCE_SIZE])
        ciphertext = bytes(blob[NONCE_SIZE:])
        try:
            plaintext = self._aesgcm.decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            raise DecryptionError("ciphertext failed authentication") from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError("decrypted payload is not valid UTF-8") from e

    # ---------- PASSWORDS ----------

    def _kdf(self, salt: bytes, n: int, r: int, p: int) -> Scrypt:
        return Scrypt(salt=salt, length=SCRYPT_KEY_LEN, n=n, r=r, p=p)

    def hash_password(self, password: str) -> str:
        """Salted scrypt hash: scrypt$n$r$p$salt$digest"""
        salt = os.urandom(SCRYPT_SALT_LEN)
        digest = self._kdf(salt, self.scrypt_n, self.scrypt_r, self.scrypt_p).derive(
            password.encode("utf-8")
        )
        return "$".join([
            HASH_SCHEME,
            str(self.scrypt_n),
            str(self.scrypt_r),
            str(self.scrypt_p),
            _b64(salt),
            _b64(digest),
        ])

    def verify_password(self, password: str, password_hash: str) -> bool:
        try:
            scheme, n, r, p, salt_b64, digest_b64 = password_hash.split("$")
            if scheme != HASH_SCHEME:
                return False
            salt = base64.b64decode(salt_b64, validate=True)
            digest = base64.b64decode(digest_b64, validate=True)
            kdf = self._kdf(salt, int(n), int(r), int(p))
            candidate = password.encode("utf-8")
        except (AttributeError, ValueError, TypeError):
            return False

        try:
            # Scrypt.verify compares in constant time
            kdf.verify(candidate, digest)
        except InvalidKey:
            return False
        return True
