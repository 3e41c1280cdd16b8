"""AES encryption helpers with a random IV and a content hash.

Every encrypted value is unique because a fresh IV is drawn for each call.
The key is either a raw 256 bit key (bytes or base64 text) or a
(salt, password) pair from which a 256 bit key is derived with PBKDF2.

The plaintext is prefixed with an MD5 content hash before encryption so
that `decrypt` fails with `WrongKeyError` when the key or password is
wrong instead of returning garbage.
"""

import base64
import binascii
import hashlib
import os
from typing import Union

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

KeyMaterial = Union[bytes, str, tuple[str, str]]

IV_SIZE = 16
KEY_SIZE = 32
HASH_LENGTH = 22
PBKDF2_ITERATIONS = 1000
TOKEN_SEPARATOR = "$"


class InvalidKeyError(ValueError):
    """Raised when the key material cannot be used as an AES key."""


class DecryptionError(ValueError):
    """Raised when an encrypted token is malformed."""


class WrongKeyError(DecryptionError):
    """Raised when a token was encrypted with a different key."""


def generate_aes_key() -> str:
    """Generate a random 256 bit key.

    Returns:
        str: The key, base64 encoded.

    """
    return base64.b64encode(os.urandom(KEY_SIZE)).decode("ascii")


def derive_key(salt: str, password: str) -> bytes:
    """Derive a 256 bit key from a salt and a password (RFC 2898).

    Args:
        salt (str): The salt, used together with the password.
        password (str): The password.

    Returns:
        bytes: The derived key.

    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA1(),
        length=KEY_SIZE,
        salt=salt.encode("utf-8"),
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(password.encode("utf-8"))


def _resolve_key(key: KeyMaterial) -> bytes:
    if isinstance(key, tuple):
        salt, password = key
        return derive_key(salt, password)
    if isinstance(key, str):
        try:
            key = base64.b64decode(key.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as e:
            raise InvalidKeyError("AES key is not valid base64") from e
    if len(key) * 8 not in algorithms.AES.key_sizes or len(key) > KEY_SIZE:
        raise InvalidKeyError(
            f"Invalid AES key length: {len(key)} bytes. "
            "Expected 16, 24 or 32 bytes.",
        )
    return key


def _content_hash(text: str) -> str:
    digest = hashlib.md5(text.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def encrypt(key: KeyMaterial, plain_text: str) -> str:
    """Encrypt the plain text.

    Args:
        key (KeyMaterial): Raw key bytes, a base64 encoded key or a
        (salt, password) tuple.
        plain_text (str): Text that needs to be encrypted.

    Raises:
        InvalidKeyError: If the key can't be used as an AES key.

    Returns:
        str: The IV as a hex string followed by '$' followed by the
        url-safe base64 encoded cipher text.

    """
    secret = _resolve_key(key)
    iv = os.urandom(IV_SIZE)

    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    data = (_content_hash(plain_text) + plain_text).encode("utf-8")
    padded = padder.update(data) + padder.finalize()

    encryptor = Cipher(algorithms.AES(secret), modes.CBC(iv)).encryptor()
    encrypted = encryptor.update(padded) + encryptor.finalize()

    encoded = base64.urlsafe_b64encode(encrypted).decode("ascii").rstrip("=")
    return iv.hex().upper() + TOKEN_SEPARATOR + encoded


def decrypt(key: KeyMaterial, token: str) -> str:
    """Decrypt text that was encrypted with `encrypt`.

    Args:
        key (KeyMaterial): The key used for encryption.
        token (str): The encrypted token.

    Raises:
        InvalidKeyError: If the key can't be used as an AES key.
        DecryptionError: If the token is malformed.
        WrongKeyError: If the token was encrypted with another key.

    Returns:
        str: The plain text.

    """
    secret = _resolve_key(key)

    # Accept both url-safe and normal base64, ignore line breaks
    token = (
        token.replace("+", "-")
        .replace("/", "_")
        .replace("\r", "")
        .replace("\n", "")
    )
    iv_hex, sep, body = token.partition(TOKEN_SEPARATOR)
    if sep != TOKEN_SEPARATOR:
        raise DecryptionError("Malformed token: missing '$' separator")

    try:
        iv = bytes.fromhex(iv_hex)
        encrypted = base64.urlsafe_b64decode(body + "=" * (-len(body) % 4))
    except (ValueError, binascii.Error) as e:
        raise DecryptionError(f"Malformed token: {e}") from e

    if len(iv) != IV_SIZE:
        raise DecryptionError(
            f"Malformed token: IV must be {IV_SIZE} bytes, got {len(iv)}",
        )
    if not encrypted:
        raise DecryptionError("Malformed token: empty cipher text")

    decryptor = Cipher(algorithms.AES(secret), modes.CBC(iv)).decryptor()
    try:
        padded = decryptor.update(encrypted) + decryptor.finalize()
    except ValueError as e:
        raise DecryptionError(f"Malformed token: {e}") from e

    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    try:
        data = unpadder.update(padded) + unpadder.finalize()
        plain_text = data.decode("utf-8")
    except ValueError as e:
        raise WrongKeyError("wrong aes key") from e

    content_hash = plain_text[:HASH_LENGTH]
    plain_text = plain_text[HASH_LENGTH:]
    if content_hash != _content_hash(plain_text):
        raise WrongKeyError("wrong aes key - incorrect content hash")
    return plain_text
