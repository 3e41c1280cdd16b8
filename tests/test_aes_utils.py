import base64

import pytest

from src.crypto.aes_utils import (
    DecryptionError,
    InvalidKeyError,
    WrongKeyError,
    decrypt,
    derive_key,
    encrypt,
    generate_aes_key,
)

PLAIN_TEXT = "The quick brown fox jumps over the lazy dog"


@pytest.fixture
def key():
    return generate_aes_key()


def test_generate_aes_key_is_256_bits(key):
    assert len(base64.b64decode(key)) == 32
    assert generate_aes_key() != key


def test_derive_key_is_deterministic():
    first = derive_key("salt", "password")

    assert len(first) == 32
    assert first == derive_key("salt", "password")
    assert first != derive_key("other salt", "password")
    assert first != derive_key("salt", "other password")


@pytest.mark.parametrize(
    "plain_text",
    ["", "a", PLAIN_TEXT, "x" * 1000, "zürich / 東京 \n tabs\t"],
)
def test_encrypt_decrypt_base64_key(key, plain_text):
    assert decrypt(key, encrypt(key, plain_text)) == plain_text


def test_encrypt_decrypt_raw_key():
    raw_key = bytes(range(32))
    assert decrypt(raw_key, encrypt(raw_key, PLAIN_TEXT)) == PLAIN_TEXT


def test_encrypt_decrypt_salt_and_password():
    token = encrypt(("salt", "secret"), PLAIN_TEXT)
    assert decrypt(("salt", "secret"), token) == PLAIN_TEXT


def test_encrypt_uses_random_iv(key):
    first = encrypt(key, PLAIN_TEXT)
    second = encrypt(key, PLAIN_TEXT)

    assert first != second
    assert first.split("$")[0] != second.split("$")[0]


def test_token_format(key):
    token = encrypt(key, PLAIN_TEXT)
    iv_hex, sep, body = token.partition("$")

    assert sep == "$"
    assert len(iv_hex) == 32
    assert iv_hex == iv_hex.upper()
    bytes.fromhex(iv_hex)
    assert "=" not in body
    assert "+" not in body
    assert "/" not in body


def test_decrypt_accepts_standard_base64_and_line_breaks(key):
    token = encrypt(key, PLAIN_TEXT)
    iv_hex, _, body = token.partition("$")
    standard = body.replace("-", "+").replace("_", "/")
    wrapped = "\r\n".join(
        standard[i : i + 16] for i in range(0, len(standard), 16)
    )

    assert decrypt(key, f"{iv_hex}${wrapped}") == PLAIN_TEXT


def test_decrypt_wrong_key(key):
    token = encrypt(key, PLAIN_TEXT)

    with pytest.raises(WrongKeyError):
        decrypt(generate_aes_key(), token)


def test_decrypt_wrong_password():
    token = encrypt(("salt", "secret"), PLAIN_TEXT)

    with pytest.raises(WrongKeyError):
        decrypt(("salt", "not the secret"), token)


def test_wrong_key_error_is_a_decryption_error(key):
    token = encrypt(key, PLAIN_TEXT)

    with pytest.raises(DecryptionError):
        decrypt(generate_aes_key(), token)


@pytest.mark.parametrize(
    "token",
    [
        "no separator",
        "zz$AAAA",
        "00$AAAAAAAAAAAAAAAAAAAAAA",
        "00112233445566778899AABBCCDDEEFF$",
        "00112233445566778899AABBCCDDEEFF$AAAA",
    ],
)
def test_decrypt_malformed_token(key, token):
    with pytest.raises(DecryptionError) as excinfo:
        decrypt(key, token)
    assert not isinstance(excinfo.value, WrongKeyError)
    assert "Malformed token" in str(excinfo.value)


@pytest.mark.parametrize("bad_key", [b"short", b"x" * 33, "not base64!"])
def test_invalid_key(bad_key):
    with pytest.raises(InvalidKeyError):
        encrypt(bad_key, PLAIN_TEXT)
    with pytest.raises(InvalidKeyError):
        decrypt(bad_key, "00$AAAA")


def test_errors_are_value_errors():
    assert issubclass(InvalidKeyError, ValueError)
    assert issubclass(DecryptionError, ValueError)
    assert issubclass(WrongKeyError, DecryptionError)
