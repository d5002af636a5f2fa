"""Message encryption compatible with the Pincho mobile apps.

The iOS/Android apps decrypt notification bodies with a fixed scheme,
so every step below is a wire contract:

1. key = first 32 hex chars of ``sha1(passphrase).hexdigest()``, decoded
   back to 16 bytes (AES-128)
2. IV = 16 random bytes, sent hex-encoded next to the ciphertext
3. PKCS#7 padding to the AES block size
4. AES-128-CBC
5. Base64 with ``+`` -> ``-``, ``/`` -> ``.`` and ``=`` -> ``_``

Uses the ``cryptography`` library for the cipher and padding.

Security note:
    SHA-1 key derivation is fixed by the mobile decryptor.  Keep the
    hex round trip in :func:`derive_key` exactly as written.
"""

from __future__ import annotations

import base64
import hashlib
import os
from typing import TYPE_CHECKING

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

if TYPE_CHECKING:
    from collections.abc import Callable

BLOCK_SIZE = 16
IV_SIZE = 16
_KEY_HEX_CHARS = 32

_ENCODE_TABLE = str.maketrans({"+": "-", "/": ".", "=": "_"})
_DECODE_TABLE = str.maketrans({"-": "+", ".": "/", "_": "="})


class EncryptionError(Exception):
    """Raised when a message cannot be encrypted or decrypted."""


# --- Custom Base64 ---------------------------------------------------------


def custom_b64encode(data: bytes) -> str:
    """Encode *data* with the app's Base64 alphabet.

    Padding is substituted, never stripped.  Empty input gives ``""``.
    """
    return base64.b64encode(data).decode("ascii").translate(_ENCODE_TABLE)


def custom_b64decode(text: str) -> bytes:
    """Inverse of :func:`custom_b64encode`."""
    try:
        return base64.b64decode(text.translate(_DECODE_TABLE), validate=True)
    except ValueError as exc:
        msg = f"invalid encoded payload: {exc}"
        raise EncryptionError(msg) from exc


# --- Key and IV ------------------------------------------------------------


def derive_key(passphrase: str) -> bytes:
    """Derive the 16-byte AES key from *passphrase*.

    Parameters
    ----------
    passphrase:
        The shared secret configured in the app for a notification type.

    Returns
    -------
    bytes
        16-byte AES-128 key.

    """
    key_hex = hashlib.sha1(passphrase.encode("utf-8")).hexdigest().lower()  # noqa: S324
    return bytes.fromhex(key_hex[:_KEY_HEX_CHARS])


def generate_iv(
    random_source: Callable[[int], bytes] = os.urandom,
) -> tuple[bytes, str]:
    """Return a fresh IV as ``(raw_bytes, lowercase_hex)``.

    *random_source* takes a byte count, like :func:`os.urandom`.
    """
    try:
        iv = random_source(IV_SIZE)
    except (OSError, NotImplementedError) as exc:
        msg = f"failed to generate IV: {exc}"
        raise EncryptionError(msg) from exc
    if len(iv) != IV_SIZE:
        msg = f"random source returned {len(iv)} bytes, expected {IV_SIZE}"
        raise EncryptionError(msg)
    return iv, iv.hex()


# --- Encrypt / decrypt -----------------------------------------------------


def _cipher(passphrase: str, iv: bytes) -> Cipher:
    if len(iv) != IV_SIZE:
        msg = f"IV must be {IV_SIZE} bytes, got {len(iv)}"
        raise EncryptionError(msg)
    try:
        return Cipher(algorithms.AES(derive_key(passphrase)), modes.CBC(iv))
    except ValueError as exc:
        msg = f"failed to create cipher: {exc}"
        raise EncryptionError(msg) from exc


def encrypt_message(plaintext: str, passphrase: str, iv: bytes) -> str:
    """Encrypt *plaintext* and return it in the app's Base64 encoding.

    Deterministic for a given ``(plaintext, passphrase, iv)`` triple.
    """
    padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
    padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

    encryptor = _cipher(passphrase, iv).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return custom_b64encode(ciphertext)


def decrypt_message(payload: str, passphrase: str, iv: bytes) -> str:
    """Decrypt a payload produced by :func:`encrypt_message`."""
    ciphertext = custom_b64decode(payload)
    if not ciphertext or len(ciphertext) % BLOCK_SIZE:
        msg = "ciphertext length is not a multiple of the block size"
        raise EncryptionError(msg)

    decryptor = _cipher(passphrase, iv).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
    try:
        plain = unpadder.update(padded) + unpadder.finalize()
        return plain.decode("utf-8")
    except (ValueError, UnicodeDecodeError) as exc:
        msg = "decryption failed (wrong passphrase or IV?)"
        raise EncryptionError(msg) from exc
