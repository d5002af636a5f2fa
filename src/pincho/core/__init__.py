"""Core primitives: the error taxonomy and message encryption."""

from pincho.core.crypto import (
    EncryptionError,
    custom_b64decode,
    custom_b64encode,
    decrypt_message,
    derive_key,
    encrypt_message,
    generate_iv,
)
from pincho.core.errors import (
    ErrorKind,
    ExitCode,
    PushError,
    classify_response,
    exit_code_for,
)

__all__ = [
    "EncryptionError",
    "ErrorKind",
    "ExitCode",
    "PushError",
    "classify_response",
    "custom_b64decode",
    "custom_b64encode",
    "decrypt_message",
    "derive_key",
    "encrypt_message",
    "exit_code_for",
    "generate_iv",
]
