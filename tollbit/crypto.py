"""
Token Codec

Encrypts a LicensingRequest into the opaque token the Tollbit API accepts
and reverses the operation.

Token format (URL-safe base64, padded):
    nonce (12 bytes) + ciphertext + tag (16 bytes)

Scheme:
    - key = SHA-256(secret), so secrets of any length map to an AES-256 key
    - AES-256-GCM (authenticated), fresh random nonce per call
    - output is randomized: encoding the same request twice yields two
      different tokens, each decryptable on its own
"""

import base64
import binascii
import hashlib
import json
import logging
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import (
    CryptoError,
    DecryptionError,
    MalformedTokenError,
    SerializationError,
)
from .models import LicensingRequest

logger = logging.getLogger(__name__)

# Constants
NONCE_SIZE = 12    # 96 bit (recommended for GCM)
KEY_SIZE = 32      # 256 bit for AES-256
TAG_SIZE = 16      # 128 bit (GCM standard)


def derive_key(secret: str) -> bytes:
    """
    Derive the AES key from the shared secret.

    Args:
        secret: Tollbit secret key (hex string as issued, any length)

    Returns:
        32-byte key

    Raises:
        CryptoError: empty secret
    """
    if not secret:
        raise CryptoError("Secret key must not be empty")
    return hashlib.sha256(secret.encode('utf-8')).digest()


def encrypt(plaintext: bytes, secret: str) -> str:
    """
    Encrypt raw bytes under the shared secret.

    Args:
        plaintext: Bytes to encrypt
        secret: Shared secret

    Returns:
        URL-safe base64 token

    Raises:
        CryptoError: empty secret or cipher failure
    """
    key = derive_key(secret)
    nonce = secrets.token_bytes(NONCE_SIZE)

    try:
        ciphertext = AESGCM(key).encrypt(nonce, bytes(plaintext), None)  # ciphertext + tag
    except (TypeError, ValueError, OverflowError) as e:
        raise CryptoError(f"Encryption failed: {e}") from e

    return base64.urlsafe_b64encode(nonce + ciphertext).decode('ascii')


def _split_token(token: str):
    """Decode the token and split it into (nonce, ciphertext+tag)."""
    if not isinstance(token, str) or not token:
        raise MalformedTokenError("Token must be a non-empty string")

    try:
        data = base64.b64decode(token.encode('ascii'), altchars=b'-_', validate=True)
    except (UnicodeEncodeError, binascii.Error, ValueError) as e:
        raise MalformedTokenError(f"Token is not valid base64: {e}") from e

    if len(data) < NONCE_SIZE + TAG_SIZE:
        raise MalformedTokenError("Token too short")

    return data[:NONCE_SIZE], data[NONCE_SIZE:]


def decrypt(token: str, secret: str) -> bytes:
    """
    Decrypt a token produced by encrypt().

    Args:
        token: URL-safe base64 token
        secret: Shared secret

    Returns:
        Decrypted bytes

    Raises:
        MalformedTokenError: token cannot be parsed
        DecryptionError: wrong secret or tampered token
    """
    nonce, ciphertext = _split_token(token)
    key = derive_key(secret)

    try:
        return AESGCM(key).decrypt(nonce, ciphertext, None)
    except InvalidTag as e:
        raise DecryptionError("Token authentication failed (wrong secret or tampered token)") from e


def encode_token(request: LicensingRequest, secret: str) -> str:
    """
    Serialize and encrypt a licensing request.

    Raises:
        SerializationError: request cannot be rendered as JSON
        CryptoError: encryption failed
    """
    try:
        payload = json.dumps(request.to_dict(), separators=(',', ':'), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Cannot serialize licensing request: {e}") from e

    token = encrypt(payload.encode('utf-8'), secret)
    logger.debug(f"Encoded token for {request.url} ({len(token)} chars)")
    return token


def decode_token(token: str, secret: str) -> LicensingRequest:
    """
    Decrypt and parse a token back into its licensing request.

    Raises:
        MalformedTokenError: token cannot be parsed
        DecryptionError: wrong secret or tampered token
        SerializationError: decrypted bytes are not a valid request record
    """
    plaintext = decrypt(token, secret)

    try:
        data = json.loads(plaintext.decode('utf-8'))
    except (UnicodeDecodeError, ValueError) as e:
        raise SerializationError(f"Token payload is not valid JSON: {e}") from e

    return LicensingRequest.from_dict(data)

