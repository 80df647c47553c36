# vc_proof_tool/crypto_utils.py
"""secp256k1 ECDSA signing and verification, plus hex and base64url helpers."""

import logging
import re

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, utils
from jwcrypto.common import base64url_decode as _jwcrypto_b64decode
from jwcrypto.common import base64url_encode as _jwcrypto_b64encode

from .constants import (
    COMPRESSED_KEY_LENGTH,
    COMPRESSED_KEY_PREFIXES,
    COORDINATE_LENGTH,
    SECP256K1_ORDER,
    SIGNATURE_LENGTH,
    SIGNATURE_WITH_RECOVERY_LENGTH,
    UNCOMPRESSED_KEY_LENGTH,
    UNCOMPRESSED_KEY_PREFIX,
)
from .errors import CryptoError, InvalidKeyFormatError

logger = logging.getLogger(__name__)

_BASE64URL_RE = re.compile(r"^[A-Za-z0-9_-]*$")

# The primitive never hashes. Prehashed lets us hand the signer the
# message integer directly.
_ECDSA = ec.ECDSA(utils.Prehashed(hashes.SHA256()))


def remove_hex_prefix(value: str) -> str:
    """Strips a leading `0x`/`0X`. Leading zeros are preserved."""
    if value.startswith(("0x", "0X")):
        return value[2:]
    return value


def _hex_to_bytes(value: str, what: str) -> bytes:
    if not isinstance(value, str):
        raise CryptoError(f"{what} must be a hex string, got {type(value).__name__}.")
    try:
        return bytes.fromhex(remove_hex_prefix(value.strip()))
    except ValueError as e:
        raise CryptoError(f"{what} is not valid hex: {e}") from e


def sha256(data: bytes) -> bytes:
    hasher = hashes.Hash(hashes.SHA256())
    hasher.update(data)
    return hasher.finalize()


def base64url_encode(data: bytes) -> str:
    """Base64url without padding."""
    return _jwcrypto_b64encode(data)


def base64url_decode(data: str) -> bytes:
    """
    Decodes unpadded (or padded) base64url.

    Raises:
        CryptoError: If the input contains characters outside the base64url
                     alphabet or has an impossible length.
    """
    stripped = data.rstrip("=")
    if not _BASE64URL_RE.match(stripped):
        raise CryptoError("Input contains characters outside the base64url alphabet.")
    try:
        return _jwcrypto_b64decode(stripped)
    except ValueError as e:
        raise CryptoError(f"Invalid base64url data: {e}") from e


def _message_digest(message: bytes) -> bytes:
    """
    `message` as the 32-byte ECDSA message integer, left padded.

    Raises:
        CryptoError: If `message` is longer than 32 bytes. Callers hash first.
    """
    if len(message) > COORDINATE_LENGTH:
        raise CryptoError(
            f"Message must be at most {COORDINATE_LENGTH} bytes, got {len(message)}. Hash it before signing."
        )
    return bytes(message).rjust(COORDINATE_LENGTH, b"\0")


def load_private_key(private_key_hex: str) -> ec.EllipticCurvePrivateKey:
    """
    Builds a secp256k1 private key from its hex scalar.

    Raises:
        InvalidKeyFormatError: If the hex is malformed or the scalar is out of range.
    """
    try:
        key_bytes = _hex_to_bytes(private_key_hex, "Private key")
    except CryptoError as e:
        raise InvalidKeyFormatError(e.message) from e
    if not key_bytes or len(key_bytes) > COORDINATE_LENGTH:
        raise InvalidKeyFormatError(
            f"Private key must be at most {COORDINATE_LENGTH} bytes, got {len(key_bytes)}."
        )
    scalar = int.from_bytes(key_bytes, "big")
    if not 0 < scalar < SECP256K1_ORDER:
        raise InvalidKeyFormatError("Private key scalar is outside the secp256k1 group order.")
    try:
        return ec.derive_private_key(scalar, ec.SECP256K1())
    except ValueError as e:
        raise InvalidKeyFormatError(f"Invalid secp256k1 private scalar: {e}") from e


def load_public_key(public_key_hex: str) -> ec.EllipticCurvePublicKey:
    """
    Builds a secp256k1 public key from a compressed or uncompressed SEC1 point.

    Raises:
        InvalidKeyFormatError: If the encoding is wrong or the point is not on the curve.
    """
    try:
        key_bytes = _hex_to_bytes(public_key_hex, "Public key")
    except CryptoError as e:
        raise InvalidKeyFormatError(e.message) from e

    if len(key_bytes) == COMPRESSED_KEY_LENGTH:
        if key_bytes[0] not in COMPRESSED_KEY_PREFIXES:
            raise InvalidKeyFormatError(f"Compressed public key has invalid prefix 0x{key_bytes[0]:02x}.")
    elif len(key_bytes) == UNCOMPRESSED_KEY_LENGTH:
        if key_bytes[0] != UNCOMPRESSED_KEY_PREFIX:
            raise InvalidKeyFormatError(f"Uncompressed public key has invalid prefix 0x{key_bytes[0]:02x}.")
    else:
        raise InvalidKeyFormatError(
            f"Public key must be {COMPRESSED_KEY_LENGTH} or {UNCOMPRESSED_KEY_LENGTH} bytes, got {len(key_bytes)}."
        )

    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), key_bytes)
    except ValueError as e:
        raise InvalidKeyFormatError(f"Public key is not a valid secp256k1 point: {e}") from e


def _encode_point(public_key: ec.EllipticCurvePublicKey, compressed: bool) -> str:
    point_format = (
        serialization.PublicFormat.CompressedPoint if compressed
        else serialization.PublicFormat.UncompressedPoint
    )
    return public_key.public_bytes(serialization.Encoding.X962, point_format).hex()


def derive_public_key(private_key_hex: str, compressed: bool = False) -> str:
    """Lowercase hex public key for `private_key_hex`, uncompressed unless asked otherwise."""
    return _encode_point(load_private_key(private_key_hex).public_key(), compressed)


def decompress_public_key(public_key_hex: str) -> str:
    """Returns the uncompressed `04||x||y` hex form of any valid public key encoding."""
    return _encode_point(load_public_key(public_key_hex), compressed=False)


def _sign_raw(message: bytes, private_key_hex: str) -> bytes:
    private_key = load_private_key(private_key_hex)
    der_signature = private_key.sign(_message_digest(message), _ECDSA)
    r, s = utils.decode_dss_signature(der_signature)
    return r.to_bytes(COORDINATE_LENGTH, "big") + s.to_bytes(COORDINATE_LENGTH, "big")


def sign(message: bytes, private_key_hex: str) -> bytes:
    """
    Signs `message` and returns 65 bytes `r||s||v`.

    `message` is used as the ECDSA message integer and must be at most 32
    bytes, normally a SHA-256 digest. The recovery id `v` is not computed and
    is always 0.
    """
    signature = _sign_raw(message, private_key_hex) + b"\x00"
    logger.debug(f"Produced {len(signature)}-byte signature")
    return signature


def sign_jwt(message: bytes, private_key_hex: str) -> str:
    """Signs `message` and returns base64url(`r||s`) as used in an ES256K JWS."""
    return base64url_encode(_sign_raw(message, private_key_hex))


def verify(public_key_hex: str, signature_hex: str, message: bytes) -> bool:
    """
    Checks an `r||s` or `r||s||v` signature over `message`.

    Returns:
        False if the signature is well-formed but does not match.

    Raises:
        CryptoError: If the signature or key is malformed, or `message` is
                     longer than 32 bytes.
    """
    signature = _hex_to_bytes(signature_hex, "Signature")
    if len(signature) not in (SIGNATURE_LENGTH, SIGNATURE_WITH_RECOVERY_LENGTH):
        raise CryptoError(
            f"Signature must be {SIGNATURE_LENGTH} or {SIGNATURE_WITH_RECOVERY_LENGTH} bytes, got {len(signature)}."
        )
    public_key = load_public_key(public_key_hex)

    r = int.from_bytes(signature[:COORDINATE_LENGTH], "big")
    s = int.from_bytes(signature[COORDINATE_LENGTH:SIGNATURE_LENGTH], "big")
    try:
        public_key.verify(utils.encode_dss_signature(r, s), _message_digest(message), _ECDSA)
    except InvalidSignature:
        logger.debug("ECDSA signature did not match")
        return False
    return True


def verify_key_pair(private_key_hex: str, public_key_hex: str) -> bool:
    """True iff `public_key_hex` (either encoding) is the public key of `private_key_hex`."""
    derived = load_private_key(private_key_hex).public_key().public_numbers()
    published = load_public_key(public_key_hex).public_numbers()
    return derived == published
