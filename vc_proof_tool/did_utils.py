# vc_proof_tool/did_utils.py
"""Resolution of DID documents and secp256k1 verification keys over HTTP."""

import logging
from typing import Optional
from urllib.parse import quote

import httpx
from jwcrypto import jwk
from jwcrypto.common import JWException
from pydantic import ValidationError
from cryptography.hazmat.primitives import serialization

from .config import get_did_base_url, get_resolver_timeout
from .constants import SECP256K1_CURVE
from .crypto_utils import remove_hex_prefix, verify_key_pair
from .errors import InvalidInputError, InvalidKeyFormatError, KeyNotFoundError, ResolutionError
from .schemas import DidDocument, Jwk, VerificationMethodEntry

logger = logging.getLogger(__name__)


def split_verification_method(verification_method: str) -> str:
    """Returns the DID portion of `did#fragment`."""
    return verification_method.split("#", 1)[0]


def jwk_to_public_key_hex(public_jwk: Jwk) -> str:
    """
    Rebuilds an EC secp256k1 JWK as the uncompressed `04||x||y` hex point.

    Raises:
        InvalidKeyFormatError: If the JWK is not an EC secp256k1 key or is malformed.
    """
    if public_jwk.kty != "EC" or public_jwk.crv != SECP256K1_CURVE:
        raise InvalidKeyFormatError(
            f"Unsupported JWK: expected kty 'EC' and crv '{SECP256K1_CURVE}', "
            f"got kty '{public_jwk.kty}' and crv '{public_jwk.crv}'."
        )
    if not public_jwk.x or not public_jwk.y:
        raise InvalidKeyFormatError("EC JWK is missing the 'x' or 'y' coordinate.")
    try:
        key = jwk.JWK(kty="EC", crv=SECP256K1_CURVE, x=public_jwk.x, y=public_jwk.y)
        point = key.get_op_key('verify').public_bytes(
            serialization.Encoding.X962,
            serialization.PublicFormat.UncompressedPoint
        )
    except (JWException, ValueError) as e:
        raise InvalidKeyFormatError(f"Failed to load public JWK: {e}") from e
    return point.hex()


def extract_public_key_hex(entry: VerificationMethodEntry) -> str:
    """
    Key material of a verification method as hex: `publicKeyHex` if set,
    otherwise the point encoded in `publicKeyJwk`.

    Raises:
        KeyNotFoundError: If the entry carries neither.
        InvalidKeyFormatError: If the JWK is unsupported.
    """
    if entry.publicKeyHex:
        return remove_hex_prefix(entry.publicKeyHex)
    if entry.publicKeyJwk is not None:
        return jwk_to_public_key_hex(entry.publicKeyJwk)
    raise KeyNotFoundError(f"Verification method '{entry.id}' has no publicKeyHex or publicKeyJwk.")


class VerificationMethodResolver:
    """
    Fetches DID documents from an HTTP resolver API and extracts public keys.

    Every lookup issues a fresh request. An injected `httpx.Client` is used as
    given and never closed here.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None
    ):
        self.base_url = (base_url or get_did_base_url()).rstrip("/")
        self.timeout = timeout if timeout is not None else get_resolver_timeout()
        self.client = client

    def _did_url(self, did: str) -> str:
        return f"{self.base_url}/{quote(did, safe='')}"

    def resolve_did_document(self, did: str) -> DidDocument:
        """
        Fetches and validates the DID document for `did`.

        Raises:
            InvalidInputError: If `did` is empty.
            ResolutionError: On transport errors, non-2xx responses, invalid JSON
                             or a body that is not a DID document.
        """
        if not did:
            raise InvalidInputError("DID must not be empty.")

        url = self._did_url(did)
        logger.info(f"Resolving DID document for {did}")
        logger.debug(f"DID resolution URL: {url}")
        try:
            if self.client is not None:
                response = self.client.get(url, timeout=self.timeout)
            else:
                response = httpx.get(url, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"DID resolver returned HTTP {e.response.status_code} for {did}")
            raise ResolutionError(f"Failed to resolve DID '{did}': HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"DID resolution request failed for {did}: {e}")
            raise ResolutionError(f"Failed to resolve DID '{did}': {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise ResolutionError(f"DID resolver returned invalid JSON for '{did}': {e}") from e

        try:
            document = DidDocument.model_validate(body)
        except ValidationError as e:
            raise ResolutionError(f"Response for '{did}' is not a valid DID document: {e}") from e

        logger.debug(f"Resolved DID document {document.id} with {len(document.verificationMethod)} verification method(s)")
        return document

    def resolve_public_key(self, verification_method: str) -> str:
        """
        Public key hex of the verification method whose `id` equals `verification_method`.

        Raises:
            InvalidInputError: If `verification_method` is empty.
            KeyNotFoundError: If no entry matches or it carries no key material.
        """
        if not verification_method:
            raise InvalidInputError("Verification method must not be empty.")

        document = self.resolve_did_document(split_verification_method(verification_method))
        for entry in document.verificationMethod:
            if entry.id == verification_method:
                return extract_public_key_hex(entry)
        raise KeyNotFoundError(f"Verification method '{verification_method}' not found in DID document.")

    def resolve_default_public_key(self, did: str) -> str:
        """Public key hex of the first verification method. A `#fragment` on `did` is ignored."""
        if not did:
            raise InvalidInputError("DID must not be empty.")

        document = self.resolve_did_document(split_verification_method(did))
        if not document.verificationMethod:
            raise KeyNotFoundError(f"DID document for '{did}' has no verification methods.")
        return extract_public_key_hex(document.verificationMethod[0])

    def check_verification_method(self, private_key_hex: str, verification_method: str) -> bool:
        """True if `private_key_hex` matches the key published for `verification_method`."""
        public_key_hex = self.resolve_public_key(verification_method)
        return verify_key_pair(private_key_hex, public_key_hex)
