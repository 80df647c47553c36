# vc_proof_tool/proof_utils.py

"""Embedded proof parsing, creation and verification across supported proof suites."""

import datetime
import json
import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from .canonicalizer import canonical_digest
from .constants import (
    DATA_INTEGRITY_PROOF,
    ECDSA_RDFC_2019,
    ECDSA_SECP256K1_SIGNATURE_2019,
    ECDSA_SECP256K1_VERIFICATION_KEY_2019,
    JWT_PROOF_2020,
)
from .context_loader import DocumentLoader
from .credential_data import format_millis
from .crypto_utils import base64url_decode, sha256, sign, verify
from .errors import (
    CryptoError,
    InvalidInputError,
    InvalidProofError,
    UnsupportedProofError,
    VerificationFailedError,
)
from .schemas import Proof

logger = logging.getLogger(__name__)

LEGACY_ECDSA_PROOF_TYPES = (ECDSA_SECP256K1_SIGNATURE_2019, ECDSA_SECP256K1_VERIFICATION_KEY_2019)


class ProofKind(str, Enum):
    DATA_INTEGRITY = "DataIntegrity"
    ECDSA_SECP256K1_JWS = "EcdsaSecp256k1Jws"
    ECDSA_SECP256K1_PROOF_VALUE = "EcdsaSecp256k1ProofValue"
    JWT_PROOF_2020 = "JwtProof2020"


def classify_proof(proof: Proof) -> ProofKind:
    """
    Picks the verification rule for `proof`.

    Raises:
        UnsupportedProofError: For any type/cryptosuite combination not handled here.
    """
    if proof.type == JWT_PROOF_2020:
        return ProofKind.JWT_PROOF_2020
    if proof.type in LEGACY_ECDSA_PROOF_TYPES:
        if proof.jws:
            return ProofKind.ECDSA_SECP256K1_JWS
        return ProofKind.ECDSA_SECP256K1_PROOF_VALUE
    if proof.type == DATA_INTEGRITY_PROOF and proof.cryptosuite == ECDSA_RDFC_2019:
        return ProofKind.DATA_INTEGRITY
    raise UnsupportedProofError(
        f"Unsupported proof type: {proof.type}"
        + (f" with cryptosuite {proof.cryptosuite}" if proof.cryptosuite else "")
    )


def parse_proof(raw: Any) -> Proof:
    """
    Builds a `Proof` from a JSON object.

    Raises:
        InvalidProofError: If `raw` is not an object or lacks a string `type`.
    """
    if not isinstance(raw, dict):
        raise InvalidProofError(f"Invalid proof format: expected an object, got {type(raw).__name__}.")
    try:
        return Proof.model_validate(raw)
    except ValidationError as e:
        raise InvalidProofError(f"Malformed proof: {e}") from e


def serialize_proof(proof: Proof) -> Dict[str, Any]:
    """Proof as a JSON object. Empty optional members and the detached signature are left out."""
    data = proof.model_dump(exclude_none=True)
    return {k: v for k, v in data.items() if v not in ("", [])}


def extract_proof(document: Dict[str, Any]) -> Proof:
    """
    The single proof of `document`. An array-valued `proof` yields its first element.

    Raises:
        VerificationFailedError: If the document has no proof.
        InvalidProofError: If the proof is an empty array or not an object.
    """
    raw = document.get("proof")
    if raw is None:
        raise VerificationFailedError("Document has no proof.")
    if isinstance(raw, list):
        if not raw:
            raise InvalidProofError("Proof array is empty.")
        raw = raw[0]
    return parse_proof(raw)


def _document_without_proof(document: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in document.items() if k != "proof"}


def _verify_data_integrity(document, proof: Proof, resolver, document_loader) -> bool:
    if not proof.proofValue:
        raise InvalidProofError("DataIntegrityProof is missing proofValue.")
    if not proof.verificationMethod:
        raise InvalidProofError("DataIntegrityProof is missing verificationMethod.")
    public_key_hex = resolver.resolve_public_key(proof.verificationMethod)
    message = canonical_digest(document, document_loader)
    return verify(public_key_hex, proof.proofValue, message)


def _verify_ecdsa_jws(document, proof: Proof, resolver, document_loader) -> bool:
    if not proof.verificationMethod:
        raise InvalidProofError("JWS proof is missing verificationMethod.")
    parts = proof.jws.split(".")
    if len(parts) != 3:
        raise InvalidProofError(f"Invalid JWS format: expected 3 parts, got {len(parts)}.")
    header_b64, payload_b64, signature_b64 = parts
    try:
        signature = base64url_decode(signature_b64)
    except CryptoError as e:
        raise InvalidProofError(f"JWS signature is not valid base64url: {e.message}") from e

    public_key_hex = resolver.resolve_default_public_key(proof.verificationMethod)
    message = sha256(f"{header_b64}.{payload_b64}".encode("utf-8"))
    return verify(public_key_hex, signature.hex(), message)


def _verify_ecdsa_proof_value(document, proof: Proof, resolver, document_loader) -> bool:
    if not proof.proofValue:
        raise InvalidProofError("Proof value is missing.")
    if not proof.verificationMethod:
        raise InvalidProofError("Proof verificationMethod is missing.")
    public_key_hex = resolver.resolve_public_key(proof.verificationMethod)
    # Legacy proofs sign the compact JSON of the document, not its N-Quads
    raw_json = json.dumps(_document_without_proof(document), separators=(",", ":")).encode("utf-8")
    message = sha256(raw_json)
    return verify(public_key_hex, proof.proofValue, message)


def _verify_jwt_proof(document, proof: Proof, resolver, document_loader) -> bool:
    raise UnsupportedProofError(f"{JWT_PROOF_2020} verification is not supported.")


_PROOF_VERIFIERS: Dict[ProofKind, Callable[..., bool]] = {
    ProofKind.DATA_INTEGRITY: _verify_data_integrity,
    ProofKind.ECDSA_SECP256K1_JWS: _verify_ecdsa_jws,
    ProofKind.ECDSA_SECP256K1_PROOF_VALUE: _verify_ecdsa_proof_value,
    ProofKind.JWT_PROOF_2020: _verify_jwt_proof,
}


def verify_proof(
    document: Dict[str, Any],
    resolver,
    document_loader: Optional[DocumentLoader] = None
) -> bool:
    """
    Verifies the embedded proof of `document`.

    Args:
        document: The credential including its `proof`.
        resolver: Source of public keys (a `VerificationMethodResolver` or compatible object).
        document_loader: Loader for JSON-LD contexts during canonicalization.

    Returns:
        False if the proof is well-formed but its signature does not match.

    Raises:
        VerificationFailedError: If there is no proof.
        InvalidProofError: If the proof is malformed.
        UnsupportedProofError: If the proof suite is not supported.
    """
    proof = extract_proof(document)
    kind = classify_proof(proof)
    logger.info(f"Verifying {proof.type} proof ({kind.value}) by {proof.verificationMethod or 'unknown method'}")
    result = _PROOF_VERIFIERS[kind](document, proof, resolver, document_loader)
    logger.info(f"Proof verification {'succeeded' if result else 'failed'}")
    return result


def add_data_integrity_proof(
    document: Dict[str, Any],
    private_key_hex: str,
    verification_method: str,
    proof_purpose: str,
    resolver,
    document_loader: Optional[DocumentLoader] = None
) -> Proof:
    """
    Signs `document` with an `ecdsa-rdfc-2019` DataIntegrityProof and stores it under `proof`.

    The document is only modified once signing has succeeded.

    Raises:
        InvalidInputError: If the verification method or proof purpose is empty.
        CryptoError: If the private key does not match the published key.
        CanonicalizationError: If the document cannot be canonicalized.
    """
    if not verification_method:
        raise InvalidInputError("Verification method is required.")
    if not proof_purpose:
        raise InvalidInputError("Proof purpose is required.")

    if not resolver.check_verification_method(private_key_hex, verification_method):
        raise CryptoError(f"Private key does not match verification method '{verification_method}'.")

    logger.info(f"Signing document with DataIntegrityProof using {verification_method}")
    proof = Proof(
        type=DATA_INTEGRITY_PROOF,
        created=format_millis(datetime.datetime.now(datetime.timezone.utc)),
        verificationMethod=verification_method,
        proofPurpose=proof_purpose,
        cryptosuite=ECDSA_RDFC_2019,
    )
    message = canonical_digest(document, document_loader)
    proof.proofValue = sign(message, private_key_hex).hex()

    document["proof"] = serialize_proof(proof)
    return proof


def add_custom_proof(document: Dict[str, Any], proof: Proof) -> None:
    """
    Attaches a caller-built proof to `document`.

    Raises:
        InvalidInputError: If the proof carries neither `proofValue` nor `jws`.
    """
    if not proof.proofValue and not proof.jws:
        raise InvalidInputError("Custom proof must carry a proofValue or a jws.")
    document["proof"] = serialize_proof(proof)
