# vc_proof_tool/canonicalizer.py

"""RDF canonicalization (URDNA2015 / RDFC-1.0) of credential documents."""

import datetime
import logging
from typing import Any, Dict, Optional

from pyld import jsonld

from .constants import JSONLD_OPTIONS
from .context_loader import DocumentLoader, default_document_loader
from .crypto_utils import sha256
from .errors import CanonicalizationError

logger = logging.getLogger(__name__)


def format_datetime(value: datetime.datetime) -> str:
    """RFC3339 in UTC with a `Z` suffix. Naive values are taken to be UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    value = value.astimezone(datetime.timezone.utc)
    if value.microsecond:
        return value.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def standardize_to_jsonld(value: Any) -> Any:
    """
    Rewrites an arbitrary value tree into plain JSON types.

    Strings, numbers, booleans and None pass through; mappings and sequences
    are rebuilt recursively; datetimes become RFC3339 UTC strings; anything
    else (Decimal, UUID, ...) is stringified.
    """
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, dict):
        return {str(k): standardize_to_jsonld(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [standardize_to_jsonld(v) for v in value]
    if isinstance(value, datetime.datetime):
        return format_datetime(value)
    return str(value)


def canonicalize_without_proof(
    doc: Dict[str, Any],
    document_loader: Optional[DocumentLoader] = None
) -> bytes:
    """
    Canonical N-Quads of `doc` with its `proof` member removed.

    Args:
        doc: The JSON-LD document. It is not modified.
        document_loader: Loader for remote contexts. Defaults to the offline
                         loader with the bundled credentials context.

    Returns:
        UTF-8 encoded, newline-terminated canonical N-Quads.

    Raises:
        CanonicalizationError: If expansion or canonicalization fails.
    """
    doc_no_proof = dict(doc)
    doc_no_proof.pop("proof", None)
    standardized = standardize_to_jsonld(doc_no_proof)

    options = {**JSONLD_OPTIONS, 'documentLoader': document_loader or default_document_loader}
    try:
        normalized = jsonld.normalize(standardized, options)
    except jsonld.JsonLdError as e:
        logger.error(f"JSON-LD canonicalization failed: {e}")
        raise CanonicalizationError(f"Failed to canonicalize document: {type(e).__name__} - {e}") from e

    logger.debug(f"Canonical N-Quads (first 100 chars): {normalized[:100]}")
    return normalized.encode('utf-8')


def digest(data: bytes) -> bytes:
    """SHA-256 of `data`."""
    return sha256(data)


def canonical_digest(
    doc: Dict[str, Any],
    document_loader: Optional[DocumentLoader] = None
) -> bytes:
    result = digest(canonicalize_without_proof(doc, document_loader))
    logger.debug(f"Canonical digest: {result.hex()}")
    return result
