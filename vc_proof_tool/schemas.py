# vc_proof_tool/schemas.py
"""Pydantic models for proofs, DID documents, credential contents and per-call options."""

import datetime
from typing import Dict, Any, Optional, List, Union, Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import get_did_base_url, get_verification_method_key
from .errors import InvalidInputError


class Proof(BaseModel):
    """An embedded proof block. Only one of `proofValue` / `jws` is expected."""
    model_config = ConfigDict(extra="ignore")

    type: str
    created: Optional[str] = None
    verificationMethod: str = ""
    proofPurpose: Optional[str] = None
    proofValue: Optional[str] = None
    jws: Optional[str] = None
    cryptosuite: Optional[str] = None
    challenge: Optional[str] = None
    domain: Optional[str] = None
    disclosures: Optional[List[str]] = None
    # Detached raw signature for JWT custom proofs; never serialized.
    signature: Optional[bytes] = Field(default=None, exclude=True)


class Jwk(BaseModel):
    """Public key in JWK format (subset)."""
    model_config = ConfigDict(extra="allow")

    kty: str
    crv: Optional[str] = None
    x: Optional[str] = None
    y: Optional[str] = None
    kid: Optional[str] = None


class VerificationMethodEntry(BaseModel):
    """Represents a DID Document Verification Method entry."""
    model_config = ConfigDict(extra="allow")

    id: str
    type: str
    controller: Optional[str] = None
    publicKeyHex: Optional[str] = None
    publicKeyJwk: Optional[Jwk] = None


class DidDocument(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    context: Optional[Union[str, List[Any]]] = Field(default=None, alias="@context")
    id: str
    verificationMethod: List[VerificationMethodEntry] = Field(default_factory=list)
    authentication: Optional[List[Union[str, Dict[str, Any]]]] = None
    assertionMethod: Optional[List[Union[str, Dict[str, Any]]]] = None


class Status(BaseModel):
    """A `credentialStatus` entry."""
    id: Optional[str] = None
    type: str = ""
    statusPurpose: Optional[str] = None
    statusListIndex: Optional[Union[str, int]] = None
    statusListCredential: Optional[str] = None


class Subject(BaseModel):
    """A `credentialSubject` entry: the optional id plus every other claim."""
    id: Optional[str] = None
    custom_fields: Dict[str, Any] = Field(default_factory=dict)


class Schema(BaseModel):
    """A `credentialSchema` entry."""
    id: str
    type: str = ""


class CredentialContents(BaseModel):
    """Structured view of a credential's fields."""
    context: List[Union[str, Dict[str, Any]]] = Field(default_factory=list)
    id: Optional[str] = None
    types: List[str] = Field(default_factory=list)
    issuer: Optional[str] = None
    valid_from: Optional[datetime.datetime] = None
    valid_until: Optional[datetime.datetime] = None
    credential_status: List[Status] = Field(default_factory=list)
    subject: List[Subject] = Field(default_factory=list)
    schemas: List[Schema] = Field(default_factory=list)


class CredentialOptions(BaseModel):
    """Per-call settings for creating, parsing and verifying credentials."""
    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    did_base_url: str = Field(default_factory=get_did_base_url)
    verification_method_key: str = Field(default_factory=get_verification_method_key)
    verify_proof: bool = False
    resolver: Optional[Any] = Field(default=None, description="Object exposing the resolver methods; built from did_base_url when unset.")
    document_loader: Optional[Callable[..., Dict[str, Any]]] = None


def get_options(options: Optional[CredentialOptions] = None, **overrides) -> CredentialOptions:
    """
    Merges environment defaults, an explicit options object and keyword overrides,
    later sources winning. Overrides set to None are ignored.

    Raises:
        InvalidInputError: If an override is unknown or has the wrong type.
    """
    values: Dict[str, Any] = {}
    if options is not None:
        values = {name: getattr(options, name) for name in options.model_fields_set}
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return CredentialOptions(**values)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid credential options: {e}") from e
