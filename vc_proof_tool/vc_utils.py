# vc_proof_tool/vc_utils.py

"""Verifiable Credentials in embedded-proof JSON-LD and JWT form."""

import copy
import datetime
import json
import logging
import re
from typing import Dict, Any, Optional, Union

from jwcrypto import jwk, jws
from jwcrypto.common import JWException

from .canonicalizer import canonical_digest, standardize_to_jsonld
from .constants import (
    CREDENTIAL_TYPE_JSON,
    CREDENTIAL_TYPE_JWT,
    DEFAULT_PROOF_PURPOSE,
    JWT_ALGORITHM,
    JWT_PATTERN,
    JWT_TYPE,
)
from .credential_data import (
    CredentialData,
    issuer_id,
    parse_credential_contents,
    serialize_credential_contents,
)
from .crypto_utils import base64url_decode, base64url_encode, load_private_key, load_public_key
from .did_utils import VerificationMethodResolver, split_verification_method
from .errors import CryptoError, InvalidInputError, ParseError, VerificationFailedError
from .proof_utils import add_custom_proof, add_data_integrity_proof, verify_proof
from .schemas import CredentialContents, CredentialOptions, Proof, get_options

logger = logging.getLogger(__name__)

RawCredential = Union[str, bytes]

_JWT_RE = re.compile(JWT_PATTERN)
_JWT_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_-]*$")


def _to_text(raw: RawCredential) -> str:
    if isinstance(raw, bytes):
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"Credential is not valid UTF-8: {e}") from e
    if isinstance(raw, str):
        return raw
    raise ParseError(f"Credential must be str or bytes, got {type(raw).__name__}.")


def _compact_json(value: Any) -> bytes:
    return json.dumps(standardize_to_jsonld(value), separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _unix_seconds(value: datetime.datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    return int(value.timestamp())


class Credential:
    """Common behaviour of JSON-LD and JWT credentials."""

    credential_type: str = ""

    def __init__(self, options: CredentialOptions):
        self.options = options

    def _merge_options(self, options: Optional[CredentialOptions], overrides: Dict[str, Any]) -> CredentialOptions:
        return get_options(options or self.options, **overrides)

    @staticmethod
    def _resolver(options: CredentialOptions):
        if options.resolver is not None:
            return options.resolver
        return VerificationMethodResolver(base_url=options.did_base_url)

    def _execute_options(self, options: CredentialOptions) -> None:
        if options.verify_proof:
            self.verify(options)

    def add_proof(self, private_key_hex: str, options: Optional[CredentialOptions] = None, **overrides) -> None:
        raise NotImplementedError

    def add_custom_proof(self, proof: Proof) -> None:
        raise NotImplementedError

    def verify(self, options: Optional[CredentialOptions] = None, **overrides) -> None:
        raise NotImplementedError

    def serialize(self) -> Any:
        raise NotImplementedError

    def get_signing_input(self) -> bytes:
        raise NotImplementedError

    def get_contents(self) -> bytes:
        raise NotImplementedError

    def get_credential_contents(self) -> CredentialContents:
        raise NotImplementedError


class JsonCredential(Credential):
    """A JSON-LD credential carrying an embedded `proof`."""

    credential_type = CREDENTIAL_TYPE_JSON

    def __init__(self, data: CredentialData, options: CredentialOptions):
        super().__init__(options)
        self._data = data

    @property
    def verification_method_key(self) -> str:
        return self.options.verification_method_key

    @classmethod
    def new(
        cls,
        contents: CredentialContents,
        options: Optional[CredentialOptions] = None,
        **overrides
    ) -> "JsonCredential":
        opts = get_options(options, **overrides)
        credential = cls(serialize_credential_contents(contents), opts)
        credential._execute_options(opts)
        return credential

    @classmethod
    def parse(
        cls,
        raw: RawCredential,
        options: Optional[CredentialOptions] = None,
        **overrides
    ) -> "JsonCredential":
        """
        Parses a JSON object credential.

        Raises:
            ParseError: If the input is empty, not JSON, or not a JSON object.
        """
        opts = get_options(options, **overrides)
        text = _to_text(raw).strip()
        if not text:
            raise ParseError("JSON credential is empty.")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(f"Failed to parse JSON credential: {e}") from e
        if not isinstance(data, dict):
            raise ParseError(f"JSON credential must be an object, got {type(data).__name__}.")

        credential = cls(data, opts)
        credential._execute_options(opts)
        return credential

    def add_proof(self, private_key_hex: str, options: Optional[CredentialOptions] = None, **overrides) -> None:
        """
        Signs the credential with a DataIntegrityProof for `{issuer}#{verification_method_key}`.

        Raises:
            InvalidInputError: If the credential has no issuer.
            CryptoError: If the key does not match the issuer's published key.
        """
        opts = self._merge_options(options, overrides)
        issuer = issuer_id(self._data)
        if not issuer:
            raise InvalidInputError("Issuer is required to add a proof.")

        verification_method = f"{issuer}#{opts.verification_method_key}"
        add_data_integrity_proof(
            self._data,
            private_key_hex,
            verification_method,
            DEFAULT_PROOF_PURPOSE,
            self._resolver(opts),
            opts.document_loader
        )
        logger.info(f"Added proof to JSON credential using {verification_method}")

    def add_custom_proof(self, proof: Proof) -> None:
        add_custom_proof(self._data, proof)

    def verify(self, options: Optional[CredentialOptions] = None, **overrides) -> None:
        """
        Raises:
            VerificationFailedError: If there is no proof or the signature does not match.
        """
        opts = self._merge_options(options, overrides)
        if not verify_proof(self._data, self._resolver(opts), opts.document_loader):
            raise VerificationFailedError("Proof verification failed")

    def serialize(self) -> CredentialData:
        """A deep copy of the signed credential."""
        if self._data.get("proof") is None:
            raise InvalidInputError("Credential must have a proof before serialization.")
        return copy.deepcopy(self._data)

    def get_signing_input(self) -> bytes:
        return canonical_digest(self._data, self.options.document_loader)

    def get_contents(self) -> bytes:
        return _compact_json(self._data)

    def get_credential_contents(self) -> CredentialContents:
        return parse_credential_contents(self._data)


class JwtCredential(Credential):
    """A credential encoded as an ES256K JWT with the credential in its `vc` claim."""

    credential_type = CREDENTIAL_TYPE_JWT

    def __init__(
        self,
        signing_input: str,
        payload_data: CredentialData,
        options: CredentialOptions,
        signature: str = ""
    ):
        super().__init__(options)
        self._signing_input = signing_input
        self._payload_data = payload_data
        self._signature = signature

    @classmethod
    def new(
        cls,
        contents: CredentialContents,
        options: Optional[CredentialOptions] = None,
        **overrides
    ) -> "JwtCredential":
        opts = get_options(options, **overrides)
        credential_data = serialize_credential_contents(contents)

        payload: Dict[str, Any] = {"vc": credential_data}
        if contents.issuer:
            payload["iss"] = contents.issuer
        if contents.subject and contents.subject[0].id:
            payload["sub"] = contents.subject[0].id
        if contents.valid_until is not None:
            payload["exp"] = _unix_seconds(contents.valid_until)
        if contents.valid_from is not None:
            payload["iat"] = _unix_seconds(contents.valid_from)
            payload["nbf"] = payload["iat"]
        if contents.id:
            payload["jti"] = contents.id

        header = {
            "typ": JWT_TYPE,
            "alg": JWT_ALGORITHM,
            "kid": f"{contents.issuer or ''}#{opts.verification_method_key}"
        }
        signing_input = f"{base64url_encode(_compact_json(header))}.{base64url_encode(_compact_json(payload))}"
        logger.debug(f"Built JWT signing input of length {len(signing_input)}")

        credential = cls(signing_input, credential_data, opts)
        credential._execute_options(opts)
        return credential

    @classmethod
    def parse(
        cls,
        raw: RawCredential,
        options: Optional[CredentialOptions] = None,
        **overrides
    ) -> "JwtCredential":
        """
        Parses a compact JWT. A third segment, when present, is kept as the signature.

        Raises:
            ParseError: If the token is empty or malformed, or its payload has no `vc` object.
        """
        opts = get_options(options, **overrides)
        token = _to_text(raw).strip().strip('"')
        if not token:
            raise ParseError("JWT string is empty.")

        parts = token.split(".")
        if len(parts) < 2 or len(parts) > 3:
            raise ParseError(f"Invalid JWT format: expected 2 or 3 segments, got {len(parts)}.")
        if not all(_JWT_SEGMENT_RE.match(part) for part in parts):
            raise ParseError("Invalid JWT format: segments must be base64url encoded.")

        header_b64, payload_b64 = parts[0], parts[1]
        signature = parts[2] if len(parts) == 3 else ""

        try:
            payload = json.loads(base64url_decode(payload_b64).decode("utf-8"))
        except (CryptoError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ParseError(f"Failed to decode JWT payload: {e}") from e
        if not isinstance(payload, dict):
            raise ParseError("JWT payload must be a JSON object.")
        vc = payload.get("vc")
        if vc is None:
            raise ParseError("vc claim not found in JWT payload.")
        if not isinstance(vc, dict):
            raise ParseError("vc claim is not a JSON object.")

        credential = cls(f"{header_b64}.{payload_b64}", vc, opts, signature)
        credential._execute_options(opts)
        return credential

    def add_proof(self, private_key_hex: str, options: Optional[CredentialOptions] = None, **overrides) -> None:
        """
        Signs the existing header and payload as an ES256K JWS.

        Raises:
            InvalidKeyFormatError: If the private key is invalid.
            CryptoError: If signing fails.
        """
        key = jwk.JWK.from_pyca(load_private_key(private_key_hex))
        header_b64, payload_b64 = self._signing_input.split(".")
        try:
            protected_header = base64url_decode(header_b64).decode("utf-8")
            jws_token = jws.JWS(base64url_decode(payload_b64))
            jws_token.add_signature(key, None, protected_header)
            signed_jwt = jws_token.serialize(compact=True)
        except (JWException, ValueError) as e:
            logger.exception("JWT signing failed.")
            raise CryptoError(f"Failed to sign JWT: {e}") from e

        signing_input, signature = signed_jwt.rsplit(".", 1)
        if signing_input != self._signing_input:
            raise CryptoError("JWT header or payload is not canonical base64url; cannot sign it unchanged.")
        self._signature = signature
        logger.info("Signed JWT credential")

    def add_custom_proof(self, proof: Proof) -> None:
        """
        Uses the detached `proof.signature` bytes as the JWT signature.

        Raises:
            InvalidInputError: If the proof has no signature bytes.
        """
        if not proof.signature:
            raise InvalidInputError("Proof signature cannot be empty.")
        self._signature = base64url_encode(proof.signature)

    def verify(self, options: Optional[CredentialOptions] = None, **overrides) -> None:
        """
        Checks the signature against the default key of the DID named in the header `kid`.

        Raises:
            VerificationFailedError: If the signature or `kid` is missing, or the signature does not match.
        """
        opts = self._merge_options(options, overrides)
        if not self._signature:
            raise VerificationFailedError("JWT signature is missing.")

        kid = self.get_header().get("kid")
        if not isinstance(kid, str) or not kid:
            raise VerificationFailedError("JWT header is missing 'kid'.")
        did = split_verification_method(kid)
        if not did:
            raise VerificationFailedError(f"Invalid kid format: {kid}")

        logger.info(f"Verifying JWT credential signed by {did}")
        public_key_hex = self._resolver(opts).resolve_default_public_key(did)
        pub_jwk = jwk.JWK.from_pyca(load_public_key(public_key_hex))

        jws_token = jws.JWS()
        jws_token.allowed_algs = [JWT_ALGORITHM]
        try:
            jws_token.deserialize(self.serialize())
            jws_token.verify(pub_jwk)
        except jws.InvalidJWSSignature as e:
            logger.error(f"JWT signature verification failed for {did}: {e}")
            raise VerificationFailedError("JWT signature verification failed") from e
        except (JWException, ValueError) as e:
            logger.error(f"JWT could not be verified: {e}")
            raise VerificationFailedError(f"Invalid JWT: {e}") from e
        logger.info("JWT signature verified successfully.")

    def serialize(self) -> str:
        if self._signature:
            return f"{self._signing_input}.{self._signature}"
        return self._signing_input

    def get_signing_input(self) -> bytes:
        return self._signing_input.encode("utf-8")

    def _decode_segment(self, index: int) -> Dict[str, Any]:
        segment = self._signing_input.split(".")[index]
        try:
            decoded = json.loads(base64url_decode(segment).decode("utf-8"))
        except (CryptoError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ParseError(f"Failed to decode JWT segment: {e}") from e
        if not isinstance(decoded, dict):
            raise ParseError("JWT segment is not a JSON object.")
        return decoded

    def get_header(self) -> Dict[str, Any]:
        return self._decode_segment(0)

    def get_payload(self) -> Dict[str, Any]:
        return self._decode_segment(1)

    def get_contents(self) -> bytes:
        return _compact_json(self._payload_data)

    def get_credential_contents(self) -> CredentialContents:
        return parse_credential_contents(self._payload_data)


def _as_json_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def parse_credential(
    raw: RawCredential,
    options: Optional[CredentialOptions] = None,
    **overrides
) -> Credential:
    """
    Parses either wire format: a JSON object becomes a `JsonCredential`, a
    three-segment base64url string (optionally quoted) a `JwtCredential`.

    Raises:
        ParseError: If the input is empty or neither format.
    """
    text = _to_text(raw).strip()
    if not text:
        raise ParseError("Credential is empty.")

    if _as_json_object(text) is not None:
        logger.info("Parsing embedded-proof JSON credential")
        return JsonCredential.parse(text, options, **overrides)

    if _JWT_RE.match(text.strip('"')):
        logger.info("Parsing JWT credential")
        return JwtCredential.parse(text, options, **overrides)

    raise ParseError("Failed to parse credential: not a valid JWT or embedded credential.")


def parse_credential_with_verification(
    raw: RawCredential,
    options: Optional[CredentialOptions] = None,
    **overrides
) -> Credential:
    """Parses and immediately verifies the credential's proof."""
    return parse_credential(raw, options, **{**overrides, "verify_proof": True})
