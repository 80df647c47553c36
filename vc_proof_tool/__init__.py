# vc_proof_tool/__init__.py
"""Issue and verify secp256k1-signed Verifiable Credentials in JSON-LD and JWT form."""

from .errors import (
    VcProofToolError,
    ConfigurationError,
    InvalidInputError,
    ParseError,
    InvalidProofError,
    CanonicalizationError,
    CryptoError,
    InvalidKeyFormatError,
    DidError,
    ResolutionError,
    KeyNotFoundError,
    UnsupportedProofError,
    VerificationFailedError,
)
from .schemas import (
    CredentialContents,
    CredentialOptions,
    Proof,
    Schema,
    Status,
    Subject,
    get_options,
)
from .did_utils import VerificationMethodResolver
from .proof_utils import ProofKind
from .vc_utils import (
    Credential,
    JsonCredential,
    JwtCredential,
    parse_credential,
    parse_credential_with_verification,
)
