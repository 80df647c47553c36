# vc_proof_tool/constants.py
"""Shared constants for the vc-proof-tool."""

DEFAULT_DID_BASE_URL: str = "https://api.ndadid.vn/api/v1/did"
DEFAULT_VERIFICATION_METHOD_KEY: str = "key-1"
DEFAULT_RESOLVER_TIMEOUT: float = 10.0
DEFAULT_PROOF_PURPOSE: str = "assertionMethod"

ENV_DID_BASE_URL: str = "VC_PROOF_DID_BASE_URL"
ENV_RESOLVER_TIMEOUT: str = "VC_PROOF_RESOLVER_TIMEOUT"
ENV_VERIFICATION_METHOD_KEY: str = "VC_PROOF_VERIFICATION_METHOD_KEY"

# Proof types and cryptosuites
DATA_INTEGRITY_PROOF: str = "DataIntegrityProof"
ECDSA_RDFC_2019: str = "ecdsa-rdfc-2019"
ECDSA_SECP256K1_SIGNATURE_2019: str = "EcdsaSecp256k1Signature2019"
ECDSA_SECP256K1_VERIFICATION_KEY_2019: str = "EcdsaSecp256k1VerificationKey2019"
JWT_PROOF_2020: str = "JwtProof2020"

VC_JSONLD_CONTEXT_V2: str = "https://www.w3.org/ns/credentials/v2"

JSONLD_OPTIONS = {
    "algorithm": "URDNA2015",
    "format": "application/n-quads"
}

# JWT
JWT_TYPE: str = "JWT"
JWT_ALGORITHM: str = "ES256K"
JWT_PATTERN: str = r"^[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+$"

CREDENTIAL_TYPE_JSON: str = "JSON"
CREDENTIAL_TYPE_JWT: str = "JWT"

# secp256k1 encodings
SECP256K1_CURVE: str = "secp256k1"
COMPRESSED_KEY_LENGTH: int = 33
UNCOMPRESSED_KEY_LENGTH: int = 65
COMPRESSED_KEY_PREFIXES = (0x02, 0x03)
UNCOMPRESSED_KEY_PREFIX: int = 0x04
SIGNATURE_LENGTH: int = 64
SIGNATURE_WITH_RECOVERY_LENGTH: int = 65
COORDINATE_LENGTH: int = 32
SECP256K1_ORDER: int = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
