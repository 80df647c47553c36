# vc_proof_tool/errors.py
"""Custom exception classes for vc-proof-tool."""

class VcProofToolError(Exception):
    """Base class for tool-specific errors."""
    def __init__(self, message: str, error_code: str = "ToolError"):
        self.message = message
        self.error_code = error_code
        super().__init__(f"[{error_code}] {message}")

class ConfigurationError(VcProofToolError):
    """Error related to configuration or environment setup."""
    def __init__(self, message: str):
        super().__init__(message, error_code="ConfigurationError")

class InvalidInputError(VcProofToolError):
    """A caller-side precondition was not met."""
    def __init__(self, message: str):
        super().__init__(message, error_code="InvalidInput")

class ParseError(VcProofToolError):
    """Malformed JSON or JWT credential input."""
    def __init__(self, message: str):
        super().__init__(message, error_code="ParseError")

class InvalidProofError(ParseError):
    """The proof block is present but malformed."""
    def __init__(self, message: str):
        super().__init__(message)
        self.error_code = "InvalidProof"

class CanonicalizationError(VcProofToolError):
    """Error during JSON-LD expansion or RDF canonicalization."""
    def __init__(self, message: str):
        super().__init__(message, error_code="CanonicalizationError")

class CryptoError(VcProofToolError):
    """Malformed key or signature material, or a failed curve operation."""
    def __init__(self, message: str):
        super().__init__(message, error_code="CryptoError")

class InvalidKeyFormatError(CryptoError):
    """Error when a key is found but is in an invalid format."""
    def __init__(self, message: str):
        super().__init__(message)
        self.error_code = "InvalidKeyFormat"

class DidError(VcProofToolError):
    """Error related to DID operations."""
    def __init__(self, message: str, error_code: str = "DidError"):
        super().__init__(message, error_code=error_code)

class ResolutionError(DidError):
    """The DID document could not be fetched or decoded."""
    def __init__(self, message: str):
        super().__init__(message, error_code="ResolutionError")

class KeyNotFoundError(DidError):
    """Error when a required public key is not found in a DID document."""
    def __init__(self, message: str):
        super().__init__(message, error_code="KeyNotFound")

class UnsupportedProofError(VcProofToolError):
    """Unknown or not yet implemented proof type or cryptosuite."""
    def __init__(self, message: str):
        super().__init__(message, error_code="UnsupportedProof")

class VerificationFailedError(VcProofToolError):
    """A well-formed proof did not verify."""
    def __init__(self, message: str = "Signature verification failed"):
        super().__init__(message, error_code="VerificationFailed")
