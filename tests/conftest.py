"""Configuration for pytest"""

import pytest
import logging

from vc_proof_tool.constants import (
    ECDSA_SECP256K1_VERIFICATION_KEY_2019,
    ENV_DID_BASE_URL,
    ENV_RESOLVER_TIMEOUT,
    ENV_VERIFICATION_METHOD_KEY,
)
from vc_proof_tool.crypto_utils import derive_public_key
from vc_proof_tool.did_utils import VerificationMethodResolver
from vc_proof_tool.errors import ResolutionError
from vc_proof_tool.schemas import DidDocument

TEST_PRIVATE_KEY = "e5c9a597b20e13627a3850d38439b61ec9ee7aefd77c7cb6c01dc3866e1db19a"
OTHER_PRIVATE_KEY = "0f1e2d3c4b5a69788796a5b4c3d2e1f00112233445566778899aabbccddeeff0"
ISSUER_DID = "did:example:issuer"
SUBJECT_DID = "did:example:subject"


@pytest.fixture(autouse=True)
def setup_logging():
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(levelname)s - %(name)s - %(message)s'
    )

    logging.getLogger('jwcrypto').setLevel(logging.WARNING)
    logging.getLogger('pyld').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)

    return logging.getLogger()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment from leaking into defaults."""
    for name in (ENV_DID_BASE_URL, ENV_RESOLVER_TIMEOUT, ENV_VERIFICATION_METHOD_KEY):
        monkeypatch.delenv(name, raising=False)


class InMemoryResolver(VerificationMethodResolver):
    """Serves DID documents from a dict instead of the network."""

    def __init__(self, documents):
        super().__init__(base_url="https://resolver.test/api/v1/did", timeout=1.0)
        self.documents = documents
        self.requested = []

    def resolve_did_document(self, did):
        self.requested.append(did)
        if did not in self.documents:
            raise ResolutionError(f"Unknown DID '{did}'")
        return DidDocument.model_validate(self.documents[did])


@pytest.fixture
def private_key():
    return TEST_PRIVATE_KEY


@pytest.fixture
def public_key(private_key):
    return derive_public_key(private_key)


@pytest.fixture
def did_document(public_key):
    """DID document publishing the test key as key-1."""
    return {
        "@context": ["https://www.w3.org/ns/did/v1"],
        "id": ISSUER_DID,
        "verificationMethod": [
            {
                "id": f"{ISSUER_DID}#key-1",
                "type": ECDSA_SECP256K1_VERIFICATION_KEY_2019,
                "controller": ISSUER_DID,
                "publicKeyHex": f"0x{public_key}",
            }
        ],
        "assertionMethod": [f"{ISSUER_DID}#key-1"],
    }


@pytest.fixture
def resolver(did_document):
    return InMemoryResolver({ISSUER_DID: did_document})
