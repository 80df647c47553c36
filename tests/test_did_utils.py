"""Unit tests for did_utils module"""

import httpx
import pytest
import respx
from httpx import Response
from jwcrypto import jwk

from vc_proof_tool.constants import ENV_DID_BASE_URL, ENV_RESOLVER_TIMEOUT
from vc_proof_tool.crypto_utils import derive_public_key, load_public_key
from vc_proof_tool.did_utils import (
    VerificationMethodResolver,
    extract_public_key_hex,
    jwk_to_public_key_hex
)
from vc_proof_tool.errors import (
    ConfigurationError,
    InvalidInputError,
    InvalidKeyFormatError,
    KeyNotFoundError,
    ResolutionError
)
from vc_proof_tool.schemas import Jwk, VerificationMethodEntry

from conftest import ISSUER_DID, OTHER_PRIVATE_KEY

BASE_URL = "https://resolver.test/api/v1/did"
ISSUER_URL = f"{BASE_URL}/did%3Aexample%3Aissuer"


@pytest.fixture
def http_resolver():
    return VerificationMethodResolver(base_url=BASE_URL, timeout=2.0)


@pytest.fixture
def public_jwk(public_key):
    """The test public key as an EC secp256k1 JWK."""
    key = jwk.JWK.from_pyca(load_public_key(public_key))
    return key.export_public(as_dict=True)


@respx.mock
def test_resolve_did_document(http_resolver, did_document):
    """The DID is percent-encoded into a single path segment."""
    route = respx.get(ISSUER_URL).mock(return_value=Response(200, json=did_document))

    document = http_resolver.resolve_did_document(ISSUER_DID)

    assert route.called
    assert document.id == ISSUER_DID
    assert document.verificationMethod[0].id == f"{ISSUER_DID}#key-1"
    assert document.context == ["https://www.w3.org/ns/did/v1"]


@respx.mock
def test_resolve_did_document_http_error(http_resolver):
    respx.get(ISSUER_URL).mock(return_value=Response(404, json={"error": "not found"}))

    with pytest.raises(ResolutionError) as excinfo:
        http_resolver.resolve_did_document(ISSUER_DID)
    assert "404" in str(excinfo.value)


@respx.mock
def test_resolve_did_document_transport_error(http_resolver):
    respx.get(ISSUER_URL).mock(side_effect=httpx.ConnectError("connection refused"))

    with pytest.raises(ResolutionError):
        http_resolver.resolve_did_document(ISSUER_DID)


@respx.mock
def test_resolve_did_document_invalid_json(http_resolver):
    respx.get(ISSUER_URL).mock(return_value=Response(200, text="<html>oops</html>"))

    with pytest.raises(ResolutionError):
        http_resolver.resolve_did_document(ISSUER_DID)


@respx.mock
def test_resolve_did_document_invalid_body(http_resolver):
    respx.get(ISSUER_URL).mock(return_value=Response(200, json={"verificationMethod": "nope"}))

    with pytest.raises(ResolutionError):
        http_resolver.resolve_did_document(ISSUER_DID)


@respx.mock
def test_every_lookup_is_a_fresh_request(http_resolver, did_document):
    route = respx.get(ISSUER_URL).mock(return_value=Response(200, json=did_document))

    http_resolver.resolve_public_key(f"{ISSUER_DID}#key-1")
    http_resolver.resolve_public_key(f"{ISSUER_DID}#key-1")

    assert route.call_count == 2


@respx.mock
def test_resolve_public_key_strips_hex_prefix(http_resolver, did_document, public_key):
    respx.get(ISSUER_URL).mock(return_value=Response(200, json=did_document))

    assert http_resolver.resolve_public_key(f"{ISSUER_DID}#key-1") == public_key


@respx.mock
def test_resolve_public_key_unknown_fragment(http_resolver, did_document):
    respx.get(ISSUER_URL).mock(return_value=Response(200, json=did_document))

    with pytest.raises(KeyNotFoundError):
        http_resolver.resolve_public_key(f"{ISSUER_DID}#key-9")


@respx.mock
def test_resolve_default_public_key_ignores_fragment(http_resolver, did_document, public_key):
    route = respx.get(ISSUER_URL).mock(return_value=Response(200, json=did_document))

    assert http_resolver.resolve_default_public_key(f"{ISSUER_DID}#whatever") == public_key
    assert route.called


@respx.mock
def test_resolve_default_public_key_without_methods(http_resolver):
    respx.get(ISSUER_URL).mock(return_value=Response(200, json={"id": ISSUER_DID, "verificationMethod": []}))

    with pytest.raises(KeyNotFoundError):
        http_resolver.resolve_default_public_key(ISSUER_DID)


@respx.mock
def test_resolve_public_key_from_jwk(http_resolver, public_jwk, public_key):
    document = {
        "id": ISSUER_DID,
        "verificationMethod": [{
            "id": f"{ISSUER_DID}#key-1",
            "type": "JsonWebKey2020",
            "controller": ISSUER_DID,
            "publicKeyJwk": public_jwk,
        }],
    }
    respx.get(ISSUER_URL).mock(return_value=Response(200, json=document))

    assert http_resolver.resolve_public_key(f"{ISSUER_DID}#key-1") == public_key


@respx.mock
def test_check_verification_method(http_resolver, did_document, private_key):
    respx.get(ISSUER_URL).mock(return_value=Response(200, json=did_document))

    assert http_resolver.check_verification_method(private_key, f"{ISSUER_DID}#key-1") is True
    assert http_resolver.check_verification_method(OTHER_PRIVATE_KEY, f"{ISSUER_DID}#key-1") is False


def test_injected_client_is_used(did_document):
    requested = []

    def handler(request):
        requested.append(str(request.url))
        return Response(200, json=did_document)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    resolver = VerificationMethodResolver(base_url=BASE_URL + "/", client=client)

    resolver.resolve_did_document(ISSUER_DID)

    assert requested == [ISSUER_URL]
    assert not client.is_closed


@pytest.mark.parametrize("method", ["resolve_did_document", "resolve_public_key", "resolve_default_public_key"])
def test_empty_identifier_rejected(http_resolver, method):
    with pytest.raises(InvalidInputError):
        getattr(http_resolver, method)("")


def test_defaults_come_from_environment(monkeypatch):
    monkeypatch.setenv(ENV_DID_BASE_URL, "https://other.test/did/")
    monkeypatch.setenv(ENV_RESOLVER_TIMEOUT, "3.5")

    resolver = VerificationMethodResolver()

    assert resolver.base_url == "https://other.test/did"
    assert resolver.timeout == 3.5


def test_invalid_timeout_in_environment(monkeypatch):
    monkeypatch.setenv(ENV_RESOLVER_TIMEOUT, "soon")

    with pytest.raises(ConfigurationError):
        VerificationMethodResolver()


def test_jwk_with_wrong_curve_rejected():
    p256 = jwk.JWK.generate(kty="EC", crv="P-256").export_public(as_dict=True)

    with pytest.raises(InvalidKeyFormatError):
        jwk_to_public_key_hex(Jwk(**p256))


def test_jwk_missing_coordinates_rejected():
    with pytest.raises(InvalidKeyFormatError):
        jwk_to_public_key_hex(Jwk(kty="EC", crv="secp256k1", x="AAAA"))


def test_entry_without_key_material():
    entry = VerificationMethodEntry(id=f"{ISSUER_DID}#key-1", type="EcdsaSecp256k1VerificationKey2019")

    with pytest.raises(KeyNotFoundError):
        extract_public_key_hex(entry)


def test_public_key_hex_preferred_over_jwk(public_jwk):
    other_public_key = derive_public_key(OTHER_PRIVATE_KEY)
    entry = VerificationMethodEntry(
        id=f"{ISSUER_DID}#key-1",
        type="EcdsaSecp256k1VerificationKey2019",
        publicKeyHex=other_public_key,
        publicKeyJwk=Jwk(**public_jwk),
    )

    assert extract_public_key_hex(entry) == other_public_key
