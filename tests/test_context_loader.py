# tests/test_context_loader.py

"""Unit tests for the context_loader module."""

import httpx
import pytest
from unittest.mock import MagicMock
from pyld import jsonld

from vc_proof_tool.constants import VC_JSONLD_CONTEXT_V2
from vc_proof_tool.context_loader import (
    CONTEXTS,
    create_document_loader,
    create_network_loader,
    default_document_loader
)


def test_bundled_contexts_structure():
    """The credentials v2 context is bundled with its type-scoped terms."""
    assert VC_JSONLD_CONTEXT_V2 in CONTEXTS

    v2_context = CONTEXTS[VC_JSONLD_CONTEXT_V2]["@context"]
    assert v2_context["@protected"] is True
    assert "@vocab" in v2_context
    assert "VerifiableCredential" in v2_context
    scoped = v2_context["VerifiableCredential"]["@context"]
    for term in ("issuer", "credentialSubject", "validFrom", "validUntil", "proof"):
        assert term in scoped
    assert "DataIntegrityProof" in v2_context


def test_document_loader_with_bundled_context():
    """The loader serves the bundled document without touching the network."""
    result = default_document_loader(VC_JSONLD_CONTEXT_V2)

    assert result["contextUrl"] is None
    assert result["documentUrl"] == VC_JSONLD_CONTEXT_V2
    assert result["document"] == CONTEXTS[VC_JSONLD_CONTEXT_V2]


def test_document_loader_returns_copies():
    """Mutating a loaded document does not alter the bundled context."""
    result = default_document_loader(VC_JSONLD_CONTEXT_V2)
    result["document"]["@context"]["id"] = "changed"

    assert CONTEXTS[VC_JSONLD_CONTEXT_V2]["@context"]["id"] == "@id"


def test_document_loader_accepts_extra_args():
    result = default_document_loader(VC_JSONLD_CONTEXT_V2, {"documentLoader": None}, extra=True)
    assert result["documentUrl"] == VC_JSONLD_CONTEXT_V2


def test_document_loader_unknown_context_without_fallback():
    """Unbundled URLs fail when no fallback is configured."""
    with pytest.raises(jsonld.JsonLdError) as excinfo:
        default_document_loader("https://example.com/unknown/v1")
    assert excinfo.value.code == "loading remote context failed"


def test_document_loader_extra_contexts():
    extra = {"https://example.com/ctx/v1": {"@context": {"foo": "https://example.com/foo"}}}
    doc_loader = create_document_loader(extra_contexts=extra)

    result = doc_loader("https://example.com/ctx/v1")
    assert result["document"] == extra["https://example.com/ctx/v1"]
    # bundled contexts are still served
    assert doc_loader(VC_JSONLD_CONTEXT_V2)["documentUrl"] == VC_JSONLD_CONTEXT_V2


def test_document_loader_fallback():
    """Unbundled URLs go to the fallback loader."""
    mock_result = {"contextUrl": None, "documentUrl": "https://example.com/context", "document": {"@context": {}}}
    fallback = MagicMock(return_value=mock_result)
    doc_loader = create_document_loader(fallback=fallback)

    result = doc_loader("https://example.com/context")

    fallback.assert_called_once_with("https://example.com/context")
    assert result == mock_result


def test_document_loader_fallback_not_used_for_bundled():
    fallback = MagicMock()
    doc_loader = create_document_loader(fallback=fallback)

    doc_loader(VC_JSONLD_CONTEXT_V2)

    fallback.assert_not_called()


def test_document_loader_fallback_error():
    """Errors from the fallback loader are reported as JSON-LD loading errors."""
    fallback = MagicMock(side_effect=RuntimeError("Network error"))
    doc_loader = create_document_loader(fallback=fallback)

    with pytest.raises(jsonld.JsonLdError) as excinfo:
        doc_loader("https://example.com/context")
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_network_loader_uses_client():
    def handler(request):
        assert request.url == "https://example.com/ctx"
        return httpx.Response(200, json={"@context": {"a": "https://example.com/a"}})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    loader = create_network_loader(timeout=2.0, client=client)

    result = loader("https://example.com/ctx")

    assert result["documentUrl"] == "https://example.com/ctx"
    assert result["document"] == {"@context": {"a": "https://example.com/a"}}


def test_network_loader_as_fallback_reports_http_errors():
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
    doc_loader = create_document_loader(fallback=create_network_loader(timeout=2.0, client=client))

    with pytest.raises(jsonld.JsonLdError) as excinfo:
        doc_loader("https://example.com/missing")
    assert isinstance(excinfo.value.__cause__, httpx.HTTPStatusError)
