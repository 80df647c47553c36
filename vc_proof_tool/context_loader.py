# vc_proof_tool/context_loader.py

"""
Provides offline JSON-LD context loading for credential canonicalization.

The W3C Verifiable Credentials v2 context is bundled with the package so that
canonicalizing a credential never needs the network. Any other context URL is
handed to an optional fallback loader; without one, the lookup fails and
pyld reports a loading error.
"""

import copy
import json
import logging
import os
from typing import Dict, Any, Callable, Optional

import httpx
from pyld import jsonld

from .config import get_resolver_timeout
from .constants import VC_JSONLD_CONTEXT_V2

logger = logging.getLogger(__name__)

CONTEXTS_DIR = os.path.join(os.path.dirname(__file__), "contexts")


def _load_bundled_context(filename: str) -> Dict[str, Any]:
    with open(os.path.join(CONTEXTS_DIR, filename), "r", encoding="utf-8") as f:
        return json.load(f)


CONTEXTS = {
    VC_JSONLD_CONTEXT_V2: _load_bundled_context("credentials_v2.json"),
}

DocumentLoader = Callable[..., Dict[str, Any]]


def _remote_document(url: str, document: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'contextUrl': None,
        'documentUrl': url,
        'document': document
    }


def create_document_loader(
    extra_contexts: Optional[Dict[str, Dict[str, Any]]] = None,
    fallback: Optional[DocumentLoader] = None
) -> DocumentLoader:
    """
    Creates a document loader that serves bundled contexts and delegates
    everything else to `fallback`, if one is given.

    Args:
        extra_contexts: Additional url -> context document entries to serve offline.
        fallback: Loader called for URLs that are not bundled.

    Returns:
        A document loader function compatible with PyLD.
    """
    contexts = dict(CONTEXTS)
    if extra_contexts:
        contexts.update(extra_contexts)

    def document_loader(url: str, *args, **kwargs) -> Dict[str, Any]:
        """
        Document loader for JSON-LD processing. Accepts extra args/kwargs.

        Raises:
            jsonld.JsonLdError: If the context is not bundled and no fallback
                can provide it.
        """
        logger.debug(f"Requesting JSON-LD context: {url}")

        if url in contexts:
            logger.info(f"Using bundled context for: {url}")
            # pyld may mutate what it is given
            return _remote_document(url, copy.deepcopy(contexts[url]))

        if fallback is None:
            logger.warning(f"Context {url} is not bundled and no fallback loader is configured.")
            raise jsonld.JsonLdError(
                'Loading remote context failed',
                'jsonld.LoadDocumentError',
                {'url': url},
                code='loading remote context failed'
            )

        logger.warning(f"Context {url} not found in bundled contexts. Using fallback loader.")
        try:
            return fallback(url, *args, **kwargs)
        except jsonld.JsonLdError:
            raise
        except Exception as e:
            logger.error(f"Fallback loader failed for {url}: {e}")
            raise jsonld.JsonLdError(
                'Loading remote context failed',
                'jsonld.LoadDocumentError',
                {'url': url},
                code='loading remote context failed'
            ) from e

    return document_loader


def create_network_loader(
    timeout: Optional[float] = None,
    client: Optional[httpx.Client] = None
) -> DocumentLoader:
    """
    Creates a loader that fetches JSON-LD documents over HTTP.

    Meant to be passed as the `fallback` of `create_document_loader` by callers
    that accept network access during canonicalization.
    """
    request_timeout = timeout if timeout is not None else get_resolver_timeout()

    def network_loader(url: str, *args, **kwargs) -> Dict[str, Any]:
        logger.info(f"Fetching JSON-LD context from network: {url}")
        headers = {"Accept": "application/ld+json, application/json"}
        if client is not None:
            response = client.get(url, headers=headers, timeout=request_timeout)
        else:
            response = httpx.get(url, headers=headers, timeout=request_timeout, follow_redirects=True)
        response.raise_for_status()
        return _remote_document(str(response.url), response.json())

    return network_loader


default_document_loader = create_document_loader()
