# vc_proof_tool/config.py
"""Environment-driven configuration for the vc-proof-tool."""

import os
import logging

from .constants import (
    DEFAULT_DID_BASE_URL,
    DEFAULT_RESOLVER_TIMEOUT,
    DEFAULT_VERIFICATION_METHOD_KEY,
    ENV_DID_BASE_URL,
    ENV_RESOLVER_TIMEOUT,
    ENV_VERIFICATION_METHOD_KEY,
)
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def get_did_base_url() -> str:
    """Base URL of the DID resolver API, overridable via the environment."""
    base_url = os.getenv(ENV_DID_BASE_URL)
    if base_url:
        logger.debug(f"Using DID base URL from {ENV_DID_BASE_URL}: {base_url}")
        return base_url
    return DEFAULT_DID_BASE_URL


def get_resolver_timeout() -> float:
    """
    Timeout in seconds for DID resolution requests.

    Raises:
        ConfigurationError: If the environment variable is not a positive number.
    """
    raw = os.getenv(ENV_RESOLVER_TIMEOUT)
    if raw is None or raw == "":
        return DEFAULT_RESOLVER_TIMEOUT
    try:
        timeout = float(raw)
    except ValueError:
        raise ConfigurationError(f"'{ENV_RESOLVER_TIMEOUT}' must be a number of seconds, got '{raw}'.")
    if timeout <= 0:
        raise ConfigurationError(f"'{ENV_RESOLVER_TIMEOUT}' must be positive, got {timeout}.")
    return timeout


def get_verification_method_key() -> str:
    return os.getenv(ENV_VERIFICATION_METHOD_KEY) or DEFAULT_VERIFICATION_METHOD_KEY
