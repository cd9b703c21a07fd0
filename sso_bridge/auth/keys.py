"""
Verification key loading with single-flight caching.

The key is either pre-provisioned through configuration (never expires, never
fetched) or fetched from the issuer and cached for a TTL window. The cache is
a single cell that is empty, loading (one shared in-flight fetch) or ready
(key plus fetch timestamp).
"""

import asyncio
import logging
import re
import time
from collections.abc import Awaitable, Callable

from jose import jwk
from jose.exceptions import JWKError

from sso_bridge.auth.jwt import ALGORITHM
from sso_bridge.core.exceptions import KeyUnavailableError

logger = logging.getLogger(__name__)

PEM_HEADER = "-----BEGIN PUBLIC KEY-----"
PEM_FOOTER = "-----END PUBLIC KEY-----"
PEM_LINE_LENGTH = 64

_PEM_PATTERN = re.compile(
    r"-----BEGIN ([A-Z ]+)-----(?P<body>.*?)-----END \1-----",
    re.DOTALL,
)


def normalize_public_key(raw: str) -> str:
    """
    Normalize PEM text as it typically arrives from an environment variable.

    Handles surrounding quotes, literal ``\\n`` escapes, single-line keys
    (header, body and footer on one line) and bodies that are not wrapped
    at 64 characters. Blank lines and trailing whitespace are dropped.

    Args:
        raw: PEM text in any of the above shapes

    Returns:
        PEM with header, 64-column base64 body and footer on separate lines
    """
    key = raw.strip().strip("\"'").strip()
    key = key.replace("\\r", "").replace("\\n", "\n").replace("\r", "")

    match = _PEM_PATTERN.search(key)
    if not match:
        # Not PEM-armoured; load_public_key rejects it
        return "\n".join(line.rstrip() for line in key.splitlines() if line.strip())

    label = match.group(1)
    body = "".join(match.group("body").split())
    lines = [body[i:i + PEM_LINE_LENGTH] for i in range(0, len(body), PEM_LINE_LENGTH)]
    return "\n".join([f"-----BEGIN {label}-----", *lines, f"-----END {label}-----"])


def load_public_key(raw: str) -> str:
    """
    Normalize PEM text and check that it parses as an RSA verification key.

    Raises:
        KeyUnavailableError: If the text is not a usable RS256 key
    """
    key = normalize_public_key(raw)
    try:
        jwk.construct(key, ALGORITHM)
    except JWKError as e:
        raise KeyUnavailableError(f"Public key is not a valid RSA key: {e}") from e
    return key


class PublicKeyStore:
    """
    Process-wide holder of the issuer's RSA verification key.

    Usage:
        store = PublicKeyStore(issuer.fetch_public_key, ttl=3600)
        key = await store.get()

    At most one fetch is in flight at a time; every caller arriving while it
    runs awaits the same result. A failed fetch caches nothing, so the next
    ``get`` starts over.
    """

    def __init__(
        self,
        fetch_key: Callable[[], Awaitable[str]],
        static_key: str | None = None,
        ttl: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetch_key = fetch_key
        self._static_key = load_public_key(static_key) if static_key else None
        self._ttl = ttl
        self._clock = clock

        self._key: str | None = None
        self._fetched_at: float = 0.0
        self._inflight: asyncio.Task[str] | None = None

    @property
    def is_static(self) -> bool:
        return self._static_key is not None

    @property
    def is_ready(self) -> bool:
        """True if ``get`` would return without fetching."""
        return self.is_static or self._cached() is not None

    async def get(self) -> str:
        """
        Return the current verification key.

        Raises:
            KeyUnavailableError: If the key cannot be fetched
        """
        if self._static_key is not None:
            return self._static_key

        cached = self._cached()
        if cached is not None:
            return cached

        if self._inflight is None:
            logger.debug("Public key cache miss, fetching from issuer")
            self._inflight = asyncio.ensure_future(self._load())

        # One waiter being cancelled must not cancel the fetch the others share
        return await asyncio.shield(self._inflight)

    async def preload(self) -> None:
        """Warm the cache at startup; failure is deferred to the first request."""
        try:
            await self.get()
        except KeyUnavailableError as e:
            logger.warning(f"Failed to pre-load public key, will attempt on first request: {e}")

    def invalidate(self) -> None:
        """Drop the cached remote key so the next ``get`` refetches."""
        self._key = None
        self._fetched_at = 0.0
        logger.info("Public key cache cleared")

    def _cached(self) -> str | None:
        if self._key is not None and self._clock() - self._fetched_at < self._ttl:
            return self._key
        return None

    async def _load(self) -> str:
        try:
            raw = await self._fetch_key()
            key = load_public_key(raw)
        except Exception as e:
            logger.error(f"Failed to fetch public key from issuer: {type(e).__name__}: {e}")
            raise KeyUnavailableError(f"Failed to fetch public key from issuer: {e}") from e
        finally:
            self._inflight = None

        self._key = key
        self._fetched_at = self._clock()
        logger.info("Public key fetched successfully")
        return key
