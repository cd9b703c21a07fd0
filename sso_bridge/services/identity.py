"""
User login resolution for downstream integrations.

The login is the correlation identifier sent to webhook consumers. It is
resolved from the issuer's user profile, falling back to the token's email,
and cached per subject for the life of the process.

The cache has no TTL: a login renamed at the issuer keeps resolving to the
old value until ``invalidate`` or ``invalidate_all`` is called.
"""

import logging
from collections.abc import Callable
from typing import Any

import httpx

from sso_bridge.core.exceptions import IdentityUnresolvedError
from sso_bridge.services.issuer_client import IssuerClient, IssuerResponseError

logger = logging.getLogger(__name__)

LoginExtractor = Callable[[dict[str, Any]], str | None]


def profile_field(name: str) -> LoginExtractor:
    """Extractor returning a non-empty string field of the profile."""

    def extract(profile: dict[str, Any]) -> str | None:
        value = profile.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    extract.__name__ = f"profile_{name}"
    return extract


def profile_id(profile: dict[str, Any]) -> str | None:
    value = profile.get("id")
    # bool is an int subclass and never a valid id
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


# Evaluated in order; the first non-empty result wins
LOGIN_EXTRACTORS: tuple[LoginExtractor, ...] = (
    profile_field("userLogin"),
    profile_field("login"),
    profile_field("username"),
    profile_field("email"),
    profile_id,
)


def login_from_profile(
    profile: dict[str, Any],
    extractors: tuple[LoginExtractor, ...] = LOGIN_EXTRACTORS,
) -> str | None:
    for extract in extractors:
        login = extract(profile)
        if login:
            return login
    return None


class IdentityResolver:
    """Resolves and caches the login string of an authenticated subject."""

    def __init__(
        self,
        issuer: IssuerClient,
        extractors: tuple[LoginExtractor, ...] = LOGIN_EXTRACTORS,
    ):
        self._issuer = issuer
        self._extractors = extractors
        self._cache: dict[int, str] = {}

    async def resolve_login(
        self,
        service_token: str,
        subject_id: int,
        email: str | None = None,
    ) -> str:
        """
        Resolve the login for ``subject_id``.

        Order: cache, issuer profile (one attempt), ``email``.

        Args:
            service_token: The caller's own service token, used for the
                profile request
            subject_id: Subject id from the validated token
            email: Email claim from the validated token, used as fallback

        Returns:
            Login string

        Raises:
            IdentityUnresolvedError: If every strategy fails
        """
        cached = self._cache.get(subject_id)
        if cached is not None:
            logger.debug(f"Using cached login for user {subject_id}")
            return cached

        login = await self._login_from_issuer(service_token, subject_id)
        if login is None and email:
            logger.debug(f"Using email as login fallback for user {subject_id}")
            login = email

        if login is None:
            logger.warning(f"Unable to determine login for user {subject_id}")
            raise IdentityUnresolvedError(subject_id)

        self._cache[subject_id] = login
        return login

    def cached_login(self, subject_id: int) -> str | None:
        return self._cache.get(subject_id)

    def invalidate(self, subject_id: int) -> bool:
        """Drop one cached login. Returns whether an entry existed."""
        return self._cache.pop(subject_id, None) is not None

    def invalidate_all(self) -> int:
        """Drop every cached login. Returns the number of entries removed."""
        count = len(self._cache)
        self._cache.clear()
        return count

    def __len__(self) -> int:
        return len(self._cache)

    async def _login_from_issuer(self, service_token: str, subject_id: int) -> str | None:
        try:
            profile = await self._issuer.get_user_profile(service_token)
        except (httpx.HTTPError, IssuerResponseError) as e:
            logger.warning(f"Failed to get user profile for user {subject_id}: {type(e).__name__}")
            return None

        login = login_from_profile(profile, self._extractors)
        if login is None:
            logger.warning(f"Profile for user {subject_id} has no usable login field")
        return login
