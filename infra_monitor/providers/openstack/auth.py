"""
Keystone v3 authentication and token cache.

Tokens are cached per credential key (auth URL + auth method + identity)
and reused until five minutes before they expire. A 401 from any service
evicts the cached token so the next call authenticates again.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from infra_monitor.providers.config import OpenStackConfig
from infra_monitor.providers.exceptions import ProviderResponseError
from infra_monitor.providers.http import JsonHttpClient
from infra_monitor.providers.openstack.schemas import CatalogEntry, KeystoneTokenResponse

logger = logging.getLogger(__name__)

TOKEN_REFRESH_BUFFER = timedelta(minutes=5)
ADMIN_ROLE = "admin"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AuthToken:
    """Scoped Keystone token. Never leaves the OpenStack provider."""
    token: str
    expires_at: datetime
    catalog: List[CatalogEntry] = field(default_factory=list)
    project_id: Optional[str] = None
    project_name: Optional[str] = None
    user_id: Optional[str] = None
    roles: List[str] = field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return any(role.lower() == ADMIN_ROLE for role in self.roles)

    def is_fresh(self, now: datetime, buffer: timedelta = TOKEN_REFRESH_BUFFER) -> bool:
        return now < self.expires_at - buffer


def token_cache_key(config: OpenStackConfig) -> str:
    auth_url = config.auth_url.rstrip("/")
    if config.uses_application_credential:
        return f"openstack:{auth_url}:appcred:{config.application_credential_id}"
    return f"openstack:{auth_url}:password:{config.username}:{config.project_name}"


def build_auth_payload(config: OpenStackConfig) -> Dict:
    """Keystone v3 POST /auth/tokens body for password or application-credential auth."""
    if config.uses_application_credential:
        return {
            "auth": {
                "identity": {
                    "methods": ["application_credential"],
                    "application_credential": {
                        "id": config.application_credential_id,
                        "secret": config.application_credential_secret,
                    },
                }
            }
        }
    return {
        "auth": {
            "identity": {
                "methods": ["password"],
                "password": {
                    "user": {
                        "name": config.username,
                        "password": config.password,
                        "domain": {"name": config.user_domain_name},
                    }
                },
            },
            "scope": {
                "project": {
                    "name": config.project_name,
                    "domain": {"name": config.project_domain_name},
                }
            },
        }
    }


def get_service_endpoint(
    token: AuthToken,
    service_type: str,
    interface: str = "public",
    region: Optional[str] = None,
) -> Optional[str]:
    """
    Resolve a service URL from the token catalog.

    Args:
        token: Authenticated token
        service_type: Catalog type (compute, identity, ...)
        interface: public, internal or admin
        region: Region id; None accepts any region

    Returns:
        Endpoint URL without trailing slash, or None if the catalog has no match
    """
    for service in token.catalog:
        if service.type != service_type:
            continue
        for endpoint in service.endpoints:
            if endpoint.interface != interface:
                continue
            if region and region not in (endpoint.region_id, endpoint.region):
                continue
            return endpoint.url.rstrip("/")
    return None


class KeystoneAuthenticator(JsonHttpClient):
    """Exchanges configured credentials for a scoped token."""

    def __init__(self, timeout: float, verify: bool = True):
        super().__init__(timeout=timeout, verify=verify)

    def authenticate(self, config: OpenStackConfig) -> AuthToken:
        url = f"{config.auth_url.rstrip('/')}/auth/tokens"
        response = self._send("post", url, json=build_auth_payload(config))

        subject_token = response.headers.get("X-Subject-Token")
        if not subject_token:
            raise ProviderResponseError(f"No X-Subject-Token header in response from {url}")
        try:
            body = response.json()
        except ValueError as e:
            raise ProviderResponseError(f"Invalid JSON from {url}: {e}") from e
        token = self._validate(KeystoneTokenResponse, body, url).token

        expires_at = token.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        logger.info(f"Authenticated to Keystone {config.auth_url} for '{config.name}'")
        return AuthToken(
            token=subject_token,
            expires_at=expires_at,
            catalog=token.catalog,
            project_id=token.project.id if token.project else None,
            project_name=token.project.name if token.project else None,
            user_id=token.user.id if token.user else None,
            roles=[role.name for role in token.roles if role.name],
        )


class TokenCache:
    """
    Keyed cache of Keystone tokens.

    Concurrent misses on the same key may authenticate twice; the last
    token written wins.
    """

    def __init__(
        self,
        authenticate: Callable[[OpenStackConfig], AuthToken],
        refresh_buffer: timedelta = TOKEN_REFRESH_BUFFER,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._authenticate = authenticate
        self.refresh_buffer = refresh_buffer
        self._clock = clock
        self._tokens: Dict[str, AuthToken] = {}

    def get(self, config: OpenStackConfig) -> AuthToken:
        """Return a cached token, authenticating first if it is missing or close to expiry."""
        key = token_cache_key(config)
        cached = self._tokens.get(key)
        if cached is not None and cached.is_fresh(self._clock(), self.refresh_buffer):
            return cached

        if cached is not None:
            logger.debug(f"Token for {key} expires at {cached.expires_at}, refreshing")
        # The previous entry stays in place until the new token is obtained
        token = self._authenticate(config)
        self._tokens[key] = token
        return token

    def invalidate(self, config: OpenStackConfig):
        key = token_cache_key(config)
        if self._tokens.pop(key, None) is not None:
            logger.info(f"Invalidated cached token for {key}")

    def clear(self):
        self._tokens.clear()

    def __len__(self) -> int:
        return len(self._tokens)
