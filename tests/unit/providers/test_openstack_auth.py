"""
Unit tests for Keystone authentication and the token cache

Covers:
- Token reuse within validity
- Refresh inside the expiry buffer
- Invalidation after a 401
- Password and application-credential payloads
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import responses

from infra_monitor.providers.config import OpenStackConfig
from infra_monitor.providers.exceptions import ProviderAuthError, ProviderResponseError
from infra_monitor.providers.openstack.auth import (
    AuthToken,
    KeystoneAuthenticator,
    TokenCache,
    build_auth_payload,
    get_service_endpoint,
    token_cache_key,
)
from infra_monitor.providers.openstack.client import NovaClient
from infra_monitor.providers.openstack.schemas import CatalogEndpoint, CatalogEntry

AUTH_URL = "https://keystone.example:5000/v3"
NOVA_URL = "https://nova.example:8774/v2.1"
START = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def keystone_body(expires_at, roles=("member",)):
    return {
        "token": {
            "expires_at": expires_at,
            "project": {"id": "p-123", "name": "demo"},
            "user": {"id": "u-1", "name": "viewer"},
            "roles": [{"id": f"r-{name}", "name": name} for name in roles],
            "catalog": [
                {"type": "identity", "name": "keystone", "endpoints": [
                    {"interface": "public", "region_id": "RegionOne", "url": AUTH_URL},
                ]},
                {"type": "compute", "name": "nova", "endpoints": [
                    {"interface": "internal", "region_id": "RegionOne", "url": "http://nova.internal:8774/v2.1"},
                    {"interface": "public", "region_id": "RegionOne", "url": NOVA_URL + "/"},
                    {"interface": "public", "region_id": "RegionTwo", "url": "https://nova2.example:8774/v2.1"},
                ]},
            ],
        }
    }


def make_token(token_id, expires_at):
    return AuthToken(token=token_id, expires_at=expires_at)


class TestTokenCache:
    """Test token reuse and refresh"""

    def test_reuses_token_within_validity(self, openstack_config):
        authenticate = MagicMock(return_value=make_token("t1", START + timedelta(hours=1)))
        clock = FakeClock(START)
        cache = TokenCache(authenticate, clock=clock)

        first = cache.get(openstack_config)
        clock.now = START + timedelta(minutes=30)
        second = cache.get(openstack_config)

        assert first is second
        authenticate.assert_called_once_with(openstack_config)
        assert len(cache) == 1

    def test_refreshes_inside_expiry_buffer(self, openstack_config):
        authenticate = MagicMock(side_effect=[
            make_token("t1", START + timedelta(hours=1)),
            make_token("t2", START + timedelta(hours=2)),
        ])
        clock = FakeClock(START)
        cache = TokenCache(authenticate, clock=clock)
        first = cache.get(openstack_config)

        # less than five minutes left
        clock.now = START + timedelta(minutes=56)
        second = cache.get(openstack_config)
        third = cache.get(openstack_config)

        assert authenticate.call_count == 2
        assert second.token == "t2"
        assert second.expires_at > first.expires_at
        assert third is second

    def test_failed_refresh_keeps_nothing_new(self, openstack_config):
        authenticate = MagicMock(side_effect=ProviderAuthError("bad password"))
        cache = TokenCache(authenticate, clock=FakeClock(START))

        with pytest.raises(ProviderAuthError):
            cache.get(openstack_config)
        assert len(cache) == 0

    def test_invalidate(self, openstack_config):
        authenticate = MagicMock(side_effect=[
            make_token("t1", START + timedelta(hours=1)),
            make_token("t2", START + timedelta(hours=1)),
        ])
        cache = TokenCache(authenticate, clock=FakeClock(START))

        cache.get(openstack_config)
        cache.invalidate(openstack_config)

        assert cache.get(openstack_config).token == "t2"

    def test_keys_separate_credentials(self, openstack_config):
        app_cred = OpenStackConfig(
            name="cloud2", auth_url=AUTH_URL + "/", project_name="demo",
            application_credential_id="ac-1", application_credential_secret="secret"
        )

        assert token_cache_key(openstack_config) == f"openstack:{AUTH_URL}:password:viewer:demo"
        assert token_cache_key(app_cred) == f"openstack:{AUTH_URL}:appcred:ac-1"


class TestAuthPayload:
    """Test Keystone request bodies"""

    def test_password_payload(self, openstack_config):
        payload = build_auth_payload(openstack_config)

        identity = payload["auth"]["identity"]
        assert identity["methods"] == ["password"]
        assert identity["password"]["user"]["name"] == "viewer"
        assert identity["password"]["user"]["domain"] == {"name": "Default"}
        assert payload["auth"]["scope"]["project"]["name"] == "demo"

    def test_application_credential_payload(self):
        config = OpenStackConfig(
            name="cloud", auth_url=AUTH_URL, project_name="demo",
            application_credential_id="ac-1", application_credential_secret="secret"
        )
        payload = build_auth_payload(config)

        assert payload["auth"]["identity"]["methods"] == ["application_credential"]
        assert payload["auth"]["identity"]["application_credential"] == {"id": "ac-1", "secret": "secret"}
        assert "scope" not in payload["auth"]


class TestKeystoneAuthenticator:
    """Test token exchange against Keystone"""

    def test_authenticate(self, openstack_config, mocked_responses):
        mocked_responses.add(
            responses.POST, f"{AUTH_URL}/auth/tokens",
            json=keystone_body("2025-01-01T13:00:00.000000Z", roles=("member", "Admin")),
            headers={"X-Subject-Token": "gAAAA-token"},
            status=201
        )

        token = KeystoneAuthenticator(timeout=5).authenticate(openstack_config)

        assert token.token == "gAAAA-token"
        assert token.expires_at == START + timedelta(hours=1)
        assert token.project_id == "p-123"
        assert token.project_name == "demo"
        assert token.is_admin
        sent = json.loads(mocked_responses.calls[0].request.body)
        assert sent["auth"]["identity"]["password"]["user"]["password"] == "s3cret"

    def test_missing_subject_token(self, openstack_config, mocked_responses):
        mocked_responses.add(
            responses.POST, f"{AUTH_URL}/auth/tokens",
            json=keystone_body("2025-01-01T13:00:00Z"), status=201
        )

        with pytest.raises(ProviderResponseError):
            KeystoneAuthenticator(timeout=5).authenticate(openstack_config)

    def test_rejected_credentials(self, openstack_config, mocked_responses):
        mocked_responses.add(responses.POST, f"{AUTH_URL}/auth/tokens", status=401)

        with pytest.raises(ProviderAuthError):
            KeystoneAuthenticator(timeout=5).authenticate(openstack_config)


class TestServiceCatalog:
    """Test endpoint resolution"""

    def _token(self):
        return AuthToken(token="t", expires_at=START, catalog=[
            CatalogEntry(type="compute", endpoints=[
                CatalogEndpoint(interface="internal", region_id="RegionOne", url="http://internal"),
                CatalogEndpoint(interface="public", region_id="RegionOne", url="https://one/"),
                CatalogEndpoint(interface="public", region_id="RegionTwo", url="https://two"),
            ])
        ])

    def test_public_endpoint_for_region(self):
        token = self._token()
        assert get_service_endpoint(token, "compute", region="RegionOne") == "https://one"
        assert get_service_endpoint(token, "compute", region="RegionTwo") == "https://two"

    def test_any_region(self):
        assert get_service_endpoint(self._token(), "compute") == "https://one"

    def test_missing_service(self):
        assert get_service_endpoint(self._token(), "volumev3") is None
        assert get_service_endpoint(self._token(), "compute", region="RegionThree") is None


class TestNovaTokenInvalidation:
    """Test that a 401 from Nova evicts the cached token"""

    def test_401_invalidates_and_next_call_reauthenticates(self, openstack_config, mocked_responses):
        mocked_responses.add(
            responses.POST, f"{AUTH_URL}/auth/tokens",
            json=keystone_body("2999-01-01T00:00:00Z"),
            headers={"X-Subject-Token": "tok"},
            status=201
        )
        mocked_responses.add(responses.GET, f"{NOVA_URL}/servers/detail", status=401)
        authenticator = KeystoneAuthenticator(timeout=5)
        cache = TokenCache(authenticator.authenticate)
        client = NovaClient(openstack_config, timeout=5, token_cache=cache)

        with pytest.raises(ProviderAuthError):
            client.list_servers("RegionOne")
        assert len(cache) == 0

        mocked_responses.replace(responses.GET, f"{NOVA_URL}/servers/detail", json={"servers": []})
        assert client.list_servers("RegionOne") == []
        auth_calls = [c for c in mocked_responses.calls if c.request.url.endswith("/auth/tokens")]
        assert len(auth_calls) == 2
        assert mocked_responses.calls[-1].request.headers["X-Auth-Token"] == "tok"
