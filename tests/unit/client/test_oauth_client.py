"""Tests for the OAuth token endpoint client."""

import pytest

from erp_sync_core.client.oauth_client import OAuthClient
from erp_sync_core.client.transport import PacingGate, RateLimitedTransport
from erp_sync_core.config import OAuthConfig
from erp_sync_core.exceptions import (
    AuthorizationFailedError,
    ClientRequestError,
    RefreshFailedError,
    ServerError,
)
from tests.fixtures.fakes import FakeClock, RecordingSleep, ScriptedSession, make_response

TOKEN_BODY = {
    "access_token": "new-access",
    "refresh_token": "new-refresh",
    "expires_in": 21600,
    "token_type": "Bearer",
    "scope": "98309 318257570",
}


@pytest.fixture
def oauth_config():
    return OAuthConfig(
        integration="bling",
        client_id="client-id",
        client_secret="client-secret",
        token_url="https://erp.example.com/oauth/token",
    )


def build_client(oauth_config, *outcomes):
    clock = FakeClock()
    session = ScriptedSession(*outcomes)
    transport = RateLimitedTransport(
        PacingGate(0, clock=clock, sleep=RecordingSleep(clock)),
        session=session,
        sleep=RecordingSleep(),
    )
    return OAuthClient(oauth_config, transport), session


class TestRefresh:
    def test_refresh_posts_grant_with_basic_auth(self, oauth_config):
        client, session = build_client(oauth_config, make_response(200, TOKEN_BODY))

        tokens = client.refresh("old-refresh")

        assert tokens.access_token == "new-access"
        assert tokens.refresh_token == "new-refresh"
        assert tokens.expires_in == 21600
        call = session.calls[0]
        assert call["method"] == "POST"
        assert call["url"] == "https://erp.example.com/oauth/token"
        assert call["auth"] == ("client-id", "client-secret")
        assert call["data"] == {"grant_type": "refresh_token", "refresh_token": "old-refresh"}

    def test_refresh_is_never_retried(self, oauth_config):
        client, session = build_client(oauth_config, make_response(503))

        with pytest.raises(RefreshFailedError) as exc_info:
            client.refresh("old-refresh")

        assert len(session.calls) == 1
        assert isinstance(exc_info.value.cause, ServerError)

    def test_revoked_refresh_token(self, oauth_config):
        client, _ = build_client(oauth_config, make_response(400, {"error": "invalid_grant"}))

        with pytest.raises(RefreshFailedError) as exc_info:
            client.refresh("revoked")

        assert isinstance(exc_info.value.cause, ClientRequestError)

    def test_malformed_token_response(self, oauth_config):
        client, _ = build_client(oauth_config, make_response(200, {"access_token": "only-this"}))

        with pytest.raises(RefreshFailedError):
            client.refresh("old-refresh")

    def test_non_json_token_response(self, oauth_config):
        client, _ = build_client(oauth_config, make_response(200, text="<html>maintenance</html>"))

        with pytest.raises(RefreshFailedError):
            client.refresh("old-refresh")

    def test_unsupported_token_type(self, oauth_config):
        client, _ = build_client(oauth_config, make_response(200, {**TOKEN_BODY, "token_type": "mac"}))

        with pytest.raises(RefreshFailedError):
            client.refresh("old-refresh")


class TestExchangeCode:
    def test_exchange_code(self, oauth_config):
        client, session = build_client(oauth_config, make_response(200, TOKEN_BODY))

        tokens = client.exchange_code("auth-code")

        assert tokens.access_token == "new-access"
        assert session.calls[0]["data"] == {"grant_type": "authorization_code", "code": "auth-code"}

    def test_rejected_code(self, oauth_config):
        client, _ = build_client(oauth_config, make_response(401, {"error": "invalid_client"}))

        with pytest.raises(AuthorizationFailedError):
            client.exchange_code("bad-code")
