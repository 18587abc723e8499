# Tests for access token, refresh token and authorization code lifecycles.
# Created: 2026-09-14

from datetime import timedelta

import pytest
from conftest import WEB_REDIRECT, make_pkce_pair

from authgate.oauth2.errors import ErrorKind, OAuth2Error
from authgate.oauth2.models import GrantType, utcnow


@pytest.fixture
def client(server, web_client):
    return server.storage.clients.find_by_client_id(web_client["client_id"])


@pytest.fixture
def other_client(server):
    created = server.clients.create_client(
        name="Other App",
        redirect_uris=[WEB_REDIRECT],
        grant_types=[GrantType.AUTHORIZATION_CODE, GrantType.REFRESH_TOKEN],
        allowed_scopes=["openid"],
    )
    return server.storage.clients.find_by_client_id(created["client_id"])


def _expire(record):
    record.expires_at = utcnow() - timedelta(seconds=1)


# ===================== AccessTokenService =====================


class TestAccessTokenService:
    """Create, validate and revoke access tokens."""

    def test_create_sets_ttl(self, server, client, user):
        token = server.access_tokens.create(client, ["openid"], user.id)
        assert token.user_id == user.id
        assert token.client_id == client.client_id
        assert token.expires_at - token.created_at == timedelta(hours=1)
        assert server.storage.access_tokens.find_by_token(token.token) is token

    def test_validate(self, server, client):
        token = server.access_tokens.create(client, ["openid"])
        assert server.access_tokens.validate(token.token) is token

    def test_validate_unknown(self, server):
        with pytest.raises(OAuth2Error) as exc_info:
            server.access_tokens.validate("missing")
        assert exc_info.value.kind is ErrorKind.INVALID_TOKEN

    def test_validate_expired(self, server, client):
        token = server.access_tokens.create(client, ["openid"])
        _expire(token)
        with pytest.raises(OAuth2Error) as exc_info:
            server.access_tokens.validate(token.token)
        assert exc_info.value.kind is ErrorKind.INVALID_TOKEN

    def test_expires_exactly_now_is_invalid(self, server, client):
        token = server.access_tokens.create(client, ["openid"])
        now = utcnow()
        token.expires_at = now
        assert token.is_expired(now) is True
        assert token.is_valid(now) is False

    def test_revoke_idempotent(self, server, client):
        token = server.access_tokens.create(client, ["openid"])
        assert server.access_tokens.revoke(token.token) is True
        revoked_at = token.revoked_at
        assert token.revoked is True
        assert revoked_at is not None

        assert server.access_tokens.revoke(token.token) is True
        assert token.revoked_at == revoked_at

    def test_revoke_unknown(self, server):
        assert server.access_tokens.revoke("missing") is False

    def test_revoked_token_fails_validation(self, server, client):
        token = server.access_tokens.create(client, ["openid"])
        server.access_tokens.revoke(token.token)
        with pytest.raises(OAuth2Error):
            server.access_tokens.validate(token.token)

    def test_unknown_expired_and_revoked_are_indistinguishable(self, server, client):
        expired = server.access_tokens.create(client, ["openid"])
        _expire(expired)
        revoked = server.access_tokens.create(client, ["openid"])
        server.access_tokens.revoke(revoked.token)

        errors = []
        for value in ("missing", expired.token, revoked.token):
            with pytest.raises(OAuth2Error) as exc_info:
                server.access_tokens.validate(value)
            errors.append(exc_info.value.to_dict())
        assert errors[0] == errors[1] == errors[2]

    def test_fresh_token_reports_full_lifetime(self, server, client):
        token = server.access_tokens.create(client, ["openid"])
        assert token.expires_in(token.created_at) == 3600
        assert token.expires_in(token.created_at + timedelta(milliseconds=1)) == 3600
        assert token.expires_in(token.expires_at) == 0


# ===================== RefreshTokenService =====================


class TestRefreshTokenService:
    """Refresh tokens are revoked as part of consumption."""

    def test_create_sets_ttl(self, server, client, user):
        token = server.refresh_tokens.create(client, user.id, ["offline_access"])
        assert token.expires_at - token.created_at == timedelta(days=30)

    def test_consume_revokes(self, server, client, user):
        token = server.refresh_tokens.create(client, user.id, ["openid", "offline_access"])
        consumed = server.refresh_tokens.validate_and_consume(token.token, client)
        assert consumed.scopes == ["openid", "offline_access"]
        assert consumed.user_id == user.id
        assert server.storage.refresh_tokens.find_by_token(token.token).revoked is True

    def test_consume_twice_fails(self, server, client, user):
        token = server.refresh_tokens.create(client, user.id, ["offline_access"])
        server.refresh_tokens.validate_and_consume(token.token, client)
        with pytest.raises(OAuth2Error) as exc_info:
            server.refresh_tokens.validate_and_consume(token.token, client)
        assert exc_info.value.kind is ErrorKind.INVALID_GRANT

    def test_consume_unknown(self, server, client):
        with pytest.raises(OAuth2Error) as exc_info:
            server.refresh_tokens.validate_and_consume("missing", client)
        assert exc_info.value.kind is ErrorKind.INVALID_GRANT
        assert exc_info.value.description == "Invalid refresh token"

    def test_consume_expired(self, server, client, user):
        token = server.refresh_tokens.create(client, user.id, ["offline_access"])
        _expire(token)
        with pytest.raises(OAuth2Error) as exc_info:
            server.refresh_tokens.validate_and_consume(token.token, client)
        assert exc_info.value.kind is ErrorKind.INVALID_GRANT

    def test_consume_wrong_client(self, server, client, other_client, user):
        token = server.refresh_tokens.create(client, user.id, ["offline_access"])
        with pytest.raises(OAuth2Error) as exc_info:
            server.refresh_tokens.validate_and_consume(token.token, other_client)
        assert exc_info.value.kind is ErrorKind.INVALID_GRANT
        # Failed consumption leaves the token usable by its owner
        assert server.storage.refresh_tokens.find_by_token(token.token).revoked is False

    def test_revoke_idempotent(self, server, client, user):
        token = server.refresh_tokens.create(client, user.id, ["offline_access"])
        assert server.refresh_tokens.revoke(token.token) is True
        assert server.refresh_tokens.revoke(token.token) is True
        assert server.refresh_tokens.revoke("missing") is False


# ===================== AuthorizationCodeService =====================


class TestAuthorizationCodeService:
    """Single-use authorization codes with optional PKCE."""

    def test_create(self, server, client, user):
        code = server.codes.create(client, user.id, WEB_REDIRECT, ["openid"])
        assert code.expires_at - code.created_at == timedelta(minutes=10)
        assert code.code_challenge is None
        assert code.code_challenge_method is None

    def test_challenge_method_defaults_to_plain(self, server, client, user):
        code = server.codes.create(client, user.id, WEB_REDIRECT, ["openid"], "challenge")
        assert code.code_challenge_method == "plain"

    def test_consume_marks_used(self, server, client, user):
        code = server.codes.create(client, user.id, WEB_REDIRECT, ["openid"])
        consumed = server.codes.validate_and_consume(code.code, client, WEB_REDIRECT)
        assert consumed.used is True
        assert consumed.used_at is not None

    def test_single_use(self, server, client, user):
        code = server.codes.create(client, user.id, WEB_REDIRECT, ["openid"])
        server.codes.validate_and_consume(code.code, client, WEB_REDIRECT)
        with pytest.raises(OAuth2Error) as exc_info:
            server.codes.validate_and_consume(code.code, client, WEB_REDIRECT)
        assert exc_info.value.kind is ErrorKind.INVALID_GRANT

    def test_unknown_code(self, server, client):
        with pytest.raises(OAuth2Error) as exc_info:
            server.codes.validate_and_consume("missing", client, WEB_REDIRECT)
        assert exc_info.value.kind is ErrorKind.INVALID_GRANT

    def test_expired(self, server, client, user):
        code = server.codes.create(client, user.id, WEB_REDIRECT, ["openid"])
        _expire(code)
        with pytest.raises(OAuth2Error) as exc_info:
            server.codes.validate_and_consume(code.code, client, WEB_REDIRECT)
        assert exc_info.value.kind is ErrorKind.INVALID_GRANT

    def test_wrong_client(self, server, client, other_client, user):
        code = server.codes.create(client, user.id, WEB_REDIRECT, ["openid"])
        with pytest.raises(OAuth2Error) as exc_info:
            server.codes.validate_and_consume(code.code, other_client, WEB_REDIRECT)
        assert exc_info.value.kind is ErrorKind.INVALID_GRANT
        assert code.used is False

    def test_redirect_mismatch(self, server, client, user):
        code = server.codes.create(client, user.id, WEB_REDIRECT, ["openid"])
        with pytest.raises(OAuth2Error) as exc_info:
            server.codes.validate_and_consume(code.code, client, "https://app.example/other")
        assert exc_info.value.kind is ErrorKind.INVALID_GRANT
        assert exc_info.value.description == "Redirect URI mismatch"
        assert code.used is False

    def test_pkce_verifier_required(self, server, client, user):
        _, challenge = make_pkce_pair()
        code = server.codes.create(client, user.id, WEB_REDIRECT, ["openid"], challenge, "S256")
        with pytest.raises(OAuth2Error) as exc_info:
            server.codes.validate_and_consume(code.code, client, WEB_REDIRECT)
        assert exc_info.value.kind is ErrorKind.INVALID_REQUEST

    def test_pkce_wrong_verifier(self, server, client, user):
        _, challenge = make_pkce_pair()
        code = server.codes.create(client, user.id, WEB_REDIRECT, ["openid"], challenge, "S256")
        with pytest.raises(OAuth2Error) as exc_info:
            server.codes.validate_and_consume(code.code, client, WEB_REDIRECT, "wrong-verifier")
        assert exc_info.value.kind is ErrorKind.INVALID_GRANT
        assert exc_info.value.description == "PKCE validation failed"
        assert code.used is False

    def test_pkce_success(self, server, client, user):
        verifier, challenge = make_pkce_pair()
        code = server.codes.create(client, user.id, WEB_REDIRECT, ["openid"], challenge, "S256")
        consumed = server.codes.validate_and_consume(code.code, client, WEB_REDIRECT, verifier)
        assert consumed.used is True

    def test_pkce_unsupported_stored_method(self, server, client, user):
        code = server.codes.create(client, user.id, WEB_REDIRECT, ["openid"], "abc", "foo")
        with pytest.raises(OAuth2Error) as exc_info:
            server.codes.validate_and_consume(code.code, client, WEB_REDIRECT, "abc")
        assert exc_info.value.kind is ErrorKind.INVALID_REQUEST
