# Tests for token generation, PKCE, secret hashing and scope validation.
# Created: 2026-09-14

import string

import pytest
from conftest import make_pkce_pair

from authgate.oauth2.errors import ErrorKind, OAuth2Error
from authgate.oauth2.models import Scope
from authgate.oauth2.pkce import PkceValidator, s256_challenge
from authgate.oauth2.scopes import ScopeValidator, format_scope, parse_scope
from authgate.oauth2.tokens import TokenGenerator

HEX = set(string.hexdigits.lower())


# ===================== TokenGenerator =====================


class TestTokenGenerator:
    """Opaque credential generation."""

    def test_lengths(self):
        gen = TokenGenerator()
        assert len(gen.generate_access_token()) == 64
        assert len(gen.generate_refresh_token()) == 64
        assert len(gen.generate_client_secret()) == 64
        assert len(gen.generate_authorization_code()) == 32
        assert len(gen.generate_client_id()) == 32

    def test_hex_alphabet(self):
        token = TokenGenerator().generate_access_token()
        assert set(token) <= HEX

    def test_unique(self):
        gen = TokenGenerator()
        tokens = {gen.generate_access_token() for _ in range(200)}
        assert len(tokens) == 200


# ===================== PKCE =====================


class TestPkceValidator:
    """RFC 7636 verification."""

    def test_s256_match(self):
        verifier, challenge = make_pkce_pair()
        assert PkceValidator().validate(verifier, challenge, "S256") is True

    def test_s256_mismatch(self):
        _, challenge = make_pkce_pair()
        assert PkceValidator().validate("some-other-verifier", challenge, "S256") is False

    def test_s256_known_vector(self):
        # RFC 7636 Appendix B
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        assert s256_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    def test_plain(self):
        assert PkceValidator().validate("abc", "abc", "plain") is True
        assert PkceValidator().validate("abc", "abd", "plain") is False

    def test_non_ascii_verifier_does_not_match(self):
        assert PkceValidator().validate("vérifier", "anything", "S256") is False

    def test_unsupported_method(self):
        with pytest.raises(OAuth2Error) as exc_info:
            PkceValidator().validate("x", "y", "foo")
        assert exc_info.value.kind is ErrorKind.INVALID_REQUEST
        assert "foo" in exc_info.value.description


# ===================== PasswordHasher =====================


class TestPasswordHasher:
    """bcrypt hashing of client secrets and passwords."""

    def test_hash_and_verify(self, hasher):
        hashed = hasher.hash("s3cret")
        assert hashed != "s3cret"
        assert hashed.startswith("$2")
        assert hasher.verify(hashed, "s3cret") is True
        assert hasher.verify(hashed, "wrong") is False

    def test_salted(self, hasher):
        assert hasher.hash("same") != hasher.hash("same")

    def test_malformed_hash(self, hasher):
        assert hasher.verify("not-a-bcrypt-hash", "s3cret") is False
        assert hasher.verify("", "s3cret") is False

    def test_too_long_secret(self, hasher):
        with pytest.raises(ValueError):
            hasher.hash("x" * 73)
        assert hasher.verify(hasher.hash("x" * 72), "x" * 73) is False


# ===================== Scopes =====================


class TestScopeParsing:
    def test_parse(self):
        assert parse_scope("openid  profile ") == ["openid", "profile"]
        assert parse_scope("") == []
        assert parse_scope(None) == []

    def test_format(self):
        assert format_scope(["openid", "profile"]) == "openid profile"
        assert format_scope([]) == ""


class TestScopeValidator:
    """Requested scopes must exist and be allowed for the client."""

    @pytest.fixture
    def validator(self, storage):
        storage.scopes.save(Scope("a"))
        storage.scopes.save(Scope("b"))
        storage.scopes.save(Scope("c"))
        return ScopeValidator(storage.scopes)

    def test_empty_request(self, validator):
        assert validator.validate([], ["a"]) == []

    def test_preserves_order(self, validator):
        assert validator.validate(["c", "a"], ["a", "b", "c"]) == ["c", "a"]

    def test_unknown_scope(self, validator):
        with pytest.raises(OAuth2Error) as exc_info:
            validator.validate(["a", "d"], ["a", "b", "c"])
        assert exc_info.value.kind is ErrorKind.INVALID_SCOPE
        assert "d" in exc_info.value.description
        assert "Invalid scopes requested" in exc_info.value.description

    def test_disallowed_scope(self, validator):
        with pytest.raises(OAuth2Error) as exc_info:
            validator.validate(["a", "b"], ["a"])
        assert exc_info.value.kind is ErrorKind.INVALID_SCOPE
        assert exc_info.value.description == "Scopes not allowed for this client: b"
