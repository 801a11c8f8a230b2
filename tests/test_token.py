"""
Tests for token signing, verification and the validity policy.
"""

from datetime import timedelta

import jwt
import pytest

from authgate.errors import (
    ConfigurationError,
    ErrorCode,
    ExpiredTokenError,
    ForbiddenOriginError,
    MalformedTokenError,
)
from authgate.token import PERMANENT, AuthToken, SigningContext, TokenCodec, TokenValidityPolicy
from authgate.token.codec import CLAIMS, from_epoch_millis, to_epoch_millis


def _replace_char(text, index):
    replacement = "A" if text[index] != "A" else "B"
    return text[:index] + replacement + text[index + 1:]


class TestTokenCodec:
    """Test compact token serialization"""

    def test_round_trip(self, codec):
        """A serialized token verifies back to an equal token"""
        token = codec.issue("alice", life_span=60000, origin_address="10.0.0.1")
        compact = codec.serialize(token)

        parsed = codec.parse_and_verify(compact)

        assert parsed == token
        assert parsed.subject_id == "alice"
        assert parsed.life_span == 60000
        assert parsed.origin_address == "10.0.0.1"

    def test_compact_form(self, codec):
        compact = codec.serialize(codec.issue("alice"))
        assert compact.count(".") == 2
        assert "=" not in compact

    def test_claim_set_is_exact(self, codec, signing_context):
        compact = codec.serialize(codec.issue(42, life_span=1000))
        claims = jwt.decode(compact, signing_context.key, algorithms=["HS256"], issuer="authgate")

        assert set(claims) == CLAIMS
        assert claims["uid"] == 42
        assert claims["lsp"] == 1000
        assert claims["ip"] is None

    def test_issued_at_is_millisecond_precise(self, codec, clock):
        clock.now = clock.now.replace(microsecond=123456)
        token = codec.issue("alice")

        assert token.issued_at.microsecond == 123000
        assert from_epoch_millis(to_epoch_millis(token.issued_at)) == token.issued_at

    def test_default_life_span_is_permanent(self, codec):
        token = codec.issue("alice")
        assert token.life_span == PERMANENT
        assert token.is_permanent
        assert token.expires_at is None

    @pytest.mark.parametrize("segment", [0, 1, 2])
    def test_tampered_segment_is_rejected(self, codec, segment):
        """Changing any character of any segment breaks verification"""
        compact = codec.serialize(codec.issue("alice", life_span=1000))
        parts = compact.split(".")
        original = parts[segment]

        for index in range(len(original)):
            parts[segment] = _replace_char(original, index)
            with pytest.raises(MalformedTokenError):
                codec.parse_and_verify(".".join(parts))

    def test_last_signature_character_is_checked(self, codec):
        """Trailing bits of the signature segment cannot be altered"""
        compact = codec.serialize(codec.issue("alice", life_span=1000))
        head, _, signature = compact.rpartition(".")

        for replacement in "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_":
            if replacement == signature[-1]:
                continue
            with pytest.raises(MalformedTokenError):
                codec.parse_and_verify(f"{head}.{signature[:-1]}{replacement}")

    def test_unencodable_subject_id(self, codec):
        token = codec.issue(object())

        with pytest.raises(ConfigurationError) as exc_info:
            codec.serialize(token)

        assert isinstance(exc_info.value.cause, TypeError)

    def test_wrong_key_is_rejected(self, codec):
        compact = codec.serialize(codec.issue("alice"))
        other = SigningContext.from_secret("another-signing-secret-0123456789abc")

        with pytest.raises(MalformedTokenError) as exc_info:
            codec.parse_and_verify(compact, other)

        assert exc_info.value.cause is not None

    def test_wrong_issuer_is_rejected(self, codec, signing_context, clock):
        foreign = TokenCodec(signing_context, issuer="someone-else", clock=clock)
        compact = foreign.serialize(foreign.issue("alice"))

        with pytest.raises(MalformedTokenError):
            codec.parse_and_verify(compact)

    @pytest.mark.parametrize("compact", ["", "abc", "a.b", "a.b.c.d", "not a token at all"])
    def test_garbage_is_rejected(self, codec, compact):
        with pytest.raises(MalformedTokenError) as exc_info:
            codec.parse_and_verify(compact)

        assert exc_info.value.code is ErrorCode.MALFORMED_TOKEN
        assert exc_info.value.status_code == 400

    def test_non_canonical_encoding_is_rejected(self, codec):
        compact = codec.serialize(codec.issue("alice"))
        header, payload, signature = compact.split(".")

        with pytest.raises(MalformedTokenError):
            codec.parse_and_verify(f"{header}.{payload}==.{signature}")

    def test_extra_claim_is_rejected(self, codec, signing_context):
        claims = codec.issue("alice").to_claims("authgate")
        claims["admin"] = True
        compact = jwt.encode(claims, signing_context.key, algorithm="HS256")

        with pytest.raises(MalformedTokenError):
            codec.parse_and_verify(compact)

    def test_missing_claim_is_rejected(self, codec, signing_context):
        claims = codec.issue("alice").to_claims("authgate")
        del claims["ip"]
        compact = jwt.encode(claims, signing_context.key, algorithm="HS256")

        with pytest.raises(MalformedTokenError):
            codec.parse_and_verify(compact)

    def test_invalid_claim_types_are_rejected(self):
        claims = {"iss": "authgate", "uid": "alice", "iat_ms": "yesterday", "lsp": -1, "ip": None}
        with pytest.raises(MalformedTokenError):
            AuthToken.from_claims(claims)

        claims.update(iat_ms=0, lsp=True)
        with pytest.raises(MalformedTokenError):
            AuthToken.from_claims(claims)


class TestSigningContext:
    """Test signing key material"""

    def test_empty_key(self):
        with pytest.raises(ConfigurationError):
            SigningContext(key=b"")

    def test_asymmetric_algorithm(self):
        with pytest.raises(ConfigurationError):
            SigningContext.from_secret("test-signing-secret-0123456789abcdef", algorithm="RS256")

    def test_generate(self):
        first = SigningContext.generate()
        second = SigningContext.generate()
        assert first.key and first.key != second.key

    def test_key_not_in_repr(self, signing_context):
        assert "test-signing-secret" not in repr(signing_context)


class TestTokenValidityPolicy:
    """Test origin binding, expiry and revival"""

    def test_expiry_boundary(self, codec, clock):
        policy = TokenValidityPolicy(clock=clock)
        token = codec.issue("alice", life_span=1000)

        assert policy.validate(token, now=clock.now + timedelta(milliseconds=999)) is token

        with pytest.raises(ExpiredTokenError):
            policy.validate(token, now=clock.now + timedelta(milliseconds=1000))

        with pytest.raises(ExpiredTokenError) as exc_info:
            policy.validate(token, now=clock.now + timedelta(milliseconds=1001))

        assert exc_info.value.status_code == 403

    def test_expiry_uses_clock(self, codec, clock):
        policy = TokenValidityPolicy(clock=clock)
        token = codec.issue("alice", life_span=1000)

        clock.advance(1001)

        assert policy.is_expired(token)

    def test_permanent_token_never_expires(self, codec, clock):
        policy = TokenValidityPolicy(clock=clock)
        token = codec.issue("alice")

        assert policy.validate(token, now=clock.now + timedelta(days=365 * 100)) is token

    def test_foreign_origin_is_rejected(self, codec):
        policy = TokenValidityPolicy()
        token = codec.issue("alice", origin_address="10.0.0.1")

        with pytest.raises(ForbiddenOriginError):
            policy.validate(token, "10.0.0.2")

    def test_origin_checked_before_expiry(self, codec, clock):
        policy = TokenValidityPolicy(clock=clock)
        token = codec.issue("alice", life_span=1000, origin_address="10.0.0.1")
        clock.advance(5000)

        with pytest.raises(ForbiddenOriginError):
            policy.validate(token, "10.0.0.2")

    def test_missing_origin_is_not_enforced(self, codec):
        policy = TokenValidityPolicy()

        assert policy.validate(codec.issue("alice"), "10.0.0.2")
        assert policy.validate(codec.issue("alice", origin_address="10.0.0.1"), None)

    def test_origin_enforcement_can_be_disabled(self, codec):
        policy = TokenValidityPolicy(enforce_origin=False)
        token = codec.issue("alice", origin_address="10.0.0.1")

        assert policy.validate(token, "10.0.0.2") is token

    def test_revive_expired_token(self, codec, clock):
        policy = TokenValidityPolicy(clock=clock)
        token = codec.issue("alice", life_span=1000, origin_address="10.0.0.1")
        now = clock.advance(2500)

        renewed = policy.revive(token, "10.0.0.1")

        assert renewed.issued_at == now
        assert renewed.issued_at > token.issued_at
        assert renewed.subject_id == token.subject_id
        assert renewed.life_span == token.life_span
        assert renewed.origin_address == token.origin_address
        assert policy.validate(renewed, "10.0.0.1") is renewed

    def test_revive_valid_token_is_unchanged(self, codec, clock):
        policy = TokenValidityPolicy(clock=clock)
        token = codec.issue("alice", life_span=1000)
        clock.advance(500)

        assert policy.revive(token) is token

    def test_sliding_revival(self, codec, clock):
        policy = TokenValidityPolicy(sliding_revival=True, clock=clock)
        token = codec.issue("alice", life_span=1000)
        now = clock.advance(500)

        assert policy.revive(token).issued_at == now
        assert policy.revive(codec.issue("bob")).issued_at == now

    def test_revive_foreign_origin(self, codec, clock):
        policy = TokenValidityPolicy(clock=clock)
        token = codec.issue("alice", life_span=1000, origin_address="10.0.0.1")
        clock.advance(2000)

        with pytest.raises(ForbiddenOriginError):
            policy.revive(token, "10.0.0.2")
