from __future__ import annotations

import base64

import pytest

from basekit.core import csrf
from basekit.core.config import CsrfConfig, derive_secret
from basekit.core.errors import CsrfValidationError


@pytest.fixture()
def cfg() -> CsrfConfig:
    return CsrfConfig(secret=derive_secret("s1"), enabled=True)


def _b64(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _unb64(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


def test_token_shape(cfg):
    token = csrf.generate_csrf_token(cfg)
    version, nonce, tag = token.split(".")
    assert version == "v1"
    assert len(_unb64(nonce)) == 32
    assert len(_unb64(tag)) == 32
    assert "=" not in token


def test_fresh_token_verifies(cfg):
    assert csrf.verify_token(cfg, csrf.generate_csrf_token(cfg))


def test_tokens_are_unique(cfg):
    assert csrf.generate_csrf_token(cfg) != csrf.generate_csrf_token(cfg)


def test_repeated_verification_is_accepted(cfg):
    # tokens are neither single-use nor expiring
    token = csrf.generate_csrf_token(cfg)
    for _ in range(3):
        assert csrf.verify_token(cfg, token)
        csrf.check_csrf(cfg, token, token)


def test_token_from_other_secret_fails(cfg):
    other = CsrfConfig(secret=derive_secret("s2"))
    token = csrf.generate_csrf_token(other)
    assert not csrf.verify_token(cfg, token)
    with pytest.raises(CsrfValidationError) as info:
        csrf.check_csrf(cfg, token, token)
    assert info.value.reason == "bad_signature"


def test_every_flipped_tag_bit_fails(cfg):
    token = csrf.generate_csrf_token(cfg)
    version, nonce, tag = token.split(".")
    raw = _unb64(tag)
    for bit in range(len(raw) * 8):
        flipped = bytearray(raw)
        flipped[bit // 8] ^= 1 << (bit % 8)
        tampered = f"{version}.{nonce}.{_b64(bytes(flipped))}"
        assert not csrf.verify_token(cfg, tampered)


def test_non_canonical_base64_is_rejected(cfg):
    token = csrf.generate_csrf_token(cfg)
    version, nonce, tag = token.split(".")
    # 32 bytes -> 43 chars; the last char carries 2 spare bits
    alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
    last = alphabet.index(tag[-1])
    for spare in (1, 2, 3):
        variant = tag[:-1] + alphabet[last ^ spare]
        assert not csrf.verify_token(cfg, f"{version}.{nonce}.{variant}")


@pytest.mark.parametrize(
    "token",
    [
        "",
        "v1",
        "v1.abc",
        "v2.AAAA.AAAA",
        "v1.a.b.c",
        "v1.!!!!.????",
        "v1.é.é",
    ],
)
def test_malformed_tokens_fail(cfg, token):
    assert not csrf.verify_token(cfg, token)


@pytest.mark.parametrize(
    "cookie, submitted, reason",
    [
        (None, "x", "missing_cookie"),
        ("", "x", "missing_cookie"),
        ("x", None, "missing_submitted"),
        ("x", "", "missing_submitted"),
        ("v1.a.b", "v1.a.c", "mismatch"),
        ("v1.a.b", "v1.a.b", "malformed"),
    ],
)
def test_check_csrf_reasons_share_one_message(cfg, cookie, submitted, reason):
    with pytest.raises(CsrfValidationError) as info:
        csrf.check_csrf(cfg, cookie, submitted)
    assert info.value.reason == reason
    assert str(info.value) == "CSRF validation failed"


def test_mismatch_between_two_valid_tokens(cfg):
    a = csrf.generate_csrf_token(cfg)
    b = csrf.generate_csrf_token(cfg)
    with pytest.raises(CsrfValidationError) as info:
        csrf.check_csrf(cfg, a, b)
    assert info.value.reason == "mismatch"


def test_non_ascii_submitted_value_is_rejected_not_crashing(cfg):
    token = csrf.generate_csrf_token(cfg)
    with pytest.raises(CsrfValidationError):
        csrf.check_csrf(cfg, token, "tökén")
