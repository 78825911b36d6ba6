import pytest
from starlette.datastructures import Headers

from conftest import FakeVerifier
from core.exceptions import (
    InternalConfigurationError,
    InvalidToken,
    Unauthorized,
    VerifierUnavailable,
)
from core.request_types import Authenticated, NotRequired, Rejected, Required
from services.auth_gate import AuthGate, extract_bearer_token

PROTECTED = ["/match"]


def _auth(value: str | None = None) -> Headers:
    return Headers(headers={"Authorization": value} if value else {})


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("Bearer abc", "abc"),
        ("bearer   abc ", "abc"),
        ("Basic abc", None),
        ("Bearer", None),
        ("Bearer   ", None),
        (None, None),
    ],
)
def test_extract_bearer_token(value, expected):
    assert extract_bearer_token(value) == expected


def test_only_protected_post_requires_auth():
    gate = AuthGate(PROTECTED, FakeVerifier())
    assert gate.requires_auth("POST", "/match", probe=False)
    assert not gate.requires_auth("POST", "/match", probe=True)
    assert not gate.requires_auth("GET", "/match", probe=False)
    assert not gate.requires_auth("POST", "/other", probe=False)


def test_classify_without_token_rejects():
    gate = AuthGate(PROTECTED, FakeVerifier())
    decision = gate.classify("POST", "/match", _auth(), probe=False)
    assert isinstance(decision, Rejected)
    assert isinstance(decision.error, Unauthorized)


def test_classify_with_token_requires_verification():
    decision = AuthGate(PROTECTED, FakeVerifier()).classify(
        "POST", "/match", _auth("Bearer t"), probe=False
    )
    assert decision == Required("t")


async def test_valid_token_authenticates():
    verifier = FakeVerifier()
    decision = await AuthGate(PROTECTED, verifier).check(
        "POST", "/match", _auth("Bearer good-token"), probe=False
    )
    assert decision == Authenticated("user-123")
    assert verifier.calls == ["good-token"]


async def test_rejected_token_is_invalid():
    decision = await AuthGate(PROTECTED, FakeVerifier()).check(
        "POST", "/match", _auth("Bearer bad-token"), probe=False
    )
    assert isinstance(decision, Rejected)
    assert isinstance(decision.error, InvalidToken)
    assert decision.error.status_code == 401


async def test_verifier_failure_is_configuration_error():
    verifier = FakeVerifier(error=VerifierUnavailable("connection refused"))
    decision = await AuthGate(PROTECTED, verifier).check(
        "POST", "/match", _auth("Bearer good-token"), probe=False
    )
    assert isinstance(decision, Rejected)
    assert isinstance(decision.error, InternalConfigurationError)
    assert decision.error.status_code == 500


async def test_missing_verifier_is_configuration_error():
    decision = await AuthGate(PROTECTED, None).check(
        "POST", "/match", _auth("Bearer good-token"), probe=False
    )
    assert isinstance(decision.error, InternalConfigurationError)


async def test_probe_skips_verifier():
    verifier = FakeVerifier()
    decision = await AuthGate(PROTECTED, verifier).check("POST", "/match", _auth(), probe=True)
    assert decision == NotRequired()
    assert verifier.calls == []
