import datetime

import pytest

from chatgpt_auth import CredentialPolicy, decode_jwt, get_user_info, is_token_expired, should_refresh


def _iso(dt: datetime.datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


@pytest.fixture
def now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def test_stale_timestamp_forces_refresh(make_jwt, now) -> None:
    eight_days_ago = _iso(now - datetime.timedelta(days=8))
    assert should_refresh(eight_days_ago, make_jwt(expires_in=3600)) is True


def test_token_inside_grace_window_forces_refresh(make_jwt, now) -> None:
    assert should_refresh(_iso(now), make_jwt(expires_in=240)) is True


def test_fresh_credentials_do_not_refresh(make_jwt, now) -> None:
    assert should_refresh(_iso(now), make_jwt(expires_in=3600)) is False


@pytest.mark.parametrize("last_refresh", ["", "not-a-date", None, "2024-13-45T00:00:00Z"])
def test_unparseable_timestamp_forces_refresh(make_jwt, last_refresh) -> None:
    assert should_refresh(last_refresh, make_jwt(expires_in=3600)) is True


def test_missing_id_token_forces_refresh(now) -> None:
    assert should_refresh(_iso(now)) is True


def test_naive_timestamp_is_treated_as_utc(make_jwt, now) -> None:
    naive = (now - datetime.timedelta(hours=1)).replace(tzinfo=None).isoformat()
    assert should_refresh(naive, make_jwt(expires_in=3600)) is False


def test_custom_max_age(make_jwt, now) -> None:
    two_days_ago = _iso(now - datetime.timedelta(days=2))
    policy = CredentialPolicy(max_age_days=1)
    assert policy.should_refresh(two_days_ago, make_jwt(expires_in=3600)) is True
    assert CredentialPolicy().should_refresh(two_days_ago, make_jwt(expires_in=3600)) is False


@pytest.mark.parametrize("token", ["", "abc", "a.b", "a.b.c.d", "header.!!!.sig"])
def test_malformed_tokens_are_expired(token) -> None:
    assert is_token_expired(token) is True


def test_token_without_exp_is_expired(make_jwt) -> None:
    assert is_token_expired(make_jwt(expires_in=None, sub="user")) is True


@pytest.mark.parametrize("exp", ["tomorrow", True, None, float("nan"), float("inf"), float("-inf")])
def test_unusable_exp_is_expired(make_jwt, exp) -> None:
    assert is_token_expired(make_jwt(exp=exp)) is True


def test_nan_exp_forces_refresh(make_jwt, now) -> None:
    assert should_refresh(_iso(now), make_jwt(exp=float("nan"))) is True


def test_grace_window(make_jwt) -> None:
    token = make_jwt(expires_in=600)
    assert is_token_expired(token) is False
    assert is_token_expired(token, grace_seconds=900) is True


def test_decode_jwt_ignores_signature(make_jwt) -> None:
    token = make_jwt(email="a@example.com")
    header, payload, _ = token.split(".")
    assert decode_jwt(f"{header}.{payload}.tampered")["email"] == "a@example.com"


def test_user_info_from_id_token(make_jwt) -> None:
    token = make_jwt(
        email="user@example.com",
        **{"https://api.openai.com/auth": {"chatgpt_plan_type": "pro", "chatgpt_account_id": "acct_1"}},
    )
    assert get_user_info(token) == {
        "email": "user@example.com",
        "plan_type": "pro",
        "account_id": "acct_1",
    }
    assert get_user_info("garbage") == {"email": None, "plan_type": None, "account_id": None}
