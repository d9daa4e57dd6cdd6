import logging
import pytest
from conftest import SETTINGS, create_user, url_prefix
from marketplace.auth.utils import issue_access_token, read_access_token
from marketplace.common.logging_setup import REDACTED, RedactionFilter, scrub_text, shorten_id
from marketplace.common.retries import backoff_delay
from marketplace.middlewares.request_id_middleware import resolve_request_id


async def test_health_is_public_and_echoes_request_id(ac_client):
    resp = await ac_client.get(f"{url_prefix}/health", headers={"X-Request-ID": "req-12345678"})
    assert resp.status_code == 200
    assert resp.headers["X-Request-ID"] == "req-12345678"
    body = resp.json()
    assert body["status"] == "ok"
    assert body["data"] == {"status": "healthy"}
    assert body["request_id"] == "req-12345678"


async def test_missing_or_bad_token_is_rejected(ac_client):
    resp = await ac_client.get(f"{SETTINGS}/payout-methods")
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "INVALID_AUTH"

    resp = await ac_client.get(f"{SETTINGS}/payout-methods", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


async def test_token_for_unknown_user_is_forbidden(ac_client):
    token = issue_access_token("0190a5d2-0000-7000-8000-000000000000")
    resp = await ac_client.get(f"{SETTINGS}/payout-methods", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 403


async def test_non_seller_role_is_forbidden(ac_client):
    buyer = await create_user(roles=("buyer",))
    resp = await ac_client.get(f"{SETTINGS}/payout-methods", headers=buyer.headers)
    assert resp.status_code == 403


def test_access_token_round_trip():
    assert read_access_token(issue_access_token("abc")) == "abc"
    assert read_access_token(issue_access_token("abc", expires_minutes=-1)) is None
    assert read_access_token("garbage") is None


def test_request_id_only_accepts_safe_values():
    assert resolve_request_id("trace-abc-123") == "trace-abc-123"
    generated = resolve_request_id("bad id\nInjected: yes")
    assert "\n" not in generated and len(generated) == 32
    assert resolve_request_id(None) != resolve_request_id(None)


def test_scrub_text_hides_inline_secrets():
    out = scrub_text('password=hunter22 accountNumber: 1234567890 {"routing_number": "110000021"}')
    assert "hunter22" not in out
    assert "1234567890" not in out
    assert "110000021" not in out
    assert out.count(REDACTED) == 3


def test_redaction_filter_masks_secret_extras():
    record = logging.LogRecord("t", logging.INFO, __file__, 1, "saving", (), None)
    record.account_number = "1234567890"
    record.kind = "bank_transfer"
    assert RedactionFilter().filter(record)
    assert record.account_number == REDACTED
    assert record.kind == "bank_transfer"


def test_shorten_id():
    assert shorten_id("0190a5d2-1111-7000-8000-00000000abcd") == "0190a5d2...abcd"
    assert shorten_id("short") == "short..."


def test_backoff_delay_is_capped():
    assert backoff_delay(1, 0.1, 2.0, 1.0, 0.0) == pytest.approx(0.1)
    assert backoff_delay(3, 0.1, 2.0, 1.0, 0.0) == pytest.approx(0.4)
    assert backoff_delay(10, 0.1, 2.0, 1.0, 0.0) == pytest.approx(1.0)
    for _ in range(20):
        assert 0.085 <= backoff_delay(1, 0.1, 2.0, 1.0, 0.15) <= 0.115
