from datetime import datetime, timedelta, timezone
import pytest
from conftest import SETTINGS
from marketplace.payouts.schedule import calculate_next_payout_date, default_schedule
from marketplace.schema.full_schema import PayoutFrequency

SCHEDULE = f"{SETTINGS}/payout-schedule"

# a wednesday
WED = datetime(2026, 1, 14, 9, 30, tzinfo=timezone.utc)


def test_daily():
    assert calculate_next_payout_date(PayoutFrequency.DAILY, current=WED) == WED + timedelta(days=1)


def test_weekly_moves_to_requested_weekday():
    # sunday first numbering , 5 = friday
    assert calculate_next_payout_date(PayoutFrequency.WEEKLY, 5, current=WED) == WED + timedelta(days=2)
    assert calculate_next_payout_date(PayoutFrequency.WEEKLY, 1, current=WED) == WED + timedelta(days=5)
    # today's weekday means a full week ahead
    assert calculate_next_payout_date(PayoutFrequency.WEEKLY, 3, current=WED) == WED + timedelta(days=7)
    assert calculate_next_payout_date(PayoutFrequency.WEEKLY, current=WED) == WED + timedelta(days=7)


def test_biweekly():
    assert calculate_next_payout_date(PayoutFrequency.BIWEEKLY, 3, current=WED) == WED + timedelta(days=14)
    assert calculate_next_payout_date(PayoutFrequency.BIWEEKLY, 5, current=WED) == WED + timedelta(days=2)
    assert calculate_next_payout_date(PayoutFrequency.BIWEEKLY, current=WED) == WED + timedelta(days=14)


def test_monthly_clamps_to_month_end():
    jan31 = datetime(2026, 1, 31, tzinfo=timezone.utc)
    assert calculate_next_payout_date(PayoutFrequency.MONTHLY, day_of_month=31, current=jan31).date() == datetime(2026, 2, 28).date()
    assert calculate_next_payout_date(PayoutFrequency.MONTHLY, day_of_month=15, current=WED).date() == datetime(2026, 2, 15).date()
    assert calculate_next_payout_date(PayoutFrequency.MONTHLY, current=WED).date() == datetime(2026, 2, 1).date()

    dec = datetime(2026, 12, 10, tzinfo=timezone.utc)
    assert calculate_next_payout_date(PayoutFrequency.MONTHLY, day_of_month=5, current=dec).date() == datetime(2027, 1, 5).date()


def test_default_schedule():
    schedule = default_schedule(WED)
    assert schedule["frequency"] == "weekly"
    assert schedule["dayOfWeek"] == 1
    assert schedule["minimumPayoutAmount"] == 0
    assert schedule["autoPayout"] is True
    assert schedule["nextPayoutDate"] == WED + timedelta(days=5)


@pytest.mark.asyncio
async def test_get_default_then_update(ac_client, seller):
    resp = await ac_client.get(SCHEDULE, headers=seller.headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["payoutSchedule"]["frequency"] == "weekly"

    resp = await ac_client.put(SCHEDULE, json={"frequency": "monthly", "dayOfMonth": 15, "dayOfWeek": 2,
                                               "minimumPayoutAmount": 5000}, headers=seller.headers)
    assert resp.status_code == 200, resp.text
    schedule = resp.json()["data"]["payoutSchedule"]
    assert schedule["frequency"] == "monthly"
    assert schedule["dayOfMonth"] == 15
    assert schedule["dayOfWeek"] is None
    assert schedule["minimumPayoutAmount"] == 5000
    assert schedule["autoPayout"] is True

    # unset amounts keep their stored value
    resp = await ac_client.put(SCHEDULE, json={"frequency": "daily", "autoPayout": False}, headers=seller.headers)
    schedule = resp.json()["data"]["payoutSchedule"]
    assert schedule["minimumPayoutAmount"] == 5000
    assert schedule["autoPayout"] is False
    assert schedule["dayOfMonth"] is None

    resp = await ac_client.get(SCHEDULE, headers=seller.headers)
    assert resp.json()["data"]["payoutSchedule"]["frequency"] == "daily"


async def test_invalid_frequency(ac_client, seller):
    resp = await ac_client.put(SCHEDULE, json={"frequency": "hourly"}, headers=seller.headers)
    assert resp.status_code == 400


async def test_fractional_minimum_amount_is_kept(ac_client, seller):
    resp = await ac_client.put(SCHEDULE, json={"frequency": "weekly", "dayOfWeek": 2, "minimumPayoutAmount": 25.5},
                               headers=seller.headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["payoutSchedule"]["minimumPayoutAmount"] == 25.5

    resp = await ac_client.get(SCHEDULE, headers=seller.headers)
    assert resp.json()["data"]["payoutSchedule"]["minimumPayoutAmount"] == 25.5


async def test_minimum_amount_rejects_negative_and_sub_cent_values(ac_client, seller):
    for amount in (-1, 10.005):
        resp = await ac_client.put(SCHEDULE, json={"frequency": "daily", "minimumPayoutAmount": amount},
                                   headers=seller.headers)
        assert resp.status_code == 400
        assert resp.json()["error"]["details"]["errors"][0]["field"] == "minimumPayoutAmount"
