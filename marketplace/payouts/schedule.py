import calendar
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional
from marketplace.common.utils import now
from marketplace.schema.full_schema import PayoutFrequency, SellerPayoutAccount

DEFAULT_FREQUENCY = PayoutFrequency.WEEKLY
DEFAULT_DAY_OF_WEEK = 1     # monday


def _sunday_first_weekday(moment: datetime) -> int:
    # 0 = sunday .. 6 = saturday , the numbering clients send
    return (moment.weekday() + 1) % 7


def _add_months(moment: datetime, day: int) -> datetime:
    year = moment.year + (moment.month // 12)
    month = moment.month % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return moment.replace(year=year, month=month, day=min(day, last_day))


def calculate_next_payout_date(frequency: PayoutFrequency, day_of_week: Optional[int] = None,
                               day_of_month: Optional[int] = None, current: Optional[datetime] = None) -> datetime:
    """
    Next payout moment counted from `current` (now by default), keeping the time of day.

    weekly / biweekly move to the next `day_of_week` (a full period ahead when that is today),
    monthly lands on `day_of_month` of next month clamped to the month's last day , or the 1st.
    """
    current = current or now()
    frequency = PayoutFrequency(frequency)

    if frequency == PayoutFrequency.DAILY:
        return current + timedelta(days=1)

    if frequency in (PayoutFrequency.WEEKLY, PayoutFrequency.BIWEEKLY):
        period = 7 if frequency == PayoutFrequency.WEEKLY else 14
        if day_of_week is None:
            return current + timedelta(days=period)
        days = (day_of_week - _sunday_first_weekday(current) + period) % period or period
        return current + timedelta(days=days)

    # monthly
    return _add_months(current, day_of_month if day_of_month is not None else 1)


def default_schedule(current: Optional[datetime] = None) -> dict[str, Any]:
    return {
        "frequency": DEFAULT_FREQUENCY.value,
        "dayOfWeek": DEFAULT_DAY_OF_WEEK,
        "dayOfMonth": None,
        "nextPayoutDate": calculate_next_payout_date(DEFAULT_FREQUENCY, DEFAULT_DAY_OF_WEEK, current=current),
        "lastPayoutDate": None,
        "minimumPayoutAmount": Decimal("0"),
        "autoPayout": True,
    }


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # sqlite hands back naive datetimes for timezone columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def schedule_view(account: Optional[SellerPayoutAccount], current: Optional[datetime] = None) -> dict[str, Any]:
    """Stored schedule for display , a past or missing next payout date is recomputed."""
    if account is None or not account.schedule_frequency:
        return default_schedule(current)

    current = current or now()
    next_date = _aware(account.next_payout_date)
    if next_date is None or next_date < current:
        next_date = calculate_next_payout_date(account.schedule_frequency, account.schedule_day_of_week,
                                               account.schedule_day_of_month, current=current)
    return {
        "frequency": account.schedule_frequency,
        "dayOfWeek": account.schedule_day_of_week,
        "dayOfMonth": account.schedule_day_of_month,
        "nextPayoutDate": next_date,
        "lastPayoutDate": _aware(account.last_payout_date),
        "minimumPayoutAmount": account.minimum_payout_amount,
        "autoPayout": account.auto_payout,
    }
