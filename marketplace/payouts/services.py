from typing import Any, Optional
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.common.retries import retry_async
from marketplace.common.utils import now
from marketplace.config.admin_config import admin_config
from marketplace.config.settings import config_settings
from marketplace.payouts import repository as repo
from marketplace.payouts.constants import (DEFAULT_MOBILE_MONEY_CURRENCY, MAX_BANK_ACCOUNTS,
                                           REQUIRED_FIELDS_BY_KIND, SECRET_FIELDS, logger)
from marketplace.payouts.encryption import (RevealState, SecretCipher, encrypt, get_cipher, mask_account_number,
                                            mask_routing_number, mask_secret)
from marketplace.payouts.exceptions import (PayoutLimitExceededError, PayoutNotFoundError,
                                            PayoutValidationError)
from marketplace.payouts.models import (ALLOWED_FIELDS_BY_KIND, MaskedPayoutMethod, MobileMoneyIn,
                                        PayoutMethodIn, PayoutMethodUpdateIn, PayoutScheduleIn,
                                        VerifyPayoutMethodIn)
from marketplace.payouts.schedule import calculate_next_payout_date, schedule_view
from marketplace.payouts.security import StepUpOperation, confirm_password
from marketplace.payouts.verification import (VERIFIABLE_KINDS, apply_verification, require_account_confirmation,
                                              start_verification, verification_instructions)
from marketplace.schema.full_schema import PayoutFrequency, PayoutKind, PayoutMethod, VerificationStatus

_MASKERS = {
    "account_number": mask_account_number,
    "routing_number": mask_routing_number,
    "mobile_money_number": mask_account_number,
}


def _expose_verification_code() -> bool:
    return admin_config.ENV == "dev" and config_settings.PAYOUT_EXPOSE_VERIFICATION_CODE


def mask_method(method: PayoutMethod, cipher: Optional[SecretCipher] = None,
                expose_code: bool = False) -> MaskedPayoutMethod:
    """Display form of a stored method . Secrets are masked , an undecryptable one reads [unavailable]."""
    cipher = cipher or get_cipher()
    secrets_out = {field: mask_secret(getattr(method, field), cipher, _MASKERS[field]) for field in SECRET_FIELDS}

    code = None
    if expose_code and method.verification_status == VerificationStatus.PENDING.value:
        code = method.verification_code

    return MaskedPayoutMethod(
        id=str(method.public_id),
        kind=PayoutKind(method.kind),
        bank_name=method.bank_name,
        account_holder_name=method.account_holder_name,
        account_type=method.account_type,
        country=method.country,
        currency=method.currency,
        swift_code=method.swift_code,
        iban=method.iban,
        paypal_email=method.paypal_email,
        mobile_money_provider=method.mobile_money_provider,
        crypto_wallet=method.crypto_wallet,
        is_default=method.is_default,
        verification_status=method.verification_status,
        added_at=method.added_at,
        verified_at=method.verified_at,
        last_modified_at=method.last_modified_at,
        verification_code=code,
        **secrets_out,
    )


def _missing_fields(kind: PayoutKind, supplied: dict[str, Any]) -> list[str]:
    return [f for f in REQUIRED_FIELDS_BY_KIND[kind] if not supplied.get(f)]


def _apply_fields(method: PayoutMethod, fields: dict[str, Any]) -> bool:
    """Copy fields onto the row , secrets encrypted . Returns True when a secret was written."""
    secret_written = False
    for name, value in fields.items():
        if hasattr(value, "value"):
            value = value.value
        if name in SECRET_FIELDS:
            value = encrypt(value)
            secret_written = True
        setattr(method, name, value)
    return secret_written


# -------------------------------------------------------------------------------------------------------------------------------


async def list_payout_methods(session: AsyncSession, seller_id: int) -> list[dict[str, Any]]:
    account_id = await repo.fetch_account_id(session, seller_id)
    if account_id is None:
        return []
    methods = await repo.fetch_methods(session, account_id)
    cipher = get_cipher()
    expose = _expose_verification_code()
    return [mask_method(m, cipher, expose).public() for m in methods]


@retry_async()
async def add_payout_method(session: AsyncSession, seller_id: int, payload: PayoutMethodIn) -> dict[str, Any]:

    if payload.kind is None:
        raise PayoutValidationError("Payout method kind is required",
                                    errors=[{"field": "kind", "message": "required"}])

    kind = payload.kind
    missing = _missing_fields(kind, payload.supplied_fields())
    if missing:
        raise PayoutValidationError(
            f"Missing required fields for {kind.value}: {', '.join(to_camel(f) for f in missing)}",
            errors=[{"field": to_camel(f), "message": "required"} for f in missing],
        )

    await confirm_password(session, seller_id, payload.password, StepUpOperation.ADD)

    account_id = await repo.lock_payout_account(session, seller_id)

    if kind == PayoutKind.BANK_TRANSFER:
        bank_count = await repo.count_methods_of_kind(session, account_id, PayoutKind.BANK_TRANSFER)
        if bank_count >= MAX_BANK_ACCOUNTS:
            logger.warning("payout.add.limit_exceeded", extra={"seller_id": seller_id, "bank_count": bank_count})
            raise PayoutLimitExceededError(f"Maximum of {MAX_BANK_ACCOUNTS} bank accounts allowed")

    details = payload.to_details()
    method = PayoutMethod(account_id=account_id, kind=kind.value)
    _apply_fields(method, details.model_dump(exclude={"kind"}, exclude_none=True))
    start_verification(method)

    if payload.is_default:
        await repo.clear_default_flags(session, account_id)
        method.is_default = True

    await repo.insert_method(session, method)
    await session.commit()

    logger.info("payout.add.success", extra={"seller_id": seller_id, "method_public_id": str(method.public_id),
                                             "kind": kind.value})

    masked = mask_method(method, expose_code=_expose_verification_code()).public()
    return {
        "payoutMethod": masked,
        "requiresVerification": method.verification_status == VerificationStatus.PENDING.value,
        "verificationInstructions": verification_instructions(kind),
    }


@retry_async()
async def update_payout_method(session: AsyncSession, seller_id: int, method_pid: str,
                               payload: PayoutMethodUpdateIn) -> dict[str, Any]:

    await confirm_password(session, seller_id, payload.password, StepUpOperation.UPDATE)

    account_id = await repo.lock_payout_account(session, seller_id)
    method = await repo.fetch_method(session, account_id, method_pid)
    kind = PayoutKind(method.kind)

    if payload.kind is not None and payload.kind != kind:
        raise PayoutValidationError("Payout method kind cannot be changed",
                                    errors=[{"field": "kind", "message": "cannot be changed"}])

    changes = payload.changes()
    not_allowed = sorted(set(changes) - ALLOWED_FIELDS_BY_KIND[kind])
    if not_allowed:
        raise PayoutValidationError(
            f"Fields not valid for {kind.value}: {', '.join(to_camel(f) for f in not_allowed)}",
            errors=[{"field": to_camel(f), "message": "not valid for this kind"} for f in not_allowed],
        )

    secret_written = _apply_fields(method, changes)

    # new account details have to be verified again before money goes there
    if secret_written and kind in VERIFIABLE_KINDS:
        start_verification(method)

    if payload.is_default is True:
        await repo.clear_default_flags(session, account_id, keep_id=method.id)
        method.is_default = True
    elif payload.is_default is False:
        method.is_default = False

    method.last_modified_at = now()
    await session.flush()
    await session.commit()

    logger.info("payout.update.success", extra={"seller_id": seller_id, "method_public_id": str(method.public_id),
                                                "reverification": secret_written and kind in VERIFIABLE_KINDS})
    return {"payoutMethod": mask_method(method).public()}


@retry_async()
async def delete_payout_method(session: AsyncSession, seller_id: int, method_pid: str,
                               password: Optional[str]) -> None:

    await confirm_password(session, seller_id, password, StepUpOperation.DELETE)

    account_id = await repo.lock_payout_account(session, seller_id)
    method = await repo.fetch_method(session, account_id, method_pid)
    await repo.delete_method_row(session, method)
    await session.commit()

    logger.info("payout.delete.success", extra={"seller_id": seller_id, "method_public_id": str(method_pid)})


@retry_async()
async def verify_payout_method(session: AsyncSession, seller_id: int, method_pid: str,
                               payload: VerifyPayoutMethodIn) -> dict[str, Any]:

    require_account_confirmation(payload.confirm_account_details)
    await confirm_password(session, seller_id, payload.password, StepUpOperation.VERIFY)

    account_id = await repo.lock_payout_account(session, seller_id)
    method = await repo.fetch_method(session, account_id, method_pid)

    changed = apply_verification(method, payload.confirm_account_details)
    if changed:
        method.last_modified_at = now()
        await session.flush()
    await session.commit()

    logger.info("payout.verify.success", extra={"seller_id": seller_id, "method_public_id": str(method.public_id),
                                                "already_verified": not changed})
    return {"payoutMethod": mask_method(method).public()}


async def get_default_disbursement_method(session: AsyncSession, seller_id: int) -> Optional[dict[str, Any]]:
    """The method payouts should go to , only when it is the default and verified."""
    account_id = await repo.fetch_account_id(session, seller_id)
    if account_id is None:
        return None
    method = await repo.fetch_verified_default(session, account_id)
    return mask_method(method).public() if method else None


# mobile money -------------------------------------------------------------------------------------------------------------------


async def get_mobile_money(session: AsyncSession, seller_id: int) -> Optional[dict[str, Any]]:
    account_id = await repo.fetch_account_id(session, seller_id)
    method = await repo.fetch_first_of_kind(session, account_id, PayoutKind.MOBILE_MONEY)
    return mask_method(method).public() if method else None


@retry_async()
async def upsert_mobile_money(session: AsyncSession, seller_id: int, payload: MobileMoneyIn) -> dict[str, Any]:

    account_id = await repo.fetch_account_id(session, seller_id)
    existing = await repo.fetch_first_of_kind(session, account_id, PayoutKind.MOBILE_MONEY)

    if existing is None and not payload.mobile_money_number:
        raise PayoutValidationError("Mobile money number is required",
                                    errors=[{"field": "mobileMoneyNumber", "message": "required"}])

    operation = StepUpOperation.UPDATE if existing is not None else StepUpOperation.ADD
    await confirm_password(session, seller_id, payload.password, operation)

    account_id = await repo.lock_payout_account(session, seller_id)
    method = await repo.fetch_first_of_kind(session, account_id, PayoutKind.MOBILE_MONEY)
    created = method is None

    if created:
        if not payload.mobile_money_number:
            raise PayoutValidationError("Mobile money number is required",
                                        errors=[{"field": "mobileMoneyNumber", "message": "required"}])
        method = PayoutMethod(account_id=account_id, kind=PayoutKind.MOBILE_MONEY.value)
        method.mobile_money_number = encrypt(payload.mobile_money_number)
        start_verification(method)
    elif payload.mobile_money_number:
        current = get_cipher().reveal(method.mobile_money_number)
        if current.state is RevealState.UNAVAILABLE or current.value != payload.mobile_money_number:
            method.mobile_money_number = encrypt(payload.mobile_money_number)
            start_verification(method)

    method.mobile_money_provider = payload.mobile_money_provider
    method.account_holder_name = payload.account_holder_name
    method.country = payload.country
    method.currency = payload.currency or DEFAULT_MOBILE_MONEY_CURRENCY

    if created:
        await repo.insert_method(session, method)
    else:
        method.last_modified_at = now()
        await session.flush()
    await session.commit()

    logger.info("payout.mobile_money.saved", extra={"seller_id": seller_id, "is_new": created,
                                                    "method_public_id": str(method.public_id)})
    return {"mobileMoney": mask_method(method).public(), "created": created}


@retry_async()
async def delete_mobile_money(session: AsyncSession, seller_id: int, password: Optional[str]) -> None:

    await confirm_password(session, seller_id, password, StepUpOperation.DELETE)

    account_id = await repo.lock_payout_account(session, seller_id)
    method = await repo.fetch_first_of_kind(session, account_id, PayoutKind.MOBILE_MONEY)
    if method is None:
        raise PayoutNotFoundError("Mobile money account not found")

    await repo.delete_method_row(session, method)
    await session.commit()

    logger.info("payout.mobile_money.deleted", extra={"seller_id": seller_id})


# payout schedule ----------------------------------------------------------------------------------------------------------------


async def get_payout_schedule(session: AsyncSession, seller_id: int) -> dict[str, Any]:
    account = await repo.fetch_account(session, seller_id)
    return schedule_view(account)


@retry_async()
async def update_payout_schedule(session: AsyncSession, seller_id: int, payload: PayoutScheduleIn) -> dict[str, Any]:

    await repo.lock_payout_account(session, seller_id)
    account = await repo.fetch_account(session, seller_id)

    frequency = payload.frequency
    weekly = frequency in (PayoutFrequency.WEEKLY, PayoutFrequency.BIWEEKLY)
    day_of_week = payload.day_of_week if weekly else None
    day_of_month = payload.day_of_month if frequency == PayoutFrequency.MONTHLY else None

    account.schedule_frequency = frequency.value
    account.schedule_day_of_week = day_of_week
    account.schedule_day_of_month = day_of_month
    account.next_payout_date = calculate_next_payout_date(frequency, day_of_week, day_of_month)

    # unset amounts keep their stored value
    if "minimum_payout_amount" in payload.model_fields_set:
        account.minimum_payout_amount = payload.minimum_payout_amount
    if "auto_payout" in payload.model_fields_set:
        account.auto_payout = payload.auto_payout

    await session.flush()
    await session.commit()

    logger.info("payout.schedule.updated", extra={"seller_id": seller_id, "frequency": frequency.value})
    return schedule_view(account)
