import uuid
from typing import Optional
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from marketplace.payouts.constants import logger
from marketplace.payouts.exceptions import PayoutNotFoundError
from marketplace.schema.full_schema import PayoutKind, PayoutMethod, SellerPayoutAccount, VerificationStatus


async def _bump_version(session, seller_id):
    stmt = (
        update(SellerPayoutAccount)
        .where(SellerPayoutAccount.seller_id == seller_id)
        .values(version=SellerPayoutAccount.version + 1)
        .returning(SellerPayoutAccount.id)
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


#** every write to a seller's payout methods goes through here first , the version bump takes the
#** row lock (pg) / write lock (sqlite) that serializes concurrent writers of the same seller .
async def lock_payout_account(session, seller_id) -> int:

    account_id = await _bump_version(session, seller_id)
    if account_id is not None:
        return account_id

    # first write for this seller , create the aggregate row
    try:
        async with session.begin_nested():
            account = SellerPayoutAccount(seller_id=seller_id, version=1)
            session.add(account)
            await session.flush()
            return account.id
    except IntegrityError:
        # a concurrent request created it , lock the winner's row instead
        logger.debug("payout.account.create_race", extra={"seller_id": seller_id})

    account_id = await _bump_version(session, seller_id)
    if account_id is None:
        raise RuntimeError("seller payout account vanished while locking")
    return account_id


async def fetch_account(session, seller_id) -> Optional[SellerPayoutAccount]:
    stmt = select(SellerPayoutAccount).where(SellerPayoutAccount.seller_id == seller_id)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def fetch_account_id(session, seller_id) -> Optional[int]:
    stmt = select(SellerPayoutAccount.id).where(SellerPayoutAccount.seller_id == seller_id)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def fetch_methods(session, account_id) -> list[PayoutMethod]:
    stmt = (
        select(PayoutMethod)
        .where(PayoutMethod.account_id == account_id)
        .order_by(PayoutMethod.added_at, PayoutMethod.id)
    )
    res = await session.execute(stmt)
    return list(res.scalars().all())


def _parse_pid(method_pid):
    if isinstance(method_pid, uuid.UUID):
        return method_pid
    try:
        return uuid.UUID(str(method_pid))
    except ValueError:
        return None


async def fetch_method(session, account_id, method_pid) -> PayoutMethod:
    """Method by public id , scoped to the seller's account so foreign ids look like missing ones."""
    pid = _parse_pid(method_pid)
    method = None
    if pid is not None and account_id is not None:
        stmt = select(PayoutMethod).where(PayoutMethod.public_id == pid, PayoutMethod.account_id == account_id)
        res = await session.execute(stmt)
        method = res.scalar_one_or_none()

    if method is None:
        logger.warning("payout.method.not_found", extra={"method_public_id": str(method_pid)})
        raise PayoutNotFoundError("Payout method not found")
    return method


async def count_methods_of_kind(session, account_id, kind: PayoutKind) -> int:
    stmt = select(func.count(PayoutMethod.id)).where(PayoutMethod.account_id == account_id,
                                                      PayoutMethod.kind == kind.value)
    res = await session.execute(stmt)
    return res.scalar_one()


async def fetch_first_of_kind(session, account_id, kind: PayoutKind) -> Optional[PayoutMethod]:
    if account_id is None:
        return None
    stmt = (
        select(PayoutMethod)
        .where(PayoutMethod.account_id == account_id, PayoutMethod.kind == kind.value)
        .order_by(PayoutMethod.added_at, PayoutMethod.id)
        .limit(1)
    )
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def fetch_verified_default(session, account_id) -> Optional[PayoutMethod]:
    stmt = select(PayoutMethod).where(
        PayoutMethod.account_id == account_id,
        PayoutMethod.is_default.is_(True),
        PayoutMethod.verification_status == VerificationStatus.VERIFIED.value,
    )
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def clear_default_flags(session, account_id, keep_id: Optional[int] = None):
    """Unset is_default on the seller's methods , must run before a sibling is flagged."""
    stmt = update(PayoutMethod).where(PayoutMethod.account_id == account_id, PayoutMethod.is_default.is_(True))
    if keep_id is not None:
        stmt = stmt.where(PayoutMethod.id != keep_id)
    await session.execute(stmt.values(is_default=False).execution_options(synchronize_session="fetch"))


async def insert_method(session, method: PayoutMethod) -> PayoutMethod:
    session.add(method)
    await session.flush()
    return method


async def delete_method_row(session, method: PayoutMethod):
    await session.delete(method)
    await session.flush()
