import enum
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool
from marketplace.auth.utils import verify_password
from marketplace.config.settings import config_settings
from marketplace.payouts.constants import logger
from marketplace.payouts.exceptions import PayoutAuthenticationError, PayoutValidationError
from marketplace.user.repository import get_password_credential


class StepUpOperation(str, enum.Enum):
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"
    VERIFY = "verify"


class StepUpRequirement(str, enum.Enum):
    REQUIRED = "required"
    IF_PRESENT = "if_present"
    NONE = "none"


STEP_UP_POLICIES = {
    "strict": {
        StepUpOperation.ADD: StepUpRequirement.REQUIRED,
        StepUpOperation.UPDATE: StepUpRequirement.REQUIRED,
        StepUpOperation.DELETE: StepUpRequirement.REQUIRED,
        StepUpOperation.VERIFY: StepUpRequirement.REQUIRED,
    },
    # what older clients were built against
    "legacy": {
        StepUpOperation.ADD: StepUpRequirement.IF_PRESENT,
        StepUpOperation.UPDATE: StepUpRequirement.NONE,
        StepUpOperation.DELETE: StepUpRequirement.REQUIRED,
        StepUpOperation.VERIFY: StepUpRequirement.REQUIRED,
    },
}


def requirement_for(operation: StepUpOperation, policy: Optional[str] = None) -> StepUpRequirement:
    policy = (policy or config_settings.PAYOUT_STEP_UP_POLICY).lower()
    if policy not in STEP_UP_POLICIES:
        raise ValueError(f"unknown PAYOUT_STEP_UP_POLICY {policy!r}")
    return STEP_UP_POLICIES[policy][operation]


async def confirm_password(session: AsyncSession, seller_id: int, password: Optional[str],
                           operation: StepUpOperation, policy: Optional[str] = None) -> None:
    """Re-authenticate the seller before a financial mutation . Raises before anything is written."""

    requirement = requirement_for(operation, policy)
    if requirement == StepUpRequirement.NONE:
        return
    if not password:
        if requirement == StepUpRequirement.IF_PRESENT:
            return
        raise PayoutValidationError("Password is required to confirm this change",
                                    errors=[{"field": "password", "message": "required"}])

    password_hash = await get_password_credential(session, seller_id)
    if not password_hash:
        logger.warning("payout.step_up.no_credential", extra={"seller_id": seller_id, "operation": operation.value})
        raise PayoutAuthenticationError("Password confirmation is not available for this account")

    matched = await run_in_threadpool(verify_password, password, password_hash)
    if not matched:
        logger.warning("payout.step_up.failed", extra={"seller_id": seller_id, "operation": operation.value})
        raise PayoutAuthenticationError("Invalid password")
