import secrets
from typing import Optional
from marketplace.common.utils import now
from marketplace.payouts.constants import BANK_VERIFICATION_INSTRUCTIONS
from marketplace.payouts.exceptions import PayoutValidationError
from marketplace.schema.full_schema import PayoutKind, PayoutMethod, VerificationStatus

_rng = secrets.SystemRandom()

# kinds that go through micro deposit / number confirmation before they can receive money
VERIFIABLE_KINDS = frozenset({PayoutKind.BANK_TRANSFER, PayoutKind.MOBILE_MONEY})

TRANSITIONS = {
    VerificationStatus.PENDING: frozenset({VerificationStatus.VERIFIED, VerificationStatus.FAILED}),
    VerificationStatus.VERIFIED: frozenset(),
    VerificationStatus.FAILED: frozenset(),
    VerificationStatus.UNVERIFIED: frozenset(),
}


def initial_status(kind: PayoutKind) -> VerificationStatus:
    return VerificationStatus.PENDING if kind in VERIFIABLE_KINDS else VerificationStatus.UNVERIFIED


def generate_micro_deposit_code() -> str:
    """Two amounts in [0.01, 0.99] joined by '-' , e.g. "0.07-0.42"."""
    first = _rng.randint(1, 99)
    second = _rng.randint(1, 99)
    return f"0.{first:02d}-0.{second:02d}"


def start_verification(method: PayoutMethod) -> None:
    """Put a fresh method (or one whose secrets changed) back at the start of its workflow."""
    kind = PayoutKind(method.kind)
    method.verification_status = initial_status(kind).value
    method.verified_at = None
    method.verification_code = generate_micro_deposit_code() if kind == PayoutKind.BANK_TRANSFER else None


def can_transition(current: VerificationStatus, target: VerificationStatus) -> bool:
    return target in TRANSITIONS[current]


def require_account_confirmation(confirm_account_details: bool) -> None:
    if not confirm_account_details:
        raise PayoutValidationError("Please confirm your account details",
                                    errors=[{"field": "confirmAccountDetails", "message": "must be true"}])


def apply_verification(method: PayoutMethod, confirm_account_details: bool) -> bool:
    """Move a pending method to verified . Returns False when it already was verified."""
    require_account_confirmation(confirm_account_details)

    current = VerificationStatus(method.verification_status)
    if current == VerificationStatus.VERIFIED:
        return False

    if not can_transition(current, VerificationStatus.VERIFIED):
        raise PayoutValidationError(f"Payout method in status '{current.value}' cannot be verified")

    # self attested , the micro deposit amounts are not checked against the code
    method.verification_status = VerificationStatus.VERIFIED.value
    method.verified_at = now()
    method.verification_code = None
    return True


def mark_failed(method: PayoutMethod) -> None:
    current = VerificationStatus(method.verification_status)
    if not can_transition(current, VerificationStatus.FAILED):
        raise PayoutValidationError(f"Payout method in status '{current.value}' cannot be failed")
    method.verification_status = VerificationStatus.FAILED.value
    method.verification_code = None


def verification_instructions(kind: PayoutKind) -> Optional[str]:
    return BANK_VERIFICATION_INSTRUCTIONS if kind == PayoutKind.BANK_TRANSFER else None
