import enum
from decimal import Decimal
from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Numeric, Text, UniqueConstraint, Uuid, text
import uuid
from uuid6 import uuid7
from datetime import datetime
from typing import Optional
from sqlmodel import Column, SQLModel, Field, String
from marketplace.common.utils import now

# Identity tables , owned by the identity service . Only the columns the payout
# service reads are declared here.

class UserRole(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True,nullable=False)
    role_id: Optional[int] = Field(default=None, foreign_key="role.id", index=True,nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "role_id", name="uq_user_role_user_id_role_id"),)


class Users(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    public_id: uuid.UUID = Field(
        default_factory=uuid7,
        sa_column=Column(Uuid(as_uuid=True), unique=True, index=True, nullable=False)
    )
    email: Optional[str] = Field(default=None,sa_column=Column(String(320), nullable=True,unique=True))
    name: Optional[str] = Field(default=None, sa_column=Column(String(128), nullable=True))
    role_version:int=Field(default=0,nullable=False)
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now))
    updated_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))
    deleted_at: Optional[datetime] = Field(default=None,
        sa_column=Column(DateTime(timezone=True)))


class Role(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(length=200), unique=True, nullable=False,default='buyer'))
    description: Optional[str] = None


class CredentialType(str, enum.Enum):
    PASSWORD = "password"
    OAUTH = "oauth"


class Credential(SQLModel, table=True):
    """Holds password hashes and oauth provider ids."""
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(sa_column=Column(ForeignKey("users.id", ondelete="CASCADE"),
            index=True,nullable=False))
    type: CredentialType = Field(sa_column=Column(String(16), nullable=False))
    provider: Optional[str] = Field(default=None, sa_column=Column(String(64), default=None, nullable=True))
    password_hash: Optional[str] = Field(default=None, sa_column=Column(Text(),nullable=True))
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), default=now,nullable=False))
    updated_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), default=now,nullable=False, onupdate=now))
    revoked_at: Optional[datetime] = Field(default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True))

# --------------------------------------------------------------------------------------------------------------------------------

class PayoutKind(str, enum.Enum):
    BANK_TRANSFER = "bank_transfer"
    MOBILE_MONEY = "mobile_money"
    PAYPAL = "paypal"
    CRYPTO = "crypto"


class VerificationStatus(str, enum.Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    FAILED = "failed"
    UNVERIFIED = "unverified"


class BankAccountType(str, enum.Enum):
    CHECKING = "checking"
    SAVINGS = "savings"


class PayoutFrequency(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class SellerPayoutAccount(SQLModel, table=True):
    """Per seller aggregate root . `version` is bumped by every write to the seller's
    payout methods , that UPDATE is what serializes concurrent writers of one seller."""

    __tablename__ = "seller_payout_account"

    id: Optional[int] = Field(default=None, primary_key=True)
    seller_id: int = Field(sa_column=Column(ForeignKey("users.id", ondelete="CASCADE"), unique=True, index=True, nullable=False))
    version: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))

    # payout schedule , null frequency means the default schedule applies
    schedule_frequency: Optional[str] = Field(default=None, sa_column=Column(String(16), nullable=True))
    schedule_day_of_week: Optional[int] = Field(default=None, sa_column=Column(Integer, nullable=True))
    schedule_day_of_month: Optional[int] = Field(default=None, sa_column=Column(Integer, nullable=True))
    next_payout_date: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    last_payout_date: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    minimum_payout_amount: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(12, 2), nullable=False, default=Decimal("0")))
    auto_payout: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))

    created_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    updated_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now, onupdate=now))


class PayoutMethod(SQLModel, table=True):

    __tablename__ = "payout_method"

    id: Optional[int] = Field(default=None, primary_key=True)
    public_id: uuid.UUID = Field(default_factory=uuid7, sa_column=Column(Uuid(as_uuid=True), unique=True, index=True, nullable=False))
    account_id: int = Field(sa_column=Column(ForeignKey("seller_payout_account.id", ondelete="CASCADE"), index=True, nullable=False))
    kind: str = Field(sa_column=Column(String(32), nullable=False, index=True))

    bank_name: Optional[str] = Field(default=None, sa_column=Column(String(100), nullable=True))
    account_number: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))          # encrypted
    routing_number: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))          # encrypted
    account_holder_name: Optional[str] = Field(default=None, sa_column=Column(String(100), nullable=True))
    account_type: Optional[str] = Field(default=None, sa_column=Column(String(16), nullable=True))
    country: Optional[str] = Field(default=None, sa_column=Column(String(100), nullable=True))
    currency: Optional[str] = Field(default=None, sa_column=Column(String(3), nullable=True))
    swift_code: Optional[str] = Field(default=None, sa_column=Column(String(11), nullable=True))
    iban: Optional[str] = Field(default=None, sa_column=Column(String(34), nullable=True))
    paypal_email: Optional[str] = Field(default=None, sa_column=Column(String(320), nullable=True))
    mobile_money_provider: Optional[str] = Field(default=None, sa_column=Column(String(100), nullable=True))
    mobile_money_number: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))     # encrypted
    crypto_wallet: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))

    is_default: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    verification_status: str = Field(default=VerificationStatus.PENDING.value, sa_column=Column(String(16), nullable=False))
    verification_code: Optional[str] = Field(default=None, sa_column=Column(String(32), nullable=True))

    added_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    verified_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    last_modified_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))

    __table_args__ = (
        # storage level guard for the single default per seller
        Index(
            "uq_payout_method_one_default",
            "account_id",
            unique=True,
            postgresql_where=text("is_default = true"),
            sqlite_where=text("is_default = 1"),
        ),
    )
