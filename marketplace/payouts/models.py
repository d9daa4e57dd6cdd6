from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, Literal, Optional, Union
from email_validator import EmailNotValidError, validate_email
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from marketplace.schema.full_schema import BankAccountType, PayoutFrequency, PayoutKind


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _blank_to_none(value: Any) -> Any:
    # forms post "" for fields that belong to other kinds
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _normalize_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        return validate_email(value, check_deliverability=False).normalized.lower()
    except EmailNotValidError as e:
        raise ValueError(f"invalid email: {e}")


class PayoutFieldsIn(CamelModel):
    """Every kind specific field , all optional . Which ones are required is decided per kind."""

    bank_name: Optional[str] = Field(None, min_length=1, max_length=100)
    account_number: Optional[str] = Field(None, min_length=4, max_length=50)
    routing_number: Optional[str] = Field(None, min_length=4, max_length=20)
    account_holder_name: Optional[str] = Field(None, min_length=2, max_length=100)
    account_type: Optional[BankAccountType] = None
    country: Optional[str] = Field(None, max_length=100)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    swift_code: Optional[str] = Field(None, max_length=11)
    iban: Optional[str] = Field(None, max_length=34)
    paypal_email: Optional[str] = Field(None, max_length=320)
    mobile_money_provider: Optional[str] = Field(None, min_length=1, max_length=100)
    mobile_money_number: Optional[str] = Field(None, min_length=4, max_length=50)
    crypto_wallet: Optional[str] = Field(None, min_length=1, max_length=255)

    @field_validator(
        "bank_name", "account_number", "routing_number", "account_holder_name", "account_type",
        "country", "currency", "swift_code", "iban", "paypal_email", "mobile_money_provider",
        "mobile_money_number", "crypto_wallet", mode="before",
    )
    @classmethod
    def blank_to_none(cls, v):
        return _blank_to_none(v)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v):
        return v.upper() if v else v

    @field_validator("paypal_email")
    @classmethod
    def check_email(cls, v):
        return _normalize_email(v)


class PayoutMethodIn(PayoutFieldsIn):
    # older clients send the kind as `method`
    kind: Optional[PayoutKind] = Field(None, validation_alias=AliasChoices("kind", "method"))
    is_default: bool = False
    password: Optional[str] = Field(None, min_length=6)

    @field_validator("kind", mode="before")
    @classmethod
    def blank_kind(cls, v):
        return _blank_to_none(v)

    @field_validator("password", mode="before")
    @classmethod
    def empty_password(cls, v):
        return v or None

    def supplied_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude={"kind", "is_default", "password"}, exclude_none=True)

    def to_details(self) -> "PayoutDetails":
        """Narrow the flat body to the variant for its kind , fields of other kinds are dropped."""
        variant = _DETAILS_BY_KIND[self.kind]
        data = {k: v for k, v in self.supplied_fields().items() if k in variant.model_fields}
        return variant.model_validate({"kind": self.kind.value, **data})


class PayoutMethodUpdateIn(PayoutFieldsIn):
    kind: Optional[PayoutKind] = Field(None, validation_alias=AliasChoices("kind", "method"))
    is_default: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=6)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    @field_validator("kind", mode="before")
    @classmethod
    def blank_kind(cls, v):
        return _blank_to_none(v)

    @field_validator("password", mode="before")
    @classmethod
    def empty_password(cls, v):
        return v or None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude={"kind", "is_default", "password"}, exclude_unset=True, exclude_none=True)


# kind tagged variants , one per payout kind


class BankTransferDetails(CamelModel):
    kind: Literal["bank_transfer"] = "bank_transfer"
    bank_name: str
    account_number: str
    routing_number: str
    account_holder_name: Optional[str] = None
    account_type: Optional[BankAccountType] = None
    country: Optional[str] = None
    currency: Optional[str] = None
    swift_code: Optional[str] = None
    iban: Optional[str] = None


class MobileMoneyDetails(CamelModel):
    kind: Literal["mobile_money"] = "mobile_money"
    mobile_money_provider: str
    mobile_money_number: str
    account_holder_name: Optional[str] = None
    country: Optional[str] = None
    currency: Optional[str] = None


class PaypalDetails(CamelModel):
    kind: Literal["paypal"] = "paypal"
    paypal_email: str
    currency: Optional[str] = None


class CryptoDetails(CamelModel):
    kind: Literal["crypto"] = "crypto"
    crypto_wallet: str
    currency: Optional[str] = None


PayoutDetails = Annotated[
    Union[BankTransferDetails, MobileMoneyDetails, PaypalDetails, CryptoDetails],
    Field(discriminator="kind"),
]

_DETAILS_BY_KIND = {
    PayoutKind.BANK_TRANSFER: BankTransferDetails,
    PayoutKind.MOBILE_MONEY: MobileMoneyDetails,
    PayoutKind.PAYPAL: PaypalDetails,
    PayoutKind.CRYPTO: CryptoDetails,
}

# fields a kind may carry , anything else on an update is rejected
ALLOWED_FIELDS_BY_KIND = {
    kind: frozenset(f for f in variant.model_fields if f != "kind")
    for kind, variant in _DETAILS_BY_KIND.items()
}


class VerifyPayoutMethodIn(CamelModel):
    confirm_account_details: bool = False
    password: Optional[str] = None


class PasswordConfirmIn(CamelModel):
    password: Optional[str] = None


class MobileMoneyIn(CamelModel):
    mobile_money_provider: str = Field(..., min_length=1, max_length=100)
    mobile_money_number: Optional[str] = Field(None, min_length=4, max_length=50)
    account_holder_name: Optional[str] = Field(None, min_length=2, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    password: Optional[str] = Field(None, min_length=6)

    @field_validator("mobile_money_provider", "mobile_money_number", "account_holder_name", "country", "currency", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _blank_to_none(v)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v):
        return v.upper() if v else v

    @field_validator("password", mode="before")
    @classmethod
    def empty_password(cls, v):
        return v or None


class PayoutScheduleIn(CamelModel):
    frequency: PayoutFrequency
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    day_of_month: Optional[int] = Field(None, ge=1, le=31)
    minimum_payout_amount: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    auto_payout: bool = True


class MaskedPayoutMethod(CamelModel):
    id: str
    kind: PayoutKind
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    routing_number: Optional[str] = None
    account_holder_name: Optional[str] = None
    account_type: Optional[str] = None
    country: Optional[str] = None
    currency: Optional[str] = None
    swift_code: Optional[str] = None
    iban: Optional[str] = None
    paypal_email: Optional[str] = None
    mobile_money_provider: Optional[str] = None
    mobile_money_number: Optional[str] = None
    crypto_wallet: Optional[str] = None
    is_default: bool = False
    verification_status: str
    added_at: datetime
    verified_at: Optional[datetime] = None
    last_modified_at: Optional[datetime] = None
    # only populated by the dev exposure switch
    verification_code: Optional[str] = None

    def public(self) -> dict[str, Any]:
        data = self.model_dump(by_alias=True, mode="json")
        if data.get("verificationCode") is None:
            data.pop("verificationCode", None)
        return data

    @field_validator("added_at", "verified_at", "last_modified_at")
    @classmethod
    def assume_utc(cls, v):
        # sqlite drops the offset of timezone columns
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v
