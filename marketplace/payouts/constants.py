from marketplace.common.logging_setup import get_logger
from marketplace.config.settings import config_settings
from marketplace.schema.full_schema import PayoutKind

logger = get_logger("marketplace.payouts")

MAX_BANK_ACCOUNTS = config_settings.PAYOUT_MAX_BANK_ACCOUNTS

MASK = "****"
UNAVAILABLE_PLACEHOLDER = "[unavailable]"

# stored encrypted , never returned in plaintext
SECRET_FIELDS = ("account_number", "routing_number", "mobile_money_number")

REQUIRED_FIELDS_BY_KIND = {
    PayoutKind.BANK_TRANSFER: ("bank_name", "account_number", "routing_number"),
    PayoutKind.MOBILE_MONEY: ("mobile_money_provider", "mobile_money_number"),
    PayoutKind.PAYPAL: ("paypal_email",),
    PayoutKind.CRYPTO: ("crypto_wallet",),
}

DEFAULT_MOBILE_MONEY_CURRENCY = "USD"

BANK_VERIFICATION_INSTRUCTIONS = "Two small deposits will be sent to your account. Enter the amounts to verify."
