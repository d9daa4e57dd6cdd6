import json
import logging
import re
import sys
from logging.handlers import QueueHandler, QueueListener
from queue import Queue
from typing import Any, Dict, MutableMapping, Optional, Tuple
from marketplace.config.admin_config import admin_config
from marketplace.common.constants import request_id_ctx

ENV = admin_config.ENV.lower()
REDACTED = "[REDACTED]"

# extras that must never reach a sink , in any env
SECRET_FIELDS = frozenset({
    "password", "account_number", "routing_number", "mobile_money_number",
    "verification_code", "iban", "swift_code", "crypto_wallet", "authorization",
})

# ids that are fine in dev logs but get shortened elsewhere
PUBLIC_ID_FIELDS = ("user_public_id", "seller_public_id", "method_public_id")

_SECRET_WORDS = (
    "password", "secret", "token", "authorization", "api_?key",
    "account_?number", "routing_?number", "mobile_?money_?number",
    "verification_?code", "iban",
)
_QUOTED_SECRET = re.compile(rf'("(?:{"|".join(_SECRET_WORDS)})"\s*:\s*")[^"]*(")', re.IGNORECASE)
_INLINE_SECRET = re.compile(rf'\b((?:{"|".join(_SECRET_WORDS)})\s*[=:]\s*)[^\s,;&"]+', re.IGNORECASE)

# attributes every LogRecord carries , anything else came in through `extra`
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime", "taskName"}


def scrub_text(text: str) -> str:
    """Best effort redaction of `key=value` and `"key": "value"` secrets inside free text."""
    text = _QUOTED_SECRET.sub(rf"\1{REDACTED}\2", text)
    return _INLINE_SECRET.sub(rf"\1{REDACTED}", text)


def shorten_id(value: Any) -> str:
    val = str(value)
    return f"{val[:8]}...{val[-4:]}" if len(val) > 12 else f"{val[:8]}..."


def record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS and not k.startswith("_")}


class RedactionFilter(logging.Filter):
    """Runs on the sink side of the queue so nothing formatted later can leak a secret."""

    def filter(self, record: logging.LogRecord) -> bool:
        for field in SECRET_FIELDS.intersection(vars(record)):
            setattr(record, field, REDACTED)
        if ENV != "dev":
            record.msg = scrub_text(record.getMessage())
            record.args = ()
            for field in PUBLIC_ID_FIELDS:
                if getattr(record, field, None) is not None:
                    setattr(record, field, shorten_id(getattr(record, field)))
        return True


class JSONFormatter(logging.Formatter):
    """One json object per line , used outside dev"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "env": ENV,
            "service": admin_config.SERVICE_NAME,
        }
        entry.update(record_extras(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


_queue_listener: Optional[QueueListener] = None


def _sink_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RedactionFilter())
    if ENV == "dev":
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)8s] %(name)s:%(funcName)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"))
    else:
        handler.setFormatter(JSONFormatter())
    return handler


def setup_logging() -> logging.Logger:
    """Route the root logger through a queue so request handlers never block on stdout.

    Safe to call again (tests start the app many times) , the previous listener is stopped first.
    """
    global _queue_listener

    queue: Queue = Queue(-1)
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.addHandler(QueueHandler(queue))
    root.setLevel(logging.INFO if ENV in ("prod", "staging") else logging.DEBUG)

    shutdown_logging()
    _queue_listener = QueueListener(queue, _sink_handler(), respect_handler_level=True)
    _queue_listener.start()

    logging.getLogger("uvicorn.access").setLevel(logging.INFO if ENV == "dev" else logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)

    return logging.getLogger("marketplace.app")


def shutdown_logging():
    global _queue_listener
    if _queue_listener is not None:
        _queue_listener.stop()
        _queue_listener = None


class ContextLogger(logging.LoggerAdapter):
    """Stamps the current request id onto every record's extras."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        rid = request_id_ctx.get()
        if rid:
            extra.setdefault("request_id", rid)
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str = "marketplace.app") -> ContextLogger:
    return ContextLogger(logging.getLogger(name), {})
