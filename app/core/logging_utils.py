"""
Logging setup.

- One basicConfig call with a fixed format for the whole process.
- Redact bearer tokens and password/token values from log messages.
- Log uncaught process-level exceptions before the interpreter exits.
- Audit events for admin actions on their own "app.audit" logger.
"""

import logging
import re
import sys
from types import TracebackType
from typing import Any

_FILTER_NAME = "stratdesk_redact_secrets"

audit_logger = logging.getLogger("app.audit")


class RedactSecretsFilter(logging.Filter):
    """Best-effort redaction of credentials that end up in formatted log messages."""

    _bearer_re = re.compile(r"(?i)\bBearer\s+[A-Za-z0-9._\-]+")
    _kv_re = re.compile(
        r"(?i)(\"?(password|confirmPassword|token|refreshToken|accessToken|secret)\"?\s*[:=]\s*)(\"?)[^\"\s,}&]+(\3)"
    )

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        try:
            msg = record.getMessage()
        except Exception:
            return True
        redacted = self._bearer_re.sub("Bearer REDACTED", msg)
        redacted = self._kv_re.sub(lambda m: f"{m.group(1)}{m.group(3)}REDACTED{m.group(4)}", redacted)
        if redacted != msg:
            record.msg = redacted
            record.args = ()
        return True


def _log_uncaught(
    exc_type: type[BaseException],
    exc: BaseException,
    tb: TracebackType | None,
) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc, tb)
        return
    logging.getLogger("app").critical("Uncaught exception; exiting", exc_info=(exc_type, exc, tb))
    sys.__excepthook__(exc_type, exc, tb)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once; safe to call more than once."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    root = logging.getLogger()
    for target in (root, *root.handlers):
        if not any(getattr(f, "name", None) == _FILTER_NAME for f in target.filters):
            redact = RedactSecretsFilter(_FILTER_NAME)
            target.addFilter(redact)

    sys.excepthook = _log_uncaught


def log_audit_event(action: str, actor_id: Any, **details: Any) -> None:
    """Record an admin action; details become LogRecord attributes prefixed with audit_."""
    extra = {"audit_action": action, "audit_actor_id": str(actor_id)}
    extra.update({f"audit_{key}": value for key, value in details.items()})
    audit_logger.info("AUDIT %s by %s", action, actor_id, extra=extra)
