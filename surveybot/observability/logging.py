import json
import time
from surveybot.settings import settings

# Message bodies are personal data; keep only their length in logs
SENSITIVE_KEYS = {"text", "message", "answer", "reply", "content", "body"}

# Fields carrying a contact's phone number or chat address
CONTACT_KEYS = {"contactId", "jid", "sender", "numero"}


def _redact_text(v):
    if isinstance(v, str) and v:
        return f"[REDACTED:{len(v)}chars]"
    return v


def _mask_contact(v):
    """'212612345678@s.whatsapp.net' -> '********5678@s.whatsapp.net'"""
    if not isinstance(v, str) or not v:
        return v
    number, sep, server = v.partition("@")
    if len(number) <= 4:
        return v
    return "*" * (len(number) - 4) + number[-4:] + sep + server


def _clean(key, value):
    if isinstance(value, dict):
        return {k: _clean(k, v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_clean(key, v) for v in value]
    if settings.ENABLE_PII_REDACTION and key in SENSITIVE_KEYS:
        return _redact_text(value)
    if settings.LOG_MASK_CONTACT_IDS and key in CONTACT_KEYS:
        return _mask_contact(value)
    return value


def log(event: str, **fields):
    payload = {"ts": int(time.time()), "event": event}
    payload.update({k: _clean(k, v) for k, v in fields.items()})
    print(json.dumps(payload, ensure_ascii=False, default=str))
