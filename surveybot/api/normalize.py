from typing import Any, List

from surveybot.api.schemas import InboundMessage


def _text_of(message: Any) -> str:
    """Plain text of a gateway message body, '' for media/reactions/etc."""
    if isinstance(message, str):
        return message
    if not isinstance(message, dict):
        return ""
    if isinstance(message.get("conversation"), str):
        return message["conversation"]
    ext = message.get("extendedTextMessage")
    if isinstance(ext, dict) and isinstance(ext.get("text"), str):
        return ext["text"]
    return ""


def _from_upsert_item(item: Any) -> List[InboundMessage]:
    if not isinstance(item, dict):
        return []
    key = item.get("key") or {}
    if key.get("fromMe"):
        return []
    sender = key.get("remoteJid") or item.get("from") or ""
    text = _text_of(item.get("message"))
    if not sender or not text:
        return []
    return [InboundMessage(sender=str(sender), text=text)]


def normalize_inbound_payload(payload: Any) -> List[InboundMessage]:
    """
    Accepts the shapes the chat gateway may post and returns the text messages
    worth handling:

    - {"from": "...", "text": "..."}                  (flat)
    - {"sender": "...", "message": "..."}             (flat, alternate names)
    - {"messages": [{"key": {...}, "message": {...}}]} (upsert batch)
    - [{"key": {...}, "message": {...}}, ...]          (bare batch)

    Messages sent by the bot itself and non-text messages are dropped.
    """
    if payload is None:
        return []

    if isinstance(payload, list):
        return [m for item in payload for m in _from_upsert_item(item)]

    if not isinstance(payload, dict):
        return []

    if isinstance(payload.get("messages"), list):
        return [m for item in payload["messages"] for m in _from_upsert_item(item)]

    if "key" in payload:
        return _from_upsert_item(payload)

    if payload.get("fromMe"):
        return []
    sender = payload.get("from") or payload.get("sender") or payload.get("remoteJid") or ""
    text = payload.get("text")
    if text is None:
        text = _text_of(payload.get("message"))
    if not sender or not isinstance(text, str) or not text:
        return []
    return [InboundMessage(sender=str(sender), text=text)]
