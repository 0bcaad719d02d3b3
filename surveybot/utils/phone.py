import re
from surveybot.settings import settings

_NON_DIGITS = re.compile(r"\D+")


def normalize_contact_id(raw: str, country_code: str = None) -> str:
    """
    Canonical contact key: digits only, country-code prefixed, transport suffix removed.

    Accepts chat addresses ("212612345678:3@s.whatsapp.net"), international
    ("+212 612-345-678", "00212612345678") and national ("0612345678") forms.
    normalize_contact_id(normalize_contact_id(x)) == normalize_contact_id(x).
    """
    if not raw:
        return ""
    cc = country_code if country_code is not None else settings.DEFAULT_COUNTRY_CODE

    s = str(raw).strip()
    # "<number>:<device>@<server>" -> "<number>"
    s = s.split("@", 1)[0].split(":", 1)[0]
    digits = _NON_DIGITS.sub("", s)
    if not digits:
        return ""

    if digits.startswith("00"):
        digits = digits[2:]
    elif digits.startswith("0"):
        digits = digits[1:]
    if not digits:
        return ""

    if cc and not digits.startswith(cc):
        digits = cc + digits
    elif cc and digits.startswith(cc + "0"):
        # "+212 (0)6..." keeps the trunk zero after the country code
        digits = cc + digits[len(cc) + 1:]
    return digits


def to_jid(contact_id: str, suffix: str = None) -> str:
    return f"{contact_id}{suffix if suffix is not None else settings.MESSENGER_JID_SUFFIX}"
