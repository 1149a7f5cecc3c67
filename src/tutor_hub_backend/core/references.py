'''
Generators for the human-readable references stored on records.
'''
import re
import secrets
import string
import unicodedata
import uuid

_TICKET_ALPHABET = string.ascii_uppercase + string.digits


def ticket_reference() -> str:
    """'TKT-' followed by 8 uppercase letters/digits."""
    return "TKT-" + "".join(secrets.choice(_TICKET_ALPHABET) for _ in range(8))


def invoice_number() -> str:
    return "INV-" + uuid.uuid4().hex[:12].upper()


def transaction_id(prefix: str = "TXN") -> str:
    return f"{prefix}-" + uuid.uuid4().hex[:16].upper()


def slugify(value: str) -> str:
    """Lowercase ASCII words joined by hyphens: 'Algèbre I' -> 'algebre-i'."""
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    value = re.sub(r"[^\w\s-]", "", value.lower())
    return re.sub(r"[-\s_]+", "-", value).strip("-") or "course"
