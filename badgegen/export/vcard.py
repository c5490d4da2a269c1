"""vCard payload embedded in badge QR codes."""

import re
import unicodedata
from typing import Optional

from badgegen.models.fields import FieldResolver, Record


def strip_accents(text: str) -> str:
    """Drop combining marks so 'Élodie' becomes 'Elodie'."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def capitalize_words(text: str) -> str:
    """Lower-case the text, then upper-case the first letter of every word."""
    if not text:
        return ""
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), text.lower())


def build_vcard(record: Record, resolver: Optional[FieldResolver] = None) -> str:
    """Build a vCard 3.0 contact from the participant's name, phone and email.

    Name and email lose their diacritics for scanner compatibility, the phone
    is kept as typed. Lines with no data are left out.
    """
    resolver = resolver or FieldResolver()
    last = strip_accents(resolver.resolve(record, "nom").upper()).strip()
    first = strip_accents(capitalize_words(resolver.resolve(record, "prenom"))).strip()
    tel = resolver.resolve(record, "tel").strip()
    email = strip_accents(resolver.resolve(record, "email").strip())

    lines = ["BEGIN:VCARD", "VERSION:3.0"]
    if last or first:
        lines.append(f"N:{last};{first}")
        lines.append("FN:" + " ".join(part for part in (first, last) if part))
    if tel:
        lines.append(f"TEL;CELL:{tel}")
    if email:
        lines.append(f"EMAIL:{email}")
    lines.append("END:VCARD")
    return unicodedata.normalize("NFC", "\n".join(lines))
