"""Field resolution: map logical badge fields to values in arbitrary CSV rows."""

import re
from typing import Dict, List, Mapping, Optional

Record = Mapping[str, Optional[str]]

# Known header spellings for each logical field, most specific first
COLUMN_ALIASES: Dict[str, List[str]] = {
    "prenom": ["Prénoms", "Prénom", "prenom", "First Name", "first_name", "firstname", "FirstName"],
    "nom": ["Noms", "Nom", "nom", "Last Name", "last_name", "lastname", "LastName"],
    "nomComplet": ["Nom complet", "Full Name", "fullname", "Name", "name"],
    "email": ["Mail", "Email", "email", "E-mail", "e-mail", "Quel est votre email ?", "Adresse email"],
    "tel": ["Tel", "Téléphone", "Telephone", "Phone", "phone",
            "Quel est votre numéro de téléphone ?", "phone_number", "PhoneNumber"],
    "role": ["Rôle", "Role", "role", "Fonction", "Function", "fonction", "Statut actuel",
             "Title", "Position", "Job Title"],
    "pole": ["Pole", "Pôle", "pole", "Organisation", "Organization", "organisation", "organization",
             "What company or organization are you a part of, if any?",
             "Domaine d'activité / d'étude", "Company", "Entreprise"],
}

# Logical fields offered in the zone configuration panel
BADGE_FIELDS = {
    "prenom": "Prénom",
    "nom": "Nom",
    "email": "Email",
    "tel": "Téléphone",
    "role": "Rôle",
    "pole": "Pôle/Organisation",
}


def _value(record: Record, column: str) -> str:
    val = record.get(column)
    return val if val else ""


class FieldResolver:
    """Resolves a logical field name against one participant record.

    Lookup order: a manual column override, then the known aliases, then a
    header spelled exactly like the field. ``prenom`` and ``nom`` fall back to
    splitting a full-name column when no first or last name column has data.
    Resolution never raises; a miss is an empty string.
    """

    def __init__(self, overrides: Optional[Dict[str, str]] = None):
        self.overrides: Dict[str, str] = dict(overrides or {})

    def set_override(self, field: str, column: Optional[str]) -> None:
        if column:
            self.overrides[field] = column
        else:
            self.overrides.pop(field, None)

    def resolve(self, record: Record, field: str) -> str:
        if not record or not field:
            return ""

        column = self.overrides.get(field)
        if column and _value(record, column):
            return _value(record, column)

        for column in COLUMN_ALIASES.get(field, []):
            if _value(record, column):
                return _value(record, column)

        if _value(record, field):
            return _value(record, field)

        if field in ("prenom", "nom"):
            return self._split_full_name(record, field)
        return ""

    def _split_full_name(self, record: Record, field: str) -> str:
        for column in COLUMN_ALIASES["prenom"] + COLUMN_ALIASES["nom"]:
            if _value(record, column):
                return ""
        for column in COLUMN_ALIASES["nomComplet"]:
            parts = _value(record, column).split()
            if parts:
                if field == "prenom":
                    return " ".join(parts[:-1])
                return parts[-1]
        return ""


def detect_mappings(headers: List[str]) -> Dict[str, str]:
    """Guess which header feeds each logical field, for display and overrides."""
    mappings = {}
    for field, aliases in COLUMN_ALIASES.items():
        for header in headers:
            if header in aliases:
                mappings[field] = header
                break
    return mappings


def display_name(record: Record, resolver: Optional[FieldResolver] = None, index: int = 0) -> str:
    """Participant name for pickers and file names."""
    resolver = resolver or FieldResolver()
    name = f"{resolver.resolve(record, 'prenom')} {resolver.resolve(record, 'nom')}".strip()
    return name or f"Participant {index + 1}"


def badge_filename(record: Record, resolver: Optional[FieldResolver] = None, index: int = 0) -> str:
    name = re.sub(r"\s+", "_", display_name(record, resolver, index))
    name = re.sub(r"[^\w.-]", "", name)
    return f"Badge_{name or index + 1}.png"
