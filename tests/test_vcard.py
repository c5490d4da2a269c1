"""Tests for the vCard QR payload."""
from badgegen.export.vcard import build_vcard, capitalize_words, strip_accents
from badgegen.models.fields import FieldResolver


def test_no_email_line_when_email_empty():
    record = {"Prénom": "Awa", "Nom": "Ndong", "Téléphone": "+241 77 00 00 00", "Email": ""}
    lines = build_vcard(record).split("\n")
    assert "N:NDONG;Awa" in lines
    assert "FN:Awa NDONG" in lines
    assert "TEL;CELL:+241 77 00 00 00" in lines
    assert not any(line.startswith("EMAIL") for line in lines)


def test_full_card_layout():
    record = {"prenom": "éric", "nom": "mbà", "tel": "1", "email": "Éric@Example.com"}
    assert build_vcard(record) == "\n".join([
        "BEGIN:VCARD",
        "VERSION:3.0",
        "N:MBA;Eric",
        "FN:Eric MBA",
        "TEL;CELL:1",
        "EMAIL:Eric@Example.com",
        "END:VCARD",
    ])


def test_empty_record_still_produces_a_card():
    assert build_vcard({}) == "BEGIN:VCARD\nVERSION:3.0\nEND:VCARD"


def test_only_last_name():
    lines = build_vcard({"Nom": "Obame"}).split("\n")
    assert "N:OBAME;" in lines
    assert "FN:OBAME" in lines


def test_uses_resolver_overrides():
    resolver = FieldResolver({"email": "Courriel"})
    card = build_vcard({"Prénom": "Lise", "Courriel": "lise@example.com"}, resolver)
    assert "EMAIL:lise@example.com" in card


def test_strip_accents():
    assert strip_accents("Élodie Ngoué") == "Elodie Ngoue"
    assert strip_accents("") == ""


def test_capitalize_words():
    assert capitalize_words("JEAN-BAPTISTE de la fontaine") == "Jean-Baptiste De La Fontaine"
    assert capitalize_words("") == ""
