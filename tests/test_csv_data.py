"""Tests for participant CSV loading and saving."""
import pytest

from badgegen.models.csv_data import CSVData


def test_comma_csv(csv_data):
    assert csv_data.headers == ["Prénom", "Nom", "Email", "Téléphone"]
    assert csv_data.row_count == 3
    assert csv_data.get_value(1, "Prénom") == "Éric"
    assert csv_data.get_value(1, "Email") == ""


def test_semicolon_delimiter_and_trimmed_headers():
    data = CSVData()
    data.load_text(" Prénom ; Nom ;Email\nAwa;Ndong;awa@example.com\n")
    assert data.headers == ["Prénom", "Nom", "Email"]
    assert data.get_row(0)["Nom"] == "Ndong"


def test_tab_delimiter():
    data = CSVData()
    data.load_text("Prénom\tNom\nAwa\tNdong\nLise\tObame\n")
    assert data.row_count == 2
    assert data.get_value(1, "Nom") == "Obame"


def test_bom_and_blank_lines_are_ignored():
    data = CSVData()
    data.load_text("\ufeffNom,Email\n\nMba,m@example.com\n,\n\nObame,\n")
    assert data.headers == ["Nom", "Email"]
    assert [r["Nom"] for r in data.rows] == ["Mba", "Obame"]


def test_short_rows_are_padded():
    data = CSVData()
    data.load_text("a,b,c\n1\n")
    assert data.get_row(0) == {"a": "1", "b": "", "c": ""}


def test_empty_text():
    data = CSVData()
    data.load_text("")
    assert not data.is_loaded
    assert data.row_count == 0


def test_out_of_range_row_is_empty():
    data = CSVData()
    assert data.get_row(5) == {}
    assert data.get_value(-1, "x") == ""


def test_load_bytes_falls_back_to_latin1():
    data = CSVData()
    data.load_bytes("Nom\nNgoué\n".encode("latin-1"))
    assert data.get_value(0, "Nom") == "Ngoué"


def test_load_utf8_with_bom_from_file(tmp_path):
    path = tmp_path / "in.csv"
    path.write_bytes("Nom;Prénom\nMba;Éric\n".encode("utf-8-sig"))
    data = CSVData()
    data.load(str(path))
    assert data.headers == ["Nom", "Prénom"]
    assert data.file_path == str(path)


def test_to_text_quotes_everything(csv_data):
    text = csv_data.to_text()
    assert text.splitlines()[0] == '"Prénom","Nom","Email","Téléphone"'
    assert '"Éric","Mba","","+241 2"' in text


def test_save_writes_bom_and_reloads(csv_data, tmp_path):
    path = tmp_path / "out.csv"
    csv_data.save(str(path))
    raw = path.read_bytes()
    assert raw.startswith(b"\xef\xbb\xbf")
    again = CSVData()
    again.load(str(path))
    assert again.headers == csv_data.headers
    assert again.rows == csv_data.rows


@pytest.mark.parametrize("text", ["Nom\n", "Nom\n\n\n"])
def test_header_only(text):
    data = CSVData()
    data.load_text(text)
    assert data.is_loaded
    assert data.row_count == 0


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------

def test_set_value(csv_data):
    csv_data.set_value(1, "Email", "eric@example.com")
    assert csv_data.get_value(1, "Email") == "eric@example.com"


def test_set_value_rejects_bad_row_and_column(csv_data):
    with pytest.raises(IndexError):
        csv_data.set_value(3, "Nom", "x")
    with pytest.raises(KeyError):
        csv_data.set_value(0, "Fax", "x")


def test_add_row_fills_every_header(csv_data):
    idx = csv_data.add_row({"Prénom": "Paul", "Nom": "Nze"})
    assert idx == 3
    assert csv_data.get_row(3) == {"Prénom": "Paul", "Nom": "Nze", "Email": "", "Téléphone": ""}


def test_add_row_needs_headers():
    with pytest.raises(ValueError):
        CSVData().add_row()


def test_add_row_rejects_unknown_column(csv_data):
    with pytest.raises(KeyError):
        csv_data.add_row({"Fax": "1"})
    assert csv_data.row_count == 3


def test_delete_row(csv_data):
    removed = csv_data.delete_row(0)
    assert removed["Prénom"] == "Awa"
    assert [r["Prénom"] for r in csv_data.rows] == ["Éric", "Lise"]
    with pytest.raises(IndexError):
        csv_data.delete_row(2)


def test_edits_are_saved(csv_data, tmp_path):
    csv_data.set_value(0, "Nom", "Ndong-Mba")
    csv_data.add_row({"Prénom": "Paul"})
    path = tmp_path / "out.csv"
    csv_data.save(str(path))

    reloaded = CSVData()
    reloaded.load(str(path))
    assert reloaded.get_value(0, "Nom") == "Ndong-Mba"
    assert reloaded.get_value(3, "Prénom") == "Paul"


def test_find_duplicates_by_email_and_name():
    data = CSVData()
    data.load_text(
        "Prénom,Nom,Email\n"
        "Awa,Ndong,awa@example.com\n"
        "Paul,Nze, AWA@example.com \n"
        "awa,NDONG,\n"
        "Lise,Obame,\n"
        ",,\n"
    )
    dups = data.find_duplicates()
    assert dups["email"] == {"awa@example.com": [0, 1]}
    assert dups["name"] == {"awa ndong": [0, 2]}


def test_find_duplicates_none(csv_data):
    assert csv_data.find_duplicates() == {"email": {}, "name": {}}
