"""Participant table: CSV loading, editing and saving."""

import csv
import io
from typing import Dict, List, Optional

from badgegen.models.fields import FieldResolver


class CSVData:
    """Participant rows keyed by their original (trimmed) CSV headers."""

    DELIMITERS = ",;\t"

    def __init__(self):
        self.headers: List[str] = []
        self.rows: List[Dict[str, str]] = []
        self.file_path: str = ""

    def load(self, path: str) -> None:
        """Load CSV with utf-8-sig (handles BOM), fallback to latin-1."""
        with open(path, "rb") as f:
            raw = f.read()
        self.load_bytes(raw)
        self.file_path = path

    def load_bytes(self, raw: bytes) -> None:
        for encoding in ("utf-8-sig", "latin-1"):
            try:
                text = raw.decode(encoding)
            except UnicodeDecodeError:
                continue
            self.load_text(text)
            return
        raise ValueError("Could not decode CSV data")

    def load_text(self, text: str) -> None:
        """Parse CSV text, sniffing the delimiter and skipping blank lines."""
        text = text.lstrip("\ufeff")
        sample = text[:4096]
        try:
            dialect = csv.Sniffer().sniff(sample, delimiters=self.DELIMITERS)
            delimiter = dialect.delimiter
        except csv.Error:
            delimiter = ","

        reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
        records = [r for r in reader if any(cell.strip() for cell in r)]
        if not records:
            self.headers, self.rows = [], []
            return

        self.headers = [h.strip().lstrip("\ufeff") for h in records[0]]
        self.rows = []
        for r in records[1:]:
            cells = list(r) + [""] * (len(self.headers) - len(r))
            self.rows.append({h: cells[i] for i, h in enumerate(self.headers)})

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def get_row(self, row_index: int) -> Dict[str, str]:
        """Row by index; an empty record when out of range."""
        if 0 <= row_index < len(self.rows):
            return self.rows[row_index]
        return {}

    def get_value(self, row_index: int, column: str) -> str:
        return self.get_row(row_index).get(column, "") or ""

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def _check_index(self, row_index: int) -> None:
        if not 0 <= row_index < len(self.rows):
            raise IndexError(f"Row {row_index} out of range (0-{len(self.rows) - 1})")

    def set_value(self, row_index: int, column: str, value: str) -> None:
        self._check_index(row_index)
        if column not in self.headers:
            raise KeyError(column)
        self.rows[row_index][column] = "" if value is None else str(value)

    def add_row(self, values: Optional[Dict[str, str]] = None) -> int:
        """Append a row with every header present; returns its index."""
        if not self.headers:
            raise ValueError("Cannot add a row before any headers are loaded")
        values = values or {}
        unknown = [k for k in values if k not in self.headers]
        if unknown:
            raise KeyError(", ".join(unknown))
        self.rows.append({h: str(values.get(h) or "") for h in self.headers})
        return len(self.rows) - 1

    def delete_row(self, row_index: int) -> Dict[str, str]:
        self._check_index(row_index)
        return self.rows.pop(row_index)

    def find_duplicates(self, resolver: Optional[FieldResolver] = None) -> Dict[str, Dict[str, List[int]]]:
        """Rows sharing an email or a full name (case-insensitive).

        Returns ``{"email": {key: [indices]}, "name": {key: [indices]}}``
        with only the keys seen on two or more rows.
        """
        resolver = resolver or FieldResolver()
        by_email: Dict[str, List[int]] = {}
        by_name: Dict[str, List[int]] = {}
        for i, row in enumerate(self.rows):
            email = resolver.resolve(row, "email").strip().lower()
            if email:
                by_email.setdefault(email, []).append(i)
            name = f"{resolver.resolve(row, 'prenom')} {resolver.resolve(row, 'nom')}".strip().lower()
            if name:
                by_name.setdefault(name, []).append(i)
        return {
            "email": {k: v for k, v in by_email.items() if len(v) > 1},
            "name": {k: v for k, v in by_name.items() if len(v) > 1},
        }

    def to_text(self) -> str:
        """Serialize with every field quoted."""
        buf = io.StringIO(newline="")
        writer = csv.DictWriter(buf, fieldnames=self.headers, quoting=csv.QUOTE_ALL,
                                extrasaction="ignore")
        writer.writeheader()
        writer.writerows(self.rows)
        return buf.getvalue()

    def save(self, path: str) -> None:
        """Write UTF-8 with BOM so spreadsheet apps detect the encoding."""
        with open(path, "w", encoding="utf-8-sig", newline="") as f:
            f.write(self.to_text())
        self.file_path = path

    @property
    def is_loaded(self) -> bool:
        return len(self.headers) > 0
