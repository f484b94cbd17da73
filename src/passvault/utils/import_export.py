import csv
import logging
from pathlib import Path
from typing import Callable, Iterable

from passvault.config.config_vault import *
from passvault.config.logging_config import log_event
from passvault.vault.entities import Credential, PaymentCard, Note, Expiry, Address
from passvault.vault.errors import CsvError, PassvaultError

logger = logging.getLogger(__name__)

CREDENTIAL_COLUMNS = ["service", "username", "password"]
PAYMENT_COLUMNS = ["name", "name_on_card", "number", "cvv", "expiry", "color", "billing_address"]
NOTE_COLUMNS = ["title", "note"]


def _write_rows(path: str | Path, columns: list[str], rows: Iterable[dict]) -> int:
    count = 0
    with open(path, "w", encoding=UTF8, newline="") as f:
        writer = csv.DictWriter(f, fieldnames=columns)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
            count += 1
    return count


def _read_rows(path: str | Path, columns: list[str], build: Callable[[dict], object]) -> list:
    """
    Parse `path` with csv.DictReader and build one entity per row.

    Raises:
        CsvError: Missing file, missing header columns, or a bad row
            (reported with its line number).
    """
    items = []
    try:
        with open(path, "r", encoding=UTF8, newline="") as f:
            reader = csv.DictReader(f)
            missing = [c for c in columns if c not in (reader.fieldnames or [])]
            if missing:
                raise CsvError(f"missing column(s): {', '.join(missing)}", line=1)

            for row in reader:
                if None in row or any(row.get(c) is None for c in columns):
                    raise CsvError("wrong number of columns", line=reader.line_num)
                try:
                    items.append(build(row))
                except (PassvaultError, ValueError, KeyError) as e:
                    raise CsvError(str(e), line=reader.line_num) from e
    except FileNotFoundError as e:
        raise CsvError(f"File not found: {path}") from e
    except csv.Error as e:
        raise CsvError(str(e)) from e
    except CsvError as e:
        log_event(logger, f"CSV import of {path} failed: {e}")
        raise
    return items


# ==============================================================
# Credentials
# ==============================================================
def export_credentials(path: str | Path, creds: Iterable[Credential]) -> int:
    """Write credentials in plaintext. Returns the number of rows."""
    return _write_rows(path, CREDENTIAL_COLUMNS, (
        {"service": c.service, "username": c.username, "password": c.password}
        for c in creds
    ))


def import_credentials(path: str | Path) -> list[Credential]:
    return _read_rows(path, CREDENTIAL_COLUMNS, lambda row: Credential(
        service=row["service"],
        username=row["username"].strip(),
        password=row["password"],
    ))


# ==============================================================
# Payment cards
# ==============================================================
def export_payments(path: str | Path, cards: Iterable[PaymentCard]) -> int:
    return _write_rows(path, PAYMENT_COLUMNS, (
        {
            "name": card.name,
            "name_on_card": card.name_on_card,
            "number": card.number,
            "cvv": card.cvv,
            "expiry": str(card.expiry),
            "color": card.color or "",
            "billing_address": str(card.billing_address) if card.billing_address else "",
        }
        for card in cards
    ))


def import_payments(path: str | Path) -> list[PaymentCard]:
    return _read_rows(path, PAYMENT_COLUMNS, lambda row: PaymentCard(
        name=row["name"].strip(),
        name_on_card=row["name_on_card"].strip(),
        number=row["number"].replace(" ", ""),
        cvv=row["cvv"].strip(),
        expiry=Expiry.parse(row["expiry"]),
        color=row["color"].strip() or None,
        billing_address=Address.parse(row["billing_address"]) if row["billing_address"].strip() else None,
    ))


# ==============================================================
# Notes
# ==============================================================
def export_notes(path: str | Path, notes: Iterable[Note]) -> int:
    return _write_rows(path, NOTE_COLUMNS, (
        {"title": n.title, "note": n.content} for n in notes
    ))


def import_notes(path: str | Path) -> list[Note]:
    return _read_rows(path, NOTE_COLUMNS, lambda row: Note(
        title=row["title"].strip(),
        content=row["note"],
    ))
