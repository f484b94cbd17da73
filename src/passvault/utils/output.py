"""
Table rendering for search results.
"""
import pendulum

from passvault.config.config_vault import *
from passvault.vault.entities import Credential, PaymentCard, Note, Totp


def _fit(text: str, width: int) -> str:
    text = text or ""
    return text if len(text) <= width else text[:width-3] + "..."


def _date(iso: str) -> str:
    try:
        return pendulum.parse(iso).in_timezone('local').format(DT_FORMAT)
    except (ValueError, TypeError):
        return iso or ""


def show_credentials(creds: list[Credential], verbose: bool = False) -> None:
    print(SEP_SM)
    print(f" {'#':>3}   {'Service':<{SERVICE_LEN}}  {'Username':<{USERNAME_LEN}}")
    print(SEP_SM)
    for i, cred in enumerate(creds):
        line = f" {i:>3}   {_fit(cred.service, SERVICE_LEN):<{SERVICE_LEN}}  {_fit(cred.username, USERNAME_LEN):<{USERNAME_LEN}}"
        if verbose:
            line += f"  {cred.password}"
        if cred.error is not None:
            line += "  <cannot decrypt>"
        print(line)


def show_credential(cred: Credential, verbose: bool = False) -> None:
    print(SEP_LG)
    print(f" Service:  {cred.service}")
    print(f" Username: {cred.username}")
    if verbose:
        print(f" Password: {cred.password}")
    print(f" Modified: {_date(cred.modified)}")
    print(SEP_LG)


def show_payment_cards(cards: list[PaymentCard]) -> None:
    print(SEP_SM)
    print(f" {'#':>3}   {'Name':<20}  {'Number':<10}  {'Expiry':<8}  Color")
    print(SEP_SM)
    for i, card in enumerate(cards):
        line = (f" {i:>3}   {_fit(card.name, 20):<20}  **** {card.last_four():<5}  "
                f"{str(card.expiry):<8}  {card.color or ''}")
        if card.error is not None:
            line += "  <cannot decrypt>"
        print(line)


def show_payment_card(card: PaymentCard) -> None:
    print(SEP_LG)
    print(f" Name:         {card.name}")
    print(f" Name on card: {card.name_on_card}")
    print(f" Number:       {card.number}")
    print(f" CVV:          {card.cvv}")
    print(f" Expiry:       {card.expiry}")
    print(f" Color:        {card.color or ''}")
    if card.billing_address:
        print(f" Address:      {card.billing_address}")
    print(SEP_LG)


def show_notes(notes: list[Note]) -> None:
    print(SEP_SM)
    print(f" {'#':>3}   Title")
    print(SEP_SM)
    for i, note in enumerate(notes):
        title = "<cannot decrypt>" if note.error is not None else _fit(note.title, 40)
        print(f" {i:>3}   {title}")


def show_note(note: Note) -> None:
    print(SEP_SM)
    print(f" {note.title}")
    print(SEP_SM)
    print(note.content)
    print(SEP_SM)


def show_totps(totps: list[Totp]) -> None:
    print(SEP_SM)
    print(f" {'#':>3}   {'Label':<{SERVICE_LEN}}  Issuer")
    print(SEP_SM)
    for i, totp in enumerate(totps):
        print(f" {i:>3}   {_fit(totp.label, SERVICE_LEN):<{SERVICE_LEN}}  {totp.issuer}")
