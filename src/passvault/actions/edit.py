import getpass

from passvault.utils import output
from passvault.utils.password_generator import ask_password
from passvault.utils.totp_utils import compute
from passvault.utils.user_input import ask, ask_yes_no, get_note_from_user
from passvault.vault.entities import Credential, PaymentCard, Note, Totp, Expiry
from .add import ask_address
from .match_resolver import MatchCapabilities, resolve_matches
from .vaults import main_vault, totp_vault


def edit_credential(vault, cred: Credential) -> str:
    if cred.error is not None:
        return f"Cannot edit {cred}: {cred.error}"
    print(f"Editing {cred} (Enter keeps the current value)")
    cred.service = ask("Service", cred.service)
    cred.username = ask("Username", cred.username)
    if ask_yes_no("Change password?"):
        cred.password = ask_password("New password", generate=ask_yes_no("Generate one?"))
    vault.update_credential(cred)
    return f"Updated {cred}"


def edit_card(vault, card: PaymentCard) -> str:
    if card.error is not None:
        return f"Cannot edit card {card.name}: {card.error}"
    print(f"Editing {card.name} (Enter keeps the current value)")
    card.name = ask("Card name", card.name)
    card.name_on_card = ask("Name on card", card.name_on_card)
    card.number = ask("Card number", card.number).replace(" ", "")
    card.cvv = getpass.getpass("CVV (Enter keeps current): ").strip() or card.cvv
    card.expiry = Expiry.parse(ask("Expiry (MM/YYYY)", str(card.expiry)))
    card.color = ask("Color", card.color or "") or None
    if ask_yes_no("Change billing address?"):
        card.billing_address = ask_address()
    vault.update_payment(card)
    return f"Updated payment card {card.name}"


def edit_note(vault, note: Note) -> str:
    if note.error is not None:
        return f"Cannot edit note {note.id}: {note.error}"
    output.show_note(note)
    note.title = ask("Title", note.title)
    if ask_yes_no("Replace content?"):
        note.content = get_note_from_user()
    vault.update_note(note)
    return f"Updated note {note.title}"


def edit_totp(vault, totp: Totp) -> str:
    print(f"Editing {totp.label} (Enter keeps the current value)")
    totp.label = ask("Label", totp.label)
    totp.issuer = ask("Issuer", totp.issuer)
    secret = getpass.getpass("Secret (Enter keeps current): ").replace(" ", "")
    if secret:
        totp.secret = secret
        totp.encoding = "base32"
    # fail before saving if the secret or algorithm is unusable
    compute(totp)
    vault.update_totp(totp)
    return f"Updated authenticator {totp.label}"


def run(args, keychain) -> str | None:
    if args.payments:
        vault = main_vault(keychain)
        items, render, edit = vault.find_payments(), output.show_payment_cards, edit_card
    elif args.notes:
        vault = main_vault(keychain)
        items, render, edit = vault.find_notes(), output.show_notes, edit_note
        if args.pattern:
            items = [n for n in items if args.pattern.lower() in n.title.lower()]
    elif args.otp:
        vault = totp_vault(keychain)
        items, render, edit = vault.find_totp(args.pattern), output.show_totps, edit_totp
    else:
        vault = main_vault(keychain)
        items, render, edit = vault.grep(args.pattern), output.show_credentials, edit_credential

    return resolve_matches(items, MatchCapabilities(
        render=render,
        act_on_single=lambda item: edit(vault, item),
        act_on_indexed=lambda items, i: edit(vault, items[i]),
    ))
