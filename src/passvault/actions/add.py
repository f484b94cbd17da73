import getpass

from passvault.utils.clipboard_utils import copy_to_clipboard
from passvault.utils.password_generator import ask_password
from passvault.utils.totp_utils import compute, parse_otpauth_uri
from passvault.utils.user_input import ask, ask_required, ask_yes_no, get_note_from_user
from passvault.vault.entities import Credential, PaymentCard, Note, Totp, Expiry, Address
from .vaults import main_vault, totp_vault


def ask_address() -> Address:
    street = ask_required("Street")
    zip_code = ask_required("Zip code")
    city = ask_required("City")
    state = ask("State (optional)") or None
    country = ask_required("Country")
    return Address(street=street, city=city, zip=zip_code, country=country, state=state)


def ask_payment_card() -> PaymentCard:
    name = ask_required("Card name (e.g. 'Visa Debit')")
    name_on_card = ask_required("Name on card")
    number = ask_required("Card number").replace(" ", "")
    cvv = getpass.getpass("CVV: ").strip()
    expiry = Expiry.parse(ask_required("Expiry (MM/YYYY)"))
    color = ask("Color (optional)") or None
    address = ask_address() if ask_yes_no("Add a billing address?") else None
    return PaymentCard(name=name, name_on_card=name_on_card, number=number, cvv=cvv,
                       expiry=expiry, color=color, billing_address=address)


def ask_totp() -> Totp:
    uri = ask("otpauth:// URI (Enter to type the fields)")
    if uri:
        return parse_otpauth_uri(uri)
    return Totp(
        label=ask_required("Label (e.g. alice@example.com)"),
        issuer=ask("Issuer"),
        secret=getpass.getpass("Secret (base32): ").replace(" ", ""),
        algorithm=ask("Algorithm", "SHA1").upper(),
        period_seconds=int(ask("Period seconds", "30")),
        digits=int(ask("Digits", "6")),
    )


def run(args, keychain) -> str:
    if args.payments:
        card = ask_payment_card()
        main_vault(keychain).save_payment(card)
        return f"Saved payment card {card.name}"

    if args.notes:
        note = Note(title=ask_required("Title"), content=get_note_from_user())
        main_vault(keychain).save_note(note)
        return f"Saved note {note.title}"

    if args.otp:
        totp = ask_totp()
        # fail before saving if the secret or algorithm is unusable
        compute(totp)
        totp_vault(keychain).save_totp(totp)
        return f"Saved authenticator {totp.label}"

    vault = main_vault(keychain)
    service = ask_required("Service (e.g. github.com)")
    username = ask("Username")
    password = ask_password("Password", generate=args.generate, from_clipboard=args.clipboard)
    if args.generate:
        copy_to_clipboard(password)

    vault.save_one_credential(Credential(service=service, username=username, password=password))
    return f"Saved credentials for {service}"
