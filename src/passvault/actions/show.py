from passvault.utils import output
from passvault.utils.clipboard_utils import copy_to_clipboard
from passvault.utils.totp_utils import compute
from passvault.vault.entities import Credential, PaymentCard, Note, Totp
from .match_resolver import MatchCapabilities, resolve_matches
from .vaults import main_vault, totp_vault


def show_credential(cred: Credential, verbose: bool) -> str:
    if cred.error is not None:
        return f"Cannot decrypt password for {cred}: {cred.error}"
    output.show_credential(cred, verbose)
    copy_to_clipboard(cred.password)
    return f"Password for {cred.service} copied to clipboard"


def show_card(card: PaymentCard) -> str:
    if card.error is not None:
        return f"Cannot decrypt card {card.name}: {card.error}"
    output.show_payment_card(card)
    copy_to_clipboard(card.number)
    return f"Card number of {card.name} copied to clipboard"


def show_note(note: Note) -> str | None:
    if note.error is not None:
        return f"Cannot decrypt note {note.id}: {note.error}"
    output.show_note(note)
    return None


def show_totp(totp: Totp) -> str:
    code = compute(totp)
    copy_to_clipboard(code.code)
    return f"{totp.label}: {code} (valid for {code.valid_for_seconds}s)"


def run(args, keychain) -> str | None:
    if args.payments:
        cards = main_vault(keychain).find_payments()
        return resolve_matches(cards, MatchCapabilities(
            render=output.show_payment_cards,
            act_on_single=show_card,
            act_on_indexed=lambda items, i: show_card(items[i]),
        ))

    if args.notes:
        notes = main_vault(keychain).find_notes()
        if args.pattern:
            needle = args.pattern.lower()
            notes = [n for n in notes if needle in n.title.lower()]
        return resolve_matches(notes, MatchCapabilities(
            render=output.show_notes,
            act_on_single=show_note,
            act_on_indexed=lambda items, i: show_note(items[i]),
        ))

    if args.otp:
        totps = totp_vault(keychain).find_totp(args.pattern)
        return resolve_matches(totps, MatchCapabilities(
            render=output.show_totps,
            act_on_single=show_totp,
            act_on_indexed=lambda items, i: show_totp(items[i]),
        ))

    creds = main_vault(keychain).grep(args.pattern)

    def show_all(items):
        output.show_credentials(items, verbose=True)
        return None

    return resolve_matches(creds, MatchCapabilities(
        render=lambda items: output.show_credentials(items, args.verbose),
        act_on_single=lambda c: show_credential(c, args.verbose),
        act_on_indexed=lambda items, i: show_credential(items[i], args.verbose),
        act_on_all=show_all if args.verbose else None,
    ))
