from passvault.utils import output
from passvault.utils.user_input import ask_yes_no
from passvault.vault.entities import Credential
from .match_resolver import MatchCapabilities, resolve_matches
from .vaults import main_vault, totp_vault

CANCELLED = "Delete cancelled"


def _delete_each(items, delete, noun: str) -> str:
    if not ask_yes_no(f"Delete all {len(items)} {noun}?"):
        return CANCELLED
    for item in items:
        delete(item.id)
    return f"Deleted {len(items)} {noun}"


def _delete_one(item, label: str, delete) -> str:
    if not ask_yes_no(f"Delete {label}?"):
        return CANCELLED
    delete(item.id)
    return f"Deleted {label}"


def run(args, keychain) -> str | None:
    if args.payments:
        vault = main_vault(keychain)
        one = lambda card: _delete_one(card, f"payment card {card.name}", vault.delete_payment)
        return resolve_matches(vault.find_payments(), MatchCapabilities(
            render=output.show_payment_cards,
            act_on_single=one,
            act_on_indexed=lambda items, i: one(items[i]),
            act_on_all=lambda items: _delete_each(items, vault.delete_payment, "payment cards"),
        ))

    if args.notes:
        vault = main_vault(keychain)
        notes = vault.find_notes()
        if args.pattern:
            needle = args.pattern.lower()
            notes = [n for n in notes if needle in n.title.lower()]
        one = lambda note: _delete_one(note, f"note {note.title}", vault.delete_note)
        return resolve_matches(notes, MatchCapabilities(
            render=output.show_notes,
            act_on_single=one,
            act_on_indexed=lambda items, i: one(items[i]),
            act_on_all=lambda items: _delete_each(items, vault.delete_note, "notes"),
        ))

    if args.otp:
        vault = totp_vault(keychain)
        one = lambda totp: _delete_one(totp, f"authenticator {totp.label}", vault.delete_totp)
        return resolve_matches(vault.find_totp(args.pattern), MatchCapabilities(
            render=output.show_totps,
            act_on_single=one,
            act_on_indexed=lambda items, i: one(items[i]),
            act_on_all=lambda items: _delete_each(items, vault.delete_totp, "authenticators"),
        ))

    vault = main_vault(keychain)
    one = lambda cred: _delete_one(cred, str(cred), vault.delete_credentials)

    def delete_all(items: list[Credential]) -> str:
        if not ask_yes_no(f"Delete all {len(items)} credentials matching '{args.pattern or ''}'?"):
            return CANCELLED
        return f"Deleted {vault.delete_matching(args.pattern or '')} credentials"

    return resolve_matches(vault.grep(args.pattern), MatchCapabilities(
        render=output.show_credentials,
        act_on_single=one,
        act_on_indexed=lambda items, i: one(items[i]),
        act_on_all=delete_all,
    ))
