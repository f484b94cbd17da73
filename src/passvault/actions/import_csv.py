from passvault.utils import import_export
from .vaults import main_vault


def run(args, keychain) -> str:
    """Import a CSV file. The whole file is parsed before anything is saved."""
    if args.payments:
        cards = import_export.import_payments(args.file_path)
        vault = main_vault(keychain)
        count = sum(vault.save_payment(card) for card in cards)
        return f"Imported {count} payment cards"

    if args.notes:
        notes = import_export.import_notes(args.file_path)
        vault = main_vault(keychain)
        count = sum(vault.save_note(note) for note in notes)
        return f"Imported {count} notes"

    creds = import_export.import_credentials(args.file_path)
    count = main_vault(keychain).save_credentials(creds)
    return f"Imported {count} credentials"
