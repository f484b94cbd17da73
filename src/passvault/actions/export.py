import pendulum

from passvault.config.config_vault import DT_FORMAT_EXPORT
from passvault.utils import import_export
from passvault.utils.user_input import ask_yes_no
from .vaults import main_vault


def run(args, keychain) -> str:
    if args.payments:
        noun, export = "payment cards", import_export.export_payments
    elif args.notes:
        noun, export = "notes", import_export.export_notes
    else:
        noun, export = "credentials", import_export.export_credentials

    file_path = args.file_path
    if not file_path:
        timestamp = pendulum.now().format(DT_FORMAT_EXPORT)
        file_path = f"passvault_{noun.replace(' ', '_')}_{timestamp}.csv"

    print(" Exported files contain secrets in plaintext.")
    if not ask_yes_no(f" Write {file_path}?"):
        return "Export cancelled"

    vault = main_vault(keychain)
    if args.payments:
        items = vault.find_payments()
    elif args.notes:
        items = vault.find_notes()
    else:
        items = vault.grep(None)

    skipped = sum(1 for item in items if item.error is not None)
    count = export(file_path, [item for item in items if item.error is None])
    message = f"Exported {count} {noun} to {file_path}"
    if skipped:
        message += f" ({skipped} unreadable entries skipped)"
    return message
