"""
passvault - command line credential manager
"""
# ==============================================================
# Standard imports
# ==============================================================
import sys
import logging
import argparse

# ==============================================================
# Other imports
# ==============================================================
from passvault.config.config_vault import VERSION
from passvault.config.logging_config import setup_logging, log_event
from passvault.utils.clipboard_utils import wait_for_clipboard_clear
from passvault.utils.keychain import Keychain
from passvault.vault.errors import PassvaultError
from passvault.actions import (
    add, show, delete, edit, export, import_csv,
    lock, unlock, init, generate, change_password,
)

logger = logging.getLogger(__name__)


def _item_flags(parser: argparse.ArgumentParser, otp: bool = True) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("-p", "--payments", action="store_true", help="Payment cards")
    group.add_argument("-n", "--notes", action="store_true", help="Secure notes")
    if otp:
        group.add_argument("-o", "--otp", action="store_true", help="TOTP authenticators")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="passvault",
        description="Password manager with local and remote encrypted vaults",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-d", "--debug", action="store_true", help="Verbose logging to error.log")
    sub = parser.add_subparsers(dest="command", required=True)

    # add
    s = sub.add_parser("add", help="Add credentials, a payment card, a note or an authenticator")
    _item_flags(s)
    source = s.add_mutually_exclusive_group()
    source.add_argument("-g", "--generate", action="store_true", help="Generate the password")
    source.add_argument("-l", "--clipboard", action="store_true", help="Take the password from the clipboard")
    s.set_defaults(func=add.run)

    # show
    s = sub.add_parser("show", help="Search and show entries; copies the secret to the clipboard")
    _item_flags(s)
    s.add_argument("-v", "--verbose", action="store_true", help="Show passwords in the listing")
    s.add_argument("pattern", nargs="?", help="Substring of service or username (case-insensitive)")
    s.set_defaults(func=show.run)

    # delete
    s = sub.add_parser("delete", help="Delete matching entries")
    _item_flags(s)
    s.add_argument("pattern", nargs="?")
    s.set_defaults(func=delete.run)

    # edit
    s = sub.add_parser("edit", help="Edit an entry")
    _item_flags(s)
    s.add_argument("pattern", nargs="?")
    s.set_defaults(func=edit.run)

    # csv
    s = sub.add_parser("csv", help="Import entries from a CSV file")
    _item_flags(s, otp=False)
    s.add_argument("file_path")
    s.set_defaults(func=import_csv.run)

    # export
    s = sub.add_parser("export", help="Export entries to a plaintext CSV file")
    _item_flags(s, otp=False)
    s.add_argument("file_path", nargs="?", help="Defaults to a timestamped file name")
    s.set_defaults(func=export.run)

    # lock / unlock
    s = sub.add_parser("lock", help="Remove cached master passwords from the OS keychain")
    s.set_defaults(func=lock.run)

    s = sub.add_parser("unlock", help="Cache the master password in the OS keychain")
    s.add_argument("-o", "--otp", action="store_true", help="Unlock the TOTP vault")
    s.set_defaults(func=unlock.run)

    # setup and maintenance
    s = sub.add_parser("init", help="Configure and create the vaults")
    s.set_defaults(func=init.run)

    s = sub.add_parser("password", help="Generate a password and copy it to the clipboard")
    s.set_defaults(func=generate.run)

    s = sub.add_parser("change-password", help="Change the master password and re-encrypt everything")
    s.add_argument("-o", "--otp", action="store_true", help="Change the TOTP vault password")
    s.set_defaults(func=change_password.run)

    return parser


# ==============================================================
# MAIN
# ==============================================================
def main(argv=None, keychain: Keychain | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(debug=args.debug)

    try:
        message = args.func(args, keychain or Keychain())
    except PassvaultError as e:
        log_event(logger, f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (KeyboardInterrupt, EOFError):
        print("\nCancelled.", file=sys.stderr)
        return 1

    if message:
        print(message)
    try:
        wait_for_clipboard_clear()
    except KeyboardInterrupt:
        print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
