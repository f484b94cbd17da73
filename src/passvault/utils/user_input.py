import re
import getpass

from passvault.vault.errors import InputError


def ask(prompt: str, default: str = "") -> str:
    """Single line of input; Enter keeps `default`."""
    shown = f"{prompt} [{default}]: " if default else f"{prompt}: "
    val = input(shown).strip()
    return val or default


def ask_required(prompt: str) -> str:
    while True:
        val = input(f"{prompt}: ").strip()
        if val:
            return val
        print("   Value cannot be empty")


def ask_yes_no(prompt: str) -> bool:
    return input(f"{prompt} (y/n): ").strip().lower() == "y"


def ask_new_master_password(prompt: str = "Enter new master password") -> str:
    """
    Read a new master password twice, prompting again on mismatch.
    """
    while True:
        pw = getpass.getpass(f"{prompt}: ")
        if not pw:
            print("  Master password cannot be empty")
            continue
        if getpass.getpass("Confirm master password: ") == pw:
            return pw
        print("  Passwords do not match, try again")


def ask_master_password(prompt: str = "Master password") -> str:
    return getpass.getpass(f"{prompt}: ")


def ask_index(prompt: str, count: int) -> int | str | None:
    """
    Read a selection for a list of `count` items.

    Returns:
        The index, "all" for 'a'/'all', or None for 'q'.

    Raises:
        InputError: Anything else, including an out of range index.
    """
    val = input(prompt).strip().lower()
    if val == "q":
        return None
    if val in ("a", "all"):
        return "all"
    if re.fullmatch(r"[0-9]+", val):
        index = int(val)
        if index < count:
            return index
        raise InputError(f"Invalid index {index}, choose 0 - {count - 1}")
    raise InputError(f"Invalid selection '{val}'")


def get_note_from_user(prompt: str = "Enter note:") -> str:
    """
    Prompt the user to enter a multi-line note.

    Input continues until the user presses Enter three times consecutively.
    Pressing Enter once immediately will result in an empty note.
    """
    print(f"{prompt} (Enter 3x to end or 1x to leave empty)")
    note = ""
    consecutive_empty = 0

    while True:
        line = input()
        if line == "":
            consecutive_empty += 1
            if consecutive_empty >= 3 or (consecutive_empty == 1 and note == ""):
                break
        else:
            consecutive_empty = 0
            note += line + "\n"

    return note.strip()
