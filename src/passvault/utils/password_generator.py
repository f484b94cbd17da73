import secrets
import getpass
from passvault.config.config_vault import *
from .password_utils import password_strength, warn_if_weak
from .clipboard_utils import paste_from_clipboard
from passvault.vault.errors import InputError


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    """
    Generate a cryptographically secure random password.

    Each character is picked by first drawing a character class
    (lower, upper, digit, symbol) at random and then a character from that
    class. Draws that miss a class are rejected and repeated, so the result
    always passes `validate_password`.

    Args:
        length: Total length. Must be at least the number of classes.

    Returns:
        The generated password.
    """
    if length < len(PASSWORD_CLASSES):
        raise ValueError(f"Password length {length} is too short!")

    while True:
        chars = []
        for _ in range(length):
            pool = PASSWORD_CLASSES[secrets.randbelow(len(PASSWORD_CLASSES))]
            chars.append(secrets.choice(pool))
        pw = ''.join(chars)
        if validate_password(pw, min_length=length):
            return pw


def validate_password(pw: str, min_length: int = PASSWORD_LENGTH) -> bool:
    """True when `pw` is long enough and contains every character class."""
    if not pw or len(pw) < min_length:
        return False
    return all(any(c in pool for c in pw) for pool in PASSWORD_CLASSES)


def ask_password(prompt: str = "Password", generate: bool = False,
                 from_clipboard: bool = False) -> str:
    """
    Get a password for a new or edited credential.

    With `generate` a new password is created. With `from_clipboard` the
    clipboard contents are used and must satisfy the password policy.
    Otherwise the user types it twice, re-prompting on mismatch, and gets
    a zxcvbn warning when it looks weak.

    Raises:
        InputError: Clipboard password fails the policy.
    """
    if generate:
        return generate_password()

    if from_clipboard:
        pw = paste_from_clipboard().strip()
        if not validate_password(pw):
            raise InputError(
                f"Clipboard password must be at least {PASSWORD_LENGTH} characters "
                f"and contain lower case, upper case, digits and symbols"
            )
        return pw

    while True:
        pw = getpass.getpass(f"{prompt}: ")
        if not pw:
            print("  Password cannot be empty")
            continue
        if getpass.getpass("Confirm password: ") != pw:
            print("  Passwords do not match, try again")
            continue
        warn_if_weak(pw, password_strength(pw))
        return pw
