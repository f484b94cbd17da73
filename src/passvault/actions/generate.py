from passvault.utils.clipboard_utils import copy_to_clipboard
from passvault.utils.password_generator import generate_password


def run(args, keychain) -> str:
    pw = generate_password()
    copy_to_clipboard(pw)
    return pw
