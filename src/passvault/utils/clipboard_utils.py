"""
Clipboard handling for secrets: copy, paste and timed clearing.
"""
import secrets
import string
import threading
import time

import pyperclip

from passvault.config.config_vault import *

# auto-clear threads started by this process
_pending_clears: list[threading.Thread] = []

_FLOOD_CHARS = string.ascii_letters + string.digits + "!@#$%^&*"


def copy_to_clipboard(text: str, timeout: int | None = None, prompt: bool = False) -> bool:
    """
    Put a secret on the clipboard and schedule its removal.

    Args:
        text: Secret to copy.
        timeout: Seconds until the clipboard is cleared. Defaults to
            CLIPBOARD_TIMEOUT; 0 or less keeps the secret there.
        prompt: Ask before copying.

    Returns:
        True if the text was copied.

    Security Notes:
        - The clear only runs if the clipboard still holds this secret,
          so anything the user copied in the meantime is left alone.
        - Call wait_for_clipboard_clear() before the process exits.
    """
    if not text:
        print(" Nothing to copy.")
        return False

    if prompt and input(" Copy to clipboard? (y/n): ").strip().lower() != "y":
        return False

    pyperclip.copy(text)

    if timeout is None:
        timeout = CLIPBOARD_TIMEOUT
    if timeout <= 0:
        print(" Copied!", flush=True)
        return True
    print(f" Copied! (auto-clears in {timeout}s)", flush=True)

    thread = threading.Thread(target=_clear_after, args=(text, timeout), daemon=True)
    thread.start()
    _pending_clears.append(thread)
    return True


def _clear_after(secret: str, delay: float) -> None:
    time.sleep(delay)
    try:
        if pyperclip.paste() == secret:
            clear_clipboard_history()
    except pyperclip.PyperclipException:
        # clipboard backend went away while waiting
        pass


def paste_from_clipboard() -> str:
    return pyperclip.paste() or ""


def clear_clipboard_history(clipboard_length: int = CLIPBOARD_LENGTH) -> None:
    """
    Empty the clipboard, then push random filler entries through it so
    clipboard managers with a history drop the secret. The flooding is
    skipped when WIPE_CLIPBOARD is off.
    """
    pyperclip.copy("")
    if not WIPE_CLIPBOARD:
        return

    for i in range(clipboard_length):
        filler = "".join(secrets.choice(_FLOOD_CHARS) for _ in range(40))
        pyperclip.copy(f"[{i:03d}] {filler} - {secrets.token_hex(EID_LEN)}")
        time.sleep(0.07)  # throttled managers skip faster updates

    pyperclip.copy("Clipboard history cleared")


def wait_for_clipboard_clear() -> None:
    """
    Block until pending auto-clears have run, so a short-lived command
    does not exit with a secret left on the clipboard.
    """
    if not _pending_clears:
        return
    print(" Waiting to clear the clipboard (Ctrl+C to exit now)...", flush=True)
    while _pending_clears:
        _pending_clears.pop().join()
