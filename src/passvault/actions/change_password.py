from passvault.utils.keychain import MASTER_SLOT, TOTP_SLOT
from passvault.utils.user_input import ask_master_password, ask_new_master_password, ask_yes_no
from passvault.vault.remote_vault import RemoteVault
from passvault.vault.rotation import rotate
from .vaults import main_vault, totp_vault

DISCLOSURE_WARNING = """
 The remote service re-encrypts your data itself. To do so it receives
 both the old and the new encryption key for the duration of the request.
 The service could decrypt your data while it holds them.
"""


def run(args, keychain) -> str:
    old_password = ask_master_password("Current master password")
    if args.otp:
        vault, slot = totp_vault(None, old_password), TOTP_SLOT
    else:
        vault, slot = main_vault(None, old_password), MASTER_SLOT
    vault.unlock()

    new_password = ask_new_master_password()

    allow = False
    if isinstance(vault, RemoteVault):
        print(DISCLOSURE_WARNING)
        allow = ask_yes_no(" Send both keys to the service?")
        if not allow:
            return "Master password not changed"

    count = rotate(vault, old_password, new_password, keychain=keychain,
                   keychain_slot=slot, allow_key_disclosure=allow)
    return f"Master password changed. {count} entries re-encrypted."
