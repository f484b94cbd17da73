from passvault.utils.keychain import MASTER_SLOT, TOTP_SLOT
from passvault.utils.user_input import ask_master_password
from .vaults import main_vault, totp_vault


def run(args, keychain) -> str:
    """
    Check the master password and cache it in the OS keychain so later
    commands do not prompt.
    """
    if args.otp:
        password = ask_master_password("TOTP vault master password")
        totp_vault(None, password).unlock()
        keychain.set(TOTP_SLOT, password)
        return "TOTP vault unlocked"

    password = ask_master_password()
    main_vault(None, password).unlock()
    keychain.set(MASTER_SLOT, password)
    return "Vault unlocked"
