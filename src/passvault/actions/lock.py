from passvault.utils.keychain import MASTER_SLOT, TOTP_SLOT


def run(args, keychain) -> str:
    """Remove both cached master passwords from the OS keychain."""
    lines = []
    for slot, name in ((MASTER_SLOT, "Vault"), (TOTP_SLOT, "TOTP vault")):
        if keychain.delete(slot):
            lines.append(f"{name} locked")
        else:
            lines.append(f"{name} was not unlocked")
    return "\n".join(lines)
