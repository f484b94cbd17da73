from pathlib import Path

from passvault.utils import store
from passvault.utils.keychain import MASTER_SLOT, TOTP_SLOT
from passvault.utils.user_input import ask, ask_new_master_password, ask_yes_no
from passvault.vault.local_vault import LocalVault


def _setup_local(name: str, path_file: str, keyfile_file: str,
                 default: Path, keychain, slot: str) -> str:
    path = Path(ask(f"{name} file", str(default))).expanduser()
    store.write_value(path_file, str(path))

    keyfile = ask(f"Keyfile for the {name.lower()} (optional)")
    if keyfile:
        store.write_value(keyfile_file, keyfile)
    else:
        store.delete_value(keyfile_file)

    if path.exists():
        return f"Using existing {name.lower()} at {path}"

    password = ask_new_master_password(f"New master password for the {name.lower()}")
    LocalVault.create(path, password, keyfile or None)
    if ask_yes_no("Cache this master password in the OS keychain?"):
        keychain.set(slot, password)
    return f"Created {name.lower()} at {path}"


def run(args, keychain) -> str:
    """
    Configure the store directory, then create the vault containers that
    do not exist yet.
    """
    lines = []
    token = ask("Access token for the remote vault (Enter for a local vault)")
    if token:
        store.write_value(store.ACCESS_TOKEN, token)
        url = ask("Remote vault URL", store.remote_url())
        store.write_value(store.REMOTE_URL_FILE, url)
        lines.append("Remote vault configured")
    else:
        store.delete_value(store.ACCESS_TOKEN)
        lines.append(_setup_local("Vault", store.VAULT_PATH, store.KEYFILE_PATH,
                                  store.vault_path(), keychain, MASTER_SLOT))

    lines.append(_setup_local("TOTP vault", store.TOTP_VAULT_PATH, store.TOTP_KEYFILE_PATH,
                              store.totp_vault_path(), keychain, TOTP_SLOT))
    return "\n".join(lines)
