"""
Open the configured backends with a cached or prompted master password.
"""
import logging

from passvault.config.logging_config import log_event
from passvault.utils import store
from passvault.utils.keychain import Keychain, MASTER_SLOT, TOTP_SLOT
from passvault.utils.user_input import ask_master_password
from passvault.vault.errors import KeychainError
from passvault.vault.graphql_client import GraphQLClient
from passvault.vault.local_vault import LocalVault
from passvault.vault.remote_vault import RemoteVault
from passvault.vault.vault_base import VaultBackend

logger = logging.getLogger(__name__)


def cached_password(keychain: Keychain | None, slot: str) -> str | None:
    if keychain is None:
        return None
    try:
        return keychain.get(slot)
    except KeychainError as e:
        log_event(logger, f"keychain unavailable, prompting instead: {e}")
        return None


def main_vault(keychain: Keychain | None, password: str | None = None) -> VaultBackend:
    """
    Remote vault when an access token is stored, the local container
    otherwise.
    """
    password = password or cached_password(keychain, MASTER_SLOT) or ask_master_password()
    token = store.access_token()
    if token:
        return RemoteVault(GraphQLClient(token, store.remote_url()), password)
    return LocalVault(store.vault_path(), password, store.keyfile_path())


def totp_vault(keychain: Keychain | None, password: str | None = None) -> LocalVault:
    password = (password or cached_password(keychain, TOTP_SLOT)
                or ask_master_password("TOTP vault master password"))
    return LocalVault(store.totp_vault_path(), password, store.totp_keyfile_path())
