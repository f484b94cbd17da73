"""
OS secret cache for master passwords, backed by the keyring library.
"""
import logging

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from passvault.config.logging_config import log_event
from passvault.vault.errors import KeychainError

logger = logging.getLogger(__name__)

SERVICE = "passvault"
MASTER_SLOT = "master_password"
TOTP_SLOT = "totp_master_password"


class Keychain:
    """
    Named slots in the OS keychain.

    A missing entry is not an error: `get` returns None and `delete`
    returns False. Failures of the keychain backend raise KeychainError.
    """

    def __init__(self, service: str = SERVICE):
        self.service = service

    def get(self, slot: str) -> str | None:
        try:
            return keyring.get_password(self.service, slot)
        except KeyringError as e:
            log_event(logger, f"keychain read failed for {slot}: {e}")
            raise KeychainError(f"Cannot read from keychain: {e}") from e

    def set(self, slot: str, password: str) -> None:
        try:
            keyring.set_password(self.service, slot, password)
        except KeyringError as e:
            log_event(logger, f"keychain write failed for {slot}: {e}")
            raise KeychainError(f"Cannot write to keychain: {e}") from e

    def delete(self, slot: str) -> bool:
        try:
            keyring.delete_password(self.service, slot)
        except PasswordDeleteError:
            return False
        except KeyringError as e:
            log_event(logger, f"keychain delete failed for {slot}: {e}")
            raise KeychainError(f"Cannot delete from keychain: {e}") from e
        return True
