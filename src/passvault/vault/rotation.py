import logging

from passvault.config.logging_config import log_event
from passvault.utils.crypto_utils import derive_key
from passvault.utils.keychain import Keychain
from .errors import InvalidInputError, KeychainError
from .vault_base import VaultBackend

logger = logging.getLogger(__name__)


def rotate(vault: VaultBackend, old_password: str, new_password: str, *,
           keychain: Keychain | None = None, keychain_slot: str | None = None,
           allow_key_disclosure: bool = False) -> int:
    """
    Change the master password of `vault` and re-key every secret.

    1. Resolve the account salt (unchanged by rotation).
    2. Derive the old and new keys from it.
    3. Have the backend re-encrypt everything in one all-or-nothing step.
    4. Only then update the backend's password and the cached password.
       A keychain failure here is logged and the stale cache entry dropped.

    If step 3 raises, no local state is changed.

    Args:
        vault: Backend to rotate.
        old_password: Current master password.
        new_password: Replacement master password.
        keychain: Secret cache to update afterwards, if the password is cached.
        keychain_slot: Slot name in `keychain`.
        allow_key_disclosure: Passed to the backend; required for the
            remote backend, which must receive both keys.

    Returns:
        Number of entities rotated.

    Raises:
        InvalidInputError: Empty passwords or old == new.
        CryptoError: `old_password` does not unlock the vault.
        VaultError: The backend failed or refused.
    """
    if not old_password or not new_password:
        raise InvalidInputError("Master passwords cannot be empty")
    if old_password == new_password:
        raise InvalidInputError("New master password must differ from the old one")

    salt = vault.get_salt()
    old_key = derive_key(vault.key_secret(old_password), salt)
    new_key = derive_key(vault.key_secret(new_password), salt)

    count = vault.rotate_keys(old_key, new_key, allow_key_disclosure=allow_key_disclosure)
    del old_key, new_key

    vault.reset_master_password(new_password)
    if keychain is not None and keychain_slot:
        _update_cached(keychain, keychain_slot, new_password)

    log_event(logger, f"master password changed, {count} entries rotated", logging.INFO)
    return count


def _update_cached(keychain: Keychain, slot: str, new_password: str) -> None:
    """
    Replace a cached master password after the vault has been re-keyed.

    Keychain failures are logged, the stale entry is removed and the user
    is asked to cache the new password again.
    """
    try:
        if keychain.get(slot) is not None:
            keychain.set(slot, new_password)
        return
    except KeychainError as e:
        log_event(logger, f"cached password in {slot} not updated after rotation: {e}")

    try:
        keychain.delete(slot)
    except KeychainError as e:
        log_event(logger, f"stale cached password in {slot} not removed: {e}")
    print(" Master password changed, but the keychain could not be updated.")
    print(" Run 'passvault unlock' to cache the new password.")
