from abc import ABC, abstractmethod
from typing import Iterable, Optional

from .entities import Credential, PaymentCard, Note, Totp


def matches(pattern: Optional[str], *fields: str) -> bool:
    """
    Case-insensitive substring test used by every backend's search.

    A missing or blank pattern matches everything.
    """
    if not pattern or not pattern.strip():
        return True
    needle = pattern.strip().lower()
    return any(needle in (f or "").lower() for f in fields)


def credential_matches(pattern: Optional[str], cred: Credential) -> bool:
    return matches(pattern, cred.service, cred.username)


def totp_matches(pattern: Optional[str], totp: Totp) -> bool:
    return matches(pattern, totp.label, totp.issuer)


class VaultBackend(ABC):
    """
    Storage contract shared by the local container and the remote service.

    Reads return lists, empty when nothing matched. Backend failures raise
    VaultError and cryptographic failures raise CryptoError. Writes return
    the number of items written. Updates and deletes address items by id.
    """

    def __init__(self, master_password: str):
        self._master_password = master_password

    def get_master_password(self) -> str:
        return self._master_password

    def reset_master_password(self, password: str) -> None:
        """Switch to `password` after a successful rotation."""
        self._master_password = password

    @abstractmethod
    def unlock(self) -> None:
        """Check the master password. Raises CryptoError when it is wrong."""

    # -- search ---------------------------------------------------------
    @abstractmethod
    def grep(self, pattern: Optional[str] = None) -> list[Credential]: ...

    @abstractmethod
    def find_payments(self) -> list[PaymentCard]: ...

    @abstractmethod
    def find_notes(self) -> list[Note]: ...

    @abstractmethod
    def find_totp(self, pattern: Optional[str] = None) -> list[Totp]: ...

    # -- writes ---------------------------------------------------------
    def save_one_credential(self, cred: Credential) -> int:
        return self.save_credentials([cred])

    @abstractmethod
    def save_credentials(self, creds: Iterable[Credential]) -> int: ...

    @abstractmethod
    def save_payment(self, card: PaymentCard) -> int: ...

    @abstractmethod
    def save_note(self, note: Note) -> int: ...

    @abstractmethod
    def save_totp(self, totp: Totp) -> int: ...

    @abstractmethod
    def update_credential(self, cred: Credential) -> int: ...

    @abstractmethod
    def update_payment(self, card: PaymentCard) -> int: ...

    @abstractmethod
    def update_note(self, note: Note) -> int: ...

    @abstractmethod
    def update_totp(self, totp: Totp) -> int: ...

    # -- deletes --------------------------------------------------------
    @abstractmethod
    def delete_credentials(self, id: str) -> int: ...

    @abstractmethod
    def delete_matching(self, pattern: str) -> int: ...

    @abstractmethod
    def delete_payment(self, id: str) -> int: ...

    @abstractmethod
    def delete_note(self, id: str) -> int: ...

    @abstractmethod
    def delete_totp(self, id: str) -> int: ...

    # -- key management -------------------------------------------------
    @abstractmethod
    def get_salt(self) -> bytes | str:
        """Account-bound salt; unchanged by rotation."""

    def key_secret(self, password: str) -> bytes:
        """Bytes fed to the key derivation for `password`."""
        return password.encode("utf-8")

    @abstractmethod
    def rotate_keys(self, old_key: bytes, new_key: bytes,
                    allow_key_disclosure: bool = False) -> int:
        """
        Re-encrypt every secret from `old_key` to `new_key`.

        All or nothing. Returns the number of secret-bearing entities.
        """
