import base64
import logging
from typing import Iterable, Optional

from passvault.config.logging_config import log_event
from passvault.utils.crypto_utils import (
    derive_key,
    encrypt_credential, decrypt_credential,
    encrypt_payment, decrypt_payment,
    encrypt_note, decrypt_note,
)
from .entities import Credential, PaymentCard, Note, Totp
from .errors import CryptoError, InvalidInputError, VaultError, VaultErrorKind
from .graphql_client import GraphQLClient
from .vault_base import VaultBackend, credential_matches

logger = logging.getLogger(__name__)

TOTP_UNSUPPORTED = "TOTP entries are kept in the local TOTP vault only"


def _remote_id(id: str) -> int:
    try:
        return int(id)
    except (TypeError, ValueError):
        raise VaultError(VaultErrorKind.NOT_FOUND, f"Invalid remote id '{id}'") from None


def _parse(entity, row: dict):
    """Build `entity` from a service row; malformed rows are a schema mismatch."""
    try:
        return entity.from_dict(row)
    except (KeyError, TypeError, ValueError, InvalidInputError) as e:
        raise VaultError(
            VaultErrorKind.SCHEMA_MISMATCH,
            f"Malformed {entity.__name__} record from the service: {e!r}",
        ) from e


def _credential_payload(cred: Credential) -> dict:
    return {
        "passwordEncrypted": cred.password,
        "iv": cred.iv,
        "service": cred.service,
        "username": cred.username,
    }


def _payment_payload(card: PaymentCard) -> dict:
    address = card.billing_address
    return {
        "iv": card.iv,
        "name": card.name,
        "nameOnCard": card.name_on_card,
        "number": card.number,
        "cvv": card.cvv,
        "expiry": {"month": card.expiry.month, "year": card.expiry.year},
        "color": card.color,
        "billingAddress": {
            "street": address.street,
            "city": address.city,
            "country": address.country,
            "state": address.state,
            "zip": address.zip,
        } if address else None,
    }


def _note_payload(note: Note) -> dict:
    return {"iv": note.iv, "title": note.title, "content": note.content}


class RemoteVault(VaultBackend):
    """
    Vault stored by the remote service.

    Protected fields are encrypted here before they are sent and decrypted
    here after they are fetched; the service only sees ciphertext, IVs and
    searchable metadata. The key is derived from the master password and
    a salt built from the account's id and creation time.

    Every encryption mints a fresh IV, including edits.
    """

    def __init__(self, client: GraphQLClient, master_password: str,
                 vault_id: Optional[int] = None):
        super().__init__(master_password)
        self.client = client
        self.vault_id = vault_id
        self._salt: Optional[str] = None
        self._key: Optional[bytes] = None

    def __repr__(self):
        return f"RemoteVault(url={self.client.url}, vault_id={self.vault_id})"

    @property
    def key(self) -> bytes:
        if self._key is None:
            self._key = derive_key(self.key_secret(self._master_password), self.get_salt())
        return self._key

    def get_salt(self) -> str:
        if self._salt is None:
            me = self.client.fetch_account_salt()
            try:
                self._salt = f"{me['id']}-{me['created']}".replace(":", "")
            except (KeyError, TypeError) as e:
                raise VaultError(VaultErrorKind.SCHEMA_MISMATCH,
                                 "Account is missing id or created") from e
        return self._salt

    def reset_master_password(self, password: str) -> None:
        super().reset_master_password(password)
        self._key = None

    def unlock(self) -> None:
        """
        The service cannot check the password, so one stored credential is
        decrypted instead. An empty vault accepts any password.
        """
        for row in self.client.fetch_credentials(None)[:1]:
            decrypt_credential(self.key, _parse(Credential, row))

    # ==============================================================
    # Searches
    # ==============================================================
    def grep(self, pattern: Optional[str] = None) -> list[Credential]:
        """
        Server filters on cleartext metadata; the same case-insensitive
        match is applied again here. A credential that fails to decrypt
        keeps its ciphertext cleared and carries the error.
        """
        results = []
        for row in self.client.fetch_credentials(pattern):
            cred = _parse(Credential, row)
            if not credential_matches(pattern, cred):
                continue
            try:
                cred = decrypt_credential(self.key, cred)
            except CryptoError as e:
                log_event(logger, f"could not decrypt credential {cred.id}: {e}")
                cred.password = ''
                cred.error = e
            results.append(cred)
        return sorted(results, key=lambda c: (c.service.lower(), c.username.lower()))

    def find_payments(self) -> list[PaymentCard]:
        """
        A card that fails to decrypt is returned with its secrets cleared
        and the error attached, like `grep` does for credentials.
        """
        cards = []
        for row in self.client.fetch_payment_cards():
            card = _parse(PaymentCard, row)
            try:
                card = decrypt_payment(self.key, card)
            except CryptoError as e:
                log_event(logger, f"could not decrypt payment card {card.id}: {e}")
                card.name_on_card = card.number = card.cvv = ''
                card.color = card.billing_address = None
                card.error = e
            cards.append(card)
        return sorted(cards, key=lambda p: p.name.lower())

    def find_notes(self) -> list[Note]:
        notes = []
        for row in self.client.fetch_notes():
            note = _parse(Note, row)
            try:
                note = decrypt_note(self.key, note)
            except CryptoError as e:
                log_event(logger, f"could not decrypt note {note.id}: {e}")
                note.title = note.content = ''
                note.error = e
            notes.append(note)
        return sorted(notes, key=lambda n: n.title.lower())

    def find_totp(self, pattern: Optional[str] = None) -> list[Totp]:
        raise VaultError(VaultErrorKind.UNSUPPORTED, TOTP_UNSUPPORTED)

    # ==============================================================
    # Writes
    # ==============================================================
    def save_credentials(self, creds: Iterable[Credential]) -> int:
        payload = [_credential_payload(encrypt_credential(self.key, c)) for c in creds]
        if not payload:
            return 0
        return self.client.add_credentials(payload, self.vault_id)

    def save_payment(self, card: PaymentCard) -> int:
        saved = self.client.add_payment_card(
            _payment_payload(encrypt_payment(self.key, card)), self.vault_id)
        card.id = str(saved.get("id", ""))
        return 1

    def save_note(self, note: Note) -> int:
        saved = self.client.add_note(_note_payload(encrypt_note(self.key, note)), self.vault_id)
        note.id = str(saved.get("id", ""))
        return 1

    def save_totp(self, totp: Totp) -> int:
        raise VaultError(VaultErrorKind.UNSUPPORTED, TOTP_UNSUPPORTED)

    def update_credential(self, cred: Credential) -> int:
        return self.client.update_credentials(
            _remote_id(cred.id), _credential_payload(encrypt_credential(self.key, cred)))

    def update_payment(self, card: PaymentCard) -> int:
        return self.client.update_payment_card(
            _remote_id(card.id), _payment_payload(encrypt_payment(self.key, card)))

    def update_note(self, note: Note) -> int:
        return self.client.update_note(
            _remote_id(note.id), _note_payload(encrypt_note(self.key, note)))

    def update_totp(self, totp: Totp) -> int:
        raise VaultError(VaultErrorKind.UNSUPPORTED, TOTP_UNSUPPORTED)

    # ==============================================================
    # Deletes
    # ==============================================================
    def delete_credentials(self, id: str) -> int:
        deleted = self.client.delete_credentials(grep="", id=_remote_id(id))
        if not deleted:
            raise VaultError(VaultErrorKind.NOT_FOUND, f"No credential with id {id}")
        return deleted

    def delete_matching(self, pattern: str) -> int:
        """
        Delete by id every credential `grep(pattern)` returns, so the
        bulk delete uses exactly the search semantics the user saw.
        """
        deleted = 0
        for cred in self.grep(pattern):
            deleted += self.client.delete_credentials(grep=pattern, id=_remote_id(cred.id))
        return deleted

    def delete_payment(self, id: str) -> int:
        deleted = self.client.delete_payment_card(_remote_id(id))
        if not deleted:
            raise VaultError(VaultErrorKind.NOT_FOUND, f"No payment card with id {id}")
        return deleted

    def delete_note(self, id: str) -> int:
        deleted = self.client.delete_note(_remote_id(id))
        if not deleted:
            raise VaultError(VaultErrorKind.NOT_FOUND, f"No note with id {id}")
        return deleted

    def delete_totp(self, id: str) -> int:
        raise VaultError(VaultErrorKind.UNSUPPORTED, TOTP_UNSUPPORTED)

    # ==============================================================
    # Key management
    # ==============================================================
    def _verify_key(self, key: bytes) -> int:
        """Decrypt everything with `key`; returns the number of items."""
        count = 0
        for row in self.client.fetch_credentials(None):
            decrypt_credential(key, _parse(Credential, row))
            count += 1
        for row in self.client.fetch_payment_cards():
            decrypt_payment(key, _parse(PaymentCard, row))
            count += 1
        for row in self.client.fetch_notes():
            decrypt_note(key, _parse(Note, row))
            count += 1
        return count

    def rotate_keys(self, old_key: bytes, new_key: bytes,
                    allow_key_disclosure: bool = False) -> int:
        """
        Ask the service to re-encrypt everything in one transaction.

        The service must receive both keys to do this, which suspends the
        zero-knowledge property for the duration of the call. Refused
        unless `allow_key_disclosure` is set. The old key is checked
        against every stored item before anything is sent.
        """
        if not allow_key_disclosure:
            raise VaultError(
                VaultErrorKind.UNSUPPORTED,
                "Remote rotation sends both keys to the server; explicit consent required",
            )

        expected = self._verify_key(old_key)
        rotated = self.client.rotate_keys(
            base64.b64encode(old_key).decode("ascii"),
            base64.b64encode(new_key).decode("ascii"),
        )
        if rotated != expected:
            log_event(logger, f"remote rotation touched {rotated} of {expected} items",
                      logging.WARNING)
        self._key = new_key
        return rotated
