import os
import json
import base64
import secrets
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Any, Iterable, Optional, Iterator, Tuple

import pendulum

from passvault.config.config_vault import *
from passvault.config.logging_config import log_event
from passvault.utils.crypto_utils import (
    derive_key, pepper_pw, encrypt, decrypt, new_eid,
)
from .entities import Credential, PaymentCard, Note, Totp, entity_type, from_record
from .errors import CryptoError, VaultError, VaultErrorKind
from .vault_base import VaultBackend, credential_matches, totp_matches

if os.name == "nt":
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)


@contextmanager
def file_lock(path: Path) -> Iterator[None]:
    """
    Hold an exclusive advisory lock on `<path>.lock` for the block.

    The lock is released on every exit path.
    """
    lock_path = path.with_suffix(path.suffix + ".lock")
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with open(lock_path, "a+") as fh:
        if os.name == "nt":
            fh.seek(0)
            msvcrt.locking(fh.fileno(), msvcrt.LK_LOCK, 1)
        else:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            if os.name == "nt":
                fh.seek(0)
                msvcrt.locking(fh.fileno(), msvcrt.LK_UNLCK, 1)
            else:
                fcntl.flock(fh.fileno(), fcntl.LOCK_UN)


class LocalVault(VaultBackend):
    """
    Encrypted JSON container on disk.

    Layout:
        {"vault_version", "salt", "canary_id", "canary", "entries": {eid: token}}

    Each token seals one whole entity as JSON with ChaCha20-Poly1305 under
    an Argon2id key, the entry id bound as associated data. Fields inside
    the sealed JSON are plaintext at this layer, so entities keep iv=None.

    Every mutation reads the whole file, edits it in memory and replaces
    the file atomically while holding an advisory lock.
    """

    def __init__(self, path: str | Path, master_password: str,
                 keyfile: str | Path | None = None):
        super().__init__(master_password)
        self.path = Path(path)
        self.keyfile = Path(keyfile) if keyfile else None
        self._key: bytes | None = None

    def __repr__(self):
        return f"LocalVault(path={self.path}, keyfile={self.keyfile})"

    # ==============================================================
    # Container handling
    # ==============================================================
    @classmethod
    def create(cls, path: str | Path, master_password: str,
               keyfile: str | Path | None = None) -> "LocalVault":
        """
        Create and write a new empty container.

        Raises:
            VaultError: If a container already exists at `path`.
        """
        vault = cls(path, master_password, keyfile)
        if vault.path.exists():
            raise VaultError(VaultErrorKind.SCHEMA_MISMATCH,
                             f"Vault already exists at {vault.path}")
        vault.path.parent.mkdir(parents=True, exist_ok=True)

        salt = secrets.token_bytes(SALT_LEN)
        key = derive_key(vault.key_secret(master_password), salt)
        canary_id = new_eid()
        container = {
            "vault_version": VERSION,
            "salt": base64.urlsafe_b64encode(salt).decode("ascii"),
            "canary_id": canary_id,
            "canary": encrypt(KEY_CHECK_STRING, key, canary_id),
            "entries": {},
        }
        with file_lock(vault.path):
            vault._write_container(container)
        vault._key = key
        log_event(logger, f"created vault {vault.path}", logging.INFO)
        return vault

    def exists(self) -> bool:
        return self.path.exists()

    def key_secret(self, password: str) -> bytes:
        secret = password.encode(UTF8)
        if self.keyfile:
            try:
                pepper = self.keyfile.read_bytes()
            except OSError as e:
                raise VaultError(VaultErrorKind.NOT_FOUND,
                                 f"Cannot read keyfile {self.keyfile}: {e}") from e
            secret = pepper_pw(secret, pepper)
        return secret

    def _read_container(self) -> Dict[str, Any]:
        try:
            with self.path.open("r", encoding=UTF8) as f:
                container: Dict[str, Any] = json.load(f)
        except FileNotFoundError as e:
            raise VaultError(VaultErrorKind.NOT_FOUND,
                             f"No vault at {self.path}. Run 'passvault init' first.") from e
        except json.JSONDecodeError as e:
            log_event(logger, f"Vault file {self.path} is not valid JSON or is corrupted!")
            raise VaultError(VaultErrorKind.SCHEMA_MISMATCH,
                             "Vault file is not valid JSON or is corrupted!") from e

        for field in ("salt", "canary_id", "canary", "entries"):
            if field not in container:
                log_event(logger, f"Vault {self.path} is missing '{field}'")
                raise VaultError(VaultErrorKind.SCHEMA_MISMATCH,
                                 f"Vault is corrupted: missing {field}!")
        return container

    def _write_container(self, container: Dict[str, Any]) -> None:
        container["vault_version"] = VERSION

        # Write to temporary file first.
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with open(tmp, "w", encoding=UTF8) as f:
                json.dump(container, f, indent=2)
                f.flush()
                os.fsync(f.fileno()) # force to disk

            # Atomic replace of the vault file.
            os.replace(tmp, self.path)
        except OSError as e:
            log_event(logger, f"Failed writing vault {self.path}: {e}")
            raise VaultError(VaultErrorKind.PARTIAL_WRITE, str(e)) from e

    def _salt(self, container: Dict[str, Any]) -> bytes:
        try:
            return base64.urlsafe_b64decode(container["salt"])
        except (ValueError, TypeError) as e:
            raise VaultError(VaultErrorKind.SCHEMA_MISMATCH,
                             "Vault is corrupted: invalid salt!") from e

    @staticmethod
    def _check_canary(container: Dict[str, Any], key: bytes) -> None:
        """
        Raises:
            CryptoError: Wrong master password or corrupted canary.
        """
        if decrypt(container["canary"], key, container["canary_id"]) != KEY_CHECK_STRING:
            raise CryptoError("Wrong master password!")

    def _unlock(self, container: Dict[str, Any]) -> bytes:
        if self._key is None:
            key = derive_key(self.key_secret(self._master_password), self._salt(container))
            self._check_canary(container, key)
            self._key = key
        return self._key

    @contextmanager
    def _transaction(self) -> Iterator[Tuple[Dict[str, str], bytes]]:
        """
        Read-modify-write cycle. Yields (entries, key); entries are written
        back when the block completes without raising.
        """
        with file_lock(self.path):
            container = self._read_container()
            key = self._unlock(container)
            entries: Dict[str, str] = container["entries"]
            yield entries, key
            self._write_container(container)

    def unlock(self) -> None:
        self._key = None
        with file_lock(self.path):
            self._unlock(self._read_container())

    def _load(self, kind: str) -> list:
        """Decrypt every entry of type `kind`."""
        with file_lock(self.path):
            container = self._read_container()
            key = self._unlock(container)

        items = []
        for eid, token in container["entries"].items():
            try:
                data = json.loads(decrypt(token, key, eid))
            except (CryptoError, json.JSONDecodeError) as e:
                log_event(logger, f"corrupted entry {eid}: {e}")
                continue
            if data.get("type") == kind:
                items.append(from_record(eid, data))
        return items

    def _seal(self, entity, key: bytes, eid: str) -> str:
        return encrypt(json.dumps(entity.to_dict(), separators=(",", ":"),
                                  ensure_ascii=False), key, eid)

    def _type_of(self, entries: Dict[str, str], key: bytes, eid: str) -> Optional[str]:
        if eid not in entries:
            return None
        return json.loads(decrypt(entries[eid], key, eid)).get("type")

    # ==============================================================
    # Searches
    # ==============================================================
    def grep(self, pattern: Optional[str] = None) -> list[Credential]:
        creds = [c for c in self._load("credential") if credential_matches(pattern, c)]
        return sorted(creds, key=lambda c: (c.service.lower(), c.username.lower()))

    def find_payments(self) -> list[PaymentCard]:
        return sorted(self._load("payment"), key=lambda p: p.name.lower())

    def find_notes(self) -> list[Note]:
        return sorted(self._load("note"), key=lambda n: n.title.lower())

    def find_totp(self, pattern: Optional[str] = None) -> list[Totp]:
        totps = [t for t in self._load("totp") if totp_matches(pattern, t)]
        return sorted(totps, key=lambda t: (t.issuer.lower(), t.label.lower()))

    # ==============================================================
    # Writes
    # ==============================================================
    def _save(self, items: list) -> int:
        if not items:
            return 0
        with self._transaction() as (entries, key):
            for item in items:
                eid = new_eid()
                while eid in entries:
                    eid = new_eid()
                item.id = eid
                entries[eid] = self._seal(item, key, eid)
        return len(items)

    def save_credentials(self, creds: Iterable[Credential]) -> int:
        return self._save(list(creds))

    def save_payment(self, card: PaymentCard) -> int:
        return self._save([card])

    def save_note(self, note: Note) -> int:
        return self._save([note])

    def save_totp(self, totp: Totp) -> int:
        return self._save([totp])

    def _update(self, item) -> int:
        kind = entity_type(item)
        with self._transaction() as (entries, key):
            if self._type_of(entries, key, item.id) != kind:
                raise VaultError(VaultErrorKind.NOT_FOUND, f"No {kind} with id {item.id}")
            item.modified = pendulum.now().to_iso8601_string()
            entries[item.id] = self._seal(item, key, item.id)
        return 1

    def update_credential(self, cred: Credential) -> int:
        return self._update(cred)

    def update_payment(self, card: PaymentCard) -> int:
        return self._update(card)

    def update_note(self, note: Note) -> int:
        return self._update(note)

    def update_totp(self, totp: Totp) -> int:
        return self._update(totp)

    # ==============================================================
    # Deletes
    # ==============================================================
    def _delete(self, kind: str, id: str) -> int:
        with self._transaction() as (entries, key):
            if self._type_of(entries, key, id) != kind:
                raise VaultError(VaultErrorKind.NOT_FOUND, f"No {kind} with id {id}")
            del entries[id]
        return 1

    def delete_credentials(self, id: str) -> int:
        return self._delete("credential", id)

    def delete_payment(self, id: str) -> int:
        return self._delete("payment", id)

    def delete_note(self, id: str) -> int:
        return self._delete("note", id)

    def delete_totp(self, id: str) -> int:
        return self._delete("totp", id)

    def delete_matching(self, pattern: str) -> int:
        """Delete what `grep(pattern)` would list; corrupt entries are kept."""
        with self._transaction() as (entries, key):
            doomed = []
            for eid, token in entries.items():
                try:
                    data = json.loads(decrypt(token, key, eid))
                except (CryptoError, json.JSONDecodeError) as e:
                    log_event(logger, f"corrupted entry {eid}: {e}")
                    continue
                if data.get("type") != "credential":
                    continue
                if credential_matches(pattern, from_record(eid, data)):
                    doomed.append(eid)
            for eid in doomed:
                del entries[eid]
        return len(doomed)

    # ==============================================================
    # Key management
    # ==============================================================
    def get_salt(self) -> bytes:
        with file_lock(self.path):
            return self._salt(self._read_container())

    def reset_master_password(self, password: str) -> None:
        super().reset_master_password(password)
        self._key = None

    def rotate_keys(self, old_key: bytes, new_key: bytes,
                    allow_key_disclosure: bool = False) -> int:
        """
        Re-seal the canary and every entry under `new_key`.

        All entries are decrypted before anything is written; any failure
        leaves the file untouched. Keys never leave this process, so
        `allow_key_disclosure` is ignored.
        """
        with file_lock(self.path):
            container = self._read_container()
            self._check_canary(container, old_key)

            plaintexts = {
                eid: decrypt(token, old_key, eid)
                for eid, token in container["entries"].items()
            }
            canary_id = new_eid()
            container["canary_id"] = canary_id
            container["canary"] = encrypt(KEY_CHECK_STRING, new_key, canary_id)
            container["entries"] = {
                eid: encrypt(plaintext, new_key, eid)
                for eid, plaintext in plaintexts.items()
            }
            del plaintexts
            self._write_container(container)

        self._key = new_key
        count = len(container["entries"])
        log_event(logger, f"rotated {count} entries in {self.path}", logging.INFO)
        return count
