"""Tests for the on-disk vault container."""

import json
import threading

import pytest

from passvault.utils.clipboard_utils import copy_to_clipboard
from passvault.utils.password_generator import generate_password
from passvault.vault.entities import Credential, PaymentCard, Note, Totp, Expiry, Address
from passvault.vault.errors import CryptoError, VaultError, VaultErrorKind
from passvault.vault.local_vault import LocalVault, file_lock

from conftest import MASTER


def _cred(service, username="", password="pw"):
    return Credential(service=service, username=username, password=password)


@pytest.fixture
def filled(local_vault):
    local_vault.save_credentials([
        _cred("github.com", "alice", "gh-pw"),
        _cred("GitLab", "bob", "gl-pw"),
        _cred("example.org", "GITHUB-bot", "ex-pw"),
        _cred("bank", "carol", "bank-pw"),
    ])
    return local_vault


class TestContainer:
    def test_create_writes_file(self, local_vault, vault_path):
        data = json.loads(vault_path.read_text())
        assert set(data) >= {"salt", "canary_id", "canary", "entries"}
        assert data["entries"] == {}

    def test_create_refuses_existing(self, local_vault, vault_path):
        with pytest.raises(VaultError) as e:
            LocalVault.create(vault_path, MASTER)
        assert e.value.kind == VaultErrorKind.SCHEMA_MISMATCH

    def test_unlock(self, local_vault, vault_path):
        LocalVault(vault_path, MASTER).unlock()

    def test_wrong_password(self, local_vault, vault_path):
        with pytest.raises(CryptoError):
            LocalVault(vault_path, "not the password").unlock()

    def test_wrong_password_on_read(self, filled, vault_path):
        with pytest.raises(CryptoError):
            LocalVault(vault_path, "not the password").grep()

    def test_missing_file(self, tmp_path):
        with pytest.raises(VaultError) as e:
            LocalVault(tmp_path / "nope.json", MASTER).grep()
        assert e.value.kind == VaultErrorKind.NOT_FOUND

    def test_corrupt_file(self, vault_path):
        vault_path.parent.mkdir(parents=True)
        vault_path.write_text("{not json")
        with pytest.raises(VaultError) as e:
            LocalVault(vault_path, MASTER).unlock()
        assert e.value.kind == VaultErrorKind.SCHEMA_MISMATCH

    def test_missing_field(self, local_vault, vault_path):
        data = json.loads(vault_path.read_text())
        del data["canary"]
        vault_path.write_text(json.dumps(data))
        with pytest.raises(VaultError) as e:
            LocalVault(vault_path, MASTER).unlock()
        assert e.value.kind == VaultErrorKind.SCHEMA_MISMATCH

    def test_no_plaintext_on_disk(self, filled, vault_path):
        raw = vault_path.read_text()
        for secret in ("github.com", "alice", "gh-pw", "bank-pw"):
            assert secret not in raw

    def test_no_tmp_left_behind(self, filled, vault_path):
        assert not vault_path.with_suffix(".json.tmp").exists()

    def test_keyfile(self, tmp_path):
        keyfile = tmp_path / "keyfile.bin"
        keyfile.write_bytes(b"\x01" * 64)
        path = tmp_path / "kf.json"
        LocalVault.create(path, MASTER, keyfile=keyfile).save_one_credential(_cred("x"))

        assert len(LocalVault(path, MASTER, keyfile=keyfile).grep()) == 1
        with pytest.raises(CryptoError):
            LocalVault(path, MASTER).grep()

    def test_missing_keyfile(self, local_vault, vault_path, tmp_path):
        with pytest.raises(VaultError) as e:
            LocalVault(vault_path, MASTER, keyfile=tmp_path / "gone").unlock()
        assert e.value.kind == VaultErrorKind.NOT_FOUND

    def test_corrupt_entry_skipped(self, filled, vault_path):
        data = json.loads(vault_path.read_text())
        eid = next(iter(data["entries"]))
        data["entries"][eid] = data["entries"][eid][:-4] + "AAAA"
        vault_path.write_text(json.dumps(data))
        assert len(LocalVault(vault_path, MASTER).grep()) == 3

    def test_bulk_delete_keeps_corrupt_entry(self, filled, vault_path):
        data = json.loads(vault_path.read_text())
        eid = next(iter(data["entries"]))
        data["entries"][eid] = data["entries"][eid][:-4] + "AAAA"
        vault_path.write_text(json.dumps(data))

        vault = LocalVault(vault_path, MASTER)
        assert vault.delete_matching("") == 3
        assert vault.grep() == []
        assert list(json.loads(vault_path.read_text())["entries"]) == [eid]


class TestGrep:
    def test_all(self, filled):
        assert len(filled.grep()) == 4
        assert len(filled.grep("")) == 4
        assert len(filled.grep("   ")) == 4

    def test_service_and_username_case_insensitive(self, filled):
        found = filled.grep("git")
        assert {c.service for c in found} == {"github.com", "GitLab", "example.org"}

    def test_upper_pattern(self, filled):
        assert [c.username for c in filled.grep("CAROL")] == ["carol"]

    def test_no_match(self, filled):
        assert filled.grep("zzz") == []

    def test_sorted(self, filled):
        services = [c.service for c in filled.grep()]
        assert services == sorted(services, key=str.lower)

    def test_decrypted(self, filled):
        (cred,) = filled.grep("bank")
        assert cred.password == "bank-pw"
        assert cred.iv is None
        assert cred.id


class TestCredentials:
    def test_save_returns_count(self, local_vault):
        assert local_vault.save_credentials([_cred("a"), _cred("b")]) == 2
        assert local_vault.save_credentials([]) == 0

    def test_save_assigns_id(self, local_vault):
        cred = _cred("a")
        local_vault.save_one_credential(cred)
        assert cred.id and local_vault.grep("a")[0].id == cred.id

    def test_update(self, filled):
        (cred,) = filled.grep("bank")
        cred.password = "new-bank-pw"
        cred.username = "carol2"
        assert filled.update_credential(cred) == 1

        (again,) = filled.grep("bank")
        assert again.password == "new-bank-pw" and again.username == "carol2"
        assert again.created == cred.created

    def test_update_unknown_id(self, local_vault):
        cred = _cred("a")
        cred.id = "does-not-exist"
        with pytest.raises(VaultError) as e:
            local_vault.update_credential(cred)
        assert e.value.kind == VaultErrorKind.NOT_FOUND

    def test_delete(self, filled):
        (cred,) = filled.grep("bank")
        assert filled.delete_credentials(cred.id) == 1
        assert filled.grep("bank") == []

    def test_delete_unknown_id(self, filled):
        with pytest.raises(VaultError) as e:
            filled.delete_credentials("does-not-exist")
        assert e.value.kind == VaultErrorKind.NOT_FOUND

    def test_delete_wrong_type(self, filled):
        note = Note(title="n", content="c")
        filled.save_note(note)
        with pytest.raises(VaultError):
            filled.delete_credentials(note.id)
        assert len(filled.find_notes()) == 1


class TestDeleteMatching:
    def test_delete_all_matching(self, local_vault):
        local_vault.save_credentials([_cred(f"shop{i}.com", "me") for i in range(4)])
        local_vault.save_one_credential(_cred("bank", "me"))

        assert local_vault.delete_matching("shop") == 4
        assert local_vault.grep("shop") == []
        assert local_vault.delete_matching("shop") == 0
        assert len(local_vault.grep()) == 1

    def test_leaves_other_types(self, filled):
        filled.save_note(Note(title="github recovery codes", content="1234"))
        filled.delete_matching("github")
        assert len(filled.find_notes()) == 1


class TestOtherEntities:
    def test_payment_card(self, local_vault):
        card = PaymentCard(
            name="Visa", name_on_card="Alice Doe", number="4111111111111111", cvv="123",
            expiry=Expiry(4, 2030),
            billing_address=Address("1 Main St", "Springfield", "12345", "US"),
        )
        assert local_vault.save_payment(card) == 1
        (found,) = local_vault.find_payments()
        assert found.number == "4111111111111111"
        assert found.billing_address.city == "Springfield"

        found.cvv = "999"
        local_vault.update_payment(found)
        assert local_vault.find_payments()[0].cvv == "999"

        local_vault.delete_payment(found.id)
        assert local_vault.find_payments() == []

    def test_note(self, local_vault):
        local_vault.save_note(Note(title="wifi", content="pw: abc"))
        (note,) = local_vault.find_notes()
        note.content = "pw: xyz"
        local_vault.update_note(note)
        assert local_vault.find_notes()[0].content == "pw: xyz"
        local_vault.delete_note(note.id)
        assert local_vault.find_notes() == []

    def test_totp(self, local_vault):
        local_vault.save_totp(Totp(label="alice", issuer="GitHub", secret="JBSWY3DPEHPK3PXP"))
        local_vault.save_totp(Totp(label="bob", issuer="Slack", secret="JBSWY3DPEHPK3PXP"))
        assert [t.label for t in local_vault.find_totp("git")] == ["alice"]
        assert len(local_vault.find_totp()) == 2

        (totp,) = local_vault.find_totp("slack")
        local_vault.delete_totp(totp.id)
        assert len(local_vault.find_totp()) == 1

    def test_types_are_separate(self, filled):
        assert filled.find_notes() == []
        assert filled.find_payments() == []
        assert filled.find_totp() == []


def test_generated_password_round_trip(local_vault, clipboard):
    """Add a credential with a generated password, then find it again."""
    password = generate_password()
    copy_to_clipboard(password)
    local_vault.save_one_credential(Credential(service="github.com", username="alice", password=password))

    (found,) = local_vault.grep("git")
    assert found.service == "github.com" and found.username == "alice"
    assert found.password == clipboard["value"]


def test_concurrent_writers(vault_path, local_vault):
    def writer(n):
        LocalVault(vault_path, MASTER).save_credentials([_cred(f"svc{n}-{i}") for i in range(3)])

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(local_vault.grep("svc")) == 12


def test_file_lock_creates_parent(tmp_path):
    path = tmp_path / "a" / "b" / "store.json"
    with file_lock(path):
        assert path.with_suffix(".json.lock").exists()
