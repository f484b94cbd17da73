"""Tests for the remote vault against an in-memory GraphQL service."""

import httpx
import pytest

from passvault.utils.crypto_utils import derive_key
from passvault.vault.entities import Credential, PaymentCard, Note, Totp, Expiry, Address
from passvault.vault.errors import CryptoError, VaultError, VaultErrorKind
from passvault.vault.graphql_client import GraphQLClient
from passvault.vault.remote_vault import RemoteVault

from conftest import MASTER


@pytest.fixture
def remote(graphql_client):
    return RemoteVault(graphql_client, MASTER)


@pytest.fixture
def filled(remote):
    remote.save_credentials([
        Credential(service="github.com", username="alice", password="gh-pw"),
        Credential(service="GitLab", username="bob", password="gl-pw"),
        Credential(service="bank", username="carol", password="bank-pw"),
    ])
    return remote


class TestSalt:
    def test_account_bound(self, remote):
        assert remote.get_salt() == "42-2024-01-15T083000Z"

    def test_cached(self, remote, service):
        remote.get_salt()
        remote.get_salt()
        assert [op for op, _ in service.requests].count("FetchAccountSalt") == 1

    def test_key_matches_salt(self, remote):
        assert remote.key == derive_key(MASTER, "42-2024-01-15T083000Z")

    def test_missing_fields(self, remote, service):
        service.me = {"id": 42}
        with pytest.raises(VaultError) as e:
            remote.get_salt()
        assert e.value.kind == VaultErrorKind.SCHEMA_MISMATCH


class TestCredentials:
    def test_only_ciphertext_sent(self, filled, service):
        stored = {c["service"]: c for c in service.credentials}
        assert stored["github.com"]["password"] != "gh-pw"
        assert stored["github.com"]["iv"]
        assert stored["github.com"]["username"] == "alice"

    def test_each_item_gets_its_own_iv(self, filled, service):
        ivs = [c["iv"] for c in service.credentials]
        assert len(set(ivs)) == len(ivs)

    def test_grep_decrypts(self, filled):
        found = filled.grep("git")
        assert [(c.service, c.password) for c in found] == [("github.com", "gh-pw"), ("GitLab", "gl-pw")]

    def test_grep_case_insensitive(self, filled):
        assert [c.username for c in filled.grep("BANK")] == ["carol"]

    def test_grep_all(self, filled):
        assert len(filled.grep()) == 3

    def test_save_none(self, remote, service):
        assert remote.save_credentials([]) == 0
        assert "AddCredentials" not in [op for op, _ in service.requests]

    def test_update_uses_fresh_iv(self, filled, service):
        (cred,) = filled.grep("bank")
        old_iv = cred.iv
        cred.password = "new-bank-pw"
        assert filled.update_credential(cred) == 1

        (again,) = filled.grep("bank")
        assert again.password == "new-bank-pw"
        assert again.iv != old_iv

    def test_update_unknown(self, filled):
        cred = Credential(service="x", password="y", id="999")
        with pytest.raises(VaultError) as e:
            filled.update_credential(cred)
        assert e.value.kind == VaultErrorKind.NOT_FOUND

    def test_delete(self, filled):
        (cred,) = filled.grep("bank")
        assert filled.delete_credentials(cred.id) == 1
        assert filled.grep("bank") == []

    def test_delete_unknown(self, filled):
        with pytest.raises(VaultError) as e:
            filled.delete_credentials("999")
        assert e.value.kind == VaultErrorKind.NOT_FOUND

    def test_delete_bad_id(self, filled):
        with pytest.raises(VaultError):
            filled.delete_credentials("not-a-number")

    def test_delete_matching(self, filled):
        assert filled.delete_matching("git") == 2
        assert filled.grep("git") == []
        assert filled.delete_matching("git") == 0
        assert len(filled.grep()) == 1

    def test_per_entry_decrypt_error(self, filled, service):
        service.credentials[0]["password"] = service.credentials[1]["password"]
        found = {c.service: c for c in filled.grep()}

        broken = found["github.com"]
        assert isinstance(broken.error, CryptoError)
        assert broken.password == ""
        assert found["bank"].error is None and found["bank"].password == "bank-pw"

    def test_wrong_password_marks_every_entry(self, filled, graphql_client):
        found = RemoteVault(graphql_client, "wrong").grep()
        assert found and all(c.error is not None for c in found)

    def test_unlock(self, filled, graphql_client):
        RemoteVault(graphql_client, MASTER).unlock()
        with pytest.raises(CryptoError):
            RemoteVault(graphql_client, "wrong").unlock()


class TestPaymentsAndNotes:
    def test_payment_card(self, remote, service):
        card = PaymentCard(
            name="Visa", name_on_card="Alice Doe", number="4111111111111111", cvv="123",
            expiry=Expiry(4, 2030), color="blue",
            billing_address=Address("1 Main St", "Springfield", "12345", "US"),
        )
        remote.save_payment(card)
        assert card.id

        stored = service.cards[0]
        assert stored["name"] == "Visa"
        assert stored["number"] != card.number and stored["cvv"] != "123"
        assert stored["billingAddress"]["city"] != "Springfield"

        (found,) = remote.find_payments()
        assert found.number == "4111111111111111"
        assert found.billing_address.city == "Springfield"

        found.cvv = "999"
        remote.update_payment(found)
        assert remote.find_payments()[0].cvv == "999"

        remote.delete_payment(found.id)
        assert remote.find_payments() == []

    def test_note_title_encrypted(self, remote, service):
        remote.save_note(Note(title="wifi", content="pw: abc"))
        assert service.notes[0]["title"] != "wifi"

        (note,) = remote.find_notes()
        assert (note.title, note.content) == ("wifi", "pw: abc")

        note.content = "pw: xyz"
        remote.update_note(note)
        assert remote.find_notes()[0].content == "pw: xyz"

        remote.delete_note(note.id)
        assert remote.find_notes() == []

    def test_delete_missing_note(self, remote):
        with pytest.raises(VaultError) as e:
            remote.delete_note("77")
        assert e.value.kind == VaultErrorKind.NOT_FOUND

    def test_undecryptable_card_listed_with_error(self, remote, service):
        for name, number in [("Amex", "3782"), ("Visa", "4111")]:
            remote.save_payment(PaymentCard(name=name, name_on_card="A", number=number, cvv="123",
                                            expiry=Expiry(1, 2030)))
        service.cards[0]["number"] = service.cards[1]["number"]

        amex, visa = remote.find_payments()
        assert isinstance(amex.error, CryptoError)
        assert (amex.number, amex.cvv) == ("", "")
        assert visa.error is None and visa.number == "4111"

    def test_undecryptable_note_listed_with_error(self, remote, service):
        remote.save_note(Note(title="wifi", content="pw: abc"))
        remote.save_note(Note(title="alarm", content="1234"))
        service.notes[0]["content"] = service.notes[1]["content"]

        found = remote.find_notes()
        assert len(found) == 2
        broken = next(n for n in found if n.error is not None)
        assert broken.id == str(service.notes[0]["id"])
        assert (broken.title, broken.content) == ("", "")
        assert [n.title for n in found if n.error is None] == ["alarm"]


class TestTotpUnsupported:
    @pytest.mark.parametrize("call", [
        lambda v: v.find_totp(),
        lambda v: v.save_totp(Totp(label="x", secret="JBSWY3DPEHPK3PXP")),
        lambda v: v.update_totp(Totp(label="x", secret="JBSWY3DPEHPK3PXP", id="1")),
        lambda v: v.delete_totp("1"),
    ])
    def test_raises(self, remote, call):
        with pytest.raises(VaultError) as e:
            call(remote)
        assert e.value.kind == VaultErrorKind.UNSUPPORTED


class TestErrorMapping:
    def test_offline(self, remote, service):
        service.offline = True
        with pytest.raises(VaultError) as e:
            remote.grep()
        assert e.value.kind == VaultErrorKind.UNREACHABLE

    def test_graphql_error_uses_first_message(self, filled, service):
        service.fail_with = "boom"
        with pytest.raises(VaultError) as e:
            filled.grep()
        assert e.value.kind == VaultErrorKind.SCHEMA_MISMATCH
        assert e.value.detail == "boom"

    def test_not_found_message(self, filled, service):
        service.fail_with = "Vault not found"
        with pytest.raises(VaultError) as e:
            filled.find_notes()
        assert e.value.kind == VaultErrorKind.NOT_FOUND

    @pytest.mark.parametrize("status, kind", [
        (404, VaultErrorKind.NOT_FOUND),
        (500, VaultErrorKind.UNREACHABLE),
        (401, VaultErrorKind.UNREACHABLE),
    ])
    def test_http_status(self, status, kind):
        http = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(status)))
        client = GraphQLClient("t", url="https://vault.test/api/graphql", client=http)
        with pytest.raises(VaultError) as e:
            client.fetch_account_salt()
        assert e.value.kind == kind

    def test_not_json(self):
        http = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html>")))
        client = GraphQLClient("t", url="https://vault.test/api/graphql", client=http)
        with pytest.raises(VaultError) as e:
            client.fetch_account_salt()
        assert e.value.kind == VaultErrorKind.SCHEMA_MISMATCH

    def test_no_data(self):
        http = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"data": None})))
        client = GraphQLClient("t", url="https://vault.test/api/graphql", client=http)
        with pytest.raises(VaultError) as e:
            client.fetch_notes()
        assert e.value.kind == VaultErrorKind.SCHEMA_MISMATCH

    def test_bearer_token_sent(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={"data": {"me": {"id": 1, "created": "x"}}})

        http = httpx.Client(transport=httpx.MockTransport(handler))
        GraphQLClient("secret-token", url="https://vault.test/api/graphql", client=http).fetch_account_salt()
        assert seen["auth"] == "Bearer secret-token"

    def test_credential_without_service(self, filled, service):
        service.credentials[0]["service"] = ""
        with pytest.raises(VaultError) as e:
            filled.grep()
        assert e.value.kind == VaultErrorKind.SCHEMA_MISMATCH

    def test_card_with_bad_expiry(self, remote, service):
        remote.save_payment(PaymentCard(name="Visa", name_on_card="A", number="4111", cvv="123",
                                        expiry=Expiry(1, 2030)))
        service.cards[0]["expiry"] = {"month": None, "year": 2030}
        with pytest.raises(VaultError) as e:
            remote.find_payments()
        assert e.value.kind == VaultErrorKind.SCHEMA_MISMATCH

    def test_note_without_title(self, remote, service):
        remote.save_note(Note(title="wifi", content="pw: abc"))
        del service.notes[0]["title"]
        with pytest.raises(VaultError) as e:
            remote.find_notes()
        assert e.value.kind == VaultErrorKind.SCHEMA_MISMATCH
