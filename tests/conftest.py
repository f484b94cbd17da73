"""
Shared pytest fixtures for the passvault test suite.

Autouse fixtures keep every test away from the real environment:
  - Argon2 cost   -> minimal parameters  (keeps key derivation fast)
  - Store dir     -> temp directory      (no writes to ~/.passvault)
  - OS keychain   -> in-memory backend   (no writes to the real keychain)
  - Clipboard     -> in-memory value     (works on headless machines)
"""
import base64
import builtins
import getpass
import json

import httpx
import keyring
import keyring.backend
import pytest
from keyring.errors import PasswordDeleteError

from passvault.utils import crypto_utils
from passvault.utils import clipboard_utils
from passvault.vault.entities import Credential, PaymentCard, Note
from passvault.vault.graphql_client import GraphQLClient
from passvault.vault.local_vault import LocalVault

MASTER = "correct horse battery staple"


class MemoryKeyring(keyring.backend.KeyringBackend):
    priority = 1

    def __init__(self):
        super().__init__()
        self.passwords = {}

    def get_password(self, service, username):
        return self.passwords.get((service, username))

    def set_password(self, service, username, password):
        self.passwords[(service, username)] = password

    def delete_password(self, service, username):
        try:
            del self.passwords[(service, username)]
        except KeyError:
            raise PasswordDeleteError(username) from None


@pytest.fixture(autouse=True)
def _fast_argon(monkeypatch):
    monkeypatch.setattr(crypto_utils, "ARGON_TIME", 1)
    monkeypatch.setattr(crypto_utils, "ARGON_MEMORY", 8 * 1024)
    monkeypatch.setattr(crypto_utils, "ARGON_PARALLELISM", 1)


@pytest.fixture(autouse=True)
def _isolate_store(tmp_path, monkeypatch):
    home = tmp_path / "home"
    monkeypatch.setenv("PASSVAULT_HOME", str(home))
    return home


@pytest.fixture(autouse=True)
def memory_keyring():
    previous = keyring.get_keyring()
    backend = MemoryKeyring()
    keyring.set_keyring(backend)
    yield backend
    keyring.set_keyring(previous)


@pytest.fixture(autouse=True)
def clipboard(monkeypatch):
    """Replace pyperclip with a single in-memory slot; disables auto-clear."""
    state = {"value": ""}
    monkeypatch.setattr(clipboard_utils.pyperclip, "copy", lambda text: state.update(value=text))
    monkeypatch.setattr(clipboard_utils.pyperclip, "paste", lambda: state["value"])
    monkeypatch.setattr(clipboard_utils, "CLIPBOARD_TIMEOUT", 0)
    return state


@pytest.fixture
def answers(monkeypatch):
    """
    Script interactive input. Call with the successive answers for
    input() and getpass.getpass(); running out fails the test.
    """
    queue = []

    def fake_input(prompt=""):
        if not queue:
            raise AssertionError(f"Unexpected prompt: {prompt!r}")
        return queue.pop(0)

    monkeypatch.setattr(builtins, "input", fake_input)
    monkeypatch.setattr(getpass, "getpass", fake_input)

    def script(*values):
        queue.extend(values)
        return queue

    return script


@pytest.fixture
def vault_path(tmp_path):
    return tmp_path / "vault" / "store.json"


@pytest.fixture
def local_vault(vault_path):
    return LocalVault.create(vault_path, MASTER)


# ── Fake remote service ─────────────────────────────────────────────


class FakeVaultService:
    """
    In-memory stand-in for the GraphQL vault service, served through
    httpx.MockTransport. Stores whatever ciphertext it is sent.
    """

    def __init__(self):
        self.me = {"id": 42, "created": "2024-01-15T08:30:00Z"}
        self.credentials = []
        self.cards = []
        self.notes = []
        self.next_id = 1
        self.requests = []
        self.fail_with = None
        self.offline = False

    def _id(self):
        self.next_id += 1
        return self.next_id - 1

    def _vaults(self, field, items):
        return {"data": {"me": {"vaults": [{"id": 1, field: items}]}}}

    def handle(self, request: httpx.Request) -> httpx.Response:
        if self.offline:
            raise httpx.ConnectError("connection refused", request=request)
        body = json.loads(request.content)
        op = body["query"].split()[1].split("(")[0]
        variables = body.get("variables") or {}
        self.requests.append((op, variables))

        if self.fail_with:
            return httpx.Response(200, json={"errors": [{"message": self.fail_with}, {"message": "second"}]})

        handler = getattr(self, f"op_{op}")
        return httpx.Response(200, json=handler(variables))

    # queries
    def op_FetchAccountSalt(self, v):
        return {"data": {"me": dict(self.me)}}

    def op_FetchCredentials(self, v):
        grep = (v.get("grep") or "").lower()
        found = [c for c in self.credentials
                 if grep in c["service"].lower() or grep in c["username"].lower()]
        return self._vaults("credentials", found)

    def op_FetchPaymentCards(self, v):
        return self._vaults("paymentCards", list(self.cards))

    def op_FetchNotes(self, v):
        return self._vaults("notes", list(self.notes))

    # mutations
    def op_AddCredentials(self, v):
        for c in v["credentials"]:
            self.credentials.append({
                "id": self._id(), "service": c["service"], "username": c["username"],
                "password": c["passwordEncrypted"], "iv": c["iv"],
                "created": "2024-02-01T00:00:00Z", "modified": None,
            })
        return {"data": {"addCredentialsGroup": len(v["credentials"])}}

    def op_UpdateCredentials(self, v):
        for c in self.credentials:
            if c["id"] == v["id"]:
                c.update(service=v["input"]["service"], username=v["input"]["username"],
                         password=v["input"]["passwordEncrypted"], iv=v["input"]["iv"])
                return {"data": {"updateCredentials": {"id": c["id"]}}}
        return {"errors": [{"message": "Credentials not found"}]}

    def op_DeleteCredentials(self, v):
        before = len(self.credentials)
        self.credentials = [c for c in self.credentials if c["id"] != v["input"]["id"]]
        return {"data": {"deleteCredentials": before - len(self.credentials)}}

    def op_AddPaymentCard(self, v):
        p = v["payment"]
        card = {
            "id": self._id(), "iv": p["iv"], "name": p["name"], "nameOnCard": p["nameOnCard"],
            "number": p["number"], "cvv": p["cvv"], "expiry": p["expiry"], "color": p["color"],
            "billingAddress": p["billingAddress"], "created": "2024-02-01T00:00:00Z", "modified": None,
        }
        self.cards.append(card)
        return {"data": {"addPaymentCard": {"id": card["id"]}}}

    def op_UpdatePaymentCard(self, v):
        for card in self.cards:
            if card["id"] == v["id"]:
                card.update(v["payment"])
                return {"data": {"updatePaymentCard": {"id": card["id"]}}}
        return {"errors": [{"message": "Payment card not found"}]}

    def op_DeletePaymentCard(self, v):
        before = len(self.cards)
        self.cards = [c for c in self.cards if c["id"] != v["id"]]
        return {"data": {"deletePaymentCard": before - len(self.cards)}}

    def op_AddNote(self, v):
        note = {"id": self._id(), "iv": v["iv"], "title": v["title"], "content": v["content"],
                "created": "2024-02-01T00:00:00Z", "modified": None}
        self.notes.append(note)
        return {"data": {"addNote": {"id": note["id"]}}}

    def op_UpdateNote(self, v):
        for note in self.notes:
            if note["id"] == v["id"]:
                note.update(iv=v["iv"], title=v["title"], content=v["content"])
                return {"data": {"updateNote": {"id": note["id"]}}}
        return {"errors": [{"message": "Note not found"}]}

    def op_DeleteNote(self, v):
        before = len(self.notes)
        self.notes = [n for n in self.notes if n["id"] != v["id"]]
        return {"data": {"deleteNote": before - len(self.notes)}}

    def op_RotateKeys(self, v):
        """Re-encrypts server side, as the real service does."""
        old = base64.b64decode(v["oldKey"])
        new = base64.b64decode(v["newKey"])
        count = 0
        for row in self.credentials:
            cred = crypto_utils.decrypt_credential(old, Credential.from_dict(row))
            enc = crypto_utils.encrypt_credential(new, cred)
            row.update(password=enc.password, iv=enc.iv)
            count += 1
        for row in self.cards:
            card = crypto_utils.decrypt_payment(old, PaymentCard.from_dict(row))
            enc = crypto_utils.encrypt_payment(new, card)
            row.update(number=enc.number, nameOnCard=enc.name_on_card, cvv=enc.cvv,
                       color=enc.color, iv=enc.iv,
                       billingAddress=None if enc.billing_address is None else vars(enc.billing_address))
            count += 1
        for row in self.notes:
            note = crypto_utils.decrypt_note(old, Note.from_dict(row))
            enc = crypto_utils.encrypt_note(new, note)
            row.update(title=enc.title, content=enc.content, iv=enc.iv)
            count += 1
        return {"data": {"migrate": count}}


@pytest.fixture
def service():
    return FakeVaultService()


@pytest.fixture
def graphql_client(service):
    http = httpx.Client(transport=httpx.MockTransport(service.handle))
    client = GraphQLClient("test-token", url="https://vault.test/api/graphql", client=http)
    yield client
    client.close()
