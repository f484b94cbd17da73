"""
GraphQL-over-HTTP client for the remote vault service.

Only ciphertext and cleartext metadata ever pass through this module;
encryption happens in RemoteVault before calls are made.
"""
import logging
from typing import Any, Optional

import httpx

from passvault.config.config_vault import REMOTE_URL, REMOTE_TIMEOUT
from passvault.config.logging_config import log_event
from .errors import VaultError, VaultErrorKind

logger = logging.getLogger(__name__)

CREDENTIAL_FIELDS = "id service username password iv created modified"
PAYMENT_FIELDS = (
    "id iv name nameOnCard number cvv expiry { month year } color "
    "billingAddress { street city country state zip } created modified"
)
NOTE_FIELDS = "id iv title content created modified"

FETCH_ACCOUNT_SALT = "query FetchAccountSalt { me { id created } }"

FETCH_CREDENTIALS = (
    "query FetchCredentials($grep: String) "
    "{ me { vaults { id credentials(grep: $grep) { %s } } } }" % CREDENTIAL_FIELDS
)
FETCH_PAYMENT_CARDS = (
    "query FetchPaymentCards { me { vaults { id paymentCards { %s } } } }" % PAYMENT_FIELDS
)
FETCH_NOTES = "query FetchNotes { me { vaults { id notes { %s } } } }" % NOTE_FIELDS

ADD_CREDENTIALS = (
    "mutation AddCredentials($credentials: [CredentialsIn!]!, $vaultId: Int) "
    "{ addCredentialsGroup(input: {credentials: $credentials, vaultId: $vaultId}) }"
)
UPDATE_CREDENTIALS = (
    "mutation UpdateCredentials($id: Int!, $input: CredentialsIn!) "
    "{ updateCredentials(id: $id, input: $input) { id } }"
)
DELETE_CREDENTIALS = (
    "mutation DeleteCredentials($input: DeleteCredentialsIn!) "
    "{ deleteCredentials(input: $input) }"
)
ROTATE_KEYS = (
    "mutation RotateKeys($oldKey: String!, $newKey: String!) "
    "{ migrate(oldKey: $oldKey, newKey: $newKey) }"
)
ADD_PAYMENT_CARD = (
    "mutation AddPaymentCard($payment: PaymentCardIn!, $vaultId: Int) "
    "{ addPaymentCard(input: {payment: $payment, vaultId: $vaultId}) { id } }"
)
UPDATE_PAYMENT_CARD = (
    "mutation UpdatePaymentCard($id: Int!, $payment: PaymentCardIn!) "
    "{ updatePaymentCard(id: $id, input: $payment) { id } }"
)
DELETE_PAYMENT_CARD = "mutation DeletePaymentCard($id: Int!) { deletePaymentCard(id: $id) }"
ADD_NOTE = (
    "mutation AddNote($iv: String!, $title: String!, $content: String!, $vaultId: Int) "
    "{ addNote(input: {iv: $iv, title: $title, content: $content, vaultId: $vaultId}) { id } }"
)
UPDATE_NOTE = (
    "mutation UpdateNote($id: Int!, $iv: String!, $title: String!, $content: String!) "
    "{ updateNote(id: $id, input: {iv: $iv, title: $title, content: $content}) { id } }"
)
DELETE_NOTE = "mutation DeleteNote($id: Int!) { deleteNote(id: $id) }"


class GraphQLClient:
    """
    Thin wrapper around httpx.Client posting {"query", "variables"}.

    Every transport failure becomes VaultError(UNREACHABLE). A response
    carrying GraphQL errors raises VaultError with the first message as
    detail. A response without the expected data raises SCHEMA_MISMATCH.
    """

    def __init__(self, access_token: str, url: str = REMOTE_URL,
                 client: Optional[httpx.Client] = None):
        self.url = url
        self._client = client or httpx.Client(timeout=REMOTE_TIMEOUT)
        self._headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

    def close(self) -> None:
        self._client.close()

    def execute(self, query: str, variables: Optional[dict] = None) -> dict:
        try:
            resp = self._client.post(
                self.url,
                json={"query": query, "variables": variables or {}},
                headers=self._headers,
            )
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as e:
            log_event(logger, f"remote vault returned HTTP {e.response.status_code}")
            kind = (VaultErrorKind.NOT_FOUND if e.response.status_code == 404
                    else VaultErrorKind.UNREACHABLE)
            raise VaultError(kind, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            log_event(logger, f"remote vault unreachable: {e}")
            raise VaultError(VaultErrorKind.UNREACHABLE, str(e)) from e
        except ValueError as e:
            raise VaultError(VaultErrorKind.SCHEMA_MISMATCH, "Response is not JSON") from e

        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            first = errors[0].get("message", "unknown error") if isinstance(errors[0], dict) else str(errors[0])
            log_event(logger, f"remote vault error: {first}")
            kind = VaultErrorKind.NOT_FOUND if "not found" in first.lower() else VaultErrorKind.SCHEMA_MISMATCH
            raise VaultError(kind, first)

        data = body.get("data") if isinstance(body, dict) else None
        if not data:
            raise VaultError(VaultErrorKind.SCHEMA_MISMATCH, "Response contained no data")
        return data

    def _field(self, data: dict, *path: str) -> Any:
        node: Any = data
        for name in path:
            if not isinstance(node, dict) or name not in node:
                raise VaultError(VaultErrorKind.SCHEMA_MISMATCH,
                                 f"Missing '{'.'.join(path)}' in response")
            node = node[name]
        return node

    def _vault_items(self, data: dict, field: str) -> list[dict]:
        items = []
        for vault in self._field(data, "me", "vaults") or []:
            items.extend(i for i in (vault.get(field) or []) if i)
        return items

    # -- queries --------------------------------------------------------
    def fetch_account_salt(self) -> dict:
        return self._field(self.execute(FETCH_ACCOUNT_SALT), "me")

    def fetch_credentials(self, grep: Optional[str] = None) -> list[dict]:
        return self._vault_items(self.execute(FETCH_CREDENTIALS, {"grep": grep}), "credentials")

    def fetch_payment_cards(self) -> list[dict]:
        return self._vault_items(self.execute(FETCH_PAYMENT_CARDS), "paymentCards")

    def fetch_notes(self) -> list[dict]:
        return self._vault_items(self.execute(FETCH_NOTES), "notes")

    # -- mutations ------------------------------------------------------
    def add_credentials(self, credentials: list[dict], vault_id: Optional[int] = None) -> int:
        data = self.execute(ADD_CREDENTIALS, {"credentials": credentials, "vaultId": vault_id})
        return int(self._field(data, "addCredentialsGroup"))

    def update_credentials(self, id: int, credentials: dict) -> int:
        self._field(self.execute(UPDATE_CREDENTIALS, {"id": id, "input": credentials}),
                    "updateCredentials")
        return 1

    def delete_credentials(self, grep: str, index: Optional[int] = None,
                           id: Optional[int] = None) -> int:
        payload = {"grep": grep, "index": index, "id": id}
        data = self.execute(DELETE_CREDENTIALS, {"input": payload})
        return int(self._field(data, "deleteCredentials"))

    def rotate_keys(self, old_key: str, new_key: str) -> int:
        data = self.execute(ROTATE_KEYS, {"oldKey": old_key, "newKey": new_key})
        return int(self._field(data, "migrate"))

    def add_payment_card(self, payment: dict, vault_id: Optional[int] = None) -> dict:
        data = self.execute(ADD_PAYMENT_CARD, {"payment": payment, "vaultId": vault_id})
        return self._field(data, "addPaymentCard")

    def update_payment_card(self, id: int, payment: dict) -> int:
        self._field(self.execute(UPDATE_PAYMENT_CARD, {"id": id, "payment": payment}),
                    "updatePaymentCard")
        return 1

    def delete_payment_card(self, id: int) -> int:
        return int(self._field(self.execute(DELETE_PAYMENT_CARD, {"id": id}), "deletePaymentCard"))

    def add_note(self, note: dict, vault_id: Optional[int] = None) -> dict:
        data = self.execute(ADD_NOTE, {**note, "vaultId": vault_id})
        return self._field(data, "addNote")

    def update_note(self, id: int, note: dict) -> int:
        self._field(self.execute(UPDATE_NOTE, {"id": id, **note}), "updateNote")
        return 1

    def delete_note(self, id: int) -> int:
        return int(self._field(self.execute(DELETE_NOTE, {"id": id}), "deleteNote"))
