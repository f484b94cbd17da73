import base64
import binascii
import dataclasses
import hashlib
import secrets
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305
from argon2.low_level import hash_secret_raw, Type
from passvault.config.config_vault import *
from passvault.vault.errors import CryptoError, InvalidInputError
from passvault.vault.entities import Credential, PaymentCard, Note, Address


def derive_key(pw: str | bytes, salt: str | bytes) -> bytes:
    """
    Derive a symmetric encryption key from a password and salt using Argon2id.

    Pure and deterministic: the same password and salt always give the
    same key. Salts shorter than Argon2's recommended length are stretched
    with BLAKE2b first, so account-bound text salts can be used directly.

    Args:
        pw: Master password (str is UTF-8 encoded).
        salt: Account salt (str is UTF-8 encoded).

    Returns:
        ARGON_HASH_LEN raw key bytes.

    Raises:
        InvalidInputError: If the password or salt is empty.

    Security:
        - Argon2id provides resistance to brute force attacks.
        - The salt is not secret but must be unique per vault.
    """
    if not pw:
        raise InvalidInputError("Master password cannot be empty")
    if not salt:
        raise InvalidInputError("Salt cannot be empty")

    if isinstance(pw, str):
        pw = pw.encode(UTF8)
    if isinstance(salt, str):
        salt = salt.encode(UTF8)
    if len(salt) < SALT_LEN:
        salt = hashlib.blake2b(salt, digest_size=SALT_LEN).digest()

    key = hash_secret_raw(
        secret=pw,
        salt=salt,
        time_cost=ARGON_TIME,
        memory_cost=ARGON_MEMORY,
        parallelism=ARGON_PARALLELISM,
        hash_len=ARGON_HASH_LEN,
        type=Type.ID
    )
    return key

def pepper_pw(pw: bytes, pepper: bytes):
    """
    Hash a password with a pepper using BLAKE2b.

    Args:
        pw: Password bytes.
        pepper: Contents of the keyfile, used as the BLAKE2b key.

    Returns:
        32-byte hash of password + pepper.

    Security Notes:
        - Uses keyed BLAKE2b (digest size 32).
        - BLAKE2b keys are limited to 64 bytes, longer keyfiles are hashed first.
    """
    if len(pepper) > 64:
        pepper = hashlib.blake2b(pepper).digest()
    hashed = hashlib.blake2b(
        pw,
        key=pepper,
        digest_size=32
        )
    return hashed.digest()

# ==============================================================
# Container sealing (whole entries, random nonce)
# ==============================================================
def encrypt(plaintext: str, key: bytes, eid: str) -> str:
    """
    Encrypt plaintext using ChaCha20-Poly1305 with associated data.

    A random nonce is generated for each encryption. The entry identifier
    (eid) is bound to the ciphertext as associated data.

    Returns:
        A URL-safe base64 string holding the nonce followed by the
        ciphertext and authentication tag.
    """
    aead = ChaCha20Poly1305(key)
    nonce = secrets.token_bytes(NONCE_LEN)

    ciphertext = aead.encrypt(
        nonce=nonce,
        data=plaintext.encode(UTF8),
        associated_data=str_to_bytes(eid)
    )
    token = nonce + ciphertext
    return base64.urlsafe_b64encode(token).decode(UTF8)

def decrypt(token: str, key: bytes, eid: str) -> str:
    """
    Decrypt a ChaCha20-Poly1305 payload produced by `encrypt`.

    Any modification to the token, nonce, ciphertext, or associated
    data causes decryption to fail. No partial plaintext is returned.

    Raises:
        CryptoError: Wrong key, tampered payload or malformed token.
    """
    aead = ChaCha20Poly1305(key)
    try:
        raw = base64.urlsafe_b64decode(token.encode(UTF8))
    except (binascii.Error, ValueError) as e:
        raise CryptoError(f"Malformed token for entry {eid}") from e
    nonce = raw[:NONCE_LEN]
    ciphertext = raw[NONCE_LEN:]
    if len(nonce) != NONCE_LEN:
        raise CryptoError(f"Token too short for entry {eid}")

    try:
        plaintext = aead.decrypt(
            nonce=nonce,
            data=ciphertext,
            associated_data=str_to_bytes(eid)
        )
    except InvalidTag as e:
        raise CryptoError("Wrong master password or vault is corrupted!") from e
    return plaintext.decode(UTF8)


def str_to_bytes(eid_str: str) -> bytes:
    """
    Decode a URL-safe base64 string into bytes.

    Args:
        eid_str: Base64 string (may omit padding).
    """
    padding = "=" * (-len(eid_str) % 4)
    return base64.urlsafe_b64decode(eid_str + padding)


def bytes_to_str(byt_str: bytes) -> str:
    """
    Encode bytes into a URL-safe base64 string without padding.
    """
    return base64.urlsafe_b64encode(byt_str).decode("ascii").rstrip("=")

def new_eid() -> str:
    return bytes_to_str(secrets.token_bytes(EID_LEN))

# ==============================================================
# Field envelope (one IV per entity, one nonce per field)
# ==============================================================
def new_iv() -> str:
    """Fresh random per-entity IV, hex encoded."""
    return secrets.token_hex(IV_LEN)

def _field_nonce(iv: str, field: str) -> bytes:
    # Distinct fields under one entity IV get distinct nonces
    return hashlib.blake2b(
        f"{iv}:{field}".encode(UTF8),
        digest_size=NONCE_LEN
    ).digest()

def _aead(key: bytes) -> ChaCha20Poly1305:
    try:
        return ChaCha20Poly1305(key)
    except (TypeError, ValueError) as e:
        raise CryptoError(f"Invalid key: {e}") from e

def encrypt_field(key: bytes, iv: str, plaintext: str, field: str = "") -> str:
    """
    Encrypt one secret field under the entity's IV.

    Deterministic for a fixed (key, iv, field, plaintext). The field name
    is authenticated as associated data so ciphertexts cannot be swapped
    between fields.
    """
    if not iv:
        raise CryptoError("Cannot encrypt without an IV")
    ciphertext = _aead(key).encrypt(
        _field_nonce(iv, field),
        plaintext.encode(UTF8),
        field.encode(UTF8),
    )
    return base64.urlsafe_b64encode(ciphertext).decode("ascii")

def decrypt_field(key: bytes, iv: str | None, ciphertext: str, field: str = "") -> str:
    """
    Decrypt one secret field.

    Raises:
        CryptoError: Missing IV, wrong key, or corrupted ciphertext.
    """
    if not iv:
        raise CryptoError("Cannot decrypt without an IV")
    try:
        raw = base64.urlsafe_b64decode(ciphertext.encode("ascii"))
    except (binascii.Error, ValueError, UnicodeEncodeError) as e:
        raise CryptoError(f"Malformed ciphertext in field '{field}'") from e
    try:
        plaintext = _aead(key).decrypt(_field_nonce(iv, field), raw, field.encode(UTF8))
    except InvalidTag as e:
        raise CryptoError(f"Could not decrypt field '{field}': wrong key or corrupted data") from e
    try:
        return plaintext.decode(UTF8)
    except UnicodeDecodeError as e:
        raise CryptoError(f"Field '{field}' is not valid text") from e

def _map_optional(fn, value):
    return fn(value) if value is not None else None

def _map_address(fn, address: Address | None, prefix: str) -> Address | None:
    if address is None:
        return None
    return Address(
        street=fn(address.street, f"{prefix}.street"),
        city=fn(address.city, f"{prefix}.city"),
        zip=fn(address.zip, f"{prefix}.zip"),
        country=fn(address.country, f"{prefix}.country"),
        state=_map_optional(lambda s: fn(s, f"{prefix}.state"), address.state),
    )

def encrypt_credential(key: bytes, cred: Credential) -> Credential:
    """Return a copy with the password encrypted under a fresh IV."""
    iv = new_iv()
    return dataclasses.replace(
        cred,
        password=encrypt_field(key, iv, cred.password, "password"),
        iv=iv,
    )

def decrypt_credential(key: bytes, cred: Credential) -> Credential:
    return dataclasses.replace(
        cred,
        password=decrypt_field(key, cred.iv, cred.password, "password"),
    )

def encrypt_payment(key: bytes, card: PaymentCard) -> PaymentCard:
    """
    Encrypt every protected card field under one fresh IV.

    `name` and `expiry` stay in cleartext.
    """
    iv = new_iv()
    enc = lambda value, field: encrypt_field(key, iv, value, field)
    return dataclasses.replace(
        card,
        number=enc(card.number, "number"),
        name_on_card=enc(card.name_on_card, "name_on_card"),
        cvv=enc(card.cvv, "cvv"),
        color=_map_optional(lambda c: enc(c, "color"), card.color),
        billing_address=_map_address(enc, card.billing_address, "billing_address"),
        iv=iv,
    )

def decrypt_payment(key: bytes, card: PaymentCard) -> PaymentCard:
    dec = lambda value, field: decrypt_field(key, card.iv, value, field)
    return dataclasses.replace(
        card,
        number=dec(card.number, "number"),
        name_on_card=dec(card.name_on_card, "name_on_card"),
        cvv=dec(card.cvv, "cvv"),
        color=_map_optional(lambda c: dec(c, "color"), card.color),
        billing_address=_map_address(dec, card.billing_address, "billing_address"),
    )

def encrypt_note(key: bytes, note: Note) -> Note:
    iv = new_iv()
    return dataclasses.replace(
        note,
        title=encrypt_field(key, iv, note.title, "title"),
        content=encrypt_field(key, iv, note.content, "content"),
        iv=iv,
    )

def decrypt_note(key: bytes, note: Note) -> Note:
    return dataclasses.replace(
        note,
        title=decrypt_field(key, note.iv, note.title, "title"),
        content=decrypt_field(key, note.iv, note.content, "content"),
    )
