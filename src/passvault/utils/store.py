"""
Single-line configuration files kept in the store directory.

    .vault_path         override path of the main vault container
    .keyfile_path       keyfile peppering the main vault password
    .totp_vault_path    override path of the TOTP vault container
    .totp_keyfile_path  keyfile for the TOTP vault
    .access_token       token for the remote vault; its presence selects it
    .remote_url         override of REMOTE_URL
"""
import os
from pathlib import Path

from passvault.config.config_vault import *

VAULT_PATH = ".vault_path"
KEYFILE_PATH = ".keyfile_path"
TOTP_VAULT_PATH = ".totp_vault_path"
TOTP_KEYFILE_PATH = ".totp_keyfile_path"
ACCESS_TOKEN = ".access_token"
REMOTE_URL_FILE = ".remote_url"


def store_dir() -> Path:
    return Path(os.environ.get("PASSVAULT_HOME", STORE_DIR)).expanduser()


def read_value(name: str) -> str | None:
    """Stripped contents of a store file, or None when absent or empty."""
    try:
        value = (store_dir() / name).read_text(encoding=UTF8).strip()
    except FileNotFoundError:
        return None
    return value or None


def write_value(name: str, value: str) -> None:
    path = store_dir() / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(value.strip() + "\n", encoding=UTF8)


def delete_value(name: str) -> bool:
    try:
        (store_dir() / name).unlink()
    except FileNotFoundError:
        return False
    return True


def vault_path() -> Path:
    value = read_value(VAULT_PATH)
    return Path(value).expanduser() if value else store_dir() / VAULT_FILE.name


def totp_vault_path() -> Path:
    value = read_value(TOTP_VAULT_PATH)
    return Path(value).expanduser() if value else store_dir() / TOTP_VAULT_FILE.name


def keyfile_path() -> Path | None:
    value = read_value(KEYFILE_PATH)
    return Path(value).expanduser() if value else None


def totp_keyfile_path() -> Path | None:
    value = read_value(TOTP_KEYFILE_PATH)
    return Path(value).expanduser() if value else None


def access_token() -> str | None:
    return read_value(ACCESS_TOKEN)


def remote_url() -> str:
    return read_value(REMOTE_URL_FILE) or REMOTE_URL
