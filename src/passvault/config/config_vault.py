# config_vault.py
"""
Configuration constants
"""
import os
import string
from pathlib import Path
# ==============================================================
# Vault settings
# ==============================================================
# Software version
VERSION = "2.0.0"

# Directory holding the single-line store files (.vault_path, .access_token, ...)
# Override with the PASSVAULT_HOME environment variable.
STORE_DIR = Path(os.environ.get("PASSVAULT_HOME", Path.home() / ".passvault"))

# Default encrypted container files, used when no override path is stored
VAULT_FILE = STORE_DIR / "store.json"
TOTP_VAULT_FILE = STORE_DIR / "totp.json"

# Canary to verify master password. Do not change once vault is created.
KEY_CHECK_STRING = "MasterKeyValidation"

# Length of generated random salt
SALT_LEN = 16

# Argon2id parameters
# Changing these will invalidate existing vaults. Backup plaintext first!
ARGON_TIME = 6             # Iterations - controls CPU cost
ARGON_MEMORY = 256 * 1024  # 256 MiB - controls RAM cost
ARGON_PARALLELISM = 2
ARGON_HASH_LEN = 32        # bytes - Encryption key size - DO NOT CHANGE

# ChaCha20Poly1305 nonce length. DO NOT CHANGE
NONCE_LEN = 12

# Per-entity IV length in bytes (stored as hex)
IV_LEN = 16

# ==============================================================
# Remote vault
# ==============================================================
REMOTE_URL = "https://passlanevault.fly.dev/api/graphql"
REMOTE_TIMEOUT = 20.0      # seconds per request

# ==============================================================
# Password policy
# ==============================================================
PASSWORD_LENGTH = 15
SYMBOLS = "£$&()*+[]@#^-_!?"
PASSWORD_CLASSES = (
    string.ascii_lowercase,
    string.ascii_uppercase,
    string.digits,
    SYMBOLS,
)
# zxcvbn score (0-4) below which a typed password triggers a warning
MIN_STRENGTH_SCORE = 3

# ==============================================================
# Clipboard security
# ==============================================================
CLIPBOARD_TIMEOUT = 30               # Seconds before auto-clear
WIPE_CLIPBOARD = True                # Enable/disable clipboard flooding
CLIPBOARD_LENGTH = 80                # Number of entries to flood

# ==============================================================
# Display & formatting
# ==============================================================
UTF8 = "utf-8"
DT_FORMAT = "MMM D, YYYY hh:mm:ss A"
DT_FORMAT_EXPORT = 'YYYY_MM_DD_HH_mm_ss'

# ==============================================================
# System Constants
# ==============================================================
# length of eid
EID_LEN = 16

# column widths when listing entries
SERVICE_LEN = 24
USERNAME_LEN = 28

# separator
SEP_LG = "="*50
SEP_SM = "-"*50

# ==============================================================
# Optional: local overrides
# Local configuration file overrides standard config values
# ==============================================================
try:
    from passvault.config.config_local import *
except ImportError:
    pass  # No local config, use defaults above
