# Local configuration file overrides standard config values. Never commit this file!
# Used for changing user defaults
ARGON_TIME = 7
CLIPBOARD_TIMEOUT = 20
WIPE_CLIPBOARD = False
REMOTE_URL = "http://localhost:8080/api/graphql"
MIN_STRENGTH_SCORE = 4

# Rename this file to config_local.py to enable it
