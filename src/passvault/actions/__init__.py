"""
One module per CLI command. Each exposes run(args, keychain) returning an
optional message for the user.
"""
from .match_resolver import MatchCapabilities, resolve_matches, NO_MATCHES
