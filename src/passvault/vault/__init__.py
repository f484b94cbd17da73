"""
Storage backends for credentials, payment cards, notes and TOTP entries.
"""
