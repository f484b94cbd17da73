"""
passvault - a command line credential manager with local and remote vaults
"""
from passvault.config.config_vault import VERSION

__version__ = VERSION
