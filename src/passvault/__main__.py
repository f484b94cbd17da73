import sys

from passvault.PasswordVault_CLI import main

if __name__ == "__main__":
    sys.exit(main())
