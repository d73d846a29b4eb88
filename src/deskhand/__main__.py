"""Allow ``python -m deskhand``."""

import sys

from .shell_cli import main

if __name__ == "__main__":
    sys.exit(main())
