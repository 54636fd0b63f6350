"""Allow running the client with ``python -m sharedmeta``."""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
