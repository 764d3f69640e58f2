"""Entry point for ``python -m parallels_ssh``"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
