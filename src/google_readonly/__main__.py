"""Allow ``python -m google_readonly``."""

import sys

from google_readonly.cli import main

if __name__ == "__main__":
    sys.exit(main())
