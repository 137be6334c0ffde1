"""Allow ``python -m virtconsole``."""

import sys

from virtconsole.cli import main

if __name__ == "__main__":
    sys.exit(main())
