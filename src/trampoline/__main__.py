"""Allow running the trampoline with ``python -m trampoline``."""

import sys

from trampoline.cli import main

sys.exit(main())
