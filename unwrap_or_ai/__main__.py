"""Allow ``python -m unwrap_or_ai``."""

import sys

from .cli import main

sys.exit(main())
