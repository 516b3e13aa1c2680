"""Allow ``python -m retirement_risk``."""

import sys

from .cli import main

sys.exit(main())
