"""Allow ``python -m cookie_monitor``."""

import sys

from cookie_monitor.main import main

sys.exit(main())
