"""Allow ``python -m street_coverage`` to run the match_activity tool."""

import sys

from .tools.match_activity import main

sys.exit(main())
