"""Allow ``python -m ossky.cli`` execution."""

import sys

from ossky.cli.bot import main

sys.exit(main())
