"""Allow ``python -m essayvec.cli`` execution."""

import sys

from essayvec.cli.ingest import main

sys.exit(main())
