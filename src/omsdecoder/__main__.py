"""Allow running the decoder with ``python -m omsdecoder``."""

import sys

from .cli import main

sys.exit(main())
