"""Run jet with python -m jet."""
import sys

from .cli import main

sys.exit(main())
