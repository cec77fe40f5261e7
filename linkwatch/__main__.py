"""Allow running as ``python -m linkwatch``."""

from . import main

main()
