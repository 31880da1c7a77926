"""
Module execution entry point.

Allows running with: python -m syntegrity_cli
"""

import sys
from syntegrity_cli.main import main

if __name__ == "__main__":
    sys.exit(main())
