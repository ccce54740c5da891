"""
CLI module entry point.

This allows the CLI to be run as:
python -m catalog_sync config.yaml
"""

import sys

from catalog_sync.main import main

if __name__ == "__main__":
    sys.exit(main())
