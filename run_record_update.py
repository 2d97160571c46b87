"""Script to process one record-update webhook trigger.

Requires the package to be installed (``pip install -e .``), which also
provides the equivalent ``rental-sync`` command.

Usage: python run_record_update.py <recordId> [projectId]
"""

import sys

from rental_sync.cli import main

if __name__ == "__main__":
    sys.exit(main())
