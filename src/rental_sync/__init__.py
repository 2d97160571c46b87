"""Equipment rental webhook toolkit.

Exposes the high-level ``run_record_update`` API for programmatic use.
"""

from .runner import run_record_update  # Public API for one webhook trigger

__all__ = ["run_record_update"]  # Re-exported symbol
