"""Models package."""
from filingdesk.models.filing import DEFAULT_STATUS, Filing, FilingItem

__all__ = ["DEFAULT_STATUS", "Filing", "FilingItem"]
