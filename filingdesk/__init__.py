"""FilingDesk: customs filing records and receipt delivery."""

__version__ = "1.0.0"
