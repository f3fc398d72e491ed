"""Single-facility appointment and medication ledger."""

__version__ = "0.1.0"
