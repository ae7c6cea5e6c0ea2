"""Demo-data generator for the Midaz ledger APIs."""

__version__ = "0.4.0"

__all__ = ["__version__"]
