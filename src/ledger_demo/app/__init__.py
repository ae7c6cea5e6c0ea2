"""Application composition root."""

from ledger_demo.app.container import ApplicationContainer

__all__ = ["ApplicationContainer"]
