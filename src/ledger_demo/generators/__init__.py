"""Entity generators for the ledger hierarchy."""

from ledger_demo.generators.accounts import AccountGenerator
from ledger_demo.generators.assets import AssetGenerator
from ledger_demo.generators.base import BaseGenerator, GeneratorDeps
from ledger_demo.generators.fakers import DemoDataFactory
from ledger_demo.generators.ledgers import LedgerGenerator
from ledger_demo.generators.organizations import OrganizationGenerator
from ledger_demo.generators.portfolios import PortfolioGenerator
from ledger_demo.generators.segments import SegmentGenerator
from ledger_demo.generators.transactions import TransactionGenerator

__all__ = [
    "AccountGenerator",
    "AssetGenerator",
    "BaseGenerator",
    "DemoDataFactory",
    "GeneratorDeps",
    "LedgerGenerator",
    "OrganizationGenerator",
    "PortfolioGenerator",
    "SegmentGenerator",
    "TransactionGenerator",
]
