"""Run orchestration across all entity generators."""

from ledger_demo.orchestration.generator import Generator, GeneratorSuite

__all__ = ["Generator", "GeneratorSuite"]
