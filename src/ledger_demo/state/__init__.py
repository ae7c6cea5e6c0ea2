"""Run-scoped generation state."""

from ledger_demo.state.registry import (
    ENTITY_TYPES,
    GenerationMetrics,
    GeneratorState,
    RegistrySnapshot,
    StateRegistry,
    TrackedError,
)

__all__ = [
    "ENTITY_TYPES",
    "GenerationMetrics",
    "GeneratorState",
    "RegistrySnapshot",
    "StateRegistry",
    "TrackedError",
]
