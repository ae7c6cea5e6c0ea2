"""Advisory field-rule validation of entity payloads before they are sent."""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel

from ledger_demo.plugins.base import Plugin
from ledger_demo.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="validation_plugin")


@dataclass(frozen=True)
class FieldRule:
    """Declarative check applied to one field (or the whole payload when ``field`` is ``None``)."""

    field: str | None
    message: str
    required: bool = False
    pattern: str | None = None
    max_length: int | None = None
    check: Callable[[Any], bool] | None = None

    def violation(self, data: Mapping[str, Any]) -> str | None:
        value = data if self.field is None else data.get(self.field)
        if value is None or value == "":
            return self.message if self.required else None
        if self.pattern is not None and not re.fullmatch(self.pattern, str(value)):
            return self.message
        if self.max_length is not None and len(str(value)) > self.max_length:
            return self.message
        if self.check is not None and not self.check(value):
            return self.message
        return None


def _amount(value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("NaN")


def _balanced(operations: list[Mapping[str, Any]]) -> bool:
    debits = sum(
        (_amount(op.get("amount")) for op in operations if op.get("type") == "DEBIT"), Decimal(0)
    )
    credits = sum(
        (_amount(op.get("amount")) for op in operations if op.get("type") == "CREDIT"), Decimal(0)
    )
    return debits == credits and debits > 0


DEFAULT_RULES: dict[str, tuple[FieldRule, ...]] = {
    "organization": (
        FieldRule("legal_name", "legal name is required", required=True, max_length=256),
        FieldRule("legal_document", "legal document is required", required=True),
    ),
    "ledger": (FieldRule("name", "ledger name is required", required=True, max_length=256),),
    "asset": (
        FieldRule("name", "asset name is required", required=True),
        FieldRule("code", "asset code must match ^[A-Z]{3,10}$", required=True, pattern=r"[A-Z]{3,10}"),
        FieldRule(
            "type",
            "asset type must be currency, crypto, commodity or others",
            required=True,
            check=lambda v: v in {"currency", "crypto", "commodity", "others"},
        ),
    ),
    "portfolio": (FieldRule("name", "portfolio name is required", required=True),),
    "segment": (FieldRule("name", "segment name is required", required=True),),
    "account": (
        FieldRule("alias", "account alias is required", required=True, max_length=100),
        FieldRule("asset_code", "account asset code must match ^[A-Z]{3,10}$", required=True, pattern=r"[A-Z]{3,10}"),
    ),
    "transaction": (
        FieldRule(
            "operations",
            "transaction needs at least 2 operations",
            required=True,
            check=lambda ops: len(ops) >= 2,
        ),
        FieldRule(
            "operations",
            "transaction debits and credits must balance",
            required=True,
            check=_balanced,
        ),
    ),
}


class ValidationPlugin(Plugin):
    """Logs rule violations without stopping generation."""

    name = "validation"
    version = "1.0.0"
    priority = 20

    def __init__(
        self,
        rules: Mapping[str, tuple[FieldRule, ...]] | None = None,
        enabled: bool = True,
    ) -> None:
        super().__init__(enabled)
        self.rules = dict(rules if rules is not None else DEFAULT_RULES)
        self.validated: Counter[str] = Counter()
        self.failed: Counter[str] = Counter()

    def add_rule(self, entity_type: str, rule: FieldRule) -> None:
        self.rules[entity_type] = (*self.rules.get(entity_type, ()), rule)

    def validate(self, entity_type: str, payload: Any) -> list[str]:
        """Return the violation messages for ``payload`` (empty when valid)."""
        data = payload.model_dump(mode="json") if isinstance(payload, BaseModel) else payload
        if not isinstance(data, Mapping):
            return [f"{entity_type} payload is not a mapping"]
        violations = []
        for rule in self.rules.get(entity_type, ()):
            message = rule.violation(data)
            if message is not None:
                violations.append(message)
        return violations

    async def before_entity_generation(
        self, entity_type: str, payload: Any, parent_id: str | None
    ) -> None:
        if payload is None:
            return
        self.validated[entity_type] += 1
        violations = self.validate(entity_type, payload)
        if violations:
            self.failed[entity_type] += 1
            logger.warning(
                f"{entity_type} payload has {len(violations)} rule violation(s): "
                + "; ".join(violations),
                entity_type=entity_type,
                parent_id=parent_id,
            )

    def stats(self) -> dict[str, Any]:
        return {"validated": dict(self.validated), "failed": dict(self.failed)}


__all__ = ["DEFAULT_RULES", "FieldRule", "ValidationPlugin"]
