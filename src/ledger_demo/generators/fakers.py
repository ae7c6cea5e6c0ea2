"""Seeded builders for realistic entity payloads."""

from __future__ import annotations

import random
import re
import uuid
from decimal import ROUND_DOWN, Decimal

from faker import Faker

from ledger_demo.config import constants
from ledger_demo.models import (
    AccountInput,
    Address,
    AssetInput,
    LedgerInput,
    OrganizationInput,
    PortfolioInput,
    SegmentInput,
)

LEDGER_THEMES = ("Operations", "Treasury", "Payments", "Settlements", "Lending", "Wallets")
PORTFOLIO_THEMES = ("Retail", "Corporate", "Private", "Institutional", "SME", "Partners")
SEGMENT_THEMES = ("North", "South", "Digital", "Premium", "Mass Market", "Wholesale")
ACCOUNT_TYPES = ("deposit", "savings", "marketplace")


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-") or "account"


class DemoDataFactory:
    """Produces payloads from one seeded Faker and one seeded ``random.Random``.

    With a seed, two factories produce identical payload sequences.
    """

    def __init__(self, seed: int | None = None, locale: str = "pt_BR") -> None:
        self.seed = seed
        self.faker = Faker(locale)
        self.rng = random.Random(seed)
        if seed is not None:
            self.faker.seed_instance(seed)

    def token(self, length: int = 6) -> str:
        return f"{self.rng.getrandbits(4 * length):0{length}x}"

    def idempotency_key(self) -> str:
        return str(uuid.UUID(int=self.rng.getrandbits(128), version=4))

    def fingerprint(self) -> dict[str, str]:
        return {"generator": constants.GENERATOR_FINGERPRINT, "batch": self.token(8)}

    def organization(self) -> OrganizationInput:
        legal_name = self.faker.company()
        return OrganizationInput(
            legal_name=legal_name,
            legal_document=re.sub(r"\D", "", self.faker.cnpj()),
            doing_business_as=legal_name.split()[0],
            address=Address(
                line1=self.faker.street_address(),
                zip_code=self.faker.postcode(),
                city=self.faker.city(),
                state=self.faker.estado_sigla(),
                country="BR",
            ),
            metadata={**self.fingerprint(), "contact_role": self.faker.job()[:64]},
        )

    def ledger(self) -> LedgerInput:
        theme = self.rng.choice(LEDGER_THEMES)
        return LedgerInput(
            name=f"{theme} Ledger {self.token(4).upper()}",
            metadata={**self.fingerprint(), "theme": theme.lower()},
        )

    def asset(self, code: str, name: str, asset_type: str) -> AssetInput:
        return AssetInput(
            name=name,
            type=asset_type,
            code=code,
            metadata={**self.fingerprint(), "class": constants.asset_class(code)},
        )

    def portfolio(self) -> PortfolioInput:
        theme = self.rng.choice(PORTFOLIO_THEMES)
        return PortfolioInput(
            name=f"{theme} Portfolio {self.token(4).upper()}",
            entity_id=self.token(12),
            metadata=self.fingerprint(),
        )

    def segment(self) -> SegmentInput:
        theme = self.rng.choice(SEGMENT_THEMES)
        return SegmentInput(
            name=f"{theme} Segment {self.token(4).upper()}",
            metadata=self.fingerprint(),
        )

    def account(
        self,
        asset_code: str,
        portfolio_id: str | None = None,
        segment_id: str | None = None,
    ) -> AccountInput:
        holder = self.faker.name()
        return AccountInput(
            name=f"{holder} {asset_code}",
            asset_code=asset_code,
            type=self.rng.choice(ACCOUNT_TYPES),
            alias=f"{_slug(holder)[:40]}-{asset_code.lower()}-{self.token()}",
            portfolio_id=portfolio_id,
            segment_id=segment_id,
            metadata={**self.fingerprint(), "holder": holder},
        )

    def transfer_amount(self, asset_code: str) -> Decimal:
        """Random amount in the asset class's transfer range, at two decimal places."""
        low, high = constants.TRANSFER_RANGES[constants.asset_class(asset_code)]
        raw = low + (high - low) * Decimal(str(self.rng.random()))
        return max(raw.quantize(constants.AMOUNT_QUANTUM, rounding=ROUND_DOWN), low)


__all__ = ["DemoDataFactory"]
