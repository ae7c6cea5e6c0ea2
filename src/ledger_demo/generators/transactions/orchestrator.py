"""Two-phase transaction generation: fund accounts, let deposits settle, then transfer."""

from __future__ import annotations

from typing import Any

from ledger_demo.config import constants
from ledger_demo.errors import is_conflict_error
from ledger_demo.generators.base import BaseGenerator, GeneratorDeps
from ledger_demo.generators.transactions.deposits import DepositGenerator
from ledger_demo.generators.transactions.models import AccountWithAsset, LedgerTransactionResult
from ledger_demo.generators.transactions.transfers import TransferGenerator, build_transfer
from ledger_demo.models import Transaction, TransactionInput
from ledger_demo.plugins import HookPoint
from ledger_demo.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="transactions")


class TransactionGenerator(BaseGenerator[Transaction]):
    entity_type = "transaction"

    def __init__(
        self,
        deps: GeneratorDeps,
        *,
        deposits: DepositGenerator | None = None,
        transfers: TransferGenerator | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(deps, **kwargs)
        self.deposits = deposits or DepositGenerator(
            deps.settings.max_concurrency, sleep=deps.sleep
        )
        self.transfers = transfers or TransferGenerator(
            deps.data, deps.settings.max_concurrency, sleep=deps.sleep
        )

    async def generate(
        self, count: int, parent_id: str | None = None, organization_id: str | None = None
    ) -> list[Transaction]:
        """Run both phases for a ledger; ``count`` is transfers per account."""
        org_id = self.resolve_organization_id(organization_id)
        ledger_id = self.resolve_ledger_id(parent_id, org_id)
        result = await self.generate_for_ledger(org_id, ledger_id, count)
        return [*result.deposits.batch.transactions, *result.transfers.batch.transactions]

    async def generate_for_ledger(
        self, organization_id: str, ledger_id: str, transfers_per_account: int
    ) -> LedgerTransactionResult:
        result = LedgerTransactionResult(ledger_id=ledger_id)
        account_ids = self.registry.get_account_ids(ledger_id)
        if len(account_ids) < 2:
            result.skipped_reason = f"{len(account_ids)} account(s) in ledger, need at least 2"
            logger.warning(
                f"Skipping transactions for ledger {ledger_id}: {result.skipped_reason}",
                ledger_id=ledger_id,
            )
            return result

        accounts = await self.prepare_accounts(organization_id, ledger_id)

        async def submit_deposit(tx: TransactionInput, index: int) -> Transaction:
            return await self._submit(
                organization_id, ledger_id, tx, self.deposits.max_retries, f"deposit {index}"
            )

        async def submit_transfer(tx: TransactionInput, index: int) -> Transaction:
            return await self._submit(
                organization_id, ledger_id, tx, self.transfers.max_retries, f"transfer {index}"
            )

        result.deposits, funded = await self.deposits.run(accounts, submit_deposit)

        if funded and self.settings.settlement_delay > 0:
            logger.debug(
                f"Waiting {self.settings.settlement_delay:.2f}s for deposits to settle",
                ledger_id=ledger_id,
            )
            await self.deps.sleep(self.settings.settlement_delay)

        if transfers_per_account > 0:
            result.transfers = await self.transfers.run(
                funded, transfers_per_account, submit_transfer
            )

        logger.info(
            f"Ledger {ledger_id}: {result.deposits.succeeded}/{result.deposits.attempted} deposits, "
            f"{result.transfers.succeeded}/{result.transfers.attempted} transfers",
            ledger_id=ledger_id,
        )
        return result

    async def prepare_accounts(
        self, organization_id: str, ledger_id: str
    ) -> list[AccountWithAsset]:
        """Pair each registered account with the asset it holds.

        Resolution order: registry, the remote account, the ledger's first
        asset, then the default currency.
        """
        ledger_codes = self.registry.get_asset_codes(ledger_id)
        aliases = self.registry.get_account_aliases(ledger_id)
        prepared: list[AccountWithAsset] = []
        for index, account_id in enumerate(self.registry.get_account_ids(ledger_id)):
            alias = aliases[index] if index < len(aliases) else account_id
            if self.registry.has_account_asset(ledger_id, account_id):
                asset_code = self.registry.get_account_asset(ledger_id, account_id)
            else:
                asset_code = await self._resolve_remote_asset(
                    organization_id, ledger_id, account_id, ledger_codes
                )
                self.registry.set_account_asset(ledger_id, account_id, asset_code)
            prepared.append(
                AccountWithAsset(account_id=account_id, account_alias=alias, asset_code=asset_code)
            )
        return prepared

    async def _resolve_remote_asset(
        self, organization_id: str, ledger_id: str, account_id: str, ledger_codes: list[str]
    ) -> str:
        try:
            account = await self.client.get_account(organization_id, ledger_id, account_id)
            return account.asset_code
        except Exception as exc:
            fallback = ledger_codes[0] if ledger_codes else constants.DEFAULT_ASSET_CODE
            logger.warning(
                f"Could not fetch asset for account {account_id} ({exc}); using {fallback}",
                ledger_id=ledger_id,
            )
            return fallback

    async def _submit(
        self,
        organization_id: str,
        ledger_id: str,
        payload: TransactionInput,
        max_retries: int,
        name: str,
    ) -> Transaction:
        """Send one transaction under protection with a stable idempotency key."""
        key = self.data.idempotency_key()
        await self.plugins.dispatch(
            HookPoint.BEFORE_ENTITY_GENERATION, self.entity_type, payload, ledger_id
        )
        try:
            transaction = await self.execute_with_protection(
                lambda: self.client.create_transaction(organization_id, ledger_id, payload, key),
                name,
                max_retries,
            )
        except Exception as exc:
            if not is_conflict_error(exc):
                await self.track_error(exc, ledger_id, {"transaction": name})
            raise
        self.registry.add_transaction_id(ledger_id, transaction.id)
        await self.plugins.dispatch(
            HookPoint.AFTER_ENTITY_GENERATION, self.entity_type, transaction, ledger_id
        )
        return transaction

    async def generate_one(
        self,
        parent_id: str | None = None,
        organization_id: str | None = None,
        **options: Any,
    ) -> Transaction | None:
        """Transfer between ``source`` and ``target`` (``AccountWithAsset``) in one ledger.

        Returns ``None`` with a warning when the two accounts hold different assets.
        """
        org_id = self.resolve_organization_id(organization_id)
        ledger_id = self.resolve_ledger_id(parent_id, org_id)
        source: AccountWithAsset = options["source"]
        target: AccountWithAsset = options["target"]
        if source.asset_code != target.asset_code:
            logger.warning(
                f"Skipping transfer {source.account_alias} -> {target.account_alias}: "
                f"{source.asset_code} != {target.asset_code}",
                ledger_id=ledger_id,
            )
            return None
        amount = options.get("amount") or self.data.transfer_amount(source.asset_code)
        return await self._submit(
            org_id,
            ledger_id,
            build_transfer(source, target, amount),
            self.transfers.max_retries,
            f"transfer {source.account_alias}",
        )

    async def exists(
        self, entity_id: str, parent_id: str | None = None, organization_id: str | None = None
    ) -> bool:
        org_id = self.get_organization_id(organization_id)
        if org_id is None or parent_id is None:
            return False
        try:
            await self.client.get_transaction(org_id, parent_id, entity_id)
        except Exception:
            return False
        return True


__all__ = ["TransactionGenerator"]
