"""
Transaction Checker Service
Resolves pending Ethereum transactions by looking them up on chain
"""

import logging
from dataclasses import replace
from datetime import timedelta

from models import CONFIRMED, FAILED, PENDING
from services.multibaas_client import MultiBaasNotFoundError

logger = logging.getLogger(__name__)


class TransactionCheckerError(Exception):
    pass


class TransactionCheckerRepoRetrievalError(TransactionCheckerError):
    pass


class TransactionCheckerApiRetrievalError(TransactionCheckerError):
    pass


class TransactionCheckerRepoUpdateError(TransactionCheckerError):
    pass


class TransactionCheckerBatchError(TransactionCheckerError):
    """Some transactions of a pass could not be checked; the others were"""

    def __init__(self, errors):
        super().__init__(f"{len(errors)} pending transaction(s) could not be checked")
        self.errors = errors


class TransactionChecker:
    """Moves pending transactions to confirmed or failed"""

    def __init__(self, transaction_repo, multibaas_client, clock, discarded_tx_grace_period_seconds,
                 chain='ethereum', web3_service=None, logger=logger):
        self.transaction_repo = transaction_repo
        self.multibaas_client = multibaas_client
        self.clock = clock
        self.discarded_tx_grace_period = timedelta(seconds=discarded_tx_grace_period_seconds)
        self.chain = chain
        self.web3_service = web3_service
        self.logger = logger

    def update_pending(self):
        pending_txs = self._get_all_known_pending_txs()
        self.logger.info(f"Got {len(pending_txs)} pending transactions to check")

        errors = []
        # TODO: query transactions in bulk once the gateway supports it
        for tx in pending_txs:
            self.logger.info(f"Checking pending transaction {tx.hash}")
            try:
                self._check(tx)
            except TransactionCheckerError as e:
                self.logger.error(f"Error checking transaction {tx.hash}: {e}", exc_info=e)
                errors.append(e)

        if errors:
            raise TransactionCheckerBatchError(errors)

    def _check(self, tx):
        result = self._get_tx_from_blockchain(tx.hash)
        updated = replace(tx, status=self._new_tx_status(tx, result))
        if result is not None:
            if result.block_number is not None:
                updated.block_number = result.block_number
            if result.from_address:
                updated.from_address = self._normalize_address(tx.hash, result.from_address)

        if updated != tx:
            self._update_tx_state(tx, updated)

    def _normalize_address(self, tx_hash, address):
        if self.web3_service is None:
            return address
        try:
            return self.web3_service.to_checksum_address(address)
        except (TypeError, ValueError) as e:
            raise TransactionCheckerApiRetrievalError(
                f"Gateway returned an invalid sender {address!r} for transaction {tx_hash}"
            ) from e

    def _get_all_known_pending_txs(self):
        try:
            return self.transaction_repo.get_all_pending()
        except Exception as e:
            raise TransactionCheckerRepoRetrievalError("Error getting all pending transactions") from e

    def _get_tx_from_blockchain(self, tx_hash):
        try:
            self.logger.debug(f"Getting transaction data for {tx_hash}")
            result = self.multibaas_client.get_transaction(self.chain, tx_hash)
        except MultiBaasNotFoundError:
            self.logger.warning(f"Transaction {tx_hash} not found")
            return None
        except Exception as e:
            raise TransactionCheckerApiRetrievalError(f"Error getting transaction {tx_hash}: {e}") from e
        self.logger.debug(f"Got transaction data for {tx_hash}: {result}")
        return result

    def _update_tx_state(self, tx, updated):
        updated.updated_at = self.clock.now()
        self.logger.info(f"Updating transaction {tx.hash}: {tx.status} -> {updated.status}")
        try:
            self.transaction_repo.update(updated)
        except Exception as e:
            raise TransactionCheckerRepoUpdateError(f"Error updating transaction {tx.hash}") from e
        self.logger.info(f"Updated transaction {tx.hash}")

    def _new_tx_status(self, tx, result):
        if result is None:
            # if the transaction was not found after grace period, we assume it was discarded
            cutoff = tx.submitted_at + self.discarded_tx_grace_period
            return FAILED if self.clock.now() > cutoff else PENDING
        return PENDING if result.is_pending else CONFIRMED
