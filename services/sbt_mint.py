"""
SBT Mint Service
Builds, signs and submits soul-bound token minting transactions and records them as pending
"""

import logging

from models import PENDING, EthereumTransaction, MintedSbt
from services.multibaas_client import MultiBaasError, TransactionToSignResponse

logger = logging.getLogger(__name__)

SAFE_MINT_METHOD = 'safeMint'
# gas can be burned by both issuer and receiver
BURN_AUTH_BOTH = '2'


class SbtMintError(Exception):
    """Base class for SBT minting errors. The original error is kept as __cause__."""


class SbtMintContractCallError(SbtMintError):
    pass


class SbtMintChainQueryError(SbtMintError):
    pass


class SbtMintSigningError(SbtMintError):
    pass


class SbtMintSubmissionError(SbtMintError):
    pass


class SbtMintStateSavingError(SbtMintError):
    """The transaction is on chain but could not be recorded"""

    def __init__(self, message, tx_hash):
        super().__init__(message)
        self.tx_hash = tx_hash


class SbtMintStateQueryError(SbtMintError):
    pass


class SbtMintStateNotFoundError(SbtMintStateQueryError):
    pass


class SbtMint:
    """Service for starting SBT mints and reading their state"""

    def __init__(self, multibaas_client, web3_service, sbt_repo, clock, chain='ethereum',
                 contract_address_or_alias='sbt', contract_label='sbt', transaction_repo=None, logger=logger):
        self.multibaas_client = multibaas_client
        self.web3_service = web3_service
        self.sbt_repo = sbt_repo
        self.transaction_repo = transaction_repo
        self.clock = clock
        self.chain = chain
        self.contract_address_or_alias = contract_address_or_alias
        self.contract_label = contract_label
        self.logger = logger

    def start_minting(self, to):
        """
        Start soul-bound token (SBT) minting by making a transaction.

        Args:
            to (str): SBT receiver Ethereum address

        Returns:
            str: Submitted minting transaction hash
        """
        self.logger.info(f"Starting minting SBT to {to}")
        issuer_address = self.web3_service.default_account
        tx = self._make_sbt_mint_tx(issuer_address, to)
        signed_tx = self._sign_tx(tx)
        submitted = self._send_signed_tx(signed_tx)
        self.logger.info(f"Minting SBT transaction submitted: {submitted.hash}")
        self._save_state(submitted, issuer_address, to, tx)
        self.logger.info(f"Minting SBT transaction state saved: {submitted.hash}")
        return submitted.hash

    def get_sbt_state(self, tx_hash):
        try:
            sbt = self.sbt_repo.get(tx_hash)
        except Exception as e:
            raise SbtMintStateQueryError(f"Failed to get SBT state for {tx_hash}") from e
        if sbt is None:
            raise SbtMintStateNotFoundError(f"SBT minting transaction {tx_hash} not found")
        return sbt

    def _make_sbt_mint_tx(self, from_address, to):
        try:
            result = self.multibaas_client.call_contract_function(
                self.chain,
                self.contract_address_or_alias,
                self.contract_label,
                SAFE_MINT_METHOD,
                [to, BURN_AUTH_BOTH],
                from_address=from_address,
            )
        except MultiBaasError as e:
            raise SbtMintContractCallError(f"{SAFE_MINT_METHOD} contract call failed: {e}") from e
        except Exception as e:
            raise SbtMintContractCallError("Failed to call contract function") from e

        self.logger.info(f"{SAFE_MINT_METHOD} contract call result: {result}")
        if not isinstance(result, TransactionToSignResponse):
            raise SbtMintContractCallError(f"Expected TransactionToSignResponse, got {result.kind}")
        return result.tx

    def _get_chain_id(self):
        try:
            return self.multibaas_client.get_chain_status(self.chain).chain_id
        except Exception as e:
            raise SbtMintChainQueryError("Failed to get chain status") from e

    def _sign_tx(self, tx):
        chain_id = self._get_chain_id()
        self.logger.info(f"Signing transaction for chain {chain_id}: {tx}")
        try:
            signed_tx = self.web3_service.sign_transaction(tx, chain_id)
        except Exception as e:
            raise SbtMintSigningError("Failed to sign transaction") from e
        self.logger.debug(f"Transaction signed: {signed_tx}")
        return signed_tx

    def _send_signed_tx(self, signed_tx):
        try:
            submitted = self.multibaas_client.submit_signed_transaction(self.chain, signed_tx)
        except Exception as e:
            raise SbtMintSubmissionError("Failed to submit signed transaction") from e
        self.logger.info(f"Transaction submitted: {submitted}")
        return submitted

    def _save_state(self, submitted, issuer_address, to, tx):
        now = self.clock.now()
        sbt = MintedSbt(
            tx_hash=submitted.hash,
            status=PENDING,
            from_address=issuer_address,
            to_address=to,
            created_at=now,
            updated_at=now,
        )
        try:
            self.sbt_repo.create(sbt)
        except Exception as e:
            self.logger.critical(
                f"Minting transaction {submitted.hash} was submitted but its state could not be saved: {e}"
            )
            raise SbtMintStateSavingError(
                "Minting transaction submitted but its state could not be saved", submitted.hash
            ) from e

        if self.transaction_repo is not None:
            self._save_raw_tx(submitted, issuer_address, tx, now)

    def _save_raw_tx(self, submitted, issuer_address, tx, now):
        # the SBT record is already stored and answers /status, only raw tracking is lost here
        try:
            self.transaction_repo.create(EthereumTransaction(
                hash=submitted.hash,
                status=PENDING,
                # the echoed sender is unreliable, we know who signed
                from_address=issuer_address,
                to_address=submitted.to_address or tx.get('to'),
                value=submitted.value,
                nonce=submitted.nonce,
                gas_limit=submitted.gas,
                submitted_at=now,
                updated_at=now,
            ))
        except Exception as e:
            self.logger.critical(
                f"Minting transaction {submitted.hash} is tracked as an SBT but its raw transaction "
                f"could not be saved: {e}"
            )
