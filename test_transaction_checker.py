from datetime import timedelta
from unittest.mock import Mock

import pytest

from conftest import GRACE_PERIOD_SECONDS, ISSUER_ADDRESS, T0, TX_HASH_1, TX_HASH_2, make_pending_tx
from models import CONFIRMED, FAILED, PENDING
from repositories import InMemoryTransactionRepo
from services.multibaas_client import MultiBaasError, MultiBaasNotFoundError, TransactionData
from services.transaction_checker import (
    TransactionChecker,
    TransactionCheckerApiRetrievalError,
    TransactionCheckerBatchError,
    TransactionCheckerRepoRetrievalError,
    TransactionCheckerRepoUpdateError,
)


def not_found():
    return MultiBaasNotFoundError("transaction not found", status_code=404, body={'status': 404})


@pytest.fixture
def transaction_repo():
    repo = InMemoryTransactionRepo()
    repo.update = Mock(wraps=repo.update)
    return repo


@pytest.fixture
def transaction_checker(transaction_repo, multibaas_client, clock, web3_service):
    return TransactionChecker(
        transaction_repo, multibaas_client, clock, GRACE_PERIOD_SECONDS, web3_service=web3_service
    )


def test_unknown_transaction_within_grace_period_is_left_alone(transaction_checker, transaction_repo,
                                                                multibaas_client, clock):
    transaction_repo.create(make_pending_tx())
    multibaas_client.get_transaction.side_effect = not_found()
    clock.set(T0 + timedelta(seconds=GRACE_PERIOD_SECONDS - 1))

    transaction_checker.update_pending()

    multibaas_client.get_transaction.assert_called_once_with('ethereum', TX_HASH_1)
    assert transaction_repo.get(TX_HASH_1).status == PENDING
    transaction_repo.update.assert_not_called()


def test_unknown_transaction_exactly_at_grace_period_stays_pending(transaction_checker, transaction_repo,
                                                                    multibaas_client, clock):
    transaction_repo.create(make_pending_tx())
    multibaas_client.get_transaction.side_effect = not_found()
    clock.set(T0 + timedelta(seconds=GRACE_PERIOD_SECONDS))

    transaction_checker.update_pending()

    transaction_repo.update.assert_not_called()


def test_unknown_transaction_after_grace_period_fails(transaction_checker, transaction_repo,
                                                      multibaas_client, clock):
    transaction_repo.create(make_pending_tx())
    multibaas_client.get_transaction.side_effect = not_found()
    clock.set(T0 + timedelta(seconds=GRACE_PERIOD_SECONDS + 1))

    transaction_checker.update_pending()

    tx = transaction_repo.get(TX_HASH_1)
    assert tx.status == FAILED
    assert tx.updated_at == T0 + timedelta(seconds=GRACE_PERIOD_SECONDS + 1)
    assert tx.block_number is None


def test_transaction_in_mempool_stays_pending_but_learns_sender(transaction_checker, transaction_repo,
                                                                multibaas_client, clock):
    transaction_repo.create(make_pending_tx())
    multibaas_client.get_transaction.return_value = TransactionData(
        is_pending=True, from_address=ISSUER_ADDRESS.lower(), block_number=None
    )
    clock.set(T0 + timedelta(seconds=GRACE_PERIOD_SECONDS * 10))

    transaction_checker.update_pending()

    tx = transaction_repo.get(TX_HASH_1)
    assert tx.status == PENDING
    assert tx.from_address == ISSUER_ADDRESS
    assert tx.updated_at == T0 + timedelta(seconds=GRACE_PERIOD_SECONDS * 10)


def test_mined_transaction_is_confirmed_with_block_number(transaction_checker, transaction_repo,
                                                          multibaas_client, clock):
    transaction_repo.create(make_pending_tx(from_address=ISSUER_ADDRESS))
    multibaas_client.get_transaction.return_value = TransactionData(
        is_pending=False, from_address=ISSUER_ADDRESS, block_number=1234, block_hash='0xb10c'
    )
    clock.advance(3)

    transaction_checker.update_pending()

    tx = transaction_repo.get(TX_HASH_1)
    assert tx.status == CONFIRMED
    assert tx.block_number == 1234
    assert tx.updated_at == T0 + timedelta(seconds=3)


def test_second_pass_without_news_writes_nothing(transaction_checker, transaction_repo, multibaas_client):
    transaction_repo.create(make_pending_tx())
    multibaas_client.get_transaction.return_value = TransactionData(
        is_pending=True, from_address=ISSUER_ADDRESS, block_number=None
    )

    transaction_checker.update_pending()
    transaction_checker.update_pending()

    assert transaction_repo.update.call_count == 1


def test_api_failure_is_reported_and_other_transactions_are_still_checked(transaction_checker, transaction_repo,
                                                                          multibaas_client):
    transaction_repo.create(make_pending_tx(hash=TX_HASH_1))
    transaction_repo.create(make_pending_tx(hash=TX_HASH_2))

    def get_transaction(chain, tx_hash):
        if tx_hash == TX_HASH_1:
            raise MultiBaasError("bad gateway", status_code=502)
        return TransactionData(is_pending=False, from_address=ISSUER_ADDRESS, block_number=5)

    multibaas_client.get_transaction.side_effect = get_transaction

    with pytest.raises(TransactionCheckerBatchError) as exc_info:
        transaction_checker.update_pending()

    assert len(exc_info.value.errors) == 1
    assert isinstance(exc_info.value.errors[0], TransactionCheckerApiRetrievalError)
    assert transaction_repo.get(TX_HASH_1).status == PENDING
    assert transaction_repo.get(TX_HASH_2).status == CONFIRMED


def test_not_found_with_other_body_status_is_an_api_error(transaction_checker, transaction_repo,
                                                          multibaas_client, clock):
    transaction_repo.create(make_pending_tx())
    multibaas_client.get_transaction.side_effect = MultiBaasError("no route", status_code=404)
    clock.set(T0 + timedelta(seconds=GRACE_PERIOD_SECONDS + 1))

    with pytest.raises(TransactionCheckerBatchError):
        transaction_checker.update_pending()

    assert transaction_repo.get(TX_HASH_1).status == PENDING


def test_repo_retrieval_failure_raises_repo_retrieval_error(multibaas_client, clock):
    transaction_repo = Mock()
    transaction_repo.get_all_pending.side_effect = RuntimeError("database is down")
    transaction_checker = TransactionChecker(transaction_repo, multibaas_client, clock, GRACE_PERIOD_SECONDS)

    with pytest.raises(TransactionCheckerRepoRetrievalError):
        transaction_checker.update_pending()

    multibaas_client.get_transaction.assert_not_called()


def test_update_failure_is_reported_as_repo_update_error(multibaas_client, clock):
    transaction_repo = Mock()
    transaction_repo.get_all_pending.return_value = [make_pending_tx()]
    transaction_repo.update.side_effect = RuntimeError("database is down")
    multibaas_client.get_transaction.return_value = TransactionData(
        is_pending=False, from_address=ISSUER_ADDRESS, block_number=5
    )
    transaction_checker = TransactionChecker(transaction_repo, multibaas_client, clock, GRACE_PERIOD_SECONDS)

    with pytest.raises(TransactionCheckerBatchError) as exc_info:
        transaction_checker.update_pending()

    assert isinstance(exc_info.value.errors[0], TransactionCheckerRepoUpdateError)


def test_mined_transaction_is_confirmed_even_after_grace_period(transaction_checker, transaction_repo,
                                                               multibaas_client, clock):
    transaction_repo.create(make_pending_tx())
    multibaas_client.get_transaction.return_value = TransactionData(
        is_pending=False, from_address=ISSUER_ADDRESS, block_number=77
    )
    clock.set(T0 + timedelta(seconds=GRACE_PERIOD_SECONDS + 1))

    transaction_checker.update_pending()

    tx = transaction_repo.get(TX_HASH_1)
    assert tx.status == CONFIRMED
    assert tx.block_number == 77


def test_invalid_sender_is_reported_and_other_transactions_are_still_checked(transaction_checker,
                                                                             transaction_repo,
                                                                             multibaas_client):
    transaction_repo.create(make_pending_tx(hash=TX_HASH_1))
    transaction_repo.create(make_pending_tx(hash=TX_HASH_2))

    def get_transaction(chain, tx_hash):
        if tx_hash == TX_HASH_1:
            return TransactionData(is_pending=False, from_address='0xnot-an-address', block_number=5)
        return TransactionData(is_pending=False, from_address=ISSUER_ADDRESS, block_number=6)

    multibaas_client.get_transaction.side_effect = get_transaction

    with pytest.raises(TransactionCheckerBatchError) as exc_info:
        transaction_checker.update_pending()

    assert len(exc_info.value.errors) == 1
    assert isinstance(exc_info.value.errors[0], TransactionCheckerApiRetrievalError)
    assert isinstance(exc_info.value.errors[0].__cause__, ValueError)
    assert transaction_repo.get(TX_HASH_1).status == PENDING
    assert transaction_repo.get(TX_HASH_2).status == CONFIRMED
