from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from app import create_app
from config import Config
from models import PENDING, EthereumTransaction, MintedSbt, db
from services.clock import Clock
from services.multibaas_client import MultiBaasClient
from services.web3_service import Web3Service

# Hardhat development accounts 0 and 1
ISSUER_PRIVATE_KEY = '0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80'
ISSUER_ADDRESS = '0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266'
CLAIMANT_PRIVATE_KEY = '0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d'
CLAIMANT_ADDRESS = '0x70997970C51812dc3A010C7d01b50e0d17dc79C8'

TX_HASH_1 = '0x3cbc6345a67a276f3ba132b8655dcebd0ca249b5c9b77fc6361f3ae89bd0a928'
TX_HASH_2 = '0x3cbc6345a67a276f3ba132b8655dcebd0ca249b5c9b77fc6361f3ae89bd0a929'
SBT_CONTRACT_ADDRESS = '0x5FbDB2315678afecb367f032d93F642f64180aa3'

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)
GRACE_PERIOD_SECONDS = 10


class FakeClock(Clock):
    def __init__(self, now=T0):
        self.current = now

    def now(self):
        return self.current

    def set(self, now):
        self.current = now

    def advance(self, seconds):
        self.current = self.current + timedelta(seconds=seconds)


def make_pending_sbt(**overrides):
    values = dict(
        tx_hash=TX_HASH_1,
        status=PENDING,
        from_address=ISSUER_ADDRESS,
        to_address=CLAIMANT_ADDRESS,
        created_at=T0,
        updated_at=T0,
    )
    values.update(overrides)
    return MintedSbt(**values)


def make_pending_tx(**overrides):
    values = dict(
        hash=TX_HASH_1,
        status=PENDING,
        from_address=None,
        to_address=SBT_CONTRACT_ADDRESS,
        value=0,
        nonce=7,
        gas_limit=120000,
        submitted_at=T0,
        updated_at=T0,
    )
    values.update(overrides)
    return EthereumTransaction(**values)


def make_test_config(**overrides):
    values = dict(
        TESTING=True,
        MULTIBAAS_BASE_PATH='https://multibaas.test',
        MULTIBAAS_API_KEY='test-api-key',
        WALLET_PRIVATE_KEY=ISSUER_PRIVATE_KEY,
        SQLALCHEMY_DATABASE_URI='sqlite://',
        DISCARDED_TX_GRACE_PERIOD_SECONDS=GRACE_PERIOD_SECONDS,
        TX_STATUS_POLLING_INTERVAL_SECONDS=1,
    )
    values.update(overrides)
    return Config(**values)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def multibaas_client():
    return Mock(spec=MultiBaasClient)


@pytest.fixture
def web3_service():
    return Web3Service(ISSUER_PRIVATE_KEY)


@pytest.fixture
def app(multibaas_client, web3_service, clock):
    app = create_app(
        make_test_config(),
        multibaas_client=multibaas_client,
        web3_service=web3_service,
        clock=clock,
    )
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()
