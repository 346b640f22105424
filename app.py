from dataclasses import dataclass
from typing import List, Optional

import click
from flask import Flask

from config import Config
from models import db
from repositories import (
    InMemorySbtRepo,
    InMemoryTransactionRepo,
    SbtRepo,
    SqlAlchemySbtRepo,
    SqlAlchemyTransactionRepo,
    TransactionRepo,
)
from routes.claim import claim_bp
from routes.errors import register_error_handlers
from services.clock import SystemClock
from services.multibaas_client import MultiBaasClient
from services.sbt_checker import SbtChecker
from services.sbt_mint import SbtMint
from services.signature_verifier import EthAccountSignatureVerifier
from services.transaction_checker import TransactionChecker
from services.transaction_status_poll import TransactionStatusPoll
from services.web3_service import Web3Service
from utils.logging_utils import configure_logging


@dataclass
class SbtIssuerServices:
    sbt_repo: SbtRepo
    transaction_repo: Optional[TransactionRepo]
    sbt_mint: SbtMint
    signature_verifier: EthAccountSignatureVerifier
    checkers: List[object]
    poll: TransactionStatusPoll


def make_repos(config):
    if config.REPO_BACKEND == 'memory':
        sbt_repo = InMemorySbtRepo()
        transaction_repo = InMemoryTransactionRepo() if config.TRACK_RAW_TRANSACTIONS else None
    else:
        sbt_repo = SqlAlchemySbtRepo(db)
        transaction_repo = SqlAlchemyTransactionRepo(db) if config.TRACK_RAW_TRANSACTIONS else None
    return sbt_repo, transaction_repo


def create_app(config=None, multibaas_client=None, web3_service=None, sbt_repo=None, transaction_repo=None,
               clock=None, signature_verifier=None):
    """Create the Flask app and wire the issuer services. Collaborators can be injected for tests."""
    config = config or Config.from_env()

    app = Flask(__name__)
    app.config.from_object(config)

    # Initialize database
    db.init_app(app)

    if sbt_repo is None:
        sbt_repo, default_transaction_repo = make_repos(config)
        transaction_repo = transaction_repo or default_transaction_repo

    multibaas_client = multibaas_client or MultiBaasClient(
        config.MULTIBAAS_BASE_PATH,
        config.MULTIBAAS_API_KEY,
        timeout=config.MULTIBAAS_TIMEOUT_SECONDS,
    )
    web3_service = web3_service or Web3Service(config.WALLET_PRIVATE_KEY)
    clock = clock or SystemClock()

    sbt_mint = SbtMint(
        multibaas_client,
        web3_service,
        sbt_repo,
        clock,
        chain=config.MULTIBAAS_CHAIN,
        contract_address_or_alias=config.SBT_CONTRACT_ADDRESS_OR_ALIAS,
        contract_label=config.SBT_CONTRACT_LABEL,
        transaction_repo=transaction_repo,
    )

    checkers = [
        SbtChecker(
            sbt_repo,
            multibaas_client,
            clock,
            config.DISCARDED_TX_GRACE_PERIOD_SECONDS,
            chain=config.MULTIBAAS_CHAIN,
            contract_address_or_alias=config.SBT_CONTRACT_ADDRESS_OR_ALIAS,
            contract_label=config.SBT_CONTRACT_LABEL,
            events_page_limit=config.EVENTS_PAGE_LIMIT,
        )
    ]
    if transaction_repo is not None:
        checkers.append(TransactionChecker(
            transaction_repo,
            multibaas_client,
            clock,
            config.DISCARDED_TX_GRACE_PERIOD_SECONDS,
            chain=config.MULTIBAAS_CHAIN,
            web3_service=web3_service,
        ))

    app.extensions['sbt_issuer'] = SbtIssuerServices(
        sbt_repo=sbt_repo,
        transaction_repo=transaction_repo,
        sbt_mint=sbt_mint,
        signature_verifier=signature_verifier or EthAccountSignatureVerifier(),
        checkers=checkers,
        poll=TransactionStatusPoll(checkers, config.TX_STATUS_POLLING_INTERVAL_SECONDS, app=app),
    )

    # Register blueprints
    app.register_blueprint(claim_bp)
    register_error_handlers(app)

    @app.cli.command('setup-db')
    def setup_db_command():
        """Create the tables used to track transactions"""
        setup_repos(app)
        click.echo("Repositories set up")

    @app.cli.command('check-pending')
    def check_pending_command():
        """Run one status check pass over all pending transactions"""
        ran = app.extensions['sbt_issuer'].poll.poll()
        click.echo("Checked pending transactions" if ran else "A check is already running")

    return app


def setup_repos(app):
    services = app.extensions['sbt_issuer']
    with app.app_context():
        services.sbt_repo.setup()
        if services.transaction_repo is not None:
            services.transaction_repo.setup()


def main():
    config = Config.from_env()
    configure_logging(config.LOG_LEVEL)

    app = create_app(config)
    setup_repos(app)

    poll = app.extensions['sbt_issuer'].poll
    if config.POLLING_ENABLED:
        poll.start()
    try:
        app.run(host=config.SERVER_HOSTNAME, port=config.SERVER_PORT, use_reloader=False)
    finally:
        poll.stop()


if __name__ == '__main__':
    main()
