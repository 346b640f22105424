"""
Flask-SQLAlchemy backed repositories.

All methods must be called inside a Flask application context.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import (
    PENDING,
    EthereumTransaction,
    EthereumTransactionRow,
    MintedSbt,
    MintedSbtRow,
)
from repositories.base import (
    RecordAlreadyExistsError,
    RecordNotFoundError,
    SbtRepo,
    TransactionRepo,
)

logger = logging.getLogger(__name__)


class _SqlAlchemyRepo:
    row_model = None

    def __init__(self, db, strict_update=True):
        self.db = db
        self.strict_update = strict_update

    def setup(self) -> None:
        # create_all only creates missing tables
        self.db.create_all()

    def _create(self, key, record):
        session = self.db.session
        if session.get(self.row_model, key) is not None:
            raise RecordAlreadyExistsError(key)
        try:
            session.add(self.row_model.from_domain(record))
            session.commit()
        except IntegrityError as e:
            session.rollback()
            raise RecordAlreadyExistsError(key) from e
        except SQLAlchemyError:
            session.rollback()
            raise

    def _update(self, key, record):
        session = self.db.session
        try:
            row = session.get(self.row_model, key)
            if row is None:
                if self.strict_update:
                    raise RecordNotFoundError(key)
                logger.warning(f"Ignoring update of unknown record {key}")
                return
            row.apply(record)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            raise

    def _get(self, key):
        row = self.db.session.get(self.row_model, key)
        return row.to_domain() if row is not None else None

    def _get_all_pending(self):
        rows = self.db.session.execute(
            self.db.select(self.row_model).filter_by(status=PENDING)
        ).scalars()
        return [row.to_domain() for row in rows]


class SqlAlchemyTransactionRepo(_SqlAlchemyRepo, TransactionRepo):
    row_model = EthereumTransactionRow

    def create(self, tx: EthereumTransaction) -> None:
        self._create(tx.hash, tx)

    def update(self, tx: EthereumTransaction) -> None:
        self._update(tx.hash, tx)

    def get(self, tx_hash: str) -> Optional[EthereumTransaction]:
        return self._get(tx_hash)

    def get_all_pending(self) -> List[EthereumTransaction]:
        return self._get_all_pending()


class SqlAlchemySbtRepo(_SqlAlchemyRepo, SbtRepo):
    row_model = MintedSbtRow

    def create(self, sbt: MintedSbt) -> None:
        self._create(sbt.tx_hash, sbt)

    def update(self, sbt: MintedSbt) -> None:
        self._update(sbt.tx_hash, sbt)

    def get(self, tx_hash: str) -> Optional[MintedSbt]:
        return self._get(tx_hash)

    def get_all_pending(self) -> List[MintedSbt]:
        return self._get_all_pending()
