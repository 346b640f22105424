from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Optional

from . import db

PENDING = 'pending'
CONFIRMED = 'confirmed'
FAILED = 'failed'


def as_utc(value):
    """Interpret naive datetimes coming back from the database as UTC"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def isoformat(value):
    return value.isoformat() if value is not None else None


@dataclass
class EthereumTransaction:
    """A submitted Ethereum transaction tracked until it is mined or dropped"""
    hash: str
    status: str
    to_address: str
    value: int
    nonce: int
    gas_limit: int
    submitted_at: datetime
    updated_at: datetime
    from_address: Optional[str] = None
    block_number: Optional[int] = None

    @property
    def created_at(self):
        return self.submitted_at

    def to_dict(self):
        data = asdict(self)
        data['submitted_at'] = isoformat(self.submitted_at)
        data['updated_at'] = isoformat(self.updated_at)
        # wei amounts do not fit in a JSON number for most clients
        data['value'] = str(self.value)
        return data


class EthereumTransactionRow(db.Model):
    """Persisted state of a tracked Ethereum transaction"""
    __tablename__ = 'transactions'

    hash = db.Column(db.String(66), primary_key=True)
    status = db.Column(db.String(20), nullable=False, index=True)  # 'pending', 'confirmed', 'failed'
    from_address = db.Column(db.String(42), nullable=True)  # Unknown until the gateway reports it
    to_address = db.Column(db.String(42), nullable=False)
    value = db.Column(db.String(78), nullable=False)  # Decimal string, wei overflows BIGINT
    nonce = db.Column(db.BigInteger, nullable=False)
    gas_limit = db.Column(db.BigInteger, nullable=False)
    block_number = db.Column(db.BigInteger, nullable=True)
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False)

    @classmethod
    def from_domain(cls, tx: EthereumTransaction):
        row = cls(hash=tx.hash)
        row.apply(tx)
        return row

    def apply(self, tx: EthereumTransaction):
        self.status = tx.status
        self.from_address = tx.from_address
        self.to_address = tx.to_address
        self.value = str(tx.value)
        self.nonce = tx.nonce
        self.gas_limit = tx.gas_limit
        self.block_number = tx.block_number
        self.submitted_at = tx.submitted_at
        self.updated_at = tx.updated_at

    def to_domain(self) -> EthereumTransaction:
        return EthereumTransaction(
            hash=self.hash,
            status=self.status,
            from_address=self.from_address,
            to_address=self.to_address,
            value=int(self.value),
            nonce=self.nonce,
            gas_limit=self.gas_limit,
            block_number=self.block_number,
            submitted_at=as_utc(self.submitted_at),
            updated_at=as_utc(self.updated_at),
        )

    def __repr__(self):
        return f'<EthereumTransactionRow {self.hash} ({self.status})>'
