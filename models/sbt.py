from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional

from . import db
from .transaction import as_utc, isoformat


@dataclass
class MintedSbt:
    """A soul-bound token mint, keyed by the hash of its minting transaction"""
    tx_hash: str
    status: str
    from_address: str
    to_address: str
    created_at: datetime
    updated_at: datetime
    token_id: Optional[int] = None
    token_uri: Optional[str] = None
    issued_at: Optional[datetime] = None

    def to_dict(self):
        data = asdict(self)
        data['created_at'] = isoformat(self.created_at)
        data['updated_at'] = isoformat(self.updated_at)
        data['issued_at'] = isoformat(self.issued_at)
        return data


class MintedSbtRow(db.Model):
    """Persisted state of an SBT mint"""
    __tablename__ = 'sbt'

    tx_hash = db.Column(db.String(66), primary_key=True)
    status = db.Column(db.String(20), nullable=False, index=True)  # 'pending', 'confirmed', 'failed'
    from_address = db.Column(db.String(42), nullable=False)
    to_address = db.Column(db.String(42), nullable=False)
    token_id = db.Column(db.BigInteger, nullable=True)  # Known once the Issued event is observed
    token_uri = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    issued_at = db.Column(db.DateTime(timezone=True), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False)

    @classmethod
    def from_domain(cls, sbt: MintedSbt):
        row = cls(tx_hash=sbt.tx_hash)
        row.apply(sbt)
        return row

    def apply(self, sbt: MintedSbt):
        self.status = sbt.status
        self.from_address = sbt.from_address
        self.to_address = sbt.to_address
        self.token_id = sbt.token_id
        self.token_uri = sbt.token_uri
        self.created_at = sbt.created_at
        self.issued_at = sbt.issued_at
        self.updated_at = sbt.updated_at

    def to_domain(self) -> MintedSbt:
        return MintedSbt(
            tx_hash=self.tx_hash,
            status=self.status,
            from_address=self.from_address,
            to_address=self.to_address,
            token_id=self.token_id,
            token_uri=self.token_uri,
            created_at=as_utc(self.created_at),
            issued_at=as_utc(self.issued_at),
            updated_at=as_utc(self.updated_at),
        )

    def __repr__(self):
        return f'<MintedSbtRow {self.tx_hash} ({self.status})>'
