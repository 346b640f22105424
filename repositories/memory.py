"""In-memory repositories useful for development and unit tests."""

import threading
from dataclasses import replace
from typing import Dict, List, Optional

from models import PENDING, EthereumTransaction, MintedSbt
from repositories.base import (
    RecordAlreadyExistsError,
    RecordNotFoundError,
    SbtRepo,
    TransactionRepo,
)


class _InMemoryStore:
    # Stored values are copies so callers cannot mutate persisted state.

    def __init__(self, strict_update=True):
        self.strict_update = strict_update
        self._records: Dict[str, object] = {}
        self._lock = threading.Lock()

    def create(self, key, record):
        with self._lock:
            if key in self._records:
                raise RecordAlreadyExistsError(key)
            self._records[key] = replace(record)

    def update(self, key, record):
        with self._lock:
            if key not in self._records:
                if self.strict_update:
                    raise RecordNotFoundError(key)
                return
            self._records[key] = replace(record)

    def get(self, key):
        with self._lock:
            record = self._records.get(key)
            return replace(record) if record is not None else None

    def get_all_pending(self):
        with self._lock:
            return [replace(r) for r in self._records.values() if r.status == PENDING]


class InMemoryTransactionRepo(TransactionRepo):
    def __init__(self, strict_update=True):
        self._store = _InMemoryStore(strict_update)

    def setup(self) -> None:
        pass

    def create(self, tx: EthereumTransaction) -> None:
        self._store.create(tx.hash, tx)

    def update(self, tx: EthereumTransaction) -> None:
        self._store.update(tx.hash, tx)

    def get(self, tx_hash: str) -> Optional[EthereumTransaction]:
        return self._store.get(tx_hash)

    def get_all_pending(self) -> List[EthereumTransaction]:
        return self._store.get_all_pending()


class InMemorySbtRepo(SbtRepo):
    def __init__(self, strict_update=True):
        self._store = _InMemoryStore(strict_update)

    def setup(self) -> None:
        pass

    def create(self, sbt: MintedSbt) -> None:
        self._store.create(sbt.tx_hash, sbt)

    def update(self, sbt: MintedSbt) -> None:
        self._store.update(sbt.tx_hash, sbt)

    def get(self, tx_hash: str) -> Optional[MintedSbt]:
        return self._store.get(tx_hash)

    def get_all_pending(self) -> List[MintedSbt]:
        return self._store.get_all_pending()
