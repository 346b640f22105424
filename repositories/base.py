"""
Repository contracts for tracked transactions and minted SBTs
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from models import EthereumTransaction, MintedSbt


class RepoError(Exception):
    """Base class for repository errors"""


class RecordAlreadyExistsError(RepoError):
    def __init__(self, key):
        super().__init__(f"Record {key} already exists")
        self.key = key


class RecordNotFoundError(RepoError):
    def __init__(self, key):
        super().__init__(f"Record {key} not found")
        self.key = key


class TransactionRepo(ABC):
    @abstractmethod
    def setup(self) -> None:
        """Prepare the storage. Safe to call more than once."""

    @abstractmethod
    def create(self, tx: EthereumTransaction) -> None:
        ...

    @abstractmethod
    def update(self, tx: EthereumTransaction) -> None:
        ...

    @abstractmethod
    def get(self, tx_hash: str) -> Optional[EthereumTransaction]:
        ...

    @abstractmethod
    def get_all_pending(self) -> List[EthereumTransaction]:
        ...


class SbtRepo(ABC):
    @abstractmethod
    def setup(self) -> None:
        """Prepare the storage. Safe to call more than once."""

    @abstractmethod
    def create(self, sbt: MintedSbt) -> None:
        ...

    @abstractmethod
    def update(self, sbt: MintedSbt) -> None:
        ...

    @abstractmethod
    def get(self, tx_hash: str) -> Optional[MintedSbt]:
        ...

    @abstractmethod
    def get_all_pending(self) -> List[MintedSbt]:
        ...
