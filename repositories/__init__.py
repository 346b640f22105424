from .base import (
    RepoError,
    RecordAlreadyExistsError,
    RecordNotFoundError,
    SbtRepo,
    TransactionRepo,
)
from .memory import InMemorySbtRepo, InMemoryTransactionRepo
from .sql import SqlAlchemySbtRepo, SqlAlchemyTransactionRepo

__all__ = [
    "RepoError",
    "RecordAlreadyExistsError",
    "RecordNotFoundError",
    "SbtRepo",
    "TransactionRepo",
    "InMemorySbtRepo",
    "InMemoryTransactionRepo",
    "SqlAlchemySbtRepo",
    "SqlAlchemyTransactionRepo",
]
