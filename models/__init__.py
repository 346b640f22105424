# Models package
from flask_sqlalchemy import SQLAlchemy

# Create a single database instance for all models
db = SQLAlchemy()

# Import all models
from .transaction import (
    PENDING,
    CONFIRMED,
    FAILED,
    EthereumTransaction,
    EthereumTransactionRow,
)
from .sbt import MintedSbt, MintedSbtRow
