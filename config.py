# SBT issuer configuration
# Values come from the environment; a .env file in the working directory is loaded first when present.

import os

from dotenv import load_dotenv


class ConfigError(Exception):
    pass


def from_env(name, default=None, required=False):
    value = os.environ.get(name)
    if value is None or value == '':
        if required:
            raise ConfigError(f"Environment variable {name} is not set")
        return default
    return value


def int_from_env(name, default):
    value = from_env(name, default)
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Environment variable {name} must be an integer, got {value!r}") from e


def bool_from_env(name, default):
    value = from_env(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    MULTIBAAS_BASE_PATH = None
    MULTIBAAS_API_KEY = None
    MULTIBAAS_CHAIN = 'ethereum'
    MULTIBAAS_TIMEOUT_SECONDS = 30
    SBT_CONTRACT_ADDRESS_OR_ALIAS = 'sbt'
    SBT_CONTRACT_LABEL = 'sbt'
    WALLET_PRIVATE_KEY = None

    SQLALCHEMY_DATABASE_URI = 'sqlite:///sbt_issuer.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    REPO_BACKEND = 'sql'  # 'sql' or 'memory'
    TRACK_RAW_TRANSACTIONS = False

    POLLING_ENABLED = True
    TX_STATUS_POLLING_INTERVAL_SECONDS = 10
    DISCARDED_TX_GRACE_PERIOD_SECONDS = 600
    EVENTS_PAGE_LIMIT = 50

    SERVER_HOSTNAME = '127.0.0.1'
    SERVER_PORT = 5000
    LOG_LEVEL = 'INFO'
    TESTING = False

    def __init__(self, **overrides):
        for key, value in overrides.items():
            if not hasattr(Config, key):
                raise ConfigError(f"Unknown configuration key {key}")
            setattr(self, key, value)

    @classmethod
    def from_env(cls, dotenv_path=None):
        load_dotenv(dotenv_path)
        backend = from_env('REPO_BACKEND', cls.REPO_BACKEND)
        if backend not in ('sql', 'memory'):
            raise ConfigError(f"REPO_BACKEND must be 'sql' or 'memory', got {backend!r}")

        return cls(
            MULTIBAAS_BASE_PATH=from_env('MULTIBAAS_BASE_PATH', required=True),
            MULTIBAAS_API_KEY=from_env('MULTIBAAS_API_KEY', required=True),
            MULTIBAAS_CHAIN=from_env('MULTIBAAS_CHAIN', cls.MULTIBAAS_CHAIN),
            MULTIBAAS_TIMEOUT_SECONDS=int_from_env('MULTIBAAS_TIMEOUT_SECONDS', cls.MULTIBAAS_TIMEOUT_SECONDS),
            SBT_CONTRACT_ADDRESS_OR_ALIAS=from_env('SBT_CONTRACT_ADDRESS_OR_ALIAS', cls.SBT_CONTRACT_ADDRESS_OR_ALIAS),
            SBT_CONTRACT_LABEL=from_env('SBT_CONTRACT_LABEL', cls.SBT_CONTRACT_LABEL),
            WALLET_PRIVATE_KEY=from_env('WALLET_PRIVATE_KEY', required=True),
            SQLALCHEMY_DATABASE_URI=from_env('DATABASE_URL', cls.SQLALCHEMY_DATABASE_URI),
            REPO_BACKEND=backend,
            TRACK_RAW_TRANSACTIONS=bool_from_env('TRACK_RAW_TRANSACTIONS', cls.TRACK_RAW_TRANSACTIONS),
            POLLING_ENABLED=bool_from_env('POLLING_ENABLED', cls.POLLING_ENABLED),
            TX_STATUS_POLLING_INTERVAL_SECONDS=int_from_env(
                'TX_STATUS_POLLING_INTERVAL_SECONDS', cls.TX_STATUS_POLLING_INTERVAL_SECONDS
            ),
            DISCARDED_TX_GRACE_PERIOD_SECONDS=int_from_env(
                'DISCARDED_TX_GRACE_PERIOD_SECONDS', cls.DISCARDED_TX_GRACE_PERIOD_SECONDS
            ),
            EVENTS_PAGE_LIMIT=int_from_env('EVENTS_PAGE_LIMIT', cls.EVENTS_PAGE_LIMIT),
            SERVER_HOSTNAME=from_env('SERVER_HOSTNAME', cls.SERVER_HOSTNAME),
            SERVER_PORT=int_from_env('SERVER_PORT', cls.SERVER_PORT),
            LOG_LEVEL=from_env('LOG_LEVEL', cls.LOG_LEVEL),
        )
