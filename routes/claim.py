import logging

from flask import Blueprint, current_app, jsonify, request

from routes.errors import InternalServerError, NotFoundError, UnauthorizedError
from services.sbt_mint import (
    SbtMintError,
    SbtMintStateNotFoundError,
    SbtMintStateQueryError,
    SbtMintStateSavingError,
)
from utils.validation import get_ethereum_address_param, get_query_param

logger = logging.getLogger(__name__)

claim_bp = Blueprint('claim', __name__)


def _services():
    return current_app.extensions['sbt_issuer']


@claim_bp.route('/claim', methods=['POST'])
def claim():
    """Mint an SBT to 'to' after checking that 'signature' is the holder's signature of the address"""
    to = get_ethereum_address_param(request, 'to')
    signature = get_query_param(request, 'signature')

    services = _services()
    if not services.signature_verifier.verify(to, signature, to):
        logger.warning(f"Could not verify signature of {to}")
        raise UnauthorizedError("Could not verify signature")

    try:
        tx_hash = services.sbt_mint.start_minting(to)
    except SbtMintStateSavingError as e:
        raise InternalServerError(
            "Minting transaction was submitted but could not be tracked", cause=e, severity=logging.CRITICAL
        )
    except SbtMintError as e:
        raise InternalServerError("Failed to start minting", cause=e)

    return jsonify({'txHash': tx_hash}), 200


@claim_bp.route('/status', methods=['GET'])
def status():
    """Get the state of an SBT minting transaction"""
    tx_hash = get_query_param(request, 'txHash')
    try:
        sbt = _services().sbt_mint.get_sbt_state(tx_hash)
    except SbtMintStateNotFoundError as e:
        raise NotFoundError(f"SBT minting transaction {tx_hash} not found", cause=e)
    except SbtMintStateQueryError as e:
        raise InternalServerError("Failed to get SBT state", cause=e)

    return jsonify(sbt.to_dict()), 200


@claim_bp.route('/health', methods=['GET'])
def health():
    return jsonify({'status': 'ok'}), 200
