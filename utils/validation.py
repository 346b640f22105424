from web3 import Web3

from routes.errors import BadRequestError


def get_query_param(request, name):
    """Get a query parameter that must be given exactly once"""
    values = request.args.getlist(name)
    if len(values) != 1 or not values[0]:
        raise BadRequestError(f'single "{name}" query parameter must be provided')
    return values[0]


def get_ethereum_address_param(request, name):
    value = get_query_param(request, name)
    if not Web3.is_address(value):
        raise BadRequestError(f'"{name}" query parameter is not a valid Ethereum address')
    return value
