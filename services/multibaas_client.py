"""
MultiBaas Client
Thin wrapper around the MultiBaas REST API used to build, submit and track transactions
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Union

import requests

logger = logging.getLogger(__name__)

API_PREFIX = '/api/v0'


class MultiBaasError(Exception):
    """Raised when the MultiBaas API or the transport to it fails"""

    def __init__(self, message, status_code=None, body=None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class MultiBaasNotFoundError(MultiBaasError):
    """The requested resource does not exist (HTTP 404 with a 404 body status)"""


class MultiBaasUnexpectedResponseError(MultiBaasError):
    """The API answered with a payload we do not know how to interpret"""


@dataclass
class MethodCallResponse:
    kind = 'MethodCallResponse'
    output: Any


@dataclass
class TransactionToSignResponse:
    kind = 'TransactionToSignResponse'
    tx: dict
    submitted: bool = False


ContractCallResult = Union[MethodCallResponse, TransactionToSignResponse]


@dataclass
class ChainStatus:
    chain_id: int
    block_number: Optional[int] = None


@dataclass
class SubmittedTransaction:
    hash: str
    to_address: Optional[str]
    from_address: Optional[str]  # Not reliably echoed back by the API
    value: int
    nonce: int
    gas: int


@dataclass
class TransactionData:
    is_pending: bool
    from_address: Optional[str]
    block_number: Optional[int]
    block_hash: Optional[str] = None


def parse_contract_call_result(result) -> ContractCallResult:
    """Turn the 'kind'-tagged method call result into its typed variant"""
    kind = result.get('kind') if isinstance(result, dict) else None
    if kind == MethodCallResponse.kind:
        return MethodCallResponse(output=result.get('output'))
    if kind == TransactionToSignResponse.kind:
        return TransactionToSignResponse(tx=result['tx'], submitted=bool(result.get('submitted', False)))
    raise MultiBaasUnexpectedResponseError(f"Unexpected contract call result kind: {kind!r}", body=result)


def to_int(value):
    """Accept both hex strings and plain integers, as the API mixes them"""
    if value is None:
        return None
    if isinstance(value, str):
        return int(value, 16) if value.startswith(('0x', '0X')) else int(value)
    return int(value)


class MultiBaasClient:
    """Client for the subset of the MultiBaas API the issuer needs"""

    def __init__(self, base_path, api_key, timeout=30, session=None):
        self.base_url = base_path.rstrip('/') + API_PREFIX
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {api_key}',
            'Accept': 'application/json',
        })

    def _request(self, method, path, **kwargs):
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise MultiBaasError(f"{method} {path} failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.ok:
            body_status = body.get('status') if isinstance(body, dict) else None
            message = body.get('message') if isinstance(body, dict) else response.text
            error_message = (
                f"MultiBaas API {method} {path} failed with status code "
                f"'{response.status_code}' and message: {message}"
            )
            # A missing resource is reported both in the status line and in the body
            if response.status_code == 404 and body_status == 404:
                raise MultiBaasNotFoundError(error_message, response.status_code, body)
            raise MultiBaasError(error_message, response.status_code, body)

        if not isinstance(body, dict) or 'result' not in body:
            raise MultiBaasUnexpectedResponseError(
                f"MultiBaas API {method} {path} returned no result", response.status_code, body
            )
        return body['result']

    def call_contract_function(self, chain, address_or_alias, contract_label, method, args, from_address=None) -> ContractCallResult:
        """
        Call a contract method. Read-only methods return their output,
        state-changing methods return an unsigned transaction.

        Args:
            chain (str): Chain name, e.g. 'ethereum'
            address_or_alias (str): Deployed contract address or its alias
            contract_label (str): Label of the contract ABI
            method (str): Contract method name
            args (list): Method arguments
            from_address (str): Sender for state-changing calls

        Returns:
            MethodCallResponse or TransactionToSignResponse
        """
        payload = {'args': list(args)}
        if from_address:
            payload['from'] = from_address
        result = self._request(
            'POST',
            f'chains/{chain}/addresses/{address_or_alias}/contracts/{contract_label}/methods/{method}',
            json=payload,
        )
        return parse_contract_call_result(result)

    def get_chain_status(self, chain) -> ChainStatus:
        result = self._request('GET', f'chains/{chain}/status')
        return ChainStatus(chain_id=int(result['chainID']), block_number=result.get('blockNumber'))

    def submit_signed_transaction(self, chain, signed_tx) -> SubmittedTransaction:
        result = self._request('POST', f'chains/{chain}/transactions/submit', json={'signedTx': signed_tx})
        tx = result['tx']
        return SubmittedTransaction(
            hash=tx['hash'],
            to_address=tx.get('to'),
            from_address=tx.get('from'),
            value=to_int(tx.get('value')) or 0,
            nonce=to_int(tx.get('nonce')) or 0,
            gas=to_int(tx.get('gas')) or 0,
        )

    def get_transaction(self, chain, tx_hash) -> TransactionData:
        """
        Get a transaction by hash.

        Raises:
            MultiBaasNotFoundError: the transaction is unknown to the node
        """
        result = self._request('GET', f'chains/{chain}/transactions/{tx_hash}')
        return TransactionData(
            is_pending=bool(result.get('isPending')),
            from_address=result.get('from'),
            block_number=to_int(result.get('blockNumber')),
            block_hash=result.get('blockHash'),
        )

    def list_events(self, chain, contract_label=None, contract_address=None, event_signature=None,
                    tx_hash=None, limit=None, offset=None) -> List[dict]:
        """List emitted contract events, newest first. The API does not paginate beyond limit/offset."""
        params = {
            'chain': chain,
            'contract_label': contract_label,
            'contract_address': contract_address,
            'event_signature': event_signature,
            'tx_hash': tx_hash,
            'limit': limit,
            'offset': offset,
        }
        result = self._request('GET', 'events', params={k: v for k, v in params.items() if v is not None})
        if not isinstance(result, list):
            raise MultiBaasUnexpectedResponseError("Events result is not a list", body=result)
        return result
