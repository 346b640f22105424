from eth_account import Account
from web3 import Web3

from services.multibaas_client import to_int

EIP1559_TX_TYPE = 2


class Web3Service:
    """Holds the issuer key and signs transactions locally"""

    def __init__(self, private_key):
        if not private_key:
            raise ValueError("Issuer private key is required")
        self.account = Account.from_key(private_key)

    @property
    def default_account(self):
        """Get default account address"""
        return self.account.address

    def to_checksum_address(self, address):
        """Convert address to checksum format"""
        return Web3.to_checksum_address(address)

    def format_transaction(self, tx, chain_id):
        """
        Convert an unsigned transaction as returned by MultiBaas into
        the field names eth_account expects

        Args:
            tx (dict): Unsigned transaction ('to', 'nonce', 'data', 'value', 'gas', 'gasFeeCap', 'gasTipCap', 'type')
            chain_id (int): Chain the transaction is valid on

        Returns:
            dict: Transaction ready to be signed
        """
        tx_type = to_int(tx.get('type')) or 0
        formatted = {
            'to': self.to_checksum_address(tx['to']),
            'nonce': to_int(tx['nonce']),
            'data': tx.get('data') or '0x',
            'value': to_int(tx.get('value')) or 0,
            'gas': to_int(tx['gas']),
            'chainId': chain_id,
        }
        if tx_type == EIP1559_TX_TYPE:
            formatted['type'] = EIP1559_TX_TYPE
            formatted['maxFeePerGas'] = to_int(tx['gasFeeCap'])
            formatted['maxPriorityFeePerGas'] = to_int(tx['gasTipCap'])
        else:
            # Legacy transactions carry a single gas price
            formatted['gasPrice'] = to_int(tx.get('gasPrice') or tx['gasFeeCap'])
        return formatted

    def sign_transaction(self, tx, chain_id):
        """Sign an unsigned MultiBaas transaction and return the raw transaction as a 0x hex string"""
        signed_tx = self.account.sign_transaction(self.format_transaction(tx, chain_id))
        # Handle both old and new eth-account versions
        raw_tx = getattr(signed_tx, 'raw_transaction', None) or getattr(signed_tx, 'rawTransaction', None)
        if not raw_tx:
            raise AttributeError("SignedTransaction object has no rawTransaction or raw_transaction attribute")
        return Web3.to_hex(raw_tx)
