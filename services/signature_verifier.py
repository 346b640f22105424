import logging
from abc import ABC, abstractmethod

from eth_account import Account
from eth_account.messages import encode_defunct

logger = logging.getLogger(__name__)


class SignatureVerifier(ABC):
    @abstractmethod
    def verify(self, message, signature, address) -> bool:
        """Whether signature is the signature of message by address"""


class EthAccountSignatureVerifier(SignatureVerifier):
    """Checks EIP-191 personal_sign signatures"""

    def verify(self, message, signature, address) -> bool:
        try:
            recovered = Account.recover_message(encode_defunct(text=message), signature=signature)
        except Exception as e:
            # eth_account raises a variety of errors for malformed signatures
            logger.info(f"Could not recover signer: {e}")
            return False
        return recovered.lower() == address.lower()
