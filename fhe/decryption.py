"""
Decryption signatures.

Before the coprocessor hands a plaintext back, the user signs an EIP-712
message naming the public key the result is meant for, the contracts whose
handles may be decrypted and how long the authorisation lasts. One signature
covers every handle of those contracts for the whole window, so a client can
keep it and reuse it.
"""
import time

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import to_bytes

from utils.addresses import normalize_address, same_address
from utils.errors import DecryptionError

SECONDS_PER_DAY = 24 * 60 * 60

EIP712_DOMAIN_TYPE = [
    {'name': 'name', 'type': 'string'},
    {'name': 'version', 'type': 'string'},
    {'name': 'chainId', 'type': 'uint256'},
    {'name': 'verifyingContract', 'type': 'address'},
]

USER_DECRYPT_TYPE = [
    {'name': 'publicKey', 'type': 'bytes'},
    {'name': 'contractAddresses', 'type': 'address[]'},
    {'name': 'startTimestamp', 'type': 'uint256'},
    {'name': 'durationDays', 'type': 'uint256'},
]


def build_typed_data(public_key, contract_addresses, start_timestamp, duration_days,
                     chain_id, verifying_contract):
    return {
        'types': {
            'EIP712Domain': EIP712_DOMAIN_TYPE,
            'UserDecryptRequestVerification': USER_DECRYPT_TYPE,
        },
        'primaryType': 'UserDecryptRequestVerification',
        'domain': {
            'name': 'Decryption',
            'version': '1',
            'chainId': chain_id,
            'verifyingContract': verifying_contract,
        },
        'message': {
            'publicKey': to_bytes(hexstr=public_key),
            'contractAddresses': list(contract_addresses),
            'startTimestamp': start_timestamp,
            'durationDays': duration_days,
        },
    }


class DecryptionSignature:

    def __init__(self, public_key, contract_addresses, user_address, start_timestamp,
                 duration_days, chain_id, verifying_contract, signature=None, private_key=None):
        self.public_key = public_key
        self.contract_addresses = [normalize_address(address) for address in contract_addresses]
        self.user_address = normalize_address(user_address)
        self.start_timestamp = int(start_timestamp)
        self.duration_days = int(duration_days)
        self.chain_id = int(chain_id)
        self.verifying_contract = normalize_address(verifying_contract)
        self.signature = signature
        # the keypair's private half, only ever set on the client side
        self.private_key = private_key

    @classmethod
    def create(cls, keypair, contract_addresses, user_address, chain_id, verifying_contract,
               duration_days=365, start_timestamp=None):
        return cls(
            public_key=keypair['publicKey'],
            contract_addresses=contract_addresses,
            user_address=user_address,
            start_timestamp=start_timestamp if start_timestamp is not None else int(time.time()),
            duration_days=duration_days,
            chain_id=chain_id,
            verifying_contract=verifying_contract,
            private_key=keypair.get('privateKey'),
        )

    @classmethod
    def from_dict(cls, data):
        try:
            return cls(
                public_key=data['publicKey'],
                contract_addresses=data['contractAddresses'],
                user_address=data['userAddress'],
                start_timestamp=data['startTimestamp'],
                duration_days=data['durationDays'],
                chain_id=data['chainId'],
                verifying_contract=data['verifyingContract'],
                signature=data.get('signature'),
            )
        except (KeyError, TypeError, ValueError):
            raise DecryptionError('Malformed decryption signature', status_code=400)

    def to_dict(self):
        return {
            'publicKey': self.public_key,
            'contractAddresses': self.contract_addresses,
            'userAddress': self.user_address,
            'startTimestamp': self.start_timestamp,
            'durationDays': self.duration_days,
            'chainId': self.chain_id,
            'verifyingContract': self.verifying_contract,
            'signature': self.signature,
        }

    def typed_data(self):
        return build_typed_data(
            self.public_key,
            self.contract_addresses,
            self.start_timestamp,
            self.duration_days,
            self.chain_id,
            self.verifying_contract,
        )

    def sign(self, private_key):
        signed = Account.sign_message(encode_typed_data(full_message=self.typed_data()), private_key)
        self.signature = '0x' + bytes(signed.signature).hex()
        return self

    def recover_signer(self):
        if not self.signature:
            raise DecryptionError('Decryption request is not signed')
        try:
            return Account.recover_message(
                encode_typed_data(full_message=self.typed_data()),
                signature=self.signature,
            )
        except Exception:
            raise DecryptionError('Invalid decryption signature')

    def expires_at(self):
        return self.start_timestamp + self.duration_days * SECONDS_PER_DAY

    def is_time_valid(self, now=None):
        now = int(now if now is not None else time.time())
        return self.start_timestamp <= now < self.expires_at()

    def covers(self, contract_address):
        return any(same_address(contract_address, address) for address in self.contract_addresses)

    def verify(self, now=None, max_duration_days=None):
        """Raise DecryptionError unless the request may be honoured right now."""
        if max_duration_days is not None and self.duration_days > max_duration_days:
            raise DecryptionError('Decryption signature lasts too long')

        if self.duration_days <= 0:
            raise DecryptionError('Invalid decryption duration')

        if not self.is_time_valid(now):
            raise DecryptionError('Decryption signature is expired or not yet valid')

        signer = self.recover_signer()
        if not same_address(signer, self.user_address):
            raise DecryptionError('Decryption signature does not match user')

        return signer
