"""
Client side of the fhe coprocessor: building encrypted inputs and asking for
plaintexts back. Mirrors the relayer sdk calls a wallet frontend makes:

    encrypted = create_encrypted_input(contract, user).add32(3).encrypt()
    registry.submit_response(..., encrypted['handles'][0], encrypted['inputProof'])

    signature = DecryptionSignature.create(generate_keypair(), [contract], user, ...).sign(key)
    user_decrypt([{'handle': h, 'contractAddress': contract}], signature)
"""
import logging
import secrets

from flask import current_app
from eth_utils import keccak

from data_tables.question import QuestionType
from fhe.coprocessor import get_coprocessor, to_hex
from utils.addresses import normalize_address, same_address
from utils.errors import DecryptionError, InvalidRequest

logger = logging.getLogger(__name__)

MAX_UINT32 = 2 ** 32 - 1


def generate_keypair():
    """Keypair a user decryption is addressed to. Opaque to the coprocessor."""
    private_key = secrets.token_bytes(32)
    return {
        'publicKey': to_hex(keccak(private_key)),
        'privateKey': to_hex(private_key),
    }


class EncryptedInput:

    def __init__(self, contract_address, user_address, coprocessor=None):
        self.contract_address = normalize_address(contract_address)
        self.user_address = normalize_address(user_address)
        self.coprocessor = coprocessor
        self.values = []

    def add32(self, value):
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_UINT32:
            raise InvalidRequest('Value out of range for euint32')
        self.values.append(value)
        return self

    def encrypt(self):
        if not self.values:
            raise InvalidRequest('Nothing to encrypt')

        coprocessor = self.coprocessor or get_coprocessor()
        handles, proof = coprocessor.register_inputs(self.contract_address, self.user_address, self.values)
        logger.debug("encrypted %d input(s) for %s", len(handles), self.user_address)
        return {'handles': handles, 'inputProof': proof}


def create_encrypted_input(contract_address, user_address, coprocessor=None):
    return EncryptedInput(contract_address, user_address, coprocessor)


def encode_answer(question, answer):
    """
    The uint32 an answer is encrypted as, so a question's encrypted total
    can be read back as a sum:

        single choice    position of the option, counting from 1
        multiple choice  sum of the positions of the chosen options
        text             length of the text
        rating           the rating, 1 to max_rating
    """
    options = list(question.options or [])
    kind = question.kind

    if kind == QuestionType.SINGLE_CHOICE:
        if not isinstance(answer, str) or answer not in options:
            raise InvalidRequest('Unknown option')
        return options.index(answer) + 1

    if kind == QuestionType.MULTIPLE_CHOICE:
        if not isinstance(answer, list) or not answer:
            raise InvalidRequest('Choose at least one option')
        if not all(isinstance(choice, str) and choice in options for choice in answer):
            raise InvalidRequest('Unknown option')
        if len(set(answer)) != len(answer):
            raise InvalidRequest('Option chosen more than once')
        return sum(options.index(choice) + 1 for choice in answer)

    if kind == QuestionType.TEXT:
        if not isinstance(answer, str) or not answer.strip():
            raise InvalidRequest('Answer cannot be empty')
        return len(answer)

    if isinstance(answer, bool) or not isinstance(answer, int) or not 1 <= answer <= question.max_rating:
        raise InvalidRequest('Rating out of range')
    return answer


def user_decrypt(handle_contract_pairs, decryption_signature, coprocessor=None, now=None):
    """
    Decrypt handles for the user who signed ``decryption_signature``.

    The signature must be made for this chain and registry. Every handle must
    belong to the registry, be listed under a contract the signature covers and
    be allowed to the user in the acl; otherwise nothing is decrypted at all.
    """
    coprocessor = coprocessor or get_coprocessor()
    max_days = current_app.config.get('DECRYPTION_MAX_DURATION_DAYS')
    registry = current_app.config['CONTRACT_ADDRESS']

    user = decryption_signature.verify(now=now, max_duration_days=max_days)

    if decryption_signature.chain_id != current_app.config['CHAIN_ID'] or \
            not same_address(decryption_signature.verifying_contract, registry):
        logger.info("decryption signature of %s is for chain %s at %s", user,
                    decryption_signature.chain_id, decryption_signature.verifying_contract)
        raise DecryptionError('Decryption signature is for another deployment')

    handles = []
    for pair in handle_contract_pairs:
        handle = pair.get('handle')
        contract = pair.get('contractAddress')

        if not isinstance(handle, str):
            raise InvalidRequest('Invalid ciphertext handle')

        if not decryption_signature.covers(contract):
            raise DecryptionError('Contract not covered by decryption signature')

        if not same_address(contract, registry):
            raise DecryptionError('Unknown contract address')

        ciphertext = coprocessor.get(handle.lower())
        if not coprocessor.is_allowed(ciphertext.handle, registry):
            raise DecryptionError('Handle does not belong to contract')

        if not coprocessor.is_allowed(ciphertext.handle, user):
            logger.info("user %s not allowed to decrypt %s", user, handle)
            raise DecryptionError('User is not allowed to decrypt this handle')

        handles.append(ciphertext.handle)

    return {handle: coprocessor.decrypt(handle) for handle in handles}
