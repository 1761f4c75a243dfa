"""
The fhe coprocessor the survey registry calls into.

It owns every ciphertext (stored in the ``ciphertexts`` table and addressed by a
32 byte handle), the acl saying which address may use which handle, and the
key that signs input proofs. Nothing here commits: changes ride on the
caller's session so a failed registry call leaves no stray ciphertexts.
"""
import logging
import secrets

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import keccak, to_bytes
from flask import current_app

from database import db
from data_tables.ciphertext import Ciphertext, CiphertextAllowance
from fhe.backends import create_backend, random_uint32
from utils.addresses import same_address
from utils.errors import InvalidRequest, NotFound

logger = logging.getLogger(__name__)

ZERO_HANDLE = '0x' + '00' * 32
HANDLE_SIZE = 32
SIGNATURE_SIZE = 65


def to_hex(raw):
    return '0x' + bytes(raw).hex()


def input_digest(contract, user, handles):
    """keccak(contract || user || handle_1 || ... || handle_n)"""
    packed = to_bytes(hexstr=contract) + to_bytes(hexstr=user)
    for handle in handles:
        packed += to_bytes(hexstr=handle)
    return keccak(packed)


def pack_proof(handles, signature):
    """proof layout: one byte handle count, the handles, then the 65 byte signature"""
    packed = bytes([len(handles)])
    for handle in handles:
        packed += to_bytes(hexstr=handle)
    return to_hex(packed + bytes(signature))


def unpack_proof(proof):
    if not isinstance(proof, str):
        raise InvalidRequest('Invalid input proof')

    try:
        raw = to_bytes(hexstr=proof)
    except (TypeError, ValueError):
        raise InvalidRequest('Invalid input proof')

    if len(raw) < 1:
        raise InvalidRequest('Invalid input proof')

    count = raw[0]
    expected_size = 1 + count * HANDLE_SIZE + SIGNATURE_SIZE
    if count == 0 or len(raw) != expected_size:
        raise InvalidRequest('Invalid input proof')

    handles = []
    for index in range(count):
        start = 1 + index * HANDLE_SIZE
        handles.append(to_hex(raw[start:start + HANDLE_SIZE]))

    signature = raw[1 + count * HANDLE_SIZE:]
    return handles, signature


class Coprocessor:

    def __init__(self, backend, signer_key=None):
        self.backend = backend
        self.signer = Account.from_key(signer_key) if signer_key else Account.create()

    @property
    def signer_address(self):
        return self.signer.address

    # storage helpers

    def _store(self, payload, verified, contract=None, owner=None):
        handle = to_hex(keccak(payload + secrets.token_bytes(16)))
        ciphertext = Ciphertext(
            handle=handle,
            fhe_type='euint32',
            payload=payload,
            contract=contract,
            owner=owner,
            verified=verified,
        )
        db.session.add(ciphertext)
        return ciphertext

    def get(self, handle):
        ciphertext = db.session.get(Ciphertext, handle) if handle else None
        if ciphertext is None:
            raise NotFound('Unknown ciphertext handle')
        return ciphertext

    # inputs

    def register_inputs(self, contract, user, values):
        """
        Encrypt client values bound to (contract, user).

        Returns the new handles and the input proof the contract must be
        handed together with them.
        """
        handles = []
        for value in values:
            ciphertext = self._store(self.backend.encrypt(value), verified=False,
                                     contract=contract, owner=user)
            handles.append(ciphertext.handle)

        signed = self.signer.sign_message(encode_defunct(primitive=input_digest(contract, user, handles)))
        return handles, pack_proof(handles, signed.signature)

    def verify_input(self, handle, proof, contract, user):
        """
        Check an input handle against its proof and make it usable by contract.

        A handle is accepted once; presenting it again fails the same way a
        forged proof does.
        """
        handles, signature = unpack_proof(proof)

        if not isinstance(handle, str) or handle.lower() not in [h.lower() for h in handles]:
            raise InvalidRequest('Invalid input proof')

        try:
            signer = Account.recover_message(
                encode_defunct(primitive=input_digest(contract, user, handles)),
                signature=signature,
            )
        except Exception:
            logger.info("input proof signature could not be recovered", exc_info=True)
            raise InvalidRequest('Invalid input proof')

        if not same_address(signer, self.signer_address):
            logger.info("input proof signed by %s, expected %s", signer, self.signer_address)
            raise InvalidRequest('Invalid input proof')

        ciphertext = db.session.get(Ciphertext, handle.lower())
        if ciphertext is None or ciphertext.verified:
            raise InvalidRequest('Invalid input proof')

        if not same_address(ciphertext.contract, contract) or not same_address(ciphertext.owner, user):
            raise InvalidRequest('Invalid input proof')

        ciphertext.verified = True
        self.allow(ciphertext.handle, contract)
        return ciphertext

    # arithmetic

    def add(self, left_handle, right_handle):
        left = self.get(left_handle)
        right = self.get(right_handle)
        return self._store(self.backend.add(left.payload, right.payload), verified=True).handle

    def trivial_encrypt(self, value):
        return self._store(self.backend.encrypt(value), verified=True).handle

    def random_uint32(self):
        return self.trivial_encrypt(random_uint32())

    # acl

    def allow(self, handle, address):
        existing = db.session.get(CiphertextAllowance, (handle, address))
        if existing is None:
            db.session.add(CiphertextAllowance(handle=handle, address=address))

    def is_allowed(self, handle, address):
        return db.session.get(CiphertextAllowance, (handle, address)) is not None

    def decrypt(self, handle):
        """Plaintext of a handle. Callers check the acl first."""
        return self.backend.decrypt(self.get(handle).payload)


def init_coprocessor(app):
    coprocessor = Coprocessor(
        backend=create_backend(app.config),
        signer_key=app.config.get('FHE_SIGNER_KEY'),
    )
    app.extensions['fhe_coprocessor'] = coprocessor
    logger.info("fhe coprocessor ready (backend=%s, signer=%s)",
                coprocessor.backend.name, coprocessor.signer_address)
    return coprocessor


def get_coprocessor():
    return current_app.extensions['fhe_coprocessor']
