"""
Ciphertext arithmetic for the coprocessor.

A backend only knows how to turn a uint32 into bytes, add two of those byte
strings without looking inside, and get a number back out. Which backend runs
is picked by ``FHE_BACKEND`` in the config.
"""
import logging
import os
import secrets

logger = logging.getLogger(__name__)

UINT32_MODULUS = 2 ** 32


class MockBackend:
    """
    Plaintext stand-in used for local development and tests, the same idea as
    fhevm's mock mode: payloads are the 4 byte big-endian value and addition
    wraps like euint32 arithmetic.
    """

    name = 'mock'
    modulus = UINT32_MODULUS

    def encrypt(self, value):
        return (value % self.modulus).to_bytes(4, 'big')

    def add(self, left, right):
        total = int.from_bytes(left, 'big') + int.from_bytes(right, 'big')
        return self.encrypt(total)

    def decrypt(self, payload):
        return int.from_bytes(payload, 'big')


class TensealBackend:
    """
    BFV ciphertexts through TenSEAL. Values live in a one slot bfv vector and
    sums wrap at the plain modulus instead of 2**32.

    The context holds the secret key, so it is kept on disk at ``key_path``
    and created the first time the backend starts.
    """

    name = 'tenseal'

    def __init__(self, key_path, poly_modulus_degree=4096, plain_modulus=1032193):
        import tenseal as ts

        self._ts = ts
        self.modulus = plain_modulus
        self.context = self._load_or_create_context(key_path, poly_modulus_degree, plain_modulus)

    def _load_or_create_context(self, key_path, poly_modulus_degree, plain_modulus):
        ts = self._ts

        if key_path and os.path.exists(key_path):
            with open(key_path, 'rb') as key_file:
                logger.info("loading tenseal context from %s", key_path)
                return ts.context_from(key_file.read())

        context = ts.context(
            ts.SCHEME_TYPE.BFV,
            poly_modulus_degree=poly_modulus_degree,
            plain_modulus=plain_modulus,
        )

        if key_path:
            folder = os.path.dirname(key_path)
            if folder and not os.path.exists(folder):
                os.makedirs(folder)
            with open(key_path, 'wb') as key_file:
                key_file.write(context.serialize(save_secret_key=True))
            logger.info("created tenseal context at %s", key_path)

        return context

    def _vector(self, payload):
        return self._ts.bfv_vector_from(self.context, payload)

    def encrypt(self, value):
        return self._ts.bfv_vector(self.context, [value % self.modulus]).serialize()

    def add(self, left, right):
        return (self._vector(left) + self._vector(right)).serialize()

    def decrypt(self, payload):
        return self._vector(payload).decrypt()[0] % self.modulus


def create_backend(config):
    """Build the backend named in the app config."""
    backend_name = config.get('FHE_BACKEND', 'mock')

    if backend_name == 'mock':
        return MockBackend()

    if backend_name == 'tenseal':
        return TensealBackend(
            key_path=config.get('FHE_KEY_PATH'),
            poly_modulus_degree=config.get('FHE_POLY_MODULUS_DEGREE', 4096),
            plain_modulus=config.get('FHE_PLAIN_MODULUS', 1032193),
        )

    raise ValueError(f'Unknown FHE backend: {backend_name}')


def random_uint32():
    return secrets.randbits(32)
