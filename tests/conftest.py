"""Pytest configuration and fixtures."""
import pytest
from eth_account import Account
from eth_account.messages import encode_defunct

from app import create_app
from config import TestConfig
from database import db
from fhe.decryption import DecryptionSignature
from fhe.relayer import create_encrypted_input, generate_keypair


def hex_signature(signed):
    return '0x' + bytes(signed.signature).hex()


@pytest.fixture
def app(tmp_path):
    """Fresh app with an in-memory database; an app context stays pushed for the test."""

    class IsolatedConfig(TestConfig):
        UPLOAD_FOLDER = str(tmp_path / 'upload')

    app = create_app(IsolatedConfig)

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def contract(app):
    return app.config['CONTRACT_ADDRESS']


@pytest.fixture
def owner():
    return Account.create()


@pytest.fixture
def user1():
    return Account.create()


@pytest.fixture
def user2():
    return Account.create()


def login(client, account):
    """Sign in ``account`` on ``client`` through the nonce / signature flow."""
    challenge = client.post('/auth/nonce', json={'address': account.address}).get_json()
    signed = account.sign_message(encode_defunct(text=challenge['message']))
    response = client.post('/auth/verify', json={'signature': hex_signature(signed)})
    assert response.status_code == 200
    return client


@pytest.fixture
def client_for(app):
    """Factory: a test client already signed in as the given wallet."""

    def make(account):
        return login(app.test_client(), account)

    return make


@pytest.fixture
def encrypt(contract):
    """Encrypt one uint32 for ``account`` the way the relayer sdk does."""

    def make(account, value):
        encrypted = create_encrypted_input(contract, account.address).add32(value).encrypt()
        return encrypted['handles'][0], encrypted['inputProof']

    return make


@pytest.fixture
def decryption_signature(app, contract):
    """Factory: a signed user decryption request for ``account``."""

    def make(account, duration_days=1, start_timestamp=None):
        signature = DecryptionSignature.create(
            generate_keypair(),
            [contract],
            account.address,
            chain_id=app.config['CHAIN_ID'],
            verifying_contract=contract,
            duration_days=duration_days,
            start_timestamp=start_timestamp,
        )
        return signature.sign(account.key)

    return make
