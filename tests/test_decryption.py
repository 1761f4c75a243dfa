import time

import pytest

from fhe.coprocessor import get_coprocessor
from fhe.decryption import DecryptionSignature, SECONDS_PER_DAY
from fhe.relayer import generate_keypair, user_decrypt
from utils.errors import DecryptionError, InvalidRequest


@pytest.fixture
def owned_handle(app, owner, contract):
    """A ciphertext of 21 held by the registry that the owner is allowed to decrypt."""
    coprocessor = get_coprocessor()
    handle = coprocessor.trivial_encrypt(21)
    coprocessor.allow(handle, contract)
    coprocessor.allow(handle, owner.address)
    return handle


def pair(handle, contract):
    return {'handle': handle, 'contractAddress': contract}


class TestDecryptionSignature:

    def test_signature_recovers_to_user(self, app, owner, decryption_signature):
        signature = decryption_signature(owner)
        assert signature.recover_signer() == owner.address
        assert signature.verify() == owner.address

    def test_round_trip_through_dict(self, app, owner, decryption_signature):
        signature = decryption_signature(owner)
        restored = DecryptionSignature.from_dict(signature.to_dict())

        assert restored.recover_signer() == owner.address
        assert 'privateKey' not in restored.to_dict()

    def test_wrong_user(self, app, owner, user1, decryption_signature):
        signature = decryption_signature(owner)
        forged = DecryptionSignature.from_dict({**signature.to_dict(), 'userAddress': user1.address})

        with pytest.raises(DecryptionError, match="does not match user"):
            forged.verify()

    def test_changed_contract_list_breaks_signature(self, app, owner, user1, decryption_signature):
        signature = decryption_signature(owner)
        widened = DecryptionSignature.from_dict({
            **signature.to_dict(),
            'contractAddresses': signature.contract_addresses + [user1.address],
        })

        with pytest.raises(DecryptionError, match="does not match user"):
            widened.verify()

    def test_expired(self, app, owner, decryption_signature):
        two_days_ago = int(time.time()) - 2 * SECONDS_PER_DAY
        signature = decryption_signature(owner, duration_days=1, start_timestamp=two_days_ago)

        with pytest.raises(DecryptionError, match="expired"):
            signature.verify()

    def test_not_yet_valid(self, app, owner, decryption_signature):
        tomorrow = int(time.time()) + SECONDS_PER_DAY
        signature = decryption_signature(owner, start_timestamp=tomorrow)

        with pytest.raises(DecryptionError, match="not yet valid"):
            signature.verify()

    def test_duration_limit(self, app, owner, decryption_signature):
        signature = decryption_signature(owner, duration_days=400)

        with pytest.raises(DecryptionError, match="lasts too long"):
            signature.verify(max_duration_days=365)

    def test_unsigned(self, app, owner, contract):
        unsigned = DecryptionSignature.create(generate_keypair(), [contract], owner.address, 31337, contract)

        with pytest.raises(DecryptionError, match="not signed"):
            unsigned.verify()

    def test_malformed(self, app):
        with pytest.raises(DecryptionError, match="Malformed"):
            DecryptionSignature.from_dict({'publicKey': '0x00'})


class TestUserDecrypt:

    def test_allowed_handle(self, owned_handle, owner, contract, decryption_signature):
        results = user_decrypt([pair(owned_handle, contract)], decryption_signature(owner))
        assert results == {owned_handle: 21}

    def test_handle_not_allowed(self, owned_handle, user1, contract, decryption_signature):
        with pytest.raises(DecryptionError, match="not allowed"):
            user_decrypt([pair(owned_handle, contract)], decryption_signature(user1))

    def test_contract_not_covered(self, owned_handle, owner, user1, decryption_signature):
        with pytest.raises(DecryptionError, match="not covered"):
            user_decrypt([pair(owned_handle, user1.address)], decryption_signature(owner))

    def test_keypair_shape(self):
        keypair = generate_keypair()
        assert keypair['publicKey'].startswith('0x') and len(keypair['publicKey']) == 66
        assert keypair['privateKey'] != keypair['publicKey']

    def test_signature_for_another_chain(self, owned_handle, owner, contract):
        signature = DecryptionSignature.create(
            generate_keypair(), [contract], owner.address, chain_id=1, verifying_contract=contract,
        ).sign(owner.key)

        with pytest.raises(DecryptionError, match="another deployment"):
            user_decrypt([pair(owned_handle, contract)], signature)

    def test_signature_for_another_registry(self, owned_handle, owner, contract, app):
        elsewhere = '0x' + '11' * 20
        signature = DecryptionSignature.create(
            generate_keypair(), [contract], owner.address,
            chain_id=app.config['CHAIN_ID'], verifying_contract=elsewhere,
        ).sign(owner.key)

        with pytest.raises(DecryptionError, match="another deployment"):
            user_decrypt([pair(owned_handle, contract)], signature)

    def test_covered_contract_that_is_not_the_registry(self, owned_handle, owner, user1, contract, app):
        signature = DecryptionSignature.create(
            generate_keypair(), [contract, user1.address], owner.address,
            chain_id=app.config['CHAIN_ID'], verifying_contract=contract,
        ).sign(owner.key)

        with pytest.raises(DecryptionError, match="Unknown contract address"):
            user_decrypt([pair(owned_handle, user1.address)], signature)

    def test_handle_outside_the_registry(self, app, owner, contract, decryption_signature):
        coprocessor = get_coprocessor()
        handle = coprocessor.trivial_encrypt(5)
        coprocessor.allow(handle, owner.address)

        with pytest.raises(DecryptionError, match="does not belong to contract"):
            user_decrypt([pair(handle, contract)], decryption_signature(owner))

    @pytest.mark.parametrize('handle', [12345, None, ['0x00']])
    def test_handle_must_be_a_string(self, owned_handle, owner, contract, decryption_signature, handle):
        with pytest.raises(InvalidRequest, match="Invalid ciphertext handle"):
            user_decrypt([pair(handle, contract)], decryption_signature(owner))
