import pytest

from database import db
from data_tables.question import Question, QuestionType
from fhe.backends import MockBackend, UINT32_MODULUS, create_backend
from fhe.coprocessor import get_coprocessor, unpack_proof
from fhe.relayer import create_encrypted_input, encode_answer
from utils.errors import InvalidRequest, NotFound


class TestMockBackend:

    def test_add_and_decrypt(self):
        backend = MockBackend()
        total = backend.add(backend.encrypt(40), backend.encrypt(2))
        assert backend.decrypt(total) == 42

    def test_addition_wraps_like_euint32(self):
        backend = MockBackend()
        total = backend.add(backend.encrypt(UINT32_MODULUS - 1), backend.encrypt(3))
        assert backend.decrypt(total) == 2

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_backend({'FHE_BACKEND': 'paillier'})


class TestTensealBackend:

    def test_homomorphic_sum(self, tmp_path):
        pytest.importorskip('tenseal')
        key_path = str(tmp_path / 'keys' / 'context.bin')

        backend = create_backend({
            'FHE_BACKEND': 'tenseal',
            'FHE_KEY_PATH': key_path,
            'FHE_POLY_MODULUS_DEGREE': 4096,
            'FHE_PLAIN_MODULUS': 1032193,
        })

        total = backend.encrypt(0)
        for value in (3, 4, 5):
            total = backend.add(total, backend.encrypt(value))
        assert backend.decrypt(total) == 12

        # a second backend on the same key file can read the first one's ciphertexts
        reloaded = create_backend({'FHE_BACKEND': 'tenseal', 'FHE_KEY_PATH': key_path})
        assert reloaded.decrypt(total) == 12


class TestCoprocessor:

    def test_add_creates_new_handle(self, app):
        coprocessor = get_coprocessor()
        left = coprocessor.trivial_encrypt(10)
        right = coprocessor.trivial_encrypt(5)

        total = coprocessor.add(left, right)

        assert total not in (left, right)
        assert coprocessor.decrypt(total) == 15
        assert coprocessor.decrypt(left) == 10

    def test_acl(self, app, owner, user1):
        coprocessor = get_coprocessor()
        handle = coprocessor.trivial_encrypt(1)

        coprocessor.allow(handle, owner.address)
        coprocessor.allow(handle, owner.address)
        db.session.flush()

        assert coprocessor.is_allowed(handle, owner.address)
        assert not coprocessor.is_allowed(handle, user1.address)

    def test_random_values_differ(self, app):
        coprocessor = get_coprocessor()
        values = {coprocessor.decrypt(coprocessor.random_uint32()) for _ in range(5)}
        assert len(values) > 1
        assert all(0 <= value < UINT32_MODULUS for value in values)

    def test_unknown_handle(self, app):
        with pytest.raises(NotFound):
            get_coprocessor().decrypt('0x' + 'ab' * 32)

    def test_proof_lists_every_input_handle(self, app, contract, user1):
        encrypted = create_encrypted_input(contract, user1.address).add32(1).add32(2).encrypt()

        handles, signature = unpack_proof(encrypted['inputProof'])

        assert handles == encrypted['handles']
        assert len(signature) == 65

    def test_verify_input(self, app, contract, user1):
        coprocessor = get_coprocessor()
        encrypted = create_encrypted_input(contract, user1.address).add32(7).encrypt()
        handle = encrypted['handles'][0]

        ciphertext = coprocessor.verify_input(handle, encrypted['inputProof'], contract, user1.address)

        assert ciphertext.verified
        assert coprocessor.is_allowed(handle, contract)
        assert coprocessor.decrypt(handle) == 7

    def test_proof_signed_by_someone_else(self, app, contract, user1):
        from fhe.coprocessor import Coprocessor
        from fhe.backends import MockBackend

        rogue = Coprocessor(MockBackend())
        encrypted = create_encrypted_input(contract, user1.address, coprocessor=rogue).add32(7).encrypt()

        with pytest.raises(InvalidRequest, match="Invalid input proof"):
            get_coprocessor().verify_input(encrypted['handles'][0], encrypted['inputProof'],
                                           contract, user1.address)


class TestEncryptedInput:

    @pytest.mark.parametrize('value', [-1, 2 ** 32, 1.5, True, '3'])
    def test_rejects_values_outside_uint32(self, app, contract, user1, value):
        with pytest.raises(InvalidRequest, match="out of range"):
            create_encrypted_input(contract, user1.address).add32(value)

    def test_empty_input(self, app, contract, user1):
        with pytest.raises(InvalidRequest, match="Nothing to encrypt"):
            create_encrypted_input(contract, user1.address).encrypt()

    def test_bad_user_address(self, app, contract):
        with pytest.raises(InvalidRequest, match="Invalid address"):
            create_encrypted_input(contract, 'not-an-address')


def make_question(kind, options=(), max_rating=0):
    return Question(question_type=int(kind), question_text="Q", options=list(options), max_rating=max_rating)


class TestEncodeAnswer:

    def test_single_choice_is_the_option_position(self):
        question = make_question(QuestionType.SINGLE_CHOICE, ["Red", "Blue", "Green"])
        assert encode_answer(question, "Red") == 1
        assert encode_answer(question, "Green") == 3

    def test_multiple_choice_sums_positions(self):
        question = make_question(QuestionType.MULTIPLE_CHOICE, ["X", "Y", "Z"])
        assert encode_answer(question, ["X", "Z"]) == 4
        assert encode_answer(question, ["Y"]) == 2

    def test_text_is_its_length(self):
        question = make_question(QuestionType.TEXT)
        assert encode_answer(question, "Great event") == 11

    def test_rating_is_the_value(self):
        question = make_question(QuestionType.RATING, max_rating=5)
        assert encode_answer(question, 1) == 1
        assert encode_answer(question, 5) == 5

    @pytest.mark.parametrize('kind, options, max_rating, answer, reason', [
        (QuestionType.SINGLE_CHOICE, ["Red"], 0, "Purple", "Unknown option"),
        (QuestionType.SINGLE_CHOICE, ["Red"], 0, 0, "Unknown option"),
        (QuestionType.MULTIPLE_CHOICE, ["X", "Y"], 0, [], "at least one option"),
        (QuestionType.MULTIPLE_CHOICE, ["X", "Y"], 0, ["X", "W"], "Unknown option"),
        (QuestionType.MULTIPLE_CHOICE, ["X", "Y"], 0, ["X", "X"], "more than once"),
        (QuestionType.TEXT, [], 0, "   ", "cannot be empty"),
        (QuestionType.RATING, [], 5, 0, "Rating out of range"),
        (QuestionType.RATING, [], 5, 6, "Rating out of range"),
        (QuestionType.RATING, [], 5, "4", "Rating out of range"),
        (QuestionType.RATING, [], 5, True, "Rating out of range"),
    ])
    def test_rejected_answers(self, kind, options, max_rating, answer, reason):
        with pytest.raises(InvalidRequest, match=reason):
            encode_answer(make_question(kind, options, max_rating), answer)
