from flask import Blueprint, current_app, jsonify

from database import db
from fhe.coprocessor import get_coprocessor
from fhe.decryption import DecryptionSignature
from fhe.relayer import create_encrypted_input, encode_answer, generate_keypair, user_decrypt
from services import survey_registry
from utils.errors import InvalidRequest
from utils.payload import request_json, require_fields

"""
the relayer: what a wallet frontend talks to before and after the registry.
it encrypts answers into handles plus an input proof, and turns signed
decryption requests back into plaintext
"""
relayer_bp = Blueprint('relayer', __name__, url_prefix='/api/relayer')


@relayer_bp.route('/info')
def info():
    coprocessor = get_coprocessor()
    return jsonify({
        'chainId': current_app.config['CHAIN_ID'],
        'contractAddress': current_app.config['CONTRACT_ADDRESS'],
        'inputSigner': coprocessor.signer_address,
        'backend': coprocessor.backend.name,
    })


@relayer_bp.route('/keypair', methods=['POST'])
def keypair():
    return jsonify(generate_keypair())


@relayer_bp.route('/encrypt', methods=['POST'])
def encrypt():
    """Encrypt raw uint32 ``values``, or one ``answer`` to question ``questionId``."""
    data = request_json()
    contract, user = require_fields(data, 'contractAddress', 'userAddress')

    if 'questionId' in data:
        question_id, answer = require_fields(data, 'questionId', 'answer')
        if isinstance(question_id, bool) or not isinstance(question_id, int):
            raise InvalidRequest('questionId must be an integer')
        values = [encode_answer(survey_registry.get_question(question_id), answer)]
    else:
        (values,) = require_fields(data, 'values')

    if not isinstance(values, list):
        raise InvalidRequest('values must be a list')

    encrypted_input = create_encrypted_input(contract, user)
    for value in values:
        encrypted_input.add32(value)

    encrypted = encrypted_input.encrypt()
    db.session.commit()
    return jsonify(encrypted), 201


@relayer_bp.route('/user-decrypt', methods=['POST'])
def decrypt():
    data = request_json()
    pairs, signature = require_fields(data, 'handleContractPairs', 'signature')

    if not isinstance(pairs, list) or not all(isinstance(pair, dict) for pair in pairs):
        raise InvalidRequest('handleContractPairs must be a list of objects')
    if not isinstance(signature, dict):
        raise InvalidRequest('signature must be an object')

    results = user_decrypt(pairs, DecryptionSignature.from_dict(signature))
    return jsonify({'results': results})
