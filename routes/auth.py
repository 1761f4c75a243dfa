import logging
import secrets
from functools import wraps

from eth_account import Account
from eth_account.messages import encode_defunct
from flask import Blueprint, current_app, jsonify, session

from database import db
from data_tables.login_nonce import LoginNonce
from utils.addresses import normalize_address, same_address
from utils.errors import AccessDenied, InvalidRequest
from utils.payload import request_json, require_fields

logger = logging.getLogger(__name__)

"""
wallet login. the caller asks for a nonce, signs the login message with their
wallet (personal_sign) and sends the signature back. the recovered address is
kept in the flask session and is the caller of every registry operation
"""
auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


def login_message(address, nonce):
    return f"Sign in to SurveyX\n\nAddress: {address}\nNonce: {nonce}"


def current_caller():
    return session.get('wallet_address')


def require_caller():
    caller = current_caller()
    if not caller:
        raise AccessDenied('Connect a wallet first', status_code=401)
    return caller


def wallet_required(view):
    """Protect a route: the caller must have signed in with a wallet."""

    @wraps(view)
    def wrapped(*args, **kwargs):
        require_caller()
        return view(*args, **kwargs)

    return wrapped


@auth_bp.route('/nonce', methods=['POST'])
def nonce():
    data = request_json()
    (address,) = require_fields(data, 'address')
    address = normalize_address(address)

    login_nonce = secrets.token_hex(16)
    db.session.add(LoginNonce(nonce=login_nonce, address=address))
    db.session.commit()

    session['login_address'] = address
    session['login_nonce'] = login_nonce

    return jsonify({'address': address, 'nonce': login_nonce, 'message': login_message(address, login_nonce)})


@auth_bp.route('/verify', methods=['POST'])
def verify():
    data = request_json()
    (signature,) = require_fields(data, 'signature')

    address = session.pop('login_address', None)
    login_nonce = session.pop('login_nonce', None)
    if not address or not login_nonce:
        raise InvalidRequest('Request a login nonce first')

    # each nonce signs in once, whatever cookie it comes back with
    challenge = db.session.get(LoginNonce, login_nonce)
    if challenge is None or not challenge.is_usable(address, current_app.config['LOGIN_NONCE_TTL_SECONDS']):
        logger.info("login nonce for %s is unknown, used or expired", address)
        raise InvalidRequest('Request a login nonce first')
    challenge.used = True
    db.session.commit()

    try:
        recovered = Account.recover_message(
            encode_defunct(text=login_message(address, login_nonce)),
            signature=signature,
        )
    except Exception:
        logger.info("login signature could not be recovered for %s", address)
        raise AccessDenied('Invalid signature', status_code=401)

    if not same_address(recovered, address):
        logger.info("login signature for %s recovered to %s", address, recovered)
        raise AccessDenied('Invalid signature', status_code=401)

    session['wallet_address'] = recovered
    logger.info("wallet %s signed in", recovered)
    return jsonify({'address': recovered})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    session.pop('wallet_address', None)
    return jsonify({'address': None})


@auth_bp.route('/me')
def me():
    return jsonify({'address': current_caller()})
