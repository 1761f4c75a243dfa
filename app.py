import logging
import os

from flask import Flask, jsonify

from config import Config
from database import db
from data_tables.ciphertext import Ciphertext, CiphertextAllowance
from data_tables.login_nonce import LoginNonce
from data_tables.permission import SurveyPermission
from data_tables.question import Question
from data_tables.question_stats import QuestionStats
from data_tables.response import Response
from data_tables.share_id import ShareId
from data_tables.survey import Survey
from fhe.coprocessor import init_coprocessor
from routes.auth import auth_bp
from routes.registry import registry_bp
from routes.relayer import relayer_bp
from routes.surveys import survey_bp
from utils.deployments import get_contract_address
from utils.errors import RegistryError
from utils.mailer import mail

logger = logging.getLogger(__name__)


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    # the registry address clients bind inputs and decryption signatures to
    app.config.setdefault('CONTRACT_ADDRESS', get_contract_address(app.config['CHAIN_ID']))
    if not app.config['CONTRACT_ADDRESS']:
        raise RuntimeError(f"SurveyX has no deployment for chain {app.config['CHAIN_ID']}")

    # Initialize Flask-Mail
    mail.init_app(app)

    # connect database to app
    db.init_app(app)

    # register blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(survey_bp)
    app.register_blueprint(registry_bp)
    app.register_blueprint(relayer_bp)

    @app.errorhandler(RegistryError)
    def handle_registry_error(error):
        # nothing of a failed call may be committed
        db.session.rollback()
        logger.info("reverted: %s", error.reason)
        return jsonify(error.to_dict()), error.status_code

    # home route
    @app.route('/')
    def home():
        return jsonify({
            'name': 'SurveyX',
            'status': 'running',
            'chainId': app.config['CHAIN_ID'],
            'contractAddress': app.config['CONTRACT_ADDRESS'],
        })

    # create database folder if it doesnt exist
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite:///') and not app.config.get('TESTING'):
        database_folder = os.path.dirname(app.config['SQLALCHEMY_DATABASE_URI'][len('sqlite:///'):])
        if database_folder and not os.path.exists(database_folder):
            os.makedirs(database_folder)

    # create database tables when app starts
    with app.app_context():
        db.create_all()
        logger.info("database tables created")

    init_coprocessor(app)

    return app


if __name__ == '__main__':
    create_app().run(debug=True, port=5001, use_reloader=False)
