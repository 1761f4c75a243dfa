import os

"""
for all the settings for flask stored in one place such as secret key,
database, fhe coprocessor, upload limits, mail

"""

class Config:

    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-later')

    BASE_DIR = os.path.abspath(os.path.dirname(__file__))
    DATABASE_PATH = os.path.join(BASE_DIR, 'database', 'surveyx.db')
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', f'sqlite:///{DATABASE_PATH}')

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # chain the registry is deployed on, picks the address from utils/deployments.py
    CHAIN_ID = int(os.environ.get('CHAIN_ID', 31337))

    # fhe coprocessor settings
    FHE_BACKEND = os.environ.get('FHE_BACKEND', 'mock')  # 'mock' or 'tenseal'
    FHE_KEY_PATH = os.environ.get('FHE_KEY_PATH', os.path.join(BASE_DIR, 'database', 'fhe_context.bin'))
    FHE_POLY_MODULUS_DEGREE = int(os.environ.get('FHE_POLY_MODULUS_DEGREE', 4096))
    FHE_PLAIN_MODULUS = int(os.environ.get('FHE_PLAIN_MODULUS', 1032193))
    # key the coprocessor signs input proofs with, random per process when unset
    FHE_SIGNER_KEY = os.environ.get('FHE_SIGNER_KEY')

    DECRYPTION_MAX_DURATION_DAYS = int(os.environ.get('DECRYPTION_MAX_DURATION_DAYS', 365))

    # how long a wallet login nonce can be signed
    LOGIN_NONCE_TTL_SECONDS = int(os.environ.get('LOGIN_NONCE_TTL_SECONDS', 600))

    # upload settings

    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', 'upload')
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024 #16MB Max
    ALLOWED_FILE_TYPES = ['xlsx', 'xls']

    # email configuration
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 587))
    MAIL_USE_TLS = True
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')  # Your email
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')  # Your app password
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_USERNAME')


class TestConfig(Config):

    TESTING = True
    SECRET_KEY = 'test-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'

    FHE_BACKEND = 'mock'
    # hardhat account #0, fixed so proofs are reproducible across app instances
    FHE_SIGNER_KEY = '0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80'

    MAIL_SUPPRESS_SEND = True
    MAIL_USERNAME = 'surveyx@example.com'
    MAIL_PASSWORD = 'not-a-real-password'
    MAIL_DEFAULT_SENDER = 'surveyx@example.com'
