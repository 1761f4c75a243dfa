from database import db
from datetime import datetime


class Ciphertext(db.Model):
    """
    A value held by the fhe coprocessor, addressed by its 32 byte handle.

    Client inputs arrive bound to a (contract, user) pair and stay unverified
    until the registry presents them together with their input proof.
    Ciphertexts produced by the coprocessor itself are verified from the start.
    """

    __tablename__ = 'ciphertexts'

    handle = db.Column(db.String(66), primary_key=True)
    fhe_type = db.Column(db.String(16), nullable=False, default='euint32')
    payload = db.Column(db.LargeBinary, nullable=False)
    contract = db.Column(db.String(42))
    owner = db.Column(db.String(42))
    verified = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    allowances = db.relationship('CiphertextAllowance', backref='ciphertext', lazy=True)

    def __repr__(self):
        return f'<Ciphertext {self.handle[:10]}... {self.fhe_type}>'


class CiphertextAllowance(db.Model):
    """acl entry: address may use or decrypt the ciphertext"""

    __tablename__ = 'ciphertext_allowances'

    handle = db.Column(db.String(66), db.ForeignKey('ciphertexts.handle'), primary_key=True)
    address = db.Column(db.String(42), primary_key=True)

    def __repr__(self):
        return f'<CiphertextAllowance {self.handle[:10]}... -> {self.address}>'
