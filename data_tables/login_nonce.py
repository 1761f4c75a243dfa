from database import db
from datetime import datetime, timedelta


class LoginNonce(db.Model):
    """
    A wallet login challenge. The session cookie only says which nonce the
    browser asked for; whether it is still unused lives here, so an old
    cookie sent again with its signature cannot sign anyone in twice.
    """

    __tablename__ = 'login_nonces'

    nonce = db.Column(db.String(64), primary_key=True)
    address = db.Column(db.String(42), nullable=False)
    issued_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    used = db.Column(db.Boolean, default=False, nullable=False)

    def is_usable(self, address, ttl_seconds, now=None):
        now = now or datetime.utcnow()
        if self.used or self.address != address:
            return False
        return now < self.issued_at + timedelta(seconds=ttl_seconds)

    def __repr__(self):
        return f'<LoginNonce {self.nonce[:8]}... {self.address} used={self.used}>'
