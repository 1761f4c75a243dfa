from database import db
from datetime import datetime

from data_tables.survey import to_timestamp


class ShareId(db.Model):
    """An encrypted random share code, readable only by whoever asked for it."""

    __tablename__ = 'share_ids'

    id = db.Column(db.Integer, primary_key=True)
    handle = db.Column(db.String(66), db.ForeignKey('ciphertexts.handle'), nullable=False, unique=True)
    issued_by = db.Column(db.String(42), nullable=False, index=True)
    issued_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'handle': self.handle,
            'issuedBy': self.issued_by,
            'issuedAt': to_timestamp(self.issued_at),
        }

    def __repr__(self):
        return f'<ShareId {self.id} for {self.issued_by}>'
