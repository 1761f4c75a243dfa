from database import db
from datetime import datetime, timezone


def to_timestamp(moment):
    """Naive UTC datetime -> unix seconds, the way the registry reports times."""
    if moment is None:
        return 0
    return int(moment.replace(tzinfo=timezone.utc).timestamp())


class Survey(db.Model):
    """
    This shows an individual survey and its connections:
        - each survey is owned by the wallet that created it
        - each survey has many questions
        - each survey is connected to many responses
        - private surveys have a permission list
    """

    __tablename__ = 'surveys'

    # Columns
    id = db.Column(db.Integer, primary_key=True)
    creator = db.Column(db.String(42), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default='')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)
    is_active = db.Column(db.Boolean, default=False, nullable=False)
    is_public = db.Column(db.Boolean, default=True, nullable=False)
    question_count = db.Column(db.Integer, default=0, nullable=False)
    response_count = db.Column(db.Integer, default=0, nullable=False)

    # Relationships
    questions = db.relationship('Question', backref='survey', lazy=True, order_by='Question.id')
    responses = db.relationship('Response', backref='survey', lazy=True, order_by='Response.id')
    permissions = db.relationship('SurveyPermission', backref='survey', lazy=True)

    def is_expired(self, now=None):
        now = now or datetime.utcnow()
        return now >= self.expires_at

    def is_open(self, now=None):
        """Responses are only accepted while active and before expiry."""
        return self.is_active and not self.is_expired(now)

    def to_dict(self):
        return {
            'id': self.id,
            'creator': self.creator,
            'title': self.title,
            'description': self.description or '',
            'createdAt': to_timestamp(self.created_at),
            'expiresAt': to_timestamp(self.expires_at),
            'isActive': self.is_active,
            'isPublic': self.is_public,
            'questionCount': self.question_count,
            'responseCount': self.response_count,
        }

    def __repr__(self):
        return f'<Survey {self.id}: {self.title}>'
