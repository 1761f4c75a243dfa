from database import db
from datetime import datetime

from data_tables.survey import to_timestamp


class Response(db.Model):
    """
    one encrypted answer of one respondent to one question. a respondent's
    answers to a survey are a group of these records sharing survey_id

    """

    __tablename__ = 'responses'
    __table_args__ = (
        db.UniqueConstraint('question_id', 'respondent', name='uq_response_question_respondent'),
    )

    id = db.Column(db.Integer, primary_key=True)
    survey_id = db.Column(db.Integer, db.ForeignKey('surveys.id'), nullable=False, index=True)
    question_id = db.Column(db.Integer, db.ForeignKey('questions.id'), nullable=False)
    respondent = db.Column(db.String(42), nullable=False, index=True)
    submitted_at = db.Column(db.DateTime, default=datetime.utcnow)

    # handle of the verified input ciphertext
    encrypted_value = db.Column(db.String(66), db.ForeignKey('ciphertexts.handle'), nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'surveyId': self.survey_id,
            'questionId': self.question_id,
            'respondent': self.respondent,
            'submittedAt': to_timestamp(self.submitted_at),
            'encryptedValue': self.encrypted_value,
        }

    def __repr__(self):
        return f'<Response {self.id} for Survey {self.survey_id}>'
