from database import db


class QuestionStats(db.Model):
    """
    Encrypted running total of every answer folded into one question.

    ``accumulator`` is a ciphertext handle; each submitted answer replaces it with
    the handle of (old total + answer). ``response_count`` is the plaintext number
    of folded answers, the same information the response records already expose.
    """

    __tablename__ = 'question_stats'

    question_id = db.Column(db.Integer, db.ForeignKey('questions.id'), primary_key=True)
    survey_id = db.Column(db.Integer, db.ForeignKey('surveys.id'), nullable=False)
    accumulator = db.Column(db.String(66), db.ForeignKey('ciphertexts.handle'))
    response_count = db.Column(db.Integer, default=0, nullable=False)

    def __repr__(self):
        return f'<QuestionStats q{self.question_id}: {self.response_count} answers>'
