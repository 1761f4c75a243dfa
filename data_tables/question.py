import enum

from database import db
"""
this is for one question of one survey. the answers never live here in the clear,
only their encrypted running total in QuestionStats

"""


class QuestionType(enum.IntEnum):
    SINGLE_CHOICE = 0
    MULTIPLE_CHOICE = 1
    TEXT = 2
    RATING = 3

    @property
    def is_choice(self):
        return self in (QuestionType.SINGLE_CHOICE, QuestionType.MULTIPLE_CHOICE)


class Question(db.Model):
    __tablename__ = 'questions'

    id = db.Column(db.Integer, primary_key=True)
    survey_id = db.Column(db.Integer, db.ForeignKey('surveys.id'), nullable=False, index=True)
    question_type = db.Column(db.Integer, nullable=False)
    question_text = db.Column(db.Text, nullable=False)
    options = db.Column(db.JSON, nullable=False, default=list)
    max_rating = db.Column(db.Integer, default=0, nullable=False)
    is_required = db.Column(db.Boolean, default=False, nullable=False)

    stats = db.relationship('QuestionStats', backref='question', uselist=False, lazy=True)

    @property
    def kind(self):
        return QuestionType(self.question_type)

    def question_data(self):
        """Same field order as getQuestionData: surveyId, type, text, maxRating, isRequired."""
        return [self.survey_id, self.question_type, self.question_text, self.max_rating, self.is_required]

    def to_dict(self):
        return {
            'id': self.id,
            'surveyId': self.survey_id,
            'type': self.question_type,
            'typeName': self.kind.name,
            'text': self.question_text,
            'options': list(self.options or []),
            'maxRating': self.max_rating,
            'isRequired': self.is_required,
        }

    def __repr__(self):
        return f'<Question {self.id}: {self.question_text[:50]}...'
