from database import db


class SurveyPermission(db.Model):
    """
    who may answer a private survey. revoking keeps the row with granted=False
    so the mapping reads false afterwards, same as never granted
    """

    __tablename__ = 'survey_permissions'

    survey_id = db.Column(db.Integer, db.ForeignKey('surveys.id'), primary_key=True)
    address = db.Column(db.String(42), primary_key=True)
    granted = db.Column(db.Boolean, default=False, nullable=False)

    def __repr__(self):
        return f'<SurveyPermission {self.survey_id}:{self.address}={self.granted}>'
