import logging

from flask import current_app
from flask_mail import Mail, Message

logger = logging.getLogger(__name__)

mail = Mail()


def send_share_email(recipients, survey, share_link):
    """Send a survey's share link via email. Returns True if sent, False if not configured or failed."""

    # Don't even try if credentials aren't configured
    if not current_app.config.get('MAIL_USERNAME') or not current_app.config.get('MAIL_PASSWORD'):
        logger.warning("Email not configured: set MAIL_USERNAME and MAIL_PASSWORD environment variables.")
        return False

    visibility = 'public' if survey.is_public else 'private'
    access_note = ''
    if not survey.is_public:
        access_note = '\nThis survey is private: connect with the wallet the creator gave access to.\n'

    try:
        msg = Message(
            subject=f'You are invited to a survey: {survey.title}',
            recipients=list(recipients),
            body=f'''Hello,

You have been invited to answer the {visibility} survey: {survey.title}

{survey.description or ''}
{access_note}
Your answers are encrypted in your browser before they leave it. Only totals
can ever be decrypted, and only by the survey creator.

Open the survey here:
{share_link}

Best regards,
SurveyX
'''
        )
        mail.send(msg)
        return True

    except Exception:
        logger.warning("Email send failed for survey %s", survey.id, exc_info=True)
        return False
