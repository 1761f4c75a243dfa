"""
The survey registry: every operation on surveys, questions, permissions and
encrypted responses.

Each public function that changes state is one transaction. It either commits
everything it did or rolls back and raises a RegistryError whose reason is
what the caller sees, e.g. "Only survey creator can perform this action".
``caller`` is always the wallet address that made the request.
"""
import logging
from datetime import datetime, timedelta
from functools import wraps

from flask import current_app

from database import db
from data_tables.permission import SurveyPermission
from data_tables.question import Question, QuestionType
from data_tables.question_stats import QuestionStats
from data_tables.response import Response
from data_tables.share_id import ShareId
from data_tables.survey import Survey
from fhe.coprocessor import ZERO_HANDLE, get_coprocessor
from utils.addresses import normalize_address, same_address
from utils.errors import AccessDenied, InvalidRequest, InvalidState, NotFound

logger = logging.getLogger(__name__)

ONLY_CREATOR = 'Only survey creator can perform this action'


def transactional(func):
    """Commit when func returns, roll back when it raises."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            result = func(*args, **kwargs)
            db.session.commit()
            return result
        except Exception:
            db.session.rollback()
            raise

    return wrapper


def contract_address():
    return current_app.config['CONTRACT_ADDRESS']


def _as_int(value, reason):
    if isinstance(value, bool):
        raise InvalidRequest(reason)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidRequest(reason)


def _as_bool(value, reason):
    # json "false" is truthy, so only real booleans are accepted
    if not isinstance(value, bool):
        raise InvalidRequest(reason)
    return value


# lookups

def get_survey(survey_id):
    survey = db.session.get(Survey, survey_id)
    if survey is None:
        raise NotFound('Survey does not exist')
    return survey


def get_question(question_id):
    question = db.session.get(Question, question_id)
    if question is None:
        raise NotFound('Question does not exist')
    return question


def get_response(response_id):
    response = db.session.get(Response, response_id)
    if response is None:
        raise NotFound('Response does not exist')
    return response


def require_creator(survey, caller):
    if not same_address(survey.creator, caller):
        logger.info("%s is not the creator of survey %s", caller, survey.id)
        raise AccessDenied(ONLY_CREATOR)


def _survey_question(survey, question_id):
    if isinstance(question_id, bool) or not isinstance(question_id, int):
        raise InvalidRequest('Question does not belong to survey')
    question = db.session.get(Question, question_id)
    if question is None or question.survey_id != survey.id:
        raise InvalidRequest('Question does not belong to survey')
    return question


# surveys

@transactional
def create_survey(caller, title, description, duration_seconds, is_public):
    creator = normalize_address(caller)

    if not title or not str(title).strip():
        raise InvalidRequest('Title cannot be empty')

    duration_seconds = _as_int(duration_seconds, 'Invalid duration')
    if duration_seconds < 0:
        raise InvalidRequest('Duration must not be negative')

    is_public = _as_bool(is_public, 'isPublic must be true or false')

    now = datetime.utcnow()
    try:
        expires_at = now + timedelta(seconds=duration_seconds)
    except OverflowError:
        # past year 9999: the survey never expires
        expires_at = datetime.max

    survey = Survey(
        creator=creator,
        title=str(title).strip(),
        description=description or '',
        created_at=now,
        expires_at=expires_at,
        is_active=False,
        is_public=is_public,
        question_count=0,
        response_count=0,
    )
    db.session.add(survey)
    db.session.flush()

    logger.info("survey %s created by %s (public=%s)", survey.id, creator, survey.is_public)
    return survey


@transactional
def activate_survey(caller, survey_id):
    survey = get_survey(survey_id)
    require_creator(survey, caller)

    survey.is_active = True
    logger.info("survey %s activated", survey.id)
    return survey


@transactional
def deactivate_survey(caller, survey_id):
    survey = get_survey(survey_id)
    require_creator(survey, caller)

    survey.is_active = False
    logger.info("survey %s deactivated", survey.id)
    return survey


# questions

def _add_question(caller, survey, question_type, text, options, max_rating, is_required):
    require_creator(survey, caller)

    try:
        kind = QuestionType(int(question_type))
    except (TypeError, ValueError):
        raise InvalidRequest('Invalid question type')

    max_rating = _as_int(max_rating or 0, 'Invalid max rating')
    is_required = _as_bool(is_required, 'isRequired must be true or false')

    if not text or not str(text).strip():
        raise InvalidRequest('Question text cannot be empty')

    options = [str(option) for option in (options or [])]
    if kind.is_choice and len(options) == 0:
        raise InvalidRequest('Choice questions need at least one option')

    if kind == QuestionType.RATING and max_rating <= 0:
        raise InvalidRequest('Rating questions need a positive max rating')

    question = Question(
        survey_id=survey.id,
        question_type=int(kind),
        question_text=str(text).strip(),
        options=options,
        max_rating=max_rating,
        is_required=is_required,
    )
    db.session.add(question)
    survey.question_count += 1
    db.session.flush()
    return question


@transactional
def add_question(caller, survey_id, question_type, text, options, max_rating, is_required):
    survey = get_survey(survey_id)
    question = _add_question(caller, survey, question_type, text, options, max_rating, is_required)

    logger.info("question %s added to survey %s", question.id, survey.id)
    return question


@transactional
def import_questions(caller, survey_id, rows):
    """Add every row as a question; one bad row and none of them are added."""
    survey = get_survey(survey_id)
    require_creator(survey, caller)

    if not rows:
        raise InvalidRequest('No questions found in file')

    added = []
    for row in rows:
        added.append(_add_question(
            caller,
            survey,
            row['type'],
            row['text'],
            row.get('options'),
            row.get('max_rating', 0),
            row.get('is_required', False),
        ))

    logger.info("imported %d questions into survey %s", len(added), survey.id)
    return added


# permissions

def _set_permission(caller, survey_id, address, granted):
    survey = get_survey(survey_id)
    require_creator(survey, caller)
    address = normalize_address(address)

    permission = db.session.get(SurveyPermission, (survey.id, address))
    if permission is None:
        permission = SurveyPermission(survey_id=survey.id, address=address)
        db.session.add(permission)
    permission.granted = granted
    return permission


@transactional
def grant_permission(caller, survey_id, address):
    permission = _set_permission(caller, survey_id, address, True)
    logger.info("granted %s on survey %s", permission.address, survey_id)
    return permission


@transactional
def revoke_permission(caller, survey_id, address):
    permission = _set_permission(caller, survey_id, address, False)
    logger.info("revoked %s on survey %s", permission.address, survey_id)
    return permission


def has_permission(survey_id, address):
    try:
        address = normalize_address(address)
    except InvalidRequest:
        return False
    permission = db.session.get(SurveyPermission, (survey_id, address))
    return bool(permission and permission.granted)


def has_access(survey, address):
    """public surveys: anyone. private: the creator and permissioned wallets"""
    if survey.is_public:
        return True
    if same_address(survey.creator, address):
        return True
    return has_permission(survey.id, address)


# responses

@transactional
def submit_response(caller, survey_id, question_id, encrypted_handle, proof):
    respondent = normalize_address(caller)
    survey = get_survey(survey_id)

    if not survey.is_active:
        raise InvalidState('Survey is not active')

    if survey.is_expired():
        raise InvalidState('Survey has expired')

    if not has_access(survey, respondent):
        raise AccessDenied('No access to this survey')

    question = _survey_question(survey, question_id)

    already = Response.query.filter_by(question_id=question.id, respondent=respondent).first()
    if already is not None:
        raise InvalidState('Already responded to this question')

    coprocessor = get_coprocessor()
    registry = contract_address()
    ciphertext = coprocessor.verify_input(encrypted_handle, proof, registry, respondent)

    stats = question.stats
    if stats is None:
        stats = QuestionStats(question_id=question.id, survey_id=survey.id,
                              accumulator=coprocessor.trivial_encrypt(0), response_count=0)
        db.session.add(stats)

    stats.accumulator = coprocessor.add(stats.accumulator, ciphertext.handle)
    stats.response_count += 1
    coprocessor.allow(stats.accumulator, registry)
    coprocessor.allow(stats.accumulator, survey.creator)

    response = Response(
        survey_id=survey.id,
        question_id=question.id,
        respondent=respondent,
        encrypted_value=ciphertext.handle,
    )
    db.session.add(response)
    survey.response_count += 1
    db.session.flush()

    logger.info("response %s recorded for survey %s question %s", response.id, survey.id, question.id)
    return response


def get_question_stats(caller, survey_id, question_id):
    """Accumulator handle of a question, for the creator only. Zero handle before any answer."""
    survey = get_survey(survey_id)
    require_creator(survey, caller)
    question = _survey_question(survey, question_id)

    if question.stats is None or question.stats.accumulator is None:
        return ZERO_HANDLE
    return question.stats.accumulator


# share ids

@transactional
def generate_share_id(caller):
    """Issue an encrypted random uint32 only the caller can decrypt."""
    issuer = normalize_address(caller)
    coprocessor = get_coprocessor()

    handle = coprocessor.random_uint32()
    coprocessor.allow(handle, contract_address())
    coprocessor.allow(handle, issuer)

    share_id = ShareId(handle=handle, issued_by=issuer)
    db.session.add(share_id)
    db.session.flush()

    logger.info("share id %s issued to %s", share_id.id, issuer)
    return share_id


# views

def get_user_surveys(address):
    address = normalize_address(address)
    rows = Survey.query.filter_by(creator=address).order_by(Survey.id).all()
    return [survey.id for survey in rows]


def get_survey_questions(survey_id):
    survey = get_survey(survey_id)
    return [question.id for question in survey.questions]


def get_public_surveys():
    rows = Survey.query.filter_by(is_public=True).order_by(Survey.id).all()
    return [survey.id for survey in rows]


def get_user_responses(address):
    address = normalize_address(address)
    rows = Response.query.filter_by(respondent=address).order_by(Response.id).all()
    return [response.id for response in rows]


def is_public_survey(survey_id):
    return get_survey(survey_id).is_public


def get_question_data(question_id):
    return get_question(question_id).question_data()


def get_question_options(question_id):
    return list(get_question(question_id).options or [])


def get_survey_counter():
    return db.session.query(db.func.max(Survey.id)).scalar() or 0


def get_question_counter():
    return db.session.query(db.func.max(Question.id)).scalar() or 0


def has_responded(survey_id, address):
    address = normalize_address(address)
    return Response.query.filter_by(survey_id=survey_id, respondent=address).first() is not None
