import logging
import os

from flask import Blueprint, current_app, jsonify, request, send_file, url_for
from werkzeug.utils import secure_filename

from data_tables.question import Question
from data_tables.survey import Survey
from fhe.decryption import DecryptionSignature
from routes.auth import current_caller, require_caller, wallet_required
from services import survey_registry
from services.results import build_results
from utils.errors import InvalidRequest
from utils.excel_upload import check_if_excel_file, process_question_sheet
from utils.mailer import send_share_email
from utils.payload import request_json, require_fields
from utils.results_export import EXPORTERS, export_filename

logger = logging.getLogger(__name__)

"""
the registry's survey operations over http. reads are open to everyone,
every write needs a signed in wallet, the registry itself decides who may
do what
"""
survey_bp = Blueprint('surveys', __name__, url_prefix='/api/surveys')


# Protect all write routes
@survey_bp.before_request
def check_wallet_login():
    """Check a wallet is signed in before any state changing request."""
    if request.method != 'GET':
        require_caller()


def _signature_from_body():
    data = request.get_json(silent=True) or {}
    signature = data.get('signature')
    if signature is None:
        return None
    if not isinstance(signature, dict):
        raise InvalidRequest('signature must be an object')
    return DecryptionSignature.from_dict(signature)


# route 1) create and list surveys

@survey_bp.route('', methods=['POST'])
def create_survey():
    data = request_json()
    title, duration = require_fields(data, 'title', 'duration')

    survey = survey_registry.create_survey(
        current_caller(),
        title,
        data.get('description', ''),
        duration,
        data.get('isPublic', True),
    )
    return jsonify({'surveyId': survey.id, 'survey': survey.to_dict()}), 201


@survey_bp.route('/public')
def public_surveys():
    survey_ids = survey_registry.get_public_surveys()
    surveys = Survey.query.filter(Survey.id.in_(survey_ids)).order_by(Survey.id).all() if survey_ids else []
    return jsonify({'surveyIds': survey_ids, 'surveys': [survey.to_dict() for survey in surveys]})


@survey_bp.route('/<int:survey_id>')
def get_survey(survey_id):
    survey = survey_registry.get_survey(survey_id)
    return jsonify(survey.to_dict())


@survey_bp.route('/<int:survey_id>/access')
def survey_access(survey_id):
    """What the signed in wallet may do with this survey."""
    survey = survey_registry.get_survey(survey_id)
    caller = current_caller()

    return jsonify({
        'surveyId': survey.id,
        'address': caller,
        'isCreator': bool(caller) and survey.creator == caller,
        'hasAccess': survey_registry.has_access(survey, caller),
        'hasResponded': bool(caller) and survey_registry.has_responded(survey.id, caller),
        'isOpen': survey.is_open(),
    })


# route 2) lifecycle

@survey_bp.route('/<int:survey_id>/activate', methods=['POST'])
def activate_survey(survey_id):
    survey = survey_registry.activate_survey(current_caller(), survey_id)
    return jsonify(survey.to_dict())


@survey_bp.route('/<int:survey_id>/deactivate', methods=['POST'])
def deactivate_survey(survey_id):
    survey = survey_registry.deactivate_survey(current_caller(), survey_id)
    return jsonify(survey.to_dict())


# route 3) questions

@survey_bp.route('/<int:survey_id>/questions', methods=['GET'])
def survey_questions(survey_id):
    question_ids = survey_registry.get_survey_questions(survey_id)
    questions = Question.query.filter_by(survey_id=survey_id).order_by(Question.id).all()
    return jsonify({'questionIds': question_ids, 'questions': [question.to_dict() for question in questions]})


@survey_bp.route('/<int:survey_id>/questions', methods=['POST'])
def add_question(survey_id):
    data = request_json()
    question_type, text = require_fields(data, 'type', 'text')

    question = survey_registry.add_question(
        current_caller(),
        survey_id,
        question_type,
        text,
        data.get('options', []),
        data.get('maxRating', 0),
        data.get('isRequired', False),
    )
    return jsonify({'questionId': question.id, 'question': question.to_dict()}), 201


@survey_bp.route('/<int:survey_id>/questions/import', methods=['POST'])
def import_questions(survey_id):
    """Upload an Excel sheet and add every row as a question."""

    if 'file' not in request.files:
        raise InvalidRequest('No file uploaded')

    uploaded_file = request.files['file']

    if uploaded_file.filename == '':
        raise InvalidRequest('No file selected')

    if not check_if_excel_file(uploaded_file.filename, current_app.config['ALLOWED_FILE_TYPES']):
        raise InvalidRequest('Invalid file type. Please upload Excel (.xlsx or .xls)')

    # only the creator gets to upload anything
    survey_registry.require_creator(survey_registry.get_survey(survey_id), current_caller())

    upload_folder = current_app.config['UPLOAD_FOLDER']
    if not os.path.exists(upload_folder):
        os.makedirs(upload_folder)

    temp_file_path = os.path.join(upload_folder, secure_filename(uploaded_file.filename))
    uploaded_file.save(temp_file_path)

    try:
        questions_list = process_question_sheet(temp_file_path)
        added = survey_registry.import_questions(current_caller(), survey_id, questions_list)
    finally:
        if os.path.exists(temp_file_path):
            os.remove(temp_file_path)

    return jsonify({
        'questionIds': [question.id for question in added],
        'questions': [question.to_dict() for question in added],
    }), 201


# route 4) permissions

@survey_bp.route('/<int:survey_id>/permissions', methods=['POST'])
def grant_permission(survey_id):
    data = request_json()
    (address,) = require_fields(data, 'address')

    permission = survey_registry.grant_permission(current_caller(), survey_id, address)
    return jsonify({'surveyId': survey_id, 'address': permission.address, 'granted': permission.granted})


@survey_bp.route('/<int:survey_id>/permissions/<address>', methods=['DELETE'])
def revoke_permission(survey_id, address):
    permission = survey_registry.revoke_permission(current_caller(), survey_id, address)
    return jsonify({'surveyId': survey_id, 'address': permission.address, 'granted': permission.granted})


@survey_bp.route('/<int:survey_id>/permissions/<address>', methods=['GET'])
def check_permission(survey_id, address):
    survey_registry.get_survey(survey_id)
    return jsonify({
        'surveyId': survey_id,
        'address': address,
        'granted': survey_registry.has_permission(survey_id, address),
    })


# route 5) responses and encrypted statistics

@survey_bp.route('/<int:survey_id>/responses', methods=['POST'])
def submit_response(survey_id):
    data = request_json()
    question_id, handle, proof = require_fields(data, 'questionId', 'handle', 'inputProof')

    response = survey_registry.submit_response(current_caller(), survey_id, question_id, handle, proof)
    return jsonify({'responseId': response.id, 'response': response.to_dict()}), 201


@survey_bp.route('/<int:survey_id>/questions/<int:question_id>/stats')
@wallet_required
def question_stats(survey_id, question_id):
    handle = survey_registry.get_question_stats(current_caller(), survey_id, question_id)
    return jsonify({'surveyId': survey_id, 'questionId': question_id, 'handle': handle})


@survey_bp.route('/<int:survey_id>/results', methods=['GET', 'POST'])
@wallet_required
def survey_results(survey_id):
    """Creator results; POST with a decryption signature to get the totals decrypted."""
    signature = _signature_from_body() if request.method == 'POST' else None
    return jsonify(build_results(current_caller(), survey_id, signature))


@survey_bp.route('/<int:survey_id>/export/<export_format>', methods=['POST'])
def export_results(survey_id, export_format):
    """Export results as json, xlsx or pdf."""

    if export_format not in EXPORTERS:
        raise InvalidRequest('Unknown export format')

    results = build_results(current_caller(), survey_id, _signature_from_body())
    exporter, mimetype = EXPORTERS[export_format]

    return send_file(
        exporter(results),
        mimetype=mimetype,
        as_attachment=True,
        download_name=export_filename(results['survey'], export_format),
    )


# route 6) sharing

@survey_bp.route('/<int:survey_id>/share', methods=['POST'])
def share_survey(survey_id):
    """Email the survey link to a list of recipients."""
    data = request_json()
    (recipients,) = require_fields(data, 'recipients')

    if not isinstance(recipients, list) or not recipients:
        raise InvalidRequest('recipients must be a non-empty list')

    survey = survey_registry.get_survey(survey_id)
    survey_registry.require_creator(survey, current_caller())

    share_link = url_for('surveys.get_survey', survey_id=survey.id, _external=True)
    sent = send_share_email(recipients, survey, share_link)

    return jsonify({'surveyId': survey.id, 'shareLink': share_link, 'sent': sent})
