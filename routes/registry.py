from flask import Blueprint, current_app, jsonify

from data_tables.response import Response
from data_tables.survey import Survey
from routes.auth import current_caller, wallet_required
from services import survey_registry
from utils.deployments import get_deployment
from utils.errors import NotFound

registry_bp = Blueprint('registry', __name__, url_prefix='/api/registry')


@registry_bp.route('/counters')
def counters():
    return jsonify({
        'surveyCounter': survey_registry.get_survey_counter(),
        'questionCounter': survey_registry.get_question_counter(),
    })


@registry_bp.route('/users/<address>/surveys')
def user_surveys(address):
    survey_ids = survey_registry.get_user_surveys(address)
    surveys = Survey.query.filter(Survey.id.in_(survey_ids)).order_by(Survey.id).all() if survey_ids else []
    return jsonify({'surveyIds': survey_ids, 'surveys': [survey.to_dict() for survey in surveys]})


@registry_bp.route('/users/<address>/responses')
def user_responses(address):
    response_ids = survey_registry.get_user_responses(address)
    responses = Response.query.filter(Response.id.in_(response_ids)).order_by(Response.id).all() if response_ids else []
    return jsonify({'responseIds': response_ids, 'responses': [response.to_dict() for response in responses]})


@registry_bp.route('/responses/<int:response_id>')
def get_response(response_id):
    return jsonify(survey_registry.get_response(response_id).to_dict())


@registry_bp.route('/surveys/<int:survey_id>/is-public')
def is_public_survey(survey_id):
    return jsonify({'surveyId': survey_id, 'isPublic': survey_registry.is_public_survey(survey_id)})


@registry_bp.route('/questions/<int:question_id>')
def get_question(question_id):
    return jsonify(survey_registry.get_question(question_id).to_dict())


@registry_bp.route('/questions/<int:question_id>/data')
def question_data(question_id):
    survey_id, question_type, text, max_rating, is_required = survey_registry.get_question_data(question_id)
    return jsonify({
        'surveyId': survey_id,
        'type': question_type,
        'text': text,
        'maxRating': max_rating,
        'isRequired': is_required,
    })


@registry_bp.route('/questions/<int:question_id>/options')
def question_options(question_id):
    return jsonify({'questionId': question_id, 'options': survey_registry.get_question_options(question_id)})


@registry_bp.route('/share-ids', methods=['POST'])
@wallet_required
def generate_share_id():
    share_id = survey_registry.generate_share_id(current_caller())
    return jsonify(share_id.to_dict()), 201


@registry_bp.route('/deployments/<int:chain_id>')
def deployment(chain_id):
    entry = get_deployment(chain_id)
    if entry is None:
        raise NotFound(f'SurveyX is not deployed on chain {chain_id}')
    entry['current'] = chain_id == current_app.config['CHAIN_ID']
    return jsonify(entry)
