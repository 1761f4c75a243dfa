"""
Results of a survey for its creator.

Without a decryption signature the results only carry what is public anyway
(response counts and accumulator handles). With one, every accumulator is
decrypted and each question gets its total and mean.
"""
import logging

from data_tables.question import QuestionType
from fhe.relayer import user_decrypt
from services.survey_registry import require_creator, contract_address, get_survey

logger = logging.getLogger(__name__)


def _respondent_answers(survey):
    answered = {}
    for response in survey.responses:
        answered.setdefault(response.respondent, set()).add(response.question_id)
    return answered


def completion_rate(survey):
    """Share of respondents who answered every required question, in percent."""
    answered = _respondent_answers(survey)
    if not answered:
        return 0.0

    required = {question.id for question in survey.questions if question.is_required}
    complete = sum(1 for question_ids in answered.values() if required <= question_ids)
    return round(complete / len(answered) * 100, 1)


def decrypt_stats(survey, signature):
    pairs = []
    for question in survey.questions:
        if question.stats is not None and question.stats.accumulator:
            pairs.append({'handle': question.stats.accumulator, 'contractAddress': contract_address()})

    if not pairs:
        return {}

    values = user_decrypt(pairs, signature)
    logger.info("decrypted %d accumulators of survey %s", len(values), survey.id)
    return values


def question_result(question, decrypted):
    stats = question.stats
    response_count = stats.response_count if stats else 0
    handle = stats.accumulator if stats else None

    result = {
        'questionId': question.id,
        'question': question.to_dict(),
        'responseCount': response_count,
        'encryptedStats': handle,
        'decrypted': False,
        'total': None,
        'mean': None,
    }

    if handle and handle in decrypted:
        total = decrypted[handle]
        result['decrypted'] = True
        result['total'] = total
        result['mean'] = round(total / response_count, 2) if response_count else 0.0

        if question.kind == QuestionType.RATING and question.max_rating:
            result['meanPercentOfMax'] = round(result['mean'] / question.max_rating * 100, 1)

    return result


def build_results(caller, survey_id, signature=None):
    survey = get_survey(survey_id)
    require_creator(survey, caller)

    decrypted = decrypt_stats(survey, signature) if signature is not None else {}

    return {
        'survey': survey.to_dict(),
        'totalResponses': survey.response_count,
        'respondentCount': len(_respondent_answers(survey)),
        'completionRate': completion_rate(survey),
        'canDecrypt': True,
        'questionResults': [question_result(question, decrypted) for question in survey.questions],
    }
