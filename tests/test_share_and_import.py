import io

import pandas as pd
import pytest

from data_tables.question import QuestionType
from services import survey_registry as registry
from utils.excel_upload import check_if_excel_file, process_question_sheet
from utils.mailer import mail

DAY = 86400


def question_sheet(rows, columns=('question', 'type', 'options', 'max_rating', 'required')):
    buffer = io.BytesIO()
    pd.DataFrame(rows, columns=list(columns)).to_excel(buffer, index=False)
    buffer.seek(0)
    return buffer


def upload(client, survey_id, buffer, filename='questions.xlsx'):
    return client.post(
        f'/api/surveys/{survey_id}/questions/import',
        data={'file': (buffer, filename)},
        content_type='multipart/form-data',
    )


class TestShareEmail:

    def test_share_link_is_mailed(self, app, owner, client_for):
        client = client_for(owner)
        survey = registry.create_survey(owner.address, "Launch Party", "Tell us how it went", DAY, True)

        with mail.record_messages() as outbox:
            response = client.post(f'/api/surveys/{survey.id}/share',
                                   json={'recipients': ['alice@example.com', 'bob@example.com']})

        body = response.get_json()
        assert body['sent'] is True
        assert body['shareLink'].endswith(f'/api/surveys/{survey.id}')

        assert len(outbox) == 1
        message = outbox[0]
        assert message.subject == 'You are invited to a survey: Launch Party'
        assert message.recipients == ['alice@example.com', 'bob@example.com']
        assert body['shareLink'] in message.body

    def test_private_survey_mentions_wallet_access(self, app, owner, client_for):
        client = client_for(owner)
        survey = registry.create_survey(owner.address, "Board Vote", "", DAY, False)

        with mail.record_messages() as outbox:
            client.post(f'/api/surveys/{survey.id}/share', json={'recipients': ['carol@example.com']})

        assert 'This survey is private' in outbox[0].body

    def test_not_sent_without_credentials(self, app, owner, client_for):
        app.config['MAIL_PASSWORD'] = None
        client = client_for(owner)
        survey = registry.create_survey(owner.address, "Launch Party", "", DAY, True)

        with mail.record_messages() as outbox:
            response = client.post(f'/api/surveys/{survey.id}/share', json={'recipients': ['alice@example.com']})

        assert response.status_code == 200
        assert response.get_json()['sent'] is False
        assert outbox == []

    def test_only_creator_shares(self, app, owner, user1, client_for):
        survey = registry.create_survey(owner.address, "Launch Party", "", DAY, True)

        response = client_for(user1).post(f'/api/surveys/{survey.id}/share', json={'recipients': ['a@example.com']})

        assert response.status_code == 403

    def test_recipients_must_be_a_list(self, app, owner, client_for):
        survey = registry.create_survey(owner.address, "Launch Party", "", DAY, True)

        response = client_for(owner).post(f'/api/surveys/{survey.id}/share', json={'recipients': 'a@example.com'})

        assert response.status_code == 400


class TestQuestionSheet:

    def test_reads_every_column(self, tmp_path):
        path = tmp_path / 'questions.xlsx'
        path.write_bytes(question_sheet([
            ['Favourite colour?', 'SINGLE_CHOICE', 'Red | Blue |Green', None, 'yes'],
            ['How was it?', 3, None, 5, 'no'],
            [None, None, None, None, None],
            ['Anything else?', 'text', None, None, None],
        ]).getvalue())

        questions = process_question_sheet(str(path))

        assert questions == [
            {'text': 'Favourite colour?', 'type': 0, 'options': ['Red', 'Blue', 'Green'], 'max_rating': 0,
             'is_required': True},
            {'text': 'How was it?', 'type': 3, 'options': [], 'max_rating': 5, 'is_required': False},
            {'text': 'Anything else?', 'type': 2, 'options': [], 'max_rating': 0, 'is_required': False},
        ]

    def test_headerless_sheet_keeps_its_first_question(self, tmp_path):
        path = tmp_path / 'plain.xlsx'
        buffer = io.BytesIO()
        pd.DataFrame([['Which option?'], ['Why?']]).to_excel(buffer, index=False, header=False)
        path.write_bytes(buffer.getvalue())

        questions = process_question_sheet(str(path))

        assert [question['text'] for question in questions] == ['Which option?', 'Why?']
        assert all(question['type'] == int(QuestionType.TEXT) for question in questions)

    def test_header_is_case_insensitive(self, tmp_path):
        path = tmp_path / 'upper.xlsx'
        path.write_bytes(question_sheet([['Which option?', 'Single_Choice', 'A|B']],
                                        columns=('Question', 'TYPE', 'Options')).getvalue())

        assert process_question_sheet(str(path)) == [
            {'text': 'Which option?', 'type': 0, 'options': ['A', 'B'], 'max_rating': 0, 'is_required': False},
        ]

    @pytest.mark.parametrize('filename, expected', [
        ('questions.xlsx', True),
        ('QUESTIONS.XLS', True),
        ('questions.csv', False),
        ('questions', False),
    ])
    def test_excel_extensions(self, filename, expected):
        assert check_if_excel_file(filename) is expected


class TestQuestionImport:

    def test_import_adds_questions(self, app, owner, client_for):
        client = client_for(owner)
        survey = registry.create_survey(owner.address, "Imported", "", DAY, True)

        response = upload(client, survey.id, question_sheet([
            ['Pick one', 'SINGLE_CHOICE', 'A|B', None, 'yes'],
            ['Rate it', 'RATING', None, 10, 'yes'],
        ]))

        assert response.status_code == 201
        assert response.get_json()['questionIds'] == [1, 2]
        assert registry.get_survey_questions(survey.id) == [1, 2]
        assert registry.get_question_data(2) == [survey.id, 3, 'Rate it', 10, True]
        assert registry.get_survey(survey.id).question_count == 2

    def test_one_bad_row_adds_nothing(self, app, owner, client_for):
        client = client_for(owner)
        survey = registry.create_survey(owner.address, "Imported", "", DAY, True)

        response = upload(client, survey.id, question_sheet([
            ['Pick one', 'SINGLE_CHOICE', 'A|B', None, 'yes'],
            ['Rate it', 'RATING', None, None, 'yes'],
        ]))

        assert response.status_code == 400
        assert response.get_json() == {'error': 'Rating questions need a positive max rating'}
        assert registry.get_survey_questions(survey.id) == []
        assert registry.get_question_counter() == 0

    def test_empty_sheet(self, app, owner, client_for):
        survey = registry.create_survey(owner.address, "Imported", "", DAY, True)

        response = upload(client_for(owner), survey.id, question_sheet([]))

        assert response.status_code == 400
        assert response.get_json() == {'error': 'No questions found in file'}

    def test_wrong_extension(self, app, owner, client_for):
        survey = registry.create_survey(owner.address, "Imported", "", DAY, True)

        response = upload(client_for(owner), survey.id, io.BytesIO(b'question\nHi?'), filename='questions.csv')

        assert response.status_code == 400

    def test_only_creator_imports(self, app, owner, user1, client_for):
        survey = registry.create_survey(owner.address, "Imported", "", DAY, True)

        response = upload(client_for(user1), survey.id, question_sheet([['Pick one', 'TEXT', None, None, None]]))

        assert response.status_code == 403
        assert registry.get_survey_questions(survey.id) == []
