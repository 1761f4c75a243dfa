import pandas as pd

from data_tables.question import QuestionType

TRUE_WORDS = {'yes', 'y', 'true', '1', '1.0', 'required'}
KNOWN_COLUMNS = {'question', 'type', 'options', 'max_rating', 'required'}


def _cell(row_data, column):
    """Cell text, or '' for missing columns and empty cells."""
    if column not in row_data or pd.isna(row_data[column]):
        return ''
    return str(row_data[column]).strip()


def _question_type(text, default=QuestionType.SINGLE_CHOICE):
    # the type column takes either the name (RATING) or the number (3)
    if text.upper() in QuestionType.__members__:
        return int(QuestionType[text.upper()])
    if text == '':
        return int(default)
    try:
        return int(float(text))
    except ValueError:
        return -1


def process_question_sheet(file_path):
    """
    Read an Excel file and extract questions.

    Columns (header row, case-insensitive): question, type, options, max_rating,
    required. Options are separated by '|'. Only 'question' is mandatory. A sheet
    whose first row names none of these columns has no header: every row of its
    first column is a question.

    Returns:
        List of dicts ready for survey_registry.import_questions
    """
    excel_data = pd.read_excel(file_path)
    excel_data.columns = [str(column).strip().lower() for column in excel_data.columns]

    if not KNOWN_COLUMNS & set(excel_data.columns):
        excel_data = pd.read_excel(file_path, header=None)
        excel_data.columns = [str(column) for column in excel_data.columns]

    if len(excel_data.columns) == 0:
        return []

    text_column = 'question' if 'question' in excel_data.columns else excel_data.columns[0]
    # without a type column every question is free text
    default_type = QuestionType.SINGLE_CHOICE if 'type' in excel_data.columns else QuestionType.TEXT

    questions_list = []

    for row_index, row_data in excel_data.iterrows():
        question_text = _cell(row_data, text_column)

        # Skip empty rows
        if question_text == '' or question_text == 'nan':
            continue

        options_text = _cell(row_data, 'options')
        options = [option.strip() for option in options_text.split('|') if option.strip()]

        max_rating_text = _cell(row_data, 'max_rating')
        try:
            max_rating = int(float(max_rating_text)) if max_rating_text else 0
        except ValueError:
            max_rating = 0

        questions_list.append({
            'text': question_text,
            'type': _question_type(_cell(row_data, 'type'), default_type),
            'options': options,
            'max_rating': max_rating,
            'is_required': _cell(row_data, 'required').lower() in TRUE_WORDS,
        })

    return questions_list


def check_if_excel_file(filename, allowed=('xlsx', 'xls')):
    """
    Check if a file is an Excel file (.xlsx or .xls).

    Parameters:
        filename: Name of the file

    Returns:
        True if Excel file, False otherwise
    """
    # Check if filename has a dot
    if '.' not in filename:
        return False

    # Get the file extension
    file_extension = filename.rsplit('.', 1)[1].lower()

    return file_extension in set(allowed)
