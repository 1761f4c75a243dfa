import io
import json

import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import HRFlowable, Paragraph, SimpleDocTemplate, Spacer

HEADER_COLOR = '1B3A5C'


def export_filename(survey, extension):
    safe_title = survey['title'].replace(' ', '_').replace('/', '_')
    return f"{safe_title}_Results.{extension}"


def _display(value):
    return '' if value is None else value


def export_json(results):
    """Results as a pretty printed json document."""
    output = io.BytesIO(json.dumps(results, indent=2).encode('utf-8'))
    output.seek(0)
    return output


def export_excel(results):
    """Export survey results to an Excel workbook (questions as rows)."""

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = 'Results'

    # Header row
    headers = ['Q#', 'Type', 'Question Text', 'Options', 'Responses', 'Total', 'Mean']
    ws.append(headers)

    header_fill = PatternFill(start_color=HEADER_COLOR, end_color=HEADER_COLOR, fill_type='solid')
    header_font = Font(bold=True, color='FFFFFF')
    for cell in ws[1]:
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)

    for number, entry in enumerate(results['questionResults'], start=1):
        question = entry['question']
        ws.append([
            number,
            question['typeName'],
            question['text'],
            ' | '.join(question['options']),
            entry['responseCount'],
            _display(entry['total']),
            _display(entry['mean']),
        ])

    col_widths = [6, 18, 60, 40, 12, 10, 10]
    for i, width in enumerate(col_widths, start=1):
        ws.column_dimensions[openpyxl.utils.get_column_letter(i)].width = width

    for row in ws.iter_rows(min_row=2):
        row[2].alignment = Alignment(wrap_text=True, vertical='top')  # Question Text
        row[3].alignment = Alignment(wrap_text=True, vertical='top')  # Options

    summary = wb.create_sheet('Summary')
    survey = results['survey']
    summary.append(['Survey', survey['title']])
    summary.append(['Creator', survey['creator']])
    summary.append(['Total Responses', results['totalResponses']])
    summary.append(['Respondents', results['respondentCount']])
    summary.append(['Completion Rate', f"{results['completionRate']}%"])

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return output


def export_pdf(results):
    """Export survey results to a PDF report."""

    output = io.BytesIO()
    doc = SimpleDocTemplate(
        output,
        pagesize=A4,
        leftMargin=2 * cm,
        rightMargin=2 * cm,
        topMargin=2 * cm,
        bottomMargin=2 * cm,
    )

    styles = getSampleStyleSheet()

    style_title = ParagraphStyle(
        'SurveyTitle',
        parent=styles['Title'],
        fontSize=20,
        textColor=colors.HexColor('#1B3A5C'),
        spaceAfter=6,
    )
    style_subtitle = ParagraphStyle(
        'Subtitle',
        parent=styles['Normal'],
        fontSize=11,
        textColor=colors.HexColor('#555555'),
        spaceAfter=16,
    )
    style_question = ParagraphStyle(
        'QuestionText',
        parent=styles['Normal'],
        fontSize=11,
        textColor=colors.HexColor('#2C3E50'),
        fontName='Helvetica-Bold',
        spaceBefore=10,
        spaceAfter=3,
    )
    style_stats = ParagraphStyle(
        'StatsLine',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.HexColor('#444444'),
        spaceAfter=4,
        leftIndent=12,
    )

    survey = results['survey']
    story = []

    story.append(Paragraph(_escape(survey['title']), style_title))
    story.append(Paragraph(
        f"Total Responses: {results['totalResponses']} &nbsp;&nbsp;|&nbsp;&nbsp; "
        f"Respondents: {results['respondentCount']} &nbsp;&nbsp;|&nbsp;&nbsp; "
        f"Completion: {results['completionRate']}%",
        style_subtitle
    ))
    story.append(HRFlowable(width='100%', thickness=1, color=colors.HexColor('#DDDDDD'), spaceAfter=10))

    for number, entry in enumerate(results['questionResults'], start=1):
        question = entry['question']
        story.append(Paragraph(f"Q{number}. {_escape(question['text'])}", style_question))

        if entry['decrypted']:
            figures = f"Total: {entry['total']} &nbsp;&nbsp;|&nbsp;&nbsp; Mean: {entry['mean']}"
        else:
            figures = 'Not decrypted'

        story.append(Paragraph(
            f"{question['typeName']} &nbsp;&nbsp;|&nbsp;&nbsp; "
            f"Responses: {entry['responseCount']} &nbsp;&nbsp;|&nbsp;&nbsp; {figures}",
            style_stats
        ))
        story.append(Spacer(1, 6))

    doc.build(story)
    output.seek(0)
    return output


def _escape(text):
    return text.replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;')


EXPORTERS = {
    'json': (export_json, 'application/json'),
    'xlsx': (export_excel, 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'),
    'pdf': (export_pdf, 'application/pdf'),
}
