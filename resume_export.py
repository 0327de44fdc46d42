"""
Résumé PDF export with ReportLab.

The résumé is laid out as a flowable story on A4 pages, so content that
does not fit on a page continues on the next one.  Each template sets
the accent colour, fonts and a handful of layout variations.
"""

import html
import math
import logging
from io import BytesIO
from typing import Dict, Tuple

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import (HRFlowable, KeepTogether, Paragraph, SimpleDocTemplate, Spacer,
                                Table, TableStyle)

from errors import ValidationError
from resume_builder import DEFAULT_TEMPLATE, get_template, normalize_resume
from utils import log_processing_time, truncate_text

logger = logging.getLogger(__name__)

# A4 at 96 DPI, as measured by the browser preview
A4_WIDTH_PX = 794
A4_HEIGHT_PX = 1123

MARGIN = 18 * mm
CONTENT_WIDTH = A4[0] - 2 * MARGIN


def estimate_page_count(content_height_px: float) -> int:
    """Pages a preview of the given pixel height spans"""
    if not content_height_px or content_height_px <= 0:
        return 1
    return max(1, math.ceil(content_height_px / A4_HEIGHT_PX))


def page_break_offsets(content_height_px: float):
    """Pixel offsets of the page-break markers drawn over the preview"""
    return [A4_HEIGHT_PX * page for page in range(1, estimate_page_count(content_height_px))]


def export_filename(data: Dict, template_id: str) -> str:
    full_name = normalize_resume(data)['personal_info']['full_name']
    base = '_'.join(full_name.split()) or 'Resume'
    return f"{base}_{template_id}.pdf"


def _escape(value) -> str:
    return html.escape(str(value or '')).replace('\n', '<br/>')


def _styles(template: Dict) -> Dict:
    base = getSampleStyleSheet()
    accent = colors.HexColor(template['accent_color'])
    heading_font = template['heading_font']
    body_font = template['body_font']
    centered = template['id'] in ('classic', 'elegant', 'minimal', 'executive')

    return {
        'name': ParagraphStyle(
            'ResumeName', parent=base['Title'], fontName=heading_font,
            fontSize=24 if template['id'] != 'compact' else 18, leading=28,
            textColor=accent if template['id'] not in ('ats-friendly', 'classic') else colors.black,
            alignment=TA_CENTER if centered else TA_LEFT, spaceAfter=4,
        ),
        'contact': ParagraphStyle(
            'ResumeContact', parent=base['Normal'], fontName=body_font, fontSize=9,
            leading=12, textColor=colors.HexColor('#4b5563'),
            alignment=TA_CENTER if centered else TA_LEFT,
        ),
        'section': ParagraphStyle(
            'ResumeSection', parent=base['Heading2'], fontName=heading_font,
            fontSize=12, leading=15, textColor=accent, spaceBefore=10, spaceAfter=4,
        ),
        'entry_title': ParagraphStyle(
            'ResumeEntryTitle', parent=base['Normal'], fontName=heading_font,
            fontSize=10.5, leading=13,
        ),
        'meta': ParagraphStyle(
            'ResumeMeta', parent=base['Normal'], fontName=body_font, fontSize=9,
            leading=11, textColor=colors.HexColor('#6b7280'),
        ),
        'body': ParagraphStyle(
            'ResumeBody', parent=base['Normal'], fontName=body_font,
            fontSize=9.5 if template['id'] == 'compact' else 10, leading=13, spaceAfter=4,
        ),
    }


def _date_range(entry: Dict, start_key: str, end_key: str) -> str:
    start = entry.get(start_key) or ''
    end = 'Present' if entry.get('current') else (entry.get(end_key) or '')
    if start and end:
        return f"{start} - {end}"
    return start or end


def _section_heading(title: str, template: Dict, styles: Dict):
    flowables = [Paragraph(_escape(title.upper() if template['id'] != 'minimal' else title), styles['section'])]
    if template['id'] not in ('minimal', 'ats-friendly'):
        flowables.append(HRFlowable(width='100%', thickness=0.8,
                                    color=colors.HexColor(template['accent_color']), spaceAfter=4))
    return flowables


# Only short text goes in table cells; a table row cannot break across pages
TIMELINE_GUTTER = 38 * mm
SKILL_LABEL_WIDTH = 40 * mm
CELL_TEXT_LIMIT = 200


def _indented(style: ParagraphStyle, indent: float) -> ParagraphStyle:
    return ParagraphStyle(f"{style.name}Indented", parent=style, leftIndent=indent)


def _experience_entry(exp: Dict, template: Dict, styles: Dict):
    title = ' | '.join(part for part in (exp['title'], exp['company']) if part)
    meta = ' | '.join(part for part in (_date_range(exp, 'start_date', 'end_date'), exp['location']) if part)

    if template['layout'] == 'timeline':
        table = Table([[Paragraph(_escape(truncate_text(meta, CELL_TEXT_LIMIT)), styles['meta']),
                        Paragraph(_escape(truncate_text(title, CELL_TEXT_LIMIT)), styles['entry_title'])]],
                      colWidths=[TIMELINE_GUTTER, CONTENT_WIDTH - TIMELINE_GUTTER])
        table.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('LINEAFTER', (0, 0), (0, -1), 1.5, colors.HexColor(template['accent_color'])),
            ('LEFTPADDING', (1, 0), (1, -1), 8),
        ]))
        flowables = [table]
        if exp['description']:
            flowables.append(Paragraph(_escape(exp['description']),
                                       _indented(styles['body'], TIMELINE_GUTTER + 8)))
        return flowables + [Spacer(1, 4)]

    flowables = [Paragraph(_escape(title), styles['entry_title'])]
    if meta:
        flowables.append(Paragraph(_escape(meta), styles['meta']))
    if exp['description']:
        flowables.append(Paragraph(_escape(exp['description']), styles['body']))
    return [KeepTogether(flowables), Spacer(1, 4)]


def _skills_block(skills, template: Dict, styles: Dict):
    groups = [group for group in skills if group['items']]

    if template['layout'] in ('sidebar', 'two-column', 'timeline'):
        # Label on its own line, items indented under it like a second column
        items_style = _indented(styles['body'], SKILL_LABEL_WIDTH)
        flowables = []
        for group in groups:
            flowables.append(Paragraph(_escape(group['category'] or 'Skills'), styles['entry_title']))
            flowables.append(Paragraph(_escape(', '.join(group['items'])), items_style))
        return flowables

    return [
        Paragraph(f"<b>{_escape(group['category'] or 'Skills')}:</b> {_escape(', '.join(group['items']))}",
                  styles['body'])
        for group in groups
    ]


def build_story(resume: Dict, template: Dict):
    styles = _styles(template)
    info = resume['personal_info']
    story = []

    story.append(Paragraph(_escape(info['full_name'] or 'Your Name'), styles['name']))
    contact = ' | '.join(part for part in (
        info['email'], info['phone'], info['location'], info['linkedin'], info['portfolio']) if part)
    if contact:
        story.append(Paragraph(_escape(contact), styles['contact']))
    story.append(Spacer(1, 6))

    if info['summary']:
        story += _section_heading('Professional Summary', template, styles)
        story.append(Paragraph(_escape(info['summary']), styles['body']))

    sections = ['experience', 'education', 'skills', 'projects', 'certifications']
    if template['id'] == 'graduate':
        sections = ['education', 'projects', 'skills', 'experience', 'certifications']
    elif template['id'] == 'tech':
        sections = ['skills', 'experience', 'projects', 'education', 'certifications']

    for section in sections:
        entries = resume[section]
        if not entries:
            continue

        if section == 'experience':
            story += _section_heading('Experience', template, styles)
            for exp in entries:
                story += _experience_entry(exp, template, styles)

        elif section == 'education':
            story += _section_heading('Education', template, styles)
            for edu in entries:
                title = ' | '.join(part for part in (edu['degree'], edu['institution']) if part)
                meta = ' | '.join(part for part in (
                    edu['graduation_date'], edu['location'],
                    f"GPA {edu['gpa']}" if edu['gpa'] else '') if part)
                block = [Paragraph(_escape(title), styles['entry_title'])]
                if meta:
                    block.append(Paragraph(_escape(meta), styles['meta']))
                story += [KeepTogether(block), Spacer(1, 4)]

        elif section == 'skills':
            blocks = _skills_block(entries, template, styles)
            if blocks:
                story += _section_heading('Skills', template, styles)
                story += blocks

        elif section == 'projects':
            story += _section_heading('Projects', template, styles)
            for project in entries:
                block = [Paragraph(_escape(project['name']), styles['entry_title'])]
                if project['technologies']:
                    block.append(Paragraph(_escape(project['technologies']), styles['meta']))
                if project['description']:
                    block.append(Paragraph(_escape(project['description']), styles['body']))
                if project['link']:
                    block.append(Paragraph(_escape(project['link']), styles['meta']))
                story += [KeepTogether(block), Spacer(1, 4)]

        elif section == 'certifications':
            story += _section_heading('Certifications', template, styles)
            for cert in entries:
                line = ' | '.join(part for part in (cert['name'], cert['issuer'], cert['date']) if part)
                story.append(Paragraph(_escape(line), styles['body']))

    return story


@log_processing_time
def export_pdf(data: Dict, template_id: str = DEFAULT_TEMPLATE) -> Tuple[bytes, int]:
    """Render a résumé to an A4 PDF; returns the PDF bytes and its page count"""
    template = get_template(template_id)
    if template is None:
        raise ValidationError(f"Unknown template '{template_id}'")

    resume = normalize_resume(data)
    buffer = BytesIO()
    pages = []

    def decorate_page(canvas, doc):
        pages.append(doc.page)
        canvas.saveState()
        if template['id'] in ('modern', 'neon', 'bold', 'metro'):
            canvas.setFillColor(colors.HexColor(template['accent_color']))
            canvas.rect(0, A4[1] - 6 * mm, A4[0], 6 * mm, stroke=0, fill=1)
        elif template['layout'] == 'sidebar':
            canvas.setFillColor(colors.HexColor(template['accent_color']))
            canvas.rect(0, 0, 5 * mm, A4[1], stroke=0, fill=1)
        canvas.setFont('Helvetica', 8)
        canvas.setFillColor(colors.HexColor('#9ca3af'))
        canvas.drawRightString(A4[0] - MARGIN, 10 * mm, f"Page {doc.page}")
        canvas.restoreState()

    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        topMargin=MARGIN,
        bottomMargin=MARGIN,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        title=f"{resume['personal_info']['full_name'] or 'Resume'} - Resume",
        author=resume['personal_info']['full_name'],
    )
    doc.build(build_story(resume, template), onFirstPage=decorate_page, onLaterPages=decorate_page)

    page_count = len(pages) or 1
    logger.info(f"Exported résumé with the {template_id} template: {page_count} page(s)")
    return buffer.getvalue(), page_count
