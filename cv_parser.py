import os
import logging
import json
import re
import PyPDF2
import docx
from openai import OpenAI

from utils import ConfigHelper, extract_skills_from_text, get_file_extension, truncate_text

logger = logging.getLogger(__name__)

# Long résumés are cut before being sent to the model
MAX_PROMPT_CHARS = 12000

# Keys the profile import reads; descriptions are shown to the model
CV_SCHEMA = {
    'name': "candidate's full name",
    'email': 'email address',
    'phone': 'phone number with country code if present',
    'location': 'city and country',
    'summary': 'two or three sentence professional summary',
    'skills': ['skill names, one per item, e.g. "Python", "Financial Modelling"'],
    'experience_years': 'total years of work experience as a number',
    'education': [{
        'institution': 'college or university',
        'degree': 'degree, e.g. "B.Tech" or "MBA"',
        'field': 'field of study',
        'year': 'year of graduation, YYYY',
    }],
    'work_experience': [{
        'title': 'role held',
        'company': 'employer name',
        'duration': 'period as "YYYY-MM - YYYY-MM", or "YYYY-MM - Present" for the current job',
        'description': 'one or two sentences on the work',
    }],
}

_client = None

def get_openai_client():
    """OpenAI client, created on first use; None when no API key is configured"""
    global _client

    config = ConfigHelper.get_openai_config()
    if not config['api_key']:
        return None

    if _client is None:
        _client = OpenAI(api_key=config['api_key'])
    return _client

def empty_cv_data():
    data = {key: [] if isinstance(hint, list) else None for key, hint in CV_SCHEMA.items()}
    data['experience_years'] = 0
    return data

def read_pdf(filepath):
    try:
        reader = PyPDF2.PdfReader(filepath)
        return "\n".join(page.extract_text() or "" for page in reader.pages).strip()
    except Exception as e:
        logger.error(f"Could not read PDF résumé {filepath}: {e}")
        return ""

def read_docx(filepath):
    try:
        document = docx.Document(filepath)
    except Exception as e:
        logger.error(f"Could not read DOCX résumé {filepath}: {e}")
        return ""

    lines = [paragraph.text for paragraph in document.paragraphs]
    # Skills and contact blocks are often laid out in tables
    for table in document.tables:
        for row in table.rows:
            lines.append(" | ".join(cell.text.strip() for cell in row.cells if cell.text.strip()))
    return "\n".join(line for line in lines if line.strip()).strip()

def read_plain_text(filepath):
    for encoding in ('utf-8', 'latin-1'):
        try:
            with open(filepath, encoding=encoding) as handle:
                return handle.read().strip()
        except UnicodeDecodeError:
            continue
    return ""

# Legacy .doc files are read as text; most are RTF or plain text in practice
READERS = {
    '.pdf': read_pdf,
    '.docx': read_docx,
    '.doc': read_plain_text,
    '.txt': read_plain_text,
}

def extract_text_from_file(filepath):
    """Text of a résumé upload, or an empty string when it cannot be read"""
    if not os.path.exists(filepath):
        logger.error(f"Résumé file missing: {filepath}")
        return ""

    reader = READERS.get(get_file_extension(filepath))
    if reader is None:
        logger.error(f"Cannot read résumé format of {filepath}")
        return ""
    return reader(filepath)

def _clean_ai_result(result):
    cleaned = empty_cv_data()
    cleaned.update({key: value for key, value in result.items() if key in cleaned})

    for key in ('skills', 'education', 'work_experience'):
        if not isinstance(cleaned.get(key), list):
            cleaned[key] = []

    cleaned['skills'] = [str(skill).strip() for skill in cleaned['skills'] if str(skill).strip()]
    cleaned['education'] = [item for item in cleaned['education'] if isinstance(item, dict)]
    cleaned['work_experience'] = [item for item in cleaned['work_experience'] if isinstance(item, dict)]

    exp_years = cleaned.get('experience_years')
    if isinstance(exp_years, str):
        exp_match = re.search(r'\d+(\.\d+)?', exp_years)
        cleaned['experience_years'] = float(exp_match.group()) if exp_match else 0
    elif not isinstance(exp_years, (int, float)):
        cleaned['experience_years'] = 0

    return cleaned

def parse_cv_with_ai(cv_text):
    """Parse CV text with OpenAI; returns None when the model is unavailable or fails"""
    client = get_openai_client()
    if client is None:
        logger.info("OpenAI API key not configured, using keyword extraction")
        return None

    system_prompt = (
        "You read résumés for a job marketplace that builds candidate profiles from them. "
        "Reply with one JSON object using exactly these keys:\n"
        f"{json.dumps(CV_SCHEMA, indent=2)}\n"
        "Use null for unknown values and empty lists for missing sections. "
        "Do not invent skills, employers or degrees that the résumé does not mention."
    )

    try:
        response = client.chat.completions.create(
            model=ConfigHelper.get_openai_config()['model'],
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": f"Please parse this CV:\n\n{cv_text[:MAX_PROMPT_CHARS]}"}
            ],
            response_format={"type": "json_object"},
            max_tokens=2000
        )

        result = json.loads(response.choices[0].message.content or '{}')
        return _clean_ai_result(result)

    except Exception as e:
        logger.error(f"Error parsing CV with AI: {e}")
        return None

def extract_basic_info_regex(text):
    """Extract contact details and skills using regex as fallback"""
    info = empty_cv_data()

    email_match = re.search(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b', text)
    info['email'] = email_match.group() if email_match else None

    phone_match = re.search(r'\+?\d[\d\s\-\(\)]{8,}\d', text)
    info['phone'] = phone_match.group().strip() if phone_match else None

    # First short line without digits or an @ is usually the name
    for line in text.split('\n')[:5]:
        line = line.strip()
        if line and '@' not in line and not any(char.isdigit() for char in line) and 2 <= len(line.split()) <= 4:
            info['name'] = line
            break

    info['skills'] = extract_skills_from_text(text)

    paragraphs = [p.strip() for p in re.split(r'\n\s*\n', text) if len(p.strip().split()) >= 15]
    if paragraphs:
        info['summary'] = truncate_text(' '.join(paragraphs[0].split()), 500)

    return info

def parse_cv_text(cv_text):
    """Structured data from résumé text, model first then regex"""
    if not cv_text:
        data = empty_cv_data()
        data['text'] = ''
        return data

    basic_info = extract_basic_info_regex(cv_text)
    cv_data = parse_cv_with_ai(cv_text)

    if cv_data is None:
        cv_data = basic_info
        cv_data['source'] = 'keywords'
    else:
        cv_data['source'] = 'ai'
        for key in ('name', 'email', 'phone', 'summary'):
            if not cv_data.get(key) and basic_info.get(key):
                cv_data[key] = basic_info[key]
        if not cv_data['skills']:
            cv_data['skills'] = basic_info['skills']

    cv_data['text'] = cv_text
    return cv_data

def parse_cv_file(filepath):
    """Parse CV file and return structured data"""
    cv_text = extract_text_from_file(filepath)

    if not cv_text:
        logger.error(f"No text extracted from file: {filepath}")

    cv_data = parse_cv_text(cv_text)

    logger.info(f"Parsed CV {os.path.basename(filepath)}: {cv_data.get('name') or 'Unknown'}, "
                f"{len(cv_data['skills'])} skills")

    return cv_data
