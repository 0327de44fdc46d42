"""
Résumé builder.

Résumés are plain dicts (personal info, experience, education, skill
groups, certifications, projects).  This module normalises them, scores
them against an ATS checklist or a job description, pre-fills them from
a candidate profile and enforces the free download allowance.
"""

import re
import uuid
import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from database import db
from errors import PermissionDenied, ValidationError
from models import Certification, Education, Experience, ResumeDownload, Skill
from utils import ConfigHelper

logger = logging.getLogger(__name__)

PERSONAL_INFO_FIELDS = ('full_name', 'email', 'phone', 'location', 'linkedin', 'portfolio', 'summary')

SECTION_FIELDS = {
    'experience': ('id', 'title', 'company', 'location', 'start_date', 'end_date', 'current', 'description'),
    'education': ('id', 'degree', 'institution', 'location', 'graduation_date', 'gpa'),
    'skills': ('id', 'category', 'items'),
    'certifications': ('id', 'name', 'issuer', 'date'),
    'projects': ('id', 'name', 'description', 'technologies', 'link'),
}


def _template(template_id, name, description, layout, accent, fonts, badge=None, premium=False):
    return {
        'id': template_id,
        'name': name,
        'description': description,
        'badge': badge,
        'layout': layout,
        'accent_color': accent,
        'heading_font': fonts[0],
        'body_font': fonts[1],
        'premium': premium,
    }


TEMPLATES = [
    _template('professional', 'Professional', 'Clean and traditional design perfect for corporate roles',
              'single-column', '#1e3a8a', ('Helvetica-Bold', 'Helvetica'), badge='Most Popular'),
    _template('modern', 'Modern', 'Contemporary layout with accent colors for creative industries',
              'single-column', '#0d9488', ('Helvetica-Bold', 'Helvetica'), badge='Trending'),
    _template('creative', 'Creative', 'Bold and unique design for designers and artists',
              'sidebar', '#db2777', ('Helvetica-Bold', 'Helvetica'), badge='New'),
    _template('minimal', 'Minimal', 'Simple and elegant with maximum white space',
              'single-column', '#374151', ('Helvetica', 'Helvetica')),
    _template('executive', 'Executive', 'Premium design for senior leadership positions',
              'single-column', '#78350f', ('Times-Bold', 'Times-Roman'), badge='Premium', premium=True),
    _template('tech', 'Tech', 'Skills-first layout for engineering and IT roles',
              'sidebar', '#2563eb', ('Courier-Bold', 'Helvetica')),
    _template('compact', 'Compact', 'Dense layout that fits a full career on one page',
              'single-column', '#111827', ('Helvetica-Bold', 'Helvetica')),
    _template('classic', 'Classic', 'Timeless serif layout for law, finance and academia',
              'single-column', '#000000', ('Times-Bold', 'Times-Roman')),
    _template('elegant', 'Elegant', 'Refined typography with subtle gold accents',
              'single-column', '#a16207', ('Times-Bold', 'Times-Roman'), premium=True),
    _template('bold', 'Bold', 'Large headings and strong contrast that stand out',
              'single-column', '#dc2626', ('Helvetica-Bold', 'Helvetica')),
    _template('ats-friendly', 'ATS Friendly', 'Plain structure that applicant tracking systems read reliably',
              'single-column', '#000000', ('Helvetica-Bold', 'Helvetica'), badge='Recommended'),
    _template('graduate', 'Graduate', 'Education and projects first for students and freshers',
              'single-column', '#7c3aed', ('Helvetica-Bold', 'Helvetica')),
    _template('infographic', 'Infographic', 'Visual skill bars and section icons',
              'sidebar', '#0891b2', ('Helvetica-Bold', 'Helvetica'), premium=True),
    _template('metro', 'Metro', 'Tile-inspired sections with flat colour blocks',
              'two-column', '#ea580c', ('Helvetica-Bold', 'Helvetica'), premium=True),
    _template('neon', 'Neon', 'Dark header with vivid highlights for digital roles',
              'single-column', '#16a34a', ('Helvetica-Bold', 'Helvetica'), premium=True),
    _template('split', 'Split', 'Two columns with contact and skills beside the experience',
              'two-column', '#4f46e5', ('Helvetica-Bold', 'Helvetica'), premium=True),
    _template('timeline', 'Timeline', 'Career history drawn along a vertical timeline',
              'timeline', '#0f766e', ('Helvetica-Bold', 'Helvetica'), premium=True),
]

DEFAULT_TEMPLATE = 'professional'

ACTION_VERB_PATTERN = re.compile(
    r'^(led|managed|developed|created|implemented|designed|achieved|increased|reduced|improved)',
    re.IGNORECASE,
)
EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

STOP_WORDS = {
    'the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of', 'with',
    'by', 'from', 'as', 'is', 'was', 'are', 'were', 'been', 'be', 'have', 'has', 'had',
    'do', 'does', 'did', 'will', 'would', 'could', 'should', 'may', 'might', 'must',
    'shall', 'can', 'need', 'this', 'that', 'these', 'those', 'i', 'you', 'he', 'she',
    'it', 'we', 'they', 'what', 'which', 'who', 'whom', 'how', 'when', 'where', 'why',
    'all', 'each', 'every', 'both', 'few', 'more', 'most', 'other', 'some', 'such',
    'no', 'nor', 'not', 'only', 'own', 'same', 'so', 'than', 'too', 'very', 'just',
    'about', 'above', 'after', 'again', 'against', 'any', 'because', 'before', 'below',
    'between', 'during', 'into', 'through', 'under', 'until', 'up', 'down', 'out', 'off',
    'over', 'then', 'once', 'here', 'there', 'also', 'ability', 'experience', 'work',
    'working', 'job', 'position', 'role', 'candidate', 'looking', 'seeking', 'etc',
    'years', 'year', 'required', 'requirements', 'strong', 'good', 'excellent', 'our',
    'your', 'their', 'company', 'team', 'skills', 'skill', 'knowledge', 'understanding',
}

TECH_TERM_PATTERN = re.compile(
    r'\b(react|angular|vue|javascript|typescript|python|java|node\.?js|express|mongodb|sql|aws|'
    r'azure|docker|kubernetes|git|agile|scrum|html|css|tailwind|bootstrap|figma|photoshop|excel|'
    r'tableau|power ?bi|machine learning|ai|data analysis|api|rest|graphql|ci/cd|devops|linux|windows)\b',
    re.IGNORECASE,
)

TOP_FREQUENT_WORDS = 15
MAX_KEYWORDS = 20


def get_template(template_id: str) -> Optional[Dict]:
    for template in TEMPLATES:
        if template['id'] == template_id:
            return template
    return None


def _text(value) -> str:
    if value is None:
        return ''
    return str(value).strip()


def _normalize_entry(section: str, entry) -> Dict:
    entry = entry if isinstance(entry, dict) else {}
    normalized = {}
    for field in SECTION_FIELDS[section]:
        value = entry.get(field)
        if field == 'items':
            if isinstance(value, str):
                value = [item.strip() for item in value.split(',')]
            normalized[field] = [_text(item) for item in value or [] if _text(item)]
        elif field == 'current':
            normalized[field] = bool(value)
        elif field == 'id':
            normalized[field] = _text(value) or uuid.uuid4().hex[:8]
        else:
            normalized[field] = _text(value)
    return normalized


def normalize_resume(data) -> Dict:
    """Fill every missing key of a résumé with an empty default"""
    data = data if isinstance(data, dict) else {}
    personal = data.get('personal_info') if isinstance(data.get('personal_info'), dict) else {}

    resume = {
        'personal_info': {field: _text(personal.get(field)) for field in PERSONAL_INFO_FIELDS},
    }
    for section in SECTION_FIELDS:
        entries = data.get(section)
        if not isinstance(entries, list):
            entries = []
        resume[section] = [_normalize_entry(section, entry) for entry in entries]

    return resume


def empty_resume() -> Dict:
    return normalize_resume({})


def ats_score(data: Dict) -> Dict:
    """Score a résumé against a weighted ATS readiness checklist"""
    resume = normalize_resume(data)
    info = resume['personal_info']

    checks = [
        ('name', 'Full name included', len(info['full_name']) > 2,
         'Add your full name at the top', 10),
        ('email', 'Valid email address', bool(EMAIL_PATTERN.match(info['email'])),
         'Use a professional email', 10),
        ('phone', 'Phone number included', len(info['phone']) >= 10,
         'Add phone with area code', 10),
        ('location', 'Location specified', len(info['location']) > 2,
         'Add city & state/country', 5),
        ('summary', 'Professional summary (50+ words)', len(info['summary'].split()) >= 50,
         'Write a 50-150 word summary', 15),
        ('experience', 'Work experience added', len(resume['experience']) > 0,
         'Add your work history', 15),
        ('exp-bullets', 'Action verbs in descriptions',
         any(ACTION_VERB_PATTERN.match(exp['description']) for exp in resume['experience']),
         'Start with: Led, Managed, etc.', 10),
        ('education', 'Education section complete',
         any(edu['degree'] and edu['institution'] for edu in resume['education']),
         'Add your education', 10),
        ('skills', 'Skills section (5+ skills)',
         sum(len(group['items']) for group in resume['skills']) >= 5,
         'List 5-10 relevant skills', 15),
    ]

    results = [
        {'id': check_id, 'label': label, 'passed': passed, 'tip': tip, 'weight': weight}
        for check_id, label, passed, tip, weight in checks
    ]

    total_weight = sum(check['weight'] for check in results)
    earned = sum(check['weight'] for check in results if check['passed'])
    score = round(earned / total_weight * 100)

    if score >= 80:
        label = 'Excellent'
    elif score >= 60:
        label = 'Good'
    else:
        label = 'Needs Work'

    return {'score': score, 'label': label, 'checks': results}


def extract_keywords(text: str) -> List[str]:
    """Keywords of a job description: known tech terms then the most frequent words"""
    words = re.sub(r'[^\w\s]', ' ', (text or '').lower()).split()
    words = [word for word in words if len(word) > 2 and word not in STOP_WORDS]
    frequent = [word for word, _ in Counter(words).most_common(TOP_FREQUENT_WORDS)]

    tech_terms = []
    for match in TECH_TERM_PATTERN.findall(text or ''):
        normalized = re.sub(r'\s+', '', match.lower())
        if normalized not in tech_terms:
            tech_terms.append(normalized)

    keywords = []
    for keyword in tech_terms + frequent:
        if keyword not in keywords:
            keywords.append(keyword)
    return keywords[:MAX_KEYWORDS]


def resume_text(data: Dict) -> str:
    resume = normalize_resume(data)
    info = resume['personal_info']
    parts = [info['full_name'], info['summary']]
    parts += [f"{e['title']} {e['company']} {e['description']}" for e in resume['experience']]
    parts += [f"{e['degree']} {e['institution']} {e['location']}" for e in resume['education']]
    parts += [item for group in resume['skills'] for item in group['items']]
    parts += [c['name'] for c in resume['certifications']]
    parts += [f"{p['name']} {p['description']} {p['technologies']}" for p in resume['projects']]
    return ' '.join(parts).lower()


def job_description_match(data: Dict, job_description: str) -> Dict:
    """Which job description keywords the résumé mentions"""
    if not (job_description or '').strip():
        raise ValidationError("Job description is required")

    text = resume_text(data)
    # Multi-word tech terms are normalised without spaces
    compact = re.sub(r'\s+', '', text)

    keywords = extract_keywords(job_description)
    matches = [
        {'keyword': keyword, 'found': keyword in text or keyword in compact}
        for keyword in keywords
    ]
    found = [m['keyword'] for m in matches if m['found']]
    missing = [m['keyword'] for m in matches if not m['found']]

    return {
        'match_percentage': round(len(found) / len(matches) * 100) if matches else 0,
        'keywords': matches,
        'found': found,
        'missing': missing,
    }


def _month(value) -> str:
    return value.strftime('%Y-%m') if value else ''


def prefill_from_profile(user) -> Dict:
    """Résumé data built from a candidate's saved profile"""
    experiences = (Experience.query.filter_by(user_id=user.id)
                   .order_by(Experience.start_date.desc()).all())
    education = (Education.query.filter_by(user_id=user.id)
                 .order_by(Education.start_date.desc()).all())
    skills = Skill.query.filter_by(user_id=user.id).order_by(Skill.level.desc()).all()
    certifications = Certification.query.filter_by(user_id=user.id).all()

    skill_groups = []
    verified = [s.name for s in skills if s.is_verified]
    others = [s.name for s in skills if not s.is_verified]
    if verified:
        skill_groups.append({'category': 'Verified Skills', 'items': verified})
    if others:
        skill_groups.append({'category': 'Skills', 'items': others})

    return normalize_resume({
        'personal_info': {
            'full_name': user.name,
            'email': user.email,
            'phone': user.phone,
            'location': user.location,
            'portfolio': user.website,
            'summary': user.bio,
        },
        'experience': [{
            'id': str(exp.id),
            'title': exp.role,
            'company': exp.company,
            'location': exp.location,
            'start_date': _month(exp.start_date),
            'end_date': _month(exp.end_date),
            'current': exp.is_current,
            'description': exp.description,
        } for exp in experiences],
        'education': [{
            'id': str(edu.id),
            'degree': f"{edu.degree} in {edu.field}" if edu.field and edu.field != edu.degree else edu.degree,
            'institution': edu.institution,
            'graduation_date': _month(edu.end_date),
            'gpa': edu.gpa,
        } for edu in education],
        'skills': skill_groups,
        'certifications': [{
            'id': str(cert.id),
            'name': cert.name,
            'issuer': cert.issuer,
            'date': _month(cert.issue_date),
        } for cert in certifications],
    })


# Download allowance

def has_active_premium(user, now: Optional[datetime] = None) -> bool:
    if user is None or not user.is_premium:
        return False
    now = now or datetime.utcnow()
    return user.premium_until is None or user.premium_until > now


def download_allowance(user, now: Optional[datetime] = None) -> Dict:
    """Downloads used and left in the rolling window"""
    now = now or datetime.utcnow()
    config = ConfigHelper.get_resume_config()

    if has_active_premium(user, now):
        return {'premium': True, 'used': None, 'limit': None, 'remaining': None, 'can_download': True}

    since = now - timedelta(days=config['window_days'])
    used = ResumeDownload.query.filter(
        ResumeDownload.user_id == user.id,
        ResumeDownload.created_at > since,
    ).count()
    remaining = max(0, config['free_limit'] - used)

    return {
        'premium': False,
        'used': used,
        'limit': config['free_limit'],
        'remaining': remaining,
        'can_download': remaining > 0,
    }


def record_download(user, template_id: str, now: Optional[datetime] = None) -> Dict:
    """Check the allowance and template access, then log the download"""
    template = get_template(template_id)
    if template is None:
        raise ValidationError(f"Unknown template '{template_id}'")

    now = now or datetime.utcnow()
    if template['premium'] and not has_active_premium(user, now):
        raise PermissionDenied(f"The {template['name']} template requires a premium plan")

    allowance = download_allowance(user, now)
    if not allowance['can_download']:
        raise PermissionDenied(
            f"You have used all {allowance['limit']} free downloads for this month. "
            "Upgrade to premium for unlimited downloads."
        )

    db.session.add(ResumeDownload(user_id=user.id, template=template_id, created_at=now))
    db.session.commit()

    logger.info(f"User {user.id} downloaded a résumé with the {template_id} template")

    if allowance['remaining'] is not None:
        allowance['used'] += 1
        allowance['remaining'] -= 1
        allowance['can_download'] = allowance['remaining'] > 0
    return allowance
