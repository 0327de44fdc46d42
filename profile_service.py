"""
Profile data writes for candidates and employers.

Every change to skills, education, experience or certifications is
followed by a rank recalculation, and every skill change is appended to
the skill event log read by the change feed.
"""

import os
import re
import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from flask import current_app

from database import db
from errors import NotFound, ValidationError
from messaging import can_message
from models import Certification, Education, Experience, Skill, SkillEvent, User
from utils import (clean_filename, is_image_file, is_resume_file, parse_date, parse_duration,
                   sanitize_input, to_bool, to_float, to_int, validate_profile_data,
                   validate_skill_data)

logger = logging.getLogger(__name__)

PROFILE_FIELDS = (
    'name', 'phone', 'location', 'bio', 'current_ctc', 'expected_ctc',
    'company', 'industry', 'size', 'website',
)

STREAK_BONUS_DAYS = 7
STREAK_BONUS_POINTS = 5

FEED_PAGE_SIZE = 100

# {kind}_{user id}_{timestamp}_{original name}
UPLOAD_NAME = re.compile(r'^(avatar|resume)_(\d+)_')


def _recalculate(user_id: int):
    from ranking import recalculate_user_rank
    return recalculate_user_rank(user_id, commit=False)


def _fail_if(errors: List[str]):
    if errors:
        raise ValidationError(errors[0], errors)


def update_profile(user: User, data: Dict) -> User:
    """Apply profile field changes; blank strings clear a field"""
    _fail_if(validate_profile_data(data))

    for field in PROFILE_FIELDS:
        if field in data:
            value = data[field]
            value = sanitize_input(value) if isinstance(value, str) else value
            setattr(user, field, value or None)

    if 'is_profile_public' in data:
        user.is_profile_public = to_bool(data['is_profile_public'])

    db.session.flush()
    if user.is_candidate:
        _recalculate(user.id)
    db.session.commit()

    logger.info(f"Profile updated for user {user.id}")
    return user


def save_upload(user: User, file_storage, kind: str) -> str:
    """Store an uploaded avatar or résumé and return its public URL"""
    filename = file_storage.filename if file_storage else ''
    if not filename:
        raise ValidationError("No file selected")

    if kind == 'avatar' and not is_image_file(filename):
        raise ValidationError("Avatar must be a PNG, JPG, GIF or WEBP image")
    if kind == 'resume' and not is_resume_file(filename):
        raise ValidationError("Résumé must be a PDF, DOC, DOCX or TXT file")

    timestamp = datetime.utcnow().strftime('%Y%m%d%H%M%S')
    stored_name = f"{kind}_{user.id}_{timestamp}_{clean_filename(filename)}"
    folder = current_app.config['UPLOAD_FOLDER']
    os.makedirs(folder, exist_ok=True)
    file_storage.save(os.path.join(folder, stored_name))

    url = f"/uploads/{stored_name}"
    if kind == 'avatar':
        user.avatar_url = url
    else:
        user.resume_url = url

    db.session.flush()
    if user.is_candidate:
        _recalculate(user.id)
    db.session.commit()

    logger.info(f"Stored {kind} for user {user.id}: {stored_name}")
    return url


def upload_path(url: str) -> str:
    return os.path.join(current_app.config['UPLOAD_FOLDER'], os.path.basename(url))


def upload_owner(filename: str) -> Optional[User]:
    """User a stored upload belongs to, read from its stored name"""
    match = UPLOAD_NAME.match(os.path.basename(filename))
    if not match:
        return None
    return db.session.get(User, int(match.group(2)))


def can_view_upload(viewer, filename: str) -> bool:
    """Avatars are public; a résumé is shown to its owner, admins and employers allowed to contact the owner"""
    if os.path.basename(filename).startswith('avatar_'):
        return True
    if not viewer.is_authenticated:
        return False

    owner = upload_owner(filename)
    if owner is None:
        return False
    if viewer.id == owner.id or viewer.is_admin:
        return True
    return viewer.is_employer and can_message(viewer, owner)


# Skills

def record_skill_event(skill: Skill, event_type: str):
    db.session.add(SkillEvent(
        user_id=skill.user_id,
        skill_id=skill.id,
        event_type=event_type,
        payload=skill.to_dict(),
    ))


def _skill_values(data: Dict, current: Optional[Skill] = None) -> Dict:
    values = {
        'name': sanitize_input(data.get('name', current.name if current else '')),
        'level': to_int(data.get('level', current.level if current else None)),
        'experience_years': to_float(data.get('experience_years',
                                              current.experience_years if current else 0)),
    }
    _fail_if(validate_skill_data(values))
    return values


def get_user_skill(user: User, skill_id: int) -> Skill:
    skill = Skill.query.filter_by(id=skill_id, user_id=user.id).first()
    if skill is None:
        raise NotFound("Skill not found")
    return skill


def add_skill(user: User, data: Dict) -> Skill:
    try:
        values = _skill_values(data)
    except (TypeError, ValueError):
        raise ValidationError("Skill level and experience must be numbers")

    skill = Skill(user_id=user.id, **values)
    db.session.add(skill)
    db.session.flush()

    record_skill_event(skill, 'INSERT')
    _recalculate(user.id)
    db.session.commit()

    logger.info(f"Skill '{skill.name}' added for user {user.id}")
    return skill


def update_skill(user: User, skill_id: int, data: Dict) -> Skill:
    skill = get_user_skill(user, skill_id)
    try:
        values = _skill_values(data, current=skill)
    except (TypeError, ValueError):
        raise ValidationError("Skill level and experience must be numbers")

    for key, value in values.items():
        setattr(skill, key, value)
    db.session.flush()

    record_skill_event(skill, 'UPDATE')
    _recalculate(user.id)
    db.session.commit()
    return skill


def delete_skill(user: User, skill_id: int):
    skill = get_user_skill(user, skill_id)
    record_skill_event(skill, 'DELETE')
    db.session.delete(skill)
    db.session.flush()

    _recalculate(user.id)
    db.session.commit()
    logger.info(f"Skill {skill_id} deleted for user {user.id}")


def upsert_verified_skill(user_id: int, name: str, level: int, source: str,
                          experience_years: float = 1) -> Skill:
    """Create or upgrade a skill as verified; the level never goes down"""
    skill = Skill.query.filter(
        Skill.user_id == user_id,
        db.func.lower(Skill.name) == name.lower(),
    ).first()

    if skill is None:
        skill = Skill(user_id=user_id, name=name, level=level,
                      experience_years=experience_years)
        db.session.add(skill)
        event_type = 'INSERT'
    else:
        skill.level = max(skill.level or 0, level)
        skill.experience_years = max(skill.experience_years or 0, experience_years)
        event_type = 'UPDATE'

    skill.is_verified = True
    skill.verification_source = source
    db.session.flush()

    record_skill_event(skill, event_type)
    return skill


def skill_changes(user: User, since: int = 0) -> Dict:
    """Skill events of one user newer than the ``since`` cursor"""
    events = (SkillEvent.query
              .filter(SkillEvent.user_id == user.id, SkillEvent.id > since)
              .order_by(SkillEvent.id.asc())
              .limit(FEED_PAGE_SIZE)
              .all())

    cursor = events[-1].id if events else since
    return {
        'events': [event.to_dict() for event in events],
        'cursor': cursor,
    }


# Education, experience and certifications

def infer_education_tier(degree: str) -> int:
    """Tier 1 is a doctorate, tier 5 a certificate"""
    degree = (degree or '').lower()
    if 'phd' in degree or 'doctor' in degree:
        return 1
    if 'master' in degree or 'mba' in degree or degree.startswith('m.') or degree.startswith('ms'):
        return 2
    if 'bachelor' in degree or degree.startswith('b.') or degree.startswith('bs') or degree.startswith('ba'):
        return 3
    if 'diploma' in degree or 'associate' in degree:
        return 4
    if 'certificate' in degree:
        return 5
    return 3


def _required(data: Dict, fields) -> None:
    missing = [label for key, label in fields if not str(data.get(key) or '').strip()]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required")


def _dates(data: Dict, start_key: str, end_key: str):
    try:
        start = parse_date(data.get(start_key))
        end = parse_date(data.get(end_key))
    except ValueError as e:
        raise ValidationError(str(e))

    if start and end and end < start:
        raise ValidationError("End date cannot be before start date")
    return start, end


def _education_values(data: Dict) -> Dict:
    _required(data, (('institution', 'Institution'), ('degree', 'Degree'),
                     ('field', 'Field of study'), ('start_date', 'Start date')))
    start, end = _dates(data, 'start_date', 'end_date')

    try:
        gpa = to_float(data.get('gpa'))
        tier = to_int(data.get('tier')) or infer_education_tier(data.get('degree'))
        college_tier = to_int(data.get('college_tier'))
    except (TypeError, ValueError):
        raise ValidationError("GPA and tier must be numbers")

    if gpa is not None and not 0 <= gpa <= 4:
        raise ValidationError("GPA must be between 0 and 4")
    if not 1 <= tier <= 5:
        raise ValidationError("Education tier must be between 1 and 5")

    is_current = to_bool(data.get('is_current', False))
    return {
        'institution': sanitize_input(data['institution']),
        'degree': sanitize_input(data['degree']),
        'field': sanitize_input(data['field']),
        'start_date': start,
        'end_date': None if is_current else end,
        'is_current': is_current,
        'gpa': gpa,
        'tier': tier,
        'college_tier': college_tier,
    }


def _experience_values(data: Dict) -> Dict:
    _required(data, (('company', 'Company'), ('role', 'Role'), ('start_date', 'Start date')))
    start, end = _dates(data, 'start_date', 'end_date')
    is_current = to_bool(data.get('is_current', False))
    return {
        'company': sanitize_input(data['company']),
        'role': sanitize_input(data['role']),
        'location': sanitize_input(data.get('location') or '') or None,
        'start_date': start,
        'end_date': None if is_current else end,
        'is_current': is_current,
        'description': sanitize_input(data.get('description') or '') or None,
    }


def _certification_values(data: Dict) -> Dict:
    _required(data, (('name', 'Name'), ('issuer', 'Issuer'), ('issue_date', 'Issue date')))
    issued, expires = _dates(data, 'issue_date', 'expiry_date')
    return {
        'name': sanitize_input(data['name']),
        'issuer': sanitize_input(data['issuer']),
        'issue_date': issued,
        'expiry_date': expires,
        'credential_id': sanitize_input(data.get('credential_id') or '') or None,
        'credential_url': (data.get('credential_url') or '').strip() or None,
    }


SECTIONS = {
    'education': (Education, _education_values),
    'experience': (Experience, _experience_values),
    'certifications': (Certification, _certification_values),
}


def _section(section: str):
    if section not in SECTIONS:
        raise NotFound(f"Unknown profile section '{section}'")
    return SECTIONS[section]


def add_entry(user: User, section: str, data: Dict):
    model, values = _section(section)
    entry = model(user_id=user.id, **values(data))
    db.session.add(entry)
    db.session.flush()

    _recalculate(user.id)
    db.session.commit()
    logger.info(f"Added {section} entry {entry.id} for user {user.id}")
    return entry


def update_entry(user: User, section: str, entry_id: int, data: Dict):
    model, values = _section(section)
    entry = model.query.filter_by(id=entry_id, user_id=user.id).first()
    if entry is None:
        raise NotFound(f"{section.capitalize()} entry not found")

    merged = entry.to_dict()
    merged.update(data)
    for key, value in values(merged).items():
        setattr(entry, key, value)
    db.session.flush()

    _recalculate(user.id)
    db.session.commit()
    return entry


def delete_entry(user: User, section: str, entry_id: int):
    model, _ = _section(section)
    entry = model.query.filter_by(id=entry_id, user_id=user.id).first()
    if entry is None:
        raise NotFound(f"{section.capitalize()} entry not found")

    db.session.delete(entry)
    db.session.flush()
    _recalculate(user.id)
    db.session.commit()


# Résumé import

def import_cv_data(user: User, cv_data: Dict) -> Dict:
    """Add parsed skills, education and experience to a candidate profile"""
    counts = {'skills': 0, 'education': 0, 'experience': 0}

    for field in ('name', 'phone', 'location'):
        if not getattr(user, field) and cv_data.get(field):
            setattr(user, field, str(cv_data[field])[:100])
    if not user.bio and cv_data.get('summary'):
        user.bio = cv_data['summary']

    existing = {skill.name.lower() for skill in Skill.query.filter_by(user_id=user.id)}
    years = min(float(cv_data.get('experience_years') or 0), 50)

    for name in cv_data.get('skills', []):
        name = str(name).strip()[:100]
        if len(name) < 2 or name.lower() in existing:
            continue
        existing.add(name.lower())
        skill = Skill(user_id=user.id, name=name, level=5, experience_years=years)
        db.session.add(skill)
        db.session.flush()
        record_skill_event(skill, 'INSERT')
        counts['skills'] += 1

    for item in cv_data.get('education', []):
        if not item.get('institution') or not item.get('degree'):
            continue
        try:
            year = parse_date(str(item.get('year') or '').strip()[:4] or None)
        except ValueError:
            year = None
        db.session.add(Education(
            user_id=user.id,
            institution=str(item['institution'])[:200],
            degree=str(item['degree'])[:200],
            field=str(item.get('field') or item['degree'])[:200],
            start_date=year or date.today(),
            end_date=year,
            is_current=year is None,
            tier=infer_education_tier(item['degree']),
        ))
        counts['education'] += 1

    for item in cv_data.get('work_experience', []):
        start, end, is_current = parse_duration(item.get('duration') or '')
        if not item.get('company') or not item.get('title') or start is None:
            continue
        db.session.add(Experience(
            user_id=user.id,
            company=str(item['company'])[:200],
            role=str(item['title'])[:200],
            start_date=start,
            end_date=end,
            is_current=is_current,
            description=item.get('description'),
        ))
        counts['experience'] += 1

    db.session.flush()
    _recalculate(user.id)
    db.session.commit()

    logger.info(f"Imported CV for user {user.id}: {counts}")
    return counts


# Daily login reward

def record_daily_login(user: User, today: Optional[date] = None) -> int:
    """Award the daily login point and streak bonus; returns the points awarded"""
    today = today or date.today()

    if user.last_login_date == today:
        return 0

    if user.last_login_date == today - timedelta(days=1):
        user.login_streak = (user.login_streak or 0) + 1
    else:
        user.login_streak = 1

    points = 1
    if user.login_streak % STREAK_BONUS_DAYS == 0:
        points += STREAK_BONUS_POINTS

    user.reward_points = (user.reward_points or 0) + points
    user.last_login_date = today
    db.session.commit()

    logger.info(f"User {user.id} earned {points} login points (streak {user.login_streak})")
    return points
