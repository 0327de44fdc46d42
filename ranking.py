"""
Candidate rank calculation.

The rank score is a 0-100 weighted sum of four component scores (skills,
education, certifications, experience) plus a small bonus for a complete
profile.  ``calculate_rank`` is pure; ``recalculate_user_rank`` loads a
candidate's rows, stores the score on the user and works out the
candidate's position on the leaderboard.
"""

import logging
from datetime import date, datetime
from typing import Dict, List, Optional

from database import db
from models import Certification, Education, Experience, Skill, User, UserType
from profile_completion import calculate_profile_completion, get_profile_completion_bonus

logger = logging.getLogger(__name__)

WEIGHTS = {
    'skills': 0.35,
    'education': 0.25,
    'certifications': 0.15,
    'experience': 0.25,
}

DAYS_PER_YEAR = 365


def _get(row, key, default=None):
    if isinstance(row, dict):
        return row.get(key, default)
    return getattr(row, key, default)


def _as_date(value) -> Optional[date]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)).date()


def calculate_skills_score(skills) -> float:
    """Mean per-skill score; levels run 1-10"""
    if not skills:
        return 0.0

    total = 0.0
    for skill in skills:
        level_score = (_get(skill, 'level') or 1) * 7.5
        experience_score = (_get(skill, 'experience_years') or 0) * 5
        verification_bonus = 10 if _get(skill, 'is_verified') else 0
        total += min(level_score + experience_score + verification_bonus, 100)

    return total / len(skills)


def calculate_education_score(education) -> float:
    if not education:
        return 0.0

    total = 0.0
    for edu in education:
        # Tier 1 is a doctorate, tier 5 a certificate
        tier_score = 100 - ((_get(edu, 'tier') or 3) - 1) * 20
        gpa = _get(edu, 'gpa')
        gpa_score = (gpa / 4) * 20 if gpa else 0
        completion_bonus = 10 if not _get(edu, 'is_current') and _get(edu, 'end_date') else 0
        total += tier_score + gpa_score + completion_bonus

    return total / (len(education) * 130) * 100


def calculate_certification_score(certifications, today: Optional[date] = None) -> float:
    if not certifications:
        return 0.0

    today = today or date.today()
    total = 0.0

    for cert in certifications:
        cert_score = 70.0
        if _get(cert, 'is_verified'):
            cert_score += 20

        expiry_date = _as_date(_get(cert, 'expiry_date'))
        if expiry_date and expiry_date < today:
            cert_score *= 0.5

        issue_date = _as_date(_get(cert, 'issue_date'))
        if issue_date and (today - issue_date).days / DAYS_PER_YEAR < 2:
            cert_score += 10

        total += min(cert_score, 100)

    return total / len(certifications)


def calculate_total_experience_years(experiences, today: Optional[date] = None) -> float:
    today = today or date.today()
    total = 0.0

    for exp in experiences:
        start_date = _as_date(_get(exp, 'start_date'))
        if start_date is None:
            continue
        end_date = today if _get(exp, 'is_current') else (_as_date(_get(exp, 'end_date')) or today)
        total += max(0, (end_date - start_date).days / DAYS_PER_YEAR)

    return total


def calculate_experience_score(experiences, today: Optional[date] = None) -> float:
    if not experiences:
        return 0.0

    years_score = min(calculate_total_experience_years(experiences, today) * 10, 80)
    role_types = len({_get(exp, 'role') for exp in experiences})
    diversity_bonus = min(role_types * 5, 20)
    recency_bonus = 10 if any(_get(exp, 'is_current') for exp in experiences) else 0

    return min(years_score + diversity_bonus + recency_bonus, 100)


def generate_recommendations(skills, education, certifications, experiences) -> List[str]:
    recommendations = []

    if len(skills) < 3:
        recommendations.append("Add more skills to improve your ranking. Try to add at least 3-5 core skills in your domain.")

    if not education:
        recommendations.append("Add your educational background to boost your profile ranking.")

    if not certifications:
        recommendations.append("Consider adding relevant certifications to demonstrate your expertise.")

    if not experiences:
        recommendations.append("Add your work experience to significantly improve your ranking.")

    if any((_get(skill, 'level') or 0) < 5 for skill in skills):
        recommendations.append("Improve your proficiency level in existing skills to enhance your ranking.")

    if not recommendations:
        recommendations.append("Your profile is well-rounded. Consider keeping your skills and certifications up to date.")

    return recommendations


def calculate_rank(skills, education, certifications, experiences,
                   completion_percentage: float = 0, today: Optional[date] = None) -> Dict:
    """Compute the rank score and its breakdown from profile rows"""
    skills = list(skills or [])
    education = list(education or [])
    certifications = list(certifications or [])
    experiences = list(experiences or [])

    scores = {
        'skills': calculate_skills_score(skills),
        'education': calculate_education_score(education),
        'certifications': calculate_certification_score(certifications, today),
        'experience': calculate_experience_score(experiences, today),
    }
    counts = {
        'skills': len(skills),
        'education': len(education),
        'certifications': len(certifications),
        'experience': len(experiences),
    }

    weighted = sum(scores[key] * weight for key, weight in WEIGHTS.items())
    bonus = get_profile_completion_bonus(completion_percentage)
    rank = min(100.0, max(0.0, weighted + bonus))

    components = {
        key: {
            'score': round(scores[key], 2),
            'count': counts[key],
            'weight': WEIGHTS[key],
        }
        for key in WEIGHTS
    }
    components['experience']['years'] = round(calculate_total_experience_years(experiences, today), 2)

    return {
        'rank': round(rank, 2),
        'profile_bonus': bonus,
        'components': components,
        'recommendations': generate_recommendations(skills, education, certifications, experiences),
    }


def get_rank_position(user: User) -> Dict:
    """Leaderboard position among all candidates (1 is best)"""
    candidates = User.query.filter_by(user_type=UserType.CANDIDATE)
    total = candidates.count()
    ahead = candidates.filter(User.rank_score > (user.rank_score or 0)).count()
    return {'position': ahead + 1, 'total': total}


def recalculate_user_rank(user_id: int, commit: bool = True) -> Dict:
    """Recompute and store a candidate's rank score"""
    user = db.session.get(User, user_id)
    if user is None:
        raise LookupError(f"User {user_id} not found")

    logger.info(f"Calculating ranking for user: {user_id}")

    skills = Skill.query.filter_by(user_id=user_id).all()
    education = Education.query.filter_by(user_id=user_id).all()
    certifications = Certification.query.filter_by(user_id=user_id).all()
    experiences = Experience.query.filter_by(user_id=user_id).all()

    logger.debug(
        f"Found {len(skills)} skills, {len(education)} education entries, "
        f"{len(certifications)} certifications, {len(experiences)} experiences"
    )

    completion = calculate_profile_completion(user, skills, education, experiences, certifications)
    result = calculate_rank(
        skills, education, certifications, experiences,
        completion_percentage=completion['percentage'],
    )

    user.rank_score = result['rank']
    if commit:
        db.session.commit()
    else:
        db.session.flush()

    logger.info(f"Updated user {user_id} rank to {result['rank']:.2f}")

    result['completion'] = completion['percentage']
    result.update(get_rank_position(user))
    return result


def leaderboard(location: Optional[str] = None, limit: int = 50) -> List[User]:
    """Public candidates ordered by rank score"""
    query = User.query.filter_by(user_type=UserType.CANDIDATE, is_profile_public=True)
    if location:
        query = query.filter(User.location.ilike(f"%{location}%"))
    return query.order_by(User.rank_score.desc(), User.created_at.asc()).limit(limit).all()
