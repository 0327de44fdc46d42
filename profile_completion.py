"""
Profile completion scoring.

A weighted checklist over the profile fields of a user.  Candidates are
scored on basic information, compensation expectations, skills,
education and work experience; employers on basic information and
company details, with their total doubled since they have fewer fields.
"""

from typing import Dict, List, Optional

BASIC_FIELDS = [
    ('name', 'Full Name', 3),
    ('email', 'Email Address', 3),
    ('phone', 'Phone Number', 4),
    ('location', 'Location', 4),
    ('bio', 'Professional Summary', 6),
    ('avatar_url', 'Profile Photo', 5),
    ('resume_url', 'Resume/CV', 5),
]

CANDIDATE_FIELDS = [
    ('current_ctc', 'Current CTC', 5),
    ('expected_ctc', 'Expected CTC', 5),
]

EMPLOYER_FIELDS = [
    ('company', 'Company Name', 5),
    ('industry', 'Industry', 3),
    ('size', 'Company Size', 2),
    ('website', 'Company Website', 5),
]

MAX_RECOMMENDATIONS = 3


def _field_value(user, key):
    if isinstance(user, dict):
        return user.get(key)
    return getattr(user, key, None)


def _user_type(user) -> Optional[str]:
    user_type = _field_value(user, 'user_type')
    return getattr(user_type, 'value', user_type)


def _is_present(value) -> bool:
    return value is not None and str(value).strip() != ''


def calculate_profile_completion(user, skills=None, education=None,
                                 experience=None, certifications=None) -> Dict:
    """Score how complete a profile is.

    ``user`` may be a ``User`` row or a plain dict with the same keys.
    Returns the percentage (0-100), the completed and missing field labels
    and at most three recommendations.
    """
    skills = skills or []
    education = education or []
    experience = experience or []
    certifications = certifications or []

    completed_fields: List[str] = []
    missing_fields: List[str] = []
    recommendations: List[str] = []

    user_type = _user_type(user) if user is not None else None
    is_candidate = user_type == 'candidate'
    is_employer = user_type == 'employer'

    total_points = 0

    for key, label, points in BASIC_FIELDS:
        if user is not None and _is_present(_field_value(user, key)):
            completed_fields.append(label)
            total_points += points
        else:
            missing_fields.append(label)
            recommendations.append(f"Add your {label.lower()} to improve your profile")

    professional_fields = CANDIDATE_FIELDS if is_candidate else EMPLOYER_FIELDS
    for key, label, points in professional_fields:
        if user is not None and _is_present(_field_value(user, key)):
            completed_fields.append(label)
            total_points += points
        else:
            missing_fields.append(label)
            recommendations.append(f"Complete your {label.lower()}")

    if is_candidate:
        if len(skills) >= 5:
            completed_fields.append('Skills (5+ added)')
            total_points += 20
        elif len(skills) >= 3:
            completed_fields.append('Skills (3-4 added)')
            total_points += 15
            recommendations.append('Add at least 5 skills to maximize your profile score')
        elif len(skills) >= 1:
            completed_fields.append('Skills (1-2 added)')
            total_points += 10
            recommendations.append('Add more skills to improve your profile')
        else:
            missing_fields.append('Skills')
            recommendations.append('Add your key skills to help employers find you')

        if education:
            completed_fields.append('Education')
            total_points += 15
        else:
            missing_fields.append('Education')
            recommendations.append('Add your educational background')

        if len(experience) >= 2:
            completed_fields.append('Work Experience (2+ positions)')
            total_points += 15
        elif len(experience) == 1:
            completed_fields.append('Work Experience (1 position)')
            total_points += 10
            recommendations.append('Add more work experiences to strengthen your profile')
        else:
            missing_fields.append('Work Experience')
            recommendations.append('Add your work experience to showcase your expertise')

        # Listed for the user but not scored
        if certifications:
            completed_fields.append(f'Certifications ({len(certifications)})')

    if is_employer:
        total_points = min(100, total_points * 2)

    percentage = min(100, round(total_points))

    if is_candidate and not _field_value(user, 'is_profile_public') and percentage >= 70:
        recommendations.append('Consider making your profile public to attract more employers')

    return {
        'percentage': percentage,
        'completed_fields': completed_fields,
        'missing_fields': missing_fields,
        'recommendations': recommendations[:MAX_RECOMMENDATIONS],
    }


def get_profile_completion_bonus(completion_percentage: float) -> int:
    """Bonus rank points awarded for a well filled profile"""
    if completion_percentage >= 100:
        return 10
    if completion_percentage >= 90:
        return 7
    if completion_percentage >= 75:
        return 5
    if completion_percentage >= 50:
        return 2
    return 0
