"""
Matching candidates to jobs.

Two measures are used.  The recommendation list on the candidate
dashboard ranks jobs by the share of a job's required skills covered by
the candidate's strongest skills.  The per-job match percentage shown on
a job page also weighs the candidate's level and years in each matching
skill.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Sequence


def _get(row, key, default=None):
    if isinstance(row, dict):
        return row.get(key, default)
    return getattr(row, key, default)


def _normalize(name: str) -> str:
    return (name or '').strip().lower()


def top_skills(skills: Iterable, limit: int = 5) -> List:
    """The candidate's strongest skills, by level then years of experience"""
    ordered = sorted(
        skills,
        key=lambda s: (_get(s, 'level') or 0, _get(s, 'experience_years') or 0),
        reverse=True,
    )
    return ordered[:limit]


def skill_overlap(candidate_skills: Iterable[str], required_skills: Sequence[str]) -> float:
    """Share of the required skills the candidate has (0.0 - 1.0)"""
    required = {_normalize(s) for s in required_skills or [] if _normalize(s)}
    if not required:
        return 0.0

    have = {_normalize(s) for s in candidate_skills}
    return len(required & have) / len(required)


def recommend_jobs(candidate_skills: Iterable, jobs: Iterable, limit: int = 5,
                   top_skill_count: int = 5) -> List[Dict]:
    """Rank jobs by overlap with the candidate's top skills.

    Returns ``{'job': job, 'match': percent, 'matching_skills': [...]}``
    entries, best first, with jobs sharing no skill left out.  Equal
    scores keep the newest job first.
    """
    strongest = [_get(s, 'name') for s in top_skills(candidate_skills, top_skill_count)]
    strongest_keys = {_normalize(name) for name in strongest}

    scored = []
    for job in jobs:
        required = _get(job, 'required_skills') or []
        ratio = skill_overlap(strongest, required)
        if ratio <= 0:
            continue
        scored.append({
            'job': job,
            'match': round(ratio * 100),
            'ratio': ratio,
            'matching_skills': [s for s in required if _normalize(s) in strongest_keys],
        })

    scored.sort(key=lambda item: _get(item['job'], 'created_at') or datetime.min, reverse=True)
    scored.sort(key=lambda item: item['ratio'], reverse=True)
    return scored[:limit]


def compute_match_percentage(skills: Iterable, required_skills: Sequence[str]) -> Dict:
    """Weighted match of a candidate against one job's required skills.

    Each required skill is worth 100 points: 50 for having it, up to 25
    for its level (1-10) and up to 25 for years of experience in it.
    """
    skill_map = {}
    for skill in skills:
        skill_map[_normalize(_get(skill, 'name'))] = (
            _get(skill, 'level') or 0,
            _get(skill, 'experience_years') or 0,
        )

    match_score = 0.0
    total_possible = 0
    matching, missing = [], []

    for name in required_skills or []:
        total_possible += 100
        user_skill = skill_map.get(_normalize(name))
        if user_skill is None:
            missing.append(name)
            continue

        level, years = user_skill
        matching.append(name)
        match_score += 50
        match_score += min(level * 2.5, 25)
        match_score += min(years * 5, 25)

    percentage = round(match_score / total_possible * 100) if total_possible else 0

    return {
        'match_percentage': percentage,
        'matching_skills': matching,
        'missing_skills': missing,
    }
