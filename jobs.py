"""
Job postings and applications.

Employers own their postings; candidates apply once per open job when
their rank score meets the posting's minimum.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from database import db
from errors import ConflictError, NotFound, PermissionDenied, ValidationError
from job_matcher import compute_match_percentage, recommend_jobs
from messaging import notify, notify_subscribers_of_job
from models import Application, ApplicationStatus, Job, Skill, User
from utils import parse_date, sanitize_input, to_bool, to_float, to_int, validate_job_data

logger = logging.getLogger(__name__)

JOBS_PER_PAGE = 10

EMPLOYER_STATUSES = (
    ApplicationStatus.PENDING,
    ApplicationStatus.REVIEWED,
    ApplicationStatus.SHORTLISTED,
    ApplicationStatus.ACCEPTED,
    ApplicationStatus.REJECTED,
)


def open_jobs_query(today=None):
    """Active jobs whose closing date has not passed"""
    today = today or datetime.utcnow().date()
    return Job.query.filter(
        Job.is_active.is_(True),
        or_(Job.closing_date.is_(None), Job.closing_date >= today),
    )


def search_jobs(search: str = '', job_type: str = '', location: str = '', page: int = 1,
                per_page: int = JOBS_PER_PAGE, today=None):
    """Active, not yet closed jobs matching the filters, newest first"""
    query = open_jobs_query(today)

    if search:
        term = f"%{search.strip()}%"
        query = query.filter(or_(
            Job.title.ilike(term),
            Job.description.ilike(term),
            Job.location.ilike(term),
            db.cast(Job.required_skills, db.String).ilike(term),
        ))

    if job_type:
        query = query.filter(Job.job_type == job_type)

    if location:
        query = query.filter(Job.location.ilike(f"%{location.strip()}%"))

    return query.order_by(Job.created_at.desc(), Job.id.desc()).paginate(
        page=page, per_page=per_page, error_out=False
    )


def parse_job_form(data: Dict) -> Dict:
    """Coerce form or JSON input into job values"""
    skills = data.get('required_skills') or []
    if isinstance(skills, str):
        skills = [skill.strip() for skill in skills.split(',')]
    skills = [sanitize_input(skill) for skill in skills if isinstance(skill, str) and skill.strip()]

    try:
        values = {
            'title': sanitize_input(data.get('title') or ''),
            'description': (data.get('description') or '').strip(),
            'location': sanitize_input(data.get('location') or ''),
            'job_type': (data.get('job_type') or '').strip(),
            'salary_min': to_int(data.get('salary_min')),
            'salary_max': to_int(data.get('salary_max')),
            'min_experience': to_int(data.get('min_experience')),
            'min_rank_requirement': to_float(data.get('min_rank_requirement')),
            'required_skills': skills,
            'closing_date': parse_date(data.get('closing_date')),
        }
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid job data: {e}")

    errors = validate_job_data(values)
    if errors:
        raise ValidationError(errors[0], errors)
    return values


def get_job(job_id: int) -> Job:
    job = db.session.get(Job, job_id)
    if job is None:
        raise NotFound("Job not found")
    return job


def get_owned_job(employer: User, job_id: int) -> Job:
    job = get_job(job_id)
    if job.employer_id != employer.id and not employer.is_admin:
        raise PermissionDenied("You can only manage your own jobs")
    return job


def create_job(employer: User, data: Dict) -> Job:
    if not employer.is_employer:
        raise PermissionDenied("Only employers can post jobs")

    job = Job(employer_id=employer.id, is_active=True, **parse_job_form(data))
    db.session.add(job)
    db.session.commit()

    logger.info(f"Job {job.id} '{job.title}' posted by employer {employer.id}")
    notify_subscribers_of_job(job)
    return job


def update_job(employer: User, job_id: int, data: Dict) -> Job:
    job = get_owned_job(employer, job_id)

    merged = job.to_dict(with_employer=False)
    merged.update(data)
    for key, value in parse_job_form(merged).items():
        setattr(job, key, value)

    if 'is_active' in data:
        job.is_active = to_bool(data['is_active'])

    db.session.commit()
    logger.info(f"Job {job.id} updated")
    return job


def set_job_active(employer: User, job_id: int, is_active: bool) -> Job:
    job = get_owned_job(employer, job_id)
    job.is_active = is_active
    db.session.commit()
    logger.info(f"Job {job.id} {'activated' if is_active else 'paused'}")
    return job


def delete_job(employer: User, job_id: int):
    job = get_owned_job(employer, job_id)
    db.session.delete(job)
    db.session.commit()
    logger.info(f"Job {job_id} deleted by user {employer.id}")


def apply_to_job(candidate: User, job_id: int, note: Optional[str] = None) -> Application:
    if not candidate.is_candidate:
        raise PermissionDenied("Only candidates can apply for jobs")

    job = get_job(job_id)
    if not job.is_open():
        raise ValidationError("This job is no longer accepting applications")

    if job.min_rank_requirement and (candidate.rank_score or 0) < job.min_rank_requirement:
        raise PermissionDenied(
            f"This job requires a rank score of at least {job.min_rank_requirement:g}. "
            f"Your current score is {candidate.rank_score or 0:.1f}."
        )

    existing = Application.query.filter_by(job_id=job.id, candidate_id=candidate.id).first()
    if existing is not None:
        raise ConflictError("You have already applied for this job")

    application = Application(
        job_id=job.id,
        candidate_id=candidate.id,
        candidate_note=sanitize_input(note or '') or None,
    )
    db.session.add(application)

    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("You have already applied for this job")

    notify(job.employer_id, 'new_application', f"New application for {job.title}",
           f"{candidate.display_name} applied for {job.title}",
           related_id=application.id, related_type='application')
    db.session.commit()

    logger.info(f"Candidate {candidate.id} applied to job {job.id}")
    return application


def withdraw_application(candidate: User, application_id: int) -> Application:
    application = Application.query.filter_by(id=application_id, candidate_id=candidate.id).first()
    if application is None:
        raise NotFound("Application not found")
    if application.status != ApplicationStatus.PENDING:
        raise ValidationError("Only pending applications can be withdrawn")

    application.status = ApplicationStatus.WITHDRAWN
    db.session.commit()
    return application


def update_application_status(employer: User, application_id: int, status: str,
                              note: Optional[str] = None) -> Application:
    application = db.session.get(Application, application_id)
    if application is None:
        raise NotFound("Application not found")
    if application.job.employer_id != employer.id and not employer.is_admin:
        raise PermissionDenied("You can only manage applications to your own jobs")

    try:
        new_status = ApplicationStatus(status)
    except ValueError:
        raise ValidationError(f"Invalid status '{status}'")
    if new_status not in EMPLOYER_STATUSES:
        raise ValidationError(f"Invalid status '{status}'")
    if application.status == ApplicationStatus.WITHDRAWN:
        raise ValidationError("The candidate has withdrawn this application")

    application.status = new_status
    if note is not None:
        application.employer_note = sanitize_input(note) or None

    message = f"Your application for {application.job.title} is now {new_status.value}"
    if application.employer_note:
        message += f": {application.employer_note}"
    notify(application.candidate_id, 'application_status', 'Application update', message,
           related_id=application.id, related_type='application')
    db.session.commit()

    logger.info(f"Application {application.id} set to {new_status.value}")
    return application


def employer_jobs_with_counts(employer: User) -> List[Dict]:
    """The employer's jobs, newest first, each with its application count"""
    rows = (db.session.query(Job, db.func.count(Application.id))
            .outerjoin(Application, Application.job_id == Job.id)
            .filter(Job.employer_id == employer.id)
            .group_by(Job.id)
            .order_by(Job.created_at.desc(), Job.id.desc())
            .all())

    jobs = []
    for job, count in rows:
        data = job.to_dict(with_employer=False)
        data['application_count'] = count
        jobs.append(data)
    return jobs


def job_applications(employer: User, job_id: int) -> List[Dict]:
    job = get_owned_job(employer, job_id)
    applications = (Application.query.filter_by(job_id=job.id)
                    .order_by(Application.created_at.desc()).all())

    results = []
    for application in applications:
        data = application.to_dict()
        candidate = application.candidate
        skills = Skill.query.filter_by(user_id=candidate.id).all()
        data['candidate'] = candidate.to_dict(private=True)
        data['match'] = compute_match_percentage(skills, job.required_skills or [])
        results.append(data)
    return results


def candidate_applications(candidate: User) -> List[Dict]:
    """The candidate's applications with job title, location and employer"""
    rows = (db.session.query(Application, Job, User)
            .join(Job, Application.job_id == Job.id)
            .join(User, Job.employer_id == User.id)
            .filter(Application.candidate_id == candidate.id)
            .order_by(Application.created_at.desc(), Application.id.desc())
            .all())

    return [
        dict(application.to_dict(),
             job_title=job.title,
             job_location=job.location,
             job_type=job.job_type,
             employer_name=employer.company or employer.display_name)
        for application, job, employer in rows
    ]


def recommended_jobs_for(candidate: User, limit: int = 5) -> List[Dict]:
    """Open jobs matching the candidate's top skills, excluding ones applied to"""
    skills = Skill.query.filter_by(user_id=candidate.id).all()
    if not skills:
        return []

    applied = db.session.query(Application.job_id).filter(Application.candidate_id == candidate.id)
    jobs = open_jobs_query().filter(Job.id.not_in(applied)).all()
    return recommend_jobs(skills, jobs, limit=limit)


def job_match_for(candidate: User, job: Job) -> Dict:
    skills = Skill.query.filter_by(user_id=candidate.id).all()
    result = compute_match_percentage(skills, job.required_skills or [])
    required_rank = job.min_rank_requirement or 0
    result['meets_rank_requirement'] = (candidate.rank_score or 0) >= required_rank
    return result
