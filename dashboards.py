"""Data behind the candidate, employer and admin dashboards."""

import logging
from typing import Dict

from database import db
from jobs import candidate_applications, employer_jobs_with_counts, recommended_jobs_for
from messaging import list_notifications, unread_counts
from models import (Application, ApplicationStatus, AssessmentAttempt, Certification, Education,
                    Experience, Job, ResumeDownload, Skill, Subscription, User, UserType)
from profile_completion import calculate_profile_completion
from ranking import calculate_rank, get_rank_position

logger = logging.getLogger(__name__)

RECENT_APPLICATIONS = 5


def candidate_dashboard(user: User) -> Dict:
    skills = Skill.query.filter_by(user_id=user.id).order_by(Skill.level.desc()).all()
    education = Education.query.filter_by(user_id=user.id).all()
    experiences = Experience.query.filter_by(user_id=user.id).all()
    certifications = Certification.query.filter_by(user_id=user.id).all()

    completion = calculate_profile_completion(user, skills, education, experiences, certifications)
    breakdown = calculate_rank(skills, education, certifications, experiences,
                               completion_percentage=completion['percentage'])

    return {
        'completion': completion,
        'rank_score': round(user.rank_score or 0, 2),
        'rank': breakdown,
        'position': get_rank_position(user),
        'skills': skills,
        'applications': candidate_applications(user)[:RECENT_APPLICATIONS],
        'recommended_jobs': recommended_jobs_for(user),
        'notifications': list_notifications(user, limit=10),
        'unread': unread_counts(user),
        'reward_points': user.reward_points,
        'login_streak': user.login_streak,
    }


def employer_dashboard(user: User) -> Dict:
    jobs = employer_jobs_with_counts(user)

    applications = (Application.query
                    .join(Job, Application.job_id == Job.id)
                    .filter(Job.employer_id == user.id))

    stats = {
        'active_jobs': sum(1 for job in jobs if job['is_active']),
        'total_applications': applications.count(),
        'pending_applications': applications.filter(
            Application.status == ApplicationStatus.PENDING).count(),
        'accepted_applications': applications.filter(
            Application.status == ApplicationStatus.ACCEPTED).count(),
    }

    recent = (applications.order_by(Application.created_at.desc(), Application.id.desc())
              .limit(RECENT_APPLICATIONS).all())

    return {
        'stats': stats,
        'jobs': jobs,
        'recent_applications': recent,
        'notifications': list_notifications(user, limit=10),
        'unread': unread_counts(user),
    }


def admin_stats() -> Dict:
    return {
        'candidates': User.query.filter_by(user_type=UserType.CANDIDATE).count(),
        'employers': User.query.filter_by(user_type=UserType.EMPLOYER).count(),
        'premium_users': User.query.filter_by(is_premium=True).count(),
        'jobs': Job.query.count(),
        'active_jobs': Job.query.filter_by(is_active=True).count(),
        'applications': Application.query.count(),
        'assessments_taken': AssessmentAttempt.query.count(),
        'assessments_passed': AssessmentAttempt.query.filter_by(passed=True).count(),
        'resume_downloads': ResumeDownload.query.count(),
        'active_subscriptions': Subscription.query.filter_by(is_active=True).count(),
        'average_rank': round(db.session.query(db.func.avg(User.rank_score))
                              .filter(User.user_type == UserType.CANDIDATE).scalar() or 0, 1),
    }
