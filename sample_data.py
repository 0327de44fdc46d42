"""Demo accounts and jobs for local development (SEED_SAMPLE_DATA=true)."""

import logging
from datetime import date, timedelta

from werkzeug.security import generate_password_hash

from database import db
from models import Certification, Education, Experience, Job, Skill, User, UserType
from ranking import recalculate_user_rank

logger = logging.getLogger(__name__)

DEMO_PASSWORD = 'Demo@12345'

SAMPLE_JOBS = [
    {
        'title': 'Junior Frontend Developer',
        'description': 'Build and maintain customer-facing web applications with React and TypeScript. '
                       'You will work closely with designers and backend engineers.',
        'location': 'Bangalore',
        'job_type': 'full-time',
        'salary_min': 400000,
        'salary_max': 700000,
        'min_experience': 0,
        'required_skills': ['React', 'JavaScript', 'TypeScript', 'CSS'],
    },
    {
        'title': 'Python Backend Intern',
        'description': 'Help us build REST APIs and data pipelines in Python and SQL. '
                       'Mentorship from senior engineers and a path to a full-time offer.',
        'location': 'Remote',
        'job_type': 'internship',
        'salary_min': 20000,
        'salary_max': 30000,
        'min_experience': 0,
        'required_skills': ['Python', 'SQL', 'REST API', 'Git'],
    },
    {
        'title': 'Data Analyst',
        'description': 'Turn product and sales data into dashboards and recommendations. '
                       'Strong SQL and a working knowledge of Python data tools required.',
        'location': 'Pune',
        'job_type': 'full-time',
        'salary_min': 500000,
        'salary_max': 900000,
        'min_experience': 1,
        'min_rank_requirement': 30,
        'required_skills': ['SQL', 'Data Analysis', 'Python', 'Excel'],
    },
]


def _user(email, user_type, **fields):
    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email, user_type=user_type,
                    password_hash=generate_password_hash(DEMO_PASSWORD), **fields)
        db.session.add(user)
        db.session.flush()
    return user


def seed_sample_data():
    if User.query.filter_by(email='employer@demo.rankme').first():
        return

    employer = _user('employer@demo.rankme', UserType.EMPLOYER, name='Priya Nair',
                     company='Acme Technologies', industry='Software', size='51-200',
                     website='https://acme.example.com', location='Bangalore')

    candidate = _user('candidate@demo.rankme', UserType.CANDIDATE, name='Rahul Verma',
                      location='Bangalore', phone='+91 98765 43210', is_profile_public=True,
                      bio='Computer science graduate who enjoys building web applications.',
                      expected_ctc='6 LPA')

    for name, level, years in (('React', 7, 1.5), ('JavaScript', 8, 2), ('Python', 6, 1),
                               ('SQL', 5, 1), ('Git', 7, 2)):
        db.session.add(Skill(user_id=candidate.id, name=name, level=level, experience_years=years))

    db.session.add(Education(user_id=candidate.id, institution='State Engineering College',
                             degree='Bachelor of Technology', field='Computer Science',
                             start_date=date(2020, 8, 1), end_date=date(2024, 6, 1),
                             gpa=3.4, tier=3))
    db.session.add(Experience(user_id=candidate.id, company='Startup Labs', role='Frontend Intern',
                              start_date=date(2023, 6, 1), end_date=date(2023, 12, 1),
                              description='Developed dashboard components in React.'))
    db.session.add(Certification(user_id=candidate.id, name='AWS Cloud Practitioner',
                                 issuer='Amazon Web Services', issue_date=date.today() - timedelta(days=200)))

    for data in SAMPLE_JOBS:
        db.session.add(Job(employer_id=employer.id, **data))

    db.session.flush()
    recalculate_user_rank(candidate.id, commit=False)
    db.session.commit()

    logger.info(f"Sample data created (password for demo accounts: {DEMO_PASSWORD})")
