import os
import sys
import tempfile
import unittest
from datetime import date
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

TEST_DIR = tempfile.mkdtemp(prefix="rankme-tests-")

# Configure before the app module is imported
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(TEST_DIR, 'test.db')}"
os.environ["UPLOAD_FOLDER"] = os.path.join(TEST_DIR, "uploads")
os.environ["SEED_SAMPLE_DATA"] = "false"
os.environ["SMTP_ENABLED"] = "false"
os.environ["OPENAI_API_KEY"] = ""
os.environ["RAZORPAY_KEY_SECRET"] = "test-secret"
os.environ["FREE_RESUME_LIMIT"] = "2"

from werkzeug.security import generate_password_hash  # noqa: E402

from app import app  # noqa: E402
from database import db  # noqa: E402
from models import Job, Skill, User, UserType  # noqa: E402
from payments import seed_default_packages  # noqa: E402

PASSWORD = "Passw0rd!"

JOB_DESCRIPTION = (
    "Build and maintain web applications for our customers. You will work with a small "
    "team of engineers on new features every week."
)


def reset_database():
    with app.app_context():
        db.drop_all()
        db.create_all()
        seed_default_packages()


def create_user(email, user_type=UserType.CANDIDATE, **fields):
    fields.setdefault("name", email.split("@")[0].title())
    user = User(email=email, password_hash=generate_password_hash(PASSWORD), user_type=user_type, **fields)
    db.session.add(user)
    db.session.commit()
    return user


def create_job(employer, **fields):
    values = {
        "title": "Backend Developer",
        "description": JOB_DESCRIPTION,
        "location": "Remote",
        "job_type": "full-time",
        "required_skills": ["Python", "SQL"],
    }
    values.update(fields)
    job = Job(employer_id=employer.id, **values)
    db.session.add(job)
    db.session.commit()
    return job


def add_skill(user, name, level=5, experience_years=1, **fields):
    skill = Skill(user_id=user.id, name=name, level=level, experience_years=experience_years, **fields)
    db.session.add(skill)
    db.session.commit()
    return skill


class ServiceTestCase(unittest.TestCase):
    """Runs each test inside an application context on a fresh database"""

    def setUp(self):
        app.config["TESTING"] = True
        reset_database()
        self.ctx = app.app_context()
        self.ctx.push()

    def tearDown(self):
        db.session.remove()
        self.ctx.pop()

    def candidate(self, email="candidate@example.com", **fields):
        fields.setdefault("location", "Bangalore")
        return create_user(email, UserType.CANDIDATE, **fields)

    def employer(self, email="employer@example.com", **fields):
        fields.setdefault("company", "Acme")
        return create_user(email, UserType.EMPLOYER, **fields)


class ApiTestCase(unittest.TestCase):
    """HTTP tests; the database is only touched inside short app contexts"""

    def setUp(self):
        app.config["TESTING"] = True
        reset_database()
        self.client = app.test_client()

    def make_user(self, email, user_type=UserType.CANDIDATE, **fields):
        with app.app_context():
            return create_user(email, user_type, **fields).id

    def make_job(self, employer_id, **fields):
        with app.app_context():
            employer = db.session.get(User, employer_id)
            return create_job(employer, **fields).id

    def login(self, email, client=None):
        client = client or self.client
        response = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
        self.assertEqual(response.status_code, 200, response.get_json())
        return client

    def new_client(self):
        return app.test_client()


def years_ago(years):
    today = date.today()
    return date(today.year - years, 1, 1)
