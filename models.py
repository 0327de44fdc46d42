from datetime import datetime
from database import db
from flask_login import UserMixin
from sqlalchemy import Enum
import enum

class UserType(enum.Enum):
    CANDIDATE = "candidate"
    EMPLOYER = "employer"
    ADMIN = "admin"

class ApplicationStatus(enum.Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    SHORTLISTED = "shortlisted"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"

class PaymentStatus(enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"

JOB_TYPES = ('full-time', 'part-time', 'contract', 'internship', 'freelance')

class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    user_type = db.Column(Enum(UserType), nullable=False, default=UserType.CANDIDATE)
    name = db.Column(db.String(100))
    phone = db.Column(db.String(30))
    location = db.Column(db.String(100))
    bio = db.Column(db.Text)
    avatar_url = db.Column(db.String(512))
    resume_url = db.Column(db.String(512))

    # Candidate fields
    current_ctc = db.Column(db.String(50))
    expected_ctc = db.Column(db.String(50))
    is_profile_public = db.Column(db.Boolean, default=False, nullable=False)
    rank_score = db.Column(db.Float, default=0)

    # Employer fields
    company = db.Column(db.String(200))
    industry = db.Column(db.String(100))
    size = db.Column(db.String(50))
    website = db.Column(db.String(255))

    is_premium = db.Column(db.Boolean, default=False, nullable=False)
    premium_until = db.Column(db.DateTime)

    # Daily login rewards
    reward_points = db.Column(db.Integer, default=0, nullable=False)
    login_streak = db.Column(db.Integer, default=0, nullable=False)
    last_login_date = db.Column(db.Date)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    skills = db.relationship('Skill', backref='user', lazy=True, cascade='all, delete-orphan')
    education = db.relationship('Education', backref='user', lazy=True, cascade='all, delete-orphan')
    experiences = db.relationship('Experience', backref='user', lazy=True, cascade='all, delete-orphan')
    certifications = db.relationship('Certification', backref='user', lazy=True, cascade='all, delete-orphan')
    jobs = db.relationship('Job', backref='employer', lazy=True, cascade='all, delete-orphan')
    applications = db.relationship('Application', backref='candidate', lazy=True, cascade='all, delete-orphan')

    @property
    def is_candidate(self):
        return self.user_type == UserType.CANDIDATE

    @property
    def is_employer(self):
        return self.user_type == UserType.EMPLOYER

    @property
    def is_admin(self):
        return self.user_type == UserType.ADMIN

    @property
    def display_name(self):
        return self.name or self.email.split('@')[0]

    def to_dict(self, private=True):
        data = {
            'id': self.id,
            'name': self.name,
            'user_type': self.user_type.value,
            'location': self.location,
            'bio': self.bio,
            'avatar_url': self.avatar_url,
            'company': self.company,
            'industry': self.industry,
            'size': self.size,
            'website': self.website,
            'rank_score': round(self.rank_score or 0, 2),
            'is_profile_public': self.is_profile_public,
        }
        if private:
            data.update({
                'email': self.email,
                'phone': self.phone,
                'resume_url': self.resume_url,
                'current_ctc': self.current_ctc,
                'expected_ctc': self.expected_ctc,
                'is_premium': self.is_premium,
                'reward_points': self.reward_points,
                'login_streak': self.login_streak,
                'created_at': self.created_at.isoformat() if self.created_at else None,
            })
        return data

class Skill(db.Model):
    __tablename__ = 'skills'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    level = db.Column(db.Integer, nullable=False, default=1)  # 1-10
    experience_years = db.Column(db.Float, nullable=False, default=0)
    is_verified = db.Column(db.Boolean, default=False)
    verification_source = db.Column(db.String(100))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'name': self.name,
            'level': self.level,
            'experience_years': self.experience_years,
            'is_verified': bool(self.is_verified),
            'verification_source': self.verification_source,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

class Education(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    institution = db.Column(db.String(200), nullable=False)
    degree = db.Column(db.String(200), nullable=False)
    field = db.Column(db.String(200), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date)
    is_current = db.Column(db.Boolean, default=False)
    gpa = db.Column(db.Float)
    tier = db.Column(db.Integer)  # 1: PhD ... 5: Certificate
    college_tier = db.Column(db.Integer)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'institution': self.institution,
            'degree': self.degree,
            'field': self.field,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'end_date': self.end_date.isoformat() if self.end_date else None,
            'is_current': bool(self.is_current),
            'gpa': self.gpa,
            'tier': self.tier,
            'college_tier': self.college_tier,
        }

class Experience(db.Model):
    __tablename__ = 'experiences'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    company = db.Column(db.String(200), nullable=False)
    role = db.Column(db.String(200), nullable=False)
    location = db.Column(db.String(100))
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date)
    is_current = db.Column(db.Boolean, default=False)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'company': self.company,
            'role': self.role,
            'location': self.location,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'end_date': self.end_date.isoformat() if self.end_date else None,
            'is_current': bool(self.is_current),
            'description': self.description,
        }

class Certification(db.Model):
    __tablename__ = 'certifications'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    issuer = db.Column(db.String(200), nullable=False)
    issue_date = db.Column(db.Date, nullable=False)
    expiry_date = db.Column(db.Date)
    credential_id = db.Column(db.String(100))
    credential_url = db.Column(db.String(512))
    is_verified = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'issuer': self.issuer,
            'issue_date': self.issue_date.isoformat() if self.issue_date else None,
            'expiry_date': self.expiry_date.isoformat() if self.expiry_date else None,
            'credential_id': self.credential_id,
            'credential_url': self.credential_url,
            'is_verified': bool(self.is_verified),
        }

class Job(db.Model):
    __tablename__ = 'jobs'

    id = db.Column(db.Integer, primary_key=True)
    employer_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    location = db.Column(db.String(100), nullable=False)
    job_type = db.Column(db.String(50), nullable=False)  # full-time, part-time, contract, ...
    salary_min = db.Column(db.Integer)
    salary_max = db.Column(db.Integer)
    min_experience = db.Column(db.Integer)
    min_rank_requirement = db.Column(db.Float)
    required_skills = db.Column(db.JSON)  # List of skill names
    closing_date = db.Column(db.Date)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    applications = db.relationship('Application', backref='job', lazy=True, cascade='all, delete-orphan')

    def is_open(self, today=None):
        today = today or datetime.utcnow().date()
        if not self.is_active:
            return False
        return self.closing_date is None or self.closing_date >= today

    def to_dict(self, with_employer=True):
        data = {
            'id': self.id,
            'employer_id': self.employer_id,
            'title': self.title,
            'description': self.description,
            'location': self.location,
            'job_type': self.job_type,
            'salary_min': self.salary_min,
            'salary_max': self.salary_max,
            'min_experience': self.min_experience,
            'min_rank_requirement': self.min_rank_requirement,
            'required_skills': self.required_skills or [],
            'closing_date': self.closing_date.isoformat() if self.closing_date else None,
            'is_active': bool(self.is_active),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if with_employer and self.employer:
            data['employer'] = {
                'id': self.employer.id,
                'name': self.employer.name,
                'company': self.employer.company,
            }
        return data

class Application(db.Model):
    __tablename__ = 'applications'

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey('jobs.id'), nullable=False)
    candidate_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    status = db.Column(Enum(ApplicationStatus), default=ApplicationStatus.PENDING, nullable=False)
    candidate_note = db.Column(db.Text)
    employer_note = db.Column(db.Text)  # Reply shown to the candidate
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # One application per candidate per job
    __table_args__ = (db.UniqueConstraint('job_id', 'candidate_id'),)

    def to_dict(self):
        return {
            'id': self.id,
            'job_id': self.job_id,
            'candidate_id': self.candidate_id,
            'status': self.status.value,
            'candidate_note': self.candidate_note,
            'employer_note': self.employer_note,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

class Message(db.Model):
    __tablename__ = 'messages'

    id = db.Column(db.Integer, primary_key=True)
    sender_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    receiver_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    conversation_id = db.Column(db.String(64))
    subject = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    sender = db.relationship('User', foreign_keys=[sender_id])
    receiver = db.relationship('User', foreign_keys=[receiver_id])

    def to_dict(self):
        return {
            'id': self.id,
            'sender_id': self.sender_id,
            'sender_name': self.sender.display_name if self.sender else None,
            'receiver_id': self.receiver_id,
            'conversation_id': self.conversation_id,
            'subject': self.subject,
            'message': self.message,
            'is_read': bool(self.is_read),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

class Notification(db.Model):
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    type = db.Column(db.String(50), nullable=False)  # message, application_status, new_application
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    related_id = db.Column(db.Integer)
    related_type = db.Column(db.String(50))
    is_read = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'related_id': self.related_id,
            'related_type': self.related_type,
            'is_read': bool(self.is_read),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

class NewsletterSubscription(db.Model):
    __tablename__ = 'newsletter_subscriptions'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

class Package(db.Model):
    __tablename__ = 'packages'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    price = db.Column(db.Integer, nullable=False)  # In the smallest currency unit
    duration_days = db.Column(db.Integer, nullable=False, default=30)
    features = db.Column(db.JSON)
    is_active = db.Column(db.Boolean, default=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'price': self.price,
            'duration_days': self.duration_days,
            'features': self.features or [],
        }

class Subscription(db.Model):
    __tablename__ = 'subscriptions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    package_id = db.Column(db.Integer, db.ForeignKey('packages.id'), nullable=False)
    start_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)
    is_active = db.Column(db.Boolean, default=True)
    payment_status = db.Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)
    payment_reference = db.Column(db.String(100))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    package = db.relationship('Package')

    def to_dict(self):
        return {
            'id': self.id,
            'package': self.package.to_dict() if self.package else None,
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
            'is_active': bool(self.is_active),
            'payment_status': self.payment_status.value,
            'payment_reference': self.payment_reference,
        }

class AssessmentAttempt(db.Model):
    __tablename__ = 'assessment_attempts'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    exam_id = db.Column(db.String(50), nullable=False)
    score = db.Column(db.Integer, nullable=False)
    passed = db.Column(db.Boolean, default=False)
    timed_out = db.Column(db.Boolean, default=False)
    started_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'exam_id': self.exam_id,
            'score': self.score,
            'passed': bool(self.passed),
            'timed_out': bool(self.timed_out),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

class ResumeDownload(db.Model):
    __tablename__ = 'resume_downloads'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    template = db.Column(db.String(50), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

class SkillEvent(db.Model):
    """Change log backing the per-user skill change feed"""
    __tablename__ = 'skill_events'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    skill_id = db.Column(db.Integer, nullable=False)
    event_type = db.Column(db.String(10), nullable=False)  # INSERT, UPDATE, DELETE
    payload = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'skill_id': self.skill_id,
            'event_type': self.event_type,
            'payload': self.payload,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
