import os
import re
import logging
from datetime import datetime, date
from typing import List, Dict, Optional, Tuple
from werkzeug.utils import secure_filename

from models import JOB_TYPES

logger = logging.getLogger(__name__)

RESUME_EXTENSIONS = {'.pdf', '.doc', '.docx', '.txt'}
IMAGE_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.gif', '.webp'}

def validate_email(email: str) -> bool:
    """Validate email address format"""
    if not email:
        return False

    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(pattern, email))

def validate_phone(phone: str) -> bool:
    """Validate phone number format"""
    if not phone:
        return False

    if not re.match(r'^\+?[\d\s\-\(\)]+$', phone):
        return False

    digits = re.sub(r'\D', '', phone)
    return 7 <= len(digits) <= 15

def validate_url(url: str) -> bool:
    """Validate an http(s) URL"""
    if not url:
        return False

    return bool(re.match(r'^https?://[^\s/$.?#].[^\s]*$', url, re.IGNORECASE))

def validate_password(password: str) -> List[str]:
    """Return the password rules the given password breaks"""
    errors = []
    password = password or ''

    if len(password) < 8:
        errors.append("Password must be at least 8 characters")
    if not re.search(r'[A-Z]', password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r'[a-z]', password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r'[0-9]', password):
        errors.append("Password must contain at least one number")
    if not re.search(r'[^A-Za-z0-9]', password):
        errors.append("Password must contain at least one special character")

    return errors

def clean_filename(filename: str) -> str:
    """Clean and secure filename"""
    if not filename:
        return "unnamed_file"

    # Remove path components
    filename = os.path.basename(filename)

    # Secure the filename
    secure_name = secure_filename(filename)

    # If secure_filename returns empty string, provide default
    if not secure_name:
        ext = os.path.splitext(filename)[1]
        secure_name = f"file_{datetime.now().strftime('%Y%m%d_%H%M%S')}{ext}"

    return secure_name

def get_file_extension(filename: str) -> str:
    """Get file extension from filename"""
    if not filename:
        return ""

    return os.path.splitext(filename.lower())[1]

def is_resume_file(filename: str) -> bool:
    """Check if file is an accepted résumé format"""
    return get_file_extension(filename) in RESUME_EXTENSIONS

def is_image_file(filename: str) -> bool:
    """Check if file is an accepted avatar format"""
    return get_file_extension(filename) in IMAGE_EXTENSIONS

SKILL_PATTERNS = [
    # Programming languages
    r'\b(?:Python|Java|JavaScript|TypeScript|C\+\+|C#|PHP|Ruby|Go|Rust|Swift|Kotlin)\b',

    # Web technologies
    r'\b(?:HTML|CSS|React|Angular|Vue|Node\.js|Django|Flask|Spring|Laravel|GraphQL)\b',

    # Databases
    r'\b(?:MySQL|PostgreSQL|MongoDB|SQLite|Oracle|SQL Server|Redis|SQL)\b',

    # Cloud and DevOps
    r'\b(?:AWS|Azure|Google Cloud|Docker|Kubernetes|Jenkins|Git|DevOps)\b',

    # Data Science
    r'\b(?:Machine Learning|Deep Learning|TensorFlow|PyTorch|Pandas|NumPy|Data Science)\b',

    # Other technical skills
    r'\b(?:Linux|Agile|Scrum|REST API|Microservices|Cybersecurity)\b',

    # Soft skills
    r'\b(?:Leadership|Communication|Project Management|Problem Solving)\b'
]

def extract_skills_from_text(text: str) -> List[str]:
    """Extract potential skills from text using simple keyword matching"""
    if not text:
        return []

    skills = []
    seen = set()

    for pattern in SKILL_PATTERNS:
        for match in re.findall(pattern, text, re.IGNORECASE):
            key = match.lower()
            if key not in seen:
                seen.add(key)
                skills.append(match)

    return skills

def parse_date(value) -> Optional[date]:
    """Parse an ISO date (or datetime) string; empty values give None"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    value = str(value).strip()
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00')).date()
    except ValueError:
        pass

    # Month pickers and CV durations only give a month or a year
    for fmt in ('%Y-%m', '%Y'):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue

    raise ValueError(f"Invalid date: {value}")

YEAR_MONTH = r'(\d{4})(?:[-/](\d{1,2}))?'

def _year_month(year: str, month: Optional[str]) -> date:
    month_number = int(month) if month else 1
    return date(int(year), month_number if 1 <= month_number <= 12 else 1, 1)

def parse_duration(duration: str) -> Tuple[Optional[date], Optional[date], bool]:
    """Turn a duration like "2019 - 2022", "2019-03 - 2021-06" or "2020 - present" into dates"""
    if not duration:
        return None, None, False

    match = re.search(YEAR_MONTH + r'\s*[-–]\s*' + YEAR_MONTH, duration)
    if match:
        return _year_month(*match.group(1, 2)), _year_month(*match.group(3, 4)), False

    match = re.search(YEAR_MONTH + r'\s*[-–]\s*(?:present|current|now)', duration, re.IGNORECASE)
    if match:
        return _year_month(*match.group(1, 2)), None, True

    return None, None, False

def truncate_text(text: str, max_length: int = 200) -> str:
    """Truncate text to specified length with ellipsis"""
    if not text or len(text) <= max_length:
        return text

    return text[:max_length - 3] + "..."

def sanitize_input(text: str) -> str:
    """Strip HTML tags and surrounding whitespace from user input"""
    if not text:
        return ""

    return re.sub(r'<[^>]+>', '', text).strip()

def to_int(value) -> Optional[int]:
    if value is None or value == '':
        return None
    return int(value)

def to_float(value) -> Optional[float]:
    if value is None or value == '':
        return None
    return float(value)

def to_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).lower() in ('1', 'true', 'on', 'yes')

def log_processing_time(func):
    """Decorator to log function processing time"""
    def wrapper(*args, **kwargs):
        start_time = datetime.now()

        try:
            result = func(*args, **kwargs)
            end_time = datetime.now()
            processing_time = (end_time - start_time).total_seconds()

            logger.info(f"{func.__name__} completed in {processing_time:.2f} seconds")
            return result

        except Exception as e:
            end_time = datetime.now()
            processing_time = (end_time - start_time).total_seconds()

            logger.error(f"{func.__name__} failed after {processing_time:.2f} seconds: {e}")
            raise

    wrapper.__name__ = func.__name__
    wrapper.__doc__ = func.__doc__
    return wrapper

class ConfigHelper:
    """Helper class for configuration management"""

    @staticmethod
    def get_email_config():
        """Get SMTP configuration from environment"""
        return {
            'enabled': os.getenv('SMTP_ENABLED', 'false').lower() == 'true',
            'smtp_server': os.getenv('SMTP_SERVER', 'smtp.gmail.com'),
            'smtp_port': int(os.getenv('SMTP_PORT', '587')),
            'smtp_user': os.getenv('SMTP_USER', ''),
            'smtp_password': os.getenv('SMTP_PASSWORD', ''),
            'report_recipients': [r.strip() for r in os.getenv('REPORT_RECIPIENTS', '').split(',') if r.strip()],
        }

    @staticmethod
    def get_openai_config():
        """Get OpenAI configuration from environment"""
        return {
            'api_key': os.getenv('OPENAI_API_KEY', ''),
            'model': os.getenv('OPENAI_MODEL', 'gpt-4o-mini'),
        }

    @staticmethod
    def get_payment_config():
        """Get payment gateway configuration from environment"""
        return {
            'key_id': os.getenv('RAZORPAY_KEY_ID', ''),
            'key_secret': os.getenv('RAZORPAY_KEY_SECRET', ''),
        }

    @staticmethod
    def get_resume_config():
        """Get résumé builder limits from environment"""
        return {
            'free_limit': int(os.getenv('FREE_RESUME_LIMIT', '2')),
            'window_days': int(os.getenv('RESUME_LIMIT_WINDOW_DAYS', '30')),
        }

# Validation helpers
def validate_job_data(data: Dict) -> List[str]:
    """Validate job data and return list of errors"""
    errors = []

    title = (data.get('title') or '').strip()
    if len(title) < 5:
        errors.append("Job title must be at least 5 characters")
    elif len(title) > 200:
        errors.append("Job title must not exceed 200 characters")

    description = (data.get('description') or '').strip()
    if len(description) < 50:
        errors.append("Job description must be at least 50 characters")
    elif len(description) > 5000:
        errors.append("Job description must not exceed 5000 characters")

    if len((data.get('location') or '').strip()) < 2:
        errors.append("Location is required")

    if data.get('job_type') not in JOB_TYPES:
        errors.append(f"Job type must be one of: {', '.join(JOB_TYPES)}")

    salary_min = data.get('salary_min')
    salary_max = data.get('salary_max')

    for label, value in (('Minimum salary', salary_min), ('Maximum salary', salary_max)):
        if value is not None and value <= 0:
            errors.append(f"{label} must be positive")

    if salary_min and salary_max and salary_min > salary_max:
        errors.append("Minimum salary cannot be greater than maximum salary")

    min_experience = data.get('min_experience')
    if min_experience is not None and min_experience < 0:
        errors.append("Minimum experience cannot be negative")

    min_rank = data.get('min_rank_requirement')
    if min_rank is not None and not 0 <= min_rank <= 100:
        errors.append("Minimum rank requirement must be between 0 and 100")

    skills = data.get('required_skills')
    if skills is not None and not all(isinstance(s, str) for s in skills):
        errors.append("Required skills must be a list of names")

    return errors

def validate_skill_data(data: Dict) -> List[str]:
    """Validate skill data and return list of errors"""
    errors = []

    name = (data.get('name') or '').strip()
    if len(name) < 2:
        errors.append("Skill name must be at least 2 characters")
    elif len(name) > 100:
        errors.append("Skill name must not exceed 100 characters")

    level = data.get('level')
    if level is None or not 1 <= level <= 10:
        errors.append("Skill level must be between 1 and 10")

    years = data.get('experience_years')
    if years is None or not 0 <= years <= 50:
        errors.append("Experience years must be between 0 and 50")

    return errors

def validate_profile_data(data: Dict) -> List[str]:
    """Validate profile fields and return list of errors"""
    errors = []

    name = data.get('name')
    if name is not None and len(name.strip()) < 2:
        errors.append("Name must be at least 2 characters")

    phone = data.get('phone')
    if phone and not validate_phone(phone):
        errors.append("Invalid phone number")

    website = data.get('website')
    if website and not validate_url(website):
        errors.append("Invalid website URL")

    return errors
