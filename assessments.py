"""
Skills assessment quiz.

Short multiple-choice exams per skill.  Passing an exam adds the skill to
the candidate's profile as verified, which feeds the rank score.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from database import db
from errors import NotFound, ValidationError
from models import AssessmentAttempt

logger = logging.getLogger(__name__)

PASSING_SCORE = 70
MAX_SCORE = 100
TIME_LIMIT_SECONDS = 300
VERIFICATION_SOURCE = 'RankMe Assessment'

# Grace period for the round trip between the last answer and the submit
SUBMIT_GRACE_SECONDS = 5


def _q(qid, question, options, correct, difficulty):
    return {
        'id': qid,
        'question': question,
        'options': options,
        'correct': correct,
        'difficulty': difficulty,
    }


def _exam(exam_id, title, skill, description, category, questions):
    return {
        'id': exam_id,
        'title': title,
        'skill': skill,
        'description': description,
        'category': category,
        'passing_score': PASSING_SCORE,
        'max_score': MAX_SCORE,
        'time_limit': TIME_LIMIT_SECONDS,
        'questions': questions,
    }


SKILL_EXAMS: List[Dict] = [
    # Frontend Development
    _exam('react', 'React.js', 'React',
          'Test your React knowledge including components, hooks, and state management.',
          'Frontend Development', [
              _q(1, 'What is JSX?', ['JavaScript XML', 'Java Syntax Extension', 'JSON Extended', 'JavaScript Syntax'], 0, 'beginner'),
              _q(2, 'Which hook is used for state management in functional components?', ['useEffect', 'useState', 'useContext', 'useReducer'], 1, 'beginner'),
              _q(3, 'When does useEffect run by default?', ['Only on mount', 'Only on unmount', 'After every render', 'Never'], 2, 'intermediate'),
              _q(4, 'What is the purpose of React.memo()?', ['Memory management', 'Component optimization', 'State persistence', 'Error handling'], 1, 'advanced'),
              _q(5, 'How do you pass data from parent to child component?', ['Props', 'State', 'Context', 'Redux'], 0, 'beginner'),
          ]),
    _exam('javascript', 'JavaScript', 'JavaScript',
          'Test your JavaScript fundamentals including ES6+, async/await, and DOM manipulation.',
          'Frontend Development', [
              _q(1, 'What is the output of typeof null?', ['null', 'undefined', 'object', 'string'], 2, 'intermediate'),
              _q(2, 'Which method adds elements to the end of an array?', ['push()', 'pop()', 'shift()', 'unshift()'], 0, 'beginner'),
              _q(3, 'What does the spread operator (...) do?', ['Spreads elements', 'Deletes elements', 'Sorts elements', 'Filters elements'], 0, 'intermediate'),
              _q(4, 'What is a closure in JavaScript?', ['A way to close windows', 'Function with access to outer scope', 'A loop construct', 'An error type'], 1, 'advanced'),
              _q(5, 'What is the purpose of async/await?', ['Error handling', 'Asynchronous programming', 'Variable declaration', 'Loop control'], 1, 'intermediate'),
          ]),

    # Backend Development
    _exam('python', 'Python', 'Python',
          'Assess your Python skills covering syntax, data structures, and OOP.',
          'Backend Development', [
              _q(1, 'Which data type is used to store multiple items?', ['int', 'list', 'str', 'float'], 1, 'beginner'),
              _q(2, 'How do you define a function in Python?', ['function myFunc():', 'def myFunc():', 'func myFunc():', 'define myFunc():'], 1, 'beginner'),
              _q(3, 'What is list comprehension?', ['Understanding lists', 'Concise way to create lists', 'A list method', 'Debugging technique'], 1, 'intermediate'),
              _q(4, 'What does the __init__ method do?', ['Deletes the object', 'Initializes a new instance', 'Imports a module', 'Handles errors'], 1, 'intermediate'),
              _q(5, 'What is a decorator in Python?', ['A design pattern', 'Function that modifies functions', 'A variable type', 'A loop'], 1, 'advanced'),
          ]),
    _exam('sql', 'SQL & Databases', 'SQL',
          'Test your SQL knowledge including queries, joins, and database design.',
          'Backend Development', [
              _q(1, 'Which SQL command retrieves data?', ['INSERT', 'UPDATE', 'SELECT', 'DELETE'], 2, 'beginner'),
              _q(2, 'What does JOIN do?', ['Deletes tables', 'Combines tables', 'Creates tables', 'Indexes tables'], 1, 'intermediate'),
              _q(3, 'What is a primary key?', ['Any column', 'Unique identifier', 'Foreign reference', 'Index'], 1, 'beginner'),
              _q(4, 'What is normalization?', ['Making data larger', 'Reducing redundancy', 'Encrypting data', 'Backing up data'], 1, 'intermediate'),
              _q(5, 'What is an index used for?', ['Styling', 'Faster queries', 'Data validation', 'Encryption'], 1, 'intermediate'),
          ]),
    _exam('api-design', 'REST API Design', 'REST API',
          'Test your API knowledge including HTTP methods, status codes, and best practices.',
          'Backend Development', [
              _q(1, 'What does REST stand for?', ['Representational State Transfer', 'Request State Transfer', 'Remote State Transfer', 'Resource State Transfer'], 0, 'beginner'),
              _q(2, 'Which HTTP method creates data?', ['GET', 'POST', 'PUT', 'DELETE'], 1, 'beginner'),
              _q(3, 'What status code means "Created"?', ['200', '201', '204', '404'], 1, 'intermediate'),
              _q(4, 'What is idempotent?', ['Always same result', 'Different results', 'No result', 'Error state'], 0, 'advanced'),
              _q(5, 'What is JWT used for?', ['Styling', 'Authentication', 'Database access', 'Caching'], 1, 'intermediate'),
          ]),

    # Data Science
    _exam('machine-learning', 'Machine Learning', 'Machine Learning',
          'Test your ML fundamentals including algorithms and model evaluation.',
          'Data Science', [
              _q(1, 'What is supervised learning?', ['Learning without labels', 'Learning with labeled data', 'Reinforcement learning', 'Deep learning'], 1, 'beginner'),
              _q(2, 'What is overfitting?', ['Model too simple', 'Model too complex', 'Model perfect', 'Model missing'], 1, 'intermediate'),
              _q(3, 'What is a neural network?', ['Computer network', 'Brain-inspired model', 'Database', 'Algorithm'], 1, 'intermediate'),
              _q(4, 'What is gradient descent?', ['A loop', 'Optimization algorithm', 'A variable', 'A function'], 1, 'advanced'),
              _q(5, 'What is cross-validation?', ['Data cleaning', 'Model evaluation technique', 'Data transformation', 'Feature selection'], 1, 'intermediate'),
          ]),
    _exam('data-analysis', 'Data Analysis', 'Data Analysis',
          'Test your data analysis skills including pandas, visualization, and statistics.',
          'Data Science', [
              _q(1, 'Which library is used for data manipulation in Python?', ['NumPy', 'Pandas', 'Matplotlib', 'TensorFlow'], 1, 'beginner'),
              _q(2, 'What is a DataFrame?', ['A chart', 'A 2D data structure', 'A function', 'A loop'], 1, 'beginner'),
              _q(3, 'What does correlation measure?', ['Causation', 'Relationship strength', 'Data size', 'Speed'], 1, 'intermediate'),
              _q(4, 'What is data visualization used for?', ['Data storage', 'Presenting data graphically', 'Data encryption', 'Data deletion'], 1, 'beginner'),
              _q(5, 'What is the mean in statistics?', ['Middle value', 'Average', 'Most frequent', 'Range'], 1, 'beginner'),
          ]),

    # Cloud & DevOps
    _exam('aws', 'AWS Cloud', 'AWS',
          'Test your AWS knowledge including EC2, S3, and core services.',
          'Cloud & DevOps', [
              _q(1, 'What is EC2?', ['Storage service', 'Virtual servers', 'Database service', 'Networking'], 1, 'beginner'),
              _q(2, 'What is S3 used for?', ['Computing', 'Object storage', 'Networking', 'Security'], 1, 'beginner'),
              _q(3, 'What is Lambda?', ['Database', 'Serverless compute', 'Storage', 'Networking'], 1, 'intermediate'),
              _q(4, 'What is IAM?', ['Storage', 'Identity and Access Management', 'Database', 'Computing'], 1, 'intermediate'),
              _q(5, 'What is VPC?', ['Storage', 'Virtual Private Cloud', 'Database', 'Computing'], 1, 'intermediate'),
          ]),
    _exam('docker', 'Docker', 'Docker',
          'Test your containerization knowledge with Docker.',
          'Cloud & DevOps', [
              _q(1, 'What is Docker?', ['Virtual machine', 'Containerization platform', 'Database', 'Framework'], 1, 'beginner'),
              _q(2, 'What is a Docker image?', ['Running container', 'Template for containers', 'Configuration file', 'Log file'], 1, 'beginner'),
              _q(3, 'What is Dockerfile?', ['Log file', 'Build instructions', 'Configuration', 'Data file'], 1, 'intermediate'),
              _q(4, 'What is Docker Compose?', ['Image builder', 'Multi-container tool', 'Network tool', 'Storage tool'], 1, 'intermediate'),
              _q(5, 'What is a container registry?', ['Log storage', 'Image storage', 'Code storage', 'Data storage'], 1, 'intermediate'),
          ]),
    _exam('git', 'Git Version Control', 'Git',
          'Test your Git knowledge including branching, merging, and workflows.',
          'Cloud & DevOps', [
              _q(1, 'What does git clone do?', ['Delete repo', 'Copy repo', 'Update repo', 'Create branch'], 1, 'beginner'),
              _q(2, 'What does git commit do?', ['Upload changes', 'Save changes locally', 'Delete changes', 'Merge changes'], 1, 'beginner'),
              _q(3, 'What is a branch?', ['File copy', 'Parallel development line', 'Backup', 'Configuration'], 1, 'beginner'),
              _q(4, 'What does git merge do?', ['Delete branch', 'Combine branches', 'Create branch', 'List branches'], 1, 'intermediate'),
              _q(5, 'What is a pull request?', ['Download code', 'Request to merge changes', 'Delete request', 'Create branch'], 1, 'intermediate'),
          ]),

    # Digital Marketing
    _exam('seo', 'SEO', 'SEO',
          'Test your Search Engine Optimization knowledge.',
          'Digital Marketing', [
              _q(1, 'What does SEO stand for?', ['Search Engine Optimization', 'Site Engine Optimization', 'Social Engine Optimization', 'System Engine Optimization'], 0, 'beginner'),
              _q(2, 'What is a backlink?', ['Internal link', 'Link from another site', 'Broken link', 'Footer link'], 1, 'beginner'),
              _q(3, 'What is a meta description?', ['Page title', 'Summary in search results', 'Header text', 'Footer text'], 1, 'beginner'),
              _q(4, 'What is keyword density?', ['Keyword count per page', 'Percentage of keywords', 'Keyword list', 'Keyword ranking'], 1, 'intermediate'),
              _q(5, 'What is local SEO?', ['Global optimization', 'Location-based optimization', 'Mobile optimization', 'Speed optimization'], 1, 'intermediate'),
          ]),

    # Soft Skills
    _exam('communication', 'Communication Skills', 'Communication',
          'Assess your professional communication abilities.',
          'Soft Skills', [
              _q(1, 'What is active listening?', ['Talking more', 'Fully concentrating on speaker', 'Interrupting', 'Ignoring'], 1, 'beginner'),
              _q(2, 'What makes a status update e-mail effective?', ['Long background first', 'Key point in the first lines', 'No subject line', 'Many recipients'], 1, 'beginner'),
              _q(3, 'How should you give critical feedback?', ['Publicly and quickly', 'Specific, private and about behaviour', 'Vaguely to avoid conflict', 'Only in writing'], 1, 'intermediate'),
              _q(4, 'What is a good way to handle a disagreement in a meeting?', ['Raise your voice', 'Restate the other view before answering', 'Stay silent', 'Change the subject'], 1, 'intermediate'),
              _q(5, 'What does "know your audience" mean?', ['Memorize names', 'Adapt the message to who receives it', 'Use more jargon', 'Speak faster'], 1, 'beginner'),
          ]),
]


def get_exam_by_id(exam_id: str) -> Optional[Dict]:
    for exam in SKILL_EXAMS:
        if exam['id'] == exam_id:
            return exam
    return None


def get_exams_by_category(category: str) -> List[Dict]:
    return [exam for exam in SKILL_EXAMS if exam['category'] == category]


def get_all_categories() -> List[str]:
    categories = []
    for exam in SKILL_EXAMS:
        if exam['category'] not in categories:
            categories.append(exam['category'])
    return categories


def public_exam(exam: Dict) -> Dict:
    """Exam as sent to the browser, without the answer key"""
    data = {key: value for key, value in exam.items() if key != 'questions'}
    data['questions'] = [
        {key: value for key, value in question.items() if key != 'correct'}
        for question in exam['questions']
    ]
    return data


def _normalize_answers(exam: Dict, answers) -> List[Optional[int]]:
    """Answers may be a list in question order or a mapping of question id to option"""
    questions = exam['questions']

    if isinstance(answers, dict):
        by_id = {str(key): value for key, value in answers.items()}
        answers = [by_id.get(str(question['id'])) for question in questions]
    elif answers is None:
        answers = []
    elif not isinstance(answers, (list, tuple)):
        raise ValidationError("Answers must be a list or an object keyed by question id")

    normalized = []
    for answer in list(answers)[:len(questions)]:
        try:
            normalized.append(int(answer) if answer is not None and answer != '' else None)
        except (TypeError, ValueError):
            normalized.append(None)
    return normalized


def grade_exam(exam: Dict, answers) -> Dict:
    """Percentage of correct answers; unanswered questions count as wrong"""
    normalized = _normalize_answers(exam, answers)
    questions = exam['questions']

    correct = 0
    for index, question in enumerate(questions):
        if index < len(normalized) and normalized[index] == question['correct']:
            correct += 1

    score = round(correct / len(questions) * 100) if questions else 0

    return {
        'score': score,
        'correct': correct,
        'total': len(questions),
        'passed': score >= exam['passing_score'],
    }


def skill_level_for_score(score: int) -> int:
    if score >= 90:
        return 9
    if score >= 80:
        return 7
    if score >= 70:
        return 5
    return 3


def is_timed_out(exam: Dict, started_at: Optional[datetime], submitted_at: Optional[datetime] = None) -> bool:
    if started_at is None:
        return False
    submitted_at = submitted_at or datetime.utcnow()
    limit = timedelta(seconds=exam['time_limit'] + SUBMIT_GRACE_SECONDS)
    return submitted_at - started_at > limit


def submit_attempt(user, exam_id: str, answers, started_at: Optional[datetime] = None,
                   submitted_at: Optional[datetime] = None) -> Dict:
    """Grade an attempt, store it, and verify the skill on a pass"""
    from profile_service import upsert_verified_skill
    from ranking import recalculate_user_rank

    exam = get_exam_by_id(exam_id)
    if exam is None:
        raise NotFound(f"Assessment '{exam_id}' not found")

    result = grade_exam(exam, answers)
    timed_out = is_timed_out(exam, started_at, submitted_at)

    attempt = AssessmentAttempt(
        user_id=user.id,
        exam_id=exam_id,
        score=result['score'],
        passed=result['passed'],
        timed_out=timed_out,
        started_at=started_at,
    )
    db.session.add(attempt)

    result.update({'exam_id': exam_id, 'timed_out': timed_out, 'skill': None, 'rank': None})

    if result['passed']:
        skill = upsert_verified_skill(
            user.id,
            exam['skill'],
            level=skill_level_for_score(result['score']),
            source=VERIFICATION_SOURCE,
        )
        result['skill'] = skill.to_dict()
        db.session.flush()
        rank = recalculate_user_rank(user.id, commit=False)
        result['rank'] = rank['rank']
        logger.info(f"User {user.id} passed {exam_id} with {result['score']}%, skill {skill.name} verified")
    else:
        logger.info(f"User {user.id} scored {result['score']}% on {exam_id}")

    db.session.commit()
    result['attempt_id'] = attempt.id
    return result
