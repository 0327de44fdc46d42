import json
import logging
from flask import abort, current_app, flash, jsonify, redirect, render_template, request, send_from_directory, url_for
from flask_login import current_user, login_required, login_user, logout_user

import assessments
import content
import dashboards
import jobs as job_service
import messaging
import payments
import profile_service
import resume_builder
from api_routes import pop_assessment_start, start_assessment
from auth import candidate_required, employer_required, authenticate, needs_profile_setup, register_user
from cv_parser import parse_cv_file
from database import db
from errors import NotFound, RankMeError
from models import (AssessmentAttempt, Certification, Education, Experience,
                    Skill, User, UserType)
from profile_completion import calculate_profile_completion
from ranking import get_rank_position, leaderboard
from utils import ConfigHelper, to_int

logger = logging.getLogger(__name__)

def fail(e):
    db.session.rollback()
    flash(e.message, 'error')

def safe_next(target):
    """Only follow relative redirects"""
    if target and target.startswith('/') and not target.startswith('//'):
        return target
    return None

def profile_sections(user):
    return {
        'skills': Skill.query.filter_by(user_id=user.id).order_by(Skill.level.desc()).all(),
        'education': Education.query.filter_by(user_id=user.id).order_by(Education.start_date.desc()).all(),
        'experiences': Experience.query.filter_by(user_id=user.id).order_by(Experience.start_date.desc()).all(),
        'certifications': Certification.query.filter_by(user_id=user.id).all(),
    }

def register_routes(app):
    @app.errorhandler(404)
    def not_found(e):
        if request.path.startswith('/api/'):
            return jsonify({'success': False, 'error': 'Not found'}), 404
        return render_template('404.html'), 404

    @app.context_processor
    def inject_unread():
        if current_user.is_authenticated:
            return {'unread': messaging.unread_counts(current_user)}
        return {'unread': None}

    @app.route('/')
    def index():
        latest = job_service.search_jobs(per_page=6).items
        return render_template('index.html', jobs=latest, posts=content.get_posts()[:3])

    @app.route('/login', methods=['GET', 'POST'])
    def login():
        if current_user.is_authenticated:
            return redirect(url_for('dashboard'))

        if request.method == 'POST':
            user = authenticate(request.form.get('email'), request.form.get('password'))
            if user:
                login_user(user, remember=bool(request.form.get('remember')))
                points = profile_service.record_daily_login(user)
                if points:
                    flash(f'Welcome back! You earned {points} reward points for logging in today.', 'success')
                next_page = safe_next(request.args.get('next'))
                return redirect(next_page) if next_page else redirect(url_for('dashboard'))
            flash('Invalid email or password', 'error')

        return render_template('login.html')

    @app.route('/register', methods=['GET', 'POST'])
    def register():
        if current_user.is_authenticated:
            return redirect(url_for('dashboard'))

        if request.method == 'POST':
            try:
                user = register_user(request.form)
                login_user(user)
                flash('Your account has been created.', 'success')
                return redirect(url_for('dashboard'))
            except RankMeError as e:
                fail(e)

        return render_template('register.html', user_type=request.args.get('type', 'candidate'))

    @app.route('/logout')
    @login_required
    def logout():
        logout_user()
        return redirect(url_for('login'))

    @app.route('/dashboard')
    @login_required
    def dashboard():
        if needs_profile_setup(current_user):
            flash('Please complete your profile to get started.', 'info')
            return redirect(url_for('edit_profile'))

        if current_user.is_candidate:
            return render_template('candidate_dashboard.html', **dashboards.candidate_dashboard(current_user))
        if current_user.is_employer:
            return render_template('employer_dashboard.html', **dashboards.employer_dashboard(current_user))
        return render_template('admin_dashboard.html', stats=dashboards.admin_stats())

    # Jobs
    @app.route('/jobs')
    def jobs():
        search = request.args.get('search', '')
        job_type = request.args.get('job_type', '')
        location = request.args.get('location', '')
        page = request.args.get('page', 1, type=int)

        results = job_service.search_jobs(search=search, job_type=job_type, location=location, page=page)
        applied = set()
        if current_user.is_authenticated and current_user.is_candidate:
            applied = {a.job_id for a in current_user.applications}

        return render_template('jobs.html',
                               jobs=results,
                               applied=applied,
                               search=search,
                               job_type=job_type,
                               location=location)

    @app.route('/jobs/<int:job_id>')
    def job_detail(job_id):
        try:
            job = job_service.get_job(job_id)
        except NotFound:
            abort(404)

        is_owner = current_user.is_authenticated and job.employer_id == current_user.id
        if not job.is_active and not is_owner:
            abort(404)

        match = None
        application = None
        if current_user.is_authenticated and current_user.is_candidate:
            match = job_service.job_match_for(current_user, job)
            application = next((a for a in job.applications if a.candidate_id == current_user.id), None)

        return render_template('job_detail.html', job=job, match=match, application=application,
                               is_owner=is_owner)

    @app.route('/jobs/<int:job_id>/apply', methods=['POST'])
    @candidate_required
    def apply_job(job_id):
        try:
            job_service.apply_to_job(current_user, job_id, request.form.get('note'))
            flash('Application submitted!', 'success')
        except RankMeError as e:
            fail(e)
        return redirect(url_for('job_detail', job_id=job_id))

    @app.route('/applications/<int:application_id>/withdraw', methods=['POST'])
    @candidate_required
    def withdraw_application(application_id):
        try:
            job_service.withdraw_application(current_user, application_id)
            flash('Application withdrawn.', 'success')
        except RankMeError as e:
            fail(e)
        return redirect(url_for('dashboard'))

    @app.route('/jobs/new', methods=['GET', 'POST'])
    @employer_required
    def create_job():
        if request.method == 'POST':
            try:
                job = job_service.create_job(current_user, request.form)
                flash('Job posted successfully!', 'success')
                return redirect(url_for('job_detail', job_id=job.id))
            except RankMeError as e:
                fail(e)

        return render_template('job_form.html', job=None, form=request.form)

    @app.route('/jobs/<int:job_id>/edit', methods=['GET', 'POST'])
    @employer_required
    def edit_job(job_id):
        try:
            job = job_service.get_owned_job(current_user, job_id)
        except RankMeError as e:
            fail(e)
            return redirect(url_for('dashboard'))

        if request.method == 'POST':
            try:
                job_service.update_job(current_user, job_id, request.form)
                flash('Job updated successfully!', 'success')
                return redirect(url_for('job_detail', job_id=job.id))
            except RankMeError as e:
                fail(e)

        return render_template('job_form.html', job=job, form=request.form)

    @app.route('/jobs/<int:job_id>/toggle', methods=['POST'])
    @employer_required
    def toggle_job_status(job_id):
        try:
            job = job_service.get_owned_job(current_user, job_id)
            job_service.set_job_active(current_user, job_id, not job.is_active)
            flash('Job activated successfully!' if job.is_active else 'Job paused successfully!', 'success')
        except RankMeError as e:
            fail(e)
        return redirect(url_for('dashboard'))

    @app.route('/jobs/<int:job_id>/delete', methods=['POST'])
    @employer_required
    def delete_job(job_id):
        """Hard delete a job and its applications"""
        try:
            job = job_service.get_owned_job(current_user, job_id)
            job_title = job.title
            job_service.delete_job(current_user, job_id)
            flash(f'Job "{job_title}" has been permanently deleted', 'success')
        except RankMeError as e:
            fail(e)
        return redirect(url_for('dashboard'))

    @app.route('/jobs/<int:job_id>/applications')
    @employer_required
    def job_applications(job_id):
        try:
            job = job_service.get_owned_job(current_user, job_id)
            applications = job_service.job_applications(current_user, job_id)
        except RankMeError as e:
            fail(e)
            return redirect(url_for('dashboard'))

        return render_template('job_applications.html', job=job, applications=applications,
                               statuses=[s.value for s in job_service.EMPLOYER_STATUSES])

    @app.route('/applications/<int:application_id>/status', methods=['POST'])
    @employer_required
    def update_application_status(application_id):
        try:
            application = job_service.update_application_status(
                current_user, application_id, request.form.get('status'), request.form.get('note'))
            flash(f'Application marked as {application.status.value}.', 'success')
            return redirect(url_for('job_applications', job_id=application.job_id))
        except RankMeError as e:
            fail(e)
        return redirect(url_for('dashboard'))

    # Profiles
    @app.route('/profile')
    @login_required
    def profile():
        return redirect(url_for('view_profile', user_id=current_user.id))

    @app.route('/profile/<int:user_id>')
    def view_profile(user_id):
        user = db.session.get(User, user_id)
        if user is None:
            abort(404)

        is_self = current_user.is_authenticated and current_user.id == user.id
        viewer_is_staff = current_user.is_authenticated and (current_user.is_employer or current_user.is_admin)
        if user.is_candidate and not (is_self or user.is_profile_public or viewer_is_staff):
            abort(404)

        sections = profile_sections(user) if user.is_candidate else {}
        completion = None
        position = None
        if user.is_candidate:
            completion = calculate_profile_completion(
                user, sections['skills'], sections['education'], sections['experiences'],
                sections['certifications'])
            position = get_rank_position(user)

        return render_template('profile.html', profile_user=user, is_self=is_self,
                               completion=completion, position=position, **sections)

    @app.route('/profile/edit', methods=['GET', 'POST'])
    @login_required
    def edit_profile():
        if request.method == 'POST':
            try:
                profile_service.update_profile(current_user, request.form)
                for kind in ('avatar', 'resume'):
                    upload = request.files.get(kind)
                    if upload and upload.filename:
                        profile_service.save_upload(current_user, upload, kind)
                flash('Profile updated successfully!', 'success')
                return redirect(url_for('edit_profile'))
            except RankMeError as e:
                fail(e)

        sections = profile_sections(current_user) if current_user.is_candidate else {}
        return render_template('profile_edit.html', **sections)

    @app.route('/profile/skills', methods=['POST'])
    @candidate_required
    def add_skill():
        try:
            skill = profile_service.add_skill(current_user, request.form)
            flash(f'Added {skill.name}. Your rank score is now {current_user.rank_score:.1f}.', 'success')
        except RankMeError as e:
            fail(e)
        return redirect(url_for('edit_profile'))

    @app.route('/profile/skills/<int:skill_id>', methods=['POST'])
    @candidate_required
    def update_skill(skill_id):
        try:
            profile_service.update_skill(current_user, skill_id, request.form)
            flash('Skill updated.', 'success')
        except RankMeError as e:
            fail(e)
        return redirect(url_for('edit_profile'))

    @app.route('/profile/skills/<int:skill_id>/delete', methods=['POST'])
    @candidate_required
    def delete_skill(skill_id):
        try:
            profile_service.delete_skill(current_user, skill_id)
            flash('Skill removed.', 'success')
        except RankMeError as e:
            fail(e)
        return redirect(url_for('edit_profile'))

    @app.route('/profile/<section>/add', methods=['POST'])
    @candidate_required
    def add_profile_entry(section):
        try:
            profile_service.add_entry(current_user, section, request.form)
            flash('Profile updated successfully!', 'success')
        except RankMeError as e:
            fail(e)
        return redirect(url_for('edit_profile'))

    @app.route('/profile/<section>/<int:entry_id>/delete', methods=['POST'])
    @candidate_required
    def delete_profile_entry(section, entry_id):
        try:
            profile_service.delete_entry(current_user, section, entry_id)
            flash('Entry removed.', 'success')
        except RankMeError as e:
            fail(e)
        return redirect(url_for('edit_profile'))

    @app.route('/profile/resume/import', methods=['POST'])
    @candidate_required
    def import_resume():
        """Parse the uploaded résumé and add what it finds to the profile"""
        try:
            upload = request.files.get('resume')
            if upload and upload.filename:
                profile_service.save_upload(current_user, upload, 'resume')
            if not current_user.resume_url:
                raise NotFound("Upload a résumé first")

            cv_data = parse_cv_file(profile_service.upload_path(current_user.resume_url))
            counts = profile_service.import_cv_data(current_user, cv_data)
            flash(f"Imported {counts['skills']} skills, {counts['education']} education and "
                  f"{counts['experience']} experience entries.", 'success')
        except RankMeError as e:
            fail(e)
        return redirect(url_for('edit_profile'))

    @app.route('/uploads/<path:filename>')
    def uploaded_file(filename):
        if not profile_service.can_view_upload(current_user, filename):
            if not current_user.is_authenticated:
                return current_app.login_manager.unauthorized()
            abort(404)
        return send_from_directory(current_app.config['UPLOAD_FOLDER'], filename)

    @app.route('/rankings')
    def rankings():
        location = request.args.get('location', '')
        return render_template('rankings.html', candidates=leaderboard(location=location or None),
                               location=location)

    # Assessments
    @app.route('/assessments')
    def assessments_list():
        category = request.args.get('category', '')
        exams = assessments.get_exams_by_category(category) if category else assessments.SKILL_EXAMS
        attempts = {}
        if current_user.is_authenticated and current_user.is_candidate:
            for attempt in (AssessmentAttempt.query.filter_by(user_id=current_user.id)
                            .order_by(AssessmentAttempt.created_at)):
                attempts[attempt.exam_id] = attempt
        return render_template('assessments.html', exams=exams, attempts=attempts, category=category,
                               categories=assessments.get_all_categories())

    @app.route('/assessments/<exam_id>', methods=['GET', 'POST'])
    @candidate_required
    def take_assessment(exam_id):
        exam = assessments.get_exam_by_id(exam_id)
        if exam is None:
            abort(404)

        if request.method == 'POST':
            answers = {q['id']: to_int(request.form.get(f"q{q['id']}")) for q in exam['questions']}
            try:
                result = assessments.submit_attempt(current_user, exam_id, answers,
                                                    started_at=pop_assessment_start(exam_id))
            except RankMeError as e:
                fail(e)
                return redirect(url_for('assessments_list'))
            return render_template('assessment_result.html', exam=exam, result=result)

        start_assessment(exam_id)
        return render_template('assessment.html', exam=assessments.public_exam(exam))

    # Résumé builder
    @app.route('/resume-builder')
    def resume_builder_page():
        prefill = None
        allowance = None
        if current_user.is_authenticated:
            prefill = resume_builder.prefill_from_profile(current_user)
            allowance = resume_builder.download_allowance(current_user)
        return render_template('resume_builder.html',
                               templates=resume_builder.TEMPLATES,
                               prefill=prefill or resume_builder.empty_resume(),
                               allowance=allowance)

    @app.route('/resume-builder/preview', methods=['POST'])
    def resume_preview():
        """Render a résumé with a template for the on-screen preview"""
        template = resume_builder.get_template(request.form.get('template', resume_builder.DEFAULT_TEMPLATE))
        if template is None:
            abort(404)
        try:
            data = json.loads(request.form.get('resume') or '{}')
        except ValueError:
            data = {}
        return render_template('resume_preview.html', template=template,
                               resume=resume_builder.normalize_resume(data))

    # Content
    @app.route('/blog')
    def blog():
        category = request.args.get('category', '')
        tag = request.args.get('tag', '')
        return render_template('blog.html', posts=content.get_posts(category=category or None, tag=tag or None),
                               categories=content.get_categories(), category=category, tag=tag)

    @app.route('/blog/<slug>')
    def blog_post(slug):
        post = content.get_post_by_slug(slug)
        if post is None:
            abort(404)
        return render_template('blog_post.html', post=post, blocks=content.content_blocks(post),
                               related=content.get_related_posts(post))

    @app.route('/career')
    def career():
        return render_template('career.html', resources=content.CAREER_RESOURCES)

    @app.route('/newsletter', methods=['POST'])
    def newsletter():
        try:
            messaging.subscribe_newsletter(request.form.get('email'))
            flash('Thanks for subscribing! We will email you when new jobs are posted.', 'success')
        except RankMeError as e:
            fail(e)
        return redirect(safe_next(request.form.get('next')) or url_for('index'))

    @app.route('/pricing')
    def pricing():
        subscription = None
        if current_user.is_authenticated:
            subscription = payments.active_subscription(current_user)
        return render_template('pricing.html', packages=payments.list_packages(), subscription=subscription,
                               razorpay_key=ConfigHelper.get_payment_config()['key_id'])

    # Messages and notifications
    @app.route('/messages')
    @login_required
    def messages():
        folder = request.args.get('folder', 'inbox')
        other_id = request.args.get('with', type=int)
        conversation = None
        other = None
        if other_id:
            other = db.session.get(User, other_id)
            if other is None:
                abort(404)
            conversation = messaging.get_conversation(current_user, other_id)
            for message in conversation:
                if message.receiver_id == current_user.id and not message.is_read:
                    messaging.mark_message_read(current_user, message.id)
        return render_template('messages.html', folder=folder,
                               messages=messaging.list_messages(current_user, folder),
                               conversation=conversation, other=other)

    @app.route('/messages/send', methods=['POST'])
    @login_required
    def send_message():
        receiver_id = request.form.get('receiver_id', type=int)
        try:
            if receiver_id is None:
                raise NotFound("Recipient not found")
            messaging.send_message(current_user, receiver_id, request.form.get('subject'),
                                   request.form.get('message'))
            flash('Message sent.', 'success')
        except RankMeError as e:
            fail(e)
            return redirect(url_for('messages'))
        return redirect(url_for('messages', **{'with': receiver_id}))

    @app.route('/notifications')
    @login_required
    def notifications():
        return render_template('notifications.html',
                               notifications=messaging.list_notifications(current_user))

    @app.route('/notifications/read-all', methods=['POST'])
    @login_required
    def read_all_notifications():
        messaging.mark_all_notifications_read(current_user)
        return redirect(url_for('notifications'))

    @app.route('/candidates')
    @employer_required
    def candidates():
        """Public candidate profiles for employers to browse"""
        search = request.args.get('search', '')
        query = User.query.filter(User.user_type == UserType.CANDIDATE, User.is_profile_public.is_(True))
        if search:
            term = f"%{search}%"
            query = query.filter(db.or_(User.name.ilike(term), User.location.ilike(term), User.bio.ilike(term)))

        page = request.args.get('page', 1, type=int)
        results = query.order_by(User.rank_score.desc()).paginate(page=page, per_page=20, error_out=False)
        return render_template('candidates.html', candidates=results, search=search)
