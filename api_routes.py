import logging
from datetime import datetime
from functools import wraps
from io import BytesIO
from flask import jsonify, request, send_file, session
from flask_login import current_user, login_required, login_user, logout_user

import assessments
import content
import dashboards
import jobs as job_service
import messaging
import payments
import profile_service
import resume_builder
import resume_export
from auth import admin_required, authenticate, candidate_required, employer_required, register_user
from cv_parser import parse_cv_file
from database import db
from errors import NotFound, RankMeError, ValidationError
from models import AssessmentAttempt, Certification, Education, Experience, Skill
from profile_completion import calculate_profile_completion
from ranking import leaderboard, recalculate_user_rank
from utils import to_bool, to_float, to_int

logger = logging.getLogger(__name__)

def api_endpoint(view):
    """Translate domain errors into JSON error responses"""
    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except RankMeError as e:
            db.session.rollback()
            body = {'success': False, 'error': e.message}
            if e.errors:
                body['errors'] = e.errors
            return jsonify(body), e.status_code
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error in {request.method} {request.path}: {e}")
            return jsonify({'success': False, 'error': str(e)}), 500
    return wrapper

def json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data

def assessment_starts():
    return dict(session.get('assessment_starts', {}))

def start_assessment(exam_id):
    """Remember when the server handed out an exam"""
    starts = assessment_starts()
    starts[exam_id] = datetime.utcnow().isoformat()
    session['assessment_starts'] = starts
    return starts[exam_id]

def pop_assessment_start(exam_id):
    starts = assessment_starts()
    started = starts.pop(exam_id, None)
    session['assessment_starts'] = starts
    return datetime.fromisoformat(started) if started else None

def exam_summary(exam):
    return {
        'id': exam['id'],
        'title': exam['title'],
        'description': exam['description'],
        'category': exam['category'],
        'time_limit': exam['time_limit'],
        'passing_score': exam['passing_score'],
        'question_count': len(exam['questions']),
    }

def register_api_routes(app):
    # Authentication
    @app.route('/api/auth/register', methods=['POST'])
    @api_endpoint
    def api_register():
        """API endpoint to create an account and log in"""
        user = register_user(json_body())
        login_user(user)
        return jsonify({'success': True, 'user': user.to_dict()}), 201

    @app.route('/api/auth/login', methods=['POST'])
    @api_endpoint
    def api_login():
        """API endpoint to log in with email and password"""
        data = json_body()
        user = authenticate(data.get('email'), data.get('password'))
        if user is None:
            return jsonify({'success': False, 'error': 'Invalid email or password'}), 401

        login_user(user, remember=to_bool(data.get('remember', False)))
        points = profile_service.record_daily_login(user)
        return jsonify({'success': True, 'user': user.to_dict(), 'points_awarded': points})

    @app.route('/api/auth/logout', methods=['POST'])
    @login_required
    def api_logout():
        logout_user()
        return jsonify({'success': True})

    @app.route('/api/me', methods=['GET'])
    @login_required
    def api_me():
        return jsonify({'success': True, 'user': current_user.to_dict()})

    @app.route('/api/dashboard', methods=['GET'])
    @login_required
    @api_endpoint
    def api_dashboard():
        """API endpoint for the current user's dashboard data"""
        if current_user.is_candidate:
            data = dashboards.candidate_dashboard(current_user)
            data['skills'] = [skill.to_dict() for skill in data['skills']]
            data['notifications'] = [n.to_dict() for n in data['notifications']]
            data['recommended_jobs'] = [
                dict(item['job'].to_dict(), match=item['match'], matching_skills=item['matching_skills'])
                for item in data['recommended_jobs']
            ]
        elif current_user.is_employer:
            data = dashboards.employer_dashboard(current_user)
            data['recent_applications'] = [a.to_dict() for a in data['recent_applications']]
            data['notifications'] = [n.to_dict() for n in data['notifications']]
        else:
            data = {'stats': dashboards.admin_stats()}
        return jsonify({'success': True, **data})

    @app.route('/api/admin/stats', methods=['GET'])
    @admin_required
    @api_endpoint
    def api_admin_stats():
        return jsonify({'success': True, 'stats': dashboards.admin_stats()})

    # Jobs
    @app.route('/api/jobs', methods=['GET'])
    @api_endpoint
    def api_jobs():
        """API endpoint to search active jobs"""
        page = request.args.get('page', 1, type=int)
        result = job_service.search_jobs(
            search=request.args.get('search', ''),
            job_type=request.args.get('job_type', ''),
            location=request.args.get('location', ''),
            page=page,
        )
        return jsonify({
            'success': True,
            'jobs': [job.to_dict() for job in result.items],
            'page': result.page,
            'pages': result.pages,
            'total': result.total,
        })

    @app.route('/api/jobs', methods=['POST'])
    @employer_required
    @api_endpoint
    def api_create_job():
        """API endpoint to post a job"""
        job = job_service.create_job(current_user, json_body())
        return jsonify({'success': True, 'job': job.to_dict()}), 201

    @app.route('/api/jobs/recommended', methods=['GET'])
    @candidate_required
    @api_endpoint
    def api_recommended_jobs():
        """API endpoint for jobs matching the candidate's top skills"""
        recommended = job_service.recommended_jobs_for(current_user)
        return jsonify({
            'success': True,
            'jobs': [
                dict(item['job'].to_dict(), match=item['match'], matching_skills=item['matching_skills'])
                for item in recommended
            ],
        })

    @app.route('/api/jobs/<int:job_id>', methods=['GET'])
    @api_endpoint
    def api_job_detail(job_id):
        job = job_service.get_job(job_id)
        if not job.is_active and not (current_user.is_authenticated and job.employer_id == current_user.id):
            raise NotFound("Job not found")
        return jsonify({'success': True, 'job': job.to_dict()})

    @app.route('/api/jobs/<int:job_id>', methods=['PUT'])
    @employer_required
    @api_endpoint
    def api_update_job(job_id):
        job = job_service.update_job(current_user, job_id, json_body())
        return jsonify({'success': True, 'job': job.to_dict()})

    @app.route('/api/jobs/<int:job_id>/status', methods=['POST'])
    @employer_required
    @api_endpoint
    def api_job_status(job_id):
        """API endpoint to pause or activate a job"""
        job = job_service.set_job_active(current_user, job_id, to_bool(json_body().get('is_active')))
        return jsonify({'success': True, 'job': job.to_dict()})

    @app.route('/api/jobs/<int:job_id>', methods=['DELETE'])
    @employer_required
    @api_endpoint
    def api_delete_job(job_id):
        job_service.delete_job(current_user, job_id)
        return jsonify({'success': True})

    @app.route('/api/jobs/<int:job_id>/match', methods=['GET'])
    @candidate_required
    @api_endpoint
    def api_job_match(job_id):
        """API endpoint for the candidate's match against one job"""
        job = job_service.get_job(job_id)
        return jsonify({'success': True, **job_service.job_match_for(current_user, job)})

    @app.route('/api/jobs/<int:job_id>/apply', methods=['POST'])
    @candidate_required
    @api_endpoint
    def api_apply(job_id):
        application = job_service.apply_to_job(current_user, job_id, json_body().get('note'))
        return jsonify({'success': True, 'application': application.to_dict()}), 201

    @app.route('/api/jobs/<int:job_id>/applications', methods=['GET'])
    @employer_required
    @api_endpoint
    def api_job_applications(job_id):
        return jsonify({'success': True, 'applications': job_service.job_applications(current_user, job_id)})

    @app.route('/api/employer/jobs', methods=['GET'])
    @employer_required
    @api_endpoint
    def api_employer_jobs():
        """API endpoint for the employer's jobs with application counts"""
        return jsonify({'success': True, 'jobs': job_service.employer_jobs_with_counts(current_user)})

    @app.route('/api/applications', methods=['GET'])
    @candidate_required
    @api_endpoint
    def api_applications():
        """API endpoint for the candidate's applications"""
        return jsonify({'success': True, 'applications': job_service.candidate_applications(current_user)})

    @app.route('/api/applications/<int:application_id>/withdraw', methods=['POST'])
    @candidate_required
    @api_endpoint
    def api_withdraw(application_id):
        application = job_service.withdraw_application(current_user, application_id)
        return jsonify({'success': True, 'application': application.to_dict()})

    @app.route('/api/applications/<int:application_id>/status', methods=['PUT'])
    @employer_required
    @api_endpoint
    def api_application_status(application_id):
        """API endpoint for employers to update an application"""
        data = json_body()
        application = job_service.update_application_status(
            current_user, application_id, data.get('status'), data.get('note'))
        return jsonify({'success': True, 'application': application.to_dict()})

    # Profile
    @app.route('/api/profile', methods=['GET'])
    @login_required
    @api_endpoint
    def api_profile():
        user = current_user
        data = {'success': True, 'user': user.to_dict()}
        if user.is_candidate:
            data.update({
                'skills': [s.to_dict() for s in Skill.query.filter_by(user_id=user.id)],
                'education': [e.to_dict() for e in Education.query.filter_by(user_id=user.id)],
                'experience': [e.to_dict() for e in Experience.query.filter_by(user_id=user.id)],
                'certifications': [c.to_dict() for c in Certification.query.filter_by(user_id=user.id)],
            })
        return jsonify(data)

    @app.route('/api/profile', methods=['PUT'])
    @login_required
    @api_endpoint
    def api_update_profile():
        user = profile_service.update_profile(current_user, json_body())
        return jsonify({'success': True, 'user': user.to_dict()})

    @app.route('/api/profile/completion', methods=['GET'])
    @login_required
    @api_endpoint
    def api_profile_completion():
        user = current_user
        completion = calculate_profile_completion(
            user,
            Skill.query.filter_by(user_id=user.id).all(),
            Education.query.filter_by(user_id=user.id).all(),
            Experience.query.filter_by(user_id=user.id).all(),
            Certification.query.filter_by(user_id=user.id).all(),
        )
        return jsonify({'success': True, **completion})

    @app.route('/api/profile/avatar', methods=['POST'])
    @login_required
    @api_endpoint
    def api_upload_avatar():
        url = profile_service.save_upload(current_user, request.files.get('file'), 'avatar')
        return jsonify({'success': True, 'avatar_url': url})

    @app.route('/api/profile/resume', methods=['POST'])
    @candidate_required
    @api_endpoint
    def api_upload_resume():
        """API endpoint to upload a résumé, parse it and optionally import it"""
        url = profile_service.save_upload(current_user, request.files.get('file'), 'resume')
        cv_data = parse_cv_file(profile_service.upload_path(url))

        imported = None
        if to_bool(request.form.get('import') or request.args.get('import') or False):
            imported = profile_service.import_cv_data(current_user, cv_data)

        cv_data.pop('text', None)
        return jsonify({'success': True, 'resume_url': url, 'parsed': cv_data, 'imported': imported})

    @app.route('/api/profile/<section>', methods=['POST'])
    @candidate_required
    @api_endpoint
    def api_add_profile_entry(section):
        entry = profile_service.add_entry(current_user, section, json_body())
        return jsonify({'success': True, 'entry': entry.to_dict()}), 201

    @app.route('/api/profile/<section>/<int:entry_id>', methods=['PUT'])
    @candidate_required
    @api_endpoint
    def api_update_profile_entry(section, entry_id):
        entry = profile_service.update_entry(current_user, section, entry_id, json_body())
        return jsonify({'success': True, 'entry': entry.to_dict()})

    @app.route('/api/profile/<section>/<int:entry_id>', methods=['DELETE'])
    @candidate_required
    @api_endpoint
    def api_delete_profile_entry(section, entry_id):
        profile_service.delete_entry(current_user, section, entry_id)
        return jsonify({'success': True})

    # Skills
    @app.route('/api/skills', methods=['GET'])
    @candidate_required
    @api_endpoint
    def api_skills():
        skills = Skill.query.filter_by(user_id=current_user.id).order_by(Skill.level.desc()).all()
        return jsonify({'success': True, 'skills': [s.to_dict() for s in skills]})

    @app.route('/api/skills', methods=['POST'])
    @candidate_required
    @api_endpoint
    def api_add_skill():
        skill = profile_service.add_skill(current_user, json_body())
        return jsonify({'success': True, 'skill': skill.to_dict(), 'rank_score': current_user.rank_score}), 201

    @app.route('/api/skills/<int:skill_id>', methods=['PUT'])
    @candidate_required
    @api_endpoint
    def api_update_skill(skill_id):
        skill = profile_service.update_skill(current_user, skill_id, json_body())
        return jsonify({'success': True, 'skill': skill.to_dict(), 'rank_score': current_user.rank_score})

    @app.route('/api/skills/<int:skill_id>', methods=['DELETE'])
    @candidate_required
    @api_endpoint
    def api_delete_skill(skill_id):
        profile_service.delete_skill(current_user, skill_id)
        return jsonify({'success': True, 'rank_score': current_user.rank_score})

    @app.route('/api/skills/changes', methods=['GET'])
    @login_required
    @api_endpoint
    def api_skill_changes():
        """API endpoint for the current user's skill change feed"""
        since = request.args.get('since', 0, type=int)
        return jsonify({'success': True, **profile_service.skill_changes(current_user, since)})

    # Ranking
    @app.route('/api/rank', methods=['GET'])
    @candidate_required
    @api_endpoint
    def api_rank():
        """API endpoint for the candidate's rank breakdown"""
        return jsonify({'success': True, **recalculate_user_rank(current_user.id)})

    @app.route('/api/leaderboard', methods=['GET'])
    @api_endpoint
    def api_leaderboard():
        limit = min(request.args.get('limit', 50, type=int), 100)
        users = leaderboard(location=request.args.get('location'), limit=limit)
        return jsonify({
            'success': True,
            'candidates': [dict(user.to_dict(private=False), position=index)
                           for index, user in enumerate(users, start=1)],
        })

    # Assessments
    @app.route('/api/assessments', methods=['GET'])
    @api_endpoint
    def api_assessments():
        category = request.args.get('category')
        exams = assessments.get_exams_by_category(category) if category else assessments.SKILL_EXAMS
        return jsonify({
            'success': True,
            'categories': assessments.get_all_categories(),
            'assessments': [exam_summary(exam) for exam in exams],
        })

    @app.route('/api/assessments/<exam_id>', methods=['GET'])
    @candidate_required
    @api_endpoint
    def api_start_assessment(exam_id):
        """API endpoint to start an exam; the clock starts now"""
        exam = assessments.get_exam_by_id(exam_id)
        if exam is None:
            raise NotFound(f"Assessment '{exam_id}' not found")
        started_at = start_assessment(exam_id)
        return jsonify({'success': True, 'assessment': assessments.public_exam(exam), 'started_at': started_at})

    @app.route('/api/assessments/<exam_id>/submit', methods=['POST'])
    @candidate_required
    @api_endpoint
    def api_submit_assessment(exam_id):
        result = assessments.submit_attempt(
            current_user, exam_id, json_body().get('answers'), started_at=pop_assessment_start(exam_id))
        return jsonify({'success': True, **result})

    @app.route('/api/assessments/attempts', methods=['GET'])
    @candidate_required
    @api_endpoint
    def api_assessment_attempts():
        attempts = (AssessmentAttempt.query.filter_by(user_id=current_user.id)
                    .order_by(AssessmentAttempt.created_at.desc()).all())
        return jsonify({'success': True, 'attempts': [a.to_dict() for a in attempts]})

    # Résumé builder
    @app.route('/api/resume/templates', methods=['GET'])
    def api_resume_templates():
        return jsonify({'success': True, 'templates': resume_builder.TEMPLATES})

    @app.route('/api/resume/prefill', methods=['GET'])
    @login_required
    @api_endpoint
    def api_resume_prefill():
        """API endpoint for résumé data built from the saved profile"""
        return jsonify({'success': True, 'resume': resume_builder.prefill_from_profile(current_user)})

    @app.route('/api/resume/ats', methods=['POST'])
    @api_endpoint
    def api_resume_ats():
        return jsonify({'success': True, **resume_builder.ats_score(json_body().get('resume'))})

    @app.route('/api/resume/match', methods=['POST'])
    @api_endpoint
    def api_resume_match():
        """API endpoint to compare a résumé with a job description"""
        data = json_body()
        result = resume_builder.job_description_match(data.get('resume'), data.get('job_description'))
        return jsonify({'success': True, **result})

    @app.route('/api/resume/page-breaks', methods=['POST'])
    @api_endpoint
    def api_resume_page_breaks():
        """Page count and break offsets for a preview of the measured height"""
        try:
            height = to_float(json_body().get('height'))
        except (TypeError, ValueError):
            height = None
        if height is None:
            raise ValidationError("Preview height must be a number of pixels")

        return jsonify({
            'success': True,
            'page_height': resume_export.A4_HEIGHT_PX,
            'page_count': resume_export.estimate_page_count(height),
            'offsets': resume_export.page_break_offsets(height),
        })

    @app.route('/api/resume/allowance', methods=['GET'])
    @login_required
    @api_endpoint
    def api_resume_allowance():
        return jsonify({'success': True, **resume_builder.download_allowance(current_user)})

    @app.route('/api/resume/export', methods=['POST'])
    @login_required
    @api_endpoint
    def api_resume_export():
        """API endpoint to download a résumé as PDF"""
        data = json_body()
        template_id = data.get('template') or resume_builder.DEFAULT_TEMPLATE
        pdf, page_count = resume_export.export_pdf(data.get('resume'), template_id)
        allowance = resume_builder.record_download(current_user, template_id)

        response = send_file(
            BytesIO(pdf),
            mimetype='application/pdf',
            as_attachment=True,
            download_name=resume_export.export_filename(data.get('resume'), template_id),
        )
        response.headers['X-Page-Count'] = str(page_count)
        if allowance['remaining'] is not None:
            response.headers['X-Downloads-Remaining'] = str(allowance['remaining'])
        return response

    # Content
    @app.route('/api/blog', methods=['GET'])
    def api_blog():
        posts = content.get_posts(category=request.args.get('category'), tag=request.args.get('tag'))
        return jsonify({
            'success': True,
            'categories': content.get_categories(),
            'posts': [{key: value for key, value in post.items() if key != 'content'} for post in posts],
        })

    @app.route('/api/blog/<slug>', methods=['GET'])
    @api_endpoint
    def api_blog_post(slug):
        post = content.get_post_by_slug(slug)
        if post is None:
            raise NotFound("Post not found")
        related = content.get_related_posts(post)
        return jsonify({'success': True, 'post': post,
                        'related': [{'slug': p['slug'], 'title': p['title']} for p in related]})

    @app.route('/api/newsletter', methods=['POST'])
    @api_endpoint
    def api_newsletter():
        """API endpoint to subscribe to job alerts"""
        subscription = messaging.subscribe_newsletter(json_body().get('email'))
        return jsonify({'success': True, 'email': subscription.email})

    # Messages and notifications
    @app.route('/api/messages', methods=['GET'])
    @login_required
    @api_endpoint
    def api_messages():
        folder = request.args.get('folder', 'inbox')
        other_id = request.args.get('with', type=int)
        if other_id:
            messages = messaging.get_conversation(current_user, other_id)
        else:
            messages = messaging.list_messages(current_user, folder)
        return jsonify({'success': True, 'messages': [m.to_dict() for m in messages]})

    @app.route('/api/messages', methods=['POST'])
    @login_required
    @api_endpoint
    def api_send_message():
        data = json_body()
        receiver_id = to_int(data.get('receiver_id'))
        if receiver_id is None:
            raise ValidationError("Recipient is required")
        message = messaging.send_message(current_user, receiver_id, data.get('subject'), data.get('message'))
        return jsonify({'success': True, 'message': message.to_dict()}), 201

    @app.route('/api/messages/<int:message_id>/read', methods=['POST'])
    @login_required
    @api_endpoint
    def api_read_message(message_id):
        message = messaging.mark_message_read(current_user, message_id)
        return jsonify({'success': True, 'message': message.to_dict()})

    @app.route('/api/notifications', methods=['GET'])
    @login_required
    @api_endpoint
    def api_notifications():
        notifications = messaging.list_notifications(
            current_user, unread_only=to_bool(request.args.get('unread', False)))
        return jsonify({
            'success': True,
            'notifications': [n.to_dict() for n in notifications],
            'unread': messaging.unread_counts(current_user),
        })

    @app.route('/api/notifications/<int:notification_id>/read', methods=['POST'])
    @login_required
    @api_endpoint
    def api_read_notification(notification_id):
        notification = messaging.mark_notification_read(current_user, notification_id)
        return jsonify({'success': True, 'notification': notification.to_dict()})

    @app.route('/api/notifications/read-all', methods=['POST'])
    @login_required
    @api_endpoint
    def api_read_all_notifications():
        return jsonify({'success': True, 'updated': messaging.mark_all_notifications_read(current_user)})

    # Packages and payments
    @app.route('/api/packages', methods=['GET'])
    def api_packages():
        return jsonify({'success': True, 'packages': [p.to_dict() for p in payments.list_packages()]})

    @app.route('/api/payments/verify', methods=['POST'])
    @login_required
    @api_endpoint
    def api_verify_payment():
        """API endpoint to verify a gateway payment and activate premium"""
        data = json_body()
        package_id = to_int(data.get('package_id'))
        if package_id is None:
            raise ValidationError("Package is required")

        subscription = payments.subscribe(
            current_user,
            package_id,
            data.get('razorpay_order_id') or data.get('order_id'),
            data.get('razorpay_payment_id') or data.get('payment_id'),
            data.get('razorpay_signature') or data.get('signature'),
        )
        return jsonify({
            'success': True,
            'message': 'Payment verified and premium activated',
            'subscription': subscription.to_dict(),
            'premium_until': current_user.premium_until.isoformat(),
        })
