import html
import time
import threading
import logging
import schedule
from datetime import datetime, timedelta
from app import app
from database import db
from messaging import send_email
from models import (Application, AssessmentAttempt, Job, ResumeDownload, SkillEvent, User,
                    UserType)
from payments import expire_subscriptions
from ranking import recalculate_user_rank
from utils import ConfigHelper

logger = logging.getLogger(__name__)

RETENTION_DAYS = 30

def recalculate_all_ranks():
    """Recalculate the rank score of every candidate"""
    with app.app_context():
        candidate_ids = [row.id for row in
                         User.query.filter_by(user_type=UserType.CANDIDATE).with_entities(User.id)]
        updated = 0

        for user_id in candidate_ids:
            try:
                recalculate_user_rank(user_id)
                updated += 1
            except Exception as e:
                logger.error(f"Error recalculating rank for user {user_id}: {e}")
                db.session.rollback()

        logger.info(f"Recalculated ranks for {updated} of {len(candidate_ids)} candidates")
        return updated

def expire_ended_subscriptions():
    """Deactivate subscriptions past their end date"""
    with app.app_context():
        try:
            return expire_subscriptions()
        except Exception as e:
            logger.error(f"Error expiring subscriptions: {e}")
            db.session.rollback()
            return None

def generate_weekly_report():
    """Generate weekly platform report"""
    with app.app_context():
        try:
            today = datetime.now().date()
            week_ago = datetime.utcnow() - timedelta(days=7)

            candidates = User.query.filter_by(user_type=UserType.CANDIDATE)
            employers = User.query.filter_by(user_type=UserType.EMPLOYER)

            top_candidates = (candidates.order_by(User.rank_score.desc())
                              .limit(10).all())

            report = {
                'week_ending': today.strftime('%Y-%m-%d'),
                'new_candidates_week': candidates.filter(User.created_at >= week_ago).count(),
                'new_employers_week': employers.filter(User.created_at >= week_ago).count(),
                'total_candidates': candidates.count(),
                'active_jobs': Job.query.filter_by(is_active=True).count(),
                'new_jobs_week': Job.query.filter(Job.created_at >= week_ago).count(),
                'applications_week': Application.query.filter(Application.created_at >= week_ago).count(),
                'assessments_week': AssessmentAttempt.query.filter(
                    AssessmentAttempt.created_at >= week_ago).count(),
                'resume_downloads_week': ResumeDownload.query.filter(
                    ResumeDownload.created_at >= week_ago).count(),
                'avg_rank_score': round(db.session.query(db.func.avg(User.rank_score))
                                        .filter(User.user_type == UserType.CANDIDATE).scalar() or 0, 1),
                'top_candidates': [
                    {'name': user.display_name, 'location': user.location,
                     'rank_score': round(user.rank_score or 0, 1)}
                    for user in top_candidates
                ],
            }

            logger.info(f"Generated weekly report: {report['new_candidates_week']} new candidates this week")

            if ConfigHelper.get_email_config()['enabled']:
                send_weekly_report_email(report)

            return report

        except Exception as e:
            logger.error(f"Error generating weekly report: {e}")
            return None

def send_weekly_report_email(report):
    """Send weekly report via email"""
    recipients = ConfigHelper.get_email_config()['report_recipients']
    if not recipients:
        logger.warning("No recipients configured for weekly reports")
        return False

    rows = ''.join(
        f"<tr><td>{html.escape(c['name'])}</td><td>{html.escape(c['location'] or '')}</td><td>{c['rank_score']}</td></tr>"
        for c in report['top_candidates']
    )

    html_content = f"""
    <html>
    <head>
        <style>
            body {{ font-family: Arial, sans-serif; }}
            .header {{ background-color: #f8f9fa; padding: 20px; }}
            table {{ width: 100%; border-collapse: collapse; margin: 20px 0; }}
            th, td {{ padding: 10px; text-align: left; border-bottom: 1px solid #ddd; }}
            th {{ background-color: #f8f9fa; }}
        </style>
    </head>
    <body>
        <div class="header">
            <h2>Weekly RankMe Report</h2>
            <p>Week Ending: {report['week_ending']}</p>
        </div>
        <ul>
            <li>New candidates: {report['new_candidates_week']}</li>
            <li>New employers: {report['new_employers_week']}</li>
            <li>Total candidates: {report['total_candidates']}</li>
            <li>Active jobs: {report['active_jobs']} ({report['new_jobs_week']} new)</li>
            <li>Applications: {report['applications_week']}</li>
            <li>Assessments taken: {report['assessments_week']}</li>
            <li>Résumé downloads: {report['resume_downloads_week']}</li>
            <li>Average rank score: {report['avg_rank_score']}</li>
        </ul>
        <h3>Top Candidates</h3>
        <table>
            <thead><tr><th>Name</th><th>Location</th><th>Rank</th></tr></thead>
            <tbody>{rows}</tbody>
        </table>
        <p><em>This is an automated weekly report from RankMe.</em></p>
    </body>
    </html>
    """

    return send_email(recipients, f"Weekly RankMe Report - Week Ending {report['week_ending']}", html_content)

def cleanup_old_records():
    """Delete skill events and résumé download records past the retention window"""
    with app.app_context():
        try:
            cutoff_date = datetime.utcnow() - timedelta(days=RETENTION_DAYS)

            events = SkillEvent.query.filter(SkillEvent.created_at < cutoff_date).delete()
            downloads = ResumeDownload.query.filter(ResumeDownload.created_at < cutoff_date).delete()

            db.session.commit()

            logger.info(f"Cleaned up {events} skill events and {downloads} résumé download records")
            return {'skill_events': events, 'resume_downloads': downloads}

        except Exception as e:
            logger.error(f"Error cleaning up old records: {e}")
            db.session.rollback()
            return None

def schedule_tasks():
    """Schedule all background tasks"""
    # Nightly rank recalculation at 2 AM
    schedule.every().day.at("02:00").do(recalculate_all_ranks)

    schedule.every().hour.do(expire_ended_subscriptions)

    # Weekly report on Monday at 9 AM
    schedule.every().monday.at("09:00").do(generate_weekly_report)

    # Clean up every Sunday at 3 AM
    schedule.every().sunday.at("03:00").do(cleanup_old_records)

    logger.info("Scheduled tasks configured")

def run_scheduler():
    """Run the scheduler loop"""
    logger.info("Starting scheduler...")

    while True:
        try:
            schedule.run_pending()
            time.sleep(60)  # Check every minute
        except Exception as e:
            logger.error(f"Scheduler error: {e}")
            time.sleep(300)  # Wait 5 minutes before retrying

def start_background_services():
    """Start all background services"""
    logger.info("Starting background services...")

    schedule_tasks()

    scheduler_thread = threading.Thread(target=run_scheduler, daemon=True)
    scheduler_thread.start()

    logger.info("Scheduler started")

if __name__ == '__main__':
    start_background_services()

    # Keep main thread alive
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Background services stopped")
