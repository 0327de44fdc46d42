import unittest
from datetime import datetime, timedelta
from unittest.mock import patch

import schedule

from base import add_skill, app, create_user, reset_database
from database import db
from models import ResumeDownload, SkillEvent, User, UserType
from scheduler import (cleanup_old_records, expire_ended_subscriptions, generate_weekly_report,
                       recalculate_all_ranks, schedule_tasks)


class SchedulerTests(unittest.TestCase):
    """The jobs open their own application context, so fixtures are committed first"""

    def setUp(self):
        reset_database()

    def test_cleanup_old_records(self):
        old = datetime.utcnow() - timedelta(days=40)
        with app.app_context():
            user = create_user("candidate@example.com")
            db.session.add_all([
                SkillEvent(user_id=user.id, skill_id=1, event_type="INSERT", created_at=old),
                SkillEvent(user_id=user.id, skill_id=1, event_type="UPDATE"),
                ResumeDownload(user_id=user.id, template="professional", created_at=old),
            ])
            db.session.commit()

        result = cleanup_old_records()

        self.assertEqual(result, {"skill_events": 1, "resume_downloads": 1})
        with app.app_context():
            self.assertEqual(SkillEvent.query.count(), 1)

    def test_expire_ended_subscriptions(self):
        with app.app_context():
            create_user("lapsed@example.com", is_premium=True,
                        premium_until=datetime.utcnow() - timedelta(hours=1))
            create_user("paid@example.com", is_premium=True,
                        premium_until=datetime.utcnow() + timedelta(days=3))

        self.assertEqual(expire_ended_subscriptions(), {"subscriptions": 0, "users": 1})
        with app.app_context():
            self.assertEqual(User.query.filter_by(is_premium=True).count(), 1)

    def test_recalculate_all_ranks(self):
        with app.app_context():
            user = create_user("candidate@example.com")
            add_skill(user, "Python", level=8, experience_years=2)
            create_user("other@example.com")
            create_user("employer@example.com", UserType.EMPLOYER)
            user_id = user.id

        self.assertEqual(recalculate_all_ranks(), 2)
        with app.app_context():
            self.assertGreater(db.session.get(User, user_id).rank_score, 0)

    def test_weekly_report(self):
        with app.app_context():
            create_user("candidate@example.com", rank_score=42.0)
            create_user("employer@example.com", UserType.EMPLOYER)

        report = generate_weekly_report()

        self.assertEqual(report["new_candidates_week"], 1)
        self.assertEqual(report["new_employers_week"], 1)
        self.assertEqual(report["top_candidates"][0]["rank_score"], 42.0)

    def test_schedule_tasks(self):
        schedule.clear()
        try:
            schedule_tasks()
            self.assertEqual(len(schedule.get_jobs()), 4)
        finally:
            schedule.clear()

    def test_main_starts_background_services_before_serving(self):
        import main

        calls = []
        with patch("scheduler.start_background_services", side_effect=lambda: calls.append("services")), \
                patch.object(app, "run", side_effect=lambda **kwargs: calls.append("serve")):
            main.main()

        self.assertEqual(calls, ["services", "serve"])


if __name__ == "__main__":
    unittest.main()
