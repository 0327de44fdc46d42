import io
import os
from datetime import date, timedelta

from werkzeug.datastructures import FileStorage

from base import ServiceTestCase, app
from errors import NotFound, ValidationError
from models import Education, Experience, Skill
from profile_service import (add_entry, add_skill, delete_entry, delete_skill, import_cv_data,
                             infer_education_tier, record_daily_login, save_upload, skill_changes,
                             update_entry, update_profile, update_skill)


class ProfileTests(ServiceTestCase):
    def test_update_profile_recalculates_rank(self):
        user = self.candidate()

        update_profile(user, {"name": "Jane <b>Doe</b>", "bio": "", "is_profile_public": "on"})

        self.assertEqual(user.name, "Jane Doe")
        self.assertIsNone(user.bio)
        self.assertTrue(user.is_profile_public)

    def test_invalid_profile(self):
        with self.assertRaises(ValidationError) as ctx:
            update_profile(self.candidate(), {"website": "not a url"})
        self.assertEqual(ctx.exception.message, "Invalid website URL")

    def test_save_upload(self):
        user = self.candidate()
        upload = FileStorage(stream=io.BytesIO(b"plain text cv"), filename="my cv.txt")

        url = save_upload(user, upload, "resume")

        self.assertTrue(url.startswith(f"/uploads/resume_{user.id}_"))
        self.assertEqual(user.resume_url, url)
        self.assertTrue(os.path.exists(os.path.join(app.config["UPLOAD_FOLDER"], os.path.basename(url))))

    def test_upload_types(self):
        user = self.candidate()

        with self.assertRaises(ValidationError):
            save_upload(user, FileStorage(stream=io.BytesIO(b"x"), filename="cv.exe"), "resume")
        with self.assertRaises(ValidationError):
            save_upload(user, FileStorage(stream=io.BytesIO(b"x"), filename="me.pdf"), "avatar")
        with self.assertRaises(ValidationError):
            save_upload(user, None, "avatar")


class SkillTests(ServiceTestCase):
    def test_skill_lifecycle_feeds_changes(self):
        user = self.candidate()

        skill = add_skill(user, {"name": "Python", "level": "7", "experience_years": "2.5"})
        update_skill(user, skill.id, {"level": 9})
        first = skill_changes(user)

        self.assertEqual([e["event_type"] for e in first["events"]], ["INSERT", "UPDATE"])
        self.assertEqual(first["events"][1]["payload"]["level"], 9)
        self.assertEqual(first["events"][1]["payload"]["experience_years"], 2.5)

        delete_skill(user, skill.id)
        later = skill_changes(user, since=first["cursor"])

        self.assertEqual([e["event_type"] for e in later["events"]], ["DELETE"])
        self.assertEqual(skill_changes(user, since=later["cursor"]), {"events": [], "cursor": later["cursor"]})
        self.assertEqual(Skill.query.count(), 0)

    def test_feed_is_per_user(self):
        user = self.candidate()
        other = self.candidate("other@example.com")
        add_skill(other, {"name": "Go", "level": 5, "experience_years": 1})

        self.assertEqual(skill_changes(user)["events"], [])

    def test_invalid_skill(self):
        user = self.candidate()

        with self.assertRaises(ValidationError):
            add_skill(user, {"name": "Python", "level": 11, "experience_years": 1})
        with self.assertRaises(ValidationError):
            add_skill(user, {"name": "Python", "level": "high", "experience_years": 1})
        with self.assertRaises(NotFound):
            update_skill(user, 9999, {"level": 3})


class EntryTests(ServiceTestCase):
    def test_education_entry(self):
        user = self.candidate()

        entry = add_entry(user, "education", {
            "institution": "IIT Delhi",
            "degree": "Master of Technology",
            "field": "Computer Science",
            "start_date": "2018-07-01",
            "end_date": "2020-06-01",
            "gpa": "3.6",
        })

        self.assertEqual(entry.tier, 2)
        self.assertEqual(entry.gpa, 3.6)
        self.assertGreater(user.rank_score, 0)

    def test_required_fields_and_dates(self):
        user = self.candidate()

        with self.assertRaises(ValidationError) as ctx:
            add_entry(user, "experience", {"company": "Acme"})
        self.assertEqual(ctx.exception.message, "Role, Start date required")

        with self.assertRaises(ValidationError):
            add_entry(user, "experience", {"company": "Acme", "role": "Dev",
                                           "start_date": "2022-01-01", "end_date": "2021-01-01"})
        with self.assertRaises(ValidationError):
            add_entry(user, "education", {"institution": "X", "degree": "B.Sc", "field": "Maths",
                                          "start_date": "2020-01-01", "gpa": "9"})
        with self.assertRaises(NotFound):
            add_entry(user, "hobbies", {})

    def test_current_job_drops_end_date(self):
        user = self.candidate()

        entry = add_entry(user, "experience", {"company": "Acme", "role": "Dev", "start_date": "2022-01",
                                               "end_date": "2023-01", "is_current": "true"})

        self.assertTrue(entry.is_current)
        self.assertIsNone(entry.end_date)

    def test_update_and_delete_entry(self):
        user = self.candidate()
        entry = add_entry(user, "certifications", {"name": "AWS SA", "issuer": "Amazon",
                                                   "issue_date": "2023-05-01"})

        update_entry(user, "certifications", entry.id, {"credential_id": "ABC-123"})
        self.assertEqual(entry.credential_id, "ABC-123")
        self.assertEqual(entry.issue_date, date(2023, 5, 1))

        delete_entry(user, "certifications", entry.id)
        with self.assertRaises(NotFound):
            delete_entry(user, "certifications", entry.id)

    def test_education_tiers(self):
        self.assertEqual(infer_education_tier("PhD Physics"), 1)
        self.assertEqual(infer_education_tier("B.Tech"), 3)
        self.assertEqual(infer_education_tier("Diploma in Design"), 4)
        self.assertEqual(infer_education_tier("Certificate in Sales"), 5)


class ImportTests(ServiceTestCase):
    def test_import_parsed_cv(self):
        user = self.candidate(name=None)
        add_skill(user, {"name": "python", "level": 8, "experience_years": 1})

        counts = import_cv_data(user, {
            "name": "Jane Doe",
            "summary": "Engineer",
            "skills": ["Python", "SQL", "x"],
            "experience_years": 3,
            "education": [{"institution": "IIT Delhi", "degree": "B.Tech", "year": "2019"},
                          {"degree": "No school"}],
            "work_experience": [{"company": "Acme", "title": "Engineer", "duration": "2019 - Present"},
                                {"company": "Beta", "title": "Intern", "duration": "summer"}],
        })

        self.assertEqual(counts, {"skills": 1, "education": 1, "experience": 1})
        self.assertEqual(user.name, "Jane Doe")
        self.assertEqual(user.bio, "Engineer")
        self.assertEqual(Education.query.one().end_date, date(2019, 1, 1))
        self.assertTrue(Experience.query.one().is_current)
        self.assertEqual(Skill.query.filter_by(name="SQL").one().experience_years, 3)


class DailyLoginTests(ServiceTestCase):
    def test_one_point_per_day(self):
        user = self.candidate()
        today = date(2025, 3, 1)

        self.assertEqual(record_daily_login(user, today), 1)
        self.assertEqual(record_daily_login(user, today), 0)
        self.assertEqual(user.reward_points, 1)

    def test_streak_bonus_on_seventh_day(self):
        user = self.candidate()
        start = date(2025, 3, 1)

        awarded = [record_daily_login(user, start + timedelta(days=day)) for day in range(7)]

        self.assertEqual(awarded, [1, 1, 1, 1, 1, 1, 6])
        self.assertEqual(user.login_streak, 7)
        self.assertEqual(user.reward_points, 12)

    def test_missed_day_resets_streak(self):
        user = self.candidate()
        record_daily_login(user, date(2025, 3, 1))
        record_daily_login(user, date(2025, 3, 2))

        record_daily_login(user, date(2025, 3, 5))

        self.assertEqual(user.login_streak, 1)
