import unittest
from datetime import datetime, timedelta

from base import ServiceTestCase, add_skill
from errors import PermissionDenied, ValidationError
from models import ResumeDownload
from resume_builder import (TEMPLATES, ats_score, download_allowance, empty_resume, extract_keywords,
                            get_template, job_description_match, normalize_resume, prefill_from_profile,
                            record_download)

SUMMARY = " ".join(["Backend engineer building reliable payment and search services for growing teams."] * 5)


def full_resume():
    return {
        "personal_info": {
            "full_name": "Jane Doe",
            "email": "jane@example.com",
            "phone": "+91 98765 43210",
            "location": "Bangalore, India",
            "summary": SUMMARY,
        },
        "experience": [{
            "title": "Software Engineer",
            "company": "Acme",
            "start_date": "2020-01",
            "current": True,
            "description": "Led the migration of billing to Python services",
        }],
        "education": [{"degree": "B.Tech Computer Science", "institution": "IIT Delhi"}],
        "skills": [{"category": "Technical", "items": "Python, SQL, React, Docker, AWS"}],
    }


class NormalizeTests(unittest.TestCase):
    def test_missing_sections_get_defaults(self):
        resume = normalize_resume({"personal_info": {"full_name": " Jane "}, "skills": "oops"})

        self.assertEqual(resume["personal_info"]["full_name"], "Jane")
        self.assertEqual(resume["personal_info"]["email"], "")
        self.assertEqual(resume["skills"], [])
        self.assertEqual(resume["projects"], [])

    def test_comma_separated_skill_items(self):
        resume = normalize_resume({"skills": [{"category": "Tools", "items": "Git, , Docker"}]})

        self.assertEqual(resume["skills"][0]["items"], ["Git", "Docker"])
        self.assertTrue(resume["skills"][0]["id"])

    def test_premium_templates(self):
        premium = sorted(t["id"] for t in TEMPLATES if t["premium"])

        self.assertEqual(premium, ["elegant", "executive", "infographic", "metro", "neon", "split", "timeline"])
        self.assertIsNone(get_template("nope"))


class AtsScoreTests(unittest.TestCase):
    def test_empty_resume(self):
        result = ats_score(empty_resume())

        self.assertEqual(result["score"], 0)
        self.assertEqual(result["label"], "Needs Work")
        self.assertTrue(all(not check["passed"] for check in result["checks"]))

    def test_complete_resume(self):
        result = ats_score(full_resume())

        self.assertEqual(result["score"], 100)
        self.assertEqual(result["label"], "Excellent")

    def test_partial_resume(self):
        data = full_resume()
        data["personal_info"]["summary"] = "Too short"
        data["skills"] = []

        result = ats_score(data)

        # 30 of 100 points lost
        self.assertEqual(result["score"], 70)
        self.assertEqual(result["label"], "Good")
        failed = {check["id"] for check in result["checks"] if not check["passed"]}
        self.assertEqual(failed, {"summary", "skills"})


class JobDescriptionMatchTests(unittest.TestCase):
    def test_keywords_put_tech_terms_first(self):
        keywords = extract_keywords("We need Python and React developers with Docker")

        self.assertEqual(keywords[:3], ["python", "react", "docker"])
        self.assertIn("developers", keywords)
        self.assertNotIn("need", keywords)

    def test_match_percentage(self):
        data = {"skills": [{"category": "Tech", "items": ["Python", "React"]}]}

        result = job_description_match(data, "We need Python and React developers with Docker")

        self.assertEqual(result["match_percentage"], 50)
        self.assertEqual(result["found"], ["python", "react"])
        self.assertEqual(result["missing"], ["docker", "developers"])

    def test_multi_word_terms_match_without_spaces(self):
        data = {"skills": [{"category": "Tools", "items": ["Power BI"]}]}

        result = job_description_match(data, "Build Power BI dashboards")

        self.assertIn("powerbi", result["found"])

    def test_empty_description(self):
        with self.assertRaises(ValidationError):
            job_description_match(full_resume(), "   ")


class DownloadAllowanceTests(ServiceTestCase):
    def test_free_downloads_run_out(self):
        user = self.candidate()

        self.assertEqual(record_download(user, "professional")["remaining"], 1)
        self.assertEqual(record_download(user, "modern")["remaining"], 0)
        with self.assertRaises(PermissionDenied):
            record_download(user, "minimal")
        self.assertEqual(ResumeDownload.query.count(), 2)

    def test_old_downloads_leave_the_window(self):
        user = self.candidate()
        now = datetime.utcnow()
        record_download(user, "professional", now=now - timedelta(days=45))
        record_download(user, "professional", now=now - timedelta(days=40))

        self.assertEqual(download_allowance(user, now)["remaining"], 2)

    def test_premium_template_needs_premium(self):
        user = self.candidate()

        with self.assertRaises(PermissionDenied):
            record_download(user, "executive")

    def test_premium_is_unlimited(self):
        user = self.candidate(is_premium=True, premium_until=datetime.utcnow() + timedelta(days=30))

        for _ in range(3):
            allowance = record_download(user, "executive")

        self.assertTrue(allowance["premium"])
        self.assertIsNone(allowance["remaining"])

    def test_expired_premium_counts_as_free(self):
        user = self.candidate(is_premium=True, premium_until=datetime.utcnow() - timedelta(days=1))

        self.assertFalse(download_allowance(user)["premium"])

    def test_unknown_template(self):
        with self.assertRaises(ValidationError):
            record_download(self.candidate(), "nope")


class PrefillTests(ServiceTestCase):
    def test_prefill_groups_verified_skills(self):
        user = self.candidate(name="Jane Doe", phone="9876543210")
        add_skill(user, "Python", level=8, is_verified=True)
        add_skill(user, "SQL", level=4)

        resume = prefill_from_profile(user)

        self.assertEqual(resume["personal_info"]["full_name"], "Jane Doe")
        self.assertEqual(resume["personal_info"]["location"], "Bangalore")
        self.assertEqual(resume["skills"][0], {"id": resume["skills"][0]["id"], "category": "Verified Skills",
                                               "items": ["Python"]})
        self.assertEqual(resume["skills"][1]["items"], ["SQL"])


if __name__ == "__main__":
    unittest.main()
