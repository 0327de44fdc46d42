import unittest
from datetime import datetime, timedelta

from base import ServiceTestCase, add_skill
from assessments import (SKILL_EXAMS, get_all_categories, get_exam_by_id, get_exams_by_category, grade_exam,
                         is_timed_out, public_exam, skill_level_for_score, submit_attempt)
from errors import NotFound, ValidationError
from models import AssessmentAttempt, Skill

REACT_ANSWERS = [0, 1, 2, 1, 0]


class ExamCatalogueTests(unittest.TestCase):
    def test_every_exam_has_answerable_questions(self):
        for exam in SKILL_EXAMS:
            self.assertTrue(exam["questions"], exam["id"])
            for question in exam["questions"]:
                self.assertLess(question["correct"], len(question["options"]))

    def test_lookup_and_categories(self):
        self.assertEqual(get_exam_by_id("react")["skill"], "React")
        self.assertIsNone(get_exam_by_id("cobol"))
        self.assertEqual(get_all_categories()[0], "Frontend Development")
        self.assertTrue(all(e["category"] == "Data Science" for e in get_exams_by_category("Data Science")))

    def test_public_exam_hides_answers(self):
        exam = public_exam(get_exam_by_id("react"))

        self.assertTrue(all("correct" not in q for q in exam["questions"]))
        self.assertIn("correct", get_exam_by_id("react")["questions"][0])


class GradingTests(unittest.TestCase):
    def setUp(self):
        self.exam = get_exam_by_id("react")

    def test_all_correct(self):
        result = grade_exam(self.exam, REACT_ANSWERS)

        self.assertEqual(result, {"score": 100, "correct": 5, "total": 5, "passed": True})

    def test_answers_by_question_id(self):
        result = grade_exam(self.exam, {"1": 0, "2": 1, "3": 2, "4": 0, "5": 1})

        self.assertEqual(result["score"], 60)
        self.assertFalse(result["passed"])

    def test_unanswered_questions_are_wrong(self):
        self.assertEqual(grade_exam(self.exam, [0, 1, None])["correct"], 2)
        self.assertEqual(grade_exam(self.exam, None)["score"], 0)

    def test_invalid_answers(self):
        with self.assertRaises(ValidationError):
            grade_exam(self.exam, "abc")

    def test_skill_level_for_score(self):
        self.assertEqual(skill_level_for_score(100), 9)
        self.assertEqual(skill_level_for_score(80), 7)
        self.assertEqual(skill_level_for_score(70), 5)
        self.assertEqual(skill_level_for_score(40), 3)

    def test_timeout_allows_a_short_grace(self):
        started = datetime(2024, 1, 1, 12, 0, 0)

        self.assertFalse(is_timed_out(self.exam, started, started + timedelta(seconds=303)))
        self.assertTrue(is_timed_out(self.exam, started, started + timedelta(seconds=400)))
        self.assertFalse(is_timed_out(self.exam, None))


class SubmitAttemptTests(ServiceTestCase):
    def test_pass_verifies_new_skill_and_updates_rank(self):
        user = self.candidate()

        result = submit_attempt(user, "react", REACT_ANSWERS)

        self.assertTrue(result["passed"])
        self.assertEqual(result["skill"]["name"], "React")
        self.assertEqual(result["skill"]["level"], 9)
        self.assertTrue(result["skill"]["is_verified"])
        self.assertGreater(result["rank"], 0)
        self.assertEqual(AssessmentAttempt.query.filter_by(user_id=user.id).count(), 1)

    def test_pass_never_lowers_existing_level(self):
        user = self.candidate()
        add_skill(user, "react", level=10)

        submit_attempt(user, "react", REACT_ANSWERS)

        skills = Skill.query.filter_by(user_id=user.id).all()
        self.assertEqual(len(skills), 1)
        self.assertEqual(skills[0].level, 10)
        self.assertEqual(skills[0].verification_source, "RankMe Assessment")

    def test_fail_records_attempt_only(self):
        user = self.candidate()

        result = submit_attempt(user, "react", [3, 3, 3, 3, 3])

        self.assertFalse(result["passed"])
        self.assertIsNone(result["skill"])
        self.assertEqual(Skill.query.filter_by(user_id=user.id).count(), 0)
        self.assertEqual(AssessmentAttempt.query.count(), 1)

    def test_late_submission_is_flagged(self):
        user = self.candidate()
        started = datetime.utcnow() - timedelta(minutes=10)

        result = submit_attempt(user, "react", REACT_ANSWERS, started_at=started)

        self.assertTrue(result["timed_out"])
        self.assertTrue(AssessmentAttempt.query.first().timed_out)

    def test_unknown_exam(self):
        with self.assertRaises(NotFound):
            submit_attempt(self.candidate(), "cobol", [])


if __name__ == "__main__":
    unittest.main()
