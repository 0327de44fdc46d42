from base import JOB_DESCRIPTION, PASSWORD, ApiTestCase, add_skill, app
from database import db
from models import User, UserType
from payments import expected_signature

RESUME = {
    "personal_info": {"full_name": "Jane Doe", "email": "jane@example.com"},
    "skills": [{"category": "Tech", "items": ["Python", "SQL"]}],
}


class AuthApiTests(ApiTestCase):
    def test_register_logs_in(self):
        response = self.client.post("/api/auth/register", json={
            "email": "New@Example.com", "password": PASSWORD, "name": "New User", "user_type": "employer",
            "company": "Acme",
        })

        self.assertEqual(response.status_code, 201)
        me = self.client.get("/api/me").get_json()
        self.assertEqual(me["user"]["email"], "new@example.com")
        self.assertEqual(me["user"]["user_type"], "employer")

    def test_register_errors(self):
        self.make_user("taken@example.com")

        duplicate = self.client.post("/api/auth/register", json={
            "email": "taken@example.com", "password": PASSWORD, "name": "Someone"})
        weak = self.client.post("/api/auth/register", json={
            "email": "weak@example.com", "password": "short", "name": "Someone"})
        admin = self.client.post("/api/auth/register", json={
            "email": "boss@example.com", "password": PASSWORD, "name": "Boss", "user_type": "admin"})

        self.assertEqual(duplicate.status_code, 409)
        self.assertEqual(weak.status_code, 400)
        self.assertGreater(len(weak.get_json()["errors"]), 1)
        self.assertEqual(admin.status_code, 400)

    def test_login(self):
        self.make_user("jane@example.com")

        wrong = self.client.post("/api/auth/login", json={"email": "jane@example.com", "password": "nope"})
        right = self.client.post("/api/auth/login", json={"email": "JANE@example.com", "password": PASSWORD})

        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(right.status_code, 200)
        self.assertEqual(right.get_json()["points_awarded"], 1)

        again = self.login("jane@example.com", self.new_client())
        self.assertEqual(again.get("/api/me").status_code, 200)

    def test_authentication_required(self):
        for path in ("/api/me", "/api/dashboard", "/api/skills", "/api/resume/allowance"):
            response = self.client.get(path)
            self.assertEqual(response.status_code, 401, path)
            self.assertFalse(response.get_json()["success"])

    def test_logout(self):
        self.make_user("jane@example.com")
        self.login("jane@example.com")

        self.client.post("/api/auth/logout")

        self.assertEqual(self.client.get("/api/me").status_code, 401)


class JobApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.employer_id = self.make_user("employer@example.com", UserType.EMPLOYER, company="Acme")
        self.candidate_id = self.make_user("candidate@example.com", location="Pune")
        self.employer = self.login("employer@example.com", self.new_client())
        self.candidate = self.login("candidate@example.com", self.new_client())

    def test_hiring_flow(self):
        posted = self.employer.post("/api/jobs", json={
            "title": "Backend Developer",
            "description": JOB_DESCRIPTION,
            "location": "Remote",
            "job_type": "full-time",
            "required_skills": ["Python", "SQL"],
        })
        self.assertEqual(posted.status_code, 201, posted.get_json())
        job_id = posted.get_json()["job"]["id"]

        applied = self.candidate.post(f"/api/jobs/{job_id}/apply", json={"note": "Hello"})
        self.assertEqual(applied.status_code, 201)
        application_id = applied.get_json()["application"]["id"]
        self.assertEqual(self.candidate.post(f"/api/jobs/{job_id}/apply", json={}).status_code, 409)

        received = self.employer.get(f"/api/jobs/{job_id}/applications").get_json()["applications"]
        self.assertEqual(received[0]["candidate"]["email"], "candidate@example.com")

        updated = self.employer.put(f"/api/applications/{application_id}/status",
                                    json={"status": "shortlisted", "note": "See you Monday"})
        self.assertEqual(updated.get_json()["application"]["status"], "shortlisted")

        notifications = self.candidate.get("/api/notifications?unread=true").get_json()
        self.assertEqual(len(notifications["notifications"]), 1)
        self.assertEqual(notifications["unread"]["notifications"], 1)

        mine = self.candidate.get("/api/applications").get_json()["applications"]
        self.assertEqual(mine[0]["status"], "shortlisted")

    def test_validation_error_lists_problems(self):
        response = self.employer.post("/api/jobs", json={"title": "Dev", "job_type": "remote"})

        self.assertEqual(response.status_code, 400)
        self.assertGreaterEqual(len(response.get_json()["errors"]), 3)

    def test_roles(self):
        job_id = self.make_job(self.employer_id)

        self.assertEqual(self.candidate.post("/api/jobs", json={}).status_code, 403)
        self.assertEqual(self.employer.post(f"/api/jobs/{job_id}/apply", json={}).status_code, 403)
        self.assertEqual(self.candidate.delete(f"/api/jobs/{job_id}").status_code, 403)

    def test_search_and_pause(self):
        job_id = self.make_job(self.employer_id)
        self.make_job(self.employer_id, title="Designer", required_skills=["Figma"])

        found = self.client.get("/api/jobs?search=python").get_json()
        self.assertEqual(found["total"], 1)
        self.assertEqual(found["jobs"][0]["id"], job_id)

        self.employer.post(f"/api/jobs/{job_id}/status", json={"is_active": False})

        self.assertEqual(self.client.get(f"/api/jobs/{job_id}").status_code, 404)
        self.assertEqual(self.employer.get(f"/api/jobs/{job_id}").status_code, 200)
        self.assertEqual(self.client.get("/api/jobs").get_json()["total"], 1)

    def test_job_match(self):
        job_id = self.make_job(self.employer_id)
        self.candidate.post("/api/skills", json={"name": "Python", "level": 8, "experience_years": 2})

        match = self.candidate.get(f"/api/jobs/{job_id}/match").get_json()

        self.assertEqual(match["match_percentage"], 40)
        self.assertEqual(match["missing_skills"], ["SQL"])

    def test_messages(self):
        sent = self.candidate.post("/api/messages", json={
            "receiver_id": self.employer_id, "subject": "Question", "message": "Is the role remote?"})
        self.assertEqual(sent.status_code, 201)

        inbox = self.employer.get("/api/messages").get_json()["messages"]
        self.assertEqual(inbox[0]["subject"], "Question")
        self.assertEqual(self.employer.post(f"/api/messages/{inbox[0]['id']}/read").status_code, 200)

        refused = self.employer.post("/api/messages", json={
            "receiver_id": self.candidate_id, "subject": "Hi", "message": "Interested?"})
        self.assertEqual(refused.status_code, 403)


class ProfileApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.user_id = self.make_user("candidate@example.com", location="Pune")
        self.login("candidate@example.com")

    def test_skill_change_feed(self):
        created = self.client.post("/api/skills", json={"name": "Python", "level": 7, "experience_years": 3})
        self.assertEqual(created.status_code, 201)
        self.assertGreater(created.get_json()["rank_score"], 0)
        skill_id = created.get_json()["skill"]["id"]

        feed = self.client.get("/api/skills/changes").get_json()
        self.assertEqual([e["event_type"] for e in feed["events"]], ["INSERT"])

        self.client.put(f"/api/skills/{skill_id}", json={"level": 9})
        newer = self.client.get(f"/api/skills/changes?since={feed['cursor']}").get_json()
        self.assertEqual([e["event_type"] for e in newer["events"]], ["UPDATE"])

    def test_profile_sections(self):
        created = self.client.post("/api/profile/experience", json={
            "company": "Acme", "role": "Engineer", "start_date": "2021-01-01", "is_current": True})
        self.assertEqual(created.status_code, 201)

        profile = self.client.get("/api/profile").get_json()
        self.assertEqual(profile["experience"][0]["company"], "Acme")

        self.assertEqual(self.client.post("/api/profile/hobbies", json={}).status_code, 404)
        self.assertEqual(self.client.put("/api/profile", json={"website": "nope"}).status_code, 400)

        completion = self.client.get("/api/profile/completion").get_json()
        self.assertIn("percentage", completion)

    def test_leaderboard_lists_public_candidates(self):
        self.client.put("/api/profile", json={"is_profile_public": True})
        self.make_user("hidden@example.com", rank_score=90)

        board = self.client.get("/api/leaderboard").get_json()["candidates"]

        self.assertEqual([c["id"] for c in board], [self.user_id])
        self.assertNotIn("email", board[0])

    def test_rank_breakdown(self):
        with app.app_context():
            add_skill(db.session.get(User, self.user_id), "Python", level=6)

        rank = self.client.get("/api/rank").get_json()

        self.assertEqual(rank["position"], 1)
        self.assertGreater(rank["rank"], 0)


class AssessmentApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.make_user("candidate@example.com")
        self.login("candidate@example.com")

    def test_take_assessment(self):
        started = self.client.get("/api/assessments/react").get_json()
        self.assertTrue(all("correct" not in q for q in started["assessment"]["questions"]))

        result = self.client.post("/api/assessments/react/submit", json={"answers": [0, 1, 2, 1, 0]}).get_json()

        self.assertTrue(result["passed"])
        self.assertFalse(result["timed_out"])
        self.assertEqual(result["skill"]["verification_source"], "RankMe Assessment")

        attempts = self.client.get("/api/assessments/attempts").get_json()["attempts"]
        self.assertEqual(len(attempts), 1)

    def test_catalogue(self):
        listing = self.client.get("/api/assessments", query_string={"category": "Cloud & DevOps"}).get_json()

        self.assertEqual({a["id"] for a in listing["assessments"]}, {"aws", "docker", "git"})
        self.assertEqual(self.client.get("/api/assessments/cobol").status_code, 404)


class ResumeApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.make_user("candidate@example.com")
        self.login("candidate@example.com")

    def test_free_download_limit(self):
        first = self.client.post("/api/resume/export", json={"resume": RESUME, "template": "modern"})
        second = self.client.post("/api/resume/export", json={"resume": RESUME})
        third = self.client.post("/api/resume/export", json={"resume": RESUME})

        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.mimetype, "application/pdf")
        self.assertTrue(first.data.startswith(b"%PDF"))
        self.assertIn("Jane_Doe_modern.pdf", first.headers["Content-Disposition"])
        self.assertEqual(first.headers["X-Downloads-Remaining"], "1")
        self.assertEqual(second.headers["X-Downloads-Remaining"], "0")
        self.assertEqual(third.status_code, 403)

        allowance = self.client.get("/api/resume/allowance").get_json()
        self.assertFalse(allowance["can_download"])

    def test_premium_template_refused(self):
        response = self.client.post("/api/resume/export", json={"resume": RESUME, "template": "executive"})

        self.assertEqual(response.status_code, 403)

    def test_analysis_endpoints(self):
        ats = self.client.post("/api/resume/ats", json={"resume": RESUME}).get_json()
        match = self.client.post("/api/resume/match", json={
            "resume": RESUME, "job_description": "Python and SQL analyst"}).get_json()
        empty = self.client.post("/api/resume/match", json={"resume": RESUME, "job_description": ""})

        self.assertEqual(len(ats["checks"]), 9)
        self.assertIn("python", match["found"])
        self.assertEqual(empty.status_code, 400)

    def test_page_breaks_for_preview_height(self):
        response = self.client.post("/api/resume/page-breaks", json={"height": 2500})
        short = self.client.post("/api/resume/page-breaks", json={"height": "800"}).get_json()
        bad = self.client.post("/api/resume/page-breaks", json={"height": "tall"})

        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertEqual(body["page_height"], 1123)
        self.assertEqual(body["page_count"], 3)
        self.assertEqual(body["offsets"], [1123, 2246])
        self.assertEqual((short["page_count"], short["offsets"]), (1, []))
        self.assertEqual(bad.status_code, 400)
        self.assertEqual(self.client.post("/api/resume/page-breaks", json={}).status_code, 400)

    def test_templates_and_prefill(self):
        templates = self.client.get("/api/resume/templates").get_json()["templates"]
        prefill = self.client.get("/api/resume/prefill").get_json()["resume"]

        self.assertEqual(len(templates), 17)
        self.assertEqual(prefill["personal_info"]["email"], "candidate@example.com")


class PublicApiTests(ApiTestCase):
    def test_blog(self):
        listing = self.client.get("/api/blog").get_json()
        post = self.client.get("/api/blog/remote-work-skills").get_json()

        self.assertNotIn("content", listing["posts"][0])
        self.assertIn("content", post["post"])
        self.assertTrue(post["related"])
        self.assertEqual(self.client.get("/api/blog/missing").status_code, 404)

    def test_newsletter(self):
        response = self.client.post("/api/newsletter", json={"email": "Reader@Example.com"})
        invalid = self.client.post("/api/newsletter", json={"email": "nope"})

        self.assertEqual(response.get_json()["email"], "reader@example.com")
        self.assertEqual(invalid.status_code, 400)

    def test_body_must_be_an_object(self):
        response = self.client.post("/api/newsletter", json=["reader@example.com"])

        self.assertEqual(response.status_code, 400)

    def test_payment_verification(self):
        user_id = self.make_user("candidate@example.com")
        self.login("candidate@example.com")
        packages = self.client.get("/api/packages").get_json()["packages"]

        response = self.client.post("/api/payments/verify", json={
            "package_id": packages[0]["id"],
            "razorpay_order_id": "order_1",
            "razorpay_payment_id": "pay_1",
            "razorpay_signature": expected_signature("order_1", "pay_1", "test-secret"),
        })

        self.assertEqual(response.status_code, 200, response.get_json())
        with app.app_context():
            self.assertTrue(db.session.get(User, user_id).is_premium)

        forged = self.client.post("/api/payments/verify", json={
            "package_id": packages[0]["id"], "order_id": "order_2", "payment_id": "pay_2", "signature": "x"})
        self.assertEqual(forged.status_code, 400)
