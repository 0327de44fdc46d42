from base import ServiceTestCase, add_skill, create_job, create_user
from dashboards import admin_stats, candidate_dashboard, employer_dashboard
from jobs import apply_to_job, update_application_status
from models import UserType


class DashboardTests(ServiceTestCase):
    def setUp(self):
        super().setUp()
        self.owner = self.employer()
        self.user = self.candidate()
        add_skill(self.user, "Python", level=7)
        self.job = create_job(self.owner)

    def test_candidate_dashboard(self):
        create_job(self.owner, title="Python Engineer", required_skills=["Python"])
        apply_to_job(self.user, self.job.id)

        data = candidate_dashboard(self.user)

        self.assertEqual(len(data["applications"]), 1)
        self.assertEqual([item["job"].title for item in data["recommended_jobs"]], ["Python Engineer"])
        self.assertEqual(data["position"]["total"], 1)
        self.assertIn("percentage", data["completion"])
        self.assertEqual(data["skills"][0].name, "Python")

    def test_employer_dashboard(self):
        application = apply_to_job(self.user, self.job.id)
        update_application_status(self.owner, application.id, "accepted")

        data = employer_dashboard(self.owner)

        self.assertEqual(data["stats"], {
            "active_jobs": 1,
            "total_applications": 1,
            "pending_applications": 0,
            "accepted_applications": 1,
        })
        self.assertEqual(data["unread"]["notifications"], 1)

    def test_admin_stats(self):
        create_user("admin@example.com", UserType.ADMIN)
        apply_to_job(self.user, self.job.id)

        stats = admin_stats()

        self.assertEqual(stats["candidates"], 1)
        self.assertEqual(stats["employers"], 1)
        self.assertEqual(stats["applications"], 1)
        self.assertEqual(stats["active_subscriptions"], 0)
