import unittest

import base  # noqa: F401
from errors import ValidationError
from resume_builder import TEMPLATES
from resume_export import estimate_page_count, export_filename, export_pdf, page_break_offsets

RESUME = {
    "personal_info": {
        "full_name": "Jane Doe",
        "email": "jane@example.com",
        "phone": "+91 98765 43210",
        "location": "Bangalore",
        "summary": "Backend engineer who likes <clean> & fast services.",
    },
    "experience": [{
        "title": "Software Engineer",
        "company": "Acme",
        "start_date": "2020-01",
        "current": True,
        "description": "Led the billing rewrite\nReduced latency by 40%",
    }],
    "education": [{"degree": "B.Tech", "institution": "IIT Delhi", "graduation_date": "2019-05"}],
    "skills": [{"category": "Technical", "items": ["Python", "SQL"]}],
    "certifications": [{"name": "AWS Solutions Architect", "issuer": "Amazon", "date": "2022-03"}],
    "projects": [{"name": "RankBot", "description": "Slack bot", "technologies": "Python"}],
}


class PageEstimateTests(unittest.TestCase):
    def test_page_count(self):
        self.assertEqual(estimate_page_count(0), 1)
        self.assertEqual(estimate_page_count(1123), 1)
        self.assertEqual(estimate_page_count(1124), 2)

    def test_page_break_offsets(self):
        self.assertEqual(page_break_offsets(500), [])
        self.assertEqual(page_break_offsets(2500), [1123, 2246])

    def test_filename(self):
        self.assertEqual(export_filename(RESUME, "modern"), "Jane_Doe_modern.pdf")
        self.assertEqual(export_filename({}, "x"), "Resume_x.pdf")


class ExportPdfTests(unittest.TestCase):
    def test_every_template_renders(self):
        for template in TEMPLATES:
            pdf, pages = export_pdf(RESUME, template["id"])

            self.assertTrue(pdf.startswith(b"%PDF"), template["id"])
            self.assertGreaterEqual(pages, 1)

    def test_empty_resume_renders_one_page(self):
        pdf, pages = export_pdf({})

        self.assertTrue(pdf.startswith(b"%PDF"))
        self.assertEqual(pages, 1)

    def test_long_resume_flows_onto_more_pages(self):
        data = dict(RESUME)
        data["experience"] = [dict(RESUME["experience"][0], description="Improved reports. " * 60)
                              for _ in range(12)]

        _, pages = export_pdf(data, "professional")

        self.assertGreater(pages, 1)

    def test_long_entries_render_with_every_template(self):
        data = dict(RESUME)
        data["experience"] = [dict(RESUME["experience"][0],
                                   description="Owned the billing, invoicing and ledger services. " * 140)]
        data["skills"] = [{"category": "Technical", "items": [f"Tool{n}" for n in range(1500)]}]

        for template in TEMPLATES:
            pdf, pages = export_pdf(data, template["id"])

            self.assertTrue(pdf.startswith(b"%PDF"), template["id"])
            self.assertGreater(pages, 1, template["id"])

    def test_unknown_template(self):
        with self.assertRaises(ValidationError):
            export_pdf(RESUME, "nope")


if __name__ == "__main__":
    unittest.main()
