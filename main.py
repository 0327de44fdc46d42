#!/usr/bin/env python3
"""
Main entry point for RankMe Jobs
A Flask app that provides:
- Candidate, employer and admin dashboards
- Job postings, applications and skill-based rankings
- Skill assessments and a résumé builder with PDF export
- A JSON API under /api for browser and external clients
"""

import os

from app import app


def main():
    from scheduler import start_background_services

    # Rank recalculation and subscription expiry run beside the web server
    start_background_services()
    app.run(host='0.0.0.0', port=int(os.environ.get("PORT", "5000")))


if __name__ == '__main__':
    main()
