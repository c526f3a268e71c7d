"""
Herufi School Portal
A school management API: administration, results, timetables and dashboards.

Architecture:
- PostgreSQL: every table (accounts, school records, results, timetables)
- FastAPI: one router per area under /api
- JWT: bearer tokens, one portal per role (admin, teacher, student)
"""

__version__ = "1.0.0"
