"""
Schemas module - Request/Response schemas for API endpoints.

Everything lives in herufi.schemas.schemas, grouped by area:
- Auth and school registration
- Students, teachers, classes and streams, subjects
- Terms, examinations, exam results
- Class tests, class-teacher assessments
- Timetables, dashboards and analytics
"""
