"""
iReporter - Citizen Reporting Service
=====================================

Backend for filing and triaging citizen reports:
1. Red-flags (corruption) and interventions (infrastructure)
2. Draft-only editing with media evidence (images/videos)
3. Admin status triage with in-app + email notifications
"""

__version__ = "1.0.0"
