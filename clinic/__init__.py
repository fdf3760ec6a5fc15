"""
Clinic Management API

FastAPI backend for a clinic: patients book and pay for appointments,
doctors manage their schedule and patients, staff keep records and
administrators moderate feedback and accounts.
"""

__version__ = "1.0.0"
