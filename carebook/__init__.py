"""
CareBook

A FastAPI service where patients book appointments with doctors, doctors
accept or reject them, and administrators manage departments and doctor
accounts.
"""

__version__ = "1.0.0"
