"""Attendance Sync package.

Organized by feature modules (attendance, profile, user_settings, sync, ...)
with repository/service layers over an on-device SQLite store.
"""
