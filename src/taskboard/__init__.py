"""
Taskboard backend package.

A FastAPI service for account registration and login, user profiles, and
per-user task tracking. Build an application with ``taskboard.main.create_app``
or serve the ready-made ``taskboard.main:app``.
"""

__version__ = "0.1.0"
