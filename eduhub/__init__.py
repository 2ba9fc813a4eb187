"""EduHub backend: notifications, content and subjects for the learning platform."""

__version__ = "1.0.0"
