"""Background worker for vaccination reminder notifications."""

__version__ = "1.0.0"
