"""AI Receptionist call engine - Retell webhook reconciliation and transcript extraction."""

__version__ = "1.0.0"
