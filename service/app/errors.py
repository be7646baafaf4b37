"""
Error taxonomy.

Components raise these; main.py maps them to HTTP responses using
the class-level status code.
"""

from typing import Optional


class AppError(Exception):
    """Base class for errors surfaced to API callers."""
    status_code = 500

    def __init__(self, message: str, errors: Optional[list[dict]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ValidationError(AppError):
    """Malformed or conflicting request data."""
    status_code = 400


class NotFound(AppError):
    status_code = 404


class BotNotFound(NotFound):
    def __init__(self, bot_id: str):
        super().__init__("Bot not found")
        self.bot_id = bot_id


class ProjectNotFound(NotFound):
    def __init__(self, project_id: str):
        super().__init__("Project not found")
        self.project_id = project_id


class FileNotFound(NotFound):
    def __init__(self, file_id: str):
        super().__init__("File not found")
        self.file_id = file_id


class InvalidCredential(AppError):
    """Telegram token is malformed or was rejected by Telegram."""
    status_code = 400


class GenerationError(AppError):
    """Completion service failed or returned nothing usable."""
    status_code = 500


class UpstreamServiceError(AppError):
    """GitHub or Telegram request failed."""
    status_code = 500
