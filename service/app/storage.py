"""
Configuration store.

In-memory storage for bots, bot messages, projects and files.
Volatile: everything is lost on restart. Pure data access, no policy:
callers validate, the store only checks that a record exists.
"""

from datetime import datetime, timezone
from typing import Optional

from app.agents.schemas import (
    Bot, BotCreate, BotMessage,
    Project, ProjectCreate,
    ProjectFile, FileCreate,
)
from app.utils.languages import language_from_filename


class MemStorage:
    """Dict-backed store keyed by record id."""

    def __init__(self):
        self._bots: dict[str, Bot] = {}
        self._projects: dict[str, Project] = {}
        self._files: dict[str, ProjectFile] = {}
        # Append-only, insertion order = creation order
        self._bot_messages: list[BotMessage] = []

    # =========================================================================
    # BOTS
    # =========================================================================

    def get_bot(self, bot_id: str) -> Optional[Bot]:
        return self._bots.get(bot_id)

    def get_bot_by_username(self, username: str) -> Optional[Bot]:
        for bot in self._bots.values():
            if bot.username == username:
                return bot
        return None

    def list_bots(self, user_id: str) -> list[Bot]:
        return [bot for bot in self._bots.values() if bot.user_id == user_id]

    def create_bot(self, data: BotCreate, user_id: str) -> Bot:
        bot = Bot(**data.model_dump(), user_id=user_id, is_active=False)
        self._bots[bot.id] = bot
        return bot

    def update_bot(self, bot_id: str, **changes) -> Optional[Bot]:
        """Merge changes into the bot. Returns None if it doesn't exist."""
        bot = self._bots.get(bot_id)
        if bot is None:
            return None
        updated = bot.model_copy(update=changes)
        self._bots[bot_id] = updated
        return updated

    def delete_bot(self, bot_id: str) -> bool:
        return self._bots.pop(bot_id, None) is not None

    # =========================================================================
    # BOT MESSAGES
    # =========================================================================

    def list_bot_messages(self, bot_id: str, limit: int = 50) -> list[BotMessage]:
        """Most recent messages first."""
        result = []
        for message in reversed(self._bot_messages):
            if message.bot_id != bot_id:
                continue
            result.append(message)
            if len(result) >= limit:
                break
        return result

    def create_bot_message(
        self,
        bot_id: str,
        message: str,
        response: Optional[str] = None
    ) -> BotMessage:
        record = BotMessage(bot_id=bot_id, message=message, response=response)
        self._bot_messages.append(record)
        return record

    # =========================================================================
    # PROJECTS
    # =========================================================================

    def get_project(self, project_id: str) -> Optional[Project]:
        return self._projects.get(project_id)

    def list_projects(self, user_id: str) -> list[Project]:
        return [p for p in self._projects.values() if p.user_id == user_id]

    def create_project(self, data: ProjectCreate, user_id: str) -> Project:
        project = Project(**data.model_dump(), user_id=user_id)
        self._projects[project.id] = project
        return project

    def update_project(self, project_id: str, **changes) -> Optional[Project]:
        project = self._projects.get(project_id)
        if project is None:
            return None
        updated = project.model_copy(update=changes)
        self._projects[project_id] = updated
        return updated

    def delete_project(self, project_id: str) -> bool:
        """Delete a project and all of its files."""
        for file_id in [f.id for f in self._files.values() if f.project_id == project_id]:
            del self._files[file_id]
        return self._projects.pop(project_id, None) is not None

    # =========================================================================
    # FILES
    # =========================================================================

    def get_file(self, file_id: str) -> Optional[ProjectFile]:
        return self._files.get(file_id)

    def list_files(self, project_id: str) -> list[ProjectFile]:
        return [f for f in self._files.values() if f.project_id == project_id]

    def create_file(self, data: FileCreate) -> ProjectFile:
        fields = data.model_dump()
        if not fields.get("language"):
            fields["language"] = language_from_filename(data.name)
        record = ProjectFile(**fields)
        self._files[record.id] = record
        return record

    def update_file(self, file_id: str, **changes) -> Optional[ProjectFile]:
        record = self._files.get(file_id)
        if record is None:
            return None
        changes["updated_at"] = datetime.now(timezone.utc)
        updated = record.model_copy(update=changes)
        self._files[file_id] = updated
        return updated

    def delete_file(self, file_id: str) -> bool:
        return self._files.pop(file_id, None) is not None


# Global instance
_storage: Optional[MemStorage] = None


def get_storage() -> MemStorage:
    """Get or create the process-wide store."""
    global _storage
    if _storage is None:
        _storage = MemStorage()
    return _storage
