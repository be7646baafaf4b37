"""
Tests for the in-memory configuration store.
"""

from app.agents.schemas import BotCreate, FileCreate, ProjectCreate
from app.storage import MemStorage
from conftest import DEMO_USER, VALID_TOKEN


def _bot(storage: MemStorage, username: str = "helper_bot", user_id: str = DEMO_USER):
    return storage.create_bot(
        BotCreate(name="Helper", username=username, telegram_token=VALID_TOKEN),
        user_id
    )


class TestBots:

    def test_created_bot_is_inactive(self, storage):
        bot = _bot(storage)

        assert bot.is_active is False
        assert bot.temperature == 0.7
        assert bot.max_tokens == 150
        assert storage.get_bot(bot.id) == bot

    def test_lookup_by_username(self, storage):
        bot = _bot(storage)

        assert storage.get_bot_by_username("helper_bot").id == bot.id
        assert storage.get_bot_by_username("nobody") is None

    def test_list_filters_by_user(self, storage):
        mine = _bot(storage)
        _bot(storage, username="other_bot", user_id="someone-else")

        assert [b.id for b in storage.list_bots(DEMO_USER)] == [mine.id]

    def test_update_merges_changes(self, storage):
        bot = _bot(storage)

        updated = storage.update_bot(bot.id, name="Renamed", is_active=True)

        assert updated.name == "Renamed"
        assert updated.is_active is True
        assert updated.username == "helper_bot"
        assert storage.get_bot(bot.id).name == "Renamed"

    def test_update_missing(self, storage):
        assert storage.update_bot("missing", name="x") is None

    def test_delete(self, storage):
        bot = _bot(storage)

        assert storage.delete_bot(bot.id) is True
        assert storage.get_bot(bot.id) is None
        assert storage.delete_bot(bot.id) is False


class TestBotMessages:

    def test_newest_first(self, storage):
        bot = _bot(storage)
        for text in ("one", "two", "three"):
            storage.create_bot_message(bot.id, text, "ok")

        messages = storage.list_bot_messages(bot.id)

        assert [m.message for m in messages] == ["three", "two", "one"]

    def test_limit(self, storage):
        bot = _bot(storage)
        for i in range(10):
            storage.create_bot_message(bot.id, str(i))

        assert [m.message for m in storage.list_bot_messages(bot.id, limit=3)] == ["9", "8", "7"]

    def test_only_messages_for_bot(self, storage):
        first = _bot(storage)
        second = _bot(storage, username="second_bot")
        storage.create_bot_message(first.id, "for first")
        storage.create_bot_message(second.id, "for second")

        assert [m.message for m in storage.list_bot_messages(first.id)] == ["for first"]

    def test_response_defaults_to_none(self, storage):
        bot = _bot(storage)

        assert storage.create_bot_message(bot.id, "hi").response is None


class TestProjectsAndFiles:

    def test_file_language_inferred(self, storage):
        project = storage.create_project(ProjectCreate(name="Site"), DEMO_USER)

        record = storage.create_file(FileCreate(project_id=project.id, name="app.rb", path="app.rb"))

        assert record.language == "ruby"
        assert record.content == ""

    def test_update_file_bumps_updated_at(self, storage):
        project = storage.create_project(ProjectCreate(name="Site"), DEMO_USER)
        record = storage.create_file(FileCreate(project_id=project.id, name="a.py", path="a.py"))

        updated = storage.update_file(record.id, content="x = 1")

        assert updated.content == "x = 1"
        assert updated.updated_at >= record.updated_at
        assert updated.created_at == record.created_at

    def test_update_missing_file(self, storage):
        assert storage.update_file("missing", content="") is None

    def test_delete_project_cascades(self, storage):
        project = storage.create_project(ProjectCreate(name="Site"), DEMO_USER)
        other = storage.create_project(ProjectCreate(name="Other"), DEMO_USER)
        storage.create_file(FileCreate(project_id=project.id, name="a.py", path="a.py"))
        kept = storage.create_file(FileCreate(project_id=other.id, name="b.py", path="b.py"))

        assert storage.delete_project(project.id) is True

        assert storage.get_project(project.id) is None
        assert storage.list_files(project.id) == []
        assert storage.list_files(other.id) == [kept]

    def test_delete_missing_project(self, storage):
        assert storage.delete_project("missing") is False
