"""
Unit Tests for the activity log writer
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from grantsportal.models import ActivityAction, ActivityLog, UserRole
from grantsportal.services import activity_log
from grantsportal.services.activity_log import build_entry, record_activity


class TestBuildEntry:
    """Test the shape of audit entries"""

    def test_details_collect_description_changes_metadata(self):
        entry = build_entry(
            ActivityAction.UPDATE_PROJECT,
            user_id="u-1",
            target_type="Project",
            target_id=42,
            description="Updated project",
            changes={"title", "budget"},
            metadata={"file_number": "SRG/2024/0001"},
        )

        assert entry.target_id == "42"
        assert entry.details == {
            "description": "Updated project",
            "changes": ["budget", "title"],
            "metadata": {"file_number": "SRG/2024/0001"},
        }

    def test_empty_details_stored_as_none(self):
        assert build_entry(ActivityAction.LOGIN).details is None

    def test_without_request(self):
        entry = build_entry(ActivityAction.LOGIN)

        assert entry.ip_address is None
        assert entry.user_agent is None


class TestRecordActivity:
    """Test that audit writes are best-effort"""

    async def test_writes_entry(self, db_session: AsyncSession, make_user):
        user = await make_user(UserRole.ADMIN)

        entry = await record_activity(
            db_session, ActivityAction.LOGIN,
            user_id=user.id, target_type="System", description="User logged in",
        )

        assert entry is not None
        stored = (await db_session.execute(select(ActivityLog))).scalar_one()
        assert stored.action == ActivityAction.LOGIN
        assert stored.user_id == user.id

    async def test_failure_is_swallowed(self, db_session: AsyncSession, monkeypatch):
        def broken_entry(*args, **kwargs):
            raise RuntimeError("audit store unavailable")

        monkeypatch.setattr(activity_log, "build_entry", broken_entry)

        assert await record_activity(db_session, ActivityAction.LOGIN) is None
        assert (await db_session.execute(select(ActivityLog))).first() is None

    async def test_failure_keeps_committed_work(self, db_session: AsyncSession, make_user, monkeypatch):
        user = await make_user(UserRole.PI)

        def broken_entry(*args, **kwargs):
            raise RuntimeError("audit store unavailable")

        monkeypatch.setattr(activity_log, "build_entry", broken_entry)
        await record_activity(db_session, ActivityAction.CREATE_USER, user_id=user.id)

        assert await db_session.get(type(user), user.id) is not None
