"""
Unit Tests for portal settings and the application window
"""
from datetime import datetime, timedelta
from sqlalchemy.ext.asyncio import AsyncSession

from grantsportal.models import PortalSettings
from grantsportal.services.settings_service import (
    applications_open,
    apply_update,
    export_settings,
    get_settings,
    reset_settings,
    update_application_window,
)

NOW = datetime(2025, 6, 15, 12, 0, 0)


def window(**fields) -> PortalSettings:
    data = dict(applications_open=True, application_auto_close=True)
    data.update(fields)
    return PortalSettings(**data)


class TestApplicationWindow:
    """Test when online applications are accepted"""

    def test_open_without_dates(self):
        assert applications_open(window(), NOW)

    def test_closed_flag_wins(self):
        assert not applications_open(window(applications_open=False), NOW)

    def test_before_open_date(self):
        assert not applications_open(window(application_open_date=NOW + timedelta(days=1)), NOW)

    def test_after_close_date(self):
        assert not applications_open(window(application_close_date=NOW - timedelta(days=1)), NOW)

    def test_within_dates(self):
        row = window(
            application_open_date=NOW - timedelta(days=1),
            application_close_date=NOW + timedelta(days=1),
        )

        assert applications_open(row, NOW)

    def test_dates_ignored_without_auto_close(self):
        row = window(application_auto_close=False, application_close_date=NOW - timedelta(days=1))

        assert applications_open(row, NOW)

    def test_window_update_maps_field_names(self):
        row = window()

        changed = update_application_window(row, {"is_open": False, "message": "Closed for review"}, "admin-1")

        assert sorted(changed) == ["application_message", "applications_open"]
        assert row.applications_open is False
        assert row.last_updated_by == "admin-1"


class TestSettingsRow:
    """Test the settings singleton"""

    async def test_created_on_first_use(self, db_session: AsyncSession):
        first = await get_settings(db_session)
        second = await get_settings(db_session)

        assert first.id == second.id
        assert first.user_registration is True

    async def test_apply_update_reports_changes(self, db_session: AsyncSession):
        row = await get_settings(db_session)

        changed = apply_update(row, {"site_name": "Grants Portal", "user_registration": True}, None)

        assert changed == ["site_name"]
        assert row.site_name == "Grants Portal"

    async def test_reset_restores_defaults(self, db_session: AsyncSession):
        row = await get_settings(db_session)
        apply_update(row, {"maintenance_mode": True}, None)
        await db_session.flush()

        fresh = await reset_settings(db_session, None)

        assert fresh.id != row.id
        assert fresh.maintenance_mode is False

    async def test_export_never_contains_smtp_password(self, db_session: AsyncSession):
        row = await get_settings(db_session)
        row.smtp_password = "hunter2"

        exported = export_settings(row)

        assert "smtp_password" not in exported
        assert "id" not in exported
        assert "site_name" in exported
