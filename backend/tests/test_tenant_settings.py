"""
Unit tests per le impostazioni dello studio (TenantSettings e TenantService).
"""

import pytest

from app.schemas.tenant import (
    NotificationSettingsUpdate,
    SmtpSettings,
    TenantSettings,
    clamp_reminder_days,
)
from app.services.tenant_service import tenant_service


# ============================================================
# Lettura impostazioni grezze
# ============================================================


class TestTenantSettingsParsing:
    """Tests per TenantSettings.from_raw."""

    @pytest.mark.parametrize(
        "value, expected",
        [(99, 30), (-4, 1), (0, 3), (None, 3), ("abc", 3), ("7", 7), (5.9, 5)],
    )
    def test_reminder_days_clamped(self, value, expected):
        """Test giorni di preavviso sempre in 1..30."""
        assert clamp_reminder_days(value) == expected

    def test_defaults_from_empty(self):
        """Test record vuoto → preavvisi 3 giorni, solo canale in-app."""
        parsed = TenantSettings.from_raw(None)
        assert parsed.notifications.deadlines_reminder_days == 3
        assert parsed.notifications.hearings_reminder_days == 3
        assert not parsed.notifications.email_enabled
        assert parsed.smtp is None

    def test_legacy_smtp_keys(self):
        """Test chiavi storiche "pass" e "from"."""
        parsed = TenantSettings.from_raw(
            {
                "smtp": {
                    "host": "smtp.example.com",
                    "port": 587,
                    "user": "studio",
                    "pass": "segreta",
                    "from": "studio@example.com",
                }
            }
        )
        assert parsed.smtp.password == "segreta"
        assert parsed.smtp.from_address == "studio@example.com"
        assert parsed.smtp.is_configured

    def test_json_string(self):
        """Test impostazioni salvate come stringa JSON."""
        parsed = TenantSettings.from_raw('{"notifications": {"deadlines_reminder_days": 50}}')
        assert parsed.notifications.deadlines_reminder_days == 30

    def test_invalid_section_replaced(self):
        """Test sezione non valida sostituita dal default, il resto preservato."""
        parsed = TenantSettings.from_raw(
            {"smtp": {"port": "non-numerica"}, "calendar": {"token": "x" * 20}, "theme": "dark"}
        )
        assert parsed.smtp is None
        assert parsed.calendar.token == "x" * 20
        assert parsed.to_raw()["theme"] == "dark"

    def test_unknown_channels_dropped(self):
        parsed = TenantSettings.from_raw({"notifications": {"channels": ["email", "sms"]}})
        assert [c.value for c in parsed.notifications.channels] == ["email"]


# ============================================================
# TenantService
# ============================================================


class TestTenantService:
    """Tests per notifiche, SMTP e token calendario."""

    async def test_update_notifications_merges(self, db, tenant):
        """Test aggiornamento parziale con limitazione a 1..30."""
        result = await tenant_service.update_notifications(
            db,
            tenant.id,
            NotificationSettingsUpdate(deadlines_reminder_days=45, channels=["in-app", "email"]),
        )
        assert result.deadlines_reminder_days == 30
        assert result.hearings_reminder_days == 3
        assert result.email_enabled

        stored = await tenant_service.get_settings(db, tenant.id)
        assert stored.notifications.deadlines_reminder_days == 30

    async def test_smtp_password_kept(self, db, tenant):
        """Test password non inviata → resta quella salvata."""
        await tenant_service.update_smtp(
            db,
            tenant.id,
            SmtpSettings(host="smtp.example.com", port=465, secure=True, user="u", password="p1", from_address="a@example.com"),
        )
        await tenant_service.update_smtp(
            db,
            tenant.id,
            SmtpSettings(host="smtp2.example.com", port=587, user="u", from_address="a@example.com"),
        )

        stored = await tenant_service.get_settings(db, tenant.id)
        assert stored.smtp.host == "smtp2.example.com"
        assert stored.smtp.password == "p1"
        assert stored.smtp.secure is False

    async def test_calendar_token_generated_once(self, db, tenant):
        """Test token generato alla prima lettura e poi stabile."""
        first = await tenant_service.get_calendar_token(db, tenant.id)
        second = await tenant_service.get_calendar_token(db, tenant.id)

        assert len(first.token) >= 16
        assert first.token == second.token
        assert f"tid={tenant.id}" in first.ics_url
        assert await tenant_service.verify_calendar_token(db, tenant.id, first.token)

    async def test_rotate_invalidates_old_token(self, db, tenant, other_tenant):
        """Test rotazione: il vecchio token non è più accettato."""
        old = await tenant_service.get_calendar_token(db, tenant.id)
        new = await tenant_service.rotate_calendar_token(db, tenant.id)

        assert old.token != new.token
        assert not await tenant_service.verify_calendar_token(db, tenant.id, old.token)
        assert await tenant_service.verify_calendar_token(db, tenant.id, new.token)
        assert not await tenant_service.verify_calendar_token(db, other_tenant.id, new.token)
