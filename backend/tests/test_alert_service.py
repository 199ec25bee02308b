"""
Unit tests per AlertService (avvisi e riepilogo email).
"""

import datetime
from unittest.mock import AsyncMock, patch

import pytest

from app.core.exceptions import BusinessValidationError
from app.models.matter import Deadline, Hearing
from app.models.user import UserRole
from app.schemas.tenant import NotificationSettingsUpdate, SmtpSettings
from app.services.alert_service import alert_service, days_until
from app.services.tenant_service import tenant_service

from tests.conftest import make_user

UTC = datetime.timezone.utc
NOW = datetime.datetime(2025, 3, 1, 9, 0, tzinfo=UTC)


def _deadline(tenant, matter, title, when, completed=False):
    return Deadline(
        tenant_id=tenant.id,
        matter_id=matter.id,
        title=title,
        deadline_date=when,
        alert_days_before=3,
        is_completed=completed,
    )


def _hearing(tenant, matter, when, status="scheduled"):
    return Hearing(
        tenant_id=tenant.id,
        matter_id=matter.id,
        hearing_date=when,
        hearing_type="Instrução",
        status=status,
        attendees=[],
    )


@pytest.fixture
async def agenda(db, tenant, matter):
    """Scadenze e udienze attorno a NOW (preavviso di default: 3 giorni)."""
    rows = {
        "overdue": _deadline(tenant, matter, "Embargos", NOW - datetime.timedelta(days=2)),
        "soon": _deadline(tenant, matter, "Réplica", NOW + datetime.timedelta(days=2)),
        "later": _deadline(tenant, matter, "Recurso", NOW + datetime.timedelta(days=10)),
        "done": _deadline(tenant, matter, "Contestação", NOW + datetime.timedelta(days=1), completed=True),
        "hearing": _hearing(tenant, matter, NOW + datetime.timedelta(days=1, hours=5)),
        "cancelled": _hearing(tenant, matter, NOW + datetime.timedelta(days=1), status="cancelled"),
    }
    db.add_all(rows.values())
    await db.commit()
    return rows


# ============================================================
# Avvisi
# ============================================================


class TestGetAlerts:
    """Tests per get_alerts."""

    @pytest.mark.parametrize(
        "delta, expected",
        [
            (datetime.timedelta(days=2), 2),
            (datetime.timedelta(days=1, hours=1), 2),
            (datetime.timedelta(hours=3), 1),
            (-datetime.timedelta(days=2), -2),
            (-datetime.timedelta(hours=3), 0),
        ],
    )
    def test_days_until_rounds_up(self, delta, expected):
        assert days_until(NOW + delta, NOW) == expected

    async def test_window_and_overdue(self, db, tenant, agenda):
        """Test scadute e in arrivo incluse; completate, lontane e annullate escluse."""
        alerts = await alert_service.get_alerts(db, tenant.id, NOW)

        ids = [item.id for item in alerts.items]
        assert ids == [agenda["overdue"].id, agenda["hearing"].id, agenda["soon"].id]
        assert alerts.deadlines_reminder_days == 3
        assert alerts.items[0].days_until == -2
        assert alerts.items[0].client_name == "Cliente Teste Ltda"
        assert alerts.items[1].title == "Audiência: Instrução"

    async def test_window_follows_settings(self, db, tenant, agenda):
        """Test preavviso scadenze esteso a 15 giorni."""
        await tenant_service.update_notifications(
            db, tenant.id, NotificationSettingsUpdate(deadlines_reminder_days=15)
        )
        alerts = await alert_service.get_alerts(db, tenant.id, NOW)
        assert agenda["later"].id in [item.id for item in alerts.items]

    async def test_other_tenant_sees_nothing(self, db, other_tenant, agenda):
        alerts = await alert_service.get_alerts(db, other_tenant.id, NOW)
        assert alerts.items == []


# ============================================================
# Riepilogo email
# ============================================================


class TestEmailDigest:
    """Tests per send_email_digest (SMTP simulato)."""

    async def _configure(self, db, tenant, channels=("in-app", "email")):
        await tenant_service.update_smtp(
            db,
            tenant.id,
            SmtpSettings(host="smtp.example.com", port=587, user="u", password="p", from_address="studio@example.com"),
        )
        await tenant_service.update_notifications(
            db, tenant.id, NotificationSettingsUpdate(channels=list(channels))
        )

    async def test_smtp_not_configured(self, db, tenant, agenda):
        with pytest.raises(BusinessValidationError, match="SMTP not configured"):
            await alert_service.send_email_digest(db, tenant.id, NOW)

    async def test_email_channel_disabled(self, db, tenant, agenda):
        await self._configure(db, tenant, channels=("in-app",))
        with pytest.raises(BusinessValidationError, match="Email channel disabled"):
            await alert_service.send_email_digest(db, tenant.id, NOW)

    async def test_no_recipients(self, db, tenant, admin, agenda):
        """Test solo admin nello studio → nessun destinatario."""
        await self._configure(db, tenant)
        with pytest.raises(BusinessValidationError, match="No recipients"):
            await alert_service.send_email_digest(db, tenant.id, NOW)

    async def test_nothing_to_send(self, db, tenant):
        await self._configure(db, tenant)
        result = await alert_service.send_email_digest(db, tenant.id, NOW)
        assert result.success is True
        assert result.sent == 0

    async def test_digest_sent_to_operational_roles(self, db, tenant, agenda):
        """Test invio a partner, lawyer e secretary attivi."""
        await self._configure(db, tenant)
        partner = await make_user(db, tenant, UserRole.PARTNER)
        lawyer = await make_user(db, tenant, UserRole.LAWYER)
        await make_user(db, tenant, UserRole.INTERN)
        inactive = await make_user(db, tenant, UserRole.SECRETARY)
        inactive.is_active = False
        await db.commit()

        with patch("app.services.mail_service.send_plain_text", new=AsyncMock(return_value=2)) as send:
            result = await alert_service.send_email_digest(db, tenant.id, NOW)

        assert result.sent == 2
        assert sorted(result.recipients) == sorted([partner.email, lawyer.email])

        smtp, recipients, subject, body = send.await_args.args
        assert smtp.host == "smtp.example.com"
        assert subject == "Alertas do dia (01/03/2025)"
        assert "Escritório: Studio Alfa" in body
        assert "Embargos" in body and "ATRASADO" in body
        assert "Audiências:" in body
