"""Dashboard test suite — personal summary, administrator overview, calendar.

Service methods are exercised directly (with a fixed ``today`` where the
result depends on it) and through the HTTP endpoints.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from intranet.common.constants import AdminStatus, LeaveStatus, UserRole
from intranet.dashboard.service import DashboardService, months_between
from intranet.leave.schemas import LeaveRequestCreate
from intranet.leave.service import LeaveService
from tests.conftest import HOLIDAYS, auth_headers, future, make_request, make_user

TODAY = date(2026, 3, 15)


class TestMonthsBetween:

    def test_whole_months(self):
        assert months_between(date(2026, 3, 15), date(2026, 9, 15)) == 6

    def test_partial_month_truncated(self):
        assert months_between(date(2026, 3, 15), date(2026, 9, 14)) == 5

    def test_past_date_negative(self):
        assert months_between(date(2026, 3, 15), date(2026, 1, 20)) == -1


# ═════════════════════════════════════════════════════════════════════
# GET /me
# ═════════════════════════════════════════════════════════════════════


class TestUserDashboard:

    async def test_end_to_end_balance(self, db, admin):
        user = await make_user(db, allocation=30)
        await make_request(
            db, user, date(2026, 2, 2), date(2026, 2, 10),
            status=LeaveStatus.approved, approver=admin,
        )
        await make_request(db, user, date(2026, 4, 1), date(2026, 4, 3))

        result = await DashboardService.get_user_dashboard(db, user.id)
        summary = result.summary
        assert summary.approved_days == 9
        assert summary.pending_days == 3
        assert summary.remaining_days == 21
        assert summary.balance_after_pending == 18
        assert summary.total_allocation_days == 30

    async def test_new_request_shows_as_pending(self, db, employee):
        before = await DashboardService.get_user_dashboard(db, employee.id)
        await LeaveService.create_leave_request(
            db, employee.id,
            LeaveRequestCreate(start_date=future(10), end_date=future(13)),
        )
        after = await DashboardService.get_user_dashboard(db, employee.id)
        assert after.summary.pending_days == before.summary.pending_days + 4
        assert after.summary.remaining_days == before.summary.remaining_days

    async def test_history_newest_first_with_approver(self, db, employee, admin):
        older = datetime(2026, 1, 1, tzinfo=timezone.utc)
        newer = datetime(2026, 2, 1, tzinfo=timezone.utc)
        await make_request(db, employee, date(2026, 1, 5), date(2026, 1, 6), created_at=older)
        await make_request(
            db, employee, date(2026, 2, 5), date(2026, 2, 6),
            status=LeaveStatus.approved, approver=admin, created_at=newer,
        )
        result = await DashboardService.get_user_dashboard(db, employee.id)
        assert [h.start_date for h in result.history] == [date(2026, 2, 5), date(2026, 1, 5)]
        assert result.history[0].approver_name == "Alex Durand"
        assert result.history[1].approver_name is None
        assert result.history[0].day_count == 2

    async def test_contract_duration(self, db):
        user = await make_user(
            db, arrival_date=date(2025, 11, 1), departure_date=date(2026, 4, 30),
        )
        result = await DashboardService.get_user_dashboard(db, user.id)
        assert result.summary.contract_duration_days == 181
        assert result.summary.arrival_date == date(2025, 11, 1)

    async def test_no_contract_duration_without_both_dates(self, db):
        user = await make_user(db, arrival_date=date(2025, 11, 1))
        result = await DashboardService.get_user_dashboard(db, user.id)
        assert result.summary.contract_duration_days is None

    async def test_endpoint(self, client, employee):
        resp = await client.get("/api/v1/dashboard/me", headers=auth_headers(employee))
        assert resp.status_code == 200
        body = resp.json()
        assert body["summary"]["total_allocation_days"] == 30
        assert body["history"] == []


# ═════════════════════════════════════════════════════════════════════
# GET /admin
# ═════════════════════════════════════════════════════════════════════


class TestAdminDashboard:

    async def test_rows_and_statuses(self, db, admin):
        critical = await make_user(db, last_name="Alpha", allocation=30)
        await make_request(
            db, critical, date(2026, 1, 1), date(2026, 1, 25),
            status=LeaveStatus.approved, approver=admin,
        )
        inactive = await make_user(db, last_name="Bravo", allocation=30)
        good = await make_user(db, last_name="Charlie", allocation=30)
        await make_request(
            db, good, date(2026, 3, 2), date(2026, 3, 6),
            status=LeaveStatus.approved, approver=admin,
        )
        unallocated = await make_user(db, last_name="Delta", allocation=0)

        result = await DashboardService.get_admin_dashboard(db, HOLIDAYS, today=TODAY)
        statuses = {row.user_id: row.status for row in result.rows}
        assert statuses == {
            critical.id: AdminStatus.critical,
            inactive.id: AdminStatus.warning_inactive,
            good.id: AdminStatus.good,
            unallocated.id: AdminStatus.unallocated,
        }
        first = result.rows[0]
        assert first.user_id == critical.id
        assert first.balance.approved_days == 25
        assert first.balance.remaining_days == 5
        assert first.last_leave_date == date(2026, 1, 25)

    async def test_admins_and_opted_out_users_excluded(self, db, admin):
        await make_user(db, conges_enabled=False)
        participant = await make_user(db)
        result = await DashboardService.get_admin_dashboard(db, today=TODAY)
        assert [row.user_id for row in result.rows] == [participant.id]

    async def test_pending_queue(self, db, employee, admin):
        await make_request(db, employee, date(2026, 4, 1), date(2026, 4, 3))
        await make_request(db, employee, date(2026, 5, 4), date(2026, 5, 4))
        await make_request(
            db, employee, date(2026, 6, 1), date(2026, 6, 2),
            status=LeaveStatus.rejected, approver=admin,
        )
        result = await DashboardService.get_admin_dashboard(db, today=TODAY)
        assert result.pending_requests_count == 2
        assert result.pending_days_total == 4
        assert {p.email for p in result.pending_requests} == {employee.email}

    async def test_departure_countdown(self, db):
        user = await make_user(db, departure_date=date(2026, 9, 20))
        result = await DashboardService.get_admin_dashboard(db, today=TODAY)
        row = result.rows[0]
        assert row.user_id == user.id
        assert row.months_until_departure == 6
        assert row.days_until_departure == (date(2026, 9, 20) - TODAY).days

    async def test_leave_history_sorted_by_start(self, db, employee):
        await make_request(db, employee, date(2026, 4, 1), date(2026, 4, 3))
        await make_request(db, employee, date(2026, 6, 1), date(2026, 6, 3))
        result = await DashboardService.get_admin_dashboard(db, today=TODAY)
        history = result.rows[0].leave_history
        assert [h.start_date for h in history] == [date(2026, 6, 1), date(2026, 4, 1)]

    async def test_empty(self, db, admin):
        result = await DashboardService.get_admin_dashboard(db, today=TODAY)
        assert result.rows == []
        assert result.pending_requests_count == 0

    async def test_endpoint_admin_only(self, client, employee, admin):
        denied = await client.get("/api/v1/dashboard/admin", headers=auth_headers(employee))
        assert denied.status_code == 403
        allowed = await client.get("/api/v1/dashboard/admin", headers=auth_headers(admin))
        assert allowed.status_code == 200
        assert len(allowed.json()["rows"]) == 1


# ═════════════════════════════════════════════════════════════════════
# GET /calendar
# ═════════════════════════════════════════════════════════════════════


class TestMonthCalendar:

    async def test_absentees_per_day(self, db, employee, admin):
        await make_request(
            db, employee, date(2026, 3, 9), date(2026, 3, 11),
            status=LeaveStatus.approved, approver=admin,
        )
        await make_request(db, employee, date(2026, 3, 20), date(2026, 3, 21))

        result = await DashboardService.get_month_calendar(db, 2026, 3, today=TODAY)
        assert result.month == "2026-03"
        assert len(result.days) == 31
        absent_days = [d.date.day for d in result.days if d.absentees]
        assert absent_days == [9, 10, 11]
        assert result.days[8].absentees[0].email == employee.email

    async def test_todays_absences_outside_month(self, db, employee, admin):
        await make_request(
            db, employee, TODAY - timedelta(days=1), TODAY + timedelta(days=1),
            status=LeaveStatus.approved, approver=admin,
        )
        result = await DashboardService.get_month_calendar(db, 2026, 7, today=TODAY)
        assert all(d.absentees == [] for d in result.days)
        assert [a.user_id for a in result.todays_absences] == [employee.id]
        assert result.available_months[0] == "2025-03"
        assert len(result.available_months) == 25

    async def test_admin_leave_shown(self, db, admin):
        await make_request(
            db, admin, date(2026, 3, 2), date(2026, 3, 2),
            status=LeaveStatus.approved, approver=admin,
        )
        result = await DashboardService.get_month_calendar(db, 2026, 3, today=TODAY)
        assert result.days[1].absentees[0].role == UserRole.admin

    async def test_endpoint(self, client, db, employee, admin):
        await make_request(
            db, employee, date(2026, 3, 9), date(2026, 3, 9),
            status=LeaveStatus.approved, approver=admin,
        )
        resp = await client.get(
            "/api/v1/dashboard/calendar",
            params={"year": 2026, "month": 3},
            headers=auth_headers(employee),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["month"] == "2026-03"
        assert body["days"][8]["absentees"][0]["user_id"] == str(employee.id)

    async def test_endpoint_month_validated(self, client, employee):
        resp = await client.get(
            "/api/v1/dashboard/calendar",
            params={"year": 2026, "month": 13},
            headers=auth_headers(employee),
        )
        assert resp.status_code == 422
