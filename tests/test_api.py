"""
End-to-end tests through the HTTP API.
"""

import asyncio
from datetime import UTC, date, datetime, timedelta

from sqlalchemy import DateTime, select
from sqlmodel import SQLModel

from calbook.core.db import async_session_maker
from calbook.domain.exceptions import PersistenceError
from calbook.models.appointment import Appointment, AppointmentStatus
from calbook.models.refresh_token import RefreshToken
from calbook.services.appointment_service import complete_past_appointments
from calbook.services.appointment_store import SqlAppointmentStore

API = "/api/v1"
GUEST = {"name": "Jane Doe", "email": "jane@mail.com", "message": "Intro call"}


def _next_weekday() -> date:
    """First Monday-to-Friday date after today (UTC)."""
    day = datetime.now(UTC).date() + timedelta(days=1)
    while day.weekday() >= 5:
        day += timedelta(days=1)
    return day


def _book(client, owner_id, day=None, time="09:30", **guest):
    day = day or _next_weekday()
    return client.post(
        f"{API}/book/{owner_id}/appointments",
        json={"date": day.isoformat(), "time": time, **GUEST, **guest},
    )


class TestAuth:
    """Tests for owner accounts and tokens."""

    def test_signup_and_me(self, client, owner):
        resp = client.get(f"{API}/auth/me", headers=owner["headers"])
        assert resp.status_code == 200
        assert resp.json()["email"] == "owner@mail.com"
        assert resp.json()["full_name"] == "John Smith"

    def test_duplicate_signup(self, client, owner):
        resp = client.post(
            f"{API}/auth/signup",
            json={"email": "owner@mail.com", "password": "another-pass"},
        )
        assert resp.status_code == 409

    def test_login(self, client, owner):
        resp = client.post(
            f"{API}/auth/login", json={"email": "owner@mail.com", "password": "correct-horse"}
        )
        assert resp.status_code == 200
        assert resp.json()["token_type"] == "bearer"

    def test_login_wrong_password(self, client, owner):
        resp = client.post(
            f"{API}/auth/login", json={"email": "owner@mail.com", "password": "wrong-horse"}
        )
        assert resp.status_code == 401

    def test_refresh_rotates(self, client, owner):
        old = owner["tokens"]["refresh_token"]
        resp = client.post(f"{API}/auth/refresh", json={"refresh_token": old})
        assert resp.status_code == 200
        assert resp.json()["refresh_token"] != old
        reused = client.post(f"{API}/auth/refresh", json={"refresh_token": old})
        assert reused.status_code == 401

    def test_logout_revokes_refresh_token(self, client, owner):
        token = owner["tokens"]["refresh_token"]
        assert client.post(f"{API}/auth/logout", headers={"X-Refresh-Token": token}).status_code == 200
        assert client.post(f"{API}/auth/refresh", json={"refresh_token": token}).status_code == 401

    def test_owner_routes_require_auth(self, client):
        for path in ("/auth/me", "/availability", "/appointments", "/dashboard"):
            resp = client.get(f"{API}{path}")
            assert resp.status_code == 401, path

    def test_garbage_token(self, client):
        resp = client.get(f"{API}/auth/me", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401


class TestAvailability:
    """Tests for the owner's availability endpoints."""

    def test_defaults(self, client, owner):
        resp = client.get(f"{API}/availability", headers=owner["headers"])
        assert resp.status_code == 200
        body = resp.json()
        assert body["meeting_duration_minutes"] == 30
        assert body["days"]["monday"] == {"enabled": True, "start_time": "09:00", "end_time": "17:00"}
        assert body["days"]["sunday"]["enabled"] is False

    def test_patch_day(self, client, owner):
        resp = client.patch(
            f"{API}/availability/days/monday",
            json={"start_time": "10:00", "meeting_duration_minutes": 60},
            headers=owner["headers"],
        )
        assert resp.status_code == 200
        assert resp.json()["days"]["monday"]["start_time"] == "10:00"

        stored = client.get(f"{API}/availability", headers=owner["headers"]).json()
        assert stored["days"]["monday"]["start_time"] == "10:00"
        assert stored["days"]["monday"]["end_time"] == "17:00"
        assert stored["meeting_duration_minutes"] == 60

    def test_patch_inverted_window(self, client, owner):
        resp = client.patch(
            f"{API}/availability/days/monday",
            json={"start_time": "18:00"},
            headers=owner["headers"],
        )
        assert resp.status_code == 422
        assert resp.json()["errors"]
        stored = client.get(f"{API}/availability", headers=owner["headers"]).json()
        assert stored["days"]["monday"]["start_time"] == "09:00"

    def test_patch_with_seconds_is_rejected(self, client, owner):
        resp = client.patch(
            f"{API}/availability/days/monday",
            json={"start_time": "09:00:30"},
            headers=owner["headers"],
        )
        assert resp.status_code == 422
        assert "start_time" in resp.json()["errors"]
        stored = client.get(f"{API}/availability", headers=owner["headers"]).json()
        assert stored["days"]["monday"]["start_time"] == "09:00"

    def test_put_with_seconds_is_rejected(self, client, owner):
        body = client.get(f"{API}/availability", headers=owner["headers"]).json()
        body["days"]["monday"] = {"enabled": True, "start_time": "09:00:10", "end_time": "09:00:50"}
        resp = client.put(f"{API}/availability", json=body, headers=owner["headers"])
        assert resp.status_code == 422
        stored = client.get(f"{API}/availability", headers=owner["headers"]).json()
        assert stored["days"]["monday"] == {"enabled": True, "start_time": "09:00", "end_time": "17:00"}

    def test_patch_unknown_duration(self, client, owner):
        resp = client.patch(
            f"{API}/availability/days/monday",
            json={"meeting_duration_minutes": 50},
            headers=owner["headers"],
        )
        assert resp.status_code == 422

    def test_put_full_model(self, client, owner):
        body = client.get(f"{API}/availability", headers=owner["headers"]).json()
        body["days"]["saturday"] = {"enabled": True, "start_time": "10:00", "end_time": "12:00"}
        body["meeting_duration_minutes"] = 15
        resp = client.put(f"{API}/availability", json=body, headers=owner["headers"])
        assert resp.status_code == 200
        assert resp.json()["days"]["saturday"]["enabled"] is True
        assert resp.json()["meeting_duration_minutes"] == 15


class TestPublicBooking:
    """Tests for the public booking link."""

    def test_profile(self, client, owner):
        resp = client.get(f"{API}/book/{owner['owner_id']}")
        assert resp.status_code == 200
        assert resp.json() == {
            "owner_id": owner["owner_id"],
            "name": "John Smith",
            "meeting_duration_minutes": 30,
        }

    def test_unknown_calendar(self, client):
        resp = client.get(f"{API}/book/9999")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Calendar not found"

    def test_dates(self, client, owner):
        resp = client.get(f"{API}/book/{owner['owner_id']}/dates")
        assert resp.status_code == 200
        dates = [date.fromisoformat(d) for d in resp.json()["dates"]]
        today = datetime.now(UTC).date()
        assert dates
        assert today not in dates
        assert all(d.weekday() < 5 for d in dates)
        assert max(dates) <= today + timedelta(days=30)

    def test_slots(self, client, owner):
        day = _next_weekday()
        resp = client.get(f"{API}/book/{owner['owner_id']}/slots", params={"date": day.isoformat()})
        assert resp.status_code == 200
        body = resp.json()
        assert body["duration_minutes"] == 30
        assert len(body["slots"]) == 16
        assert body["slots"][0]["start_time"] == "09:00"
        assert body["slots"][-1]["end_time"] == "17:00"

    def test_book(self, client, owner):
        resp = _book(client, owner["owner_id"])
        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["step"] == "confirmation"
        assert body["appointment"]["status"] == "confirmed"
        assert body["appointment"]["guest_name"] == "Jane Doe"
        assert body["appointment"]["duration_minutes"] == 30

        listed = client.get(f"{API}/appointments", headers=owner["headers"]).json()
        assert [a["id"] for a in listed] == [body["appointment"]["id"]]

    def test_empty_name_stores_nothing(self, client, owner):
        resp = _book(client, owner["owner_id"], name="  ")
        assert resp.status_code == 422
        assert "name" in resp.json()["errors"]
        assert client.get(f"{API}/appointments", headers=owner["headers"]).json() == []

    def test_bad_email(self, client, owner):
        resp = _book(client, owner["owner_id"], email="jane-at-mail")
        assert resp.status_code == 422
        assert "email" in resp.json()["errors"]

    def test_time_not_offered(self, client, owner):
        resp = _book(client, owner["owner_id"], time="09:10")
        assert resp.status_code == 422
        assert "time" in resp.json()["errors"]

    def test_today_not_bookable(self, client, owner):
        resp = _book(client, owner["owner_id"], day=datetime.now(UTC).date())
        assert resp.status_code == 422
        assert "date" in resp.json()["errors"]

    def test_store_failure_is_retryable_and_stores_nothing(self, client, owner, monkeypatch):
        async def failing_append(self, appointment):
            raise PersistenceError("Could not save the appointment")

        monkeypatch.setattr(SqlAppointmentStore, "append", failing_append)
        resp = _book(client, owner["owner_id"])
        assert resp.status_code == 503
        assert resp.json() == {"detail": "Could not save the appointment", "retryable": True}
        monkeypatch.undo()
        assert client.get(f"{API}/appointments", headers=owner["headers"]).json() == []

    def test_same_slot_can_be_booked_twice(self, client, owner):
        assert _book(client, owner["owner_id"]).status_code == 201
        assert _book(client, owner["owner_id"], name="Someone Else").status_code == 201


class TestOwnerAppointments:
    """Tests for listing, cancelling and the dashboard."""

    def test_cancel_requires_confirmation(self, client, owner):
        appointment_id = _book(client, owner["owner_id"]).json()["appointment"]["id"]
        resp = client.post(
            f"{API}/appointments/{appointment_id}/cancel", json={}, headers=owner["headers"]
        )
        assert resp.status_code == 422
        assert "confirm" in resp.json()["errors"]

    def test_cancel_twice(self, client, owner):
        appointment_id = _book(client, owner["owner_id"]).json()["appointment"]["id"]
        for _ in range(2):
            resp = client.post(
                f"{API}/appointments/{appointment_id}/cancel",
                json={"confirm": True},
                headers=owner["headers"],
            )
            assert resp.status_code == 200
            assert resp.json()["status"] == "cancelled"
        listed = client.get(f"{API}/appointments", headers=owner["headers"]).json()
        assert len(listed) == 1
        assert listed[0]["status"] == "cancelled"

    def test_cannot_cancel_someone_elses(self, client, owner, signup):
        other = signup(email="other@mail.com", full_name="Other Owner")
        appointment_id = _book(client, owner["owner_id"]).json()["appointment"]["id"]
        resp = client.post(
            f"{API}/appointments/{appointment_id}/cancel",
            json={"confirm": True},
            headers=other["headers"],
        )
        assert resp.status_code == 404

    def test_scope_and_status_filters(self, client, owner):
        first = _book(client, owner["owner_id"]).json()["appointment"]["id"]
        _book(client, owner["owner_id"], time="10:00")
        client.post(
            f"{API}/appointments/{first}/cancel", json={"confirm": True}, headers=owner["headers"]
        )
        upcoming = client.get(
            f"{API}/appointments", params={"scope": "upcoming"}, headers=owner["headers"]
        ).json()
        assert len(upcoming) == 1
        cancelled = client.get(
            f"{API}/appointments", params={"status": "cancelled"}, headers=owner["headers"]
        ).json()
        assert [a["id"] for a in cancelled] == [first]

    def test_dashboard(self, client, owner):
        _book(client, owner["owner_id"])
        _book(client, owner["owner_id"], time="11:00")
        resp = client.get(f"{API}/dashboard", headers=owner["headers"])
        assert resp.status_code == 200
        body = resp.json()
        assert body["booking_url"] == f"https://cal.example.org/book/{owner['owner_id']}"
        assert body["total_appointments"] == 2
        assert body["upcoming_appointments"] == 2
        assert body["completed_appointments"] == 0
        assert len(body["recent_appointments"]) == 2

    def test_completion_sweep(self, client, owner):
        start = datetime.now(UTC).replace(tzinfo=None) - timedelta(days=2)

        async def _seed_and_sweep() -> int:
            async with async_session_maker() as session:
                session.add(
                    Appointment(
                        owner_id=owner["owner_id"],
                        guest_name="Past Guest",
                        guest_email="past@mail.com",
                        appointment_datetime_utc=start,
                        duration_minutes=30,
                    )
                )
                await session.commit()
            async with async_session_maker() as session:
                n = await complete_past_appointments(session)
                await session.commit()
                return n

        assert asyncio.run(_seed_and_sweep()) == 1
        listed = client.get(
            f"{API}/appointments",
            params={"status": AppointmentStatus.COMPLETED.value},
            headers=owner["headers"],
        ).json()
        assert len(listed) == 1
        stats = client.get(f"{API}/dashboard", headers=owner["headers"]).json()
        assert stats["completed_appointments"] == 1


class TestStorage:
    """Tests for how timestamps are stored."""

    def test_datetime_columns_are_naive(self):
        columns = [
            ("appointments", "appointment_datetime_utc"),
            ("appointments", "created_at"),
            ("refresh_tokens", "expires_at"),
            ("availability_plans", "updated_at"),
        ]
        for table, column in columns:
            col_type = SQLModel.metadata.tables[table].c[column].type
            assert isinstance(col_type, DateTime), (table, column)
            assert col_type.timezone is False, (table, column)

    def test_refresh_token_round_trips_naive_utc(self, client, owner):
        async def _load() -> list[RefreshToken]:
            async with async_session_maker() as session:
                result = await session.execute(
                    select(RefreshToken).where(RefreshToken.owner_id == owner["owner_id"])
                )
                return list(result.scalars().all())

        tokens = asyncio.run(_load())
        assert len(tokens) == 1
        assert tokens[0].expires_at.tzinfo is None
        assert tokens[0].expires_at > datetime.now(UTC).replace(tzinfo=None)
