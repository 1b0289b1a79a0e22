"""End-to-end tests through the FastAPI app"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError

from conftest import FIXED_NOW
from wellness_portal import __version__
from wellness_portal.domain.signup.linker import ClientRecordLinker, LinkWriteError
from wellness_portal.firebase_accounts import AccountCreationError
from wellness_portal.models import Client, ClientProfile, User


def add_client_record(db, **overrides):
    data = dict(
        first_name="Jane",
        last_name="Doe",
        email="jane.doe@example.com",
        mobile="0821234567",
        status="pending-verification",
    )
    data.update(overrides)
    record = Client(**data)
    db.add(record)
    db.commit()
    return record


def signup_payload(**overrides):
    payload = {
        "email": "jane.doe@example.com",
        "password": "secret123",
        "confirmPassword": "secret123",
        "firstName": "Jane",
        "lastName": "Doe",
    }
    payload.update(overrides)
    return payload


class TestHealth:
    def test_health(self, api):
        response = api.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": __version__}

    def test_security_headers_on_api_routes(self, api):
        response = api.get("/signup/lookup", params={"email": "nobody@example.com"})

        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["Cache-Control"] == "no-store"


class TestSignup:
    def test_lookup_reveals_only_first_initial(self, api, db):
        record = add_client_record(db)

        response = api.get("/signup/lookup", params={"email": "Jane.Doe@Example.com"})

        body = response.json()
        assert response.status_code == 200
        assert body["matched"] is True
        assert body["clientId"] == record.id
        assert body["firstInitial"] == "J"
        assert "firstName" not in body
        assert "lastName" not in body

    def test_lookup_without_match(self, api):
        response = api.get("/signup/lookup", params={"email": "nobody@example.com"})

        assert response.json()["matched"] is False
        assert response.json()["lookupFailed"] is False

    def test_signup_links_existing_record(self, api, db, account_provider):
        record = add_client_record(db)

        response = api.post("/signup", json=signup_payload(matchedClientId=record.id))

        body = response.json()
        assert response.status_code == 201
        assert body["accountId"] == "uid-1"
        assert body["linked"] is True
        assert body["clientRecordId"] == record.id
        assert body["onboardingCompleted"] is False
        assert account_provider.calls == [("jane.doe@example.com", "Jane Doe")]

        db.expire_all()
        assert db.get(Client, record.id).account_id == "uid-1"
        assert db.get(ClientProfile, "uid-1").imported_from_client_record is True

    def test_blank_names_are_taken_from_matched_record(self, api, db, account_provider):
        record = add_client_record(db)

        response = api.post(
            "/signup", json=signup_payload(firstName="", lastName=None, matchedClientId=record.id)
        )

        assert response.status_code == 201
        assert account_provider.calls == [("jane.doe@example.com", "Jane Doe")]
        profile = db.get(ClientProfile, "uid-1")
        assert (profile.first_name, profile.last_name) == ("Jane", "Doe")

    def test_names_required_without_matched_record(self, api, account_provider):
        response = api.post(
            "/signup", json=signup_payload(email="new.client@example.com", firstName="", lastName="")
        )

        assert response.status_code == 422
        assert account_provider.calls == []

    def test_one_letter_name_is_rejected(self, api, account_provider):
        response = api.post("/signup", json=signup_payload(firstName="J"))

        assert response.status_code == 422
        assert account_provider.calls == []

    def test_signup_without_record(self, api, db):
        response = api.post("/signup", json=signup_payload(email="new.client@example.com"))

        assert response.status_code == 201
        assert response.json()["linked"] is False
        assert db.get(User, "uid-1").role == "client"

    def test_mismatched_passwords(self, api, account_provider):
        response = api.post("/signup", json=signup_payload(confirmPassword="different1"))

        assert response.status_code == 422
        assert account_provider.calls == []

    def test_provider_rejection_is_passed_through(self, api, account_provider):
        account_provider.error = AccountCreationError(
            "An account with this email already exists", status_code=409, provider_code="EMAIL_EXISTS"
        )

        response = api.post("/signup", json=signup_payload())

        assert response.status_code == 409
        assert response.json()["detail"] == "An account with this email already exists"

    def test_link_failure_reports_account_id(self, api, db):
        add_client_record(db)

        with patch.object(ClientRecordLinker, "complete_signup", side_effect=LinkWriteError("uid-1", "c-1")):
            response = api.post("/signup", json=signup_payload())

        detail = response.json()["detail"]
        assert response.status_code == 502
        assert detail["code"] == "link_failed"
        assert detail["accountId"] == "uid-1"
        assert detail["profileCreated"] is True

    def test_link_failure_leaves_a_usable_account(self, api, db, login):
        record = add_client_record(db)
        real_commit = db.commit
        calls = []

        def flaky_commit():
            calls.append(1)
            if len(calls) == 2:
                raise SQLAlchemyError("link write refused")
            return real_commit()

        with patch.object(db, "commit", side_effect=flaky_commit):
            response = api.post("/signup", json=signup_payload(matchedClientId=record.id))

        assert response.status_code == 502
        user = db.get(User, "uid-1")
        assert user is not None

        login(user)
        assert api.get("/users/me/profile").status_code == 200


class TestCompleteSignup:
    def test_requires_token(self, api):
        assert api.post("/signup/complete", json={"firstName": "Jane", "lastName": "Doe"}).status_code == 401

    def test_links_record_for_account_without_profile(self, api, db, sign_in_token):
        record = add_client_record(db)
        sign_in_token("uid-9", "Jane.Doe@example.com")

        response = api.post("/signup/complete", json={"firstName": "Jane", "lastName": "Doe"})

        body = response.json()
        assert response.status_code == 200
        assert body["accountId"] == "uid-9"
        assert body["linked"] is True
        assert body["clientRecordId"] == record.id
        db.expire_all()
        assert db.get(Client, record.id).account_id == "uid-9"

    def test_repeat_call_is_harmless(self, api, db, sign_in_token):
        add_client_record(db)
        sign_in_token("uid-9", "jane.doe@example.com")

        first = api.post("/signup/complete", json={"firstName": "Jane", "lastName": "Doe"})
        second = api.post("/signup/complete", json={"firstName": "Jane", "lastName": "Doe"})

        assert first.status_code == 200
        assert second.status_code == 200
        assert second.json()["clientRecordId"] == first.json()["clientRecordId"]
        assert db.query(User).count() == 1


class TestAppointmentsApi:
    def test_requires_authentication(self, api):
        assert api.get("/appointments").status_code == 401

    def test_reschedule_without_reason_is_rejected(self, api, login, make_appointment, client_user):
        appt = make_appointment()
        login(client_user)

        response = api.post(
            f"/appointments/{appt.id}/reschedule",
            json={"startTime": "2025-06-05T08:00:00Z"},
        )

        assert response.status_code == 422
        messages = [e["msg"] for e in response.json()["detail"]]
        assert any("Please provide a reason for rescheduling" in m for m in messages)

    def test_reschedule_without_slot_is_rejected(self, api, login, make_appointment, client_user):
        appt = make_appointment()
        login(client_user)

        response = api.post(f"/appointments/{appt.id}/reschedule", json={"reason": "Work"})

        assert response.status_code == 422
        messages = [e["msg"] for e in response.json()["detail"]]
        assert any("Please select a new time slot" in m for m in messages)

    def test_slots_then_reschedule(self, api, login, make_appointment, client_user):
        appt = make_appointment()
        login(client_user)

        slots = api.get(f"/appointments/{appt.id}/slots", params={"date": "2025-06-05"}).json()
        chosen = next(s for s in slots if s["id"] == "10-0")

        response = api.post(
            f"/appointments/{appt.id}/reschedule",
            json={"startTime": chosen["startTime"], "reason": "Work meeting"},
        )

        body = response.json()
        assert response.status_code == 200
        assert len(slots) == 16
        assert datetime.fromisoformat(body["startTime"].replace("Z", "+00:00")) == datetime(
            2025, 6, 5, 8, 0, tzinfo=timezone.utc
        )
        assert body["status"] == "scheduled"
        assert body["rescheduleHistory"][0]["reason"] == "Work meeting"
        assert body["canModify"] is True

    def test_can_modify_reflects_cutoff(self, api, login, make_appointment, client_user):
        soon = make_appointment(start_offset=timedelta(hours=3))
        login(client_user)

        body = api.get(f"/appointments/{soon.id}").json()

        assert body["canModify"] is False

    def test_cancel_inside_cutoff(self, api, login, make_appointment, client_user):
        soon = make_appointment(start_offset=timedelta(hours=3))
        login(client_user)

        response = api.post(f"/appointments/{soon.id}/cancel", json={"reason": "Sick"})

        assert response.status_code == 403

    def test_clients_cannot_change_status(self, api, login, make_appointment, client_user):
        appt = make_appointment()
        login(client_user)

        response = api.patch(f"/appointments/{appt.id}/status", json={"status": "completed"})

        assert response.status_code == 403

    def test_book_through_api(self, api, login, centre, service, staff_user, client_user):
        login(client_user)
        start = (FIXED_NOW + timedelta(days=2)).isoformat()

        response = api.post(
            "/appointments",
            json={"serviceId": service.id, "centreId": centre.id, "staffId": staff_user.id, "startTime": start},
        )

        assert response.status_code == 201
        assert response.json()["clientId"] == client_user.id


class TestRolesApi:
    def test_admin_promotes_client_to_staff(self, api, login, admin_user, client_user):
        login(admin_user)

        response = api.put(f"/users/{client_user.id}/role", json={"role": "staff"})

        assert response.status_code == 200
        assert response.json()["role"] == "staff"
        assert "perform_service" in response.json()["permissions"]

    def test_admin_cannot_grant_super_admin(self, api, login, admin_user, client_user):
        login(admin_user)

        response = api.put(f"/users/{client_user.id}/role", json={"role": "super-admin"})

        assert response.status_code == 403

    def test_staff_cannot_manage_roles(self, api, login, staff_user, client_user):
        login(staff_user)

        response = api.put(f"/users/{client_user.id}/role", json={"role": "admin"})

        assert response.status_code == 403

    def test_me_returns_permissions(self, api, login, staff_user):
        login(staff_user)

        body = api.get("/users/me").json()

        assert body["id"] == staff_user.id
        assert "view_clients" in body["permissions"]
