import pytest

from checkin_app.services import AuthContext, AuthService, ProgramService
from checkin_app.services.http import ApiResponseError, AuthenticationRequired

from fakes import FakeHttpSession, FakeResponse

BASE_URL = "http://church.test/api"


def test_login_returns_context():
    session = FakeHttpSession(
        FakeResponse(200, {"token": "abc123", "church": {"name": "Grace Chapel"}})
    )
    service = AuthService(BASE_URL, session=session)

    context = service.login(" admin@grace.org ", "secret")

    assert context == AuthContext(token="abc123", church={"name": "Grace Chapel"})
    assert session.calls[0]["json"] == {"email": "admin@grace.org", "password": "secret"}
    assert session.calls[0]["url"] == "http://church.test/api/auth/login"


def test_login_without_token_fails():
    service = AuthService(BASE_URL, session=FakeHttpSession(FakeResponse(200, {"church": {}})))

    with pytest.raises(ApiResponseError, match="token"):
        service.login("admin@grace.org", "secret")


def test_current_church_sends_bearer_token():
    session = FakeHttpSession(FakeResponse(200, {"name": "Grace Chapel"}))
    service = AuthService(BASE_URL, session=session)

    church = service.current_church(AuthContext(token="abc123"))

    assert church == {"name": "Grace Chapel"}
    assert session.calls[0]["headers"] == {"Authorization": "Bearer abc123"}


def test_list_programs_accepts_bare_list():
    session = FakeHttpSession(FakeResponse(200, [{"_id": "prog-1", "title": "Sunday"}, "junk"]))
    service = ProgramService(BASE_URL, AuthContext(token="abc123"), session=session)

    programs = service.list_programs()

    assert programs == [{"_id": "prog-1", "title": "Sunday"}]
    assert session.calls[0]["url"] == "http://church.test/api/programs"


def test_total_scans_reads_program():
    session = FakeHttpSession(FakeResponse(200, {"program": {"_id": "prog-1", "totalScans": 57}}))
    service = ProgramService(BASE_URL, AuthContext(token="abc123"), session=session)

    assert service.total_scans("prog-1") == 57
    assert session.calls[0]["url"].endswith("/programs/prog-1")


def test_stop_program_uses_put():
    session = FakeHttpSession(FakeResponse(200, {"message": "Program stopped"}))
    service = ProgramService(BASE_URL, AuthContext(token="abc123"), session=session)

    service.stop_program("prog-1")

    assert session.calls[0]["method"] == "PUT"
    assert session.calls[0]["url"].endswith("/programs/prog-1/stop")
    assert session.calls[0]["headers"] == {"Authorization": "Bearer abc123"}


def test_attendees_and_attendance_data():
    session = FakeHttpSession(
        FakeResponse(200, {"attendees": [{"gender": "male"}]}),
        FakeResponse(200, {"attendanceData": [{"fullName": "Jane Doe"}]}),
    )
    service = ProgramService(BASE_URL, AuthContext(token="abc123"), session=session)

    assert service.get_attendees("prog-1") == [{"gender": "male"}]
    assert service.get_attendance_data("prog-1") == [{"fullName": "Jane Doe"}]
    assert session.calls[1]["url"].endswith("/programs/prog-1/attendance-data")


def test_expired_token_raises_authentication_required():
    session = FakeHttpSession(FakeResponse(401, {"message": "Invalid token"}))
    service = ProgramService(BASE_URL, AuthContext(token="stale"), session=session)

    with pytest.raises(AuthenticationRequired):
        service.list_programs()


def test_register_sends_church_details():
    session = FakeHttpSession(
        FakeResponse(201, {"token": "new-token", "church": {"name": "Grace Chapel", "branch": "Ikeja"}})
    )
    service = AuthService(BASE_URL, session=session)

    context = service.register(
        church_name="Grace Chapel ",
        branch_name="Ikeja",
        email=" admin@grace.org",
        password="secret",
        location="Lagos",
    )

    assert session.calls[0]["method"] == "POST"
    assert session.calls[0]["url"] == "http://church.test/api/auth/register"
    assert session.calls[0]["json"] == {
        "churchName": "Grace Chapel",
        "branchName": "Ikeja",
        "email": "admin@grace.org",
        "password": "secret",
        "location": "Lagos",
        "logoUrl": None,
    }
    assert context.token == "new-token"
    assert context.church == {"name": "Grace Chapel", "branch": "Ikeja"}


def test_register_rejected_by_server():
    session = FakeHttpSession(FakeResponse(400, {"error": "Email already registered"}))
    service = AuthService(BASE_URL, session=session)

    with pytest.raises(ApiResponseError, match="Email already registered"):
        service.register(
            church_name="Grace Chapel",
            branch_name="Ikeja",
            email="admin@grace.org",
            password="secret",
            location="Lagos",
            logo_url="https://cdn.grace.org/logo.png",
        )


def test_create_program_posts_form_fields():
    session = FakeHttpSession(FakeResponse(201, {"program": {"id": "prog-777777", "programTitle": "Vigil"}}))
    service = ProgramService(BASE_URL, AuthContext(token="abc123"), session=session)
    data = {
        "programTitle": "Vigil",
        "date": "2026-10-30",
        "startTime": "22:00",
        "endTime": "05:00",
        "trackingMode": "collect-data",
        "dataFields": {"fullName": True, "phoneNumber": True},
        "enableGifting": True,
        "numberOfWinners": 3,
        "draft": True,
    }

    program = service.create_program(data)

    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "http://church.test/api/programs"
    assert call["headers"] == {"Authorization": "Bearer abc123"}
    assert "draft" not in call["json"]
    assert call["json"]["numberOfWinners"] == 3
    assert program == {"id": "prog-777777", "programTitle": "Vigil"}


def test_create_program_requires_title():
    session = FakeHttpSession()
    service = ProgramService(BASE_URL, AuthContext(token="abc123"), session=session)

    with pytest.raises(ValueError):
        service.create_program({"programTitle": "  ", "trackingMode": "count-only"})
    assert session.calls == []
