from app.routes.auth import pending_signups
from core.errors import ApiError, NetworkError
from core.models import Application, Job
from tests.fakes import DEVICE_ID, make_provider, make_user

CSRF = "csrf-test-token"


def _job(**fields):
    data = {"_id": "j1", "title": "Stack chairs", "description": "Help stack chairs after an event.",
            "location": "Pune", "category": "Setup & Events", "duration": "4 Hours", "payment": 600}
    data.update(fields)
    return Job.model_validate(data)


def _credentials(user, token="tok-1"):
    return {"user": user.to_storage(), "token": token}


# -------- guards --------

def test_protected_page_redirects_anonymous_to_login(client):
    resp = client.get("/profile")
    assert resp.status_code == 303
    assert resp.headers["location"] == "/login"


def test_provider_cannot_open_apply_page(client, device_session):
    device_session.login(make_provider(), "tok")
    resp = client.get("/apply/123")
    assert resp.status_code == 303
    assert resp.headers["location"] == "/"


def test_unknown_path_redirects_home(client):
    resp = client.get("/nowhere/at/all")
    assert resp.status_code == 303
    assert resp.headers["location"] == "/"


def test_dashboard_with_incomplete_profile_goes_to_onboarding(client, device_session):
    device_session.login(make_user(bio=""), "tok")
    resp = client.get("/seeker/dashboard")
    assert resp.status_code == 303
    assert resp.headers["location"] == "/onboarding"


def test_signed_in_user_is_sent_away_from_login(client, device_session):
    device_session.login(make_provider(), "tok")
    resp = client.get("/login")
    assert resp.status_code == 303
    assert resp.headers["location"] == "/provider/dashboard"


def test_new_device_gets_cookie(client):
    client.cookies.delete("device_id")
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.cookies.get("device_id")
    assert resp.cookies.get("device_id") != DEVICE_ID


# -------- home --------

def test_home_lists_jobs_with_filters(client, fake_api):
    fake_api.responses["get_jobs"] = [
        _job(),
        _job(**{"_id": "j2", "title": "Deliver parcels", "category": "Delivery"}),
    ]
    resp = client.get("/", params={"category": "Delivery"})
    assert resp.status_code == 200
    assert "Deliver parcels" in resp.text
    assert "Stack chairs" not in resp.text
    assert "/apply/j2" in resp.text


def test_home_reports_backend_failure(client, fake_api):
    fake_api.errors["get_jobs"] = NetworkError()
    resp = client.get("/")
    assert resp.status_code == 200
    assert "Failed to load jobs. Please try again." in resp.text


# -------- login / logout --------

def test_login_success_redirects_to_dashboard(client, fake_api, device_session):
    fake_api.responses["login"] = {"success": True, "data": _credentials(make_provider())}
    resp = client.post("/login", data={"email": "ravi@example.com", "password": "secret1", "csrf_token": CSRF})

    assert resp.status_code == 303
    assert resp.headers["location"] == "/provider/dashboard"
    assert device_session.token == "tok-1"


def test_login_failure_shows_server_message(client, fake_api, device_session):
    fake_api.errors["login"] = ApiError(401, "Invalid credentials")
    resp = client.post("/login", data={"email": "ravi@example.com", "password": "secret1", "csrf_token": CSRF})

    assert resp.status_code == 400
    assert "Invalid credentials" in resp.text
    assert device_session.state.is_authenticated is False


def test_login_validation_never_reaches_backend(client, fake_api):
    resp = client.post("/login", data={"email": "nope", "password": "123", "csrf_token": CSRF})
    assert resp.status_code == 400
    assert "Please enter a valid email address" in resp.text
    assert not fake_api.called("login")


def test_login_requires_csrf(client, fake_api):
    resp = client.post("/login", data={"email": "ravi@example.com", "password": "secret1", "csrf_token": "wrong"})
    assert resp.status_code == 403
    assert not fake_api.called("login")


def test_login_rate_limit(client):
    form = {"email": "nope", "password": "123", "csrf_token": CSRF}
    for _ in range(10):
        client.post("/login", data=form)
    resp = client.post("/login", data=form)
    assert resp.status_code == 429


def test_logout_clears_session(client, device_session):
    device_session.login(make_user(), "tok")
    resp = client.get("/logout")

    assert resp.status_code == 303
    assert resp.headers["location"] == "/"
    assert device_session.state.is_authenticated is False
    assert device_session.token is None


def test_google_login_new_user_goes_to_onboarding(client, fake_api):
    fake_api.responses["login_with_google"] = {**_credentials(make_user(role=None, phone=None)), "isNewUser": True}
    client.cookies.set("g_csrf_token", "g-1")
    resp = client.post("/auth/google", data={"credential": "jwt", "g_csrf_token": "g-1"})

    assert resp.status_code == 303
    assert resp.headers["location"] == "/onboarding"


# -------- signup --------

def test_signup_otp_flow(client, fake_api, device_session):
    fake_api.responses["verify_otp"] = _credentials(make_user(role=None, phone=None, bio="", workCategories=[]))

    resp = client.post(
        "/signup",
        data={"email": "new@example.com", "password": "secret1", "confirm_password": "secret1", "csrf_token": CSRF},
    )
    assert resp.status_code == 200
    assert "new@example.com" in resp.text
    assert fake_api.called("send_otp")

    resp = client.post("/signup/verify", data={"otp": "123456", "csrf_token": CSRF})
    assert resp.status_code == 303
    assert resp.headers["location"] == "/onboarding"
    assert device_session.token == "tok-1"
    assert pending_signups.get(DEVICE_ID) is None


def test_signup_verify_without_pending_signup(client):
    pending_signups.discard(DEVICE_ID)
    resp = client.post("/signup/verify", data={"otp": "123456", "csrf_token": CSRF})
    assert resp.status_code == 303
    assert resp.headers["location"] == "/signup"


def test_signup_password_mismatch(client, fake_api):
    resp = client.post(
        "/signup",
        data={"email": "new@example.com", "password": "secret1", "confirm_password": "secret2", "csrf_token": CSRF},
    )
    assert resp.status_code == 400
    assert "Passwords do not match" in resp.text
    assert not fake_api.called("send_otp")


# -------- onboarding / profile --------

def test_onboarding_completes_profile(client, fake_api, device_session):
    device_session.login(make_user(role=None, phone=None, bio="", workCategories=[]), "tok")
    completed = make_user()
    fake_api.responses["update_profile"] = {"success": True, "data": completed.to_storage()}

    resp = client.post(
        "/onboarding",
        data={
            "name": "Asha Rao",
            "phone": "98765 43210",
            "location": "Pune",
            "role": "seeker",
            "work_categories": ["Cleaning"],
            "bio": "Reliable and quick with cleaning jobs.",
            "csrf_token": CSRF,
        },
    )

    assert resp.status_code == 303
    assert resp.headers["location"] == "/seeker/dashboard"
    sent = fake_api.called("update_profile")[0][1][0]
    assert sent.phone == "+919876543210"
    assert device_session.user.bio == completed.bio


def test_onboarding_shows_validation_errors(client, fake_api, device_session):
    device_session.login(make_user(role=None, phone=None), "tok")
    resp = client.post("/onboarding", data={"name": "", "phone": "", "role": "seeker", "csrf_token": CSRF})
    assert resp.status_code == 400
    assert "Name is required" in resp.text
    assert not fake_api.called("update_profile")


def test_profile_update_keeps_token(client, fake_api, device_session):
    device_session.login(make_user(), "tok")
    fake_api.responses["update_profile"] = {"data": make_user(location="Mumbai").to_storage()}

    resp = client.post(
        "/profile",
        data={
            "name": "Asha Rao",
            "phone": "+919876543210",
            "location": "Mumbai",
            "role": "seeker",
            "work_categories": ["Cleaning"],
            "bio": "Reliable and quick with cleaning jobs.",
            "csrf_token": CSRF,
        },
    )

    assert resp.status_code == 200
    assert "Profile updated successfully!" in resp.text
    assert device_session.token == "tok"
    assert device_session.user.location == "Mumbai"


# -------- provider --------

def test_post_job_validation_errors(client, fake_api, device_session):
    device_session.login(make_provider(), "tok")
    resp = client.post("/provider/post-job", data={"title": "Move", "csrf_token": CSRF})

    assert resp.status_code == 400
    assert "Please fix the validation errors below." in resp.text
    assert "Title must be at least 5 characters" in resp.text
    assert not fake_api.called("create_job")


def test_post_job_creates_and_redirects(client, fake_api, device_session):
    device_session.login(make_provider(), "tok")
    fake_api.responses["create_job"] = _job(**{"_id": "j9"})
    resp = client.post(
        "/provider/post-job",
        data={
            "title": "Help move furniture",
            "description": "Need two people to carry a sofa upstairs.",
            "location": "Pune",
            "category": "Heavy Lifting",
            "people_needed": "2",
            "duration_number": "1",
            "duration_unit": "days",
            "payment": "750",
            "csrf_token": CSRF,
        },
    )

    assert resp.status_code == 303
    assert resp.headers["location"] == "/provider/dashboard"
    job = fake_api.called("create_job")[0][1][0]
    assert job.duration == "1 Day"
    assert job.people_needed == 2


def test_provider_dashboard_counts(client, fake_api, device_session):
    device_session.login(make_provider(), "tok")
    fake_api.responses["get_my_jobs"] = [_job(), _job(**{"_id": "j2", "status": "closed"})]
    fake_api.responses["get_job_applicants"] = lambda job_id: [
        Application.model_validate({"_id": f"{job_id}-a", "jobId": job_id, "status": "pending"})
    ]

    resp = client.get("/provider/dashboard")

    assert resp.status_code == 200
    assert "/provider/jobs/j1/applicants/j1-a/accept" in resp.text
    assert len(fake_api.called("get_job_applicants")) == 2


def test_failed_accept_is_reported(client, fake_api, device_session):
    device_session.login(make_provider(), "tok")
    fake_api.errors["accept_applicant"] = NetworkError()

    resp = client.post("/provider/jobs/j1/applicants/a1/accept", data={"csrf_token": CSRF})
    assert resp.headers["location"] == "/provider/dashboard?failed=accept"

    resp = client.get(resp.headers["location"])
    assert "Failed to accept applicant. Please try again." in resp.text


# -------- seeker --------

def test_apply_submits_and_redirects(client, fake_api, device_session):
    device_session.login(make_user(), "tok")
    resp = client.post("/apply/j1", data={"message": "I can come tomorrow.", "csrf_token": CSRF})

    assert resp.status_code == 303
    assert resp.headers["location"] == "/seeker/dashboard"
    job_id, application = fake_api.called("apply_for_job")[0][1]
    assert job_id == "j1"
    assert application.message == "I can come tomorrow."


def test_apply_failure_shows_server_message(client, fake_api, device_session):
    device_session.login(make_user(), "tok")
    fake_api.responses["get_job"] = _job()
    fake_api.errors["apply_for_job"] = ApiError(400, "You have already applied")

    resp = client.post("/apply/j1", data={"message": "", "csrf_token": CSRF})
    assert resp.status_code == 400
    assert "You have already applied" in resp.text


def test_apply_page_for_missing_job(client, fake_api, device_session):
    device_session.login(make_user(), "tok")
    fake_api.errors["get_job"] = ApiError(404, "Job not found")
    resp = client.get("/apply/missing")
    assert resp.status_code == 404
    assert "Job not found" in resp.text


def test_seeker_dashboard_shows_relevant_jobs(client, fake_api, device_session):
    device_session.login(make_user(workCategories=["Cleaning"], location="Mumbai"), "tok")
    fake_api.responses["get_jobs"] = [
        _job(**{"_id": "c1", "title": "Clean flat", "category": "Cleaning", "location": "Pune"}),
        _job(**{"_id": "d1", "title": "Deliver parcels", "category": "Delivery", "location": "Pune"}),
    ]
    resp = client.get("/seeker/dashboard")

    assert resp.status_code == 200
    assert "Clean flat" in resp.text
    assert "Deliver parcels" not in resp.text


def test_profile_page_refreshes_from_backend(client, fake_api, device_session):
    device_session.login(make_user(), "tok")
    fake_api.responses["get_profile"] = make_user(location="Nashik")

    resp = client.get("/profile")

    assert resp.status_code == 200
    assert "Nashik" in resp.text
    assert device_session.user.location == "Nashik"


def test_profile_page_survives_expiry_during_request(client, fake_api, device_session):
    device_session.login(make_user(), "tok")

    def expire_then_fail():
        device_session.logout()
        raise NetworkError()

    fake_api.responses["get_profile"] = expire_then_fail

    resp = client.get("/profile")

    assert resp.status_code == 200
    assert "asha@example.com" in resp.text
    assert "Network error" in resp.text


def test_home_duration_filter_offers_other(client, fake_api):
    fake_api.responses["get_jobs"] = [
        _job(**{"_id": "w1", "title": "Paint fence", "duration": "2 Weeks"}),
        _job(**{"_id": "h1", "title": "Water plants", "duration": "3 Hours"}),
    ]

    resp = client.get("/", params={"duration": "Other"})

    assert resp.status_code == 200
    assert '<option value="Other" selected>Other</option>' in resp.text
    assert "Paint fence" in resp.text
    assert "Water plants" not in resp.text
