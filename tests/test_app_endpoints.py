from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from fastapi.testclient import TestClient

from travelblog.app import create_app
from travelblog.auth.passwords import FEDERATED_SENTINEL
from travelblog.auth.providers import GoogleConfig, GoogleProvider
from travelblog.auth.providers.base import BaseProvider, OAuthError, ProviderConfig, TokenResponse, UserInfo
from travelblog.infra.db import Base

COOKIE = "travelblog_session"


class FakeGoogle(BaseProvider):
    def __init__(self, email="g@x.com", verified=True, fail=False):
        super().__init__(ProviderConfig(client_id="cid", client_secret="secret"))
        self.email = email
        self.verified = verified
        self.fail = fail

    def get_authorization_url(self, state: str) -> str:
        return f"https://accounts.example/auth?state={state}"

    async def exchange_code_for_token(self, code: str) -> TokenResponse:
        if self.fail:
            raise OAuthError("invalid_grant")
        return TokenResponse(access_token=f"at-{code}")

    async def get_user_info(self, access_token: str) -> UserInfo:
        return UserInfo(id="1", email=self.email, email_verified=self.verified)


def _register(client, email="a@x.com", password="pw1"):
    return client.post("/register", data={"username": email, "password": password}, follow_redirects=False)


def _login(client, email, password, next_url=None):
    data = {"username": email, "password": password}
    if next_url:
        data["next"] = next_url
    return client.post("/login", data=data, follow_redirects=False)


def test_protected_page_redirects_to_signin(client):
    r = client.get("/contact", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/signin?next=/contact"


def test_register_signs_in_and_shows_blog(client):
    r = _register(client)
    assert r.status_code == 303
    assert r.headers["location"] == "/contact"
    assert COOKIE in client.cookies

    page = client.get("/contact")
    assert page.status_code == 200
    assert "The Rise of Decentralized Finance" in page.text
    assert "a@x.com" in page.text


def test_duplicate_registration_has_explicit_message(client):
    _register(client)
    client.cookies.clear()
    r = _register(client, password="other")
    assert r.status_code == 409
    assert "Email already exists. Try logging in." in r.text


def test_register_without_password(client):
    r = _register(client, password="")
    assert r.status_code == 400
    assert "Password is required" in r.text


def test_login_failures_look_the_same(client):
    _register(client)
    client.cookies.clear()

    wrong_pw = _login(client, "a@x.com", "wrong")
    no_user = _login(client, "zz@x.com", "wrong")
    assert wrong_pw.status_code == no_user.status_code == 303
    assert wrong_pw.headers["location"] == no_user.headers["location"]
    assert wrong_pw.headers["location"].startswith("/signin/login?error=invalid")
    assert COOKIE not in client.cookies

    page = client.get(wrong_pw.headers["location"])
    assert "Invalid email or password." in page.text


def test_login_success_honours_next(client):
    _register(client)
    client.cookies.clear()
    r = _login(client, "a@x.com", "pw1", next_url="/compose")
    assert r.status_code == 303
    assert r.headers["location"] == "/compose"
    assert client.get("/compose").status_code == 200


def test_login_rejects_offsite_next(client):
    _register(client)
    client.cookies.clear()
    r = _login(client, "a@x.com", "pw1", next_url="//evil.example/")
    assert r.headers["location"] == "/contact"


def test_logout_destroys_server_side_session(client):
    _register(client)
    old_cookie = client.cookies.get(COOKIE)

    r = client.post("/logout", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/signin"
    assert client.get("/contact", follow_redirects=False).status_code == 303

    # Replaying the old cookie does not bring the session back.
    replay = client.get("/contact", headers={"Cookie": f"{COOKIE}={old_cookie}"}, follow_redirects=False)
    assert replay.status_code == 303

    # Logging out twice is fine.
    assert client.get("/logout", follow_redirects=False).status_code == 303


def test_compose_and_read_post(client):
    _register(client)
    r = client.post(
        "/compose",
        data={"postTitle": "Lengkuas lighthouse", "postBody": "Climb to the top.", "postAuthor": "Ayu"},
        follow_redirects=False,
    )
    assert r.status_code == 303
    assert r.headers["location"] == "/contact"

    post = next(p for p in client.app.state.posts.find_all() if p.title == "Lengkuas lighthouse")
    for prefix in ("/post/", "/posts/"):
        page = client.get(prefix + post.id)
        assert page.status_code == 200
        assert "Climb to the top." in page.text


def test_compose_requires_login(client):
    r = client.post("/compose", data={"postTitle": "t", "postBody": "b"}, follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"].startswith("/signin")
    assert all(p.title != "t" for p in client.app.state.posts.find_all())


def test_compose_validation(client):
    _register(client)
    r = client.post("/compose", data={"postTitle": "", "postBody": "b"}, follow_redirects=False)
    assert r.status_code == 400
    assert "Title is required" in r.text


def test_unknown_post_is_404(client):
    assert client.get("/post/does-not-exist").status_code == 404


@pytest.mark.parametrize("path", ["/", "/destinations", "/destinations/parai", "/culinary/bakmi", "/hotel", "/signin"])
def test_static_pages(client, path):
    r = client.get(path)
    assert r.status_code == 200
    assert "text/html" in r.headers["content-type"]


def test_unknown_static_page_is_404(client):
    assert client.get("/destinations/nowhere").status_code == 404


def test_signin_sanitises_next(client):
    r = client.get("/signin/login", params={"next": "https://evil.example"})
    assert 'value="/contact"' in r.text


def test_store_outage_is_503(client):
    _register(client)
    client.cookies.clear()
    Base.metadata.drop_all(client.app.state.users.db.engine)
    r = _login(client, "a@x.com", "pw1")
    assert r.status_code == 503


def test_google_disabled_by_default(client):
    assert client.get("/auth/google", follow_redirects=False).status_code == 404


@pytest.fixture()
def google_client(settings):
    fake = FakeGoogle(email="b@x.com")
    app = create_app(settings, google_provider=fake)
    with TestClient(app) as c:
        c.fake = fake
        yield c


def _start_google(client):
    r = client.get("/auth/google", follow_redirects=False)
    assert r.status_code == 303
    return parse_qs(urlparse(r.headers["location"]).query)["state"][0]


def test_google_login_creates_federated_account(google_client):
    state = _start_google(google_client)
    r = google_client.get("/auth/google/myblog", params={"code": "c1", "state": state}, follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/contact"
    assert google_client.get("/contact").status_code == 200

    record = google_client.app.state.users.find_by_email("b@x.com")
    assert record.credential == FEDERATED_SENTINEL

    # Federated-only accounts cannot use the password form.
    google_client.cookies.clear()
    r = _login(google_client, "b@x.com", "google")
    assert r.headers["location"].startswith("/signin/login?error=invalid")


def test_google_login_reuses_local_account(google_client):
    _register(google_client, email="b@x.com", password="pw")
    local = google_client.app.state.users.find_by_email("b@x.com")
    google_client.cookies.clear()

    state = _start_google(google_client)
    google_client.get("/auth/google/myblog", params={"code": "c1", "state": state}, follow_redirects=False)
    assert google_client.app.state.users.find_by_email("b@x.com") == local
    assert google_client.get("/contact", follow_redirects=False).status_code == 200


def test_google_state_mismatch(google_client):
    _start_google(google_client)
    r = google_client.get("/auth/google/myblog", params={"code": "c1", "state": "forged"}, follow_redirects=False)
    assert r.headers["location"] == "/signin/login?error=google"
    assert google_client.app.state.users.find_by_email("b@x.com") is None


def test_google_provider_failure(google_client):
    google_client.fake.fail = True
    state = _start_google(google_client)
    r = google_client.get("/auth/google/myblog", params={"code": "c1", "state": state}, follow_redirects=False)
    assert r.headers["location"] == "/signin/login?error=google"


def test_google_unverified_email_is_refused(google_client):
    google_client.fake.verified = False
    state = _start_google(google_client)
    r = google_client.get("/auth/google/myblog", params={"code": "c1", "state": state}, follow_redirects=False)
    assert r.headers["location"] == "/signin/login?error=google"
    assert COOKIE not in google_client.cookies


def _google_over_http(settings, token_response, userinfo_response):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth2.googleapis.com":
            return token_response
        return userinfo_response

    provider = GoogleProvider(
        GoogleConfig(client_id="cid", client_secret="secret", redirect_uri="http://testserver/auth/google/myblog"),
        transport=httpx.MockTransport(handler),
    )
    return create_app(settings, google_provider=provider)


@pytest.mark.parametrize(
    "token_response,userinfo_response",
    [
        (httpx.Response(200, json={"access_token": "at"}), httpx.Response(200, text="<html>oops</html>")),
        (httpx.Response(200, json={"access_token": "at"}), httpx.Response(200, json={"email": "b@x.com", "email_verified": True})),
        (httpx.Response(200, json={"access_token": None}), httpx.Response(200, json={"sub": "1"})),
        (httpx.Response(200, json=["at"]), httpx.Response(200, json={"sub": "1"})),
    ],
)
def test_google_malformed_responses_redirect_to_login(settings, token_response, userinfo_response):
    app = _google_over_http(settings, token_response, userinfo_response)
    with TestClient(app) as c:
        state = _start_google(c)
        r = c.get("/auth/google/myblog", params={"code": "c1", "state": state}, follow_redirects=False)
        assert r.status_code == 303
        assert r.headers["location"] == "/signin/login?error=google"
        assert COOKIE not in c.cookies
        assert c.app.state.users.find_by_email("b@x.com") is None


def test_google_login_over_http(settings):
    app = _google_over_http(
        settings,
        httpx.Response(200, json={"access_token": "at", "token_type": "Bearer"}),
        httpx.Response(200, json={"sub": "42", "email": "b@x.com", "email_verified": True}),
    )
    with TestClient(app) as c:
        state = _start_google(c)
        r = c.get("/auth/google/myblog", params={"code": "c1", "state": state}, follow_redirects=False)
        assert r.headers["location"] == "/contact"
        assert c.app.state.users.find_by_email("b@x.com").federated_only


def test_login_replaces_existing_session(client):
    _register(client)
    first_cookie = client.cookies.get(COOKIE)
    first_sid = client.app.state.session_cookie.loads(first_cookie)

    r = _login(client, "a@x.com", "pw1")
    assert r.status_code == 303
    assert client.app.state.sessions.lookup(first_sid) is None

    second_sid = client.app.state.session_cookie.loads(client.cookies.get(COOKIE))
    assert second_sid != first_sid
    assert client.app.state.sessions.lookup(second_sid) is not None

    replay = client.get("/contact", headers={"Cookie": f"{COOKIE}={first_cookie}"}, follow_redirects=False)
    assert replay.status_code == 303


def test_detail_pages_reference_no_missing_assets(client):
    r = client.get("/destinations/parai")
    assert r.status_code == 200
    assert "/static/img/" not in r.text
    assert "Parai Beach" in r.text
