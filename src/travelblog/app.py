# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import hmac
import secrets
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional
from urllib.parse import urlencode

import httpx
import structlog
from fastapi import APIRouter, Depends, FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

from travelblog.auth.gate import AuthGate
from travelblog.auth.identity import Accepted, IdentityResolver
from travelblog.auth.passwords import PasswordVerifier
from travelblog.auth.providers import BaseProvider, GoogleConfig, GoogleProvider, OAuthError
from travelblog.auth.session import SessionManager, SignedCookie
from travelblog.auth.users import CredentialStore, UserRecord
from travelblog.config import Settings
from travelblog.core.logs import configure_logging
from travelblog.core.pages import PAGES, Page, section_links
from travelblog.errors import DuplicateEmail, HashingFailure, StoreUnavailable
from travelblog.infra.db import Database
from travelblog.infra.post_repo import PostRepository
from travelblog.permissions import (
    SIGNIN_PATH,
    cookie_settings,
    current_user_optional,
    require_user,
    safe_next,
)
from travelblog.services.blog_service import compose_post, seed_default_posts

logger = structlog.get_logger()

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

OAUTH_STATE_MAX_AGE = 600  # 10 minutes

LOGIN_ERRORS = {
    "invalid": "Invalid email or password.",
    "google": "Google sign-in failed. Please try again.",
}

router = APIRouter()


def _render(request: Request, template_name: str, ctx: Optional[dict] = None, *, status_code: int = 200):
    """TemplateResponse wrapper injecting the signed-in user."""
    base_ctx = {"current_user": current_user_optional(request)}
    return templates.TemplateResponse(request, template_name, {**base_ctx, **(ctx or {})}, status_code=status_code)


def _start_session(request: Request, record: UserRecord, next_url: str) -> RedirectResponse:
    st = request.app.state
    # A new login replaces whatever session this browser was carrying.
    previous = st.gate.session_id(request)
    if previous:
        st.sessions.destroy(previous)
    sess = st.sessions.create(record.id)
    resp = RedirectResponse(url=next_url, status_code=303)
    resp.set_cookie(
        st.session_cookie.name,
        st.session_cookie.dumps(sess.session_id),
        max_age=st.session_cookie.max_age,
        **cookie_settings(st.settings),
    )
    return resp


# ------------------ Sign-in ------------------


@router.get("/signin", response_class=HTMLResponse)
def signin_get(request: Request, next: str = "/contact"):
    return _render(request, "signin.html", {"next": safe_next(next), "google_enabled": request.app.state.google is not None})


@router.get("/signin/login", response_class=HTMLResponse)
def login_get(request: Request, next: str = "/contact", error: str = ""):
    return _render(request, "login.html", {"next": safe_next(next), "error": LOGIN_ERRORS.get(error, "")})


@router.get("/signin/register", response_class=HTMLResponse)
def register_get(request: Request):
    return _render(request, "register.html", {"error": "", "email": ""})


@router.post("/login")
def login_post(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    next: str = Form("/contact"),
):
    target = safe_next(next)
    result = request.app.state.resolver.resolve_local(username.strip(), password)
    if not isinstance(result, Accepted):
        # Same response whatever the rejection reason.
        query = urlencode({"error": "invalid", "next": target})
        return RedirectResponse(url=f"{SIGNIN_PATH}/login?{query}", status_code=303)
    return _start_session(request, result.record, target)


@router.post("/register")
def register_post(request: Request, username: str = Form(""), password: str = Form("")):
    try:
        record = request.app.state.resolver.register_local(username, password)
    except DuplicateEmail:
        return _render(
            request,
            "register.html",
            {"error": "Email already exists. Try logging in.", "email": username},
            status_code=409,
        )
    except ValueError as e:
        return _render(request, "register.html", {"error": str(e), "email": username}, status_code=400)
    return _start_session(request, record, "/contact")


@router.api_route("/logout", methods=["GET", "POST"])
def logout(request: Request):
    st = request.app.state
    sid = st.gate.session_id(request)
    if sid:
        st.sessions.destroy(sid)
    resp = RedirectResponse(url=SIGNIN_PATH, status_code=303)
    resp.delete_cookie(st.session_cookie.name)
    return resp


# ------------------ Google ------------------


def _google_failure(request: Request) -> RedirectResponse:
    resp = RedirectResponse(url=f"{SIGNIN_PATH}/login?error=google", status_code=303)
    resp.delete_cookie(request.app.state.oauth_cookie.name)
    return resp


@router.get("/auth/google")
def google_start(request: Request):
    st = request.app.state
    if st.google is None:
        raise HTTPException(status_code=404, detail="Google sign-in is not configured")
    state = secrets.token_urlsafe(32)
    resp = RedirectResponse(url=st.google.get_authorization_url(state), status_code=303)
    resp.set_cookie(
        st.oauth_cookie.name,
        st.oauth_cookie.dumps(state),
        max_age=OAUTH_STATE_MAX_AGE,
        **cookie_settings(st.settings),
    )
    return resp


@router.get("/auth/google/myblog")
async def google_callback(request: Request, code: str = "", state: str = "", error: str = ""):
    st = request.app.state
    if st.google is None:
        raise HTTPException(status_code=404, detail="Google sign-in is not configured")
    if error:
        logger.info("Google sign-in cancelled", error=error)
        return _google_failure(request)

    expected = st.oauth_cookie.loads(request.cookies.get(st.oauth_cookie.name, ""))
    if not expected or not state or not hmac.compare_digest(expected, state):
        logger.warning("OAuth state mismatch", provider="google")
        return _google_failure(request)

    try:
        token = await st.google.exchange_code_for_token(code)
        info = await st.google.get_user_info(token.access_token)
    except (OAuthError, httpx.HTTPError) as e:
        logger.error("Google sign-in failed", error=str(e), error_type=type(e).__name__)
        return _google_failure(request)

    if not info.email or not info.email_verified:
        logger.warning("Google account without a verified email", provider="google")
        return _google_failure(request)

    result = await run_in_threadpool(st.resolver.resolve_federated, info.email)
    resp = await run_in_threadpool(_start_session, request, result.record, "/contact")
    resp.delete_cookie(st.oauth_cookie.name)
    return resp


# ------------------ Blog ------------------


@router.get("/contact", response_class=HTMLResponse)
def contact(request: Request, user=Depends(require_user)):
    return _render(request, "contact.html", {"posts": request.app.state.posts.find_all()})


@router.get("/compose", response_class=HTMLResponse)
def compose_get(request: Request, user=Depends(require_user)):
    return _render(request, "compose.html", {"error": "", "form": {}})


@router.post("/compose")
def compose_post_route(
    request: Request,
    postTitle: str = Form(""),
    postBody: str = Form(""),
    postAuthor: str = Form(""),
    user=Depends(require_user),
):
    try:
        compose_post(request.app.state.posts, title=postTitle, content=postBody, author=postAuthor)
    except ValueError as e:
        form = {"postTitle": postTitle, "postBody": postBody, "postAuthor": postAuthor}
        return _render(request, "compose.html", {"error": str(e), "form": form}, status_code=400)
    return RedirectResponse(url="/contact", status_code=303)


@router.get("/post/{post_id}", response_class=HTMLResponse)
@router.get("/posts/{post_id}", response_class=HTMLResponse)
def post_detail(request: Request, post_id: str):
    post = request.app.state.posts.find_by_id(post_id)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return _render(request, "post.html", {"post": post})


# ------------------ Static pages ------------------


def _page_endpoint(page: Page):
    def endpoint(request: Request):
        return _render(
            request,
            page.template,
            {"page": page, "links": section_links(page.section) if not page.slug else []},
        )

    return endpoint


for _path, _page in PAGES.items():
    router.add_api_route(_path, _page_endpoint(_page), methods=["GET"], response_class=HTMLResponse)


# ------------------ App factory ------------------


def create_app(settings: Optional[Settings] = None, *, google_provider: Optional[BaseProvider] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level, json=settings.log_json)

    users_db = Database(settings.database_url, timeout=settings.db_timeout)
    if settings.sessions_url == settings.database_url:
        sessions_db = users_db
    else:
        sessions_db = Database(settings.sessions_url, timeout=settings.db_timeout)
    users_db.create_all()
    if sessions_db is not users_db:
        sessions_db.create_all()

    verifier = PasswordVerifier(
        time_cost=settings.hash_time_cost,
        memory_cost=settings.hash_memory_cost,
        parallelism=settings.hash_parallelism,
    )
    users = CredentialStore(users_db)
    sessions = SessionManager(sessions_db, max_age=settings.session_max_age)
    session_cookie = SignedCookie(
        settings.secret_key,
        name=settings.cookie_name,
        salt=settings.session_salt,
        max_age=None if settings.session_sliding else settings.session_max_age,
    )
    oauth_cookie = SignedCookie(
        settings.secret_key,
        name=f"{settings.cookie_name}_oauth_state",
        salt="travelblog.oauth-state.v1",
        max_age=OAUTH_STATE_MAX_AGE,
    )

    if google_provider is None and settings.google_enabled:
        google_provider = GoogleProvider(
            GoogleConfig(
                client_id=settings.google_client_id,
                client_secret=settings.google_client_secret,
                redirect_uri=settings.google_redirect_uri,
            )
        )

    posts = PostRepository(settings.posts_path)
    sessions.purge_expired()
    seed_default_posts(posts)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        users_db.dispose()
        if sessions_db is not users_db:
            sessions_db.dispose()

    app = FastAPI(title="Travel Blog", lifespan=lifespan)
    app.state.settings = settings
    app.state.users = users
    app.state.sessions = sessions
    app.state.resolver = IdentityResolver(users, verifier)
    app.state.gate = AuthGate(sessions, users, session_cookie, sliding=settings.session_sliding)
    app.state.session_cookie = session_cookie
    app.state.oauth_cookie = oauth_cookie
    app.state.google = google_provider
    app.state.posts = posts

    @app.exception_handler(StoreUnavailable)
    async def _store_unavailable(request: Request, exc: StoreUnavailable):
        logger.error("Store unavailable", path=request.url.path)
        return PlainTextResponse("Service temporarily unavailable", status_code=503)

    @app.exception_handler(HashingFailure)
    async def _hashing_failure(request: Request, exc: HashingFailure):
        logger.error("Password hashing failed", path=request.url.path)
        return PlainTextResponse("Internal Server Error", status_code=500)

    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")
    app.include_router(router)

    logger.info("Application configured", google_enabled=google_provider is not None, sliding_sessions=settings.session_sliding)
    return app
