"""FastAPI application entrypoint and HTTP controllers.

Controllers are intentionally thin: they read the form or query input,
delegate to services, and render a view or redirect. Service errors are
caught here and turned into a re-render of the originating form.

Endpoints implemented:
- GET /
- GET, POST /login
- GET, POST /register
- GET /dashboard
- GET, POST /create-group
- GET /groups
- GET /logout
- GET /api/groups
- GET /health

Auth handlers are plain `def` functions: FastAPI runs them on its worker
thread pool, so the bcrypt work never blocks the event loop.
"""

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from sqlmodel import Session

from . import views
from .auth import (
    LoginRequired,
    clear_session_cookie,
    get_current_session,
    get_session_store,
    require_api_session,
    require_session,
    set_session_cookie,
)
from .config import settings
from .database import create_db_and_tables, engine, get_session
from .errors import DuplicateEmailError, InvalidCredentialsError, StorageError, ValidationError
from .schemas import GroupListingOut, GroupOut
from .services import AuthService, CatalogService, GroupListing
from .sessions import SessionRecord, SessionStore

logger = logging.getLogger("studyhub.api")
if not logging.getLogger().handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    app.state.session_store = SessionStore(ttl_seconds=settings.session_ttl_seconds)
    logger.info("Study Hub started (env=%s)", settings.ENV)
    yield
    app.state.session_store.clear()
    engine.dispose()
    logger.info("Study Hub stopped")


app = FastAPI(title="Study Hub", lifespan=lifespan)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
            },
            ensure_ascii=True,
        ),
    )
    return response


@app.exception_handler(LoginRequired)
async def login_required_handler(request: Request, exc: LoginRequired):
    return RedirectResponse(url="/login", status_code=303)


@app.exception_handler(404)
async def not_found_handler(request: Request, exc: HTTPException):
    return HTMLResponse(views.not_found_page(), status_code=404)


def _start_session(request: Request, store: SessionStore, record: SessionRecord) -> RedirectResponse:
    # drop whatever session the browser held before so ids are never reused across logins
    store.destroy(request.cookies.get(settings.SESSION_COOKIE_NAME))
    response = RedirectResponse(url="/dashboard", status_code=303)
    set_session_cookie(response, record)
    return response


@app.get("/")
def home(current: Optional[SessionRecord] = Depends(get_current_session)):
    """Send signed-in users to the dashboard and everyone else to login."""
    return RedirectResponse(url="/dashboard" if current else "/login", status_code=303)


@app.get("/login", response_class=HTMLResponse)
def login_form():
    return views.login_page()


@app.post("/login")
def login(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    db: Session = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
):
    """Verify credentials and set the session cookie."""
    try:
        record = AuthService(db, store).login(email, password)
    except InvalidCredentialsError:
        return HTMLResponse(views.login_page("Invalid email or password", email), status_code=401)
    except StorageError:
        return HTMLResponse(views.login_page("Server error – try again", email), status_code=500)
    return _start_session(request, store, record)


@app.get("/register", response_class=HTMLResponse)
def register_form():
    return views.register_page()


@app.post("/register")
def register(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    db: Session = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
):
    """Create an account and log it in.

    Validation and duplicate-email failures answer 400, storage failures
    500; each re-renders the form with the submitted name and email.
    """
    try:
        record = AuthService(db, store).register(name, email, password)
    except ValidationError:
        return HTMLResponse(views.register_page("All fields are required", name, email), status_code=400)
    except DuplicateEmailError:
        return HTMLResponse(views.register_page("Email already in use", name, email), status_code=400)
    except StorageError:
        return HTMLResponse(views.register_page("Registration failed", name, email), status_code=500)
    return _start_session(request, store, record)


@app.get("/dashboard", response_class=HTMLResponse)
def dashboard(current: SessionRecord = Depends(require_session)):
    return views.dashboard_page(current.user_display_name)


@app.get("/create-group", response_class=HTMLResponse)
def create_group_form(
    current: SessionRecord = Depends(require_session),
    db: Session = Depends(get_session),
):
    try:
        courses = CatalogService(db).list_courses()
    except StorageError:
        courses = []
    return views.create_group_page(current.user_display_name, courses)


@app.post("/create-group")
def create_group(
    name: str = Form(""),
    course_code: str = Form(""),
    description: str = Form(""),
    meeting_time: str = Form(""),
    location: str = Form(""),
    current: SessionRecord = Depends(require_session),
    db: Session = Depends(get_session),
):
    form = {
        "name": name,
        "course_code": course_code,
        "description": description,
        "meeting_time": meeting_time,
        "location": location,
    }
    catalog = CatalogService(db)
    try:
        catalog.create_group(name, course_code, current.user_id, description, meeting_time, location)
    except ValidationError:
        return _create_group_error(catalog, current, form, "Course code and group name are required", 400)
    except StorageError:
        return _create_group_error(catalog, current, form, "Could not create group", 500)
    return RedirectResponse(url="/groups", status_code=303)


def _create_group_error(
    catalog: CatalogService, current: SessionRecord, form: dict, error: str, status_code: int
) -> HTMLResponse:
    try:
        courses = catalog.list_courses()
    except StorageError:
        courses = []
    return HTMLResponse(
        views.create_group_page(current.user_display_name, courses, error, form),
        status_code=status_code,
    )


@app.get("/groups", response_class=HTMLResponse)
def list_groups(
    course: str = "",
    current: SessionRecord = Depends(require_session),
    db: Session = Depends(get_session),
):
    """List study groups, optionally filtered by a course code substring."""
    try:
        listing = CatalogService(db).list_groups(course)
    except StorageError:
        page = views.groups_page(current.user_display_name, GroupListing(), course, "Could not load groups")
        return HTMLResponse(page, status_code=500)
    return views.groups_page(current.user_display_name, listing, course)


@app.get("/api/groups", response_model=GroupListingOut)
def api_list_groups(
    course: str = "",
    current: SessionRecord = Depends(require_api_session),
    db: Session = Depends(get_session),
):
    """JSON variant of /groups for non-browser clients; 401 without a session."""
    try:
        listing = CatalogService(db).list_groups(course)
    except StorageError:
        raise HTTPException(status_code=503, detail="storage unavailable")
    return GroupListingOut(
        groups=[
            GroupOut(
                id=row.group.id,
                name=row.group.name,
                course_code=row.course_code,
                creator_name=row.creator_name,
                description=row.group.description,
                meeting_time=row.group.meeting_time,
                location=row.group.location,
                created_at=row.group.created_at,
            )
            for row in listing.groups
        ],
        course_codes=listing.course_codes,
        course_filter=course.strip(),
    )


@app.get("/logout")
def logout(request: Request, store: SessionStore = Depends(get_session_store)):
    store.destroy(request.cookies.get(settings.SESSION_COOKIE_NAME))
    response = RedirectResponse(url="/login", status_code=303)
    clear_session_cookie(response)
    return response


@app.get("/health")
def health():
    return {"status": "ok"}
