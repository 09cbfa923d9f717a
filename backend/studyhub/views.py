"""HTML views.

Each view is a pure function from a view model (plus an optional error
message) to an HTML string. All user-supplied text goes through
`html.escape`.
"""

from html import escape
from typing import Iterable, Mapping, Optional

from . import models
from .services import GroupListing

_STYLE = """
        body { font-family: Arial, sans-serif; margin: 32px; }
        a { color: #0a6; }
        .card { max-width: 640px; padding: 16px; border: 1px solid #ddd; border-radius: 8px; margin-bottom: 12px; }
        .error { color: #b00; }
        label { display: block; margin-top: 8px; }
        nav a { margin-right: 12px; }
"""


def _e(value) -> str:
    return escape("" if value is None else str(value))


def _page(title: str, body: str, user_name: Optional[str] = None) -> str:
    nav = ""
    if user_name is not None:
        nav = (
            '<nav><a href="/dashboard">Dashboard</a><a href="/groups">Groups</a>'
            '<a href="/create-group">Create group</a><a href="/logout">Log out</a>'
            f"<span>Signed in as {_e(user_name)}</span></nav>"
        )
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8" />
  <title>{_e(title)} · Study Hub</title>
  <style>{_STYLE}</style>
</head>
<body>
  {nav}
  {body}
</body>
</html>
"""


def _error(error: Optional[str]) -> str:
    return f'<p class="error">{_e(error)}</p>' if error else ""


def login_page(error: Optional[str] = None, email: str = "") -> str:
    body = f"""
  <div class="card">
    <h1>Log in</h1>
    {_error(error)}
    <form method="post" action="/login">
      <label>Email <input type="email" name="email" value="{_e(email)}" required /></label>
      <label>Password <input type="password" name="password" required /></label>
      <button type="submit">Log in</button>
    </form>
    <p>First time? <a href="/register">Create an account</a></p>
  </div>"""
    return _page("Log in", body)


def register_page(error: Optional[str] = None, name: str = "", email: str = "") -> str:
    body = f"""
  <div class="card">
    <h1>Register</h1>
    {_error(error)}
    <form method="post" action="/register">
      <label>Name <input type="text" name="name" value="{_e(name)}" /></label>
      <label>Email <input type="email" name="email" value="{_e(email)}" required /></label>
      <label>Password <input type="password" name="password" required /></label>
      <button type="submit">Register</button>
    </form>
    <p>Already registered? <a href="/login">Log in</a></p>
  </div>"""
    return _page("Register", body)


def dashboard_page(user_name: str) -> str:
    body = f"""
  <div class="card">
    <h1>Welcome, {_e(user_name)}</h1>
    <ul>
      <li><a href="/groups">Browse study groups</a></li>
      <li><a href="/create-group">Create a study group</a></li>
    </ul>
  </div>"""
    return _page("Dashboard", body, user_name=user_name)


def create_group_page(
    user_name: str,
    courses: Iterable[models.Course],
    error: Optional[str] = None,
    form: Optional[Mapping[str, str]] = None,
) -> str:
    form = form or {}
    options = "".join(
        f'<option value="{_e(c.course_code)}">{_e(c.course_name)}</option>' for c in courses
    )
    body = f"""
  <div class="card">
    <h1>Create a study group</h1>
    {_error(error)}
    <form method="post" action="/create-group">
      <label>Group name <input type="text" name="name" value="{_e(form.get('name'))}" required /></label>
      <label>Course code <input type="text" name="course_code" list="courses" value="{_e(form.get('course_code'))}" required /></label>
      <datalist id="courses">{options}</datalist>
      <label>Description <textarea name="description">{_e(form.get('description'))}</textarea></label>
      <label>Meeting time <input type="text" name="meeting_time" value="{_e(form.get('meeting_time'))}" /></label>
      <label>Location <input type="text" name="location" value="{_e(form.get('location'))}" /></label>
      <button type="submit">Create</button>
    </form>
  </div>"""
    return _page("Create group", body, user_name=user_name)


def groups_page(
    user_name: str,
    listing: GroupListing,
    course_filter: str = "",
    error: Optional[str] = None,
) -> str:
    options = "".join(f'<option value="{_e(code)}"></option>' for code in listing.course_codes)
    cards = []
    for row in listing.groups:
        g = row.group
        cards.append(f"""
  <div class="card group">
    <h2>{_e(g.name)} <small>{_e(row.course_code)}</small></h2>
    <p>{_e(g.description)}</p>
    <p>When: {_e(g.meeting_time or 'TBD')} · Where: {_e(g.location or 'TBD')}</p>
    <p>Created by {_e(row.creator_name or 'unknown')}</p>
  </div>""")
    if not cards:
        cards.append('<p class="empty">No study groups found.</p>')
    cards_html = "".join(cards)
    body = f"""
  <h1>Study groups</h1>
  {_error(error)}
  <form method="get" action="/groups">
    <label>Course <input type="text" name="course" list="course-codes" value="{_e(course_filter)}" /></label>
    <datalist id="course-codes">{options}</datalist>
    <button type="submit">Filter</button> <a href="/groups">Clear</a>
  </form>
  {cards_html}"""
    return _page("Study groups", body, user_name=user_name)


def not_found_page() -> str:
    return _page("Not found", '<h1>404 – Page Not Found</h1><a href="/">Home</a>')
