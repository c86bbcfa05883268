"""
Request helpers shared by the storefront blueprints.

Resolves the order session for the current browser session and maps
pipeline results onto flash messages and redirects.
"""

from flask import current_app, flash, g, redirect, session, url_for

from models.pipeline import OrderSession, TransitionResult
from modules.order_pipeline import view_for


# Key in the signed Flask session cookie
SESSION_KEY = "order_session_id"


def current_order_session() -> OrderSession:
    """
    Return this browser's OrderSession, creating one if needed.

    Also tags the request so log lines carry the session's short id.
    """
    store = current_app.config["SESSION_STORE"]
    order_session = store.get_or_create(session.get(SESSION_KEY))

    if session.get(SESSION_KEY) != order_session.session_id:
        session[SESSION_KEY] = order_session.session_id
        session.modified = True

    g.order_session_tag = order_session.short_id
    return order_session


def redirect_to_current(order_session: OrderSession):
    """Redirect to the page for the session's state."""
    return redirect(url_for(view_for(order_session.state)))


def flash_result(result: TransitionResult) -> None:
    """Flash the error of a failed transition (nothing on success)."""
    if result.error is None:
        return
    category = "warning" if result.error.is_partial else "error"
    flash(result.error.message, category)
