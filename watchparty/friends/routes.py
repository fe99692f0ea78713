"""Routes for the friends blueprint."""

from flask import current_app, flash, redirect, render_template, request, session, url_for

from watchparty.auth.decorators import login_required
from watchparty.auth.utils import get_api_client
from watchparty.core.collection import extract_page_info
from watchparty.core.constants import SESSION_DISMISSED_SUGGESTIONS
from watchparty.core.query import QueryState
from watchparty.core.view import CollectionView
from watchparty.errors import AppError
from watchparty.search.forms import FriendRequestForm

from . import bp
from .forms import FriendFilterForm
from .services import (
    FRIEND_QUERY,
    SUGGESTION_QUERY,
    FriendService,
    remember_dismissal,
    suggestions_without_friends,
)


@bp.route("/", methods=["GET"])
@login_required
def view_friends():
    """List friends, one page at a time, next to friend suggestions."""
    client = get_api_client()
    page = max(request.args.get("page", 1, type=int) or 1, 1)

    try:
        friends, page_info = FriendService.get_friends(client, page)
    except AppError as e:
        current_app.logger.warning(f"Could not load friends: {e.message}")
        flash(e.message, "danger")
        friends, page_info = [], extract_page_info(None)

    suggestions = CollectionView("friends.suggestions")

    def on_error(error):
        current_app.logger.warning(f"Could not load friend suggestions: {error.message}")
        return None

    suggestions.load(lambda: FriendService.get_suggestions(client), on_error=on_error)
    suggestions.close()

    state = QueryState.from_args(request.args, filter_names=("online",))
    people = suggestions_without_friends(
        friends, suggestions.records, session.get(SESSION_DISMISSED_SUGGESTIONS, [])
    )
    return render_template(
        "friends.html",
        friends=FRIEND_QUERY.run(friends, state),
        suggestions=SUGGESTION_QUERY.run(people, QueryState(search=state.search)),
        page=page,
        page_info=page_info,
        filter_form=FriendFilterForm(request.args),
        friend_form=FriendRequestForm(next=request.full_path),
    )


@bp.route("/suggestions/<string:user_id>/dismiss", methods=["POST"])
@login_required
def dismiss_suggestion(user_id):
    """Hide a suggested person from the friends page."""
    session[SESSION_DISMISSED_SUGGESTIONS] = remember_dismissal(
        session.get(SESSION_DISMISSED_SUGGESTIONS), user_id
    )
    flash("Suggestion dismissed.", "info")
    return redirect(url_for(".view_friends"))
