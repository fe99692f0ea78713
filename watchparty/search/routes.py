"""Routes for the search blueprint."""

from flask import current_app, flash, redirect, render_template, request, session, url_for

from watchparty.auth.decorators import login_required
from watchparty.auth.utils import get_api_client, mutation_key
from watchparty.core.constants import ALL, SESSION_RECENT_SEARCHES
from watchparty.errors import AppError
from watchparty.extensions import mutations

from . import bp
from .forms import FriendRequestForm, SearchForm
from .services import SEARCH_TYPES, SearchService, empty_results, remember_search


def _safe_next(target):
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return url_for(".search")


@bp.route("/", methods=["GET"])
@login_required
def search():
    """Search people, videos and watch parties."""
    form = SearchForm(request.args)
    query = (request.args.get("q") or "").strip()
    search_type = request.args.get("type") or ALL
    if search_type not in SEARCH_TYPES:
        search_type = ALL

    results = empty_results()
    if query:
        session[SESSION_RECENT_SEARCHES] = remember_search(
            session.get(SESSION_RECENT_SEARCHES), query
        )
        try:
            results = SearchService.search(
                get_api_client(),
                query,
                search_type=search_type,
                sort=request.args.get("sort") or "relevance",
                date_range=request.args.get("date_range") or ALL,
            )
        except AppError as e:
            current_app.logger.warning(f"Search for {query!r} failed: {e.message}")
            flash(e.message, "danger")
        results = SearchService.refine(results, request.args)

    return render_template(
        "search.html",
        form=form,
        query=query,
        search_type=search_type,
        results=results,
        total_results=sum(len(records) for records in results.values()),
        recent_searches=session.get(SESSION_RECENT_SEARCHES, []),
        friend_form=FriendRequestForm(next=request.full_path),
    )


@bp.route("/recent/clear", methods=["POST"])
@login_required
def clear_recent_searches():
    """Forget the recent search history."""
    session.pop(SESSION_RECENT_SEARCHES, None)
    flash("Recent searches cleared.", "info")
    return redirect(url_for(".search"))


@bp.route("/users/<string:user_id>/friend", methods=["POST"])
@login_required
def send_friend_request(user_id):
    """Send a friend request to a user found through search."""
    form = FriendRequestForm()
    next_url = _safe_next(form.next.data)
    if not form.validate_on_submit():
        flash("Invalid friend request.", "danger")
        return redirect(next_url)

    client = get_api_client()
    try:
        user = SearchService.get_user(client, user_id)
    except AppError as e:
        flash(e.message, "danger")
        return redirect(next_url)

    result = SearchService.send_friend_request(
        client, mutations, mutation_key("user", user["id"]), user
    )
    if result.ignored:
        flash("Your friend request is already on its way.", "info")
    elif not result.ok:
        flash(result.error, "danger")
    else:
        flash(f"Friend request sent to {user['display_name']}.", "success")
    return redirect(next_url)
