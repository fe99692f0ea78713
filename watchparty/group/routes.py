"""Routes for the group blueprint."""

from flask import current_app, flash, redirect, render_template, request, url_for

from watchparty.auth.decorators import login_required
from watchparty.auth.utils import current_user_id, get_api_client, mutation_key
from watchparty.core.query import QueryState
from watchparty.core.view import CollectionView
from watchparty.errors import AppError
from watchparty.extensions import mutations

from . import bp
from .forms import GroupFilterForm, GroupForm
from .services import GROUP_QUERY, GroupService

TABS = ("discover", "mine")


def _load_failed(label):
    def on_error(error):
        current_app.logger.warning(f"Could not load {label}: {error.message}")
        return error.message

    return on_error


@bp.route("/", methods=["GET"])
@login_required
def view_groups():
    """List discoverable groups and the user's own groups."""
    client = get_api_client()
    user_id = current_user_id()
    tab = request.args.get("tab", "discover")
    if tab not in TABS:
        tab = "discover"

    discover = CollectionView("groups.discover")
    mine = CollectionView("groups.mine")
    discover.load(
        lambda: GroupService.discover_groups(client, user_id),
        on_error=_load_failed("discoverable groups"),
    )
    mine.load(
        lambda: GroupService.my_groups(client, user_id),
        on_error=_load_failed("your groups"),
    )
    for view in (discover, mine):
        if view.error:
            flash(view.error, "danger")

    state = QueryState.from_args(request.args, filter_names=("privacy",))
    filter_form = GroupFilterForm(request.args)
    groups = GROUP_QUERY.run(discover.records, state)
    my_groups = GROUP_QUERY.run(mine.records, state)
    discover.close()
    mine.close()

    return render_template(
        "groups.html",
        tab=tab,
        groups=groups,
        my_groups=my_groups,
        total_groups=len(discover.records),
        state=state,
        filter_form=filter_form,
        form=GroupForm(),
    )


@bp.route("/<string:group_id>", methods=["GET"])
@login_required
def view_group(group_id):
    """Display a single group page."""
    client = get_api_client()
    group = GroupService.get_group(client, group_id, current_user_id())
    members = GroupService.get_members(client, group["backend_id"] or group_id)
    return render_template(
        "group.html",
        group=group,
        members=members,
        join_pending=mutations.is_pending(mutation_key("group", group["id"])),
    )


@bp.route("/create", methods=["GET", "POST"])
@login_required
def create_group():
    """Create a new group."""
    form = GroupForm()
    if form.validate_on_submit():
        result = GroupService.create_group(
            get_api_client(),
            mutations,
            mutation_key("group", "create"),
            form.to_payload(),
            current_user_id(),
        )
        if result.ignored:
            flash("Your group is already being created.", "info")
            return redirect(url_for(".view_groups", tab="mine"))
        if not result.ok:
            flash(result.error, "danger")
            return render_template("create_group.html", form=form), 400

        flash("Group created successfully.", "success")
        record = result.record
        if record and record["backend_id"] != "":
            return redirect(url_for(".view_group", group_id=record["id"]))
        return redirect(url_for(".view_groups", tab="mine"))

    return render_template("create_group.html", form=form)


def _change_membership(group_id, action):
    client = get_api_client()
    user_id = current_user_id()
    try:
        group = GroupService.get_group(client, group_id, user_id)
    except AppError as e:
        flash(e.message, "danger")
        return redirect(url_for(".view_groups"))

    change = GroupService.join_group if action == "join" else GroupService.leave_group
    result = change(
        client, mutations, mutation_key("group", group["id"]), group, user_id
    )
    if result.ignored:
        flash("Your previous request for this group is still in progress.", "info")
    elif not result.ok:
        flash(result.error, "danger")
    elif action == "join":
        record = result.record or group
        if record["is_member"]:
            flash(f"You joined {record['name']}.", "success")
        else:
            flash(f"Your request to join {record['name']} was sent.", "success")
    else:
        flash(f"You left {group['name']}.", "success")
    return redirect(url_for(".view_group", group_id=group_id))


@bp.route("/<string:group_id>/join", methods=["POST"])
@login_required
def join_group(group_id):
    """Join a group."""
    return _change_membership(group_id, "join")


@bp.route("/<string:group_id>/leave", methods=["POST"])
@login_required
def leave_group(group_id):
    """Leave a group."""
    return _change_membership(group_id, "leave")
