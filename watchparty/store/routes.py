"""Routes for the store blueprint."""

from flask import current_app, flash, redirect, render_template, request, session, url_for

from watchparty.auth.decorators import login_required
from watchparty.auth.utils import get_api_client, mutation_key
from watchparty.core.constants import SESSION_CART
from watchparty.core.query import QueryState
from watchparty.core.view import CollectionView
from watchparty.errors import AppError
from watchparty.extensions import mutations

from . import bp
from .forms import ActionForm, AddToCartForm, StoreFilterForm
from .services import STORE_QUERY, Cart, StoreService


def _get_cart():
    return Cart(session.get(SESSION_CART))


def _save_cart(cart):
    session[SESSION_CART] = cart.to_dict()


def _load_catalogue():
    client = get_api_client()
    view = CollectionView("store.catalogue")

    def on_error(error):
        current_app.logger.warning(f"Could not load the store catalogue: {error.message}")
        return error.message

    view.load(lambda: StoreService.get_catalogue(client), on_error=on_error)
    view.close()
    return view


@bp.route("/", methods=["GET"])
@login_required
def view_store():
    """Browse the catalogue with search, filters and sorting."""
    catalogue = _load_catalogue()
    if catalogue.error:
        flash(catalogue.error, "danger")

    state = QueryState.from_args(
        request.args, filter_names=("rarity", "owned"), bucket_arg="price"
    )
    items = STORE_QUERY.run(catalogue.records, state)
    featured = [item for item in catalogue.records if item["featured"]]
    return render_template(
        "store.html",
        items=items,
        featured=featured,
        total_items=len(catalogue.records),
        state=state,
        filter_form=StoreFilterForm(request.args),
        cart_form=AddToCartForm(),
    )


@bp.route("/inventory", methods=["GET"])
@login_required
def view_inventory():
    """List the items the user owns."""
    client = get_api_client()
    inventory = CollectionView("store.inventory")

    def on_error(error):
        current_app.logger.warning(f"Could not load the inventory: {error.message}")
        return error.message

    inventory.load(lambda: StoreService.get_inventory(client), on_error=on_error)
    inventory.close()
    if inventory.error:
        flash(inventory.error, "danger")

    state = QueryState.from_args(request.args, filter_names=("rarity",), bucket_arg="price")
    return render_template(
        "inventory.html",
        items=STORE_QUERY.run(inventory.records, state),
        total_items=len(inventory.records),
        filter_form=StoreFilterForm(request.args),
    )


@bp.route("/items/<string:item_id>", methods=["GET"])
@login_required
def view_item(item_id):
    """Display a single store item."""
    client = get_api_client()
    item = StoreService.get_item(client, item_id)
    if item["id"] in StoreService.get_inventory_ids(client):
        item["owned"] = True
    return render_template(
        "store_item.html",
        item=item,
        cart_form=AddToCartForm(),
        action_form=ActionForm(),
        purchase_pending=mutations.is_pending(mutation_key("item", item["id"])),
    )


@bp.route("/items/<string:item_id>/purchase", methods=["POST"])
@login_required
def purchase_item(item_id):
    """Buy a single item right away."""
    form = ActionForm()
    if not form.validate_on_submit():
        flash("Invalid purchase request.", "danger")
        return redirect(url_for(".view_item", item_id=item_id))

    client = get_api_client()
    try:
        item = StoreService.get_item(client, item_id)
    except AppError as e:
        flash(e.message, "danger")
        return redirect(url_for(".view_store"))

    result = StoreService.purchase_item(
        client, mutations, mutation_key("item", item["id"]), item
    )
    if result.ignored:
        flash("This purchase is already being processed.", "info")
    elif not result.ok:
        flash(result.error, "danger")
    else:
        cart = _get_cart()
        if cart.remove(item["id"]):
            _save_cart(cart)
        flash(f"You bought {item['name']}.", "success")
    return redirect(url_for(".view_item", item_id=item_id))


@bp.route("/cart", methods=["GET"])
@login_required
def view_cart():
    """Show the cart with per-currency totals."""
    cart = _get_cart()
    lines = []
    if len(cart):
        catalogue = _load_catalogue()
        if catalogue.error:
            flash(catalogue.error, "danger")
        lines = cart.lines(catalogue.records)
    return render_template(
        "cart.html",
        lines=lines,
        totals=Cart.totals(lines),
        action_form=ActionForm(),
        checkout_pending=mutations.is_pending(mutation_key("cart")),
    )


@bp.route("/cart/add/<string:item_id>", methods=["POST"])
@login_required
def add_to_cart(item_id):
    """Add an item to the cart."""
    form = AddToCartForm()
    if not form.validate_on_submit():
        flash("Please choose a quantity between 1 and 99.", "danger")
        return redirect(request.referrer or url_for(".view_store"))

    try:
        item = StoreService.get_item(get_api_client(), item_id)
    except AppError as e:
        flash(e.message, "danger")
        return redirect(url_for(".view_store"))
    if item["owned"]:
        flash("You already own this item.", "info")
        return redirect(url_for(".view_item", item_id=item_id))

    cart = _get_cart()
    cart.add(item["id"], form.quantity.data)
    _save_cart(cart)
    flash(f"{item['name']} added to your cart.", "success")
    return redirect(request.referrer or url_for(".view_cart"))


@bp.route("/cart/remove/<string:item_id>", methods=["POST"])
@login_required
def remove_from_cart(item_id):
    """Remove an item from the cart."""
    form = ActionForm()
    if form.validate_on_submit():
        cart = _get_cart()
        if cart.remove(item_id):
            _save_cart(cart)
            flash("Item removed from your cart.", "info")
    return redirect(url_for(".view_cart"))


@bp.route("/cart/checkout", methods=["POST"])
@login_required
def checkout():
    """Buy everything in the cart."""
    form = ActionForm()
    if not form.validate_on_submit():
        flash("Invalid checkout request.", "danger")
        return redirect(url_for(".view_cart"))

    cart = _get_cart()
    catalogue = _load_catalogue()
    if catalogue.error:
        flash(catalogue.error, "danger")
        return redirect(url_for(".view_cart"))

    lines = [line for line in cart.lines(catalogue.records) if not line["item"]["owned"]]
    result = StoreService.checkout(
        get_api_client(), mutations, mutation_key("cart"), lines
    )
    if result.ignored:
        flash("Your order is already being processed.", "info")
        return redirect(url_for(".view_cart"))
    if not result.ok:
        flash(result.error, "danger")
        return redirect(url_for(".view_cart"))

    cart.clear()
    _save_cart(cart)
    flash("Purchase complete. Enjoy your new items!", "success")
    return redirect(url_for(".view_store", owned="true"))
