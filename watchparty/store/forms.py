"""Forms for the store blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import IntegerField, SelectField, StringField
from wtforms.validators import NumberRange

from watchparty.core.constants import ALL, RARITY_CHOICES, STORE_CATEGORIES

from .services import MAX_CART_QUANTITY, PRICE_LABELS, SORT_LABELS


class StoreFilterForm(FlaskForm):
    """Search, filter and sort controls for the catalogue."""

    class Meta:
        csrf = False

    search = StringField("Search")
    category = SelectField(
        "Category",
        choices=[(ALL, "All items")] + [(c, c.title()) for c in STORE_CATEGORIES],
        default=ALL,
        validate_choice=False,
    )
    price = SelectField("Price", choices=PRICE_LABELS, default=ALL, validate_choice=False)
    rarity = SelectField(
        "Rarity",
        choices=[(ALL, "Any rarity")] + [(r, r.title()) for r in RARITY_CHOICES],
        default=ALL,
        validate_choice=False,
    )
    sort = SelectField("Sort", choices=SORT_LABELS, default="featured", validate_choice=False)


class AddToCartForm(FlaskForm):
    """Add an item to the cart."""

    quantity = IntegerField(
        "Quantity", default=1, validators=[NumberRange(min=1, max=MAX_CART_QUANTITY)]
    )


class ActionForm(FlaskForm):
    """An empty form used for CSRF-protected POST buttons."""
