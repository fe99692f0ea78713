"""Forms for the search blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import HiddenField, SelectField, StringField
from wtforms.validators import Length

from .services import DATE_RANGES, SORT_LABELS

TYPE_LABELS = [
    ("all", "Everything"),
    ("users", "People"),
    ("videos", "Videos"),
    ("parties", "Watch parties"),
]
DURATION_LABELS = [
    ("all", "Any length"),
    ("short", "Under 4 minutes"),
    ("medium", "4 to 20 minutes"),
    ("long", "Over 20 minutes"),
]
STATUS_LABELS = [("all", "Any status"), ("active", "Live now"), ("scheduled", "Scheduled")]
AVAILABILITY_LABELS = [("all", "Any availability"), ("open", "Open"), ("full", "Full")]


class SearchForm(FlaskForm):
    """The search box and its filters; bound to query args."""

    class Meta:
        csrf = False

    q = StringField("Search", validators=[Length(max=200)])
    type = SelectField("Type", choices=TYPE_LABELS, default="all", validate_choice=False)
    sort = SelectField("Sort", choices=SORT_LABELS, default="relevance", validate_choice=False)
    date_range = SelectField(
        "Date", choices=DATE_RANGES, default="all", validate_choice=False
    )
    duration = SelectField(
        "Duration", choices=DURATION_LABELS, default="all", validate_choice=False
    )
    status = SelectField("Status", choices=STATUS_LABELS, default="all", validate_choice=False)
    availability = SelectField(
        "Availability", choices=AVAILABILITY_LABELS, default="all", validate_choice=False
    )


class FriendRequestForm(FlaskForm):
    """Send a friend request from a search result."""

    next = HiddenField()
