"""Forms for the friends blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import SelectField, StringField

from watchparty.core.constants import ALL

from .services import FRIEND_SORT_LABELS

ONLINE_LABELS = [(ALL, "Everyone"), ("true", "Online"), ("false", "Offline")]


class FriendFilterForm(FlaskForm):
    """Search and filter controls for the friend list; bound to query args."""

    class Meta:
        csrf = False

    search = StringField("Search")
    online = SelectField("Status", choices=ONLINE_LABELS, default=ALL, validate_choice=False)
    sort = SelectField(
        "Sort", choices=FRIEND_SORT_LABELS, default="online", validate_choice=False
    )
