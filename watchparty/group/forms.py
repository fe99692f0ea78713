"""Forms for the group blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import IntegerField, SelectField, StringField, TextAreaField
from wtforms.validators import DataRequired, Length, NumberRange, Optional

from watchparty.core.constants import ALL, GROUP_CATEGORIES, PRIVACY_CHOICES

from .services import GROUP_SORT_LABELS

PRIVACY_LABELS = [
    ("public", "Public"),
    ("private", "Private"),
    ("invite-only", "Invite only"),
]


class GroupForm(FlaskForm):
    """Form for creating a new group."""

    name = StringField("Group Name", validators=[DataRequired(), Length(max=100)])
    description = TextAreaField("Description", validators=[Length(max=1000)])
    privacy = SelectField("Privacy", choices=PRIVACY_LABELS, default="public")
    category = SelectField(
        "Category", choices=[(c, c) for c in GROUP_CATEGORIES], default="Movies"
    )
    max_members = IntegerField(
        "Member Limit", validators=[Optional(), NumberRange(min=2, max=10000)]
    )

    def to_payload(self):
        """Build the request body for the create endpoint."""
        payload = {
            "name": self.name.data.strip(),
            "description": (self.description.data or "").strip(),
            "is_public": self.privacy.data == "public",
            "privacy": self.privacy.data
            if self.privacy.data in PRIVACY_CHOICES
            else "public",
            "category": self.category.data,
        }
        if self.max_members.data:
            payload["max_members"] = self.max_members.data
        return payload


class GroupFilterForm(FlaskForm):
    """Search and filter controls for the group list; bound to query args."""

    class Meta:
        csrf = False

    search = StringField("Search")
    category = SelectField(
        "Category",
        choices=[(ALL, "All categories")] + [(c, c) for c in GROUP_CATEGORIES],
        default=ALL,
        validate_choice=False,
    )
    privacy = SelectField(
        "Privacy",
        choices=[(ALL, "Any privacy")] + PRIVACY_LABELS,
        default=ALL,
        validate_choice=False,
    )
    sort = SelectField(
        "Sort", choices=GROUP_SORT_LABELS, default="members", validate_choice=False
    )
