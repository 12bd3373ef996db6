# membership_app/forms/bulk_import.py
"""
Forms for operator bulk imports
"""

from flask_wtf import FlaskForm
from flask_wtf.file import FileAllowed, FileField, FileRequired
from wtforms import StringField, SubmitField
from wtforms.validators import DataRequired, Email, Length


class GivingFuelImportForm(FlaskForm):
    """Upload form for a GivingFuel transactions export"""

    file = FileField(
        "GivingFuel CSV export",
        validators=[
            FileRequired(message="Invalid CSV File"),
            FileAllowed(["csv"], message="Only .csv exports are accepted."),
        ],
    )
    email_verify = StringField(
        "Type your account e-mail to confirm",
        validators=[
            DataRequired(message="Email does not match"),
            Email(message="Email does not match"),
            Length(max=320),
        ],
        render_kw={"placeholder": "you@example.org", "autocomplete": "off"},
    )
    submit = SubmitField("Import")

    def first_error(self):
        for errors in self.errors.values():
            if errors:
                return errors[0]
        return None
