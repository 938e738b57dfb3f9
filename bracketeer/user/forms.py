"""Forms for the user blueprint."""

from wtforms import Form, FormField, StringField
from wtforms.validators import DataRequired, Length, Optional

from bracketeer.core.constants import MAX_GAMERTAG_LENGTH, MAX_USERNAME_LENGTH
from bracketeer.utils import APIForm


class GamertagsForm(Form):
    """Platform handles shown next to a player's name."""

    playstation = StringField(
        "PlayStation", validators=[Optional(), Length(max=MAX_GAMERTAG_LENGTH)]
    )
    xbox = StringField("Xbox", validators=[Optional(), Length(max=MAX_GAMERTAG_LENGTH)])
    steam = StringField(
        "Steam", validators=[Optional(), Length(max=MAX_GAMERTAG_LENGTH)]
    )


class UserProfileForm(APIForm):
    """Form for registering or updating a user."""

    wallet_address = StringField("Wallet address", validators=[DataRequired()])
    platform_username = StringField(
        "Username",
        validators=[DataRequired(), Length(max=MAX_USERNAME_LENGTH)],
    )
    gamertags = FormField(GamertagsForm)
