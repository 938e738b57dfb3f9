"""Forms for the tournament blueprint."""

from wtforms import IntegerField, StringField, TextAreaField, ValidationError
from wtforms.validators import (
    AnyOf,
    DataRequired,
    InputRequired,
    Length,
    NumberRange,
    Optional,
)

from bracketeer.core.constants import (
    AUTO_START_SIZES,
    GAME_REPORT_SIDES,
    MAX_TOURNAMENT_NAME_LENGTH,
)
from bracketeer.utils import APIForm


class TournamentForm(APIForm):
    """Form for creating a tournament."""

    name = StringField(
        "Name",
        validators=[DataRequired(), Length(max=MAX_TOURNAMENT_NAME_LENGTH)],
    )
    description = TextAreaField(
        "Description", validators=[Optional(), Length(max=500)]
    )
    auto_start_player_count = IntegerField(
        "Auto-start player count",
        validators=[
            Optional(),
            AnyOf(AUTO_START_SIZES, message="Invalid player count for auto-start."),
        ],
    )


class ParticipantForm(APIForm):
    """Form for registering or unregistering a wallet."""

    wallet_address = StringField("Wallet address", validators=[DataRequired()])


class ResultSubmissionForm(APIForm):
    """A player's report of a match score, from player one's perspective."""

    submitted_by = StringField("Submitted by", validators=[DataRequired()])
    score1 = IntegerField(
        "Player 1 score",
        validators=[
            InputRequired(),
            NumberRange(min=0, message="Scores cannot be negative."),
        ],
    )
    score2 = IntegerField(
        "Player 2 score",
        validators=[
            InputRequired(),
            NumberRange(min=0, message="Scores cannot be negative."),
        ],
    )

    def validate_score2(self, field):
        """Validate that the match is not a draw."""
        if field.data is not None and field.data == self.score1.data:
            raise ValidationError("Draws are not allowed in bracket matches.")


class AdminResultForm(APIForm):
    """Admin override: a winner or a score pair."""

    winner_id = StringField("Winner", validators=[Optional()])
    score1 = IntegerField(
        "Player 1 score", validators=[Optional(), NumberRange(min=0)]
    )
    score2 = IntegerField(
        "Player 2 score", validators=[Optional(), NumberRange(min=0)]
    )

    def validate(self, extra_validators=None):
        """Require either a winner or both scores."""
        if not super().validate(extra_validators=extra_validators):
            return False
        has_scores = self.score1.data is not None and self.score2.data is not None
        if not self.winner_id.data and not has_scores:
            self.winner_id.errors.append("A winner or a score pair is required.")
            return False
        return True


class ForceCompleteForm(APIForm):
    """Form for finishing a tournament with a chosen winner."""

    winner_id = StringField("Winner", validators=[DataRequired()])


class MoveForm(APIForm):
    """A single gameplay move."""

    player_id = StringField("Player", validators=[DataRequired()])
    move = IntegerField("Move", validators=[InputRequired()])


class GameResultForm(APIForm):
    """Winner of a match as reported by an external game server."""

    winner = StringField(
        "Winner",
        validators=[
            DataRequired(),
            AnyOf(GAME_REPORT_SIDES, message="Winner must be white or black."),
        ],
    )
    wallet_address = StringField("Wallet address", validators=[DataRequired()])
