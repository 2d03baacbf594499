"""Forms for the onboarding wizard."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import HiddenField, RadioField, SubmitField
from wtforms.validators import DataRequired, Optional

from eco.constants import MODE_DOORSTEP, MODE_DROP_POINT


class StartForm(FlaskForm):
    submit = SubmitField("Começar agora")


class NeighborhoodForm(FlaskForm):
    neighborhood_id = HiddenField("Bairro", validators=[DataRequired()])


class ModeForm(FlaskForm):
    """Doorstep pickup or a drop point of the neighborhood."""

    mode = RadioField(
        "Como você quer entregar?",
        choices=[
            (MODE_DROP_POINT, "Levo até um ponto de entrega"),
            (MODE_DOORSTEP, "Coleta na porta"),
        ],
        validators=[DataRequired()],
    )
    drop_point_id = HiddenField("Ponto", validators=[Optional()])
    submit = SubmitField("Continuar")
