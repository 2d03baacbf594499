"""Forms for the auth blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import PasswordField, StringField, SubmitField
from wtforms.validators import DataRequired, Email


class LoginForm(FlaskForm):
    """Login form; submitted by the browser SDK, never posted to the server."""

    email = StringField(
        "E-mail",
        validators=[DataRequired(), Email()],
        render_kw={"autocomplete": "username"},
    )
    password = PasswordField(
        "Senha",
        validators=[DataRequired()],
        render_kw={"autocomplete": "current-password"},
    )
    fixture_token = StringField("Token de teste")
    submit = SubmitField("Entrar")
