"""Forms for the profile blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import SelectField, StringField, SubmitField
from wtforms.validators import DataRequired, Length


class ProfileForm(FlaskForm):
    """Form for the display name and neighborhood."""

    display_name = StringField(
        "Nome de exibição", validators=[DataRequired(), Length(min=2, max=60)]
    )
    neighborhood_id = SelectField("Bairro", validators=[DataRequired()], choices=[])
    submit = SubmitField("Salvar perfil")


class AddressForm(FlaskForm):
    """Private pickup address; never shown on public pages."""

    address_full = StringField(
        "Endereço completo", validators=[DataRequired(), Length(max=200)]
    )
    contact_phone = StringField(
        "Telefone de contato", validators=[DataRequired(), Length(min=8, max=30)]
    )
    submit = SubmitField("Salvar endereço")
