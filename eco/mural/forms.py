"""Forms for the mural blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from flask_wtf.file import FileAllowed  # type: ignore
from wtforms import FileField, SelectField, StringField, SubmitField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional

from .services import POST_KIND_LABELS


class PostForm(FlaskForm):
    kind = SelectField(
        "Tipo",
        choices=[(k, v) for k, v in POST_KIND_LABELS.items() if k != "recibo"],
        validators=[DataRequired()],
    )
    title = StringField("Título", validators=[Optional(), Length(max=120)])
    body = TextAreaField("Texto", validators=[DataRequired(), Length(max=2000)])
    receipt_id = StringField("Recibo (opcional)", validators=[Optional(), Length(max=64)])
    photo = FileField(
        "Foto", validators=[FileAllowed(["jpg", "jpeg", "png", "webp"], "Apenas imagens.")]
    )
    submit = SubmitField("Publicar")
