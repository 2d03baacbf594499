"""Forms for pickup requests, subscriptions and the cooperado panel."""

from flask_wtf import FlaskForm  # type: ignore
from flask_wtf.file import FileAllowed  # type: ignore
from wtforms import (
    FieldList,
    FileField,
    Form,
    FormField,
    IntegerField,
    RadioField,
    SelectField,
    StringField,
    SubmitField,
    TextAreaField,
)
from wtforms.validators import DataRequired, Length, NumberRange, Optional

from eco.constants import (
    MATERIALS,
    MAX_QTY_PER_ITEM,
    MODE_DOORSTEP,
    MODE_DROP_POINT,
    UNITS,
    WEEKDAY_NAMES,
)

MODE_CHOICES = [
    (MODE_DOORSTEP, "Coleta na porta"),
    (MODE_DROP_POINT, "Ponto ECO"),
]


class ItemForm(Form):
    """One material line; nested, so it carries no CSRF token."""

    material = SelectField(
        "Material", choices=[(m, m) for m in MATERIALS], default=MATERIALS[0]
    )
    unit = SelectField("Unidade", choices=[(u, u) for u in UNITS], default=UNITS[0])
    qty = IntegerField(
        "Quantidade", validators=[Optional(), NumberRange(min=1, max=MAX_QTY_PER_ITEM)]
    )


class PickupRequestForm(FlaskForm):
    fulfillment_mode = RadioField(
        "Modo", choices=MODE_CHOICES, default=MODE_DOORSTEP, validators=[DataRequired()]
    )
    drop_point_id = SelectField("Ponto ECO", choices=[], validate_choice=False)
    items = FieldList(FormField(ItemForm), min_entries=3, max_entries=12)
    address_full = StringField("Endereço completo", validators=[Length(max=200)])
    contact_phone = StringField("Telefone", validators=[Length(max=30)])
    notes = TextAreaField("Observações", validators=[Length(max=500)])
    submit = SubmitField("Pedir coleta")


class SubscriptionForm(FlaskForm):
    fulfillment_mode = RadioField(
        "Modo", choices=MODE_CHOICES, default=MODE_DOORSTEP, validators=[DataRequired()]
    )
    drop_point_id = SelectField("Ponto ECO", choices=[], validate_choice=False)
    cadence = SelectField(
        "Frequência", choices=[("weekly", "Semanal"), ("biweekly", "Quinzenal")]
    )
    preferred_weekday = SelectField(
        "Dia preferido",
        choices=list(enumerate(WEEKDAY_NAMES)),
        coerce=int,
        default=1,
    )
    preferred_window_id = SelectField("Janela", choices=[], validate_choice=False)
    notes = TextAreaField("Observações", validators=[Length(max=300)])
    submit = SubmitField("Criar recorrência")


class ActionForm(FlaskForm):
    """Bare form for button-only POSTs (accept, en route, pause)."""

    submit = SubmitField("Confirmar")


class CollectForm(FlaskForm):
    final_notes = TextAreaField("Notas finais", validators=[Length(max=500)])
    photo = FileField(
        "Foto da coleta",
        validators=[FileAllowed(["jpg", "jpeg", "png", "webp"], "Apenas imagens.")],
    )
    submit = SubmitField("Concluir coleta")
