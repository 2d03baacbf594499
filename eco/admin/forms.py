"""Forms for the admin blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import DateField, IntegerField, SelectField, StringField, SubmitField
from wtforms.validators import DataRequired, Length, NumberRange, Optional

from eco.constants import (
    DEFAULT_DROP_POINT_HOURS,
    DEFAULT_DROP_POINT_MATERIALS,
    DEFAULT_WINDOW_CAPACITY,
    ROLES,
)


class PeriodForm(FlaskForm):
    period_start = DateField("Início", validators=[DataRequired()])
    period_end = DateField("Fim", validators=[DataRequired()])
    submit = SubmitField("Criar período")


class AdjustmentForm(FlaskForm):
    """Manual credit (positive) or debit (negative), in cents."""

    cooperado_id = StringField("Cooperada (user id)", validators=[DataRequired()])
    amount_cents = IntegerField("Valor (centavos)", validators=[DataRequired()])
    reason = StringField("Motivo", validators=[DataRequired(), Length(max=200)])
    submit = SubmitField("Adicionar ajuste")


class MarkPaidForm(FlaskForm):
    payout_reference = StringField(
        "Referência", validators=[Optional(), Length(max=80)]
    )
    submit = SubmitField("Marcar pago")


class RoleForm(FlaskForm):
    user_id = StringField("User id", validators=[DataRequired()])
    role = SelectField("Papel", choices=[(r, r) for r in ROLES])
    submit = SubmitField("Atualizar papel")


class DropPointForm(FlaskForm):
    neighborhood_id = SelectField("Bairro", choices=[], validators=[DataRequired()])
    name = StringField("Nome", validators=[DataRequired(), Length(max=120)])
    address_public = StringField(
        "Endereço público", validators=[DataRequired(), Length(max=200)]
    )
    hours = StringField(
        "Horário", default=DEFAULT_DROP_POINT_HOURS, validators=[Optional(), Length(max=80)]
    )
    accepted_materials = StringField(
        "Materiais aceitos", default=DEFAULT_DROP_POINT_MATERIALS, validators=[DataRequired()]
    )
    submit = SubmitField("Criar Ponto ECO")


class RouteWindowForm(FlaskForm):
    """Weekly window; weekday 0 is Sunday."""

    weekday = IntegerField("Dia (0-6)", default=2, validators=[NumberRange(min=0, max=6)])
    start_time = StringField("Início", default="09:00", validators=[DataRequired()])
    end_time = StringField("Fim", default="12:00", validators=[DataRequired()])
    capacity = IntegerField(
        "Capacidade", default=DEFAULT_WINDOW_CAPACITY, validators=[NumberRange(min=1)]
    )
    submit = SubmitField("Criar janela")


class ConfirmForm(FlaskForm):
    submit = SubmitField("Confirmar")
