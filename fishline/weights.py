"""Weight ledger: individual weighings recorded against a stage.

Stage totals are never stored; they are aggregated on read by
:func:`fishline.stages.list_stages` and :mod:`fishline.yields`.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import select

from . import db, utils
from .errors import NotFoundError, ValidationError
from .models import LinePosition, ProductionOrder, Stage, WeightRecord

DEFAULT_MEASURE = "KG"
DEFAULT_STATION = "WEB"
DEFAULT_UNITS = 1


def list_weights(stage_id: int):
    """Weighings of a stage, newest first, with stage and order context."""
    stmt = (
        select(
            WeightRecord,
            Stage.numero_etapa,
            Stage.item_codigo,
            Stage.descricao.label("etapa_descricao"),
            ProductionOrder.codigo.label("ordem_codigo"),
        )
        .join(Stage, WeightRecord.subetapa_id == Stage.id)
        .join(ProductionOrder, Stage.ordem_producao_id == ProductionOrder.id)
        .where(WeightRecord.subetapa_id == stage_id)
        .order_by(WeightRecord.data_registro.desc(), WeightRecord.id.desc())
    )
    out = []
    for record, numero_etapa, item_codigo, etapa_descricao, ordem_codigo in db.session.execute(stmt).all():
        row = record.to_dict()
        row.update(
            numero_etapa=numero_etapa,
            item_codigo=item_codigo,
            etapa_descricao=etapa_descricao,
            ordem_codigo=ordem_codigo,
        )
        out.append(row)
    return out


def register_weight(
    stage_id: int,
    operador=None,
    peso_kg=None,
    quantidade_unidades=None,
    tipo_medida=None,
    estacao=None,
    posicao_id=None,
    observacoes=None,
):
    operador = str(operador).strip() if operador is not None else ""
    if not operador or peso_kg is None or peso_kg == "":
        raise ValidationError("Campos obrigatórios: operador, peso_kg")
    peso = utils.parse_float(peso_kg, "peso_kg")
    # a zero reading is treated as a missed weighing, not a registration
    if peso <= 0:
        raise ValidationError("Peso deve ser maior que zero")
    unidades = utils.parse_int(quantidade_unidades, "quantidade_unidades")
    posicao = utils.parse_int(posicao_id, "posicao_id")

    stage = db.session.get(Stage, stage_id)
    if stage is None:
        raise NotFoundError("Subetapa não encontrada")
    if posicao is not None and db.session.get(LinePosition, posicao) is None:
        raise NotFoundError(f"Posição {posicao} não encontrada")

    record = WeightRecord(
        subetapa_id=stage.id,
        operador=str(operador).upper(),
        peso_kg=peso,
        quantidade_unidades=unidades if unidades is not None else DEFAULT_UNITS,
        tipo_medida=(tipo_medida or DEFAULT_MEASURE).upper(),
        estacao=(estacao or DEFAULT_STATION).upper(),
        posicao_id=posicao,
        observacoes=observacoes or "",
        data_registro=utils.now(),
    )
    with utils.atomic(db.session):
        db.session.add(record)

    current_app.logger.info(
        "Peso %.3f kg registrado na subetapa %s por %s (%s)",
        record.peso_kg, stage.numero_etapa, record.operador, record.estacao,
    )
    return record.to_dict()


def _get_record(weight_id: int) -> WeightRecord:
    record = db.session.get(WeightRecord, weight_id)
    if record is None:
        raise NotFoundError(f"Registro de peso com id {weight_id} não encontrado")
    return record


def edit_weight(weight_id: int, peso_kg=None):
    """Correct the weight value; the registration time moves to now."""
    if peso_kg is None or peso_kg == "":
        raise ValidationError("O campo peso_kg é obrigatório")
    peso = utils.parse_float(peso_kg, "peso_kg")
    if peso < 0:
        raise ValidationError("Peso deve ser um número maior ou igual a zero")

    with utils.atomic(db.session):
        record = _get_record(weight_id)
        previous = record.peso_kg
        record.peso_kg = peso
        record.data_registro = utils.now()

    current_app.logger.info("Registro de peso %s corrigido: %s -> %s kg", weight_id, previous, peso)
    return record.to_dict()


def delete_weight(weight_id: int):
    with utils.atomic(db.session):
        record = _get_record(weight_id)
        deleted = record.to_dict()
        db.session.delete(record)

    current_app.logger.info("Registro de peso %s deletado (subetapa %s)", weight_id, deleted["subetapa_id"])
    return deleted
