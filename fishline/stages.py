"""Stage (subetapa) management.

Stage numbers are assigned here and nowhere else: intermediate stages take
``1 + max(numbers != 99)`` so the exit stage always stays last.  Every
activation or conclusion is followed by :func:`_apply_order_transition`,
which asks :func:`fishline.lifecycle.next_order_status` whether the parent
order must change status.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError

from . import db, utils
from .errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from .lifecycle import (
    EXIT_NUMBER,
    SYSTEM_CREATOR,
    OrderStatus,
    StageEvent,
    StageRole,
    is_system_creator,
    next_intermediate_number,
    next_order_status,
)
from .models import LinePosition, ProductionLine, ProductionOrder, Stage, WeightRecord


def list_stages(order_id: int):
    """Stages of an order with totals aggregated from the weight ledger."""
    stmt = (
        select(
            Stage,
            func.coalesce(func.sum(WeightRecord.peso_kg), 0).label("peso_total"),
            func.count(WeightRecord.id).label("total_registros"),
            func.max(WeightRecord.data_registro).label("ultimo_peso"),
        )
        .outerjoin(WeightRecord, WeightRecord.subetapa_id == Stage.id)
        .where(Stage.ordem_producao_id == order_id)
        .group_by(Stage.id)
        .order_by(Stage.numero_etapa)
    )
    out = []
    for stage, peso_total, total_registros, ultimo_peso in db.session.execute(stmt).all():
        row = stage.to_dict()
        row["peso_total"] = float(peso_total or 0)
        row["total_registros"] = int(total_registros or 0)
        row["ultimo_peso"] = utils.fmt_ts(ultimo_peso)
        out.append(row)
    return out


def _adjust_line_counter(linha_id: int, delta: int) -> None:
    counter = ProductionLine.num_subetapas
    if delta > 0:
        value = counter + delta
    else:
        value = case((counter + delta > 0, counter + delta), else_=0)
    db.session.execute(
        update(ProductionLine)
        .where(ProductionLine.id == linha_id)
        .values(num_subetapas=value)
        .execution_options(synchronize_session=False)
    )


def create_stage(order_id: int, descricao=None, item_codigo=None, criado_por=None):
    if not item_codigo:
        raise ValidationError("Campo obrigatório: item_codigo")

    order = db.session.get(ProductionOrder, order_id)
    if order is None:
        raise NotFoundError("Ordem não encontrada")

    numbers = db.session.scalars(
        select(Stage.numero_etapa).where(Stage.ordem_producao_id == order_id)
    ).all()
    numero = next_intermediate_number(numbers)
    if numero >= EXIT_NUMBER:
        raise ConflictError("Limite de subetapas intermediárias atingido para esta ordem")

    system = is_system_creator(criado_por)
    moment = utils.now()
    stage = Stage(
        ordem_producao_id=order_id,
        numero_etapa=numero,
        descricao=descricao or f"Etapa {numero}",
        item_codigo=item_codigo,
        criado_por=criado_por or SYSTEM_CREATOR,
        ativa=not system,
        data_criacao=moment,
        data_ativacao=None if system else moment,
    )
    try:
        with utils.atomic(db.session):
            db.session.add(stage)
            db.session.flush()
            _adjust_line_counter(order.linha_producao_id, +1)
    except IntegrityError:
        raise ConflictError("Etapa já existe para esta ordem")

    current_app.logger.info(
        "Subetapa %s criada na ordem %s por %s (ativa=%s)",
        numero, order.codigo, stage.criado_por, stage.ativa,
    )
    return stage.to_dict()


def _get_stage(stage_id: int, order_id: int | None = None) -> Stage:
    stage = db.session.get(Stage, stage_id)
    if stage is None or (order_id is not None and stage.ordem_producao_id != order_id):
        raise NotFoundError("Subetapa não encontrada")
    return stage


def _apply_order_transition(stage: Stage, event: StageEvent) -> None:
    order = stage.ordem
    others_active = db.session.scalar(
        select(func.count(Stage.id)).where(
            Stage.ordem_producao_id == order.id,
            Stage.id != stage.id,
            Stage.ativa.is_(True),
        )
    )
    current = OrderStatus(order.status)
    new = next_order_status(current, event, stage.papel, bool(stage.ativa), others_active or 0)
    if new is None:
        return
    order.status = new.value
    if new.terminal:
        order.data_fim = utils.now()
    current_app.logger.info(
        "Ordem %s: status %s -> %s (subetapa %s %s)",
        order.codigo, current.value, new.value, stage.numero_etapa, event.value,
    )


def activate_stage(stage_id: int, ativa=None, data_ativacao=None, order_id: int | None = None):
    active = utils.parse_flag(ativa, True)
    timestamp = utils.parse_timestamp(data_ativacao, "data_ativacao")
    if timestamp is None and active:
        timestamp = utils.now()

    with utils.atomic(db.session):
        stage = _get_stage(stage_id, order_id)
        stage.ativa = active
        stage.data_ativacao = timestamp
        db.session.flush()
        _apply_order_transition(stage, StageEvent.ACTIVATED)

    current_app.logger.info("Subetapa %s (id=%s) ativa=%s", stage.numero_etapa, stage.id, active)
    return stage.to_dict()


def conclude_stage(stage_id: int, ativa=None, data_conclusao=None, order_id: int | None = None):
    active = utils.parse_flag(ativa, False)
    timestamp = utils.parse_timestamp(data_conclusao, "data_conclusao") or utils.now()

    with utils.atomic(db.session):
        stage = _get_stage(stage_id, order_id)
        stage.ativa = active
        stage.data_conclusao = timestamp
        db.session.flush()
        _apply_order_transition(stage, StageEvent.CONCLUDED)

    current_app.logger.info("Subetapa %s (id=%s) concluída", stage.numero_etapa, stage.id)
    return stage.to_dict()


def delete_stage(stage_id: int):
    with utils.atomic(db.session):
        stage = _get_stage(stage_id)
        if stage.papel is not StageRole.INTERMEDIATE:
            raise InvalidStateError("As subetapas de entrada e saída do processo não podem ser deletadas")
        weights = db.session.scalar(
            select(func.count(WeightRecord.id)).where(WeightRecord.subetapa_id == stage.id)
        )
        if weights:
            raise ConflictError(
                "Não é possível deletar a subetapa pois existem registros de peso vinculados"
            )
        deleted = stage.to_dict()
        linha_id = stage.ordem.linha_producao_id
        db.session.delete(stage)
        db.session.flush()
        _adjust_line_counter(linha_id, -1)

    current_app.logger.info(
        "Subetapa %s (id=%s) deletada da ordem %s",
        deleted["numero_etapa"], deleted["id"], deleted["ordem_producao_id"],
    )
    return deleted


def list_positions():
    rows = db.session.scalars(select(LinePosition).order_by(LinePosition.descricao)).all()
    return [r.to_dict() for r in rows]
