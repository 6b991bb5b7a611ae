"""Production order management.

Orders get a code ``OP-YYYYMMDD-NNN`` that is sequential within the calendar
day of creation, and are created together with their two boundary stages
(1 = process entry, 99 = process exit) in a single transaction.

Two requests creating orders on the same day may read the same highest code.
On PostgreSQL the read is serialised with a transaction-scoped advisory lock
keyed on the day's prefix; on every backend the unique index on ``codigo``
rejects a duplicate and the whole creation is retried with a fresh read.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import db, utils
from .errors import (
    ConflictError,
    InfrastructureError,
    InvalidStateError,
    InvalidStatusError,
    NotFoundError,
    ValidationError,
)
from .lifecycle import ENTRY_NUMBER, EXIT_NUMBER, SYSTEM_CREATOR, OrderStatus
from .models import Operator, ProductionLine, ProductionOrder, Stage

ENTRY_DESCRIPTION = "Entrada do Processo"
EXIT_DESCRIPTION = "Saída do Processo"


def code_prefix(day) -> str:
    return f"OP-{day:%Y%m%d}-"


def next_order_code(prefix: str, existing_codes) -> str:
    highest = 0
    for code in existing_codes:
        suffix = (code or "")[len(prefix):]
        if code and code.startswith(prefix) and suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{prefix}{highest + 1:03d}"


def _lock_day(prefix: str) -> None:
    if db.session.get_bind().dialect.name == "postgresql":
        db.session.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:prefix))"),
            {"prefix": prefix},
        )


def list_orders():
    """All orders, newest first, with the line name and age in hours."""
    stmt = (
        select(ProductionOrder, ProductionLine.nome.label("linha_nome"))
        .join(ProductionLine, ProductionOrder.linha_producao_id == ProductionLine.id)
        .order_by(ProductionOrder.data_criacao.desc(), ProductionOrder.id.desc())
    )
    moment = utils.now()
    out = []
    for order, linha_nome in db.session.execute(stmt).all():
        row = order.to_dict()
        row["linha_nome"] = linha_nome
        age = (moment - order.data_criacao).total_seconds() / 3600 if order.data_criacao else 0.0
        row["horas_desde_criacao"] = round(age, 2)
        out.append(row)
    return out


def _insert_order(linha_id, item_entrada, item_saida, quantidade, observacoes):
    moment = utils.now()
    prefix = code_prefix(moment)
    _lock_day(prefix)
    codes = db.session.scalars(
        select(ProductionOrder.codigo).where(ProductionOrder.codigo.like(f"{prefix}%"))
    ).all()

    order = ProductionOrder(
        codigo=next_order_code(prefix, codes),
        linha_producao_id=linha_id,
        item_entrada=item_entrada,
        item_saida=item_saida,
        quantidade_inicial=quantidade,
        observacoes=observacoes or "",
        status=OrderStatus.ABERTA.value,
        data_criacao=moment,
    )
    order.subetapas = [
        Stage(
            numero_etapa=ENTRY_NUMBER,
            descricao=ENTRY_DESCRIPTION,
            item_codigo=item_entrada,
            criado_por=SYSTEM_CREATOR,
            ativa=False,
            data_criacao=moment,
        ),
        Stage(
            numero_etapa=EXIT_NUMBER,
            descricao=EXIT_DESCRIPTION,
            item_codigo=item_saida,
            criado_por=SYSTEM_CREATOR,
            ativa=False,
            data_criacao=moment,
        ),
    ]
    db.session.add(order)
    db.session.flush()
    return order


def create_order(linha_producao_id, item_entrada, item_saida, quantidade_inicial=None, observacoes=None):
    if not linha_producao_id or not item_entrada or not item_saida:
        raise ValidationError("Campos obrigatórios: linha_producao_id, item_entrada, item_saida")
    linha_id = utils.parse_int(linha_producao_id, "linha_producao_id")
    quantidade = utils.parse_float(quantidade_inicial, "quantidade_inicial") or 0.0
    if db.session.get(ProductionLine, linha_id) is None:
        raise NotFoundError(f"Linha de produção {linha_id} não encontrada")

    attempts = current_app.config.get("ORDER_CODE_MAX_RETRIES", 10)
    for attempt in range(1, attempts + 1):
        try:
            order = _insert_order(linha_id, item_entrada, item_saida, quantidade, observacoes)
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            current_app.logger.warning(
                "order code collision (attempt %s/%s): %s", attempt, attempts, e.orig
            )
            continue
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error("create_order error: %s", e)
            raise InfrastructureError("Erro ao criar ordem de produção")

        current_app.logger.info(
            "Ordem %s criada (linha=%s, %s -> %s) com subetapas 1 e 99",
            order.codigo, linha_id, item_entrada, item_saida,
        )
        return {"id": order.id, "codigo": order.codigo}

    raise ConflictError("Não foi possível gerar um código único para a ordem")


def get_order(order_id: int) -> ProductionOrder:
    order = db.session.get(ProductionOrder, order_id)
    if order is None:
        raise NotFoundError("Ordem não encontrada")
    return order


def update_status(order_id: int, status):
    new = OrderStatus.parse(status) if status else None
    if new is None:
        raise InvalidStatusError(
            "Status deve ser: " + ", ".join(s.value for s in OrderStatus)
        )

    with utils.atomic(db.session):
        order = get_order(order_id)
        current = OrderStatus(order.status)
        if current.terminal:
            if new is current:
                return order.to_dict()
            raise InvalidStateError(f"Ordem {order.codigo} está {current.value} e não pode ser reaberta")
        order.status = new.value
        if new.terminal:
            order.data_fim = utils.now()

    current_app.logger.info("Ordem %s: status %s -> %s", order.codigo, current.value, new.value)
    return order.to_dict()


def delete_order(order_id: int) -> str:
    """Delete an ABERTA order with its stages. Returns the freed code."""
    with utils.atomic(db.session):
        order = get_order(order_id)
        if order.status != OrderStatus.ABERTA.value:
            raise InvalidStateError("Só é possível deletar ordens com status ABERTA")
        codigo = order.codigo
        db.session.delete(order)

    current_app.logger.info("Ordem %s deletada", codigo)
    return codigo


def list_production_lines():
    rows = db.session.scalars(
        select(ProductionLine).where(ProductionLine.ativa.is_(True)).order_by(ProductionLine.nome)
    ).all()
    return [r.to_dict() for r in rows]


def list_operators():
    rows = db.session.scalars(select(Operator).order_by(func.lower(Operator.nome))).all()
    return [r.to_dict() for r in rows]
