"""Yield (rendimento) of an order's active stages.

Stage totals are summed from the weight ledger, then two window functions
over the stage number give each row its reference weights:

- ``LAG(peso_total)``         -> previous stage, for ``rendimento_etapa``
- ``FIRST_VALUE(peso_total)`` -> first stage, for ``rendimento_geral``

Percentages are rounded to 2 decimals and are null when the reference
weight is missing or zero.  Nothing is written; the same ledger state always
yields the same rows.
"""

from __future__ import annotations

from sqlalchemy import func, select

from . import db
from .models import Stage, WeightRecord


def percentage(value, reference):
    if reference is None or reference <= 0:
        return None
    return round(float(value) / float(reference) * 100, 2)


def compute_yield(order_id: int):
    totals = (
        select(
            Stage.numero_etapa,
            Stage.descricao,
            Stage.item_codigo,
            func.coalesce(func.sum(WeightRecord.peso_kg), 0).label("peso_total"),
        )
        .outerjoin(WeightRecord, WeightRecord.subetapa_id == Stage.id)
        .where(Stage.ordem_producao_id == order_id, Stage.ativa.is_(True))
        .group_by(Stage.id, Stage.numero_etapa, Stage.descricao, Stage.item_codigo)
        .cte("pesos_por_etapa")
    )
    by_number = totals.c.numero_etapa
    stmt = select(
        totals.c.numero_etapa,
        totals.c.descricao,
        totals.c.item_codigo,
        totals.c.peso_total,
        func.lag(totals.c.peso_total).over(order_by=by_number).label("peso_anterior"),
        func.first_value(totals.c.peso_total).over(order_by=by_number).label("peso_inicial"),
    ).order_by(by_number)

    out = []
    for row in db.session.execute(stmt).mappings():
        peso_total = float(row["peso_total"] or 0)
        out.append({
            "numero_etapa": row["numero_etapa"],
            "descricao": row["descricao"],
            "item_codigo": row["item_codigo"],
            "peso_total": peso_total,
            "rendimento_etapa": percentage(peso_total, row["peso_anterior"]),
            "rendimento_geral": percentage(peso_total, row["peso_inicial"]),
        })
    return out
