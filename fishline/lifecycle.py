"""Order status machine and stage roles.

A production order moves through::

    ABERTA --(stage 1 activated)--> EM_ANDAMENTO
    EM_ANDAMENTO --(stage 99 concluded, no other stage active)--> FECHADA
    ABERTA / EM_ANDAMENTO --(explicit request)--> CANCELADA

FECHADA and CANCELADA are terminal.  Stage mutations never touch the order
status directly; they call :func:`next_order_status` with the event that just
happened and the state of the sibling stages, and apply whatever it returns.
"""

from __future__ import annotations

import enum
from typing import Optional

ENTRY_NUMBER = 1
EXIT_NUMBER = 99
SYSTEM_CREATOR = "Sistema"


class OrderStatus(str, enum.Enum):
    ABERTA = "ABERTA"
    EM_ANDAMENTO = "EM_ANDAMENTO"
    FECHADA = "FECHADA"
    CANCELADA = "CANCELADA"

    @property
    def terminal(self) -> bool:
        return self in (OrderStatus.FECHADA, OrderStatus.CANCELADA)

    @classmethod
    def parse(cls, value) -> Optional["OrderStatus"]:
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


class StageRole(enum.Enum):
    ENTRY = "ENTRY"
    INTERMEDIATE = "INTERMEDIATE"
    EXIT = "EXIT"

    @classmethod
    def of(cls, numero_etapa: int) -> "StageRole":
        if numero_etapa == ENTRY_NUMBER:
            return cls.ENTRY
        if numero_etapa == EXIT_NUMBER:
            return cls.EXIT
        return cls.INTERMEDIATE


class StageEvent(enum.Enum):
    ACTIVATED = "ACTIVATED"
    CONCLUDED = "CONCLUDED"


def is_system_creator(creator: Optional[str]) -> bool:
    return not creator or creator.strip().lower() == SYSTEM_CREATOR.lower()


def next_intermediate_number(existing_numbers) -> int:
    """1 + highest stage number, ignoring the exit stage."""
    numbers = [n for n in existing_numbers if n != EXIT_NUMBER]
    return max(numbers, default=0) + 1


def next_order_status(
    current: OrderStatus,
    event: StageEvent,
    role: StageRole,
    stage_active: bool,
    other_active_stages: int,
) -> Optional[OrderStatus]:
    """Return the status the order must move to, or None to leave it as is."""
    if current.terminal:
        return None

    if event is StageEvent.ACTIVATED and role is StageRole.ENTRY and stage_active:
        if current is OrderStatus.EM_ANDAMENTO:
            return None
        return OrderStatus.EM_ANDAMENTO

    if (
        event is StageEvent.CONCLUDED
        and role is StageRole.EXIT
        and not stage_active
        and other_active_stages == 0
    ):
        return OrderStatus.FECHADA

    return None
