import pytest

from fishline.lifecycle import (
    OrderStatus,
    StageEvent,
    StageRole,
    is_system_creator,
    next_intermediate_number,
    next_order_status,
)

ABERTA = OrderStatus.ABERTA
EM_ANDAMENTO = OrderStatus.EM_ANDAMENTO
FECHADA = OrderStatus.FECHADA
CANCELADA = OrderStatus.CANCELADA


def test_stage_roles():
    assert StageRole.of(1) is StageRole.ENTRY
    assert StageRole.of(99) is StageRole.EXIT
    assert StageRole.of(2) is StageRole.INTERMEDIATE
    assert StageRole.of(98) is StageRole.INTERMEDIATE


@pytest.mark.parametrize("numbers, expected", [
    ([1, 99], 2),
    ([1, 2, 3, 99], 4),
    ([1, 5, 99], 6),
    ([99], 1),
    ([], 1),
])
def test_next_intermediate_number(numbers, expected):
    assert next_intermediate_number(numbers) == expected


def test_status_parse():
    assert OrderStatus.parse(" fechada ") is FECHADA
    assert OrderStatus.parse("PAUSADA") is None
    assert FECHADA.terminal and CANCELADA.terminal
    assert not ABERTA.terminal and not EM_ANDAMENTO.terminal


@pytest.mark.parametrize("creator, system", [
    (None, True),
    ("", True),
    ("sistema", True),
    (" Sistema ", True),
    ("ana", False),
])
def test_is_system_creator(creator, system):
    assert is_system_creator(creator) is system


def test_entry_activation_starts_open_order():
    assert next_order_status(ABERTA, StageEvent.ACTIVATED, StageRole.ENTRY, True, 0) is EM_ANDAMENTO
    assert next_order_status(EM_ANDAMENTO, StageEvent.ACTIVATED, StageRole.ENTRY, True, 3) is None
    assert next_order_status(ABERTA, StageEvent.ACTIVATED, StageRole.ENTRY, False, 0) is None


@pytest.mark.parametrize("role", [StageRole.INTERMEDIATE, StageRole.EXIT])
def test_other_activations_do_nothing(role):
    assert next_order_status(ABERTA, StageEvent.ACTIVATED, role, True, 0) is None


def test_exit_conclusion_closes_only_when_nothing_is_active():
    assert next_order_status(EM_ANDAMENTO, StageEvent.CONCLUDED, StageRole.EXIT, False, 0) is FECHADA
    assert next_order_status(ABERTA, StageEvent.CONCLUDED, StageRole.EXIT, False, 0) is FECHADA
    assert next_order_status(EM_ANDAMENTO, StageEvent.CONCLUDED, StageRole.EXIT, False, 1) is None
    assert next_order_status(EM_ANDAMENTO, StageEvent.CONCLUDED, StageRole.EXIT, True, 0) is None
    assert next_order_status(EM_ANDAMENTO, StageEvent.CONCLUDED, StageRole.INTERMEDIATE, False, 0) is None


@pytest.mark.parametrize("terminal", [FECHADA, CANCELADA])
@pytest.mark.parametrize("event, role, active", [
    (StageEvent.ACTIVATED, StageRole.ENTRY, True),
    (StageEvent.CONCLUDED, StageRole.EXIT, False),
])
def test_terminal_orders_never_move(terminal, event, role, active):
    assert next_order_status(terminal, event, role, active, 0) is None
