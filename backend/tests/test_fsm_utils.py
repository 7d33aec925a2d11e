from decimal import Decimal
import pytest

from repairshop.config.settings import normalize_pagination
from repairshop.errors import InvalidStatus, InvalidTransition, ValidationError
from repairshop.services.workflow import build_transition_graph
from repairshop.utils.fsm import TransitionValidator
from repairshop.utils.validation import (
    DB_INT_MAX, MAX_AMOUNT, cents_to_amount, optional_str, parse_amount_cents, parse_bool, parse_int, validate_status,
)


def test_transition_validator_allows_valid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    assert fsm.assert_can_transition('A', 'B') is True
    assert fsm.allowed_targets('A') == {'B'}


def test_transition_validator_blocks_invalid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    with pytest.raises(InvalidTransition):
        fsm.assert_can_transition('A', 'C')
    with pytest.raises(InvalidTransition):
        fsm.assert_can_transition('Z', 'A')


def test_forward_graph_shape():
    graph = build_transition_graph('forward', 'terminal')
    assert graph['pending'] == {'pending', 'in_process', 'shipped', 'completed', 'closed'}
    assert graph['closed'] == {'closed'}
    assert 'pending' in build_transition_graph('forward', 'wrap')['closed']
    assert build_transition_graph('free', 'terminal')['closed'] == graph['pending']


def test_validate_status():
    assert validate_status('shipped', ('pending', 'shipped')) == 'shipped'
    for bad in ('bogus_status', '', None, 3, 'SHIPPED'):
        with pytest.raises(InvalidStatus):
            validate_status(bad, ('pending', 'shipped'))


def test_amount_parsing():
    assert parse_amount_cents(150, 'price') == 15000
    assert parse_amount_cents('79.99', 'price') == 7999
    assert parse_amount_cents(Decimal('0.005'), 'price') == 1
    assert cents_to_amount(7999) == 79.99
    assert cents_to_amount(None) == 0
    for bad in (-1, 'ten', None, True, 'NaN'):
        with pytest.raises(ValidationError):
            parse_amount_cents(bad, 'price')


def test_int_and_bool_parsing():
    assert parse_int('3', 'quantity', minimum=1) == 3
    with pytest.raises(ValidationError):
        parse_int('0', 'quantity', minimum=1)
    with pytest.raises(ValidationError):
        parse_int(True, 'quantity')
    assert parse_bool('Yes', 'flag') is True
    assert parse_bool('0', 'flag') is False
    with pytest.raises(ValidationError):
        parse_bool('maybe', 'flag')


def test_amount_upper_bound():
    assert parse_amount_cents(MAX_AMOUNT, 'price') == int(MAX_AMOUNT) * 100
    for huge in ('1e20', '1e30', 1e30, '1E+999999', MAX_AMOUNT + Decimal('0.01')):
        with pytest.raises(ValidationError):
            parse_amount_cents(huge, 'price')


def test_int_parsing_rejects_fractions_and_overflow():
    assert parse_int(2.0, 'quantity') == 2
    assert parse_int(DB_INT_MAX, 'id') == DB_INT_MAX
    for bad in (1.9, 0.5, float('inf'), float('nan'), DB_INT_MAX + 1, [1], '1.5'):
        with pytest.raises(ValidationError):
            parse_int(bad, 'quantity')
    with pytest.raises(ValidationError):
        parse_int(11, 'quantity', maximum=10)


def test_optional_str():
    assert optional_str(None, 'notes') is None
    assert optional_str('', 'notes') == ''
    for bad in ({'x': 1}, ['a'], 3, True):
        with pytest.raises(ValidationError):
            optional_str(bad, 'notes')


def test_pagination_bounds():
    assert normalize_pagination(None, None) == (50, 0)
    assert normalize_pagination('500', '-3') == (200, 0)
    assert normalize_pagination('0', '10') == (1, 10)
    with pytest.raises(ValueError):
        normalize_pagination('ten', None)
