from __future__ import annotations
"""Small finite state machine helper for status lifecycles.

The graph maps each status to the set of statuses it may move to:

    from repairshop.utils.fsm import TransitionValidator
    fsm = TransitionValidator({
        'pending': {'pending', 'in_process'},
        'in_process': {'in_process', 'shipped'},
    })
    fsm.assert_can_transition(order.status, 'shipped')

Refused transitions raise InvalidTransition (HTTP 400 through the error handler).
"""
from typing import Dict, Iterable, Set
from repairshop.errors import InvalidTransition


class TransitionValidator:
    def __init__(self, graph: Dict[str, Iterable[str]], field_name: str = 'status'):
        self.graph: Dict[str, Set[str]] = {k: set(v) for k, v in graph.items()}
        self.field_name = field_name

    def allowed_targets(self, current: str) -> Set[str]:
        return set(self.graph.get(current, set()))

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.graph.get(current, set())

    def assert_can_transition(self, current: str, target: str):
        if not self.can_transition(current, target):
            raise InvalidTransition(f"Invalid {self.field_name} transition {current} -> {target}")
        return True

__all__ = ['TransitionValidator']
