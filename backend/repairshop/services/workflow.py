"""Order status workflow.

Orders move through a fixed sequence:

    pending -> in_process -> shipped -> completed -> closed

Two named policies shape the engine (both read from app config):

ORDER_CLOSED_POLICY
  terminal  closed has no successor (default)
  wrap      closed suggests pending again, and forward transitions may reopen

ORDER_TRANSITION_POLICY
  free      staff may set any of the five statuses (default)
  forward   the target must be the current status or a later one

A scan resolves a barcode or order number to one order and suggests its next
status; confirming the suggestion goes through apply_status_update like any
other status change.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Set

from repairshop.errors import NotFound, ValidationError
from repairshop.models.order import Order
from repairshop.repositories.base import OrderRepository
from repairshop.utils.fsm import TransitionValidator
from repairshop.utils.timeutil import utcnow
from repairshop.utils.validation import validate_status

logger = logging.getLogger(__name__)

CLOSED_TERMINAL = 'terminal'
CLOSED_WRAP = 'wrap'
CLOSED_POLICIES = (CLOSED_TERMINAL, CLOSED_WRAP)

TRANSITION_FREE = 'free'
TRANSITION_FORWARD = 'forward'
TRANSITION_POLICIES = (TRANSITION_FREE, TRANSITION_FORWARD)

_SUCCESSOR = {
    current: following
    for current, following in zip(Order.STATUS_FLOW, Order.STATUS_FLOW[1:])
}


def next_status(current: Any, closed_policy: str = CLOSED_TERMINAL) -> Optional[str]:
    """Suggested status after current.

    closed yields None under the terminal policy and pending under wrap.
    Anything unrecognized falls back to pending.
    """
    if current == Order.STATUS_CLOSED:
        return Order.STATUS_PENDING if closed_policy == CLOSED_WRAP else None
    return _SUCCESSOR.get(current, Order.STATUS_PENDING)


def build_transition_graph(transitions: str, closed: str) -> Dict[str, Set[str]]:
    flow = Order.STATUS_FLOW
    if transitions == TRANSITION_FREE:
        return {s: set(flow) for s in flow}
    graph = {s: set(flow[i:]) for i, s in enumerate(flow)}
    if closed == CLOSED_WRAP:
        graph[Order.STATUS_CLOSED].add(Order.STATUS_PENDING)
    return graph


@dataclass(frozen=True)
class WorkflowPolicy:
    closed: str = CLOSED_TERMINAL
    transitions: str = TRANSITION_FREE

    def __post_init__(self):
        if self.closed not in CLOSED_POLICIES:
            raise ValueError(f"ORDER_CLOSED_POLICY must be one of {', '.join(CLOSED_POLICIES)}, got {self.closed!r}")
        if self.transitions not in TRANSITION_POLICIES:
            raise ValueError(f"ORDER_TRANSITION_POLICY must be one of {', '.join(TRANSITION_POLICIES)}, got {self.transitions!r}")

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'WorkflowPolicy':
        return cls(
            closed=str(config.get('ORDER_CLOSED_POLICY') or CLOSED_TERMINAL).lower(),
            transitions=str(config.get('ORDER_TRANSITION_POLICY') or TRANSITION_FREE).lower(),
        )


@dataclass
class ScanResult:
    order: Order
    suggested_status: Optional[str]
    # further orders sharing the code, in tie-break order
    others: list = field(default_factory=list)


class OrderWorkflow:
    def __init__(self, repository: OrderRepository, policy: Optional[WorkflowPolicy] = None):
        self.repository = repository
        self.policy = policy or WorkflowPolicy()
        self.fsm = TransitionValidator(build_transition_graph(self.policy.transitions, self.policy.closed))

    def next_status(self, current: Any) -> Optional[str]:
        return next_status(current, self.policy.closed)

    def resolve_order_by_scan(self, code: Any) -> ScanResult:
        """Find the order behind a scanned barcode or typed order number.

        The first match by created_at, then id, wins. Raises NotFound when
        nothing matches and ValidationError for blank input.
        """
        if not isinstance(code, str) or not code.strip():
            raise ValidationError('code required')
        code = code.strip()
        matches = self.repository.find_by_barcode(code)
        if not matches:
            logger.info('Scan %r matched no order', code)
            raise NotFound(f'No order matches {code}')
        order = matches[0]
        suggested = self.next_status(order.status)
        logger.info('Scan %r resolved to order %s (%s -> %s)', code, order.order_number, order.status, suggested)
        return ScanResult(order=order, suggested_status=suggested, others=matches[1:])

    def check_transition(self, current: Any, target: Any) -> str:
        target = validate_status(target, Order.ALL_STATUSES)
        # legacy rows with an unknown status may always be corrected
        if current in Order.ALL_STATUSES:
            self.fsm.assert_can_transition(current, target)
        return target

    def transition(self, order: Order, new_status: Any) -> Order:
        """Validate and set a new status on order without persisting it."""
        order.status = self.check_transition(order.status, new_status)
        order.updated_at = utcnow()
        return order

    def apply_status_update(self, order_id: int, new_status: Any) -> Order:
        target = validate_status(new_status, Order.ALL_STATUSES)
        order = self.repository.find_by_id(order_id)
        if order is None:
            raise NotFound(f'Order {order_id} not found')
        previous = order.status
        self.transition(order, target)
        self.repository.save(order)
        logger.info('Order %s status %s -> %s', order.order_number, previous, order.status)
        return order


__all__ = [
    'next_status', 'build_transition_graph', 'WorkflowPolicy', 'ScanResult', 'OrderWorkflow',
    'CLOSED_TERMINAL', 'CLOSED_WRAP', 'TRANSITION_FREE', 'TRANSITION_FORWARD',
]
