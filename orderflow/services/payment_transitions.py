"""Payment status state machine.

Every allowed ``(current, target)`` pair is listed in ``TRANSITIONS`` with
the side effect it triggers. Pairs that are not listed are rejected, except
for a status staying the same, which is always a no-op.

    PENDING -> PAID       provisions a shipment
    PENDING -> FAILED
    FAILED  -> PENDING    retry
    PAID    -> REFUNDED
"""
from dataclasses import dataclass
import enum

from orderflow.models import PaymentStatus
from orderflow.services.errors import InvalidPaymentTransition


class SideEffect(enum.Enum):
    NONE = 'NONE'
    PROVISION_SHIPMENT = 'PROVISION_SHIPMENT'


@dataclass(frozen=True)
class PaymentTransition:
    current: PaymentStatus
    target: PaymentStatus
    side_effect: SideEffect = SideEffect.NONE

    @property
    def is_noop(self) -> bool:
        return self.current == self.target

    @property
    def provisions_shipment(self) -> bool:
        return self.side_effect == SideEffect.PROVISION_SHIPMENT


TRANSITIONS = {
    (PaymentStatus.PENDING, PaymentStatus.PAID):
        SideEffect.PROVISION_SHIPMENT,
    (PaymentStatus.PENDING, PaymentStatus.FAILED): SideEffect.NONE,
    (PaymentStatus.FAILED, PaymentStatus.PENDING): SideEffect.NONE,
    (PaymentStatus.PAID, PaymentStatus.REFUNDED): SideEffect.NONE,
}


def parse_payment_status(value) -> PaymentStatus:
    if isinstance(value, PaymentStatus):
        return value
    if isinstance(value, str) and value in PaymentStatus.__members__:
        return PaymentStatus[value]
    raise InvalidPaymentTransition(f'Unknown payment status: {value}')


def is_allowed(current: PaymentStatus, target: PaymentStatus) -> bool:
    return current == target or (current, target) in TRANSITIONS


def resolve_transition(current, target) -> PaymentTransition:
    current = parse_payment_status(current)
    target = parse_payment_status(target)

    if current == target:
        return PaymentTransition(current, target)

    side_effect = TRANSITIONS.get((current, target))
    if side_effect is None:
        raise InvalidPaymentTransition(
            f'Payment cannot move from {current.value} to {target.value}')
    return PaymentTransition(current, target, side_effect)
