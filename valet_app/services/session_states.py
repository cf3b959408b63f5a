# valet_app/services/session_states.py
"""
Parking session state machine as data.

Every lifecycle operation is one row: who may run it, which statuses it may start
from, and where it lands. A target of None means the session record is deleted
(customer rejecting a pending hand-over).

    pending → picked → parking_moving → parked → requested → moving ⇄ available → delivered
    cancelled from any pre-requested state; requested/moving back to parked on pickup cancel
"""

from typing import NamedTuple, Optional
from valet_app.models.parking_session import SessionStatus as S, TERMINAL_STATUSES
from valet_app.models.user import Role


class Transition(NamedTuple):
    actor: Role
    sources: frozenset
    target: Optional[S]
    verb: str            # used in error messages: "Cannot <verb>"


TRANSITIONS: dict[str, Transition] = {
    "accept_parking": Transition(
        Role.CUSTOMER, frozenset({S.PENDING}), S.PICKED, "accept parking"),
    "reject_parking": Transition(
        Role.CUSTOMER, frozenset({S.PENDING}), None, "reject parking"),
    "advance_parking_moving": Transition(
        Role.VALET, frozenset({S.PICKED, S.PARKING_MOVING}), S.PARKING_MOVING, "start moving to the spot"),
    "mark_parked": Transition(
        Role.VALET, frozenset({S.PICKED, S.PARKING_MOVING, S.PARKED}), S.PARKED, "mark as parked"),
    "cancel_session": Transition(
        Role.CUSTOMER, frozenset({S.PENDING, S.PICKED, S.PARKING_MOVING, S.PARKED}), S.CANCELLED,
        "cancel session"),
    "request_pickup": Transition(
        Role.CUSTOMER, frozenset({S.PARKED}), S.REQUESTED, "request pickup"),
    "cancel_pickup": Transition(
        Role.CUSTOMER, frozenset({S.REQUESTED, S.MOVING}), S.PARKED, "cancel pickup"),
    "advance_moving": Transition(
        Role.VALET, frozenset({S.REQUESTED, S.MOVING, S.AVAILABLE}), S.MOVING, "start moving the car"),
    "mark_available": Transition(
        Role.VALET, frozenset({S.REQUESTED, S.MOVING, S.AVAILABLE}), S.AVAILABLE, "mark as available"),
    "verify_delivery": Transition(
        Role.VALET, frozenset({S.REQUESTED, S.MOVING, S.AVAILABLE, S.IN_TRANSIT}), S.DELIVERED,
        "deliver"),
}

PENDING_PICKUP_STATUSES = frozenset({S.REQUESTED, S.MOVING, S.AVAILABLE})

# Valet status updates by target status (PUT /sessions/{id}/status)
VALET_STATUS_OPERATIONS = {
    S.PARKING_MOVING: "advance_parking_moving",
    S.PARKED: "mark_parked",
    S.MOVING: "advance_moving",
    S.AVAILABLE: "mark_available",
}


def is_terminal(status: S) -> bool:
    return status in TERMINAL_STATUSES

