"""Unit tests for the parking session lifecycle engine."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import AsyncMock, patch
from valet_app.errors import (
    Conflict, Forbidden, NotFound, InvalidArgument,
    InvalidCredential, CredentialExpired, NoChallengeIssued,
)
from valet_app.models.parking_session import ParkingSession, SessionStatus as S
from valet_app.services import session_service as svc
from valet_app.services.session_states import TRANSITIONS


@pytest.fixture(autouse=True)
def silent_notifier():
    with patch("valet_app.services.session_service.notifier.send_code", new_callable=AsyncMock) as mock_send:
        yield mock_send


class TestCreateSession:
    def test_creates_pending_session(self, db, valet_ctx, customer, vehicle, clock):
        session = svc.create_session(db, valet_ctx, vehicle.id, clock=clock)

        assert session.status == S.PENDING
        assert session.customer_id == customer.id
        assert session.valet_id == valet_ctx.user_id
        assert session.venue_name == "Grand Hotel"
        assert session.parked_at == clock()
        assert session.ticket_number.startswith("20260301-")

    def test_customer_cannot_create(self, db, customer_ctx, vehicle):
        with pytest.raises(Forbidden):
            svc.create_session(db, customer_ctx, vehicle.id)

    def test_unknown_vehicle(self, db, valet_ctx):
        with pytest.raises(NotFound):
            svc.create_session(db, valet_ctx, "7b0b5a8e-8f51-4f3b-9a55-0e8e3c1b2c11")

    def test_malformed_vehicle_id(self, db, valet_ctx):
        with pytest.raises(InvalidArgument):
            svc.create_session(db, valet_ctx, "abc")

    def test_customer_must_own_vehicle(self, db, valet_ctx, other_customer, vehicle):
        with pytest.raises(InvalidArgument):
            svc.create_session(db, valet_ctx, vehicle.id, customer_id=other_customer.id)

    def test_duplicate_live_session_conflicts(self, db, valet_ctx, vehicle):
        svc.create_session(db, valet_ctx, vehicle.id)
        with pytest.raises(Conflict):
            svc.create_session(db, valet_ctx, vehicle.id)
        assert db.query(ParkingSession).count() == 1

    @pytest.mark.parametrize("status", [S.PICKED, S.PARKING_MOVING, S.PARKED, S.REQUESTED, S.MOVING, S.AVAILABLE])
    def test_conflicts_in_every_live_status(self, db, valet_ctx, vehicle, make_session, status):
        make_session(status, vehicle=vehicle)
        with pytest.raises(Conflict):
            svc.create_session(db, valet_ctx, vehicle.id)

    @pytest.mark.parametrize("status", [S.DELIVERED, S.CANCELLED])
    def test_allowed_after_terminal(self, db, valet_ctx, vehicle, make_session, status):
        make_session(status, vehicle=vehicle)
        session = svc.create_session(db, valet_ctx, vehicle.id)
        assert session.status == S.PENDING

    def test_liveness_key_closes_race(self, db, valet_ctx, vehicle, make_session):
        # A live session the pre-check cannot see (status written as terminal but key still held)
        make_session(S.CANCELLED, vehicle=vehicle, active_vehicle_id=vehicle.id)
        with pytest.raises(Conflict):
            svc.create_session(db, valet_ctx, vehicle.id)

    def test_valet_without_profile_gets_empty_venue(self, db, vehicle):
        from valet_app.utils.auth_context import AuthContext
        ghost = AuthContext(user_id="2f8e9c4a-1111-4222-8333-944455556666", role="valet")
        session = svc.create_session(db, ghost, vehicle.id)
        assert session.venue_name == ""


class TestCustomerTransitions:
    def test_accept(self, db, customer_ctx, make_session):
        s = make_session(S.PENDING)
        assert svc.accept_parking(db, customer_ctx, s.id).status == S.PICKED

    def test_accept_twice_conflicts(self, db, customer_ctx, make_session):
        s = make_session(S.PENDING)
        svc.accept_parking(db, customer_ctx, s.id)
        with pytest.raises(Conflict):
            svc.accept_parking(db, customer_ctx, s.id)

    def test_accept_someone_elses_session(self, db, other_customer_ctx, make_session):
        s = make_session(S.PENDING)
        with pytest.raises(Forbidden):
            svc.accept_parking(db, other_customer_ctx, s.id)

    def test_valet_cannot_accept(self, db, valet_ctx, make_session):
        s = make_session(S.PENDING)
        with pytest.raises(Forbidden):
            svc.accept_parking(db, valet_ctx, s.id)

    def test_accept_missing_session(self, db, customer_ctx):
        with pytest.raises(NotFound):
            svc.accept_parking(db, customer_ctx, "7b0b5a8e-8f51-4f3b-9a55-0e8e3c1b2c11")

    def test_reject_deletes(self, db, customer_ctx, make_session):
        sid = make_session(S.PENDING).id
        svc.reject_parking(db, customer_ctx, sid)
        assert db.query(ParkingSession).filter(ParkingSession.id == sid).first() is None

    def test_reject_after_accept_conflicts(self, db, customer_ctx, make_session):
        s = make_session(S.PICKED)
        with pytest.raises(Conflict):
            svc.reject_parking(db, customer_ctx, s.id)
        assert db.query(ParkingSession).count() == 1

    @pytest.mark.parametrize("status", [S.PENDING, S.PICKED, S.PARKING_MOVING, S.PARKED])
    def test_cancel(self, db, customer_ctx, make_session, status):
        s = make_session(status)
        cancelled = svc.cancel_session(db, customer_ctx, s.id)
        assert cancelled.status == S.CANCELLED
        assert cancelled.active_vehicle_id is None

    @pytest.mark.parametrize("status", [S.REQUESTED, S.MOVING, S.AVAILABLE, S.DELIVERED, S.CANCELLED])
    def test_cancel_not_allowed(self, db, customer_ctx, make_session, status):
        s = make_session(status)
        with pytest.raises(Conflict):
            svc.cancel_session(db, customer_ctx, s.id)
        db.expire_all()
        assert db.get(ParkingSession, s.id).status == status


class TestPickup:
    @pytest.mark.asyncio
    async def test_request_pickup_issues_otp(self, db, customer_ctx, make_session, clock, silent_notifier):
        s = make_session(S.PARKED)
        session = await svc.request_pickup(db, customer_ctx, s.id, clock=clock)

        assert session.status == S.REQUESTED
        assert session.requested_at == clock()
        assert len(session.pickup_otp) == 6 and session.pickup_otp.isdigit()
        assert (session.otp_expires_at - clock()).total_seconds() == 30 * 60
        silent_notifier.assert_awaited_once_with(customer_ctx.phone, session.pickup_otp, "pickup")

    @pytest.mark.asyncio
    async def test_request_pickup_requires_parked(self, db, customer_ctx, make_session, silent_notifier):
        s = make_session(S.PICKED)
        with pytest.raises(Conflict):
            await svc.request_pickup(db, customer_ctx, s.id)
        silent_notifier.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [S.REQUESTED, S.MOVING])
    async def test_cancel_pickup_clears_otp(self, db, customer_ctx, valet_ctx, make_session, status):
        s = make_session(S.PARKED)
        session = await svc.request_pickup(db, customer_ctx, s.id)
        code = session.pickup_otp
        if status == S.MOVING:
            svc.advance_moving(db, valet_ctx, s.id)

        session = svc.cancel_pickup(db, customer_ctx, s.id)
        assert session.status == S.PARKED
        assert session.pickup_otp is None
        assert session.otp_expires_at is None
        assert session.requested_at is None

        with pytest.raises(NoChallengeIssued):
            svc.verify_delivery(db, valet_ctx, s.id, code)

    def test_cancel_pickup_once_available_conflicts(self, db, customer_ctx, make_session):
        s = make_session(S.AVAILABLE, pickup_otp="123456")
        with pytest.raises(Conflict):
            svc.cancel_pickup(db, customer_ctx, s.id)


class TestValetTransitions:
    @pytest.mark.parametrize("status", [S.PICKED, S.PARKING_MOVING])
    def test_parking_moving(self, db, valet_ctx, make_session, status):
        s = make_session(status)
        assert svc.advance_parking_moving(db, valet_ctx, s.id).status == S.PARKING_MOVING

    def test_parking_moving_from_pending_conflicts(self, db, valet_ctx, make_session):
        s = make_session(S.PENDING)
        with pytest.raises(Conflict):
            svc.advance_parking_moving(db, valet_ctx, s.id)

    def test_mark_parked_records_spot(self, db, valet_ctx, make_session):
        s = make_session(S.PARKING_MOVING)
        session = svc.mark_parked(db, valet_ctx, s.id, "B7")
        assert session.status == S.PARKED
        assert session.parking_spot == "B7"

    def test_mark_parked_again_keeps_spot_unless_given(self, db, valet_ctx, make_session):
        s = make_session(S.PARKED, parking_spot="B7")
        assert svc.mark_parked(db, valet_ctx, s.id).parking_spot == "B7"
        assert svc.mark_parked(db, valet_ctx, s.id, "C1").parking_spot == "C1"

    def test_customer_cannot_mark_parked(self, db, customer_ctx, make_session):
        s = make_session(S.PICKED)
        with pytest.raises(Forbidden):
            svc.mark_parked(db, customer_ctx, s.id)

    def test_any_valet_may_progress(self, db, make_session):
        from valet_app.utils.auth_context import AuthContext
        other_valet = AuthContext(user_id="2f8e9c4a-1111-4222-8333-944455556666", role="valet")
        s = make_session(S.PICKED)
        assert svc.mark_parked(db, other_valet, s.id).status == S.PARKED

    def test_moving_available_toggle(self, db, valet_ctx, make_session):
        s = make_session(S.REQUESTED, pickup_otp="123456")
        assert svc.advance_moving(db, valet_ctx, s.id).status == S.MOVING
        assert svc.mark_available(db, valet_ctx, s.id).status == S.AVAILABLE
        assert svc.advance_moving(db, valet_ctx, s.id).status == S.MOVING

    @pytest.mark.parametrize("status", [S.PENDING, S.PARKED, S.DELIVERED, S.CANCELLED])
    def test_moving_needs_pickup_request(self, db, valet_ctx, make_session, status):
        s = make_session(status)
        with pytest.raises(Conflict):
            svc.advance_moving(db, valet_ctx, s.id)
        with pytest.raises(Conflict):
            svc.mark_available(db, valet_ctx, s.id)

    def test_update_status_dispatch(self, db, valet_ctx, make_session):
        s = make_session(S.PICKED)
        assert svc.update_status(db, valet_ctx, s.id, "parking_moving").status == S.PARKING_MOVING
        session = svc.update_status(db, valet_ctx, s.id, "parked", "D4")
        assert session.status == S.PARKED
        assert session.parking_spot == "D4"

    @pytest.mark.parametrize("status", ["parking_moving", "moving", "available"])
    def test_update_status_rejects_spot_for_other_targets(self, db, valet_ctx, make_session, status):
        start = S.PICKED if status == "parking_moving" else S.REQUESTED
        s = make_session(start)
        with pytest.raises(InvalidArgument):
            svc.update_status(db, valet_ctx, s.id, status, "B7")
        db.expire_all()
        unchanged = db.get(ParkingSession, s.id)
        assert unchanged.status == start
        assert unchanged.parking_spot is None

    @pytest.mark.parametrize("status", ["delivered", "cancelled", "requested", "flying"])
    def test_update_status_rejects_other_targets(self, db, valet_ctx, make_session, status):
        s = make_session(S.REQUESTED)
        with pytest.raises(InvalidArgument):
            svc.update_status(db, valet_ctx, s.id, status)


class TestVerifyDelivery:
    @pytest.mark.asyncio
    async def test_delivers_with_correct_code(self, db, customer_ctx, valet_ctx, make_session, clock):
        s = make_session(S.PARKED)
        code = (await svc.request_pickup(db, customer_ctx, s.id, clock=clock)).pickup_otp
        clock.advance(minutes=10)

        session = svc.verify_delivery(db, valet_ctx, s.id, code, clock=clock)
        assert session.status == S.DELIVERED
        assert session.delivered_at == clock()
        assert session.pickup_otp is None
        assert session.otp_expires_at is None
        assert session.active_vehicle_id is None

    @pytest.mark.asyncio
    async def test_repeat_fails_no_challenge(self, db, customer_ctx, valet_ctx, make_session):
        s = make_session(S.PARKED)
        code = (await svc.request_pickup(db, customer_ctx, s.id)).pickup_otp
        svc.verify_delivery(db, valet_ctx, s.id, code)

        with pytest.raises(NoChallengeIssued):
            svc.verify_delivery(db, valet_ctx, s.id, code)

    def test_wrong_code(self, db, valet_ctx, make_session, clock):
        s = make_session(S.REQUESTED, pickup_otp="123456", otp_expires_at=clock.now.replace(hour=23))
        with pytest.raises(InvalidCredential):
            svc.verify_delivery(db, valet_ctx, s.id, "000000", clock=clock)

    @pytest.mark.asyncio
    async def test_expired_code_leaves_status(self, db, customer_ctx, valet_ctx, make_session, clock):
        s = make_session(S.PARKED)
        code = (await svc.request_pickup(db, customer_ctx, s.id, clock=clock)).pickup_otp
        svc.mark_available(db, valet_ctx, s.id)
        clock.advance(minutes=31)

        with pytest.raises(CredentialExpired):
            svc.verify_delivery(db, valet_ctx, s.id, code, clock=clock)
        db.expire_all()
        assert db.get(ParkingSession, s.id).status == S.AVAILABLE

    def test_from_pending_fails(self, db, valet_ctx, make_session):
        s = make_session(S.PENDING)
        with pytest.raises(NoChallengeIssued):
            svc.verify_delivery(db, valet_ctx, s.id, "123456")
        db.expire_all()
        assert db.get(ParkingSession, s.id).status == S.PENDING

    def test_stray_code_on_wrong_status_conflicts(self, db, valet_ctx, make_session, clock):
        s = make_session(S.PARKED, pickup_otp="123456", otp_expires_at=clock.now.replace(hour=23))
        with pytest.raises(Conflict):
            svc.verify_delivery(db, valet_ctx, s.id, "123456", clock=clock)

    def test_in_transit_accepted(self, db, valet_ctx, make_session, clock):
        s = make_session(S.IN_TRANSIT, pickup_otp="123456", otp_expires_at=clock.now.replace(hour=23))
        assert svc.verify_delivery(db, valet_ctx, s.id, "123456", clock=clock).status == S.DELIVERED

    def test_customer_cannot_verify(self, db, customer_ctx, make_session):
        s = make_session(S.REQUESTED, pickup_otp="123456")
        with pytest.raises(Forbidden):
            svc.verify_delivery(db, customer_ctx, s.id, "123456")


class TestFullScenario:
    @pytest.mark.asyncio
    async def test_check_in_to_delivery(self, db, customer_ctx, valet_ctx, vehicle, clock):
        def assert_no_second_session():
            with pytest.raises(Conflict):
                svc.create_session(db, valet_ctx, vehicle.id, clock=clock)

        session = svc.create_session(db, valet_ctx, vehicle.id, clock=clock)
        sid = session.id
        assert session.status == S.PENDING
        assert_no_second_session()

        assert svc.accept_parking(db, customer_ctx, sid).status == S.PICKED
        assert_no_second_session()

        session = svc.mark_parked(db, valet_ctx, sid, "A12")
        assert session.status == S.PARKED
        assert session.parking_spot == "A12"
        assert_no_second_session()

        session = await svc.request_pickup(db, customer_ctx, sid, clock=clock)
        assert session.status == S.REQUESTED
        code = session.pickup_otp
        assert_no_second_session()

        clock.advance(minutes=3)
        session = svc.verify_delivery(db, valet_ctx, sid, code, clock=clock)
        assert session.status == S.DELIVERED
        assert session.delivered_at == clock()

        # Vehicle is free again
        assert svc.create_session(db, valet_ctx, vehicle.id, clock=clock).status == S.PENDING


class TestTransitionTable:
    def test_only_listed_sources_accepted(self, db, customer_ctx, valet_ctx, make_session):
        """Every operation fails from every status outside its source set."""
        simple = {
            "accept_parking": (svc.accept_parking, customer_ctx),
            "cancel_session": (svc.cancel_session, customer_ctx),
            "cancel_pickup": (svc.cancel_pickup, customer_ctx),
            "advance_parking_moving": (svc.advance_parking_moving, valet_ctx),
            "mark_parked": (svc.mark_parked, valet_ctx),
            "advance_moving": (svc.advance_moving, valet_ctx),
            "mark_available": (svc.mark_available, valet_ctx),
        }
        for name, (operation, actor) in simple.items():
            rule = TRANSITIONS[name]
            for status in S:
                s = make_session(status)
                if status in rule.sources:
                    assert operation(db, actor, s.id).status == rule.target
                else:
                    with pytest.raises(Conflict):
                        operation(db, actor, s.id)
