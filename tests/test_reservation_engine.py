from datetime import timedelta, timezone
from decimal import Decimal
import uuid

import pytest

from conftest import NOW, tomorrow_at
from studyroom.core.exceptions import (
    AlreadyCheckedIn,
    AlreadyPaid,
    AlreadyTerminal,
    InvalidAmount,
    InvalidWindow,
    NotCheckedIn,
    NotPaid,
    NotRefundable,
    OutsideCheckInWindow,
    OutsideOpeningHours,
    ReservationNotFound,
    SeatNotFound,
    SeatUnavailable,
    TimeConflict,
    UserNotFound,
)
from studyroom.models import PaymentStatus, ReservationStatus, RoomStatus, SeatStatus


def book(engine, user, seat, start_hour, end_hour, note=None):
    return engine.create_reservation(user.id, seat.id, tomorrow_at(start_hour), tomorrow_at(end_hour), note)


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


def test_create_reservation(engine, user, normal_seat, db):
    reservation = book(engine, user, normal_seat, 9, 10, note="exam prep")

    assert reservation.status == ReservationStatus.ACTIVE
    assert reservation.payment_status == PaymentStatus.PENDING
    assert reservation.total_amount == Decimal("10.00")
    assert reservation.reservation_code.startswith("R")
    assert reservation.created_at == NOW
    assert reservation.note == "exam prep"
    # Seat status is left alone unless auto-sync is enabled
    db.refresh(normal_seat)
    assert normal_seat.status == SeatStatus.AVAILABLE


def test_vip_seat_costs_one_and_a_half_times(engine, user, vip_seat):
    assert book(engine, user, vip_seat, 9, 11).total_amount == Decimal("30.00")


def test_reservation_codes_are_unique(engine, user, normal_seat):
    codes = {book(engine, user, normal_seat, h, h + 1).reservation_code for h in range(9, 14)}
    assert len(codes) == 5


def test_rejects_inverted_window(engine, user, normal_seat):
    with pytest.raises(InvalidWindow):
        book(engine, user, normal_seat, 10, 9)
    with pytest.raises(InvalidWindow):
        book(engine, user, normal_seat, 10, 10)


def test_rejects_start_in_the_past(engine, user, normal_seat):
    with pytest.raises(InvalidWindow):
        engine.create_reservation(user.id, normal_seat.id, NOW - timedelta(hours=1), NOW + timedelta(hours=1))


def test_rejects_offset_aware_timestamps(engine, user, normal_seat):
    start = tomorrow_at(9).replace(tzinfo=timezone.utc)
    with pytest.raises(InvalidWindow):
        engine.create_reservation(user.id, normal_seat.id, start, start + timedelta(hours=1))

    reservation = book(engine, user, normal_seat, 9, 10)
    with pytest.raises(InvalidWindow):
        engine.extend(reservation.id, tomorrow_at(11).replace(tzinfo=timezone.utc))
    with pytest.raises(InvalidWindow):
        engine.update(reservation.id, start, start + timedelta(hours=2))
    assert engine.get(reservation.id).end_time == tomorrow_at(10)


def test_rejects_unknown_or_inactive_user(engine, user, inactive_user, normal_seat):
    with pytest.raises(UserNotFound):
        engine.create_reservation(uuid.uuid4(), normal_seat.id, tomorrow_at(9), tomorrow_at(10))
    with pytest.raises(UserNotFound):
        book(engine, inactive_user, normal_seat, 9, 10)


def test_rejects_unknown_seat(engine, user):
    with pytest.raises(SeatNotFound):
        engine.create_reservation(user.id, uuid.uuid4(), tomorrow_at(9), tomorrow_at(10))


def test_rejects_out_of_order_seat(engine, user, normal_seat, db):
    normal_seat.status = SeatStatus.OUT_OF_ORDER
    db.commit()
    with pytest.raises(SeatUnavailable):
        book(engine, user, normal_seat, 9, 10)


@pytest.mark.parametrize("room_status", [RoomStatus.MAINTENANCE, RoomStatus.CLOSED])
def test_rejects_seat_in_unavailable_room(engine, user, normal_seat, room, db, room_status):
    room.status = room_status
    db.commit()
    with pytest.raises(SeatUnavailable):
        book(engine, user, normal_seat, 9, 10)


def test_opening_hours_only_checked_when_enabled(make_engine, db, user, normal_seat):
    lenient = make_engine(db)
    strict = make_engine(db, ENFORCE_OPENING_HOURS=True)

    # Room is open 08:00-22:00
    with pytest.raises(OutsideOpeningHours):
        book(strict, user, normal_seat, 21, 23)
    assert book(lenient, user, normal_seat, 21, 23).status == ReservationStatus.ACTIVE
    assert book(strict, user, normal_seat, 8, 10).status == ReservationStatus.ACTIVE


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------


def test_overlapping_booking_is_rejected(engine, user, normal_seat):
    book(engine, user, normal_seat, 9, 11)
    with pytest.raises(TimeConflict):
        book(engine, user, normal_seat, 10, 12)
    with pytest.raises(TimeConflict):
        book(engine, user, normal_seat, 8, 12)
    assert len(engine.by_seat(normal_seat.id)) == 1


def test_back_to_back_bookings_do_not_conflict(engine, user, normal_seat):
    first = book(engine, user, normal_seat, 9, 10)
    second = book(engine, user, normal_seat, 10, 11)
    assert first.status == second.status == ReservationStatus.ACTIVE


def test_same_window_on_another_seat_is_fine(engine, user, normal_seat, vip_seat):
    book(engine, user, normal_seat, 9, 10)
    assert book(engine, user, vip_seat, 9, 10).status == ReservationStatus.ACTIVE


def test_cancelled_reservation_frees_its_window(engine, user, normal_seat):
    first = book(engine, user, normal_seat, 9, 10)
    engine.cancel(first.id)
    assert not engine.has_time_conflict(normal_seat.id, tomorrow_at(9), tomorrow_at(10))
    assert book(engine, user, normal_seat, 9, 10).status == ReservationStatus.ACTIVE


def test_has_time_conflict_can_exclude_a_reservation(engine, user, normal_seat):
    existing = book(engine, user, normal_seat, 9, 10)
    assert engine.has_time_conflict(normal_seat.id, tomorrow_at(9, 30), tomorrow_at(10, 30))
    assert not engine.has_time_conflict(
        normal_seat.id, tomorrow_at(9, 30), tomorrow_at(10, 30), existing.id
    )
    overlapping = engine.conflicting_reservations(normal_seat.id, tomorrow_at(8), tomorrow_at(12))
    assert [r.id for r in overlapping] == [existing.id]


# ---------------------------------------------------------------------------
# Payment, check-in, check-out
# ---------------------------------------------------------------------------


def test_pay_records_method_and_rejects_second_payment(engine, user, normal_seat):
    reservation = book(engine, user, normal_seat, 9, 10)
    paid = engine.pay(reservation.id, "wechat")
    assert paid.payment_status == PaymentStatus.PAID
    assert paid.payment_method == "wechat"
    with pytest.raises(AlreadyPaid):
        engine.pay(reservation.id, "alipay")


def test_check_in_requires_payment(engine, user, normal_seat, clock):
    reservation = book(engine, user, normal_seat, 9, 10)
    clock.set(tomorrow_at(9, 5))
    with pytest.raises(NotPaid):
        engine.check_in(reservation.id)


def test_check_in_only_inside_window(engine, user, normal_seat, clock):
    reservation = book(engine, user, normal_seat, 9, 10)
    engine.pay(reservation.id)

    clock.set(tomorrow_at(8, 55))
    with pytest.raises(OutsideCheckInWindow):
        engine.check_in(reservation.id)

    clock.set(tomorrow_at(9, 5))
    checked_in = engine.check_in(reservation.id)
    assert checked_in.check_in_time == tomorrow_at(9, 5)

    with pytest.raises(AlreadyCheckedIn):
        engine.check_in(reservation.id)


def test_check_out_completes_reservation(engine, user, normal_seat, clock):
    reservation = book(engine, user, normal_seat, 9, 10)
    engine.pay(reservation.id)
    with pytest.raises(NotCheckedIn):
        engine.check_out(reservation.id)

    clock.set(tomorrow_at(9))
    engine.check_in(reservation.id)
    clock.set(tomorrow_at(9, 50))
    done = engine.check_out(reservation.id)

    assert done.status == ReservationStatus.COMPLETED
    assert done.check_out_time == tomorrow_at(9, 50)
    with pytest.raises(AlreadyTerminal):
        engine.check_out(reservation.id)


def test_auto_sync_moves_seat_with_check_in_and_out(make_engine, db, user, normal_seat, clock):
    engine = make_engine(db, AUTO_SYNC_SEAT_STATUS=True)
    reservation = book(engine, user, normal_seat, 9, 10)
    engine.pay(reservation.id)

    clock.set(tomorrow_at(9, 10))
    engine.check_in(reservation.id)
    assert engine.seat_registry.get_status(normal_seat.id) == SeatStatus.OCCUPIED

    engine.check_out(reservation.id)
    assert engine.seat_registry.get_status(normal_seat.id) == SeatStatus.AVAILABLE


def test_auto_sync_releases_seat_when_checked_in_reservation_is_cancelled(
    make_engine, db, user, normal_seat, clock
):
    engine = make_engine(db, AUTO_SYNC_SEAT_STATUS=True)
    reservation = book(engine, user, normal_seat, 9, 10)
    engine.pay(reservation.id)
    clock.set(tomorrow_at(9, 10))
    engine.check_in(reservation.id)

    engine.cancel(reservation.id, "feeling unwell")
    assert engine.seat_registry.get_status(normal_seat.id) == SeatStatus.AVAILABLE


# ---------------------------------------------------------------------------
# Cancel & terminality
# ---------------------------------------------------------------------------


def test_cancel_appends_reason_to_note(engine, user, normal_seat):
    reservation = book(engine, user, normal_seat, 9, 10, note="window seat please")
    cancelled = engine.cancel(reservation.id, "plans changed")

    assert cancelled.status == ReservationStatus.CANCELLED
    assert cancelled.cancelled_at == NOW
    assert cancelled.note == "window seat please\nCancel reason: plans changed"


def test_cancel_without_reason_leaves_note(engine, user, normal_seat):
    reservation = book(engine, user, normal_seat, 9, 10)
    assert engine.cancel(reservation.id).note is None


def _checked_out(engine, reservation, clock):
    engine.pay(reservation.id, "card")
    clock.set(tomorrow_at(9, 5))
    engine.check_in(reservation.id)
    engine.check_out(reservation.id)


def _cancelled(engine, reservation, clock):
    engine.cancel(reservation.id)


def _no_show(engine, reservation, clock):
    engine.pay(reservation.id, "card")
    clock.set(tomorrow_at(10, 30))
    engine.mark_no_show(reservation.id)


def _expired(engine, reservation, clock):
    engine.pay(reservation.id, "card")
    clock.set(tomorrow_at(9, 5))
    engine.check_in(reservation.id)
    clock.set(tomorrow_at(10, 30))
    engine.expire(reservation.id)


TERMINAL_PATHS = [
    (_checked_out, ReservationStatus.COMPLETED),
    (_cancelled, ReservationStatus.CANCELLED),
    (_no_show, ReservationStatus.NO_SHOW),
    (_expired, ReservationStatus.EXPIRED),
]


@pytest.mark.parametrize(
    "reach_terminal, terminal_status",
    TERMINAL_PATHS,
    ids=["completed", "cancelled", "no_show", "expired"],
)
@pytest.mark.parametrize(
    "operation",
    [
        lambda engine, r: engine.pay(r.id, "card"),
        lambda engine, r: engine.check_in(r.id),
        lambda engine, r: engine.check_out(r.id),
        lambda engine, r: engine.cancel(r.id, "again"),
        lambda engine, r: engine.extend(r.id, tomorrow_at(12)),
        lambda engine, r: engine.update(r.id, tomorrow_at(13), tomorrow_at(14)),
        lambda engine, r: engine.mark_no_show(r.id),
        lambda engine, r: engine.expire(r.id),
    ],
    ids=["pay", "check_in", "check_out", "cancel", "extend", "update", "mark_no_show", "expire"],
)
def test_terminal_reservation_rejects_every_transition(
    engine, user, normal_seat, clock, reach_terminal, terminal_status, operation
):
    reservation = book(engine, user, normal_seat, 9, 10)
    reach_terminal(engine, reservation, clock)
    assert engine.get(reservation.id).status == terminal_status

    with pytest.raises(AlreadyTerminal):
        operation(engine, reservation)
    assert engine.get(reservation.id).status == terminal_status


def test_unknown_reservation(engine):
    with pytest.raises(ReservationNotFound):
        engine.pay(uuid.uuid4())
    with pytest.raises(ReservationNotFound):
        engine.get_by_code("R0000000000000NOPE00")


# ---------------------------------------------------------------------------
# Extend & update
# ---------------------------------------------------------------------------


def test_extend_adds_incremental_cost(engine, user, normal_seat):
    reservation = book(engine, user, normal_seat, 9, 10)
    assert reservation.total_amount == Decimal("10.00")

    extended = engine.extend(reservation.id, tomorrow_at(11))
    assert extended.end_time == tomorrow_at(11)
    assert extended.total_amount == Decimal("20.00")


def test_extend_bills_minimum_hour_for_short_increment(engine, user, normal_seat):
    reservation = book(engine, user, normal_seat, 9, 10)
    assert engine.extend(reservation.id, tomorrow_at(10, 15)).total_amount == Decimal("20.00")


def test_extend_into_next_booking_fails(engine, user, normal_seat):
    reservation = book(engine, user, normal_seat, 9, 10)
    book(engine, user, normal_seat, 10, 11)

    with pytest.raises(TimeConflict):
        engine.extend(reservation.id, tomorrow_at(11))
    unchanged = engine.get(reservation.id)
    assert unchanged.end_time == tomorrow_at(10)
    assert unchanged.total_amount == Decimal("10.00")


def test_extend_must_move_end_later(engine, user, normal_seat):
    reservation = book(engine, user, normal_seat, 9, 10)
    with pytest.raises(InvalidWindow):
        engine.extend(reservation.id, tomorrow_at(10))
    with pytest.raises(InvalidWindow):
        engine.extend(reservation.id, tomorrow_at(9, 30))


def test_update_recomputes_cost_and_replaces_note(engine, user, vip_seat):
    reservation = book(engine, user, vip_seat, 9, 10, note="old")
    updated = engine.update(reservation.id, tomorrow_at(13), tomorrow_at(15), note="new")

    assert (updated.start_time, updated.end_time) == (tomorrow_at(13), tomorrow_at(15))
    assert updated.total_amount == Decimal("30.00")
    assert updated.note == "new"


def test_update_ignores_its_own_window_but_not_others(engine, user, normal_seat):
    reservation = book(engine, user, normal_seat, 9, 11)
    book(engine, user, normal_seat, 12, 13)

    assert engine.update(reservation.id, tomorrow_at(10), tomorrow_at(12)).end_time == tomorrow_at(12)
    with pytest.raises(TimeConflict):
        engine.update(reservation.id, tomorrow_at(11), tomorrow_at(13))
    with pytest.raises(InvalidWindow):
        engine.update(reservation.id, tomorrow_at(12), tomorrow_at(11))


# ---------------------------------------------------------------------------
# Refunds
# ---------------------------------------------------------------------------


def test_full_refund_of_cancelled_paid_reservation(engine, user, normal_seat):
    reservation = book(engine, user, normal_seat, 9, 11)
    engine.pay(reservation.id, "card")
    engine.cancel(reservation.id, "sick")

    refunded = engine.refund(reservation.id)
    assert refunded.payment_status == PaymentStatus.REFUNDED
    assert refunded.refund_amount == Decimal("20.00")


def test_partial_refund(engine, user, normal_seat):
    reservation = book(engine, user, normal_seat, 9, 11)
    engine.pay(reservation.id, "card")
    engine.cancel(reservation.id)

    refunded = engine.refund(reservation.id, Decimal("5"))
    assert refunded.payment_status == PaymentStatus.PARTIAL_REFUND
    assert refunded.refund_amount == Decimal("5.00")
    with pytest.raises(NotRefundable):
        engine.refund(reservation.id)


def test_refund_guards(engine, user, normal_seat):
    active = book(engine, user, normal_seat, 9, 10)
    engine.pay(active.id)
    with pytest.raises(NotRefundable):
        engine.refund(active.id)

    unpaid = book(engine, user, normal_seat, 11, 12)
    engine.cancel(unpaid.id)
    with pytest.raises(NotRefundable):
        engine.refund(unpaid.id)

    engine.cancel(active.id)
    with pytest.raises(InvalidAmount):
        engine.refund(active.id, Decimal("10.01"))
    with pytest.raises(InvalidAmount):
        engine.refund(active.id, Decimal("0"))


# ---------------------------------------------------------------------------
# Lapsed reservations
# ---------------------------------------------------------------------------


def test_mark_no_show_only_after_window_ends(engine, user, normal_seat, clock):
    reservation = book(engine, user, normal_seat, 9, 10)
    engine.pay(reservation.id)

    clock.set(tomorrow_at(9, 30))
    with pytest.raises(InvalidWindow):
        engine.mark_no_show(reservation.id)

    clock.set(tomorrow_at(10, 1))
    assert engine.mark_no_show(reservation.id).status == ReservationStatus.NO_SHOW


def test_expire_requires_check_in(engine, user, normal_seat, clock):
    reservation = book(engine, user, normal_seat, 9, 10)
    engine.pay(reservation.id)
    clock.set(tomorrow_at(11))
    with pytest.raises(NotCheckedIn):
        engine.expire(reservation.id)


def test_no_show_can_be_refunded(engine, user, normal_seat, clock):
    reservation = book(engine, user, normal_seat, 9, 10)
    engine.pay(reservation.id)
    clock.set(tomorrow_at(11))
    engine.mark_no_show(reservation.id)
    assert engine.refund(reservation.id, Decimal("4.50")).payment_status == PaymentStatus.PARTIAL_REFUND


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def test_lookup_by_id_and_code(engine, user, normal_seat):
    reservation = book(engine, user, normal_seat, 9, 10)
    assert engine.get(reservation.id).id == reservation.id
    assert engine.get_by_code(reservation.reservation_code).id == reservation.id


def test_today_and_active(engine, user, normal_seat, clock):
    first = book(engine, user, normal_seat, 9, 10)
    second = book(engine, user, normal_seat, 11, 12)
    engine.cancel(second.id)

    assert engine.today() == []
    clock.set(tomorrow_at(7))
    assert {r.id for r in engine.today()} == {first.id, second.id}
    assert [r.id for r in engine.active()] == [first.id]


def test_expiring_within(engine, user, normal_seat, vip_seat, clock):
    soon = book(engine, user, normal_seat, 9, 10)
    book(engine, user, vip_seat, 9, 12)

    clock.set(tomorrow_at(9, 45))
    assert [r.id for r in engine.expiring_within(15)] == [soon.id]
    assert engine.expiring_within(10) == []


def test_expired_unpaid(engine, user, normal_seat, clock):
    unpaid = book(engine, user, normal_seat, 9, 10)
    paid = book(engine, user, normal_seat, 10, 11)
    engine.pay(paid.id)

    clock.set(tomorrow_at(12))
    assert [r.id for r in engine.expired_unpaid()] == [unpaid.id]


def test_search_filters_and_paginates(engine, user, normal_seat, vip_seat, clock):
    created = []
    for hour in range(9, 14):
        created.append(book(engine, user, normal_seat, hour, hour + 1))
        clock.advance(minutes=1)
    book(engine, user, vip_seat, 9, 10)
    engine.cancel(created[0].id)

    page, total = engine.search(seat_id=normal_seat.id, page=1, limit=2)
    assert total == 5
    # Newest first
    assert [r.id for r in page] == [created[4].id, created[3].id]

    last_page, _ = engine.search(seat_id=normal_seat.id, page=3, limit=2)
    assert [r.id for r in last_page] == [created[0].id]

    cancelled, total = engine.search(status=ReservationStatus.CANCELLED)
    assert total == 1 and cancelled[0].id == created[0].id

    _, unpaid_total = engine.search(user_id=user.id, payment_status=PaymentStatus.PENDING)
    assert unpaid_total == 6


def test_search_clamps_page_size(make_engine, db, user, normal_seat):
    engine = make_engine(db, MAX_PAGE_SIZE=3)
    for hour in range(9, 14):
        book(engine, user, normal_seat, hour, hour + 1)
    page, total = engine.search(limit=50)
    assert total == 5
    assert len(page) == 3
