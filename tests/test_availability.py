from datetime import date

import pytest
from rest_framework.exceptions import ValidationError

from booking.models import Booking, BookingStatus
from staff.availability import assign_staff, find_available_staff, parse_target_date
from staff.models import NOT_NEEDED_PEMANDI_ID, BookingStaff, Staff, StaffType

from .conftest import local_dt

pytestmark = pytest.mark.django_db


def _ids(result, staff_type):
    return [s.pk for s in result["staff_by_type"][staff_type]]


def _assign(booking, *staff):
    return assign_staff(
        booking,
        [{"staff_id": s.pk, "staff_type": s.staff_type} for s in staff],
    )


class TestParseTargetDate:
    def test_missing(self):
        for value in (None, "", "  "):
            with pytest.raises(ValidationError) as exc:
                parse_target_date(value)
            assert str(exc.value.detail[0]) == "Tarikh tempahan diperlukan"

    def test_invalid(self):
        for value in ("bukan-tarikh", "2025-13-45"):
            with pytest.raises(ValidationError) as exc:
                parse_target_date(value)
            assert str(exc.value.detail[0]) == "Format tarikh tidak sah"

    def test_accepted_forms(self):
        assert parse_target_date("2025-06-10") == date(2025, 6, 10)
        assert parse_target_date(date(2025, 6, 10)) == date(2025, 6, 10)
        # 20:00 UTC is already the next day in Kuala Lumpur
        assert parse_target_date("2025-06-10T20:00:00+00:00") == date(2025, 6, 11)


class TestFindAvailableStaff:
    def test_everyone_free_and_sentinel_first(self, sentinel, washer, digger, digger2):
        result = find_available_staff("2025-06-10")

        assert result["date"] == date(2025, 6, 10)
        assert result["total_available"] == 4
        assert _ids(result, StaffType.PEMANDI_JENAZAH) == [NOT_NEEDED_PEMANDI_ID, washer.pk]
        assert _ids(result, StaffType.PENGALI_KUBUR) == [digger2.pk, digger.pk]

    def test_assigned_staff_are_busy_that_day_only(self, booking, sentinel, washer, digger, digger2):
        _assign(booking, digger, washer)

        same_day = find_available_staff("2025-06-10")
        assert _ids(same_day, StaffType.PENGALI_KUBUR) == [digger2.pk]
        assert _ids(same_day, StaffType.PEMANDI_JENAZAH) == [NOT_NEEDED_PEMANDI_ID]

        next_day = find_available_staff("2025-06-11")
        assert next_day["total_available"] == 4

    def test_sentinel_never_busy(self, booking, sentinel, digger):
        _assign(booking, digger, sentinel)
        result = find_available_staff("2025-06-10")
        assert _ids(result, StaffType.PEMANDI_JENAZAH) == [NOT_NEEDED_PEMANDI_ID]

    def test_cancelled_bookings_do_not_block(self, booking, sentinel, digger):
        _assign(booking, digger, sentinel)
        Booking.objects.filter(pk=booking.pk).update(status=BookingStatus.CANCELLED)
        result = find_available_staff("2025-06-10", staff_type=StaffType.PENGALI_KUBUR)
        assert _ids(result, StaffType.PENGALI_KUBUR) == [digger.pk]

    def test_excluded_booking(self, booking, sentinel, digger):
        _assign(booking, digger, sentinel)
        result = find_available_staff("2025-06-10", exclude_booking_id=str(booking.pk))
        assert digger.pk in _ids(result, StaffType.PENGALI_KUBUR)

    def test_bad_exclude_id(self, sentinel):
        with pytest.raises(ValidationError):
            find_available_staff("2025-06-10", exclude_booking_id="abc")

    def test_late_evening_booking_counts_for_its_local_day(
        self, make_booking, plot2, sentinel, digger,
    ):
        late = make_booking(plot2, when=local_dt(2025, 6, 10, 23, 30))
        _assign(late, digger, sentinel)

        assert digger.pk not in _ids(find_available_staff("2025-06-10"), StaffType.PENGALI_KUBUR)
        assert digger.pk in _ids(find_available_staff("2025-06-11"), StaffType.PENGALI_KUBUR)

    def test_inactive_staff_hidden(self, sentinel, digger):
        Staff.objects.filter(pk=digger.pk).update(is_active=False)
        result = find_available_staff("2025-06-10")
        assert result["staff_by_type"][StaffType.PENGALI_KUBUR] == []

    def test_unknown_type(self, sentinel):
        with pytest.raises(ValidationError):
            find_available_staff("2025-06-10", staff_type="TUKANG_KEBUN")


class TestAssignStaff:
    def test_both_types_required(self, booking, digger):
        with pytest.raises(ValidationError) as exc:
            _assign(booking, digger)
        assert "Pemandi Jenazah" in str(exc.value.detail[0])

    def test_type_must_match(self, booking, digger, digger2):
        with pytest.raises(ValidationError):
            assign_staff(booking, [
                {"staff_id": digger.pk, "staff_type": StaffType.PENGALI_KUBUR},
                {"staff_id": digger2.pk, "staff_type": StaffType.PEMANDI_JENAZAH},
            ])

    def test_unknown_staff(self, booking, digger):
        with pytest.raises(ValidationError):
            assign_staff(booking, [
                {"staff_id": digger.pk, "staff_type": StaffType.PENGALI_KUBUR},
                {"staff_id": "tiada", "staff_type": StaffType.PEMANDI_JENAZAH},
            ])

    def test_conflict_on_same_day(self, booking, make_booking, plot2, other_user, digger, washer, sentinel):
        _assign(booking, digger, washer)
        second = make_booking(plot2, actor=other_user, when=local_dt(2025, 6, 10, 15, 0))

        with pytest.raises(ValidationError) as exc:
            _assign(second, digger, sentinel)
        assert "sudah ditugaskan" in str(exc.value.detail[0])
        assert not BookingStaff.objects.filter(booking=second).exists()

    def test_sentinel_can_serve_many_bookings(self, booking, make_booking, plot2, digger, digger2, sentinel):
        _assign(booking, digger, sentinel)
        second = make_booking(plot2, when=local_dt(2025, 6, 10, 15, 0))
        _assign(second, digger2, sentinel)
        assert BookingStaff.objects.filter(staff=sentinel).count() == 2

    def test_reassign_replaces(self, booking, digger, digger2, washer, sentinel):
        _assign(booking, digger, washer)
        _assign(booking, digger2, sentinel)
        assert set(BookingStaff.objects.filter(booking=booking).values_list("staff_id", flat=True)) == {
            digger2.pk, NOT_NEEDED_PEMANDI_ID,
        }

    def test_cancelled_booking_refused(self, booking, digger, sentinel):
        booking.status = BookingStatus.CANCELLED
        with pytest.raises(ValidationError):
            _assign(booking, digger, sentinel)
