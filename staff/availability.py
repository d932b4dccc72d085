# staff/availability.py
from datetime import datetime, time

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from rest_framework.exceptions import ValidationError

from booking.models import BookingStatus

from .models import NOT_NEEDED_PEMANDI_ID, BookingStaff, Staff, StaffType


def parse_target_date(value):
    """
    Accepts "YYYY-MM-DD" or an ISO datetime; returns the local calendar date.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("Tarikh tempahan diperlukan")

    if isinstance(value, datetime):
        dt = value
    elif hasattr(value, "year") and hasattr(value, "day"):
        return value
    else:
        raw = str(value).strip()
        try:
            dt = parse_datetime(raw)
            if dt is None:
                d = parse_date(raw)
                if d is None:
                    raise ValidationError("Format tarikh tidak sah")
                return d
        except ValueError:
            raise ValidationError("Format tarikh tidak sah")

    if timezone.is_aware(dt):
        dt = timezone.localtime(dt)
    return dt.date()


def day_bounds(day):
    """[00:00:00, 23:59:59.999999] of the local day, timezone-aware."""
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(day, time.min), tz)
    end = timezone.make_aware(datetime.combine(day, time.max), tz)
    return start, end


def busy_staff_ids(day, exclude_booking_id=None):
    start, end = day_bounds(day)
    qs = (
        BookingStaff.objects
        .filter(
            booking__booking_date__gte=start,
            booking__booking_date__lte=end,
        )
        .exclude(booking__status=BookingStatus.CANCELLED)
    )
    if exclude_booking_id:
        try:
            exclude_booking_id = int(exclude_booking_id)
        except (TypeError, ValueError):
            raise ValidationError({"exclude_booking_id": "ID tempahan tidak sah"})
        qs = qs.exclude(booking_id=exclude_booking_id)
    return set(qs.values_list("staff_id", flat=True))


def find_available_staff(date, staff_type=None, exclude_booking_id=None):
    """
    Active staff not yet assigned to a booking on that local day.
    The "not needed" sentinel is always available and listed first
    among corpse washers.
    """
    day = parse_target_date(date)

    staff_qs = Staff.objects.filter(is_active=True).order_by("name")
    if staff_type:
        if staff_type not in StaffType.values:
            raise ValidationError({"type": "Jenis kakitangan tidak sah."})
        staff_qs = staff_qs.filter(staff_type=staff_type)

    busy = busy_staff_ids(day, exclude_booking_id=exclude_booking_id)
    available = [
        s for s in staff_qs
        if s.pk == NOT_NEEDED_PEMANDI_ID or s.pk not in busy
    ]

    by_type = {
        StaffType.PENGALI_KUBUR: [s for s in available if s.staff_type == StaffType.PENGALI_KUBUR],
        StaffType.PEMANDI_JENAZAH: sorted(
            (s for s in available if s.staff_type == StaffType.PEMANDI_JENAZAH),
            key=lambda s: (s.pk != NOT_NEEDED_PEMANDI_ID, s.name.lower()),
        ),
    }

    return {
        "date": day,
        "staff_by_type": by_type,
        "total_available": len(available),
    }


def assign_staff(booking, assignments, actor=None):
    """
    Replace the booking's staff with `assignments`
    ([{"staff_id": ..., "staff_type": ...}, ...]).
    Both staff types are required; a staff member can work one booking per day.
    Caller holds the transaction and the booking row lock.
    """
    if booking.status == BookingStatus.CANCELLED:
        raise ValidationError(
            "Tidak boleh menugaskan kakitangan kepada tempahan yang dibatalkan"
        )

    provided_types = {a["staff_type"] for a in assignments}
    for required in (StaffType.PENGALI_KUBUR, StaffType.PEMANDI_JENAZAH):
        if required not in provided_types:
            raise ValidationError(f"Tugasan {required.label} diperlukan")

    staff_ids = [a["staff_id"] for a in assignments]
    if len(set(staff_ids)) != len(staff_ids):
        raise ValidationError("Kakitangan yang sama dipilih lebih daripada sekali")
    staff_map = Staff.objects.in_bulk(staff_ids)
    for a in assignments:
        staff = staff_map.get(a["staff_id"])
        if staff is None or not staff.is_active:
            raise ValidationError("Kakitangan tidak ditemui atau tidak aktif")
        if staff.staff_type != a["staff_type"]:
            raise ValidationError(f"{staff.name} bukan {StaffType(a['staff_type']).label}")

    day = parse_target_date(booking.booking_date)
    busy = busy_staff_ids(day, exclude_booking_id=booking.pk)
    for staff_id in staff_ids:
        if staff_id == NOT_NEEDED_PEMANDI_ID:
            continue
        if staff_id in busy:
            raise ValidationError(
                "Salah satu kakitangan yang dipilih sudah ditugaskan pada tarikh ini"
            )

    BookingStaff.objects.filter(booking=booking).delete()
    return BookingStaff.objects.bulk_create([
        BookingStaff(
            booking=booking,
            staff=staff_map[a["staff_id"]],
            staff_type=a["staff_type"],
            assigned_by=actor,
        )
        for a in assignments
    ])
