# kits/ledger.py
"""
Funeral kit stock movements.

Every function changes the kit counters with a single SQL-side F() update
and appends exactly one FuneralKitUsage row, inside one transaction.
Callers already inside a transaction (booking.lifecycle) join it.
"""
import logging

from django.db import transaction
from django.db.models import F
from rest_framework.exceptions import ValidationError

from .models import BookingFuneralKit, FuneralKit, FuneralKitUsage, UsageReason

log = logging.getLogger(__name__)

RETURN_REASONS = (
    UsageReason.BOOKING_CANCELLED,
    UsageReason.BOOKING_REJECTED,
)
ADJUST_REASONS = (
    UsageReason.ADMIN_ADD,
    UsageReason.ADMIN_REMOVE,
)


def _check_quantity(qty):
    if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
        raise ValidationError({"quantity": "Kuantiti mesti nombor positif."})


def _append(kit, quantity_change, reason, booking=None, actor=None, notes=""):
    return FuneralKitUsage.objects.create(
        kit=kit,
        booking=booking,
        quantity_change=quantity_change,
        reason=reason,
        changed_by=actor,
        notes=notes or "",
    )


def reserve(kit, qty, booking, actor=None, notes=""):
    """
    Take `qty` units off the shelf for a booking.
    Stock is only decremented when enough is available.
    """
    _check_quantity(qty)

    with transaction.atomic():
        if BookingFuneralKit.objects.filter(booking=booking, kit=kit).exists():
            raise ValidationError(
                f"Kit {kit.kit_type} sudah ditempah untuk tempahan ini."
            )

        updated = (
            FuneralKit.objects
            .filter(pk=kit.pk, available_quantity__gte=qty)
            .update(available_quantity=F("available_quantity") - qty)
        )
        if not updated:
            kit.refresh_from_db(fields=["available_quantity"])
            raise ValidationError(
                f"Stok kit {kit.kit_type} tidak mencukupi. "
                f"Ada: {kit.available_quantity}, diminta: {qty}."
            )

        reservation = BookingFuneralKit.objects.create(
            booking=booking, kit=kit, quantity=qty,
        )
        _append(
            kit, -qty, UsageReason.BOOKING,
            booking=booking, actor=actor,
            notes=notes or f"Ditempah untuk tempahan {booking.pk}",
        )

    kit.refresh_from_db(fields=["available_quantity", "total_used"])
    log.info("Reserved %s x%s for booking %s", kit.kit_type, qty, booking.pk)
    return reservation


def release(kit, qty, booking, reason, actor=None, notes=""):
    """Put reserved units back on the shelf."""
    _check_quantity(qty)
    if reason not in RETURN_REASONS:
        raise ValueError(f"Not a return reason: {reason}")

    with transaction.atomic():
        FuneralKit.objects.filter(pk=kit.pk).update(
            available_quantity=F("available_quantity") + qty,
        )
        entry = _append(kit, qty, reason, booking=booking, actor=actor, notes=notes)

    log.info("Released %s x%s for booking %s (%s)", kit.kit_type, qty, booking.pk, reason)
    return entry


def consume(kit, qty, booking, reason=UsageReason.BOOKING_COMPLETED, actor=None, notes=""):
    """Reserved units were used at the burial."""
    _check_quantity(qty)

    with transaction.atomic():
        FuneralKit.objects.filter(pk=kit.pk).update(
            total_used=F("total_used") + qty,
        )
        entry = _append(kit, -qty, reason, booking=booking, actor=actor, notes=notes)

    log.info("Consumed %s x%s for booking %s", kit.kit_type, qty, booking.pk)
    return entry


def adjust(kit, delta, reason, actor=None, notes=""):
    """
    Admin stock correction. ADMIN_ADD takes a positive delta, ADMIN_REMOVE
    a negative one; stock never goes below zero.
    """
    if reason not in ADJUST_REASONS:
        raise ValidationError({"reason": "Sebab mesti ADMIN_ADD atau ADMIN_REMOVE."})
    if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
        raise ValidationError({"quantity_change": "Perubahan kuantiti mesti nombor bukan sifar."})
    if reason == UsageReason.ADMIN_ADD and delta < 0:
        raise ValidationError({"quantity_change": "ADMIN_ADD memerlukan kuantiti positif."})
    if reason == UsageReason.ADMIN_REMOVE and delta > 0:
        raise ValidationError({"quantity_change": "ADMIN_REMOVE memerlukan kuantiti negatif."})

    with transaction.atomic():
        qs = FuneralKit.objects.filter(pk=kit.pk)
        if delta < 0:
            qs = qs.filter(available_quantity__gte=-delta)

        updated = qs.update(available_quantity=F("available_quantity") + delta)
        if not updated:
            kit.refresh_from_db(fields=["available_quantity"])
            raise ValidationError(
                "Kuantiti tidak boleh dikurangkan di bawah 0. "
                f"Semasa: {kit.available_quantity}, perubahan: {delta}."
            )
        entry = _append(kit, delta, reason, actor=actor, notes=notes)

    kit.refresh_from_db(fields=["available_quantity", "total_used"])
    log.info("Adjusted %s by %+d (%s)", kit.kit_type, delta, reason)
    return entry
