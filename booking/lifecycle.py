# booking/lifecycle.py
"""
Booking state machine.

    PENDING -> APPROVED_PENDING_PAYMENT -> PAYMENT_CONFIRMED -> COMPLETED
    PENDING / APPROVED_PENDING_PAYMENT -> REJECTED

Each transition locks the booking row, checks the current status and does
all of its writes (booking, payment, plot, kit stock, history) in one
transaction. When the store fails mid-way the transaction is rolled back
and the aggregate is re-read to confirm nothing leaked.
"""
import logging
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone
from kombu.exceptions import OperationalError
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from accounts.permissions import require_admin
from cemetery.models import Deceased, Plot, PlotStatus
from common.exceptions import CompensationFailure, InvalidState, StoreFailure
from common.tasks import send_booking_status_email
from kits import ledger
from kits.models import BookingFuneralKit, FuneralKitUsage, UsageReason

from .models import (
    Booking,
    BookingPackage,
    BookingStatus,
    BookingStatusHistory,
    Package,
    Payment,
    PaymentMethod,
    PaymentStatus,
)

log = logging.getLogger(__name__)

BOOKING_NOT_FOUND = "Tempahan tidak ditemukan."
PAYMENT_NOT_FOUND = "Rekod pembayaran tidak ditemukan."


# ---------------------------------------------------------------------------
# unit of work
# ---------------------------------------------------------------------------

def snapshot(booking_id):
    """
    Everything a transition may touch, read fresh from the database.
    None when the booking does not exist.
    """
    row = (
        Booking.objects
        .filter(pk=booking_id)
        .values(
            "status", "approved_by_id", "approval_date", "payment_deadline",
            "admin_notes", "rejection_reason",
            "plot_id", "plot__status", "plot__current_booking_id",
            "deceased__plot_id",
        )
        .first()
    )
    if row is None:
        return None

    row["payments"] = list(
        Payment.objects
        .filter(booking_id=booking_id)
        .order_by("pk")
        .values_list("pk", "payment_status", "verified_by_id", "verified_at", "payment_notes")
    )
    row["kits"] = list(
        BookingFuneralKit.objects
        .filter(booking_id=booking_id)
        .order_by("pk")
        .values_list("kit_id", "quantity")
    )
    row["ledger_entries"] = FuneralKitUsage.objects.filter(booking_id=booking_id).count()
    return row


def _unit_of_work(name, work):
    """
    Run `work(state)` in one transaction. `work` stores the pre-write
    snapshot under state["booking_id"] / state["before"] once it holds the lock.
    """
    state = {}
    try:
        with transaction.atomic():
            return work(state)
    except DatabaseError:
        booking_id = state.get("booking_id")
        log.exception("%s failed for booking %s, rolled back", name, booking_id)

        if "before" not in state:
            raise StoreFailure()

        try:
            after = snapshot(booking_id)
        except DatabaseError:
            log.critical(
                "%s: could not re-read booking %s after rollback", name, booking_id,
                exc_info=True,
            )
            raise CompensationFailure()

        if after != state["before"]:
            log.critical(
                "%s: booking %s does not match its state before the call: %r != %r",
                name, booking_id, after, state["before"],
            )
            raise CompensationFailure()

        raise StoreFailure()


def _lock_booking(booking_id):
    try:
        return Booking.objects.select_for_update().get(pk=booking_id)
    except (Booking.DoesNotExist, ValueError, TypeError):
        raise NotFound(BOOKING_NOT_FOUND)


def _record(booking, old_status, action, actor, reason=""):
    BookingStatusHistory.objects.create(
        booking=booking,
        old_status=old_status or "",
        new_status=booking.status,
        action=action,
        reason=reason or "",
        changed_by=actor,
    )


def _notify(booking, event=""):
    """
    Queue the customer email once the transition has committed.
    A broker outage must not turn a committed transition into an error.
    """
    booking_id, status = booking.pk, booking.status

    def _queue():
        try:
            send_booking_status_email.delay(booking_id, status, event)
        except OperationalError:
            log.warning(
                "Could not queue %s email for booking %s", status, booking_id,
                exc_info=True,
            )

    transaction.on_commit(_queue, robust=True)


def _clean_notes(value):
    if value is None:
        return None
    return str(value).strip()


# ---------------------------------------------------------------------------
# customer side
# ---------------------------------------------------------------------------

def _packages(package_ids):
    ids = set()
    for value in package_ids or ():
        try:
            ids.add(int(value))
        except (TypeError, ValueError):
            raise ValidationError({"packages": "Pakej tidak sah."})
    packages = list(Package.objects.filter(pk__in=ids))
    if len(packages) != len(ids):
        raise ValidationError({"packages": "Pakej tidak sah."})
    return packages


def create_booking(actor, plot_id, booking_date, deceased=None,
                   death_certificate=None, burial_permit=None, notes="", package_ids=()):
    """
    New PENDING booking on an AVAILABLE plot; the plot becomes BOOKED.
    total_price is the plot price plus every picked package.
    """
    if booking_date is None:
        raise ValidationError({"booking_date": "Tarikh tempahan diperlukan"})

    try:
        with transaction.atomic():
            try:
                plot = Plot.objects.select_for_update().get(pk=plot_id)
            except (Plot.DoesNotExist, ValueError, TypeError):
                raise NotFound("Plot tidak ditemukan.")

            if plot.status != PlotStatus.AVAILABLE:
                raise ValidationError({"plot": "Plot tidak tersedia untuk ditempah."})

            packages = _packages(package_ids)
            deceased_obj = Deceased.objects.create(**deceased) if deceased else None

            booking = Booking.objects.create(
                user=actor,
                plot=plot,
                deceased=deceased_obj,
                booking_date=booking_date,
                total_price=plot.price + sum((p.price for p in packages), Decimal("0")),
                death_certificate=death_certificate,
                burial_permit=burial_permit,
                notes=notes or "",
            )

            BookingPackage.objects.bulk_create(
                BookingPackage(booking=booking, package=p, price=p.price) for p in packages
            )

            plot.status = PlotStatus.BOOKED
            plot.current_booking = booking
            plot.save(update_fields=["status", "current_booking", "updated_at"])

            _record(booking, "", BookingStatusHistory.Action.CREATE, actor)
            _notify(booking)
    except IntegrityError:
        log.warning("Plot %s already held by an active booking", plot_id)
        raise ValidationError({"plot": "Plot tidak tersedia untuk ditempah."})

    log.info("Booking %s created on plot %s by user %s", booking.pk, plot.pk, actor.pk)
    return booking


def submit_payment(booking_id, actor, receipt=None, transaction_id="", payment_notes=""):
    """
    Customer uploads proof of payment; the open payment goes to SUBMITTED.
    A previously rejected payment is reused for the resubmission.
    """

    def work(state):
        booking = _lock_booking(booking_id)
        state["booking_id"] = booking.pk

        if booking.user_id != actor.pk:
            raise PermissionDenied("Akses ditolak. Anda hanya boleh mengurus tempahan sendiri.")
        if booking.status != BookingStatus.APPROVED_PENDING_PAYMENT:
            raise InvalidState("Pembayaran hanya boleh dibuat untuk tempahan yang diluluskan.")

        payment = (
            Payment.objects
            .select_for_update()
            .filter(
                booking=booking,
                payment_status__in=[PaymentStatus.PENDING, PaymentStatus.REJECTED],
            )
            .order_by("-created_at", "-pk")
            .first()
        )
        if payment is None:
            raise InvalidState("Tiada pembayaran yang menunggu untuk tempahan ini.")

        state["before"] = snapshot(booking.pk)

        payment.payment_status = PaymentStatus.SUBMITTED
        payment.transaction_id = (transaction_id or "").strip()
        payment.payment_notes = (payment_notes or "").strip()
        payment.paid_at = timezone.now()
        payment.verified_by = None
        payment.verified_at = None
        if receipt is not None:
            payment.receipt = receipt
        payment.save()

        _record(booking, booking.status, BookingStatusHistory.Action.SUBMIT_PAYMENT, actor)
        return payment

    payment = _unit_of_work("submit_payment", work)
    log.info("Payment %s submitted for booking %s", payment.pk, booking_id)
    return payment


# ---------------------------------------------------------------------------
# admin transitions
# ---------------------------------------------------------------------------

def approve_booking(booking_id, actor, admin_notes=None):
    require_admin(actor, "Akses ditolak. Hanya admin yang boleh meluluskan tempahan.")
    admin_notes = _clean_notes(admin_notes)

    def work(state):
        booking = _lock_booking(booking_id)
        state["booking_id"] = booking.pk
        state["before"] = snapshot(booking.pk)

        if booking.status != BookingStatus.PENDING:
            raise InvalidState("Hanya tempahan yang berstatus PENDING boleh diluluskan.")

        old_status = booking.status
        now = timezone.now()

        booking.status = BookingStatus.APPROVED_PENDING_PAYMENT
        booking.approved_by = actor
        booking.approval_date = now
        booking.payment_deadline = now + timedelta(days=settings.PUSARA_PAYMENT_DEADLINE_DAYS)
        if admin_notes is not None:
            booking.admin_notes = admin_notes
        booking.save()

        payment = Payment.objects.create(
            booking=booking,
            amount=booking.total_price,
            currency=settings.PUSARA_CURRENCY,
            payment_method=PaymentMethod.QR_PAYMENT,
            payment_status=PaymentStatus.PENDING,
        )

        Plot.objects.filter(pk=booking.plot_id).update(
            status=PlotStatus.BOOKED,
            current_booking=booking,
            updated_at=now,
        )

        _record(booking, old_status, BookingStatusHistory.Action.APPROVE, actor, admin_notes)
        _notify(booking)
        return booking, payment

    booking, payment = _unit_of_work("approve_booking", work)
    log.info("Booking %s approved by %s, payment %s opened", booking.pk, actor.pk, payment.pk)
    return booking, payment


def reject_booking(booking_id, actor, rejection_reason, admin_notes=None):
    require_admin(actor, "Akses ditolak. Hanya admin yang boleh menolak tempahan.")
    if not isinstance(rejection_reason, str) or not rejection_reason.strip():
        raise ValidationError({"rejection_reason": "Sebab penolakan adalah wajib."})
    reason = rejection_reason.strip()
    admin_notes = _clean_notes(admin_notes)

    def work(state):
        booking = _lock_booking(booking_id)
        state["booking_id"] = booking.pk
        state["before"] = snapshot(booking.pk)

        if booking.status not in (
            BookingStatus.PENDING,
            BookingStatus.APPROVED_PENDING_PAYMENT,
        ):
            raise InvalidState("Tempahan tidak boleh ditolak pada status semasa.")

        old_status = booking.status
        now = timezone.now()

        booking.status = BookingStatus.REJECTED
        booking.rejection_reason = reason
        booking.approved_by = actor
        if admin_notes is not None:
            booking.admin_notes = admin_notes
        booking.save()

        Plot.objects.filter(pk=booking.plot_id).update(
            status=PlotStatus.AVAILABLE,
            current_booking=None,
            updated_at=now,
        )

        Payment.objects.filter(
            booking=booking,
            payment_status=PaymentStatus.PENDING,
        ).update(payment_status=PaymentStatus.CANCELLED, updated_at=now)

        reservations = (
            BookingFuneralKit.objects
            .filter(booking=booking)
            .select_related("kit")
            .order_by("pk")
        )
        for r in reservations:
            ledger.release(
                r.kit, r.quantity, booking,
                UsageReason.BOOKING_REJECTED,
                actor=actor,
                notes=f"Tempahan ditolak: {reason}",
            )

        _record(booking, old_status, BookingStatusHistory.Action.REJECT, actor, reason)
        _notify(booking)
        return booking

    booking = _unit_of_work("reject_booking", work)
    log.info("Booking %s rejected by %s", booking.pk, actor.pk)
    return booking


def verify_payment(payment_id, actor, verified, admin_notes=None):
    require_admin(actor, "Akses ditolak. Hanya admin yang boleh mengesahkan pembayaran.")
    if not isinstance(verified, bool):
        raise ValidationError({"verified": "Status pengesahan pembayaran adalah wajib."})
    admin_notes = _clean_notes(admin_notes)

    def work(state):
        # booking row first, then payment; submit_payment takes them in the same order
        try:
            booking_id = Payment.objects.values_list("booking_id", flat=True).get(pk=payment_id)
        except (Payment.DoesNotExist, ValueError, TypeError):
            raise NotFound(PAYMENT_NOT_FOUND)

        booking = _lock_booking(booking_id)
        state["booking_id"] = booking.pk
        state["before"] = snapshot(booking.pk)

        payment = Payment.objects.select_for_update().filter(pk=payment_id, booking=booking).first()
        if payment is None:
            raise NotFound(PAYMENT_NOT_FOUND)

        if payment.payment_status != PaymentStatus.SUBMITTED:
            raise InvalidState("Hanya pembayaran yang dihantar boleh disahkan.")
        if booking.status != BookingStatus.APPROVED_PENDING_PAYMENT:
            raise InvalidState("Status tempahan tidak sesuai untuk pengesahan pembayaran.")

        old_status = booking.status

        payment.payment_status = PaymentStatus.SUCCESSFUL if verified else PaymentStatus.REJECTED
        payment.verified_by = actor
        payment.verified_at = timezone.now()
        if admin_notes is not None:
            payment.payment_notes = admin_notes
        payment.save()

        if verified:
            booking.status = BookingStatus.PAYMENT_CONFIRMED
            booking.save()
            action = BookingStatusHistory.Action.VERIFY_PAYMENT
        else:
            action = BookingStatusHistory.Action.REJECT_PAYMENT

        _record(booking, old_status, action, actor, admin_notes)
        _notify(booking, event="" if verified else "PAYMENT_REJECTED")
        return payment, booking

    payment, booking = _unit_of_work("verify_payment", work)
    log.info(
        "Payment %s %s by %s (booking %s now %s)",
        payment.pk, payment.payment_status, actor.pk, booking.pk, booking.status,
    )
    return payment, booking


def complete_booking(booking_id, actor, admin_notes=None):
    require_admin(actor, "Akses ditolak. Hanya admin yang boleh menandakan tempahan sebagai selesai.")
    admin_notes = _clean_notes(admin_notes)

    def work(state):
        booking = _lock_booking(booking_id)
        state["booking_id"] = booking.pk
        state["before"] = snapshot(booking.pk)

        if booking.status != BookingStatus.PAYMENT_CONFIRMED:
            raise InvalidState(
                "Hanya tempahan dengan pembayaran yang disahkan boleh ditandakan sebagai selesai."
            )

        old_status = booking.status
        now = timezone.now()

        booking.status = BookingStatus.COMPLETED
        if admin_notes is not None:
            booking.admin_notes = admin_notes
        booking.save()

        Plot.objects.filter(pk=booking.plot_id).update(
            status=PlotStatus.OCCUPIED,
            current_booking=booking,
            updated_at=now,
        )
        if booking.deceased_id:
            Deceased.objects.filter(pk=booking.deceased_id).update(
                plot_id=booking.plot_id,
                updated_at=now,
            )

        reservations = (
            BookingFuneralKit.objects
            .filter(booking=booking)
            .select_related("kit")
            .order_by("pk")
        )
        for r in reservations:
            ledger.consume(
                r.kit, r.quantity, booking,
                UsageReason.BOOKING_COMPLETED,
                actor=actor,
                notes="Kit digunakan untuk tempahan yang telah selesai",
            )

        _record(booking, old_status, BookingStatusHistory.Action.COMPLETE, actor, admin_notes)
        _notify(booking)
        return booking

    booking = _unit_of_work("complete_booking", work)
    log.info("Booking %s completed by %s", booking.pk, actor.pk)
    return booking
