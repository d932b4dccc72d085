# common/tasks.py

from celery import shared_task
from django.conf import settings
from django.contrib.auth import get_user_model

from booking.models import Booking, BookingStatus
from common.utils import send_email_and_log

User = get_user_model()

SUBJECT_PREFIX = "e-PUSARA"

STATUS_MESSAGES = {
    BookingStatus.PENDING: (
        "Tempahan Diterima",
        "Tempahan anda telah diterima dan sedang menunggu kelulusan admin.",
    ),
    BookingStatus.APPROVED_PENDING_PAYMENT: (
        "Tempahan Diluluskan",
        "Tempahan anda telah diluluskan. Sila buat pembayaran sebelum {deadline}.",
    ),
    BookingStatus.PAYMENT_CONFIRMED: (
        "Pembayaran Disahkan",
        "Pembayaran anda telah disahkan. Tempahan kini menunggu untuk dilaksanakan.",
    ),
    BookingStatus.COMPLETED: (
        "Tempahan Selesai",
        "Tempahan anda telah selesai. Plot {plot} kini berstatus OCCUPIED.",
    ),
    BookingStatus.REJECTED: (
        "Tempahan Ditolak",
        "Tempahan anda telah ditolak. Sebab: {reason}",
    ),
}

PAYMENT_REJECTED_MESSAGE = (
    "Pembayaran Ditolak",
    "Pembayaran anda ditolak. Sila hantar semula bukti pembayaran.",
)


@shared_task
def send_booking_status_email(booking_id: int, status: str, event: str = ""):
    try:
        booking = Booking.objects.select_related("user", "plot").get(pk=booking_id)
    except Booking.DoesNotExist:
        return False

    user = booking.user
    if not user or not user.email:
        return False

    # verify(false) leaves the booking status unchanged
    if event == "PAYMENT_REJECTED":
        title, body = PAYMENT_REJECTED_MESSAGE
    elif status in STATUS_MESSAGES:
        title, body = STATUS_MESSAGES[status]
    else:
        return False

    body = body.format(
        deadline=booking.payment_deadline.strftime("%d/%m/%Y") if booking.payment_deadline else "-",
        plot=booking.plot.identifier,
        reason=booking.rejection_reason or "-",
    )

    subject = f"{title} - {SUBJECT_PREFIX}"
    msg = (
        f"Assalamualaikum {user.get_full_name() or user.username},\n\n"
        f"{body}\n\n"
        f"No. Tempahan: {booking.pk}\n"
        f"Plot: {booking.plot.identifier}\n"
        f"Tarikh: {booking.booking_date:%d/%m/%Y %H:%M}\n"
        f"Status: {booking.get_status_display()}\n"
    )
    return send_email_and_log(subject, msg, user.email)


@shared_task
def send_password_reset_email(user_id: int, uid: str, token: str):
    try:
        user = User.objects.get(pk=user_id)
    except User.DoesNotExist:
        return False

    reset_url = f"{settings.FRONTEND_BASE_URL}/auth/reset-password?uid={uid}&token={token}"
    subject = f"Tetapan Semula Kata Laluan - {SUBJECT_PREFIX}"
    msg = (
        "Anda telah meminta untuk menetapkan semula kata laluan anda. "
        "Sila klik pautan di bawah untuk menetapkan kata laluan baharu:\n\n"
        f"{reset_url}\n\n"
        "Jika anda tidak meminta tetapan semula kata laluan, sila abaikan email ini."
    )
    html = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<h2 style="color: #1a237e;">Tetapan Semula Kata Laluan</h2>'
        "<p>Anda telah meminta untuk menetapkan semula kata laluan anda.</p>"
        f'<p><a href="{reset_url}">Tetapkan Semula Kata Laluan</a></p>'
        "<p>Jika anda tidak meminta tetapan semula kata laluan, sila abaikan email ini.</p>"
        "</div>"
    )
    return send_email_and_log(subject, msg, user.email, html_message=html)
