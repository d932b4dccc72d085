# dashboard/views.py

import logging
from decimal import Decimal

from django.db.models import Count, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsAdminRole, require_admin
from booking.models import Booking, BookingStatus, Payment, PaymentStatus
from common.excel_utils import excel_response
from common.pdf_utils import pdf_response, render_html_to_pdf_bytes
from kits.models import FuneralKit

logger = logging.getLogger(__name__)

MONTH_NAMES = [
    "Januari", "Februari", "Mac", "April", "Mei", "Jun",
    "Julai", "Ogos", "September", "Oktober", "November", "Disember",
]


# =====================================================
# Helper functions
# =====================================================

def get_period(request):
    """
    Query params:
      ?year=YYYY&month=MM

    month without year is ignored. Returns (year, month), either may be None.
    """
    year_str = request.query_params.get("year")
    month_str = request.query_params.get("month")

    year = month = None
    if year_str:
        try:
            year = int(year_str)
        except ValueError:
            raise ValidationError({"year": "Tahun tidak sah."})
        if not 1900 <= year <= 9999:
            raise ValidationError({"year": "Tahun tidak sah."})

    if month_str and year:
        try:
            month = int(month_str)
        except ValueError:
            raise ValidationError({"month": "Bulan tidak sah."})
        if not 1 <= month <= 12:
            raise ValidationError({"month": "Bulan tidak sah."})

    return year, month


def apply_period(qs, year, month, field_name="booking_date"):
    if year:
        qs = qs.filter(**{f"{field_name}__year": year})
    if month:
        qs = qs.filter(**{f"{field_name}__month": month})
    return qs


def period_label(year, month):
    if year and month:
        return f"{MONTH_NAMES[month - 1]} {year}"
    if year:
        return f"Tahun {year}"
    return "Semua tempoh"


def booking_rows(qs):
    rows = []
    for b in qs:
        plot = b.plot
        rows.append({
            "id": b.id,
            "booking_date": b.booking_date,
            "status": b.status,
            "total_price": b.total_price,
            "plot_info": f"{plot.identifier} ({plot.row}-{plot.column})" if plot else "N/A",
            "deceased_name": b.deceased.name if b.deceased else "N/A",
            "user_name": b.user.display_name if b.user else "N/A",
            "created_at": b.created_at,
        })
    return rows


def build_booking_stats(qs):
    """
    Counts / amounts / monthly series for a booking queryset.
    """
    by_status = {s: 0 for s in BookingStatus.values}
    for row in qs.order_by().values("status").annotate(n=Count("id")):
        by_status[row["status"]] = row["n"]

    total_amount = qs.aggregate(total=Sum("total_price"))["total"] or Decimal("0")

    monthly = {}
    monthly_rows = (
        qs.order_by()
        .annotate(month=TruncMonth("booking_date"))
        .values("month")
        .annotate(count=Count("id"), amount=Sum("total_price"))
        .order_by("month")
    )
    for row in monthly_rows:
        if row["month"] is None:
            continue
        key = row["month"].strftime("%Y-%m")
        monthly[key] = {"count": row["count"], "amount": row["amount"] or Decimal("0")}

    return {
        "total_bookings": sum(by_status.values()),
        "total_amount": total_amount,
        "pending_bookings": by_status[BookingStatus.PENDING],
        "approved_bookings": by_status[BookingStatus.APPROVED_PENDING_PAYMENT],
        "confirmed_bookings": by_status[BookingStatus.PAYMENT_CONFIRMED],
        "completed_bookings": by_status[BookingStatus.COMPLETED],
        "rejected_bookings": by_status[BookingStatus.REJECTED],
        "by_status": by_status,
        "monthly_data": monthly,
    }


def _base_queryset():
    return Booking.objects.select_related("plot", "deceased", "user").order_by("-booking_date", "-id")


def build_admin_dashboard(year, month):
    qs = apply_period(_base_queryset(), year, month)
    data = build_booking_stats(qs)

    payments = Payment.objects.filter(
        booking__in=qs.values("id"),
        payment_status=PaymentStatus.SUCCESSFUL,
    )
    data["payments_received"] = payments.aggregate(total=Sum("amount"))["total"] or Decimal("0")
    data["payments_awaiting_verification"] = Payment.objects.filter(
        payment_status=PaymentStatus.SUBMITTED,
    ).count()

    data["funeral_kits"] = [
        {
            "kit_type": k.kit_type,
            "available_quantity": k.available_quantity,
            "total_used": k.total_used,
        }
        for k in FuneralKit.objects.order_by("kit_type")
    ]
    data["bookings"] = booking_rows(qs)
    return data


def build_user_dashboard(user, year, month):
    qs = apply_period(_base_queryset().filter(user=user), year, month)
    data = build_booking_stats(qs)
    data["bookings"] = booking_rows(qs)
    return data


# =====================================================
# Admin / User dashboards
# =====================================================

class AdminDashboardView(APIView):
    """GET /api/dashboard/admin/?year=&month="""
    permission_classes = [IsAuthenticated, IsAdminRole]

    def get(self, request, *args, **kwargs):
        year, month = get_period(request)
        data = build_admin_dashboard(year, month)
        return Response({"success": True, "data": data}, status=status.HTTP_200_OK)


class UserDashboardView(APIView):
    """GET /api/dashboard/me/?year=&month="""
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        year, month = get_period(request)
        data = build_user_dashboard(request.user, year, month)
        return Response({"success": True, "data": data}, status=status.HTTP_200_OK)


# =====================================================
# Exports
# =====================================================

class StatisticsExportView(APIView):
    """
    GET /api/dashboard/export/?type=admin|user&year=&month=
    PDF report of the same numbers the dashboards show.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        report_type = (request.query_params.get("type") or "user").lower()
        if report_type not in ("admin", "user"):
            raise ValidationError({"type": "Jenis laporan mesti admin atau user."})

        year, month = get_period(request)

        if report_type == "admin":
            require_admin(request.user, "Akses ditolak. Hanya admin yang boleh memuat turun laporan admin.")
            data = build_admin_dashboard(year, month)
            title = "Laporan Statistik Admin"
        else:
            data = build_user_dashboard(request.user, year, month)
            title = "Laporan Statistik Pengguna"

        context = {
            "title": title,
            "period": period_label(year, month),
            "stats": data,
            "user": request.user,
            "is_admin_report": report_type == "admin",
            "generated_at": timezone.localtime(),
        }
        pdf_bytes = render_html_to_pdf_bytes("dashboard/statistics_pdf.html", context)
        if not pdf_bytes:
            return Response(
                {"error": "Gagal menjana PDF."},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        suffix = f"{year or 'semua'}{f'-{month:02d}' if month else ''}"
        logger.info("Exported %s statistics PDF for user %s", report_type, request.user.pk)
        return pdf_response(pdf_bytes, f"{report_type}-statistics-{suffix}.pdf")


class BookingsExcelExportView(APIView):
    """GET /api/dashboard/bookings.xlsx?year=&month=&status="""
    permission_classes = [IsAuthenticated, IsAdminRole]

    headers = [
        "ID", "Tarikh Pengebumian", "Plot", "Si Mati", "No. K/P",
        "Pemohon", "Emel", "Status", "Jumlah (MYR)", "Dicipta",
    ]

    def get(self, request, *args, **kwargs):
        year, month = get_period(request)
        qs = apply_period(_base_queryset(), year, month)

        status_param = (request.query_params.get("status") or "").upper()
        if status_param and status_param != "ALL":
            if status_param not in BookingStatus.values:
                raise ValidationError({"status": "Status tempahan tidak sah."})
            qs = qs.filter(status=status_param)

        rows = []
        for b in qs:
            rows.append([
                b.id,
                timezone.localtime(b.booking_date).strftime("%d/%m/%Y %H:%M"),
                b.plot.identifier,
                b.deceased.name if b.deceased else "",
                b.deceased.ic_number if b.deceased else "",
                b.user.display_name,
                b.user.email,
                b.get_status_display(),
                float(b.total_price),
                timezone.localtime(b.created_at).strftime("%d/%m/%Y"),
            ])

        suffix = f"{year or 'semua'}{f'-{month:02d}' if month else ''}"
        return excel_response(f"tempahan-{suffix}.xlsx", self.headers, rows, sheet_title="Tempahan")
