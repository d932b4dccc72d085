# staff/views.py
import logging

from django.db import transaction
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsAdminRoleOrReadOnly, is_admin
from booking.models import Booking

from .availability import assign_staff, find_available_staff
from .models import BookingStaff, Staff, StaffType
from .serializers import AssignStaffSerializer, BookingStaffSerializer, StaffSerializer

log = logging.getLogger(__name__)


class StaffViewSet(viewsets.ModelViewSet):
    """
    /api/staff/?type=&active_only=true     list
    /api/staff/                            POST (admin)
    /api/staff/{id}/                       PATCH / PUT / DELETE (admin)
    /api/staff/available/?date=&type=&exclude_booking_id=
    """

    serializer_class = StaffSerializer
    permission_classes = [IsAdminRoleOrReadOnly]

    def get_queryset(self):
        qs = Staff.objects.all().order_by("name")
        q = self.request.query_params
        staff_type = q.get("type")
        if staff_type:
            if staff_type not in StaffType.values:
                raise ValidationError({"type": "Jenis kakitangan tidak sah"})
            qs = qs.filter(staff_type=staff_type)
        if q.get("active_only") in ("1", "true", "True"):
            qs = qs.filter(is_active=True)
        return qs

    def get_object(self):
        try:
            return super().get_object()
        except NotFound:
            raise NotFound("Kakitangan tidak ditemui")

    def perform_create(self, serializer):
        staff = serializer.save()
        log.info("Staff %s created by %s", staff.pk, self.request.user.pk)

    def destroy(self, request, *args, **kwargs):
        staff = self.get_object()
        if staff.assignments.exists():
            raise ValidationError(
                "Tidak boleh memadamkan kakitangan yang mempunyai tugasan aktif. "
                "Sila nonaktifkan sahaja."
            )
        staff_id = staff.pk
        staff.delete()
        log.info("Staff %s deleted by %s", staff_id, request.user.pk)
        return Response({"message": "Kakitangan berjaya dipadamkan"}, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="available")
    def available(self, request):
        q = request.query_params
        result = find_available_staff(
            q.get("date"),
            staff_type=q.get("type") or None,
            exclude_booking_id=q.get("exclude_booking_id") or None,
        )
        by_type = {
            key: StaffSerializer(rows, many=True).data
            for key, rows in result["staff_by_type"].items()
        }
        total = result["total_available"]
        return Response({
            "date": result["date"].isoformat(),
            "staff_by_type": by_type,
            "total_available": total,
            "message": "Tiada kakitangan tersedia untuk tarikh ini" if total == 0 else None,
        })


def _booking_for(request, booking_id, lock=False):
    qs = Booking.objects.select_for_update() if lock else Booking.objects.all()
    try:
        booking = qs.get(pk=booking_id)
    except (Booking.DoesNotExist, ValueError, TypeError):
        raise NotFound("Tempahan tidak ditemui")
    if booking.user_id != request.user.pk and not is_admin(request.user):
        raise PermissionDenied("Akses ditolak. Anda hanya boleh mengurus tempahan sendiri.")
    return booking


class BookingStaffView(APIView):
    """
    POST /api/booking-staff/   { booking_id, staff_assignments: [{staff_id, staff_type}] }
    GET  /api/booking-staff/?booking_id=
    Booking owner or admin.
    """
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        booking_id = request.query_params.get("booking_id")
        if not booking_id:
            raise ValidationError({"booking_id": "ID tempahan diperlukan"})
        booking = _booking_for(request, booking_id)
        rows = BookingStaff.objects.filter(booking=booking).select_related("staff")
        return Response(BookingStaffSerializer(rows, many=True).data)

    def post(self, request):
        ser = AssignStaffSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        with transaction.atomic():
            booking = _booking_for(request, data["booking_id"], lock=True)
            assign_staff(booking, data["staff_assignments"], actor=request.user)

        rows = BookingStaff.objects.filter(booking=booking).select_related("staff")
        log.info("Staff assigned to booking %s by %s", booking.pk, request.user.pk)
        return Response(
            {
                "message": "Tugasan kakitangan berjaya disimpan",
                "assignments": BookingStaffSerializer(rows, many=True).data,
            },
            status=status.HTTP_201_CREATED,
        )
