from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import BookingStaffView, StaffViewSet

router = DefaultRouter()
router.register(r"staff", StaffViewSet, basename="staff")

urlpatterns = [
    path("booking-staff/", BookingStaffView.as_view(), name="booking-staff"),
    path("", include(router.urls)),
]
