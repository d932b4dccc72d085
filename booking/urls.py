# booking/urls.py
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    AdminBookingViewSet,
    AdminPaymentViewSet,
    BookingViewSet,
    PackageViewSet,
    QrPaymentSettingView,
)

router = DefaultRouter()
router.register(r"bookings", BookingViewSet, basename="booking")
router.register(r"admin/bookings", AdminBookingViewSet, basename="admin-booking")
router.register(r"admin/payments", AdminPaymentViewSet, basename="admin-payment")
router.register(r"packages", PackageViewSet, basename="package")

urlpatterns = [
    path("payment-settings/qr/", QrPaymentSettingView.as_view(), name="payment-settings-qr"),
    path("", include(router.urls)),
]
