from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import BookingKitView, FuneralKitViewSet

router = DefaultRouter()
router.register(r"funeral-kits", FuneralKitViewSet, basename="funeral-kit")

urlpatterns = [
    path("booking-kits/", BookingKitView.as_view(), name="booking-kits"),
    path("", include(router.urls)),
]
