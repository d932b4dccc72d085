from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import AdminWaqafViewSet, WaqafViewSet

router = DefaultRouter()
router.register(r"waqaf", WaqafViewSet, basename="waqaf")
router.register(r"admin/waqaf", AdminWaqafViewSet, basename="admin-waqaf")

urlpatterns = [
    path("", include(router.urls)),
]
