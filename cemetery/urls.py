from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import DeceasedSearchView, PlotViewSet

router = DefaultRouter()
router.register(r"plots", PlotViewSet, basename="plot")

urlpatterns = [
    path("deceased/search/", DeceasedSearchView.as_view(), name="deceased-search"),
    path("", include(router.urls)),
]
