# dashboard/urls.py

from django.urls import path
from .views import (
    AdminDashboardView,
    BookingsExcelExportView,
    StatisticsExportView,
    UserDashboardView,
)

urlpatterns = [
    path("admin/", AdminDashboardView.as_view(), name="admin-dashboard"),
    path("me/", UserDashboardView.as_view(), name="user-dashboard"),
    path("export/", StatisticsExportView.as_view(), name="statistics-export"),
    path("bookings.xlsx", BookingsExcelExportView.as_view(), name="bookings-excel"),
]
