# staff/admin.py
from django.contrib import admin

from .models import BookingStaff, Staff


@admin.register(Staff)
class StaffAdmin(admin.ModelAdmin):
    list_display = ("name", "staff_type", "phone", "is_active", "id")
    list_filter = ("staff_type", "is_active")
    search_fields = ("name", "phone", "id")


@admin.register(BookingStaff)
class BookingStaffAdmin(admin.ModelAdmin):
    list_display = ("booking", "staff", "staff_type", "assigned_by", "assigned_at")
    list_filter = ("staff_type",)
    raw_id_fields = ("booking", "staff", "assigned_by")
