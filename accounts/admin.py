# accounts/admin.py
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.db.models import Count
from django.utils.translation import gettext_lazy as _

from booking.models import Booking

from .models import Role, User


class BookingInline(admin.TabularInline):
    model = Booking
    fk_name = "user"
    extra = 0
    fields = ("id", "plot", "booking_date", "status", "total_price")
    readonly_fields = fields
    can_delete = False
    show_change_link = True

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Customers and back-office admins. Role decides who can run the
    booking approvals; is_staff only opens this admin site.
    """

    list_display = ("username", "email", "display_name", "phone", "role", "booking_count", "is_active")
    list_filter = ("role", "is_active", "is_staff")
    search_fields = ("username", "email", "first_name", "last_name", "phone")
    ordering = ("username",)
    inlines = [BookingInline]
    actions = ["make_admin", "make_user"]

    fieldsets = BaseUserAdmin.fieldsets[:1] + (
        (_("Profil"), {"fields": ("first_name", "last_name", "email", "phone")}),
        (_("Peranan"), {"fields": ("role", "is_active", "is_staff", "is_superuser")}),
        (_("Tarikh"), {"fields": ("last_login", "date_joined")}),
    )
    add_fieldsets = (
        (None, {
            "classes": ("wide",),
            "fields": ("username", "email", "phone", "role", "password1", "password2"),
        }),
    )

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(_booking_count=Count("bookings"))

    @admin.display(description="Tempahan", ordering="_booking_count")
    def booking_count(self, obj):
        return obj._booking_count

    @admin.action(description="Tetapkan peranan ADMIN")
    def make_admin(self, request, queryset):
        queryset.update(role=Role.ADMIN)

    @admin.action(description="Tetapkan peranan USER")
    def make_user(self, request, queryset):
        queryset.update(role=Role.USER)
