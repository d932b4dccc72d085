# booking/admin.py
from django.contrib import admin

from .models import Booking, BookingPackage, BookingStatusHistory, Package, Payment, PaymentSetting


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    fields = ("amount", "currency", "payment_status", "transaction_id", "paid_at", "verified_by", "verified_at")
    readonly_fields = fields
    can_delete = False


class BookingPackageInline(admin.TabularInline):
    model = BookingPackage
    extra = 0
    fields = ("package", "price")
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class BookingStatusHistoryInline(admin.TabularInline):
    model = BookingStatusHistory
    extra = 0
    fields = ("created_at", "old_status", "new_status", "action", "reason", "changed_by")
    readonly_fields = fields
    can_delete = False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("id", "plot", "user", "booking_date", "status", "total_price", "created_at")
    list_filter = ("status",)
    search_fields = ("plot__identifier", "user__username", "user__email", "deceased__name")
    raw_id_fields = ("user", "plot", "deceased", "approved_by")
    # status only moves through the lifecycle endpoints
    readonly_fields = ("status", "approved_by", "approval_date", "payment_deadline")
    inlines = [BookingPackageInline, PaymentInline, BookingStatusHistoryInline]

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("id", "booking", "amount", "currency", "payment_status", "paid_at", "verified_at")
    list_filter = ("payment_status", "payment_method")
    search_fields = ("booking__id", "transaction_id")
    raw_id_fields = ("booking", "verified_by")
    readonly_fields = ("payment_status", "verified_by", "verified_at")


@admin.register(BookingStatusHistory)
class BookingStatusHistoryAdmin(admin.ModelAdmin):
    list_display = ("booking", "old_status", "new_status", "action", "changed_by", "created_at")
    list_filter = ("action", "new_status")
    raw_id_fields = ("booking", "changed_by")


@admin.register(PaymentSetting)
class PaymentSettingAdmin(admin.ModelAdmin):
    list_display = ("type", "qr_image_url", "updated_at")


@admin.register(Package)
class PackageAdmin(admin.ModelAdmin):
    list_display = ("label", "price", "updated_at")
    search_fields = ("label",)
