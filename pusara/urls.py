from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/accounts/", include("accounts.urls")),
    path("api/cemetery/", include("cemetery.urls")),
    path("api/", include("booking.urls")),
    path("api/", include("kits.urls")),
    path("api/", include("staff.urls")),
    path("api/", include("waqaf.urls")),
    path("api/dashboard/", include("dashboard.urls")),
]
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
