"""
URL configuration for the TrustLedger project.

The ledger apps expose thin JSON endpoints; everything else is served
through the Django admin.
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('finance/', include('apps.finance.urls')),
    path('closure/', include('apps.closure.urls')),
]
