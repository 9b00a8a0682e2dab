from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('sitebook.core.urls')),
    path('api/v1/', include('sitebook.categories.urls')),
    path('api/v1/', include('sitebook.parties.urls')),
    path('api/v1/', include('sitebook.projects.urls')),
    path('api/v1/', include('sitebook.finance.urls')),
    path('api/v1/', include('sitebook.boq.urls')),
    path('api/v1/', include('sitebook.documents.urls')),
    path('api/v1/', include('sitebook.reports.urls')),
]

admin.site.site_header = "SiteBook Administration"
admin.site.site_title = "SiteBook Admin"
admin.site.index_title = "Construction Ledger"
