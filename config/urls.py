from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static

# Main URL Configuration
# Routes all requests to appropriate apps
#   admin-panel/, settings/, dashboard/ -> apps.core
#   projects/                           -> apps.projects
#   crm/                                -> apps.leads

urlpatterns = [

    path('admin/', admin.site.urls),
    path('accounts/', include('apps.accounts.urls')),
    path('projects/', include('apps.projects.urls')),
    path('crm/', include('apps.leads.urls')),
    path('', include('apps.core.urls')),

]

if settings.DEBUG:
    # Media files (report logos, signatures, stage images)
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
