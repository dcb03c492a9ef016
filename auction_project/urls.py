# auction_project/urls.py
from django.conf import settings
from django.contrib import admin
from django.urls import path, include, re_path
from django.views.static import serve

urlpatterns = [
    path('api/', include('auction.urls')),
    path('admin/', admin.site.urls),

    # Uploaded player images are addressable by URL in every environment
    re_path(r'^uploads/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
]
