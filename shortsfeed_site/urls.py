"""Root URL configuration for shortsfeed_site."""

from django.urls import include, path

urlpatterns = [
    path('', include('shortsfeed.urls')),
]
