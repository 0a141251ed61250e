"""URL configuration for the shortsfeed app.

This module defines the URL patterns for the app's views. It also
specifies the ``app_name`` to allow namespacing from the project URL
configuration.
"""

from django.urls import path

from . import views

app_name = 'shortsfeed'

urlpatterns = [
    path('feed/', views.shorts_feed, name='feed'),
    path('robots.txt', views.robots_txt, name='robots_txt'),
]
