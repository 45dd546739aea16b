from django.urls import include, path

from market import views as market_views

urlpatterns = [
    path("healthz/", market_views.healthz, name="healthz"),
    path("api/", include("market.api_urls")),
]
