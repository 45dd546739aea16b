from django.urls import path

from market import api_views

app_name = "market-api"

urlpatterns = [
    path("adr/estimate", api_views.AdrEstimateAPIView.as_view(), name="adr-estimate"),
    path("competitors/nearby", api_views.CompetitorsNearbyAPIView.as_view(), name="competitors-nearby"),
    path("competitors/recon", api_views.CompetitorReconAPIView.as_view(), name="competitors-recon"),
    path("competitors/inspect", api_views.CompetitorInspectAPIView.as_view(), name="competitors-inspect"),
    path("competitors/suggest", api_views.CompetitorSuggestAPIView.as_view(), name="competitors-suggest"),
    path("demand/ai", api_views.DemandAPIView.as_view(), name="demand-ai"),
    path("rates/monthly", api_views.MonthlyRatesAPIView.as_view(), name="rates-monthly"),
    path("amadeus/ping", api_views.AmadeusPingAPIView.as_view(), name="amadeus-ping"),
    path("reputation/lookup", api_views.ReputationLookupAPIView.as_view(), name="reputation-lookup"),
    path("serp/demand", api_views.SerpDemandAPIView.as_view(), name="serp-demand"),
    path("serp/quota", api_views.SerpQuotaAPIView.as_view(), name="serp-quota"),
    path("serp/usage", api_views.SerpUsageAPIView.as_view(), name="serp-usage"),
    path("serp/selftest", api_views.SerpSelfTestAPIView.as_view(), name="serp-selftest"),
    path("external/geocode", api_views.GeocodeAPIView.as_view(), name="external-geocode"),
    path("external/reverse-geocode", api_views.ReverseGeocodeAPIView.as_view(), name="external-reverse-geocode"),
    path("external/weather", api_views.WeatherAPIView.as_view(), name="external-weather"),
    path("external/holidays", api_views.HolidaysAPIView.as_view(), name="external-holidays"),
    path("events/ics", api_views.IcsEventsAPIView.as_view(), name="events-ics"),
    path("baseline/wiki", api_views.WikiBaselineAPIView.as_view(), name="baseline-wiki"),
    path("geo/search", api_views.GeoSearchAPIView.as_view(), name="geo-search"),
    path("geo/nearby", api_views.GeoNearbyAPIView.as_view(), name="geo-nearby"),
    path("revenue-assistant", api_views.RevenueAssistantAPIView.as_view(), name="revenue-assistant"),
    path("providers/status", api_views.ProviderStatusAPIView.as_view(), name="provider-status"),
]
