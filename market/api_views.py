from __future__ import annotations

import logging
from collections.abc import Mapping

from django.utils import timezone
from rest_framework import permissions, status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from market.serializers import (
    AdrEstimateQuerySerializer,
    AmadeusPingQuerySerializer,
    CompetitorNearbyQuerySerializer,
    DemandQuerySerializer,
    HolidaysQuerySerializer,
    IcsQuerySerializer,
    InspectQuerySerializer,
    MonthlyRatesQuerySerializer,
    NearbyPlacesQuerySerializer,
    ReconQuerySerializer,
    RequiredCoordinatesSerializer,
    ReputationQuerySerializer,
    RevenueAssistantSerializer,
    SearchTextQuerySerializer,
    SuggestQuerySerializer,
    WeatherQuerySerializer,
    WikiQuerySerializer,
)
from market.services.adr import estimate_adr
from market.services.assistant import ask_assistant
from market.services.competitors import find_competitors
from market.services.demand import DemandQuery, synthesize_demand
from market.services.events import fetch_events
from market.services.external import month_weather, public_holidays
from market.services.geocoding import geocode, nearby_accommodation, reverse_geocode, search_accommodation
from market.services.location_context import classify_location
from market.services.pricing import PingQuery, amadeus_ping, monthly_rates
from market.services.provider_registry import provider_status
from market.services.providers.base import ProviderException
from market.services.recon import build_recon
from market.services.reputation import lookup_reputation
from market.services.site_inspector import inspect_site
from market.services.suggest import suggest_competitors
from market.services.trends import account_quota, account_selftest, account_usage, search_interest
from market.services.wiki import WIKI_NOTE, pageview_baseline

logger = logging.getLogger(__name__)


class SerpThrottle(AnonRateThrottle):
    scope = "serp"


class AssistantThrottle(AnonRateThrottle):
    scope = "assistant"


def compact_validation_errors(detail):  # noqa: ANN001, ANN201
    if isinstance(detail, list):
        if len(detail) == 1:
            return compact_validation_errors(detail[0])
        return [compact_validation_errors(item) for item in detail]
    if isinstance(detail, Mapping):
        return {str(key): compact_validation_errors(value) for key, value in detail.items()}
    return str(detail)


def _first_message(errors) -> str:  # noqa: ANN001
    if isinstance(errors, Mapping):
        if "non_field_errors" in errors:
            return _first_message(errors["non_field_errors"])
        key, value = next(iter(errors.items()))
        return f"{key}: {_first_message(value)}"
    if isinstance(errors, list):
        return _first_message(errors[0]) if errors else "invalid request"
    return str(errors)


def provider_error_status(exc: ProviderException) -> int:
    if exc.error_type == "config":
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_502_BAD_GATEWAY


class MarketAPIView(APIView):
    permission_classes = [permissions.AllowAny]

    def validated(self, serializer_class, data):  # noqa: ANN001, ANN201
        serializer = serializer_class(data=data)
        if serializer.is_valid():
            return serializer.validated_data, None
        errors = compact_validation_errors(serializer.errors)
        return None, Response(
            {"ok": False, "error": _first_message(errors), "errors": errors},
            status=status.HTTP_400_BAD_REQUEST,
        )

    def handle_exception(self, exc):  # noqa: ANN001, ANN201
        if isinstance(exc, ProviderException):
            logger.warning("%s upstream failure (%s): %s", self.__class__.__name__, exc.error_type, exc)
            return Response(
                {"ok": False, "error": str(exc), "error_type": exc.error_type},
                status=provider_error_status(exc),
            )
        if isinstance(exc, APIException):
            return super().handle_exception(exc)
        logger.exception("Unhandled error in %s", self.__class__.__name__)
        return Response({"ok": False, "error": "internal error"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


class AdrEstimateAPIView(MarketAPIView):
    def get(self, request):  # noqa: ANN001, ANN201
        data, error = self.validated(AdrEstimateQuerySerializer, request.query_params)
        if error:
            return error
        return Response(
            {
                "ok": True,
                "loc": data["loc"],
                "context": classify_location(data["loc"]),
                "rating": data.get("rating"),
                "adrMonthly": estimate_adr(data["loc"], data.get("rating")),
            },
        )


class CompetitorsNearbyAPIView(MarketAPIView):
    def get(self, request):  # noqa: ANN001, ANN201
        data, error = self.validated(CompetitorNearbyQuerySerializer, request.query_params)
        if error:
            return error
        center = (data["lat"], data["lng"]) if data.get("lat") is not None and data.get("lng") is not None else None
        result = find_competitors(
            center=center,
            place=data["place"],
            category=data["category"],
            radius_km=data["radius_km"],
            limit=data["limit"],
        )
        return Response(result.as_payload())


class CompetitorReconAPIView(MarketAPIView):
    def get(self, request):  # noqa: ANN001, ANN201
        data, error = self.validated(ReconQuerySerializer, request.query_params)
        if error:
            return error
        result = build_recon(
            name=data["name"].strip(),
            loc=data["loc"].strip(),
            site=data["site"].strip(),
            year=data.get("year"),
        )
        payload = {"ok": True, "profile": result.profile.as_dict(), "adrMonthly": result.adr_monthly}
        if result.notes:
            payload["notes"] = result.notes
        return Response(payload)


class CompetitorInspectAPIView(MarketAPIView):
    def get(self, request):  # noqa: ANN001, ANN201
        data, error = self.validated(InspectQuerySerializer, request.query_params)
        if error:
            return error
        return Response(inspect_site(data["url"].strip()).as_payload())


class CompetitorSuggestAPIView(MarketAPIView):
    def get(self, request):  # noqa: ANN001, ANN201
        data, error = self.validated(SuggestQuerySerializer, request.query_params)
        if error:
            return error
        items = suggest_competitors(name=data["name"].strip(), loc=data["loc"].strip())
        return Response({"ok": True, "items": items})


class DemandAPIView(MarketAPIView):
    throttle_classes = [SerpThrottle]

    def get(self, request):  # noqa: ANN001, ANN201
        data, error = self.validated(DemandQuerySerializer, request.query_params)
        if error:
            return error
        query = DemandQuery(
            place=data["place"],
            lat=data.get("lat"),
            lng=data.get("lng"),
            radius_km=data["radius_km"],
            month=data["month"].strip(),
        )
        return Response(synthesize_demand(query))


class MonthlyRatesAPIView(MarketAPIView):
    def get(self, request):  # noqa: ANN001, ANN201
        data, error = self.validated(MonthlyRatesQuerySerializer, request.query_params)
        if error:
            return error
        monthly = monthly_rates(
            year=data["year"],
            hotel_id=data["hotel_id"] or None,
            lat=data.get("lat"),
            lng=data.get("lng"),
            radius_km=data["radius"],
        )
        return Response({"ok": True, "year": data["year"], "monthly": monthly})


class AmadeusPingAPIView(MarketAPIView):
    def get(self, request):  # noqa: ANN001, ANN201
        data, error = self.validated(AmadeusPingQuerySerializer, request.query_params)
        if error:
            return error
        query = PingQuery(
            lat=data["lat"],
            lng=data["lng"],
            radius_km=data["radius_km"],
            check_in=data.get("check_in"),
            nights=data["nights"],
        )
        return Response(amadeus_ping(query))


class ReputationLookupAPIView(MarketAPIView):
    throttle_classes = [SerpThrottle]

    def get(self, request):  # noqa: ANN001, ANN201
        data, error = self.validated(ReputationQuerySerializer, request.query_params)
        if error:
            return error
        result = lookup_reputation(data["q"].strip(), data["loc"].strip())
        meta = {"ts": timezone.now().isoformat(), "mode": result.mode}
        if result.reason:
            meta["reason"] = result.reason
        return Response(
            {
                "ok": True,
                "entity": {"q": result.q, "loc": result.loc},
                "sources": result.sources,
                "compiled": {
                    "reputation_index": result.reputation_index,
                    "reviews_total": result.reviews_total,
                },
                "meta": meta,
            },
        )


class SerpDemandAPIView(MarketAPIView):
    throttle_classes = [SerpThrottle]

    def get(self, request):  # noqa: ANN001, ANN201
        data, error = self.validated(SearchTextQuerySerializer, request.query_params)
        if error:
            return error
        series = search_interest(data["q"])
        if not series.points:
            return Response({"ok": False, "error": "Serie vuota", "debug": series.usage})
        return Response(
            {
                "ok": True,
                "topic": series.topic,
                "geo": series.geo,
                "dateRange": series.date_range,
                "trend": series.labelled(),
                "usage": series.usage,
            },
        )


class SerpQuotaAPIView(MarketAPIView):
    def get(self, request):  # noqa: ANN001, ANN201
        return Response({"ok": True, **account_quota()})


class SerpUsageAPIView(MarketAPIView):
    def get(self, request):  # noqa: ANN001, ANN201
        return Response({"ok": True, "usage": account_usage()})


class SerpSelfTestAPIView(MarketAPIView):
    def get(self, request):  # noqa: ANN001, ANN201
        if not provider_status()["serpapi"]["configured"]:
            return Response(
                {"ok": False, "hasKey": False, "error": "SERPAPI_KEY missing"},
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        return Response({"ok": True, "hasKey": True, **account_selftest()})


class GeocodeAPIView(MarketAPIView):
    def get(self, request):  # noqa: ANN001, ANN201
        data, error = self.validated(SearchTextQuerySerializer, request.query_params)
        if error:
            return error
        results = geocode(data["q"])
        return Response({"ok": bool(results), "results": results})


class ReverseGeocodeAPIView(MarketAPIView):
    def get(self, request):  # noqa: ANN001, ANN201
        data, error = self.validated(RequiredCoordinatesSerializer, request.query_params)
        if error:
            return error
        return Response({"ok": True, "name": reverse_geocode(data["lat"], data["lng"])})


class WeatherAPIView(MarketAPIView):
    def get(self, request):  # noqa: ANN001, ANN201
        data, error = self.validated(WeatherQuerySerializer, request.query_params)
        if error:
            return error
        return Response({"ok": True, "weather": month_weather(data["lat"], data["lng"], data["month"])})


class HolidaysAPIView(MarketAPIView):
    def get(self, request):  # noqa: ANN001, ANN201
        data, error = self.validated(HolidaysQuerySerializer, request.query_params)
        if error:
            return error
        return Response({"ok": True, "holidays": public_holidays(data["year"], data["country"])})


class IcsEventsAPIView(MarketAPIView):
    def get(self, request):  # noqa: ANN001, ANN201
        data, error = self.validated(IcsQuerySerializer, request.query_params)
        if error:
            return error
        return Response({"ok": True, "events": fetch_events(data["url"])})


class WikiBaselineAPIView(MarketAPIView):
    def get(self, request):  # noqa: ANN001, ANN201
        data, error = self.validated(WikiQuerySerializer, request.query_params)
        if error:
            return error
        series = pageview_baseline(data["q"], months=data["months"])
        return Response({"ok": True, "series": series, "note": WIKI_NOTE})


class GeoSearchAPIView(MarketAPIView):
    def get(self, request):  # noqa: ANN001, ANN201
        data, error = self.validated(SearchTextQuerySerializer, request.query_params)
        if error:
            return error
        return Response({"ok": True, "items": search_accommodation(data["q"].strip())})


class GeoNearbyAPIView(MarketAPIView):
    def get(self, request):  # noqa: ANN001, ANN201
        data, error = self.validated(NearbyPlacesQuerySerializer, request.query_params)
        if error:
            return error
        return Response({"ok": True, "items": nearby_accommodation(data["lat"], data["lng"], data["radius_km"])})


class RevenueAssistantAPIView(MarketAPIView):
    throttle_classes = [AssistantThrottle]

    def post(self, request):  # noqa: ANN001, ANN201
        data, error = self.validated(RevenueAssistantSerializer, request.data)
        if error:
            return error
        answer = ask_assistant(data["message"], topic=data["topic"], context=data["context"])
        return Response({"ok": True, "answer": answer})


class ProviderStatusAPIView(MarketAPIView):
    def get(self, request):  # noqa: ANN001, ANN201
        return Response(provider_status())
