from __future__ import annotations

import re
from datetime import date

from django.utils import timezone
from rest_framework import serializers

from market.services.competitors import DEFAULT_CATEGORY
from market.services.external import MAX_HOLIDAY_YEAR, MIN_HOLIDAY_YEAR

_MONTH_VALUE = re.compile(r"^(\d{4})-(\d{2})(?:-(\d{2}))?$")


def normalize_month(value: str) -> date | None:
    """Accept YYYY-MM or YYYY-MM-DD and return the first day of that month."""
    match = _MONTH_VALUE.match((value or "").strip())
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3) or 1)).replace(day=1)
    except ValueError:
        return None


class CoordinatesMixin(serializers.Serializer):
    lat = serializers.FloatField(required=False, allow_null=True, min_value=-90, max_value=90)
    lng = serializers.FloatField(required=False, allow_null=True, min_value=-180, max_value=180)

    def has_coordinates(self, attrs) -> bool:  # noqa: ANN001
        return attrs.get("lat") is not None and attrs.get("lng") is not None


class RequiredCoordinatesSerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)


class AdrEstimateQuerySerializer(serializers.Serializer):
    loc = serializers.CharField(max_length=160, required=False, allow_blank=True, default="")
    rating = serializers.FloatField(required=False, allow_null=True, min_value=0, max_value=10)


class CompetitorNearbyQuerySerializer(CoordinatesMixin):
    place = serializers.CharField(max_length=160, required=False, allow_blank=True, default="")
    category = serializers.CharField(max_length=64, required=False, allow_blank=True, default=DEFAULT_CATEGORY)
    # Out-of-range or unparsable values are clamped by the aggregator, not rejected.
    radius_km = serializers.CharField(max_length=16, required=False, allow_blank=True, default="")
    limit = serializers.CharField(max_length=16, required=False, allow_blank=True, default="")


class ReconQuerySerializer(serializers.Serializer):
    name = serializers.CharField(max_length=160, required=False, allow_blank=True, default="")
    loc = serializers.CharField(max_length=160, required=False, allow_blank=True, default="")
    site = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    year = serializers.IntegerField(required=False, allow_null=True, min_value=2000, max_value=2100)

    def validate(self, attrs):  # noqa: ANN001, ANN201
        if not (attrs["name"].strip() or attrs["loc"].strip() or attrs["site"].strip()):
            raise serializers.ValidationError("Missing name/loc/site")
        return attrs


class InspectQuerySerializer(serializers.Serializer):
    url = serializers.CharField(max_length=500)


class SuggestQuerySerializer(serializers.Serializer):
    name = serializers.CharField(max_length=160, required=False, allow_blank=True, default="")
    loc = serializers.CharField(max_length=160, required=False, allow_blank=True, default="")


class DemandQuerySerializer(CoordinatesMixin):
    place = serializers.CharField(max_length=160, required=False, allow_blank=True, default="")
    location = serializers.CharField(max_length=160, required=False, allow_blank=True, default="")
    radius_km = serializers.FloatField(required=False, default=30, min_value=1, max_value=60)
    month = serializers.CharField(max_length=10, required=False, allow_blank=True, default="")

    def validate(self, attrs):  # noqa: ANN001, ANN201
        attrs["place"] = (attrs["place"] or attrs.pop("location", "")).strip()
        attrs.pop("location", None)
        if not attrs["place"] and not self.has_coordinates(attrs):
            raise serializers.ValidationError("Serve place oppure lat+lng.")
        return attrs


class MonthlyRatesQuerySerializer(CoordinatesMixin):
    year = serializers.IntegerField(required=False, min_value=2000, max_value=2100)
    hotel_id = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    radius = serializers.FloatField(required=False, default=10, min_value=1, max_value=300)

    def validate(self, attrs):  # noqa: ANN001, ANN201
        attrs.setdefault("year", timezone.localdate().year)
        if not attrs["hotel_id"] and not self.has_coordinates(attrs):
            raise serializers.ValidationError("Richiede hotel_id oppure lat/lng")
        return attrs


class AmadeusPingQuerySerializer(serializers.Serializer):
    lat = serializers.FloatField(required=False, default=45.985, min_value=-90, max_value=90)
    lng = serializers.FloatField(required=False, default=9.257, min_value=-180, max_value=180)
    radius_km = serializers.FloatField(required=False, default=12)
    check_in = serializers.DateField(required=False, allow_null=True)
    nights = serializers.IntegerField(required=False, default=1)


class ReputationQuerySerializer(serializers.Serializer):
    q = serializers.CharField(max_length=160)
    loc = serializers.CharField(max_length=160, required=False, allow_blank=True, default="")


class SearchTextQuerySerializer(serializers.Serializer):
    q = serializers.CharField(max_length=160)


class WeatherQuerySerializer(RequiredCoordinatesSerializer):
    month = serializers.CharField(max_length=10)

    def validate_month(self, value: str) -> date:
        parsed = normalize_month(value)
        if parsed is None:
            raise serializers.ValidationError("Expected YYYY-MM or YYYY-MM-DD.")
        return parsed


class HolidaysQuerySerializer(serializers.Serializer):
    year = serializers.IntegerField(min_value=MIN_HOLIDAY_YEAR, max_value=MAX_HOLIDAY_YEAR)
    country = serializers.RegexField(r"^[A-Za-z]{2}$", required=False, default="IT")

    def validate_country(self, value: str) -> str:
        return value.upper()


class IcsQuerySerializer(serializers.Serializer):
    url = serializers.URLField(max_length=1000)


class WikiQuerySerializer(serializers.Serializer):
    q = serializers.CharField(max_length=120, required=False, allow_blank=True, default="")
    city = serializers.CharField(max_length=120, required=False, allow_blank=True, default="")
    months = serializers.CharField(max_length=8, required=False, allow_blank=True, default="12")

    def validate(self, attrs):  # noqa: ANN001, ANN201
        attrs["q"] = (attrs["q"] or attrs.pop("city", "")).strip()
        attrs.pop("city", None)
        if not attrs["q"]:
            raise serializers.ValidationError("Missing city (q)")
        return attrs


class NearbyPlacesQuerySerializer(RequiredCoordinatesSerializer):
    radius_km = serializers.CharField(max_length=16, required=False, allow_blank=True, default="5")


class RevenueAssistantSerializer(serializers.Serializer):
    message = serializers.CharField(required=False, allow_blank=True, default="", trim_whitespace=False)
    topic = serializers.CharField(max_length=64, required=False, allow_blank=True, default="generale")
    context = serializers.JSONField(required=False, allow_null=True, default=None)
