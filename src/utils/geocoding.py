"""Origin geocoding for radius searches.

Resolves the visitor's city/province/postal code to a point with geopy.
Nothing is cached here: each call is one outbound request, bounded by the
configured timeout and never retried.
"""
import logging
from typing import Callable, Optional

from geopy.exc import GeocoderRateLimited, GeocoderTimedOut, GeocoderUnavailable, GeopyError
from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import GoogleV3, Nominatim

from src.data.models import Point
from src.utils.addressing import format_postal_code
from src.utils.config import get_api_config, is_api_enabled
from src.utils.errors import GeocodeError, GeocodeFailure

logger = logging.getLogger(__name__)

# Process-wide geocoder client (holds no results, only the HTTP adapter)
_GEOCODER: Optional[Callable] = None


def _build_geocoder() -> Callable:
    config = get_api_config("geocoding")
    country = str(config.get("country_code") or "ca")

    if is_api_enabled("google_maps"):
        google = GoogleV3(api_key=config["google_maps_api_key"])

        def geocode_fn(query, timeout=10):
            return google.geocode(query, components={"country": country.upper()}, timeout=timeout)

        logger.info("Using Google Maps geocoder")
        return geocode_fn

    nominatim = Nominatim(user_agent=config["nominatim_user_agent"])
    # Nominatim's usage policy allows one request per second; no retries.
    rate_limited = RateLimiter(nominatim.geocode, min_delay_seconds=1.0, max_retries=0, swallow_exceptions=False)

    def geocode_fn(query, timeout=10):
        return rate_limited(query, timeout=timeout, country_codes=country.lower())

    logger.info("Using Nominatim geocoder")
    return geocode_fn


def get_geocoder() -> Callable:
    global _GEOCODER
    if _GEOCODER is None:
        _GEOCODER = _build_geocoder()
    return _GEOCODER


def reset_geocoder() -> None:
    """Drop the memoised client, e.g. after configuration changes."""
    global _GEOCODER
    _GEOCODER = None


def build_origin_query(city: str = "", province: str = "", postal: str = "") -> str:
    """Compose the free-form origin address sent to the geocoder."""
    parts = [p.strip() for p in (city or "", province or "", format_postal_code(postal)) if p and p.strip()]
    if not parts:
        return ""
    return f"{' '.join(parts)}, Canada"


def geocode(address_text: str, *, geocoder: Optional[Callable] = None, timeout: Optional[float] = None) -> Point:
    """Resolve an address to a point.

    Raises:
        GeocodeError: NO_MATCH when nothing matched, UNAVAILABLE on transport
            failure, timeout or rate limiting.
    """
    if not address_text or not address_text.strip():
        raise GeocodeError(GeocodeFailure.NO_MATCH, address_text or "", "empty address")

    geocode_fn = geocoder or get_geocoder()
    if timeout is None:
        timeout = float(get_api_config("geocoding").get("request_timeout", 10))

    try:
        location = geocode_fn(address_text, timeout=timeout)
    except GeocoderTimedOut as e:
        raise GeocodeError(GeocodeFailure.UNAVAILABLE, address_text, f"timed out after {timeout}s") from e
    except (GeocoderUnavailable, GeocoderRateLimited) as e:
        raise GeocodeError(GeocodeFailure.UNAVAILABLE, address_text, str(e)) from e
    except GeopyError as e:
        raise GeocodeError(GeocodeFailure.UNAVAILABLE, address_text, f"{type(e).__name__}: {e}") from e
    except OSError as e:
        raise GeocodeError(GeocodeFailure.UNAVAILABLE, address_text, f"network error: {e}") from e

    if location is None:
        raise GeocodeError(GeocodeFailure.NO_MATCH, address_text)

    logger.debug(f"Geocoded '{address_text}' to ({location.latitude}, {location.longitude})")
    return Point(float(location.latitude), float(location.longitude))


def handle_geocoding_error(address: str, error: Exception) -> str:
    if isinstance(error, GeocodeError) and error.is_no_match:
        return f"❌ **Location Not Found**: Unable to find a location for '{address}'. Check the city or postal code."
    et = str(error).lower()
    if "timeout" in et or "timed out" in et:
        return "⏱️ **Geocoding Timeout**: The address lookup service is taking too long. Please try again in a moment."
    if "rate" in et or "limit" in et:
        return "🚦 **Rate Limited**: Too many requests to the geocoding service. Please wait a moment and try again."
    if "network" in et or "connection" in et:
        return "🌐 **Network Error**: Cannot connect to the geocoding service. Please check your internet connection."
    if "unavailable" in et or "service" in et:
        return "🔌 **Service Unavailable**: The geocoding service is temporarily unavailable. Please try again later."
    return f"❌ **Geocoding Error**: Unable to find location for '{address}'. (Error: {type(error).__name__})"
