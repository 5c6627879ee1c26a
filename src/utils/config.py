"""
Configuration and secrets management for the Find an Allergist app.

Values come from Streamlit's secrets management (``.streamlit/secrets.toml``)
with a default for every key, so the search works unconfigured: Nominatim
geocoding, a local profile export and the standard page sizes.

Usage:
    from src.utils.config import get_api_config, get_search_config

    geocoding_config = get_api_config('geocoding')
    timeout = geocoding_config['request_timeout']

    per_page = get_search_config()['results_per_page']
"""

import logging
from typing import Any, Dict

import streamlit as st

logger = logging.getLogger(__name__)


def get_secret(key_path: str, default: Any = None) -> Any:
    """
    Safely retrieve a secret from Streamlit's secrets management.

    Args:
        key_path: Dot-notation path to the secret (e.g., 'search.results_per_page')
        default: Default value if secret is not found

    Returns:
        The secret value or default if not found

    Examples:
        >>> get_secret('geocoding.google_maps_api_key', '')
        >>> get_secret('app.debug_mode', False)
    """
    try:
        keys = key_path.split(".")
        value = st.secrets

        for key in keys:
            try:
                value = value[key]
            except Exception:
                return default

        return value
    except Exception as e:
        logger.warning(f"Failed to retrieve secret '{key_path}': {e}")
        return default


def get_api_config(api_name: str) -> Dict[str, Any]:
    """
    Get configuration for a specific external service.

    Args:
        api_name: 'geocoding' or 's3'

    Returns:
        Dictionary containing the service configuration (empty for unknown names)
    """
    if api_name == "geocoding":
        return {
            "google_maps_api_key": get_secret("geocoding.google_maps_api_key", ""),
            "google_maps_enabled": get_secret("geocoding.google_maps_enabled", False),
            "nominatim_user_agent": get_secret("geocoding.nominatim_user_agent", "find_an_allergist"),
            "request_timeout": get_secret("geocoding.request_timeout", 10),
            "country_code": get_secret("geocoding.country_code", "ca"),
        }
    elif api_name == "s3":
        return {
            "aws_access_key_id": get_secret("s3.aws_access_key_id", ""),
            "aws_secret_access_key": get_secret("s3.aws_secret_access_key", ""),
            "bucket_name": get_secret("s3.bucket_name", ""),
            "region_name": get_secret("s3.region_name", "ca-central-1"),
            "profiles_folder": get_secret("s3.profiles_folder", "physician_profiles"),
        }
    else:
        return {}


def get_search_config() -> Dict[str, Any]:
    """
    Get search and pagination settings.

    ``results_per_page`` is the page size of both the results page and the
    API (which lets callers override it per request).
    """
    return {
        "results_per_page": int(get_secret("search.results_per_page", 20)),
        "default_radius_km": float(get_secret("search.default_radius_km", 30)),
        "max_radius_km": float(get_secret("search.max_radius_km", 500)),
        "radius_choices_km": list(get_secret("search.radius_choices_km", [10, 20, 30, 40, 50, 100, 150, 200, 500])),
    }


def get_data_config() -> Dict[str, Any]:
    """
    Get profile data source configuration.

    Returns:
        Dictionary containing data source configuration
    """
    return {
        "profiles_path": get_secret("data.profiles_path", "data/physicians.json"),
        "use_s3": get_secret("data.use_s3", False),
    }


def get_app_config() -> Dict[str, Any]:
    """
    Get general application configuration.

    Returns:
        Dictionary containing app configuration
    """
    return {
        "environment": get_secret("app.environment", "production"),
        "debug_mode": get_secret("app.debug_mode", False),
        "log_level": get_secret("app.log_level", "INFO"),
    }


def is_api_enabled(api_name: str) -> bool:
    """
    Check if a specific API is enabled and properly configured.

    Args:
        api_name: Name of the API to check

    Returns:
        True if the API is enabled and has required configuration
    """
    if api_name == "google_maps":
        config = get_api_config("geocoding")
        return bool(config["google_maps_enabled"]) and bool(config["google_maps_api_key"])
    elif api_name == "s3":
        config = get_api_config("s3")
        return (
            bool(config["aws_access_key_id"]) and bool(config["aws_secret_access_key"]) and bool(config["bucket_name"])
        )
    else:
        return False


def validate_configuration() -> Dict[str, str]:
    """
    Validate the application configuration and return any warnings or errors.

    Returns:
        Dictionary with configuration validation results
    """
    issues = {}

    geocoding_config = get_api_config("geocoding")
    if geocoding_config["google_maps_enabled"] and not geocoding_config["google_maps_api_key"]:
        issues["geocoding"] = "Google Maps is enabled but no API key is provided"

    search_config = get_search_config()
    if search_config["results_per_page"] < 1:
        issues["search"] = "Page size must be at least 1"
    elif search_config["default_radius_km"] > search_config["max_radius_km"]:
        issues["search"] = "Default radius exceeds the maximum radius"

    data_config = get_data_config()
    if data_config["use_s3"] and not is_api_enabled("s3"):
        issues["data"] = "S3 profile source is enabled but S3 credentials or bucket are missing"

    app_config = get_app_config()
    if app_config["environment"] not in ["development", "staging", "production"]:
        issues["app"] = f"Unknown environment: {app_config['environment']}"

    return issues


if __name__ == "__main__":
    print("Find an Allergist - Configuration Status")
    print("=" * 50)

    issues = validate_configuration()
    if issues:
        print("⚠️  Configuration Issues Found:")
        for component, issue in issues.items():
            print(f"  - {component}: {issue}")
    else:
        print("✅ Configuration validation passed")

    print("\n📋 API Status:")
    for api in ["google_maps", "s3"]:
        status = "✅ Enabled" if is_api_enabled(api) else "❌ Disabled/Not configured"
        print(f"  - {api}: {status}")

    print(f"\n🔧 Environment: {get_app_config()['environment']}")
