import pytest

from config import RouteConfig, load_config
from errors import ConfigError


def test_defaults():
    config = load_config({})
    assert config.alternatives_count == 10
    assert config.safety_margin_ratio == 1.2
    assert config.travel_mode == "drive"
    assert config.request_timeout == 10.0
    assert config.api_key is None
    assert config.routing_url == "https://api.geoapify.com/v1/routing"


def test_environment_overrides():
    config = load_config({
        "SAFEROUTE_ALTERNATIVES": "4",
        "SAFEROUTE_MARGIN_RATIO": "1.5",
        "SAFEROUTE_TRAVEL_MODE": "Bike",
        "SAFEROUTE_TIMEOUT": "2.5",
        "SAFEROUTE_MAX_WORKERS": "2",
        "GEOAPIFY_API_KEY": "abc",
        "GEOAPIFY_BASE_URL": "http://localhost:8080/",
    })
    assert config.alternatives_count == 4
    assert config.safety_margin_ratio == 1.5
    assert config.travel_mode == "bike"
    assert config.request_timeout == 2.5
    assert config.max_workers == 2
    assert config.api_key == "abc"
    assert config.geocode_url == "http://localhost:8080/v1/geocode/search"


@pytest.mark.parametrize("env", [
    {"SAFEROUTE_MARGIN_RATIO": "0.9"},
    {"SAFEROUTE_MARGIN_RATIO": "nan"},
    {"SAFEROUTE_MARGIN_RATIO": "wide"},
    {"SAFEROUTE_TRAVEL_MODE": "transit"},
    {"SAFEROUTE_ALTERNATIVES": "0"},
    {"SAFEROUTE_TIMEOUT": "-1"},
    {"SAFEROUTE_MAX_WORKERS": "0"},
])
def test_invalid_values_are_rejected(env):
    with pytest.raises(ConfigError):
        load_config(env)


def test_margin_of_exactly_one_is_allowed():
    assert RouteConfig(safety_margin_ratio=1.0).safety_margin_ratio == 1.0
