"""Azure region endpoint registry."""

from __future__ import annotations

from typing import Iterable
from urllib.parse import urlparse

from regionperf.config import BLOB_URL_TEMPLATE
from regionperf.errors import ConfigurationError
from regionperf.models import Endpoint

# (region, geography, storage account, enabled by default)
_REGIONS: list[tuple[str, str, str, bool]] = [
    ("eastus", "Americas", "rpeastus", True),
    ("eastus2", "Americas", "rpeastus2", False),
    ("centralus", "Americas", "rpcentralus", True),
    ("northcentralus", "Americas", "rpnorthcentralus", False),
    ("southcentralus", "Americas", "rpsouthcentralus", False),
    ("westus", "Americas", "rpwestus", False),
    ("westus2", "Americas", "rpwestus2", True),
    ("westus3", "Americas", "rpwestus3", False),
    ("canadacentral", "Americas", "rpcanadacentral", False),
    ("brazilsouth", "Americas", "rpbrazilsouth", False),
    ("northeurope", "Europe", "rpnortheurope", True),
    ("westeurope", "Europe", "rpwesteurope", True),
    ("uksouth", "Europe", "rpuksouth", False),
    ("francecentral", "Europe", "rpfrancecentral", False),
    ("germanywestcentral", "Europe", "rpgermanywc", False),
    ("swedencentral", "Europe", "rpswedencentral", False),
    ("switzerlandnorth", "Europe", "rpswitzerlandnorth", False),
    ("eastasia", "Asia Pacific", "rpeastasia", False),
    ("southeastasia", "Asia Pacific", "rpsoutheastasia", True),
    ("japaneast", "Asia Pacific", "rpjapaneast", False),
    ("koreacentral", "Asia Pacific", "rpkoreacentral", False),
    ("centralindia", "Asia Pacific", "rpcentralindia", False),
    ("australiaeast", "Asia Pacific", "rpaustraliaeast", False),
    ("uaenorth", "Middle East & Africa", "rpuaenorth", False),
    ("southafricanorth", "Middle East & Africa", "rpsouthafricanorth", False),
]

_ENDPOINT_MAP: dict[str, Endpoint] | None = None


def _load_endpoints() -> dict[str, Endpoint]:
    return {
        name: Endpoint(
            name=name,
            url=BLOB_URL_TEMPLATE.format(account=account),
            geography=geography,
            enabled=enabled,
        )
        for name, geography, account, enabled in _REGIONS
    }


def get_endpoint_map() -> dict[str, Endpoint]:
    """Return the mapping of region name -> endpoint, loading lazily."""
    global _ENDPOINT_MAP
    if _ENDPOINT_MAP is None:
        _ENDPOINT_MAP = _load_endpoints()
    return _ENDPOINT_MAP


def get_endpoint(name: str) -> Endpoint:
    """Look up a built-in endpoint by region name."""
    emap = get_endpoint_map()
    if name not in emap:
        raise ConfigurationError(f"Unknown region: {name!r}. Available: {', '.join(list_regions())}")
    return emap[name]


def list_regions() -> list[str]:
    """Return sorted list of built-in region names."""
    return sorted(get_endpoint_map())


def default_endpoints() -> tuple[Endpoint, ...]:
    """Return the regions enabled out of the box."""
    return tuple(e for e in get_endpoint_map().values() if e.enabled)


def select_endpoints(names: Iterable[str] = (), include_all: bool = False) -> tuple[Endpoint, ...]:
    """Resolve a region selection into endpoints.

    Explicit *names* win over *include_all*; with neither, the default-enabled
    regions are returned.  Selected regions are always enabled, even when the
    registry has them off by default.
    """
    names = [n.strip().lower() for n in names if n.strip()]
    if names:
        unknown = [n for n in names if n not in get_endpoint_map()]
        if unknown:
            raise ConfigurationError(
                f"Unknown regions: {', '.join(unknown)}. Available: {', '.join(list_regions())}"
            )
        selected: list[Endpoint] = []
        for n in dict.fromkeys(names):
            e = get_endpoint(n)
            selected.append(e if e.enabled else Endpoint(e.name, e.url, e.geography, True))
        return tuple(selected)

    if include_all:
        return tuple(Endpoint(e.name, e.url, e.geography, True) for e in get_endpoint_map().values())

    return default_endpoints()


def parse_custom_endpoint(value: str) -> Endpoint:
    """Build an endpoint from a ``NAME=URL`` string given on the command line."""
    name, sep, url = value.partition("=")
    name = name.strip()
    url = url.strip()
    if not sep or not name or not url:
        raise ConfigurationError(f"Custom endpoint must look like NAME=URL, got {value!r}")

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ConfigurationError(f"Custom endpoint {name!r} has an invalid URL: {url!r}")

    return Endpoint(name=name, url=url, geography="Custom", enabled=True)
