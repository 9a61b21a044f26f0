"""NuGet registry package.

This package provides the NuGet query channels and the mutation primitive:
- client.py: flat container and registration index queries over the V3 API
- cli.py: nuget.exe wrapper (list, delete/unlist, executable lookup)
- scrape.py: nuget.org web page scraping fallback
"""

from .client import (  # noqa: F401
    discover_resource,
    fetch_service_index,
    reset_service_index,
    fetch_flat_versions,
    fetch_registration_versions,
    fetch_registration_status,
)
from .cli import (  # noqa: F401
    CliResult,
    NugetExeLocator,
    delete_version,
    find_nuget_exe,
    list_versions,
    parse_list_output,
)
from .scrape import extract_versions, fetch_web_versions  # noqa: F401

__all__ = [
    # HTTP strategies
    "discover_resource",
    "fetch_service_index",
    "reset_service_index",
    "fetch_flat_versions",
    "fetch_registration_versions",
    "fetch_registration_status",
    # Command-line tool
    "CliResult",
    "NugetExeLocator",
    "delete_version",
    "find_nuget_exe",
    "list_versions",
    "parse_list_output",
    # Web scraping
    "extract_versions",
    "fetch_web_versions",
]
