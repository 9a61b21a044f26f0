"""Constants used in the project."""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

from versioning.models import SourceSelector, VersionOrdering

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    CONNECTION_ERROR = 2
    FILE_ERROR = 1
    EXIT_WARNINGS = 3
    CANCELLED = 130


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    # NuGet V3 endpoints
    REGISTRY_URL_NUGET_V3 = "https://api.nuget.org/v3/index.json"
    REGISTRY_URL_NUGET_FLAT = "https://api.nuget.org/v3-flatcontainer/"
    REGISTRY_URL_NUGET_REGISTRATION = "https://api.nuget.org/v3/registration5-semver1/"
    NUGET_WEB_HOST = "www.nuget.org"
    NUGET_PUSH_SOURCE = "https://api.nuget.org/v3/index.json"
    NUGET_FLAT_TYPE_PREFIX = "PackageBaseAddress"
    NUGET_REGISTRATION_TYPE_PREFIX = "RegistrationsBaseUrl"
    DISCOVER_ENDPOINTS = True

    SUPPORTED_SOURCES = [s.value for s in SourceSelector]
    ORDERINGS = [o.value for o in VersionOrdering]
    VERSION_ORDER = "ordinal"
    CALIBRATE_WITH_CLI = True

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    USER_AGENT = "nugetmgr/1.0 (+https://www.nuget.org)"
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3

    # NuGet command-line tool
    NUGET_EXE_PATH: Optional[str] = None
    NUGET_EXE_NAME = "nuget.exe"
    NUGET_TEMP_DIR_NAME = "nugetmgr"
    NUGET_CLI_LAUNCHER: Optional[str] = None  # e.g. "mono" for nuget.exe on Linux/macOS
    CLI_LIST_TIMEOUT = 120
    CLI_DELETE_TIMEOUT = 300
    CLI_POLL_INTERVAL_SEC = 0.1
    CLI_TERMINATE_GRACE_SEC = 5

    ENV_API_KEY = "NUGET_API_KEY"
    ENV_CONFIG = "NUGETMGR_CONFIG"
    ENV_LOG_LEVEL = "NUGETMGR_LOG_LEVEL"
    DEFAULT_CONFIG_PATH = os.path.join("~", ".config", "nugetmgr", "nugetmgr.yml")
    LOW_VERSION_COUNT_WARNING = 10


# YAML section/key -> Constants attribute
_CONFIG_KEYS: Dict[str, Dict[str, str]] = {
    "nuget": {
        "service_index": "REGISTRY_URL_NUGET_V3",
        "flat_container": "REGISTRY_URL_NUGET_FLAT",
        "registration": "REGISTRY_URL_NUGET_REGISTRATION",
        "web_host": "NUGET_WEB_HOST",
        "push_source": "NUGET_PUSH_SOURCE",
        "discover_endpoints": "DISCOVER_ENDPOINTS",
    },
    "http": {
        "timeout": "REQUEST_TIMEOUT",
        "retries": "HTTP_RETRY_MAX",
        "retry_delay": "HTTP_RETRY_BASE_DELAY_SEC",
        "user_agent": "USER_AGENT",
    },
    "cli": {
        "path": "NUGET_EXE_PATH",
        "launcher": "NUGET_CLI_LAUNCHER",
        "list_timeout": "CLI_LIST_TIMEOUT",
        "delete_timeout": "CLI_DELETE_TIMEOUT",
        "terminate_grace": "CLI_TERMINATE_GRACE_SEC",
    },
    "resolution": {
        "order": "VERSION_ORDER",
        "calibrate_with_cli": "CALIBRATE_WITH_CLI",
    },
}


def _apply_config(data: Dict[str, Any]) -> int:
    """Overlay a parsed configuration mapping onto Constants.

    Returns:
        Number of constants that were changed.
    """
    applied = 0
    for section, keys in _CONFIG_KEYS.items():
        values = data.get(section)
        if not isinstance(values, dict):
            continue
        for key, attr in keys.items():
            if key in values and values[key] is not None:
                setattr(Constants, attr, values[key])
                applied += 1
    return applied


def _load_yaml_config(path: Optional[str] = None) -> int:
    """Load a YAML configuration file and apply it to Constants.

    Lookup order: explicit path, NUGETMGR_CONFIG, ~/.config/nugetmgr/nugetmgr.yml.
    A missing default file is not an error; an unreadable explicit file is logged.

    Returns:
        Number of constants that were changed.
    """
    explicit = path or os.environ.get(Constants.ENV_CONFIG)
    candidate = os.path.expanduser(explicit or Constants.DEFAULT_CONFIG_PATH)
    if not os.path.isfile(candidate):
        if explicit:
            logger.warning("Config file not found: %s", candidate)
        return 0

    import yaml  # pylint: disable=import-outside-toplevel

    try:
        with open(candidate, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.error("Failed to load config %s: %s", candidate, exc)
        return 0
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level is not a mapping", candidate)
        return 0
    applied = _apply_config(data)
    logger.debug("Loaded %d setting(s) from %s", applied, candidate)
    return applied
