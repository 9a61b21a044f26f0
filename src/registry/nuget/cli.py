"""Wrapper around the NuGet command-line tool (nuget.exe).

Used as a slower alternative listing source, as the second calibration pass,
and as the only mutation primitive (``nuget delete`` unlists a version on
nuget.org). Every call degrades to an empty or failed result; nothing raises
past this module.
"""
from __future__ import annotations

import contextlib
import logging
import os
import re
import shutil
import subprocess
import tempfile
import threading
from dataclasses import dataclass
from importlib import resources
from typing import TYPE_CHECKING, Iterator, List, Optional

from constants import Constants
from common.logging_utils import extra_context, redact
from versioning.models import StrategyResult, VersionRecord, normalize_package_id

if TYPE_CHECKING:
    from mutation.engine import CancelToken

logger = logging.getLogger(__name__)

SOURCE_CLI = "cli"
_BUNDLED_RESOURCE = ("registry.nuget", "bin/nuget.exe")


@dataclass
class CliResult:
    """Outcome of one nuget.exe invocation."""
    ok: bool
    returncode: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    message: str = ""
    cancelled: bool = False


class NugetExeLocator:
    """Resolve the nuget.exe path once per process.

    Lookup order: configured path, bundled copy extracted to the temp dir,
    well-known install directories, PATH. The cached path is re-checked on
    every call and re-resolved if the file disappeared.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._path: Optional[str] = None

    def find(self) -> Optional[str]:
        cached = self._path
        if cached and os.path.isfile(cached):
            return cached
        with self._lock:
            if self._path and os.path.isfile(self._path):
                return self._path
            self._path = self._locate()
            if self._path:
                logger.debug("Using NuGet CLI at %s", self._path)
            return self._path

    def reset(self) -> None:
        with self._lock:
            self._path = None

    def _locate(self) -> Optional[str]:
        configured = Constants.NUGET_EXE_PATH
        if configured:
            configured = os.path.expanduser(configured)
            if os.path.isfile(configured):
                return configured
            logger.warning("Configured NuGet CLI not found: %s", configured)

        extracted = self._extract_bundled()
        if extracted:
            return extracted

        for candidate in _well_known_paths():
            if os.path.isfile(candidate):
                return candidate

        for name in (Constants.NUGET_EXE_NAME, "nuget"):
            found = shutil.which(name)
            if found:
                return found
        return None

    def _extract_bundled(self) -> Optional[str]:
        target = os.path.join(tempfile.gettempdir(), Constants.NUGET_TEMP_DIR_NAME, Constants.NUGET_EXE_NAME)
        if os.path.isfile(target):
            return target
        try:
            bundled = resources.files(_BUNDLED_RESOURCE[0]).joinpath(_BUNDLED_RESOURCE[1])
            if not bundled.is_file():
                return None
            os.makedirs(os.path.dirname(target), exist_ok=True)
            with bundled.open("rb") as src, open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)
        except (OSError, ModuleNotFoundError) as exc:
            logger.debug("Bundled NuGet CLI not extracted: %s", exc)
            return None
        return target


def _well_known_paths() -> List[str]:
    paths = []
    local_app_data = os.environ.get("LOCALAPPDATA")
    if local_app_data:
        paths.append(os.path.join(local_app_data, "Microsoft", "WindowsApps", Constants.NUGET_EXE_NAME))
    for var in ("ProgramFiles", "ProgramFiles(x86)"):
        root = os.environ.get(var)
        if root:
            paths.append(os.path.join(root, "NuGet", Constants.NUGET_EXE_NAME))
    paths.append(os.path.join("/usr", "local", "lib", "nuget", Constants.NUGET_EXE_NAME))
    paths.append(os.path.join("/usr", "lib", "nuget", Constants.NUGET_EXE_NAME))
    return paths


_LOCATOR = NugetExeLocator()


def find_nuget_exe() -> Optional[str]:
    """Process-wide cached nuget.exe lookup."""
    return _LOCATOR.find()


def build_command(exe: str, *args: str) -> List[str]:
    """Prefix a launcher for nuget.exe on non-Windows hosts (e.g. mono)."""
    launcher = Constants.NUGET_CLI_LAUNCHER
    if not launcher and os.name != "nt" and exe.lower().endswith(".exe"):
        launcher = shutil.which("mono")
    command = [launcher] if launcher else []
    return command + [exe] + list(args)


def parse_list_output(package_id: str, output: str) -> List[str]:
    """Extract versions from ``nuget list`` output lines '<id> <version>'.

    Only lines whose first token is exactly the package id (case-insensitive)
    count; 'Foo.Bar 1.0' is ignored when listing 'Foo'.
    """
    pattern = re.compile(rf"^{re.escape(package_id)}\s+(\S+)", re.IGNORECASE)
    versions = []
    for line in output.splitlines():
        match = pattern.match(line.strip())
        if match:
            versions.append(match.group(1))
    return versions


def list_versions(package: str) -> StrategyResult:
    """List all versions (including pre-release) reported by ``nuget list``.

    The tool only reports listed versions, so every record is listed.
    """
    package_id = normalize_package_id(package)
    result = StrategyResult(source=SOURCE_CLI)
    result.log.append("Trying NuGet CLI Tool...")
    exe = find_nuget_exe()
    if not exe:
        result.ok = False
        result.log.append("NuGet CLI not found")
        logger.warning("NuGet CLI not found")
        return result

    command = build_command(exe, "list", package_id, "-AllVersions", "-PreRelease")
    try:
        completed = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=Constants.CLI_LIST_TIMEOUT,
            check=False,
        )
    except subprocess.TimeoutExpired:
        result.ok = False
        result.log.append(f"NuGet CLI timed out after {Constants.CLI_LIST_TIMEOUT} seconds")
        logger.warning("NuGet CLI list timed out for %s", package_id)
        return result
    except OSError as exc:
        result.ok = False
        result.log.append(f"NuGet CLI error: {exc}")
        logger.warning("NuGet CLI could not be started: %s", exc)
        return result

    if completed.returncode != 0:
        result.ok = False
        reason = (completed.stderr or completed.stdout or "").strip()
        result.log.append(f"NuGet CLI failed (exit {completed.returncode}): {reason}")
        logger.warning("NuGet CLI list failed for %s with exit code %s", package_id, completed.returncode)
        return result

    result.records = [VersionRecord(v, True) for v in parse_list_output(package_id, completed.stdout)]
    result.log.append(f"Found {len(result.records)} versions via NuGet CLI")
    logger.info("Found %d versions via NuGet CLI", len(result.records))
    return result


@contextlib.contextmanager
def _scoped_process(command: List[str]) -> Iterator[subprocess.Popen]:
    """Start a child process that is guaranteed to be gone on exit."""
    with subprocess.Popen(
        command,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        stdin=subprocess.DEVNULL,
        text=True,
    ) as proc:
        try:
            yield proc
        finally:
            if proc.poll() is None:
                proc.terminate()
                try:
                    proc.wait(timeout=Constants.CLI_TERMINATE_GRACE_SEC)
                except subprocess.TimeoutExpired:
                    proc.kill()
                    proc.wait()


def delete_version(
    package: str,
    version: str,
    api_key: str,
    cancel_token: Optional["CancelToken"] = None,
    source: Optional[str] = None,
) -> CliResult:
    """Run ``nuget delete`` for one version (unlists it on nuget.org).

    Waits for the process while polling the cancel token; on cancellation
    the child is terminated and the result is marked cancelled. The API key
    never appears in log output or in the returned message.
    """
    package_id = normalize_package_id(package)
    exe = find_nuget_exe()
    if not exe:
        logger.error("NuGet CLI not found, cannot unlist %s %s", package_id, version)
        return CliResult(ok=False, message="NuGet CLI not found")

    command = build_command(
        exe, "delete", package_id, version,
        "-ApiKey", api_key,
        "-Source", source or Constants.NUGET_PUSH_SOURCE,
        "-NonInteractive",
    )
    logger.debug(
        "NuGet CLI delete",
        extra=extra_context(
            event="cli_invoke",
            component="cli",
            action="delete",
            target=f"{package_id} {version}",
        ),
    )

    waited = 0.0
    try:
        with _scoped_process(command) as proc:
            while True:
                if cancel_token is not None and cancel_token.cancelled:
                    return CliResult(ok=False, message="Cancelled while running", cancelled=True)
                try:
                    stdout, stderr = proc.communicate(timeout=Constants.CLI_POLL_INTERVAL_SEC)
                    break
                except subprocess.TimeoutExpired:
                    waited += Constants.CLI_POLL_INTERVAL_SEC
                    if waited >= Constants.CLI_DELETE_TIMEOUT:
                        return CliResult(ok=False, message=f"Timed out after {Constants.CLI_DELETE_TIMEOUT} seconds")
    except OSError as exc:
        message = redact(f"Command execution failed: {exc}", api_key)
        logger.error(message)
        return CliResult(ok=False, message=message)

    stdout = redact(stdout or "", api_key)
    stderr = redact(stderr or "", api_key)
    if proc.returncode == 0:
        return CliResult(ok=True, returncode=0, stdout=stdout, stderr=stderr, message="Unlisted")
    detail = (stderr or stdout).strip()
    message = f"Command failed (exit {proc.returncode})" + (f": {detail}" if detail else "")
    logger.warning("%s %s: %s", package_id, version, message)
    return CliResult(ok=False, returncode=proc.returncode, stdout=stdout, stderr=stderr, message=message)
