"""Version banner, release-notes links and detection of newer releases."""

from __future__ import annotations

import logging
import urllib.error
import urllib.request
from typing import Optional

from packaging.version import InvalidVersion, Version

log = logging.getLogger(__name__)

VERSION = "0.0.0"
COMMIT = "none"
DATE = "unknown"

REPO_URL = "https://git.example.com/containerlab"
DOCS_URL = "https://docs.example.com"
RELEASE_TAG_MARKER = "releases/tag/"

SLUG = r"""
                           _                   _       _     
                 _        (_)                 | |     | |    
 ____ ___  ____ | |_  ____ _ ____   ____  ____| | ____| | _  
/ ___) _ \|  _ \|  _)/ _  | |  _ \ / _  )/ ___) |/ _  | || \ 
( (__| |_|| | | | |_( ( | | | | | ( (/ /| |   | ( ( | | |_) )
\____)___/|_| |_|\___)_||_|_|_| |_|\____)_|   |_|\_||_|____/ 
"""


def docs_link_from_ver(ver: str) -> str:
    """Release-notes path for a version: ``0.15/`` for 0.15.0, ``0.15/#0151`` for 0.15.1."""
    release = list(Version(ver).release) + [0, 0, 0]
    major, minor, patch = release[:3]
    slug = f"{major}.{minor}/"
    if patch != 0:
        slug += f"#{major}{minor}{patch}"
    return slug


def version_text(version: str = VERSION, commit: str = COMMIT, date: str = DATE) -> str:
    """The banner and build details printed by the version command."""
    return (
        f"{SLUG}\n"
        f"    version: {version}\n"
        f"     commit: {commit}\n"
        f"       date: {date}\n"
        f"     source: {REPO_URL}\n"
        f" rel. notes: {DOCS_URL}/rn/{docs_link_from_ver(version)}\n"
    )


def is_newer(latest: str, current: str) -> bool:
    """True when ``latest`` is a strictly greater version than ``current``."""
    try:
        return Version(latest) > Version(current)
    except InvalidVersion:
        return False


class _NoRedirect(urllib.request.HTTPRedirectHandler):
    def redirect_request(self, req, fp, code, msg, headers, newurl):
        return None


def latest_version(current: str = VERSION, timeout: float = 5.0) -> Optional[str]:
    """Return the latest released version if it is newer than ``current``."""
    opener = urllib.request.build_opener(_NoRedirect)
    request = urllib.request.Request(f"{REPO_URL}/releases/latest", method="HEAD")
    try:
        with opener.open(request, timeout=timeout):
            log.debug("error occurred during latest version fetch: no redirect")
            return None
    except urllib.error.HTTPError as exc:
        if exc.code != 302:
            log.debug("error occurred during latest version fetch: %s", exc)
            return None
        location = exc.headers.get("Location", "")
    except (urllib.error.URLError, OSError, ValueError) as exc:
        log.debug("error occurred during latest version fetch: %s", exc)
        return None

    parts = location.split(RELEASE_TAG_MARKER)
    if len(parts) < 2:
        return None
    try:
        latest = Version(parts[1])
    except InvalidVersion:
        return None
    if is_newer(str(latest), current):
        log.debug("latest version %s is newer than the current one %s", latest, current)
        return str(latest)
    return None


def new_version_notification(ver: str) -> str:
    """Message announcing that a newer release is available."""
    return (
        f"New containerlab version {ver} is available! "
        f"Release notes: {DOCS_URL}/rn/{docs_link_from_ver(ver)}\n"
        "Run 'containerlab version upgrade' to upgrade or go check other "
        f"installation options at {DOCS_URL}/install/\n"
    )