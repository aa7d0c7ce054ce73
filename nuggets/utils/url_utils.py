"""URL classification and normalization helpers.

Media URLs come from user paste and upload, so nothing here raises on a
malformed URL; unparseable input falls back to plain string checks.
"""

from __future__ import annotations

import re
from typing import Literal
from urllib.parse import SplitResult, urlparse, urlsplit

UrlKind = Literal["image", "video", "document", "link", "text", "youtube"]

IMAGE_EXTENSION_RE = re.compile(r"\.(jpg|jpeg|png|gif|webp|svg)$", re.IGNORECASE)
VIDEO_EXTENSION_RE = re.compile(r"\.(mp4|webm|ogg)$", re.IGNORECASE)
DOCUMENT_EXTENSION_RE = re.compile(r"\.(pdf|doc|docx|xls|xlsx|ppt|pptx)$", re.IGNORECASE)
IMAGE_FORMAT_QUERY_RE = re.compile(r"[?&]format=(jpg|jpeg|png|gif|webp)", re.IGNORECASE)
MEDIA_PATH_SEGMENT_RE = re.compile(r"/(media|image|photo|pic|img)/", re.IGNORECASE)

YOUTUBE_HOSTS = ("youtube.com", "youtu.be")

# Hosts that only ever serve images
SOCIAL_IMAGE_HOSTS = {"i.redd.it", "preview.redd.it", "i.imgur.com"}

# Generic CDN markers; these hosts also serve HTML, so they need a second signal
CDN_HOST_MARKERS = ("images.ctfassets.net", "thumbs.", "cdn.", "img.", "image.")
CDN_IMAGE_QUERY_HINTS = ("fm=", "q=", "format=")
NON_IMAGE_PATH_SUFFIXES = (".html", ".php", "/")

AUTO_TITLE_CONTENT_TYPES = {"social", "video"}
AUTO_TITLE_HOST_MARKERS = (
    "facebook.com",
    "threads.net",
    "reddit.com",
    "youtube.com",
    "youtu.be",
    "vimeo.com",
)

_DEFAULT_PORTS = {"http": 80, "https": 443}


def is_http_url(value: str | None) -> bool:
    """Return True when value is a valid http(s) URL."""
    if not value or not isinstance(value, str):
        return False
    try:
        parsed = urlparse(value.strip())
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def _split_absolute(url: str) -> SplitResult | None:
    """Split ``url`` when it is absolute (scheme and host), else None."""
    try:
        parsed = urlsplit(url.strip())
        # Accessing .port validates it
        parsed.port
    except ValueError:
        return None
    if not parsed.scheme or not parsed.hostname:
        return None
    return parsed


def _path_of(url: str) -> str:
    parsed = _split_absolute(url)
    if parsed is None:
        return url.strip()
    return parsed.path or "/"


def normalize_image_url(url: str | None) -> str:
    """Canonical form of a URL for duplicate detection.

    ``scheme://host/path`` case-folded, without query string or fragment.
    Unparseable input is trimmed and lowercased instead. Idempotent.
    """
    if not url or not isinstance(url, str):
        return ""

    parsed = _split_absolute(url)
    if parsed is None:
        return url.strip().lower()

    host = parsed.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    port = parsed.port
    if port is not None and _DEFAULT_PORTS.get(parsed.scheme.lower()) != port:
        host = f"{host}:{port}"

    return f"{parsed.scheme}://{host}{parsed.path or '/'}".lower().strip()


def is_youtube_url(url: str | None) -> bool:
    """True for youtube.com (any subdomain) and youtu.be links."""
    if not url:
        return False
    parsed = _split_absolute(url)
    if parsed is None:
        lowered = url.lower()
        return any(host in lowered for host in YOUTUBE_HOSTS)
    hostname = parsed.hostname.lower()
    return any(hostname == host or hostname.endswith("." + host) for host in YOUTUBE_HOSTS)


def is_image_url(url: str | None) -> bool:
    """Decide whether a URL points at an image.

    Extension first, then known social-media image CDNs, then generic CDN
    hosts that carry a second image signal, then ``format=`` query hints on
    media-looking paths.
    """
    if not url:
        return False

    parsed = _split_absolute(url)
    if parsed is None:
        return bool(IMAGE_EXTENSION_RE.search(url.strip()))

    hostname = parsed.hostname.lower()
    pathname = (parsed.path or "/").lower()

    if IMAGE_EXTENSION_RE.search(pathname):
        return True

    # Twitter/X serves only images from pbs.twimg.com/media (video uses video.twimg.com)
    if hostname == "pbs.twimg.com" and pathname.startswith("/media/"):
        return True
    if "media.licdn.com" in hostname and "/image/" in pathname:
        return True
    if hostname in SOCIAL_IMAGE_HOSTS:
        return True

    if any(marker in hostname for marker in CDN_HOST_MARKERS):
        if any(hint in url for hint in CDN_IMAGE_QUERY_HINTS):
            return True
        if not pathname.endswith(NON_IMAGE_PATH_SUFFIXES):
            return True

    return bool(IMAGE_FORMAT_QUERY_RE.search(url) and MEDIA_PATH_SEGMENT_RE.search(pathname))


def detect_provider_from_url(url: str | None) -> UrlKind:
    """Classify a URL as youtube, image, video, document or link."""
    if not url:
        return "link"
    if is_youtube_url(url):
        return "youtube"
    if is_image_url(url):
        return "image"

    path = _path_of(url)
    if VIDEO_EXTENSION_RE.search(path):
        return "video"
    if DOCUMENT_EXTENSION_RE.search(path):
        return "document"
    return "link"


def should_fetch_metadata(url: str | None) -> bool:
    """Only YouTube links are worth an unfurl round-trip; images never are."""
    if not url:
        return False
    if is_image_url(url):
        return False
    return is_youtube_url(url)


def should_auto_generate_title(content_type_or_url: str | None) -> bool:
    """Whether a title may be generated automatically.

    Accepts either a backend content type (``social``/``video``) or a URL.
    Limited to a handful of social and video platforms.
    """
    if not content_type_or_url:
        return False
    if content_type_or_url in AUTO_TITLE_CONTENT_TYPES:
        return True
    lowered = content_type_or_url.lower()
    return any(marker in lowered for marker in AUTO_TITLE_HOST_MARKERS)


def get_primary_url(urls: list[str] | None) -> str | None:
    """First non-blank URL that is not an image, if any."""
    for url in urls or []:
        if not isinstance(url, str) or not url.strip():
            continue
        candidate = url.strip()
        if detect_provider_from_url(candidate) != "image":
            return candidate
    return None


def separate_image_urls(urls: list[str] | None) -> tuple[list[str], list[str]]:
    """Partition URLs into (image_urls, link_urls), preserving order."""
    image_urls: list[str] = []
    link_urls: list[str] = []
    for url in urls or []:
        if detect_provider_from_url(url) == "image":
            image_urls.append(url)
        else:
            link_urls.append(url)
    return image_urls, link_urls
