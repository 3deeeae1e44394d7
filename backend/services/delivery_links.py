"""
Delivery links

Builds the landing URL handed to the moderator and renders the landing page
that URL serves. The page offers the same object twice: an inline player
source and an attachment download, both signed GET URLs.
"""
from html import escape
from urllib.parse import quote

from services.key_deriver import key_extension

LANDING_PATH = "/dl"


def build_landing_url(base_url: str, key: str) -> str:
    """
    Landing URL for `key`.

    Args:
        base_url: Public origin of this service ("" for a relative link)
        key: Storage key of the delivered artifact
    """
    return f"{(base_url or '').rstrip('/')}{LANDING_PATH}?key={quote(key, safe='')}"


_CONTENT_TYPES = {
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mov": "video/quicktime",
    "mkv": "video/x-matroska",
}


def content_type_for(key: str) -> str:
    """Video MIME type implied by the key's extension."""
    return _CONTENT_TYPES.get(key_extension(key, default=""), "application/octet-stream")


def download_filename(key: str) -> str:
    """File name a browser should save `key` as."""
    return key.rsplit("/", 1)[-1] or "video"


def render_landing_page(key: str, view_url: str, download_url: str) -> str:
    """Minimal HTML page with an inline player and a download button."""
    title = escape(download_filename(key))
    view = escape(view_url, quote=True)
    download = escape(download_url, quote=True)
    return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{title}</title>
  <style>
    body {{ margin: 0; font-family: system-ui, sans-serif; background: #111; color: #eee; text-align: center; }}
    video {{ width: 100%; max-width: 720px; max-height: 80vh; background: #000; }}
    a.button {{ display: inline-block; margin: 16px; padding: 12px 24px; border-radius: 8px; background: #2d6cdf; color: #fff; text-decoration: none; }}
  </style>
</head>
<body>
  <video src="{view}" controls playsinline autoplay muted></video>
  <div><a class="button" href="{download}" download>Download</a></div>
</body>
</html>
"""
