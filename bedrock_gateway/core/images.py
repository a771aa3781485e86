from __future__ import annotations

import base64
import binascii
import logging

import httpx

from .content import DATA_URL_PATTERN
from .errors import FetchError, InvalidInput

logger = logging.getLogger(__name__)

FALLBACK_IMAGE_MIME_TYPE = "image/jpeg"
FETCH_TIMEOUT_SECONDS = 30.0


def fetch_image(url: str, *, client: httpx.Client | None = None) -> tuple[bytes, str]:
    """Return ``(image_bytes, mime_type)`` for an ``image_url`` reference.

    Inline ``data:image/<type>;base64,`` URLs are decoded locally; anything
    else is downloaded.
    """

    match = DATA_URL_PATTERN.match(url)
    if match:
        try:
            return base64.b64decode(url[match.end() :], validate=True), match.group(1)
        except (binascii.Error, ValueError) as exc:
            raise InvalidInput(
                message=f"Invalid base64 image data: {exc}",
                param="messages",
            ) from exc

    logger.debug("Fetching image from %s", url)

    try:
        if client is None:
            with httpx.Client(timeout=FETCH_TIMEOUT_SECONDS, follow_redirects=True) as owned:
                response = owned.get(url)
        else:
            response = client.get(url)
    except httpx.HTTPError as exc:
        raise FetchError(message=f"Unable to fetch image URL '{url}': {exc}") from exc

    if response.status_code != 200:
        raise FetchError(
            message=(
                f"Unable to access the image URL '{url}', "
                f"status: {response.status_code}"
            )
        )

    content_type = response.headers.get("content-type", "")
    if not content_type.startswith("image"):
        content_type = FALLBACK_IMAGE_MIME_TYPE
    else:
        content_type = content_type.split(";", 1)[0].strip()

    return response.content, content_type
