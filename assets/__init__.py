"""Screenshot discovery and preview capture."""

from .extractor import AssetExtractor
from .preview_capture import (
    DEPLOYMENT_BOTS,
    CapturedImage,
    HeadlessCaptureClient,
    PreviewUrl,
    extract_preview_urls,
)
from .screenshots import (
    MAX_SCREENSHOTS,
    extract_images,
    identify_screenshot_source,
    is_valid_screenshot_url,
    parse_screenshots_from_comments,
)

__all__ = [
    "AssetExtractor",
    "CapturedImage",
    "DEPLOYMENT_BOTS",
    "HeadlessCaptureClient",
    "MAX_SCREENSHOTS",
    "PreviewUrl",
    "extract_images",
    "extract_preview_urls",
    "identify_screenshot_source",
    "is_valid_screenshot_url",
    "parse_screenshots_from_comments",
]
