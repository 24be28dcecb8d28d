"""Channel/format lookup tables and default instructions for generation requests."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .types import ContentType, FormatSpec

# (width, height, aspect ratio) per channel and platform format.
CHANNEL_FORMATS: Dict[str, Dict[str, Tuple[int, int, str]]] = {
    "instagram": {
        "feed_post": (1080, 1080, "1:1"),
        "feed_ad": (1080, 1080, "1:1"),
        "story": (1080, 1920, "9:16"),
        "story_ad": (1080, 1920, "9:16"),
        "story_video": (1080, 1920, "9:16"),
        "reel": (1080, 1920, "9:16"),
        "reel_ad": (1080, 1920, "9:16"),
        "reel_thumbnail": (1080, 1920, "9:16"),
        "igtv": (1080, 1920, "9:16"),
        "igtv_cover": (1080, 1920, "9:16"),
        "landscape": (1080, 566, "1.91:1"),
        "vertical": (1080, 1350, "4:5"),
    },
    "facebook": {
        "feed_post": (1080, 1080, "1:1"),
        "story": (1080, 1920, "9:16"),
        "carousel": (1080, 1080, "1:1"),
        "cover_photo": (1125, 432, "2.63:1"),
    },
    "google_ads": {
        "responsive_display_landscape": (1200, 628, "1.91:1"),
        "responsive_display_square": (1200, 1200, "1:1"),
        "portrait": (960, 1200, "4:5"),
        "logo_square": (1200, 1200, "1:1"),
    },
    "linkedin": {
        "feed_image_post": (1200, 627, "1.91:1"),
        "story": (1080, 1920, "9:16"),
        "carousel": (1080, 1080, "1:1"),
        "company_banner": (1536, 396, "4:1"),
    },
    "twitter": {
        "tweet_image": (1200, 675, "16:9"),
        "header_image": (1500, 500, "3:1"),
        "multiple_images": (1080, 1080, "1:1"),
    },
    "tiktok": {
        "video_post": (1080, 1920, "9:16"),
        "ad_creative": (1080, 1920, "9:16"),
        "square": (1080, 1080, "1:1"),
    },
    "youtube": {
        "thumbnail": (1280, 720, "16:9"),
        "video_standard": (1920, 1080, "16:9"),
        "shorts": (1080, 1920, "9:16"),
        "channel_banner": (2560, 423, "6.2:1"),
    },
    "pinterest": {
        "standard_pin": (1000, 1500, "2:3"),
        "square_pin": (1000, 1000, "1:1"),
        "story_idea_pin": (1080, 1920, "9:16"),
        "long_pin": (1000, 2100, "1:2.1"),
    },
}

ORIENTATIONS: Dict[str, Tuple[int, int, str]] = {
    "square": (1080, 1080, "1:1"),
    "landscape": (1920, 1080, "16:9"),
    "portrait": (1080, 1920, "9:16"),
}

CONTENT_TYPE_DEFAULTS: Dict[ContentType, Tuple[int, int, str]] = {
    ContentType.IMAGE: (1024, 1024, "1:1"),
    ContentType.VIDEO: (1080, 1920, "9:16"),
}

DEFAULT_VIDEO_DURATION_SEC = 5
VIDEO_DURATIONS: Dict[str, int] = {
    "shorts": 15,
    "reel": 15,
    "reel_ad": 15,
    "video_post": 15,
    "ad_creative": 15,
    "story": 10,
    "story_video": 10,
    "video_standard": 20,
}

DEFAULT_MAX_TOKENS = 500
CHANNEL_TOKEN_BUDGETS: Dict[str, int] = {
    "sms": 120,
    "twitter": 150,
    "instagram": 300,
    "email": 700,
    "linkedin": 600,
}

INSTRUCTION_TEMPLATES: Dict[str, Dict[str, Dict[str, str]]] = {
    "facebook": {
        "image": {
            "feed_post": "Create an eye-catching Facebook feed post image showcasing {name}. Use vibrant colors, clear product photography, and include compelling text overlay. Optimize for engagement and sharing.",
            "story": "Design a Facebook story image for {name} with vertical format. Include engaging visuals, clear call-to-action, and story-appropriate text styling.",
            "ad": "Create a professional Facebook ad image for {name} with strong visual hierarchy, clear value proposition, and conversion-focused design.",
        },
        "video": {
            "feed_post": "Produce a compelling Facebook video showcasing {name} in action. Include engaging visuals, clear messaging, and optimize for autoplay viewing.",
            "story": "Create a vertical Facebook story video for {name} with dynamic visuals, clear narrative, and story-appropriate duration.",
            "ad": "Develop a high-converting Facebook video ad for {name} with strong opening hook, clear value proposition, and call-to-action.",
        },
    },
    "instagram": {
        "image": {
            "feed_post": "Design an Instagram-worthy feed post image for {name}. Use aesthetic photography, trending visual styles, and hashtag-friendly composition.",
            "story": "Create an Instagram story image for {name} with vertical format, engaging visuals, and story-appropriate text styling.",
            "reel": "Design a thumbnail image for an Instagram reel featuring {name}. Use bold visuals, trending aesthetics, and reel-optimized composition.",
        },
        "video": {
            "feed_post": "Produce an Instagram feed video showcasing {name}. Use trending visual styles, engaging transitions, and Instagram-optimized format.",
            "story": "Create a vertical Instagram story video for {name} with dynamic visuals, clear narrative, and story-appropriate duration.",
            "reel": "Develop an Instagram reel video for {name} with engaging transitions and reel-optimized format and duration.",
        },
    },
    "tiktok": {
        "video": {
            "video_post": "Create a TikTok video showcasing {name} with engaging transitions and TikTok-optimized vertical format. Include trending hashtags and viral potential.",
            "feed_post": "Create a TikTok video showcasing {name} with engaging transitions and TikTok-optimized vertical format. Include trending hashtags and viral potential.",
            "ad_creative": "Develop a TikTok ad video for {name} with strong opening hook, trending elements, and conversion-focused design.",
        },
    },
    "youtube": {
        "video": {
            "video_standard": "Create a YouTube video showcasing {name} with professional production quality, engaging narrative, and a clear call-to-action.",
            "shorts": "Create a YouTube Short for {name} with a fast hook in the first second, vertical framing, and a clear call-to-action.",
            "ad": "Develop a YouTube ad video for {name} with strong opening hook, clear value proposition, and conversion-focused design.",
        },
    },
    "linkedin": {
        "image": {
            "feed_post": "Design a professional LinkedIn post image for {name}. Use business-appropriate styling, clear messaging, and a professional color scheme.",
            "ad": "Create a LinkedIn ad image for {name} with professional design, clear value proposition, and B2B-focused messaging.",
        },
        "video": {
            "feed_post": "Produce a professional LinkedIn video showcasing {name}. Use business-appropriate styling, clear narrative, and professional production quality.",
        },
    },
    "twitter": {
        "image": {
            "feed_post": "Create a Twitter post image for {name} with concise messaging, clear visuals, and Twitter-optimized format.",
            "ad": "Design a Twitter ad image for {name} with clear value proposition, engaging visuals, and conversion-focused design.",
        },
    },
    "email": {
        "text": {
            "newsletter": "Write a promotional email for {name} with a subject line, a short benefit-led body, and a single clear call-to-action.",
        },
    },
    "sms": {
        "text": {
            "promo": "Write an SMS promotion for {name} under 160 characters with a clear call-to-action.",
        },
    },
}

GENERIC_INSTRUCTION = (
    "Create a compelling {content_type} showcasing {name} for {channel}. "
    "Highlight key features and benefits with professional styling and engaging visuals."
)

_KEY_PATTERN = re.compile(r"[^a-z0-9]+")


@dataclass(slots=True)
class ResolvedFormat:
    """Output of :func:`resolve`."""

    format_spec: FormatSpec
    instruction: str


def normalize_key(value: Optional[str]) -> str:
    """Fold a channel or format label into a lookup key ("Feed Post" -> "feed_post")."""
    if not value:
        return ""
    return _KEY_PATTERN.sub("_", str(value).strip().lower()).strip("_")


def coerce_content_type(content_type) -> ContentType:
    """Map a content type value onto the enum; unknown values resolve like images."""
    try:
        return ContentType(getattr(content_type, "value", content_type))
    except ValueError:
        return ContentType.IMAGE


def resolve_format_spec(
    channel: Optional[str],
    content_type,
    format: Optional[str] = None,
    orientation: Optional[str] = None,
) -> FormatSpec:
    """Derive dimensions, duration and token budget for a channel/format pair."""
    kind = coerce_content_type(content_type)
    channel_key = normalize_key(channel)
    format_key = normalize_key(format)

    if kind is ContentType.TEXT:
        budget = CHANNEL_TOKEN_BUDGETS.get(channel_key, DEFAULT_MAX_TOKENS)
        return FormatSpec(max_tokens=budget)

    dimensions = CHANNEL_FORMATS.get(channel_key, {}).get(format_key)
    if dimensions is None:
        dimensions = ORIENTATIONS.get(normalize_key(orientation))
    if dimensions is None:
        dimensions = CONTENT_TYPE_DEFAULTS[kind]
    width, height, ratio = dimensions

    spec = FormatSpec(width=width, height=height, aspect_ratio=ratio)
    if kind is ContentType.VIDEO:
        spec.duration_sec = VIDEO_DURATIONS.get(format_key, DEFAULT_VIDEO_DURATION_SEC)
    return spec


def default_instruction(
    channel: Optional[str],
    content_type,
    format: Optional[str] = None,
    item_name: Optional[str] = None,
) -> str:
    """Return the platform-specific instruction used when the operator supplies none."""
    kind = coerce_content_type(content_type)
    name = (item_name or "").strip() or "the selected product"
    template = (
        INSTRUCTION_TEMPLATES.get(normalize_key(channel), {})
        .get(kind.value, {})
        .get(normalize_key(format))
    )
    if template:
        return template.format(name=name)
    return GENERIC_INSTRUCTION.format(
        content_type=kind.value,
        name=name,
        channel=(channel or "social media").strip() or "social media",
    )


def resolve(
    channel: Optional[str],
    content_type,
    format: Optional[str] = None,
    item_name: Optional[str] = None,
    *,
    orientation: Optional[str] = None,
    instruction: Optional[str] = None,
) -> ResolvedFormat:
    """Resolve generation parameters and the effective instruction.

    Pure lookup with no I/O. Unknown channel/format pairs fall back to the
    orientation table and then to content-type defaults, so the call never
    raises.
    """
    spec = resolve_format_spec(channel, content_type, format, orientation)
    if isinstance(instruction, str) and instruction.strip():
        text = instruction.strip()
    else:
        text = default_instruction(channel, content_type, format, item_name)
    return ResolvedFormat(format_spec=spec, instruction=text)
