# podcast_pipeline/validations.py

import re
from typing import Optional

from .common_exceptions import InvalidInputError
from .podcast_models import MAX_SOURCE_REFERENCE_LENGTH, PodcastRequest

# Basic URL validation regex
URL_REGEX = re.compile(
    r'^https?://'  # http:// or https://
    r'(?:[^:@/\s]+(?::[^@/\s]*)?@)?'  # optional user:pass@
    r'(?:(?:[A-Z0-9](?:[A-Z0-9-]{0,61}[A-Z0-9])?\.)+(?:[A-Z]{2,6}\.?|[A-Z0-9-]{2,}\.?)|'  # domain...
    r'localhost|'  # localhost...
    r'\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})'  # ...or ip
    r'(?::\d+)?'  # optional port
    r'(?:/?|[/?]\S+)$',
    re.IGNORECASE
)

# Regex for YouTube URL validation (video URLs only)
# Covers: youtube.com/watch?v=, youtu.be/, youtube.com/embed/, youtube.com/shorts/
# Allows http, https, www, m, or no subdomain.
# Video ID must be 11 characters long.
YOUTUBE_URL_REGEX = re.compile(
    r"^(?:https?://)?(?:(?:www|m)\.)?"  # Scheme and optional www. or m. subdomain
    r"(?:youtube\.com/(?:watch\?v=|embed/|v/|shorts/)|youtu\.be/)"  # Domain and video paths
    r"([a-zA-Z0-9_-]{11})"  # 11-character video ID
    r"(?:[?&\#].*)?$"  # Optional query parameters or fragment, then end of string
)

# Also accepts watch URLs where v= is not the first query parameter
VIDEO_ID_PATTERNS = (
    re.compile(r"(?:youtube\.com/(?:watch\?v=|embed/|v/|shorts/)|youtu\.be/)([^&\n?#/]+)"),
    re.compile(r"youtube\.com/watch\?.*?\bv=([^&\n?#]+)"),
)


def is_valid_url(url: str) -> bool:
    """
    Validates if the provided string is a valid http(s) URL.
    """
    if not url or not isinstance(url, str):
        return False
    return re.match(URL_REGEX, url.strip()) is not None


def extract_video_id(url: str) -> Optional[str]:
    """Pull the video id out of any supported video URL form, or None."""
    if not url or not isinstance(url, str):
        return None
    for pattern in VIDEO_ID_PATTERNS:
        match = pattern.search(url)
        if match and match.group(1):
            return match.group(1)
    return None


def is_valid_youtube_url(url: str) -> bool:
    """
    Validates if the provided string is a valid YouTube video URL.
    It also checks if it's a generally valid URL first, prepending https:// if no scheme is present.
    """
    if not url or not isinstance(url, str):
        return False

    normalized_url = url.strip()
    if not (normalized_url.startswith('http://') or normalized_url.startswith('https://')):
        normalized_url = 'https://' + normalized_url

    if not is_valid_url(normalized_url):
        return False

    if re.match(YOUTUBE_URL_REGEX, normalized_url):
        return True
    video_id = extract_video_id(normalized_url)
    return video_id is not None and len(video_id) == 11


def validate_request(request: PodcastRequest) -> None:
    """
    Check a submission before a task row is created.

    Raises:
        InvalidInputError: If the source reference does not fit the input type
    """
    reference = request.source_reference or ""
    if len(reference) > MAX_SOURCE_REFERENCE_LENGTH:
        raise InvalidInputError(
            f"Source reference exceeds {MAX_SOURCE_REFERENCE_LENGTH} characters",
            details={"length": len(reference)},
        )

    if request.input_type == "video":
        if not is_valid_youtube_url(reference):
            raise InvalidInputError("Invalid video URL", details={"url": reference})
    elif request.input_type == "text":
        if not reference.strip():
            raise InvalidInputError("Text content must not be blank")
    elif request.input_type == "article":
        if not is_valid_url(reference):
            raise InvalidInputError("Invalid article URL", details={"url": reference})
    else:
        raise InvalidInputError(f"Unsupported input type: {request.input_type}")

    if request.voice_pair and request.voice_id_1 == request.voice_id_2:
        raise InvalidInputError(
            "The two hosts need different voices",
            details={"voice_id": request.voice_id_1},
        )
