"""Input validation for leaderboard writes and lookups.

All checks run before the store is touched. They are strict about types:
`True` is not a score and `"7"` is not a user id, even though Python would
happily compare them.
"""

import re
from urllib.parse import urlparse

from leaderboard.services.errors import ValidationError

# RFC 3986 scheme: ALPHA *( ALPHA / DIGIT / "+" / "-" / "." )
_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*$")


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_user_name(user_name: object) -> str:
    """Return the trimmed name, or raise if it is missing or blank."""
    if user_name is None:
        raise ValidationError("Username is required")
    if not isinstance(user_name, str):
        raise ValidationError("Username must be a string")
    trimmed = user_name.strip()
    if not trimmed:
        raise ValidationError("Username cannot be empty")
    return trimmed


def validate_score(score: object) -> int:
    if score is None:
        raise ValidationError("Score is required")
    if not _is_int(score):
        raise ValidationError("Score must be an integer")
    if score < 0:
        raise ValidationError("Score must be non-negative")
    return score


def validate_user_id(user_id: object) -> int:
    if user_id is None:
        raise ValidationError("User ID is required")
    if not _is_int(user_id) or user_id <= 0:
        raise ValidationError("User ID must be a positive integer")
    return user_id


def validate_limit(n: object) -> int:
    if not _is_int(n) or n <= 0:
        raise ValidationError("Number of users must be a positive integer")
    return n


def validate_image_url(image_url: object) -> str:
    """Accept an empty string or a syntactically valid absolute URI.

    A valid URI here has a scheme plus either an authority or a path, and
    contains no whitespace.
    """
    if image_url is None:
        return ""
    if not isinstance(image_url, str):
        raise ValidationError("Image URL must be a string")
    if image_url == "":
        return ""
    if any(ch.isspace() for ch in image_url):
        raise ValidationError("Image URL must be a valid URL")

    try:
        parsed = urlparse(image_url)
    except ValueError:
        raise ValidationError("Image URL must be a valid URL")

    if not parsed.scheme or not _SCHEME_RE.match(parsed.scheme):
        raise ValidationError("Image URL must be a valid URL")
    if not parsed.netloc and not parsed.path:
        raise ValidationError("Image URL must be a valid URL")
    return image_url
