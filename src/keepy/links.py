"""
Profile link helpers: URL resolution, pasted-input cleanup, platform
detection and display labels.
"""

import re
from typing import Optional

from .models import Platform, Profile

URL_SCHEME_PREFIX = "http"

# Domain markers tried in order when reducing a pasted URL to a handle
_HANDLE_MARKERS = [
    'instagram.com/',
    'facebook.com/',
    'twitter.com/',
    'x.com/',
    'tiktok.com/@',
    'tiktok.com/',
]

_PROFILE_URL_TEMPLATES = {
    Platform.INSTAGRAM: "https://instagram.com/{}",
    Platform.FACEBOOK: "https://facebook.com/{}",
    Platform.X: "https://x.com/{}",
}

_WEBSITE_PREFIX_RE = re.compile(r'^https?://(www\.)?')


def looks_like_url(value: str) -> bool:
    """True when the value starts with the URL scheme prefix."""
    return value.startswith(URL_SCHEME_PREFIX)


def profile_link(profile: Profile) -> str:
    """
    Resolve the link a profile points to.

    A username that already looks like a URL is returned verbatim;
    otherwise a canonical profile URL is built for the platform.
    """
    username = profile.username
    if looks_like_url(username):
        return username

    if profile.platform == Platform.TIKTOK:
        return f"https://tiktok.com/@{username.lstrip('@')}"
    if profile.platform == Platform.WEBSITE:
        return f"https://{username}"

    template = _PROFILE_URL_TEMPLATES.get(profile.platform)
    if template is None:
        return '#'
    return template.format(username)


def clean_username(raw: str, platform: Platform) -> str:
    """
    Normalize user input for a platform.

    Websites are kept as typed. Pasted profile URLs are reduced to their
    first path segment, except facebook share and profile.php links,
    which need the rest of the path (profile.php also keeps its query).
    The first '@' is removed from the result.

    Example:
        >>> clean_username('https://instagram.com/jane.doe/?hl=en', Platform.INSTAGRAM)
        'jane.doe'
    """
    clean = raw.strip()
    if platform == Platform.WEBSITE:
        return clean

    if looks_like_url(clean):
        if platform == Platform.FACEBOOK and 'facebook.com/' in clean:
            after_domain = clean.split('facebook.com/', 1)[1]
            if after_domain.startswith('profile.php'):
                return after_domain
            if after_domain.startswith('share'):
                return after_domain.split('?')[0]

        for marker in _HANDLE_MARKERS:
            if marker in clean:
                clean = clean.split(marker, 1)[1].split('/')[0].split('?')[0]
                break

    return clean.replace('@', '', 1)


def detect_platform(raw: str) -> Optional[Platform]:
    """
    Guess the platform from pasted input.

    Returns:
        Detected platform, or None when the input gives no hint
    """
    if 'instagram.com' in raw:
        return Platform.INSTAGRAM
    if 'facebook.com' in raw:
        return Platform.FACEBOOK
    if 'twitter.com' in raw or 'x.com' in raw:
        return Platform.X
    if 'tiktok.com' in raw:
        return Platform.TIKTOK
    return None


def display_title(profile: Profile) -> str:
    """Title shown for a profile: display name, site host, or @handle."""
    if profile.display_name:
        return profile.display_name
    if profile.platform == Platform.WEBSITE:
        return _WEBSITE_PREFIX_RE.sub('', profile.username).split('/')[0]
    return f"@{profile.username}"


def platform_label(platform: Platform) -> str:
    """Short label used in the text report."""
    if platform == Platform.WEBSITE:
        return 'Web'
    if platform == Platform.X:
        return 'X'
    return platform.value.capitalize()
