# platforms.py
# URL platform detection and filename cleanup

import re
from enum import Enum

UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')
WHITESPACE = re.compile(r'\s+')
MAX_FILENAME_LENGTH = 200


class Platform(Enum):
    YOUTUBE = 'youtube'
    TIKTOK = 'tiktok'
    INSTAGRAM = 'instagram'
    UNKNOWN = 'unknown'


# Host fragments checked in order
PLATFORM_HOSTS = [
    (Platform.YOUTUBE, ('youtube.com', 'youtu.be')),
    (Platform.TIKTOK, ('tiktok.com',)),
    (Platform.INSTAGRAM, ('instagram.com',)),
]


def detect_platform(url):
    """Guess the hosting platform of a video URL"""
    if not url:
        return Platform.UNKNOWN
    lowered = url.lower()
    for platform, hosts in PLATFORM_HOSTS:
        if any(host in lowered for host in hosts):
            return platform
    return Platform.UNKNOWN


def sanitize_filename(filename):
    """Drop characters that are unsafe in file names and URL paths"""
    cleaned = UNSAFE_FILENAME_CHARS.sub('', filename)
    cleaned = WHITESPACE.sub(' ', cleaned).strip()
    return cleaned[:MAX_FILENAME_LENGTH]
