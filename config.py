# config.py
# Configuration settings for the video downloader

import logging
import os

logger = logging.getLogger(__name__)


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_int(name, default):
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Invalid %s=%r, using default %s", name, value, default)
        return default


def _env_log_level(name, default='INFO'):
    value = os.environ.get(name, default).strip().upper()
    if not isinstance(logging.getLevelName(value), int):
        logger.warning("Unknown %s=%r, using default %s", name, value, default)
        return default
    return value


class Config:
    """Application configuration"""

    # Flask settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Server settings
    HOST = os.environ.get('HOST', '0.0.0.0')  # Use '127.0.0.1' for localhost only
    PORT = _env_int('PORT', 3000)
    DEBUG = _env_bool('DEBUG')
    LOG_LEVEL = _env_log_level('LOG_LEVEL')
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')

    # Download settings
    DOWNLOAD_FOLDER = os.environ.get('DOWNLOAD_FOLDER') or os.path.join(os.getcwd(), 'downloads')
    BIN_FOLDER = os.path.join(os.getcwd(), 'bin')

    # yt-dlp executable; found automatically when unset
    YT_DLP_PATH = os.environ.get('YT_DLP_PATH', '')
    # Folder or binary for FFmpeg; local bin/ is used when it holds ffmpeg
    FFMPEG_LOCATION = os.environ.get('FFMPEG_LOCATION', '')

    # Subprocess timeouts (seconds)
    INFO_TIMEOUT = _env_int('INFO_TIMEOUT', 120)
    DOWNLOAD_TIMEOUT = _env_int('DOWNLOAD_TIMEOUT', 600)

    # Number of resolution choices offered besides "Best" and audio
    MAX_HEIGHT_OPTIONS = _env_int('MAX_HEIGHT_OPTIONS', 5)

    SUPPORTED_PLATFORMS = ['YouTube', 'TikTok', 'Instagram']
