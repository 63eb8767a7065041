# downloader.py
# Runs the yt-dlp executable and reshapes its output for the web API

import importlib.util
import json
import logging
import os
import re
import shutil
import subprocess
import sys
import threading
import time

from platforms import sanitize_filename

logger = logging.getLogger(__name__)

# Regex to strip ANSI escape codes
ANSI_ESCAPE = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')

WINGET_PACKAGE = 'yt-dlp.yt-dlp_Microsoft.Winget.Source_8wekyb3d8bbwe'

# Leftovers yt-dlp writes next to the final file while it works
PARTIAL_EXTENSIONS = {'.part', '.ytdl', '.temp'}

BEST_FORMAT = {
    'format_id': 'bv*+ba/b',
    'quality': 'Best Quality (MP4)',
    'ext': 'mp4',
    'type': 'video',
}
AUDIO_FORMAT = {
    'format_id': 'ba',
    'quality': 'Audio Only (MP3)',
    'ext': 'mp3',
    'type': 'audio',
}

_stamp_lock = threading.Lock()
_last_stamp = 0


class DownloaderError(Exception):
    """Base class for failures around a yt-dlp run"""


class YtDlpError(DownloaderError):
    def __init__(self, message, stderr=''):
        super().__init__(message)
        self.stderr = stderr


class InfoParseError(DownloaderError):
    pass


class OutputNotFoundError(DownloaderError):
    pass


def strip_ansi(text):
    """Remove ANSI escape sequences from text"""
    if not isinstance(text, str):
        return text
    return ANSI_ESCAPE.sub('', text)


def next_stamp():
    """Millisecond timestamp, strictly increasing within this process"""
    global _last_stamp
    with _stamp_lock:
        stamp = int(time.time() * 1000)
        if stamp <= _last_stamp:
            stamp = _last_stamp + 1
        _last_stamp = stamp
        return stamp


def candidate_paths(bin_folder=None):
    """Common install locations checked when yt-dlp is not on PATH"""
    paths = []
    if bin_folder:
        paths.append(os.path.join(bin_folder, 'yt-dlp'))
        paths.append(os.path.join(bin_folder, 'yt-dlp.exe'))

    local_appdata = os.environ.get('LOCALAPPDATA', '')
    profile = os.environ.get('USERPROFILE', '')
    if local_appdata:
        paths.append(os.path.join(local_appdata, 'Microsoft', 'WinGet', 'Packages', WINGET_PACKAGE, 'yt-dlp.exe'))
    if profile:
        paths.append(os.path.join(profile, 'yt-dlp.exe'))
        paths.append(os.path.join(profile, 'Downloads', 'yt-dlp.exe'))
    paths.append('C:\\yt-dlp\\yt-dlp.exe')
    return paths


def find_ytdlp(configured=None, bin_folder=None):
    """Return the command prefix used to launch yt-dlp"""
    if configured:
        resolved = shutil.which(configured) or (configured if os.path.isfile(configured) else None)
        if resolved:
            logger.info("Using configured yt-dlp at: %s", resolved)
            return [resolved]
        logger.warning("Configured yt-dlp path %s does not exist, searching instead", configured)

    on_path = shutil.which('yt-dlp')
    if on_path:
        logger.info("Found yt-dlp at: %s", on_path)
        return [on_path]

    for path in candidate_paths(bin_folder):
        if os.path.isfile(path):
            logger.info("Found yt-dlp at: %s", path)
            return [path]

    # The yt-dlp package ships a runnable module
    if importlib.util.find_spec('yt_dlp') is not None:
        logger.info("Using the installed yt_dlp package via %s", sys.executable)
        return [sys.executable, '-m', 'yt_dlp']

    logger.warning("yt-dlp not found, using default command")
    return ['yt-dlp']


def resolve_ffmpeg_location(configured=None, bin_folder=None):
    """Pick the FFmpeg location handed to yt-dlp, or None to let it search PATH"""
    if bin_folder and any(os.path.exists(os.path.join(bin_folder, name)) for name in ('ffmpeg', 'ffmpeg.exe')):
        logger.info("Using local FFmpeg from: %s", bin_folder)
        return bin_folder
    if configured:
        return configured
    if not shutil.which('ffmpeg'):
        logger.warning("FFmpeg not found! Audio extraction and video merging will fail.")
    return None


def run_ytdlp(command, args, timeout=None):
    """Run yt-dlp once and return the completed process, raising YtDlpError on failure"""
    cmd = list(command) + list(args)
    logger.info("Executing: %s", ' '.join(cmd))

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            encoding='utf-8',
            errors='replace',
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.error("yt-dlp timed out after %ss", timeout)
        raise YtDlpError(f"yt-dlp timed out after {timeout}s")
    except OSError as e:
        logger.error("Could not start yt-dlp: %s", e)
        raise YtDlpError(str(e))

    if result.returncode != 0:
        stderr = strip_ansi(result.stderr or '').strip()
        logger.error("yt-dlp exited with code %s: %s", result.returncode, stderr)
        raise YtDlpError(stderr or f"yt-dlp exited with code {result.returncode}", stderr=stderr)

    return result


def fetch_info(command, url, timeout=None):
    """Fetch video metadata without downloading"""
    result = run_ytdlp(command, ['--dump-json', '--no-warnings', '--no-playlist', '--', url], timeout)

    for line in result.stdout.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            info = json.loads(line)
        except ValueError as e:
            logger.error("Parse error: %s", e)
            raise InfoParseError("Failed to parse video info") from e
        if not isinstance(info, dict):
            raise InfoParseError("Failed to parse video info")
        return info

    raise InfoParseError("yt-dlp returned no video info")


def build_formats(info, max_heights=5):
    """Offer best quality, the top resolutions, and an MP3 audio option"""
    formats = [dict(BEST_FORMAT)]

    heights = set()
    for fmt in info.get('formats') or []:
        if not isinstance(fmt, dict):
            continue
        height = fmt.get('height')
        if height and fmt.get('vcodec') != 'none':
            heights.add(int(height))

    for height in sorted(heights, reverse=True)[:max_heights]:
        formats.append({
            'format_id': f'bv*[height<={height}]+ba/b[height<={height}]',
            'quality': f'{height}p (MP4)',
            'ext': 'mp4',
            'type': 'video',
        })

    formats.append(dict(AUDIO_FORMAT))
    return formats


def build_info_response(info, url, platform, max_heights=5):
    return {
        'title': info.get('title') or 'Unknown Title',
        'thumbnail': info.get('thumbnail') or '',
        'duration': info.get('duration') or 0,
        'uploader': info.get('uploader') or info.get('channel') or 'Unknown',
        'platform': platform,
        'formats': build_formats(info, max_heights),
        'original_url': url,
    }


def build_download_args(url, format_id, media_type, output_template, ffmpeg_location=None):
    """Build yt-dlp arguments for a single download"""
    if media_type == 'audio':
        args = [
            '-f', 'bestaudio/best',
            '--extract-audio',
            '--audio-format', 'mp3',
            '--audio-quality', '0',
            '--no-check-certificates',
        ]
    else:
        args = [
            '-f', format_id,
            '--remux-video', 'mp4',
            '--merge-output-format', 'mp4',
        ]

    args.append('--no-playlist')
    if ffmpeg_location:
        args.extend(['--ffmpeg-location', ffmpeg_location])
    args.extend(['-o', output_template, '--', url])
    return args


def find_output(folder, stamp, ext):
    """Locate the finished file carrying the request stamp"""
    marker = f'_{stamp}'
    matches = []
    for name in sorted(os.listdir(folder)):
        if marker not in name:
            continue
        suffix = os.path.splitext(name)[1].lower()
        if suffix in PARTIAL_EXTENSIONS or '.part-frag' in name.lower():
            continue
        if os.path.isfile(os.path.join(folder, name)):
            matches.append(name)

    if not matches:
        raise OutputNotFoundError("Download completed but file not found")

    preferred = [name for name in matches if name.lower().endswith('.' + ext)]
    return os.path.join(folder, (preferred or matches)[0])


def tidy_filename(path):
    """Rename a downloaded file to its sanitized name when it differs"""
    folder, name = os.path.split(path)
    stem, suffix = os.path.splitext(name)
    clean = sanitize_filename(stem) + suffix
    if clean == name:
        return path

    target = os.path.join(folder, clean)
    if os.path.exists(target):
        return path
    os.replace(path, target)
    logger.info("Renamed %s -> %s", name, clean)
    return target


def discard_leftovers(folder, stamp):
    """Remove every file a failed run left behind for this stamp"""
    marker = f'_{stamp}'
    for name in os.listdir(folder):
        if marker not in name:
            continue
        path = os.path.join(folder, name)
        try:
            os.remove(path)
            logger.info("Cleaned up: %s", name)
        except OSError as e:
            logger.warning("Could not remove %s: %s", name, e)


def download(command, url, format_id, media_type, folder, timeout=None, ffmpeg_location=None):
    """Download one video (or its audio) into folder and return the file path"""
    stamp = next_stamp()
    ext = 'mp3' if media_type == 'audio' else 'mp4'
    # '%' in the folder would be read as a template field
    template = os.path.join(folder.replace('%', '%%'), f'%(title).100s_{stamp}.%(ext)s')

    args = build_download_args(url, format_id, media_type, template, ffmpeg_location)
    try:
        result = run_ytdlp(command, args, timeout)
        logger.debug("Download output: %s", result.stdout)
        path = find_output(folder, stamp, ext)
    except DownloaderError:
        discard_leftovers(folder, stamp)
        raise

    path = tidy_filename(path)
    logger.info("Downloaded file: %s", os.path.basename(path))
    return path


def ytdlp_version(command, timeout=30):
    """Version string reported by yt-dlp, or None if it cannot run"""
    try:
        result = run_ytdlp(command, ['--version'], timeout)
    except YtDlpError:
        return None
    return result.stdout.strip() or None
