# setup_dependencies.py
# Fetches a standalone yt-dlp (and FFmpeg on Windows) into the local bin/ folder
# The server looks in bin/ before falling back to the yt_dlp package

import os
import stat
import sys
import urllib.request
import zipfile
import shutil

YTDLP_RELEASE_URL = "https://github.com/yt-dlp/yt-dlp/releases/latest/download/"
FFMPEG_URL = "https://www.gyan.dev/ffmpeg/builds/ffmpeg-release-essentials.zip"

# Release asset per platform, keyed by sys.platform prefix
YTDLP_ASSETS = {
    'win': 'yt-dlp.exe',
    'darwin': 'yt-dlp_macos',
    'linux': 'yt-dlp_linux',
}


def default_bin_dir():
    return os.path.join(os.getcwd(), 'bin')


def ytdlp_asset(platform=None):
    """Release asset name and local file name for the given sys.platform"""
    platform = platform or sys.platform
    for prefix, asset in YTDLP_ASSETS.items():
        if platform.startswith(prefix):
            local = 'yt-dlp.exe' if prefix == 'win' else 'yt-dlp'
            return asset, local
    # Platform-independent zipapp, needs a Python interpreter
    return 'yt-dlp', 'yt-dlp'


def fetch(url, destination):
    with urllib.request.urlopen(url) as response:
        with open(destination, 'wb') as f:
            shutil.copyfileobj(response, f)


def setup_ytdlp(bin_dir=None, platform=None):
    """Download the yt-dlp executable; returns its path, or None on failure"""
    print("🚀 Starting yt-dlp setup...")
    bin_dir = bin_dir or default_bin_dir()
    os.makedirs(bin_dir, exist_ok=True)

    asset, local_name = ytdlp_asset(platform)
    target = os.path.join(bin_dir, local_name)
    if os.path.exists(target):
        print("✅ yt-dlp is already present in /bin folder.")
        return target

    url = YTDLP_RELEASE_URL + asset
    try:
        print(f"📥 Downloading yt-dlp from: {url}")
        fetch(url, target)
    except OSError as e:
        print(f"❌ Error during setup: {e}")
        print("\nManual fix: install yt-dlp (pip install yt-dlp) or place the executable in the /bin folder.")
        if os.path.exists(target):
            os.remove(target)
        return None

    mode = os.stat(target).st_mode
    os.chmod(target, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    print("✨ yt-dlp setup complete!")
    return target


def setup_ffmpeg(bin_dir=None):
    """Extract ffmpeg.exe and ffprobe.exe from a static Windows build"""
    print("🚀 Starting FFmpeg portable setup...")
    bin_dir = bin_dir or default_bin_dir()
    temp_zip = os.path.join(bin_dir, 'ffmpeg_temp.zip')
    os.makedirs(bin_dir, exist_ok=True)

    if os.path.exists(os.path.join(bin_dir, 'ffmpeg.exe')):
        print("✅ FFmpeg is already present in /bin folder.")
        return True

    try:
        print(f"📥 Downloading FFmpeg from: {FFMPEG_URL}")
        print("This might take a minute (approx 100MB)...")
        fetch(FFMPEG_URL, temp_zip)

        print("📦 Extracting binaries...")
        extracted = 0
        with zipfile.ZipFile(temp_zip, 'r') as zip_ref:
            for member in zip_ref.namelist():
                if member.lower().endswith(('ffmpeg.exe', 'ffprobe.exe')):
                    filename = os.path.basename(member)
                    with zip_ref.open(member) as source, open(os.path.join(bin_dir, filename), 'wb') as target:
                        shutil.copyfileobj(source, target)
                    extracted += 1
                    print(f"  Extracted: {filename}")

        print("✨ FFmpeg setup complete!")
        return extracted > 0
    except (OSError, zipfile.BadZipFile) as e:
        print(f"❌ Error during setup: {e}")
        print("\nManual fix: Download FFmpeg from ffmpeg.org and place 'ffmpeg.exe' and 'ffprobe.exe' in the /bin folder.")
        return False
    finally:
        if os.path.exists(temp_zip):
            os.remove(temp_zip)


if __name__ == "__main__":
    setup_ytdlp()
    if sys.platform.startswith('win'):
        setup_ffmpeg()
    else:
        print("Install FFmpeg with your package manager (e.g. apt install ffmpeg, brew install ffmpeg).")
