# app.py
# Video Downloader - web UI and JSON API for YouTube, TikTok and Instagram
# Flask application that shells out to yt-dlp

from flask import Flask, render_template, request, jsonify, send_from_directory
from flask_cors import CORS
from werkzeug.security import safe_join
from urllib.parse import quote
import logging
import os
import socket

import downloader
from config import Config
from platforms import Platform, detect_platform

logging.basicConfig(
    level=Config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config.from_object(Config)
app.logger.setLevel(Config.LOG_LEVEL)

if Config.CORS_ORIGINS.strip() == '*':
    cors_origins = '*'
else:
    cors_origins = [origin.strip() for origin in Config.CORS_ORIGINS.split(',') if origin.strip()]
CORS(app, resources={r'/api/*': {'origins': cors_origins}, r'/downloads/*': {'origins': cors_origins}})

UNSUPPORTED_PLATFORM = 'Unsupported platform. Use YouTube, TikTok, or Instagram.'

# Download directory
os.makedirs(Config.DOWNLOAD_FOLDER, exist_ok=True)

# Resolved once at startup
app.config['YT_DLP_COMMAND'] = downloader.find_ytdlp(Config.YT_DLP_PATH, Config.BIN_FOLDER)
app.config['FFMPEG_PATH'] = downloader.resolve_ffmpeg_location(Config.FFMPEG_LOCATION, Config.BIN_FOLDER)


def error_response(message, status):
    return jsonify({'success': False, 'error': message}), status


def get_json_body():
    """Request JSON as a dict; anything else counts as empty"""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@app.errorhandler(404)
def not_found(error):
    """JSON 404s for the API, Flask's page elsewhere"""
    if request.path.startswith('/api/file/'):
        return error_response('File not found', 404)
    if request.path.startswith('/api/'):
        return error_response('Not found', 404)
    return error


@app.route('/')
def index():
    """Serve the main web interface"""
    return render_template('index.html', platforms=Config.SUPPORTED_PLATFORMS)


@app.route('/api/info', methods=['POST'])
def get_video_info():
    """Fetch video metadata and the format choices offered for it"""
    data = get_json_body()
    url = str(data.get('url') or '').strip()

    if not url:
        return error_response('URL is required', 400)

    platform = detect_platform(url)
    if platform is Platform.UNKNOWN:
        return error_response(UNSUPPORTED_PLATFORM, 400)

    try:
        info = downloader.fetch_info(app.config['YT_DLP_COMMAND'], url, timeout=app.config['INFO_TIMEOUT'])
    except downloader.YtDlpError as e:
        return error_response(f'Failed to fetch video info. {e}', 500)
    except downloader.InfoParseError:
        return error_response('Failed to parse video info', 500)

    return jsonify(downloader.build_info_response(
        info, url, platform.value, max_heights=app.config['MAX_HEIGHT_OPTIONS']
    ))


@app.route('/api/download', methods=['POST'])
def start_download():
    """Download the chosen format and return where to fetch the file"""
    data = get_json_body()
    url = str(data.get('url') or '').strip()
    format_id = str(data.get('format_id') or '').strip()
    media_type = 'audio' if data.get('type') == 'audio' else 'video'

    if not url or not format_id:
        return error_response('URL and format are required', 400)

    if detect_platform(url) is Platform.UNKNOWN:
        return error_response(UNSUPPORTED_PLATFORM, 400)

    folder = app.config['DOWNLOAD_FOLDER']
    os.makedirs(folder, exist_ok=True)

    try:
        path = downloader.download(
            app.config['YT_DLP_COMMAND'],
            url,
            format_id,
            media_type,
            folder,
            timeout=app.config['DOWNLOAD_TIMEOUT'],
            ffmpeg_location=app.config['FFMPEG_PATH'],
        )
    except downloader.YtDlpError as e:
        return error_response(f'Download failed: {e}', 500)
    except downloader.OutputNotFoundError as e:
        return error_response(str(e), 500)

    filename = os.path.basename(path)
    return jsonify({
        'success': True,
        'filename': filename,
        'downloadUrl': f'/downloads/{quote(filename)}',
    })


@app.route('/downloads/<path:filename>')
def serve_download(filename):
    """Serve downloaded files"""
    return send_from_directory(app.config['DOWNLOAD_FOLDER'], filename)


@app.route('/api/file/<path:filename>')
def download_file(filename):
    """Send a downloaded file as an attachment"""
    folder = app.config['DOWNLOAD_FOLDER']
    filepath = safe_join(folder, filename)
    if filepath is None or not os.path.isfile(filepath):
        return error_response('File not found', 404)

    return send_from_directory(folder, filename, as_attachment=True, download_name=os.path.basename(filename))


@app.route('/api/health')
def health():
    """Report whether yt-dlp can be run"""
    command = app.config['YT_DLP_COMMAND']
    version = downloader.ytdlp_version(command)
    if version is None:
        return jsonify({'status': 'error', 'message': 'yt-dlp not found', 'ytdlp': None})
    return jsonify({'status': 'ok', 'ytdlp': version, 'path': ' '.join(command)})


def get_local_ip():
    """Get the local IP address for network access"""
    try:
        # Create a socket to get the local IP
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(("8.8.8.8", 80))
            return s.getsockname()[0]
    except OSError:
        return "127.0.0.1"


if __name__ == '__main__':
    print("\n" + "="*60)
    print("  Video Downloader Server Running!")
    print("="*60)
    print(f"\n  Local access:   http://localhost:{Config.PORT}")
    print(f"  Network access: http://{get_local_ip()}:{Config.PORT}")
    print(f"\n  Supports: {', '.join(Config.SUPPORTED_PLATFORMS)}")
    print(f"  Download folder: {Config.DOWNLOAD_FOLDER}")
    print(f"  yt-dlp: {' '.join(app.config['YT_DLP_COMMAND'])}")
    print("\n  Press Ctrl+C to stop the server")
    print("="*60 + "\n")

    app.run(host=Config.HOST, port=Config.PORT, debug=Config.DEBUG, threaded=True)
