import logging
import os
import threading
import time

from flask import Blueprint, Flask, current_app, jsonify, request, send_file
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from linkdrop.backend.storage import FileStore
from linkdrop.config import CLEANUP_INTERVAL, ServerSettings, configure_logging

logger = logging.getLogger(__name__)

# room for the multipart framing around a file of exactly the maximum size
MULTIPART_SLACK = 64 * 1024

api = Blueprint("api", __name__)


def _settings():
    return current_app.extensions["linkdrop.settings"]


def _store():
    return current_app.extensions["linkdrop.store"]


# ------------------
# Rate Limiting
# ------------------
class RateLimiter:
    """Fixed one-minute window of requests per client IP."""

    def __init__(self, limit, window=60, clock=time.monotonic):
        self.limit = limit
        self.window = window
        self.clock = clock
        self._counts = {}
        self._window_start = clock()
        self._lock = threading.Lock()

    def hit(self, ip):
        with self._lock:
            if self.clock() - self._window_start > self.window:
                self._counts = {}
                self._window_start = self.clock()
            self._counts[ip] = self._counts.get(ip, 0) + 1
            return self._counts[ip] <= self.limit


@api.before_app_request
def rate_limit():
    limiter = current_app.extensions["linkdrop.rate_limiter"]
    if not limiter.hit(request.remote_addr):
        return jsonify({"error": "Rate limit exceeded. Please try again later."}), 429


# ------------------
# Upload File Route
# ------------------
@api.route("/upload", methods=["POST"])
def upload_file():
    file = request.files.get("file")
    if not file or not file.filename:
        return jsonify({"error": "No file provided"}), 400

    store = _store()
    record = store.add(file, file.filename, file.mimetype)
    if record.size > _settings().max_file_size:
        store.delete(record)
        return jsonify({"error": "File size exceeds 100MB limit."}), 413

    base_url = _settings().base_url or request.host_url.rstrip("/")
    return jsonify({
        "message": "File uploaded successfully",
        "shortCode": record.short_code,
        "downloadUrl": f"{base_url}/download/{record.short_code}",
        "expiresAt": record.expires_at.isoformat(),
    }), 201


# ------------------
# Download File Route
# ------------------
@api.route("/download/<short_code>", methods=["GET"])
def download_file(short_code):
    logger.info("Download requested for shortcode: %s", short_code)
    store = _store()
    record = store.get(short_code)
    if record is None:
        return jsonify({"error": "File not found"}), 404

    if record.is_expired():
        logger.info("File %s has expired", short_code)
        return jsonify({"error": "File has expired and is no longer available"}), 410

    path = store.path_for(record)
    if not os.path.isfile(path):
        logger.error("File for %s missing on disk: %s", short_code, path)
        return jsonify({"error": "File not found"}), 404

    return send_file(
        path,
        mimetype=record.mime_type,
        as_attachment=True,
        download_name=record.original_name,
    )


# ------------------
# Cleanup Route
# ------------------
@api.route("/cleanup", methods=["DELETE"])
def cleanup_files():
    if request.headers.get("Authorization") != _settings().admin_token:
        return jsonify({"error": "Authentication required"}), 401

    deleted = _store().purge_expired()
    return jsonify({"message": "Cleanup completed", "deleted": deleted}), 200


# ------------------
# Health Check
# ------------------
@api.route("/", methods=["GET"])
def index():
    return jsonify({"message": "API is running"}), 200


# ------------------
# Error Handlers
# ------------------
def file_too_large(e):
    return jsonify({"error": "File size exceeds 100MB limit."}), 413


def http_error(e):
    return jsonify({"error": e.description}), e.code


def internal_error(e):
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    return jsonify({"error": "Internal server error"}), 500


# ------------------
# App Factory
# ------------------
def create_app(settings=None, store=None):
    settings = settings or ServerSettings.from_env()

    app = Flask(__name__)
    CORS(app)
    app.config["MAX_CONTENT_LENGTH"] = settings.max_file_size + MULTIPART_SLACK

    app.extensions["linkdrop.settings"] = settings
    app.extensions["linkdrop.store"] = store or FileStore(settings.upload_folder, settings.expiry_days)
    app.extensions["linkdrop.rate_limiter"] = RateLimiter(settings.rate_limit)

    app.register_blueprint(api)
    app.register_error_handler(413, file_too_large)
    app.register_error_handler(HTTPException, http_error)
    app.register_error_handler(Exception, internal_error)
    return app


# ------------------
# Expired File Sweeper
# ------------------
def start_cleanup_thread(store, interval=CLEANUP_INTERVAL, stop_event=None):
    """Purge expired files every ``interval`` seconds until ``stop_event`` is set."""
    stop_event = stop_event or threading.Event()

    def sweep():
        while not stop_event.wait(interval):
            try:
                count = store.purge_expired()
            except OSError:
                logger.exception("Auto cleanup failed")
                continue
            logger.info("Auto cleanup completed: %d expired files removed", count)

    thread = threading.Thread(target=sweep, name="linkdrop-cleanup", daemon=True)
    thread.start()
    return thread, stop_event


# ------------------
# Run the App
# ------------------
if __name__ == "__main__":
    configure_logging()
    settings = ServerSettings.from_env()
    app = create_app(settings)
    start_cleanup_thread(app.extensions["linkdrop.store"])
    logger.info("Server starting on port %s", settings.port)
    app.run(host="0.0.0.0", port=settings.port)
