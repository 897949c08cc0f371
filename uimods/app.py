import logging
import os
import posixpath
import sys

from flask import Blueprint, Flask, Response, current_app, jsonify, request, send_from_directory
from werkzeug.exceptions import HTTPException
from werkzeug.security import safe_join

from uimods.backup import BackupManager
from uimods.config import load_config
from uimods.patcher import ContentPatcher

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

log = logging.getLogger(__name__)

api = Blueprint("api", __name__, url_prefix="/api")

MIME_TYPES = {
    ".html": "text/html; charset=utf-8",
    ".htm": "text/html; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".js": "application/javascript; charset=utf-8",
    ".svg": "image/svg+xml",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".json": "application/json; charset=utf-8",
    ".txt": "text/plain; charset=utf-8",
}

# ---------------- helpers ----------------

def setup_logging(log_file: str | None = None) -> logging.Logger:
    """Send the package's log records to ``log_file``, or to stderr when it can't be opened."""
    handler = None
    if log_file:
        try:
            handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            print(f"cannot open log file {log_file}: {e}", file=sys.stderr)
    if handler is None:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logger = logging.getLogger("uimods")
    logger.handlers[:] = [handler]
    logger.setLevel(logging.INFO)
    return logger

def mime_for(file_path: str) -> str:
    ext = os.path.splitext(file_path)[1].lower()
    return MIME_TYPES.get(ext, "application/octet-stream")

def patcher() -> ContentPatcher:
    return current_app.extensions["ui_mods"]

def fail(message: str, status: int):
    return jsonify({"ok": False, "message": message}), status

def text(body: str, status: int) -> Response:
    return Response(body, status=status, mimetype="text/plain")

def body_str(body: dict, key: str) -> str | None:
    v = body.get(key)
    if not isinstance(v, str):
        return None
    return v.strip() or None

# ---------------- api ----------------

@api.get("/status")
def status():
    return jsonify({"ok": True, "data": patcher().get_status()})

@api.post("/restore")
def restore():
    patcher().restore()
    return jsonify({"ok": True, "message": "Restored to the vendor default."})

@api.post("/inject")
def inject():
    body = request.get_json(force=True, silent=True)
    if body is None:
        if request.get_data():
            return fail("Failed to parse JSON body", 400)
        body = {}
    if not isinstance(body, dict):
        return fail("JSON body must be an object", 400)

    result = patcher().inject_code(
        css_text=body_str(body, "cssText"),
        js_text=body_str(body, "jsText"),
        css_path=body_str(body, "cssPath"),
        js_path=body_str(body, "jsPath"),
    )
    if not result["injected"]:
        return fail(result["message"], 400)
    return jsonify({"ok": True, "message": result["message"]})

@api.route("/<path:rest>", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
def api_not_found(rest):
    return fail("Not Found", 404)

@api.errorhandler(Exception)
def api_error(e):
    if isinstance(e, HTTPException):
        return fail(e.description or e.name, e.code or 500)
    log.error("API error: %s", e)
    return fail(str(e), 500)

# ---------------- static ----------------

def static_file(p):
    root = current_app.config["UI_MODS"]["www_root"]
    full = safe_join(root, p) if p else root
    if full is None:
        return text("Bad Request", 400)

    rel = p
    if os.path.isdir(full):
        rel = posixpath.join(p, "index.html") if p else "index.html"

    resp = send_from_directory(root, rel)
    resp.headers["Content-Type"] = mime_for(rel)
    resp.headers["Cache-Control"] = "no-store"
    return resp

# ---------------- app ----------------

def create_app(config: dict | None = None) -> Flask:
    cfg = config or load_config()

    app = Flask(__name__, static_folder=None)
    app.config["UI_MODS"] = cfg
    app.config["MAX_CONTENT_LENGTH"] = cfg["max_body"]

    backups = BackupManager(cfg["target_file"], cfg["backup_file"])
    app.extensions["ui_mods"] = ContentPatcher(backups, cfg.get("tmp_dir"))

    app.register_blueprint(api)
    app.add_url_rule("/", "static_file", static_file, defaults={"p": ""}, methods=["GET"])
    app.add_url_rule("/<path:p>", "static_file", static_file, methods=["GET"])

    @app.errorhandler(404)
    def not_found(e):
        if request.path.startswith("/api/"):
            return fail("Not Found", 404)
        return text("Not Found", 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        if request.path.startswith("/api/"):
            return fail("Not Found", 404)
        return text("Method Not Allowed", 405)

    @app.errorhandler(413)
    def too_large(e):
        return fail("Request body too large", 413)

    return app

def main():
    cfg = load_config()
    setup_logging(cfg["log_file"])
    app = create_app(cfg)
    log.info("UI mods server listening on %s", cfg["port"])
    app.run(host="0.0.0.0", port=cfg["port"], threaded=True)

if __name__ == "__main__":
    main()
