import os

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

DEFAULT_TARGET_FILE = "/usr/trim/www/index.html"
DEFAULT_BACKUP_FILE = "/usr/cqshbak/index.html.original"
DEFAULT_PORT = 8080
DEFAULT_MAX_BODY = 20 * 1024 * 1024

def _int(env, names, default: int) -> int:
    for name in names:
        raw = (env.get(name) or "").strip()
        if raw:
            try:
                return int(raw)
            except ValueError:
                continue
    return default

def load_config(environ=None) -> dict:
    """
    Environment surface:
      - TRIM_APPDEST: install root, www/ beneath it is served
      - TRIM_SERVICE_PORT / PORT: listening port
      - TRIM_PKGVAR: log directory (info.log)
      - UI_MODS_TARGET_FILE / UI_MODS_BACKUP_FILE: patched file and its pristine copy
    """
    env = os.environ if environ is None else environ

    app_dest = env.get("TRIM_APPDEST") or BASE_DIR
    pkgvar = env.get("TRIM_PKGVAR")

    return {
        "app_dest": app_dest,
        "www_root": os.path.join(app_dest, "www"),
        "port": _int(env, ("TRIM_SERVICE_PORT", "PORT"), DEFAULT_PORT),
        "log_file": os.path.join(pkgvar, "info.log") if pkgvar else None,
        "target_file": env.get("UI_MODS_TARGET_FILE") or DEFAULT_TARGET_FILE,
        "backup_file": env.get("UI_MODS_BACKUP_FILE") or DEFAULT_BACKUP_FILE,
        "max_body": _int(env, ("UI_MODS_MAX_BODY",), DEFAULT_MAX_BODY),
    }
