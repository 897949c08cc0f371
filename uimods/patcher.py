import logging
import os
import secrets
import shutil
import stat
import tempfile
import time
from datetime import datetime, timezone

from uimods.backup import BackupManager, TARGET_MODE
from uimods.errors import InvalidInputError, NotFoundError

log = logging.getLogger(__name__)

HEAD_MARKER = "</head>"
BODY_MARKER = "</body>"

SCRATCH_PREFIX = "ui-mods"

NOTHING_TO_INJECT = "No CSS/JS content provided."

# ---------------- marker insertion ----------------

def _splice(lines, marker: str, block: list[str], emit) -> bool:
    block_text = "\n".join(block)
    inserted = False

    for line in lines:
        if not inserted and marker in line:
            idx = line.index(marker)
            before, after = line[:idx], line[idx:]
            if before:
                emit(before)
            emit(block_text)
            emit(after)
            inserted = True
            continue
        emit(line)

    return inserted

def splice_lines(lines, marker: str, block: list[str]) -> tuple[list[str], bool]:
    """
    Insert ``block`` ahead of the first occurrence of ``marker``.

    The matching line is split at the marker: a non-empty prefix stays on its
    own line, then the block, then the marker and whatever follows it. Only
    the first match is used. Returns the new lines and whether a match was found.
    """
    out = []
    inserted = _splice(lines, marker, block, out.append)
    return out, inserted

def _iter_lines(f):
    for raw in f:
        yield raw[:-1] if raw.endswith("\n") else raw

def scratch_path(tmp_dir: str | None = None) -> str:
    d = tmp_dir or tempfile.gettempdir()
    name = f"{SCRATCH_PREFIX}-{int(time.time() * 1000)}-{secrets.token_hex(6)}.tmp"
    return os.path.join(d, name)

def inject_block(path: str, marker: str, block: list[str], tmp_dir: str | None = None):
    """Rewrite ``path`` with ``block`` spliced in before ``marker``, via a scratch file."""
    tmp = scratch_path(tmp_dir)
    try:
        # newline=None folds \r\n and \r into \n; the scratch file is written with \n only
        with open(path, "r", encoding="utf-8", newline=None) as src, \
             open(tmp, "x", encoding="utf-8", newline="\n") as dst:
            inserted = _splice(_iter_lines(src), marker, block, lambda s: dst.write(s + "\n"))

        if not inserted:
            raise NotFoundError(f"Insertion point not found: {marker}")

        # copy rather than rename: the scratch dir may sit on another filesystem
        shutil.copyfile(tmp, path)
    finally:
        try:
            os.remove(tmp)
        except FileNotFoundError:
            pass

    log.info("inserted %d-line block before %s in %s", len(block), marker, path)

# ---------------- payload ----------------

def read_text_from_path(path: str) -> str:
    try:
        st = os.stat(path)
    except FileNotFoundError:
        raise NotFoundError(f"File not found: {path}") from None
    if not stat.S_ISREG(st.st_mode):
        raise InvalidInputError(f"Path is not a file: {path}")
    with open(path, "r", encoding="utf-8") as f:
        return f.read()

def css_block(css: str) -> list[str]:
    return ["<style>", "/* Injected CSS */", css, "</style>"]

def js_block(js: str) -> list[str]:
    return ["<script>", "// Injected JS", js, "</script>"]

def _mtime(path: str) -> str | None:
    try:
        st = os.stat(path)
    except OSError:
        return None
    ts = datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)
    return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")

# ---------------- patcher ----------------

class ContentPatcher:
    def __init__(self, backups: BackupManager, tmp_dir: str | None = None):
        self.backups = backups
        self.tmp_dir = tmp_dir

    @property
    def target_file(self) -> str:
        return self.backups.target_file

    @property
    def backup_file(self) -> str:
        return self.backups.backup_file

    def _resolve(self, text: str | None, path: str | None) -> str | None:
        # a file reference wins over inline text
        if path:
            return read_text_from_path(path)
        if text:
            return text
        return None

    def inject_code(self, css_text=None, js_text=None, css_path=None, js_path=None) -> dict:
        """
        Reset the target to its pristine copy, then splice the CSS block before
        </head> and the JS block before </body>.

        Every call starts over from the backup, so injecting the same payload
        twice yields the same file as injecting it once.
        """
        if not any((css_text, js_text, css_path, js_path)):
            return {"injected": False, "message": NOTHING_TO_INJECT}

        self.backups.ensure_backup()
        self.backups.copy_to_target()

        final_css = self._resolve(css_text, css_path)
        final_js = self._resolve(js_text, js_path)

        if not final_css and not final_js:
            return {"injected": False, "message": NOTHING_TO_INJECT}

        if final_css:
            inject_block(self.target_file, HEAD_MARKER, css_block(final_css), self.tmp_dir)
        if final_js:
            inject_block(self.target_file, BODY_MARKER, js_block(final_js), self.tmp_dir)

        os.chmod(self.target_file, TARGET_MODE)
        log.info("inject done (css=%s js=%s)", bool(final_css), bool(final_js))
        return {
            "injected": True,
            "message": "Injected successfully. Force-refresh the browser (Ctrl+F5) to see the changes.",
        }

    def restore(self):
        self.backups.restore_original()

    def get_status(self) -> dict:
        index_mtime = _mtime(self.target_file)
        backup_mtime = _mtime(self.backup_file)
        return {
            "indexPath": self.target_file,
            "backupPath": self.backup_file,
            "indexExists": index_mtime is not None,
            "backupExists": backup_mtime is not None,
            "indexMtime": index_mtime,
            "backupMtime": backup_mtime,
        }
