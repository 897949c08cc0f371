import pytest

from uimods.backup import BackupManager
from uimods.config import load_config
from uimods.patcher import ContentPatcher
from uimods.app import create_app

PRISTINE = (
    "<!doctype html>\n"
    "<html>\n"
    "<head>\n"
    "<title>Vendor UI</title>\n"
    "</head>\n"
    "<body>\n"
    "<div id=\"app\"></div>\n"
    "</body>\n"
    "</html>\n"
)


@pytest.fixture
def target(tmp_path):
    p = tmp_path / "trim" / "www" / "index.html"
    p.parent.mkdir(parents=True)
    p.write_bytes(PRISTINE.encode("utf-8"))
    return p


@pytest.fixture
def backup(tmp_path):
    return tmp_path / "cqshbak" / "index.html.original"


@pytest.fixture
def scratch(tmp_path):
    d = tmp_path / "scratch"
    d.mkdir()
    return d


@pytest.fixture
def backups(target, backup):
    return BackupManager(str(target), str(backup))


@pytest.fixture
def patcher(backups, scratch):
    return ContentPatcher(backups, str(scratch))


@pytest.fixture
def www(tmp_path):
    root = tmp_path / "app" / "www"
    (root / "assets").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "index.html").write_text("<html><body>admin</body></html>\n", encoding="utf-8")
    (root / "assets" / "app.css").write_text("body{}\n", encoding="utf-8")
    (root / "docs" / "index.html").write_text("docs\n", encoding="utf-8")
    return root


@pytest.fixture
def config(tmp_path, target, backup, scratch, www):
    cfg = load_config({
        "TRIM_APPDEST": str(www.parent),
        "UI_MODS_TARGET_FILE": str(target),
        "UI_MODS_BACKUP_FILE": str(backup),
    })
    cfg["tmp_dir"] = str(scratch)
    return cfg


@pytest.fixture
def client(config):
    app = create_app(config)
    app.config["TESTING"] = True
    return app.test_client()
