import logging
import os
import shutil

from uimods.errors import NotFoundError

log = logging.getLogger(__name__)

# rw-r--r--, applied after every restore and patch
TARGET_MODE = 0o644

class BackupManager:
    """Keeps exactly one pristine copy of the target file and restores it on demand."""

    def __init__(self, target_file: str, backup_file: str):
        self.target_file = target_file
        self.backup_file = backup_file

    @property
    def backup_dir(self) -> str:
        return os.path.dirname(self.backup_file)

    def ensure_backup(self) -> dict:
        os.makedirs(self.backup_dir, exist_ok=True)
        if os.path.exists(self.backup_file):
            return {"created": False}

        if not os.path.exists(self.target_file):
            raise NotFoundError(f"System file not found: {self.target_file}")

        shutil.copyfile(self.target_file, self.backup_file)
        log.info("backup created: %s -> %s", self.target_file, self.backup_file)
        return {"created": True}

    def copy_to_target(self):
        shutil.copyfile(self.backup_file, self.target_file)

    def restore_original(self):
        if not os.path.exists(self.backup_file):
            raise NotFoundError("No backup found")
        self.copy_to_target()
        os.chmod(self.target_file, TARGET_MODE)
        log.info("restored %s from %s", self.target_file, self.backup_file)
