import json
import logging
import os
import string
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone

import shortuuid

logger = logging.getLogger(__name__)

BASE62 = string.digits + string.ascii_uppercase + string.ascii_lowercase
SHORT_CODE_LENGTH = 6
INDEX_FILE = "index.json"

_short_codes = shortuuid.ShortUUID(alphabet=BASE62)


def generate_short_code(length=SHORT_CODE_LENGTH):
    return _short_codes.random(length=length)


def utcnow():
    return datetime.now(timezone.utc)


@dataclass
class FileRecord:
    short_code: str
    file_name: str
    original_name: str
    mime_type: str
    size: int
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now=None):
        return (now or utcnow()) > self.expires_at

    def to_dict(self):
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        data["expires_at"] = self.expires_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data):
        data = dict(data)
        data["created_at"] = datetime.fromisoformat(data["created_at"])
        data["expires_at"] = datetime.fromisoformat(data["expires_at"])
        return cls(**data)


class FileStore:
    """
    Uploaded files on local disk, named ``<short_code><ext>``, with their
    metadata kept in a JSON index next to them.
    """

    def __init__(self, folder, expiry_days=7):
        self.folder = os.path.abspath(folder)
        self.expiry_days = expiry_days
        self._lock = threading.Lock()
        self._reserved = set()
        os.makedirs(self.folder, exist_ok=True)

    @property
    def index_path(self):
        return os.path.join(self.folder, INDEX_FILE)

    def _load(self):
        if not os.path.exists(self.index_path):
            return {}
        with open(self.index_path, encoding="utf-8") as fh:
            return json.load(fh)

    def _save(self, index):
        tmp_path = self.index_path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as fh:
            json.dump(index, fh, indent=2)
        os.replace(tmp_path, self.index_path)

    def path_for(self, record):
        return os.path.join(self.folder, record.file_name)

    def add(self, upload, original_name, mime_type=""):
        """
        Save ``upload`` (anything with ``save(path)``, e.g. werkzeug's
        ``FileStorage``) under a fresh short code and return its record.
        """
        _, ext = os.path.splitext(original_name)
        with self._lock:
            index = self._load()
            short_code = generate_short_code()
            while short_code in index or short_code in self._reserved:
                short_code = generate_short_code()
            self._reserved.add(short_code)

        file_name = f"{short_code}{ext}"
        path = os.path.join(self.folder, file_name)
        try:
            # the copy can be large; readers must not wait on it
            upload.save(path)
            size = os.path.getsize(path)
        except Exception:
            with self._lock:
                self._reserved.discard(short_code)
            if os.path.exists(path):
                os.remove(path)
            raise

        now = utcnow()
        record = FileRecord(
            short_code=short_code,
            file_name=file_name,
            original_name=original_name,
            mime_type=mime_type or "application/octet-stream",
            size=size,
            created_at=now,
            expires_at=now + timedelta(days=self.expiry_days),
        )
        with self._lock:
            index = self._load()
            index[short_code] = record.to_dict()
            self._save(index)
            self._reserved.discard(short_code)

        logger.info("Stored %s as %s (%d bytes)", original_name, short_code, record.size)
        return record

    def get(self, short_code):
        with self._lock:
            data = self._load().get(short_code)
        return FileRecord.from_dict(data) if data else None

    def delete(self, record):
        with self._lock:
            self._remove(record)

    def purge_expired(self, now=None):
        """Delete every expired file and its record. Returns how many went."""
        now = now or utcnow()
        deleted = 0
        with self._lock:
            index = self._load()
            for data in list(index.values()):
                record = FileRecord.from_dict(data)
                if record.is_expired(now):
                    if self._remove(record, index):
                        deleted += 1
            self._save(index)
        return deleted

    def _remove(self, record, index=None):
        """Remove the file and its record; the record goes even if the file can't."""
        removed = True
        try:
            os.remove(self.path_for(record))
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error("File deletion error for %s: %s", record.short_code, e)
            removed = False

        if index is None:
            current = self._load()
            current.pop(record.short_code, None)
            self._save(current)
        else:
            index.pop(record.short_code, None)
        logger.info("Deleted: %s (%s)", record.original_name, record.short_code)
        return removed
