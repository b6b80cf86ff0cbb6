import logging
import os
import re
import tempfile
from pathlib import Path

from storefront.errors import PersistenceError
from storefront.storage.locks import KeyedLocks

logger = logging.getLogger(__name__)

SEQUENCE_FILE = '.sequence'


def write_atomic(path, text):
    """Write text to path through a temp file in the same directory."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix='.tmp-', suffix=path.suffix)
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as handle:
            handle.write(text)
        os.replace(tmp_path, path)
    except OSError as e:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise PersistenceError(f'Could not write {path.name}: {e}')


class RecordStore:
    """Encrypted one-file-per-record storage.

    Records of kind ``product`` live in ``<data_dir>/products/product-0007.enc.json``.
    Ids are sequential per kind. The next id comes from a ``.sequence`` counter
    file, seeded from the highest id found in the directory the first time.
    """

    def __init__(self, data_dir, cipher):
        self.data_dir = Path(data_dir)
        self.cipher = cipher
        self._locks = KeyedLocks()

    def directory(self, kind):
        return self.data_dir / f'{kind}s'

    def path_for(self, kind, record_id):
        return self.directory(kind) / f'{kind}-{int(record_id):04d}.enc.json'

    def ensure_directory(self, kind):
        directory = self.directory(kind)
        if not directory.exists():
            directory.mkdir(parents=True, exist_ok=True)
            logger.info('Created directory: %s', directory)
        return directory

    def lock(self, kind):
        return self._locks.hold(kind)

    def scan_highest_id(self, kind):
        pattern = re.compile(rf'^{re.escape(kind)}-(\d+)\.enc\.json$')
        highest = 0
        directory = self.directory(kind)
        if not directory.exists():
            return highest
        for entry in directory.iterdir():
            match = pattern.match(entry.name)
            if match:
                highest = max(highest, int(match.group(1)))
        return highest

    def next_id(self, kind):
        """Reserve the next id for kind. Callers hold ``lock(kind)``."""
        self.ensure_directory(kind)
        sequence_path = self.directory(kind) / SEQUENCE_FILE
        current = 0
        if sequence_path.exists():
            try:
                current = int(sequence_path.read_text().strip() or 0)
            except ValueError:
                logger.warning('Corrupt id sequence for %s, rescanning', kind)
        # files copied in by hand can run ahead of the counter
        current = max(current, self.scan_highest_id(kind))
        next_value = current + 1
        write_atomic(sequence_path, str(next_value))
        return next_value

    def list_paths(self, kind):
        directory = self.directory(kind)
        if not directory.exists():
            return []
        return sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.name.startswith(f'{kind}-') and p.name.endswith('.enc.json')
        )

    def read(self, path):
        """Return the decrypted text of path, or None when the file is empty."""
        data = Path(path).read_text(encoding='utf-8')
        if not data or not data.strip():
            return None
        return self.cipher.decrypt(data)

    def write(self, kind, record_id, text):
        self.ensure_directory(kind)
        path = self.path_for(kind, record_id)
        write_atomic(path, self.cipher.encrypt(text))
        return path

    def remove(self, kind, record_id):
        path = self.path_for(kind, record_id)
        if not path.exists():
            return False
        path.unlink()
        return True
