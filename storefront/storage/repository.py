import json
import logging

from storefront.errors import PersistenceError
from storefront.utils.helpers import utc_now_iso

logger = logging.getLogger(__name__)

KINDS = ('user', 'product', 'order')


class EntityRepository:
    """CRUD over the encrypted record store for users, products and orders.

    Reads favour availability: a record that cannot be decrypted or parsed is
    logged and skipped by ``load_all`` and reported as missing by ``load_one``.
    """

    def __init__(self, store):
        self.store = store

    def _check_kind(self, kind):
        if kind not in KINDS:
            raise ValueError(f'Unknown entity kind: {kind}')

    def save(self, kind, data):
        """Upsert data, assigning an id when it has none. Mutates and returns data."""
        self._check_kind(kind)
        with self.store.lock(kind):
            if not data.get('id'):
                data['id'] = self.store.next_id(kind)
            data['updatedAt'] = utc_now_iso()
            if not data.get('createdAt'):
                data['createdAt'] = data['updatedAt']
            self.store.write(kind, data['id'], json.dumps(data))
        return data

    def load_all(self, kind):
        self._check_kind(kind)
        records = []
        for path in self.store.list_paths(kind):
            try:
                text = self.store.read(path)
                if text is None:
                    logger.warning('Empty file: %s', path)
                    continue
                records.append(json.loads(text))
            except (PersistenceError, ValueError, OSError) as e:
                logger.error('Failed to load %s: %s', path.name, e)
        return sorted(records, key=lambda r: r.get('id') or 0)

    def load_one(self, kind, record_id):
        self._check_kind(kind)
        try:
            path = self.store.path_for(kind, record_id)
        except (TypeError, ValueError):
            return None

        if not path.exists():
            logger.debug('File not found: %s', path)
            return None

        try:
            text = self.store.read(path)
            if text is None:
                logger.warning('Empty file: %s', path)
                return None
            return json.loads(text)
        except (PersistenceError, ValueError, OSError) as e:
            logger.error('Failed to decrypt/load %s: %s', path, e)
            return None

    def find_one(self, kind, **fields):
        for record in self.load_all(kind):
            if all(record.get(k) == v for k, v in fields.items()):
                return record
        return None

    def delete(self, kind, record_id):
        self._check_kind(kind)
        with self.store.lock(kind):
            removed = self.store.remove(kind, record_id)
        if removed:
            logger.info('Deleted %s %s', kind, record_id)
        return removed
