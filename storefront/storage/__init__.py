from .crypto import RecordCipher
from .records import RecordStore, write_atomic
from .repository import EntityRepository, KINDS

__all__ = [
    'RecordCipher', 'RecordStore', 'EntityRepository',
    'KINDS', 'write_atomic'
]
