from .kv import KVEntry
