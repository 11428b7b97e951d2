"""Store abstractions for logs, test results and their durable backing."""
from featurecheck.core.stores.backends import JsonFileBackend, StoreBackend
from featurecheck.core.stores.logs import BoundedLogStore, normalize_date_bound

__all__ = [
    "BoundedLogStore",
    "JsonFileBackend",
    "StoreBackend",
    "normalize_date_bound",
]
