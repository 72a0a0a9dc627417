"""
Error taxonomy for the scripture store.

Only StoreUnopenable is fatal: every other condition is absorbed by the
component that hits it and degrades to the next cheaper strategy
(detect -> import -> seed).
"""


class ScriptureStoreError(Exception):
    """Base class for all store errors."""


class AssetUnavailable(ScriptureStoreError):
    """The bundled corpus asset is missing or unreadable."""


class SchemaUndetected(ScriptureStoreError):
    """The source file has no recognizable books/verses relations."""


class ImportPartialFailure(ScriptureStoreError):
    """A verse batch failed mid-import; earlier batches stay committed."""

    def __init__(self, message: str, verses_committed: int):
        super().__init__(message)
        self.verses_committed = verses_committed


class StoreUnhealthy(ScriptureStoreError):
    """The local store opened but failed the integrity check."""


class StoreUnopenable(ScriptureStoreError):
    """The local store file cannot be created, opened or written."""
