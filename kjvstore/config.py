"""
Project configuration and store policy constants.

The thresholds below decide when the local store counts as complete and how
the importer paces itself. They are policy, not per-call arguments, so every
module reads them from here.
"""

APP_NAME = "KJV Scripture Store"
__version__ = "0.4.0"

# Integrity policy: a complete KJV corpus has 66 books and 31,102 verses.
MIN_BOOK_COUNT = 66
MIN_VERSE_COUNT = 30000

# Importer batch size (rows per committed transaction).
IMPORT_BATCH_SIZE = 1000

# Below this many verses the store is "thin" and reads try one repopulation.
THIN_STORE_VERSE_COUNT = 1000

# Search policy
MIN_SEARCH_LENGTH = 2
DEFAULT_SEARCH_LIMIT = 20

# Environment variables
ENV_DB = "KJVSTORE_DB"
ENV_ASSET = "KJVSTORE_ASSET"
ENV_LOCAL_ASSET = "KJVSTORE_LOCAL_ASSET"
ENV_QUIET = "KJVSTORE_QUIET"
