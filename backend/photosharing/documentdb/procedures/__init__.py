"""
Server-side procedures.

The modules in this directory are not imported by the application. Their
source text is uploaded to the document store during initialization and
executed there by DocumentStore.execute_procedure, which calls
`run(context, *args)` inside a single transaction.
"""

from pathlib import PurePosixPath

TRANSFER_GOLD_ID = "transferGold"
GET_RECENT_PHOTOS_FOR_CATEGORIES_ID = "getRecentPhotosForCategories"

# Procedure id → source path relative to the server path handed to
# DocumentDbRepository.initialize_database_if_not_existing().
PROCEDURE_FILES = {
    TRANSFER_GOLD_ID: PurePosixPath("documentdb/procedures/transfer_gold.py"),
    GET_RECENT_PHOTOS_FOR_CATEGORIES_ID: PurePosixPath("documentdb/procedures/get_recent_photos_for_categories.py"),
}
