"""
getRecentPhotosForCategories: newest photos of every category.

Arguments:
    number_of_photos  maximum photos returned per category
    document_version  DocumentVersion of the documents to read

Returns one flat list: for each category in turn, up to number_of_photos
PHOTO documents of that category, newest first.
"""


async def run(context, number_of_photos, document_version):
    categories = await context.query("CATEGORY", document_version)

    photos = []
    for category in categories:
        photos.extend(
            await context.query(
                "PHOTO",
                document_version,
                context.text_field("CategoryId") == category["id"],
                order_by=[(context.text_field("CreatedDateTime"), True)],
                limit=number_of_photos,
            )
        )
    return photos
