"""
PhotoSharing Backend — Photo Ownership Validation
===================================================

What:  Decides whether the signed-in user owns a photo.
How:   Resolves the caller from their registration reference and the photo
       from its id, both from the repository, so ids supplied in a request
       body are never trusted.
"""

import uuid

from photosharing.repositories.base import Repository


class PhotoValidation:

    def __init__(self, repository: Repository):
        self._repository = repository

    async def is_user_photo_owner(self, registration_reference: str, photo_id: str) -> bool:
        current_user = await self._repository.get_user(None, registration_reference)
        photo = await self._repository.get_photo(photo_id)

        if current_user.user_id is None or photo.user is None or photo.user.user_id is None:
            return False
        try:
            return uuid.UUID(current_user.user_id) == uuid.UUID(photo.user.user_id)
        except ValueError:
            return current_user.user_id == photo.user.user_id
