from typing import Optional

from app.db.repositories.base import BaseRepository
from app.db.models.media import MediaItem


class MediaRepository(BaseRepository[MediaItem]):
    """Lecture du catalogue (le CRUD du catalogue vit ailleurs)."""
    model = MediaItem

    def get_active(self, media_id: int) -> Optional[MediaItem]:
        media = self.get(media_id)
        if media is None or not media.is_active:
            return None
        return media

    def get_by_key(self, object_key: str) -> Optional[MediaItem]:
        return self.first_where(self.model.object_key == object_key)
