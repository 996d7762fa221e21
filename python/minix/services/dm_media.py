"""Direct message media service.

Media records are registered before upload and referenced by messages
through media_id. No bytes are stored; media_url is synthesized from
MEDIA_BASE_URL, the record id and the optional filename.
"""

from collections.abc import Iterable
from urllib.parse import quote

from sqlalchemy import select
from sqlalchemy.orm import Session

from minix.config import Settings
from minix.db.models import DmMedia, new_id, utcnow
from minix.db.session import transaction
from minix.logging import get_logger
from minix.schemas.dm import MediaOut, MediaUploadOut, MessageMediaOut

logger = get_logger(__name__)

# Characters left unescaped by JavaScript's encodeURIComponent.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_uri_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def build_media_url(base_url: str, media_id: str, filename: str | None = None) -> str:
    """Return "<base>/<id>" or "<base>/<id>/<url-encoded filename>"."""
    url = f"{base_url}/{media_id}"
    if filename:
        url = f"{url}/{encode_uri_component(filename)}"
    return url


def create_media_entry(
    db: Session, settings: Settings, filename: str | None = None
) -> MediaUploadOut:
    """Register a media record and return its id, URL and timestamp."""
    media_id = new_id()
    media = DmMedia(
        id=media_id,
        filename=filename or None,
        media_url=build_media_url(settings.media_base_url, media_id, filename),
        created_at=utcnow(),
    )
    with transaction(db):
        db.add(media)

    logger.info("dm_media_created", media_id=media_id)
    return MediaUploadOut(
        media_id=media.id, media_url=media.media_url, uploaded_at=media.created_at
    )


def get_media(db: Session, media_id: str) -> MediaOut | None:
    """Look up a media record by id."""
    media = db.get(DmMedia, media_id)
    if media is None:
        return None
    return MediaOut(media_id=media.id, media_url=media.media_url)


def fetch_media_map(db: Session, media_ids: Iterable[str]) -> dict[str, MessageMediaOut]:
    """Batch-resolve media ids. Unknown ids are absent from the result."""
    unique_ids = {media_id for media_id in media_ids if media_id}
    if not unique_ids:
        return {}
    rows = db.scalars(select(DmMedia).where(DmMedia.id.in_(unique_ids))).all()
    return {row.id: MessageMediaOut(id=row.id, media_url=row.media_url) for row in rows}
