import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from tracker.models.entities import Alias, Player

logger = logging.getLogger(__name__)


def resolve_player_id(db: Session, alias: str) -> int:
    """Return the player owning ``alias``, creating player and alias on first sight.

    Lookup-then-insert: two resolutions of the same alias must never run
    concurrently. The ingestion queue processes one capture at a time, which
    is what keeps aliases unique. Changes are flushed, not committed.
    """
    player_id = db.execute(select(Alias.player_id).where(Alias.name == alias).limit(1)).scalar_one_or_none()
    if player_id is not None:
        return player_id

    player = Player(name=alias)
    db.add(player)
    db.flush()
    db.add(Alias(player_id=player.id, name=alias))
    db.flush()
    logger.info("New player %d from alias %r", player.id, alias)
    return player.id
