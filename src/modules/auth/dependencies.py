from typing import Optional

from fastapi import Header

from config import settings
from database import MAX_DB_ID


def get_current_actor_id(
    x_user_id: Optional[int] = Header(default=None, alias="X-User-Id", gt=0, le=MAX_DB_ID)
) -> int:
    """
    Actor id injected by the upstream auth layer.

    Requests reach this service already authenticated; without the header the
    configured default actor is used.
    """
    if x_user_id is None:
        return settings.DEFAULT_ACTOR_ID
    return x_user_id
