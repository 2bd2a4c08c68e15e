from typing import Any

from fastapi import Depends, Request

from app.core.errors import ValidationError
from app.dependencies.auth import get_current_user_id


async def authenticated_json_body(
    request: Request,
    _user_id: str = Depends(get_current_user_id),
) -> Any:
    """
    Decode the JSON body only after the caller is authenticated, so a bad
    token is always a 401 no matter what the body looks like.
    An empty body decodes to None and is rejected by the request schema.
    """
    if not await request.body():
        return None
    try:
        return await request.json()
    except ValueError:
        raise ValidationError("Invalid request body")
