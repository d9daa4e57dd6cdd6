from typing import Any, Optional, Type
from fastapi import Body, Depends, HTTPException, Request, status
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.db.dependencies import get_session
from marketplace.payouts.constants import logger
from marketplace.payouts.exceptions import PayoutValidationError
from marketplace.user.repository import get_user_role_names


def require_roles(*roles: str):
    """Role gate on the stored roles , token claims alone can be stale after a role change."""
    allowed = set(roles)

    async def _checker(request: Request, session: AsyncSession = Depends(get_session)):
        user_id = getattr(request.state, "user_identifier", None)
        if user_id is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

        user_roles = await get_user_role_names(session, user_id)
        if not user_roles & allowed:
            logger.warning("payout.role.denied", extra={"user_public_id": request.state.user_public_id,
                                                        "path": request.url.path})
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Seller account required")
        return True

    return Depends(_checker)


def current_seller(request: Request) -> int:
    return request.state.user_identifier


def _field_errors(exc: ValidationError) -> list[dict[str, Any]]:
    # loc and message only , never the submitted value
    out = []
    for e in exc.errors():
        loc = [str(p) for p in e.get("loc", ()) if p != "__root__"]
        out.append({"field": ".".join(loc) or "body", "message": e.get("msg")})
    return out


def validated_body(model: Type[BaseModel]):
    """Parse the json body into `model` , failures are 400s naming the offending fields."""

    async def _parse(payload: Optional[Any] = Body(None)):
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise PayoutValidationError("Request body must be a JSON object")
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            errors = _field_errors(e)
            logger.warning("payout.body.invalid", extra={"model": model.__name__, "errors": errors})
            raise PayoutValidationError("Invalid request", errors=errors)

    return _parse
