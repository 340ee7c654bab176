"""Player API endpoints."""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel, Field

from padeliga.api.deps import RepoDep
from padeliga.auth.deps import CurrentUser

router = APIRouter(prefix="/api/players", tags=["players"])


class CreatePlayerRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    user_id: str | None = None


@router.post("", status_code=201)
async def create_player(body: CreatePlayerRequest, repo: RepoDep, _: CurrentUser) -> dict:
    player = await repo.create_player(body.name.strip(), user_id=body.user_id)
    return {"data": {"id": player.id, "name": player.name, "user_id": player.user_id}}
