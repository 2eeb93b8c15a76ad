from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(prefix="/api", tags=["packs"])


@router.get("/packs")
async def list_packs(request: Request):
    content = request.app.state.content
    return {
        pack_id: {
            "name": pack.name,
            "icon": pack.icon,
            "description": pack.description,
            "card_count": pack.card_count(),
        }
        for pack_id, pack in content.packs.items()
    }
