"""
Health check endpoints.

Provides:
- /health - Basic liveness check (is the app running?)
- /metrics - Room and connection counts for monitoring
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from game import GamePhase

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request):
    """
    Basic liveness check - is the app running?

    This endpoint should always return 200 if the process is alive.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "active_rooms": len(request.app.state.room_manager.rooms),
    }


@router.get("/metrics")
async def metrics(request: Request):
    """Room, seat and connection counts from the app's room manager."""
    rooms = request.app.state.room_manager.rooms
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "active_rooms": len(rooms),
        "total_players": sum(len(r.players) for r in rooms.values()),
        "connected_players": sum(r.connected_count() for r in rooms.values()),
        "games_in_progress": sum(
            1 for r in rooms.values() if r.game.phase == GamePhase.PLAYING
        ),
    }
