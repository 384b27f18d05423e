from fastapi import APIRouter

router = APIRouter()

@router.get("/")
def root():
    return {
        "name": "Field Schema Service",
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "fields": "/fields/{entity_type}",
    }
