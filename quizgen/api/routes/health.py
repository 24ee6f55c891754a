from fastapi import APIRouter

from quizgen.services.image_generation import ImageServiceFactory

router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Liveness probe - always returns 200 if app is running."""
    return {"status": "ok"}


@router.get("/ready")
def readiness() -> dict:
    """Which image providers have credentials configured."""
    providers = {
        name: ImageServiceFactory.create_from_settings(name).is_available()
        for name in ImageServiceFactory.get_available_providers()
    }
    return {"status": "ready", "providers": providers}
