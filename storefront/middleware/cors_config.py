from fastapi.middleware.cors import CORSMiddleware

from storefront.config import settings


def allowed_origins():
    origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
    # the storefront frontend is always allowed
    if settings.FRONTEND_URL and settings.FRONTEND_URL not in origins:
        origins.append(settings.FRONTEND_URL.rstrip("/"))
    return origins


def configure_cors(app):
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        max_age=86400,
    )
