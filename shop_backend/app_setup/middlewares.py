"""
Middlewares transverses de l'application.
- register_basic_middlewares: CORS (origines configurées, sinon localhost + réseaux privés).
- register_security_middleware: en-têtes de sécurité sur toutes les réponses.
- register_no_cache_middleware: empêche la mise en cache des réponses /order.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from shop_backend.config import get_settings

# localhost, 127.0.0.1 et plages privées (10/8, 192.168/16, 172.16/12), port quelconque
LOCAL_ORIGIN_REGEX = (
    r"^https?://(localhost|127\.0\.0\.1|10\.\d+\.\d+\.\d+|192\.168\.\d+\.\d+"
    r"|172\.(1[6-9]|2\d|3[01])\.\d+\.\d+)(:\d+)?$"
)

def register_basic_middlewares(app: FastAPI) -> None:
    """
    CORSMiddleware: CORS_ORIGINS si défini, sinon origines locales/LAN (dev sur mobile).
    Méthodes limitées à GET/POST (+ OPTIONS pour le preflight).
    """
    origins = list(get_settings().cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_origin_regex=None if origins else LOCAL_ORIGIN_REGEX,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

def register_security_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
        return response

def register_no_cache_middleware(app: FastAPI) -> None:
    """
    Les réponses /order (données client, rapprochement) ne doivent pas être mises en cache.
    """
    @app.middleware("http")
    async def no_cache_for_orders(request: Request, call_next):
        response = await call_next(request)
        path = request.url.path.rstrip("/")
        if request.method == "GET" and (path == "/order" or path.startswith("/order/")):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"
        return response
