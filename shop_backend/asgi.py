"""
ASGI entrypoint: expose `app` pour les process managers / déploiements.

- En production, uvicorn (ou gunicorn avec des workers uvicorn) importe `shop_backend.asgi:app`.
- Toute la configuration FastAPI est centralisée dans shop_backend.app_setup; ce fichier n'expose que `app`.
"""

from shop_backend.app import app
