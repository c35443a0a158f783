"""
Registre central des routers.
- Paiements: /create-checkout-session, /stripe/webhook
- Commandes: /order/*
- Health: /health
"""
from fastapi import FastAPI
from shop_backend.payments import views as payments_views
from shop_backend.orders import views as orders_views
from shop_backend.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    app.include_router(payments_views.router)
    app.include_router(orders_views.router)
    # Health & monitoring
    app.include_router(health_router)
