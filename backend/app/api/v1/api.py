from fastapi import APIRouter

from backend.app.api.v1.endpoints import (
    auth,
    categories,
    clients,
    equipment,
    products,
    quotes,
    users,
)

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(clients.router, prefix="/clients", tags=["clients"])
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(products.router, prefix="/products", tags=["products"])
api_router.include_router(equipment.router, prefix="/equipment", tags=["equipment"])
api_router.include_router(quotes.router, prefix="/quotes", tags=["quotes"])
