"""API routes."""

from fastapi import APIRouter

from umoja.routes import cron, farmers, listings, orders, prices, ratings, webhooks

api_router = APIRouter()

# Marketplace
api_router.include_router(listings.router, prefix="/v1/listings", tags=["listings"])
api_router.include_router(orders.router, prefix="/v1/orders", tags=["orders"])
api_router.include_router(ratings.router, prefix="/v1/ratings", tags=["ratings"])

# Prices and reputation
api_router.include_router(prices.router, prefix="/v1/prices", tags=["prices"])
api_router.include_router(farmers.router, prefix="/v1/farmers", tags=["farmers"])

# Machine callers (scheduler, payment gateway)
api_router.include_router(cron.router, prefix="/v1/cron", tags=["cron"])
api_router.include_router(webhooks.router, prefix="/v1/webhooks", tags=["webhooks"])
