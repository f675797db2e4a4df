"""API routes package.

Routers are organized by domain:

- health: Health check endpoints
- payments: Checkout initiation and status polling
- webhooks: SumUp checkout notifications
- admin: Manual payment status, archive and delete

All routers are registered in main.py with /api prefix.
"""

from booking_api.routes.admin import router as admin_router
from booking_api.routes.health import router as health_router
from booking_api.routes.payments import router as payments_router
from booking_api.routes.webhooks import router as webhooks_router

__all__ = [
    "admin_router",
    "health_router",
    "payments_router",
    "webhooks_router",
]
