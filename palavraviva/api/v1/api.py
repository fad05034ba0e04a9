from fastapi import APIRouter

from .routers import account, activity, auth, billing, content, cron, prayers, reading_plans

api_router = APIRouter()

# Include all API routes
api_router.include_router(auth.router)
api_router.include_router(account.router)
api_router.include_router(content.router)
api_router.include_router(cron.router)
api_router.include_router(reading_plans.router)
api_router.include_router(prayers.router)
api_router.include_router(activity.router)
api_router.include_router(billing.router)
