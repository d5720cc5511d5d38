from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi_limiter import FastAPILimiter

from marketplace.config import settings
from marketplace.core.cache import close_redis, get_redis
from marketplace.core.errors import register_exception_handlers
from marketplace.core.logging import setup_logging
from marketplace.db.supabase import supabase
from marketplace.routers import health, investments, profile, properties

app = FastAPI(title="Integra Marketplace API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)
app.include_router(health.router)
app.include_router(properties.router)
app.include_router(profile.router)
app.include_router(investments.router)

@app.on_event("startup")
async def startup_event():
    setup_logging()
    await FastAPILimiter.init(get_redis())

@app.on_event("shutdown")
async def shutdown_event():
    await supabase.aclose()
    await close_redis()
