import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from satsgame.config import settings
from satsgame.core.redis import get_redis, close_redis
from satsgame.routers import auth, assets, trades, portfolio, admin, set_forget
from satsgame.services.errors import SettlementError
from satsgame.services.reconciliation import scheduled_audit

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()

@asynccontextmanager
async def lifespan(app: FastAPI):
    await get_redis()
    scheduler.add_job(scheduled_audit, "cron", hour=settings.AUDIT_CRON_HOUR, minute=0, id="ledger_audit")
    scheduler.start()
    logger.info("satsgame API started (base asset %s)", settings.BASE_ASSET)
    yield
    scheduler.shutdown()
    await close_redis()

app = FastAPI(title="Bitcoin Opportunity Cost Game API", lifespan=lifespan)

_allowed_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()] or ["http://localhost:3000"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(SettlementError)
async def settlement_error_handler(request: Request, exc: SettlementError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

app.include_router(auth.router)
app.include_router(assets.router)
app.include_router(trades.router)
app.include_router(portfolio.router)
app.include_router(admin.router)
app.include_router(set_forget.router)

@app.get("/health")
async def health():
    return {"status": "ok"}

def run():
    import uvicorn
    uvicorn.run("satsgame.main:app", host="0.0.0.0", port=8000)
