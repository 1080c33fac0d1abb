from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from satsgame.database import get_db
from satsgame.core.deps import get_current_user, get_settlement_service
from satsgame.models.user import User
from satsgame.schemas.trade import TradeRequest
from satsgame.services.ledger import TradeLog
from satsgame.services.portfolio import trade_to_dict
from satsgame.services.settlement import SettlementService

router = APIRouter(prefix="/api/trades", tags=["trades"])

@router.post("")
async def execute_trade(
    body: TradeRequest,
    user: User = Depends(get_current_user),
    service: SettlementService = Depends(get_settlement_service),
):
    # SettlementError subclasses are turned into responses by the app-level handler
    result = await service.execute(user.id, body.from_asset, body.to_asset, body.amount, body.unit)
    return {"success": True, "trade": result.to_dict()}

@router.get("/history")
async def trade_history(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    trades = await TradeLog(db).list_trades(user.id, limit=50)
    return [trade_to_dict(t) for t in trades]
