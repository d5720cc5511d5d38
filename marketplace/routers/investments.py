from typing import Optional

from fastapi import APIRouter, Depends
from structlog import get_logger

from marketplace.core.errors import ApiError, ErrorMessage, bad_request, internal_error
from marketplace.dependencies.rate_limit import read_limiter, write_limiter
from marketplace.dependencies.wallet import get_wallet_address
from marketplace.schemas.investment import CreateInvestmentRequest, PortfolioResponse
from marketplace.schemas.property import MessageResponse
from marketplace.services.investments import get_portfolio, record_investment

logger = get_logger()
router = APIRouter(prefix="/api", tags=["investments"])


@router.post("/investments", response_model=MessageResponse, dependencies=[Depends(write_limiter)])
async def record_investment_endpoint(
    request: CreateInvestmentRequest,
    wallet: Optional[str] = Depends(get_wallet_address),
):
    if not wallet:
        raise bad_request(ErrorMessage.INVESTOR_WALLET_REQUIRED)

    logger.info(
        "Received investment",
        investor=wallet,
        property_id=request.property_id,
        shares=request.shares,
        tx_hash=request.transaction_hash,
    )
    try:
        await record_investment(wallet, request)
        return MessageResponse(message="Investment recorded successfully")
    except ApiError:
        raise
    except Exception as e:
        # The transfer has usually already settled on chain by the time we get here.
        logger.error(
            "Error recording investment",
            investor=wallet,
            property_id=request.property_id,
            tx_hash=request.transaction_hash,
            error=str(e),
            exc_info=True,
        )
        raise internal_error()


@router.get("/user/investments", response_model=PortfolioResponse, dependencies=[Depends(read_limiter)])
async def user_investments_endpoint(wallet: Optional[str] = Depends(get_wallet_address)):
    if not wallet:
        raise bad_request(ErrorMessage.WALLET_REQUIRED)
    try:
        portfolio = await get_portfolio(wallet)
        logger.info("Portfolio fetched", address=wallet.lower(), properties_owned=portfolio.stats.properties_owned)
        return PortfolioResponse(data=portfolio)
    except Exception as e:
        logger.error("Error fetching user investments", address=wallet, error=str(e), exc_info=True)
        raise internal_error()
