from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List

from starlette.concurrency import run_in_threadpool
from structlog import get_logger

from marketplace.config import settings
from marketplace.core.cache import invalidate_properties_cache
from marketplace.core.errors import ErrorMessage, bad_request, not_found
from marketplace.db.supabase import first_row, supabase
from marketplace.schemas.investment import CreateInvestmentRequest, Portfolio, PortfolioProperty, PortfolioStats
from marketplace.schemas.property import as_text
from marketplace.services.chain import verify_transfer
from marketplace.services.properties import get_property_row
from marketplace.utils.ids import utc_now_iso

logger = get_logger()

CENTS = Decimal("0.01")


def _money(value: Decimal) -> str:
    return str(value.quantize(CENTS, rounding=ROUND_HALF_UP))


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


async def record_investment(investor_address: str, request: CreateInvestmentRequest) -> None:
    """Add ``request.shares`` to the investor's ownership row for the property.

    This is a read-then-write with no locking: two concurrent investments by the
    same wallet in the same property can lose an update. ``available_shares`` is
    decremented by the ownership trigger in the database, not here.
    """
    if not request.property_id or not request.shares or not request.amount_invested:
        raise bad_request(ErrorMessage.INVESTMENT_FIELDS_REQUIRED)
    if request.shares < 0:
        raise bad_request(ErrorMessage.INVESTMENT_SHARES_INVALID)
    if request.amount_invested < 0:
        raise bad_request(ErrorMessage.INVESTMENT_AMOUNT_INVALID)

    investor = investor_address.lower()

    property_row = await get_property_row(request.property_id)
    if not property_row:
        raise not_found(ErrorMessage.PROPERTY_NOT_FOUND)

    available = property_row.get("available_shares") or 0
    if available < request.shares:
        raise bad_request(f"Only {available} shares available")

    if settings.VERIFY_TRANSFERS and request.transaction_hash:
        verified = await run_in_threadpool(
            verify_transfer, request.transaction_hash, investor, request.amount_invested
        )
        if not verified:
            logger.warning("Investment transfer rejected", investor=investor, tx_hash=request.transaction_hash)
            raise bad_request(ErrorMessage.TRANSFER_UNVERIFIED)

    result = await supabase.select(
        settings.OWNERSHIPS_TABLE,
        select="*",
        where={"user_wallet_address": investor, "property_id": request.property_id},
    )
    existing = first_row(result)

    if existing:
        total_shares = (existing.get("shares_owned") or 0) + request.shares
        total_amount = Decimal(str(existing.get("purchase_price") or 0)) + request.amount_invested
        await supabase.update(
            settings.OWNERSHIPS_TABLE,
            {"shares_owned": total_shares, "purchase_price": _money(total_amount), "updated_at": utc_now_iso()},
            where={"id": existing["id"]},
        )
    else:
        await supabase.insert(settings.OWNERSHIPS_TABLE, {
            "user_wallet_address": investor,
            "property_id": request.property_id,
            "shares_owned": request.shares,
            "purchase_price": _money(request.amount_invested),
        })

    await invalidate_properties_cache()
    logger.info(
        "Investment recorded",
        investor=investor,
        property_id=request.property_id,
        shares=request.shares,
        amount=str(request.amount_invested),
        tx_hash=request.transaction_hash,
        existing_position=bool(existing),
    )


def build_portfolio(ownerships: List[Dict[str, Any]], properties: Dict[str, Dict[str, Any]]) -> Portfolio:
    total_invested = 0.0
    current_value = 0.0
    monthly_income = 0.0
    rows: List[PortfolioProperty] = []

    for ownership in ownerships:
        prop = properties.get(str(ownership.get("property_id")))
        if not prop:
            continue

        shares_owned = ownership.get("shares_owned") or 0
        total_shares = prop.get("total_shares") or 0
        invested = _to_float(ownership.get("purchase_price"))
        value = invested * (1 + _to_float(prop.get("roi")) / 100)
        income = 0.0
        if prop.get("monthly_income") and total_shares:
            income = _to_float(prop.get("monthly_income")) * (shares_owned / total_shares)

        total_invested += invested
        current_value += value
        monthly_income += income

        rows.append(PortfolioProperty(
            id=str(prop["id"]),
            title=prop.get("title") or "",
            location=prop.get("location") or "",
            shares_owned=shares_owned,
            total_shares=total_shares,
            current_value=f"{value:.3f}",
            total_invested=f"{invested:.3f}",
            roi=f"+{as_text(prop.get('roi')) or '0'}%",
            monthly_income=f"{income:.3f}",
            purchase_date=as_text(ownership.get("purchase_date")),
        ))

    total_roi = (current_value - total_invested) / total_invested * 100 if total_invested > 0 else 0.0
    stats = PortfolioStats(
        total_invested=f"{total_invested:.3f}",
        current_value=f"{current_value:.3f}",
        total_roi=f"{'+' if total_roi > 0 else ''}{total_roi:.1f}%",
        monthly_income=f"{monthly_income:.3f}",
        properties_owned=len(rows),
    )
    return Portfolio(properties=rows, stats=stats)


async def get_portfolio(address: str) -> Portfolio:
    result = await supabase.select(
        settings.OWNERSHIPS_TABLE, select="*", where={"user_wallet_address": address.lower()}
    )
    ownerships = result.data or []
    if not ownerships:
        return Portfolio()

    property_ids = sorted({str(o["property_id"]) for o in ownerships})
    properties = await supabase.select(settings.PROPERTIES_TABLE, select="*", where={"id": property_ids})
    by_id = {str(row["id"]): row for row in properties.data or []}
    return build_portfolio(ownerships, by_id)
