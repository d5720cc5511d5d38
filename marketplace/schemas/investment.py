from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CreateInvestmentRequest(BaseModel):
    property_id: Optional[str] = None
    shares: Optional[int] = None
    amount_invested: Optional[Decimal] = None
    share_price: Optional[Decimal] = None
    transaction_hash: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "propertyId": "1718035200000k3j9x0a1b",
                "shares": 5,
                "amountInvested": "1250.000000",
                "sharePrice": "250.000000",
                "transactionHash": "0x5f0c...e21a",
            }
        }


class PortfolioProperty(BaseModel):
    id: str
    title: str
    location: str
    shares_owned: int
    total_shares: int
    current_value: str
    total_invested: str
    roi: str
    monthly_income: str
    purchase_date: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class PortfolioStats(BaseModel):
    total_invested: str = "0.000"
    current_value: str = "0.000"
    total_roi: str = Field("0.0%", alias="totalROI")
    monthly_income: str = "0.000"
    properties_owned: int = 0

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class Portfolio(BaseModel):
    properties: List[PortfolioProperty] = []
    stats: PortfolioStats = Field(default_factory=PortfolioStats)


class PortfolioResponse(BaseModel):
    success: bool = True
    data: Portfolio
