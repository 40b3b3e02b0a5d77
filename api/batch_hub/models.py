from datetime import date
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

class SellByCodeIn(BaseModel):
    code: str = Field(min_length=1, max_length=64)

class SellByMatchIn(BaseModel):
    product_name: Optional[str] = None
    brand: Optional[str] = None

class SaleOutcomeOut(BaseModel):
    status: str
    message: str
    batch_id: Optional[int] = None
    product_id: Optional[int] = None
    stage: Optional[str] = None
    score: Optional[float] = None

class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    brand: Optional[str] = None
    category: str = ""

class ShopOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    address: Optional[str] = None

class ListingRowOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    shop_id: int
    quantity: int
    status: str
    expiry_date: Optional[date] = None
    discount_percent: Decimal
    product: ProductOut
    shop: ShopOut

class ListingOut(BaseModel):
    source: str
    count: int
    error: Optional[str] = None
    rows: List[ListingRowOut]
