# app/core/schemas.py
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    model_validator,
)
from pydantic.alias_generators import to_camel

from app.core.analytics.engine import (
    DEFAULT_TOP_LIMIT,
    DateRange,
    Granularity,
    TransactionKind,
)

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
CategoryStr = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)
]
Money = Annotated[Decimal, Field(ge=0, max_digits=15, decimal_places=2)]


class CamelModel(BaseModel):
    """JSON uses camelCase (netIncome, occurredAt), Python keeps snake_case."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


# =========================
# Users / auth
# =========================
class UserCreate(BaseModel):
    email: Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")]
    username: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
    password: Annotated[str, StringConstraints(min_length=6)]


class UserLogin(BaseModel):
    email: str
    password: str


class UserResponse(CamelModel):
    id: int
    email: str
    username: str
    created_at: datetime


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


# =========================
# Transactions
# =========================
class TransactionCreate(CamelModel):
    kind: TransactionKind
    amount: Money
    category: CategoryStr
    description: NonEmptyStr
    occurred_at: Optional[datetime] = None  # defaults to now
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None


class TransactionUpdate(CamelModel):
    kind: Optional[TransactionKind] = None
    amount: Optional[Money] = None
    category: Optional[CategoryStr] = None
    description: Optional[NonEmptyStr] = None
    occurred_at: Optional[datetime] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def no_null_required_fields(self):
        for name in ("kind", "amount", "category", "description", "occurred_at", "tags"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class TransactionResponse(CamelModel):
    id: int
    kind: TransactionKind
    amount: Decimal
    category: str
    description: str
    occurred_at: datetime
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PageInfo(CamelModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int


class TransactionPage(CamelModel):
    transactions: List[TransactionResponse]
    pagination: PageInfo


class KindTotals(CamelModel):
    total: float = 0
    count: int = 0


class TransactionStats(CamelModel):
    income: KindTotals
    expense: KindTotals
    net: float


# =========================
# Analytics
# =========================
class AnalyticsQuery(BaseModel):
    """Validated analytics parameters, built once per request."""

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    group_by: Optional[Granularity] = None  # each endpoint has its own default
    limit: int = Field(DEFAULT_TOP_LIMIT, ge=1, le=100)
    months: int = Field(6, ge=1, le=120)

    def date_range(self) -> DateRange:
        return DateRange(start=self.start_date, end=self.end_date).validate()


class RawPageInfo(CamelModel):
    total: int
    limit: int
    skip: int


class RawTransactionPage(CamelModel):
    transactions: List[TransactionResponse]
    pagination: RawPageInfo


class CategoryTotalResponse(CamelModel):
    category: str
    total: float
    count: int


class TopCategoryResponse(CategoryTotalResponse):
    average: float


class BucketTotalResponse(CamelModel):
    bucket: str
    total: float
    count: int
    kind: TransactionKind


class ComparisonRowResponse(CamelModel):
    bucket: str
    income: float
    expense: float


class KindSummaryResponse(CamelModel):
    total: float
    count: int
    average: float


class DashboardSummaryResponse(CamelModel):
    income: KindSummaryResponse
    expense: KindSummaryResponse
    net_income: float
    savings_rate: float
    total_transactions: int


SpendingTrendsResponse = Dict[str, Dict[str, float]]


# =========================
# Receipts
# =========================
class ReceiptText(BaseModel):
    text: str


class ReceiptItemResponse(CamelModel):
    name: str
    price: float


class ReceiptDataResponse(CamelModel):
    total: Optional[float] = None
    date: Optional[str] = None
    merchant: Optional[str] = None
    items: List[ReceiptItemResponse] = Field(default_factory=list)


class ReceiptFile(CamelModel):
    filename: str
    original_name: str
    path: str


class ReceiptUploadResponse(CamelModel):
    message: str
    file: ReceiptFile
    extracted_text: str
    extracted_data: ReceiptDataResponse
