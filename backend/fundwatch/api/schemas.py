"""Pydantic schemas for API request/response."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fundwatch.models.fund import AnnotatedFundRecord, FundRecord

PUSH_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$"


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class FundPageResponse(CamelModel):
    data: list[AnnotatedFundRecord]
    total: int
    page: int
    limit: int
    status: str
    version: str | None = None
    message: str | None = None


class FundSearchResult(CamelModel):
    fund_code: str
    fund_name: str
    fund_type: str


class HoldingResponse(CamelModel):
    stock_code: str
    stock_name: str
    holding_ratio: float


class FundCodeRequest(CamelModel):
    fund_code: str = Field(min_length=1, max_length=10)


class LinkResponse(CamelModel):
    status: str
    fund_code: str
    message: str


class LinkedFundResponse(CamelModel):
    fund_code: str
    created_at: str
    fund: FundRecord | None = None


class RuleRequest(CamelModel):
    fund_code: str = Field(min_length=1, max_length=10)
    rule_id: int | None = None
    rule_name: str | None = None
    rise_threshold: float | None = Field(default=None, ge=0)
    net_worth_threshold: float | None = Field(default=None, ge=0)
    push_time: str | None = Field(default=None, pattern=PUSH_TIME_PATTERN)
    webhook_url: str | None = None


class RuleResponse(CamelModel):
    id: int
    fund_code: str
    rule_name: str | None = None
    rise_threshold: float | None = None
    net_worth_threshold: float | None = None
    push_time: str | None = None
    webhook_url: str | None = None
    created_at: str
    updated_at: str


class NotifyResponse(CamelModel):
    rule_id: int
    fund_code: str
    triggered: bool
    net_worth_triggered: bool
    rise_triggered: bool
    message: str


class RuleSaveResponse(CamelModel):
    rule: RuleResponse
    notification: NotifyResponse | None = None
    notification_error: str | None = None
