"""Fund record models returned to clients.

Records are built fresh per request from upstream data and never persisted.
They serialize with camelCase keys (``netWorth``, ``expectWorth`` ...).
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

SHORT_NAME_LENGTH = 8


def shorten_name(name: str) -> str:
    if len(name) > SHORT_NAME_LENGTH:
        return name[:SHORT_NAME_LENGTH] + "..."
    return name


class FundRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    code: str
    name: str = ""
    short_name: str = ""
    type: str = ""
    net_worth: float = 0.0
    expect_worth: float = 0.0
    total_net_worth: float = 0.0
    expect_growth: float = 0.0
    actual_day_growth: float = 0.0
    estimated_change: float = 0.0
    net_worth_date: str = ""
    expect_worth_date: str = ""
    total_count: int = 0
    description: str = ""
    # True when upstream omitted a NAV field, so a zero above may not be a real zero
    data_incomplete: bool = False


class AnnotatedFundRecord(FundRecord):
    is_favorite: bool = False
    is_monitoring: bool = False


class FundDetail(FundRecord):
    weekly_growth: float = 0.0
    monthly_growth: float = 0.0
    three_months_growth: float = 0.0
    six_months_growth: float = 0.0
    annual_growth: float = 0.0
    manager: str = ""
    fund_scale: str = ""
    min_buy_amount: float = 0.0
    original_buy_rate: float = 0.0
    current_buy_rate: float = 0.0
    establish_date: str = ""


class AnnotatedFundDetail(FundDetail):
    is_favorite: bool = False
    is_monitoring: bool = False
