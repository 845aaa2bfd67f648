from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictStr,
    field_validator,
)
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model: snake_case attributes, camelCase JSON on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ContractModel(BaseModel):
    """Base for provider output: camelCase names only, snake_case keys are rejected."""

    model_config = ConfigDict(alias_generator=to_camel)


# Telemetry models
class TelemetryMetric(WireModel):
    id: str
    title: str
    score: Optional[float] = Field(default=None, ge=0, le=1)
    display_value: Optional[str] = None


class IssueDetail(WireModel):
    id: str
    title: str
    description: str = ""
    score: Optional[float] = Field(default=None, ge=0, le=1)
    display_value: Optional[str] = None


class TelemetryRecord(WireModel):
    performance_score: int = Field(ge=0, le=100)
    accessibility_score: int = Field(ge=0, le=100)
    best_practices_score: int = Field(ge=0, le=100)
    seo_score: int = Field(ge=0, le=100)
    screenshot_base64: Optional[str] = None
    metrics: List[TelemetryMetric] = Field(default_factory=list)
    performance_issues: List[IssueDetail] = Field(default_factory=list, max_length=5)
    seo_issues: List[IssueDetail] = Field(default_factory=list, max_length=5)
    raw_audits: Dict[str, Any] = Field(default_factory=dict)


# Analysis models (validated strictly, never coerced)
ActionCategory = Literal["Performance", "Effectiveness", "Design"]
ActionPriority = Literal["High", "Medium", "Low"]


class ActionItem(ContractModel):
    title: StrictStr
    description: StrictStr
    category: ActionCategory
    priority: ActionPriority
    impact: StrictStr


class AnalysisResult(ContractModel):
    effectiveness_score: Union[int, float]
    effectiveness_reasoning: StrictStr
    design_score: Union[int, float]
    design_reasoning: StrictStr
    summary: StrictStr
    action_items: List[ActionItem]

    @field_validator("effectiveness_score", "design_score", mode="before")
    @classmethod
    def require_number(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("Input should be a number")
        return value

    @field_validator("effectiveness_score", "design_score")
    @classmethod
    def check_score_range(cls, value: Union[int, float]) -> Union[int, float]:
        if not 0 <= value <= 100:
            raise ValueError("Score must be between 0 and 100")
        return value


# Request models
class TelemetryRequest(WireModel):
    url: str
    strategy: Literal["mobile", "desktop"] = "mobile"


class AnalyzeRequest(WireModel):
    telemetry: Optional[TelemetryRecord] = Field(
        default=None, validation_alias=AliasChoices("telemetry", "psiData")
    )
    goal: Optional[str] = Field(
        default="", validation_alias=AliasChoices("goal", "userGoal")
    )
    url: Optional[str] = None


class AuditRequest(WireModel):
    url: Optional[str] = None
    goal: Optional[str] = ""
    strategy: Literal["mobile", "desktop"] = "mobile"


# Response models
class ErrorDetail(BaseModel):
    message: str


class ErrorEnvelope(BaseModel):
    error: ErrorDetail


class ScoreCard(WireModel):
    label: str
    score: Union[int, float]
    rating: Literal["good", "needs-improvement", "poor"]


class AuditReport(WireModel):
    url: str
    goal: str
    summary: str
    scorecards: List[ScoreCard]
    effectiveness_reasoning: str
    design_reasoning: str
    metrics: List[TelemetryMetric]
    performance_issues: List[IssueDetail]
    seo_issues: List[IssueDetail]
    action_items: List[ActionItem]
    has_screenshot: bool
    screenshot_base64: Optional[str] = None
