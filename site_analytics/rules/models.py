from pydantic import BaseModel, Field, field_validator


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class LabelRules(BaseModel):
    homepage: str = "Homepage"
    unknown_page: str = "Unknown page"
    unknown_service: str = "Unknown service"


class AnalyticsRules(BaseModel):
    functional_click_elements: list[str] = Field(min_length=1)
    service_link_elements: list[str] = Field(default_factory=list)
    link_text_suffixes: list[str] = Field(default_factory=list)
    bounce_max_scroll_depth: int = Field(default=25, ge=0, le=100)
    session_limit: int = Field(default=100, ge=1)
    click_detail_limit: int = Field(default=50, ge=1)
    default_range: str = "30d"
    aggregation_workers: int = Field(default=1, ge=1)
    labels: LabelRules = Field(default_factory=LabelRules)

    @field_validator("default_range")
    @classmethod
    def _known_range(cls, value: str) -> str:
        if value not in ("7d", "30d", "90d", "all", "custom"):
            raise ValueError(f"unknown range token: {value}")
        return value


class RetentionRules(BaseModel):
    atomic_enabled: bool = True
    batch_size: int = Field(default=100, ge=1)
    max_ids: int = Field(default=10_000, ge=1)
    max_workers: int = Field(default=1, ge=1)


class ApiRules(BaseModel):
    cors_origins: list[str] = Field(default_factory=list)


class Rules(BaseModel):
    project: ProjectRules
    analytics: AnalyticsRules
    retention: RetentionRules = Field(default_factory=RetentionRules)
    api: ApiRules = Field(default_factory=ApiRules)
