"""Pydantic schemas for API requests and responses."""

from datetime import datetime

from pydantic import BaseModel, Field


class GenerateDocsRequest(BaseModel):
    """Request to generate documentation for a repository."""

    repo_url: str = Field(..., description="GitHub repository URL or owner/repo shorthand")
    github_token: str | None = Field(None, description="Token for private repositories")
    include_patterns: list[str] | None = Field(None, description="Globs a file must match")
    exclude_patterns: list[str] | None = Field(None, description="Globs that reject a file")
    max_file_size: int | None = Field(None, ge=1, description="Size ceiling in bytes")
    provider: str | None = None
    model: str | None = None
    api_key: str | None = None
    base_url: str | None = None
    language: str | None = None
    max_abstractions: int | None = Field(None, ge=1, le=30)
    use_cache: bool = True
    force: bool = Field(False, description="Ignore the cache and regenerate everything")


class RegenerationPlanResponse(BaseModel):
    """How much of a previous run was reused."""

    mode: str
    reason: str
    chapters_to_regenerate: list[str] = Field(default_factory=list)
    rerun_identification: bool = False
    estimated_savings: int = 0


class ChapterResponse(BaseModel):
    chapter_number: int
    filename: str
    title: str
    body: str


class GenerateDocsResult(BaseModel):
    """Payload of the final `complete` event."""

    project_name: str
    repo_url: str
    index_content: str
    mermaid_diagram: str
    chapters: list[ChapterResponse]
    plan: RegenerationPlanResponse
    from_cache: bool
    llm_calls: int
    files_downloaded: int
    output_path: str | None = None


class EstimateCostRequest(BaseModel):
    """Request to estimate generation cost for a repository."""

    repo_url: str
    github_token: str | None = None
    include_patterns: list[str] | None = None
    exclude_patterns: list[str] | None = None
    max_file_size: int | None = Field(None, ge=1)
    chapter_count: int = Field(8, ge=1, le=30)
    budget: float | None = Field(None, ge=0, description="Budget in dollars")


class ModelCostResponse(BaseModel):
    provider_id: str
    model_id: str
    provider: str
    model: str
    input_tokens: int
    output_tokens: int
    cost_low: float
    cost_estimated: float
    cost_high: float
    is_free: bool
    formatted_cost: str


class EstimateCostResponse(BaseModel):
    """Cost of a full run for every known model, cheapest first."""

    repo_url: str
    file_count: int
    total_chars: int
    chapter_count: int
    estimates: list[ModelCostResponse]
    cheapest_in_budget: ModelCostResponse | None = None


class CachedRepo(BaseModel):
    repo_id: str
    repo_url: str
    last_accessed: datetime | None = None
    chapters_count: int
    files_count: int


class CacheStatsResponse(BaseModel):
    total_repos: int
    repos: list[CachedRepo]


class CacheStatusResponse(BaseModel):
    """Cache state of one repository."""

    repo_id: str
    cached: bool
    age_seconds: float | None = None
    stale: bool
    chapters_count: int = 0
    files_count: int = 0
    last_crawl_time: datetime | None = None


class CacheDeleteResponse(BaseModel):
    repo_id: str
    deleted: bool
