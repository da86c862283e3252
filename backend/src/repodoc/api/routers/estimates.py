"""Cost estimation endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from repodoc.api.deps import get_service
from repodoc.api.schemas import EstimateCostRequest, EstimateCostResponse, ModelCostResponse
from repodoc.estimation.cost import CostEstimate, compare_costs
from repodoc.generation.models import FileEntry
from repodoc.service import DocumentationService

router = APIRouter(prefix="/api", tags=["estimates"])


def _to_response(estimate: CostEstimate) -> ModelCostResponse:
    return ModelCostResponse(
        provider_id=estimate.provider_id,
        model_id=estimate.model_id,
        provider=estimate.provider,
        model=estimate.model,
        input_tokens=estimate.tokens.input_tokens,
        output_tokens=estimate.tokens.output_tokens,
        cost_low=estimate.cost_low,
        cost_estimated=estimate.cost_estimated,
        cost_high=estimate.cost_high,
        is_free=estimate.is_free,
        formatted_cost=estimate.formatted_cost,
    )


@router.post("/estimate-cost", response_model=EstimateCostResponse)
async def estimate_cost(
    body: EstimateCostRequest,
    service: DocumentationService = Depends(get_service),
) -> EstimateCostResponse:
    """Crawl a repository and estimate a full run's cost on every known model."""
    try:
        result = await service.crawler.crawl(
            body.repo_url,
            token=body.github_token,
            include_patterns=body.include_patterns,
            exclude_patterns=body.exclude_patterns,
            max_file_size=body.max_file_size or service.settings.max_file_size_bytes,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    files = [FileEntry(path, content) for path, content in sorted(result.files.items())]
    estimates = compare_costs(files, body.chapter_count)

    cheapest = None
    if body.budget is not None:
        cheapest = next((e for e in estimates if e.cost_high <= body.budget), None)

    return EstimateCostResponse(
        repo_url=body.repo_url,
        file_count=len(files),
        total_chars=result.total_chars,
        chapter_count=body.chapter_count,
        estimates=[_to_response(e) for e in estimates],
        cheapest_in_budget=_to_response(cheapest) if cheapest else None,
    )
