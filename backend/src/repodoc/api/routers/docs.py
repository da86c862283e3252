"""Documentation generation endpoints."""

import asyncio
import contextlib
import json
import logging
from typing import Any, AsyncIterator

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from repodoc.api.deps import get_service
from repodoc.api.schemas import (
    ChapterResponse,
    GenerateDocsRequest,
    GenerateDocsResult,
    RegenerationPlanResponse,
)
from repodoc.errors import RepoDocError
from repodoc.generation.models import GenerationProgress
from repodoc.repo.url_parser import is_valid_github_url
from repodoc.service import DocumentationService, GenerationOutcome, GenerationRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["docs"])


def _sse(event: str, data: dict[str, Any]) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


def _to_request(body: GenerateDocsRequest) -> GenerationRequest:
    return GenerationRequest(
        repo_url=body.repo_url,
        github_token=body.github_token,
        include_patterns=body.include_patterns,
        exclude_patterns=body.exclude_patterns,
        max_file_size=body.max_file_size,
        provider=body.provider,
        model=body.model,
        api_key=body.api_key,
        base_url=body.base_url,
        language=body.language,
        max_abstractions=body.max_abstractions,
        use_cache=body.use_cache,
        force=body.force,
    )


def _to_result(outcome: GenerationOutcome) -> GenerateDocsResult:
    output = outcome.output
    plan = outcome.plan
    return GenerateDocsResult(
        project_name=output.project_name,
        repo_url=output.repo_url,
        index_content=output.index_content,
        mermaid_diagram=output.mermaid_diagram,
        chapters=[
            ChapterResponse(
                chapter_number=c.chapter_number,
                filename=c.filename,
                title=c.title,
                body=c.body,
            )
            for c in output.chapters
        ],
        plan=RegenerationPlanResponse(
            mode=plan.mode.value,
            reason=plan.reason,
            chapters_to_regenerate=plan.chapters_to_regenerate,
            rerun_identification=plan.rerun_identification,
            estimated_savings=plan.estimated_savings,
        ),
        from_cache=outcome.from_cache,
        llm_calls=outcome.llm_calls,
        files_downloaded=outcome.crawl_stats.downloaded_count,
        output_path=str(outcome.output_path) if outcome.output_path else None,
    )


async def stream_generation(
    service: DocumentationService, request: GenerationRequest
) -> AsyncIterator[str]:
    """Run one job and translate its progress into SSE events.

    Emits `progress` events while the job runs, then exactly one `complete`
    or `error` event.
    """
    queue: asyncio.Queue[GenerationProgress | None] = asyncio.Queue()

    async def on_progress(progress: GenerationProgress) -> None:
        await queue.put(progress)

    async def run() -> GenerationOutcome:
        try:
            return await service.generate(request, on_progress)
        finally:
            await queue.put(None)

    task = asyncio.create_task(run())
    try:
        while True:
            progress = await queue.get()
            if progress is None:
                break
            yield _sse("progress", progress.to_dict())

        try:
            outcome = await task
        except RepoDocError as e:
            yield _sse("error", e.to_problem_detail())
        except ValueError as e:
            yield _sse("error", {"title": "Invalid Request", "status": 400, "detail": str(e)})
        except Exception as e:
            logger.exception(f"Documentation generation failed for {request.repo_url}")
            yield _sse("error", {"title": "Internal Error", "status": 500, "detail": str(e)})
        else:
            yield _sse("complete", _to_result(outcome).model_dump(mode="json"))
    finally:
        # Client went away mid-stream
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task


@router.post("/generate-docs")
async def generate_docs(
    body: GenerateDocsRequest,
    service: DocumentationService = Depends(get_service),
) -> StreamingResponse:
    """Generate documentation, streaming progress as Server-Sent Events."""
    if not is_valid_github_url(body.repo_url):
        raise HTTPException(
            status_code=400, detail=f"Invalid GitHub repository URL: {body.repo_url}"
        )
    return StreamingResponse(
        stream_generation(service, _to_request(body)),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )
