"""API route definitions."""

from fastapi import APIRouter, Depends, HTTPException, status

from scrollfetch.errors import JobValidationError, ScrapeError
from scrollfetch.jobs.runner import JobRunner, get_job_runner
from scrollfetch.models import ScrapeRequest, ScrapeResult
from scrollfetch.utils.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.post(
    "/scrape",
    response_model=ScrapeResult,
    response_model_exclude_none=True,
    summary="Materialize a page",
    description=(
        "Load a URL in the remote browser, scroll until its content stops growing, "
        "and return the rendered HTML."
    ),
)
async def scrape(
    request: ScrapeRequest,
    runner: JobRunner = Depends(get_job_runner),
) -> ScrapeResult:
    """
    Run one scrape job and return its document.

    Pages that never settle, close mid-job or resist extraction still return 200
    with whatever content was available; ``meta.stable`` and ``meta.outcome``
    tell the caller how the run ended.
    """
    try:
        return await runner.run(request)
    except JobValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    except ScrapeError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=e.message,
        ) from e
