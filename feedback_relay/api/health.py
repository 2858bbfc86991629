"""Liveness endpoint for process supervisors and load balancers."""

from fastapi import APIRouter, Response, status

router = APIRouter()


@router.get("/health", status_code=status.HTTP_204_NO_CONTENT)
async def health_check() -> Response:
    """Report that the process is up. No dependencies are checked."""
    return Response(status_code=status.HTTP_204_NO_CONTENT)
