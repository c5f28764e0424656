"""Health check endpoint."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter()


@router.get("/health")
async def health(request: Request, deep: bool = False):
    """
    Report model configuration and Postgres connectivity.

    With ?deep=true the model API is also probed, which costs one request
    to the provider.
    """
    pipeline = getattr(request.app.state, "pipeline", None)
    postgres = getattr(request.app.state, "postgres", None)

    body = {
        "status": "ok",
        "model_configured": pipeline is not None,
        "persistence": "disabled",
    }
    if postgres is not None:
        if await postgres.verify_connectivity():
            body["persistence"] = "ok"
        else:
            body.update(status="unhealthy", persistence="unreachable")

    if deep and pipeline is not None:
        model = await pipeline.openai.health_check()
        if model["healthy"]:
            body["model"] = "ok"
        else:
            body.update(status="unhealthy", model="unreachable", model_error=model.get("error"))

    if body["status"] != "ok":
        return JSONResponse(status_code=503, content=body)
    return body
