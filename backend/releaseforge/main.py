"""
ReleaseForge — FastAPI Backend

Endpoints:
  POST /v1/generate          — One release → feature set + infographic
  POST /v1/generate/missing  — Batch over recent releases lacking an infographic
  POST /v1/validate          — Audit persisted features against their source
  POST /v1/remediate         — Best-effort recovery for one release
  GET  /v1/tools             — Tracked tool registry
  GET  /health               — Health check
"""

import time
import uuid
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from releaseforge.core.config import settings
from releaseforge.errors import ReleaseForgeError, ReleaseNotFoundError
from releaseforge.pipeline.orchestrator import GenerationOptions
from releaseforge.service import EnrichmentService, build_service
from releaseforge.tools.registry import list_tools
from releaseforge.utils.logging import logger

VERSION = "1.0.0"

app = FastAPI(
    title="ReleaseForge API",
    description=(
        "Enrich terse release notes into validated feature highlights "
        "and social-media infographics."
    ),
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-ReleaseForge-Job", "X-Pipeline-Duration-Ms", "X-Request-Id"],
)


@app.on_event("startup")
async def _startup_banner():
    logger.info("")
    logger.info("╔══════════════════════════════════════════════════╗")
    logger.info("║          ReleaseForge  ·  API Server v1         ║")
    logger.info("╠══════════════════════════════════════════════════╣")
    logger.info("║  POST /v1/generate         → Feature infographic║")
    logger.info("║  POST /v1/generate/missing → Batch generation   ║")
    logger.info("║  POST /v1/validate         → Accuracy audit     ║")
    logger.info("║  POST /v1/remediate        → Remediation        ║")
    logger.info("║  GET  /v1/tools            → Tool registry      ║")
    logger.info("║  GET  /health              → Health check       ║")
    logger.info("╠══════════════════════════════════════════════════╣")
    logger.info("║  Text model  : %-33s║", settings.gemini.text_model)
    logger.info("║  Image model : %-33s║", settings.gemini.image_model)
    logger.info("║  Credentials : %-33s║", "✓ loaded" if settings.gemini.api_key else "✗ missing")
    logger.info("╚══════════════════════════════════════════════════╝")
    logger.info("")


def get_service() -> EnrichmentService:
    try:
        return build_service(settings)
    except ReleaseForgeError as exc:
        raise HTTPException(status_code=422, detail=exc.to_dict())


def _http_error(request_id: str, exc: ReleaseForgeError) -> HTTPException:
    logger.warning("[%s] ReleaseForge error: %s", request_id, exc.code)
    status = 404 if isinstance(exc, ReleaseNotFoundError) else 422
    return HTTPException(status_code=status, detail=exc.to_dict())


# ──────────────────────────────────────────────────────────
# Request models
# ──────────────────────────────────────────────────────────

class GenerateRequest(BaseModel):
    tool: str = Field(..., description="Tool id, e.g. claude-code")
    version: Optional[str] = Field(default=None, description="Release version; latest when omitted")
    count: int = Field(default=6, ge=1, le=12, description="Maximum features to extract")
    force: bool = Field(default=False, description="Regenerate even if an infographic exists")
    generate_image: bool = Field(default=True, description="Render images, not only prompts")
    update_releases: bool = Field(default=True, description="Link 1:1 / 16:9 images into the store")
    all_formats: bool = Field(default=False, description="Also render 9:16")
    use_stored_source: bool = Field(default=False, description="Reuse sourceContent from a previous run")

    def options(self) -> GenerationOptions:
        return GenerationOptions(
            count=self.count,
            force=self.force,
            generate_image=self.generate_image,
            update_releases=self.update_releases,
            all_formats=self.all_formats,
            use_stored_source=self.use_stored_source,
        )


class GenerateMissingRequest(BaseModel):
    max_age_days: int = Field(default=7, ge=0)
    count: int = Field(default=6, ge=1, le=12)
    all_formats: bool = False


class ValidateRequest(BaseModel):
    tool: Optional[str] = None
    version: Optional[str] = None
    all: bool = False


class RemediateRequest(BaseModel):
    tool: str
    version: str
    issue: Optional[str] = None
    attempt: int = Field(default=1, ge=1)


# ──────────────────────────────────────────────────────────
# Endpoints
# ──────────────────────────────────────────────────────────

@app.get("/health")
async def health():
    return {"status": "ok", "service": "releaseforge-api", "version": VERSION}


@app.get("/v1/tools")
async def get_tools():
    """List tracked tools with their infographic styling."""
    return [t.model_dump() for t in list_tools()]


@app.post("/v1/generate")
async def generate(
    req: GenerateRequest,
    response: Response,
    service: EnrichmentService = Depends(get_service),
):
    """
    Run one release through sourcing → extraction → synthesis.

    Pipeline failures (extraction exhausted, image errors) come back as a
    200 with success=false and a failure report reference; only usage
    errors map to 4xx.
    """
    request_id = uuid.uuid4().hex[:12]
    start = time.perf_counter()
    logger.info("[%s] POST /v1/generate — %s %s force=%s", request_id, req.tool, req.version or "latest", req.force)

    try:
        result = await service.generate(req.tool, req.version, req.options())
    except ReleaseForgeError as exc:
        raise _http_error(request_id, exc)

    duration_ms = (time.perf_counter() - start) * 1000
    logger.info("[%s] Complete — %s in %.0f ms", request_id, result.state.value, duration_ms)
    response.headers["X-Request-Id"] = request_id
    response.headers["X-ReleaseForge-Job"] = result.job_id
    response.headers["X-Pipeline-Duration-Ms"] = f"{duration_ms:.0f}"
    return result.model_dump(mode="json")


@app.post("/v1/generate/missing")
async def generate_missing(req: GenerateMissingRequest, service: EnrichmentService = Depends(get_service)):
    request_id = uuid.uuid4().hex[:12]
    logger.info("[%s] POST /v1/generate/missing — max_age_days=%d", request_id, req.max_age_days)

    options = GenerationOptions(count=req.count, all_formats=req.all_formats)
    try:
        batch = await service.generate_all_missing(req.max_age_days, options)
    except ReleaseForgeError as exc:
        raise _http_error(request_id, exc)

    body = batch.model_dump(mode="json")
    body["exit_code"] = batch.exit_code
    return body


@app.post("/v1/validate")
async def validate(req: ValidateRequest, service: EnrichmentService = Depends(get_service)):
    request_id = uuid.uuid4().hex[:12]
    logger.info("[%s] POST /v1/validate — tool=%s version=%s all=%s", request_id, req.tool, req.version, req.all)

    try:
        summary = await service.validate(req.tool, req.version, req.all)
    except ReleaseForgeError as exc:
        raise _http_error(request_id, exc)

    body = summary.model_dump(mode="json")
    body.update(total=summary.total, verified_pct=summary.verified_pct, exit_code=summary.exit_code)
    return body


@app.post("/v1/remediate")
async def remediate(req: RemediateRequest, service: EnrichmentService = Depends(get_service)):
    request_id = uuid.uuid4().hex[:12]
    logger.info("[%s] POST /v1/remediate — %s %s issue=%s", request_id, req.tool, req.version, req.issue)

    try:
        result = await service.remediate(req.tool, req.version, req.issue, req.attempt)
    except ReleaseForgeError as exc:
        raise _http_error(request_id, exc)

    return result.model_dump(by_alias=True, mode="json")
