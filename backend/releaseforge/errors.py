"""
ReleaseForge — Structured error catalog.

Every error has a code, human message, and suggested fix.
Transient errors are retried by the retry executor; usage errors
are raised before any network activity.
"""

from __future__ import annotations

from typing import Any


class ReleaseForgeError(Exception):
    """Base error with structured code + suggestion."""

    def __init__(self, code: str, message: str, suggestion: str = "", detail: Any = None):
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "error_code": self.code,
            "message": self.message,
        }
        if self.suggestion:
            d["suggestion"] = self.suggestion
        if self.detail:
            d["detail"] = self.detail
        return d


# ── Usage errors (fail fast, no network) ──────────────────


class UnknownToolError(ReleaseForgeError):
    def __init__(self, tool: str, known: list[str]):
        super().__init__(
            code="UNKNOWN_TOOL",
            message=f"Unknown tool: {tool}",
            suggestion=f"Available tools: {', '.join(known)}",
            detail=known,
        )


class ReleaseNotFoundError(ReleaseForgeError):
    def __init__(self, tool: str, version: str | None = None):
        version_msg = f" version {version}" if version else ""
        super().__init__(
            code="RELEASE_NOT_FOUND",
            message=f"No releases found for tool {tool!r}{version_msg}",
            suggestion="Check the release store or run the release fetcher first.",
        )


class MissingArgumentError(ReleaseForgeError):
    def __init__(self, names: list[str]):
        super().__init__(
            code="MISSING_ARGUMENT",
            message=f"Missing required arguments: {', '.join(names)}",
            suggestion="Run with --help for usage information.",
            detail=names,
        )


class ConfigurationError(ReleaseForgeError):
    def __init__(self, missing: list[str]):
        super().__init__(
            code="CONFIGURATION_MISSING",
            message=f"Missing configuration: {', '.join(missing)}",
            suggestion="Copy .env.example → .env and fill in your keys.",
            detail=missing,
        )


class StoreError(ReleaseForgeError):
    def __init__(self, path: str, message: str):
        super().__init__(
            code="STORE_UNREADABLE",
            message=f"Could not read release store {path}: {message}",
            suggestion="Check RELEASES_PATH and that the file is valid JSON.",
        )


# ── Transient errors (retried) ────────────────────────────


class SourceFetchError(ReleaseForgeError):
    def __init__(self, url: str, status: int | None = None, message: str = ""):
        status_msg = f"HTTP {status}" if status is not None else message or "transport error"
        super().__init__(
            code="SOURCE_FETCH_FAILED",
            message=f"Failed to fetch {url}: {status_msg}",
            suggestion="The page may be down or rate-limited; it will be retried.",
        )


class GitHubAPIError(ReleaseForgeError):
    def __init__(self, endpoint: str, status: int, body: str = ""):
        super().__init__(
            code="GITHUB_API_ERROR",
            message=f"GitHub API {endpoint} returned HTTP {status}",
            suggestion="Set GITHUB_TOKEN for higher rate limits.",
            detail=body[:500] if body else None,
        )


class TextGenerationError(ReleaseForgeError):
    def __init__(self, message: str):
        super().__init__(
            code="TEXT_GENERATION_FAILED",
            message=f"Text generation failed: {message}",
            suggestion="Check GOOGLE_API_KEY and the text model name.",
        )


class ExtractionParseError(ReleaseForgeError):
    def __init__(self, message: str, raw: str = ""):
        super().__init__(
            code="EXTRACTION_PARSE_FAILED",
            message=f"Failed to extract JSON from response: {message}",
            suggestion="The model response was malformed; extraction will be retried.",
            detail=raw[:500] if raw else None,
        )


class FeatureValidationError(ReleaseForgeError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(
            code="FEATURE_VALIDATION_FAILED",
            message=f"Validation failed: {reason}",
            suggestion="Extraction output was rejected; a fresh attempt will be made.",
        )


# ── Terminal errors ───────────────────────────────────────


class RetryExhaustedError(ReleaseForgeError):
    def __init__(self, operation: str, attempts: int, last_error: BaseException):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            code="RETRY_EXHAUSTED",
            message=f"{operation} failed after {attempts} attempts: {last_error}",
            suggestion="Inspect the failure report; run remediation for this release.",
        )


class ImageGenerationError(ReleaseForgeError):
    def __init__(self, message: str, status: int | None = None):
        super().__init__(
            code="IMAGE_GENERATION_FAILED",
            message=f"Image generation failed: {message}",
            suggestion="Check GOOGLE_API_KEY and GEMINI_IMAGE_MODEL.",
            detail={"status": status} if status is not None else None,
        )


class BudgetExhaustedError(ReleaseForgeError):
    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(
            code="BUDGET_EXHAUSTED",
            message=f"API call limit reached ({limit})",
            suggestion="Remediation is best-effort; review the release manually.",
        )
