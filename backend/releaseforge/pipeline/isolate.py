"""
ReleaseForge — Version isolation from a raw changelog page.

The text-generation service is asked to pull one version's section out
of an HTML changelog; a VERSION_NOT_FOUND sentinel response is surfaced
as NotFound rather than raised.
"""

from __future__ import annotations

from releaseforge.llm.parsing import VERSION_NOT_FOUND, Found, IsolationResult, interpret_isolation
from releaseforge.llm.text import TextGenerator
from releaseforge.utils.logging import logger

PAGE_CHAR_LIMIT = 50_000
ISOLATION_MAX_TOKENS = 2048


def build_isolation_prompt(page: str, version: str | None, char_limit: int = PAGE_CHAR_LIMIT) -> str:
    version_context = (
        f"I need the release notes specifically for version {version}. "
        f'Look for a section header like "## {version}" or similar versioning format.'
        if version
        else ""
    )
    target = f"version {version}" if version else "the most recent version"
    return f"""Extract the release notes content from this HTML page. {version_context}

Return only the features, changes, and improvements mentioned. Be comprehensive but concise.

IMPORTANT:
- If the page is a changelog with multiple versions, extract ONLY the content for {target}.
- If you cannot find release notes for the specified version, respond with: "{VERSION_NOT_FOUND}: Could not locate release notes for version {version or 'specified'}"
- If this is a patch/bugfix release with minimal changes, list the specific fixes.

HTML:
{page[:char_limit]}"""


async def isolate_version_content(
    text_gen: TextGenerator,
    page: str,
    version: str | None,
    char_limit: int = PAGE_CHAR_LIMIT,
) -> IsolationResult:
    response = await text_gen.generate(
        build_isolation_prompt(page, version, char_limit),
        max_tokens=ISOLATION_MAX_TOKENS,
    )
    result = interpret_isolation(response, version)
    if isinstance(result, Found):
        logger.info("  Isolated %d characters of release notes", len(result.content))
    else:
        logger.info("  %s", result.reason)
    return result
