"""
ReleaseForge — GitHub compare API client.

Builds a synthetic release-notes block for releases whose stored notes
are only a compare link ("v0.24.4...v0.24.5"):

  GET /repos/{owner}/{repo}/compare/{range}   — commit list (paginated)
  GET /repos/{owner}/{repo}/pulls/{number}    — PR title + body

The client stops paginating and fetching PRs once X-RateLimit-Remaining
drops below the configured floor.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

import httpx

from releaseforge.errors import GitHubAPIError
from releaseforge.utils.logging import logger, step_timer

COMPARE_URL_PATTERN = re.compile(
    r"https://github\.com/([^/\s]+)/([^/\s]+)/compare/([^\s)\]>\"']+)"
)
BARE_RANGE_PATTERN = re.compile(
    r"(?<![\w/.])(v?\d[\w.+-]*?)\.\.\.(v?\d[\w.+-]*)"
)
PR_REFERENCE_PATTERN = re.compile(r"#(\d+)")
PR_SUMMARY_PATTERN = re.compile(r"## Summary\s*([\s\S]*?)(?=##|$)", re.IGNORECASE)

PER_PAGE = 100


@dataclass(frozen=True)
class CompareRef:
    owner: str
    repo: str
    range: str


def parse_compare_reference(text: str, default_repo: str | None = None) -> CompareRef | None:
    """
    Find a compare reference in release text.

    Full GitHub compare URLs win; a bare `A...B` range is only usable when
    the tool's repository is known.
    """
    if not text:
        return None

    match = COMPARE_URL_PATTERN.search(text)
    if match:
        return CompareRef(owner=match.group(1), repo=match.group(2), range=match.group(3))

    if default_repo and "/" in default_repo:
        bare = BARE_RANGE_PATTERN.search(text)
        if bare:
            owner, repo = default_repo.split("/", 1)
            return CompareRef(owner=owner, repo=repo, range=f"{bare.group(1)}...{bare.group(2)}")

    return None


def is_bookkeeping_commit(subject: str) -> bool:
    return subject.startswith("Merge ") or "chore(release)" in subject


class GitHubClient:
    """Thin async wrapper around the GitHub REST API."""

    def __init__(
        self,
        api_base: str = "https://api.github.com",
        token: str = "",
        rate_limit_floor: int = 5,
        max_pull_requests: int = 5,
        max_compare_pages: int = 3,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.token = token
        self.rate_limit_floor = rate_limit_floor
        self.max_pull_requests = max_pull_requests
        self.max_compare_pages = max_compare_pages
        self.timeout = timeout
        self.transport = transport
        self.rate_limit_remaining: int | None = None

    def _headers(self) -> dict[str, str]:
        h = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "releaseforge-infographic-generator",
        }
        if self.token:
            h["Authorization"] = f"token {self.token}"
        return h

    @property
    def rate_limited(self) -> bool:
        return (
            self.rate_limit_remaining is not None
            and self.rate_limit_remaining < self.rate_limit_floor
        )

    def _track_rate_limit(self, resp: httpx.Response) -> None:
        remaining = resp.headers.get("x-ratelimit-remaining")
        if remaining is not None and remaining.isdigit():
            self.rate_limit_remaining = int(remaining)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def compare_commits(self, ref: CompareRef) -> list[dict[str, Any]]:
        """Return the commit list of a compare range, following pagination."""
        endpoint = f"/repos/{ref.owner}/{ref.repo}/compare/{ref.range}"
        commits: list[dict[str, Any]] = []
        async with self._client() as client:
            for page in range(1, self.max_compare_pages + 1):
                resp = await client.get(
                    f"{self.api_base}{endpoint}",
                    headers=self._headers(),
                    params={"per_page": PER_PAGE, "page": page},
                )
                self._track_rate_limit(resp)
                if not resp.is_success:
                    raise GitHubAPIError(endpoint, resp.status_code, resp.text)

                batch = resp.json().get("commits") or []
                commits.extend(batch)
                if len(batch) < PER_PAGE:
                    break
                if self.rate_limited:
                    logger.warning("  Rate limit low (%s left) — stopping pagination", self.rate_limit_remaining)
                    break
        return commits

    async def pull_request(self, owner: str, repo: str, number: str) -> dict[str, Any] | None:
        """Fetch one PR; failures are logged and yield None."""
        endpoint = f"/repos/{owner}/{repo}/pulls/{number}"
        try:
            async with self._client() as client:
                resp = await client.get(f"{self.api_base}{endpoint}", headers=self._headers())
        except httpx.HTTPError as exc:
            logger.info("  Could not fetch PR #%s: %s", number, exc)
            return None

        self._track_rate_limit(resp)
        if not resp.is_success:
            logger.info("  Could not fetch PR #%s: HTTP %d", number, resp.status_code)
            return None
        return resp.json()

    async def build_compare_content(self, ref: CompareRef) -> str:
        """Assemble a markdown block from commit subjects and PR summaries."""
        with step_timer(f"GitHub compare {ref.owner}/{ref.repo}/compare/{ref.range}"):
            commits = await self.compare_commits(ref)
            if not commits:
                logger.info("  No commits found in compare range")
                return ""
            logger.info("  Found %d commits in compare range", len(commits))

            changes: list[str] = []
            pr_numbers: list[str] = []
            for commit in commits:
                message = (commit.get("commit") or {}).get("message") or ""
                subject = message.split("\n")[0]
                if is_bookkeeping_commit(subject):
                    continue
                changes.append(subject)
                for number in PR_REFERENCE_PATTERN.findall(message):
                    if number not in pr_numbers:
                        pr_numbers.append(number)

            prs: list[dict[str, str]] = []
            for number in pr_numbers[: self.max_pull_requests]:
                if self.rate_limited:
                    logger.warning("  Rate limit low — skipping remaining PR lookups")
                    break
                data = await self.pull_request(ref.owner, ref.repo, number)
                if data:
                    prs.append({
                        "number": number,
                        "title": data.get("title") or "",
                        "body": (data.get("body") or "")[:500],
                    })
                    logger.info("  Fetched PR #%s: %s", number, data.get("title"))

        return format_compare_content(changes, prs)


def format_compare_content(changes: list[str], prs: list[dict[str, str]]) -> str:
    content = "## Changes in this release\n\n"

    if prs:
        content += "### Pull Requests\n\n"
        for pr in prs:
            content += f"**{pr['title']}** (PR #{pr['number']})\n"
            body = pr.get("body") or ""
            if body:
                summary = PR_SUMMARY_PATTERN.search(body)
                content += f"{summary.group(1).strip()}\n" if summary else f"{body[:200]}\n"
            content += "\n"

    if changes:
        content += "### Commits\n\n"
        for change in changes:
            content += f"- {change}\n"

    return content
