"""
ReleaseForge — Tracked tool registry.

Each tool declares its infographic styling, its source repository (for
the compare fallback), its canonical changelog (for direct parsing) and
alternative changelog mirrors probed during remediation.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from releaseforge.errors import UnknownToolError


class ToolConfig(BaseModel):
    id: str
    display_name: str
    primary_color: str
    style: str
    repo: str | None = None  # owner/name on GitHub
    changelog_url: str | None = None  # single canonical markdown changelog
    alternative_urls: list[str] = Field(default_factory=list)


TOOLS: dict[str, ToolConfig] = {
    "claude-code": ToolConfig(
        id="claude-code",
        display_name="CLAUDE CODE",
        primary_color="#8B5CF6",
        style="Purple/coral gradient, dark background with subtle grid pattern, modern tech aesthetic",
        repo="anthropics/claude-code",
        changelog_url="https://raw.githubusercontent.com/anthropics/claude-code/main/CHANGELOG.md",
        alternative_urls=[
            "https://www.npmjs.com/package/@anthropic-ai/claude-code?activeTab=versions",
            "https://raw.githubusercontent.com/anthropics/claude-code/main/CHANGELOG.md",
        ],
    ),
    "kiro": ToolConfig(
        id="kiro",
        display_name="KIRO",
        primary_color="#8B5CF6",
        style="Purple accent, dark gradient background, cloud-native professional aesthetic",
        alternative_urls=["https://kiro.dev/changelog"],
    ),
    "openai-codex": ToolConfig(
        id="openai-codex",
        display_name="CODEX CLI",
        primary_color="#059669",
        style="Emerald green accent, black background, minimalist terminal aesthetic",
        repo="openai/codex",
    ),
    "gemini-cli": ToolConfig(
        id="gemini-cli",
        display_name="GEMINI CLI",
        primary_color="#00ACC1",
        style="Teal/cyan accent, dark background, clean Material Design",
        repo="google-gemini/gemini-cli",
    ),
    "cursor": ToolConfig(
        id="cursor",
        display_name="CURSOR",
        primary_color="#7c3aed",
        style="Purple glassmorphism, dark gradient background, IDE-inspired modern aesthetic",
        alternative_urls=["https://www.cursor.com/changelog"],
    ),
    "github-copilot": ToolConfig(
        id="github-copilot",
        display_name="GITHUB COPILOT CLI",
        primary_color="#8534F3",
        style="Copilot purple accent, dark gradient background, GitHub-inspired modern developer aesthetic",
        repo="github/copilot-cli",
    ),
    "windsurf": ToolConfig(
        id="windsurf",
        display_name="WINDSURF",
        primary_color="#00D4AA",
        style="Teal/cyan accent, dark gradient background, modern IDE-inspired aesthetic with wave motif",
        alternative_urls=["https://windsurf.com/changelog"],
    ),
    "aider": ToolConfig(
        id="aider",
        display_name="AIDER",
        primary_color="#22c55e",
        style="Terminal green on dark background, retro-modern hacker aesthetic",
        repo="Aider-AI/aider",
        alternative_urls=["https://aider.chat/HISTORY.html"],
    ),
}


def get_tool(tool_id: str, tools: dict[str, ToolConfig] | None = None) -> ToolConfig | None:
    return (tools if tools is not None else TOOLS).get(tool_id)


def require_tool(tool_id: str, tools: dict[str, ToolConfig] | None = None) -> ToolConfig:
    registry = tools if tools is not None else TOOLS
    config = registry.get(tool_id)
    if config is None:
        raise UnknownToolError(tool_id, sorted(registry))
    return config


def list_tools() -> list[ToolConfig]:
    return list(TOOLS.values())
