"""
ReleaseForge — Infographic synthesis.

build_image_prompt is deterministic: same tool, features and format
always give the same prompt text. Only 1:1 and 16:9 artifacts are
linked back into the release store.
"""

from __future__ import annotations

from pathlib import Path

from releaseforge.llm.image import ImageGenerator
from releaseforge.models.features import FeatureSet
from releaseforge.models.job import ArtifactRef
from releaseforge.models.release import ReleasesDocument
from releaseforge.storage.artifacts import ArtifactStore, publish_image
from releaseforge.tools.registry import ToolConfig
from releaseforge.utils.logging import logger

ASPECT_RATIOS = {
    "1:1": "square (1080x1080)",
    "16:9": "landscape (1920x1080)",
    "9:16": "portrait/story (1080x1920)",
}

LINKED_FORMATS = ("1:1", "16:9")


def formats_for(all_formats: bool = False, update_releases: bool = False) -> list[str]:
    if all_formats:
        return ["1:1", "16:9", "9:16"]
    if update_releases:
        return ["1:1", "16:9"]
    return ["1:1"]


def grid_layout(feature_count: int, fmt: str) -> str:
    if feature_count <= 2:
        return "1x2 horizontal"
    if feature_count <= 4:
        return "2x2"
    return "2x3 vertical" if fmt == "9:16" else "2x3"


def build_image_prompt(
    tool: ToolConfig,
    feature_set: FeatureSet,
    fmt: str = "1:1",
    footer: str = "havoptic.com",
    tagline: str = "Track AI Tool Releases",
) -> str:
    if fmt not in ASPECT_RATIOS:
        raise ValueError(f"Unsupported format: {fmt}")

    style = (
        f"Style: {tool.style}, brand color {tool.primary_color}, high contrast, "
        "readable text, professional tech aesthetic"
    )
    header = f'Header: "{tool.display_name}" with "{feature_set.release_info}" subtitle'
    footer_line = f'Footer: "{footer}" with "{tagline}" tagline'
    count = len(feature_set.features)

    if count == 1:
        feature = feature_set.features[0]
        return "\n".join([
            f"Create a professional {ASPECT_RATIOS[fmt]} social media infographic for a developer tool bug fix release.",
            "",
            header,
            "Layout: Dark background with a single centered feature card (no grid, no empty boxes)",
            "Feature Card: Large, prominent card in the center with:",
            f"  - Icon: {feature.icon}",
            f'  - Title: "{feature.name}"',
            f'  - Description: "{feature.description}"',
            f'  - Additional context: "{feature_set.release_highlight}"',
            footer_line,
            style,
            "Important: This is a focused bug fix release. Show ONLY ONE feature card, "
            "centered and prominent. Do NOT show empty placeholder boxes or a grid layout.",
        ])

    cards = "\n".join(
        f'{i}. {f.icon} "{f.name}" - "{f.description}"'
        for i, f in enumerate(feature_set.features, start=1)
    )
    return "\n".join([
        f"Create a professional {ASPECT_RATIOS[fmt]} social media infographic for a developer tool release.",
        "",
        header,
        f"Layout: Dark background, {count} feature cards in {grid_layout(count, fmt)} grid with subtle glow effects",
        "Feature Cards:",
        cards,
        footer_line,
        style,
        f'Highlight: "{feature_set.release_highlight}"',
        f"Important: Show EXACTLY {count} feature cards. Do NOT add empty placeholder boxes.",
    ])


async def synthesize(
    image_gen: ImageGenerator,
    artifacts: ArtifactStore,
    base: str,
    prompt: str,
    fmt: str,
    public_dir: Path | None = None,
    public_url: str = "/images/infographics",
) -> ArtifactRef:
    """
    Render one format and write it to the output directory. When public_dir
    is given the image is also published and the ref carries its URL.
    """
    image = await image_gen.generate(prompt, fmt)
    path = artifacts.write_image(base, fmt, image.data, image.extension)

    url = None
    if public_dir is not None and fmt in LINKED_FORMATS:
        publish_image(path, public_dir)
        url = f"{public_url.rstrip('/')}/{path.name}"

    return ArtifactRef(
        format=fmt,
        filename=path.name,
        path=str(path),
        url=url,
        mime_type=image.mime_type,
        size_bytes=len(image.data),
    )


def apply_artifact(document: ReleasesDocument, release_id: str, ref: ArtifactRef) -> bool:
    """Link a published artifact onto its release. Returns True if the store changed."""
    if ref.url is None or ref.format not in LINKED_FORMATS:
        return False

    release = document.by_id(release_id)
    if release is None:
        logger.warning("Release %s not found in store; URL not recorded", release_id)
        return False

    if ref.format == "16:9":
        release.infographic_url_16x9 = ref.url
        logger.info("Set infographicUrl16x9: %s", ref.url)
    else:
        release.infographic_url = ref.url
        logger.info("Set infographicUrl: %s", ref.url)
    return True
