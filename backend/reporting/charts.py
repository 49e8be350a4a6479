"""Visual summary section: pre-rendered chart images."""
from __future__ import annotations

import logging

from models import ChartImage

from .blocks import section_heading
from .config import GenerationConfig
from .content import Block, ImageBlock, StackBlock, TextBlock

_LOG = logging.getLogger(__name__)


def data_url_bytes(data_url: str) -> int:
    """Decoded size of a base64 data URL, estimated from its payload length."""
    if not isinstance(data_url, str):
        return 0
    _, sep, payload = data_url.partition("base64,")
    if not sep:
        return len(data_url)
    payload = payload.strip()
    padding = payload.count("=", max(0, len(payload) - 2))
    return max(0, (len(payload) * 3) // 4 - padding)


def usable_charts(charts: list[ChartImage], config: GenerationConfig) -> list[ChartImage]:
    """At most max_chart_images, each under max_chart_bytes."""
    kept: list[ChartImage] = []
    for chart in charts:
        if len(kept) >= config.max_chart_images:
            break
        if not chart.image or not chart.image.startswith("data:image/"):
            continue
        size = data_url_bytes(chart.image)
        if size > config.max_chart_bytes:
            _LOG.info("CHART_SKIPPED title=%s bytes=%s limit=%s", chart.title, size, config.max_chart_bytes)
            continue
        kept.append(chart)
    return kept


def build_visual_summary(charts: list[ChartImage], config: GenerationConfig, link_id: str | None = None) -> list[Block]:
    blocks: list[Block] = list(section_heading("VISUAL SUMMARY", "Charts & Graphs Overview", link_id=link_id))
    for chart in usable_charts(charts, config):
        blocks.append(
            StackBlock(
                stack=[
                    TextBlock(chart.title or "Chart", style="subheading", margin=(0, 10, 0, 5)),
                    ImageBlock(image=chart.image, fit=(500, 300), alignment="center"),
                ],
                unbreakable=True,
                margin=(0, 0, 0, 15),
            )
        )
    return blocks


def limit_chart_bytes(charts: list[ChartImage], config: GenerationConfig) -> list[ChartImage]:
    """Usable charts whose combined size stays within max_total_chart_bytes."""
    kept: list[ChartImage] = []
    total_bytes = 0
    for chart in usable_charts(charts, config):
        size = data_url_bytes(chart.image)
        if total_bytes + size > config.max_total_chart_bytes:
            _LOG.warning("LIMIT_TRUNCATED kind=chart_bytes total=%s limit=%s", total_bytes + size, config.max_total_chart_bytes)
            break
        total_bytes += size
        kept.append(chart)
    return kept
