"""
Best-effort asset resolution: logos inlined as data URLs, organization details.
Every fetch has its own short budget and degrades to nothing on failure.
"""
from __future__ import annotations

import asyncio
import base64
from typing import Awaitable, Callable

import httpx

from models import CompanyDetails

from .budget import CancelToken, best_effort
from .config import GenerationConfig

MAX_LOGO_BYTES = 2_000_000
_IMAGE_TYPES = ("image/png", "image/jpeg", "image/jpg", "image/gif", "image/webp", "image/svg+xml")


async def fetch_image_data_url(client: httpx.AsyncClient, url: str) -> str | None:
    """Download an image and return it as a base64 data URL. Raises on HTTP errors."""
    if url.startswith("data:image/"):
        return url
    response = await client.get(url, follow_redirects=True)
    response.raise_for_status()
    content_type = (response.headers.get("content-type") or "").split(";")[0].strip().lower()
    if content_type not in _IMAGE_TYPES:
        raise ValueError(f"Unsupported logo content type: {content_type or 'unknown'}")
    body = response.content
    if not body or len(body) > MAX_LOGO_BYTES:
        raise ValueError(f"Logo size out of range: {len(body)} bytes")
    return f"data:{content_type};base64,{base64.b64encode(body).decode('ascii')}"


async def resolve_logos(
    company: CompanyDetails,
    client: httpx.AsyncClient,
    config: GenerationConfig,
    cancel: CancelToken | None = None,
) -> CompanyDetails:
    """Copy of company with logo_data/client_logo_data filled where the fetch succeeded."""

    async def _one(url: str | None, label: str) -> str | None:
        if not url:
            return None
        return await best_effort(
            lambda: fetch_image_data_url(client, url),
            config.logo_timeout_s,
            cancel,
            default=None,
            label=label,
        )

    logo, client_logo = await asyncio.gather(
        _one(company.logo_url, "company_logo"),
        _one(company.client_logo_url, "client_logo"),
    )
    return company.model_copy(
        update={
            "logo_data": logo or company.logo_data,
            "client_logo_data": client_logo or company.client_logo_data,
        }
    )


async def load_company_details(
    loader: Callable[[], Awaitable[CompanyDetails | None]] | None,
    fallback: CompanyDetails,
    config: GenerationConfig,
    cancel: CancelToken | None = None,
) -> CompanyDetails:
    """Organization display details; keeps the fallback on any failure."""
    if loader is None:
        return fallback
    details = await best_effort(loader, config.company_timeout_s, cancel, default=None, label="company_details")
    if details is None:
        return fallback
    return details.model_copy(update={"client_name": fallback.client_name or details.client_name})
