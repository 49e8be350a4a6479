from __future__ import annotations

import pytest
from pydantic import ValidationError

from reporting.config import DEFAULT_HTML_CONVERTER_URL, GenerationConfig


def test_config_is_frozen_for_the_request():
    config = GenerationConfig()
    with pytest.raises(ValidationError):
        config.max_line_items_per_category = 5
    assert config.max_line_items_per_category == 100


def test_model_copy_derives_variant_without_touching_original():
    config = GenerationConfig()
    narrow = config.model_copy(update={"max_line_items_per_category": 5})
    assert narrow.max_line_items_per_category == 5
    assert config.max_line_items_per_category == 100


def test_from_env_reads_budgets_and_endpoints(monkeypatch):
    monkeypatch.setenv("PDF_LOCAL_TIMEOUT_S", "45")
    monkeypatch.setenv("RENDER_SERVICE_URL", " https://render.example.com/pdf ")
    monkeypatch.delenv("HTML_CONVERTER_URL", raising=False)
    config = GenerationConfig.from_env()
    assert config.local_render_timeout_s == 45.0
    assert config.render_service_url == "https://render.example.com/pdf"
    assert config.html_converter_url == DEFAULT_HTML_CONVERTER_URL
