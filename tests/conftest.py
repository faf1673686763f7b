"""Shared test fixtures."""

from __future__ import annotations

import pytest

from covergen.synthesis.metrics import ContentMetrics
from covergen.synthesis.parameters import VisualParameters

SAMPLE_SENTENCE = "Hello world. This is a test."

ARTICLE_TEXT = """Generative art turns rules into pictures.

Every article gets its own cover, derived from nothing but the words it contains.

Identical text always yields the same image, so covers can be regenerated at any time."""

HTML_ARTICLE = """<h1>Release notes</h1>
<p class="lead">Version two ships a new renderer &amp; faster crops.</p>
<p>Colours come from ten fixed palettes.</p>
<script>var tracking = true;</script>
<p>Noise adds a subtle grain.</p>"""


def make_metrics(**overrides) -> ContentMetrics:
    values = dict(
        word_count=0,
        character_count=0,
        avg_word_length=0.0,
        reading_time_minutes=0,
        paragraph_count=1,
        content_hash=0,
        clean_content="",
        words=(),
    )
    values.update(overrides)
    return ContentMetrics(**values)


def make_parameters(**overrides) -> VisualParameters:
    values = dict(
        seed=12345,
        density=0.5,
        complexity=0.5,
        smoothness=0.5,
        layer_count=3,
        shape_vertex_count=6,
        palette_index=2,
    )
    values.update(overrides)
    return VisualParameters(**values)


@pytest.fixture
def sample_sentence() -> str:
    return SAMPLE_SENTENCE


@pytest.fixture
def article_text() -> str:
    return ARTICLE_TEXT


@pytest.fixture
def html_article() -> str:
    return HTML_ARTICLE


@pytest.fixture
def params() -> VisualParameters:
    return make_parameters()
