"""Shared fixtures: an in-memory CMS, a scripted LLM and test settings."""

import pytest

from blogengine.core.settings import Settings
from blogengine.rewriter.generator import ContentGenerator
from blogengine.trender.models import Platform, SelectedTopic
from tests.fakes import InMemoryGateway, ScriptedProvider, full_replies


@pytest.fixture
def gateway():
    return InMemoryGateway()


@pytest.fixture
def provider():
    return ScriptedProvider(full_replies())


@pytest.fixture
def generator(provider):
    return ContentGenerator(provider)


@pytest.fixture
def selected_topic():
    return SelectedTopic(
        topic='Retinol Tips',
        platform=Platform.TIKTOK,
        tags=['retinol', 'skincare'],
        trending_score=100,
        relevance_score=0.3,
        rank=1,
        source='tiktok_curated',
    )


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        api_secret='test-secret',
        sanity_project_id='testproj',
        sanity_token='sk-test',
        tiktok_client_key='ck',
        tiktok_client_secret='cs',
        topic_delay_seconds=0,
        geo_delay_seconds=0,
        references_delay_seconds=0,
        run_startup_migrations=False,
    )
