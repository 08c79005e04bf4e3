"""Tests for run settings and their environment overrides."""

from pathlib import Path

from nyc_dog_bites import config
from nyc_dog_bites.config import PipelineSettings


def test_defaults_follow_module_constants():
    settings = PipelineSettings.from_env({})

    assert settings.dataset_id == config.DATASET_ID == "rsgh-akpg"
    assert settings.record_limit == config.RECORD_LIMIT


def test_from_env_overrides():
    settings = PipelineSettings.from_env(
        {
            "SOCRATA_APP_TOKEN": "token",
            "DOG_BITES_RECORD_LIMIT": "500",
            "DOG_BITES_REQUEST_TIMEOUT": "30",
            "DOG_BITES_AGE_LOOKUP": "/tmp/ages.xlsx",
            "DOG_BITES_OUTPUT_DIR": "/tmp/out",
        }
    )

    assert settings.app_token == "token"
    assert settings.record_limit == 500
    assert settings.request_timeout == 30.0
    assert settings.age_lookup_path == Path("/tmp/ages.xlsx")
    assert settings.output_dir == Path("/tmp/out")


def test_with_overrides_ignores_none():
    settings = PipelineSettings.from_env({})

    updated = settings.with_overrides(record_limit=10, output_dir=None)

    assert updated.record_limit == 10
    assert updated.output_dir == settings.output_dir
    assert settings.record_limit == config.RECORD_LIMIT
