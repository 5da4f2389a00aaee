from pathlib import Path

import pytest
from pydantic import ValidationError

from figmaflow.infrastructure.config.environment import ACCESS_TOKEN_ENV, API_BASE_URL_ENV, CONFIG_PATH_ENV
from figmaflow.infrastructure.config.settings import ImageSettings, Settings


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for key in (ACCESS_TOKEN_ENV, API_BASE_URL_ENV, CONFIG_PATH_ENV):
        monkeypatch.delenv(key, raising=False)


def test_defaults_when_config_missing(tmp_path: Path):
    settings = Settings.from_toml(tmp_path / "missing.toml")
    assert settings.api.base_url == "https://api.figma.com/v1"
    assert settings.api.token == ""
    assert settings.images.batch_size == 50
    assert settings.pipeline.max_concurrency == 3
    assert settings.cache.max_size == 100


def test_load_from_toml(tmp_path: Path):
    config = tmp_path / "figmaflow.toml"
    config.write_text(
        '[api]\nbase_url = "https://proxy.test/v1/"\nrate_limit_per_minute = 30\n'
        '[images]\nformat = "svg"\nscale = 2\n'
        "[pipeline]\nmax_concurrency = 5\ngenerate_css = true\n"
    )
    settings = Settings.from_toml(config)
    assert settings.api.base_url == "https://proxy.test/v1"
    assert settings.api.rate_limit_per_minute == 30
    assert settings.images.format == "svg"
    assert settings.images.scale == 2
    assert settings.pipeline.max_concurrency == 5
    assert settings.pipeline.generate_css is True


def test_default_config_file_in_cwd(tmp_path: Path):
    (tmp_path / "figmaflow.toml").write_text("[pipeline]\nmax_concurrency = 7\n")
    assert Settings.from_toml().pipeline.max_concurrency == 7


def test_config_path_from_environment(tmp_path: Path, monkeypatch):
    config = tmp_path / "custom.toml"
    config.write_text("[cache]\nmax_size = 5\n")
    monkeypatch.setenv(CONFIG_PATH_ENV, str(config))
    assert Settings.from_toml().cache.max_size == 5


def test_environment_overrides_toml(tmp_path: Path, monkeypatch):
    config = tmp_path / "figmaflow.toml"
    config.write_text('[api]\ntoken = "from-toml"\nbase_url = "https://toml.test"\n')
    monkeypatch.setenv(ACCESS_TOKEN_ENV, "from-env")
    monkeypatch.setenv(API_BASE_URL_ENV, "https://env.test/")
    settings = Settings.from_toml(config)
    assert settings.api.token == "from-env"
    assert settings.api.base_url == "https://env.test"


def test_image_batch_size_is_capped():
    assert ImageSettings(batch_size=120).batch_size == 50


def test_invalid_values_rejected():
    with pytest.raises(ValidationError):
        ImageSettings(quality=0)
    with pytest.raises(ValidationError):
        ImageSettings(format="gif")


def test_to_processing_options_applies_overrides():
    settings = Settings()
    settings.pipeline.include_images = True
    options = settings.to_processing_options(include_images=None, generate_css=True, max_concurrency=2)
    assert options.include_images is True
    assert options.generate_css is True
    assert options.max_concurrency == 2
    assert options.images.batch_size == 50
