import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from fakes import FakeStageRunner
from whisperq.models.job import JobOptions
from whisperq.workers.pipeline import PipelineConfig


@pytest.fixture
def models_dir(tmp_path):
    return tmp_path / "models"


@pytest.fixture
def config(models_dir):
    return PipelineConfig(models_dir=models_dir, model_base_url="https://example.test/models")


@pytest.fixture
def stage_runner():
    return FakeStageRunner()


@pytest.fixture
def options():
    return JobOptions(model="base", language="en", output_txt=True, open_after=False, extra_args="")


@pytest.fixture
def present_model(models_dir):
    models_dir.mkdir(parents=True, exist_ok=True)
    p = models_dir / "ggml-base.bin"
    p.write_bytes(b"\0" * 16)
    return p


@pytest.fixture(autouse=True)
def _app(qapp):
    """Signals, timers and deleteLater all need an application instance."""
    return qapp
