"""Root pytest configuration for mojo-deploy tests."""
import pytest

from mojo_deploy.plan import SchemaDeploymentPlan
from mojo_deploy.settings import Settings

from .fakes.fake_engine import FakeRemoteEngine
from .fakes.fake_locator import InMemoryLocator
from .helpers.archives import make_archive
from .helpers.statements import CREATE_PROC, CREATE_TABLE, CREATE_VIEW


# Configure pytest markers
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow (may take significant time)"
    )


# Keep the developer's environment out of the tests
@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Automatically clear mojo-deploy environment variables."""
    for key in (
        "MOJO_DEPLOY_HOSTS", "MOJO_DEPLOY_PORT", "MOJO_DEPLOY_USER", "MOJO_DEPLOY_PASSWORD",
        "MOJO_DEPLOY_HTTP_TIMEOUT", "MOJO_DEPLOY_HTTP_RETRY", "MOJO_DEPLOY_MAX_CHUNK_SIZE",
        "MOJO_DEPLOY_MAX_BUNDLE_SIZE", "MOJO_DEPLOY_STRICT_PROBE",
    ):
        monkeypatch.delenv(key, raising=False)


# Standardized test fixtures
@pytest.fixture
def settings():
    """Standard test settings."""
    return Settings(max_chunk_size=50000, max_bundle_size=200000)


@pytest.fixture
def plan():
    """Small plan: one class, one model resource, three statements."""
    return SchemaDeploymentPlan(
        name="demo",
        resource_prefix="demo",
        main_bundle_id="demo.jar",
        code_entries=["demo/Score.class"],
        resources=["model.zip"],
        statements=[
            CREATE_TABLE,
            {"text": CREATE_PROC, "bundles": ["demo.jar"]},
            CREATE_VIEW,
        ],
        probe={"procedure": "Score", "params": ["a", 1]},
    )


@pytest.fixture
def model_archive():
    """Small model artifact, well below the chunk size."""
    return make_archive({"model.ini": b"[info]\nalgo = gbm\n", "trees/t00.bin": b"\x01" * 64})


@pytest.fixture
def locator(model_archive):
    """Locator holding the plan's class and model resource."""
    return InMemoryLocator({
        "demo/Score.class": b"\xca\xfe\xba\xbe class bytes",
        "demo/model.zip": model_archive,
    })


@pytest.fixture
def engine():
    """Fake engine in which the procedure statement defines the probe procedure."""
    return FakeRemoteEngine(defines={CREATE_PROC: "Score"})
