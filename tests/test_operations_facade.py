"""
Test Operations facade wiring and integration.

Validates that the Operations facade delegates to the deployment core and
applies the whole-deployment retry policy.
"""
from __future__ import annotations

import pytest

from mojo_deploy.coordinator import DeploymentState
from mojo_deploy.errors import ArtifactNotFoundError, BundleUploadError, SchemaApplyError
from mojo_deploy.operations import Operations, OpsConfig

from .fakes.fake_locator import InMemoryLocator
from .helpers.archives import make_archive, random_bytes
from .helpers.statements import CREATE_TABLE


class TestOperationsFacade:
    """Test Operations facade orchestration."""

    def test_facade_initialization(self, settings, engine):
        """Test facade keeps its configuration."""
        config = OpsConfig(retries=2, verbose=True)

        ops = Operations(config, settings, engine)

        assert ops.cfg is config
        assert ops.settings is settings
        assert ops.client is engine

    def test_probe(self, settings, engine, plan, locator):
        ops = Operations(OpsConfig(), settings, engine)

        assert not ops.probe(plan, locator).present
        engine.procedures.add("Score")
        assert ops.probe(plan, locator).present

    def test_deploy(self, settings, engine, plan, locator):
        ops = Operations(OpsConfig(), settings, engine)

        result = ops.deploy(plan, locator)

        assert result.performed
        assert result.state == DeploymentState.PRESENT
        assert not ops.deploy(plan, locator).performed

    def test_remote_operations_need_client(self, settings, plan, locator):
        ops = Operations(OpsConfig(), settings)

        with pytest.raises(ValueError, match="Remote client required"):
            ops.deploy(plan, locator)

    def test_no_retry_by_default(self, settings, engine, plan, locator):
        engine.upload_failure = "catalog busy"
        ops = Operations(OpsConfig(), settings, engine)

        with pytest.raises(BundleUploadError):
            ops.deploy(plan, locator)
        assert engine.count("update_classes") == 1

    @pytest.mark.slow
    def test_retry_reruns_from_probe(self, settings, engine, plan, locator):
        """A retryable failure re-runs the whole deployment, starting with a probe."""
        engine.upload_failure = "catalog busy"
        original = engine.update_classes

        def flaky(bundle):
            response = original(bundle)
            engine.upload_failure = None
            return response

        engine.update_classes = flaky
        ops = Operations(OpsConfig(retries=1, retry_wait_max_s=1.0), settings, engine)

        result = ops.deploy(plan, locator)

        assert result.state == DeploymentState.PRESENT
        assert engine.count("update_classes") == 2

    def test_non_retryable_errors_not_retried(self, settings, engine, plan, locator):
        engine.statement_failures[CREATE_TABLE] = "syntax error"
        ops = Operations(OpsConfig(retries=3), settings, engine)

        with pytest.raises(SchemaApplyError):
            ops.deploy(plan, locator)
        assert engine.count("ad_hoc") == 1

    def test_split(self, settings, tmp_path):
        source = tmp_path / "model.zip"
        source.write_bytes(random_bytes(25))
        ops = Operations(OpsConfig(), settings)

        fragments = ops.split(str(source), max_chunk_size=10)

        assert [p.name for p in fragments] == ["model.zip.0", "model.zip.1", "model.zip.2"]

    def test_split_uses_settings_chunk_size(self, settings, tmp_path):
        source = tmp_path / "model.zip"
        source.write_bytes(random_bytes(100))

        assert Operations(OpsConfig(), settings).split(str(source)) == []

    def test_inspect(self, settings):
        archive = make_archive({"model.ini": b"algo=gbm"})
        locator = InMemoryLocator({"m.zip.0": archive[:50], "m.zip.1": archive[50:]})

        artifact = Operations(OpsConfig(), settings).inspect("m.zip", locator)

        assert artifact.fragment_count == 2
        assert artifact["model.ini"] == b"algo=gbm"

    def test_inspect_missing(self, settings):
        with pytest.raises(ArtifactNotFoundError):
            Operations(OpsConfig(), settings).inspect("m.zip", InMemoryLocator())
