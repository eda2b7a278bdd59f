"""
Tests for deployable bundle construction.

Bundles must serialize deterministically so repeated deployments upload
byte-identical archives.
"""
from __future__ import annotations

import pytest

from mojo_deploy.bundles import (
    MANIFEST_CONTENT,
    MANIFEST_PATH,
    BundleEntry,
    DeployableBundle,
    chunk_bundle,
    chunk_bundle_id,
    entry_paths,
    resource_path,
)
from mojo_deploy.errors import BundleTooLargeError
from mojo_deploy.settings import chunk_bundle_bound

from .helpers.archives import entries_of, random_bytes


class TestNaming:

    def test_resource_path(self):
        assert resource_path("mojoprocs", "gbm_pojo_test.zip") == "mojoprocs/gbm_pojo_test.zip"
        assert resource_path("mojoprocs/", "gbm_pojo_test.zip") == "mojoprocs/gbm_pojo_test.zip"
        assert resource_path("", "gbm_pojo_test.zip") == "gbm_pojo_test.zip"

    def test_resource_path_rejects_escape(self):
        with pytest.raises(ValueError, match="unsafe resource name"):
            resource_path("mojoprocs", "../etc/passwd")

    def test_chunk_bundle_id(self):
        assert chunk_bundle_id("gbm_pojo_test.zip", 2) == "gbm_pojo_test.zip.2.jar"


class TestDeployableBundle:
    """Test entry bookkeeping and serialization."""

    def test_manifest_first_then_insertion_order(self):
        bundle = DeployableBundle("mojoProcs.jar")
        bundle.add("mojoprocs/IsFlightLate.class", b"\xca\xfe")
        bundle.add("ie/voltdb/h2outil/H2OMojoWrangler.class", b"\xba\xbe")

        data = bundle.to_bytes()

        assert entry_paths(data) == (
            MANIFEST_PATH,
            "mojoprocs/IsFlightLate.class",
            "ie/voltdb/h2outil/H2OMojoWrangler.class",
        )
        assert entries_of(data)[MANIFEST_PATH] == MANIFEST_CONTENT

    def test_serialization_is_deterministic(self):
        def build():
            bundle = DeployableBundle("b.jar")
            bundle.add("a/x.class", b"x" * 1000)
            bundle.add("a/y.bin", random_bytes(500))
            return bundle.to_bytes()

        assert build() == build()

    def test_duplicate_path_rejected(self):
        bundle = DeployableBundle("b.jar")
        bundle.add("a/x.class", b"1")

        with pytest.raises(ValueError, match="Duplicate entry a/x.class"):
            bundle.add("a/x.class", b"2")

    def test_manifest_path_reserved(self):
        with pytest.raises(ValueError, match="written by the bundle itself"):
            BundleEntry(MANIFEST_PATH, b"")

    def test_sizes(self):
        bundle = DeployableBundle("b.jar")
        bundle.add("a", b"12")
        bundle.add("b", b"345")

        assert bundle.raw_size == 5
        assert bundle.paths == ["a", "b"]

    def test_size_limit(self):
        bundle = DeployableBundle("big.jar")
        bundle.add("blob", random_bytes(10000))

        with pytest.raises(BundleTooLargeError) as exc_info:
            bundle.to_bytes(max_size=5000)

        assert exc_info.value.bundle_id == "big.jar"
        assert exc_info.value.limit == 5000

    def test_empty_content_allowed(self):
        bundle = DeployableBundle("b.jar")
        bundle.add("m.zip.2", b"")

        assert entries_of(bundle.to_bytes())["m.zip.2"] == b""


class TestChunkBundle:

    @pytest.mark.parametrize("size", [1, 50000, 200000])
    def test_serialized_size_within_bound(self, size):
        """Incompressible chunks plus archive overhead stay under the settings bound."""
        bundle = chunk_bundle("gbm_pojo_test.zip", "mojoprocs", 12, random_bytes(size))

        assert len(bundle.to_bytes()) <= chunk_bundle_bound(size)

    def test_single_entry_under_prefix(self):
        bundle = chunk_bundle("gbm_pojo_test.zip", "mojoprocs", 1, b"chunk")

        assert bundle.bundle_id == "gbm_pojo_test.zip.1.jar"
        assert bundle.paths == ["mojoprocs/gbm_pojo_test.zip.1"]
        assert entries_of(bundle.to_bytes())["mojoprocs/gbm_pojo_test.zip.1"] == b"chunk"
