"""Tests for CLI module."""

import json
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from unittest.mock import Mock, patch

import pytest

from osharness.cli import main, run
from osharness.cluster import TestCluster
from osharness.models.context import ExecutionContext
from osharness.models.descriptor import TestDescriptor
from osharness.registry import TestRegistry
from osharness.testing.fakes import FakePlatformDriver


async def _noop(cluster: TestCluster) -> None:
    pass


async def _failing(cluster: TestCluster) -> None:
    cluster.fail("kubelet not ready")


def make_registry(*tests: TestDescriptor) -> TestRegistry:
    """Build a registry holding ``tests``."""
    registry = TestRegistry()
    for test in tests:
        registry.add(test)
    return registry


class TestRun:
    """Tests for run function."""

    @pytest.fixture
    def mock_manifest(self, driver: FakePlatformDriver) -> Mock:
        """Create a manifest whose factory yields the fake driver."""

        @asynccontextmanager
        async def factory(config: object) -> AsyncGenerator[FakePlatformDriver, None]:
            yield driver

        manifest = Mock()
        manifest.config_cls = Mock(return_value=Mock())
        manifest.driver_factory = Mock(side_effect=factory)
        return manifest

    async def test_returns_zero_when_no_tests_selected(
        self,
        mock_manifest: Mock,
        context: ExecutionContext,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Returns 0 and prints empty results when nothing matches."""
        registry = make_registry(TestDescriptor(name="cl.misc.falco", run=_noop))

        with (
            patch(
                "osharness.cli.load_platform_manifest", return_value=mock_manifest
            ),
            patch("osharness.cli.load_catalogs", return_value=registry),
        ):
            exit_code = await run(
                platform_key="static",
                platform_config_json="{}",
                context=context,
                patterns=["docker.*"],
            )

        assert exit_code == 0
        assert json.loads(capsys.readouterr().out)["total"] == 0
        mock_manifest.driver_factory.assert_not_called()

    async def test_returns_zero_when_all_tests_pass(
        self,
        mock_manifest: Mock,
        context: ExecutionContext,
        driver: FakePlatformDriver,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Returns 0 and prints the report when every test passes."""
        registry = make_registry(
            TestDescriptor(name="cl.misc.falco", run=_noop, cluster_size=1),
            TestDescriptor(name="docker.base", run=_noop, architectures=["arm64"]),
        )

        with (
            patch(
                "osharness.cli.load_platform_manifest", return_value=mock_manifest
            ),
            patch("osharness.cli.load_catalogs", return_value=registry),
        ):
            exit_code = await run(
                platform_key="static",
                platform_config_json='{"hosts": [{"address": "192.0.2.10"}]}',
                context=context,
            )

        assert exit_code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["total"] == 2
        assert output["passed"] == 1
        assert output["excluded"] == 1
        mock_manifest.config_cls.assert_called_once_with(
            hosts=[{"address": "192.0.2.10"}]
        )
        assert len(driver.destroyed) == 1

    async def test_returns_one_when_test_fails(
        self,
        mock_manifest: Mock,
        context: ExecutionContext,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Returns 1 when any test fails."""
        registry = make_registry(
            TestDescriptor(name="kubeadm.v1.27.2.flannel.base", run=_failing),
            TestDescriptor(name="cl.misc.falco", run=_noop),
        )

        with (
            patch(
                "osharness.cli.load_platform_manifest", return_value=mock_manifest
            ),
            patch("osharness.cli.load_catalogs", return_value=registry),
        ):
            exit_code = await run(
                platform_key="static",
                platform_config_json="{}",
                context=context,
                patterns=["kubeadm.*"],
            )

        assert exit_code == 1
        output = json.loads(capsys.readouterr().out)
        assert output["total"] == 1
        assert output["results"][0]["message"] == "kubelet not ready"


class TestMain:
    """Tests for main function."""

    def test_builds_context_from_arguments(self) -> None:
        """Passes the parsed arguments to run and exits with its code."""
        argv = [
            "osharness",
            "cl.*",
            "--platform",
            "static",
            "--platform-name",
            "esx",
            "--os-version",
            "3033.2.4",
            "--arch",
            "arm64",
            "--flag",
            "selinux",
            "--parallel",
            "4",
        ]

        with (
            patch("sys.argv", argv),
            patch("osharness.cli.logging.basicConfig"),
            patch("osharness.cli.run", Mock(return_value=None)) as mock_run,
            patch("osharness.cli.asyncio.run", return_value=1),
            pytest.raises(SystemExit) as exc_info,
        ):
            main()

        assert exc_info.value.code == 1
        kwargs = mock_run.call_args.kwargs
        assert kwargs["platform_key"] == "static"
        assert kwargs["parallelism"] == 4
        assert kwargs["patterns"] == ["cl.*"]
        context = kwargs["context"]
        assert context.platform == "esx"
        assert context.architecture == "arm64"
        assert str(context.version) == "3033.2.4"
        assert context.enabled_flags == frozenset({"selinux"})

    @pytest.mark.parametrize(
        "extra",
        [
            ["--os-version", "not-a-version"],
            ["--os-version", "3033.2.4", "--parallel", "0"],
        ],
    )
    def test_rejects_invalid_arguments(self, extra: list[str]) -> None:
        """Exits with a usage error for invalid versions or parallelism."""
        with (
            patch("sys.argv", ["osharness", "--platform", "static", *extra]),
            patch("osharness.cli.asyncio.run") as mock_asyncio_run,
            pytest.raises(SystemExit) as exc_info,
        ):
            main()

        assert exc_info.value.code == 2
        mock_asyncio_run.assert_not_called()
