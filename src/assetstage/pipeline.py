"""Pipeline driver for bundle synchronization.

Runs the stages in order and skips all work when the sentinel shows the
bundle on disk is already the expected version:

    START -> CHECKING_CACHE -> UP_TO_DATE -> DONE
    START -> CHECKING_CACHE -> FETCHING -> VERIFYING -> MATERIALIZING
          -> PACKAGING -> RECORDING_CACHE -> DONE

A failure in any stage moves to FAILED and the error propagates. Once the
download is verified the old sentinel is removed before the bundle directory
is touched, and the new one is written last, so an aborted run never leaves
an "up to date" claim next to a partially refreshed bundle.
"""

import logging
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import httpx

from assetstage.config import Config
from assetstage.core.archive import extract_archive, staged_root
from assetstage.core.cache import SentinelCache
from assetstage.core.fetcher import fetch
from assetstage.core.integrity import verify
from assetstage.core.materializer import materialize
from assetstage.core.packager import StaticResourceRegistry, package
from assetstage.errors import AssetStageError, FilesystemError

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    """Stages of a pipeline run."""

    START = "start"
    CHECKING_CACHE = "checking_cache"
    UP_TO_DATE = "up_to_date"
    FETCHING = "fetching"
    VERIFYING = "verifying"
    MATERIALIZING = "materializing"
    PACKAGING = "packaging"
    RECORDING_CACHE = "recording_cache"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PipelineResult:
    """Outcome of a successful run."""

    state: PipelineState
    bundle_dir: Path
    digest: str
    fetched: bool = False
    skipped: bool = False
    registry: StaticResourceRegistry | None = None
    module_path: Path | None = None
    history: list[PipelineState] = field(default_factory=list)

    @property
    def up_to_date(self) -> bool:
        """True when the run exited early on a cache hit."""
        return PipelineState.UP_TO_DATE in self.history


class Pipeline:
    """Synchronizes one bundle into the configured output directory."""

    def __init__(
        self,
        config: Config,
        *,
        client: httpx.Client | None = None,
        force: bool = False,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Pipeline configuration
            client: Optional httpx client used for the download
            force: Skip the cache check and always refetch
        """
        self._config = config
        self._client = client
        self._force = force
        self._cache = SentinelCache(config.output.dir, config.bundle.name)
        self.state = PipelineState.START
        self.history: list[PipelineState] = [PipelineState.START]

    @property
    def cache(self) -> SentinelCache:
        """Sentinel cache for the configured bundle."""
        return self._cache

    def run(self) -> PipelineResult:
        """Run the pipeline to completion.

        Returns:
            PipelineResult describing what was done

        Raises:
            AssetStageError: If any stage fails
        """
        if not self._config.enabled:
            logger.info(f"Bundle {self._config.bundle.name} is disabled, skipping")
            self._transition(PipelineState.DONE)
            return self._result(skipped=True)

        try:
            return self._run()
        except AssetStageError as e:
            self._fail(e)
            raise
        except OSError as e:
            self._fail(e)
            raise FilesystemError(str(e)) from e

    def _run(self) -> PipelineResult:
        bundle = self._config.bundle

        self._transition(PipelineState.CHECKING_CACHE)
        if self._force:
            self._cache.invalidate()
        elif self._cache.is_up_to_date(bundle.expected_digest):
            logger.info(f"Bundle {bundle.name} is up to date")
            self._transition(PipelineState.UP_TO_DATE)
            self._transition(PipelineState.DONE)
            return self._result()

        self._transition(PipelineState.FETCHING)
        data = fetch(bundle.source_url, client=self._client)

        self._transition(PipelineState.VERIFYING)
        verify(data, bundle.expected_digest, bundle.algorithm)

        self._transition(PipelineState.MATERIALIZING)
        self._cache.invalidate()
        output_dir = self._config.output.dir
        output_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(
            prefix=f".{bundle.name}-staging-",
            dir=output_dir,
        ) as staging:
            staging_path = Path(staging)
            extract_archive(data, staging_path)
            materialize(
                staged_root(staging_path),
                self._cache.bundle_dir,
                clean=self._config.output.clean,
            )

        self._transition(PipelineState.PACKAGING)
        registry = package(self._cache.bundle_dir)
        module_path = self._config.output.generated_module_path
        if module_path is not None:
            registry.write_module(module_path)

        self._transition(PipelineState.RECORDING_CACHE)
        self._cache.record(bundle.expected_digest)

        self._transition(PipelineState.DONE)
        logger.info(f"Bundle {bundle.name} refreshed ({len(registry)} files)")
        return self._result(fetched=True, registry=registry, module_path=module_path)

    def _transition(self, state: PipelineState) -> None:
        logger.debug(f"{self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def _fail(self, error: Exception) -> None:
        stage = self.state.value
        self._transition(PipelineState.FAILED)
        logger.error(f"Pipeline failed while {stage}: {error}")

    def _result(
        self,
        *,
        fetched: bool = False,
        skipped: bool = False,
        registry: StaticResourceRegistry | None = None,
        module_path: Path | None = None,
    ) -> PipelineResult:
        return PipelineResult(
            state=self.state,
            bundle_dir=self._cache.bundle_dir,
            digest=self._config.bundle.expected_digest,
            fetched=fetched,
            skipped=skipped,
            registry=registry,
            module_path=module_path,
            history=list(self.history),
        )


def run_pipeline(
    config: Config,
    *,
    client: httpx.Client | None = None,
    force: bool = False,
) -> PipelineResult:
    """Run the pipeline for ``config``.

    Args:
        config: Pipeline configuration
        client: Optional httpx client used for the download
        force: Skip the cache check and always refetch

    Returns:
        PipelineResult describing what was done
    """
    return Pipeline(config, client=client, force=force).run()
