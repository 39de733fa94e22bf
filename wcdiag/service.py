# wcdiag/service.py

import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .config.config_manager import ConfigResolver, should_include
from .config.loaders.config_loader import ConfigLoader
from .event_manager import EventManager, EventType
from .models.types import Diagnostic, ElementDefinition, ProcessingPhase
from .parsers.document import TextDocument
from .reload_scheduler import ReloadScheduler
from .schema.schema_manager import SchemaIndex, SchemaManager, build_sources
from .schema.source_fetcher import SourceFetcher
from .settings import EngineSettings
from .utils.logger import DiagnosticsLogger, log_processing_phase
from .validation_manager import ValidationEngine

MANIFEST_FILE_NAMES = ("package.json", "custom-elements.json")


class DiagnosticsService:
    """
    Wires configuration, schema loading, validation and reload scheduling
    for one workspace.
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        config: Optional[Mapping[str, Any]] = None,
        event_manager: Optional[EventManager] = None,
        fetcher: Optional[SourceFetcher] = None,
        logger: Optional[DiagnosticsLogger] = None
    ):
        self.settings = settings or EngineSettings.from_environment()
        self.logger = logger or DiagnosticsLogger(
            name=__name__,
            level=self.settings.log_level,
            log_file=self.settings.log_file,
        )
        self.event_manager = event_manager or EventManager()
        self._inline_config = config

        root = self.settings.workspace_root
        self.config = ConfigResolver(
            root,
            event_manager=self.event_manager,
            config_path=self.settings.config_file,
            loader=ConfigLoader(root, self.settings.config_file_names),
            logger=self.logger,
        )
        self.schema = SchemaManager(
            fetcher=fetcher or SourceFetcher(timeout=self.settings.fetch_timeout),
            event_manager=self.event_manager,
            logger=self.logger,
        )
        self.engine = ValidationEngine(self.schema, self.config, logger=self.logger)
        self.scheduler = ReloadScheduler(
            self.reload,
            window=self.settings.debounce_window,
            event_manager=self.event_manager,
            logger=self.logger,
        )

    @property
    def workspace_root(self) -> Path:
        return self.settings.workspace_root

    async def start(self) -> SchemaIndex:
        """Perform the first load."""
        return await self.reload(["startup"])

    @log_processing_phase(ProcessingPhase.RELOAD)
    async def reload(self, reasons: Optional[List[str]] = None) -> SchemaIndex:
        """
        Rebuild configuration and schema from scratch.

        Order: invalidate config, invalidate schema, resolve config, load
        sources, publish. Waiters are released by the publish, or by
        republishing the previous index if the cycle fails.
        """
        reasons = reasons or ["manual"]
        self.config.invalidate()
        self.schema.invalidate()

        try:
            resolved = self.config.load(self._inline_config)
            sources = build_sources(
                resolved,
                self.workspace_root,
                self.settings.manifest_paths,
                logger=self.logger,
            )
            index = await self.schema.load(sources)
        finally:
            self.schema.restore()

        self.logger.info(
            f"Reload complete ({', '.join(reasons)}): {index.count()} elements, "
            f"generation {index.generation}"
        )
        self.event_manager.emit(
            EventType.RELOAD_COMPLETE,
            reasons=list(reasons),
            generation=index.generation,
        )
        return index

    def set_config(self, config: Optional[Mapping[str, Any]]) -> None:
        """Replace the inline configuration and schedule a reload."""
        self._inline_config = config
        self.scheduler.schedule("configuration replaced")

    def is_relevant_change(self, path: Union[str, Path]) -> bool:
        path = Path(path)
        if self.config.is_config_file(path) or path.name in MANIFEST_FILE_NAMES:
            return True
        absolute = os.path.abspath(path)
        return any(os.path.abspath(p) == absolute for p in self.schema.local_manifest_paths())

    def on_file_changed(self, path: Union[str, Path]) -> bool:
        """
        Schedule a reload if the changed file affects configuration or schema.

        Returns:
            bool: True if a reload was scheduled
        """
        if not self.is_relevant_change(path):
            return False
        self.scheduler.schedule(f"changed {path}")
        return True

    async def provide_diagnostics(self, document: TextDocument) -> List[Diagnostic]:
        return await self.engine.provide_diagnostics(document)

    def config_diagnostics(self) -> List[Diagnostic]:
        return self.config.config_diagnostics()

    async def validate_text(self, text: str, uri: str = "untitled.html") -> List[Diagnostic]:
        return await self.provide_diagnostics(TextDocument(uri, text))

    def should_include(self, path: Union[str, Path]) -> bool:
        return should_include(self.config.current().root, path, self.workspace_root)

    async def validate_file(self, path: Union[str, Path]) -> List[Diagnostic]:
        """Validate one file; files rejected by include/exclude yield []."""
        path = Path(path)
        if not path.is_absolute():
            path = self.workspace_root / path
        if not self.should_include(path):
            self.logger.debug(f"Skipping excluded file: {path}")
            return []

        try:
            # Undecodable bytes become U+FFFD so the rest of the file is still checked
            with open(path, 'r', encoding='utf-8', errors='replace') as f:
                text = f.read()
        except OSError as e:
            self.logger.error(f"Error reading {path}: {str(e)}")
            raise

        return await self.provide_diagnostics(TextDocument(str(path), text))

    async def validate_files(self, paths: Iterable[Union[str, Path]]) -> Dict[str, List[Diagnostic]]:
        """
        Map each file with at least one diagnostic to its diagnostics.

        A file that cannot be validated is logged and skipped.
        """
        results: Dict[str, List[Diagnostic]] = {}
        for path in paths:
            try:
                diagnostics = await self.validate_file(path)
            except Exception as e:
                self.logger.create_error_log(e, {"path": str(path), "operation": "validate_files"})
                continue
            if diagnostics:
                results[str(path)] = diagnostics
        return results

    async def wait_until_loaded(self) -> None:
        await self.schema.wait_until_loaded()

    async def get_element(self, tag_name: str) -> Optional[ElementDefinition]:
        return await self.schema.get(tag_name)

    async def all_tags(self) -> List[str]:
        return await self.schema.all_tags()

    async def dispose(self) -> None:
        """Stop scheduling, let an in-flight reload finish, then drop the index."""
        self.scheduler.dispose()
        await self.scheduler.flush()
        self.schema.dispose()
        self.event_manager.clear()


def create_service(
    workspace_root: Optional[Union[str, Path]] = None,
    config: Optional[Mapping[str, Any]] = None,
    settings: Optional[EngineSettings] = None,
    **kwargs
) -> DiagnosticsService:
    """
    Build a DiagnosticsService for a workspace.

    Args:
        workspace_root: Workspace directory (default: WCDIAG_WORKSPACE_ROOT or cwd)
        config: Inline configuration used instead of a config file
        settings: Explicit settings; environment settings otherwise
        **kwargs: Passed through to DiagnosticsService

    Returns:
        DiagnosticsService: Unstarted service; await start() before use
    """
    settings = settings or EngineSettings.from_environment(
        Path(workspace_root) if workspace_root else None
    )
    if workspace_root is not None:
        settings.workspace_root = Path(workspace_root)
    return DiagnosticsService(settings=settings, config=config, **kwargs)
