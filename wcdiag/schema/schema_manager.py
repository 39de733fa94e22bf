# wcdiag/schema/schema_manager.py

import asyncio
import json
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple, Union, Iterable

from .manifest_reader import read_manifest
from .source_fetcher import SourceFetcher
from ..config.config_manager import ResolvedConfig
from ..event_manager import EventManager, EventType
from ..settings import DEFAULT_MANIFEST_PATHS
from ..utils.cache import SnapshotStore
from ..utils.logger import DiagnosticsLogger, log_processing_phase
from ..models.types import (
    AttributeDefinition,
    ElementDefinition,
    ProcessingPhase,
    SchemaSource,
    SchemaSourceError,
)


class SchemaIndex:
    """Immutable tag -> ElementDefinition mapping published by SchemaManager."""

    def __init__(
        self,
        elements: Optional[Mapping[str, ElementDefinition]] = None,
        generation: int = 0,
        failures: Iterable[SchemaSourceError] = ()
    ):
        self._elements = MappingProxyType(dict(elements or {}))
        self.generation = generation
        self.failures: Tuple[SchemaSourceError, ...] = tuple(failures)

    @classmethod
    def empty(cls, generation: int = 0) -> "SchemaIndex":
        return cls({}, generation)

    def __contains__(self, tag_name: str) -> bool:
        return tag_name in self._elements

    def __len__(self) -> int:
        return len(self._elements)

    @property
    def elements(self) -> Mapping[str, ElementDefinition]:
        return self._elements

    def get(self, tag_name: str) -> Optional[ElementDefinition]:
        return self._elements.get(tag_name)

    def all_tags(self) -> List[str]:
        return list(self._elements)

    def count(self) -> int:
        return len(self._elements)

    def attribute(self, tag_name: str, attribute_name: str) -> Optional[AttributeDefinition]:
        element = self._elements.get(tag_name)
        return element.get_attribute(attribute_name) if element else None

    def attribute_names(self, tag_name: str) -> List[str]:
        element = self._elements.get(tag_name)
        return list(element.attribute_names) if element else []

    def describe(self, tag_name: str) -> str:
        """Markdown documentation for an element, empty if unknown."""
        element = self._elements.get(tag_name)
        if element is None:
            return ""

        lines = [f"**<{element.tag_name}>**"]
        if element.library:
            lines[0] += f" ({element.library})"
        if element.deprecated:
            lines.append("")
            lines.append(f"_Deprecated_: {element.deprecation_message or 'no replacement given'}")
        if element.description:
            lines.append("")
            lines.append(element.description)
        if element.attributes:
            lines.append("")
            lines.append("Attributes:")
            for attr in element.attributes:
                entry = f"- `{attr.name}`"
                if attr.type_text:
                    entry += f": `{attr.type_text}`"
                if attr.description:
                    entry += f" {attr.description}"
                lines.append(entry)
        return "\n".join(lines)


def _read_json(path: Path) -> Optional[Dict]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError):
        return None
    return data if isinstance(data, dict) else None


def _dependency_manifest(package_root: Path, manifest_paths: Tuple[str, ...]) -> Optional[Path]:
    package_json = _read_json(package_root / "package.json") or {}
    declared = package_json.get("customElements")
    if isinstance(declared, str) and declared:
        candidate = package_root / declared
        if candidate.exists():
            return candidate
    for relative in manifest_paths:
        candidate = package_root / relative
        if candidate.exists():
            return candidate
    return None


def build_sources(
    resolved: ResolvedConfig,
    workspace_root: Union[str, Path],
    manifest_paths: Tuple[str, ...] = DEFAULT_MANIFEST_PATHS,
    logger: Optional[DiagnosticsLogger] = None
) -> List[SchemaSource]:
    """
    List schema sources in declaration order; later sources win on collision.

    Order: installed dependency manifests, the workspace manifest, then each
    configured library with a manifestSrc.
    """
    logger = logger or DiagnosticsLogger(name=__name__)
    root = Path(workspace_root)
    sources: List[SchemaSource] = []

    configured = {
        name for name, config in resolved.libraries.items() if config.manifest_src
    }

    package_json = _read_json(root / "package.json")
    dependencies = (package_json or {}).get("dependencies") or {}
    node_modules = root / "node_modules"
    if dependencies and not node_modules.is_dir():
        logger.warning("node_modules directory not found; dependency manifests are skipped")
    elif isinstance(dependencies, dict):
        for name in dependencies:
            if name in configured:
                continue
            package_root = node_modules / name
            if not package_root.is_dir():
                continue
            manifest = _dependency_manifest(package_root, manifest_paths)
            if manifest is None:
                continue
            logger.debug(f"Found dependency manifest for {name}: {manifest}")
            sources.append(SchemaSource(
                library=name,
                location=str(manifest),
                base_path=str(package_root),
                config=resolved.for_library(name),
            ))

    workspace_manifest = resolved.root.manifest_src
    if workspace_manifest is None:
        for relative in manifest_paths:
            if (root / relative).exists():
                workspace_manifest = relative
                break
    if workspace_manifest is not None:
        sources.append(SchemaSource(
            library=None,
            location=workspace_manifest,
            base_path=str(root),
            config=resolved.root,
        ))

    for name, config in resolved.libraries.items():
        if not config.manifest_src:
            continue
        sources.append(SchemaSource(
            library=name,
            location=config.manifest_src,
            base_path=str(root),
            config=config,
        ))

    return sources


class SchemaManager:
    """
    Loads schema sources into an immutable SchemaIndex.

    Sources are fetched concurrently and merged in declaration order. The
    index is built off to the side and published in one step.
    """

    def __init__(
        self,
        fetcher: Optional[SourceFetcher] = None,
        event_manager: Optional[EventManager] = None,
        logger: Optional[DiagnosticsLogger] = None
    ):
        self.fetcher = fetcher or SourceFetcher()
        self.event_manager = event_manager or EventManager()
        self.logger = logger or DiagnosticsLogger(name=__name__)

        self._store: SnapshotStore[SchemaIndex] = SnapshotStore("schema", SchemaIndex.empty())
        self._loaded = asyncio.Event()
        self._sources: Tuple[SchemaSource, ...] = ()
        self._disposed = False

    @property
    def sources(self) -> Tuple[SchemaSource, ...]:
        return self._sources

    @property
    def generation(self) -> int:
        return self._store.generation

    @property
    def is_loaded(self) -> bool:
        return self._loaded.is_set()

    async def _fetch(self, source: SchemaSource):
        try:
            manifest = await self.fetcher.fetch(source)
            return read_manifest(manifest, source.config, source.library)
        except SchemaSourceError as e:
            error = e
        except Exception as e:
            error = SchemaSourceError(source, str(e))

        self.logger.log_error(error, ProcessingPhase.SCHEMA_LOAD)
        self.event_manager.emit(EventType.SOURCE_FAILED, source=source, error=error)
        return error

    @log_processing_phase(ProcessingPhase.SCHEMA_LOAD)
    async def load(self, sources: Iterable[SchemaSource]) -> SchemaIndex:
        """
        Load every source and publish the merged index.

        Args:
            sources: Schema sources in declaration order

        Returns:
            SchemaIndex: The published index
        """
        self._sources = tuple(sources)
        generation = self._store.next_generation()

        results = await asyncio.gather(*(self._fetch(source) for source in self._sources))

        elements: Dict[str, ElementDefinition] = {}
        failures: List[SchemaSourceError] = []
        for source, result in zip(self._sources, results):
            if isinstance(result, SchemaSourceError):
                failures.append(result)
                continue
            for tag_name, definition in result.items():
                previous = elements.get(tag_name)
                if previous is not None and previous.library != definition.library:
                    self.logger.debug(
                        f"<{tag_name}> from {source.label} replaces the definition "
                        f"from {previous.library or 'workspace'}"
                    )
                elements[tag_name] = definition

        snapshot = self._store.publish(SchemaIndex(elements, generation, failures), generation)
        if snapshot.generation >= self._store.generation:
            self._loaded.set()

        self.logger.info(
            f"Loaded {len(elements)} custom elements from "
            f"{len(self._sources) - len(failures)}/{len(self._sources)} sources"
        )
        self.event_manager.emit(
            EventType.SCHEMA_LOADED,
            count=len(elements),
            generation=snapshot.generation,
            failures=len(failures),
        )
        return snapshot.value

    def invalidate(self) -> None:
        """Clear the loaded signal; the previous index stays readable."""
        self._loaded.clear()
        self._store.invalidate()
        self.event_manager.emit(EventType.CACHE_INVALIDATE, target="schema")

    def restore(self) -> SchemaIndex:
        """
        Republish the last index after a failed load so waiters resume.

        Does nothing when a load already published.
        """
        if self._loaded.is_set():
            return self.current()
        previous = self.current()
        generation = self._store.next_generation()
        snapshot = self._store.publish(previous, generation)
        self._loaded.set()
        self.logger.warning(f"Schema load failed; keeping {previous.count()} elements from the previous index")
        return snapshot.value

    async def reload(self, sources: Optional[Iterable[SchemaSource]] = None) -> SchemaIndex:
        self.invalidate()
        return await self.load(self._sources if sources is None else sources)

    async def wait_until_loaded(self) -> None:
        await self._loaded.wait()

    async def snapshot(self) -> SchemaIndex:
        """Wait for a published index and return it."""
        await self._loaded.wait()
        return self.current()

    def current(self) -> SchemaIndex:
        return self._store.current() or SchemaIndex.empty()

    async def get(self, tag_name: str) -> Optional[ElementDefinition]:
        return (await self.snapshot()).get(tag_name)

    async def all_tags(self) -> List[str]:
        return (await self.snapshot()).all_tags()

    def count(self) -> int:
        return self.current().count()

    def local_manifest_paths(self) -> List[Path]:
        """Filesystem paths of the current non-remote sources."""
        paths = []
        for source in self._sources:
            if not source.location or source.is_remote:
                continue
            path = Path(source.location)
            if not path.is_absolute() and source.base_path:
                path = Path(source.base_path) / path
            paths.append(path)
        return paths

    def dispose(self) -> None:
        """Publish an empty index and release any waiters."""
        if self._disposed:
            return
        self._disposed = True
        generation = self._store.next_generation()
        self._store.publish(SchemaIndex.empty(generation), generation)
        self._sources = ()
        self._loaded.set()
        self.fetcher.close()
