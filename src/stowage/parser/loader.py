"""YAML loader with position tracking for artifact documents."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap, CommentedSeq

from stowage.models.errors import SourceSpan

# ---------------------------------------------------------------------------
# Safety limits
# ---------------------------------------------------------------------------

_MAX_DOCUMENT_SIZE = 5_000_000  # characters
_MAX_NODE_COUNT = 50_000
# Each nested packaging element costs two levels (mapping + children list).
_MAX_DEPTH = 100

# Anchor definitions (&name) at line start or after whitespace/indicators.
_ANCHOR_RE = re.compile(r"(?:^|[\s\-:])&(\w+)", re.MULTILINE)

ROOT_FILE = "artifacts.yaml"
ARTIFACTS_DIR = "artifacts"


class YAMLSafetyError(Exception):
    """Raised when YAML input violates the loader's safety constraints.

    These are not parse errors: they flag oversized documents, anchors and
    aliases, or nesting beyond what any artifact tree needs.
    """


@dataclass
class SourceMap:
    """Maps YAML key paths (``artifacts[0].root.children[1]``) to source positions."""

    _positions: dict[str, SourceSpan] = field(default_factory=dict)

    def add(self, path: str, span: SourceSpan) -> None:
        self._positions[path] = span

    def get(self, path: str) -> SourceSpan | None:
        return self._positions.get(path)

    def nearest(self, path: str) -> SourceSpan | None:
        """Position of ``path`` or of its closest recorded ancestor."""
        while path:
            span = self._positions.get(path)
            if span is not None:
                return span
            cut = max(path.rfind("."), path.rfind("["))
            if cut <= 0:
                break
            path = path[:cut]
        return self._positions.get(path)

    def merge(self, other: SourceMap) -> None:
        self._positions.update(other._positions)

    @property
    def paths(self) -> list[str]:
        return list(self._positions.keys())


class TrackedLoader:
    """YAML loader that records where every key and list item came from."""

    def __init__(self) -> None:
        self._yaml = YAML()
        self._yaml.preserve_quotes = True

    # -- safety checks -------------------------------------------------------

    @staticmethod
    def _check_yaml_safety(content: str) -> None:
        """Reject oversized documents and any use of anchors/aliases."""
        if len(content) > _MAX_DOCUMENT_SIZE:
            raise YAMLSafetyError(
                f"YAML document exceeds maximum size "
                f"({len(content):,} chars > {_MAX_DOCUMENT_SIZE:,} limit)"
            )
        if _ANCHOR_RE.search(content):
            raise YAMLSafetyError("YAML anchors/aliases are not supported in artifact documents")

    @staticmethod
    def _check_structure(
        data: Any, node_limit: int = _MAX_NODE_COUNT, depth_limit: int = _MAX_DEPTH
    ) -> None:
        """Post-parse check of node count and nesting depth."""
        count = 0
        stack: list[tuple[Any, int]] = [(data, 1)]
        while stack:
            node, depth = stack.pop()
            count += 1
            if count > node_limit:
                raise YAMLSafetyError(f"YAML document exceeds maximum node count ({node_limit:,})")
            if depth > depth_limit:
                raise YAMLSafetyError(f"YAML document exceeds maximum depth ({depth_limit})")
            if isinstance(node, dict):
                stack.extend((value, depth + 1) for value in node.values())
            elif isinstance(node, list):
                stack.extend((item, depth + 1) for item in node)

    # -- public loading API --------------------------------------------------

    def load(self, path: Path, prefix: str = "") -> tuple[dict[str, Any], SourceMap]:
        """Load a YAML file and return the parsed dict plus its source map."""
        with path.open("r", encoding="utf-8") as handle:
            content = handle.read()
        return self._load_content(content, str(path), prefix)

    def load_string(
        self, content: str, filename: str = "<string>"
    ) -> tuple[dict[str, Any], SourceMap]:
        """Load YAML from a string."""
        return self._load_content(content, filename, "")

    def load_model_directory(self, root: Path) -> tuple[dict[str, Any], SourceMap]:
        """Load ``artifacts.yaml`` plus one artifact per ``artifacts/*.yaml`` file.

        Artifacts from the subdirectory are appended, in file-name order, to
        the ``artifacts`` list of the root document.
        """
        merged: dict[str, Any] = {}
        combined_map = SourceMap()

        root_file = root / ROOT_FILE
        if root_file.exists():
            data, smap = self.load(root_file)
            merged.update(data)
            combined_map.merge(smap)

        artifacts = merged.get("artifacts")
        if not isinstance(artifacts, list):
            artifacts = []
        artifacts_dir = root / ARTIFACTS_DIR
        if artifacts_dir.is_dir():
            for yaml_file in sorted(artifacts_dir.glob("*.yaml")):
                data, smap = self.load(yaml_file, prefix=f"artifacts[{len(artifacts)}]")
                if data:
                    artifacts.append(data)
                    combined_map.merge(smap)
        if artifacts or "artifacts" in merged:
            merged["artifacts"] = artifacts

        return merged, combined_map

    # -- internals -----------------------------------------------------------

    def _load_content(
        self, content: str, filename: str, prefix: str
    ) -> tuple[dict[str, Any], SourceMap]:
        self._check_yaml_safety(content)
        data = self._yaml.load(content)
        if data is None:
            return {}, SourceMap()
        self._check_structure(data)
        source_map = SourceMap()
        self._extract_positions(data, filename, prefix, source_map)
        return self._to_plain_dict(data), source_map

    def _extract_positions(
        self,
        data: Any,
        filename: str,
        prefix: str,
        source_map: SourceMap,
    ) -> None:
        """Recursively record positions from ruamel.yaml's line/column info."""
        if isinstance(data, CommentedMap):
            if prefix and source_map.get(prefix) is None:
                source_map.add(
                    prefix, SourceSpan(file=filename, line=data.lc.line + 1, column=data.lc.col + 1)
                )
            for key in data:
                key_path = f"{prefix}.{key}" if prefix else str(key)
                try:
                    key_positions = data.lc.key(key)
                    if key_positions:
                        line, col = key_positions
                        source_map.add(
                            key_path, SourceSpan(file=filename, line=line + 1, column=col + 1)
                        )
                except (AttributeError, KeyError, TypeError):
                    source_map.add(
                        key_path,
                        SourceSpan(file=filename, line=data.lc.line + 1, column=data.lc.col + 1),
                    )
                self._extract_positions(data[key], filename, key_path, source_map)
        elif isinstance(data, CommentedSeq):
            for i, item in enumerate(data):
                item_path = f"{prefix}[{i}]"
                try:
                    item_pos = data.lc.item(i)
                    if item_pos:
                        line, col = item_pos
                        source_map.add(
                            item_path, SourceSpan(file=filename, line=line + 1, column=col + 1)
                        )
                except (AttributeError, KeyError, TypeError):
                    pass
                self._extract_positions(item, filename, item_path, source_map)

    def _to_plain_dict(self, data: Any) -> dict[str, Any]:
        """Convert ruamel.yaml containers to plain dicts and lists."""
        if isinstance(data, dict):
            return {str(k): self._to_plain_value(v) for k, v in data.items()}
        return {}

    def _to_plain_value(self, data: Any) -> Any:
        if isinstance(data, dict):
            return {str(k): self._to_plain_value(v) for k, v in data.items()}
        if isinstance(data, list):
            return [self._to_plain_value(item) for item in data]
        return data
