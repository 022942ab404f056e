"""Serializes artifacts (and optionally the project structure) back to YAML."""

from __future__ import annotations

import io
from collections.abc import Iterable
from copy import deepcopy
from typing import Any

from ruamel.yaml import YAML

from stowage.models.artifact import Artifact, ArtifactModel, InvalidArtifact
from stowage.models.elements import tree_state
from stowage.models.project import ProjectStructure

FORMAT_VERSION = 1


class ArtifactModelWriter:
    """Inverse of :class:`~stowage.parser.reader.ArtifactModelReader`.

    Invalid artifacts are written back exactly as they were read.
    """

    def __init__(self) -> None:
        self._yaml = YAML()
        self._yaml.default_flow_style = False
        self._yaml.width = 120
        self._yaml.indent(mapping=2, sequence=4, offset=2)

    def artifact_to_dict(self, artifact: Artifact) -> dict[str, Any]:
        if isinstance(artifact, InvalidArtifact):
            return deepcopy(artifact.raw_state)
        data: dict[str, Any] = {"name": artifact.name, "type": artifact.artifact_type.id}
        if artifact.output_path is not None:
            data["outputPath"] = artifact.output_path
        if artifact.build_on_make:
            data["buildOnMake"] = True
        if artifact.properties:
            data["properties"] = deepcopy(artifact.properties)
        data["root"] = tree_state(artifact.root_element)
        return data

    def project_to_dict(self, project: ProjectStructure) -> dict[str, Any]:
        data: dict[str, Any] = {"baseDir": project.base_dir}
        if project.modules:
            data["modules"] = {
                name: module.model_dump(by_alias=True, exclude={"name"}, exclude_none=True)
                for name, module in project.modules.items()
            }
        if project.libraries:
            data["libraries"] = {
                name: library.model_dump(by_alias=True, exclude={"name"})
                for name, library in project.libraries.items()
            }
        return data

    def to_dict(
        self,
        artifacts: ArtifactModel | Iterable[Artifact],
        project: ProjectStructure | None = None,
    ) -> dict[str, Any]:
        if isinstance(artifacts, ArtifactModel):
            artifacts = artifacts.all_artifacts_including_invalid
        data: dict[str, Any] = {"version": FORMAT_VERSION}
        if project is not None:
            data.update(self.project_to_dict(project))
        data["artifacts"] = [self.artifact_to_dict(a) for a in artifacts]
        return data

    def dump(
        self,
        artifacts: ArtifactModel | Iterable[Artifact],
        project: ProjectStructure | None = None,
    ) -> str:
        stream = io.StringIO()
        self._yaml.dump(self.to_dict(artifacts, project), stream)
        return stream.getvalue()
