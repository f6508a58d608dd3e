"""
Descriptor mutation: retarget a client build at a new library version.

Two plugin declarations make Maven compile the client's own published
sources: ``maven-dependency-plugin`` unpacks the client's ``sources``
artifact into the build directory and ``build-helper-maven-plugin``
registers that directory as an extra source root. The library dependency
is then bumped to the new version.
"""

from enum import Enum
from pathlib import Path
from typing import List, Optional

from .cli_config import MutationConfig
from .coordinate import ArtifactCoordinate
from .descriptor import BuildDescriptor, DependencyEntry, PluginDeclaration, PluginExecution
from .error_handling import DependencyMatchError
from .structured_logging import log_dependency_not_found, log_dependency_upgraded


class MatchPolicy(Enum):
    """How the dependency bump treats zero or several matching entries."""

    # First matching entry wins; no match leaves the descriptor untouched.
    FIRST_MATCH = "ignore"
    # Exactly one entry must match.
    STRICT = "fail"


def build_dependency_plugin(
    client: ArtifactCoordinate,
    version: str = "3.1.1",
    output_directory: str = "${project.build.directory}/extracted-sources",
) -> PluginDeclaration:
    """``maven-dependency-plugin`` unpacking the client's sources during process-sources."""
    configuration = (
        "<configuration><artifactItems><artifactItem>"
        f"<groupId>{client.group}</groupId>"
        f"<artifactId>{client.artifact}</artifactId>"
        f"<version>{client.version}</version>"
        "<classifier>sources</classifier>"
        "<overWrite>true</overWrite>"
        f"<outputDirectory>{output_directory}</outputDirectory>"
        "</artifactItem></artifactItems></configuration>"
    )
    return PluginDeclaration(
        group="org.apache.maven.plugins",
        artifact="maven-dependency-plugin",
        version=version,
        executions=[
            PluginExecution(
                id="unpack",
                phase="process-sources",
                goals=["unpack"],
                configuration=configuration,
            )
        ],
    )


def build_source_plugin(
    version: str = "3.0.0",
    source_directory: str = "${project.build.directory}/extracted-sources",
) -> PluginDeclaration:
    """``build-helper-maven-plugin`` adding the unpacked sources as a source root."""
    return PluginDeclaration(
        group="org.codehaus.mojo",
        artifact="build-helper-maven-plugin",
        version=version,
        executions=[
            PluginExecution(
                id="add-source",
                phase="generate-sources",
                goals=["add-source"],
                configuration=(
                    f"<configuration><sources><source>{source_directory}</source>"
                    "</sources></configuration>"
                ),
            )
        ],
    )


class DescriptorMutator:
    """Applies the plugin insertions and the version bump to a descriptor."""

    def __init__(self, config: Optional[MutationConfig] = None):
        self.config = config or MutationConfig()
        self.policy = MatchPolicy(self.config.on_missing)

    def plugins_for(self, client: ArtifactCoordinate) -> List[PluginDeclaration]:
        return [
            build_dependency_plugin(
                client,
                self.config.dependency_plugin_version,
                self.config.extracted_sources_dir,
            ),
            build_source_plugin(
                self.config.build_helper_version,
                self.config.extracted_sources_dir,
            ),
        ]

    def insert_plugins(self, descriptor: BuildDescriptor) -> None:
        """
        Add both plugin declarations.

        By default they are appended unconditionally, so mutating the same
        descriptor twice leaves two copies of each. With
        ``replace_existing_plugins`` an existing declaration with the same
        (group, artifact) is updated in place instead.
        """
        descriptor.ensure_build()
        for plugin in self.plugins_for(descriptor.coordinate):
            if self.config.replace_existing_plugins:
                descriptor.replace_plugin(plugin)
            else:
                descriptor.add_plugin(plugin)

    def bump_dependency(
        self, descriptor: BuildDescriptor, group: str, artifact: str, version: str
    ) -> Optional[DependencyEntry]:
        """
        Set the version of the dependency identified by (group, artifact).

        Returns:
            The updated entry, or None when nothing matched under FIRST_MATCH

        Raises:
            DependencyMatchError: Under STRICT, when zero or several entries match
        """
        matches = [d for d in descriptor.dependencies if d.matches(group, artifact)]

        if self.policy is MatchPolicy.STRICT and len(matches) != 1:
            raise DependencyMatchError(
                f"Expected exactly one dependency {group}:{artifact}, found {len(matches)}"
            )

        if not matches:
            log_dependency_not_found(f"{group}:{artifact}")
            return None

        entry = matches[0]
        previous = entry.version
        entry.version = version
        log_dependency_upgraded(f"{group}:{artifact}", previous, version)
        return entry

    def mutate(
        self, descriptor: BuildDescriptor, group: str, artifact: str, version: str
    ) -> Optional[DependencyEntry]:
        """Insert both plugins and bump the dependency, without writing."""
        self.insert_plugins(descriptor)
        return self.bump_dependency(descriptor, group, artifact, version)

    def mutate_file(self, path: Path, group: str, artifact: str, version: str) -> BuildDescriptor:
        """Read, mutate and write back the descriptor at ``path``."""
        descriptor = BuildDescriptor.read(path)
        self.mutate(descriptor, group, artifact, version)
        descriptor.write(path)
        return descriptor
