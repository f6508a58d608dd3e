"""
Maven build descriptor (pom.xml) model.

The model is backed by the parsed XML tree, so every element the pipeline
does not touch (properties, profiles, repositories, comments) is written
back unchanged apart from indentation.
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from .coordinate import ArtifactCoordinate
from .error_handling import DescriptorError

POM_NAMESPACE = "http://maven.apache.org/POM/4.0.0"
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"
DEFAULT_PLUGIN_GROUP = "org.apache.maven.plugins"

ET.register_namespace("", POM_NAMESPACE)
ET.register_namespace("xsi", XSI_NAMESPACE)


def _local_name(tag: str) -> str:
    return tag.split("}")[-1] if "}" in tag else tag


@dataclass
class PluginExecution:
    """A ``<execution>`` of a build plugin.

    Attributes:
        id: Execution id, unique within the plugin.
        phase: Lifecycle phase the goals are bound to.
        goals: Goal names run during ``phase``.
        configuration: Opaque ``<configuration>...</configuration>`` XML text.
    """

    id: str
    phase: str
    goals: List[str] = field(default_factory=list)
    configuration: Optional[str] = None


@dataclass
class PluginDeclaration:
    """A ``<plugin>`` declaration with its executions."""

    group: str
    artifact: str
    version: Optional[str] = None
    executions: List[PluginExecution] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.group}:{self.artifact}"


class DependencyEntry:
    """Live view of one ``<dependency>`` element; setting ``version`` edits the tree."""

    def __init__(self, descriptor: "BuildDescriptor", element: ET.Element):
        self._descriptor = descriptor
        self.element = element

    @property
    def group(self) -> Optional[str]:
        return self._descriptor._text(self.element, "groupId")

    @property
    def artifact(self) -> Optional[str]:
        return self._descriptor._text(self.element, "artifactId")

    @property
    def version(self) -> Optional[str]:
        return self._descriptor._text(self.element, "version")

    @version.setter
    def version(self, value: str) -> None:
        version_el = self._descriptor._find(self.element, "version")
        if version_el is None:
            version_el = ET.SubElement(self.element, self._descriptor._tag("version"))
        version_el.text = value

    def matches(self, group: str, artifact: str) -> bool:
        return self.group == group and self.artifact == artifact

    def __repr__(self) -> str:
        return f"Dependency {{groupId={self.group}, artifactId={self.artifact}, version={self.version}}}"


class BuildDescriptor:
    """Mutable in-memory model of a Maven build descriptor."""

    def __init__(self, root: ET.Element, path: Optional[Path] = None):
        self.root = root
        self.path = path
        self.namespace = root.tag[1:].split("}")[0] if root.tag.startswith("{") else ""

    @classmethod
    def from_string(
        cls, text: Union[str, bytes], path: Optional[Path] = None
    ) -> "BuildDescriptor":
        """Parse descriptor XML, keeping comments.

        Bytes are decoded according to the XML declaration, UTF-8 by default.

        Raises:
            DescriptorError: If the text is not well-formed XML or not a project
        """
        parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True))
        try:
            root = ET.fromstring(text, parser=parser)
        except ET.ParseError as e:
            raise DescriptorError(f"Invalid XML format in {path or 'descriptor'}: {e}") from e

        if _local_name(root.tag) != "project":
            raise DescriptorError(
                f"Root element must be <project>, found <{_local_name(root.tag)}>"
            )
        return cls(root, path)

    @classmethod
    def read(cls, path: Path) -> "BuildDescriptor":
        """Read and parse a descriptor file.

        Raises:
            DescriptorError: If the file cannot be read or parsed
        """
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise DescriptorError(f"Cannot read descriptor {path}: {e}") from e
        return cls.from_string(data, path)

    def to_string(self) -> str:
        tree = ET.ElementTree(self.root)
        ET.indent(tree, space="  ")
        data = ET.tostring(self.root, encoding="UTF-8", xml_declaration=True)
        return data.decode("utf-8") + "\n"

    def write(self, path: Optional[Path] = None) -> Path:
        """Serialize the model, fully overwriting the target file.

        Raises:
            DescriptorError: If no target is known or the file cannot be written
        """
        target = Path(path) if path is not None else self.path
        if target is None:
            raise DescriptorError("No path to write the descriptor to")
        try:
            target.write_text(self.to_string(), encoding="utf-8")
        except OSError as e:
            raise DescriptorError(f"Cannot write descriptor {target}: {e}") from e
        return target

    def _tag(self, name: str) -> str:
        return f"{{{self.namespace}}}{name}" if self.namespace else name

    def _find(self, element: ET.Element, name: str) -> Optional[ET.Element]:
        return element.find(self._tag(name))

    def _findall(self, element: ET.Element, name: str) -> List[ET.Element]:
        return element.findall(self._tag(name))

    def _text(self, element: ET.Element, name: str) -> Optional[str]:
        child = self._find(element, name)
        if child is not None and child.text:
            return child.text.strip()
        return None

    @property
    def coordinate(self) -> ArtifactCoordinate:
        """The project's own coordinate, inheriting group and version from ``<parent>``."""
        parent = self._find(self.root, "parent")
        group = self._text(self.root, "groupId")
        version = self._text(self.root, "version")
        if parent is not None:
            group = group or self._text(parent, "groupId")
            version = version or self._text(parent, "version")
        artifact = self._text(self.root, "artifactId")
        if not (group and artifact and version):
            raise DescriptorError(
                "Descriptor does not declare a complete groupId/artifactId/version"
            )
        return ArtifactCoordinate(group, artifact, version)

    @property
    def dependencies(self) -> List[DependencyEntry]:
        """Direct ``<dependencies>`` entries in document order."""
        deps_el = self._find(self.root, "dependencies")
        if deps_el is None:
            return []
        return [DependencyEntry(self, el) for el in self._findall(deps_el, "dependency")]

    @property
    def has_build(self) -> bool:
        return self._find(self.root, "build") is not None

    def ensure_build(self) -> ET.Element:
        """Return the ``<build>`` section, creating an empty one if absent."""
        build_el = self._find(self.root, "build")
        if build_el is None:
            build_el = ET.SubElement(self.root, self._tag("build"))
        return build_el

    def _plugins_element(self) -> ET.Element:
        build_el = self.ensure_build()
        plugins_el = self._find(build_el, "plugins")
        if plugins_el is None:
            plugins_el = ET.SubElement(build_el, self._tag("plugins"))
        return plugins_el

    def _plugin_elements(self) -> List[ET.Element]:
        build_el = self._find(self.root, "build")
        if build_el is None:
            return []
        plugins_el = self._find(build_el, "plugins")
        if plugins_el is None:
            return []
        return self._findall(plugins_el, "plugin")

    @property
    def plugins(self) -> List[PluginDeclaration]:
        """Snapshot of the ``<build><plugins>`` declarations in document order."""
        return [self._parse_plugin(el) for el in self._plugin_elements()]

    def _parse_plugin(self, plugin_el: ET.Element) -> PluginDeclaration:
        executions = []
        executions_el = self._find(plugin_el, "executions")
        if executions_el is not None:
            for exec_el in self._findall(executions_el, "execution"):
                goals_el = self._find(exec_el, "goals")
                goals = (
                    [g.text.strip() for g in self._findall(goals_el, "goal") if g.text]
                    if goals_el is not None
                    else []
                )
                config_el = self._find(exec_el, "configuration")
                executions.append(
                    PluginExecution(
                        id=self._text(exec_el, "id") or "default",
                        phase=self._text(exec_el, "phase") or "",
                        goals=goals,
                        configuration=(
                            ET.tostring(config_el, encoding="unicode")
                            if config_el is not None
                            else None
                        ),
                    )
                )
        return PluginDeclaration(
            group=self._text(plugin_el, "groupId") or DEFAULT_PLUGIN_GROUP,
            artifact=self._text(plugin_el, "artifactId") or "",
            version=self._text(plugin_el, "version"),
            executions=executions,
        )

    def _qualify(self, element: ET.Element) -> ET.Element:
        for el in element.iter():
            if isinstance(el.tag, str) and not el.tag.startswith("{"):
                el.tag = self._tag(el.tag)
        return element

    def _build_plugin_element(self, plugin: PluginDeclaration) -> ET.Element:
        plugin_el = ET.Element(self._tag("plugin"))
        ET.SubElement(plugin_el, self._tag("groupId")).text = plugin.group
        ET.SubElement(plugin_el, self._tag("artifactId")).text = plugin.artifact
        if plugin.version:
            ET.SubElement(plugin_el, self._tag("version")).text = plugin.version

        if plugin.executions:
            executions_el = ET.SubElement(plugin_el, self._tag("executions"))
            for execution in plugin.executions:
                exec_el = ET.SubElement(executions_el, self._tag("execution"))
                ET.SubElement(exec_el, self._tag("id")).text = execution.id
                ET.SubElement(exec_el, self._tag("phase")).text = execution.phase
                goals_el = ET.SubElement(exec_el, self._tag("goals"))
                for goal in execution.goals:
                    ET.SubElement(goals_el, self._tag("goal")).text = goal
                if execution.configuration:
                    try:
                        config_el = ET.fromstring(execution.configuration)
                    except ET.ParseError as e:
                        raise DescriptorError(
                            f"Invalid configuration for execution '{execution.id}' of {plugin.key}: {e}"
                        ) from e
                    exec_el.append(self._qualify(config_el))
        return plugin_el

    def add_plugin(self, plugin: PluginDeclaration) -> None:
        """Append a plugin declaration, even if one with the same key exists."""
        self._plugins_element().append(self._build_plugin_element(plugin))

    def replace_plugin(self, plugin: PluginDeclaration) -> bool:
        """
        Replace the first declaration with the same (group, artifact) in place.

        Returns:
            True if a declaration was replaced, False if it was appended instead
        """
        plugins_el = self._plugins_element()
        for index, existing in enumerate(list(plugins_el)):
            if not isinstance(existing.tag, str) or _local_name(existing.tag) != "plugin":
                continue
            if self._parse_plugin(existing).key == plugin.key:
                plugins_el.remove(existing)
                plugins_el.insert(index, self._build_plugin_element(plugin))
                return True
        plugins_el.append(self._build_plugin_element(plugin))
        return False
