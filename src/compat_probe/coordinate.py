from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ArtifactCoordinate:
    """A (group, artifact, version) triple identifying a published release."""

    group: str
    artifact: str
    version: str
    classifier: Optional[str] = None
    extension: str = "jar"

    @classmethod
    def parse(cls, coordinate: str) -> "ArtifactCoordinate":
        """
        Parse ``group:artifact[:extension[:classifier]]:version``.

        Raises:
            ValueError: If the string does not have three to five parts
        """
        parts = [part.strip() for part in coordinate.split(":")]
        if len(parts) < 3 or len(parts) > 5 or not all(parts):
            raise ValueError(
                f"Invalid coordinate '{coordinate}' (expected group:artifact:version)"
            )

        if len(parts) == 3:
            group, artifact, version = parts
            return cls(group, artifact, version)
        if len(parts) == 4:
            group, artifact, extension, version = parts
            return cls(group, artifact, version, extension=extension)
        group, artifact, extension, classifier, version = parts
        return cls(group, artifact, version, classifier=classifier, extension=extension)

    @property
    def key(self) -> str:
        return f"{self.group}:{self.artifact}"

    @property
    def file_name(self) -> str:
        suffix = f"-{self.classifier}" if self.classifier else ""
        return f"{self.artifact}-{self.version}{suffix}.{self.extension}"

    def repository_path(self) -> str:
        """Relative path of the artifact file in a Maven repository layout."""
        return "/".join(
            [*self.group.split("."), self.artifact, self.version, self.file_name]
        )

    def __str__(self) -> str:
        return f"{self.group}:{self.artifact}:{self.version}"
