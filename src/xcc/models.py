"""Domain models for App Store Connect CI resources.

These dataclasses intentionally model only the subset of API payload fields
needed to pick a build source and start a build.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ReferenceKind(str, Enum):
    """Kind of an SCM git reference."""

    BRANCH = "BRANCH"
    TAG = "TAG"


class SourceType(str, Enum):
    """What a build run is started from."""

    GIT_REFERENCE = "Git Reference"
    PULL_REQUEST = "Pull Request"


@dataclass(slots=True)
class BundleId:
    """Represents a registered bundle identifier."""

    id: str
    identifier: str


@dataclass(slots=True)
class Product:
    """Represents an Xcode Cloud product (an app or framework)."""

    id: str
    name: str
    bundle_id: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.bundle_id:
            return f"{self.name} ({self.bundle_id})"
        return self.name


@dataclass(slots=True)
class Workflow:
    """Represents an Xcode Cloud workflow belonging to one product."""

    id: str
    name: str
    is_enabled: bool = True

    @property
    def display_name(self) -> str:
        if not self.is_enabled:
            return f"{self.name} (disabled)"
        return self.name


@dataclass(slots=True)
class Repository:
    """Represents the source-control repository backing a workflow."""

    id: str
    owner_name: str = ""
    repository_name: str = ""

    @property
    def display_name(self) -> str:
        if self.owner_name and self.repository_name:
            return f"{self.owner_name}/{self.repository_name}"
        return self.repository_name or self.id


@dataclass(slots=True)
class GitReference:
    """Represents a branch or tag in a repository."""

    id: str
    name: str
    kind: Optional[ReferenceKind] = None

    @property
    def display_name(self) -> str:
        if self.kind is None:
            return self.name
        return f"{self.name} ({self.kind.value.lower()})"


@dataclass(slots=True)
class PullRequest:
    """Represents a pull request in a repository."""

    id: str
    number: int
    title: str

    @property
    def display_name(self) -> str:
        return f"#{self.number} {self.title}"


@dataclass(slots=True)
class BuildRun:
    """Represents a build run returned after submission."""

    id: str
    number: Optional[int] = None
