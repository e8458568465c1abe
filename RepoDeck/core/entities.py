"""
Core domain entities for RepoDeck.
These represent the business objects in our system.
"""

from dataclasses import dataclass, field
from typing import Optional

TYPE_FORK = "Fork"
TYPE_PRIVATE = "Private"
TYPE_PUBLIC = "Public"


def make_repo_key(owner: str, name: str) -> str:
    """Build the "{owner}/{name}" key used by every annotation layer."""
    return f"{owner}/{name}"


def type_label_for(is_fork: bool, is_private: bool) -> str:
    """Forks win over visibility."""
    if is_fork:
        return TYPE_FORK
    return TYPE_PRIVATE if is_private else TYPE_PUBLIC


@dataclass
class RemoteRecord:
    """
    Repository entity as fetched from GitHub.
    Identity is the (owner, name) pair, compared as opaque strings.
    """
    name: str
    owner: str
    url: str
    description: Optional[str] = None
    primary_language: Optional[str] = None
    is_private: bool = False
    is_fork: bool = False
    star_count: int = 0
    created_at: str = ""
    disk_usage_kb: int = 0
    default_branch_commit_count: Optional[int] = None

    def __post_init__(self):
        """Validate repository data."""
        if not self.name or not self.owner:
            raise ValueError("name and owner are required")
        if self.star_count < 0:
            raise ValueError("star_count cannot be negative")
        if self.disk_usage_kb < 0:
            raise ValueError("disk_usage_kb cannot be negative")
        if (
            self.default_branch_commit_count is not None
            and self.default_branch_commit_count < 0
        ):
            raise ValueError("default_branch_commit_count cannot be negative")

    @property
    def repo_key(self) -> str:
        return make_repo_key(self.owner, self.name)

    def to_dict(self) -> dict:
        """Serialize for the persisted snapshot."""
        return {
            "name": self.name,
            "owner": self.owner,
            "url": self.url,
            "description": self.description,
            "primaryLanguage": self.primary_language,
            "isPrivate": self.is_private,
            "isFork": self.is_fork,
            "starCount": self.star_count,
            "createdAt": self.created_at,
            "diskUsageKB": self.disk_usage_kb,
            "defaultBranchCommitCount": self.default_branch_commit_count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RemoteRecord":
        """Inverse of to_dict. Raises KeyError/ValueError/TypeError on bad data."""
        return cls(
            name=data["name"],
            owner=data["owner"],
            url=data.get("url") or "",
            description=data.get("description"),
            primary_language=data.get("primaryLanguage"),
            is_private=bool(data.get("isPrivate", False)),
            is_fork=bool(data.get("isFork", False)),
            star_count=int(data.get("starCount") or 0),
            created_at=data.get("createdAt") or "",
            disk_usage_kb=int(data.get("diskUsageKB") or 0),
            default_branch_commit_count=data.get("defaultBranchCommitCount"),
        )


@dataclass
class AnnotationRecord:
    """User-authored annotations for one repository."""
    enabled: bool = False
    class_label: str = ""
    custom_urls: list[str] = field(default_factory=list)
    description_override: str = ""


@dataclass
class AnnotationState:
    """
    The bundled annotation layer, persisted and exported as one object.

    Every mapping except ``classes`` is keyed by repo key. Entries are
    created on first edit and only disappear when a field is cleared;
    keys that match no fetched repository are kept as they are.
    """
    classes: list[str] = field(default_factory=list)
    repo_classes: dict[str, str] = field(default_factory=dict)
    custom_urls: dict[str, list[str]] = field(default_factory=dict)
    repo_enabled: dict[str, bool] = field(default_factory=dict)
    repo_descriptions: dict[str, str] = field(default_factory=dict)

    def record_for(self, repo_key: str) -> AnnotationRecord:
        return AnnotationRecord(
            enabled=bool(self.repo_enabled.get(repo_key, False)),
            class_label=self.repo_classes.get(repo_key, ""),
            custom_urls=list(self.custom_urls.get(repo_key, [])),
            description_override=self.repo_descriptions.get(repo_key, ""),
        )

    def set_enabled(self, repo_key: str, enabled: bool):
        self.repo_enabled[repo_key] = bool(enabled)

    def set_class(self, repo_key: str, label: str):
        if label:
            self.repo_classes[repo_key] = label
        else:
            self.repo_classes.pop(repo_key, None)

    def set_description(self, repo_key: str, text: str):
        if text:
            self.repo_descriptions[repo_key] = text
        else:
            self.repo_descriptions.pop(repo_key, None)

    def add_url(self, repo_key: str, url: str):
        self.custom_urls[repo_key] = self.custom_urls.get(repo_key, []) + [url]

    def update_url(self, repo_key: str, index: int, url: str):
        urls = list(self.custom_urls.get(repo_key, []))
        if not 0 <= index < len(urls):
            raise IndexError(f"{repo_key} has no custom URL at index {index}")
        urls[index] = url
        self.custom_urls[repo_key] = urls

    def remove_url(self, repo_key: str, index: int):
        urls = list(self.custom_urls.get(repo_key, []))
        if not 0 <= index < len(urls):
            raise IndexError(f"{repo_key} has no custom URL at index {index}")
        del urls[index]
        if urls:
            self.custom_urls[repo_key] = urls
        else:
            self.custom_urls.pop(repo_key, None)

    def add_class(self, label: str) -> bool:
        """Append a label to the taxonomy. Returns False for blanks and duplicates."""
        label = label.strip()
        if not label or label in self.classes:
            return False
        self.classes.append(label)
        return True

    def remove_class(self, label: str) -> bool:
        """
        Drop a label from the taxonomy.
        Repositories already tagged with it keep the now dangling label.
        """
        if label not in self.classes:
            return False
        self.classes.remove(label)
        return True


@dataclass
class ViewRecord:
    """
    One fully reconciled repository, ready for display or export.
    Derived on demand, never persisted.
    """
    name: str
    owner: str
    url: str
    description: Optional[str]
    primary_language: Optional[str]
    is_private: bool
    is_fork: bool
    star_count: int
    created_at: str
    disk_usage_kb: int
    default_branch_commit_count: Optional[int]
    resolved_urls: list[str]
    resolved_description: str
    type_label: str
    enabled: bool
    class_label: str

    @property
    def repo_key(self) -> str:
        return make_repo_key(self.owner, self.name)
