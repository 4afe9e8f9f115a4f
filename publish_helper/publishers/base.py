"""Result types shared by the publish steps."""

from dataclasses import dataclass
from enum import Enum


class PublishStatus(Enum):
    """Status of a publish operation."""

    SUCCESS = "success"
    SKIPPED = "skipped"


@dataclass
class PublishResult:
    """Result of a publish operation.

    Attributes:
        status: Overall status
        message: Brief description
        version: Version that was (or already is) published
        package_url: Direct URL to the published package
        dist_tag: Dist-tag pointing at the version, if any
        published: True if this run uploaded the package
    """

    status: PublishStatus
    message: str
    version: str | None = None
    package_url: str | None = None
    dist_tag: str | None = None
    published: bool = False

    @classmethod
    def success(
        cls,
        message: str,
        version: str | None = None,
        package_url: str | None = None,
        dist_tag: str | None = None,
        published: bool = True,
    ) -> "PublishResult":
        """Create a successful publish result."""
        return cls(
            status=PublishStatus.SUCCESS,
            message=message,
            version=version,
            package_url=package_url,
            dist_tag=dist_tag,
            published=published,
        )

    @classmethod
    def skipped(
        cls,
        message: str,
        version: str | None = None,
        package_url: str | None = None,
        dist_tag: str | None = None,
    ) -> "PublishResult":
        """Create a skipped result (the desired state already holds)."""
        return cls(
            status=PublishStatus.SKIPPED,
            message=message,
            version=version,
            package_url=package_url,
            dist_tag=dist_tag,
        )
