"""Registry publishing: authentication and the npm publisher."""

from publish_helper.publishers.auth import (
    AuthSetup,
    TroubleshootingReport,
    build_troubleshooting_report,
    setup_auth,
)
from publish_helper.publishers.base import PublishResult, PublishStatus
from publish_helper.publishers.npm import NPMPublisher, is_benign_publish_error

__all__ = [
    "AuthSetup",
    "NPMPublisher",
    "PublishResult",
    "PublishStatus",
    "TroubleshootingReport",
    "build_troubleshooting_report",
    "is_benign_publish_error",
    "setup_auth",
]
