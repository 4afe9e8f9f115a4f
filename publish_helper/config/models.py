"""Pydantic v2 configuration models.

These models provide:
- PublishOptions: the immutable input of a publish run
- FileConfig: defaults read from an optional publish_conf.yml / publish.toml
- CIEnvironment: the CI environment variables, read once at startup
"""

from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from publish_helper.utils.version import sanitize_tag

DEFAULT_REGISTRY = "https://registry.npmjs.org/"

# GITHUB_EVENT_BEFORE of the first push to a branch
NULL_COMMIT_SHA = "0" * 40


class AuthMode(str, Enum):
    """How npm authenticates against the registry."""

    TOKEN = "token"
    OIDC = "oidc"
    NONE = "none"


class PublishOptions(BaseModel):
    """Configuration of a single publish run.

    Assembled once by the CLI from flags, the config file and the
    environment. Immutable for the rest of the run.
    """

    # Validation errors must not echo the access token
    model_config = ConfigDict(frozen=True, hide_input_in_errors=True)

    package_directory: Path = Field(description="Directory containing package.json")
    registry: str = Field(default=DEFAULT_REGISTRY, description="npm registry URL")
    tag: str | None = Field(default=None, description="Dist-tag to create/update")
    access_token: str | None = Field(
        default=None,
        description="npm access token (token auth mode)",
        repr=False,
    )
    use_oidc: bool = Field(default=False, description="Use OIDC trusted publishing")
    access: Literal["public", "restricted"] | None = Field(
        default=None,
        description="Package access level passed to npm publish",
    )
    use_hash_in_version: bool = Field(
        default=False,
        description="Append the short commit hash to the version",
    )
    use_tag_in_version: bool = Field(
        default=False,
        description="Append the dist-tag to the version",
    )
    create_git_tag: bool = Field(default=False, description="Create and push a git tag")
    git_tag_prefix: str | None = Field(
        default=None,
        description="Prefix for the git tag (e.g. 'release/')",
    )
    dry_run: bool = Field(default=False, description="Do not publish or tag")
    webhook_url: str | None = Field(
        default=None,
        description="Webhook receiving progress notifications",
        repr=False,
    )
    override_name: str | None = Field(default=None, description="Publish under this name")
    override_version: str | None = Field(
        default=None,
        description="Publish with this version",
    )
    llm_api_key: str | None = Field(
        default=None,
        description="API key used for commit summaries",
        repr=False,
    )
    prepare_package: bool = Field(
        default=False,
        description="Sync npmdef files and build the library before publishing",
    )

    @field_validator("tag")
    @classmethod
    def validate_tag(cls, v: str | None) -> str | None:
        # Raises ConfigurationError directly for tags such as "///"
        return sanitize_tag(v)

    @field_validator("registry")
    @classmethod
    def normalize_registry(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("registry must be an http(s) URL")
        return v.rstrip("/") + "/"

    @model_validator(mode="after")
    def check_auth_exclusive(self) -> "PublishOptions":
        if self.use_oidc and self.access_token:
            raise ValueError("access_token and OIDC publishing are mutually exclusive")
        return self

    @property
    def auth_mode(self) -> AuthMode:
        if self.access_token:
            return AuthMode.TOKEN
        if self.use_oidc:
            return AuthMode.OIDC
        return AuthMode.NONE


class FileConfig(BaseModel):
    """Defaults read from the optional config file in the package directory."""

    model_config = ConfigDict(extra="forbid")

    registry: str | None = None
    tag: str | None = None
    access: Literal["public", "restricted"] | None = None
    webhook: str | None = None
    oidc: bool = False
    create_tag: bool = False
    create_tag_prefix: str | None = None
    use_hash_in_version: bool = False
    use_tag_in_version: bool = False

    def as_option_values(self) -> dict[str, object]:
        """Map config file keys onto PublishOptions field names."""
        values: dict[str, object] = {
            "registry": self.registry,
            "tag": self.tag,
            "access": self.access,
            "webhook_url": self.webhook,
            "use_oidc": self.oidc,
            "create_git_tag": self.create_tag,
            "git_tag_prefix": self.create_tag_prefix,
            "use_hash_in_version": self.use_hash_in_version,
            "use_tag_in_version": self.use_tag_in_version,
        }
        return {key: value for key, value in values.items() if value is not None}


class CIEnvironment(BaseSettings):
    """CI environment variables consumed by the publish helper.

    Field names map case-insensitively to the variables of the same name
    (e.g. github_output <- GITHUB_OUTPUT).
    """

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    github_output: Path | None = None
    github_event_path: Path | None = None
    github_event_name: str | None = None
    github_base_ref: str | None = None
    github_head_ref: str | None = None
    github_sha: str | None = None
    github_event_before: str | None = None
    github_repository: str | None = None
    github_actor: str | None = None
    github_repository_visibility: str | None = None
    actions_id_token_request_url: str | None = None
    actions_id_token_request_token: str | None = Field(default=None, repr=False)
    llm_api_key: str | None = Field(default=None, repr=False)
    git_user_name: str | None = None
    git_user_email: str | None = None

    @property
    def is_pull_request(self) -> bool:
        return self.github_event_name in ("pull_request", "pull_request_target")

    @property
    def has_oidc_token_request(self) -> bool:
        """True when the workflow was granted the id-token: write permission."""
        return bool(self.actions_id_token_request_url and self.actions_id_token_request_token)

    @property
    def is_public_repository(self) -> bool:
        return (self.github_repository_visibility or "").lower() == "public"

    @property
    def push_range(self) -> tuple[str, str] | None:
        """The (before, after) commits of a push event, if known."""
        before = self.github_event_before
        if before and self.github_sha and before != NULL_COMMIT_SHA:
            return (before, self.github_sha)
        return None
