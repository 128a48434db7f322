"""Immutable configuration shared by the selector, compiler, publisher, and sinks."""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from gardenpub.utils.paths import PathRewriteRule, get_rewrite_rules


_REQUIRED_REMOTE_SETTINGS: tuple[tuple[str, str], ...] = (
    ("github_repo", "Config error: You need to define a GitHub repo in the settings"),
    ("github_user_name", "Config error: You need to define a GitHub Username in the settings"),
    ("github_token", "Config error: You need to define a GitHub Token in the settings"),
)


class PublishSettings(BaseModel):
    """Validated publishing configuration.

    Keys may be given in snake_case or in the camelCase form used by digital
    garden configuration files (``githubRepo``, ``exportPath`` and so on).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    github_repo: str = Field("", validation_alias=AliasChoices("github_repo", "githubRepo"))
    github_user_name: str = Field(
        "", validation_alias=AliasChoices("github_user_name", "githubUserName", "github_username")
    )
    github_token: str = Field("", repr=False, validation_alias=AliasChoices("github_token", "githubToken"))
    github_api_url: str = Field(
        "https://api.github.com", validation_alias=AliasChoices("github_api_url", "githubApiUrl")
    )
    branch: str | None = None
    vault_path: Path = Field(Path("."), validation_alias=AliasChoices("vault_path", "vaultPath"))
    export_path: Path | None = Field(None, validation_alias=AliasChoices("export_path", "exportPath"))
    path_rewrite_rules: str = Field(
        "", validation_alias=AliasChoices("path_rewrite_rules", "pathRewriteRules")
    )
    publish_flag: str = Field("dg-publish", validation_alias=AliasChoices("publish_flag", "publishFlag"))
    slugify_paths: bool = Field(False, validation_alias=AliasChoices("slugify_paths", "slugifyPaths"))
    operation_timeout: float = Field(
        30.0, gt=0, validation_alias=AliasChoices("operation_timeout", "operationTimeout")
    )
    dev_plugin_path: Path | None = Field(
        None, validation_alias=AliasChoices("dev_plugin_path", "devPluginPath")
    )

    @field_validator("github_repo", "github_user_name", "github_token", "path_rewrite_rules", mode="before")
    @classmethod
    def _strip_strings(cls, value: object) -> object:
        if value is None:
            return ""
        return value.strip() if isinstance(value, str) else value

    @field_validator("publish_flag")
    @classmethod
    def _ensure_flag_not_empty(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("publish_flag must not be empty.")
        return cleaned

    @property
    def rewrite_rules(self) -> list[PathRewriteRule]:
        return get_rewrite_rules(self.path_rewrite_rules)

    def remote_configuration_errors(self) -> list[str]:
        """Return one user-facing message per missing remote setting, in check order."""

        return [message for name, message in _REQUIRED_REMOTE_SETTINGS if not getattr(self, name)]
