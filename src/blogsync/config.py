"""Application configuration defaults."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from blogsync.errors import ConfigError
from blogsync.utils.files import join_path

PROVIDERS = ("git", "memory")


@dataclass(slots=True)
class AppConfig:
    polling_enabled: bool = True
    poll_interval: float = 60.0
    languages: tuple[str, ...] = ("en",)
    content_folder: str = "posts"
    meta_folder: str = "meta"
    settings_file: str = "blog.yml"
    source_location: str = "."
    repository_provider: str = "git"
    checkout_dir: Path | None = None
    branch: str | None = None
    source_timeout: float = 30.0
    extension: str = ".md"
    max_poll_interval: float = 600.0
    backoff_factor: float = 2.0

    def __post_init__(self) -> None:
        if isinstance(self.languages, str):
            self.languages = (self.languages,)
        self.languages = tuple(self.languages)
        if not self.languages:
            raise ConfigError("At least one language must be configured")
        if len(set(self.languages)) != len(self.languages):
            raise ConfigError(f"Duplicate languages in {self.languages!r}")
        if self.poll_interval <= 0:
            raise ConfigError("poll_interval must be positive")
        if self.backoff_factor < 1:
            raise ConfigError("backoff_factor must be at least 1")
        if self.repository_provider not in PROVIDERS:
            raise ConfigError(
                f"Unknown repository_provider {self.repository_provider!r}, "
                f"expected one of {', '.join(PROVIDERS)}"
            )
        if not self.extension.startswith("."):
            self.extension = "." + self.extension
        if self.checkout_dir is not None:
            self.checkout_dir = Path(self.checkout_dir)

    @property
    def default_language(self) -> str:
        return self.languages[0]

    def language_folder(self, language: str) -> str:
        """Content folder of a language, relative to the repository root."""
        if language == self.default_language:
            return self.content_folder
        return join_path(self.content_folder, language)

    def meta_path(self, language: str, identity: str) -> str:
        if language == self.default_language:
            return join_path(self.meta_folder, f"{identity}.yml")
        return join_path(self.meta_folder, f"{language}/{identity}.yml")

    def settings_path(self, language: str) -> str:
        return join_path(self.language_folder(language), self.settings_file)

    def resolve_checkout_dir(self, base_dir: Path | None = None) -> Path:
        """Local working copy of the repository."""
        if self.checkout_dir is not None:
            path = Path(self.checkout_dir)
        else:
            name = self.source_location.rstrip("/").split("/")[-1]
            if name.endswith(".git"):
                name = name[: -len(".git")]
            path = Path(name or "repository")
        if path.is_absolute() or base_dir is None:
            return path
        return base_dir / path

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "AppConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**dict(values))

    @classmethod
    def from_yaml(cls, path: Path) -> "AppConfig":
        try:
            data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid configuration file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration file {path} must contain a mapping")
        return cls.from_mapping(data)
