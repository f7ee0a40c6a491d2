"""Rewrite-audit config — loads the TOML pairing file and groups endpoints into pairs."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from rewrite_errors import ConfigParseError, ConfigReadError, InvalidConfigError

logger = logging.getLogger(__name__)


class RepoType(str, Enum):
    SOURCE = "source"
    TARGET = "target"


class RepoSpec(BaseModel):
    """One ``[[repo]]`` table from the config file."""

    model_config = ConfigDict(populate_by_name=True)

    repository_path: Path = Field(alias="repository-path")
    repository_branch: str = Field(alias="repository-branch")
    match_key: str = Field(alias="match-key")
    repo_type: RepoType = Field(alias="repo-type")
    ignore: bool = False

    @field_validator("match_key", mode="before")
    @classmethod
    def _match_key_to_string(cls, value: Any) -> str:
        # bool is an int subclass; TOML booleans are not valid keys
        if isinstance(value, str):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        raise ValueError(f"match-key must be string or integer, found {value!r}")

    @field_validator("ignore", mode="before")
    @classmethod
    def _ignore_flag(cls, value: Any) -> bool:
        if value is None:
            return False
        if isinstance(value, bool):
            return value
        if isinstance(value, int):
            return value == 1
        raise ValueError(f"ignore must be boolean or integer, found {value!r}")


class RewriteConfig(BaseModel):
    """The whole config document: a list of endpoint entries."""

    model_config = ConfigDict(populate_by_name=True)

    repos: list[RepoSpec] = Field(alias="repo")


@dataclass(frozen=True)
class Endpoint:
    path: Path
    branch: str


@dataclass(frozen=True)
class RepoPair:
    key: str
    source: Endpoint
    target: Endpoint


@dataclass
class PairBuildOutput:
    """Valid pairs plus the endpoint paths that are tracked or ignored."""

    pairs: list[RepoPair] = field(default_factory=list)
    tracked_endpoints: list[Endpoint] = field(default_factory=list)
    ignored_paths: list[Path] = field(default_factory=list)

    @property
    def tracked_paths(self) -> list[Path]:
        return [endpoint.path for endpoint in self.tracked_endpoints]


def load_config(path: Path) -> RewriteConfig:
    """Read and validate the rewrite config file."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigReadError(path, str(e)) from e
    try:
        raw = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(path, str(e)) from e
    return parse_config(raw, path)


def parse_config(raw: dict[str, Any], path: Path) -> RewriteConfig:
    """Validate an already-parsed TOML document."""
    try:
        return RewriteConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigParseError(path, str(e)) from e


def build_pairs_with_paths(config: RewriteConfig) -> PairBuildOutput:
    """Group entries by match-key into source/target pairs.

    A key where any entry sets ``ignore`` is dropped from tracking and all of
    its paths are reported as ignored. Every other key needs exactly one
    source and one target.
    """
    groups: dict[str, list[RepoSpec]] = {}
    for spec in config.repos:
        groups.setdefault(spec.match_key, []).append(spec)

    output = PairBuildOutput()
    for key in sorted(groups):
        specs = groups[key]
        if any(spec.ignore for spec in specs):
            logger.debug("match-key %s is ignored", key)
            output.ignored_paths.extend(spec.repository_path for spec in specs)
            continue

        source: Endpoint | None = None
        target: Endpoint | None = None
        for spec in specs:
            endpoint = Endpoint(path=spec.repository_path, branch=spec.repository_branch)
            if spec.repo_type is RepoType.SOURCE:
                if source is not None:
                    raise InvalidConfigError(f"multiple source repos defined for match-key {key}")
                source = endpoint
            else:
                if target is not None:
                    raise InvalidConfigError(f"multiple target repos defined for match-key {key}")
                target = endpoint

        if source is None or target is None:
            raise InvalidConfigError(f"match-key {key} must define both source and target repos")
        output.pairs.append(RepoPair(key=key, source=source, target=target))
        output.tracked_endpoints.extend([source, target])

    return output


def build_pairs(config: RewriteConfig) -> list[RepoPair]:
    return build_pairs_with_paths(config).pairs
