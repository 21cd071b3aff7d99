"""Typed release options loading and access.

Options come from several sources which are merged by an explicit,
ordered precedence (first wins):

1. overrides passed by the caller (CLI flags, `--set key=value`)
2. CI detection (`non_interactive` when running under CI)
3. the `"ship"` table embedded in the manifest (package.json)
4. the local config file (.ship.toml)
5. defaults derived from the manifest (name, npm package info)
6. built-in defaults

The merged mapping is then parsed into frozen dataclasses so the release
core never reads untyped data.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from pathlib import Path

from .defaults import (
    DEFAULT_CHANGELOG,
    DEFAULT_OPTIONS,
    LOCAL_CONFIG_FILE,
    LOCAL_MANIFEST_FILE,
    MANIFEST_CONFIG_KEY,
)
from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_str_dict,
    deep_merge,
    get_bool,
    get_int,
    get_str,
    get_str_list,
    get_table,
)

__all__ = [
    "ConfigError",
    "DistOptions",
    "GitHubOptions",
    "GitLabOptions",
    "GitOptions",
    "NpmOptions",
    "ReleaseOptions",
    "ScriptsOptions",
    "is_ci",
    "load_options",
    "merge_layers",
    "read_manifest",
]

_CI_ENV_VARS = ("CI", "CONTINUOUS_INTEGRATION", "BUILD_NUMBER")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when options cannot be loaded or parsed."""

    message: str
    path: Path | None = None
    not_found: bool = False


@dataclass(frozen=True, slots=True)
class GitOptions:
    require_clean_working_dir: bool = True
    require_upstream: bool = True
    add_untracked_files: bool = False
    commit: bool = True
    commit_message: str = "Release ${version}"
    commit_args: str = ""
    tag: bool = True
    tag_name: str = "${version}"
    tag_annotation: str = "Release ${version}"
    tag_args: str = ""
    push: bool = True
    push_args: str = "--follow-tags"
    push_repo: str = "origin"

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> GitOptions:
        d = cls()
        return cls(
            require_clean_working_dir=get_bool(
                data, "require_clean_working_dir", d.require_clean_working_dir
            ),
            require_upstream=get_bool(data, "require_upstream", d.require_upstream),
            add_untracked_files=get_bool(data, "add_untracked_files", d.add_untracked_files),
            commit=get_bool(data, "commit", d.commit),
            commit_message=get_str(data, "commit_message") or d.commit_message,
            commit_args=get_str(data, "commit_args") or "",
            tag=get_bool(data, "tag", d.tag),
            tag_name=get_str(data, "tag_name") or d.tag_name,
            tag_annotation=get_str(data, "tag_annotation") or d.tag_annotation,
            tag_args=get_str(data, "tag_args") or "",
            push=get_bool(data, "push", d.push),
            push_args=get_str(data, "push_args") or "",
            push_repo=get_str(data, "push_repo") or d.push_repo,
        )


@dataclass(frozen=True, slots=True)
class GitHubOptions:
    release: bool = False
    release_name: str = "Release ${version}"
    release_notes: str | None = None
    pre_release: bool = False
    draft: bool = False
    token_ref: str = "GITHUB_TOKEN"
    assets: tuple[str, ...] = ()
    host: str | None = None
    timeout: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> GitHubOptions:
        d = cls()
        return cls(
            release=get_bool(data, "release", d.release),
            release_name=get_str(data, "release_name") or d.release_name,
            release_notes=get_str(data, "release_notes"),
            pre_release=get_bool(data, "pre_release", d.pre_release),
            draft=get_bool(data, "draft", d.draft),
            token_ref=get_str(data, "token_ref") or d.token_ref,
            assets=get_str_list(data, "assets") or (),
            host=get_str(data, "host"),
            timeout=get_int(data, "timeout") or 0,
        )


@dataclass(frozen=True, slots=True)
class GitLabOptions:
    release: bool = False
    release_name: str = "Release ${version}"
    release_notes: str | None = None
    token_ref: str = "GITLAB_TOKEN"
    assets: tuple[str, ...] = ()
    origin: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> GitLabOptions:
        d = cls()
        return cls(
            release=get_bool(data, "release", d.release),
            release_name=get_str(data, "release_name") or d.release_name,
            release_notes=get_str(data, "release_notes"),
            token_ref=get_str(data, "token_ref") or d.token_ref,
            assets=get_str_list(data, "assets") or (),
            origin=get_str(data, "origin"),
        )


@dataclass(frozen=True, slots=True)
class NpmOptions:
    name: str | None = None
    version: str | None = None
    private: bool = False
    publish: bool = True
    publish_path: str = "."
    tag: str = "latest"
    access: str | None = None
    otp: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> NpmOptions:
        d = cls()
        return cls(
            name=get_str(data, "name"),
            version=get_str(data, "version"),
            private=get_bool(data, "private", d.private),
            publish=get_bool(data, "publish", d.publish),
            publish_path=get_str(data, "publish_path") or d.publish_path,
            tag=get_str(data, "tag") or d.tag,
            access=get_str(data, "access"),
            otp=get_str(data, "otp"),
        )


@dataclass(frozen=True, slots=True)
class ScriptsOptions:
    """Hook commands; each may contain `${...}` placeholders."""

    before_start: str | None = None
    before_bump: str | None = None
    after_bump: str | None = None
    before_stage: str | None = None
    changelog: str | None = DEFAULT_CHANGELOG
    after_release: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ScriptsOptions:
        return cls(
            before_start=get_str(data, "before_start"),
            before_bump=get_str(data, "before_bump"),
            after_bump=get_str(data, "after_bump"),
            before_stage=get_str(data, "before_stage"),
            changelog=get_str(data, "changelog"),
            after_release=get_str(data, "after_release"),
        )


@dataclass(frozen=True, slots=True)
class DistOptions:
    """Distribution repository options.

    The `git`, `github`, `gitlab` and `npm` sections are effective values:
    the `dist.*` table overlaid on the matching top-level table.
    """

    repo: str | None = None
    stage_dir: str = ".stage"
    base_dir: str = "dist"
    files: tuple[str, ...] = ("**/*",)
    pkg_files: tuple[str, ...] = ()
    scripts: ScriptsOptions = field(default_factory=ScriptsOptions)
    git: GitOptions = field(default_factory=GitOptions)
    github: GitHubOptions = field(default_factory=GitHubOptions)
    gitlab: GitLabOptions = field(default_factory=GitLabOptions)
    npm: NpmOptions = field(default_factory=NpmOptions)

    @property
    def enabled(self) -> bool:
        return self.repo is not None


@dataclass(frozen=True, slots=True)
class ReleaseOptions:
    """Fully merged, read-only release options."""

    name: str
    increment: str | None = None
    pre_release: bool = False
    pre_release_id: str | None = None
    use: str = "git.tag"
    pkg_files: tuple[str, ...] = ("package.json",)
    interactive: bool = True
    dry_run: bool = False
    verbose: bool = False
    debug: bool = False
    metrics: bool = True
    git: GitOptions = field(default_factory=GitOptions)
    github: GitHubOptions = field(default_factory=GitHubOptions)
    gitlab: GitLabOptions = field(default_factory=GitLabOptions)
    npm: NpmOptions = field(default_factory=NpmOptions)
    scripts: ScriptsOptions = field(default_factory=ScriptsOptions)
    dist: DistOptions = field(default_factory=DistOptions)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ReleaseOptions:
        """Create ReleaseOptions from a merged mapping."""
        git: StrDict = get_table(data, "git") or {}
        github: StrDict = get_table(data, "github") or {}
        gitlab: StrDict = get_table(data, "gitlab") or {}
        npm: StrDict = get_table(data, "npm") or {}
        dist: StrDict = get_table(data, "dist") or {}

        dist_section = DistOptions(
            repo=get_str(dist, "repo"),
            stage_dir=get_str(dist, "stage_dir") or ".stage",
            base_dir=get_str(dist, "base_dir") or "dist",
            files=get_str_list(dist, "files") or ("**/*",),
            pkg_files=get_str_list(dist, "pkg_files") or (),
            scripts=ScriptsOptions.from_dict(get_table(dist, "scripts") or {}),
            git=GitOptions.from_dict(deep_merge(get_table(dist, "git") or {}, git)),
            github=GitHubOptions.from_dict(deep_merge(get_table(dist, "github") or {}, github)),
            gitlab=GitLabOptions.from_dict(deep_merge(get_table(dist, "gitlab") or {}, gitlab)),
            npm=NpmOptions.from_dict(deep_merge(get_table(dist, "npm") or {}, npm)),
        )

        pkg_files = get_str_list(data, "pkg_files")
        return cls(
            name=get_str(data, "name") or "unnamed",
            increment=get_str(data, "increment"),
            pre_release=get_bool(data, "pre_release", False),
            pre_release_id=get_str(data, "pre_release_id"),
            use=get_str(data, "use") or "git.tag",
            pkg_files=pkg_files if pkg_files is not None else (),
            interactive=not get_bool(data, "non_interactive", False),
            dry_run=get_bool(data, "dry_run", False),
            verbose=get_bool(data, "verbose", False),
            debug=get_bool(data, "debug", False),
            metrics=not get_bool(data, "disable_metrics", False),
            git=GitOptions.from_dict(git),
            github=GitHubOptions.from_dict(github),
            gitlab=GitLabOptions.from_dict(gitlab),
            npm=NpmOptions.from_dict(npm),
            scripts=ScriptsOptions.from_dict(get_table(data, "scripts") or {}),
            dist=dist_section,
        )

    def as_dict(self) -> StrDict:
        """Public snapshot used as templating context for hook commands."""
        return asdict(self)


def is_ci(env: Mapping[str, str] | None = None) -> bool:
    source = os.environ if env is None else env
    for key in _CI_ENV_VARS:
        value = source.get(key)
        if value is not None and value.strip().lower() not in ("", "0", "false"):
            return True
    return False


def _expand_pre_release(layer: Mapping[str, object]) -> StrDict:
    """Expand the `pre_release = "alpha"` shorthand.

    A string value turns on pre-release mode, sets `pre_release_id` and
    uses the id as npm dist-tag unless one is set explicitly.
    """
    out: StrDict = dict(layer)
    value = out.get("pre_release")
    if isinstance(value, str) and value.strip():
        pre_id = value.strip()
        out["pre_release"] = True
        out.setdefault("pre_release_id", pre_id)
        npm: StrDict = dict(get_table(out, "npm") or {})
        npm.setdefault("tag", pre_id)
        out["npm"] = npm
    return out


def read_manifest(path: Path) -> StrDict:
    """Read a JSON manifest; unreadable or missing manifests yield {}."""
    try:
        obj: object = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return as_str_dict(obj) or {}


def _parse_toml(path: Path, *, explicit: bool) -> Result[StrDict, ConfigError]:
    """Parse the local config file, handling missing and malformed files."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
    except FileNotFoundError:
        if not explicit:
            return Ok({})
        return Err(ConfigError(f"Config file not found: {path}", path=path, not_found=True))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def _derived_defaults(cwd: Path, manifest: Mapping[str, object]) -> StrDict:
    name = get_str(manifest, "name")
    return {
        "name": name or cwd.name,
        "npm": {
            "name": name,
            "version": get_str(manifest, "version"),
            "private": get_bool(manifest, "private", False),
            "publish": name is not None,
        },
    }


def merge_layers(
    *,
    overrides: Mapping[str, object],
    ci: bool,
    manifest_config: Mapping[str, object],
    local_config: Mapping[str, object],
    derived: Mapping[str, object],
) -> StrDict:
    """Merge option layers in documented precedence order (first wins)."""
    merged = deep_merge(
        _expand_pre_release(overrides),
        {"non_interactive": True} if ci else {},
        _expand_pre_release(manifest_config),
        _expand_pre_release(local_config),
        derived,
        DEFAULT_OPTIONS,
    )
    # Unattended runs always resolve a version.
    if not merged.get("increment") and merged.get("non_interactive") and not merged.get(
        "pre_release"
    ):
        merged["increment"] = "patch"
    return merged


def load_options(
    cwd: Path,
    *,
    overrides: Mapping[str, object] | None = None,
    config_path: Path | None = None,
    use_config: bool = True,
    manifest_path: Path | None = None,
    use_manifest: bool = True,
    env: Mapping[str, str] | None = None,
) -> Result[ReleaseOptions, ConfigError]:
    """Load and merge release options for a working directory.

    Args:
        cwd: Directory the release runs in
        overrides: Highest-precedence options (CLI)
        config_path: Explicit config file; missing file is an error
        use_config: Set False to ignore any local config file
        manifest_path: Explicit manifest (defaults to package.json)
        use_manifest: Set False to ignore the manifest entirely
        env: Environment used for CI detection

    Returns:
        Ok(ReleaseOptions) on success, Err(ConfigError) on failure
    """
    manifest: StrDict = {}
    if use_manifest:
        manifest = read_manifest(manifest_path or (cwd / LOCAL_MANIFEST_FILE))

    local: StrDict = {}
    if use_config:
        explicit = config_path is not None
        path = config_path if config_path is not None else cwd / LOCAL_CONFIG_FILE
        parsed = _parse_toml(path, explicit=explicit)
        if isinstance(parsed, Err):
            return parsed
        local = parsed.value

    merged = merge_layers(
        overrides=overrides or {},
        ci=is_ci(env),
        manifest_config=get_table(manifest, MANIFEST_CONFIG_KEY) or {},
        local_config=local,
        derived=_derived_defaults(cwd, manifest),
    )

    try:
        return Ok(ReleaseOptions.from_dict(merged))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid options structure: {e}"))
