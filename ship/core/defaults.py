"""Built-in option defaults: the lowest precedence layer of the merge."""

from __future__ import annotations

from .structured import StrDict

LOCAL_CONFIG_FILE = ".ship.toml"
LOCAL_MANIFEST_FILE = "package.json"
MANIFEST_CONFIG_KEY = "ship"

DEFAULT_CHANGELOG = 'git log --pretty=format:"* %s (%h)" [REV_RANGE]'

DEFAULT_OPTIONS: StrDict = {
    "increment": None,
    "pre_release": False,
    "pre_release_id": None,
    "use": "git.tag",
    "pkg_files": ["package.json"],
    "non_interactive": False,
    "dry_run": False,
    "verbose": False,
    "debug": False,
    "disable_metrics": False,
    "scripts": {
        "before_start": None,
        "before_bump": None,
        "after_bump": None,
        "before_stage": None,
        "changelog": DEFAULT_CHANGELOG,
        "after_release": None,
    },
    "git": {
        "require_clean_working_dir": True,
        "require_upstream": True,
        "add_untracked_files": False,
        "commit": True,
        "commit_message": "Release ${version}",
        "commit_args": "",
        "tag": True,
        "tag_name": "${version}",
        "tag_annotation": "Release ${version}",
        "tag_args": "",
        "push": True,
        "push_args": "--follow-tags",
        "push_repo": "origin",
    },
    "github": {
        "release": False,
        "release_name": "Release ${version}",
        "release_notes": None,
        "pre_release": False,
        "draft": False,
        "token_ref": "GITHUB_TOKEN",
        "assets": None,
        "host": None,
        "timeout": 0,
    },
    "gitlab": {
        "release": False,
        "release_name": "Release ${version}",
        "release_notes": None,
        "token_ref": "GITLAB_TOKEN",
        "assets": None,
        "origin": None,
    },
    "npm": {
        "publish": True,
        "publish_path": ".",
        "tag": "latest",
        "private": False,
        "access": None,
        "otp": None,
    },
    "dist": {
        "repo": None,
        "stage_dir": ".stage",
        "base_dir": "dist",
        "files": ["**/*"],
        "pkg_files": None,
        "scripts": {
            "before_stage": None,
            "after_release": None,
        },
        "git": {"tag": False},
        "github": {"release": False},
        "gitlab": {"release": False},
        "npm": {"publish": False},
    },
}
