from __future__ import annotations

from pathlib import Path

from ship.core.result import Err, Ok
from ship.output.console import MockConsole
from ship.platform.shell import Shell
from ship.services.release.changelog import Changelog, recommend_increment, rev_range
from ship.test._sandbox import GitSandbox


class TestRecommendIncrement:
    def test_fix_only_is_patch(self) -> None:
        assert recommend_increment(["fix: typo", "chore: deps"]) == "patch"

    def test_feature_is_minor(self) -> None:
        assert recommend_increment(["fix: typo", "feat(cli): add --set"]) == "minor"

    def test_breaking_footer_is_major(self) -> None:
        message = "feat: new config\n\nBREAKING CHANGE: options renamed"
        assert recommend_increment(["fix: a", message]) == "major"

    def test_bang_is_major(self) -> None:
        assert recommend_increment(["refactor(core)!: drop python 3.11"]) == "major"

    def test_empty(self) -> None:
        assert recommend_increment([]) == "patch"
        assert recommend_increment(["", "  "]) == "patch"


def test_rev_range() -> None:
    assert rev_range("1.2.3") == "1.2.3...HEAD"
    assert rev_range(None) == "HEAD"


class TestChangelog:
    def _repo(self, sandbox: GitSandbox) -> Path:
        work = sandbox.repo("work", tag="1.0.0")
        for message in ("fix: handle empty tag", "feat: add dist repo"):
            (work / "log.txt").write_text(message, encoding="utf-8")
            sandbox.commit_all(work, message)
        return work

    def test_create_since_tag(self, sandbox: GitSandbox) -> None:
        work = self._repo(sandbox)
        changelog = Changelog(Shell(work, MockConsole()), work)

        result = changelog.create('git log --pretty=format:"* %s" [REV_RANGE]', "1.0.0")

        assert result == Ok("* feat: add dist repo\n* fix: handle empty tag")

    def test_create_runs_in_dry_run(self, sandbox: GitSandbox) -> None:
        work = self._repo(sandbox)
        changelog = Changelog(Shell(work, MockConsole(), dry_run=True), work)
        result = changelog.create('git log --pretty=format:"%s" [REV_RANGE]', "1.0.0")
        assert isinstance(result, Ok)
        assert result.value is not None

    def test_messages_and_recommendation(self, sandbox: GitSandbox) -> None:
        work = self._repo(sandbox)
        changelog = Changelog(Shell(work, MockConsole()), work)
        assert changelog.messages("1.0.0") == ["feat: add dist repo", "fix: handle empty tag"]
        assert changelog.recommend("1.0.0") == "minor"

    def test_no_script(self, tmp_path: Path) -> None:
        changelog = Changelog(Shell(tmp_path, MockConsole()), tmp_path)
        assert changelog.create(None, None) == Ok(None)

    def test_failing_script(self, tmp_path: Path) -> None:
        changelog = Changelog(Shell(tmp_path, MockConsole()), tmp_path)
        result = changelog.create("exit 1", None)
        assert isinstance(result, Err)
        assert result.error.message == "Could not create changelog."
        assert result.error.kind == "external_failed"
