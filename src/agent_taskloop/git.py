"""Git helpers for attempt diffing, auto-commit and benchmark branch isolation."""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from agent_taskloop.errors import GitStateError
from agent_taskloop.shell import CommandError, ExecFn, run_shell

if TYPE_CHECKING:
    from agent_taskloop.llm.operations import AIOperations

logger = logging.getLogger(__name__)

COMMIT_MESSAGE_PROMPT = """Based on the following git diff, generate a concise git commit message.

Task: {task_title}

Git Diff:
{diff}

Please respond in JSON format:
{{
  "message": "concise commit message following conventional commits format"
}}

The commit message should:
- Follow conventional commits format (feat:, fix:, refactor:, etc.)
- Be concise and descriptive
- Focus on what changed
"""

MAX_COMMIT_DIFF_CHARS = 10000


@dataclass
class GitState:
    head: str = ""
    has_uncommitted_changes: bool = False


@dataclass
class CommitInfo:
    message: str
    files: list[str] = field(default_factory=list)


class GitClient:
    """Thin wrapper over the git CLI. All commands go through ``exec_fn``."""

    def __init__(self, exec_fn: ExecFn = run_shell):
        self.exec_fn = exec_fn

    def _git(self, args: str) -> str:
        try:
            return self.exec_fn(f"git {args}").stdout
        except CommandError as e:
            raise GitStateError(f"git {args} failed: {e.stderr.strip() or e}") from e

    def head(self) -> str:
        return self._git("rev-parse HEAD").strip()

    def current_branch(self) -> str:
        return self._git("rev-parse --abbrev-ref HEAD").strip()

    def status_files(self) -> list[str]:
        """Paths with changes, unquoted. A rename reports its new path only."""
        entries = self._git("status --porcelain -z").split("\0")
        files = []
        i = 0
        while i < len(entries):
            entry = entries[i]
            i += 1
            if len(entry) < 4:
                continue
            files.append(entry[3:])
            # -z puts the source path of a rename or copy in the next field
            if "R" in entry[:2] or "C" in entry[:2]:
                i += 1
        return files

    def untracked_files(self) -> list[str]:
        out = self._git("ls-files --others --exclude-standard -z")
        return [path for path in out.split("\0") if path]

    def is_clean(self) -> bool:
        return self._git("status --porcelain").strip() == ""

    def create_branch(self, name: str, base: str = "HEAD") -> None:
        logger.info("Creating branch %s from %s", name, base)
        self._git(f"checkout -b {shlex.quote(name)} {shlex.quote(base)}")

    def checkout(self, name: str, force: bool = False) -> None:
        logger.info("Checking out branch %s%s", name, " (forced)" if force else "")
        flag = "-f " if force else ""
        self._git(f"checkout {flag}{shlex.quote(name)}")

    def delete_branch(self, name: str) -> None:
        logger.info("Deleting branch %s", name)
        self._git(f"branch -D {shlex.quote(name)}")

    def diff_range(self, ref_a: str, ref_b: str = "HEAD") -> str:
        return self._git(f"diff {shlex.quote(ref_a)}..{shlex.quote(ref_b)}")

    def diff_working_tree(self, ref: str = "HEAD") -> str:
        return self._git(f"diff {shlex.quote(ref)}")

    def diff_new_file(self, path: str) -> str:
        """Diff of an untracked file against an empty one."""
        command = f"git diff --no-index -- /dev/null {shlex.quote(path)}"
        try:
            return self.exec_fn(command).stdout
        except CommandError as e:
            # --no-index exits 1 when the files differ
            if e.returncode == 1:
                return e.stdout
            raise GitStateError(f"{command} failed: {e.stderr.strip() or e}") from e

    def discard_changes(self) -> None:
        """Drop tracked modifications and untracked files."""
        logger.info("Discarding working tree changes")
        self._git("reset --hard")
        self._git("clean -fd")

    def show_stat(self, ref: str) -> str:
        return self._git(f'show --stat --format="%s%n%b" {shlex.quote(ref)}')

    def capture_state(self) -> GitState:
        """Snapshot HEAD and dirtiness. Returns an empty state outside a repo."""
        try:
            return GitState(head=self.head(), has_uncommitted_changes=not self.is_clean())
        except GitStateError:
            return GitState()

    def has_new_commits_since(self, head: str) -> bool:
        if not head:
            return False
        try:
            return self.head() != head
        except GitStateError:
            return False

    def commit(self, info: CommitInfo) -> None:
        if info.files:
            logger.info("Staging files: %s", ", ".join(info.files))
            self._git("add -- " + " ".join(shlex.quote(f) for f in info.files))
        else:
            logger.info("Staging all changes")
            self._git("add -A")
        logger.info("Committing: %s", info.message)
        self._git(f"commit -m {shlex.quote(info.message)}")

    def commit_file(self, path: str, message: str) -> None:
        self.commit(CommitInfo(message=message, files=[path]))


def extract_commit_info(
    git: GitClient,
    task_title: str,
    before: GitState,
    ai_ops: AIOperations | None = None,
) -> CommitInfo:
    """Describe the work done since ``before`` as a commit.

    Uses the AI judge for the message when there are uncommitted changes;
    falls back to a fixed conventional message on any failure.
    """
    from agent_taskloop.llm.operations import extract_json_object

    fallback = f"feat: complete task {task_title}"
    try:
        after = git.capture_state()
        if before.head and after.head and before.head != after.head:
            lines = git.show_stat(after.head).strip().splitlines()
            message = lines[0].strip() if lines else fallback
            files = [line.split("|")[0].strip() for line in lines[1:] if "|" in line]
            return CommitInfo(message=message, files=files)

        if not after.has_uncommitted_changes:
            return CommitInfo(message=fallback)

        files = git.status_files()
        if ai_ops is None:
            return CommitInfo(message=fallback, files=files)

        diff = git.diff_working_tree()
        prompt = COMMIT_MESSAGE_PROMPT.format(task_title=task_title, diff=diff[:MAX_COMMIT_DIFF_CHARS])
        response = ai_ops.stream_text(
            prompt,
            system="You are a helpful assistant that generates git commit messages.",
        )
        parsed = extract_json_object(response) or {}
        message = parsed.get("message") if isinstance(parsed.get("message"), str) else None
        return CommitInfo(message=message or fallback, files=files)
    except Exception as e:
        logger.warning("Failed to extract commit info: %s", e)
        return CommitInfo(message=fallback)
