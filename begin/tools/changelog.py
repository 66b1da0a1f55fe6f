"""Changelog generator for conventional (angular preset) commit messages."""

from __future__ import annotations

import datetime as dt
import json
import re
import subprocess
from pathlib import Path

from pydantic import BaseModel

from begin.utils.exceptions import ToolError
from begin.utils.logging import get_logger

logger = get_logger("tools.changelog")

_HEADER = re.compile(r"^(?P<type>\w+)(?:\((?P<scope>[^)]*)\))?(?P<bang>!)?: (?P<subject>.+)$")
_BREAKING = re.compile(r"^BREAKING[ -]CHANGES?:\s*(?P<note>.+)", re.MULTILINE | re.DOTALL)

_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"

# angular preset: commit type -> section title, in output order
SECTIONS: dict[str, str] = {
    "feat": "Features",
    "fix": "Bug Fixes",
    "perf": "Performance Improvements",
    "revert": "Reverts",
}


class Commit(BaseModel):
    hash: str
    type: str
    scope: str = ""
    subject: str
    breaking: str = ""


def parse_commit(hash_: str, subject: str, body: str = "") -> Commit | None:
    """Parse one commit; returns ``None`` for non-conventional messages."""
    match = _HEADER.match(subject.strip())
    if match is None:
        return None
    breaking = ""
    note = _BREAKING.search(body or "")
    if note:
        breaking = note.group("note").strip()
    elif match.group("bang"):
        breaking = match.group("subject")
    return Commit(
        hash=hash_,
        type=match.group("type"),
        scope=match.group("scope") or "",
        subject=match.group("subject"),
        breaking=breaking,
    )


def render_section(commits: list[Commit], version: str, date: dt.date) -> str:
    lines = [f"## {version} ({date.isoformat()})", ""]
    for commit_type, title in SECTIONS.items():
        selected = [c for c in commits if c.type == commit_type]
        if not selected:
            continue
        lines += [f"### {title}", ""]
        for commit in selected:
            scope = f"**{commit.scope}:** " if commit.scope else ""
            lines.append(f"* {scope}{commit.subject} ({commit.hash[:7]})")
        lines.append("")
    breaking = [c for c in commits if c.breaking]
    if breaking:
        lines += ["### BREAKING CHANGES", ""]
        lines += [f"* {c.breaking}" for c in breaking]
        lines.append("")
    return "\n".join(lines) + "\n"


def read_commits(root: str | Path = ".") -> list[Commit]:
    """Read conventional commits since the most recent tag (or all history)."""
    since = _git(["describe", "--tags", "--abbrev=0"], root, check=False).strip()
    revision = f"{since}..HEAD" if since else "HEAD"
    log = _git(
        ["log", f"--format=%H{_FIELD_SEP}%s{_FIELD_SEP}%b{_RECORD_SEP}", revision],
        root,
    )
    commits: list[Commit] = []
    for entry in log.split(_RECORD_SEP):
        entry = entry.strip("\n")
        if not entry:
            continue
        hash_, subject, body = (entry.split(_FIELD_SEP) + ["", ""])[:3]
        commit = parse_commit(hash_, subject, body)
        if commit is not None:
            commits.append(commit)
    return commits


def project_version(root: str | Path = ".") -> str:
    manifest = Path(root) / "package.json"
    if manifest.is_file():
        try:
            return str(json.loads(manifest.read_text(encoding="utf-8")).get("version", "Unreleased"))
        except json.JSONDecodeError:
            logger.warning("manifest_unreadable", path=str(manifest))
    return "Unreleased"


def update_changelog(
    root: str | Path = ".",
    filename: str = "CHANGELOG.md",
    preset: str = "angular",
    today: dt.date | None = None,
) -> Path:
    """Prepend a section for the unreleased commits to *filename*."""
    if preset != "angular":
        raise ToolError("changelog", f"Unsupported preset: {preset}")
    commits = read_commits(root)
    section = render_section(commits, project_version(root), today or dt.date.today())
    path = Path(root) / filename
    existing = path.read_text(encoding="utf-8") if path.exists() else ""
    path.write_text(section + ("\n" + existing if existing else ""), encoding="utf-8")
    logger.info("changelog_updated", path=str(path), commits=len(commits))
    return path


def _git(args: list[str], root: str | Path, check: bool = True) -> str:
    try:
        proc = subprocess.run(
            ["git", *args],
            cwd=str(root),
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise ToolError("changelog", "git is not installed") from exc
    if proc.returncode != 0:
        if check:
            raise ToolError("changelog", proc.stderr.strip() or f"git {args[0]} failed")
        return ""
    return proc.stdout
