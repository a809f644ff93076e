"""Typed views over the untyped per-tool ``raw_data`` payloads.

Each source gets its own variant that knows which fields carry people and
which field is the grouping container.  Parsing is lenient: wrong-typed
fields are dropped, never raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

EXCLUDED_BRANCHES = frozenset({"main", "master", "develop"})
_EXCLUDED_BRANCH_PREFIXES = ("release/", "release-", "hotfix/", "hotfix-")


def is_excluded_branch(branch: str) -> bool:
    """Long-lived branches carry no project signal."""
    return branch in EXCLUDED_BRANCHES or branch.startswith(_EXCLUDED_BRANCH_PREFIXES)


def _str(raw: dict, *keys: str) -> str | None:
    for key in keys:
        value = raw.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def _str_list(raw: dict, key: str) -> tuple[str, ...]:
    value = raw.get(key)
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(v for v in value if isinstance(v, str) and v)


@dataclass(frozen=True)
class RawData:
    """Common capability of every per-source payload variant."""

    source: ClassVar[str] = ""

    @classmethod
    def from_raw(cls, raw: dict) -> RawData:
        raise NotImplementedError

    def extract_container(self) -> str | None:
        raise NotImplementedError

    def extract_collaborators(self) -> list[str]:
        raise NotImplementedError


@dataclass(frozen=True)
class GithubRawData(RawData):
    source: ClassVar[str] = "github"

    author: str | None = None
    reviewers: tuple[str, ...] = ()
    requested_reviewers: tuple[str, ...] = ()
    mentions: tuple[str, ...] = ()
    head_ref: str | None = None
    branch: str | None = None
    repository: str | None = None

    @classmethod
    def from_raw(cls, raw: dict) -> GithubRawData:
        return cls(
            author=_str(raw, "author"),
            reviewers=_str_list(raw, "reviewers"),
            requested_reviewers=_str_list(raw, "requestedReviewers"),
            mentions=_str_list(raw, "mentions"),
            head_ref=_str(raw, "headRef"),
            branch=_str(raw, "branch"),
            repository=_str(raw, "repository"),
        )

    def extract_container(self) -> str | None:
        # Most specific first: PR feature branch, workflow branch, then repo.
        if self.head_ref and not is_excluded_branch(self.head_ref):
            return self.head_ref
        if self.branch and not is_excluded_branch(self.branch):
            return self.branch
        if self.repository:
            # Namespaced so a repo can never collide with a branch name.
            return f"repo:{self.repository}"
        return None

    def extract_collaborators(self) -> list[str]:
        people = [self.author] if self.author else []
        return people + list(self.reviewers) + list(self.requested_reviewers) + list(self.mentions)


@dataclass(frozen=True)
class JiraRawData(RawData):
    source: ClassVar[str] = "jira"

    assignee: str | None = None
    reporter: str | None = None
    watchers: tuple[str, ...] = ()
    mentions: tuple[str, ...] = ()
    epic_key: str | None = None

    @classmethod
    def from_raw(cls, raw: dict) -> JiraRawData:
        epic_key = None
        linked = raw.get("linkedIssues")
        if isinstance(linked, list):
            for issue in linked:
                if isinstance(issue, dict) and issue.get("type") == "Epic":
                    if isinstance(issue.get("key"), str):
                        epic_key = issue["key"]
                    break
        return cls(
            assignee=_str(raw, "assignee"),
            reporter=_str(raw, "reporter"),
            watchers=_str_list(raw, "watchers"),
            mentions=_str_list(raw, "mentions"),
            epic_key=epic_key,
        )

    def extract_container(self) -> str | None:
        return self.epic_key

    def extract_collaborators(self) -> list[str]:
        people = [p for p in (self.assignee, self.reporter) if p]
        return people + list(self.watchers) + list(self.mentions)


@dataclass(frozen=True)
class SlackRawData(RawData):
    source: ClassVar[str] = "slack"

    author: str | None = None
    user_id: str | None = None
    parent_author: str | None = None
    reply_author: str | None = None
    mentions: tuple[str, ...] = ()
    thread_ts: str | None = None

    @classmethod
    def from_raw(cls, raw: dict) -> SlackRawData:
        return cls(
            author=_str(raw, "author"),
            user_id=_str(raw, "userId"),
            parent_author=_str(raw, "parentAuthor"),
            reply_author=_str(raw, "replyAuthor"),
            mentions=_str_list(raw, "mentions"),
            thread_ts=_str(raw, "threadTs", "thread_ts"),
        )

    def extract_container(self) -> str | None:
        # Thread, not channel: a channel spans too many projects.
        return self.thread_ts

    def extract_collaborators(self) -> list[str]:
        people = [
            p for p in (self.author, self.user_id, self.parent_author, self.reply_author) if p
        ]
        return people + list(self.mentions)


@dataclass(frozen=True)
class ConfluenceRawData(RawData):
    source: ClassVar[str] = "confluence"

    creator: str | None = None
    last_modified_by: str | None = None
    watchers: tuple[str, ...] = ()
    mentions: tuple[str, ...] = ()
    space_key: str | None = None

    @classmethod
    def from_raw(cls, raw: dict) -> ConfluenceRawData:
        return cls(
            creator=_str(raw, "creator"),
            last_modified_by=_str(raw, "lastModifiedBy"),
            watchers=_str_list(raw, "watchers"),
            mentions=_str_list(raw, "mentions"),
            space_key=_str(raw, "spaceKey"),
        )

    def extract_container(self) -> str | None:
        return self.space_key

    def extract_collaborators(self) -> list[str]:
        people = [p for p in (self.creator, self.last_modified_by) if p]
        return people + list(self.watchers) + list(self.mentions)


@dataclass(frozen=True)
class FigmaRawData(RawData):
    source: ClassVar[str] = "figma"

    owner: str | None = None
    creator: str | None = None
    editors: tuple[str, ...] = ()
    commenters: tuple[str, ...] = ()
    file_key: str | None = None

    @classmethod
    def from_raw(cls, raw: dict) -> FigmaRawData:
        return cls(
            owner=_str(raw, "owner"),
            creator=_str(raw, "creator"),
            editors=_str_list(raw, "editors"),
            commenters=_str_list(raw, "commenters"),
            file_key=_str(raw, "fileKey"),
        )

    def extract_container(self) -> str | None:
        return self.file_key

    def extract_collaborators(self) -> list[str]:
        people = [p for p in (self.owner, self.creator) if p]
        return people + list(self.editors) + list(self.commenters)


RAW_DATA_VARIANTS: dict[str, type[RawData]] = {
    variant.source: variant
    for variant in (
        GithubRawData,
        JiraRawData,
        SlackRawData,
        ConfluenceRawData,
        FigmaRawData,
    )
}


def parse_raw_data(source: str, raw: dict | None) -> RawData | None:
    """Return the typed variant for ``source``, or ``None`` if unsupported."""
    variant = RAW_DATA_VARIANTS.get(source)
    if variant is None or not isinstance(raw, dict):
        return None
    return variant.from_raw(raw)
