"""
GraphQL documents and response shaping for the dashboard views.

Everything here is pure: functions take decoded GitHub payloads and return
dashboard models. Responses are navigated defensively because GraphQL may
return partial data alongside field errors.
"""

from __future__ import annotations

import re
from typing import Any

from opsboard.core.github.models import (
    Assignee,
    Board,
    BoardCard,
    Label,
    PipelineGate,
    PipelineItem,
    PipelineReport,
    PullRequestSummary,
    PullReview,
)

BOARD_QUERY = """
query($org: String!, $number: Int!) {
  organization(login: $org) {
    projectV2(number: $number) {
      title
      items(first: 100, orderBy: {field: POSITION, direction: ASC}) {
        nodes {
          id
          fieldValues(first: 20) {
            nodes {
              ... on ProjectV2ItemFieldTextValue { text field { ... on ProjectV2Field { name } } }
              ... on ProjectV2ItemFieldSingleSelectValue { name field { ... on ProjectV2SingleSelectField { name } } }
              ... on ProjectV2ItemFieldDateValue { date field { ... on ProjectV2Field { name } } }
            }
          }
          content {
            ... on Issue {
              number title state body url
              labels(first: 10) { nodes { name color } }
              assignees(first: 5) { nodes { login avatarUrl } }
              createdAt updatedAt closedAt
            }
            ... on PullRequest {
              number title state url
              createdAt updatedAt
            }
          }
        }
      }
    }
  }
}
"""

PULLS_QUERY = """
query($org: String!) {
  organization(login: $org) {
    repositories(first: 10, orderBy: {field: UPDATED_AT, direction: DESC}) {
      nodes {
        name
        pullRequests(first: 20, states: [OPEN, MERGED, CLOSED], orderBy: {field: UPDATED_AT, direction: DESC}) {
          nodes {
            number title state isDraft
            createdAt updatedAt mergedAt closedAt url
            additions deletions changedFiles
            author { login avatarUrl }
            labels(first: 5) { nodes { name color } }
            reviewDecision
            reviews(first: 5) { nodes { author { login } state } }
            headRefName baseRefName
          }
        }
      }
    }
  }
}
"""

DEFAULT_COLUMNS = ("Todo", "In Progress", "Done")
STATUS_FIELD = "Status"
PRIORITY_FIELD = "우선순위"
ASSIGNEE_FIELD = "담당"

# Stage order, most advanced first. The first keyword match wins.
PIPELINE_STAGES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("scaleup", ("revenue", "scale", "stage6")),
    ("mvp", ("pitch", "mvp", "stage5", "execution", "curriculum")),
    ("strategy", ("strategy", "roadmap", "bizplan", "stage4")),
    ("research", ("research", "debate", "discussion", "stage3")),
    ("trend", ("trend", "stage2")),
    ("brainstorm", ("brainstorm", "stage1")),
)
STAGE_ORDER = {
    "brainstorm": 1,
    "trend": 2,
    "research": 3,
    "strategy": 4,
    "mvp": 5,
    "scaleup": 6,
}
GATE_COUNT = 5
GATE_FILE_RE = re.compile(r"^gate-(\d+)-decision\.md$", re.IGNORECASE)
PIPELINE_DIR_RE = re.compile(r"^(\d+)-(.+)$")
EXCLUDED_REPORTS = {"lessons-learned.md"}


def _nodes(container: Any) -> list[Any]:
    if isinstance(container, dict):
        nodes = container.get("nodes")
        if isinstance(nodes, list):
            return [n for n in nodes if n is not None]
    return []


def _dig(payload: Any, *path: str) -> Any:
    current = payload
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _label(node: dict[str, Any]) -> Label:
    return Label(name=node.get("name") or "", color=node.get("color") or "")


def build_board(payload: dict[str, Any]) -> Board:
    """
    Group project items into columns by their Status field.

    Items without content (e.g. draft items) are skipped. Items with an
    unknown status get their own column.

    Args:
        payload: GraphQL response for ``BOARD_QUERY``

    Returns:
        Board with columns keyed by status name
    """
    project = _dig(payload, "data", "organization", "projectV2") or {}
    items = _nodes(project.get("items"))
    columns: dict[str, list[BoardCard]] = {name: [] for name in DEFAULT_COLUMNS}

    for item in items:
        content = item.get("content")
        if not content:
            continue

        status = "Todo"
        priority = ""
        assignee = ""
        for value in _nodes(item.get("fieldValues")):
            field_name = _dig(value, "field", "name")
            if field_name == STATUS_FIELD:
                status = value.get("name") or "Todo"
            elif field_name == PRIORITY_FIELD:
                priority = value.get("name") or ""
            elif field_name == ASSIGNEE_FIELD:
                assignee = value.get("name") or ""

        card = BoardCard(
            id=item.get("id", ""),
            number=content.get("number"),
            title=content.get("title") or "",
            state=content.get("state") or "",
            url=content.get("url") or "",
            body=content.get("body") or "",
            labels=[_label(label) for label in _nodes(content.get("labels"))],
            assignees=[
                Assignee(login=a.get("login", ""), avatar_url=a.get("avatarUrl") or "")
                for a in _nodes(content.get("assignees"))
            ],
            priority=priority,
            assignee=assignee,
            created_at=content.get("createdAt"),
            updated_at=content.get("updatedAt"),
        )
        columns.setdefault(status, []).append(card)

    return Board(
        title=project.get("title") or "Board",
        columns=columns,
        total_items=len(items),
    )


def flatten_pulls(payload: dict[str, Any]) -> list[PullRequestSummary]:
    """
    Flatten pull requests across repositories, newest update first.

    Args:
        payload: GraphQL response for ``PULLS_QUERY``

    Returns:
        Pull request summaries sorted by ``updated_at`` descending
    """
    pulls: list[PullRequestSummary] = []
    repos = _nodes(_dig(payload, "data", "organization", "repositories"))

    for repo in repos:
        for pr in _nodes(repo.get("pullRequests")):
            author = pr.get("author") or {}
            pulls.append(
                PullRequestSummary(
                    repo=repo.get("name", ""),
                    number=pr.get("number", 0),
                    title=pr.get("title") or "",
                    state=pr.get("state") or "",
                    is_draft=bool(pr.get("isDraft")),
                    created_at=pr.get("createdAt"),
                    updated_at=pr.get("updatedAt"),
                    merged_at=pr.get("mergedAt"),
                    url=pr.get("url") or "",
                    additions=pr.get("additions") or 0,
                    deletions=pr.get("deletions") or 0,
                    changed_files=pr.get("changedFiles") or 0,
                    author=author.get("login") or "unknown",
                    author_avatar=author.get("avatarUrl") or "",
                    labels=[_label(label) for label in _nodes(pr.get("labels"))],
                    review_decision=pr.get("reviewDecision"),
                    reviews=[
                        PullReview(
                            author=_dig(review, "author", "login"),
                            state=review.get("state") or "",
                        )
                        for review in _nodes(pr.get("reviews"))
                    ],
                    branch=pr.get("headRefName") or "",
                    base_branch=pr.get("baseRefName") or "",
                )
            )

    # ISO 8601 timestamps sort lexicographically
    pulls.sort(key=lambda p: p.updated_at or "", reverse=True)
    return pulls


def classify_report_stage(filename: str) -> str:
    """
    Map a report filename to its pipeline stage by keyword.

    Example:
        >>> classify_report_stage("03-market-research.md")
        'research'
        >>> classify_report_stage("notes.md")
        'brainstorm'
    """
    lowered = filename.lower()
    for stage, keywords in PIPELINE_STAGES:
        if any(keyword in lowered for keyword in keywords):
            return stage
    return "brainstorm"


def build_pipeline_item(dir_name: str, files: list[dict[str, Any]]) -> PipelineItem:
    """
    Build a pipeline item from the contents of its directory.

    Args:
        dir_name: Directory name, conventionally ``NN-some-name``
        files: REST contents listing of the directory

    Returns:
        PipelineItem with classified reports, five gates and the latest stage
    """
    markdown = [
        f
        for f in files
        if isinstance(f, dict) and str(f.get("name", "")).endswith(".md")
    ]

    reports = [
        PipelineReport(
            name=f["name"],
            url=f.get("html_url") or "",
            stage=classify_report_stage(f["name"]),
        )
        for f in markdown
        if not f["name"].startswith("gate-") and f["name"] not in EXCLUDED_REPORTS
    ]

    gate_files: dict[int, dict[str, Any]] = {}
    for f in markdown:
        match = GATE_FILE_RE.match(f["name"])
        if match:
            gate_files.setdefault(int(match.group(1)), f)

    gates: list[PipelineGate] = []
    for number in range(1, GATE_COUNT + 1):
        gate_file = gate_files.get(number)
        if gate_file is not None:
            # Decision content is not fetched; an existing file counts as "go"
            gates.append(
                PipelineGate(
                    gate=number,
                    status="go",
                    file=gate_file["name"],
                    url=gate_file.get("html_url") or "",
                )
            )
        else:
            gates.append(PipelineGate(gate=number))

    latest_stage = max((STAGE_ORDER.get(r.stage, 0) for r in reports), default=0)

    match = PIPELINE_DIR_RE.match(dir_name)
    if match:
        item_id, name = match.group(1), match.group(2).replace("-", " ")
    else:
        item_id, name = "00", dir_name

    return PipelineItem(
        id=item_id,
        name=name,
        reports=reports,
        gates=gates,
        latest_stage=latest_stage,
    )


__all__ = [
    "BOARD_QUERY",
    "PULLS_QUERY",
    "build_board",
    "build_pipeline_item",
    "classify_report_stage",
    "flatten_pulls",
]
