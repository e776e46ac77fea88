"""Webhook signature checks and the review orchestration behind the HTTP layer."""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from . import broadcast
from .broadcast import BroadcastHub
from .config import Settings
from .engine import RuleEngine
from .errors import ExternalServiceError, ParseError, SignatureError, ValidationError, ok
from .github import GitHubClient
from .report import render_push_issue, render_review_comment, render_text_feedback
from .result import RuleResult, group_by_review_label

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="
PULL_REQUEST_ACTIONS = ("opened", "synchronize", "reopened")
ISSUE_LABELS = ("code-review",)


def sign(secret: str, body: bytes) -> str:
    """Return the ``X-Hub-Signature-256`` value for ``body``."""

    mac = hmac.new(secret.encode("utf-8"), msg=body, digestmod=hashlib.sha256)
    return SIGNATURE_PREFIX + mac.hexdigest()


def verify_signature(secret: str, body: bytes, header: Optional[str]) -> None:
    """Raise ``SignatureError`` unless ``header`` signs ``body`` with ``secret``."""

    if not header:
        raise SignatureError("missing X-Hub-Signature-256 header")
    expected = sign(secret, body).encode("ascii")
    if not hmac.compare_digest(expected, header.encode("utf-8", "surrogateescape")):
        raise SignatureError("signature mismatch")


class ReviewService:
    """Run the source catalog for API calls and webhook events, broadcasting progress."""

    def __init__(
        self,
        engine: RuleEngine,
        hub: BroadcastHub,
        github: GitHubClient,
        settings: Settings,
    ) -> None:
        self.engine = engine
        self.hub = hub
        self.github = github
        self.settings = settings

    # ------------------------------------------------------------------
    # Direct API
    # ------------------------------------------------------------------
    def review(self, path: Optional[str], content: Optional[Union[str, bytes]]) -> Dict[str, Any]:
        if not path or not content:
            raise ValidationError("Both a file path and its content are required")
        logger.info("Reviewing %s", path)
        self.hub.broadcast(broadcast.REVIEW_STARTED, {"file": path})
        result = self.engine.evaluate_source(path, content)
        response = ok(
            file=path,
            feedback=render_text_feedback(result, path),
            issuesBySeverity=group_by_review_label(result),
        )
        self.hub.broadcast(broadcast.REVIEW_COMPLETED, response)
        return response

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------
    async def handle_event(self, event: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        if event == "pull_request":
            return await self.handle_pull_request(payload)
        if event == "push":
            return await self.handle_push(payload)
        if event == "ping":
            return {"status": "pong", "zen": payload.get("zen")}
        logger.info("Ignoring unsupported webhook event %s", event)
        return {"status": "ignored", "event": event}

    async def handle_pull_request(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        action = payload.get("action")
        if action not in PULL_REQUEST_ACTIONS:
            return {"status": "ignored", "action": action}

        repo = _repo_name(payload)
        pull = payload.get("pull_request") or {}
        number = payload.get("number") or pull.get("number")
        head_sha = (pull.get("head") or {}).get("sha")
        if not repo or not number or not head_sha:
            raise ValidationError("pull_request payload is missing repository, number or head sha")

        self.hub.broadcast(broadcast.PR_REVIEW_STARTED, {"repository": repo, "number": number, "action": action})
        changed = await self.github.get_pull_request_files(repo, number)
        paths = [item["filename"] for item in changed if item.get("status") != "removed"]
        results, errors = await self._review_paths(repo, paths, head_sha)

        await self.github.create_issue_comment(repo, number, render_review_comment(results))
        summary = _batch_summary(results, errors)
        summary.update({"repository": repo, "number": number})
        self.hub.broadcast(broadcast.PR_REVIEW_COMPLETED, summary)
        return {"status": "reviewed", **summary}

    async def handle_push(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        ref = payload.get("ref") or ""
        branch = ref[len("refs/heads/"):] if ref.startswith("refs/heads/") else ref
        repo = _repo_name(payload)
        default_branch = (payload.get("repository") or {}).get("default_branch")
        if branch not in self.settings.default_branches and branch != default_branch:
            return {"status": "ignored", "ref": ref}
        if not repo:
            raise ValidationError("push payload is missing the repository")

        commits = payload.get("commits") or []
        head = payload.get("after") or ""
        self.hub.broadcast(
            broadcast.PUSH_DETECTED,
            {"repository": repo, "ref": ref, "commits": len(commits)},
        )
        results, errors = await self._review_paths(repo, changed_paths(commits), head)
        summary = _batch_summary(results, errors)
        summary.update({"repository": repo, "ref": ref})

        if summary["issues"]:
            issue = await self.github.create_issue(
                repo,
                title=f"Automated review: {summary['issues']} issue(s) in push to {branch}",
                body=render_push_issue(results, branch, head),
                labels=ISSUE_LABELS,
            )
            summary["issueNumber"] = issue.get("number")
            summary["issueUrl"] = issue.get("html_url")
            self.hub.broadcast(broadcast.ISSUE_CREATED, summary)
        self.hub.broadcast(broadcast.PUSH_ANALYZED, summary)
        return {"status": "reviewed", **summary}

    async def _review_paths(
        self,
        repo: str,
        paths: List[str],
        ref: str,
    ) -> Tuple[Dict[str, RuleResult], int]:
        """Review each path in isolation; failures are logged, counted and skipped."""

        results: Dict[str, RuleResult] = {}
        errors = 0
        for path in paths:
            try:
                content = await self.github.get_file_content(repo, path, ref)
                results[path] = self.engine.evaluate_source(path, content)
            except (ExternalServiceError, ParseError) as e:
                errors += 1
                logger.warning("Skipping %s in %s: %s", path, repo, e)
        return results, errors


def changed_paths(commits: List[Mapping[str, Any]]) -> List[str]:
    """Added or modified paths across ``commits``, in first-seen order, minus later removals."""

    paths: Dict[str, None] = {}
    for commit in commits:
        for key in ("added", "modified"):
            for path in commit.get(key) or []:
                paths.setdefault(path, None)
        for path in commit.get("removed") or []:
            paths.pop(path, None)
    return list(paths)


def _repo_name(payload: Mapping[str, Any]) -> Optional[str]:
    return (payload.get("repository") or {}).get("full_name")


def _batch_summary(results: Dict[str, RuleResult], errors: int) -> Dict[str, Any]:
    return {
        "filesReviewed": len(results),
        "filesWithIssues": sum(1 for result in results.values() if result.findings),
        "issues": sum(len(result.findings) for result in results.values()),
        "errors": errors,
    }
