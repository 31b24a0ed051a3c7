"""GitHub webhook verification and classification"""

import enum
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from app.exceptions import ConfigurationError
from app.security import (
    compute_signature,
    ensure_algorithm,
    parse_signature_header,
    signatures_match,
)

logger = logging.getLogger(__name__)


class TriggerKind(str, enum.Enum):
    ISSUE = "issue"
    PROJECT = "project"
    FULL = "full"


# GitHub sends the sha1 signature under the legacy header name.
SIGNATURE_HEADERS = {"sha1": "X-Hub-Signature", "sha256": "X-Hub-Signature-256"}

# event type -> (sync category, actions that warrant a sync)
SYNC_TRIGGERS: Dict[str, Tuple[TriggerKind, FrozenSet[str]]] = {
    "projects_v2_item": (
        TriggerKind.PROJECT,
        frozenset(
            {"created", "edited", "deleted", "converted", "reordered", "archived", "restored"}
        ),
    ),
    "issues": (
        TriggerKind.ISSUE,
        frozenset(
            {
                "opened",
                "edited",
                "deleted",
                "closed",
                "reopened",
                "assigned",
                "unassigned",
                "labeled",
                "unlabeled",
                "milestoned",
                "demilestoned",
            }
        ),
    ),
    "issue_comment": (TriggerKind.ISSUE, frozenset({"created", "edited", "deleted"})),
}


@dataclass(frozen=True)
class WebhookDecision:
    should_sync: bool
    kind: Optional[TriggerKind] = None


@dataclass(frozen=True)
class TriggerData:
    """Identifying fields of a delivery, for logging only."""

    kind: Optional[TriggerKind]
    action: Optional[str]
    item_id: Optional[str] = None
    project_id: Optional[str] = None
    issue_id: Optional[str] = None
    repository: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value if self.kind else None
        return {k: v for k, v in data.items() if v is not None}


class WebhookService:
    """Authenticates deliveries and decides whether they require a sync"""

    def __init__(self, secret: Optional[str], algorithm: str = "sha256"):
        try:
            self.algorithm = ensure_algorithm(algorithm)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        self.signature_header = SIGNATURE_HEADERS.get(self.algorithm, "X-Hub-Signature-256")
        self.secret = secret or ""
        if not self.secret:
            logger.warning(
                "GITHUB_WEBHOOK_SECRET not set. Webhook signature verification is disabled!"
            )

    def verify(self, payload: bytes, signature_header: Optional[str]) -> bool:
        """Check the signature over the exact raw body bytes"""
        if not self.secret:
            logger.warning(
                "SECURITY: webhook secret not configured, accepting delivery without "
                "signature verification"
            )
            return True

        parsed = parse_signature_header(signature_header)
        if parsed is None:
            logger.error("No valid signature provided in webhook request")
            return False
        if parsed.algorithm != self.algorithm:
            logger.error(
                f"Webhook signed with {parsed.algorithm}, expected {self.algorithm}"
            )
            return False

        expected = compute_signature(self.secret, payload, self.algorithm)
        return signatures_match(expected, signature_header)

    @staticmethod
    def classify(event: Optional[str], action: Optional[str]) -> WebhookDecision:
        trigger = SYNC_TRIGGERS.get(event or "")
        if trigger is None:
            return WebhookDecision(should_sync=False)
        kind, actions = trigger
        if (action or "") not in actions:
            return WebhookDecision(should_sync=False, kind=kind)
        return WebhookDecision(should_sync=True, kind=kind)

    @staticmethod
    def extract_trigger_data(event: Optional[str], payload: Mapping[str, Any]) -> TriggerData:
        """Pull identifying fields out of a delivery; does not scope the sync."""
        action = payload.get("action")
        if event == "projects_v2_item":
            item = payload.get("projects_v2_item") or {}
            return TriggerData(
                kind=TriggerKind.PROJECT,
                action=action,
                item_id=item.get("node_id") or _str_or_none(item.get("id")),
                project_id=item.get("project_node_id"),
            )
        if event in ("issues", "issue_comment"):
            issue = payload.get("issue") or {}
            return TriggerData(
                kind=TriggerKind.ISSUE,
                action=action,
                issue_id=issue.get("node_id") or _str_or_none(issue.get("id")),
                repository=(payload.get("repository") or {}).get("full_name"),
            )
        return TriggerData(kind=None, action=action)


def _str_or_none(value: Any) -> Optional[str]:
    return str(value) if value is not None else None
