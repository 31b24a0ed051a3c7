import unittest
from datetime import date, datetime, timezone

from app.services.github_client import RawRecord
from app.services.items import (
    DateFieldValue,
    DraftContent,
    LinkedContent,
    ProjectItemType,
    SelectFieldValue,
    TextFieldValue,
)
from app.services.normalizer import (
    normalize_issue,
    normalize_project_item,
    parse_github_date,
    parse_github_datetime,
)


def _issue_node(**overrides):
    node = {
        "id": "I_1",
        "number": 12,
        "title": "Crash on save",
        "body": "Steps to reproduce",
        "url": "https://github.com/acme/api/issues/12",
        "state": "OPEN",
        "createdAt": "2024-03-01T10:00:00Z",
        "updatedAt": "2024-03-02T11:30:00Z",
        "closedAt": None,
        "author": {"login": "alice"},
        "assignees": {"nodes": [{"login": "bob"}, {"login": "carol"}]},
        "labels": {"nodes": [{"name": "bug", "color": "d73a4a"}]},
        "milestone": {"title": "v1.0", "dueOn": "2024-04-01T07:00:00Z"},
    }
    node.update(overrides)
    return node


def _project_parent():
    return {"id": "PVT_1", "title": "Roadmap", "number": 3}


class TimestampParsingTests(unittest.TestCase):
    def test_datetime_is_utc_aware(self):
        dt = parse_github_datetime("2024-03-02T11:30:00Z")
        self.assertEqual(dt, datetime(2024, 3, 2, 11, 30, tzinfo=timezone.utc))

    def test_offset_is_converted_to_utc(self):
        dt = parse_github_datetime("2024-03-02T11:30:00+02:00")
        self.assertEqual(dt, datetime(2024, 3, 2, 9, 30, tzinfo=timezone.utc))

    def test_date_only_and_timestamp_dates(self):
        self.assertEqual(parse_github_date("2024-04-01"), date(2024, 4, 1))
        self.assertEqual(parse_github_date("2024-04-01T07:00:00Z"), date(2024, 4, 1))


class NormalizeIssueTests(unittest.TestCase):
    def test_full_issue(self):
        issue = normalize_issue(RawRecord(node=_issue_node(), parent={"owner": "acme", "name": "api"}))

        self.assertEqual(issue.id, "I_1")
        self.assertEqual(issue.number, 12)
        self.assertEqual(issue.state, "open")
        self.assertEqual(issue.repository.full_name, "acme/api")
        self.assertEqual(issue.author, "alice")
        self.assertEqual(issue.assignees, ("bob", "carol"))
        self.assertEqual([l.name for l in issue.labels], ["bug"])
        self.assertEqual(issue.milestone.title, "v1.0")
        self.assertEqual(issue.milestone.due_on, date(2024, 4, 1))
        self.assertIsNone(issue.closed_at)

    def test_sparse_issue_defaults(self):
        node = _issue_node(body=None, author=None, assignees=None, labels=None, milestone=None)
        issue = normalize_issue(RawRecord(node=node, parent={"owner": "acme", "name": "api"}))

        self.assertEqual(issue.body, "")
        self.assertEqual(issue.author, "unknown")
        self.assertEqual(issue.assignees, ())
        self.assertEqual(issue.labels, ())
        self.assertIsNone(issue.milestone)

    def test_milestone_without_due_date(self):
        node = _issue_node(milestone={"title": "Backlog", "dueOn": None})
        issue = normalize_issue(RawRecord(node=node, parent={"owner": "acme", "name": "api"}))
        self.assertIsNone(issue.milestone.due_on)

    def test_missing_required_field_raises(self):
        node = _issue_node()
        del node["title"]
        with self.assertRaises(KeyError):
            normalize_issue(RawRecord(node=node, parent={"owner": "acme", "name": "api"}))


class NormalizeProjectItemTests(unittest.TestCase):
    def test_issue_item_with_field_values(self):
        node = {
            "id": "PVTI_1",
            "type": "ISSUE",
            "fieldValues": {
                "nodes": [
                    {"field": {"name": "Target Date"}, "date": "2024-05-10"},
                    {"field": {"name": "Status"}, "name": "In Progress"},
                    {"field": {"name": "Notes"}, "text": "check with ops"},
                    {},
                    {"field": {"name": "Empty"}},
                ]
            },
            "content": {
                "id": "I_9",
                "number": 9,
                "title": "Ship it",
                "body": None,
                "url": "https://github.com/acme/api/issues/9",
                "state": "CLOSED",
                "createdAt": "2024-03-01T10:00:00Z",
                "updatedAt": "2024-03-03T10:00:00Z",
                "closedAt": "2024-03-03T10:00:00Z",
                "assignees": {"nodes": [{"login": "bob"}]},
                "labels": {"nodes": [{"name": "feature", "color": "a2eeef"}]},
            },
        }

        item = normalize_project_item(RawRecord(node=node, parent=_project_parent()))

        self.assertEqual(item.type, ProjectItemType.ISSUE)
        self.assertEqual(item.project.title, "Roadmap")
        self.assertIsInstance(item.content, LinkedContent)
        self.assertEqual(item.content.state, "closed")
        self.assertEqual(item.content.body, "")
        self.assertEqual(item.field_values["Target Date"], DateFieldValue(date(2024, 5, 10)))
        self.assertEqual(item.field_values["Status"], SelectFieldValue("In Progress"))
        self.assertEqual(item.field_values["Notes"], TextFieldValue("check with ops"))
        self.assertNotIn("Empty", item.field_values)
        self.assertEqual(item.labels[0].name, "feature")
        self.assertEqual(item.assignees, ("bob",))

    def test_later_field_value_overwrites_earlier(self):
        node = {
            "id": "PVTI_1",
            "type": "ISSUE",
            "fieldValues": {
                "nodes": [
                    {"field": {"name": "Status"}, "name": "Todo"},
                    {"field": {"name": "Status"}, "name": "Done"},
                ]
            },
            "content": None,
        }
        item = normalize_project_item(RawRecord(node=node, parent=_project_parent()))
        self.assertEqual(item.field_text("Status"), "Done")
        self.assertIsNone(item.content)

    def test_draft_item_gets_project_url(self):
        node = {
            "id": "PVTI_2",
            "type": "DRAFT_ISSUE",
            "content": {
                "id": "DI_1",
                "title": "Plan offsite",
                "body": "Agenda TBD",
                "createdAt": "2024-03-01T10:00:00Z",
                "updatedAt": "2024-03-01T12:00:00Z",
                "assignees": {"nodes": []},
            },
        }
        parent = {"id": "PVT_1", "title": "Team Board", "number": 7}

        item = normalize_project_item(RawRecord(node=node, parent=parent))

        self.assertIsInstance(item.content, DraftContent)
        self.assertEqual(item.content.url, "https://github.com/users/Team%20Board/projects/7")
        self.assertEqual(item.labels, ())

    def test_unknown_item_type_raises(self):
        node = {"id": "PVTI_3", "type": "REDACTED", "content": None}
        with self.assertRaises(ValueError):
            normalize_project_item(RawRecord(node=node, parent=_project_parent()))


class ProjectItemFieldAccessTests(unittest.TestCase):
    def _item(self, field_values):
        node = {"id": "PVTI_1", "type": "ISSUE", "fieldValues": {"nodes": field_values}}
        return normalize_project_item(RawRecord(node=node, parent=_project_parent()))

    def test_field_text_is_case_insensitive(self):
        item = self._item([{"field": {"name": "status"}, "name": "Blocked"}])
        self.assertEqual(item.field_text("Status"), "Blocked")

    def test_date_field_accepts_iso_text(self):
        item = self._item([{"field": {"name": "Meeting Date"}, "text": "2024-06-01"}])
        self.assertEqual(item.date_field("Meeting Date"), date(2024, 6, 1))

    def test_date_field_is_case_insensitive(self):
        item = self._item([{"field": {"name": "meeting date"}, "date": "2024-06-01"}])
        self.assertEqual(item.date_field("Meeting Date"), date(2024, 6, 1))
        self.assertEqual(item.field_text("Meeting Date"), "2024-06-01")

    def test_date_field_ignores_unparseable_text(self):
        item = self._item([{"field": {"name": "Meeting Date"}, "text": "next week"}])
        self.assertIsNone(item.date_field("Meeting Date"))


if __name__ == "__main__":
    unittest.main()
