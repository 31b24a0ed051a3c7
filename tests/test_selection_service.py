import logging
import unittest

from sqlalchemy.orm import sessionmaker

from app.exceptions import ConfigurationError
from app.models import Base
from app.models.base import init_db, make_engine
from app.services.github_client import RawRecord, SourceKind
from app.services.selection_service import ProjectSelectionService


class _StubGitHub:
    def __init__(self, user_projects=(), org_projects=(), items=()):
        self.user_projects = list(user_projects)
        self.org_projects = list(org_projects)
        self.items = list(items)
        self.calls = []

    def fetch_user_projects(self, login):
        self.calls.append(("user", login))
        return self.user_projects

    def fetch_organization_projects(self, login):
        self.calls.append(("organization", login))
        return self.org_projects

    def fetch_all(self, kind, scope):
        self.calls.append((kind, str(scope)))
        return self.items


class SelectionServiceTestCase(unittest.TestCase):
    def setUp(self):
        logging.disable(logging.CRITICAL)
        self.engine = make_engine("sqlite://")
        init_db(self.engine)
        self.db = sessionmaker(bind=self.engine, autoflush=False)()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()
        logging.disable(logging.NOTSET)


class ProjectSelectionPersistenceTests(SelectionServiceTestCase):
    def test_no_rows_means_nothing_selected(self):
        svc = ProjectSelectionService(self.db)
        self.assertEqual(svc.get_all_selected_project_ids(), [])
        self.assertEqual(svc.get_selected_projects("alice")["project_ids"], [])

    def test_save_replaces_whole_selection(self):
        svc = ProjectSelectionService(self.db)

        svc.save_selected_projects("alice", ["PVT_1", "PVT_2", "PVT_1"])
        saved = svc.save_selected_projects("alice", ["PVT_3"])

        self.assertEqual(saved["project_ids"], ["PVT_3"])
        self.assertEqual(svc.get_selected_projects("alice")["project_ids"], ["PVT_3"])

    def test_save_dedupes_preserving_order(self):
        svc = ProjectSelectionService(self.db)
        saved = svc.save_selected_projects("alice", ["PVT_2", "PVT_1", "PVT_2", ""])
        self.assertEqual(saved["project_ids"], ["PVT_2", "PVT_1"])

    def test_union_across_users_in_first_seen_order(self):
        svc = ProjectSelectionService(self.db)
        svc.save_selected_projects("alice", ["PVT_1", "PVT_2"])
        svc.save_selected_projects("bob", ["PVT_2", "PVT_3"])

        self.assertEqual(svc.get_all_selected_project_ids(), ["PVT_1", "PVT_2", "PVT_3"])

    def test_missing_table_means_nothing_selected(self):
        Base.metadata.drop_all(bind=self.engine)
        svc = ProjectSelectionService(self.db)
        self.assertEqual(svc.get_all_selected_project_ids(), [])

    def test_task_selection_defaults_to_all(self):
        svc = ProjectSelectionService(self.db)
        self.assertIsNone(svc.get_selected_tasks_for_project("alice", "PVT_1"))

        svc.save_selected_projects("alice", ["PVT_1"])
        self.assertIsNone(svc.get_selected_tasks_for_project("alice", "PVT_1"))

    def test_task_selection_round_trip_keeps_projects(self):
        svc = ProjectSelectionService(self.db)
        svc.save_selected_projects("alice", ["PVT_1"])

        svc.save_selected_tasks("alice", "PVT_1", ["PVTI_1", "PVTI_2"])
        svc.save_selected_tasks("alice", "PVT_2", [])

        self.assertEqual(svc.get_selected_tasks_for_project("alice", "PVT_1"), ["PVTI_1", "PVTI_2"])
        self.assertEqual(svc.get_selected_tasks_for_project("alice", "PVT_2"), [])
        self.assertIsNone(svc.get_selected_tasks_for_project("alice", "PVT_9"))
        self.assertEqual(svc.get_selected_projects("alice")["project_ids"], ["PVT_1"])


class ProjectDiscoveryTests(SelectionServiceTestCase):
    def test_list_projects_prefers_user_projects(self):
        github = _StubGitHub(user_projects=[{"id": "PVT_1"}], org_projects=[{"id": "PVT_9"}])
        result = ProjectSelectionService(self.db, github).list_projects("octocat")

        self.assertEqual(result["count"], 1)
        self.assertEqual(github.calls, [("user", "octocat")])

    def test_list_projects_falls_back_to_organization(self):
        github = _StubGitHub(org_projects=[{"id": "PVT_9"}, {"id": "PVT_8"}])
        result = ProjectSelectionService(self.db, github).list_projects("acme")

        self.assertEqual([p["id"] for p in result["projects"]], ["PVT_9", "PVT_8"])
        self.assertEqual(github.calls, [("user", "acme"), ("organization", "acme")])

    def test_project_tasks_summarize_items(self):
        parent = {"id": "PVT_1", "title": "Roadmap", "number": 3}
        draft = {
            "id": "PVTI_1",
            "type": "DRAFT_ISSUE",
            "content": {
                "id": "DI_1",
                "title": "Plan offsite",
                "body": "",
                "createdAt": "2024-03-01T10:00:00Z",
                "updatedAt": "2024-03-01T12:00:00Z",
            },
        }
        unreadable = {"id": "PVTI_2", "type": "SOMETHING_NEW"}
        github = _StubGitHub(items=[RawRecord(draft, parent), RawRecord(unreadable, parent)])

        result = ProjectSelectionService(self.db, github).get_project_tasks("PVT_1")

        self.assertEqual(result["count"], 1)
        self.assertEqual(result["tasks"][0]["title"], "Plan offsite")
        self.assertEqual(result["tasks"][0]["type"], "DRAFT_ISSUE")
        self.assertEqual(github.calls, [(SourceKind.PROJECT_ITEMS, "PVT_1")])

    def test_discovery_requires_github_client(self):
        with self.assertRaises(ConfigurationError):
            ProjectSelectionService(self.db).list_projects("octocat")


if __name__ == "__main__":
    unittest.main()
