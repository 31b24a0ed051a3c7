import unittest
from types import SimpleNamespace

from app.services.filters import apply_filters, dedupe
from app.services.items import Label


def _item(item_id, labels=(), assignees=()):
    return SimpleNamespace(
        id=item_id,
        labels=tuple(Label(name) for name in labels),
        assignees=tuple(assignees),
    )


class DedupeTests(unittest.TestCase):
    def test_keeps_first_occurrence_in_order(self):
        first = _item("a", labels=["bug"])
        items = [first, _item("b"), _item("a", labels=["other"]), _item("c"), _item("b")]

        unique = dedupe(items)

        self.assertEqual([i.id for i in unique], ["a", "b", "c"])
        self.assertIs(unique[0], first)

    def test_idempotent(self):
        items = [_item("a"), _item("a"), _item("b")]
        once = dedupe(items)
        self.assertEqual(dedupe(once), once)


class ApplyFiltersTests(unittest.TestCase):
    def setUp(self):
        self.items = [
            _item("1", labels=["bug"], assignees=["alice"]),
            _item("2", labels=["feature"], assignees=["bob"]),
            _item("3", labels=[], assignees=["alice"]),
            _item("4", labels=["bug", "docs"], assignees=[]),
        ]

    def test_empty_allowlists_keep_everything(self):
        self.assertEqual(apply_filters(self.items), self.items)

    def test_label_filter(self):
        result = apply_filters(self.items, label_allowlist=["bug"])
        self.assertEqual([i.id for i in result], ["1", "4"])

    def test_assignee_filter(self):
        result = apply_filters(self.items, assignee_allowlist=["alice"])
        self.assertEqual([i.id for i in result], ["1", "3"])

    def test_filters_are_conjunctive(self):
        result = apply_filters(self.items, label_allowlist=["bug", "feature"], assignee_allowlist=["bob"])
        self.assertEqual([i.id for i in result], ["2"])

    def test_label_match_is_exact(self):
        result = apply_filters(self.items, label_allowlist=["Bug"])
        self.assertEqual(result, [])

    def test_result_is_subset_and_idempotent(self):
        once = apply_filters(self.items, label_allowlist=["bug"], assignee_allowlist=["alice"])
        twice = apply_filters(once, label_allowlist=["bug"], assignee_allowlist=["alice"])
        self.assertEqual(once, twice)
        self.assertTrue(all(i in self.items for i in once))


if __name__ == "__main__":
    unittest.main()
