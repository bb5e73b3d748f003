import unittest

from fakes import sample_tasks

from taskapp.models import parse_tasks
from taskapp.query_cache import QueryCache
from taskapp.selectors import (
    cached_tasks_in_category,
    category_counts,
    filter_by_category,
    find_task,
    list_categories,
)


class TestSelectors(unittest.TestCase):
    def setUp(self):
        extra = {"_id": "3", "title": "Plan sprint", "category": "Work"}
        self.tasks = parse_tasks(sample_tasks() + [extra])

    def test_filter_by_category(self):
        tasks = parse_tasks(sample_tasks())
        self.assertEqual([t.id for t in filter_by_category(tasks, "Work")], ["1"])
        self.assertEqual(filter_by_category(tasks, "Garden"), [])
        self.assertEqual(filter_by_category(None, "Work"), [])

    def test_categories_in_first_seen_order(self):
        self.assertEqual(list_categories(self.tasks), ["Work", "Home"])
        self.assertEqual(category_counts(self.tasks), {"Work": 2, "Home": 1})

    def test_find_task(self):
        self.assertEqual(find_task(self.tasks, "2").title, "Groceries")
        self.assertIsNone(find_task(self.tasks, "99"))

    def test_cached_tasks_in_category_reads_cache_only(self):
        cache = QueryCache(max_workers=1)
        self.addCleanup(cache.close)
        cache.register("listAll", lambda: self.tasks)
        self.assertEqual(cached_tasks_in_category(cache, "Work"), [])
        cache.request("listAll").result(timeout=5)
        self.assertEqual([t.id for t in cached_tasks_in_category(cache, "Work")], ["1", "3"])


if __name__ == "__main__":
    unittest.main()
