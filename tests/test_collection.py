"""Tests for collection extraction and the id-keyed helpers."""

import unittest

from watchparty.core.collection import (
    dedupe_by_id,
    extract_collection,
    extract_page_info,
    find_by_id,
    remove_by_id,
    upsert_by_id,
)


class ExtractCollectionTestCase(unittest.TestCase):
    """Tests for list envelope unwrapping."""

    def test_bare_list(self):
        self.assertEqual(extract_collection([{"id": 1}]), [{"id": 1}])

    def test_results_envelope(self):
        self.assertEqual(
            extract_collection({"results": [{"id": 1}], "count": 1}), [{"id": 1}]
        )

    def test_data_envelope(self):
        self.assertEqual(extract_collection({"data": [{"id": 2}]}), [{"id": 2}])

    def test_results_preferred_over_data(self):
        payload = {"data": [{"id": 2}], "results": [{"id": 1}]}
        self.assertEqual(extract_collection(payload), [{"id": 1}])

    def test_unrecognized_shapes_yield_empty_list(self):
        with self.assertLogs("watchparty.core.collection", level="WARNING"):
            self.assertEqual(extract_collection({"items": [1, 2]}), [])
        with self.assertLogs("watchparty.core.collection", level="WARNING"):
            self.assertEqual(extract_collection("nope"), [])
        self.assertEqual(extract_collection({"results": None}), [])

    def test_none_and_empty_are_silent(self):
        with self.assertNoLogs("watchparty.core.collection", level="WARNING"):
            self.assertEqual(extract_collection(None), [])
            self.assertEqual(extract_collection({}), [])

    def test_returns_a_copy(self):
        payload = [{"id": 1}]
        result = extract_collection(payload)
        result.append({"id": 2})
        self.assertEqual(len(payload), 1)

    def test_page_info(self):
        info = extract_page_info(
            {"results": [{}, {}], "count": 12, "next": "/x/?page=2", "total_pages": 6}
        )
        self.assertEqual(info["count"], 12)
        self.assertEqual(info["next"], "/x/?page=2")
        self.assertEqual(info["previous"], "")
        self.assertEqual(info["current_page"], 1)
        self.assertEqual(info["total_pages"], 6)

    def test_page_info_counts_bare_list(self):
        self.assertEqual(extract_page_info([{}, {}, {}])["count"], 3)


class IdHelpersTestCase(unittest.TestCase):
    """Tests for upsert, remove, find and dedupe."""

    def setUp(self):
        self.records = [{"id": "1", "name": "a"}, {"id": "2", "name": "b"}]

    def test_upsert_replaces_in_place(self):
        result = upsert_by_id(self.records, {"id": "2", "name": "B"})
        self.assertEqual([r["name"] for r in result], ["a", "B"])
        self.assertEqual(self.records[1]["name"], "b")

    def test_upsert_prepends_new_record(self):
        result = upsert_by_id(self.records, {"id": "3", "name": "c"})
        self.assertEqual([r["id"] for r in result], ["3", "1", "2"])

    def test_remove(self):
        self.assertEqual(remove_by_id(self.records, "1"), [{"id": "2", "name": "b"}])
        self.assertEqual(len(self.records), 2)

    def test_find(self):
        self.assertEqual(find_by_id(self.records, "2")["name"], "b")
        self.assertIsNone(find_by_id(self.records, "9"))

    def test_dedupe_keeps_first(self):
        result = dedupe_by_id(self.records + [{"id": "1", "name": "dup"}])
        self.assertEqual([r["name"] for r in result], ["a", "b"])
