"""Tests for the mutation coordinator."""

import threading
import unittest
from unittest.mock import MagicMock

from watchparty.core.mutation import (
    MutationCoordinator,
    MutationState,
    unwrap_entity,
)
from watchparty.core.normalize import normalize_group
from watchparty.core.view import CollectionView
from watchparty.errors import NetworkError, ShapeError, ValidationError


class UnwrapEntityTestCase(unittest.TestCase):
    """Tests for reading the entity out of a mutation response."""

    def test_envelopes(self):
        self.assertEqual(unwrap_entity({"group": {"id": 1}}, ("group",)), {"id": 1})
        self.assertEqual(unwrap_entity({"data": {"id": 2}}), {"id": 2})
        self.assertEqual(unwrap_entity({"id": 3, "name": "x"}), {"id": 3, "name": "x"})

    def test_acknowledgements(self):
        self.assertIsNone(unwrap_entity({"success": True, "message": "Joined"}))
        self.assertIsNone(unwrap_entity(None))
        self.assertIsNone(unwrap_entity({}))
        self.assertIsNone(unwrap_entity([1, 2]))


class MutationCoordinatorTestCase(unittest.TestCase):
    """Tests for MutationCoordinator.run."""

    def setUp(self):
        self.coordinator = MutationCoordinator()
        self.records = [
            normalize_group({"id": 1, "name": "Horror Fans", "member_count": 4}),
            normalize_group({"id": 2, "name": "Comedy Club", "member_count": 8}),
        ]

    def run_join(self, request, **kwargs):
        return self.coordinator.run(
            "u7:group:1",
            request=request,
            normalize=normalize_group,
            records=self.records,
            entity_keys=("group",),
            **kwargs,
        )

    def test_success_upserts_server_record(self):
        result = self.run_join(
            lambda: {"group": {"id": 1, "name": "Horror Fans", "member_count": 5, "is_member": True}}
        )
        self.assertTrue(result.ok)
        self.assertEqual(result.state, MutationState.MERGED)
        self.assertEqual(len(result.records), 2)
        self.assertEqual(result.records[0]["member_count"], 5)
        self.assertTrue(result.records[0]["is_member"])
        self.assertEqual(self.records[0]["member_count"], 4)
        self.assertEqual(self.coordinator.state("u7:group:1"), MutationState.MERGED)

    def test_new_entity_is_prepended(self):
        result = self.coordinator.run(
            "u7:group:create",
            request=lambda: {"id": 3, "name": "Anime Nights"},
            normalize=normalize_group,
            records=self.records,
        )
        self.assertEqual([r["id"] for r in result.records], ["3", "1", "2"])

    def test_acknowledgement_refetches_detail(self):
        fetch_detail = MagicMock(return_value={"id": 1, "name": "Horror Fans", "member_count": 5})
        result = self.run_join(lambda: {"success": True}, fetch_detail=fetch_detail)
        fetch_detail.assert_called_once()
        self.assertTrue(result.ok)
        self.assertEqual(result.records[0]["member_count"], 5)

    def test_unreadable_body_counts_as_acknowledgement(self):
        def request():
            raise ShapeError()

        fetch_detail = MagicMock(return_value={"id": 1, "member_count": 6})
        result = self.run_join(request, fetch_detail=fetch_detail)
        self.assertTrue(result.ok)
        self.assertEqual(result.records[0]["member_count"], 6)

    def test_failed_refetch_keeps_records(self):
        result = self.run_join(
            lambda: None, fetch_detail=MagicMock(side_effect=NetworkError())
        )
        self.assertTrue(result.ok)
        self.assertIsNone(result.record)
        self.assertEqual(result.records, self.records)

    def test_failure_leaves_records_unchanged(self):
        def request():
            raise ValidationError("This group is full.")

        result = self.run_join(request)
        self.assertFalse(result.ok)
        self.assertEqual(result.state, MutationState.IDLE)
        self.assertEqual(result.error, "This group is full.")
        self.assertEqual(result.records, self.records)
        self.assertEqual(self.coordinator.state("u7:group:1"), MutationState.IDLE)
        self.assertFalse(self.coordinator.is_pending("u7:group:1"))

    def test_network_failure_uses_generic_message(self):
        def request():
            raise NetworkError()

        result = self.run_join(request)
        self.assertEqual(result.error, NetworkError().message)

    def test_join_leave_join_is_serialized(self):
        """A second trigger while the first is in flight is ignored."""
        started = threading.Event()
        release = threading.Event()
        calls = []

        def slow_join():
            calls.append("join")
            started.set()
            release.wait(5)
            return {"id": 1, "is_member": True, "member_count": 5}

        outcome = {}
        worker = threading.Thread(target=lambda: outcome.update(first=self.run_join(slow_join)))
        worker.start()
        self.assertTrue(started.wait(5))

        self.assertTrue(self.coordinator.is_pending("u7:group:1"))
        leave = self.run_join(lambda: calls.append("leave") or {"id": 1, "is_member": False})
        self.assertTrue(leave.ignored)
        self.assertEqual(leave.state, MutationState.PENDING)

        release.set()
        worker.join(5)
        self.assertTrue(outcome["first"].ok)
        self.assertTrue(outcome["first"].records[0]["is_member"])

        join_again = self.run_join(lambda: calls.append("join") or {"id": 1, "is_member": True})
        self.assertTrue(join_again.ok)
        self.assertEqual(calls, ["join", "join"])

    def test_other_keys_run_concurrently(self):
        started = threading.Event()
        release = threading.Event()

        def slow():
            started.set()
            release.wait(5)
            return {"id": 1}

        worker = threading.Thread(target=lambda: self.run_join(slow))
        worker.start()
        self.assertTrue(started.wait(5))
        other = self.coordinator.run(
            "u7:group:2", request=lambda: {"id": 2}, normalize=normalize_group
        )
        release.set()
        worker.join(5)
        self.assertTrue(other.ok)
        self.assertFalse(other.ignored)

    def test_merges_into_open_view_only(self):
        view = CollectionView("groups")
        view.load(lambda: list(self.records))
        self.coordinator.run(
            "u7:group:1",
            request=lambda: {"id": 1, "member_count": 9},
            normalize=normalize_group,
            view=view,
        )
        self.assertEqual(view.get("1")["member_count"], 9)

        view.close()
        self.coordinator.run(
            "u7:group:1",
            request=lambda: {"id": 1, "member_count": 10},
            normalize=normalize_group,
            view=view,
        )
        self.assertEqual(view.get("1")["member_count"], 9)
