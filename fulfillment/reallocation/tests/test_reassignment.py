"""
Tests for pick list reassignment.
"""

import uuid
from datetime import timedelta
from unittest import mock
from django.test import TestCase

from ..models import (
    PickList, PickListStatus, PickListItem, PickListItemStatus, ReassignmentReason,
    AuditEvent, AuditEventType,
)
from ..services import ReassignmentService
from ..exceptions import (
    ValidationException, NotFoundException, NothingToReassignException,
    ConcurrentModificationException, ConservationViolation, InvalidTransitionException,
)
from ..adapters.notification_adapter import (
    LoggingNotificationAdapter, switch_to_mock_adapter, switch_to_real_adapter,
)
from .helpers import FulfillmentFixtures


class ReassignmentTestBase(FulfillmentFixtures, TestCase):

    def setUp(self):
        """Picker X holds a list with item A fully picked and item B at 2 of 5."""
        self.manager = self.create_staff('manager', is_staff=True, warehouse=False)
        self.picker_x = self.create_staff('picker_x')
        self.picker_y = self.create_staff('picker_y')

        self.location = self.create_location()
        self.product_a = self.create_product('SKU-A')
        self.product_b = self.create_product('SKU-B')
        self.order = self.create_order([(self.product_a, 5), (self.product_b, 5)], picking_assigned_to=self.picker_x)

        self.pick_list = self.create_pick_list('PL-001', self.picker_x, [
            (self.order, self.product_a, self.location, 5, 5),
            (self.order, self.product_b, self.location, 5, 2),
        ])
        self.item_a = self.pick_list.items.get(product=self.product_a)
        self.item_b = self.pick_list.items.get(product=self.product_b)

    def _outstanding(self, pick_lists):
        return sum(
            item.remaining_to_pick
            for item in PickListItem.objects.filter(pick_list__in=pick_lists)
            if not item.is_terminal
        )


class SplitReassignmentTest(ReassignmentTestBase):
    """SPLIT closes the original list and spawns a continuation."""

    def test_split_truncates_partial_item_and_creates_continuation(self):
        result = ReassignmentService.reassign(
            self.pick_list.id, self.picker_y.id, actor=self.manager, strategy='SPLIT'
        )

        self.assertTrue(result['success'])
        self.assertEqual(result['strategy'], 'SPLIT')

        self.pick_list.refresh_from_db()
        self.assertEqual(self.pick_list.status, PickListStatus.PARTIALLY_COMPLETED)
        self.assertIsNotNone(self.pick_list.end_time)
        self.assertEqual(self.pick_list.version, 2)

        self.item_a.refresh_from_db()
        self.assertEqual((self.item_a.quantity_to_pick, self.item_a.quantity_picked), (5, 5))
        self.assertEqual(self.item_a.status, PickListItemStatus.PICKED)

        self.item_b.refresh_from_db()
        self.assertEqual((self.item_b.quantity_to_pick, self.item_b.quantity_picked), (2, 2))
        self.assertEqual(self.item_b.status, PickListItemStatus.PICKED)

        continuation = PickList.objects.get(parent=self.pick_list)
        self.assertEqual(result['continuation']['id'], continuation.id)
        self.assertEqual(continuation.batch_number, 'PL-001-CONT')
        self.assertEqual(continuation.assigned_to, self.picker_y)
        self.assertEqual(continuation.status, PickListStatus.ASSIGNED)
        self.assertEqual(continuation.priority, self.pick_list.priority + 1)

        items = list(continuation.items.all())
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0].product, self.product_b)
        self.assertEqual(items[0].quantity_to_pick, 3)
        self.assertEqual(items[0].quantity_picked, 0)
        self.assertEqual(items[0].status, PickListItemStatus.PENDING)

        self.order.refresh_from_db()
        self.assertEqual(self.order.picking_assigned_to, self.picker_y)

    def test_split_moves_untouched_items_and_conserves_units(self):
        product_c = self.create_product('SKU-C')
        untouched = PickListItem.objects.create(
            pick_list=self.pick_list, order=self.order, product=product_c,
            location=self.location, quantity_to_pick=4, sequence=3,
        )
        before = self._outstanding([self.pick_list])
        self.assertEqual(before, 7)

        ReassignmentService.reassign(self.pick_list.id, self.picker_y.id, actor=self.manager)

        continuation = PickList.objects.get(parent=self.pick_list)
        untouched.refresh_from_db()
        self.assertEqual(untouched.pick_list, continuation)
        self.assertEqual(untouched.quantity_to_pick, 4)
        self.assertEqual(continuation.total_items, 2)
        self.assertEqual(self._outstanding([self.pick_list, continuation]), before)
        self.assertEqual(self._outstanding([self.pick_list]), 0)

    def test_split_of_continuation_extends_chain(self):
        ReassignmentService.reassign(self.pick_list.id, self.picker_y.id, actor=self.manager)
        continuation = PickList.objects.get(parent=self.pick_list)

        ReassignmentService.reassign(continuation.id, self.picker_x.id, actor=self.manager)
        second = PickList.objects.get(parent=continuation)
        self.assertEqual(second.batch_number, 'PL-001-CONT-CONT')

        chain = ReassignmentService.get_pick_list_chain(second.id)
        self.assertEqual(chain['root']['id'], self.pick_list.id)
        self.assertEqual(chain['total_lists'], 3)
        self.assertEqual(
            [entry['id'] for entry in chain['chain']],
            [self.pick_list.id, continuation.id, second.id]
        )
        self.assertEqual(chain['current']['id'], second.id)

    def test_split_records_audit_event(self):
        ReassignmentService.reassign(self.pick_list.id, self.picker_y.id, actor=self.manager)

        events = AuditEvent.objects.filter(subject_type='PickList', subject_id=str(self.pick_list.id))
        self.assertEqual(events.count(), 1)
        event = events.get()
        self.assertEqual(event.event_type, AuditEventType.PICK_SPLIT)
        self.assertEqual(event.actor, self.manager)
        self.assertEqual(event.payload['strategy'], 'SPLIT')
        self.assertEqual(event.payload['old_staff_id'], self.picker_x.id)
        self.assertEqual(event.payload['new_staff_id'], self.picker_y.id)
        self.assertEqual(event.payload['partial_items'], 1)
        self.assertEqual(event.payload['units_reassigned'], 3)

    def test_reason_and_notes_land_on_the_event(self):
        ReassignmentService.reassign(
            self.pick_list.id, self.picker_y.id, actor=self.manager,
            reason=ReassignmentReason.EMERGENCY, notes="forklift down in aisle 4"
        )

        event = AuditEvent.objects.get(subject_type='PickList', subject_id=str(self.pick_list.id))
        self.assertEqual(event.payload['reason'], ReassignmentReason.EMERGENCY)
        self.assertEqual(event.notes, "forklift down in aisle 4")

    def test_notification_is_sent_only_after_commit(self):

        adapter = switch_to_mock_adapter()
        self.addCleanup(switch_to_real_adapter, LoggingNotificationAdapter())

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            ReassignmentService.reassign(self.pick_list.id, self.picker_y.id, actor=self.manager)
            self.assertEqual(adapter.sent, [])

        self.assertEqual(len(callbacks), 1)
        sent = adapter.events_of_type('PICK_LIST_REASSIGNED')
        self.assertEqual(len(sent), 1)
        self.assertEqual(sent[0]['payload']['pick_list_id'], str(self.pick_list.id))


class InPlaceReassignmentTest(ReassignmentTestBase):
    """IN_PLACE keeps the list and adds shortfall siblings."""

    def test_in_place_closes_partial_and_adds_sibling(self):
        result = ReassignmentService.reassign(
            self.pick_list.id, self.picker_y.id, actor=self.manager, strategy='IN_PLACE'
        )

        self.assertIsNone(result['continuation'])
        self.assertFalse(PickList.objects.filter(parent=self.pick_list).exists())

        self.pick_list.refresh_from_db()
        self.assertEqual(self.pick_list.assigned_to, self.picker_y)
        self.assertEqual(self.pick_list.status, PickListStatus.IN_PROGRESS)
        self.assertEqual(self.pick_list.version, 2)
        self.assertEqual(self.pick_list.items.count(), 3)

        self.item_b.refresh_from_db()
        self.assertEqual((self.item_b.quantity_to_pick, self.item_b.quantity_picked), (2, 2))
        self.assertEqual(self.item_b.status, PickListItemStatus.PICKED)

        sibling = self.pick_list.items.exclude(id__in=[self.item_a.id, self.item_b.id]).get()
        self.assertEqual(sibling.product, self.product_b)
        self.assertEqual(sibling.quantity_to_pick, 3)
        self.assertEqual(sibling.status, PickListItemStatus.PENDING)

        self.assertEqual(
            AuditEvent.objects.filter(event_type=AuditEventType.PICK_REASSIGNED).count(), 1
        )

    def test_in_place_with_only_untouched_items_returns_to_assigned(self):
        product_c = self.create_product('SKU-C')
        fresh = self.create_pick_list('PL-002', self.picker_x, [
            (self.order, product_c, self.location, 4, 0),
        ], status=PickListStatus.PAUSED)

        ReassignmentService.reassign(fresh.id, self.picker_y.id, actor=self.manager, strategy='IN_PLACE')

        fresh.refresh_from_db()
        self.assertEqual(fresh.status, PickListStatus.ASSIGNED)
        self.assertEqual(fresh.assigned_to, self.picker_y)
        self.assertEqual(fresh.items.count(), 1)

    def test_conservation_violation_rolls_back(self):
        original = ReassignmentService._split_in_place

        def leaky(*args):
            return original(*args) + 1

        with mock.patch.object(ReassignmentService, '_split_in_place', side_effect=leaky):
            with self.assertRaises(ConservationViolation):
                ReassignmentService.reassign(
                    self.pick_list.id, self.picker_y.id, actor=self.manager, strategy='IN_PLACE'
                )

        self.pick_list.refresh_from_db()
        self.assertEqual(self.pick_list.assigned_to, self.picker_x)
        self.assertEqual(self.pick_list.status, PickListStatus.IN_PROGRESS)
        self.assertEqual(self.pick_list.version, 1)
        self.assertEqual(self.pick_list.items.count(), 2)
        self.item_b.refresh_from_db()
        self.assertEqual(self.item_b.quantity_to_pick, 5)
        self.assertFalse(AuditEvent.objects.exists())


class ReassignmentGuardTest(ReassignmentTestBase):
    """Preconditions checked before any write."""

    def test_completed_work_has_nothing_to_reassign(self):
        done = self.create_pick_list('PL-DONE', self.picker_x, [
            (self.order, self.product_a, self.location, 5, 5),
        ])

        with self.assertRaises(NothingToReassignException) as ctx:
            ReassignmentService.reassign(done.id, self.picker_y.id, actor=self.manager)

        self.assertEqual(ctx.exception.code, 'NOTHING_TO_REASSIGN')
        self.assertFalse(PickList.objects.filter(parent=done).exists())

    def test_reassign_to_current_assignee_is_rejected(self):
        with self.assertRaises(ValidationException) as ctx:
            ReassignmentService.reassign(self.pick_list.id, self.picker_x.id, actor=self.manager)

        self.assertEqual(ctx.exception.code, 'ALREADY_ASSIGNED')

    def test_stale_version_is_rejected(self):
        with self.assertRaises(ConcurrentModificationException) as ctx:
            ReassignmentService.reassign(
                self.pick_list.id, self.picker_y.id, actor=self.manager, expected_version=7
            )

        self.assertEqual(ctx.exception.code, 'STALE_PICKLIST')
        self.pick_list.refresh_from_db()
        self.assertEqual(self.pick_list.status, PickListStatus.IN_PROGRESS)

    def test_matching_version_is_accepted(self):
        result = ReassignmentService.reassign(
            self.pick_list.id, self.picker_y.id, actor=self.manager, expected_version=1
        )
        self.assertEqual(result['original']['version'], 2)

    def test_second_split_of_same_list_fails(self):
        ReassignmentService.reassign(self.pick_list.id, self.picker_y.id, actor=self.manager)
        other = self.create_staff('picker_z')

        with self.assertRaises(NothingToReassignException):
            ReassignmentService.reassign(self.pick_list.id, other.id, actor=self.manager)

    def test_unassigned_pending_list_cannot_be_split(self):
        pending = self.create_pick_list('PL-NEW', None, [
            (self.order, self.product_b, self.location, 3, 0),
        ], status=PickListStatus.PENDING)

        with self.assertRaises(InvalidTransitionException):
            ReassignmentService.reassign(pending.id, self.picker_y.id, actor=self.manager)

    def test_unknown_pick_list(self):
        with self.assertRaises(NotFoundException) as ctx:
            ReassignmentService.reassign(uuid.uuid4(), self.picker_y.id, actor=self.manager)
        self.assertEqual(ctx.exception.code, 'PICKLIST_NOT_FOUND')

    def test_unknown_staff(self):
        with self.assertRaises(NotFoundException) as ctx:
            ReassignmentService.reassign(self.pick_list.id, 999999, actor=self.manager)
        self.assertEqual(ctx.exception.code, 'STAFF_NOT_FOUND')

    def test_unknown_strategy(self):
        with self.assertRaises(ValidationException) as ctx:
            ReassignmentService.reassign(self.pick_list.id, self.picker_y.id, strategy='MERGE')
        self.assertEqual(ctx.exception.code, 'INVALID_STRATEGY')

    def test_unknown_reason(self):
        with self.assertRaises(ValidationException) as ctx:
            ReassignmentService.reassign(self.pick_list.id, self.picker_y.id, reason='BORED')
        self.assertEqual(ctx.exception.code, 'INVALID_REASON')
        self.assertFalse(PickList.objects.filter(parent=self.pick_list).exists())


class BulkAndShiftTest(ReassignmentTestBase):

    """Bulk reassignment and end-of-shift handling."""

    def setUp(self):
        super().setUp()
        self.product_c = self.create_product('SKU-C')
        self.second_list = self.create_pick_list('PL-002', self.picker_x, [
            (self.order, self.product_c, self.location, 4, 0),
        ], status=PickListStatus.ASSIGNED)
        # Incomplete by status but every item is already terminal
        self.finished_list = self.create_pick_list('PL-003', self.picker_x, [
            (self.order, self.product_a, self.location, 1, 1),
        ])

    def test_bulk_reassign_collects_failures_without_aborting(self):
        result = ReassignmentService.bulk_reassign(self.picker_x.id, self.picker_y.id, actor=self.manager)

        self.assertEqual(result['reassigned_count'], 2)
        self.assertEqual(result['failed_count'], 1)
        failed = [entry for entry in result['results'] if not entry['success']]
        self.assertEqual(failed[0]['pick_list_id'], self.finished_list.id)
        self.assertEqual(failed[0]['code'], 'NOTHING_TO_REASSIGN')

        self.assertEqual(
            PickList.objects.filter(assigned_to=self.picker_y, status=PickListStatus.ASSIGNED).count(), 2
        )

    def test_bulk_reassign_records_reason_on_each_list(self):
        ReassignmentService.bulk_reassign(
            self.picker_x.id, self.picker_y.id, actor=self.manager,
            reason=ReassignmentReason.WORKLOAD_BALANCE, notes="evening rebalance"
        )

        events = AuditEvent.objects.filter(event_type=AuditEventType.PICK_SPLIT)
        self.assertEqual(events.count(), 2)
        for event in events:
            self.assertEqual(event.payload['reason'], ReassignmentReason.WORKLOAD_BALANCE)
            self.assertEqual(event.notes, "evening rebalance")

    def test_bulk_reassign_to_same_staff_is_rejected(self):

        with self.assertRaises(ValidationException):
            ReassignmentService.bulk_reassign(self.picker_x.id, self.picker_x.id)

    def test_end_of_shift_without_replacement_pauses_lists(self):
        result = ReassignmentService.end_of_shift(self.picker_x.id, actor=self.manager)

        self.assertEqual(result['action'], 'PAUSED')
        self.assertEqual(len(result['paused']), 3)
        self.assertEqual(result['incomplete_work']['total_lists'], 3)
        self.assertEqual(result['incomplete_work']['partial_items'], 1)

        for pick_list in (self.pick_list, self.second_list, self.finished_list):
            pick_list.refresh_from_db()
            self.assertEqual(pick_list.status, PickListStatus.PAUSED)
            self.assertEqual(pick_list.version, 2)
        self.assertEqual(AuditEvent.objects.filter(event_type=AuditEventType.PICK_PAUSED).count(), 3)

    def test_end_of_shift_with_replacement_reassigns(self):
        result = ReassignmentService.end_of_shift(
            self.picker_x.id, replacement_staff_id=self.picker_y.id, actor=self.manager
        )

        self.assertEqual(result['action'], 'REASSIGNED')
        self.assertEqual(result['reassignment']['reassigned_count'], 2)
        reasons = AuditEvent.objects.filter(event_type=AuditEventType.PICK_SPLIT).values_list('payload', flat=True)
        self.assertEqual([payload['reason'] for payload in reasons], [ReassignmentReason.SHIFT_CHANGE] * 2)


    def test_end_of_shift_auto_reassign_picks_lightest_staff(self):
        result = ReassignmentService.end_of_shift(self.picker_x.id, actor=self.manager, auto_reassign=True)

        self.assertEqual(result['action'], 'REASSIGNED')
        # manager is staff with no work and sorts before picker_y
        self.assertEqual(result['reassignment']['to_staff_id'], self.manager.id)

    def test_end_of_shift_with_no_work(self):
        result = ReassignmentService.end_of_shift(self.picker_y.id)

        self.assertIsNone(result['action'])
        self.assertEqual(result['incomplete_work']['total_lists'], 0)


class WorkloadQueryTest(ReassignmentTestBase):
    """Read-only queries over pick lists and staff."""

    def test_find_incomplete_work_counts_items(self):
        work = ReassignmentService.find_incomplete_work(self.picker_x.id)

        self.assertEqual(len(work), 1)
        entry = work[0]
        self.assertEqual(entry['id'], self.pick_list.id)
        self.assertEqual(entry['incomplete_items'], 1)
        self.assertEqual(entry['partial_items'], 1)
        self.assertEqual(entry['untouched_items'], 0)
        self.assertEqual(entry['outstanding_units'], 3)

    def test_find_incomplete_work_ignores_closed_lists(self):
        ReassignmentService.reassign(self.pick_list.id, self.picker_y.id, actor=self.manager)

        self.assertEqual(ReassignmentService.find_incomplete_work(self.picker_x.id), [])
        work = ReassignmentService.find_incomplete_work(self.picker_y.id)
        self.assertEqual(len(work), 1)
        self.assertEqual(work[0]['untouched_items'], 1)

    def test_find_optimal_staff_ranks_by_outstanding_items(self):
        picker_z = self.create_staff('picker_z')
        self.create_staff('outsider', warehouse=False)
        product_c = self.create_product('SKU-C')
        self.create_pick_list('PL-Y', self.picker_y, [
            (self.order, product_c, self.location, 2, 0),
            (self.order, self.product_a, self.location, 2, 0),
        ], status=PickListStatus.ASSIGNED)

        ranked = ReassignmentService.find_optimal_staff(exclude_staff_id=self.picker_x.id)
        usernames = [entry['username'] for entry in ranked]

        self.assertEqual(usernames, ['manager', 'picker_z', 'picker_y'])
        self.assertNotIn('outsider', usernames)
        self.assertEqual(ranked[-1]['outstanding_items'], 2)
        self.assertEqual(ranked[-1]['active_pick_lists'], 1)
        self.assertEqual(ranked[1]['staff_id'], picker_z.id)

    def test_audit_progress_flags_partial_and_stuck_items(self):
        report = ReassignmentService.audit_progress(
            self.pick_list.id, now=self.pick_list.created_at + timedelta(hours=5)
        )

        self.assertTrue(report['has_issues'])
        issues = {issue['type']: issue for issue in report['issues']}
        self.assertEqual(issues['PARTIAL_PICKS']['severity'], 'warning')
        self.assertEqual(issues['PARTIAL_PICKS']['details'][0]['remaining'], 3)
        self.assertEqual(issues['STUCK_ITEMS']['severity'], 'error')
        self.assertEqual(issues['STUCK_ITEMS']['count'], 1)
        self.assertEqual(issues['STUCK_ITEMS']['details'][0]['hours_pending'], 5)

    def test_audit_progress_on_fresh_list_reports_only_partials(self):
        report = ReassignmentService.audit_progress(
            self.pick_list.id, now=self.pick_list.created_at + timedelta(hours=1)
        )

        self.assertEqual([issue['type'] for issue in report['issues']], ['PARTIAL_PICKS'])
        self.assertEqual(report['summary']['stuck_items'], 0)

    def test_staff_metrics(self):
        window_start = self.pick_list.created_at - timedelta(hours=1)
        window_end = self.pick_list.created_at + timedelta(hours=1)

        metrics = ReassignmentService.get_staff_metrics(self.picker_x.id, window_start, window_end)

        self.assertEqual(metrics['total_pick_lists'], 1)
        self.assertEqual(metrics['total_items_assigned'], 2)
        self.assertEqual(metrics['total_items_picked'], 1)
        self.assertEqual(metrics['completion_rate'], 50.0)
