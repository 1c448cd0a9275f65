"""
Reassignment Service for the Fulfillment Reallocation Engine.

Moves unfinished picking work between warehouse staff without creating or
losing a single unit: partial picks are closed at what was actually picked and
the shortfall follows the work to its new owner.
"""

import logging
from datetime import timedelta
from typing import List, Dict, Any, Optional
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction, DatabaseError
from django.db.models import Count, Sum, F, Q
from django.utils import timezone

from ..models import (
    Order, PickList, PickListStatus, PickListItem, PickListItemStatus, ReassignmentReason,
    AuditEvent, AuditEventType, INCOMPLETE_PICKLIST_STATUSES, ACTIVE_PICKLIST_STATUSES,
)
from ..exceptions import (
    BusinessException, ValidationException, NotFoundException, NothingToReassignException,
    ConcurrentModificationException, ConservationViolation,
)
from .workflow import validate_pick_list_workflow
from .notifications import notify_after_commit

logger = logging.getLogger(__name__)

STRATEGY_SPLIT = 'SPLIT'
STRATEGY_IN_PLACE = 'IN_PLACE'
REASSIGNMENT_STRATEGIES = (STRATEGY_SPLIT, STRATEGY_IN_PLACE)

OPEN_ITEM_STATUSES = [PickListItemStatus.PENDING, PickListItemStatus.SHORT_PICK]


class ReassignmentService:
    """Service class for pick list reassignment."""

    @staticmethod
    def _get_staff(staff_id, active_only: bool = True):
        User = get_user_model()
        queryset = User.objects.filter(is_active=True) if active_only else User.objects.all()
        try:
            return queryset.get(id=staff_id)
        except (User.DoesNotExist, ValueError):
            raise NotFoundException('Staff', staff_id, 'STAFF_NOT_FOUND')

    @staticmethod
    def _pick_list_summary(pick_list: PickList) -> Dict[str, Any]:
        return {
            'id': pick_list.id,
            'batch_number': pick_list.batch_number,
            'status': pick_list.status,
            'assigned_to_id': pick_list.assigned_to_id,
            'parent_id': pick_list.parent_id,
            'priority': pick_list.priority,
            'version': pick_list.version,
            'total_items': pick_list.total_items,
            'picked_items': pick_list.picked_items,
        }

    @staticmethod
    def find_incomplete_work(staff_id) -> List[Dict[str, Any]]:
        """
        List the unfinished pick lists owned by a staff member.

        Counts are taken over non-terminal items only.

        Args:
            staff_id: User id of the picker

        Returns:
            One dict per ASSIGNED/IN_PROGRESS/PAUSED pick list
        """
        open_items = Q(items__status__in=OPEN_ITEM_STATUSES)
        pick_lists = (
            PickList.objects
            .filter(assigned_to_id=staff_id, status__in=INCOMPLETE_PICKLIST_STATUSES)
            .annotate(
                incomplete_items=Count('items', filter=open_items),
                partial_items=Count(
                    'items',
                    filter=open_items & Q(
                        items__quantity_picked__gt=0,
                        items__quantity_picked__lt=F('items__quantity_to_pick'),
                    ),
                ),
                untouched_items=Count(
                    'items',
                    filter=open_items & Q(items__quantity_picked=0, items__quantity_to_pick__gt=0),
                ),
                outstanding_units=Sum(
                    F('items__quantity_to_pick') - F('items__quantity_picked'),
                    filter=open_items,
                    default=0,
                ),
            )
            .order_by('priority', 'created_at')
        )

        return [
            {
                **ReassignmentService._pick_list_summary(pick_list),
                'incomplete_items': pick_list.incomplete_items,
                'partial_items': pick_list.partial_items,
                'untouched_items': pick_list.untouched_items,
                'outstanding_units': pick_list.outstanding_units,
                'created_at': pick_list.created_at,
            }
            for pick_list in pick_lists
        ]

    @staticmethod
    def reassign(pick_list_id, new_staff_id, actor=None, strategy: str = STRATEGY_SPLIT,
                 expected_version: Optional[int] = None, reason: str = ReassignmentReason.OTHER,
                 notes: str = "") -> Dict[str, Any]:
        """
        Hand the outstanding work of a pick list to another staff member.

        SPLIT closes the list as PARTIALLY_COMPLETED and moves the remaining
        work into a continuation list. IN_PLACE keeps the list and splits each
        partial item into a closed item plus a PENDING shortfall sibling.

        Args:
            pick_list_id: PickList UUID
            new_staff_id: User id of the new picker
            actor: User performing the reassignment
            strategy: SPLIT or IN_PLACE
            expected_version: Version the caller last read, if any
            reason: ReassignmentReason recorded on the audit event
            notes: Free text recorded on the audit event

        Returns:
            Dict with the original list, the continuation (SPLIT only) and a summary

        Raises:
            NotFoundException: Unknown pick list or staff member
            ConcurrentModificationException: expected_version is stale
            ValidationException: Unknown strategy or reason, or same assignee
            NothingToReassignException: No outstanding work on the list
            ConservationViolation: Outstanding quantity changed (rolled back)
        """
        if strategy not in REASSIGNMENT_STRATEGIES:
            raise ValidationException(
                f"Unknown reassignment strategy {strategy}",
                {'strategy': strategy},
                code='INVALID_STRATEGY'
            )
        if reason not in ReassignmentReason.values:
            raise ValidationException(
                f"Unknown reassignment reason {reason}",
                {'reason': reason},
                code='INVALID_REASON'
            )
        new_staff = ReassignmentService._get_staff(new_staff_id)

        with transaction.atomic():
            try:
                pick_list = PickList.objects.select_for_update().get(id=pick_list_id)
            except (PickList.DoesNotExist, DjangoValidationError):
                raise NotFoundException('PickList', pick_list_id, 'PICKLIST_NOT_FOUND')

            if expected_version is not None and pick_list.version != expected_version:
                logger.warning(
                    f"Stale reassignment of pick list {pick_list.batch_number}: "
                    f"expected version {expected_version}, found {pick_list.version}"
                )
                raise ConcurrentModificationException(pick_list.batch_number, expected_version, pick_list.version)

            if pick_list.assigned_to_id == new_staff.id:
                raise ValidationException(
                    f"Pick list {pick_list.batch_number} is already assigned to {new_staff.get_username()}",
                    {'new_staff_id': new_staff.id},
                    code='ALREADY_ASSIGNED'
                )

            items = list(pick_list.items.select_for_update().order_by('sequence', 'created_at'))
            partial = [item for item in items if item.is_partial]
            untouched = [item for item in items if item.is_untouched]

            if not partial and not untouched:
                raise NothingToReassignException(pick_list.batch_number)

            before = sum(item.remaining_to_pick for item in partial + untouched)
            old_staff_id = pick_list.assigned_to_id

            if strategy == STRATEGY_SPLIT:
                continuation, after = ReassignmentService._split_into_continuation(
                    pick_list, partial, untouched, new_staff
                )
            else:
                continuation = None
                after = ReassignmentService._split_in_place(pick_list, partial, untouched, new_staff)

            if before != after:
                logger.error(
                    f"Reassignment of pick list {pick_list.batch_number} would change "
                    f"outstanding quantity from {before} to {after}"
                )
                raise ConservationViolation(before, after)

            affected_order_ids = {item.order_id for item in partial + untouched}
            Order.objects.filter(id__in=affected_order_ids).update(
                picking_assigned_to=new_staff, updated_at=timezone.now()
            )

            summary = {
                'old_staff_id': old_staff_id,
                'new_staff_id': new_staff.id,
                'partial_items': len(partial),
                'untouched_items': len(untouched),
                'units_reassigned': before,
                'orders_updated': len(affected_order_ids),
            }

            AuditEvent.record(
                pick_list,
                AuditEventType.PICK_SPLIT if strategy == STRATEGY_SPLIT else AuditEventType.PICK_REASSIGNED,
                actor=actor,
                payload={
                    **summary,
                    'strategy': strategy,
                    'reason': reason,
                    'continuation_id': continuation.id if continuation else None,
                    'version': pick_list.version,
                },
                notes=notes or f"Reassigned to {new_staff.get_username()} ({strategy}, {reason})"
            )
            notify_after_commit('PICK_LIST_REASSIGNED', {
                'pick_list_id': str(pick_list.id),
                'continuation_id': str(continuation.id) if continuation else None,
                'strategy': strategy,
                'reason': reason,
                'old_staff_id': old_staff_id,
                'new_staff_id': new_staff.id,
            })

        logger.info(
            f"Pick list {pick_list.batch_number} reassigned from {old_staff_id} to {new_staff.id} "
            f"({strategy}, {before} units)"
        )
        return {
            'success': True,
            'strategy': strategy,
            'original': ReassignmentService._pick_list_summary(pick_list),
            'continuation': ReassignmentService._pick_list_summary(continuation) if continuation else None,
            'summary': summary,
        }

    @staticmethod
    def _close_at_picked(item: PickListItem, now, note: str) -> int:
        """Freeze a partial item at its picked count and return the shortfall."""
        shortfall = item.remaining_to_pick
        item.quantity_to_pick = item.quantity_picked
        item.status = PickListItemStatus.PICKED
        item.picked_at = item.picked_at or now
        item.notes = f"{item.notes}\n{note}".strip()
        item.save()
        return shortfall

    @staticmethod
    def _split_into_continuation(pick_list: PickList, partial, untouched, new_staff):
        now = timezone.now()
        validate_pick_list_workflow(pick_list, PickListStatus.PARTIALLY_COMPLETED)

        continuation = PickList.objects.create(
            batch_number=f"{pick_list.batch_number}-CONT",
            assigned_to=new_staff,
            status=PickListStatus.ASSIGNED,
            priority=pick_list.priority + 1,
            parent=pick_list,
            notes=f"Continuation of {pick_list.batch_number}",
        )

        for item in partial:
            shortfall = ReassignmentService._close_at_picked(
                item, now, f"Closed at {item.quantity_picked} - remainder moved to {continuation.batch_number}"
            )
            PickListItem.objects.create(
                pick_list=continuation,
                order_id=item.order_id,
                product_id=item.product_id,
                location_id=item.location_id,
                quantity_to_pick=shortfall,
                sequence=item.sequence,
                notes=f"Shortfall carried over from {pick_list.batch_number}",
            )

        for item in untouched:
            item.pick_list = continuation
            item.save(update_fields=['pick_list', 'updated_at'])

        pick_list.status = PickListStatus.PARTIALLY_COMPLETED
        pick_list.end_time = now
        pick_list.version = F('version') + 1
        pick_list.refresh_progress()
        pick_list.save(update_fields=['status', 'end_time', 'version', 'total_items', 'picked_items', 'updated_at'])
        pick_list.refresh_from_db(fields=['version'])

        continuation.refresh_progress()
        continuation.save(update_fields=['total_items', 'picked_items', 'updated_at'])

        after = sum(item.remaining_to_pick for item in partial) + sum(
            item.remaining_to_pick for item in continuation.items.all()
        )
        return continuation, after

    @staticmethod
    def _split_in_place(pick_list: PickList, partial, untouched, new_staff) -> int:
        now = timezone.now()
        siblings = []

        for item in partial:
            shortfall = ReassignmentService._close_at_picked(
                item, now, f"Closed at {item.quantity_picked} on reassignment"
            )
            siblings.append(PickListItem.objects.create(
                pick_list=pick_list,
                order_id=item.order_id,
                product_id=item.product_id,
                location_id=item.location_id,
                quantity_to_pick=shortfall,
                sequence=item.sequence,
                notes="Shortfall after in-place reassignment",
            ))

        pick_list.refresh_progress()
        new_status = PickListStatus.IN_PROGRESS if pick_list.picked_items > 0 else PickListStatus.ASSIGNED
        validate_pick_list_workflow(pick_list, new_status)

        pick_list.status = new_status
        pick_list.assigned_to = new_staff
        pick_list.version = F('version') + 1
        pick_list.save(update_fields=[
            'status', 'assigned_to', 'version', 'total_items', 'picked_items', 'updated_at'
        ])
        pick_list.refresh_from_db(fields=['version'])

        return sum(item.remaining_to_pick for item in partial + siblings + untouched)

    @staticmethod
    def bulk_reassign(from_staff_id, to_staff_id, actor=None,
                      reason: str = ReassignmentReason.STAFF_UNAVAILABLE, notes: str = "") -> Dict[str, Any]:
        """
        SPLIT every incomplete pick list of one staff member over to another.

        Each list is reassigned in its own transaction; a failing list is
        reported and never stops the rest.
        """
        to_staff = ReassignmentService._get_staff(to_staff_id)
        if str(to_staff.id) == str(from_staff_id):
            raise ValidationException(
                "Cannot reassign work to the staff member it belongs to",
                {'to_staff_id': to_staff.id},
                code='ALREADY_ASSIGNED'
            )

        pick_list_ids = list(
            PickList.objects
            .filter(assigned_to_id=from_staff_id, status__in=INCOMPLETE_PICKLIST_STATUSES)
            .order_by('priority', 'created_at')
            .values_list('id', flat=True)
        )

        results = []
        for pick_list_id in pick_list_ids:
            try:
                result = ReassignmentService.reassign(
                    pick_list_id, to_staff.id, actor, STRATEGY_SPLIT, reason=reason, notes=notes
                )
                results.append({
                    'pick_list_id': pick_list_id,
                    'success': True,
                    'continuation_id': result['continuation']['id'],
                    'continuation_batch_number': result['continuation']['batch_number'],
                    'units_reassigned': result['summary']['units_reassigned'],
                })
            except BusinessException as e:
                logger.warning(f"Bulk reassignment skipped pick list {pick_list_id}: {e.message}")
                results.append({
                    'pick_list_id': pick_list_id,
                    'success': False,
                    'code': e.code,
                    'message': e.message,
                })
            except DatabaseError as e:
                logger.exception(f"Store failure while reassigning pick list {pick_list_id}")
                results.append({
                    'pick_list_id': pick_list_id,
                    'success': False,
                    'code': 'TRANSACTION_ABORTED',
                    'message': str(e),
                })

        reassigned_count = sum(1 for result in results if result['success'])
        logger.info(
            f"Bulk reassignment from {from_staff_id} to {to_staff.id}: "
            f"{reassigned_count}/{len(results)} pick lists moved"
        )
        return {
            'from_staff_id': from_staff_id,
            'to_staff_id': to_staff.id,
            'reassigned_count': reassigned_count,
            'failed_count': len(results) - reassigned_count,
            'results': results,
        }

    @staticmethod
    def find_optimal_staff(exclude_staff_id=None) -> List[Dict[str, Any]]:
        """
        Rank active warehouse staff by outstanding picking workload.

        Workload is the number of non-terminal items on ASSIGNED or
        IN_PROGRESS lists; ties go to the alphabetically first username.
        """
        User = get_user_model()
        group_members = User.objects.filter(groups__name=settings.WAREHOUSE_STAFF_GROUP).values('id')
        active_lists = Q(assigned_pick_lists__status__in=ACTIVE_PICKLIST_STATUSES)

        candidates = (
            User.objects
            .filter(is_active=True)
            .filter(Q(is_staff=True) | Q(id__in=group_members))
            .annotate(
                active_pick_lists=Count('assigned_pick_lists', filter=active_lists, distinct=True),
                outstanding_items=Count(
                    'assigned_pick_lists__items',
                    filter=active_lists & Q(assigned_pick_lists__items__status__in=OPEN_ITEM_STATUSES),
                    distinct=True,
                ),
            )
            .order_by('outstanding_items', 'username')
        )
        if exclude_staff_id is not None:
            candidates = candidates.exclude(id=exclude_staff_id)

        return [
            {
                'staff_id': user.id,
                'username': user.get_username(),
                'name': user.get_full_name() or user.get_username(),
                'active_pick_lists': user.active_pick_lists,
                'outstanding_items': user.outstanding_items,
            }
            for user in candidates
        ]

    @staticmethod
    def end_of_shift(staff_id, replacement_staff_id=None, actor=None, auto_reassign: bool = False) -> Dict[str, Any]:
        """
        Wrap up a staff member's shift.

        With a replacement (given, or picked by workload when auto_reassign is
        set) every incomplete list is split over to them; otherwise the lists
        are paused for a manager to hand out later.
        """
        staff = ReassignmentService._get_staff(staff_id, active_only=False)
        incomplete = ReassignmentService.find_incomplete_work(staff.id)

        now = timezone.now()
        shift_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        result = {
            'staff_id': staff.id,
            'shift_metrics': ReassignmentService.get_staff_metrics(staff.id, shift_start, now),
            'incomplete_work': {
                'total_lists': len(incomplete),
                'total_items': sum(pick_list['incomplete_items'] for pick_list in incomplete),
                'partial_items': sum(pick_list['partial_items'] for pick_list in incomplete),
            },
            'action': None,
            'reassignment': None,
            'paused': [],
        }

        if not incomplete:
            logger.info(f"No incomplete work to process for staff {staff.id}")
            return result

        if replacement_staff_id is None and auto_reassign:
            ranked = ReassignmentService.find_optimal_staff(exclude_staff_id=staff.id)
            if ranked:
                replacement_staff_id = ranked[0]['staff_id']

        if replacement_staff_id is not None:
            result['action'] = 'REASSIGNED'
            result['reassignment'] = ReassignmentService.bulk_reassign(
                staff.id, replacement_staff_id, actor, reason=ReassignmentReason.SHIFT_CHANGE, notes="End of shift"
            )
            return result

        result['action'] = 'PAUSED'
        for entry in incomplete:
            paused = ReassignmentService._pause(entry['id'], actor, entry)
            if paused:
                result['paused'].append(paused)

        logger.info(f"Paused {len(result['paused'])} pick lists at end of shift for staff {staff.id}")
        return result

    @staticmethod
    def _pause(pick_list_id, actor, counts: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with transaction.atomic():
            pick_list = PickList.objects.select_for_update().get(id=pick_list_id)
            if pick_list.status == PickListStatus.PAUSED:
                return None
            validate_pick_list_workflow(pick_list, PickListStatus.PAUSED)

            pick_list.status = PickListStatus.PAUSED
            pick_list.version = F('version') + 1
            pick_list.notes = "Paused at end of shift - awaiting reassignment"
            pick_list.save(update_fields=['status', 'version', 'notes', 'updated_at'])
            pick_list.refresh_from_db(fields=['version'])

            AuditEvent.record(
                pick_list,
                AuditEventType.PICK_PAUSED,
                actor=actor,
                payload={
                    'staff_id': pick_list.assigned_to_id,
                    'incomplete_items': counts['incomplete_items'],
                    'partial_items': counts['partial_items'],
                },
                notes="End of shift - paused for later assignment"
            )
            notify_after_commit('PICK_LIST_PAUSED', {
                'pick_list_id': str(pick_list.id),
                'staff_id': pick_list.assigned_to_id,
            })
        return ReassignmentService._pick_list_summary(pick_list)

    @staticmethod
    def audit_progress(pick_list_id, now=None) -> Dict[str, Any]:
        """
        Diagnose a pick list: partial picks (warning) and items left PENDING
        on a list older than PICKLIST_STALE_AFTER_HOURS (error).

        Read-only.
        """
        try:
            pick_list = PickList.objects.get(id=pick_list_id)
        except (PickList.DoesNotExist, DjangoValidationError):
            raise NotFoundException('PickList', pick_list_id, 'PICKLIST_NOT_FOUND')

        now = now or timezone.now()
        stale_after = timedelta(hours=getattr(settings, 'PICKLIST_STALE_AFTER_HOURS', 4))
        age = now - pick_list.created_at
        hours_pending = round(age.total_seconds() / 3600)

        partial_items = []
        stuck_items = []
        for item in pick_list.items.select_related('product', 'location'):
            if 0 < item.quantity_picked < item.quantity_to_pick:
                partial_items.append({
                    'item_id': item.id,
                    'sku': item.product.sku,
                    'picked': item.quantity_picked,
                    'needed': item.quantity_to_pick,
                    'remaining': item.remaining_to_pick,
                    'location': item.location.code,
                })
            if item.status == PickListItemStatus.PENDING and age > stale_after:
                stuck_items.append({
                    'item_id': item.id,
                    'sku': item.product.sku,
                    'hours_pending': hours_pending,
                    'location': item.location.code,
                })

        issues = []
        if partial_items:
            issues.append({
                'type': 'PARTIAL_PICKS',
                'severity': 'warning',
                'count': len(partial_items),
                'details': partial_items,
            })
        if stuck_items:
            issues.append({
                'type': 'STUCK_ITEMS',
                'severity': 'error',
                'count': len(stuck_items),
                'details': stuck_items,
            })

        return {
            'pick_list_id': pick_list.id,
            'batch_number': pick_list.batch_number,
            'status': pick_list.status,
            'has_issues': bool(issues),
            'issues': issues,
            'summary': {
                'total_items': pick_list.total_items,
                'picked_items': pick_list.picked_items,
                'partial_items': len(partial_items),
                'stuck_items': len(stuck_items),
            },
        }

    @staticmethod
    def get_pick_list_chain(pick_list_id) -> Dict[str, Any]:
        """
        Walk a pick list's split history: up to the root, then down through
        every continuation in creation order.
        """
        try:
            pick_list = PickList.objects.get(id=pick_list_id)
        except (PickList.DoesNotExist, DjangoValidationError):
            raise NotFoundException('PickList', pick_list_id, 'PICKLIST_NOT_FOUND')

        root = pick_list
        visited = {root.id}
        while root.parent_id and root.parent_id not in visited:
            root = PickList.objects.get(id=root.parent_id)
            visited.add(root.id)

        chain = [root]
        seen = {root.id}
        frontier = [root.id]
        while frontier:
            children = list(
                PickList.objects.filter(parent_id__in=frontier).exclude(id__in=seen).order_by('created_at', 'id')
            )
            chain.extend(children)
            seen.update(child.id for child in children)
            frontier = [child.id for child in children]

        return {
            'root': ReassignmentService._pick_list_summary(root),
            'chain': [ReassignmentService._pick_list_summary(entry) for entry in chain],
            'total_lists': len(chain),
            'current': ReassignmentService._pick_list_summary(pick_list),
        }

    @staticmethod
    def get_staff_metrics(staff_id, start, end) -> Dict[str, Any]:
        """Picking throughput for one staff member over [start, end]."""
        pick_lists = list(
            PickList.objects.filter(assigned_to_id=staff_id, created_at__gte=start, created_at__lte=end)
        )
        completed = [pl for pl in pick_lists if pl.status == PickListStatus.COMPLETED]
        total_items = sum(pl.total_items for pl in pick_lists)
        picked_items = sum(pl.picked_items for pl in pick_lists)

        durations = [
            (pl.end_time - pl.start_time).total_seconds()
            for pl in completed if pl.start_time and pl.end_time
        ]
        avg_seconds = sum(durations) / (len(completed) or 1)

        return {
            'staff_id': staff_id,
            'period': {'start': start, 'end': end},
            'total_pick_lists': len(pick_lists),
            'completed_pick_lists': len(completed),
            'total_items_assigned': total_items,
            'total_items_picked': picked_items,
            'completion_rate': (picked_items / total_items) * 100 if total_items > 0 else 0,
            'avg_pick_time_minutes': round(avg_seconds / 60),
            'items_per_hour': round(picked_items / avg_seconds * 3600) if avg_seconds > 0 else 0,
        }
