"""
API tests for the reallocation endpoints.
"""

import uuid
from unittest import mock
from django.contrib.auth.models import Group
from rest_framework import status
from rest_framework.test import APITestCase

from inventory.exceptions import InventoryLedgerException
from inventory.services.stock_service import StockService

from ..models import OrderStatus, BackOrderStatus, PickList, PickListStatus
from .helpers import FulfillmentFixtures


class ReallocationAPITestBase(FulfillmentFixtures, APITestCase):

    def setUp(self):
        self.manager = self.create_staff('floor_manager')
        manager_group, _ = Group.objects.get_or_create(name='warehouse_manager')
        self.manager.groups.add(manager_group)
        self.picker_x = self.create_staff('picker_x')
        self.picker_y = self.create_staff('picker_y')

        self.location = self.create_location()
        self.product = self.create_product('SKU-API', unit_weight_grams=100, length_in=2, width_in=3, height_in=4)
        self.order = self.create_order([(self.product, 5)], status=OrderStatus.PICKING)
        self.pick_list = self.create_pick_list('PL-API', self.picker_x, [
            (self.order, self.product, self.location, 5, 2),
        ])

    def error_code(self, response):
        return response.data['error']['code']


class PickListAPITest(ReallocationAPITestBase):
    """Pick list endpoints."""

    def test_manager_can_reassign(self):
        self.client.force_authenticate(user=self.manager)

        response = self.client.post(
            f'/api/pick-lists/{self.pick_list.id}/reassign/',
            {'new_staff_id': self.picker_y.id, 'strategy': 'SPLIT', 'reason': 'STAFF_UNAVAILABLE'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['data']['summary']['units_reassigned'], 3)
        self.assertEqual(response.data['data']['continuation']['batch_number'], 'PL-API-CONT')

    def test_picker_cannot_reassign(self):
        self.client.force_authenticate(user=self.picker_x)

        response = self.client.post(
            f'/api/pick-lists/{self.pick_list.id}/reassign/',
            {'new_staff_id': self.picker_y.id},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_reassign_requires_reason(self):
        self.client.force_authenticate(user=self.manager)

        response = self.client.post(
            f'/api/pick-lists/{self.pick_list.id}/reassign/',
            {'new_staff_id': self.picker_y.id},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('reason', response.data)
        self.assertFalse(PickList.objects.filter(parent=self.pick_list).exists())

    def test_reassign_records_reason_and_notes(self):
        self.client.force_authenticate(user=self.manager)

        response = self.client.post(
            f'/api/pick-lists/{self.pick_list.id}/reassign/',
            {'new_staff_id': self.picker_y.id, 'reason': 'EQUIPMENT_ISSUE', 'notes': 'scanner battery dead'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get(f'/api/pick-lists/{self.pick_list.id}/events/')
        event = response.data['data'][0]
        self.assertEqual(event['event_type'], 'PICK_SPLIT')
        self.assertEqual(event['payload']['reason'], 'EQUIPMENT_ISSUE')
        self.assertEqual(event['notes'], 'scanner battery dead')

    def test_stale_version_is_conflict(self):

        self.client.force_authenticate(user=self.manager)

        response = self.client.post(
            f'/api/pick-lists/{self.pick_list.id}/reassign/',
            {'new_staff_id': self.picker_y.id, 'expected_version': 3, 'reason': 'OTHER'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(self.error_code(response), 'STALE_PICKLIST')

    def test_unknown_pick_list_is_not_found(self):
        self.client.force_authenticate(user=self.manager)

        response = self.client.post(
            f'/api/pick-lists/{uuid.uuid4()}/reassign/',
            {'new_staff_id': self.picker_y.id, 'reason': 'OTHER'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.error_code(response), 'PICKLIST_NOT_FOUND')

    def test_unknown_strategy_is_rejected_by_serializer(self):
        self.client.force_authenticate(user=self.manager)

        response = self.client.post(
            f'/api/pick-lists/{self.pick_list.id}/reassign/',
            {'new_staff_id': self.picker_y.id, 'strategy': 'MERGE', 'reason': 'OTHER'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_incomplete_requires_staff_id(self):
        self.client.force_authenticate(user=self.picker_x)

        response = self.client.get('/api/pick-lists/incomplete/')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.error_code(response), 'VALIDATION_ERROR')

    def test_incomplete_lists_work(self):
        self.client.force_authenticate(user=self.picker_x)

        response = self.client.get('/api/pick-lists/incomplete/', {'staff_id': self.picker_x.id})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']), 1)
        self.assertEqual(response.data['data'][0]['outstanding_units'], 3)

    def test_optimal_staff_recommends_lightest(self):
        self.client.force_authenticate(user=self.manager)

        response = self.client.get('/api/pick-lists/optimal-staff/', {'exclude_staff_id': self.picker_x.id})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['recommended']['username'], 'floor_manager')

    def test_end_of_shift_pauses(self):
        self.client.force_authenticate(user=self.manager)

        response = self.client.post(
            '/api/pick-lists/end-of-shift/', {'staff_id': self.picker_x.id}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['action'], 'PAUSED')
        self.pick_list.refresh_from_db()
        self.assertEqual(self.pick_list.status, PickListStatus.PAUSED)

    def test_record_pick_and_events(self):
        self.client.force_authenticate(user=self.picker_x)
        item = self.pick_list.items.get()

        response = self.client.post(
            f'/api/pick-lists/{self.pick_list.id}/pick/',
            {'item_id': str(item.id), 'quantity_picked': 5},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['item_status'], 'PICKED')

        response = self.client.get(f'/api/pick-lists/{self.pick_list.id}/events/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([event['event_type'] for event in response.data['data']], ['PICK_RECORDED'])

    def test_skip_item(self):
        self.client.force_authenticate(user=self.picker_x)
        untouched = self.create_pick_list('PL-API-2', self.picker_x, [
            (self.order, self.product, self.location, 5, 0),
        ], status=PickListStatus.ASSIGNED)
        item = untouched.items.get()

        response = self.client.post(
            f'/api/pick-lists/{untouched.id}/skip/',
            {'item_id': str(item.id), 'reason': 'Bin empty'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['item_status'], 'SKIPPED')
        item.refresh_from_db()
        self.assertIn('Bin empty', item.notes)

    def test_skip_item_from_another_list_is_not_found(self):
        self.client.force_authenticate(user=self.picker_x)
        other = self.create_pick_list('PL-API-3', self.picker_x, [
            (self.order, self.product, self.location, 5, 0),
        ])

        response = self.client.post(
            f'/api/pick-lists/{other.id}/skip/',
            {'item_id': str(self.pick_list.items.get().id)},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.error_code(response), 'ITEM_NOT_FOUND')

    def test_audit_endpoint(self):

        self.client.force_authenticate(user=self.picker_x)

        response = self.client.get(f'/api/pick-lists/{self.pick_list.id}/audit/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['data']['has_issues'])

    def test_unauthenticated_request(self):
        response = self.client.get('/api/pick-lists/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_outsider_cannot_list(self):
        outsider = self.create_staff('outsider', warehouse=False)
        self.client.force_authenticate(user=outsider)

        response = self.client.get('/api/pick-lists/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class BackOrderAPITest(ReallocationAPITestBase):
    """Back order endpoints."""

    def setUp(self):
        super().setUp()
        self.bo_order = self.create_order([(self.product, 10)], status=OrderStatus.BACKORDER, has_back_orders=True)
        self.back_order = self.create_back_order(self.bo_order, self.product, self.location, 10)
        self.client.force_authenticate(user=self.picker_x)

    def test_fulfill_then_already_processed(self):
        self.create_stock(self.product, self.location, on_hand=10)
        url = f'/api/back-orders/{self.back_order.id}/fulfill/'

        response = self.client.post(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['reserved_qty'], 10)

        response = self.client.post(url)
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(self.error_code(response), 'ALREADY_PROCESSED')

    def test_fulfill_with_insufficient_stock(self):
        self.create_stock(self.product, self.location, on_hand=7)

        response = self.client.post(f'/api/back-orders/{self.back_order.id}/fulfill/')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.error_code(response), 'INSUFFICIENT_STOCK')
        self.assertEqual(response.data['error']['details'], {'needed': 10, 'available': 7})

    def test_fulfill_reports_ledger_refusal(self):
        self.create_stock(self.product, self.location, on_hand=10)
        refusal = InventoryLedgerException("Reservation refused", "INSUFFICIENT_STOCK", {'requested': 10})

        with mock.patch.object(StockService, 'reserve_stock', side_effect=refusal):
            response = self.client.post(f'/api/back-orders/{self.back_order.id}/fulfill/')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.error_code(response), 'INSUFFICIENT_STOCK')
        self.back_order.refresh_from_db()
        self.assertEqual(self.back_order.status, BackOrderStatus.PENDING)

    def test_fulfill_batch(self):

        self.create_stock(self.product, self.location, on_hand=10)

        response = self.client.post(
            '/api/back-orders/fulfill-batch/',
            {'back_order_ids': [str(self.back_order.id), str(uuid.uuid4())]},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['allocated_count'], 1)
        self.assertEqual(response.data['data']['failed_count'], 1)

    def test_fulfill_batch_requires_ids(self):
        response = self.client.post('/api/back-orders/fulfill-batch/', {'back_order_ids': []}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_by_order(self):
        response = self.client.get('/api/back-orders/by-order/', {'status': BackOrderStatus.PENDING})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']), 1)
        self.assertFalse(response.data['data'][0]['can_fulfill_all'])


class PackingAPITest(ReallocationAPITestBase):
    """Packing plan endpoint."""

    def test_plan_serializes_decimals_as_strings(self):
        order = self.create_order([(self.product, 10)], status=OrderStatus.PICKED, has_back_orders=True)
        self.create_back_order(order, self.product, self.location, 4, status=BackOrderStatus.PICKED)
        self.client.force_authenticate(user=self.picker_x)

        response = self.client.get(f'/api/packing/{order.id}/plan/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        info = response.data['data']['packing_info']
        self.assertEqual(info['total_weight_oz'], '14.11')
        self.assertEqual(info['estimated_shipping_cost'], '2.12')
        self.assertEqual(response.data['data']['items'][0]['quantity_to_pack'], 4)

    def test_plan_for_unknown_order(self):
        self.client.force_authenticate(user=self.picker_x)

        response = self.client.get(f'/api/packing/{uuid.uuid4()}/plan/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class InventoryReceiveAPITest(ReallocationAPITestBase):
    """Receiving stock through the inventory API."""

    def test_receive_allocates_waiting_back_order(self):
        order = self.create_order([(self.product, 3)], status=OrderStatus.BACKORDER, has_back_orders=True)
        back_order = self.create_back_order(order, self.product, self.location, 3)
        self.client.force_authenticate(user=self.manager)

        response = self.client.post(
            '/api/inventory/records/receive/',
            {'product_id': self.product.id, 'location_id': self.location.id, 'quantity': 3},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['allocation']['allocated'], 1)
        back_order.refresh_from_db()
        self.assertEqual(back_order.status, BackOrderStatus.ALLOCATED)

    def test_receive_rejects_zero_quantity(self):
        self.client.force_authenticate(user=self.manager)

        response = self.client.post(
            '/api/inventory/records/receive/',
            {'product_id': self.product.id, 'location_id': self.location.id, 'quantity': 0},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
