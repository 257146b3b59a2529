#!/usr/bin/env python3
"""
Tests for the HTTP surface: JSON endpoints, the HTML validation dashboard and health checks.
"""

import unittest
from urllib.parse import parse_qs, urlparse

from giveprotocol.models.enums import RequestStatus, ValidationStatus
from giveprotocol.models.self_reported_hours import SelfReportedHours, ValidationRequest
from testsupport import AppTestCase, hours_data

class TestDirectoryEndpoints(AppTestCase):

    def test_create_volunteer(self):
        response = self.client.post('/api/volunteers', json={"name": "Alex Kim", "email": "Alex@Example.com"})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.get_json()['email'], "alex@example.com")

    def test_duplicate_volunteer_email(self):
        response = self.client.post('/api/volunteers', json={"name": "Jordan", "email": "jordan@example.com"})
        self.assertEqual(response.status_code, 400)
        self.assertIn('error', response.get_json())

    def test_create_volunteer_missing_fields(self):
        response = self.client.post('/api/volunteers', json={"name": "No Email"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['error_type'], "InputValidationError")

    def test_list_volunteers(self):
        response = self.client.get('/api/volunteers')
        self.assertEqual([v['name'] for v in response.get_json()], ["Jordan Lee", "Sam Rivera"])

    def test_search_organizations(self):
        response = self.client.get('/api/organizations?q=food')
        self.assertEqual([o['name'] for o in response.get_json()], ["Novato Food Bank"])

        response = self.client.get('/api/organizations?verified=true')
        self.assertEqual([o['name'] for o in response.get_json()], ["Novato Food Bank"])

    def test_create_organization(self):
        response = self.client.post('/api/organizations', json={"name": "Marin Literacy", "is_verified": True})
        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.get_json()['is_verified'])

class TestSelfReportedHoursEndpoints(AppTestCase):

    def _create(self, **overrides):
        payload = hours_data(volunteer_id=self.volunteer.id, organization_id=self.organization.id)
        payload.update(overrides)
        return self.client.post('/api/self-reported-hours', json=payload)

    def test_create_requests_validation_for_verified_organization(self):
        response = self._create()
        self.assertEqual(response.status_code, 201)
        body = response.get_json()
        self.assertEqual(body['validation_status'], "pending")
        self.assertEqual(body['validation_request']['status'], "pending")
        self.assertFalse(body['can_edit'])

    def test_create_without_requesting(self):
        body = self._create(request_validation=False).get_json()
        self.assertEqual(body['validation_status'], "unvalidated")
        self.assertIsNone(body['validation_request'])
        self.assertTrue(body['can_request_validation'])

    def test_create_with_unverified_organization(self):
        response = self._create(organization_id=self.unverified_organization.id)
        self.assertEqual(response.status_code, 201)
        body = response.get_json()
        self.assertEqual(body['validation_status'], "unvalidated")
        self.assertIsNone(body['validation_request'])

    def test_create_invalid(self):
        response = self._create(hours=0)
        self.assertEqual(response.status_code, 400)
        body = response.get_json()
        self.assertEqual(body['error_type'], "InputValidationError")
        self.assertIn("Hours must be between 0.5 and 24", body['details']['errors'])

    def test_create_with_numeric_description(self):
        response = self._create(description=12345)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['details']['errors'], ["Description must be text"])

    def test_create_requires_volunteer(self):
        response = self.client.post('/api/self-reported-hours', json=hours_data(organization_name="Garden Club"))
        self.assertEqual(response.status_code, 400)

    def test_list_stats_and_get(self):
        record_id = self._create(request_validation=False).get_json()['id']

        listed = self.client.get(f'/api/self-reported-hours?volunteer_id={self.volunteer.id}').get_json()
        self.assertEqual([r['id'] for r in listed], [record_id])

        stats = self.client.get(f'/api/self-reported-hours/stats?volunteer_id={self.volunteer.id}').get_json()
        self.assertEqual(stats['total_unvalidated_hours'], 3.5)

        response = self.client.get(f'/api/self-reported-hours/{record_id}?volunteer_id={self.other_volunteer.id}')
        self.assertEqual(response.status_code, 404)

    def test_patch_and_delete(self):
        record_id = self._create(request_validation=False).get_json()['id']

        response = self.client.patch(f'/api/self-reported-hours/{record_id}',
                                     json={"volunteer_id": self.volunteer.id, "hours": 5})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['hours'], 5.0)

        response = self.client.delete(f'/api/self-reported-hours/{record_id}?volunteer_id={self.volunteer.id}')
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(self.session.get(SelfReportedHours, record_id))

    def test_patch_pending_conflicts(self):
        record_id = self._create().get_json()['id']
        response = self.client.patch(f'/api/self-reported-hours/{record_id}',
                                     json={"volunteer_id": self.volunteer.id, "hours": 5})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.get_json()['error'], "Cannot edit pending records")

    def test_request_cancel_and_history(self):
        record_id = self._create(request_validation=False).get_json()['id']

        response = self.client.post(f'/api/self-reported-hours/{record_id}/request-validation',
                                    json={"volunteer_id": self.volunteer.id, "organization_id": self.organization.id})
        self.assertEqual(response.status_code, 201)
        request_id = response.get_json()['id']

        response = self.client.post(f'/api/self-reported-hours/{record_id}/request-validation',
                                    json={"volunteer_id": self.volunteer.id, "organization_id": self.organization.id})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.get_json()['error'], "Validation request already pending")

        response = self.client.post(f'/api/self-reported-hours/validation-requests/{request_id}/cancel',
                                    json={"volunteer_id": self.volunteer.id})
        self.assertEqual(response.status_code, 200)

        history = self.client.get(f'/api/self-reported-hours/{record_id}/history?volunteer_id={self.volunteer.id}')
        self.assertEqual([r['status'] for r in history.get_json()], ["cancelled"])

    def test_resubmit_via_api(self):
        record, request = self.make_pending()
        self.client.post(f'/api/organizations/{self.organization.id}/validation-queue/{request.id}/reject',
                         json={"responded_by": "organizer-1", "rejection_reason": "date_incorrect"})

        response = self.client.post(f'/api/self-reported-hours/validation-requests/{request.id}/resubmit',
                                    json={"volunteer_id": self.volunteer.id})
        self.assertEqual(response.status_code, 201)
        body = response.get_json()
        self.assertTrue(body['is_resubmission'])
        self.assertEqual(body['original_request_id'], request.id)

class TestValidationQueueEndpoints(AppTestCase):

    def _url(self, suffix=""):
        return f'/api/organizations/{self.organization.id}/validation-queue{suffix}'

    def test_queue_and_count(self):
        _, request = self.make_pending()
        body = self.client.get(self._url()).get_json()
        self.assertEqual(body['count'], 1)
        self.assertEqual(body['items'][0]['request_id'], request.id)
        self.assertEqual(body['items'][0]['volunteer_name'], "Jordan Lee")

        self.assertEqual(self.client.get(self._url('/count')).get_json()['count'], 1)

    def test_approve_then_conflict(self):
        record, request = self.make_pending()

        response = self.client.post(self._url(f'/{request.id}/approve'), json={"responded_by": "organizer-1"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['status'], "approved")
        self.session.refresh(record)
        self.assertEqual(record.validation_status, ValidationStatus.VALIDATED.value)

        response = self.client.post(self._url(f'/{request.id}/approve'), json={"responded_by": "organizer-2"})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.get_json()['error'], "This request has already been processed")

    def test_approve_requires_responder(self):
        _, request = self.make_pending()
        response = self.client.post(self._url(f'/{request.id}/approve'), json={})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.get_json()['error'], "You must be logged in")

    def test_approve_other_organizations_request(self):
        _, request = self.make_pending(organization=self.unverified_organization)
        response = self.client.post(self._url(f'/{request.id}/approve'), json={"responded_by": "organizer-1"})
        self.assertEqual(response.status_code, 403)
        self.session.refresh(request)
        self.assertEqual(request.status, RequestStatus.PENDING.value)

    def test_reject(self):
        _, request = self.make_pending()
        response = self.client.post(self._url(f'/{request.id}/reject'), json={
            "responded_by": "organizer-1",
            "rejection_reason": "description_insufficient",
            "rejection_notes": "Which event was this?",
        })
        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertEqual(body['rejection_reason'], "description_insufficient")
        self.assertEqual(body['rejection_notes'], "Which event was this?")

    def test_reject_requires_reason(self):
        _, request = self.make_pending()
        response = self.client.post(self._url(f'/{request.id}/reject'), json={"responded_by": "organizer-1"})
        self.assertEqual(response.status_code, 400)

    def test_batch_approve(self):
        _, first = self.make_pending()
        _, second = self.make_pending()
        _, foreign = self.make_pending(organization=self.unverified_organization)

        response = self.client.post(self._url('/batch-approve'), json={
            "responded_by": "organizer-1",
            "request_ids": [first.id, foreign.id, second.id],
        })
        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertEqual(body['succeeded'], [first.id, second.id])
        self.assertEqual(body['failed'], {foreign.id: "Validation request not found"})
        self.assertEqual(body['success_count'], 2)
        self.assertEqual(body['failed_count'], 1)

    def test_batch_limit(self):
        response = self.client.post(self._url('/batch-approve'), json={
            "responded_by": "organizer-1",
            "request_ids": [f"req-{i}" for i in range(11)],
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['error'], "Cannot process more than 10 requests at once")

    def test_batch_reject(self):
        _, request = self.make_pending()
        response = self.client.post(self._url('/batch-reject'), json={
            "responded_by": "organizer-1",
            "request_ids": [request.id],
            "rejection_reason": "other",
        })
        self.assertEqual(response.get_json()['succeeded'], [request.id])
        self.session.refresh(request)
        self.assertEqual(request.status, RequestStatus.REJECTED.value)

class TestValidationDashboard(AppTestCase):

    def _dashboard(self, query=""):
        return f'/organizations/{self.organization.id}/validation{query}'

    def _action(self, **form):
        form.setdefault('responder', "organizer-1")
        return self.client.post(f'/organizations/{self.organization.id}/validation/actions', data=form)

    def test_empty_state(self):
        response = self.client.get(self._dashboard("?responder=organizer-1"))
        self.assertEqual(response.status_code, 200)
        self.assertIn(b"No pending validation requests", response.data)

    def test_lists_pending_requests(self):
        self.make_pending()
        response = self.client.get(self._dashboard("?responder=organizer-1"))
        self.assertIn(b"Jordan Lee", response.data)
        self.assertIn(b"Novato Food Bank", response.data)
        self.assertNotIn(b"No pending validation requests", response.data)

    def test_view_opens_modal(self):
        _, request = self.make_pending()
        response = self.client.get(self._dashboard(f"?responder=organizer-1&view={request.id}"))
        self.assertIn(b"Reject hours", response.data)
        self.assertIn(b"Hours claimed are inaccurate", response.data)

    def test_toggle_preserves_selection_in_redirect(self):
        _, request = self.make_pending()
        response = self._action(action="toggle", request_id=request.id)
        self.assertEqual(response.status_code, 302)
        query = parse_qs(urlparse(response.headers['Location']).query)
        self.assertEqual(query['selected'], [request.id])
        self.assertEqual(query['responder'], ["organizer-1"])

    def test_select_all_and_clear(self):
        _, first = self.make_pending()
        _, second = self.make_pending()
        response = self._action(action="select_all")
        query = parse_qs(urlparse(response.headers['Location']).query)
        self.assertEqual(sorted(query['selected']), sorted([first.id, second.id]))

        response = self._action(action="clear", selected=[first.id, second.id])
        self.assertNotIn('selected', parse_qs(urlparse(response.headers['Location']).query))

    def test_approve_flashes_success(self):
        record, request = self.make_pending()
        response = self._action(action="approve", request_id=request.id)
        follow = self.client.get(response.headers['Location'])
        self.assertIn(b"Approved: Volunteer hours validated successfully", follow.data)
        self.session.refresh(record)
        self.assertEqual(record.validation_status, ValidationStatus.VALIDATED.value)

    def test_approve_without_responder(self):
        _, request = self.make_pending()
        response = self._action(action="approve", request_id=request.id, responder="")
        follow = self.client.get(response.headers['Location'])
        self.assertIn(b"You must be logged in", follow.data)
        self.session.refresh(request)
        self.assertEqual(request.status, RequestStatus.PENDING.value)

    def test_reject_from_modal_without_reason_reopens_modal(self):
        _, request = self.make_pending()
        response = self._action(action="reject", request_id=request.id, from_modal="1")
        query = parse_qs(urlparse(response.headers['Location']).query)
        self.assertEqual(query['view'], [request.id])

    def test_batch_reject_partial(self):
        _, first = self.make_pending()
        _, second = self.make_pending()
        self.client.post(f'/api/organizations/{self.organization.id}/validation-queue/{second.id}/approve',
                         json={"responded_by": "organizer-2"})

        response = self._action(action="batch_reject", selected=[first.id, second.id],
                                rejection_reason="other", rejection_notes="Duplicate entry")
        query = parse_qs(urlparse(response.headers['Location']).query)
        self.assertEqual(query['selected'], [second.id])

        follow = self.client.get(response.headers['Location'])
        self.assertIn(b"Partial Success: Rejected 1, failed 1", follow.data)
        self.assertEqual(self.session.get(ValidationRequest, first.id).rejection_notes, "Duplicate entry")

    def test_unknown_action(self):
        response = self._action(action="explode")
        follow = self.client.get(response.headers['Location'])
        self.assertIn(b"Unknown action: explode", follow.data)

class TestHealthAndErrors(AppTestCase):

    def test_healthcheck(self):
        response = self.client.get('/api/healthcheck')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers['X-Cache'], "MISS")
        body = response.get_json()
        self.assertEqual(body['checks']['database']['status'], "healthy")
        self.assertEqual(body['checks']['discord']['status'], "degraded")

        cached = self.client.get('/api/healthcheck?c=1')
        self.assertEqual(cached.headers['X-Cache'], "HIT")

    def test_index(self):
        response = self.client.get('/')
        self.assertEqual(response.data, b"All systems operational. API is running.")

    def test_unknown_endpoint(self):
        response = self.client.get('/api/does-not-exist')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json(), {"error": "Endpoint not found"})

if __name__ == '__main__':
    unittest.main()
