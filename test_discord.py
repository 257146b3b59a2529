#!/usr/bin/env python3
"""
Unit tests for the Discord Notification Manager.
"""

import unittest
import time
import requests
from unittest.mock import patch, MagicMock, Mock
from giveprotocol.discord import DiscordNotificationManager

TEST_WEBHOOK_URL = "https://discord.com/api/webhooks/test/test"

class TestDisabledNotifier(unittest.TestCase):
    """A notifier without a webhook URL never starts a worker or sends anything."""

    def test_no_webhook_disables(self):
        notifier = DiscordNotificationManager(webhook_url=None)
        self.assertFalse(notifier.enabled)
        self.assertIsNone(notifier._worker_thread)
        self.assertFalse(notifier.is_healthy())

    @patch('requests.post')
    def test_messages_are_dropped(self, mock_post):
        notifier = DiscordNotificationManager(webhook_url=TEST_WEBHOOK_URL, enabled=False)
        notifier.send_embed("Title", "Description")
        notifier.send_validation_decision("req-1", "org-1", "vol-1", 2.5, approved=True)
        self.assertEqual(notifier.get_queue_size(), 0)
        mock_post.assert_not_called()
        # shutdown is a no-op without a worker
        notifier.shutdown()

class TestSendWithRetry(unittest.TestCase):
    """Retry behaviour, exercised without the worker thread."""

    def setUp(self):
        self.notifier = DiscordNotificationManager(webhook_url=TEST_WEBHOOK_URL, enabled=False)

    @patch('time.sleep')
    @patch('requests.post')
    def test_success_first_try(self, mock_post, mock_sleep):
        mock_post.return_value = Mock(ok=True, status_code=204)
        self.assertTrue(self.notifier._send_with_retry({'content': 'hi'}))
        mock_post.assert_called_once_with(TEST_WEBHOOK_URL, json={'content': 'hi'}, timeout=10)
        mock_sleep.assert_not_called()

    @patch('time.sleep')
    @patch('requests.post')
    def test_rate_limited_then_success(self, mock_post, mock_sleep):
        limited = Mock(ok=False, status_code=429)
        limited.json.return_value = {'message': 'You are being rate limited.', 'retry_after': 5.0, 'global': False}
        mock_post.side_effect = [limited, Mock(ok=True, status_code=200)]

        self.assertTrue(self.notifier._send_with_retry({'content': 'hi'}))
        self.assertEqual(mock_post.call_count, 2)
        mock_sleep.assert_called_once_with(5.0)

    @patch('time.sleep')
    @patch('requests.post')
    def test_global_rate_limit_sets_reset_time(self, mock_post, mock_sleep):
        limited = Mock(ok=False, status_code=429)
        limited.json.return_value = {'retry_after': 10.0, 'global': True}
        mock_post.side_effect = [limited, Mock(ok=True, status_code=200)]

        self.assertTrue(self.notifier._send_with_retry({'content': 'hi'}))
        self.assertGreater(self.notifier.global_reset_time, time.time())

    @patch('time.sleep')
    @patch('requests.post')
    def test_network_error_backs_off(self, mock_post, mock_sleep):
        mock_post.side_effect = [
            requests.exceptions.ConnectionError("Network error"),
            Mock(ok=True, status_code=200),
        ]
        self.assertTrue(self.notifier._send_with_retry({'content': 'hi'}))
        mock_sleep.assert_called_once_with(2)

    @patch('time.sleep')
    @patch('requests.post')
    def test_gives_up_after_max_retries(self, mock_post, mock_sleep):
        mock_post.side_effect = requests.exceptions.ConnectionError("down")
        self.assertFalse(self.notifier._send_with_retry({'content': 'hi'}))
        self.assertEqual(mock_post.call_count, self.notifier.max_retries + 1)

    @patch('time.sleep')
    @patch('requests.post')
    def test_client_error_is_not_retried(self, mock_post, mock_sleep):
        mock_post.return_value = Mock(ok=False, status_code=404, text="Unknown Webhook")
        self.assertTrue(self.notifier._send_with_retry({'content': 'hi'}))
        mock_post.assert_called_once()

class TestDomainMessages(unittest.TestCase):
    """Payloads built by the validation helpers."""

    def setUp(self):
        self.notifier = DiscordNotificationManager(webhook_url=TEST_WEBHOOK_URL, enabled=False)
        self.notifier._enqueue = MagicMock()

    def _embed(self):
        payload = self.notifier._enqueue.call_args[0][0]
        return payload['embeds'][0]

    def test_validation_decision_rejected(self):
        self.notifier.send_validation_decision("req-1", "org-1", "vol-1", 3.5,
                                               approved=False, rejection_reason="hours_inaccurate")
        embed = self._embed()
        self.assertEqual(embed['title'], "Volunteer hours rejected")
        values = {f['name']: f['value'] for f in embed['fields']}
        self.assertEqual(values['Hours'], "3.5")
        self.assertEqual(values['Reason'], "hours_inaccurate")

    def test_batch_summary_partial(self):
        self.notifier.send_batch_summary("approved", 2, {"req-3": "Validation request not found"})
        embed = self._embed()
        self.assertEqual(embed['description'], "2 request(s) approved, 1 failed")
        values = {f['name']: f['value'] for f in embed['fields']}
        self.assertEqual(values['req-3'], "Validation request not found")

class TestDiscordNotificationManager(unittest.TestCase):
    """Worker thread delivery."""

    def setUp(self):
        self.notifier = DiscordNotificationManager(webhook_url=TEST_WEBHOOK_URL)
        time.sleep(0.1)

    def tearDown(self):
        self.notifier.shutdown()

    def test_initialization(self):
        self.assertTrue(self.notifier.enabled)
        self.assertEqual(self.notifier.webhook_url, TEST_WEBHOOK_URL)
        self.assertIsNotNone(self.notifier._worker_thread)
        self.assertTrue(self.notifier.is_healthy())

    @patch('requests.post')
    def test_send_notification_success(self, mock_post):
        mock_post.return_value = Mock(ok=True, status_code=204)

        self.notifier.send_diagnostic("info", "Hours", "Test message")
        time.sleep(1.5)

        mock_post.assert_called()
        call_args = mock_post.call_args
        self.assertEqual(call_args[0][0], TEST_WEBHOOK_URL)
        self.assertEqual(call_args[1]['json']['embeds'][0]['description'], "Test message")

    @patch('requests.post')
    def test_shutdown_flushes_queue(self, mock_post):
        mock_post.return_value = Mock(ok=True, status_code=204)
        self.notifier.send_embed("Title", "Description")
        self.notifier.shutdown()
        self.assertEqual(self.notifier.get_queue_size(), 0)
        self.assertFalse(self.notifier.is_healthy())

if __name__ == '__main__':
    unittest.main()
