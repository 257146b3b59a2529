# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

import threading
import queue
import logging
import time
import requests
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

logger = logging.getLogger(__name__)

COLORS = {
    'info': 0x0099ff,
    'success': 0x22aa55,
    'warning': 0xffaa00,
    'error': 0xff0000,
    'critical': 0x990000,
}

class DiscordNotificationManager:
    """
    Non-blocking Discord webhook notifier.

    Messages are queued and sent from a single worker thread, so a slow or
    rate-limited webhook never holds up a request. Network errors are
    retried with exponential backoff; HTTP 429 waits for ``retry_after``.
    Created by the application factory and torn down with ``shutdown()``.
    """

    def __init__(self, webhook_url: Optional[str] = None, enabled: bool = True,
                 service_name: str = "Give Protocol Validation Service", max_retries: int = 3):
        self.webhook_url = webhook_url
        self.enabled = bool(enabled and webhook_url)
        self.service_name = service_name
        self.max_retries = max_retries

        self.notification_queue: "queue.Queue[Dict[str, Any]]" = queue.Queue()
        self.global_reset_time = 0.0
        self._worker_thread: Optional[threading.Thread] = None
        self._stop_worker = threading.Event()
        self._worker_lock = threading.Lock()

        if not self.enabled:
            logger.warning("No Discord webhook URL provided. Notifications will be disabled.")
            return

        logger.info("Initializing Discord notification manager")
        self._start_worker()

    def _start_worker(self):
        with self._worker_lock:
            if self._worker_thread is None or not self._worker_thread.is_alive():
                self._stop_worker.clear()
                self._worker_thread = threading.Thread(
                    target=self._worker_loop,
                    daemon=True,
                    name="DiscordNotificationWorker"
                )
                self._worker_thread.start()

    def _worker_loop(self):
        logger.info("Discord notification worker started")

        while not self._stop_worker.is_set() or not self.notification_queue.empty():
            try:
                notification_data = self.notification_queue.get(timeout=1.0)
            except queue.Empty:
                continue

            try:
                if not self._send_with_retry(notification_data):
                    logger.error(f"Failed to send notification after all retries: {notification_data}")
            except Exception as e:
                logger.error(f"Error in Discord notification worker: {e}", exc_info=True)
            finally:
                self.notification_queue.task_done()

        logger.info("Discord notification worker stopped")

    def _send_with_retry(self, payload: Dict[str, Any]) -> bool:
        """Returns True once the payload is delivered (or rejected for good)."""
        for attempt in range(self.max_retries + 1):
            wait = self.global_reset_time - time.time()
            if wait > 0:
                logger.info(f"Waiting {wait:.2f}s for Discord rate limit")
                time.sleep(wait)

            try:
                response = requests.post(self.webhook_url, json=payload, timeout=10)
            except requests.exceptions.RequestException as e:
                logger.error(f"Network error sending Discord notification (attempt {attempt + 1}): {e}")
                if attempt < self.max_retries:
                    backoff_time = (2 ** attempt) + 1  # 2, 3, 5 seconds
                    time.sleep(backoff_time)
                continue

            if response.status_code == 429:
                try:
                    data = response.json()
                except ValueError:
                    data = {}
                retry_after = float(data.get('retry_after', 1.0))
                logger.warning(f"Discord rate limited us, retrying in {retry_after:.2f}s")
                if data.get('global', False):
                    self.global_reset_time = time.time() + retry_after
                else:
                    time.sleep(retry_after)
                continue

            if not response.ok:
                logger.error(f"Discord webhook error {response.status_code}: {response.text}")
                # 4xx other than 429 will not get better by retrying
                if 400 <= response.status_code < 500:
                    return True
                continue

            return True

        return False

    def _enqueue(self, payload: Dict[str, Any]):
        if not self.enabled:
            logger.debug("Discord notifications disabled")
            return
        self.notification_queue.put(payload)

    def send_embed(self, title: str, description: str, level: str = 'info',
                   fields: Optional[List[Dict[str, Any]]] = None):
        embed = {
            'title': title,
            'description': description,
            'color': COLORS.get(level, 0x808080),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'footer': {'text': self.service_name},
        }
        if fields:
            embed['fields'] = fields
        self._enqueue({'embeds': [embed]})

    def send_diagnostic(self, level: str, service: str, message: str, details: Optional[Dict[str, Any]] = None):
        fields = [
            {'name': 'Service', 'value': service, 'inline': True},
            {'name': 'Level', 'value': level.upper(), 'inline': True},
        ]
        for key, value in (details or {}).items():
            fields.append({'name': key, 'value': str(value), 'inline': False})
        self.send_embed(f"App Diagnostic - {level.upper()}", message, level=level.lower(), fields=fields)

    def send_startup_notification(self, version: Optional[str] = None):
        details = {'Version': version} if version else None
        self.send_diagnostic('info', self.service_name, 'Service started successfully', details)

    def send_validation_decision(self, request_id: str, organization_id: str, volunteer_id: str,
                                 hours: float, approved: bool, rejection_reason: Optional[str] = None):
        fields = [
            {'name': 'Request', 'value': request_id, 'inline': False},
            {'name': 'Organization', 'value': organization_id, 'inline': True},
            {'name': 'Volunteer', 'value': volunteer_id, 'inline': True},
            {'name': 'Hours', 'value': f"{hours:g}", 'inline': True},
        ]
        if not approved and rejection_reason:
            fields.append({'name': 'Reason', 'value': rejection_reason, 'inline': False})
        self.send_embed(
            "Volunteer hours validated" if approved else "Volunteer hours rejected",
            f"Validation request {'approved' if approved else 'rejected'}",
            level='success' if approved else 'warning',
            fields=fields,
        )

    def send_batch_summary(self, action: str, success_count: int, failed: Dict[str, str]):
        fields = [
            {'name': 'Succeeded', 'value': str(success_count), 'inline': True},
            {'name': 'Failed', 'value': str(len(failed)), 'inline': True},
        ]
        for request_id, message in list(failed.items())[:10]:
            fields.append({'name': request_id, 'value': message, 'inline': False})
        self.send_embed(
            f"Batch {action}",
            f"{success_count} request(s) {action}, {len(failed)} failed",
            level='warning' if failed else 'success',
            fields=fields,
        )

    def shutdown(self):
        """Flush queued notifications and stop the worker thread."""
        if self._worker_thread is None:
            return
        logger.info("Shutting down Discord notification manager")
        self._stop_worker.set()
        self._worker_thread.join(timeout=5.0)
        logger.info("Discord notification manager shut down")

    def get_queue_size(self) -> int:
        return self.notification_queue.qsize()

    def is_healthy(self) -> bool:
        return (self.enabled and
                self._worker_thread is not None and
                self._worker_thread.is_alive() and
                not self._stop_worker.is_set())
