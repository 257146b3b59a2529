# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

import logging
from collections import namedtuple
from typing import Iterable, List, Optional, Set

from .errors import ValidationWorkflowError
from .models.enums import RejectionReason
from .services.validation_requests import BatchResult, ValidationQueueItem

logger = logging.getLogger(__name__)

# level is one of "success", "warning", "error" (mapped onto flash categories)
QueueMessage = namedtuple("QueueMessage", ["level", "title", "text"])

class ValidationQueue:
    """
    State for one organization's view of its validation queue.

    Holds the pending items, their count, the last error and the set of
    request ids selected for batch actions. Operations call the injected
    ValidationRequestService and refetch afterwards; nothing is mutated
    optimistically. Failures never raise out of this class: they come back
    as ``False``/empty results with ``error`` and ``messages`` filled in.
    """

    def __init__(self, organization_id: str, responder_id: Optional[str], service,
                 selected_ids: Iterable[str] = (), autoload: bool = True):
        self.organization_id = organization_id
        self.responder_id = responder_id
        self.service = service

        self.queue: List[ValidationQueueItem] = []
        self.queue_count: int = 0
        self.loading: bool = False
        self.error: Optional[str] = None
        self.selected_ids: Set[str] = set(selected_ids)
        self.messages: List[QueueMessage] = []

        if autoload:
            self.refetch()

    def refetch(self) -> None:
        """Reload the queue and the pending count."""
        if not self.organization_id:
            self.queue = []
            self.queue_count = 0
            return

        self.loading = True
        self.error = None
        try:
            self.queue = self.service.get_organization_validation_queue(self.organization_id)
            self.queue_count = self.service.get_validation_queue_count(self.organization_id)
        except ValidationWorkflowError as e:
            self.error = e.message or "Failed to fetch validation queue"
            logger.error(f"Error fetching validation queue for organization {self.organization_id}: {e}")
        finally:
            self.loading = False

    def approve_request(self, request_id: str) -> bool:
        if not self._require_responder():
            return False
        try:
            self.service.process_validation_response(request_id, self.responder_id, True)
        except ValidationWorkflowError as e:
            return self._fail(e.message or "Failed to approve")

        self._message("success", "Approved", "Volunteer hours validated successfully")
        self.selected_ids.discard(request_id)
        self.refetch()
        return True

    def reject_request(self, request_id: str, reason, notes: Optional[str] = None) -> bool:
        if not self._require_responder():
            return False
        try:
            reason = RejectionReason(reason)
        except ValueError:
            return self._fail("A valid rejection reason is required")
        try:
            self.service.process_validation_response(request_id, self.responder_id, False, reason, notes)
        except ValidationWorkflowError as e:
            return self._fail(e.message or "Failed to reject")

        self._message("success", "Rejected", "Validation request rejected")
        self.selected_ids.discard(request_id)
        self.refetch()
        return True

    def batch_approve(self, request_ids: Optional[Iterable[str]] = None) -> BatchResult:
        ids = self._batch_ids(request_ids)
        if ids is None:
            return BatchResult()
        results = self.service.batch_approve_requests(ids, self.responder_id)
        return self._finish_batch("Approved", results)

    def batch_reject(self, request_ids: Optional[Iterable[str]] = None, reason=None,
                     notes: Optional[str] = None) -> BatchResult:
        ids = self._batch_ids(request_ids)
        if ids is None:
            return BatchResult()
        try:
            reason = RejectionReason(reason)
        except ValueError:
            self._fail("A valid rejection reason is required")
            return BatchResult()
        results = self.service.batch_reject_requests(ids, self.responder_id, reason, notes)
        return self._finish_batch("Rejected", results)

    def toggle_selection(self, request_id: str) -> None:
        if request_id in self.selected_ids:
            self.selected_ids.discard(request_id)
        else:
            self.selected_ids.add(request_id)

    def select_all(self) -> None:
        self.selected_ids = {item.request_id for item in self.queue}

    def clear_selection(self) -> None:
        self.selected_ids = set()

    def get_item(self, request_id: str) -> Optional[ValidationQueueItem]:
        return next((item for item in self.queue if item.request_id == request_id), None)

    def _batch_ids(self, request_ids) -> Optional[List[str]]:
        if not self._require_responder():
            return None
        ids = list(request_ids) if request_ids is not None else sorted(self.selected_ids)
        return ids or None

    def _finish_batch(self, verb: str, results: BatchResult) -> BatchResult:
        success_count = len(results.succeeded)
        failed_count = len(results.failed)
        if failed_count == 0:
            self._message("success", "Batch Complete", f"{verb} {success_count} requests")
        else:
            self._message("warning", "Partial Success", f"{verb} {success_count}, failed {failed_count}")
            self.error = "; ".join(f"{rid}: {msg}" for rid, msg in results.failed.items())

        # Failed ids stay selected so the organizer can see and retry them.
        self.selected_ids.difference_update(results.succeeded)
        errors = self.error
        self.refetch()
        if failed_count:
            self.error = errors
        return results

    def _require_responder(self) -> bool:
        if not self.responder_id:
            self._fail("You must be logged in")
            return False
        return True

    def _fail(self, message: str) -> bool:
        self.error = message
        self._message("error", "Error", message)
        return False

    def _message(self, level: str, title: str, text: str) -> None:
        self.messages.append(QueueMessage(level, title, text))
