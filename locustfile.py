# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""
Locust load testing configuration for the Give Protocol validation service
Tests self-reported hours logging and the organization validation queue under load
"""

from datetime import date, timedelta
from locust import HttpUser, task, between
import random
import string

ACTIVITY_TYPES = [
    "direct_service", "event_support", "mentoring_teaching",
    "fundraising", "environmental_stewardship", "other",
]

DESCRIPTION = (
    "Helped sort and pack donated food for families at the weekend distribution, "
    "then cleaned up the warehouse floor."
)

def generate_fake_email():
    """Generate a fake email address without external dependencies"""
    domains = ["example.com", "test.com", "loadtest.org", "demo.net"]
    username = ''.join(random.choices(string.ascii_lowercase + string.digits, k=8))
    return f"{username}@{random.choice(domains)}"

def create_organization(client, verified=True):
    response = client.post("/api/organizations", json={
        "name": f"Load Test Org {random.randint(1000, 9999)}",
        "is_verified": verified,
    }, name="create_organization")
    if response.status_code == 201:
        return response.json()["id"]
    return None

def hours_payload(organization_id):
    return {
        "activity_date": (date.today() - timedelta(days=random.randint(0, 60))).isoformat(),
        "hours": random.choice([0.5, 1, 2, 3.5, 4, 8]),
        "activity_type": random.choice(ACTIVITY_TYPES),
        "description": DESCRIPTION,
        "organization_id": organization_id,
    }

class VolunteerUser(HttpUser):
    """
    Simulates volunteers logging hours against a verified organization
    Most records are sent for validation straight away
    """
    wait_time = between(1, 5)

    def on_start(self):
        self.organization_id = create_organization(self.client)
        self.volunteer_id = None
        self.record_ids = []
        response = self.client.post("/api/volunteers", json={
            "name": "Load Test Volunteer",
            "email": generate_fake_email(),
        }, name="create_volunteer")
        if response.status_code == 201:
            self.volunteer_id = response.json()["id"]

    @task(10)
    def log_hours(self):
        if not self.volunteer_id or not self.organization_id:
            return
        payload = hours_payload(self.organization_id)
        payload["volunteer_id"] = self.volunteer_id
        response = self.client.post("/api/self-reported-hours", json=payload, name="log_hours")
        if response.status_code == 201:
            self.record_ids.append(response.json()["id"])

    @task(5)
    def list_hours(self):
        if self.volunteer_id:
            self.client.get(f"/api/self-reported-hours?volunteer_id={self.volunteer_id}", name="list_hours")

    @task(3)
    def stats(self):
        if self.volunteer_id:
            self.client.get(f"/api/self-reported-hours/stats?volunteer_id={self.volunteer_id}", name="hours_stats")

    @task(2)
    def history(self):
        if self.record_ids:
            record_id = random.choice(self.record_ids)
            self.client.get(f"/api/self-reported-hours/{record_id}/history?volunteer_id={self.volunteer_id}",
                            name="validation_history")

    @task(1)
    def healthcheck(self):
        self.client.get("/api/healthcheck?c=1")

class OrganizerUser(HttpUser):
    """
    Simulates organization staff working through their validation queue
    Seeds its own organization and a few volunteers so the queue is never empty
    """
    wait_time = between(2, 8)

    def on_start(self):
        self.organizer_id = f"organizer-{random.randint(1000, 9999)}"
        self.organization_id = create_organization(self.client)
        self.seed_queue()

    def seed_queue(self, count=10):
        if not self.organization_id:
            return
        response = self.client.post("/api/volunteers", json={
            "name": "Queued Volunteer",
            "email": generate_fake_email(),
        }, name="create_volunteer")
        if response.status_code != 201:
            return
        volunteer_id = response.json()["id"]
        for _ in range(count):
            payload = hours_payload(self.organization_id)
            payload["volunteer_id"] = volunteer_id
            self.client.post("/api/self-reported-hours", json=payload, name="seed_hours")

    def pending_ids(self):
        response = self.client.get(f"/api/organizations/{self.organization_id}/validation-queue",
                                   name="validation_queue")
        if response.status_code != 200:
            return []
        return [item["request_id"] for item in response.json()["items"]]

    @task(5)
    def queue_count(self):
        if self.organization_id:
            self.client.get(f"/api/organizations/{self.organization_id}/validation-queue/count",
                            name="validation_queue_count")

    @task(4)
    def approve_one(self):
        ids = self.pending_ids() if self.organization_id else []
        if not ids:
            self.seed_queue()
            return
        self.client.post(f"/api/organizations/{self.organization_id}/validation-queue/{ids[0]}/approve",
                         json={"responded_by": self.organizer_id}, name="approve_request")

    @task(2)
    def reject_one(self):
        ids = self.pending_ids() if self.organization_id else []
        if not ids:
            return
        self.client.post(f"/api/organizations/{self.organization_id}/validation-queue/{ids[-1]}/reject",
                         json={"responded_by": self.organizer_id, "rejection_reason": "hours_inaccurate",
                               "rejection_notes": "Sign-in sheet shows fewer hours"},
                         name="reject_request")

    @task(1)
    def batch_approve(self):
        ids = self.pending_ids() if self.organization_id else []
        if len(ids) < 2:
            return
        self.client.post(f"/api/organizations/{self.organization_id}/validation-queue/batch-approve",
                         json={"responded_by": self.organizer_id, "request_ids": ids[:5]},
                         name="batch_approve")

    @task(2)
    def dashboard(self):
        if self.organization_id:
            self.client.get(f"/organizations/{self.organization_id}/validation?responder={self.organizer_id}",
                            name="validation_dashboard")

class SpamHealthCheckUser(HttpUser):
    """
    Simulates a user spamming the health check endpoint
    """
    wait_time = between(1, 5)

    @task
    def spam_healthcheck(self):
        self.client.get("/api/healthcheck", name="spam_healthcheck")

"""
Usage Examples:

1. Mixed load test:
   locust -f locustfile.py --users 20 --spawn-rate 2 --host http://localhost:8000

2. Organizers only (queue contention, concurrent approve/reject):
   locust -f locustfile.py --users 15 --spawn-rate 3 --host http://localhost:8000 OrganizerUser

3. Web UI (recommended):
   locust -f locustfile.py --host http://localhost:8000
   Then open http://localhost:8089

Always run against a staging database: these users create volunteers,
organizations and hours records.
"""
