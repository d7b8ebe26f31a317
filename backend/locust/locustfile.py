"""
Locust Load Test Suite

Spaces and areas come from listing management, so point the run at an
existing area:

  export LOAD_SPACE_ID=... LOAD_AREA_ID=... SECRET_KEY=...

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overbooking
  locust -f locustfile.py --tags reconcile    # Scheduler under booking load
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
import uuid
from datetime import datetime, timezone, timedelta

from locust import HttpUser, task, between, tag, events

from cowork_booking.core.security import create_access_token

SPACE_ID = os.environ.get("LOAD_SPACE_ID", "")
AREA_ID = os.environ.get("LOAD_AREA_ID", "")
CRON_SECRET = os.environ.get("CRON_SECRET", "")

# Every concurrency user targets the same window so they compete for seats
WINDOW_START = (datetime.now(timezone.utc) + timedelta(days=7)).replace(minute=0, second=0, microsecond=0)


def customer_headers():
    token = create_access_token({"sub": f"load-{uuid.uuid4().hex[:12]}", "role": "customer"})
    return {"Authorization": f"Bearer {token}"}


def booking_payload(guest_count=1, hours=2, start_at=None):
    return {
        "space_id": SPACE_ID,
        "area_id": AREA_ID,
        "start_at": (start_at or WINDOW_START).isoformat(),
        "booking_hours": hours,
        "guest_count": guest_count,
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"Target area {AREA_ID or '<unset>'} in space {SPACE_ID or '<unset>'}")
    print(f"Contested window starts {WINDOW_START.isoformat()}")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - many customers, one area, one window

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT SUM(guest_count) FROM bookings
      WHERE area_id = X AND status = 'confirmed' AND start_at = <window>;
    Should be <= max_capacity; the rest are pending or were rejected (409)
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = customer_headers()

    @tag("concurrency")
    @task
    def book_contested_window(self):
        with self.client.post(
            "/api/v1/bookings/",
            json=booking_payload(guest_count=random.randint(1, 2)),
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: area full
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class SchedulerUser(HttpUser):
    """
    TEST 2: Reconciliation overlapping with booking traffic

    Run: locust -f locustfile.py --tags reconcile -u 20 -r 5 --run-time 60s

    Several scheduler users trigger overlapping cycles on purpose;
    `failed` should stay at 0 and no booking should be confirmed twice.
    """
    wait_time = between(1, 3)

    @tag("reconcile")
    @task
    def run_cycle(self):
        headers = {"x-cron-secret": CRON_SECRET} if CRON_SECRET else {}
        with self.client.post("/api/v1/internal/cron/bookings", headers=headers, catch_response=True) as resp:
            if resp.status_code != 200:
                resp.failure(f"Unexpected: {resp.status_code}")
            elif resp.json().get("failed"):
                resp.failure(f"Reconcile failures: {resp.json()['failed']}")
            else:
                resp.success()

    @tag("reconcile")
    @task(3)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = customer_headers()

    def _expect(self, payload, allowed, headers=None):
        with self.client.post(
            "/api/v1/bookings/",
            json=payload,
            headers=self.headers if headers is None else headers,
            catch_response=True,
        ) as resp:
            if resp.status_code in allowed:
                resp.success()
            else:
                resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_area(self):
        payload = booking_payload()
        payload["area_id"] = str(uuid.uuid4())
        self._expect(payload, [404])

    @tag("edge")
    @task
    def zero_guests(self):
        self._expect(booking_payload(guest_count=0), [400, 422])

    @tag("edge")
    @task
    def too_many_hours(self):
        self._expect(booking_payload(hours=48), [400])

    @tag("edge")
    @task
    def start_in_the_past(self):
        self._expect(booking_payload(start_at=datetime.now(timezone.utc) - timedelta(days=1)), [400])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/bookings/",
            data="not json at all",
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code in [400, 422]:
                resp.success()
            else:
                resp.failure(f"Expected 400/422, got {resp.status_code}")

    @tag("edge")
    @task
    def missing_auth(self):
        self._expect(booking_payload(), [401], headers={})

    @tag("edge")
    @task
    def cancel_unknown_booking(self):
        with self.client.post(
            f"/api/v1/bookings/{uuid.uuid4()}/cancel",
            headers=self.headers,
            name="/api/v1/bookings/{id}/cancel",
            catch_response=True,
        ) as resp:
            if resp.status_code == 404:
                resp.success()
            else:
                resp.failure(f"Expected 404, got {resp.status_code}")


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Customers book spread-out windows, check their bookings and sometimes
    cancel.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = customer_headers()
        self.booking_ids = []

    @task(20)
    def list_my_bookings(self):
        self.client.get("/api/v1/bookings/", headers=self.headers)

    @task(10)
    def book(self):
        start = WINDOW_START + timedelta(hours=random.randint(0, 24 * 14))
        resp = self.client.post(
            "/api/v1/bookings/",
            json=booking_payload(guest_count=random.randint(1, 3), hours=random.randint(1, 4), start_at=start),
            headers=self.headers,
        )
        if resp.status_code == 201:
            self.booking_ids.append(resp.json()["booking"]["id"])

    @task(2)
    def cancel(self):
        if self.booking_ids:
            booking_id = self.booking_ids.pop(random.randrange(len(self.booking_ids)))
            self.client.post(
                f"/api/v1/bookings/{booking_id}/cancel",
                headers=self.headers,
                name="/api/v1/bookings/{id}/cancel",
            )
