"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags race        # Many users, few seats
  locust -f locustfile.py --tags dashboard   # Capacity feed polling
  locust -f locustfile.py --tags edge        # Bad input
  locust -f locustfile.py                    # All tests
"""

import random
import string
import uuid
from datetime import datetime, timezone, timedelta

from locust import HttpUser, task, between, tag, events

EVENT_ID = "load-test-event"
RACE_SEATS = 10

# Shared state
SESSION_IDS = []
RACE_SESSION_ID = None


def random_user_id():
    return "u_" + "".join(random.choices(string.ascii_lowercase + string.digits, k=10))


def rsvp_body(user_id):
    return {
        "user_id": user_id,
        "user_info": {"name": f"Load {user_id}", "email": f"{user_id}@load.test"},
    }


def session_body(title, capacity):
    start = datetime.now(timezone.utc) + timedelta(days=random.randint(1, 30))
    return {
        "title": title,
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(hours=1)).isoformat(),
        "capacity": capacity,
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"SETUP: race session with {RACE_SEATS} seats under event {EVENT_ID}")
    print("=" * 60)


class RaceUser(HttpUser):
    """
    TEST 1: Admission race - 200 users -> 10 seats

    Run: locust -f locustfile.py --tags race -u 200 -r 50 --run-time 30s

    After test, verify:
      GET /api/v1/sessions/{id}/attendees
    total_confirmed must be exactly 10 and waitlist positions 1..N with no gaps.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        global RACE_SESSION_ID
        self.user_id = random_user_id()
        self.live = False

        if RACE_SESSION_ID is None:
            resp = self.client.post(
                f"/api/v1/events/{EVENT_ID}/sessions",
                json=session_body("Race Session", RACE_SEATS),
            )
            if resp.status_code == 201 and RACE_SESSION_ID is None:
                RACE_SESSION_ID = resp.json()["id"]
                print(f"\n✓ Created session {RACE_SESSION_ID} with {RACE_SEATS} seats\n")

    @tag("race")
    @task(4)
    def rsvp(self):
        """Everyone fights for the same seats."""
        if not RACE_SESSION_ID or self.live:
            return

        with self.client.post(
            f"/api/v1/sessions/{RACE_SESSION_ID}/rsvps",
            json=rsvp_body(self.user_id),
            name="/api/v1/sessions/{id}/rsvps",
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                self.live = True
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: retryable conflict or duplicate
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("race")
    @task(1)
    def cancel(self):
        """Some users give up their seat or waitlist spot."""
        if not RACE_SESSION_ID or not self.live:
            return

        with self.client.delete(
            f"/api/v1/sessions/{RACE_SESSION_ID}/rsvps/{self.user_id}",
            name="/api/v1/sessions/{id}/rsvps/{user}",
            catch_response=True,
        ) as resp:
            if resp.status_code in (200, 404, 409):
                self.live = resp.status_code == 409
                self.user_id = random_user_id()
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class DashboardUser(HttpUser):
    """
    TEST 2: Dashboard polling - capacity feed cache

    Run twice (with Redis, then with REDIS_ENABLED=false) and compare
    P95 latency of the capacity endpoint.
    """
    wait_time = between(0.5, 1)

    @tag("dashboard", "read")
    @task(10)
    def live_capacity(self):
        resp = self.client.get(
            f"/api/v1/events/{EVENT_ID}/capacity",
            name="/api/v1/events/{id}/capacity",
        )
        if resp.status_code == 200:
            for row in resp.json().get("capacity_data", []):
                if row["session_id"] not in SESSION_IDS:
                    SESSION_IDS.append(row["session_id"])

    @tag("dashboard", "read")
    @task(3)
    def attendees(self):
        if SESSION_IDS:
            self.client.get(
                f"/api/v1/sessions/{random.choice(SESSION_IDS)}/attendees",
                name="/api/v1/sessions/{id}/attendees",
            )

    @tag("dashboard")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_session(self):
        with self.client.post(
            f"/api/v1/sessions/{uuid.uuid4()}/rsvps",
            json=rsvp_body(random_user_id()),
            name="/api/v1/sessions/[unknown]/rsvps",
            catch_response=True,
        ) as resp:
            self._expect(resp, (404,))

    @tag("edge")
    @task
    def zero_capacity(self):
        with self.client.post(
            f"/api/v1/events/{EVENT_ID}/sessions",
            json=session_body("Zero", 0),
            catch_response=True,
        ) as resp:
            self._expect(resp, (422,))

    @tag("edge")
    @task
    def bad_email(self):
        if not SESSION_IDS:
            return
        with self.client.post(
            f"/api/v1/sessions/{random.choice(SESSION_IDS)}/rsvps",
            json={"user_id": random_user_id(), "user_info": {"name": "x", "email": "nope"}},
            name="/api/v1/sessions/{id}/rsvps [bad email]",
            catch_response=True,
        ) as resp:
            self._expect(resp, (422,))

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            f"/api/v1/events/{EVENT_ID}/sessions",
            data="not json at all",
            catch_response=True,
        ) as resp:
            self._expect(resp, (400, 422))

    @tag("edge")
    @task
    def cancel_nothing(self):
        if not SESSION_IDS:
            return
        with self.client.delete(
            f"/api/v1/sessions/{random.choice(SESSION_IDS)}/rsvps/{random_user_id()}",
            name="/api/v1/sessions/{id}/rsvps/[nobody]",
            catch_response=True,
        ) as resp:
            self._expect(resp, (404,))
