"""
Locust Load Test Suite

Restaurants can only be created by managers, so point the suite at an
existing one:

  RESTAURANT_ID=1 BOOKING_DATE=2030-01-15 locust -f locustfile.py --tags lastseats
  RESTAURANT_ID=1 locust -f locustfile.py --tags browse
  RESTAURANT_ID=1 locust -f locustfile.py --tags edge

After a "last seats" run, verify no slot went over capacity:
  SELECT time, SUM(party_size) FROM bookings
  WHERE restaurant_id = :id AND date = :date AND status <> 'cancelled'
  GROUP BY time;
Every sum should be <= the restaurant's capacity.
"""

import os
import random
from datetime import date, timedelta

from locust import HttpUser, task, between, tag

RESTAURANT_ID = int(os.environ.get("RESTAURANT_ID", "1"))
BOOKING_DATE = os.environ.get("BOOKING_DATE", (date.today() + timedelta(days=14)).isoformat())
CONTESTED_SLOT = os.environ.get("CONTESTED_SLOT", "19:00")
PASSWORD = "loadtest123"


def random_email():
    return f"load_{random.randint(100000, 999999)}@test.com"


class AuthenticatedUser(HttpUser):
    abstract = True

    def on_start(self):
        email = random_email()
        self.client.post("/api/v1/auth/register", json={
            "email": email,
            "name": "Load Tester",
            "password": PASSWORD,
        })
        resp = self.client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
        if resp.status_code == 200:
            self.headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}
        else:
            self.headers = {}


class LastSeatsUser(AuthenticatedUser):
    """
    TEST 1: Many diners race for one slot

    Run: locust -f locustfile.py --tags lastseats -u 100 -r 50 --run-time 30s
    """
    wait_time = between(0, 0.1)

    @tag("lastseats")
    @task
    def book_contested_slot(self):
        if not self.headers:
            return

        with self.client.post("/api/v1/bookings/",
            json={
                "restaurant_id": RESTAURANT_ID,
                "date": BOOKING_DATE,
                "time": CONTESTED_SLOT,
                "party_size": random.randint(1, 4),
            },
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: slot full or lost race
            elif resp.status_code == 503:
                resp.failure("Service unavailable (retryable)")
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class BrowsingUser(HttpUser):
    """
    TEST 2: Directory and availability reads

    Run with and without Redis to compare the cached list endpoint.
    """
    wait_time = between(0.1, 0.5)

    @tag("browse")
    @task(10)
    def list_restaurants(self):
        page = random.randint(1, 3)
        self.client.get(f"/api/v1/restaurants/?page={page}&page_size=20",
            name="/api/v1/restaurants/ [cached]")

    @tag("browse")
    @task(5)
    def check_availability(self):
        self.client.get(
            f"/api/v1/restaurants/{RESTAURANT_ID}/availability?date={BOOKING_DATE}&party_size={random.randint(1, 6)}",
            name="/api/v1/restaurants/{id}/availability",
        )

    @tag("browse")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(AuthenticatedUser):
    """
    TEST 3: Bad input is rejected, never crashes the service
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, payload, allowed):
        with self.client.post("/api/v1/bookings/", json=payload, headers=self.headers, catch_response=True) as resp:
            if resp.status_code in allowed:
                resp.success()
            else:
                resp.failure(f"Expected {allowed}, got {resp.status_code}")

    def _payload(self, **overrides):
        payload = {"restaurant_id": RESTAURANT_ID, "date": BOOKING_DATE, "time": "12:00", "party_size": 2}
        payload.update(overrides)
        return payload

    @tag("edge")
    @task
    def unknown_restaurant(self):
        self._expect(self._payload(restaurant_id=999999), [404])

    @tag("edge")
    @task
    def off_menu_time(self):
        self._expect(self._payload(time="15:45"), [400])

    @tag("edge")
    @task
    def past_date(self):
        self._expect(self._payload(date=(date.today() - timedelta(days=3)).isoformat()), [400])

    @tag("edge")
    @task
    def zero_party(self):
        self._expect(self._payload(party_size=0), [400])

    @tag("edge")
    @task
    def huge_party(self):
        self._expect(self._payload(party_size=500), [400])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/bookings/",
            data="not json at all",
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code in [400, 422]:
                resp.success()
            else:
                resp.failure(f"Expected 400/422, got {resp.status_code}")
