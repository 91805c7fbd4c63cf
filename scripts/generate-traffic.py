#!/usr/bin/env python3
"""
Traffic generator for the grocery store service
Simulates shoppers browsing the catalog, placing cash-on-delivery orders and
reviewing products, plus an administrator working through the order queue
"""

import random
import threading
import time
import uuid
from datetime import datetime

import requests

API_URL = "http://localhost:8000"
ADMIN_CREDENTIALS = {"email": "admin@grocerystore.com", "password": "admin123"}

SEARCH_TERMS = ["milk", "bread", "apple", "rice", "cheese", "eggs", "organic", "fresh"]

# Weight for shopper actions
ACTION_WEIGHTS = {
    "browse": 0.45,
    "search": 0.15,
    "place_order": 0.2,
    "review": 0.1,
    "view_orders": 0.1,
}

# Next status an administrator moves an order to
ADMIN_NEXT_STATUS = {
    "PENDING": ["PROCESSING", "PROCESSING", "PROCESSING", "CANCELLED"],
    "PROCESSING": ["COMPLETED", "COMPLETED", "COMPLETED", "CANCELLED"],
}


def get_headers(token):
    return {"Authorization": f"Bearer {token}"}


def log(message):
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    print(f"[{timestamp}] {message}")


def payload(response):
    """Unwrap the response envelope."""
    return response.json().get("data")


class Shopper:
    def __init__(self, shopper_id):
        self.shopper_id = shopper_id
        self.token = None
        self.products = []
        self.reviewed = set()

    def register(self):
        """Register a fresh customer account and keep its token."""
        password = "password123"
        body = {
            "fullName": f"Shopper {self.shopper_id}",
            "email": f"shopper-{self.shopper_id}-{uuid.uuid4().hex[:6]}@example.com",
            "password": password,
            "confirmPassword": password,
            "address": f"{random.randint(1, 999)} Market Street",
            "contactNumber": f"555-{random.randint(1000, 9999)}"
        }

        # Simulate registration typos (~2%)
        if random.random() < 0.02:
            body["confirmPassword"] = "mistyped"

        try:
            response = requests.post(f"{API_URL}/api/auth/register", json=body, timeout=5)
            if response.status_code == 201:
                self.token = payload(response)["token"]
                log(f"Shopper {self.shopper_id}: Registered as {body['email']}")
                return True
            log(f"Shopper {self.shopper_id}: Registration failed - {response.status_code}")
        except requests.RequestException as e:
            log(f"Shopper {self.shopper_id}: Registration error - {e}")
        return False

    def fetch_products(self):
        try:
            response = requests.get(f"{API_URL}/api/products", params={"size": 50}, timeout=5)
            if response.status_code == 200:
                self.products = payload(response)["content"]
                log(f"Shopper {self.shopper_id}: Fetched {len(self.products)} products")
                return True
        except requests.RequestException as e:
            log(f"Shopper {self.shopper_id}: Failed to fetch products - {e}")
        return False

    def browse_products(self):
        if not self.products:
            self.fetch_products()

        if self.products:
            product = random.choice(self.products)
            try:
                response = requests.get(f"{API_URL}/api/products/{product['id']}", timeout=5)
                if response.status_code == 200:
                    log(f"Shopper {self.shopper_id}: Browsing {product['name']}")
                    requests.get(f"{API_URL}/api/products/{product['id']}/reviews", timeout=5)
                    return True
            except requests.RequestException as e:
                log(f"Shopper {self.shopper_id}: Failed to browse product - {e}")
        return False

    def search(self):
        term = random.choice(SEARCH_TERMS)
        try:
            response = requests.get(f"{API_URL}/api/products/search", params={"q": term}, timeout=5)
            if response.status_code == 200:
                log(f"Shopper {self.shopper_id}: Searched '{term}' - {payload(response)['totalElements']} hits")
                return True
        except requests.RequestException as e:
            log(f"Shopper {self.shopper_id}: Search failed - {e}")
        return False

    def place_order(self):
        if not self.products:
            self.fetch_products()
        if not self.products or not self.token:
            return False

        picks = random.sample(self.products, k=min(len(self.products), random.randint(1, 3)))
        # Occasionally ask for more than is on the shelf
        items = [
            {"productId": p["id"], "quantity": random.randint(1, 3) if random.random() > 0.05 else 10000}
            for p in picks
        ]
        try:
            response = requests.post(
                f"{API_URL}/api/orders",
                json={
                    "orderItems": items,
                    "deliveryAddress": f"{random.randint(1, 999)} Market Street",
                    "contactNumber": f"555-{random.randint(1000, 9999)}"
                },
                headers=get_headers(self.token),
                timeout=10
            )
            if response.status_code == 201:
                order = payload(response)
                log(f"Shopper {self.shopper_id}: Order {order['id']} placed - total {order['totalAmount']}")
                return True
            log(f"Shopper {self.shopper_id}: Order rejected - {response.status_code} {response.json().get('message')}")
        except requests.RequestException as e:
            log(f"Shopper {self.shopper_id}: Order failed - {e}")
        return False

    def review(self):
        candidates = [p for p in self.products if p["id"] not in self.reviewed]
        if not candidates or not self.token:
            return False

        product = random.choice(candidates)
        try:
            response = requests.post(
                f"{API_URL}/api/products/{product['id']}/reviews",
                json={"rating": random.choices([1, 2, 3, 4, 5], weights=[1, 1, 2, 4, 4])[0]},
                headers=get_headers(self.token),
                timeout=5
            )
            if response.status_code in (201, 409):
                self.reviewed.add(product["id"])
            if response.status_code == 201:
                log(f"Shopper {self.shopper_id}: Reviewed {product['name']}")
                return True
        except requests.RequestException as e:
            log(f"Shopper {self.shopper_id}: Review failed - {e}")
        return False

    def view_orders(self):
        if not self.token:
            return False
        try:
            response = requests.get(
                f"{API_URL}/api/orders/my-orders",
                headers=get_headers(self.token),
                timeout=5
            )
            if response.status_code == 200:
                log(f"Shopper {self.shopper_id}: Viewing {payload(response)['totalElements']} orders")
                return True
        except requests.RequestException as e:
            log(f"Shopper {self.shopper_id}: Failed to view orders - {e}")
        return False

    def random_action(self):
        action = random.choices(
            list(ACTION_WEIGHTS.keys()),
            weights=list(ACTION_WEIGHTS.values())
        )[0]
        return getattr(self, {
            "browse": "browse_products",
            "search": "search",
            "place_order": "place_order",
            "review": "review",
            "view_orders": "view_orders",
        }[action])()


def shopper_session(shopper_id, duration_seconds, shopper_type="browser"):
    """
    Simulate a shopper session

    shopper_type:
    - "browser": Anonymous, only browses and searches (50%)
    - "buyer": Registers, orders and reviews (50%)
    """
    shopper = Shopper(shopper_id)
    end_time = time.time() + duration_seconds

    shopper.fetch_products()
    for _ in range(random.randint(2, 5)):
        shopper.browse_products()
        time.sleep(random.uniform(0.5, 1.5))

    if shopper_type == "browser":
        while time.time() < end_time:
            if random.random() < 0.7:
                shopper.browse_products()
            else:
                shopper.search()
            time.sleep(random.uniform(0.3, 0.8))
        return

    if not shopper.register():
        return
    while time.time() < end_time:
        shopper.random_action()
        time.sleep(random.uniform(0.5, 1.5))


def admin_session(stop_event):
    """Log in as the administrator and keep the order queue and shelves moving."""
    try:
        response = requests.post(f"{API_URL}/api/auth/login", json=ADMIN_CREDENTIALS, timeout=5)
    except requests.RequestException as e:
        log(f"Admin: Login error - {e}")
        return
    if response.status_code != 200:
        log(f"Admin: Login failed - {response.status_code}")
        return
    headers = get_headers(payload(response)["token"])
    log("Admin: Logged in")

    while not stop_event.is_set():
        try:
            orders = requests.get(
                f"{API_URL}/api/orders/admin/all",
                params={"size": 20},
                headers=headers,
                timeout=5
            )
            if orders.status_code == 200:
                for order in payload(orders)["content"]:
                    choices = ADMIN_NEXT_STATUS.get(order["status"])
                    if not choices or random.random() < 0.5:
                        continue
                    status = random.choice(choices)
                    requests.put(
                        f"{API_URL}/api/orders/{order['id']}/status",
                        params={"status": status},
                        headers=headers,
                        timeout=5
                    )
                    log(f"Admin: Order {order['id']} {order['status']} -> {status}")

            low_stock = requests.get(
                f"{API_URL}/api/products/low-stock",
                params={"threshold": 10},
                headers=headers,
                timeout=5
            )
            if low_stock.status_code == 200:
                for product in payload(low_stock):
                    requests.put(
                        f"{API_URL}/api/products/{product['id']}/stock",
                        params={"quantity": product["quantity"] + 100},
                        headers=headers,
                        timeout=5
                    )
                    log(f"Admin: Restocked {product['name']}")
        except requests.RequestException as e:
            log(f"Admin: Request failed - {e}")

        stop_event.wait(random.uniform(3, 6))


def generate_traffic(num_concurrent_users=5, session_duration=60):
    """Generate traffic with multiple concurrent shoppers and one administrator"""
    log(f"Starting traffic generation with {num_concurrent_users} concurrent shoppers")
    log(f"Session duration: {session_duration} seconds")
    log("Shopper mix: 50% browsers, 50% buyers")

    stop_event = threading.Event()
    admin_thread = threading.Thread(target=admin_session, args=(stop_event,), daemon=True)
    admin_thread.start()

    threads = []
    try:
        while True:
            while len([t for t in threads if t.is_alive()]) < num_concurrent_users:
                shopper_id = random.randint(1000, 9999)
                shopper_type = "browser" if random.random() < 0.5 else "buyer"

                thread = threading.Thread(
                    target=shopper_session,
                    args=(shopper_id, session_duration, shopper_type)
                )
                thread.start()
                threads.append(thread)

                time.sleep(random.uniform(1, 3))

            threads = [t for t in threads if t.is_alive()]
            time.sleep(5)

    except KeyboardInterrupt:
        log("\nStopping traffic generation...")
        stop_event.set()
        log("Waiting for active sessions to complete...")
        for thread in threads:
            thread.join(timeout=10)
        log("Traffic generation stopped")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Generate traffic for the grocery store service")
    parser.add_argument(
        "--users",
        type=int,
        default=5,
        help="Number of concurrent shoppers (default: 5)"
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=60,
        help="Session duration in seconds (default: 60)"
    )
    parser.add_argument(
        "--url",
        type=str,
        default="http://localhost:8000",
        help="API URL (default: http://localhost:8000)"
    )

    args = parser.parse_args()
    API_URL = args.url

    log("=" * 60)
    log("Grocery Store Traffic Generator")
    log("=" * 60)
    log(f"API URL: {API_URL}")
    log(f"Concurrent Shoppers: {args.users}")
    log(f"Session Duration: {args.duration}s")
    log("=" * 60)

    generate_traffic(args.users, args.duration)
