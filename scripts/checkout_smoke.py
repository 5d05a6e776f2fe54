"""Create a purchase against a running checkout service and poll its status.

Prints the approval URL so an operator can approve the order in a browser,
then polls `/order-status` until the purchase is paid or the attempt budget
runs out. A cancelled purchase keeps being polled since a later reconcile can
still find it captured.
"""

import argparse
import json
import time

import httpx

SETTLED_STATUSES = {"paid"}


def poll_until_settled(client: httpx.Client, purchase_id: str, attempts: int, interval: float) -> dict | None:
    """Poll `/order-status` and return the settling answer, or None when attempts run out."""

    for _ in range(attempts):
        resp = client.get("/order-status", params={"purchaseId": purchase_id})
        resp.raise_for_status()
        status = resp.json()
        print(json.dumps(status))
        if not status.get("found") or status.get("status") in SETTLED_STATUSES:
            return status
        time.sleep(interval)
    return None


def main() -> None:
    """CLI entrypoint for a manual end-to-end checkout run."""

    parser = argparse.ArgumentParser(description="Create an order and poll until it settles.")
    parser.add_argument("--base-url", default="http://localhost:4242")
    parser.add_argument("--product-type", default="single", choices=["single", "five"])
    parser.add_argument("--purchase-id", default=None, help="Skip creation and poll an existing purchase")
    parser.add_argument("--interval", type=float, default=3.0)
    parser.add_argument("--attempts", type=int, default=100)
    args = parser.parse_args()

    with httpx.Client(base_url=args.base_url, timeout=10.0) as client:
        purchase_id = args.purchase_id
        if purchase_id is None:
            resp = client.post("/create-order", json={"productType": args.product_type})
            resp.raise_for_status()
            created = resp.json()
            print(json.dumps(created, indent=2))
            print(f"Approve the order at: {created['approvalUrl']}")
            purchase_id = created["purchaseId"]

        if poll_until_settled(client, purchase_id, args.attempts, args.interval) is not None:
            return
    raise SystemExit(f"purchase {purchase_id} did not settle after {args.attempts} polls")


if __name__ == "__main__":
    main()
