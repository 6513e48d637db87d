from datetime import timedelta

from swapstation.core import messages
from swapstation.core.timeutils import utcnow
from swapstation.models import Subscription
from swapstation.services import subscription_service

from conftest import ONE_SLOT_VEHICLE, TWO_SLOT_VEHICLE


def purchase(client, headers, plan_id=1, vehicle_id=TWO_SLOT_VEHICLE):
    return client.post(
        "/api/subscriptions/", headers=headers, json={"planId": plan_id, "vehicleId": vehicle_id}
    )


def test_plans_list_only_active_plans(client):
    response = client.get("/api/subscription-plans/")
    assert response.status_code == 200
    plans = response.json()["payload"]["plans"]
    assert [p["plan_id"] for p in plans] == [1, 2]
    assert plans[0]["plan_fee"] == 199000
    assert plans[0]["battery_cap"] == 20


def test_inactive_plan_not_found(client):
    assert client.get("/api/subscription-plans/2").status_code == 200
    response = client.get("/api/subscription-plans/3")
    assert response.status_code == 404
    assert response.json()["message"] == messages.PLAN_NOT_FOUND


def test_purchase_and_confirm_payment(client, driver_headers):
    response = purchase(client, driver_headers)
    assert response.status_code == 201
    assert response.json()["message"] == messages.SUBSCRIPTION_CREATED
    subscription = response.json()["payload"]["subscription"]
    assert subscription["status"] == "pending_payment"
    assert subscription["total_amount"] == 699000
    assert subscription["swaps_remaining"] == 20

    response = client.post(
        f"/api/subscriptions/{subscription['subscription_id']}/confirm-payment", headers=driver_headers
    )
    assert response.status_code == 200
    assert response.json()["message"] == messages.PAYMENT_CONFIRMED
    active = response.json()["payload"]["subscription"]
    assert active["status"] == "active"
    assert active["start_date"] is not None
    assert active["end_date"] is not None

    again = client.post(
        f"/api/subscriptions/{subscription['subscription_id']}/confirm-payment", headers=driver_headers
    )
    assert again.status_code == 409
    assert again.json()["message"] == messages.SUBSCRIPTION_NOT_PENDING

    listed = client.get("/api/subscriptions/", headers=driver_headers).json()["payload"]["subscriptions"]
    assert [s["subscription_id"] for s in listed] == [subscription["subscription_id"]]


def test_one_active_subscription_per_vehicle(client, driver_headers):
    subscription = purchase(client, driver_headers).json()["payload"]["subscription"]
    client.post(f"/api/subscriptions/{subscription['subscription_id']}/confirm-payment", headers=driver_headers)

    response = purchase(client, driver_headers, plan_id=2)
    assert response.status_code == 409
    assert response.json()["message"] == messages.SUBSCRIPTION_ALREADY_ACTIVE

    assert purchase(client, driver_headers, plan_id=2, vehicle_id=ONE_SLOT_VEHICLE).status_code == 201


def test_second_pending_subscription_cannot_be_activated(client, driver_headers, db):
    first = purchase(client, driver_headers).json()["payload"]["subscription"]
    second = purchase(client, driver_headers, plan_id=2).json()["payload"]["subscription"]

    confirm = "/api/subscriptions/{}/confirm-payment"
    assert client.post(confirm.format(first["subscription_id"]), headers=driver_headers).status_code == 200
    response = client.post(confirm.format(second["subscription_id"]), headers=driver_headers)
    assert response.status_code == 409
    assert response.json()["message"] == messages.SUBSCRIPTION_ALREADY_ACTIVE

    statuses = {
        s.subscription_id: s.status
        for s in db.query(Subscription).filter(Subscription.vehicle_id == TWO_SLOT_VEHICLE)
    }
    assert statuses == {first["subscription_id"]: "active", second["subscription_id"]: "pending_payment"}


def test_purchase_validation(client, driver_headers):
    response = client.post("/api/subscriptions/", headers=driver_headers, json={"vehicleId": TWO_SLOT_VEHICLE})
    assert response.status_code == 422
    assert "Vui lòng chọn loại gói dịch vụ" in response.json()["errors"].values()

    assert purchase(client, driver_headers, plan_id=3).status_code == 404


def test_subscriptions_are_private(client, driver_headers, admin_headers):
    subscription = purchase(client, driver_headers).json()["payload"]["subscription"]
    response = client.get(f"/api/subscriptions/{subscription['subscription_id']}", headers=admin_headers)
    assert response.status_code == 404


def test_subscription_reads_expired_after_end_date(db):
    subscription = Subscription(
        account_id="c9cd9cf5-333b-5d8a-c6e3-b958c7b95397",
        vehicle_id=TWO_SLOT_VEHICLE,
        plan_id=1,
        status="active",
        total_amount=699000,
        start_date=utcnow() - timedelta(days=31),
        end_date=utcnow() - timedelta(days=1),
        swaps_used=25,
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)

    payload = subscription_service.serialize_subscription(subscription)
    assert payload["status"] == "expired"
    assert payload["swaps_remaining"] == 0
