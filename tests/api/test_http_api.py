"""
HTTP surface tests: authentication, status codes, payload shapes.

Requests go through FastAPI's TestClient against the same per-test
database the kernel tests use.
"""

import asyncio
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from transfer_api.app import STATUS_BY_KIND, create_app
from transfer_kernel.exceptions import ErrorKind
from transfer_services.event_sinks import NotificationEventSink


@pytest.fixture
def make_client(session_factory, deterministic_clock, policy, onboarding_template, event_sink):
    clients = []

    def _make(sink=None):
        app = create_app(
            session_factory,
            clock=deterministic_clock,
            policy=policy,
            onboarding=onboarding_template,
            event_sink=sink if sink is not None else event_sink,
        )
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()


def auth(bank):
    return {"X-API-Key": bank.api_key}


def initiate_body(bank, amount="25000", **overrides):
    body = {
        "source_wallet_id": "wallet-a",
        "destination_wallet_id": "wallet-b",
        "amount": amount,
        "currency": "usdc",
        "initiated_by": str(bank.user_id("operator")),
    }
    body.update(overrides)
    return body


def initiate(client, bank, amount="25000"):
    response = client.post("/api/transfers/initiate", json=initiate_body(bank, amount), headers=auth(bank))
    assert response.status_code == 201, response.text
    return response.json()["transfer"]


class TestAuthentication:
    def test_missing_key(self, client):
        response = client.get("/api/transfers/pending")
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_API_KEY"
        assert response.json()["kind"] == "authentication"

    def test_unknown_key(self, client):
        response = client.get("/api/transfers/pending", headers={"X-API-Key": "sk_nope"})
        assert response.status_code == 401

    def test_bearer_token(self, client, seeded_tenant):
        response = client.get(
            "/api/banks/profile",
            headers={"Authorization": f"Bearer {seeded_tenant.api_key}"},
        )
        assert response.status_code == 200
        assert response.json()["id"] == str(seeded_tenant.tenant_id)

    def test_sessions_never_open_on_event_loop(
        self, session_factory, deterministic_clock, policy, onboarding_template, seeded_tenant,
    ):
        opened_on = []

        def recording_factory():
            try:
                asyncio.get_running_loop()
                opened_on.append("event-loop")
            except RuntimeError:
                opened_on.append("worker-thread")
            return session_factory()

        app = create_app(
            recording_factory,
            clock=deterministic_clock,
            policy=policy,
            onboarding=onboarding_template,
        )
        with TestClient(app) as client:
            response = client.get("/api/transfers/pending", headers=auth(seeded_tenant))

        assert response.status_code == 200
        assert opened_on
        assert set(opened_on) == {"worker-thread"}


class TestBankOnboarding:
    def test_register_returns_key_and_defaults(self, client):
        response = client.post("/api/banks/register", json={
            "bank_name": "First Harbour Bank",
            "bank_code": "FHB",
            "contact_email": "ops@fhb.test",
            "country": "GB",
        })

        assert response.status_code == 201
        payload = response.json()
        assert payload["api_key"].startswith("sk_")
        assert payload["bank"]["bank_code"] == "FHB"
        headers = {"X-API-Key": payload["api_key"]}

        roles = client.get("/api/roles/list", headers=headers).json()
        assert [(r["name"], r["level"]) for r in roles] == [
            ("Viewer", 1), ("Operator", 5), ("Manager", 7), ("Admin", 10),
        ]
        rules = client.get("/api/roles/approval-rules", headers=headers).json()
        assert [r["rule_name"] for r in rules] == [
            "Small Transfers", "Medium Transfers", "Large Transfers", "Very Large Transfers",
        ]
        assert rules[-1]["max_amount"] is None

    def test_duplicate_bank_code(self, client):
        body = {"bank_name": "Dup Bank", "bank_code": "DUP", "contact_email": "a@dup.test"}
        assert client.post("/api/banks/register", json=body).status_code == 201
        body["bank_name"] = "Other Name"
        response = client.post("/api/banks/register", json=body)
        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_TENANT"

    def test_invalid_email(self, client):
        response = client.post("/api/banks/register", json={
            "bank_name": "X", "bank_code": "X", "contact_email": "not-an-email",
        })
        assert response.status_code == 400
        assert response.json()["code"] == "REQUEST_VALIDATION_FAILED"


class TestInitiate:
    def test_pending_initiation(self, client, seeded_tenant):
        response = client.post(
            "/api/transfers/initiate", json=initiate_body(seeded_tenant), headers=auth(seeded_tenant),
        )

        assert response.status_code == 201
        payload = response.json()
        assert payload["message"] == "Transfer initiated - pending approval"
        transfer = payload["transfer"]
        assert transfer["status"] == "pending_approval"
        assert transfer["amount"] == "25000"
        assert transfer["currency"] == "USDC"
        assert transfer["reference"] == "TRF-000001"
        assert transfer["required_role_level"] == 5
        assert payload["next_steps"][0] == "Transfer requires approval"

    def test_auto_approved_initiation(self, client, seeded_tenant):
        response = client.post(
            "/api/transfers/initiate",
            json=initiate_body(seeded_tenant, amount=750),
            headers=auth(seeded_tenant),
        )
        payload = response.json()
        assert payload["message"] == "Transfer initiated and auto-approved"
        assert payload["transfer"]["approval_status"] == "auto_approved"
        assert payload["next_steps"] == []

    def test_wallet_aliases(self, client, seeded_tenant):
        body = initiate_body(seeded_tenant)
        body["fromWalletId"] = body.pop("source_wallet_id")
        body["toWalletId"] = body.pop("destination_wallet_id")
        response = client.post("/api/transfers/initiate", json=body, headers=auth(seeded_tenant))
        assert response.status_code == 201
        assert response.json()["transfer"]["source_wallet_id"] == "wallet-a"

    @pytest.mark.parametrize("overrides,code", [
        ({"amount": "-5"}, "INVALID_AMOUNT"),
        ({"amount": "0"}, "INVALID_AMOUNT"),
        ({"currency": "$$"}, "INVALID_CURRENCY"),
        ({"destination_wallet_id": "wallet-a"}, "INVALID_TRANSFER_REQUEST"),
        ({"unexpected": True}, "REQUEST_VALIDATION_FAILED"),
        ({"initiated_by": "not-a-uuid"}, "REQUEST_VALIDATION_FAILED"),
    ])
    def test_invalid_requests(self, client, seeded_tenant, overrides, code):
        response = client.post(
            "/api/transfers/initiate",
            json=initiate_body(seeded_tenant, **overrides),
            headers=auth(seeded_tenant),
        )
        assert response.status_code == 400
        assert response.json()["code"] == code

    def test_missing_field(self, client, seeded_tenant):
        body = initiate_body(seeded_tenant)
        del body["amount"]
        response = client.post("/api/transfers/initiate", json=body, headers=auth(seeded_tenant))
        assert response.status_code == 400
        assert response.json()["details"]["errors"][0]["loc"] == ["body", "amount"]

    def test_initiator_from_other_bank(self, client, seeded_tenant, seed_tenant):
        other = seed_tenant()
        response = client.post(
            "/api/transfers/initiate",
            json=initiate_body(seeded_tenant, initiated_by=str(other.user_id("operator"))),
            headers=auth(seeded_tenant),
        )
        assert response.status_code == 403
        assert response.json()["code"] == "UNAUTHORIZED_INITIATOR"


class TestApprove:
    def test_approval_flow(self, client, seeded_tenant):
        bank = seeded_tenant
        transfer = initiate(client, bank, "300000")

        first = client.post(
            f"/api/transfers/{transfer['id']}/approve",
            json={"approver_user_id": str(bank.user_id("manager")), "comments": "checked"},
            headers=auth(bank),
        )
        assert first.status_code == 200
        assert first.json()["message"] == "Approval recorded"
        assert (first.json()["current_approvals"], first.json()["required_approvals"]) == (1, 2)
        assert first.json()["approval"]["comments"] == "checked"

        second = client.post(
            f"/api/transfers/{transfer['id']}/approve",
            json={"approver_user_id": str(bank.user_id("admin"))},
            headers=auth(bank),
        )
        assert second.json()["status"] == "processing"
        assert second.json()["threshold_reached"] is True

    def test_insufficient_role_reports_levels(self, client, seeded_tenant):
        bank = seeded_tenant
        transfer = initiate(client, bank, "300000")
        response = client.post(
            f"/api/transfers/{transfer['id']}/approve",
            json={"approver_user_id": str(bank.user_id("operator"))},
            headers=auth(bank),
        )
        assert response.status_code == 403
        payload = response.json()
        assert payload["code"] == "INSUFFICIENT_ROLE_LEVEL"
        assert payload["details"]["required_level"] == 7
        assert payload["details"]["actual_level"] == 5

    def test_duplicate_approval_conflict(self, client, seeded_tenant):
        bank = seeded_tenant
        transfer = initiate(client, bank, "300000")
        body = {"approver_user_id": str(bank.user_id("manager"))}
        client.post(f"/api/transfers/{transfer['id']}/approve", json=body, headers=auth(bank))
        response = client.post(f"/api/transfers/{transfer['id']}/approve", json=body, headers=auth(bank))
        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_APPROVAL"

    def test_auto_approved_conflict(self, client, seeded_tenant):
        bank = seeded_tenant
        transfer = initiate(client, bank, "100")
        response = client.post(
            f"/api/transfers/{transfer['id']}/approve",
            json={"approver_user_id": str(bank.user_id("admin"))},
            headers=auth(bank),
        )
        assert response.status_code == 409
        assert response.json()["code"] == "NO_APPROVAL_NEEDED"

    def test_unknown_approver(self, client, seeded_tenant):
        bank = seeded_tenant
        transfer = initiate(client, bank, "300000")
        response = client.post(
            f"/api/transfers/{transfer['id']}/approve",
            json={"approver_user_id": str(uuid4())},
            headers=auth(bank),
        )
        assert response.status_code == 403
        assert response.json()["code"] == "INVALID_APPROVER"

    def test_unknown_transfer(self, client, seeded_tenant):
        response = client.post(
            f"/api/transfers/{uuid4()}/approve",
            json={"approver_user_id": str(seeded_tenant.user_id("admin"))},
            headers=auth(seeded_tenant),
        )
        assert response.status_code == 404
        assert response.json()["code"] == "TRANSFER_NOT_FOUND"


class TestQueries:
    def test_status_includes_approvals(self, client, seeded_tenant):
        bank = seeded_tenant
        transfer = initiate(client, bank, "300000")
        client.post(
            f"/api/transfers/{transfer['id']}/approve",
            json={"approver_user_id": str(bank.user_id("manager"))},
            headers=auth(bank),
        )

        response = client.get(f"/api/transfers/{transfer['id']}/status", headers=auth(bank))

        assert response.status_code == 200
        payload = response.json()
        assert payload["percentage"] == 50
        assert [a["approver_role"] for a in payload["approvals"]] == ["Manager"]
        assert payload["approvals"][0]["approver_name"] == bank.users["manager"].full_name

    def test_status_of_other_banks_transfer(self, client, seeded_tenant, seed_tenant):
        other = seed_tenant()
        transfer = initiate(client, seeded_tenant)
        response = client.get(f"/api/transfers/{transfer['id']}/status", headers=auth(other))
        assert response.status_code == 404

    def test_malformed_transfer_id(self, client, seeded_tenant):
        response = client.get("/api/transfers/not-a-uuid/status", headers=auth(seeded_tenant))
        assert response.status_code == 400

    def test_pending_listing(self, client, seeded_tenant, deterministic_clock):
        bank = seeded_tenant
        older = initiate(client, bank, "25000")
        deterministic_clock.advance(5)
        newer = initiate(client, bank, "60000")

        payload = client.get("/api/transfers/pending", headers=auth(bank)).json()

        assert payload["count"] == 2
        assert [t["id"] for t in payload["transfers"]] == [newer["id"], older["id"]]

    def test_wallet_history(self, client, seeded_tenant, seed_tenant, deterministic_clock):
        bank = seeded_tenant
        sent = client.post(
            "/api/transfers/initiate",
            json=initiate_body(bank, "500", source_wallet_id="wallet-a", destination_wallet_id="wallet-b"),
            headers=auth(bank),
        ).json()["transfer"]
        deterministic_clock.advance(5)
        received = client.post(
            "/api/transfers/initiate",
            json=initiate_body(bank, "60000", source_wallet_id="wallet-c", destination_wallet_id="wallet-a"),
            headers=auth(bank),
        ).json()["transfer"]
        client.post(
            f"/api/transfers/{received['id']}/cancel",
            json={"actor_user_id": str(bank.user_id("operator"))},
            headers=auth(bank),
        )

        response = client.get("/api/transfers/history/wallet-a", headers=auth(bank))

        assert response.status_code == 200
        payload = response.json()
        assert payload["wallet_id"] == "wallet-a"
        assert payload["total_transfers"] == 2
        assert [t["id"] for t in payload["transfers"]] == [received["id"], sent["id"]]
        assert [t["direction"] for t in payload["transfers"]] == ["incoming", "outgoing"]
        assert [t["counterparty_wallet_id"] for t in payload["transfers"]] == ["wallet-c", "wallet-b"]
        assert payload["transfers"][0]["status"] == "failed"

        limited = client.get("/api/transfers/history/wallet-a?limit=1", headers=auth(bank)).json()
        assert [t["id"] for t in limited["transfers"]] == [received["id"]]
        other = client.get("/api/transfers/history/wallet-a", headers=auth(seed_tenant())).json()
        assert other["total_transfers"] == 0

    def test_wallet_history_rejects_bad_limit(self, client, seeded_tenant):
        response = client.get("/api/transfers/history/wallet-a?limit=0", headers=auth(seeded_tenant))
        assert response.status_code == 400

    def test_cancel(self, client, seeded_tenant):
        bank = seeded_tenant
        transfer = initiate(client, bank, "300000")
        response = client.post(
            f"/api/transfers/{transfer['id']}/cancel",
            json={"actor_user_id": str(bank.user_id("operator")), "reason": "duplicate request"},
            headers=auth(bank),
        )
        assert response.status_code == 200
        assert response.json()["status"] == "failed"
        assert response.json()["failure_reason"] == "cancelled: duplicate request"

    def test_cancel_by_unprivileged_user(self, client, seeded_tenant):
        bank = seeded_tenant
        transfer = initiate(client, bank, "300000")
        response = client.post(
            f"/api/transfers/{transfer['id']}/cancel",
            json={"actor_user_id": str(bank.user_id("viewer"))},
            headers=auth(bank),
        )
        assert response.status_code == 403
        assert response.json()["code"] == "UNAUTHORIZED_ACTOR"


class TestUsersAndRules:
    def test_user_lifecycle(self, client, seeded_tenant):
        bank = seeded_tenant
        created = client.post("/api/users/create", json={
            "username": "jdoe",
            "email": "jdoe@bank.test",
            "full_name": "J Doe",
            "role_name": "Manager",
        }, headers=auth(bank))
        assert created.status_code == 201
        user = created.json()
        assert user["role_level"] == 7

        updated = client.put(
            f"/api/users/{user['id']}/update", json={"role_name": "Admin"}, headers=auth(bank),
        )
        assert updated.json()["role_level"] == 10

        deactivated = client.post(f"/api/users/{user['id']}/deactivate", headers=auth(bank))
        assert deactivated.json()["status"] == "inactive"

        listed = client.get("/api/users/list", headers=auth(bank)).json()
        assert user["id"] in {u["id"] for u in listed}

    def test_unknown_role(self, client, seeded_tenant):
        response = client.post("/api/users/create", json={
            "username": "x", "email": "x@bank.test", "full_name": "X", "role_name": "Wizard",
        }, headers=auth(seeded_tenant))
        assert response.status_code == 404
        assert response.json()["code"] == "ROLE_NOT_FOUND"

    def test_duplicate_username(self, client, seeded_tenant):
        existing = seeded_tenant.users["manager"]
        response = client.post("/api/users/create", json={
            "username": existing.username,
            "email": "fresh@bank.test",
            "full_name": "Fresh",
            "role_name": "Viewer",
        }, headers=auth(seeded_tenant))
        assert response.status_code == 409

    def test_rule_crud(self, client, seeded_tenant):
        bank = seeded_tenant
        created = client.post("/api/roles/approval-rules/create", json={
            "rule_name": "Treasury",
            "min_amount": "1000000",
            "max_amount": "5000000",
            "required_approvals": 2,
            "required_role_level": 10,
        }, headers=auth(bank))
        assert created.status_code == 201
        rule_id = created.json()["id"]

        updated = client.put(
            f"/api/roles/approval-rules/{rule_id}/update",
            json={"max_amount": None, "required_approvals": 3},
            headers=auth(bank),
        )
        assert updated.status_code == 200
        assert updated.json()["max_amount"] is None
        assert updated.json()["required_approvals"] == 3

        deleted = client.delete(f"/api/roles/approval-rules/{rule_id}/delete", headers=auth(bank))
        assert deleted.status_code == 200
        missing = client.put(
            f"/api/roles/approval-rules/{rule_id}/update", json={"required_approvals": 1},
            headers=auth(bank),
        )
        assert missing.status_code == 404

    def test_invalid_rule(self, client, seeded_tenant):
        response = client.post("/api/roles/approval-rules/create", json={
            "rule_name": "Broken",
            "min_amount": "100",
            "max_amount": "50",
            "required_approvals": 1,
            "required_role_level": 5,
        }, headers=auth(seeded_tenant))
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_APPROVAL_RULE"


class TestNotifications:
    def test_list_and_mark_read(self, make_client, session_factory, seeded_tenant):
        client = make_client(sink=NotificationEventSink(session_factory))
        bank = seeded_tenant
        initiate(client, bank, "300000")

        listed = client.get("/api/notifications/list", headers=auth(bank)).json()
        assert {n["notification_type"] for n in listed} == {"transfer_initiated", "approval_required"}

        target = listed[0]["id"]
        marked = client.post(f"/api/notifications/{target}/mark-read", headers=auth(bank))
        assert marked.status_code == 200

        unread = client.get(
            "/api/notifications/list", params={"unread_only": True}, headers=auth(bank),
        ).json()
        assert target not in {n["id"] for n in unread}
        assert len(unread) == 1

    def test_mark_read_unknown(self, client, seeded_tenant):
        response = client.post(f"/api/notifications/{uuid4()}/mark-read", headers=auth(seeded_tenant))
        assert response.status_code == 404


class TestPlumbing:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"

    def test_every_error_kind_has_a_status(self):
        assert set(STATUS_BY_KIND) == set(ErrorKind)
        assert STATUS_BY_KIND[ErrorKind.INTERNAL] == 500
