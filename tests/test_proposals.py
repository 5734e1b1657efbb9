"""
Tests for the proposal workflow: creation, accept, reject, counter and
the guarantees around acceptance.
"""
import asyncio
import threading

import pytest

from utask_api.app.core.errors import InvalidState
from utask_api.app.services import proposal_service
from utask_api.app.services.proposal_service import ProposalService


def _proposal_status(db, proposal_id):
    with db.connection() as conn:
        return conn.execute("SELECT status FROM proposals WHERE id = ?", (proposal_id,)).fetchone()["status"]


def _service_status(db, service_id):
    with db.connection() as conn:
        return conn.execute("SELECT status FROM services WHERE id = ?", (service_id,)).fetchone()["status"]


def _notifications(client, user, **params):
    response = client.get("/api/notifications", params=params, headers=user["headers"])
    assert response.status_code == 200, response.text
    return response.json()["notifications"]


class TestCreateProposal:
    def test_creates_pending_proposal_and_notifies_owner(self, client, owner, provider, make_service):
        service = make_service()
        response = client.post(
            f"/api/services/{service['id']}/proposals",
            json={"price": 180.0, "message": "Tenho disponibilidade"},
            headers=provider["headers"],
        )
        assert response.status_code == 201
        proposal = response.json()["proposal"]
        assert proposal["status"] == "pending"
        assert proposal["price"] == 180.0
        assert proposal["provider"]["id"] == provider["id"]
        assert proposal["provider"]["name"] == "Paulo Provider"

        notifications = _notifications(client, owner)
        assert len(notifications) == 1
        assert notifications[0]["type"] == "new_proposal"
        assert notifications[0]["related_id"] == proposal["id"]
        assert "R$ 180,00" in notifications[0]["message"]

    def test_unknown_service_is_404(self, client, provider):
        response = client.post("/api/services/999/proposals", json={"price": 10}, headers=provider["headers"])
        assert response.status_code == 404
        assert response.json() == {"error": "Service not found"}

    def test_owner_cannot_propose_on_own_service(self, client, owner, make_service):
        service = make_service()
        response = client.post(
            f"/api/services/{service['id']}/proposals",
            json={"price": 100},
            headers=owner["headers"],
        )
        assert response.status_code == 403

    def test_duplicate_proposal_is_409(self, client, provider, make_service, make_proposal):
        service = make_service()
        make_proposal(service["id"], provider)
        response = client.post(
            f"/api/services/{service['id']}/proposals",
            json={"price": 90},
            headers=provider["headers"],
        )
        assert response.status_code == 409

    @pytest.mark.parametrize("price", [0, -5])
    def test_price_must_be_positive(self, client, provider, make_service, price):
        service = make_service()
        response = client.post(
            f"/api/services/{service['id']}/proposals",
            json={"price": price},
            headers=provider["headers"],
        )
        assert response.status_code == 400
        assert "error" in response.json()

    def test_service_not_pending_rejects_proposals(self, client, owner, provider, make_service):
        service = make_service()
        client.put(f"/api/services/{service['id']}", json={"status": "cancelled"}, headers=owner["headers"])
        response = client.post(
            f"/api/services/{service['id']}/proposals",
            json={"price": 100},
            headers=provider["headers"],
        )
        assert response.status_code == 400
        assert response.json()["error"] == "This service is not accepting proposals"

    def test_requires_authentication(self, client, make_service):
        service = make_service()
        response = client.post(f"/api/services/{service['id']}/proposals", json={"price": 100})
        assert response.status_code == 401

    def test_checks_existence_before_ownership(self, client, owner):
        # A missing service is reported before any permission check.
        response = client.post("/api/services/4242/proposals", json={"price": 1}, headers=owner["headers"])
        assert response.status_code == 404


class TestAcceptProposal:
    def test_accept_starts_service_and_rejects_open_siblings(
        self, client, db, owner, provider, other_provider, make_user, make_service, make_proposal
    ):
        service = make_service()
        chosen = make_proposal(service["id"], provider, price=150)
        sibling = make_proposal(service["id"], other_provider, price=140)
        third = make_user(name="Third")
        countered = make_proposal(service["id"], third, price=300)
        client.post(f"/api/proposals/{countered['id']}/counter", json={"price": 200}, headers=owner["headers"])

        response = client.post(f"/api/proposals/{chosen['id']}/accept", headers=owner["headers"])
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["proposal"] == {"id": chosen["id"], "status": "accepted"}

        assert _service_status(db, service["id"]) == "in_progress"
        assert _proposal_status(db, chosen["id"]) == "accepted"
        assert _proposal_status(db, sibling["id"]) == "rejected"
        assert _proposal_status(db, countered["id"]) == "rejected"

        accepted = [n for n in _notifications(client, provider) if n["type"] == "proposal_accepted"]
        assert len(accepted) == 1
        assert accepted[0]["related_id"] == chosen["id"]
        assert "Limpeza de apartamento" in accepted[0]["message"]
        assert "scheduled for 15/07/2024" in accepted[0]["message"]

    def test_sibling_cannot_be_accepted_afterwards(
        self, client, owner, provider, other_provider, make_service, make_proposal
    ):
        service = make_service()
        first = make_proposal(service["id"], provider)
        second = make_proposal(service["id"], other_provider)
        assert client.post(f"/api/proposals/{first['id']}/accept", headers=owner["headers"]).status_code == 200

        response = client.post(f"/api/proposals/{second['id']}/accept", headers=owner["headers"])
        assert response.status_code == 400

    def test_accepting_twice_is_invalid(self, client, owner, provider, make_service, make_proposal):
        service = make_service()
        proposal = make_proposal(service["id"], provider)
        client.post(f"/api/proposals/{proposal['id']}/accept", headers=owner["headers"])
        response = client.post(f"/api/proposals/{proposal['id']}/accept", headers=owner["headers"])
        assert response.status_code == 400

    def test_only_owner_can_accept(self, client, db, provider, other_provider, make_service, make_proposal):
        service = make_service()
        proposal = make_proposal(service["id"], provider)
        for user in (provider, other_provider):
            response = client.post(f"/api/proposals/{proposal['id']}/accept", headers=user["headers"])
            assert response.status_code == 403
        assert _proposal_status(db, proposal["id"]) == "pending"
        assert _service_status(db, service["id"]) == "pending"

    def test_unknown_proposal_is_404(self, client, owner):
        response = client.post("/api/proposals/999/accept", headers=owner["headers"])
        assert response.status_code == 404

    def test_cancelled_service_cannot_accept(self, client, db, owner, provider, make_service, make_proposal):
        service = make_service()
        proposal = make_proposal(service["id"], provider)
        client.put(f"/api/services/{service['id']}", json={"status": "cancelled"}, headers=owner["headers"])

        response = client.post(f"/api/proposals/{proposal['id']}/accept", headers=owner["headers"])
        assert response.status_code == 400
        assert _service_status(db, service["id"]) == "cancelled"

    def test_failure_rolls_back_every_change(
        self, db, owner, provider, other_provider, make_service, make_proposal, monkeypatch
    ):
        service = make_service()
        chosen = make_proposal(service["id"], provider)
        sibling = make_proposal(service["id"], other_provider)

        def broken_create(*args, **kwargs):
            raise RuntimeError("notification store unavailable")

        monkeypatch.setattr(proposal_service.NotificationService, "create", staticmethod(broken_create))
        with pytest.raises(RuntimeError):
            asyncio.run(ProposalService(db).accept_proposal(chosen["id"], owner["id"]))

        assert _proposal_status(db, chosen["id"]) == "pending"
        assert _proposal_status(db, sibling["id"]) == "pending"
        assert _service_status(db, service["id"]) == "pending"

    def test_concurrent_acceptances_allow_one_winner(
        self, db, owner, provider, other_provider, make_service, make_proposal
    ):
        service = make_service()
        proposals = [make_proposal(service["id"], provider), make_proposal(service["id"], other_provider)]
        outcomes = []
        barrier = threading.Barrier(len(proposals))

        def accept(proposal_id):
            barrier.wait()
            try:
                asyncio.run(ProposalService(db).accept_proposal(proposal_id, owner["id"]))
                outcomes.append("accepted")
            except InvalidState:
                outcomes.append("invalid")

        threads = [threading.Thread(target=accept, args=(p["id"],)) for p in proposals]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(outcomes) == ["accepted", "invalid"]
        statuses = sorted(_proposal_status(db, p["id"]) for p in proposals)
        assert statuses == ["accepted", "rejected"]
        assert _service_status(db, service["id"]) == "in_progress"


class TestRejectProposal:
    def test_reject_leaves_service_pending(self, client, db, owner, provider, make_service, make_proposal):
        service = make_service()
        proposal = make_proposal(service["id"], provider)

        response = client.post(f"/api/proposals/{proposal['id']}/reject", headers=owner["headers"])
        assert response.status_code == 200
        assert response.json()["proposal"] == {"id": proposal["id"], "status": "rejected"}
        assert _service_status(db, service["id"]) == "pending"

        rejected = [n for n in _notifications(client, provider) if n["type"] == "proposal_rejected"]
        assert [n["related_id"] for n in rejected] == [proposal["id"]]

    def test_rejected_proposal_is_terminal(self, client, owner, provider, make_service, make_proposal):
        service = make_service()
        proposal = make_proposal(service["id"], provider)
        client.post(f"/api/proposals/{proposal['id']}/reject", headers=owner["headers"])
        for action in ("accept", "reject"):
            response = client.post(f"/api/proposals/{proposal['id']}/{action}", headers=owner["headers"])
            assert response.status_code == 400
        response = client.post(
            f"/api/proposals/{proposal['id']}/counter",
            json={"price": 10},
            headers=owner["headers"],
        )
        assert response.status_code == 400

    def test_only_owner_can_reject(self, client, provider, make_service, make_proposal):
        service = make_service()
        proposal = make_proposal(service["id"], provider)
        response = client.post(f"/api/proposals/{proposal['id']}/reject", headers=provider["headers"])
        assert response.status_code == 403


class TestCounterProposal:
    def test_counter_updates_price_and_message(self, client, db, owner, provider, make_service, make_proposal):
        service = make_service()
        proposal = make_proposal(service["id"], provider, price=250)

        response = client.post(
            f"/api/proposals/{proposal['id']}/counter",
            json={"price": 1200.5, "message": "Fechamos neste valor?"},
            headers=owner["headers"],
        )
        assert response.status_code == 200
        assert response.json()["proposal"] == {
            "id": proposal["id"],
            "status": "counter",
            "price": 1200.5,
            "message": "Fechamos neste valor?",
        }
        assert _service_status(db, service["id"]) == "pending"

        countered = [n for n in _notifications(client, provider) if n["type"] == "counter_proposal"]
        assert len(countered) == 1
        assert "R$ 1.200,50" in countered[0]["message"]
        assert countered[0]["related_id"] == proposal["id"]

    def test_message_defaults_to_empty(self, client, owner, provider, make_service, make_proposal):
        service = make_service()
        proposal = make_proposal(service["id"], provider)
        response = client.post(
            f"/api/proposals/{proposal['id']}/counter",
            json={"price": 99},
            headers=owner["headers"],
        )
        assert response.json()["proposal"]["message"] == ""

    def test_counter_cannot_be_countered_or_accepted(self, client, owner, provider, make_service, make_proposal):
        service = make_service()
        proposal = make_proposal(service["id"], provider)
        client.post(f"/api/proposals/{proposal['id']}/counter", json={"price": 99}, headers=owner["headers"])

        again = client.post(f"/api/proposals/{proposal['id']}/counter", json={"price": 80}, headers=owner["headers"])
        assert again.status_code == 400
        accept = client.post(f"/api/proposals/{proposal['id']}/accept", headers=owner["headers"])
        assert accept.status_code == 400

    def test_counter_price_must_be_positive(self, client, owner, provider, make_service, make_proposal):
        service = make_service()
        proposal = make_proposal(service["id"], provider)
        response = client.post(
            f"/api/proposals/{proposal['id']}/counter",
            json={"price": 0},
            headers=owner["headers"],
        )
        assert response.status_code == 400


class TestListProposals:
    def test_owner_sees_all_and_providers_only_their_own(
        self, client, owner, provider, other_provider, make_service, make_proposal
    ):
        service = make_service()
        first = make_proposal(service["id"], provider)
        second = make_proposal(service["id"], other_provider)

        owner_view = client.get(f"/api/services/{service['id']}/proposals", headers=owner["headers"])
        assert [p["id"] for p in owner_view.json()["proposals"]] == [second["id"], first["id"]]

        provider_view = client.get(f"/api/services/{service['id']}/proposals", headers=provider["headers"])
        assert [p["id"] for p in provider_view.json()["proposals"]] == [first["id"]]

    def test_unknown_service_is_404(self, client, owner):
        response = client.get("/api/services/999/proposals", headers=owner["headers"])
        assert response.status_code == 404
