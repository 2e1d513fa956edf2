"""
Integration tests for renewal request and quote API endpoints.
"""

import base64

import pytest
from django.urls import reverse

pytestmark = [pytest.mark.django_db, pytest.mark.integration]


def file_request(client, request_type, devices, notes=""):
    return client.post(
        reverse("requests"),
        {"type": request_type, "device_ids": [str(d.id) for d in devices], "notes": notes},
        format="json",
    )


class TestCreateAndList:
    """Filing requests and reading them back."""

    def test_child_request_goes_to_parent(self, db_hierarchy, make_db_device, client_for):
        device = make_db_device(db_hierarchy.direct_child, days=-1)

        response = file_request(client_for(db_hierarchy.direct_child), "renewal", [device], "urgent")

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["addressee_id"] == str(db_hierarchy.direct_parent.id)
        assert data["addressee_name"] == "Fabrikam Group"
        assert data["requester_name"] == "Fabrikam North"
        assert data["notes"] == "urgent"

    def test_reseller_parent_quote_goes_to_reseller(self, db_hierarchy, make_db_device, client_for):
        device = make_db_device(db_hierarchy.ro_parent, days=15)

        response = file_request(client_for(db_hierarchy.ro_parent), "quote", [device])

        assert response.status_code == 201
        assert response.json()["addressee_id"] == str(db_hierarchy.reseller.id)

    def test_wrong_request_type_is_forbidden(self, db_hierarchy, make_db_device, client_for):
        device = make_db_device(db_hierarchy.ro_parent)

        response = file_request(client_for(db_hierarchy.ro_parent), "renewal", [device])

        assert response.status_code == 403

    def test_direct_parent_cannot_file(self, db_hierarchy, make_db_device, client_for):
        device = make_db_device(db_hierarchy.direct_parent)

        response = file_request(client_for(db_hierarchy.direct_parent), "renewal", [device])

        assert response.status_code == 403

    def test_foreign_device(self, db_hierarchy, make_db_device, client_for):
        device = make_db_device(db_hierarchy.other_child)

        response = file_request(client_for(db_hierarchy.direct_child), "renewal", [device])

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "DEVICE_NOT_FOUND"

    def test_owner_and_incoming_views(self, db_hierarchy, make_db_device, client_for):
        device = make_db_device(db_hierarchy.direct_child, days=-1)
        created = file_request(client_for(db_hierarchy.direct_child), "renewal", [device]).json()
        parent = client_for(db_hierarchy.direct_parent)

        owner = client_for(db_hierarchy.direct_child).get(reverse("requests"))
        incoming = parent.get(reverse("incoming-requests"))
        incoming_by_param = parent.get(reverse("requests"), {"view": "incoming"})
        parent_owner = parent.get(reverse("requests"))

        assert [r["id"] for r in owner.json()] == [created["id"]]
        assert [r["id"] for r in incoming.json()] == [created["id"]]
        assert incoming_by_param.json() == incoming.json()
        assert parent_owner.json() == []

    def test_unknown_view(self, db_hierarchy, client_for):
        response = client_for(db_hierarchy.direct_child).get(reverse("requests"), {"view": "all"})

        assert response.status_code == 400


class TestResolution:
    """Approve and reject."""

    @pytest.fixture
    def pending(self, db_hierarchy, make_db_device, client_for):
        device = make_db_device(db_hierarchy.direct_child, days=-1)
        return file_request(client_for(db_hierarchy.direct_child), "renewal", [device]).json()

    def test_approve_then_conflict(self, db_hierarchy, client_for, pending):
        client = client_for(db_hierarchy.direct_parent)
        url = reverse("approve-request", kwargs={"request_id": pending["id"]})

        first = client.post(url, {"message": "go ahead"}, format="json")
        second = client.post(url, {}, format="json")

        assert first.status_code == 200
        assert first.json()["status"] == "approved"
        assert first.json()["response_message"] == "go ahead"
        assert first.json()["resolved_at"] is not None
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "REQUEST_ALREADY_RESOLVED"

    def test_reject(self, db_hierarchy, client_for, pending):
        response = client_for(db_hierarchy.direct_parent).post(
            reverse("reject-request", kwargs={"request_id": pending["id"]}),
            {"message": "budget frozen"},
            format="json",
        )

        assert response.status_code == 200
        assert response.json()["status"] == "rejected"

    def test_requester_cannot_approve(self, db_hierarchy, client_for, pending):
        response = client_for(db_hierarchy.direct_child).post(
            reverse("approve-request", kwargs={"request_id": pending["id"]}), {}, format="json"
        )

        assert response.status_code == 403

    def test_unrelated_parent_cannot_approve(self, db_hierarchy, client_for, pending):
        response = client_for(db_hierarchy.ro_parent).post(
            reverse("approve-request", kwargs={"request_id": pending["id"]}), {}, format="json"
        )

        assert response.status_code == 403

    def test_unknown_request(self, db_hierarchy, client_for):
        response = client_for(db_hierarchy.direct_parent).post(
            reverse("approve-request", kwargs={"request_id": "00000000-0000-0000-0000-000000000000"}),
            {},
            format="json",
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "REQUEST_NOT_FOUND"


class TestQuotes:
    """Responding with, generating and reading quotes."""

    @pytest.fixture
    def quote_request(self, db_hierarchy, make_db_device, client_for):
        devices = [
            make_db_device(db_hierarchy.ro_parent, days=12, name="Till 1"),
            make_db_device(db_hierarchy.ro_parent, days=-4, name="Till 2"),
        ]
        return file_request(client_for(db_hierarchy.ro_parent), "quote", devices).json()

    def test_respond_with_uploaded_document(self, db_hierarchy, client_for, quote_request):
        document = b"%PDF-1.4 uploaded quote"

        response = client_for(db_hierarchy.reseller).post(
            reverse("respond-request", kwargs={"request_id": quote_request["id"]}),
            {
                "artifact": base64.b64encode(document).decode("ascii"),
                "content_type": "application/pdf",
                "filename": "q-1.pdf",
                "message": "see attached",
            },
            format="json",
        )
        fetched = client_for(db_hierarchy.ro_parent).get(
            reverse("request-quote", kwargs={"request_id": quote_request["id"]})
        )

        assert response.status_code == 200
        assert response.json()["status"] == "quoted"
        assert fetched.status_code == 200
        assert base64.b64decode(fetched.json()["artifact"]) == document
        assert fetched.json()["filename"] == "q-1.pdf"
        assert fetched.json()["quote"]["line_items"] == []

    def test_respond_rejects_bad_base64(self, db_hierarchy, client_for, quote_request):
        response = client_for(db_hierarchy.reseller).post(
            reverse("respond-request", kwargs={"request_id": quote_request["id"]}),
            {"artifact": "not base64!!"},
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_generate_quote(self, db_hierarchy, client_for, quote_request):
        response = client_for(db_hierarchy.reseller).post(
            reverse("generate-quote", kwargs={"request_id": quote_request["id"]}),
            {"margin": "10", "message": "valid for 30 days"},
            format="json",
        )
        fetched = client_for(db_hierarchy.ro_parent).get(
            reverse("request-quote", kwargs={"request_id": quote_request["id"]})
        )

        assert response.status_code == 200
        assert response.json()["status"] == "quoted"
        quote = fetched.json()["quote"]
        assert quote["margin_percent"] == "10.00"
        assert quote["grand_total"] == "220.00"
        assert quote["currency"] == "GBP"
        assert [item["line_total"] for item in quote["line_items"]] == ["110.00", "110.00"]
        assert fetched.json()["content_type"] == "application/pdf"
        assert base64.b64decode(fetched.json()["artifact"]).startswith(b"%PDF")

    def test_direct_parent_cannot_generate(self, db_hierarchy, client_for, quote_request):
        response = client_for(db_hierarchy.direct_parent).post(
            reverse("generate-quote", kwargs={"request_id": quote_request["id"]}), {}, format="json"
        )

        assert response.status_code == 403

    def test_quote_not_yet_issued(self, db_hierarchy, client_for, quote_request):
        response = client_for(db_hierarchy.ro_parent).get(
            reverse("request-quote", kwargs={"request_id": quote_request["id"]})
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "QUOTE_NOT_FOUND"

    def test_outsider_cannot_read_quote(self, db_hierarchy, client_for, quote_request):
        response = client_for(db_hierarchy.direct_parent).get(
            reverse("request-quote", kwargs={"request_id": quote_request["id"]})
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "REQUEST_NOT_FOUND"
