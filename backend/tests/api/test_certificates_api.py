"""
API Tests for certificate issuance, listing and validation
"""
import re

import pytest

ID_PATTERN = re.compile(r"^GDGOC-[0-9A-Z]+-[0-9A-F]{8}$")


class TestOnboardingScenario:
    """Profile-incomplete rejection, org lock, then issuance"""

    @pytest.mark.asyncio
    async def test_full_flow(self, client, auth_headers):
        payload = {"recipient_name": "Jane Doe", "event_type": "workshop", "event_name": "Intro"}

        response = await client.post("/api/certificates", headers=auth_headers, json=payload)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "PROFILE_INCOMPLETE"
        listing = await client.get("/api/certificates", headers=auth_headers)
        assert listing.json()["total"] == 0

        response = await client.put("/api/profile", headers=auth_headers, json={"org_name": "GDGoC X"})
        assert response.status_code == 200

        response = await client.post("/api/certificates", headers=auth_headers, json=payload)
        assert response.status_code == 201
        certificate = response.json()
        assert ID_PATTERN.match(certificate["unique_id"])
        assert certificate["org_name"] == "GDGoC X"
        assert certificate["notification"] == {"status": "skipped", "error": None}

        response = await client.put("/api/profile", headers=auth_headers, json={"org_name": "GDGoC Y"})
        assert response.status_code == 403
        profile = (await client.get("/api/profile", headers=auth_headers)).json()
        assert profile["org_name"] == "GDGoC X"


class TestCreateCertificate:
    """POST /certificates"""

    @pytest.mark.asyncio
    async def test_sends_notification(self, client, auth_headers, issuer, certificate_payload, email_service):
        response = await client.post("/api/certificates", headers=auth_headers, json=certificate_payload)

        assert response.status_code == 201
        assert response.json()["notification"]["status"] == "sent"
        assert email_service.sent[0]["to"] == certificate_payload["recipient_email"]

    @pytest.mark.asyncio
    async def test_notification_failure_still_created(
        self, client, auth_headers, issuer, certificate_payload, email_service
    ):
        email_service.mode = "raise"
        response = await client.post("/api/certificates", headers=auth_headers, json=certificate_payload)

        assert response.status_code == 201
        assert response.json()["notification"]["status"] == "failed"
        validation = await client.get(f"/api/validate/{response.json()['unique_id']}")
        assert validation.status_code == 200

    @pytest.mark.asyncio
    async def test_invalid_body(self, client, auth_headers, issuer):
        response = await client.post(
            "/api/certificates",
            headers=auth_headers,
            json={"recipient_name": "Jane", "event_type": "party", "event_name": "X"},
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_requires_identity(self, client, certificate_payload):
        response = await client.post("/api/certificates", json=certificate_payload)
        assert response.status_code == 401


class TestBulkCertificates:
    """POST /certificates/bulk"""

    @pytest.mark.asyncio
    async def test_partial_success(self, client, auth_headers, issuer):
        rows = [
            {"recipient_name": "Ada", "event_type": "workshop", "event_name": "Dart"},
            {"recipient_name": "Bad", "event_type": "meetup", "event_name": "Dart"},
            {"recipient_name": "Bob", "event_type": "course", "event_name": "Dart"},
        ]
        response = await client.post("/api/certificates/bulk", headers=auth_headers, json={"certificates": rows})

        assert response.status_code == 201
        body = response.json()
        assert body["total"] == 3
        assert body["successful"] == 2
        assert body["failed"] == 1
        assert [c["recipient_name"] for c in body["certificates"]] == ["Ada", "Bob"]
        assert body["errors"][0]["data"] == rows[1]
        assert "event_type" in body["errors"][0]["error"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"certificates": []}, {}])
    async def test_empty_batch(self, client, auth_headers, issuer, body):
        response = await client.post("/api/certificates/bulk", headers=auth_headers, json=body)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_profile_incomplete(self, client, auth_headers, new_issuer):
        rows = [{"recipient_name": "Ada", "event_type": "workshop", "event_name": "Dart"}]
        response = await client.post("/api/certificates/bulk", headers=auth_headers, json={"certificates": rows})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "PROFILE_INCOMPLETE"


class TestListCertificates:
    """GET /certificates"""

    @pytest.mark.asyncio
    async def test_pagination_is_clamped(self, client, auth_headers, issuer):
        rows = [{"recipient_name": f"R{i}", "event_type": "course", "event_name": "X"} for i in range(3)]
        await client.post("/api/certificates/bulk", headers=auth_headers, json={"certificates": rows})

        body = (await client.get("/api/certificates?limit=500&offset=-4", headers=auth_headers)).json()
        assert body["limit"] == 100
        assert body["offset"] == 0
        assert body["total"] == 3
        assert len(body["certificates"]) == 3

        body = (await client.get("/api/certificates?limit=0", headers=auth_headers)).json()
        assert body["limit"] == 1
        assert len(body["certificates"]) == 1

        body = (await client.get("/api/certificates", headers=auth_headers)).json()
        assert body["limit"] == 50

    @pytest.mark.asyncio
    async def test_only_own(self, client, auth_headers, issuer, make_identity, headers_for):
        await client.post(
            "/api/certificates",
            headers=auth_headers,
            json={"recipient_name": "Mine", "event_type": "course", "event_name": "X"},
        )
        stranger = headers_for(make_identity())
        body = (await client.get("/api/certificates", headers=stranger)).json()
        assert body["total"] == 0
        assert body["certificates"] == []


class TestValidateCertificate:
    """GET /validate/{unique_id}"""

    @pytest.mark.asyncio
    async def test_known(self, client, auth_headers, issuer, certificate_payload):
        created = (await client.post("/api/certificates", headers=auth_headers, json=certificate_payload)).json()

        response = await client.get(f"/api/validate/{created['unique_id']}")
        assert response.status_code == 200
        body = response.json()
        assert body["valid"] is True
        assert body["certificate"]["unique_id"] == created["unique_id"]
        assert body["certificate"]["recipient_name"] == certificate_payload["recipient_name"]
        assert "generated_by" not in body["certificate"]
        assert "recipient_email" not in body["certificate"]

    @pytest.mark.asyncio
    async def test_unknown(self, client):
        response = await client.get("/api/validate/GDGOC-NOPE-00000000")
        assert response.status_code == 404
        body = response.json()
        assert body["valid"] is False
        assert body["error"] == "Not found"
        assert "certificate" not in body
