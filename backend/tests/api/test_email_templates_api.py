"""
API Tests for email template management
"""
import pytest


async def create_template(client, headers, name, is_default=False):
    response = await client.post(
        "/api/templates/email",
        headers=headers,
        json={"name": name, "html_content": "<p>{{recipient_name}}</p>", "is_default": is_default},
    )
    assert response.status_code == 200
    return response.json()


class TestEmailTemplates:
    """/templates/email"""

    @pytest.mark.asyncio
    async def test_list(self, client, auth_headers, issuer):
        await create_template(client, auth_headers, "ours.html")

        body = (await client.get("/api/templates/email", headers=auth_headers)).json()
        assert {t["name"] for t in body["builtin"]} == {"default.html", "celebratory.html", "corporate.html"}
        assert [t["name"] for t in body["custom"]] == ["ours.html"]

    @pytest.mark.asyncio
    async def test_get_builtin_and_custom(self, client, auth_headers, issuer):
        await create_template(client, auth_headers, "ours.html")

        builtin = await client.get("/api/templates/email/builtin/default.html", headers=auth_headers)
        assert builtin.status_code == 200
        assert "{{unique_id}}" in builtin.json()["html_content"]

        custom = await client.get("/api/templates/email/custom/ours.html", headers=auth_headers)
        assert custom.status_code == 200
        assert custom.json()["html_content"] == "<p>{{recipient_name}}</p>"

        bad_type = await client.get("/api/templates/email/shared/ours.html", headers=auth_headers)
        assert bad_type.status_code == 400

        missing = await client.get("/api/templates/email/builtin/missing.html", headers=auth_headers)
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_name(self, client, auth_headers, issuer):
        response = await client.post(
            "/api/templates/email",
            headers=auth_headers,
            json={"name": "../evil.html", "html_content": "<p></p>"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_TEMPLATE_NAME"

    @pytest.mark.asyncio
    async def test_requires_org(self, client, auth_headers, new_issuer):
        response = await client.post(
            "/api/templates/email",
            headers=auth_headers,
            json={"name": "a.html", "html_content": "<p></p>"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "PROFILE_INCOMPLETE"

    @pytest.mark.asyncio
    async def test_default_lifecycle(self, client, auth_headers, issuer):
        first = await create_template(client, auth_headers, "first.html", is_default=True)
        second = await create_template(client, auth_headers, "second.html")

        response = await client.delete(f"/api/templates/email/{first['id']}", headers=auth_headers)
        assert response.status_code == 403
        assert response.json()["error"]["message"] == (
            "Cannot delete default template. Set another template as default first."
        )

        response = await client.put(f"/api/templates/email/{second['id']}/default", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["is_default"] is True

        response = await client.delete(f"/api/templates/email/{first['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"message": "Template deleted successfully"}

        body = (await client.get("/api/templates/email", headers=auth_headers)).json()
        assert [(t["name"], t["is_default"]) for t in body["custom"]] == [("second.html", True)]

    @pytest.mark.asyncio
    async def test_other_org_cannot_touch(self, client, auth_headers, issuer, make_identity, headers_for):
        ours = await create_template(client, auth_headers, "ours.html")

        stranger = headers_for(make_identity())
        await client.put("/api/profile", headers=stranger, json={"org_name": "GDGoC Elsewhere"})

        response = await client.delete(f"/api/templates/email/{ours['id']}", headers=stranger)
        assert response.status_code == 404
        response = await client.put(f"/api/templates/email/{ours['id']}/default", headers=stranger)
        assert response.status_code == 404

        body = (await client.get("/api/templates/email", headers=auth_headers)).json()
        assert [t["is_default"] for t in body["custom"]] == [False]
