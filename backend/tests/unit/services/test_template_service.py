"""
Unit Tests for the Email Template Service

Built-in registry, organization scoping and the single-default invariant.
"""
import pytest
from sqlalchemy import select, func

from gdgoc_certs.core.exceptions import (
    BuiltinTemplateReadOnlyError,
    DefaultTemplateDeleteError,
    InvalidTemplateNameError,
    InvalidTemplateTypeError,
    ProfileIncompleteError,
    TemplateNotFoundError,
)
from gdgoc_certs.models.email_template import EmailTemplate
from gdgoc_certs.schemas.email_template import TemplateUpsert
from gdgoc_certs.schemas.issuer import ProfileUpdate
from gdgoc_certs.services.issuer_service import issuer_service
from gdgoc_certs.services.template_service import (
    TemplateService,
    is_valid_template_name,
    template_service,
)


def upsert(name: str, is_default: bool = False, html: str = "<p>{{recipient_name}}</p>") -> TemplateUpsert:
    return TemplateUpsert(name=name, html_content=html, is_default=is_default)


async def default_count(db_session, org_name: str) -> int:
    return await db_session.scalar(
        select(func.count(EmailTemplate.id)).where(
            EmailTemplate.org_name == org_name,
            EmailTemplate.is_default.is_(True),
        )
    )


@pytest.fixture
async def other_issuer(db_session, make_identity):
    other, _ = await issuer_service.resolve_issuer(db_session, make_identity())
    return await issuer_service.update_profile(db_session, other, ProfileUpdate(org_name="GDGoC Elsewhere"))


class TestBuiltinTemplates:
    """File-backed templates"""

    def test_listing(self):
        names = [t["name"] for t in template_service.list_builtin()]
        assert names == ["celebratory.html", "corporate.html", "default.html"]
        default = next(t for t in template_service.list_builtin() if t["name"] == "default.html")
        assert default["description"] == "Professional template with clean Google-style design"
        assert default["type"] == "builtin"

    def test_unknown_description_and_hidden_files(self, tmp_path):
        (tmp_path / "hackathon.html").write_text("<p>hi</p>")
        (tmp_path / ".draft.html").write_text("<p>draft</p>")
        (tmp_path / "notes.txt").write_text("ignore")

        service = TemplateService(tmp_path)
        assert service.list_builtin() == [
            {"name": "hackathon.html", "type": "builtin", "description": "Built-in email template"}
        ]

    @pytest.mark.asyncio
    async def test_read(self):
        html = await template_service.read_builtin("default.html")
        assert "{{recipient_name}}" in html

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["missing.html", "../config.py", "..%2Fdefault.html", "emails/default.html"])
    async def test_read_outside_registry(self, name):
        with pytest.raises(TemplateNotFoundError):
            await template_service.read_builtin(name)

    def test_name_pattern(self):
        assert is_valid_template_name("my-template_1.html")
        assert not is_valid_template_name("my template.html")
        assert not is_valid_template_name("template.htm")
        assert not is_valid_template_name("../x.html")


class TestCustomTemplates:
    """Organization templates"""

    @pytest.mark.asyncio
    async def test_requires_organization(self, db_session, new_issuer):
        with pytest.raises(ProfileIncompleteError):
            await template_service.upsert_template(db_session, new_issuer, upsert("a.html"))

    @pytest.mark.asyncio
    async def test_invalid_name(self, db_session, issuer):
        with pytest.raises(InvalidTemplateNameError):
            await template_service.upsert_template(db_session, issuer, upsert("bad name.html"))

    @pytest.mark.asyncio
    async def test_upsert_overwrites_by_name(self, db_session, issuer):
        first = await template_service.upsert_template(db_session, issuer, upsert("a.html", html="<p>v1</p>"))
        second = await template_service.upsert_template(db_session, issuer, upsert("a.html", html="<p>v2</p>"))

        assert first.id == second.id
        assert second.html_content == "<p>v2</p>"
        assert second.created_by == issuer.ocid

    @pytest.mark.asyncio
    async def test_list_scoped_to_org(self, db_session, issuer, other_issuer):
        await template_service.upsert_template(db_session, issuer, upsert("ours.html"))
        await template_service.upsert_template(db_session, other_issuer, upsert("theirs.html"))

        listing = await template_service.list_templates(db_session, issuer)
        assert [t.name for t in listing["custom"]] == ["ours.html"]
        assert len(listing["builtin"]) == 3

    @pytest.mark.asyncio
    async def test_list_without_org(self, db_session, new_issuer):
        listing = await template_service.list_templates(db_session, new_issuer)
        assert listing["custom"] == []

    @pytest.mark.asyncio
    async def test_get_template(self, db_session, issuer, other_issuer):
        await template_service.upsert_template(db_session, other_issuer, upsert("theirs.html"))

        builtin = await template_service.get_template(db_session, issuer, "builtin", "corporate.html")
        assert builtin["description"] == "Formal template for enterprise and official occasions"

        with pytest.raises(TemplateNotFoundError):
            await template_service.get_template(db_session, issuer, "custom", "theirs.html")
        with pytest.raises(InvalidTemplateTypeError):
            await template_service.get_template(db_session, issuer, "shared", "default.html")


class TestDefaultTemplate:
    """At most one default per organization"""

    @pytest.mark.asyncio
    async def test_upserts_keep_single_default(self, db_session, issuer):
        org = issuer.org_name
        await template_service.upsert_template(db_session, issuer, upsert("a.html", is_default=True))
        await template_service.upsert_template(db_session, issuer, upsert("b.html", is_default=True))
        await template_service.upsert_template(db_session, issuer, upsert("c.html"))
        await template_service.upsert_template(db_session, issuer, upsert("a.html", is_default=True))

        assert await default_count(db_session, org) == 1
        template = await template_service.get_custom(db_session, org, "a.html")
        assert template.is_default

    @pytest.mark.asyncio
    async def test_overwriting_default_keeps_it_default(self, db_session, issuer):
        org = issuer.org_name
        a = await template_service.upsert_template(db_session, issuer, upsert("a.html", is_default=True))
        a_id = a.id

        updated = await template_service.upsert_template(
            db_session, issuer, upsert("a.html", html="<p>{{event_name}}</p>")
        )

        assert updated.is_default
        assert updated.html_content == "<p>{{event_name}}</p>"
        assert await default_count(db_session, org) == 1
        with pytest.raises(DefaultTemplateDeleteError):
            await template_service.delete_template(db_session, issuer, a_id)

    @pytest.mark.asyncio
    async def test_set_default_switches(self, db_session, issuer):
        org = issuer.org_name
        a = await template_service.upsert_template(db_session, issuer, upsert("a.html", is_default=True))
        b = await template_service.upsert_template(db_session, issuer, upsert("b.html"))

        await template_service.set_default(db_session, issuer, b.id)

        assert await default_count(db_session, org) == 1
        assert (await template_service.get_custom(db_session, org, "b.html")).is_default
        assert not (await template_service.get_custom(db_session, org, "a.html")).is_default
        assert a.id != b.id

    @pytest.mark.asyncio
    async def test_defaults_are_per_org(self, db_session, issuer, other_issuer):
        await template_service.upsert_template(db_session, issuer, upsert("a.html", is_default=True))
        await template_service.upsert_template(db_session, other_issuer, upsert("a.html", is_default=True))

        assert await default_count(db_session, "GDGoC Test University") == 1
        assert await default_count(db_session, "GDGoC Elsewhere") == 1

    @pytest.mark.asyncio
    async def test_set_default_other_org(self, db_session, issuer, other_issuer):
        theirs = await template_service.upsert_template(db_session, other_issuer, upsert("t.html", is_default=True))
        theirs_id = theirs.id

        with pytest.raises(TemplateNotFoundError):
            await template_service.set_default(db_session, issuer, theirs_id)
        assert await default_count(db_session, "GDGoC Elsewhere") == 1

    @pytest.mark.asyncio
    async def test_delete_default_then_promote_other(self, db_session, issuer):
        a = await template_service.upsert_template(db_session, issuer, upsert("a.html", is_default=True))
        b = await template_service.upsert_template(db_session, issuer, upsert("b.html"))
        a_id, b_id = a.id, b.id

        with pytest.raises(DefaultTemplateDeleteError):
            await template_service.delete_template(db_session, issuer, a_id)
        assert len(await template_service.list_custom(db_session, "GDGoC Test University")) == 2

        await template_service.set_default(db_session, issuer, b_id)
        await template_service.delete_template(db_session, issuer, a_id)

        remaining = await template_service.list_custom(db_session, "GDGoC Test University")
        assert [t.id for t in remaining] == [b_id]

    @pytest.mark.asyncio
    async def test_delete_other_org(self, db_session, issuer, other_issuer):
        theirs = await template_service.upsert_template(db_session, other_issuer, upsert("t.html"))
        theirs_id = theirs.id

        with pytest.raises(TemplateNotFoundError):
            await template_service.delete_template(db_session, issuer, theirs_id)
        assert len(await template_service.list_custom(db_session, "GDGoC Elsewhere")) == 1

    @pytest.mark.asyncio
    async def test_delete_builtin(self, db_session, issuer):
        with pytest.raises(BuiltinTemplateReadOnlyError):
            await template_service.delete_template(db_session, issuer, "default.html")


class TestNotificationTemplate:
    """Which HTML the certificate email uses"""

    @pytest.mark.asyncio
    async def test_builtin_when_no_default(self, db_session, issuer):
        await template_service.upsert_template(db_session, issuer, upsert("a.html"))
        html = await template_service.resolve_notification_template(db_session, issuer.org_name)
        assert html == await template_service.read_builtin("default.html")

    @pytest.mark.asyncio
    async def test_org_default(self, db_session, issuer):
        await template_service.upsert_template(db_session, issuer, upsert("a.html", is_default=True, html="<p>ours</p>"))
        html = await template_service.resolve_notification_template(db_session, issuer.org_name)
        assert html == "<p>ours</p>"
