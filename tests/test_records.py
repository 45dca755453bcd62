"""Tests for the BaaS-backed record stores."""

import json

import httpx
import pytest
from pydantic import ValidationError

from records.feedback import FeedbackStore
from records.letters import LetterStore
from records.roles import RoleDirectory
from shared.errors import NotFound
from shared.models import FeedbackStatus, FeedbackSubmission, Principal, SavedLetterCreate

CREATED = "2025-03-01T12:00:00+00:00"


class TestFeedbackSubmission:
    def test_message_is_trimmed(self):
        assert FeedbackSubmission(message="  Great tool!  ").message == "Great tool!"

    @pytest.mark.parametrize("message", ["", "   ", "x" * 2001])
    def test_invalid_message(self, message):
        with pytest.raises(ValidationError):
            FeedbackSubmission(message=message)

    def test_invalid_email(self):
        with pytest.raises(ValidationError):
            FeedbackSubmission(message="hi", email="not-an-email")

    def test_blank_email_is_dropped(self):
        assert FeedbackSubmission(message="hi", email="  ").email is None


class TestFeedbackStore:
    async def test_submit_anonymous(self, baas_factory):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json=[{"id": "f1", "created_at": CREATED, **seen["body"]}])

        store = FeedbackStore(baas_factory(handler))
        feedback = await store.submit(FeedbackSubmission(message="Nice", email="a@b.se"))

        assert seen["path"] == "/rest/v1/feedback"
        assert seen["body"] == {"message": "Nice", "email": "a@b.se", "user_id": None, "status": "new"}
        assert feedback.id == "f1"
        assert feedback.status == FeedbackStatus.NEW

    async def test_submit_records_user(self, baas_factory, user):
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            return httpx.Response(201, json=[{"id": "f2", "created_at": CREATED, **body}])

        feedback = await FeedbackStore(baas_factory(handler)).submit(FeedbackSubmission(message="Hi"), user)

        assert feedback.user_id == user.id

    async def test_list_all_newest_first(self, baas_factory):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["order"] = request.url.params["order"]
            return httpx.Response(
                200,
                json=[
                    {"id": "f2", "message": "b", "status": "reviewed", "created_at": CREATED},
                    {"id": "f1", "message": "a", "status": "new", "created_at": CREATED},
                ],
            )

        items = await FeedbackStore(baas_factory(handler)).list_all()

        assert seen["order"] == "created_at.desc"
        assert [f.id for f in items] == ["f2", "f1"]

    async def test_update_status(self, baas_factory):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200, json=[{"id": "f1", "message": "a", "status": "resolved", "created_at": CREATED}]
            )

        feedback = await FeedbackStore(baas_factory(handler)).update_status("f1", FeedbackStatus.RESOLVED)

        assert seen["params"] == {"id": "eq.f1"}
        assert seen["body"] == {"status": "resolved"}
        assert feedback.status == FeedbackStatus.RESOLVED

    async def test_update_unknown_id(self, baas_factory):
        store = FeedbackStore(baas_factory(lambda request: httpx.Response(200, json=[])))

        with pytest.raises(NotFound):
            await store.update_status("missing", FeedbackStatus.REVIEWED)


class TestLetterStore:
    @pytest.fixture
    def principal(self) -> Principal:
        return Principal(id="user-1", access_token="user-token")

    async def test_calls_run_as_user(self, baas_factory, principal):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers["authorization"])
            if request.method == "POST":
                body = json.loads(request.content)
                return httpx.Response(201, json=[{"id": "l1", "created_at": CREATED, **body}])
            return httpx.Response(200, json=[])

        store = LetterStore(baas_factory(handler))
        saved = await store.save(principal, SavedLetterCreate(letter_text="Dear Acme", company="Acme"))
        await store.list_for(principal)

        assert saved.user_id == "user-1"
        assert saved.company == "Acme"
        assert saved.job_title == "Position"
        assert seen == ["Bearer user-token", "Bearer user-token"]

    async def test_list_for_filters_by_owner(self, baas_factory, principal):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(
                200,
                json=[
                    {
                        "id": "l1",
                        "user_id": "user-1",
                        "letter_text": "Dear Acme",
                        "tone": "friendly",
                        "language": "sv",
                        "created_at": CREATED,
                    }
                ],
            )

        letters = await LetterStore(baas_factory(handler)).list_for(principal)

        assert seen["params"]["user_id"] == "eq.user-1"
        assert seen["params"]["order"] == "created_at.desc"
        assert letters[0].tone == "friendly"

    async def test_delete_missing_letter(self, baas_factory, principal):
        store = LetterStore(baas_factory(lambda request: httpx.Response(200, json=[])))

        with pytest.raises(NotFound):
            await store.delete(principal, "l404")

    async def test_delete(self, baas_factory, principal):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[{"id": "l1"}])

        await LetterStore(baas_factory(handler)).delete(principal, "l1")

        assert seen["params"] == {"id": "eq.l1", "user_id": "eq.user-1"}


class TestRoleDirectory:
    async def test_list_roles(self, baas_factory):
        rows = [
            {"id": "r1", "user_id": "admin-1", "role": "admin", "created_at": CREATED},
            {"id": "r2", "user_id": "user-1", "role": "standard", "created_at": CREATED},
        ]
        directory = RoleDirectory(baas_factory(lambda request: httpx.Response(200, json=rows)))

        roles = await directory.list_roles()

        assert [r.role.value for r in roles] == ["admin", "standard"]
