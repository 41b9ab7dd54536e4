import asyncio
from datetime import date

import httpx

from equiptrak.client.cache import QueryCache
from equiptrak.client.guards import AuthRedirectGuard, RouteContext
from equiptrak.client.http import ApiClient, HttpStatusError
from equiptrak.client.queries import (
    CONVERSATION_PARTICIPANTS,
    CONVERSATIONS,
    EQUIPMENT,
    MESSAGES,
    SERVICE_RECORDS,
    QueryObserver,
    create_service_record,
    send_message,
)
from equiptrak.client.session import AuthContext, login


def _client(api_app, auth: AuthContext) -> ApiClient:
    return ApiClient(
        base_url="http://testserver",
        token_provider=auth.token,
        on_unauthorized=auth.sign_out,
        transport=httpx.ASGITransport(app=api_app),
    )


def test_queries_against_running_api(api_app, seeded):
    auth = AuthContext()

    async def scenario():
        async with _client(api_app, auth) as client:
            session = await login(client, auth, "user@acme.example", seeded.password)
            cache = QueryCache()
            company = session.company_id

            equipment = QueryObserver(EQUIPMENT, client, cache)
            records = QueryObserver(SERVICE_RECORDS, client, cache)
            conversations = QueryObserver(CONVERSATIONS, client, cache)
            participants = QueryObserver(CONVERSATION_PARTICIPANTS, client, cache)
            messages = QueryObserver(MESSAGES, client, cache)
            await equipment.update(company_id=company, type="lift")
            await records.update(company_id=company, status="pending")
            await conversations.update(company_id=company, status="open")
            await participants.update(company_id=company, conversation_id="conv-open")
            await messages.update(company_id=company, conversation_id="conv-open")
            return session, equipment.result, records.result, conversations.result, participants.result, messages.result

    session, equipment, records, conversations, participants, messages = asyncio.run(scenario())
    assert session.role == "user"
    assert auth.token() == session.token
    assert [item.id for item in equipment.data] == ["eq-lift"]
    assert equipment.data[0].equipment_types.name == "Lift"
    assert [item.id for item in records.data] == ["sr-pending"]
    assert [item.id for item in conversations.data] == ["conv-open"]
    assert [item.user_id for item in participants.data] == [seeded.admin_id, seeded.user_id]
    assert [item.content for item in messages.data] == ["Can we book the lift test?", "Monday works."]


def test_mutations_invalidate_cached_lists(api_app, seeded):
    auth = AuthContext()
    auth.sign_in({"id": seeded.user_id, "email": "user@acme.example", "role": "user", "token": seeded.user_token})

    async def scenario():
        async with _client(api_app, auth) as client:
            cache = QueryCache()
            records = QueryObserver(SERVICE_RECORDS, client, cache)
            messages = QueryObserver(MESSAGES, client, cache)
            await records.update(company_id=seeded.acme_id)
            await messages.update(company_id=seeded.acme_id, conversation_id="conv-open")

            created = await create_service_record(
                client, cache, seeded.acme_id, date(2023, 12, 1), "Alex", status="pending"
            )
            await send_message(client, cache, seeded.acme_id, "conv-open", "See you Monday")

            await records.update(company_id=seeded.acme_id)
            await messages.update(company_id=seeded.acme_id, conversation_id="conv-open")
            return created, records.result, messages.result

    created, records, messages = asyncio.run(scenario())
    assert created.retest_date == date(2024, 11, 29)
    assert created.certificate_number == "BWS-1002"
    assert created.id in [item.id for item in records.data]
    assert messages.data[-1].content == "See you Monday"


def test_forbidden_company_surfaces_error_state(api_app, seeded):
    auth = AuthContext()
    auth.sign_in({"id": seeded.user_id, "email": "user@acme.example", "role": "user", "token": seeded.user_token})

    async def scenario():
        async with _client(api_app, auth) as client:
            return await QueryObserver(EQUIPMENT, client, QueryCache()).update(company_id=seeded.bolt_id)

    result = asyncio.run(scenario())
    assert isinstance(result.error, HttpStatusError)
    assert result.error.status_code == 403
    assert auth.is_authenticated is True


def test_rejected_token_signs_out_and_redirects(api_app, seeded):
    auth = AuthContext()
    auth.sign_in({"id": seeded.user_id, "email": "user@acme.example", "role": "user", "token": "expired"})
    route = RouteContext("/company/equipment")
    AuthRedirectGuard(auth, route, login_path="/login").attach()

    async def scenario():
        async with _client(api_app, auth) as client:
            return await QueryObserver(SERVICE_RECORDS, client, QueryCache()).update(company_id=seeded.acme_id)

    result = asyncio.run(scenario())
    assert result.error.status_code == 401
    assert auth.session is None
    assert route.path == "/login"


def test_sign_out_empties_cache_for_next_session(api_app, seeded):
    cache = QueryCache()
    auth = AuthContext(cache=cache)

    async def scenario():
        async with _client(api_app, auth) as client:
            await login(client, auth, "user@acme.example", seeded.password)
            records = QueryObserver(SERVICE_RECORDS, client, cache)
            await records.update(company_id=seeded.acme_id)
            before = len(records.result.data)
            auth.sign_out()
            return before, records.result

    before, after = asyncio.run(scenario())
    assert before == 2
    assert len(cache) == 0
    assert after.data is None


def test_rejected_token_also_empties_cache(api_app, seeded):
    cache = QueryCache()
    auth = AuthContext(cache=cache)
    auth.sign_in({"id": seeded.user_id, "email": "user@acme.example", "role": "user", "token": seeded.user_token})

    async def scenario():
        async with _client(api_app, auth) as client:
            equipment = QueryObserver(EQUIPMENT, client, cache)
            await equipment.update(company_id=seeded.acme_id)
            auth.sign_in({"id": seeded.user_id, "email": "user@acme.example", "role": "user", "token": "expired"})
            await QueryObserver(SERVICE_RECORDS, client, cache).update(company_id=seeded.acme_id)
            return equipment.result

    equipment = asyncio.run(scenario())
    assert auth.session is None
    assert len(cache) == 0
    assert equipment.data is None
