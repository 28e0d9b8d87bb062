"""
Tests for session endpoints: creation, listing, admin edits.
"""

import pytest
from datetime import datetime, timezone, timedelta
from httpx import AsyncClient

from tests.conftest import EVENT_ID


def session_json(title="Keynote", capacity=2, starts_in_hours=24, **extra):
    start = datetime.now(timezone.utc) + timedelta(hours=starts_in_hours)
    data = {
        "title": title,
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(hours=1)).isoformat(),
        **extra,
    }
    if capacity is not None:
        data["capacity"] = capacity
    return data


async def create_session(client: AsyncClient, event_id=EVENT_ID, **kwargs) -> dict:
    response = await client.post(f"/api/v1/events/{event_id}/sessions", json=session_json(**kwargs))
    assert response.status_code == 201, response.text
    return response.json()


async def rsvp(client: AsyncClient, session_id: str, user_id: str):
    return await client.post(
        f"/api/v1/sessions/{session_id}/rsvps",
        json={
            "user_id": user_id,
            "user_info": {"name": f"User {user_id}", "email": f"{user_id.lower()}@example.com"},
        },
    )


@pytest.mark.asyncio
async def test_create_session(client: AsyncClient):
    data = await create_session(
        client,
        title="Async Python Workshop",
        capacity=30,
        speaker="Ada",
        location="Room 4",
        session_type="workshop",
    )
    assert data["event_id"] == EVENT_ID
    assert data["title"] == "Async Python Workshop"
    assert data["capacity"] == 30
    assert data["session_type"] == "workshop"
    assert data["confirmed_count"] == 0
    assert data["waitlist_count"] == 0
    assert data["status"] == "open"


@pytest.mark.asyncio
async def test_create_session_defaults(client: AsyncClient):
    data = await create_session(client, capacity=None)
    assert data["capacity"] == 50
    assert data["session_type"] == "session"
    assert data["description"] == ""
    assert data["speaker"] == ""


@pytest.mark.asyncio
async def test_create_session_end_before_start(client: AsyncClient):
    start = datetime.now(timezone.utc) + timedelta(days=1)
    response = await client.post(
        f"/api/v1/events/{EVENT_ID}/sessions",
        json={
            "title": "Backwards",
            "start_time": start.isoformat(),
            "end_time": (start - timedelta(hours=1)).isoformat(),
            "capacity": 10,
        },
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_session_invalid_capacity(client: AsyncClient):
    response = await client.post(f"/api/v1/events/{EVENT_ID}/sessions", json=session_json(capacity=0))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_sessions_sorted_by_start_time(client: AsyncClient):
    await create_session(client, title="Afternoon", starts_in_hours=30)
    await create_session(client, title="Morning", starts_in_hours=26)
    await create_session(client, title="Other event", event_id="another-event")

    response = await client.get(f"/api/v1/events/{EVENT_ID}/sessions")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert [s["title"] for s in data["sessions"]] == ["Morning", "Afternoon"]
    assert data["cached"] is False


@pytest.mark.asyncio
async def test_list_sessions_unknown_event_is_empty(client: AsyncClient):
    response = await client.get("/api/v1/events/nothing-here/sessions")
    assert response.status_code == 200
    assert response.json() == {"sessions": [], "total": 0, "cached": False}


@pytest.mark.asyncio
async def test_get_session(client: AsyncClient):
    created = await create_session(client)
    response = await client.get(f"/api/v1/sessions/{created['id']}")
    assert response.status_code == 200
    assert response.json()["id"] == created["id"]


@pytest.mark.asyncio
async def test_get_session_not_found(client: AsyncClient):
    response = await client.get("/api/v1/sessions/does-not-exist")
    assert response.status_code == 404
    assert response.json()["error"] == "session_not_found"


@pytest.mark.asyncio
async def test_raise_capacity_promotes_waitlist(client: AsyncClient):
    session = await create_session(client, capacity=1)
    for user in ("U1", "U2", "U3"):
        await rsvp(client, session["id"], user)

    response = await client.patch(f"/api/v1/sessions/{session['id']}", json={"capacity": 2})
    assert response.status_code == 200
    data = response.json()
    assert data["capacity"] == 2
    assert data["confirmed_count"] == 2
    assert data["waitlist_count"] == 1
    assert data["status"] == "full"

    attendees = (await client.get(f"/api/v1/sessions/{session['id']}/attendees")).json()
    assert [a["user_id"] for a in attendees["confirmed"]] == ["U1", "U2"]
    assert [(a["user_id"], a["position"]) for a in attendees["waitlisted"]] == [("U3", 1)]


@pytest.mark.asyncio
async def test_lower_capacity_below_confirmed(client: AsyncClient):
    session = await create_session(client, capacity=3)
    await rsvp(client, session["id"], "U1")
    await rsvp(client, session["id"], "U2")

    response = await client.patch(f"/api/v1/sessions/{session['id']}", json={"capacity": 1})
    assert response.status_code == 422
    assert response.json()["error"] == "invalid_capacity"


@pytest.mark.asyncio
async def test_close_and_reopen_session(client: AsyncClient):
    session = await create_session(client, capacity=5)

    response = await client.patch(f"/api/v1/sessions/{session['id']}", json={"status": "closed"})
    assert response.json()["status"] == "closed"

    blocked = await rsvp(client, session["id"], "U1")
    assert blocked.status_code == 409
    assert blocked.json()["error"] == "session_closed"

    response = await client.patch(f"/api/v1/sessions/{session['id']}", json={"status": "open"})
    assert response.json()["status"] == "open"
    assert (await rsvp(client, session["id"], "U1")).status_code == 201


@pytest.mark.asyncio
async def test_update_session_requires_a_field(client: AsyncClient):
    session = await create_session(client)
    response = await client.patch(f"/api/v1/sessions/{session['id']}", json={})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_update_unknown_session(client: AsyncClient):
    response = await client.patch("/api/v1/sessions/missing", json={"capacity": 10})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_sessions_orders_by_instant_across_offsets(client: AsyncClient):
    """10:00+03:00 is 07:00Z, so it comes before a session at 08:00Z."""
    day = (datetime.now(timezone.utc) + timedelta(days=3)).date().isoformat()
    for title, start, end in (
        ("later", f"{day}T08:00:00Z", f"{day}T09:00:00Z"),
        ("earlier", f"{day}T10:00:00+03:00", f"{day}T11:00:00+03:00"),
    ):
        response = await client.post(
            f"/api/v1/events/{EVENT_ID}/sessions",
            json={"title": title, "start_time": start, "end_time": end, "capacity": 5},
        )
        assert response.status_code == 201

    sessions = (await client.get(f"/api/v1/events/{EVENT_ID}/sessions")).json()["sessions"]
    assert [s["title"] for s in sessions] == ["earlier", "later"]

    first_start = datetime.fromisoformat(sessions[0]["start_time"].replace("Z", "+00:00"))
    assert first_start.utcoffset() == timedelta(0)
    assert first_start.hour == 7
