"""
E2E: Provider weekly availability and date exceptions.

Tests:
- Default edit form for a provider with no saved schedule
- Weekly rewrite: replaces rows and returns grouped display blocks
- Invalid submissions leave the saved schedule untouched
- Only the provider themself or an admin can edit
- Date exceptions: add, list, delete
"""

from __future__ import annotations

import uuid

import pytest
from httpx import AsyncClient

from tests.e2e.conftest import PROVIDER_PROFILE_ID

pytestmark = pytest.mark.asyncio

BASE_URL = f"/api/v1/providers/{PROVIDER_PROFILE_ID}/availability"
LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def _week(enabled: dict[str, list[tuple[str, str]]], tz: str = "America/Chicago") -> dict:
    return {
        "timezone": tz,
        "days": [
            {
                "label": label,
                "enabled": label in enabled,
                "times": [{"start": s, "end": e} for s, e in enabled.get(label, [])],
            }
            for label in LABELS
        ],
    }


WEEKDAYS_9_TO_5 = _week({d: [("09:00", "17:00")] for d in LABELS[:5]})


class TestScheduleForm:

    async def test_default_form(self, client: AsyncClient, provider_headers):
        resp = await client.get(f"{BASE_URL}/form", headers=provider_headers)

        assert resp.status_code == 200
        form = resp.json()["data"]
        assert form["timezone"] == "America/Chicago"
        assert [d["enabled"] for d in form["days"]] == [True] * 5 + [False] * 2
        assert form["days"][0]["times"] == [{"start": "08:30:00", "end": "17:00:00"}]

    async def test_no_blocks_before_first_save(self, client: AsyncClient, provider_headers):
        resp = await client.get(BASE_URL, headers=provider_headers)
        assert resp.status_code == 200
        assert resp.json()["data"] == []

    async def test_unknown_provider(self, client: AsyncClient, admin_headers):
        resp = await client.get(
            f"/api/v1/providers/{uuid.uuid4()}/availability", headers=admin_headers
        )
        assert resp.status_code == 404


class TestWeeklyRewrite:

    async def test_save_weekdays(self, client: AsyncClient, provider_headers):
        resp = await client.put(BASE_URL, json=WEEKDAYS_9_TO_5, headers=provider_headers)

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert sorted(r["day_of_week"] for r in data["rows"]) == [1, 2, 3, 4, 5]
        assert len(data["blocks"]) == 1
        block = data["blocks"][0]
        assert block["label"] == "Week"
        assert block["days"] == "Mon - Fri"
        assert block["time"] == "9:00am - 5:00pm"
        assert block["timezone"].startswith("Chicago (GMT")

    async def test_second_save_replaces_first(self, client: AsyncClient, provider_headers):
        await client.put(BASE_URL, json=WEEKDAYS_9_TO_5, headers=provider_headers)

        weekend = _week({"Sat": [("10:00", "14:00")], "Sun": [("10:00", "14:00")]})
        resp = await client.put(BASE_URL, json=weekend, headers=provider_headers)

        assert resp.status_code == 200
        rows = resp.json()["data"]["rows"]
        assert sorted(r["day_of_week"] for r in rows) == [0, 6]

        blocks = (await client.get(BASE_URL, headers=provider_headers)).json()["data"]
        assert [b["days"] for b in blocks] == ["Sat, Sun"]

    async def test_split_shift_and_two_blocks(self, client: AsyncClient, provider_headers):
        week = _week({
            "Mon": [("08:00", "12:00"), ("13:00", "17:00")],
            "Tue": [("08:00", "12:00"), ("13:00", "17:00")],
        })
        resp = await client.put(BASE_URL, json=week, headers=provider_headers)

        blocks = resp.json()["data"]["blocks"]
        assert [(b["days"], b["time"]) for b in blocks] == [
            ("Mon, Tue", "8:00am - 12:00pm"),
            ("Mon, Tue", "1:00pm - 5:00pm"),
        ]

        form = (await client.get(f"{BASE_URL}/form", headers=provider_headers)).json()["data"]
        assert len(form["days"][0]["times"]) == 2

    async def test_invalid_range_keeps_saved_schedule(self, client: AsyncClient, provider_headers):
        await client.put(BASE_URL, json=WEEKDAYS_9_TO_5, headers=provider_headers)

        bad = _week({"Mon": [("17:00", "09:00")]})
        resp = await client.put(BASE_URL, json=bad, headers=provider_headers)

        assert resp.status_code == 422
        assert resp.json()["success"] is False
        assert "Mon" in resp.json()["error"]

        blocks = (await client.get(BASE_URL, headers=provider_headers)).json()["data"]
        assert blocks[0]["days"] == "Mon - Fri"

    async def test_unknown_timezone_rejected(self, client: AsyncClient, provider_headers):
        resp = await client.put(
            BASE_URL, json=_week({"Mon": [("09:00", "17:00")]}, tz="Mars/Base"), headers=provider_headers
        )
        assert resp.status_code == 422
        assert "timezone" in resp.json()["error"].lower()

    async def test_six_days_rejected(self, client: AsyncClient, provider_headers):
        payload = dict(WEEKDAYS_9_TO_5)
        payload["days"] = payload["days"][:6]
        resp = await client.put(BASE_URL, json=payload, headers=provider_headers)
        assert resp.status_code == 422

    async def test_other_provider_cannot_edit(self, client: AsyncClient, provider_b_headers):
        resp = await client.put(BASE_URL, json=WEEKDAYS_9_TO_5, headers=provider_b_headers)

        assert resp.status_code == 403
        assert resp.json()["error"] == "You can only edit your own availability."

    async def test_other_provider_can_read(self, client: AsyncClient, provider_headers, provider_b_headers):
        await client.put(BASE_URL, json=WEEKDAYS_9_TO_5, headers=provider_headers)
        resp = await client.get(BASE_URL, headers=provider_b_headers)
        assert resp.status_code == 200
        assert len(resp.json()["data"]) == 1

    async def test_admin_can_edit(self, client: AsyncClient, admin_headers):
        resp = await client.put(BASE_URL, json=WEEKDAYS_9_TO_5, headers=admin_headers)
        assert resp.status_code == 200


class TestExceptions:

    async def test_add_list_delete(self, client: AsyncClient, provider_headers):
        created = await client.post(
            f"{BASE_URL}/exceptions",
            json={"exception_date": "2030-12-25", "reason": "Holiday"},
            headers=provider_headers,
        )
        assert created.status_code == 201
        exception = created.json()["data"]
        assert exception["is_available"] is False
        assert exception["start_time"] is None

        listed = await client.get(f"{BASE_URL}/exceptions", headers=provider_headers)
        assert [e["id"] for e in listed.json()["data"]] == [exception["id"]]

        deleted = await client.delete(
            f"{BASE_URL}/exceptions/{exception['id']}", headers=provider_headers
        )
        assert deleted.status_code == 200

        listed = await client.get(f"{BASE_URL}/exceptions", headers=provider_headers)
        assert listed.json()["data"] == []

    async def test_available_override_needs_times(self, client: AsyncClient, provider_headers):
        resp = await client.post(
            f"{BASE_URL}/exceptions",
            json={"exception_date": "2030-07-04", "is_available": True},
            headers=provider_headers,
        )
        assert resp.status_code == 422

    async def test_available_override_with_reversed_times(self, client: AsyncClient, provider_headers):
        resp = await client.post(
            f"{BASE_URL}/exceptions",
            json={
                "exception_date": "2030-07-04",
                "is_available": True,
                "start_time": "15:00",
                "end_time": "09:00",
            },
            headers=provider_headers,
        )
        assert resp.status_code == 422
        assert resp.json()["error"] == "End time must be after start time."

    async def test_delete_missing_exception(self, client: AsyncClient, provider_headers):
        resp = await client.delete(
            f"{BASE_URL}/exceptions/{uuid.uuid4()}", headers=provider_headers
        )
        assert resp.status_code == 404
