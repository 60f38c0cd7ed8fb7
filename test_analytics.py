from datetime import datetime, timedelta

import pytest

from conftest import bearer
from wardrobe.analytics import count_by, underused


@pytest.fixture
def token(signup):
    return signup("alice@example.com")


def test_underused_includes_never_and_long_ago_worn():
    now = datetime(2025, 6, 1)
    items = [
        {"title": "never"},
        {"title": "recent", "lastUsed": now - timedelta(days=10)},
        {"title": "old", "lastUsed": now - timedelta(days=200)},
    ]

    assert [it["title"] for it in underused(items, now=now)] == ["never", "old"]


def test_underused_is_limited_to_five():
    assert len(underused([{"title": str(i)} for i in range(8)])) == 5


def test_count_by_groups_missing_values():
    items = [{"category": "tops"}, {"category": "tops"}, {"category": ""}, {}]
    assert sorted(count_by(items, "category"), key=lambda c: c["name"]) == [
        {"name": "tops", "value": 2},
        {"name": "unknown", "value": 2},
    ]


def test_analytics_endpoint(client, db, token):
    for title, category, season in [("Tee", "tops", "summer"), ("Shirt", "tops", "all"), ("Coat", "outerwear", "winter")]:
        client.post("/wardrobe", data={"title": title, "category": category, "seasons": season}, headers=bearer(token))
    db["items"].update_one({"title": "Coat"}, {"$set": {"lastUsed": datetime.utcnow()}})

    body = client.get("/analytics", headers=bearer(token)).json()

    assert body["total"] == 3
    assert {c["name"]: c["value"] for c in body["categories"]} == {"tops": 2, "outerwear": 1}
    assert {c["name"]: c["value"] for c in body["seasons"]} == {"summer": 1, "all": 1, "winter": 1}
    assert sorted(it["title"] for it in body["underused"]) == ["Shirt", "Tee"]


def test_restyle_suggestions(client, token, completions):
    client.post("/wardrobe", data={"title": "Sequin top"}, headers=bearer(token))
    completions.responses.append("Pair the sequin top with denim for daytime.")

    r = client.post("/analytics/suggestions", headers=bearer(token))

    assert r.status_code == 200
    assert r.json()["suggestions"].startswith("Pair the sequin top")
    assert "Sequin top" in completions.prompts[0]


def test_restyle_suggestions_need_underused_items(client, token, completions):
    r = client.post("/analytics/suggestions", headers=bearer(token))
    assert r.status_code == 400
    assert completions.prompts == []
