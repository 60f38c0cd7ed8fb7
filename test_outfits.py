import pytest

from conftest import bearer

SHIRT = {"_id": "64b7f0c2a1b2c3d4e5f60718", "title": "Shirt", "category": "tops", "image_url": "https://x/shirt.png"}
JEANS = {"_id": "64b7f0c2a1b2c3d4e5f60719", "title": "Jeans", "category": "bottoms", "image_url": "https://x/jeans.png"}


@pytest.fixture
def alice(signup):
    return signup("alice@example.com")


@pytest.fixture
def bob(signup):
    return signup("bob@example.com")


def save(client, token, name="Friday", items=(SHIRT, JEANS)):
    return client.post("/outfits", json={"name": name, "items": list(items)}, headers=bearer(token))


def test_create_and_list(client, alice):
    r = save(client, alice)

    assert r.status_code == 200
    outfit = r.json()
    assert outfit["name"] == "Friday"
    assert outfit["items"] == [SHIRT, JEANS]
    assert outfit["_id"]

    listed = client.get("/outfits", headers=bearer(alice)).json()
    assert [o["_id"] for o in listed] == [outfit["_id"]]


def test_items_are_reduced_to_snapshots(client, alice):
    extra = dict(SHIRT, brand="Acme", notes="ironed")

    outfit = save(client, alice, items=[extra]).json()

    assert outfit["items"] == [SHIRT]


@pytest.mark.parametrize(
    "body",
    [
        {"name": "", "items": [SHIRT]},
        {"items": [SHIRT]},
        {"name": "Empty", "items": []},
        {"name": "Bad", "items": "shirt"},
    ],
)
def test_invalid_outfits_are_rejected(client, alice, body):
    r = client.post("/outfits", json=body, headers=bearer(alice))
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid outfit data"}


def test_outfits_are_owner_scoped(client, alice, bob):
    save(client, alice)
    assert client.get("/outfits", headers=bearer(bob)).json() == []


def test_update_and_delete(client, alice):
    outfit_id = save(client, alice).json()["_id"]

    r = client.put(f"/outfits/{outfit_id}", json={"name": "Saturday", "items": [JEANS]}, headers=bearer(alice))
    assert r.status_code == 200
    assert r.json()["matchedCount"] == 1

    updated = client.get("/outfits", headers=bearer(alice)).json()[0]
    assert updated["name"] == "Saturday"
    assert updated["items"] == [JEANS]

    assert client.delete(f"/outfits/{outfit_id}", headers=bearer(alice)).status_code == 200
    assert client.get("/outfits", headers=bearer(alice)).json() == []


def test_update_cannot_reassign_owner(client, db, alice, bob, owner_of):
    outfit_id = save(client, alice).json()["_id"]

    client.put(
        f"/outfits/{outfit_id}",
        json={"name": "Renamed", "userId": str(owner_of(bob))},
        headers=bearer(alice),
    )

    stored = db["outfits"].find_one({"name": "Renamed"})
    assert stored["userId"] == owner_of(alice)


def test_update_rejects_empty_items(client, alice):
    outfit_id = save(client, alice).json()["_id"]

    r = client.put(f"/outfits/{outfit_id}", json={"items": []}, headers=bearer(alice))
    assert r.status_code == 400


def test_other_users_outfit_looks_missing(client, db, alice, bob):
    outfit_id = save(client, alice).json()["_id"]

    assert client.put(f"/outfits/{outfit_id}", json={"name": "Mine"}, headers=bearer(bob)).status_code == 404
    assert client.delete(f"/outfits/{outfit_id}", headers=bearer(bob)).status_code == 404
    assert db["outfits"].find_one({"name": "Friday"}) is not None


def test_deleting_an_item_leaves_outfits_alone(client, db, alice):
    r = client.post("/wardrobe", data={"title": "Shirt"}, headers=bearer(alice))
    item_id = r.json()["_id"]
    save(client, alice, items=[dict(SHIRT, _id=item_id)])

    client.delete(f"/wardrobe/{item_id}", headers=bearer(alice))

    outfit = client.get("/outfits", headers=bearer(alice)).json()[0]
    assert outfit["items"][0]["_id"] == item_id
