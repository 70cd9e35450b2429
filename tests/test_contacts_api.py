"""
Tests for the Contacts and Occasions API

Uses FastAPI TestClient with the in-memory stores from conftest.py; no
running server or Supabase project needed.

Run with: pytest tests/test_contacts_api.py -v
"""

CONTACTS = "/api/v1/contacts"
OCCASIONS = "/api/v1/occasions"


def _seed_contact(stores, name="Ana Lopez", **fields):
    return stores.contacts.seed(name=name, relationship="friend", **fields)


# ---------------------------------------------------------------------------
# Contact CRUD
# ---------------------------------------------------------------------------


class TestContactCrud:

    def test_create_and_get(self, client):
        resp = client.post(CONTACTS, json={
            "name": "  Ana Lopez ",
            "relationship": "friend",
            "preferences": {"hobbies": ["cooking"]},
        })
        assert resp.status_code == 201
        created = resp.json()
        assert created["name"] == "Ana Lopez"
        assert created["preferences"]["hobbies"] == ["cooking"]

        fetched = client.get(f"{CONTACTS}/{created['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["id"] == created["id"]

    def test_blank_name_rejected(self, client):
        resp = client.post(CONTACTS, json={"name": "   ", "relationship": "friend"})
        assert resp.status_code == 422

    def test_list_sorted_by_name(self, client, stores):
        _seed_contact(stores, "Zoe")
        _seed_contact(stores, "Ben")
        names = [c["name"] for c in client.get(CONTACTS).json()]
        assert names == ["Ben", "Zoe"]

    def test_update_only_sent_fields(self, client, stores):
        contact = _seed_contact(stores, notes="likes tea")
        resp = client.put(f"{CONTACTS}/{contact['id']}", json={"name": "Ana L."})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Ana L."
        assert resp.json()["notes"] == "likes tea"

    def test_unknown_contact_is_404(self, client):
        resp = client.get(f"{CONTACTS}/missing")
        assert resp.status_code == 404
        assert "missing" in resp.json()["detail"]

    def test_delete_cascades(self, client, stores):
        contact = _seed_contact(stores)
        occasion = stores.occasions.seed(contact_id=contact["id"], title="Bday", date="2026-05-04")
        gift = stores.gifts.seed(contact_id=contact["id"], occasion_id=occasion["id"], title="G")
        stores.shopping_options.seed(gift_id=gift["id"], title="Option")

        resp = client.delete(f"{CONTACTS}/{contact['id']}")

        assert resp.status_code == 204
        assert stores.contacts.rows == {}
        assert stores.occasions.rows == {}
        assert stores.gifts.rows == {}
        assert stores.shopping_options.rows == {}


# ---------------------------------------------------------------------------
# Per-contact spending
# ---------------------------------------------------------------------------


class TestContactSpending:

    def test_grouped_by_occasion(self, client, stores):
        contact = _seed_contact(stores)
        occasion = stores.occasions.seed(
            contact_id=contact["id"], title="Ana's Birthday", date="2026-05-04",
        )
        stores.gifts.seed(contact_id=contact["id"], occasion_id=occasion["id"],
                          title="A", status="purchased", price=40, budget=50)
        stores.gifts.seed(contact_id=contact["id"], occasion_id=occasion["id"],
                          title="B", status="idea", price=0, budget=20)
        stores.gifts.seed(contact_id=contact["id"], title="C", status="delivered",
                          price=15, budget=15)

        resp = client.get(f"{CONTACTS}/{contact['id']}/spending")

        assert resp.status_code == 200
        body = resp.json()
        assert body["contact_name"] == "Ana Lopez"
        assert body["groups"][occasion["id"]]["total_spent"] == 40
        assert body["groups"][occasion["id"]]["total_budget"] == 70
        assert body["groups"]["no_occasion"]["title"] == "General Gifts"
        assert body["groups"]["no_occasion"]["total_spent"] == 0
        assert body["total_spent"] == 40
        assert body["total_budget"] == 85
        assert body["spent_statuses"] == ["given", "purchased"]

    def test_status_override(self, client, stores):
        contact = _seed_contact(stores)
        stores.gifts.seed(contact_id=contact["id"], title="C", status="delivered", price=15)

        resp = client.get(
            f"{CONTACTS}/{contact['id']}/spending",
            params=[("statuses", "delivered"), ("statuses", "purchased")],
        )
        assert resp.json()["total_spent"] == 15
        assert resp.json()["spent_statuses"] == ["delivered", "purchased"]

    def test_unknown_status_rejected(self, client, stores):
        contact = _seed_contact(stores)
        resp = client.get(f"{CONTACTS}/{contact['id']}/spending", params={"statuses": "bought"})
        assert resp.status_code == 422

    def test_deleted_contact_renders_unknown(self, client, stores):
        occasion = stores.occasions.seed(contact_id="gone", title="Party", date="2026-07-01")
        stores.gifts.seed(contact_id="gone", occasion_id=occasion["id"], title="A",
                          status="given", price=25, budget=30)

        resp = client.get(f"{CONTACTS}/gone/spending")

        assert resp.status_code == 200
        assert resp.json()["contact_name"] == "Unknown Contact"
        assert resp.json()["contact"] is None
        assert resp.json()["total_spent"] == 25


# ---------------------------------------------------------------------------
# Occasions
# ---------------------------------------------------------------------------


class TestOccasions:

    def test_title_defaults_from_contact(self, client, stores):
        contact = _seed_contact(stores, "Maria Gonzalez")
        resp = client.post(OCCASIONS, json={
            "contact_id": contact["id"], "type": "mothers_day", "date": "2027-05-09",
        })
        assert resp.status_code == 201
        assert resp.json()["title"] == "Maria's Mother's Day"
        assert resp.json()["budget"] == 50

    def test_custom_requires_title(self, client, stores):
        contact = _seed_contact(stores)
        resp = client.post(OCCASIONS, json={
            "contact_id": contact["id"], "type": "custom", "date": "2027-01-01",
        })
        assert resp.status_code == 422

    def test_unknown_type_rejected(self, client, stores):
        contact = _seed_contact(stores)
        resp = client.post(OCCASIONS, json={
            "contact_id": contact["id"], "type": "festivus", "date": "2026-12-23",
        })
        assert resp.status_code == 422

    def test_unknown_contact_is_404(self, client):
        resp = client.post(OCCASIONS, json={
            "contact_id": "nobody", "type": "birthday", "date": "2027-01-01",
        })
        assert resp.status_code == 404

    def test_upcoming_and_reminders(self, client, stores):
        stores.occasions.seed(contact_id="c1", title="Halloween", date="2020-10-31",
                              recurring=True, reminder_days=14)
        stores.occasions.seed(contact_id="c1", title="Xmas", date="2020-12-25",
                              recurring=True, reminder_days=7)
        stores.occasions.seed(contact_id="c1", title="Done", date="2026-01-01",
                              recurring=False, reminder_days=7)

        upcoming = client.get(f"{OCCASIONS}/upcoming", params={"on": "2026-10-19"}).json()
        reminders = client.get(f"{OCCASIONS}/reminders", params={"on": "2026-10-19"}).json()

        assert [o["title"] for o in upcoming] == ["Halloween", "Xmas"]
        assert [o["title"] for o in reminders] == ["Halloween"]

    def test_delete_keeps_gifts(self, client, stores):
        occasion = stores.occasions.seed(contact_id="c1", title="Bday", date="2026-05-04")
        stores.gifts.seed(contact_id="c1", occasion_id=occasion["id"], title="G")

        assert client.delete(f"{OCCASIONS}/{occasion['id']}").status_code == 204
        assert stores.occasions.rows == {}
        assert len(stores.gifts.rows) == 1

    def test_delete_unknown_is_404(self, client):
        assert client.delete(f"{OCCASIONS}/missing").status_code == 404


# ---------------------------------------------------------------------------
# Flowers
# ---------------------------------------------------------------------------


class TestContactFlowers:

    def test_arrangements_carry_affiliate_urls(self, client, stores, generator):
        contact = _seed_contact(stores)
        stores.affiliate_links.seed(
            program_name="1-800-Flowers", domain="1800flowers.com",
            tracking_id_param="ref", tracking_id_value="gp-7", is_active=True,
        )

        resp = client.post(f"{CONTACTS}/{contact['id']}/flowers", json={
            "occasion_type": "birthday", "budget_min": 50, "budget_max": 75,
        })

        assert resp.status_code == 200
        body = resp.json()
        assert body["count"] == 2
        assert body["budget_max"] == 75
        roses, jar = body["arrangements"]
        assert roses["affiliate_url"] == "https://www.1800flowers.com/roses-123?size=deluxe&ref=gp-7"
        assert roses["affiliate_program"] == "1-800-Flowers"
        assert jar["affiliate_url"] == "https://www.bouqs.com/wildflower"
        assert jar["affiliate_program"] is None
        assert generator.flower_calls[0][0] == contact["id"]
        assert generator.flower_calls[0][1].occasion_type == "birthday"

    def test_defaults(self, client, stores, generator):
        contact = _seed_contact(stores)
        body = client.post(f"{CONTACTS}/{contact['id']}/flowers", json={}).json()
        assert body["occasion_type"] == "just_because"
        assert (body["budget_min"], body["budget_max"]) == (50, 75)

    def test_nothing_found(self, client, stores, generator):
        generator.arrangements = []
        contact = _seed_contact(stores)
        body = client.post(f"{CONTACTS}/{contact['id']}/flowers", json={}).json()
        assert body["count"] == 0

    def test_unknown_contact_is_404(self, client, generator):
        resp = client.post(f"{CONTACTS}/missing/flowers", json={})
        assert resp.status_code == 404
        assert generator.flower_calls == []

    def test_unknown_occasion_rejected(self, client, stores):
        contact = _seed_contact(stores)
        resp = client.post(f"{CONTACTS}/{contact['id']}/flowers", json={"occasion_type": "festivus"})
        assert resp.status_code == 422
