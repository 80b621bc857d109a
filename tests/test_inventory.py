"""Tests for inventory endpoints."""

import base64

import httpx

from src.models import UnrecognizedItem, UsageLogEntry
from src.services.errors import ExtractionSchemaError
from src.services.extraction import ExtractionResult


def set_quantity(client, headers, ingredient, quantity):
    response = client.post(
        "/api/v1/inventory",
        headers=headers,
        json={"ingredientId": ingredient.id, "quantityLevel": quantity},
    )
    assert response.status_code == 200
    return response.json()


def usage_count(db, user_id):
    return db.query(UsageLogEntry).filter(UsageLogEntry.user_id == user_id).count()


class TestInventoryCrud:
    """Tests for listing and editing inventory rows."""

    def test_list_empty_inventory(self, client, auth_headers):
        response = client.get("/api/v1/inventory", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"inventory": [], "count": 0}

    def test_set_quantity_creates_then_updates(self, client, auth_headers, catalog):
        created = set_quantity(client, auth_headers, catalog["milk"], 2)
        assert created["kind"] == "recognized"
        assert created["name"] == "milk"
        assert created["category"] == "dairy"
        assert created["quantityLevel"] == 2
        assert created["isPantryStaple"] is False

        updated = set_quantity(client, auth_headers, catalog["milk"], 0)
        assert updated["id"] == created["id"]
        assert updated["quantityLevel"] == 0

        listing = client.get("/api/v1/inventory", headers=auth_headers).json()
        assert listing["count"] == 1

    def test_set_quantity_unknown_ingredient(self, client, auth_headers, catalog):
        response = client.post(
            "/api/v1/inventory",
            headers=auth_headers,
            json={"ingredientId": 999999, "quantityLevel": 1},
        )
        assert response.status_code == 400
        assert response.json()["details"] == ["ingredientId 999999 does not exist"]

    def test_inventories_are_isolated(self, client, auth_headers, other_auth_headers, catalog):
        set_quantity(client, auth_headers, catalog["milk"], 3)
        listing = client.get("/api/v1/inventory", headers=other_auth_headers).json()
        assert listing["count"] == 0

    def test_list_orders_recognized_before_unrecognized(self, client, auth_headers, catalog):
        client.post(
            "/api/v1/inventory/apply-proposal",
            headers=auth_headers,
            json={"proposal": {"recognized": [], "unrecognized": ["aardvark jerky"]}},
        )
        set_quantity(client, auth_headers, catalog["onion"], 1)
        set_quantity(client, auth_headers, catalog["butter"], 2)

        inventory = client.get("/api/v1/inventory", headers=auth_headers).json()["inventory"]
        assert [item["name"] for item in inventory] == ["butter", "onion", "aardvark jerky"]
        assert inventory[2]["kind"] == "unrecognized"
        assert "unrecognizedItemId" in inventory[2]

    def test_batch_update(self, client, auth_headers, catalog):
        response = client.post(
            "/api/v1/inventory/batch",
            headers=auth_headers,
            json={
                "updates": [
                    {"ingredientId": catalog["milk"].id, "quantityLevel": 3},
                    {"ingredientId": catalog["egg"].id, "quantityLevel": 1},
                ]
            },
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "updated": 2}

    def test_batch_with_unknown_id_writes_nothing(self, client, auth_headers, catalog):
        response = client.post(
            "/api/v1/inventory/batch",
            headers=auth_headers,
            json={
                "updates": [
                    {"ingredientId": catalog["milk"].id, "quantityLevel": 3},
                    {"ingredientId": 424242, "quantityLevel": 1},
                ]
            },
        )
        assert response.status_code == 400
        listing = client.get("/api/v1/inventory", headers=auth_headers).json()
        assert listing["count"] == 0

    def test_empty_batch_is_invalid(self, client, auth_headers):
        response = client.post(
            "/api/v1/inventory/batch", headers=auth_headers, json={"updates": []}
        )
        assert response.status_code == 400

    def test_delete_item(self, client, auth_headers, catalog):
        item = set_quantity(client, auth_headers, catalog["milk"], 3)
        response = client.delete(f"/api/v1/inventory/{item['id']}", headers=auth_headers)
        assert response.status_code == 204
        assert client.get("/api/v1/inventory", headers=auth_headers).json()["count"] == 0

    def test_delete_other_users_item_is_not_found(
        self, client, auth_headers, other_auth_headers, catalog
    ):
        item = set_quantity(client, auth_headers, catalog["milk"], 3)
        response = client.delete(f"/api/v1/inventory/{item['id']}", headers=other_auth_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_toggle_staple(self, client, auth_headers, catalog):
        item = set_quantity(client, auth_headers, catalog["salt"], 3)
        response = client.patch(
            f"/api/v1/inventory/{item['id']}/toggle-staple", headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["isPantryStaple"] is True

        response = client.patch(
            f"/api/v1/inventory/{item['id']}/toggle-staple", headers=auth_headers
        )
        assert response.json()["isPantryStaple"] is False

    def test_toggle_staple_on_unrecognized_row_is_invalid(self, client, auth_headers):
        client.post(
            "/api/v1/inventory/apply-proposal",
            headers=auth_headers,
            json={"proposal": {"recognized": [], "unrecognized": ["yuzu"]}},
        )
        item = client.get("/api/v1/inventory", headers=auth_headers).json()["inventory"][0]
        response = client.patch(
            f"/api/v1/inventory/{item['id']}/toggle-staple", headers=auth_headers
        )
        assert response.status_code == 400

    def test_reset(self, client, auth_headers, other_auth_headers, catalog):
        set_quantity(client, auth_headers, catalog["milk"], 3)
        set_quantity(client, auth_headers, catalog["egg"], 2)
        set_quantity(client, other_auth_headers, catalog["egg"], 2)

        response = client.post("/api/v1/inventory/reset", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"success": True, "deleted": 2}
        assert client.get("/api/v1/inventory", headers=other_auth_headers).json()["count"] == 1

    def test_prefill_demo_is_idempotent(self, client, auth_headers, catalog):
        first = client.post("/api/v1/inventory/prefill-demo", headers=auth_headers).json()
        assert first["success"] is True
        assert first["inventoryCreated"] > 0
        assert first["unrecognizedCreated"] > 0

        listing = client.get("/api/v1/inventory", headers=auth_headers).json()
        assert listing["count"] == first["inventoryCreated"]
        staples = {i["name"] for i in listing["inventory"] if i["isPantryStaple"]}
        assert {"salt", "olive oil"} <= staples

        second = client.post("/api/v1/inventory/prefill-demo", headers=auth_headers).json()
        assert second["inventoryCreated"] == 0
        assert second["unrecognizedCreated"] == 0

    def test_prefill_keeps_existing_rows(self, client, auth_headers, catalog):
        set_quantity(client, auth_headers, catalog["milk"], 1)
        client.post("/api/v1/inventory/prefill-demo", headers=auth_headers)

        inventory = client.get("/api/v1/inventory", headers=auth_headers).json()["inventory"]
        milk = next(i for i in inventory if i["name"] == "milk")
        assert milk["quantityLevel"] == 1


class TestValidate:
    """Tests for catalog validation of free-text names."""

    def test_validate_names(self, client, auth_headers, catalog):
        response = client.post(
            "/api/v1/inventory/validate",
            headers=auth_headers,
            json={"ingredientNames": ["Tomatoes", "dragon fruit"]},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["recognized"] == [
            {
                "inputName": "Tomatoes",
                "matchedName": "tomato",
                "ingredientId": catalog["tomato"].id,
            }
        ]
        assert data["unrecognized"] == ["dragon fruit"]

    def test_validate_does_not_use_quota(self, client, db, auth_headers, catalog):
        client.post(
            "/api/v1/inventory/validate", headers=auth_headers, json={"ingredientNames": ["milk"]}
        )
        assert usage_count(db, auth_headers.user_id) == 0


class TestProcessInput:
    """Tests for the text and voice extraction endpoints."""

    def test_process_text(self, client, db, auth_headers, fake_adapter, catalog):
        set_quantity(client, auth_headers, catalog["onion"], 2)
        fake_adapter.result = ExtractionResult(add=["milk"], rm=["onion"])

        response = client.post(
            "/api/v1/inventory/process-text",
            headers=auth_headers,
            json={"text": "bought milk, used an onion"},
        )

        assert response.status_code == 200
        assert response.json() == {"add": ["milk"], "rm": ["onion"], "transcribedText": None}
        call = fake_adapter.calls[0]
        assert call["text"] == "bought milk, used an onion"
        assert call["current_ingredients"] == ["onion"]
        assert usage_count(db, auth_headers.user_id) == 1

    def test_no_ingredients_detected(self, client, db, auth_headers, fake_adapter):
        response = client.post(
            "/api/v1/inventory/process-text", headers=auth_headers, json={"text": "hello there"}
        )
        assert response.status_code == 422
        assert response.json()["error"] == "no_ingredients_detected"
        assert usage_count(db, auth_headers.user_id) == 1

    def test_text_too_long(self, client, auth_headers, fake_adapter):
        response = client.post(
            "/api/v1/inventory/process-text", headers=auth_headers, json={"text": "a" * 2001}
        )
        assert response.status_code == 400
        assert fake_adapter.calls == []

    def test_process_voice(self, client, db, auth_headers, fake_adapter):
        fake_adapter.result = ExtractionResult(add=["egg"])
        audio = base64.b64encode(b"fake-audio-bytes").decode()

        response = client.post(
            "/api/v1/inventory/process-voice",
            headers=auth_headers,
            json={"audioBase64": audio, "mimeType": "audio/mp4"},
        )

        assert response.status_code == 200
        assert response.json()["transcribedText"] == "transcribed words"
        call = fake_adapter.calls[0]
        assert call["audio"] == b"fake-audio-bytes"
        assert call["mime_type"] == "audio/mp4"
        assert usage_count(db, auth_headers.user_id) == 1

    def test_invalid_base64_audio(self, client, auth_headers, fake_adapter):
        response = client.post(
            "/api/v1/inventory/process-voice",
            headers=auth_headers,
            json={"audioBase64": "not base64!!"},
        )
        assert response.status_code == 400
        assert fake_adapter.calls == []

    def test_quota_is_checked_before_llm_work(
        self, client, db, auth_headers, fake_adapter, settings
    ):
        settings.daily_llm_limit = 1
        db.add(UsageLogEntry(user_id=auth_headers.user_id, endpoint="inventory/process-text"))
        db.commit()

        response = client.post(
            "/api/v1/inventory/process-text", headers=auth_headers, json={"text": "milk"}
        )

        assert response.status_code == 429
        assert response.json()["error"] == "quota_exceeded"
        assert fake_adapter.calls == []

    def test_admin_bypasses_quota(self, client, admin_headers, fake_adapter, settings):
        settings.daily_llm_limit = 0
        fake_adapter.result = ExtractionResult(add=["milk"])
        response = client.post(
            "/api/v1/inventory/process-text", headers=admin_headers, json={"text": "milk"}
        )
        assert response.status_code == 200

    def test_timeout_is_classified(self, client, db, auth_headers, fake_adapter):
        fake_adapter.error = TimeoutError()
        response = client.post(
            "/api/v1/inventory/process-text", headers=auth_headers, json={"text": "milk"}
        )
        assert response.status_code == 504
        assert response.json() == {
            "error": "provider_timeout",
            "detail": "Request timeout. Please try again.",
        }
        assert usage_count(db, auth_headers.user_id) == 0

    def test_network_error_is_classified(self, client, auth_headers, fake_adapter):
        fake_adapter.error = httpx.ConnectError("connection refused")
        response = client.post(
            "/api/v1/inventory/process-text", headers=auth_headers, json={"text": "milk"}
        )
        assert response.status_code == 503
        assert response.json()["error"] == "provider_network_error"
        assert "refused" not in response.json()["detail"]

    def test_schema_error_is_classified(self, client, auth_headers, fake_adapter):
        fake_adapter.error = ExtractionSchemaError("Invalid structure: Missing 'rm' field")
        response = client.post(
            "/api/v1/inventory/process-text", headers=auth_headers, json={"text": "milk"}
        )
        assert response.status_code == 500
        assert response.json()["error"] == "validation_schema_error"


class TestProposals:
    """Tests for building and applying inventory proposals."""

    def test_agent_proposal(self, client, db, auth_headers, fake_adapter, catalog):
        set_quantity(client, auth_headers, catalog["onion"], 2)
        fake_adapter.result = ExtractionResult(
            add=["milk", "eggs", "dragon fruit"], rm=["onion"]
        )

        response = client.post(
            "/api/v1/inventory/agent-proposal",
            headers=auth_headers,
            json={"input": "I bought milk, eggs and a dragon fruit, used an onion"},
        )

        assert response.status_code == 200
        proposal = response.json()["proposal"]
        changes = {c["ingredientName"]: c for c in proposal["recognized"]}
        assert list(changes) == ["milk", "egg", "onion"]
        assert changes["milk"]["previousQuantity"] == 0
        assert changes["milk"]["proposedQuantity"] == 3
        assert changes["egg"]["ingredientId"] == catalog["egg"].id
        assert changes["onion"]["previousQuantity"] == 2
        assert changes["onion"]["proposedQuantity"] == 1
        assert proposal["unrecognized"] == ["dragon fruit"]
        assert usage_count(db, auth_headers.user_id) == 1

    def test_agent_proposal_does_not_write_inventory(
        self, client, auth_headers, fake_adapter, catalog
    ):
        fake_adapter.result = ExtractionResult(add=["milk"])
        client.post(
            "/api/v1/inventory/agent-proposal", headers=auth_headers, json={"input": "milk"}
        )
        assert client.get("/api/v1/inventory", headers=auth_headers).json()["count"] == 0

    def test_agent_proposal_may_be_empty(self, client, auth_headers, fake_adapter, catalog):
        response = client.post(
            "/api/v1/inventory/agent-proposal", headers=auth_headers, json={"input": "hi"}
        )
        assert response.status_code == 200
        assert response.json()["proposal"] == {"recognized": [], "unrecognized": []}

    def test_agent_proposal_deplete_policy(
        self, client, auth_headers, fake_adapter, catalog, settings
    ):
        settings.removal_policy = "deplete"
        set_quantity(client, auth_headers, catalog["onion"], 3)
        fake_adapter.result = ExtractionResult(rm=["onion"])

        response = client.post(
            "/api/v1/inventory/agent-proposal", headers=auth_headers, json={"input": "no onions"}
        )
        assert response.json()["proposal"]["recognized"][0]["proposedQuantity"] == 0

    def test_agent_proposal_voice(self, client, auth_headers, fake_adapter, catalog):
        fake_adapter.result = ExtractionResult(add=["milk"])
        audio = base64.b64encode(b"voice").decode()
        response = client.post(
            "/api/v1/inventory/agent-proposal",
            headers=auth_headers,
            json={"audioBase64": audio},
        )
        assert response.status_code == 200
        assert response.json()["transcribedText"] == "transcribed words"

    def test_agent_proposal_requires_one_input(self, client, auth_headers, fake_adapter):
        response = client.post(
            "/api/v1/inventory/agent-proposal",
            headers=auth_headers,
            json={"input": "milk", "audioBase64": "dm9pY2U="},
        )
        assert response.status_code == 400
        assert fake_adapter.calls == []

    def test_propose_then_apply(self, client, db, auth_headers, fake_adapter, catalog):
        set_quantity(client, auth_headers, catalog["onion"], 2)
        fake_adapter.result = ExtractionResult(add=["milk", "dragon fruit"], rm=["onion"])
        proposal = client.post(
            "/api/v1/inventory/agent-proposal", headers=auth_headers, json={"input": "x"}
        ).json()["proposal"]

        response = client.post(
            "/api/v1/inventory/apply-proposal", headers=auth_headers, json={"proposal": proposal}
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "updated": 2, "unrecognizedCreated": 1}
        inventory = client.get("/api/v1/inventory", headers=auth_headers).json()["inventory"]
        levels = {item["name"]: item["quantityLevel"] for item in inventory}
        assert levels == {"milk": 3, "onion": 1, "dragon fruit": 3}
        assert db.query(UnrecognizedItem).count() == 1

    def test_apply_rejects_out_of_range_quantity(self, client, auth_headers, catalog):
        proposal = {
            "recognized": [
                {
                    "ingredientId": catalog["milk"].id,
                    "ingredientName": "milk",
                    "previousQuantity": 0,
                    "proposedQuantity": 4,
                }
            ],
            "unrecognized": [],
        }
        response = client.post(
            "/api/v1/inventory/apply-proposal", headers=auth_headers, json={"proposal": proposal}
        )
        assert response.status_code == 400

    def test_apply_does_not_use_quota(self, client, db, auth_headers, settings, catalog):
        settings.daily_llm_limit = 0
        response = client.post(
            "/api/v1/inventory/apply-proposal",
            headers=auth_headers,
            json={"proposal": {"recognized": [], "unrecognized": []}},
        )
        assert response.status_code == 200
        assert response.json()["updated"] == 0
