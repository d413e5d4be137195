"""API tests for recipes, plans, shopping lists and categories."""

import pytest

pytestmark = pytest.mark.api

HEADERS = {"X-User-Id": "alice"}
DAY = "2024-03-04"


@pytest.fixture
def seeded(client, pancakes_text, scones_text):
    """Client with two recipes and a plan of pancakes twice and scones once."""
    client.put("/api/v1/recipes/pancakes", json={"text": pancakes_text}, headers=HEADERS)
    client.put("/api/v1/recipes/scones", json={"text": scones_text}, headers=HEADERS)
    client.put(
        f"/api/v1/plans/{DAY}",
        json={"recipes": {"pancakes": 2, "scones": 1}},
        headers=HEADERS,
    )
    return client


def items_named(data, name):
    return [item for item in data["items"] if item["name"] == name]


class TestRecipeEndpoints:
    """Tests for /api/v1/recipes."""

    def test_save_and_get(self, client, pancakes_text):
        response = client.put(
            "/api/v1/recipes/pancakes", json={"text": pancakes_text}, headers=HEADERS
        )
        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Pancakes"
        assert [i["name"] for i in data["ingredients"]] == ["flour", "sugar", "eggs"]
        assert data["ingredients"][0]["quantity"] == {
            "amount": "1",
            "unit": "cup",
            "display": "1 cup",
        }

        response = client.get("/api/v1/recipes/pancakes", headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["text"] == pancakes_text

    def test_line_errors_are_reported(self, client):
        response = client.put(
            "/api/v1/recipes/soup",
            json={"text": "title: Soup\n1 cup broth\nsalt\n"},
            headers=HEADERS,
        )
        assert response.status_code == 200
        errors = response.json()["errors"]
        assert len(errors) == 1
        assert errors[0]["line_number"] == 3
        assert errors[0]["kind"] == "MissingQuantity"

    def test_untitled_recipe_rejected(self, client):
        response = client.put("/api/v1/recipes/x", json={"text": "   \n"}, headers=HEADERS)
        assert response.status_code == 422

    def test_list_and_delete(self, client, pancakes_text):
        client.put("/api/v1/recipes/pancakes", json={"text": pancakes_text}, headers=HEADERS)

        listing = client.get("/api/v1/recipes", headers=HEADERS).json()
        assert listing == {"recipes": [{"id": "pancakes", "title": "Pancakes"}], "total": 1}

        assert client.delete("/api/v1/recipes/pancakes", headers=HEADERS).status_code == 204
        assert client.get("/api/v1/recipes/pancakes", headers=HEADERS).status_code == 404
        assert client.delete("/api/v1/recipes/pancakes", headers=HEADERS).status_code == 404

    def test_recipes_are_per_user(self, client, pancakes_text):
        client.put("/api/v1/recipes/pancakes", json={"text": pancakes_text}, headers=HEADERS)
        response = client.get("/api/v1/recipes", headers={"X-User-Id": "bob"})
        assert response.json()["total"] == 0


class TestPlanEndpoints:
    """Tests for /api/v1/plans."""

    def test_save_and_fetch(self, seeded):
        response = seeded.get(f"/api/v1/plans/{DAY}", headers=HEADERS)
        assert response.status_code == 200
        assert response.json() == {"plan_date": DAY, "recipes": {"pancakes": 2, "scones": 1}}

    def test_latest(self, seeded):
        seeded.put("/api/v1/plans/2024-03-11", json={"recipes": {"scones": 3}}, headers=HEADERS)
        response = seeded.get("/api/v1/plans/latest", headers=HEADERS)
        assert response.json()["plan_date"] == "2024-03-11"

    def test_list_since(self, seeded):
        seeded.put("/api/v1/plans/2024-03-11", json={"recipes": {"scones": 3}}, headers=HEADERS)
        response = seeded.get("/api/v1/plans", params={"since": DAY}, headers=HEADERS)
        assert [p["plan_date"] for p in response.json()["plans"]] == ["2024-03-11"]

    def test_negative_count_rejected(self, client):
        response = client.put(
            f"/api/v1/plans/{DAY}", json={"recipes": {"pancakes": -1}}, headers=HEADERS
        )
        assert response.status_code == 422

    def test_missing_plan(self, client):
        assert client.get("/api/v1/plans/latest", headers=HEADERS).status_code == 404
        assert client.delete(f"/api/v1/plans/{DAY}", headers=HEADERS).status_code == 404

    def test_delete(self, seeded):
        assert seeded.delete(f"/api/v1/plans/{DAY}", headers=HEADERS).status_code == 204
        assert seeded.get(f"/api/v1/plans/{DAY}", headers=HEADERS).status_code == 404


class TestShoppingListEndpoints:
    """Tests for /api/v1/shopping-list."""

    def test_latest_plan_list(self, seeded):
        response = seeded.get("/api/v1/shopping-list", headers=HEADERS)
        assert response.status_code == 200

        data = response.json()
        assert data["plan_date"] == DAY
        flour = items_named(data, "flour")[0]
        assert flour["quantity"]["display"] == "2 1/2 cup"
        assert flour["category"] == "Misc"
        assert flour["origin"] == "derived"
        assert items_named(data, "sugar")[0]["quantity"]["display"] == "4 tbsp"
        assert list(data["items_by_category"]) == ["Misc"]

    def test_overrides(self, seeded):
        seeded.post(
            f"/api/v1/shopping-list/{DAY}/filtered",
            json={"name": "sugar", "measure_type": "volume"},
            headers=HEADERS,
        )
        response = seeded.post(
            f"/api/v1/shopping-list/{DAY}/modified",
            json={"name": "flour", "measure_type": "volume", "quantity": "3 cup"},
            headers=HEADERS,
        )
        assert response.status_code == 201
        seeded.post(
            f"/api/v1/shopping-list/{DAY}/extras",
            json={"name": "paper towels", "quantity": "1"},
            headers=HEADERS,
        )

        data = seeded.get(
            "/api/v1/shopping-list", params={"plan_date": DAY}, headers=HEADERS
        ).json()

        assert items_named(data, "sugar") == []
        flour = items_named(data, "flour")[0]
        assert flour["quantity"]["display"] == "3 cup"
        assert flour["origin"] == "modified"
        towels = items_named(data, "paper towels")[0]
        assert towels["quantity"] == {"amount": "1", "unit": "count", "display": "1"}
        assert towels["category"] == "Misc"
        assert towels["origin"] == "extra"

    def test_invalid_override_quantity(self, seeded):
        response = seeded.post(
            f"/api/v1/shopping-list/{DAY}/modified",
            json={"name": "flour", "measure_type": "volume", "quantity": "lots"},
            headers=HEADERS,
        )
        assert response.status_code == 422

    @pytest.mark.parametrize(
        "path,body",
        [
            ("filtered", {"name": "sugar", "measure_type": "volume"}),
            ("modified", {"name": "flour", "measure_type": "volume", "quantity": "3 cup"}),
            ("extras", {"name": "paper towels"}),
        ],
    )
    def test_override_without_plan(self, seeded, path, body):
        response = seeded.post(f"/api/v1/shopping-list/2024-03-11/{path}", json=body, headers=HEADERS)
        assert response.status_code == 404

    def test_categories_and_staples(self, seeded):
        seeded.put(
            "/api/v1/categories",
            json={"text": "Baking: flour|sugar\nDairy: eggs|milk\n"},
            headers=HEADERS,
        )
        seeded.put(
            "/api/v1/shopping-list/staples",
            json={"text": "title: Staples\n1 milk\n"},
            headers=HEADERS,
        )

        data = seeded.get("/api/v1/shopping-list", headers=HEADERS).json()

        assert [(i["category"], i["name"]) for i in data["items"]] == [
            ("Baking", "flour"),
            ("Baking", "sugar"),
            ("Dairy", "eggs"),
            ("Dairy", "milk"),
        ]

    def test_unknown_recipe_in_plan(self, seeded):
        seeded.put(f"/api/v1/plans/{DAY}", json={"recipes": {"waffles": 1}}, headers=HEADERS)
        response = seeded.get("/api/v1/shopping-list", headers=HEADERS)
        assert response.status_code == 422
        assert "waffles" in response.json()["detail"]

    def test_no_plan(self, client):
        assert client.get("/api/v1/shopping-list", headers=HEADERS).status_code == 404


class TestCategoryEndpoints:
    """Tests for /api/v1/categories."""

    def test_single_mapping(self, client):
        response = client.post(
            "/api/v1/categories",
            json={"ingredient_name": " Flour ", "category_name": "Baking"},
            headers=HEADERS,
        )
        assert response.status_code == 201
        assert response.json() == {"ingredient_name": "flour", "category_name": "Baking"}

        listing = client.get("/api/v1/categories", headers=HEADERS).json()
        assert listing["total"] == 1

    def test_malformed_file(self, client):
        response = client.put(
            "/api/v1/categories", json={"text": "no colon here"}, headers=HEADERS
        )
        assert response.status_code == 422
        assert response.json()["detail"]["line_number"] == 1
