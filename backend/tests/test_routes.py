import json

import httpx
import pytest
from conftest import GENERATED_RECIPE, chat_response, embedding_response, make_settings
from fastapi.testclient import TestClient

from recipe_api.main import create_app

QUERY = "I want a Mexican vegan dish with tomatoes and without onions"


@pytest.fixture
def client(ctx):
    with TestClient(create_app(context=ctx)) as c:
        yield c


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok", "db": "ok"}


def test_resolve_exact(client, seed) -> None:
    rec = seed("Vegan Tacos", cuisines=["mexican"], diets=["vegan"], ingredients=[{"name": "tomatoes"}])

    r = client.post("/v1/recipes/resolve", json={"query": QUERY})

    assert r.status_code == 200
    body = r.json()
    assert body["match_type"] == "exact"
    assert body["recipe"]["id"] == rec.id
    assert "embedding" not in body["recipe"]
    assert "anon_id" in r.cookies


def test_resolve_close(client, seed) -> None:
    seed("Tomato Soup", ingredients=[{"name": "tomatoes"}])
    body = client.post("/v1/recipes/resolve", json={"query": QUERY}).json()
    assert body["match_type"] == "close"
    assert [r["title"] for r in body["recipes"]] == ["Tomato Soup"]


def test_resolve_generated_uses_profile(client, upstream) -> None:
    upstream.chat = [chat_response(json.dumps(GENERATED_RECIPE))]
    upstream.embeddings = [embedding_response([[0.1, 0.2]])]
    client.put("/v1/profile", json={"allergies": ["Peanuts"], "diet": "vegan"})

    r = client.post(
        "/v1/recipes/resolve",
        json={"query": QUERY, "promptInstructions": "Keep it short."},
    )

    assert r.status_code == 200
    body = r.json()
    assert body["match_type"] == "generated"
    assert body["candidate"]["title"] == "Smoky Black Bean Tacos"
    assert body["candidate"]["approved"] is False

    prompt = upstream.body(upstream.calls("/chat/completions")[0])["messages"][0]["content"]
    assert "Keep it short." in prompt
    assert " - allergens: peanuts" in prompt
    assert " - dietary_restrictions: vegan" in prompt


def test_resolve_empty_query_is_400(client, upstream) -> None:
    r = client.post("/v1/recipes/resolve", json={"query": ""})
    assert r.status_code == 400
    assert upstream.requests == []


def test_resolve_upstream_failure_hides_details(client, upstream) -> None:
    upstream.chat = [httpx.Response(500, json={"error": {"message": "secret upstream detail"}})]

    r = client.post("/v1/recipes/resolve", json={"query": QUERY})

    assert r.status_code == 502
    assert "secret" not in r.text
    assert r.json()["detail"] == "recipe generation is temporarily unavailable"


def test_resolve_without_generation_config_is_503(client, ctx) -> None:
    ctx.generation.settings = ctx.settings.model_copy(update={"GENERATION_API_KEY": None})
    r = client.post("/v1/recipes/resolve", json={"query": QUERY})
    assert r.status_code == 503


def test_recipe_crud_and_approve(client) -> None:
    r = client.post(
        "/v1/recipes",
        json={"title": "Greek Salad", "cuisines": ["Greek"], "steps": ["Chop", "Toss"], "approved": True},
    )
    assert r.status_code == 201
    rec = r.json()
    assert rec["approved"] is False
    assert rec["cuisines"] == ["greek"]
    assert [s["order"] for s in rec["steps"]] == [1, 2]

    assert client.get(f"/v1/recipes/{rec['id']}").json()["title"] == "Greek Salad"

    r = client.put(f"/v1/recipes/{rec['id']}", json={"servings": 2, "tags": ["Fresh"]})
    assert r.status_code == 200
    assert r.json()["servings"] == 2
    assert r.json()["tags"] == ["fresh"]

    assert client.post(f"/v1/recipes/{rec['id']}/approve").json()["approved"] is True
    listed = client.get("/v1/recipes", params={"approved": True}).json()
    assert [x["id"] for x in listed["recipes"]] == [rec["id"]]


def test_recipe_validation_and_missing(client) -> None:
    assert client.post("/v1/recipes", json={"title": "  "}).status_code == 400
    assert client.get("/v1/recipes/missing").status_code == 404
    assert client.put("/v1/recipes/missing", json={"title": "x"}).status_code == 404
    assert client.post("/v1/recipes/missing/approve").status_code == 404


def test_update_without_fields_is_400(client, seed) -> None:
    rec = seed("Tacos")
    assert client.put(f"/v1/recipes/{rec.id}", json={}).status_code == 400


def test_profile_lifecycle(client) -> None:
    assert client.get("/v1/profile").json()["profile"] == {}

    r = client.put("/v1/profile", json={"name": "Kim", "allergies": ["Milk", "milk"], "max_cook_minutes": 30})
    assert r.status_code == 200
    assert r.json()["profile"]["allergies"] == ["milk"]

    assert client.get("/v1/profile").json()["profile"]["max_cook_minutes"] == 30

    assert client.delete("/v1/profile").status_code == 200
    assert client.get("/v1/profile").json()["profile"] == {}
    assert client.delete("/v1/profile").status_code == 404


def test_profile_rejects_bad_cook_minutes(client) -> None:
    assert client.put("/v1/profile", json={"max_cook_minutes": 0}).status_code == 422


def test_store_outage_is_503(client, fake_db) -> None:
    fake_db["recipes"].fail = True
    assert client.post("/v1/recipes", json={"title": "x"}).status_code == 503
    assert client.get("/v1/recipes").status_code == 503
    assert client.post("/v1/recipes/resolve", json={"query": QUERY}).status_code == 503


def test_health_before_startup_is_degraded() -> None:
    # with 블록 없이 → startup 미실행, 컨텍스트 없음
    client = TestClient(create_app(settings=make_settings()))
    assert client.get("/health").json() == {"status": "degraded", "db": "unavailable"}
    assert client.get("/v1/recipes").status_code == 503


def test_profile_email_taken_is_409(client, fake_db) -> None:
    fake_db["user_profiles"].unique = ("anon_id", "email")
    assert client.put("/v1/profile", json={"email": "cook@example.com"}).status_code == 200

    client.cookies.clear()
    r = client.put("/v1/profile", json={"email": "Cook@Example.com"})
    assert r.status_code == 409
    assert r.json()["detail"] == "email is already used by another profile"


def test_search(client, fake_db, seed, upstream) -> None:
    upstream.embeddings = [embedding_response([[1.0, 0.0]])]
    near = seed("Bean Chili")
    fake_db["recipes"].docs[near.id]["embedding"] = [0.9, 0.1]
    titled = seed("Chili Dogs")

    r = client.post("/v1/recipes/search", json={"query": "chili", "limit": 5})

    assert r.status_code == 200
    results = r.json()["results"]
    assert [x["recipe"]["id"] for x in results] == [near.id, titled.id]
    assert [x["text_match"] for x in results] == [True, True]
    assert "embedding" not in results[0]["recipe"]


def test_search_validation(client, upstream) -> None:
    assert client.post("/v1/recipes/search", json={"query": "  "}).status_code == 400
    assert client.post("/v1/recipes/search", json={"query": "soup", "limit": 0}).status_code == 422
    upstream.embeddings = [httpx.Response(500, text="secret upstream detail")]
    r = client.post("/v1/recipes/search", json={"query": "soup"})
    assert r.status_code == 502
    assert "secret" not in r.text


def test_modify_with_ai(client, fake_db, seed, upstream) -> None:
    rec = seed("Smoky Black Bean Tacos", ingredients=[{"name": "black beans"}])
    upstream.chat = [chat_response(json.dumps({**GENERATED_RECIPE, "title": "Keto Bean Tacos"}))]
    upstream.embeddings = [embedding_response([[0.1, 0.2]])]

    r = client.post(
        f"/v1/recipes/{rec.id}/modify-with-ai",
        json={"modificationType": "keto", "additionalNotes": "no tortillas"},
    )

    assert r.status_code == 201
    body = r.json()
    assert body["original_id"] == rec.id
    assert body["recipe"]["title"] == "Keto Bean Tacos"
    assert body["recipe"]["source"] == "modified"
    assert body["recipe"]["parent_id"] == rec.id
    assert body["recipe"]["approved"] is False
    assert client.get(f"/v1/recipes/{rec.id}").json()["title"] == "Smoky Black Bean Tacos"
    assert len(fake_db["recipes"].docs) == 2


def test_modify_with_ai_errors(client, seed, upstream) -> None:
    assert client.post("/v1/recipes/missing/modify-with-ai", json={"modificationType": "keto"}).status_code == 404
    rec = seed("Tacos")
    assert client.post(f"/v1/recipes/{rec.id}/modify-with-ai", json={"modificationType": " "}).status_code == 400
    assert client.post(f"/v1/recipes/{rec.id}/modify-with-ai", json={}).status_code == 422
    assert upstream.requests == []
