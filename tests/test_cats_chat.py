"""
HTTP tests for cats, AI recommendations and conversation history
"""
CAT = {
    "name": "Miso",
    "goals": "Lose weight",
    "issues_faced": "Overeating",
    "activity_level": "Low",
    "gender": "Female",
    "age": 6,
    "breed": "British Shorthair",
    "weight": 6.2,
    "target_weight": 5.0,
    "required_progress": "Slow",
    "check_in_period": "Weekly",
    "training_days": "Mon,Thu",
    "items": "Laser pointer",
}


async def test_create_cat_stores_recommendations(client, make_user, recommender):
    _, headers = await make_user()

    response = await client.post("/api/cats", json=CAT, headers=headers)

    assert response.status_code == 201
    cat = response.json()
    assert (cat["food_bowls"], cat["treats"], cat["playtime"]) == (2.0, 1.5, 30)
    assert recommender.profiles[0]["breed"] == "British Shorthair"
    assert "user_id" not in recommender.profiles[0]


async def test_create_cat_survives_llm_failure(client, make_user, recommender):
    _, headers = await make_user()
    recommender.fail = True

    response = await client.post("/api/cats", json=CAT, headers=headers)

    assert response.status_code == 201
    assert response.json()["food_bowls"] is None
    assert len((await client.get("/api/cats", headers=headers)).json()) == 1


async def test_cat_validation_messages(client, make_user):
    _, headers = await make_user()
    body = {**CAT, "gender": "Unknown", "weight": -1}
    del body["goals"]

    errors = (await client.post("/api/cats", json=body, headers=headers)).json()["errors"]

    assert "Goals are required" in errors
    assert "Gender must be either Male or Female" in errors
    assert "Weight must be a positive number" in errors


async def test_list_cats_empty(client, make_user):
    _, headers = await make_user()
    response = await client.get("/api/cats", headers=headers)
    assert response.status_code == 404
    assert response.json() == {"message": "No cats found for this user."}


async def test_update_recomputes_only_on_relevant_change(client, make_user, recommender):
    _, headers = await make_user()
    cat = (await client.post("/api/cats", json=CAT, headers=headers)).json()

    await client.put(f"/api/cats/{cat['id']}", json={"name": "Miso II"}, headers=headers)
    assert len(recommender.profiles) == 1

    response = await client.put(f"/api/cats/{cat['id']}", json={"weight": 5.8}, headers=headers)
    assert response.status_code == 200
    assert response.json()["weight"] == 5.8
    assert len(recommender.profiles) == 2


async def test_update_and_delete_foreign_cat(client, make_user):
    _, owner = await make_user()
    _, other = await make_user()
    cat = (await client.post("/api/cats", json=CAT, headers=owner)).json()

    assert (await client.put(f"/api/cats/{cat['id']}", json={"age": 7}, headers=other)).status_code == 403
    assert (await client.delete(f"/api/cats/{cat['id']}", headers=other)).status_code == 403
    assert (await client.delete("/api/cats/9999", headers=owner)).status_code == 404

    deleted = await client.delete(f"/api/cats/{cat['id']}", headers=owner)
    assert deleted.json() == {"message": "Cat deleted successfully"}


async def test_openai_chat(client, make_user, recommender):
    _, headers = await make_user()
    cat = (await client.post("/api/cats", json=CAT, headers=headers)).json()

    response = await client.post(
        "/api/openai/chat",
        json={"catId": cat["id"], "messages": [{"role": "user", "content": "Is she too heavy?"}], "language": "fr"},
        headers=headers,
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Reply in fr"}
    cat_details, messages, language = recommender.chats[0]
    assert cat_details["name"] == "Miso"
    assert messages == [{"role": "user", "content": "Is she too heavy?"}]


async def test_openai_chat_unknown_cat_and_empty_messages(client, make_user):
    _, headers = await make_user()

    unknown = await client.post(
        "/api/openai/chat", json={"catId": 42, "messages": [{"role": "user", "content": "hi"}]}, headers=headers
    )
    empty = await client.post("/api/openai/chat", json={"catId": 42, "messages": []}, headers=headers)

    assert unknown.status_code == 404
    assert unknown.json() == {"message": "Cat not found"}
    assert empty.status_code == 400
    assert "Messages must be a non-empty array" in empty.json()["errors"]


async def test_openai_recommendations_failure_is_500(client, make_user, recommender):
    _, headers = await make_user()
    recommender.fail = True
    response = await client.post("/api/openai/recommendations", json=CAT, headers=headers)
    assert response.status_code == 500
    assert response.json() == {"message": "Failed to get AI recommendations"}


async def test_conversation_lifecycle(client, make_user):
    _, headers = await make_user()

    started = await client.post("/api/chat/conversation", headers=headers)
    assert started.status_code == 201
    conversation_id = started.json()["conversation_id"]

    for role, content in (("user", "My cat sneezes"), ("assistant", "Since when?")):
        added = await client.post(
            "/api/chat", json={"conversation_id": conversation_id, "role": role, "content": content}, headers=headers
        )
        assert added.status_code == 201

    history = (await client.get("/api/chat", headers=headers)).json()
    assert history[0]["conversation_id"] == conversation_id
    assert [m["role"] for m in history[0]["messages"]] == ["user", "assistant"]

    deleted = await client.delete(f"/api/chat/conversation/{conversation_id}", headers=headers)
    assert deleted.status_code == 200
    assert (await client.get("/api/chat", headers=headers)).json() == []


async def test_messages_on_foreign_conversation(client, make_user):
    _, owner = await make_user()
    _, other = await make_user()
    conversation_id = (await client.post("/api/chat/conversation", headers=owner)).json()["conversation_id"]

    added = await client.post(
        "/api/chat", json={"conversation_id": conversation_id, "role": "user", "content": "hi"}, headers=other
    )
    deleted = await client.delete(f"/api/chat/conversation/{conversation_id}", headers=other)

    assert added.status_code == 404
    assert added.json() == {"error": "Conversation not found"}
    assert deleted.status_code == 403
