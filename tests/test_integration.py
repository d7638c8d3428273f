# tests/test_integration.py
"""End-to-end flow across registration, federated sign-in and voting."""

from __future__ import annotations

from fastapi import status


def test_register_link_and_vote_flow(client, google_verifier, test_post) -> None:
    registered = client.post(
        "/api/register",
        json={"username": "alice", "email": "a@x.com", "password": "secret1"},
    )
    assert registered.status_code == status.HTTP_201_CREATED
    alice_id = registered.json()["user"]["id"]

    wrong = client.post("/api/login", json={"email": "a@x.com", "password": "nope"})
    assert wrong.status_code == status.HTTP_401_UNAUTHORIZED

    google_verifier.add("g-token", subject_id="g-1", email="a@x.com")
    linked = client.post("/api/auth/google", json={"token": "g-token"})
    assert linked.status_code == status.HTTP_200_OK
    assert linked.json()["user"]["id"] == alice_id
    headers = {"Authorization": f"Bearer {linked.json()['token']}"}

    vote_url = f"/api/posts/{test_post.id}/vote"
    assert client.post(vote_url, json={"vote_type": 1}, headers=headers).json() == {
        "message": "Vote recorded"
    }
    assert client.post(vote_url, json={"vote_type": 1}, headers=headers).json() == {
        "message": "Vote removed"
    }
    assert client.get(f"/api/posts/{test_post.id}").json()["upvotes"] == 0


def test_two_bobs_get_distinct_usernames(client, google_verifier, apple_verifier) -> None:
    google_verifier.add("t1", subject_id="g-bob", email="bob@gmail.example")
    apple_verifier.add("t2", subject_id="a-bob", email="bob@icloud.example")

    first = client.post("/api/auth/google", json={"token": "t1"}).json()["user"]
    second = client.post("/api/auth/apple", json={"token": "t2"}).json()["user"]

    assert (first["username"], second["username"]) == ("bob", "bob1")
    assert first["id"] != second["id"]
