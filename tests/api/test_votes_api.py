# tests/api/test_votes_api.py
"""Tests for post and comment voting endpoints."""

from __future__ import annotations

import pytest
from fastapi import status


def _vote(client, post_id, vote_type, headers):
    return client.post(f"/api/posts/{post_id}/vote", json={"vote_type": vote_type}, headers=headers)


def test_upvote_toggle_and_switch(client, auth_headers, test_post) -> None:
    first = _vote(client, test_post.id, 1, auth_headers)
    assert first.status_code == status.HTTP_200_OK
    assert first.json() == {"message": "Vote recorded"}

    post = client.get(f"/api/posts/{test_post.id}").json()
    assert (post["upvotes"], post["downvotes"]) == (1, 0)

    assert _vote(client, test_post.id, -1, auth_headers).json() == {"message": "Vote updated"}
    post = client.get(f"/api/posts/{test_post.id}").json()
    assert (post["upvotes"], post["downvotes"]) == (0, 1)

    assert _vote(client, test_post.id, -1, auth_headers).json() == {"message": "Vote removed"}
    post = client.get(f"/api/posts/{test_post.id}").json()
    assert (post["upvotes"], post["downvotes"]) == (0, 0)


def test_votes_from_two_users(client, auth_headers, other_auth_headers, test_post) -> None:
    _vote(client, test_post.id, 1, auth_headers)
    _vote(client, test_post.id, 1, other_auth_headers)

    post = client.get(f"/api/posts/{test_post.id}").json()
    assert post["upvotes"] == 2


def test_my_vote(client, auth_headers, test_post) -> None:
    url = f"/api/posts/{test_post.id}/my-vote"
    assert client.get(url, headers=auth_headers).json() == {"direction": 0}

    _vote(client, test_post.id, -1, auth_headers)

    assert client.get(url, headers=auth_headers).json() == {"direction": -1}


def test_my_vote_requires_auth(client, test_post) -> None:
    response = client.get(f"/api/posts/{test_post.id}/my-vote")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.parametrize("vote_type", [0, 2, "up"])
def test_invalid_vote_type(client, auth_headers, test_post, vote_type) -> None:
    response = _vote(client, test_post.id, vote_type, auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_vote_requires_auth(client, test_post) -> None:
    response = _vote(client, test_post.id, 1, {})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_vote_on_missing_post(client, auth_headers) -> None:
    response = _vote(client, 987_654, 1, auth_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "Post not found"


def test_missing_post_reads(client, auth_headers) -> None:
    assert client.get("/api/posts/987654").status_code == status.HTTP_404_NOT_FOUND
    assert client.get("/api/posts/987654/comments").status_code == status.HTTP_404_NOT_FOUND
    assert client.get("/api/posts/987654/my-vote", headers=auth_headers).status_code == 404


def test_comment_upvote_and_downvote(client, auth_headers, test_post, test_comment) -> None:
    up = client.post(f"/api/comments/{test_comment.id}/upvote", headers=auth_headers)
    assert up.json() == {"message": "Vote recorded"}

    comments = client.get(f"/api/posts/{test_post.id}/comments").json()
    assert [(c["id"], c["upvotes"], c["downvotes"]) for c in comments] == [(test_comment.id, 1, 0)]

    down = client.post(f"/api/comments/{test_comment.id}/downvote", headers=auth_headers)
    assert down.json() == {"message": "Vote updated"}

    again = client.post(f"/api/comments/{test_comment.id}/downvote", headers=auth_headers)
    assert again.json() == {"message": "Vote removed"}

    comments = client.get(f"/api/posts/{test_post.id}/comments").json()
    assert (comments[0]["upvotes"], comments[0]["downvotes"]) == (0, 0)


def test_comment_vote_on_missing_comment(client, auth_headers) -> None:
    response = client.post("/api/comments/987654/upvote", headers=auth_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "Comment not found"
