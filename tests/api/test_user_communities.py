"""Tests for the caller's community membership listing."""

from fastapi import status

from huddle.models import Community, CommunityMember


def test_requires_authorization(client) -> None:
    response = client.get("/api/user/communities")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Unauthorized"}


def test_rejects_invalid_token(client) -> None:
    response = client.get("/api/user/communities", headers={"Authorization": "Bearer bad"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Invalid Token"}


def test_lists_flattened_communities(client, make_row, community, membership, alice, bob, auth_for) -> None:
    make_row(Community, name="Elsewhere", creator_id=alice.id)

    response = client.get("/api/user/communities", headers=auth_for(bob.id))
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "communities": [{"id": community.id, "name": "Night Owls", "image_url": None}]
    }


def test_membership_to_missing_community_is_skipped(client, make_row, bob, auth_for) -> None:
    make_row(CommunityMember, community_id="gone", profile_id=bob.id)
    response = client.get("/api/user/communities", headers=auth_for(bob.id))
    assert response.json() == {"communities": []}


def test_store_failure(client, engine, bob, auth_for) -> None:
    CommunityMember.__table__.drop(engine)
    response = client.get("/api/user/communities", headers=auth_for(bob.id))
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "Failed to fetch communities"}
