"""Tests for the candidate and post owner endpoints."""

from app_lifecycle.core.database import APPLICATIONS, DECLINED_APPLICATIONS, POSTS
from app_lifecycle.core.security import create_access_token
from tests.conftest import OTHER_TEACHER_ID, POST_CODE, TEACHER_ID


def test_apply(test_client, store, post, teacher_headers, events):
    response = test_client.post("/applications/apply", json={"postId": POST_CODE}, headers=teacher_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["application"]["status"] == "pending"
    assert body["application"]["candidate_id"] == TEACHER_ID
    assert body["application"]["post_id"] == str(post["_id"])
    assert store.all(POSTS)[0]["applicants"] == [TEACHER_ID]
    events.publish_transition.assert_awaited()


def test_apply_twice_returns_conflict(test_client, store, post, teacher_headers):
    test_client.post("/applications/apply", json={"post_id": POST_CODE}, headers=teacher_headers)

    response = test_client.post("/applications/apply", json={"post_id": POST_CODE}, headers=teacher_headers)

    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "You have already applied to this post."
    assert body["code"] == "ERR_2003"
    assert body["path"] == "/applications/apply"
    assert len(store.all(APPLICATIONS)) == 1


def test_apply_to_unknown_post(test_client, teacher_headers):
    response = test_client.post("/applications/apply", json={"post_id": "P-000000-00"}, headers=teacher_headers)

    assert response.status_code == 404
    assert response.json()["error"] == "Post not found"


def test_apply_requires_candidate_role(test_client, post, guardian_headers):
    response = test_client.post("/applications/apply", json={"post_id": POST_CODE}, headers=guardian_headers)

    assert response.status_code == 403
    assert response.json()["error_type"] == "InsufficientPermissionsError"
    assert response.json()["code"] == "ERR_1004"


def test_apply_requires_token(test_client, post):
    response = test_client.post("/applications/apply", json={"post_id": POST_CODE})

    assert response.status_code == 401
    assert response.json()["code"] == "ERR_1003"


def test_expired_token(test_client, post):
    token = create_access_token({"id": TEACHER_ID, "role": "teacher"}, expires_minutes=-5)

    response = test_client.post(
        "/applications/apply", json={"post_id": POST_CODE}, headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 401
    assert response.json()["error"] == "Token has expired"


def test_garbage_token(test_client, post):
    response = test_client.post(
        "/applications/apply", json={"post_id": POST_CODE}, headers={"Authorization": "Bearer garbage"}
    )

    assert response.status_code == 401
    assert response.json()["error_type"] == "InvalidTokenError"
    assert response.json()["code"] == "ERR_8001"


def test_apply_missing_post_id(test_client, teacher_headers):
    response = test_client.post("/applications/apply", json={}, headers=teacher_headers)

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "ERR_1001"
    assert body["details"][0]["field"] == "post_id"


def test_list_my_applications(test_client, post, seed_application, teacher_headers):
    seed_application(post, TEACHER_ID)
    seed_application(post, OTHER_TEACHER_ID, minutes=1)

    response = test_client.get("/applications/mine", headers=teacher_headers)

    assert response.status_code == 200
    body = response.json()
    assert [a["candidate_id"] for a in body["applications"]] == [TEACHER_ID]
    assert body["applied_post_ids"] == [str(post["_id"])]


def test_approve_through_status_endpoint(test_client, store, post, seed_application, guardian_headers):
    winner = seed_application(post, TEACHER_ID)
    seed_application(post, OTHER_TEACHER_ID, minutes=1)

    response = test_client.patch(
        "/applications/status",
        json={"applicationId": str(winner["_id"]), "status": "approved"},
        headers=guardian_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "approved"
    assert body["auto_declined_count"] == 1
    assert body["application_id"] == str(winner["_id"])
    assert len(store.all(DECLINED_APPLICATIONS)) == 1


def test_status_endpoint_rejects_unknown_status(test_client, post, seed_application, guardian_headers):
    application = seed_application(post, TEACHER_ID)

    response = test_client.patch(
        "/applications/status",
        json={"application_id": str(application["_id"]), "status": "withdrawn"},
        headers=guardian_headers,
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid status value"


def test_status_endpoint_forbidden_for_candidates(test_client, post, seed_application, teacher_headers):
    application = seed_application(post, TEACHER_ID)

    response = test_client.patch(
        "/applications/status",
        json={"application_id": str(application["_id"]), "status": "approved"},
        headers=teacher_headers,
    )

    assert response.status_code == 403


def test_request_withdrawal(test_client, store, post, seed_application, teacher_headers):
    application = seed_application(post, TEACHER_ID, status="approved")

    response = test_client.post(
        "/applications/request-withdrawal",
        json={"applicationId": str(application["_id"]), "withdrawalNote": "Relocating"},
        headers=teacher_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["application"]["status"] == "withdrawal-requested"
    assert body["application"]["status_before_withdrawal"] == "approved"
    assert body["application"]["withdrawal_note"] == "Relocating"


def test_request_withdrawal_twice(test_client, post, seed_application, teacher_headers):
    application = seed_application(post, TEACHER_ID)
    payload = {"application_id": str(application["_id"])}
    test_client.post("/applications/request-withdrawal", json=payload, headers=teacher_headers)

    response = test_client.post("/applications/request-withdrawal", json=payload, headers=teacher_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "Withdrawal request already pending"


def test_request_withdrawal_of_other_candidate(test_client, post, seed_application, other_teacher_headers):
    application = seed_application(post, TEACHER_ID)

    response = test_client.post(
        "/applications/request-withdrawal",
        json={"application_id": str(application["_id"])},
        headers=other_teacher_headers,
    )

    assert response.status_code == 403
    assert response.json()["error"] == "Unauthorized to withdraw this application"


def test_request_withdrawal_note_too_long(test_client, post, seed_application, teacher_headers):
    application = seed_application(post, TEACHER_ID)

    response = test_client.post(
        "/applications/request-withdrawal",
        json={"application_id": str(application["_id"]), "withdrawal_note": "x" * 501},
        headers=teacher_headers,
    )

    assert response.status_code == 400


def test_list_post_applications_by_code(test_client, post, seed_application, guardian_headers):
    seed_application(post, TEACHER_ID, minutes=2)
    seed_application(post, OTHER_TEACHER_ID, minutes=1)

    response = test_client.get(f"/posts/{POST_CODE}/applications", headers=guardian_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 2
    assert [a["candidate_id"] for a in body["applications"]] == [OTHER_TEACHER_ID, TEACHER_ID]


def test_declined_applications_for_candidate_and_owner(
    test_client, post, seed_application, guardian_headers, other_teacher_headers, teacher_headers
):
    winner = seed_application(post, TEACHER_ID)
    seed_application(post, OTHER_TEACHER_ID, minutes=1)
    test_client.patch(
        "/applications/status",
        json={"application_id": str(winner["_id"]), "status": "approved"},
        headers=guardian_headers,
    )

    own = test_client.get("/applications/declined", headers=other_teacher_headers).json()
    winner_view = test_client.get("/applications/declined", headers=teacher_headers).json()
    owner_view = test_client.get(
        "/applications/declined", params={"post_ref": POST_CODE}, headers=guardian_headers
    ).json()

    assert own["count"] == 1
    assert own["declined_applications"][0]["auto_declined"] is True
    assert f"[LINK:{POST_CODE}:" in own["declined_applications"][0]["decline_reason"]
    assert winner_view["count"] == 0
    assert owner_view["count"] == 1
