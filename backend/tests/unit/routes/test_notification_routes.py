from fieldbook.models.notification import Notification

API = "/api/v1"


def _seed(unit_db, user_id: str, count: int) -> list[str]:
    rows = [
        Notification(recipient_id=user_id, title=f"Notice {i}", data={"type": "test"})
        for i in range(count)
    ]
    unit_db.add_all(rows)
    unit_db.commit()
    return [row.id for row in rows]


class TestNotificationInboxRoutes:
    def test_requires_authentication(self, client):
        response = client.get(f"{API}/notifications/me")
        assert response.status_code == 401

    def test_stream_requires_authentication(self, client):
        response = client.get(f"{API}/notifications/stream")
        assert response.status_code == 401

    def test_list_and_unread_count(self, client, unit_db, requester, stranger, headers_for):
        _seed(unit_db, requester.user_id, 3)
        _seed(unit_db, stranger.user_id, 1)

        listed = client.get(f"{API}/notifications/me", headers=headers_for(requester))
        assert listed.status_code == 200
        body = listed.json()
        assert body["total"] == 3
        assert all(item["is_read"] is False for item in body["notifications"])
        assert body["notifications"][0]["metadata"] == {"type": "test"}

        count = client.get(
            f"{API}/notifications/me/unread-count", headers=headers_for(requester)
        )
        assert count.json() == {"unread_count": 3}

    def test_mark_read_ignores_foreign_ids(
        self, client, unit_db, requester, stranger, headers_for
    ):
        mine = _seed(unit_db, requester.user_id, 2)
        theirs = _seed(unit_db, stranger.user_id, 1)

        response = client.patch(
            f"{API}/notifications/me/read",
            json={"ids": [mine[0], theirs[0]]},
            headers=headers_for(requester),
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "updated": 1}
        unread = client.get(
            f"{API}/notifications/me", params={"is_read": "false"}, headers=headers_for(requester)
        ).json()
        assert [item["id"] for item in unread["notifications"]] == [mine[1]]

    def test_mark_read_requires_ids(self, client, requester, headers_for):
        response = client.patch(
            f"{API}/notifications/me/read", json={"ids": []}, headers=headers_for(requester)
        )
        assert response.status_code == 422

    def test_mark_all_read(self, client, unit_db, requester, headers_for):
        _seed(unit_db, requester.user_id, 2)

        response = client.patch(
            f"{API}/notifications/me/read-all", headers=headers_for(requester)
        )

        assert response.json() == {"success": True, "updated": 2}
        count = client.get(
            f"{API}/notifications/me/unread-count", headers=headers_for(requester)
        )
        assert count.json()["unread_count"] == 0

    def test_create_notification(self, client, owner, requester, headers_for):
        response = client.post(
            f"{API}/notifications",
            json={"recipient_id": requester.user_id, "title": "Pitch closed for repairs"},
            headers=headers_for(owner),
        )

        assert response.status_code == 201
        assert response.json()["title"] == "Pitch closed for repairs"
        inbox = client.get(f"{API}/notifications/me", headers=headers_for(requester)).json()
        assert inbox["total"] == 1


class TestOperationalRoutes:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "ok"
        assert body["sse_connections"] == 0

    def test_metrics_exposition(self, client, requester, headers_for):
        client.get(f"{API}/notifications/me", headers=headers_for(requester))

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "fieldbook_service_operations_total" in response.text

    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_generated_and_in_problem(self, client):
        response = client.get(f"{API}/notifications/me")

        request_id = response.headers["X-Request-ID"]
        assert request_id
        assert response.json()["request_id"] == request_id
