import pytest


@pytest.fixture()
def alice(make_user, auth_headers):
    user = make_user("alice@example.com", "Alice")
    return user.id, auth_headers(user.id)


@pytest.fixture()
def bob(make_user, auth_headers):
    user = make_user("bob@example.com", "Bob")
    return user.id, auth_headers(user.id)


def _create(client, headers, **fields):
    body = {"company": "Acme", "position": "Engineer", **fields}
    r = client.post("/api/jobs", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


def test_create_and_get_job(client, alice):
    alice_id, headers = alice
    job = _create(client, headers, status="interview", jobUrl="https://acme.test/1", notes="  call back  ")
    assert job["ownerId"] == alice_id
    assert job["status"] == "interview"
    assert job["jobUrl"] == "https://acme.test/1"
    assert job["notes"] == "call back"
    assert {"id", "createdAt", "updatedAt"} <= set(job)
    assert job["createdAt"].endswith(("Z", "+00:00"))
    assert job["updatedAt"].endswith(("Z", "+00:00"))

    r = client.get(f"/api/jobs/{job['id']}", headers=headers)
    assert r.status_code == 200
    assert r.json()["data"] == job


def test_owner_fields_in_body_are_ignored(client, alice, bob):
    alice_id, headers = alice
    bob_id, bob_headers = bob
    job = _create(client, headers, ownerId=bob_id, createdBy=bob_id)
    assert job["ownerId"] == alice_id

    r = client.put(f"/api/jobs/{job['id']}", json={"ownerId": bob_id, "position": "Lead"}, headers=headers)
    assert r.status_code == 200
    assert r.json()["data"]["ownerId"] == alice_id

    assert client.get("/api/jobs", headers=bob_headers).json()["totalJobs"] == 0


def test_other_user_gets_404_everywhere(client, alice, bob):
    _, headers = alice
    _, bob_headers = bob
    job = _create(client, headers)

    assert client.get(f"/api/jobs/{job['id']}", headers=bob_headers).status_code == 404
    assert client.put(f"/api/jobs/{job['id']}", json={"status": "offer"}, headers=bob_headers).status_code == 404
    r = client.delete(f"/api/jobs/{job['id']}", headers=bob_headers)
    assert r.status_code == 404
    assert "Acme" not in r.text

    assert client.get(f"/api/jobs/{job['id']}", headers=headers).json()["data"]["status"] == "applied"


def test_create_validation_error(client, alice):
    _, headers = alice
    r = client.post("/api/jobs", json={"company": " ", "status": "ghosted"}, headers=headers)
    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert set(body["errors"]) == {"company", "position", "status"}


def test_non_string_field_is_a_400(client, alice):
    _, headers = alice
    r = client.post("/api/jobs", json={"company": 42, "position": "Eng"}, headers=headers)
    assert r.status_code == 400
    assert "company" in r.json()["errors"]


def test_update_job(client, alice):
    _, headers = alice
    job = _create(client, headers, location="Berlin")

    r = client.put(f"/api/jobs/{job['id']}", json={"status": "offer"}, headers=headers)
    assert r.status_code == 200
    updated = r.json()["data"]
    assert updated["status"] == "offer"
    assert updated["location"] == "Berlin"
    assert updated["company"] == job["company"]

    empty = client.put(f"/api/jobs/{job['id']}", json={}, headers=headers)
    assert empty.status_code == 400

    bad = client.put(f"/api/jobs/{job['id']}", json={"company": ""}, headers=headers)
    assert bad.status_code == 400


def test_delete_job(client, alice):
    _, headers = alice
    job = _create(client, headers, company="ToDelete")
    r = client.delete(f"/api/jobs/{job['id']}", headers=headers)
    assert r.status_code == 200
    assert r.json()["data"] == {"id": job["id"], "company": "ToDelete"}
    assert client.get(f"/api/jobs/{job['id']}", headers=headers).status_code == 404
    assert client.delete(f"/api/jobs/{job['id']}", headers=headers).status_code == 404


def test_list_jobs_paging_shape(client, alice, bob):
    _, headers = alice
    _, bob_headers = bob
    for i in range(5):
        _create(client, headers, company=f"Company {i}")
    _create(client, bob_headers, company="Bob's")

    r = client.get("/api/jobs", params={"limit": 2, "page": 3, "sort": "company"}, headers=headers)
    assert r.status_code == 200
    body = r.json()
    assert body["totalJobs"] == 5
    assert body["numOfPages"] == 3
    assert body["currentPage"] == 3
    assert body["count"] == 1
    assert [j["company"] for j in body["data"]] == ["Company 4"]


def test_list_jobs_filters(client, alice):
    _, headers = alice
    _create(client, headers, company="Acme", status="rejected")
    _create(client, headers, company="Globex", location="Remote")

    r = client.get("/api/jobs", params={"status": "rejected"}, headers=headers)
    assert [j["company"] for j in r.json()["data"]] == ["Acme"]

    r = client.get("/api/jobs", params={"search": "remote"}, headers=headers)
    assert [j["company"] for j in r.json()["data"]] == ["Globex"]


def test_huge_page_returns_empty_data(client, alice):
    _, headers = alice
    _create(client, headers)
    r = client.get("/api/jobs", params={"page": 10**19}, headers=headers)
    assert r.status_code == 200
    body = r.json()
    assert body["data"] == []
    assert body["totalJobs"] == 1


def test_non_integer_page_is_a_400(client, alice):
    _, headers = alice
    r = client.get("/api/jobs", params={"page": "two"}, headers=headers)
    assert r.status_code == 400
    assert "page" in r.json()["errors"]


def test_status_options(client, alice):
    _, headers = alice
    r = client.get("/api/jobs/status-options", headers=headers)
    assert r.status_code == 200
    values = [option["value"] for option in r.json()["data"]]
    assert values == ["applied", "interview", "technical", "offer", "rejected", "accepted"]


def test_stats(client, alice, bob):
    _, headers = alice
    _, bob_headers = bob
    _create(client, headers)
    _create(client, headers, status="interview")
    _create(client, headers, status="interview")
    _create(client, bob_headers, status="accepted")

    r = client.get("/api/analytics/stats", headers=headers)
    assert r.status_code == 200
    assert r.json() == {
        "applied": 1,
        "interview": 2,
        "technical": 0,
        "offer": 0,
        "rejected": 0,
        "accepted": 0,
    }
