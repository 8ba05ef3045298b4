from datetime import datetime

import pytest

from applytrack import models
from applytrack.errors import NotFoundError, ValidationError
from applytrack.services import JobService, clean_job_fields


@pytest.fixture()
def users(make_user):
    return make_user("a@example.com", "Alice"), make_user("b@example.com", "Bob")


@pytest.fixture()
def sent():
    return []


@pytest.fixture()
def service(db_session, sent):
    return JobService(db_session, notify=lambda owner, event, payload: sent.append((owner, event, payload)))


def test_other_users_cannot_see_or_touch_a_job(service, users):
    alice, bob = users
    job = service.create(alice.id, {"company": "Acme", "position": "Eng"})

    with pytest.raises(NotFoundError):
        service.get(bob.id, job.id)
    with pytest.raises(NotFoundError):
        service.update(bob.id, job.id, {"status": "offer"})
    with pytest.raises(NotFoundError):
        service.delete(bob.id, job.id)

    assert service.list(bob.id).total_count == 0
    still_there = service.get(alice.id, job.id)
    assert still_there.status == models.JobStatus.APPLIED


def test_unknown_and_foreign_ids_look_the_same(service, users):
    alice, bob = users
    job = service.create(alice.id, {"company": "Acme", "position": "Eng"})
    with pytest.raises(NotFoundError) as foreign:
        service.get(bob.id, job.id)
    with pytest.raises(NotFoundError) as missing:
        service.get(bob.id, "does-not-exist")
    assert foreign.value.message == missing.value.message


def test_client_supplied_owner_is_ignored(service, users):
    alice, bob = users
    job = service.create(
        alice.id,
        {"company": "Acme", "position": "Eng", "ownerId": bob.id, "owner_id": bob.id, "createdBy": bob.id},
    )
    assert job.owner_id == alice.id

    service.update(alice.id, job.id, {"owner_id": bob.id, "company": "Acme Corp"})
    assert service.get(alice.id, job.id).owner_id == alice.id


def test_create_then_get_round_trip(service, users):
    alice, _ = users
    fields = {
        "company": "Acme",
        "position": "Backend Engineer",
        "status": "interview",
        "notes": "Referred by Sam",
        "salary": "120k",
        "location": "Remote",
        "contact": "sam@acme.test",
        "job_url": "https://acme.test/jobs/1",
    }
    created = service.create(alice.id, fields)
    fetched = service.get(alice.id, created.id)

    for name, value in fields.items():
        assert getattr(fetched, name) == value
    assert fetched.id == created.id
    assert fetched.created_at is not None
    assert fetched.updated_at is not None


def test_create_trims_and_defaults(service, users):
    alice, _ = users
    job = service.create(alice.id, {"company": "  Acme  ", "position": "\tEng\n", "notes": "x" * 1500})
    assert job.created_at == job.updated_at
    assert job.company == "Acme"
    assert job.position == "Eng"
    assert job.status == models.JobStatus.APPLIED
    assert len(job.notes) == 1000
    assert job.salary == ""


def test_create_lists_every_invalid_field(service, users):
    alice, _ = users
    with pytest.raises(ValidationError) as excinfo:
        service.create(alice.id, {"company": "   ", "status": "ghosted"})
    assert set(excinfo.value.errors) == {"company", "position", "status"}
    assert service.list(alice.id).total_count == 0


def test_company_longer_than_limit_is_rejected():
    with pytest.raises(ValidationError) as excinfo:
        clean_job_fields({"company": "A" * 101, "position": "Eng"})
    assert "company" in excinfo.value.errors


def test_update_requires_at_least_one_field(service, users):
    alice, _ = users
    job = service.create(alice.id, {"company": "Acme", "position": "Eng"})
    with pytest.raises(ValidationError):
        service.update(alice.id, job.id, {})
    with pytest.raises(ValidationError):
        service.update(alice.id, job.id, {"ownerId": "someone", "createdBy": "someone"})


def test_update_rejects_empty_company(service, users):
    alice, _ = users
    job = service.create(alice.id, {"company": "Acme", "position": "Eng"})
    with pytest.raises(ValidationError) as excinfo:
        service.update(alice.id, job.id, {"company": "  "})
    assert excinfo.value.errors == {"company": "Company name cannot be empty"}


def test_update_status_only_changes_status_and_bumps_updated_at(service, users, db_session):
    alice, _ = users
    job = service.create(
        alice.id,
        {"company": "Acme", "position": "Eng", "notes": "first call", "location": "Berlin"},
    )
    job.updated_at = datetime(2020, 1, 1)
    db_session.commit()
    before = {c: getattr(job, c) for c in ("company", "position", "notes", "salary", "location", "contact", "job_url", "owner_id", "created_at")}

    updated = service.update(alice.id, job.id, {"status": "offer"})

    assert updated.status == models.JobStatus.OFFER
    after = {c: getattr(updated, c) for c in before}
    assert after == before
    assert models.as_utc(updated.updated_at) > models.as_utc(datetime(2020, 1, 1))


def test_delete_returns_id_and_company(service, users):
    alice, _ = users
    job = service.create(alice.id, {"company": "Acme", "position": "Eng"})
    job_id = job.id
    assert service.delete(alice.id, job_id) == {"id": job_id, "company": "Acme"}
    with pytest.raises(NotFoundError):
        service.get(alice.id, job_id)


def test_pagination_covers_every_record_once(service, users):
    alice, bob = users
    created = {service.create(alice.id, {"company": f"Company {i}", "position": "Eng"}).id for i in range(5)}
    service.create(bob.id, {"company": "Not Alice's", "position": "Eng"})

    first = service.list(alice.id, limit=2, page=1, sort="company")
    assert first.total_count == 5
    assert first.page_count == 3

    seen = []
    for page in range(1, 4):
        seen.extend(service.list(alice.id, limit=2, page=page, sort="company").items)
    assert [job.company for job in seen] == [f"Company {i}" for i in range(5)]
    assert {job.id for job in seen} == created
    assert len(seen) == 5


def test_list_clamps_paging_and_ignores_unknown_sort(service, users):
    alice, _ = users
    for i in range(3):
        service.create(alice.id, {"company": f"C{i}", "position": "Eng"})

    result = service.list(alice.id, page=0, limit=1000, sort="password")
    assert result.page == 1
    assert result.page_count == 1
    assert len(result.items) == 3

    tiny = service.list(alice.id, limit=0)
    assert len(tiny.items) == 1
    assert tiny.page_count == 3


def test_page_past_the_end_is_empty(service, users):
    alice, _ = users
    service.create(alice.id, {"company": "Acme", "position": "Eng"})

    for page in (2, 10**19):
        result = service.list(alice.id, page=page)
        assert result.items == []
        assert result.total_count == 1
        assert result.page == page


def test_list_filters_by_status_and_search(service, users):
    alice, _ = users
    service.create(alice.id, {"company": "Acme", "position": "Eng", "status": "offer"})
    service.create(alice.id, {"company": "Globex", "position": "Data Scientist", "location": "Remote"})
    service.create(alice.id, {"company": "Initech", "position": "Eng", "notes": "100% remote"})

    assert [j.company for j in service.list(alice.id, status="offer").items] == ["Acme"]
    # unknown status values are ignored
    assert service.list(alice.id, status="ghosted").total_count == 3

    remote = service.list(alice.id, search="REMOTE", sort="company")
    assert [j.company for j in remote.items] == ["Globex", "Initech"]

    assert [j.company for j in service.list(alice.id, search="100%").items] == ["Initech"]
    assert service.list(alice.id, search="data sci").total_count == 1


def test_list_sorts_descending(service, users):
    alice, _ = users
    for name in ("b", "c", "a"):
        service.create(alice.id, {"company": name, "position": "Eng"})
    assert [j.company for j in service.list(alice.id, sort="-company").items] == ["c", "b", "a"]


def test_mutations_notify_owner(service, users, sent):
    alice, _ = users
    job = service.create(alice.id, {"company": "Acme", "position": "Eng"})
    job_id = job.id
    service.update(alice.id, job_id, {"status": "technical"})
    service.delete(alice.id, job_id)

    assert [(owner, event) for owner, event, _ in sent] == [
        (alice.id, "new-job"),
        (alice.id, "job-changed"),
        (alice.id, "job-removed"),
    ]
    assert sent[0][2]["ownerId"] == alice.id
    assert sent[1][2]["status"] == "technical"
    assert sent[2][2] == {"id": job_id, "company": "Acme"}


def test_failed_notification_does_not_fail_the_mutation(db_session, users):
    alice, _ = users

    def broken(owner, event, payload):
        raise RuntimeError("socket layer down")

    job = JobService(db_session, notify=broken).create(alice.id, {"company": "Acme", "position": "Eng"})
    assert JobService(db_session).get(alice.id, job.id).company == "Acme"


def test_no_notification_when_mutation_fails(service, users, sent):
    alice, bob = users
    job = service.create(alice.id, {"company": "Acme", "position": "Eng"})
    sent.clear()
    with pytest.raises(NotFoundError):
        service.update(bob.id, job.id, {"status": "offer"})
    with pytest.raises(ValidationError):
        service.create(alice.id, {})
    assert sent == []


def test_stats_counts_every_status(service, users):
    alice, bob = users
    service.create(alice.id, {"company": "A", "position": "Eng"})
    service.create(alice.id, {"company": "B", "position": "Eng", "status": "offer"})
    service.create(bob.id, {"company": "C", "position": "Eng", "status": "offer"})

    assert service.stats(alice.id) == {
        "applied": 1,
        "interview": 0,
        "technical": 0,
        "offer": 1,
        "rejected": 0,
        "accepted": 0,
    }
