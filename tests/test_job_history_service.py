"""Tests for saved job applications and their ownership checks."""

from __future__ import annotations

from datetime import datetime

import pytest

from upfolio.core.errors import NotFoundAppError, NotOwnerAppError, ValidationAppError
from upfolio.models import JobApplication
from upfolio.schemas.job_history import JobApplicationCreate
from upfolio.services.account_service import AccountService
from upfolio.services.job_history_service import JobApplicationService


def _payload(**overrides) -> JobApplicationCreate:
    fields = {
        "job_title": "Backend Engineer",
        "company_name": "Acme",
        "job_description": "Build Python services.",
        "resume_source": "published",
        "resume_version": 2,
        "resume_snapshot": {"personal_info": {"name": "Ada"}},
        "cover_letter": "Dear hiring manager",
    }
    fields.update(overrides)
    return JobApplicationCreate(**fields)


@pytest.fixture
def service(db) -> JobApplicationService:
    return JobApplicationService(db)


@pytest.fixture
def owner(make_account):
    return make_account("owner")


@pytest.fixture
def stranger(make_account):
    return make_account("stranger")


class TestSave:
    def test_save_and_read_back(self, service, owner) -> None:
        saved = service.save(owner.id, _payload(job_url="https://jobs.example.com/1"))

        loaded = service.get(saved.id, owner.id)
        assert loaded.job_url == "https://jobs.example.com/1"
        assert loaded.resume_snapshot == {"personal_info": {"name": "Ada"}}
        assert loaded.has_cover_letter is True
        assert loaded.has_tailored_resume is False

    def test_edited_document_alone_is_enough(self, service, owner) -> None:
        saved = service.save(owner.id, _payload(cover_letter=None, tailored_resume_edited="# Edited"))
        assert saved.has_tailored_resume is True

    @pytest.mark.parametrize("blank", [None, "", "   "])
    def test_nothing_to_save(self, service, owner, blank) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            service.save(owner.id, _payload(cover_letter=blank))
        assert exc_info.value.code == "nothing_to_save"

    def test_unknown_account(self, service) -> None:
        with pytest.raises(NotFoundAppError) as exc_info:
            service.save(12345, _payload())
        assert exc_info.value.code == "account_not_found"

    def test_uploaded_resume_has_no_version(self, service, owner) -> None:
        saved = service.save(owner.id, _payload(resume_source="upload", resume_version=None))
        assert (saved.resume_source, saved.resume_version) == ("upload", None)


class TestList:
    def test_newest_first_with_total(self, db, service, owner, stranger) -> None:
        ids = [service.save(owner.id, _payload(job_title=f"Role {i}")).id for i in range(3)]
        service.save(stranger.id, _payload())
        for day, application_id in enumerate(ids, start=1):
            db.get(JobApplication, application_id).created_at = datetime(2024, 1, day)
        db.commit()

        items, total = service.list_applications(owner.id, limit=2)

        assert total == 3
        assert [item.id for item in items] == [ids[2], ids[1]]

        items, total = service.list_applications(owner.id, limit=2, offset=2)
        assert [item.id for item in items] == [ids[0]]

    def test_empty_history(self, service, owner) -> None:
        assert service.list_applications(owner.id) == ([], 0)

    @pytest.mark.parametrize(
        ("kwargs", "code"),
        [
            ({"limit": 0}, "invalid_limit"),
            ({"limit": 101}, "invalid_limit"),
            ({"offset": -1}, "invalid_offset"),
        ],
    )
    def test_paging_bounds(self, service, owner, kwargs, code) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            service.list_applications(owner.id, **kwargs)
        assert exc_info.value.code == code


class TestOwnership:
    @pytest.mark.parametrize("operation", ["get", "delete"])
    def test_non_owner_rejected(self, service, owner, stranger, operation) -> None:
        saved = service.save(owner.id, _payload())

        with pytest.raises(NotOwnerAppError) as exc_info:
            getattr(service, operation)(saved.id, stranger.id)

        assert exc_info.value.code == "not_owner"
        assert service.get(saved.id, owner.id).id == saved.id

    @pytest.mark.parametrize("operation", ["get", "delete"])
    def test_unknown_application(self, service, owner, operation) -> None:
        with pytest.raises(NotFoundAppError) as exc_info:
            getattr(service, operation)(999, owner.id)
        assert exc_info.value.code == "application_not_found"

    def test_delete_then_delete_again(self, service, owner) -> None:
        saved = service.save(owner.id, _payload())
        service.delete(saved.id, owner.id)

        with pytest.raises(NotFoundAppError):
            service.delete(saved.id, owner.id)

    def test_account_deletion_removes_history(self, db, service, owner) -> None:
        saved = service.save(owner.id, _payload())

        AccountService(db).delete(owner.id)

        db.expire_all()
        assert db.get(JobApplication, saved.id) is None
