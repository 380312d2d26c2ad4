"""Unit tests for talenthr/schemas/common.py"""

from talenthr.schemas.common import supplied
from talenthr.schemas.recruitment import CandidateUpdate, JobUpdate


def test_supplied_keeps_only_sent_top_level_fields():
    body = JobUpdate.model_validate({"status": "published"})
    assert supplied(body) == {"status": "published"}


def test_supplied_keeps_nested_defaults():
    body = JobUpdate.model_validate({"salaryRange": {"min": 1000, "max": 2000}})
    assert supplied(body) == {
        "salary_range": {"min": 1000, "max": 2000, "currency": "USD"}
    }

    body = CandidateUpdate.model_validate({"expectedSalary": {"min": 5, "max": 9, "currency": "EUR"}})
    assert supplied(body)["expected_salary"]["currency"] == "EUR"


def test_supplied_keeps_explicit_null():
    body = JobUpdate.model_validate({"salaryRange": None, "location": ""})
    assert supplied(body) == {"salary_range": None, "location": ""}
