from datetime import date

from jobtracker.core.forms import ApplicationForm, is_valid_url, validate_form
from jobtracker.types import ApplicationRecord


def test_empty_company_and_title_are_reported_by_field() -> None:
    form = ApplicationForm(company_name="  ", job_title="")
    errors = validate_form(form)
    assert errors == {
        "companyName": "Company name is required",
        "jobTitle": "Job title is required",
    }


def test_invalid_url_is_reported_only_when_present() -> None:
    form = ApplicationForm(company_name="Acme", job_title="Engineer", job_post_url="not a url")
    assert validate_form(form) == {"jobPostUrl": "Please enter a valid URL"}

    form.job_post_url = ""
    assert validate_form(form) == {}


def test_url_shapes() -> None:
    assert is_valid_url("https://jobs.example.com/123")
    assert is_valid_url("mailto:recruiter@example.com")
    assert not is_valid_url("https://")
    assert not is_valid_url("jobs.example.com/123")
    assert not is_valid_url("http://exa mple.com")


def test_defaults_for_new_form() -> None:
    form = ApplicationForm()
    assert form.status == "Applied"
    assert form.date_applied == date.today().isoformat()
    assert set(form.to_payload()) == {
        "companyName",
        "jobTitle",
        "jobPostUrl",
        "status",
        "dateApplied",
        "followUpDate",
        "notes",
    }


def test_form_seeded_from_record_falls_back_to_defaults() -> None:
    record = ApplicationRecord(applicationId="a1", companyName="Acme", jobTitle="Engineer", notes=None)
    form = ApplicationForm.from_record(record)
    assert form.company_name == "Acme"
    assert form.status == "Applied"
    assert form.notes == ""
    assert form.date_applied == date.today().isoformat()


def test_status_outside_known_values_is_reported() -> None:
    form = ApplicationForm(company_name="Acme", job_title="Engineer", status="Bogus")
    assert validate_form(form) == {"status": "Please choose a valid status"}

    form.status = "Offer"
    assert validate_form(form) == {}
