from datetime import date, datetime, timedelta

from referral_portal.models import Job
from referral_portal.schemas.referral import JobRef, ReferralListItem, ReferrerRef
from referral_portal.services.referral_filters import filter_referrals, status_counts, summarize

_BASE = datetime(2025, 1, 6, 9, 0, 0)


def _item(idx, first, last, job_code, job_title, status, referrer="Priya Sharma", job_id=None):
    return ReferralListItem(
        id=f"r{idx}",
        candidate_first_name=first,
        candidate_last_name=last,
        candidate_full_name=f"{first} {last}",
        candidate_phone="555",
        candidate_email=f"{first.lower()}@example.com",
        candidate_dob=date(1990, 1, 1),
        how_know_candidate="Former colleague",
        current_status=status,
        created_at=_BASE + timedelta(hours=idx),
        updated_at=_BASE + timedelta(hours=idx),
        job=JobRef(id=job_id or job_code.lower(), job_code=job_code, title=job_title, department=None),
        referrer=ReferrerRef(id=f"e{idx}", name=referrer, employee_code=f"E{idx}"),
    )


ITEMS = [
    _item(1, "Jane", "Doe", "ENG-101", "Backend Engineer", "submitted"),
    _item(2, "Bengt", "Olsen", "DES-201", "Product Designer", "interview"),
    _item(3, "Maria", "Lopez", "OPS-301", "Site Reliability", "offer", referrer="Lena Engstrom"),
    _item(4, "Tom", "Baker", "FIN-401", "Accountant", "hired"),
    _item(5, "Ana", "Silva", "FIN-401", "Accountant", "rejected"),
]


def _ids(items):
    return [item.id for item in items]


def test_no_filters_returns_everything():
    assert _ids(filter_referrals(ITEMS, "", "all", "all")) == _ids(ITEMS)
    assert _ids(filter_referrals(ITEMS, "   ", None, "")) == _ids(ITEMS)


def test_search_matches_name_job_code_and_title():
    # "eng": job code ENG-101, title "Engineer", name "Bengt".
    assert _ids(filter_referrals(ITEMS, "eng", "all", "all")) == ["r1", "r2"]


def test_search_term_is_trimmed():
    assert _ids(filter_referrals(ITEMS, "  eng ", "all", "all")) == ["r1", "r2"]


def test_search_includes_referrer_only_for_hr():
    assert _ids(filter_referrals(ITEMS, "eng", "all", "all", include_referrer=True)) == ["r1", "r2", "r3"]


def test_search_is_case_insensitive_on_full_name():
    assert _ids(filter_referrals(ITEMS, "JANE DOE", "all", "all")) == ["r1"]


def test_status_and_job_filters_combine():
    assert _ids(filter_referrals(ITEMS, "", "hired", "all")) == ["r4"]
    assert _ids(filter_referrals(ITEMS, "", "all", "fin-401")) == ["r4", "r5"]
    assert _ids(filter_referrals(ITEMS, "", "rejected", "fin-401")) == ["r5"]
    assert _ids(filter_referrals(ITEMS, "silva", "hired", "fin-401")) == []


def test_status_counts():
    assert status_counts(ITEMS) == {"submitted": 1, "interview": 1, "offer": 1, "hired": 1, "rejected": 1}
    assert status_counts([]) == {}


def test_summary_cards():
    jobs = [
        Job(job_code="ENG-101", title="Backend Engineer", is_active=True),
        Job(job_code="OLD-001", title="Closed role", is_active=False),
    ]
    summary = summarize(ITEMS, jobs)
    assert summary.total_referrals == 5
    assert summary.active_jobs == 1
    assert summary.in_progress == 2
    assert summary.hired == 1
    assert [c.status for c in summary.status_counts] == [
        "submitted",
        "screening",
        "interview",
        "offer",
        "hired",
        "rejected",
    ]
    assert next(c for c in summary.status_counts if c.status == "screening").count == 0
