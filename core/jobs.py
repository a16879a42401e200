"""
Job filtering and seeker matching over an already-fetched job list.

Everything here is pure: no I/O, no session access. Filters combine with AND
and an empty/unset criterion imposes no constraint.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from core.models import Application, ApplicationStatus, Job, User

# -------- duration buckets --------
HOURS_1_8 = "1-8 Hours"
HOURS_9_24 = "9-24 Hours"
HOURS_24_PLUS = "24+ Hours"
DAYS_1_3 = "1-3 Days"
DAYS_4_7 = "4-7 Days"
WEEK_PLUS = "1+ Week"
OTHER = "Other"

DURATION_BUCKETS: List[str] = [HOURS_1_8, HOURS_9_24, HOURS_24_PLUS, DAYS_1_3, DAYS_4_7, WEEK_PLUS]

# -------- pay ranges (upper bound inclusive, lower bound exclusive except the first) --------
PAY_0_500 = "₹0 - ₹500"
PAY_500_1000 = "₹500 - ₹1000"
PAY_1000_1500 = "₹1000 - ₹1500"
PAY_1500_PLUS = "₹1500+"

PAY_RANGES: List[str] = [PAY_0_500, PAY_500_1000, PAY_1000_1500, PAY_1500_PLUS]

_DURATION_RE = re.compile(r"^\s*(\d+)\s*(hours?|hrs?|days?)\b", re.IGNORECASE)


@dataclass(frozen=True)
class JobFilters:
    category: Optional[str] = None
    location: Optional[str] = None
    pay_range: Optional[str] = None
    duration: Optional[str] = None
    search_term: Optional[str] = None

    def is_empty(self) -> bool:
        return not any((self.category, self.location, self.pay_range, self.duration, self.search_term))

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> "JobFilters":
        """Build filters from query-string style keys; blank values mean "unset"."""

        def value(key: str) -> Optional[str]:
            raw = (params.get(key) or "").strip()
            return raw or None

        return cls(
            category=value("category"),
            location=value("location"),
            pay_range=value("pay_range"),
            duration=value("duration"),
            search_term=value("search"),
        )


def matches_search(job: Job, term: str) -> bool:
    needle = term.lower()
    return (
        needle in job.title.lower()
        or needle in job.description.lower()
        or needle in job.location.lower()
    )


def classify_duration(duration: str) -> str:
    """Bucket a free-text duration such as "8 Hours" or "10 Days"."""
    match = _DURATION_RE.match(duration or "")
    if not match:
        return OTHER
    amount = int(match.group(1))
    unit = match.group(2).lower()
    if amount < 1:
        return OTHER

    if unit.startswith("h"):
        if amount <= 8:
            return HOURS_1_8
        if amount <= 24:
            return HOURS_9_24
        return HOURS_24_PLUS

    if amount <= 3:
        return DAYS_1_3
    if amount <= 7:
        return DAYS_4_7
    return WEEK_PLUS


def classify_pay_range(payment: float) -> str:
    if payment <= 500:
        return PAY_0_500
    if payment <= 1000:
        return PAY_500_1000
    if payment <= 1500:
        return PAY_1000_1500
    return PAY_1500_PLUS


def _passes(job: Job, filters: JobFilters) -> bool:
    if filters.search_term and not matches_search(job, filters.search_term):
        return False
    if filters.category and job.category != filters.category:
        return False
    if filters.location and filters.location.lower() not in job.location.lower():
        return False
    if filters.duration and classify_duration(job.duration) != filters.duration:
        return False
    if filters.pay_range and classify_pay_range(job.payment) != filters.pay_range:
        return False
    return True


def filter_jobs(jobs: Iterable[Job], filters: JobFilters) -> List[Job]:
    return [job for job in jobs if _passes(job, filters)]


def is_relevant_to_seeker(job: Job, categories: Sequence[str], location: str) -> bool:
    """Category match OR location substring match; a seeker with neither sees everything."""
    location = (location or "").strip()
    if not categories and not location:
        return True
    if categories and job.category in categories:
        return True
    if location and location.lower() in job.location.lower():
        return True
    return False


def relevant_jobs(jobs: Iterable[Job], user: Optional[User]) -> List[Job]:
    if user is None:
        return list(jobs)
    return [job for job in jobs if is_relevant_to_seeker(job, user.work_categories, user.location)]


def available_categories(jobs: Iterable[Job]) -> List[str]:
    """Distinct categories in first-seen order."""
    return list(dict.fromkeys(job.category for job in jobs if job.category))


# -------- dashboard figures --------

def application_counts(applications: Iterable[Application]) -> Dict[str, int]:
    counts = {"total": 0, "pending": 0, "accepted": 0, "rejected": 0}
    for application in applications:
        counts["total"] += 1
        if application.status == ApplicationStatus.pending:
            counts["pending"] += 1
        elif application.status == ApplicationStatus.accepted:
            counts["accepted"] += 1
        elif application.status == ApplicationStatus.rejected:
            counts["rejected"] += 1
    return counts


def active_jobs(jobs: Iterable[Job]) -> List[Job]:
    return [job for job in jobs if job.status == "open"]


def pending_applicants(applicants: Iterable[Application]) -> List[Application]:
    return [a for a in applicants if a.status == ApplicationStatus.pending]


__all__ = [
    "DURATION_BUCKETS",
    "PAY_RANGES",
    "OTHER",
    "JobFilters",
    "matches_search",
    "classify_duration",
    "classify_pay_range",
    "filter_jobs",
    "is_relevant_to_seeker",
    "relevant_jobs",
    "available_categories",
    "application_counts",
    "active_jobs",
    "pending_applicants",
]
