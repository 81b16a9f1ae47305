"""Tests for domain models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from jobalerts.domain.models import AlertCriteria, Job, JobAlert, MatchedJob, User

from tests.helpers import make_alert, make_job

NOW = datetime(2025, 11, 3, 9, 0, tzinfo=timezone.utc)


class TestUser:
    def test_display_name(self):
        assert User(id=1, first_name="Rudo", email="rudo@example.com").display_name == "Rudo"
        assert User(id=1, email="rudo@example.com").display_name == "rudo"
        assert User(id=1).display_name == "there"


class TestJob:
    def test_location_joins_city_and_province(self):
        assert make_job(1, location_city="Gweru", location_province="Midlands").location == "Gweru Midlands"
        assert make_job(1, location_city=None, location_province=None).location == ""

    def test_status_values(self):
        assert make_job(1).is_active
        assert not make_job(1, status="closed").is_active
        with pytest.raises(ValidationError):
            make_job(1, status="archived")

    def test_naive_datetimes_become_utc(self):
        job = make_job(1, created_at=datetime(2025, 11, 1, 10, 0))
        assert job.created_at.tzinfo == timezone.utc

    def test_default_currency(self):
        assert Job(id=1, title="Locum", position="Pharmacist").salary_currency == "ZWL"


class TestAlertCriteria:
    def test_empty_by_default(self):
        assert AlertCriteria().is_empty

    def test_values_are_stripped_and_deduplicated(self):
        criteria = AlertCriteria(locations=[" Harare ", "Harare", "", "Bulawayo"])
        assert criteria.locations == ["Harare", "Bulawayo"]
        assert not criteria.is_empty

    def test_salary_bound_alone_is_not_empty(self):
        assert not AlertCriteria(salary_min=0).is_empty

    def test_salary_range_order(self):
        with pytest.raises(ValidationError, match="salary_min"):
            AlertCriteria(salary_min=2000, salary_max=1000)

    def test_negative_salary_rejected(self):
        with pytest.raises(ValidationError):
            AlertCriteria(salary_min=-1)


class TestJobAlertValidation:
    def test_defaults(self):
        alert = JobAlert(user_id=1, name="Any job")

        assert alert.frequency == "daily"
        assert alert.digest_time == "09:00"
        assert alert.notification_method == "email"
        assert alert.is_active
        assert alert.matching_jobs == []
        assert alert.total_matches == 0

    def test_digest_time_is_normalized(self):
        assert make_alert(digest_time="9:05").digest_time == "09:05"
        assert make_alert(digest_time="").digest_time == "09:00"

    def test_invalid_digest_time(self):
        with pytest.raises(ValidationError):
            make_alert(digest_time="25:00")

    def test_digest_day_is_normalized(self):
        assert make_alert(frequency="weekly", digest_day="monday").digest_day == "Monday"

    def test_invalid_digest_day(self):
        with pytest.raises(ValidationError, match="digest_day"):
            make_alert(frequency="weekly", digest_day="Funday")

    def test_weekly_without_day_loads(self):
        assert make_alert(frequency="weekly").digest_day is None

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            make_alert(name="   ")

    def test_unknown_frequency_rejected(self):
        with pytest.raises(ValidationError):
            make_alert(frequency="hourly")


class TestJobAlertMatches:
    def test_new_matches_excludes_recorded_jobs(self):
        alert = make_alert(matching_jobs=[MatchedJob(job_id=1, matched_at=NOW)])
        jobs = [make_job(3), make_job(1), make_job(2)]

        assert [job.id for job in alert.new_matches(jobs)] == [3, 2]

    def test_new_matches_ignores_duplicates_in_input(self):
        alert = make_alert()
        assert [job.id for job in alert.new_matches([make_job(1), make_job(1)])] == [1]

    def test_record_matches_for_digest(self):
        alert = make_alert(frequency="daily")

        added = alert.record_matches([make_job(1), make_job(2)], NOW, notified=False)

        assert added == 2
        assert alert.total_matches == 2
        assert alert.last_job_matched == NOW
        assert alert.total_notifications_sent == 0
        assert all(not entry.notification_sent for entry in alert.matching_jobs)
        assert all(entry.sent_at is None for entry in alert.matching_jobs)

    def test_record_matches_for_instant(self):
        alert = make_alert(frequency="instant")

        alert.record_matches([make_job(1), make_job(2)], NOW, notified=True)

        assert alert.total_notifications_sent == 2
        assert all(entry.notification_sent for entry in alert.matching_jobs)
        assert all(entry.sent_at == NOW for entry in alert.matching_jobs)

    def test_record_matches_never_duplicates(self):
        alert = make_alert()
        alert.record_matches([make_job(1)], NOW, notified=True)
        later = NOW + timedelta(hours=1)

        added = alert.record_matches([make_job(1), make_job(2)], later, notified=True)

        assert added == 1
        assert [entry.job_id for entry in alert.matching_jobs] == [1, 2]
        assert alert.matching_jobs[0].matched_at == NOW
        assert alert.total_matches == 2
        assert alert.total_notifications_sent == 2

    def test_record_nothing_keeps_last_matched(self):
        alert = make_alert()
        assert alert.record_matches([], NOW, notified=False) == 0
        assert alert.last_job_matched is None

    def test_unsent_matches(self):
        alert = make_alert(
            matching_jobs=[
                MatchedJob(job_id=1, matched_at=NOW, notification_sent=True, sent_at=NOW),
                MatchedJob(job_id=2, matched_at=NOW),
            ]
        )
        assert [entry.job_id for entry in alert.unsent_matches] == [2]

    def test_mark_sent_delivered(self):
        alert = make_alert(frequency="daily")
        alert.record_matches([make_job(1), make_job(2)], NOW, notified=False)
        sent_at = NOW + timedelta(hours=1)

        flipped = alert.mark_sent([1, 2, 99], sent_at)

        assert flipped == 2
        assert alert.unsent_matches == []
        assert alert.last_digest_sent == sent_at
        assert alert.total_notifications_sent == 2
        assert alert.total_matches == 2

    def test_mark_sent_undelivered_leaves_counters(self):
        alert = make_alert(frequency="daily")
        alert.record_matches([make_job(1)], NOW, notified=False)

        assert alert.mark_sent([1], NOW, delivered=False) == 1
        assert alert.last_digest_sent is None
        assert alert.total_notifications_sent == 0

    def test_mark_sent_skips_already_sent_entries(self):
        alert = make_alert(frequency="daily")
        alert.record_matches([make_job(1)], NOW, notified=False)
        alert.mark_sent([1], NOW)

        assert alert.mark_sent([1], NOW + timedelta(days=1)) == 0
        assert alert.matching_jobs[0].sent_at == NOW
        assert alert.total_notifications_sent == 1
