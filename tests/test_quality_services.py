from datetime import UTC, datetime, timedelta

import pytest

from marketplace.errors import NotFoundError, ValidationError
from marketplace.models.appointment import AppointmentStatus
from marketplace.models.complaint import Complaint, ComplaintCategory
from marketplace.models.quality import QualityPeriod, QualityScore
from marketplace.models.review import Review
from marketplace.services.quality import quality_recommendations, quality_reports, quality_scoring
from marketplace.services.quality.scoring import serialize_score

REFERENCE = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)
IN_WINDOW = datetime(2026, 3, 10, 10, 0, tzinfo=UTC)
BEFORE_WINDOW = datetime(2026, 2, 20, 10, 0, tzinfo=UTC)


def _add_review(db_session, appointment, rating, created_at=IN_WINDOW, is_visible=True):
    review = Review(
        user_id=appointment.user_id,
        provider_id=appointment.provider_id,
        appointment_id=appointment.id,
        rating=rating,
        comment="Solid work, arrived on time.",
        is_visible=is_visible,
        created_at=created_at,
    )
    db_session.add(review)
    db_session.commit()
    return review


def _add_complaint(db_session, appointment, created_at=IN_WINDOW):
    complaint = Complaint(
        user_id=appointment.user_id,
        provider_id=appointment.provider_id,
        appointment_id=appointment.id,
        category=ComplaintCategory.service_quality,
        title="Left a mess",
        description="The technician left debris in the kitchen.",
        created_at=created_at,
    )
    db_session.add(complaint)
    db_session.commit()
    return complaint


@pytest.fixture()
def scored_month(db_session, make_appointment):
    """Ten March bookings: eight completed, five visible reviews, one complaint."""
    appointments = []
    for index in range(10):
        status = AppointmentStatus.completed if index < 8 else AppointmentStatus.cancelled
        appointments.append(
            make_appointment(
                status=status,
                created_at=IN_WINDOW,
                responded_at=IN_WINDOW + timedelta(hours=3),
            )
        )
    for appointment, rating in zip(appointments, [5, 4, 4, 4, 4]):
        _add_review(db_session, appointment, rating)
    _add_review(db_session, appointments[5], 1, is_visible=False)
    _add_complaint(db_session, appointments[9])

    # Outside the March window; must not count.
    old = make_appointment(status=AppointmentStatus.cancelled, created_at=BEFORE_WINDOW)
    _add_complaint(db_session, old, created_at=BEFORE_WINDOW)
    return appointments


class TestCalculateAndSave:
    def test_worked_example(self, db_session, provider, scored_month):
        score = quality_scoring.calculate_and_save(db_session, str(provider.id), "monthly", REFERENCE)
        data = serialize_score(score)

        assert data["total_appointments"] == 10
        assert data["completed_appointments"] == 8
        assert data["total_reviews"] == 5
        assert data["total_complaints"] == 1
        assert data["review_rating"] == pytest.approx(4.2)
        assert data["appointment_completion_rate"] == pytest.approx(80.0)
        assert data["response_speed"] == pytest.approx(3.0)
        assert data["complaint_rate"] == pytest.approx(10.0)
        assert data["sqi"] == pytest.approx(84.1)
        assert data["classification"] == "good"
        assert data["period"] == "monthly"
        assert data["period_start"] == datetime(2026, 3, 1, tzinfo=UTC)
        assert data["period_end"] == datetime(2026, 4, 1, tzinfo=UTC)
        assert data["is_active"] is True

    def test_no_activity_scores_neutral_response(self, db_session, provider):
        score = quality_scoring.calculate_and_save(db_session, str(provider.id), QualityPeriod.monthly, REFERENCE)
        assert float(score.sqi) == pytest.approx(20.0)
        assert float(score.response_speed) == pytest.approx(12.0)
        assert score.total_appointments == 0

    def test_recalculation_keeps_one_active_row(self, db_session, provider, scored_month):
        first = quality_scoring.calculate_and_save(db_session, str(provider.id), "monthly", REFERENCE)
        second = quality_scoring.calculate_and_save(db_session, str(provider.id), "monthly", REFERENCE)
        db_session.refresh(first)

        active = (
            db_session.query(QualityScore)
            .filter(
                QualityScore.provider_id == provider.id,
                QualityScore.period == QualityPeriod.monthly,
                QualityScore.is_active.is_(True),
            )
            .all()
        )
        assert [row.id for row in active] == [second.id]
        assert first.is_active is False

    def test_other_periods_stay_active(self, db_session, provider):
        monthly = quality_scoring.calculate_and_save(db_session, str(provider.id), "monthly", REFERENCE)
        quality_scoring.calculate_and_save(db_session, str(provider.id), "weekly", REFERENCE)
        db_session.refresh(monthly)
        assert monthly.is_active is True

    def test_unknown_provider(self, db_session):
        with pytest.raises(NotFoundError) as exc:
            quality_scoring.calculate_and_save(
                db_session, "00000000-0000-0000-0000-000000000000", "monthly", REFERENCE
            )
        assert exc.value.detail == "Service provider not found"

    def test_invalid_period(self, db_session, provider):
        with pytest.raises(ValidationError):
            quality_scoring.calculate_and_save(db_session, str(provider.id), "hourly", REFERENCE)


class TestQueries:
    def test_get_current_matches_window(self, db_session, provider):
        score = quality_scoring.calculate_and_save(db_session, str(provider.id), "monthly", REFERENCE)
        current = quality_scoring.get_current(db_session, str(provider.id), "monthly", REFERENCE)
        assert current is not None and current.id == score.id

        april = datetime(2026, 4, 2, tzinfo=UTC)
        assert quality_scoring.get_current(db_session, str(provider.id), "monthly", april) is None

    def test_history_is_newest_first(self, db_session, provider):
        quality_scoring.calculate_and_save(db_session, str(provider.id), "monthly", REFERENCE)
        quality_scoring.calculate_and_save(db_session, str(provider.id), "monthly", REFERENCE)
        latest = quality_scoring.calculate_and_save(db_session, str(provider.id), "monthly", REFERENCE)

        history = quality_scoring.history(db_session, str(provider.id), "monthly", limit=2)
        assert len(history) == 2
        assert history[0].id == latest.id

    def test_list_filters_by_sqi(self, db_session, provider, other_provider, scored_month):
        quality_scoring.calculate_and_save(db_session, str(provider.id), "monthly", REFERENCE)
        quality_scoring.calculate_and_save(db_session, str(other_provider.id), "monthly", REFERENCE)

        assert quality_scoring.count(db_session, period="monthly") == 2
        strong = quality_scoring.list(db_session, period="monthly", min_sqi=50)
        assert [row.provider_id for row in strong] == [provider.id]
        weak = quality_scoring.list(db_session, period="monthly", max_sqi=50)
        assert [row.provider_id for row in weak] == [other_provider.id]


class TestRecommendations:
    def test_worked_example_rules(self, db_session, provider, scored_month):
        quality_scoring.calculate_and_save(db_session, str(provider.id), "monthly", REFERENCE)
        result = quality_recommendations.for_provider(db_session, str(provider.id), "monthly", REFERENCE)

        categories = [item["category"] for item in result["recommendations"]]
        assert categories == ["completion_rate", "complaint_rate"]
        assert result["summary"] == {"total": 2, "high_priority": 2, "medium_priority": 0, "low_priority": 0}
        assert result["current_score"]["sqi"] == pytest.approx(84.1)
        completion = result["recommendations"][0]
        assert completion["current_value"] == pytest.approx(80.0)
        assert completion["target_value"] == 90.0
        assert completion["actions"]

    def test_empty_provider_triggers_every_rule(self, db_session, provider):
        quality_scoring.calculate_and_save(db_session, str(provider.id), "monthly", REFERENCE)
        result = quality_recommendations.for_provider(db_session, str(provider.id), reference=REFERENCE)
        categories = [item["category"] for item in result["recommendations"]]
        # Zero complaints and a 12h response: complaint rule stays quiet.
        assert categories == ["review_rating", "completion_rate", "response_speed", "overall_quality"]
        assert result["summary"]["medium_priority"] == 1

    def test_missing_score(self, db_session, provider):
        with pytest.raises(NotFoundError) as exc:
            quality_recommendations.for_provider(db_session, str(provider.id), "monthly", REFERENCE)
        assert exc.value.detail == "No quality score found for this provider"

    def test_previous_window_score_is_not_current(self, db_session, provider, scored_month):
        quality_scoring.calculate_and_save(db_session, str(provider.id), "monthly", REFERENCE)
        april = datetime(2026, 4, 10, tzinfo=UTC)

        assert quality_scoring.get_current(db_session, str(provider.id), "monthly", april) is None
        with pytest.raises(NotFoundError):
            quality_recommendations.for_provider(db_session, str(provider.id), "monthly", april)


class TestReports:
    def test_benchmarks_without_scores(self, db_session):
        result = quality_reports.benchmarks(db_session, "quarterly")
        assert result["period"] == "quarterly"
        assert result["overall"]["provider_count"] == 0
        assert result["overall"]["average_sqi"] == 0.0
        assert result["overall"]["median_sqi"] == 0.0
        assert result["category"] is None
        assert result["all_categories"] == []

    def test_benchmarks_with_category(self, db_session, provider, other_provider, category, scored_month):
        quality_scoring.calculate_and_save(db_session, str(provider.id), "monthly", REFERENCE)
        quality_scoring.calculate_and_save(db_session, str(other_provider.id), "monthly", REFERENCE)

        result = quality_reports.benchmarks(db_session, "monthly", category.slug)
        overall = result["overall"]
        assert overall["provider_count"] == 2
        assert overall["average_sqi"] == pytest.approx((84.1 + 20.0) / 2, abs=0.01)
        assert overall["median_sqi"] == pytest.approx(52.05)
        assert result["category"]["category_slug"] == category.slug
        assert result["category"]["provider_count"] == 2
        assert len(result["all_categories"]) == 1

    def test_benchmarks_only_use_active_scores(self, db_session, provider, scored_month):
        quality_scoring.calculate_and_save(db_session, str(provider.id), "monthly", REFERENCE)
        quality_scoring.calculate_and_save(db_session, str(provider.id), "monthly", REFERENCE)
        result = quality_reports.benchmarks(db_session, "monthly")
        assert result["overall"]["provider_count"] == 1

    def test_analytics(self, db_session, provider, other_provider, scored_month):
        quality_scoring.calculate_and_save(db_session, str(provider.id), "monthly", REFERENCE)
        quality_scoring.calculate_and_save(db_session, str(other_provider.id), "monthly", REFERENCE)

        result = quality_reports.analytics(db_session, "monthly")
        assert len(result["distribution"]) == 1
        bucket = result["distribution"][0]
        assert bucket["total_providers"] == 2
        assert bucket["good_providers"] == 1
        assert bucket["poor_providers"] == 1
        assert bucket["max_sqi"] == pytest.approx(84.1)
        assert [item["provider_id"] for item in result["top_providers"]] == [
            str(provider.id),
            str(other_provider.id),
        ]
        assert result["metrics"]["total_appointments"] == 10
        assert result["metrics"]["total_complaints"] == 1

    def test_analytics_date_range_excludes(self, db_session, provider):
        quality_scoring.calculate_and_save(db_session, str(provider.id), "monthly", REFERENCE)
        result = quality_reports.analytics(
            db_session, "monthly", end_at=datetime(2000, 1, 1, tzinfo=UTC)
        )
        assert result["distribution"] == []
        assert result["top_providers"] == []
        assert result["metrics"]["total_appointments"] == 0
