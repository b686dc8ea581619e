from datetime import UTC, datetime, timedelta

import pytest

from marketplace.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from marketplace.models.appointment import AppointmentStatus
from marketplace.models.complaint import ComplaintCategory, ComplaintStatus
from marketplace.models.provider import ApprovalStatus
from marketplace.models.user import User, UserRole
from marketplace.schemas.appointment import AppointmentCreate, AppointmentStatusUpdate
from marketplace.schemas.category import ServiceCategoryCreate
from marketplace.schemas.complaint import ComplaintCreate, ComplaintStatusUpdate
from marketplace.schemas.provider import ProviderApprovalRequest
from marketplace.schemas.review import ReviewCreate
from marketplace.services.appointments import appointments
from marketplace.services.auth import hash_password
from marketplace.services.categories import service_categories, slugify
from marketplace.services.complaints import complaints
from marketplace.services.notifications import notifications
from marketplace.services.providers import service_providers
from marketplace.services.reviews import reviews

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


def _auth(user: User) -> dict:
    return {"user_id": str(user.id), "roles": [user.role.value]}


def _booking(provider, scheduled_at=None) -> AppointmentCreate:
    return AppointmentCreate(
        provider_id=provider.id,
        scheduled_at=scheduled_at or NOW + timedelta(days=3),
        service_type="Pipe repair",
    )


class TestAppointments:
    def test_booking_notifies_provider(self, db_session, customer, provider, provider_user):
        appointment = appointments.create(db_session, str(customer.id), _booking(provider), now=NOW)
        assert appointment.status == AppointmentStatus.pending
        assert float(appointment.total_amount) == 50.0
        assert notifications.unread_count(db_session, str(provider_user.id)) == 1

    def test_past_date_rejected(self, db_session, customer, provider):
        with pytest.raises(ValidationError) as exc:
            appointments.create(db_session, str(customer.id), _booking(provider, NOW - timedelta(hours=1)), now=NOW)
        assert exc.value.errors[0]["field"] == "scheduled_at"

    def test_slot_conflict(self, db_session, customer, other_customer, provider):
        appointments.create(db_session, str(customer.id), _booking(provider), now=NOW)
        with pytest.raises(ConflictError):
            appointments.create(db_session, str(other_customer.id), _booking(provider), now=NOW)

    def test_unapproved_provider_not_bookable(self, db_session, customer, provider):
        provider.approval_status = ApprovalStatus.pending
        db_session.commit()
        with pytest.raises(ValidationError):
            appointments.create(db_session, str(customer.id), _booking(provider), now=NOW)

    def test_provider_cannot_book_self(self, db_session, provider_user, provider):
        with pytest.raises(ValidationError):
            appointments.create(db_session, str(provider_user.id), _booking(provider), now=NOW)

    def test_provider_confirmation_records_response(self, db_session, provider_user, make_appointment):
        appointment = make_appointment(created_at=NOW - timedelta(hours=5))
        updated = appointments.update_status(
            db_session,
            str(appointment.id),
            _auth(provider_user),
            AppointmentStatusUpdate(status=AppointmentStatus.confirmed),
            now=NOW,
        )
        assert updated.status == AppointmentStatus.confirmed
        assert updated.responded_at.replace(tzinfo=UTC) == NOW

    def test_admin_update_leaves_response_unset(self, db_session, admin_user, make_appointment):
        appointment = make_appointment()
        updated = appointments.update_status(
            db_session,
            str(appointment.id),
            _auth(admin_user),
            AppointmentStatusUpdate(status=AppointmentStatus.confirmed),
        )
        assert updated.responded_at is None

    def test_illegal_transition(self, db_session, provider_user, make_appointment):
        appointment = make_appointment()
        with pytest.raises(ValidationError):
            appointments.update_status(
                db_session,
                str(appointment.id),
                _auth(provider_user),
                AppointmentStatusUpdate(status=AppointmentStatus.completed),
            )

    def test_customer_cannot_change_status(self, db_session, customer, make_appointment):
        appointment = make_appointment()
        with pytest.raises(AuthorizationError):
            appointments.update_status(
                db_session,
                str(appointment.id),
                _auth(customer),
                AppointmentStatusUpdate(status=AppointmentStatus.confirmed),
            )

    def test_cancel_needs_notice_when_confirmed(self, db_session, customer, make_appointment):
        soon = make_appointment(status=AppointmentStatus.confirmed, scheduled_at=NOW + timedelta(hours=2))
        with pytest.raises(ValidationError):
            appointments.cancel(db_session, str(soon.id), _auth(customer), now=NOW)

        later = make_appointment(status=AppointmentStatus.confirmed, scheduled_at=NOW + timedelta(days=2))
        cancelled = appointments.cancel(db_session, str(later.id), _auth(customer), reason="Travel", now=NOW)
        assert cancelled.status == AppointmentStatus.cancelled
        assert cancelled.cancelled_by == "user"

    def test_cancel_completed_refused(self, db_session, customer, make_appointment):
        done = make_appointment(status=AppointmentStatus.completed)
        with pytest.raises(ValidationError):
            appointments.cancel(db_session, str(done.id), _auth(customer), now=NOW)

    def test_listing_is_scoped(self, db_session, customer, other_customer, provider_user, make_appointment):
        make_appointment()
        make_appointment(user=other_customer)
        assert appointments.count(db_session, _auth(customer)) == 1
        assert appointments.count(db_session, _auth(provider_user)) == 2


class TestReviews:
    def _review(self, db_session, customer, appointment, rating=5):
        payload = ReviewCreate(appointment_id=appointment.id, rating=rating, comment="Quick and very tidy work.")
        return reviews.create(db_session, str(customer.id), payload)

    def test_review_updates_provider_rating(self, db_session, customer, provider, make_appointment):
        first = make_appointment(status=AppointmentStatus.completed)
        second = make_appointment(status=AppointmentStatus.completed)
        self._review(db_session, customer, first, rating=5)
        self._review(db_session, customer, second, rating=4)
        db_session.refresh(provider)
        db_session.refresh(first)
        assert provider.review_count == 2
        assert float(provider.rating) == pytest.approx(4.5)
        assert first.has_review is True

    def test_only_completed_and_once(self, db_session, customer, make_appointment):
        pending = make_appointment()
        with pytest.raises(ValidationError):
            self._review(db_session, customer, pending)
        done = make_appointment(status=AppointmentStatus.completed)
        self._review(db_session, customer, done)
        with pytest.raises(ConflictError):
            self._review(db_session, customer, done)

    def _reporters(self, db_session, review, count=3):
        reporters = []
        for index in range(count):
            user = User(
                email=f"reporter{index}-{review.id.hex}@example.com",
                name=f"Reporter {index}",
                role=UserRole.user,
                password_hash=hash_password("secret123"),
            )
            db_session.add(user)
            reporters.append(user)
        db_session.commit()
        return reporters

    def test_reports_hide_review(self, db_session, customer, provider, make_appointment):
        review = self._review(db_session, customer, make_appointment(status=AppointmentStatus.completed))
        reporters = self._reporters(db_session, review)

        reviews.report(db_session, str(review.id), str(reporters[0].id), "Spam content")
        with pytest.raises(ConflictError):
            reviews.report(db_session, str(review.id), str(reporters[0].id), "Spam content")
        reviews.report(db_session, str(review.id), str(reporters[1].id), "Offensive")
        assert review.is_visible is True
        hidden = reviews.report(db_session, str(review.id), str(reporters[2].id), "Fake")

        db_session.refresh(provider)
        assert hidden.is_visible is False
        assert hidden.report_count == 3
        assert provider.review_count == 0

    def test_admin_restores_hidden_review(self, db_session, customer, provider, make_appointment):
        review = self._review(db_session, customer, make_appointment(status=AppointmentStatus.completed), rating=5)
        for reporter in self._reporters(db_session, review):
            reviews.report(db_session, str(review.id), str(reporter.id), "Looks fake")
        db_session.refresh(provider)
        assert review.is_visible is False
        assert provider.review_count == 0

        restored = reviews.moderate(db_session, str(review.id), True, "Reports were unfounded")
        db_session.refresh(provider)
        assert restored.is_visible is True
        assert provider.review_count == 1
        assert float(provider.rating) == pytest.approx(5.0)

        assert notifications.unread_count(db_session, str(customer.id)) == 1
        note = notifications.list(db_session, str(customer.id))[0]
        assert "approved by an administrator" in note.message
        assert "Reports were unfounded" in note.message

        reviews.moderate(db_session, str(review.id), False)
        db_session.refresh(provider)
        assert provider.review_count == 0
        assert float(provider.rating) == 0.0

    def test_cannot_report_own_review(self, db_session, customer, make_appointment):
        review = self._review(db_session, customer, make_appointment(status=AppointmentStatus.completed))
        with pytest.raises(ValidationError):
            reviews.report(db_session, str(review.id), str(customer.id), "Changed my mind")

    def test_only_reviewed_provider_responds(
        self, db_session, customer, provider_user, other_provider, make_appointment
    ):
        review = self._review(db_session, customer, make_appointment(status=AppointmentStatus.completed))
        outsider = {"user_id": str(other_provider.user_id), "roles": ["provider"]}
        with pytest.raises(AuthorizationError):
            reviews.respond(db_session, str(review.id), outsider, "Thanks")
        answered = reviews.respond(db_session, str(review.id), _auth(provider_user), "Thanks!")
        assert answered.response_text == "Thanks!"
        assert answered.responded_at is not None


class TestComplaints:
    def _payload(self, appointment) -> ComplaintCreate:
        return ComplaintCreate(
            appointment_id=appointment.id,
            category=ComplaintCategory.billing_issues,
            title="Overcharged",
            description="Was billed twice for the same visit.",
        )

    def test_open_duplicate_refused_until_resolved(self, db_session, customer, provider_user, make_appointment):
        appointment = make_appointment(status=AppointmentStatus.completed)
        complaint = complaints.create(db_session, str(customer.id), self._payload(appointment))
        assert notifications.unread_count(db_session, str(provider_user.id)) == 1
        with pytest.raises(ConflictError):
            complaints.create(db_session, str(customer.id), self._payload(appointment))

        resolved = complaints.update_status(
            db_session,
            str(complaint.id),
            ComplaintStatusUpdate(status=ComplaintStatus.resolved, resolution_text="Refunded"),
        )
        assert resolved.resolved_at is not None
        complaints.create(db_session, str(customer.id), self._payload(appointment))

    def test_reopening_clears_resolution_time(self, db_session, customer, make_appointment):
        appointment = make_appointment(status=AppointmentStatus.completed)
        complaint = complaints.create(db_session, str(customer.id), self._payload(appointment))
        complaints.update_status(db_session, str(complaint.id), ComplaintStatusUpdate(status=ComplaintStatus.dismissed))
        reopened = complaints.update_status(
            db_session, str(complaint.id), ComplaintStatusUpdate(status=ComplaintStatus.escalated)
        )
        assert reopened.resolved_at is None

    def test_stranger_cannot_view(self, db_session, customer, other_customer, make_appointment):
        appointment = make_appointment(status=AppointmentStatus.completed)
        complaint = complaints.create(db_session, str(customer.id), self._payload(appointment))
        with pytest.raises(AuthorizationError):
            complaints.get(db_session, str(complaint.id), _auth(other_customer))


class TestCatalog:
    def test_slugify(self):
        assert slugify("  Home & Garden Care ") == "home-garden-care"

    def test_duplicate_category_name(self, db_session, category):
        with pytest.raises(ConflictError):
            service_categories.create(db_session, ServiceCategoryCreate(name=category.name))

    def test_category_in_use_cannot_be_deleted(self, db_session, category, provider):
        with pytest.raises(ValidationError):
            service_categories.delete(db_session, str(category.id))

    def test_public_lookup_hides_unapproved(self, db_session, provider):
        service_providers.set_approval(
            db_session, str(provider.id), ProviderApprovalRequest(approval_status=ApprovalStatus.rejected)
        )
        with pytest.raises(NotFoundError):
            service_providers.get_public(db_session, str(provider.id))


class TestNotifications:
    def test_mark_all_read(self, db_session, customer, provider, provider_user):
        appointments.create(db_session, str(customer.id), _booking(provider), now=NOW)
        appointments.create(
            db_session, str(customer.id), _booking(provider, NOW + timedelta(days=4)), now=NOW
        )
        assert notifications.mark_all_read(db_session, str(provider_user.id)) == 2
        assert notifications.unread_count(db_session, str(provider_user.id)) == 0

    def test_foreign_notification_is_not_found(self, db_session, customer, provider, provider_user):
        appointments.create(db_session, str(customer.id), _booking(provider), now=NOW)
        item = notifications.list(db_session, str(provider_user.id))[0]
        with pytest.raises(NotFoundError):
            notifications.mark_read(db_session, str(customer.id), str(item.id))
        archived = notifications.archive(db_session, str(provider_user.id), str(item.id))
        assert archived.is_archived is True
        assert notifications.count(db_session, str(provider_user.id)) == 0
