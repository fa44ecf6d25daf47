from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from gasy_hub.core.errors import ForbiddenError, InvalidTransitionError, NotFoundError, ValidationError
from gasy_hub.db.models import Alert, AlertComment, AlertValidation, User
from gasy_hub.services.alert_service import AlertService
from gasy_hub.services.status_workflow import StatusWorkflowEngine
from gasy_hub.services.vote_service import VoteService


def submit(db, author_id="u1", **overrides):
    data = dict(reason="Vol", description="Sac volé", location="Analakely", urgency="high")
    data.update(overrides)
    return AlertService(db).submit(author_id=author_id, **data)


@pytest.fixture
def users(make_user):
    return {
        "u1": make_user("u1"),
        "u2": make_user("u2"),
        "admin": make_user("admin", is_admin=True),
    }


def test_submit_creates_pending_alert(db, users):
    alert = submit(db, media="/uploads/a.jpg")

    assert alert.status == "pending"
    assert alert.confirmed_count == 0
    assert alert.rejected_count == 0
    assert alert.media == ["/uploads/a.jpg"]
    assert alert.author.id == "u1"

    db.expire_all()
    assert db.get(User, "u1").alerts_count == 1
    history = AlertService(db).get_history(alert.id, "admin")
    assert [(h.from_status, h.to_status) for h in history] == [(None, "pending")]


def test_submit_defaults(db, users):
    alert = submit(db, reason="  ", urgency=None)
    assert alert.reason == "Autre"
    assert alert.urgency == "medium"


@pytest.mark.parametrize("overrides", [
    {"description": "   "},
    {"location": ""},
    {"urgency": "extreme"},
    {"latitude": 120.0},
    {"media": 42},
])
def test_submit_validation_creates_nothing(db, users, overrides):
    with pytest.raises(ValidationError):
        submit(db, **overrides)
    assert db.scalar(select(func.count(Alert.id))) == 0


def test_submit_with_unknown_author(db, users):
    with pytest.raises(ValidationError):
        submit(db, author_id="ghost")
    assert db.scalar(select(func.count(Alert.id))) == 0


def test_mark_resolved_by_author(db, users):
    alert = submit(db)
    resolved = AlertService(db).mark_resolved(alert.id, "u1")

    assert resolved.status == "resolved"
    assert resolved.resolved_at is not None


def test_mark_resolved_by_stranger_is_forbidden(db, users):
    alert = submit(db)
    with pytest.raises(ForbiddenError):
        AlertService(db).mark_resolved(alert.id, "u2")

    db.expire_all()
    assert db.get(Alert, alert.id).status == "pending"


def test_pending_resolution_disabled(db, users):
    alert = submit(db)
    service = AlertService(db, workflow=StatusWorkflowEngine(allow_pending_resolution=False))
    with pytest.raises(InvalidTransitionError):
        service.mark_resolved(alert.id, "u1")


def test_resolved_alert_cannot_be_resolved_again(db, users):
    alert = submit(db)
    service = AlertService(db)
    service.mark_resolved(alert.id, "u1")
    with pytest.raises(InvalidTransitionError):
        service.mark_resolved(alert.id, "u1")


def test_admin_override_is_audited(db, users):
    alert = submit(db)
    service = AlertService(db)

    updated = service.admin_override(alert.id, "fake", "admin", note="Doublon")
    assert updated.status == "fake"

    history = service.get_history(alert.id, "admin")
    assert len(history) == 2
    assert history[-1].actor_id == "admin"
    assert history[-1].from_status == "pending"
    assert history[-1].to_status == "fake"
    assert history[-1].note == "Doublon"


def test_admin_override_same_status_is_noop(db, users):
    alert = submit(db)
    service = AlertService(db)
    service.admin_override(alert.id, "pending", "admin")
    assert len(service.get_history(alert.id, "admin")) == 1


def test_admin_override_requires_admin(db, users):
    alert = submit(db)
    with pytest.raises(ForbiddenError):
        AlertService(db).admin_override(alert.id, "confirmed", "u2")


def test_change_status_routes_by_target(db, users):
    service = AlertService(db)
    alert = submit(db)

    with pytest.raises(InvalidTransitionError):
        service.change_status(alert.id, "pending", "u1")
    with pytest.raises(ForbiddenError):
        service.change_status(alert.id, "confirmed", "u1")

    assert service.change_status(alert.id, "confirmed", "admin").status == "confirmed"
    assert service.change_status(alert.id, "resolved", "u1").status == "resolved"


def test_view_counted_once_per_user(db, users):
    alert = submit(db)
    service = AlertService(db)

    service.view_alert(alert.id, "u2")
    service.view_alert(alert.id, "u2")
    service.view_alert(alert.id, None)
    assert service.view_alert(alert.id, "admin").view_count == 2

    with pytest.raises(NotFoundError):
        service.view_alert("missing")


def test_list_alerts_newest_first(db, users):
    service = AlertService(db)
    ids = [submit(db, description=f"Alerte {i}").id for i in range(5)]
    base = datetime(2024, 1, 1)
    for i, alert_id in enumerate(ids):
        db.get(Alert, alert_id).created_at = base + timedelta(minutes=i)
    db.commit()

    page, total = service.list_alerts(page=1, limit=2)
    assert total == 5
    assert [a.id for a in page] == ids[::-1][:2]

    last, _ = service.list_alerts(page=3, limit=2)
    assert [a.id for a in last] == [ids[0]]

    with pytest.raises(ValidationError):
        service.list_alerts(page=0)
    with pytest.raises(ValidationError):
        service.list_alerts(status="archived")


def test_list_alerts_filters(db, users):
    service = AlertService(db)
    mine = submit(db)
    submit(db, author_id="u2")
    service.admin_override(mine.id, "confirmed", "admin")

    confirmed, total = service.list_alerts(status="confirmed")
    assert total == 1 and confirmed[0].id == mine.id

    by_u2, total = service.list_alerts(author_id="u2")
    assert total == 1 and by_u2[0].author_id == "u2"


def test_update_alert_fields(db, users):
    alert = submit(db)
    service = AlertService(db)

    updated = service.update_alert(alert.id, "u1", {"description": "Sac volé devant la banque", "urgency": "low"})
    assert updated.description == "Sac volé devant la banque"
    assert updated.urgency == "low"

    with pytest.raises(ForbiddenError):
        service.update_alert(alert.id, "u2", {"description": "hack"})
    with pytest.raises(ValidationError):
        service.update_alert(alert.id, "admin", {"location": "  "})


def test_delete_alert_cascades(db, users):
    alert = submit(db, media=["/uploads/a.jpg", "https://cdn.example/b.jpg"])
    VoteService(db).vote(alert.id, "u2", True, comment="vu")

    paths = AlertService(db).delete_alert(alert.id, "u1")
    assert paths == ["/uploads/a.jpg", "https://cdn.example/b.jpg"]

    db.expire_all()
    assert db.get(Alert, alert.id) is None
    assert db.scalar(select(func.count(AlertValidation.id))) == 0
    assert db.scalar(select(func.count(AlertComment.id))) == 0
    assert db.get(User, "u1").alerts_count == 0


def test_delete_alert_forbidden_for_others(db, users):
    alert = submit(db)
    with pytest.raises(ForbiddenError):
        AlertService(db).delete_alert(alert.id, "u2")


def test_view_does_not_touch_updated_at(db, users):
    alert = submit(db)
    alert.updated_at = datetime(2024, 1, 1)
    db.commit()

    AlertService(db).view_alert(alert.id, "u2")

    db.expire_all()
    viewed = db.get(Alert, alert.id)
    assert viewed.view_count == 1
    assert viewed.updated_at.replace(tzinfo=None) == datetime(2024, 1, 1)


def test_submit_without_author(db, users):
    with pytest.raises(ValidationError, match="authorId is required"):
        submit(db, author_id=None)
    assert db.scalar(select(func.count(Alert.id))) == 0
